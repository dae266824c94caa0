import datetime

import pytest

from lending_engine import LendingEngine
from lending_models import Item, Member, MemberCategory
from lending_repositories import Catalog, Roster

START = datetime.datetime(2025, 1, 1, 9, 0, tzinfo=datetime.timezone.utc)


class FakeClock:
    """Clock the tests can move forward."""

    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, days=0, hours=0):
        self.now += datetime.timedelta(days=days, hours=hours)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(clock):
    """Fresh engine with five items, three students, two faculty and one staff member."""
    catalog = Catalog([
        Item("LIT001", "Advanced Programming", "Jane Doe", "TechPress", 2022),
        Item("LIT002", "Data Structures", "John Smith", "CodeBooks", 2020),
        Item("LIT003", "Algorithm Design", "Alice Johnson", "CompSci", 2021),
        Item("LIT004", "Database Systems", "Bob Williams", "DataPub", 2019),
        Item("LIT005", "Machine Learning", "Carol Brown", "AIPress", 2023),
        Item("LIT006", "Compilers", "Jane Doe", "TechPress", 2018),
    ])
    roster = Roster([
        Member("S1", "Student One", MemberCategory.STUDENT),
        Member("S2", "Student Two", MemberCategory.STUDENT),
        Member("S3", "Student Three", MemberCategory.STUDENT),
        Member("P1", "Professor One", MemberCategory.FACULTY),
        Member("P2", "Professor Two", MemberCategory.FACULTY),
        Member("STAFF1", "Staff One", MemberCategory.STAFF),
    ])
    return LendingEngine(catalog, roster, clock=clock)
