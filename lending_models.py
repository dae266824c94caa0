"""
lending_models.py

Domain records for the lending library: catalog items, members and the
per-member loan ledger.
"""

from __future__ import annotations
import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class Availability(Enum):
    AVAILABLE = "available"
    BORROWED = "borrowed"
    RESERVED = "reserved"

    @classmethod
    def from_label(cls, label: str) -> "Availability":
        """
        Parse a persisted lowercase label.

        Raises ValueError for anything other than available/borrowed/reserved.
        """
        return cls(label.strip().lower())


class MemberCategory(Enum):
    STUDENT = "student"
    FACULTY = "faculty"
    STAFF = "staff"

    @classmethod
    def from_label(cls, label: str) -> "MemberCategory":
        """
        Parse a persisted category label; ``librarian`` is an older name for staff.
        """
        value = label.strip().lower()
        if value == "librarian":
            return cls.STAFF
        return cls(value)


@dataclass
class Item:
    """
    A catalog entry.

    Only `availability` and `holder_ref` change after creation. `holder_ref`
    names the member holding a reservation; the current borrower is not
    stored here and can only be found in the members' ledgers.
    """
    item_id: str
    title: str
    creator: str
    publisher: str
    year: int
    availability: Availability = Availability.AVAILABLE
    holder_ref: str = ""

    def is_reserved_for(self, member_id: str) -> bool:
        return self.holder_ref != "" and self.holder_ref == member_id


@dataclass(frozen=True)
class Loan:
    item_id: str
    checked_out_at: datetime.datetime

    def days_outstanding(self, now: datetime.datetime) -> int:
        """Whole days elapsed since checkout, counted from whole hours."""
        hours = int((now - self.checked_out_at).total_seconds() // 3600)
        return hours // 24


@dataclass
class LoanLedger:
    """
    Active loans and the pending fee balance of one member.

    Loans are keyed by item id, so a member can never hold two loans of
    the same item at once.
    """
    _loans: Dict[str, Loan] = field(default_factory=dict)
    pending_fees: float = 0.0

    @property
    def active_loans(self) -> List[Loan]:
        return list(self._loans.values())

    def loan_count(self) -> int:
        return len(self._loans)

    def find_loan(self, item_id: str) -> Optional[Loan]:
        return self._loans.get(item_id)

    def add_loan(self, loan: Loan) -> None:
        if loan.item_id in self._loans:
            raise ValueError(f"Duplicate loan for item {loan.item_id}")
        self._loans[loan.item_id] = loan

    def close_loan(self, item_id: str, fee: float) -> Loan:
        """
        Remove the loan for `item_id` and add `fee` to the pending balance.

        Raises KeyError if there is no such loan.
        """
        loan = self._loans.pop(item_id)
        self.pending_fees += max(0, fee)
        return loan

    def settle(self, amount: float) -> float:
        """
        Reduce the pending balance by `amount`, never below zero.

        Returns the amount actually settled.
        """
        paid = min(max(0.0, amount), self.pending_fees)
        self.pending_fees = max(0.0, self.pending_fees - paid)
        return paid


@dataclass
class Member:
    member_id: str
    name: str
    category: MemberCategory
    ledger: LoanLedger = field(default_factory=LoanLedger)
