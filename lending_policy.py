"""
lending_policy.py

Per-category borrowing rules. Each member category maps to a `Policy`
record of pure functions; the engine dispatches through `policy_for`.
"""

from __future__ import annotations
import datetime
from dataclasses import dataclass
from typing import Callable, Dict

from lending_models import LoanLedger, MemberCategory

# Configuration
STUDENT_LOAN_DAYS = 15
FACULTY_LOAN_DAYS = 30
STAFF_LOAN_DAYS = 30
STUDENT_MAX_LOANS = 3
FACULTY_MAX_LOANS = 5
FACULTY_MAX_LOAN_AGE_DAYS = 90
STUDENT_FEE_PER_DAY = 10


@dataclass(frozen=True)
class Policy:
    loan_period_days: int
    is_eligible: Callable[[LoanLedger, datetime.datetime], bool]
    late_fee: Callable[[int], int]


def student_is_eligible(ledger: LoanLedger, now: datetime.datetime) -> bool:
    return ledger.loan_count() < STUDENT_MAX_LOANS and ledger.pending_fees == 0


def student_late_fee(days_late: int) -> int:
    return days_late * STUDENT_FEE_PER_DAY if days_late > 0 else 0


def faculty_is_eligible(ledger: LoanLedger, now: datetime.datetime) -> bool:
    """
    Faculty may hold up to five loans, but a single loan kept longer than
    ninety days blocks any new checkout until it comes back.
    """
    if ledger.loan_count() >= FACULTY_MAX_LOANS:
        return False
    return all(loan.days_outstanding(now) <= FACULTY_MAX_LOAN_AGE_DAYS
               for loan in ledger.active_loans)


def staff_is_eligible(ledger: LoanLedger, now: datetime.datetime) -> bool:
    return False


def no_late_fee(days_late: int) -> int:
    return 0


POLICIES: Dict[MemberCategory, Policy] = {
    MemberCategory.STUDENT: Policy(STUDENT_LOAN_DAYS, student_is_eligible, student_late_fee),
    MemberCategory.FACULTY: Policy(FACULTY_LOAN_DAYS, faculty_is_eligible, no_late_fee),
    MemberCategory.STAFF: Policy(STAFF_LOAN_DAYS, staff_is_eligible, no_late_fee),
}


def policy_for(category: MemberCategory) -> Policy:
    return POLICIES[category]


def days_late(loan_days_outstanding: int, category: MemberCategory) -> int:
    """Days past the category's loan period, zero if returned in time."""
    return max(0, loan_days_outstanding - policy_for(category).loan_period_days)
