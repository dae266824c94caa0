"""
lending_engine.py

Checkout, return, reservation and fee settlement over a catalog and a
roster. Every operation returns an `Ok` or an `Err`; domain failures are
reported as data and never raised.
"""

from __future__ import annotations
import datetime
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple, Union

from lending_models import Availability, Item, Loan, Member
from lending_policy import days_late, policy_for
from lending_repositories import Catalog, Roster

logger = logging.getLogger("LendingEngine")

Clock = Callable[[], datetime.datetime]


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class ErrorKind(Enum):
    ITEM_NOT_FOUND = "item_not_found"
    MEMBER_NOT_FOUND = "member_not_found"
    ALREADY_BORROWED = "already_borrowed"
    RESERVED_BY_OTHER = "reserved_by_other"
    NOT_ELIGIBLE = "not_eligible"
    NOT_BORROWED = "not_borrowed"
    NO_SUCH_LOAN = "no_such_loan"
    ALREADY_RESERVED = "already_reserved"


@dataclass(frozen=True)
class Ok:
    """
    A successful engine call.

    `fee` is set by returns, `paid`/`balance` by fee settlement. On a
    checkout that fulfils the member's own reservation,
    `reservation_fulfilled` is True and `reservations_remaining` holds the
    member's remaining reservation count.
    """
    action: str
    member_id: str
    item_id: str = ""
    fee: float = 0
    reservation_fulfilled: bool = False
    reservations_remaining: Optional[int] = None
    paid: float = 0
    balance: float = 0

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    action: str
    member_id: str = ""
    item_id: str = ""

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok, Err]


class LendingEngine:
    """
    Applies the item availability state machine and the category policies.

    available --checkout--> borrowed --return--> available
    borrowed --reserve--> borrowed (holder set) --return--> reserved
    reserved --checkout by holder--> borrowed (holder cleared)
    """

    def __init__(self, catalog: Optional[Catalog] = None, roster: Optional[Roster] = None,
                 clock: Clock = utc_now):
        self.catalog = catalog if catalog is not None else Catalog()
        self.roster = roster if roster is not None else Roster()
        self.clock = clock

    # -------------- Internal helpers ----------------
    def _resolve(self, action: str, member_id: str,
                 item_id: str) -> Tuple[Optional[Member], Optional[Item], Optional[Err]]:
        member = self.roster.get(member_id)
        if member is None:
            return None, None, self._reject(action, ErrorKind.MEMBER_NOT_FOUND, member_id, item_id)
        item = self.catalog.get(item_id)
        if item is None:
            return member, None, self._reject(action, ErrorKind.ITEM_NOT_FOUND, member_id, item_id)
        return member, item, None

    def _reject(self, action: str, kind: ErrorKind, member_id: str, item_id: str = "") -> Err:
        logger.debug("%s rejected for member=%s item=%s: %s", action, member_id, item_id, kind.value)
        return Err(kind, action, member_id, item_id)

    # ---------------- Core operations ----------------
    def checkout(self, member_id: str, item_id: str) -> Result:
        """
        Lend `item_id` to the member.

        A reserved item can only be claimed by its reservation holder;
        doing so fulfils (clears) the reservation.
        """
        now = self.clock()
        member, item, err = self._resolve("checkout", member_id, item_id)
        if err is not None:
            return err
        if item.availability is Availability.BORROWED:
            return self._reject("checkout", ErrorKind.ALREADY_BORROWED, member_id, item_id)
        if item.availability is Availability.RESERVED and item.holder_ref != member_id:
            return self._reject("checkout", ErrorKind.RESERVED_BY_OTHER, member_id, item_id)
        if not policy_for(member.category).is_eligible(member.ledger, now):
            return self._reject("checkout", ErrorKind.NOT_ELIGIBLE, member_id, item_id)

        fulfilled = item.availability is Availability.RESERVED and item.is_reserved_for(member_id)
        member.ledger.add_loan(Loan(item_id, now))
        item.availability = Availability.BORROWED
        item.holder_ref = ""
        logger.info("Checked out %s to %s", item_id, member_id)

        if not fulfilled:
            return Ok("checkout", member_id, item_id)
        remaining = self.reservation_count(member_id)
        logger.info("Reservation on %s fulfilled for %s (%d remaining)", item_id, member_id, remaining)
        return Ok("checkout", member_id, item_id, reservation_fulfilled=True,
                  reservations_remaining=remaining)

    def return_item(self, member_id: str, item_id: str) -> Result:
        """
        Take `item_id` back from the member and charge any late fee.

        The returning member must identify themselves; the item does not
        record who borrowed it. A reservation placed during the loan
        leaves the item reserved for its holder.
        """
        now = self.clock()
        member, item, err = self._resolve("return", member_id, item_id)
        if err is not None:
            return err
        if item.availability is not Availability.BORROWED:
            return self._reject("return", ErrorKind.NOT_BORROWED, member_id, item_id)
        loan = member.ledger.find_loan(item_id)
        if loan is None:
            return self._reject("return", ErrorKind.NO_SUCH_LOAN, member_id, item_id)

        late = days_late(loan.days_outstanding(now), member.category)
        fee = policy_for(member.category).late_fee(late)
        member.ledger.close_loan(item_id, fee)
        item.availability = Availability.RESERVED if item.holder_ref else Availability.AVAILABLE

        if fee > 0:
            logger.info("Item %s returned by %s, %d day(s) late, fee %s", item_id, member_id, late, fee)
        else:
            logger.info("Item %s returned by %s", item_id, member_id)
        return Ok("return", member_id, item_id, fee=fee)

    def reserve(self, member_id: str, item_id: str) -> Result:
        """
        Place the single reservation slot of a borrowed item.

        Items on the shelf need no reservation, so only borrowed items qualify.
        """
        member, item, err = self._resolve("reserve", member_id, item_id)
        if err is not None:
            return err
        if item.availability is not Availability.BORROWED:
            return self._reject("reserve", ErrorKind.NOT_BORROWED, member_id, item_id)
        if item.holder_ref:
            return self._reject("reserve", ErrorKind.ALREADY_RESERVED, member_id, item_id)

        item.holder_ref = member_id
        logger.info("Item %s reserved by %s", item_id, member_id)
        return Ok("reserve", member_id, item_id)

    def pay_fees(self, member_id: str, amount: Optional[float] = None) -> Result:
        """
        Settle pending fees. With no amount the whole balance is paid.

        The balance never drops below zero; overpayment is not kept.
        """
        member = self.roster.get(member_id)
        if member is None:
            return self._reject("pay_fees", ErrorKind.MEMBER_NOT_FOUND, member_id)
        ledger = member.ledger
        paid = ledger.settle(ledger.pending_fees if amount is None else amount)
        logger.info("Member %s paid %s, balance now %s", member_id, paid, ledger.pending_fees)
        return Ok("pay_fees", member_id, paid=paid, balance=ledger.pending_fees)

    # ---------------- Reports / Queries ----------------
    def reservation_count(self, member_id: str) -> int:
        return len(self.catalog.reserved_by(member_id))

    def borrower_of(self, item_id: str) -> Optional[str]:
        """
        Find who currently holds `item_id` by scanning every member's ledger.

        Returns the member id or None if nobody has it on loan.
        """
        for member in self.roster:
            if member.ledger.find_loan(item_id) is not None:
                return member.member_id
        return None

    def loans_for(self, member_id: str) -> List[Loan]:
        member = self.roster.get(member_id)
        return member.ledger.active_loans if member else []

    def find_item(self, item_id: str) -> Optional[Item]:
        return self.catalog.get(item_id)

    def find_member(self, member_id: str) -> Optional[Member]:
        return self.roster.get(member_id)

    def list_catalog(self) -> List[Item]:
        return self.catalog.list_all()

    def list_members(self) -> List[Member]:
        return self.roster.list_all()

    def search(self, query: str) -> List[Item]:
        return self.catalog.search(query)

    # ---------------- Staff maintenance ----------------
    def add_item(self, item: Item) -> bool:
        ok = self.catalog.add(item)
        if ok:
            logger.info("Added item %s", item.item_id)
        return ok

    def remove_item(self, item_id: str) -> bool:
        ok = self.catalog.remove(item_id)
        if ok:
            logger.info("Removed item %s", item_id)
        return ok

    def register_member(self, member: Member) -> bool:
        ok = self.roster.add(member)
        if ok:
            logger.info("Registered member %s (%s)", member.member_id, member.category.value)
        return ok

    def remove_member(self, member_id: str) -> bool:
        """Remove a member. Reservations naming them are left on the items."""
        ok = self.roster.remove(member_id)
        if ok:
            logger.info("Removed member %s", member_id)
        return ok
