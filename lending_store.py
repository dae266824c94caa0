"""
lending_store.py

Flat-file persistence for the lending library, plus tabular reports.

Four header-less CSV files are kept in one data directory:
    book.csv       id,title,creator,publisher,year,availability,holder_ref
    members.csv    id,name,category
    checkouts.csv  member_id,item_id,checkout_epoch_seconds
    fees.csv       member_id,amount   (only balances above zero)

Missing catalog or member files fall back to a small default library so a
first run has something to lend. Malformed rows are logged and skipped.
"""

from __future__ import annotations
import datetime
import logging
import pathlib
from typing import List, Optional, Set, Tuple

import pandas as pd

from lending_models import Availability, Item, Loan, Member, MemberCategory
from lending_repositories import Catalog, Roster

# Configuration
DEFAULT_DATA_DIR = pathlib.Path(__file__).resolve().parent / "data"
CATALOG_FILE = "book.csv"
MEMBERS_FILE = "members.csv"
CHECKOUTS_FILE = "checkouts.csv"
FEES_FILE = "fees.csv"

CATALOG_COLUMNS = ["id", "title", "creator", "publisher", "year", "availability", "holder_ref"]
MEMBER_COLUMNS = ["id", "name", "category"]
CHECKOUT_COLUMNS = ["member_id", "item_id", "checkout_epoch"]
FEE_COLUMNS = ["member_id", "amount"]

logger = logging.getLogger("LendingStore")


# ---------------- Defaults ----------------
def default_items() -> List[Item]:
    return [
        Item("LIT001", "Advanced Programming", "Jane Doe", "TechPress", 2022),
        Item("LIT002", "Data Structures", "John Smith", "CodeBooks", 2020),
        Item("LIT003", "Algorithm Design", "Alice Johnson", "CompSci", 2021),
        Item("LIT004", "Database Systems", "Bob Williams", "DataPub", 2019),
        Item("LIT005", "Machine Learning", "Carol Brown", "AIPress", 2023),
    ]


def default_members() -> List[Member]:
    members = [Member(f"STU{n}", f"Student {word}", MemberCategory.STUDENT)
               for n, word in enumerate(["One", "Two", "Three", "Four", "Five"], start=1)]
    members += [Member(f"PROF{n}", f"Professor {word}", MemberCategory.FACULTY)
                for n, word in enumerate(["One", "Two", "Three"], start=1)]
    members.append(Member("STAFF1", "Staff One", MemberCategory.STAFF))
    return members


# ---------------- Loading ----------------
def _read_records(path: pathlib.Path, columns: List[str]) -> Optional[pd.DataFrame]:
    """
    Read a header-less CSV into a string DataFrame.

    Returns None when the file does not exist and an empty frame when it has no rows.
    """
    if not path.exists():
        return None
    try:
        df = pd.read_csv(path, header=None, names=columns, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        return pd.DataFrame(columns=columns)
    return df.fillna("")


def _item_from_row(row: pd.Series) -> Item:
    availability = Availability.from_label(row["availability"] or "available")
    holder = str(row["holder_ref"]).strip()
    # keep the reserved <=> holder invariant for hand-edited files
    if availability is Availability.AVAILABLE:
        holder = ""
    elif availability is Availability.RESERVED and not holder:
        availability = Availability.AVAILABLE
    return Item(row["id"], row["title"], row["creator"], row["publisher"], int(row["year"]),
                availability, holder)


def load_catalog(data_dir: pathlib.Path) -> Catalog:
    path = data_dir / CATALOG_FILE
    df = _read_records(path, CATALOG_COLUMNS)
    if df is None:
        logger.warning("Catalog CSV not found: %s (using default catalog)", path)
        return Catalog(default_items())
    catalog = Catalog()
    for idx, row in df.iterrows():
        try:
            item = _item_from_row(row)
        except ValueError as exc:
            logger.warning("Skipping catalog row %d in %s: %s", idx + 1, path, exc)
            continue
        if not catalog.add(item):
            logger.warning("Skipping duplicate item %s in %s", item.item_id, path)
    logger.info("Loaded %d items", len(catalog))
    return catalog


def load_roster(data_dir: pathlib.Path) -> Roster:
    path = data_dir / MEMBERS_FILE
    df = _read_records(path, MEMBER_COLUMNS)
    if df is None:
        logger.warning("Members CSV not found: %s (using default roster)", path)
        return Roster(default_members())
    roster = Roster()
    for idx, row in df.iterrows():
        try:
            category = MemberCategory.from_label(row["category"])
        except ValueError:
            logger.warning("Skipping member %s with unknown category %r", row["id"], row["category"])
            continue
        if not roster.add(Member(row["id"], row["name"], category)):
            logger.warning("Skipping duplicate member %s in %s", row["id"], path)
    logger.info("Loaded %d members", len(roster))
    return roster


def load_loans(data_dir: pathlib.Path, catalog: Catalog, roster: Roster) -> None:
    """
    Attach persisted loans to member ledgers.

    An item can only be on loan to one member; later records for an item
    already lent are skipped. Items found on loan but recorded as
    available or reserved are marked borrowed.
    """
    path = data_dir / CHECKOUTS_FILE
    df = _read_records(path, CHECKOUT_COLUMNS)
    if df is None:
        return
    lent: Set[str] = set()
    for idx, row in df.iterrows():
        member = roster.get(row["member_id"])
        if member is None:
            logger.warning("Skipping loan of %s for unknown member %s", row["item_id"], row["member_id"])
            continue
        if row["item_id"] in lent:
            logger.warning("Skipping second loan of %s (member %s)", row["item_id"], row["member_id"])
            continue
        try:
            when = datetime.datetime.fromtimestamp(int(row["checkout_epoch"]), tz=datetime.timezone.utc)
            member.ledger.add_loan(Loan(row["item_id"], when))
        except (ValueError, OverflowError, OSError) as exc:
            logger.warning("Skipping checkout row %d in %s: %s", idx + 1, path, exc)
            continue
        lent.add(row["item_id"])

    for item_id in lent:
        item = catalog.get(item_id)
        if item is not None and item.availability is not Availability.BORROWED:
            logger.warning("Item %s is on loan but recorded as %s; marking borrowed",
                           item_id, item.availability.value)
            item.availability = Availability.BORROWED
    logger.info("Loaded %d active loans", len(lent))


def load_fees(data_dir: pathlib.Path, roster: Roster) -> None:
    path = data_dir / FEES_FILE
    df = _read_records(path, FEE_COLUMNS)
    if df is None:
        return
    for idx, row in df.iterrows():
        member = roster.get(row["member_id"])
        if member is None:
            logger.warning("Skipping fees for unknown member %s", row["member_id"])
            continue
        try:
            amount = float(row["amount"])
        except ValueError as exc:
            logger.warning("Skipping fee row %d in %s: %s", idx + 1, path, exc)
            continue
        member.ledger.pending_fees = max(0.0, amount)


def load_state(data_dir: pathlib.Path = DEFAULT_DATA_DIR) -> Tuple[Catalog, Roster]:
    """
    Load catalog, roster, loans and fees from `data_dir`.

    Returns the populated (catalog, roster) pair.
    """
    data_dir = pathlib.Path(data_dir)
    catalog = load_catalog(data_dir)
    roster = load_roster(data_dir)
    load_loans(data_dir, catalog, roster)
    load_fees(data_dir, roster)
    return catalog, roster


# ---------------- Reports ----------------
def catalog_frame(catalog: Catalog) -> pd.DataFrame:
    rows = [{
        "id": i.item_id,
        "title": i.title,
        "creator": i.creator,
        "publisher": i.publisher,
        "year": i.year,
        "availability": i.availability.value,
        "holder_ref": i.holder_ref,
    } for i in catalog]
    return pd.DataFrame(rows, columns=CATALOG_COLUMNS)


def roster_frame(catalog: Catalog, roster: Roster) -> pd.DataFrame:
    """
    Summarize every member: category, loan and reservation counts, and
    pending fees.
    """
    reserved = pd.Series([i.holder_ref for i in catalog if i.holder_ref], dtype=str).value_counts()
    rows = [{
        "id": m.member_id,
        "name": m.name,
        "category": m.category.value,
        "active_loans": m.ledger.loan_count(),
        "reservations": int(reserved.get(m.member_id, 0)),
        "pending_fees": m.ledger.pending_fees,
    } for m in roster]
    return pd.DataFrame(rows, columns=MEMBER_COLUMNS + ["active_loans", "reservations", "pending_fees"])


def checkouts_frame(roster: Roster) -> pd.DataFrame:
    rows = [{
        "member_id": m.member_id,
        "item_id": loan.item_id,
        "checkout_epoch": int(loan.checked_out_at.timestamp()),
    } for m in roster for loan in m.ledger.active_loans]
    return pd.DataFrame(rows, columns=CHECKOUT_COLUMNS)


def fees_frame(roster: Roster) -> pd.DataFrame:
    rows = [{"member_id": m.member_id, "amount": m.ledger.pending_fees}
            for m in roster if m.ledger.pending_fees > 0]
    return pd.DataFrame(rows, columns=FEE_COLUMNS)


# ---------------- Persisting ----------------
def save_state(catalog: Catalog, roster: Roster, data_dir: pathlib.Path = DEFAULT_DATA_DIR) -> None:
    """
    Write all four files into `data_dir`, creating the directory if needed.
    """
    data_dir = pathlib.Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    tables = [
        (CATALOG_FILE, catalog_frame(catalog)),
        (MEMBERS_FILE, roster_frame(catalog, roster)[MEMBER_COLUMNS]),
        (CHECKOUTS_FILE, checkouts_frame(roster)),
        (FEES_FILE, fees_frame(roster)),
    ]
    for name, df in tables:
        df.to_csv(data_dir / name, header=False, index=False)
        logger.info("Saved %d records to %s", len(df), data_dir / name)
