#!/usr/bin/env python3
"""
library_cli.py

Interactive text menu for the lending library.

Typical usage:
    python library_cli.py --data-dir data

Members log in with their id. Students and faculty get the member menu;
staff get the catalog/roster maintenance menu. State is loaded from the
data directory at start and written back on exit.
"""

from __future__ import annotations
import argparse
import logging
import pathlib
from typing import List, Optional

import pandas as pd

from lending_engine import Err, ErrorKind, LendingEngine, Result
from lending_models import Item, Member, MemberCategory
from lending_store import DEFAULT_DATA_DIR, catalog_frame, load_state, roster_frame, save_state

logger = logging.getLogger("LibraryCLI")

ERROR_MESSAGES = {
    ErrorKind.ITEM_NOT_FOUND: "Item not found in catalog.",
    ErrorKind.MEMBER_NOT_FOUND: "Member not found.",
    ErrorKind.ALREADY_BORROWED: "Item is already checked out.",
    ErrorKind.RESERVED_BY_OTHER: "Item is reserved by another member.",
    ErrorKind.NOT_ELIGIBLE: "You are not eligible to borrow at this time.",
    ErrorKind.NOT_BORROWED: "Item is not checked out.",
    ErrorKind.NO_SUCH_LOAN: "You have not checked out this item.",
    ErrorKind.ALREADY_RESERVED: "Item is already reserved by someone else.",
}


def input_prompt(prompt: str) -> str:
    """
    Wrapper around built-in input() that returns a stripped string and handles interrupts.

    Returns an empty string on EOF/KeyboardInterrupt.
    """
    try:
        return input(prompt).strip()
    except (EOFError, KeyboardInterrupt):
        print()
        return ""


def describe(result: Result) -> List[str]:
    """
    Render an engine result as the lines shown to the user.
    """
    if isinstance(result, Err):
        if result.kind is ErrorKind.NOT_BORROWED and result.action == "reserve":
            return ["Item is not eligible for reservation."]
        return [ERROR_MESSAGES[result.kind]]
    if result.action == "checkout":
        lines = ["Item checked out successfully."]
        if result.reservation_fulfilled:
            lines.append(f"Reservation fulfilled. You have {result.reservations_remaining} "
                         f"remaining reservations.")
        return lines
    if result.action == "return":
        lines = ["Item returned successfully."]
        if result.fee > 0:
            lines.append(f"Late fee of {result.fee:g} rupees applied.")
        return lines
    if result.action == "reserve":
        return ["Item reserved successfully."]
    return [f"Paid {result.paid:g} rupees. Remaining balance: {result.balance:g} rupees."]


def print_frame(df: pd.DataFrame, empty_message: str) -> None:
    if df.empty:
        print(empty_message)
        return
    print(df.to_string(index=False))


def print_items(items: List[Item], empty_message: str) -> None:
    if not items:
        print(empty_message)
        return
    for item in items:
        print(f"{item.item_id} - {item.title} by {item.creator} ({item.availability.value})")


# ---------------- Member menu ----------------
def print_member_menu():
    print("\n----- MEMBER MENU -----")
    print("1. Check out an item")
    print("2. Return an item")
    print("3. View checked out items")
    print("4. View pending fees")
    print("5. Pay fees")
    print("6. Reserve an item")
    print("7. Search catalog")
    print("8. Logout")


def member_loop(engine: LendingEngine, member: Member) -> bool:
    """
    Run the member menu until logout.

    Returns False if input ended (EOF), True on a normal logout.
    """
    mid = member.member_id
    while True:
        print_member_menu()
        choice = input_prompt("Selection: ")
        if choice == "":
            return False
        if choice == "8":
            return True
        elif choice == "1":
            for line in describe(engine.checkout(mid, input_prompt("Enter item ID: "))):
                print(line)
        elif choice == "2":
            for line in describe(engine.return_item(mid, input_prompt("Enter item ID: "))):
                print(line)
        elif choice == "3":
            loans = engine.loans_for(mid)
            print("\nCurrently checked out items:")
            if not loans:
                print("No items currently checked out.")
            for loan in loans:
                item = engine.find_item(loan.item_id)
                if item:
                    print(f"{loan.item_id} - {item.title}")
                else:
                    print(f"{loan.item_id} (Item details not available)")
        elif choice == "4":
            print(f"Pending fees: {member.ledger.pending_fees:g} rupees")
        elif choice == "5":
            print(f"Paying total fees: {member.ledger.pending_fees:g} rupees")
            engine.pay_fees(mid)
            print("Fees cleared successfully.")
        elif choice == "6":
            for line in describe(engine.reserve(mid, input_prompt("Enter item ID: "))):
                print(line)
        elif choice == "7":
            print_items(engine.search(input_prompt("Enter search term: ")), "No matching items found.")
        else:
            print("Invalid selection. Please try again.")


# ---------------- Staff menu ----------------
def print_staff_menu():
    print("\n----- STAFF MENU -----")
    print("1. Add new item")
    print("2. Remove item")
    print("3. Register new member")
    print("4. Remove member")
    print("5. Display full catalog")
    print("6. Display all members")
    print("7. Search catalog")
    print("8. Logout")


def prompt_item() -> Optional[Item]:
    item_id = input_prompt("Item ID: ")
    title = input_prompt("Title: ")
    creator = input_prompt("Author: ")
    publisher = input_prompt("Publisher: ")
    year_raw = input_prompt("Publication Year: ")
    if not item_id or not year_raw.lstrip("-").isdigit():
        return None
    return Item(item_id, title, creator, publisher, int(year_raw))


def prompt_member() -> Optional[Member]:
    member_id = input_prompt("Member ID: ")
    name = input_prompt("Full Name: ")
    label = input_prompt("Member Type (student/faculty/staff): ")
    if not member_id:
        return None
    try:
        category = MemberCategory.from_label(label)
    except ValueError:
        return None
    return Member(member_id, name, category)


def staff_loop(engine: LendingEngine) -> bool:
    """
    Run the staff menu until logout.

    Returns False if input ended (EOF), True on a normal logout.
    """
    while True:
        print_staff_menu()
        choice = input_prompt("Selection: ")
        if choice == "":
            return False
        if choice == "8":
            return True
        elif choice == "1":
            item = prompt_item()
            if item is None:
                print("Invalid item details.")
            elif engine.add_item(item):
                print("Item added to catalog successfully.")
            else:
                print("Failed (ID may exist).")
        elif choice == "2":
            ok = engine.remove_item(input_prompt("Enter item ID to remove: "))
            print("Item removed from catalog." if ok else "Item not found in catalog.")
        elif choice == "3":
            member = prompt_member()
            if member is None:
                print("Invalid member type.")
            elif engine.register_member(member):
                print("Member registered successfully.")
            else:
                print("Failed (ID may exist).")
        elif choice == "4":
            ok = engine.remove_member(input_prompt("Enter Member ID to remove: "))
            print("Member removed successfully." if ok else "Member not found.")
        elif choice == "5":
            print("\n----- FULL CATALOG -----")
            print_frame(catalog_frame(engine.catalog), "Catalog is empty.")
        elif choice == "6":
            print("\n----- MEMBER DIRECTORY -----")
            print_frame(roster_frame(engine.catalog, engine.roster), "No members registered.")
        elif choice == "7":
            query = input_prompt("Enter search term: ")
            if not engine.list_catalog():
                print("Catalog is empty.")
            else:
                print_items(engine.search(query), "No matching items found.")
        else:
            print("Invalid selection. Please try again.")


# ---------------- Session ----------------
def session_loop(engine: LendingEngine) -> None:
    """
    Log members in by id and hand them to the menu for their category.
    """
    while True:
        print("\n===== LIBRARY MANAGEMENT SYSTEM =====")
        entered = input_prompt("Enter member ID to login (or 'exit' to quit): ")
        if entered in ("", "exit"):
            print("Saving data and exiting...")
            return
        member = engine.find_member(entered)
        if member is None:
            print("Member not found. Please try again.")
            continue

        print(f"\nWelcome, {member.name} ({member.category.value})")
        if member.category is MemberCategory.STAFF:
            keep_going = staff_loop(engine)
        else:
            print(f"Items checked out: {member.ledger.loan_count()}")
            print(f"Items reserved: {engine.reservation_count(member.member_id)}")
            keep_going = member_loop(engine, member)
        if not keep_going:
            print("Saving data and exiting...")
            return


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Lending library: checkout, return and reservations")
    parser.add_argument("--data-dir", default=str(DEFAULT_DATA_DIR),
                        help="Folder holding book.csv, members.csv, checkouts.csv and fees.csv")
    parser.add_argument("--no-save", action="store_true", help="Do not write state back on exit")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ...)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s: %(message)s")

    data_dir = pathlib.Path(args.data_dir)
    catalog, roster = load_state(data_dir)
    engine = LendingEngine(catalog, roster)
    session_loop(engine)
    if not args.no_save:
        save_state(engine.catalog, engine.roster, data_dir)
        logger.info("Saved state to %s", data_dir)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
