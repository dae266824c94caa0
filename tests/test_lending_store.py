import datetime

from lending_engine import LendingEngine
from lending_models import Availability, MemberCategory
from lending_store import (
    CATALOG_FILE,
    CHECKOUTS_FILE,
    FEES_FILE,
    MEMBERS_FILE,
    catalog_frame,
    load_state,
    roster_frame,
    save_state,
)

EPOCH = 1735722000  # 2025-01-01 09:00 UTC


def write(path, lines):
    path.write_text("".join(line + "\n" for line in lines))


def test_missing_files_seed_defaults(tmp_path):
    catalog, roster = load_state(tmp_path / "absent")
    assert [i.item_id for i in catalog] == ["LIT001", "LIT002", "LIT003", "LIT004", "LIT005"]
    assert all(i.availability is Availability.AVAILABLE for i in catalog)
    ids = [m.member_id for m in roster]
    assert ids[:5] == ["STU1", "STU2", "STU3", "STU4", "STU5"]
    assert roster.get("PROF3").category is MemberCategory.FACULTY
    assert roster.get("STAFF1").category is MemberCategory.STAFF
    assert all(m.ledger.loan_count() == 0 for m in roster)


def test_load_records(tmp_path):
    write(tmp_path / CATALOG_FILE, [
        "LIT001,Advanced Programming,Jane Doe,TechPress,2022,borrowed,S2",
        "LIT002,Data Structures,John Smith,CodeBooks,2020,available,",
        "LIT003,Algorithm Design,Alice Johnson,CompSci,20x1,available,",
    ])
    write(tmp_path / MEMBERS_FILE, [
        "S1,Student One,student",
        "S2,Student Two,student",
        "P1,Professor One,faculty",
        "L1,Old Staff,librarian",
        "X1,Mystery,visitor",
    ])
    write(tmp_path / CHECKOUTS_FILE, [
        f"S1,LIT001,{EPOCH}",
        f"GHOST,LIT002,{EPOCH}",
        "P1,LIT002,not-a-time",
    ])
    write(tmp_path / FEES_FILE, ["S2,30", "GHOST,10"])

    catalog, roster = load_state(tmp_path)

    assert [i.item_id for i in catalog] == ["LIT001", "LIT002"]
    assert catalog.get("LIT001").holder_ref == "S2"
    assert roster.get("L1").category is MemberCategory.STAFF
    assert roster.get("X1") is None

    loan = roster.get("S1").ledger.find_loan("LIT001")
    assert loan.checked_out_at == datetime.datetime.fromtimestamp(EPOCH, tz=datetime.timezone.utc)
    assert roster.get("P1").ledger.loan_count() == 0
    assert roster.get("S2").ledger.pending_fees == 30


def test_loan_marks_item_borrowed_and_skips_double_lending(tmp_path):
    write(tmp_path / CATALOG_FILE, ["LIT001,Advanced Programming,Jane Doe,TechPress,2022,available,"])
    write(tmp_path / MEMBERS_FILE, ["S1,Student One,student", "S2,Student Two,student"])
    write(tmp_path / CHECKOUTS_FILE, [f"S1,LIT001,{EPOCH}", f"S2,LIT001,{EPOCH}"])

    catalog, roster = load_state(tmp_path)

    assert catalog.get("LIT001").availability is Availability.BORROWED
    assert roster.get("S1").ledger.loan_count() == 1
    assert roster.get("S2").ledger.loan_count() == 0


def test_inconsistent_reservation_fields_are_normalized(tmp_path):
    write(tmp_path / CATALOG_FILE, [
        "LIT001,Advanced Programming,Jane Doe,TechPress,2022,reserved,",
        "LIT002,Data Structures,John Smith,CodeBooks,2020,available,S1",
    ])
    write(tmp_path / MEMBERS_FILE, ["S1,Student One,student"])

    catalog, _ = load_state(tmp_path)

    assert catalog.get("LIT001").availability is Availability.AVAILABLE
    assert catalog.get("LIT002").holder_ref == ""


def test_save_and_reload_engine_state(tmp_path, engine, clock):
    engine.checkout("S1", "LIT001")
    engine.reserve("S2", "LIT001")
    engine.checkout("S3", "LIT002")
    clock.advance(days=20)
    engine.return_item("S3", "LIT002")

    save_state(engine.catalog, engine.roster, tmp_path / "out")

    lines = (tmp_path / "out" / CATALOG_FILE).read_text().splitlines()
    assert lines[0] == "LIT001,Advanced Programming,Jane Doe,TechPress,2022,borrowed,S2"
    assert lines[1] == "LIT002,Data Structures,John Smith,CodeBooks,2020,available,"
    assert (tmp_path / "out" / MEMBERS_FILE).read_text().splitlines()[-1] == "STAFF1,Staff One,staff"
    assert (tmp_path / "out" / CHECKOUTS_FILE).read_text().splitlines() == [
        f"S1,LIT001,{int(clock.now.timestamp()) - 20 * 86400}"
    ]
    assert (tmp_path / "out" / FEES_FILE).read_text().splitlines()[0].startswith("S3,50")

    catalog, roster = load_state(tmp_path / "out")
    reloaded = LendingEngine(catalog, roster, clock=clock)
    assert reloaded.find_item("LIT001").holder_ref == "S2"
    assert reloaded.borrower_of("LIT001") == "S1"
    assert reloaded.find_member("S3").ledger.pending_fees == 50
    assert reloaded.checkout("S3", "LIT003").ok is False

    result = reloaded.return_item("S1", "LIT001")
    assert result.fee == 50
    assert reloaded.find_item("LIT001").availability is Availability.RESERVED


def test_empty_state_round_trips_as_empty(tmp_path):
    engine = LendingEngine()
    save_state(engine.catalog, engine.roster, tmp_path)
    catalog, roster = load_state(tmp_path)
    assert len(catalog) == 0
    assert len(roster) == 0


def test_reports(engine):
    engine.checkout("S1", "LIT001")
    engine.reserve("S2", "LIT001")

    items = catalog_frame(engine.catalog)
    assert list(items["availability"][:2]) == ["borrowed", "available"]

    members = roster_frame(engine.catalog, engine.roster).set_index("id")
    assert members.loc["S1", "active_loans"] == 1
    assert members.loc["S2", "reservations"] == 1
    assert members.loc["P1", "category"] == "faculty"
