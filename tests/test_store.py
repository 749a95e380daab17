import sqlite3
from datetime import date

import pytest

import db
from errors import ConstraintViolationError, DuplicateRecordError, MemberNotFoundError, StoreUnavailableError
from models import AttendanceRecord, PaymentEvent, PaymentKind, PendingSyncRecord
from store import LocalCache, MemberStore
from tests.conftest import NOW, make_member


def test_member_round_trip_keeps_dates(member_store):
    created = member_store.create(make_member(id=None, email="a@example.com"))

    loaded = member_store.get(created.id)
    assert loaded.join_date == date(2024, 1, 1)
    assert loaded.current_date == date(2024, 1, 1)
    assert loaded.expiry_date == date(2024, 2, 1)
    assert loaded.email == "a@example.com"
    assert member_store.count() == 1
    assert member_store.list() == [loaded]


def test_roll_number_is_unique(member_store):
    member_store.create(make_member(id=None))

    with pytest.raises(DuplicateRecordError):
        member_store.create(make_member(id=None, name="Other"))
    assert member_store.count() == 1


def test_update_partial_fields(member_store):
    created = member_store.create(make_member(id=None))

    updated = member_store.update(created.id, {"paid_amount": 1000, "remaining": 4000,
                                               "current_date": date(2024, 2, 2)})

    assert updated.paid_amount == 1000
    assert updated.remaining == 4000
    assert updated.current_date == date(2024, 2, 2)
    assert updated.fee == 5000


def test_update_rejects_immutable_fields(member_store):
    created = member_store.create(make_member(id=None))

    with pytest.raises(ValueError):
        member_store.update(created.id, {"roll_number": "GYM-9999"})


def test_update_missing_member(member_store):
    with pytest.raises(MemberNotFoundError):
        member_store.update(404, {"remaining": 0})


def test_update_appends_events_in_same_write(member_store, payment_log):
    created = member_store.create(make_member(id=None))
    event = PaymentEvent(created.id, created.roll_number, 100, PaymentKind.PAYMENT, NOW)

    member_store.update(created.id, {"remaining": 4900, "paid_amount": 100}, events=(event,))

    assert payment_log.list(created.id) == [event]


def test_missing_store_file_is_unavailable(tmp_path):
    store = MemberStore(tmp_path / "no-such-dir" / "gym.db")

    with pytest.raises(StoreUnavailableError):
        store.count()


def test_negative_remaining_is_refused_by_store(member_store):
    created = member_store.create(make_member(id=None))

    with pytest.raises(ConstraintViolationError):
        member_store.update(created.id, {"remaining": -1})
    assert member_store.get(created.id).remaining == 5000


def test_cache_settings(cache):
    assert cache.get("missing") is None
    assert cache.get("missing", "x") == "x"

    cache.set("k", "1")
    cache.set("k", "2")

    assert cache.get("k") == "2"


def test_pending_queue_round_trip(tmp_path):
    cache = LocalCache(tmp_path / "cache.db")
    member = make_member(id=None, roll_number="GYM-0506")
    event = PaymentEvent(None, "GYM-0506", 200, PaymentKind.REGISTRATION, NOW)

    queued = cache.enqueue_pending(
        PendingSyncRecord(member=member, captured_at=NOW, reason="timed out", events=(event,))
    )

    [loaded] = LocalCache(tmp_path / "cache.db").pending()
    assert loaded.id == queued.id
    assert loaded.member == member
    assert loaded.events == (event,)
    assert loaded.reason == "timed out"

    cache.discard_pending(queued.id)
    assert cache.pending() == []


def test_cache_set_many(cache):
    cache.set("a", "1")

    cache.set_many({"a": "2", "b": 3})

    assert cache.get("a") == "2"
    assert cache.get("b") == "3"


def test_missing_table_is_a_programming_error_not_an_outage(tmp_path):
    store = MemberStore(tmp_path / "gym.db")  # schema never created

    with pytest.raises(sqlite3.OperationalError, match="no such table"):
        store.count()


def test_locked_store_is_unavailable(db_path, member_store):
    holder = sqlite3.connect(db_path)
    holder.execute("BEGIN EXCLUSIVE")
    try:
        with pytest.raises(StoreUnavailableError):
            with db.get_conn(db_path, timeout=0) as conn:
                conn.execute("SELECT COUNT(*) FROM members").fetchone()
    finally:
        holder.rollback()
        holder.close()


def test_attendance_history_queries(attendance_store, member_store):
    member = member_store.create(make_member(id=None))
    other = member_store.create(make_member(id=None, roll_number="GYM-0002"))
    for day in (date(2024, 2, 3), date(2024, 2, 4)):
        attendance_store.create(AttendanceRecord(member_id=member.id, date=day))
    attendance_store.create(AttendanceRecord(member_id=other.id, date=date(2024, 2, 4)))

    assert [r.date for r in attendance_store.list_for_member(member.id)] == [date(2024, 2, 4), date(2024, 2, 3)]
    assert [(r.member_id, r.date) for r in attendance_store.list_all()] == [
        (other.id, date(2024, 2, 4)),
        (member.id, date(2024, 2, 4)),
        (member.id, date(2024, 2, 3)),
    ]
