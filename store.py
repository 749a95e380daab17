"""
store.py
SQLite-backed record store (members, attendance, payments) and the local cache.

The record store stands in for the remote store: any failure to reach it is
raised as StoreUnavailableError. The local cache lives in its own file so it
keeps working while the record store is down.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, replace
from datetime import date, datetime
from pathlib import Path

import db
from errors import MemberNotFoundError
from models import AttendanceRecord, Member, PaymentEvent, PaymentKind, PendingSyncRecord
from utils import as_date

logger = logging.getLogger(__name__)

# Member field -> members column, for the fields whose names differ
_COLUMNS = {"current_date": "reference_date"}
_UPDATABLE = {
    "name", "phone", "email", "current_date", "expiry_date",
    "membership_tier", "fee", "paid_amount", "remaining",
}


def _to_sql(value):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def _insert_event(conn, event: PaymentEvent) -> None:
    conn.execute(
        "INSERT INTO payments(member_id, roll_number, amount, kind, timestamp) VALUES(?,?,?,?,?)",
        (event.member_id, event.roll_number, event.amount, event.kind.value,
         event.timestamp.isoformat(timespec="seconds")),
    )


def member_from_row(row) -> Member:
    return Member(
        id=row["id"],
        roll_number=row["roll_number"],
        name=row["name"],
        phone=row["phone"],
        email=row["email"],
        join_date=as_date(row["join_date"]),
        current_date=as_date(row["reference_date"]),
        expiry_date=as_date(row["expiry_date"]),
        membership_tier=row["membership_tier"],
        fee=row["fee"],
        paid_amount=row["paid_amount"],
        remaining=row["remaining"],
    )


def member_to_dict(member: Member) -> dict:
    return {k: _to_sql(v) for k, v in asdict(member).items()}


def member_from_dict(data: dict) -> Member:
    data = dict(data)
    for key in ("join_date", "current_date", "expiry_date"):
        data[key] = as_date(data[key])
    return Member(**data)


class MemberStore:
    def __init__(self, path: Path | str | None = None):
        self.path = path or db.DB_FILE

    def init_schema(self) -> None:
        db.create_store_tables(self.path)

    def list(self) -> list[Member]:
        rows = db.fetch_all("SELECT * FROM members ORDER BY roll_number ASC", path=self.path)
        return [member_from_row(r) for r in rows]

    def get(self, member_id: int) -> Member:
        row = db.fetch_one("SELECT * FROM members WHERE id = ?", (member_id,), path=self.path)
        if not row:
            raise MemberNotFoundError(f"Member {member_id} not found")
        return member_from_row(row)

    def count(self) -> int:
        row = db.fetch_one("SELECT COUNT(*) AS c FROM members", path=self.path)
        return int(row["c"])

    def create(self, member: Member, events: tuple[PaymentEvent, ...] = ()) -> Member:
        """
        Insert the member and its opening payment events in one transaction.

        Raises DuplicateRecordError if the roll number is already taken.
        """
        with db.get_conn(self.path) as conn:
            cur = conn.execute(
                """
                INSERT INTO members(roll_number, name, phone, email, join_date, reference_date,
                    expiry_date, membership_tier, fee, paid_amount, remaining)
                VALUES(?,?,?,?,?,?,?,?,?,?,?)
                """,
                (
                    member.roll_number, member.name, member.phone, member.email,
                    member.join_date.isoformat(), member.current_date.isoformat(),
                    member.expiry_date.isoformat(), member.membership_tier,
                    member.fee, member.paid_amount, member.remaining,
                ),
            )
            new_id = cur.lastrowid
            for event in events:
                _insert_event(conn, replace(event, member_id=new_id))
        return self.get(new_id)

    def update(self, member_id: int, fields: dict, events: tuple[PaymentEvent, ...] = ()) -> Member:
        """Apply a partial update, appending any payment events in the same transaction."""
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update member fields: {', '.join(sorted(unknown))}")
        if not fields:
            return self.get(member_id)

        assignments = ", ".join(f"{_COLUMNS.get(k, k)} = ?" for k in fields)
        params = tuple(_to_sql(v) for v in fields.values()) + (member_id,)
        with db.get_conn(self.path) as conn:
            cur = conn.execute(f"UPDATE members SET {assignments} WHERE id = ?", params)
            if cur.rowcount == 0:
                raise MemberNotFoundError(f"Member {member_id} not found")
            for event in events:
                _insert_event(conn, event)
        return self.get(member_id)


class AttendanceStore:
    def __init__(self, path: Path | str | None = None):
        self.path = path or db.DB_FILE

    @staticmethod
    def _from_row(row) -> AttendanceRecord:
        return AttendanceRecord(
            id=row["id"],
            member_id=row["member_id"],
            date=as_date(row["date"]),
            status=row["status"],
        )

    def list_for_date(self, day: date) -> list[AttendanceRecord]:
        rows = db.fetch_all(
            "SELECT * FROM attendance WHERE date = ? ORDER BY id ASC", (as_date(day).isoformat(),), path=self.path
        )
        return [self._from_row(r) for r in rows]

    def list_for_member(self, member_id: int) -> list[AttendanceRecord]:
        rows = db.fetch_all(
            "SELECT * FROM attendance WHERE member_id = ? ORDER BY date DESC", (member_id,), path=self.path
        )
        return [self._from_row(r) for r in rows]

    def list_all(self) -> list[AttendanceRecord]:
        rows = db.fetch_all("SELECT * FROM attendance ORDER BY date DESC, id DESC", path=self.path)
        return [self._from_row(r) for r in rows]

    def exists(self, member_id: int, day: date) -> bool:
        row = db.fetch_one(
            "SELECT 1 FROM attendance WHERE member_id = ? AND date = ?",
            (member_id, as_date(day).isoformat()),
            path=self.path,
        )
        return row is not None

    def create(self, record: AttendanceRecord) -> AttendanceRecord:
        """Raises DuplicateRecordError if the member is already marked for the day."""
        new_id = db.execute(
            "INSERT INTO attendance(member_id, date, status) VALUES(?,?,?)",
            (record.member_id, record.date.isoformat(), record.status),
            path=self.path,
        )
        return AttendanceRecord(member_id=record.member_id, date=record.date, status=record.status, id=new_id)


class PaymentLog:
    """Payment history. Rows are appended in the same write as their member update."""

    def __init__(self, path: Path | str | None = None):
        self.path = path or db.DB_FILE

    @staticmethod
    def _from_row(row) -> PaymentEvent:
        return PaymentEvent(
            member_id=row["member_id"],
            roll_number=row["roll_number"],
            amount=row["amount"],
            kind=PaymentKind(row["kind"]),
            timestamp=datetime.fromisoformat(row["timestamp"]),
        )

    def list(self, member_id: int | None = None) -> list[PaymentEvent]:
        if member_id is None:
            rows = db.fetch_all("SELECT * FROM payments ORDER BY id ASC", path=self.path)
        else:
            rows = db.fetch_all(
                "SELECT * FROM payments WHERE member_id = ? ORDER BY id ASC", (member_id,), path=self.path
            )
        return [self._from_row(r) for r in rows]

    def recent(self, limit: int = 10) -> list[PaymentEvent]:
        rows = db.fetch_all("SELECT * FROM payments ORDER BY id DESC LIMIT ?", (limit,), path=self.path)
        return [self._from_row(r) for r in rows]


class LocalCache:
    """
    Process-durable key/value settings plus the pending-sync outbox.
    """

    def __init__(self, path: Path | str | None = None):
        self.path = path or db.CACHE_FILE
        db.create_cache_tables(self.path)

    def get(self, key: str, default: str | None = None) -> str | None:
        row = db.fetch_one("SELECT value FROM app_settings WHERE key = ?", (key,), path=self.path)
        if row:
            return str(row["value"])
        return default

    def set(self, key: str, value: str) -> None:
        db.execute(
            """
            INSERT INTO app_settings(key, value) VALUES(?, ?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value
            """,
            (key, str(value)),
            path=self.path,
        )

    def set_many(self, values: dict[str, str]) -> None:
        """Write several settings in one transaction; all or none are stored."""
        with db.get_conn(self.path) as conn:
            conn.executemany(
                """
                INSERT INTO app_settings(key, value) VALUES(?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value
                """,
                [(k, str(v)) for k, v in values.items()],
            )

    def enqueue_pending(self, record: PendingSyncRecord) -> PendingSyncRecord:
        payload = {
            "member": member_to_dict(record.member),
            "events": [
                {**asdict(e), "kind": e.kind.value, "timestamp": e.timestamp.isoformat(timespec="seconds")}
                for e in record.events
            ],
        }
        new_id = db.execute(
            "INSERT INTO pending_sync(roll_number, payload, reason, tag, captured_at) VALUES(?,?,?,?,?)",
            (record.member.roll_number, json.dumps(payload), record.reason, record.tag,
             record.captured_at.isoformat(timespec="seconds")),
            path=self.path,
        )
        logger.warning("Registration %s queued for later sync: %s", record.member.roll_number, record.reason)
        return PendingSyncRecord(
            member=record.member,
            captured_at=record.captured_at,
            reason=record.reason,
            tag=record.tag,
            id=new_id,
            events=record.events,
        )

    def pending(self) -> list[PendingSyncRecord]:
        rows = db.fetch_all("SELECT * FROM pending_sync ORDER BY id ASC", path=self.path)
        records = []
        for r in rows:
            payload = json.loads(r["payload"])
            events = tuple(
                PaymentEvent(
                    member_id=e["member_id"],
                    roll_number=e["roll_number"],
                    amount=e["amount"],
                    kind=PaymentKind(e["kind"]),
                    timestamp=datetime.fromisoformat(e["timestamp"]),
                )
                for e in payload.get("events", [])
            )
            records.append(
                PendingSyncRecord(
                    member=member_from_dict(payload["member"]),
                    captured_at=datetime.fromisoformat(r["captured_at"]),
                    reason=r["reason"] or "",
                    tag=r["tag"],
                    id=r["id"],
                    events=events,
                )
            )
        return records

    def discard_pending(self, record_id: int) -> None:
        """Drop a queued registration once an operator has reconciled it."""
        db.execute("DELETE FROM pending_sync WHERE id = ?", (record_id,), path=self.path)
