"""
services.py
Membership operations composed over the stores.

Callers (UI / API glue) should use these instead of the stores directly:
- register_member: allocate a roll number, bill, persist (or queue offline)
- record_payment / renew_member: billing changes, persisted atomically
- check_in: attendance gated by membership status
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable

from attendance import AttendanceGuard
from billing import BillingLedger
from config import Config
from errors import DuplicateRecordError, StoreUnavailableError
from models import (
    AttendanceRecord,
    Member,
    MemberStatus,
    PaymentEvent,
    PaymentKind,
    PendingSyncRecord,
    tier_fee,
)
from sequence import SequenceAllocator
from status import member_status
from store import AttendanceStore, LocalCache, MemberStore, PaymentLog
from utils import add_duration, as_date

logger = logging.getLogger(__name__)

# Attempts before giving up on roll numbers the store reports as taken
MAX_ROLL_ATTEMPTS = 5


@dataclass(frozen=True)
class Registration:
    member: Member
    pending_sync: PendingSyncRecord | None = None

    @property
    def is_pending(self) -> bool:
        return self.pending_sync is not None


class GymService:
    def __init__(
        self,
        members: MemberStore,
        attendance: AttendanceStore,
        payments: PaymentLog,
        cache: LocalCache,
        clock: Callable[[], datetime] = datetime.now,
        roll_prefix: str = Config.ROLL_PREFIX,
        roll_floor: int = Config.ROLL_FLOOR,
        allocator: SequenceAllocator | None = None,
    ):
        self.members = members
        self.payments = payments
        self.cache = cache
        self.clock = clock
        self.ledger = BillingLedger()
        self.guard = AttendanceGuard(attendance)
        self.allocator = allocator or SequenceAllocator(cache, prefix=roll_prefix)
        self.allocator.initialize(roll_floor)

    @classmethod
    def from_config(cls, config=Config, clock: Callable[[], datetime] = datetime.now) -> "GymService":
        members = MemberStore(config.DB_FILE)
        try:
            members.init_schema()
        except StoreUnavailableError as e:
            logger.warning("Record store not reachable at startup: %s", e)
        return cls(
            members=members,
            attendance=AttendanceStore(config.DB_FILE),
            payments=PaymentLog(config.DB_FILE),
            cache=LocalCache(config.CACHE_FILE),
            clock=clock,
            roll_prefix=config.ROLL_PREFIX,
            roll_floor=config.ROLL_FLOOR,
        )

    def today(self) -> date:
        return as_date(self.clock())

    # ------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------

    def register_member(
        self,
        name: str,
        phone: str,
        tier: str,
        initial_paid: float = 0,
        join_date: date | str | None = None,
        fee: float | None = None,
        email: str | None = None,
        duration_value: int = 1,
        duration_unit: str = "month",
    ) -> Registration:
        """
        Register a member. If the record store is unreachable the member is
        still numbered and billed, and queued as pending sync.
        """
        default_fee = tier_fee(tier)
        billing = self.ledger.register_new_member(default_fee if fee is None else fee, initial_paid)
        join = as_date(join_date) if join_date is not None else self.today()
        expiry = add_duration(join, duration_value, duration_unit)
        now = self.clock()

        with self.allocator.lock:
            for _ in range(MAX_ROLL_ATTEMPTS):
                offline_reason = None
                try:
                    remote_count = self.members.count()
                except StoreUnavailableError as e:
                    remote_count = None
                    offline_reason = str(e)

                allocation = self.allocator.peek_next(remote_count)
                member = Member(
                    id=None,
                    roll_number=allocation.roll_number,
                    name=name.strip(),
                    phone=phone.strip(),
                    email=(email or "").strip() or None,
                    join_date=join,
                    current_date=join,
                    expiry_date=expiry,
                    membership_tier=tier,
                    fee=billing.fee,
                    paid_amount=billing.paid_amount,
                    remaining=billing.remaining,
                )
                events = ()
                if billing.paid_amount > 0:
                    events = (PaymentEvent(None, member.roll_number, billing.paid_amount,
                                           PaymentKind.REGISTRATION, now),)

                if offline_reason is None:
                    try:
                        created = self.members.create(member, events=events)
                    except StoreUnavailableError as e:
                        offline_reason = str(e)
                    except DuplicateRecordError:
                        # Number already used in the store; burn it and take the next one
                        logger.warning("Roll number %s already taken, skipping", member.roll_number)
                        self.allocator.commit()
                        continue
                    except Exception:
                        self.allocator.abandon()
                        raise
                    else:
                        self.allocator.commit()
                        logger.info("Registered %s (%s) on %s tier", created.roll_number, created.name, tier)
                        return Registration(created)

                try:
                    pending = self.cache.enqueue_pending(
                        PendingSyncRecord(member=member, captured_at=now, reason=offline_reason, events=events)
                    )
                except Exception:
                    self.allocator.abandon()
                    raise
                self.allocator.commit()
                return Registration(member, pending_sync=pending)

        raise DuplicateRecordError(f"No free roll number after {MAX_ROLL_ATTEMPTS} attempts")

    def pending_registrations(self) -> list[PendingSyncRecord]:
        return self.cache.pending()

    def override_counter(self, value: int) -> None:
        self.allocator.set_override(value)

    # ------------------------------------------------------------
    # Billing
    # ------------------------------------------------------------

    def record_payment(self, member_id: int, amount: float) -> Member:
        member = self.members.get(member_id)
        updated, event = self.ledger.record_payment(member, amount, self.clock())
        saved = self.members.update(
            member.id,
            {"paid_amount": updated.paid_amount, "remaining": updated.remaining},
            events=(event,),
        )
        logger.info("Payment of %s recorded for %s, remaining %s", amount, saved.roll_number, saved.remaining)
        return saved

    def renew_member(
        self,
        member_id: int,
        tier: str,
        duration_value: int = 1,
        duration_unit: str = "month",
        start_date: date | str | None = None,
        new_fee: float | None = None,
        amount_paid_now: float = 0,
    ) -> Member:
        member = self.members.get(member_id)
        fee = tier_fee(tier) if new_fee is None else new_fee
        start = as_date(start_date) if start_date is not None else self.today()
        updated = self.ledger.renew(member, tier, duration_value, duration_unit, start, fee, amount_paid_now)

        events = ()
        if updated.paid_amount > 0:
            events = (PaymentEvent(member.id, member.roll_number, updated.paid_amount,
                                   PaymentKind.RENEWAL, self.clock()),)
        saved = self.members.update(
            member.id,
            {
                "membership_tier": updated.membership_tier,
                "fee": updated.fee,
                "paid_amount": updated.paid_amount,
                "remaining": updated.remaining,
                "current_date": updated.current_date,
                "expiry_date": updated.expiry_date,
            },
            events=events,
        )
        logger.info("Renewed %s until %s", saved.roll_number, saved.expiry_date)
        return saved

    def recent_payments(self, limit: int = 10) -> list[PaymentEvent]:
        return self.payments.recent(limit)

    def payment_history(self, member_id: int | None = None) -> list[PaymentEvent]:
        return self.payments.list(member_id)

    # ------------------------------------------------------------
    # Status / attendance
    # ------------------------------------------------------------

    def member_status(self, member_id: int) -> tuple[Member, MemberStatus]:
        member = self.members.get(member_id)
        return member, member_status(member, self.today())

    def member_statuses(self) -> list[tuple[Member, MemberStatus]]:
        today = self.today()
        return [(m, member_status(m, today)) for m in self.members.list()]

    def check_in(self, member_id: int) -> AttendanceRecord:
        member = self.members.get(member_id)
        return self.guard.check_in(member, self.today())

    def marked_today(self) -> set[int]:
        return self.guard.marked_today(self.today())

    def attendance_history(self, member_id: int | None = None) -> list[AttendanceRecord]:
        """Visits newest first, for one member or for everyone."""
        if member_id is None:
            return self.guard.store.list_all()
        return self.guard.store.list_for_member(member_id)
