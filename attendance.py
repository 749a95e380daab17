"""
attendance.py
Gates check-ins on membership status and keeps one record per member per day.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime

import status
from errors import AlreadyMarkedError, DuplicateRecordError, MembershipExpiredError
from models import AttendanceRecord, LifecycleStatus, Member
from store import AttendanceStore
from utils import as_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckInDecision:
    allowed: bool
    reason: MembershipExpiredError | None = None


class AttendanceGuard:
    def __init__(self, store: AttendanceStore):
        self.store = store

    def can_check_in(self, member: Member, today: date | datetime) -> CheckInDecision:
        # Only a hard Expired blocks; Shortlisted and Expiring members may train
        current = status.member_status(member, today)
        if current.lifecycle is LifecycleStatus.EXPIRED:
            return CheckInDecision(False, MembershipExpiredError(member.id, current.days_since_expiry))
        return CheckInDecision(True)

    def check_in(self, member: Member, today: date | datetime) -> AttendanceRecord:
        """
        Mark the member present for ``today``.

        The existence check is a shortcut; the store's unique (member_id, date)
        constraint is what actually prevents double check-ins.
        """
        day = as_date(today)
        decision = self.can_check_in(member, day)
        if not decision.allowed:
            raise decision.reason

        if self.store.exists(member.id, day):
            raise AlreadyMarkedError(member.id, day)

        try:
            record = self.store.create(AttendanceRecord(member_id=member.id, date=day))
        except DuplicateRecordError:
            logger.warning("Store rejected duplicate attendance for %s on %s", member.roll_number, day)
            raise AlreadyMarkedError(member.id, day) from None

        logger.info("Attendance marked for %s on %s", member.roll_number, day)
        return record

    def marked_today(self, today: date | datetime) -> set[int]:
        return {r.member_id for r in self.store.list_for_date(as_date(today))}
