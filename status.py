"""
status.py
Derives a member's lifecycle and payment status from stored dates and amounts.

Pure: no I/O, no clock. The caller supplies ``today`` so results are
reproducible, and statuses are re-derived on every read rather than stored
because ``today`` moves independently of writes.
"""

from __future__ import annotations

from datetime import date, datetime

from models import (
    EXPIRY_WARNING_DAYS,
    HIGH_PRIORITY_OVERDUE_DAYS,
    SHORTLIST_GRACE_DAYS,
    LifecycleStatus,
    Member,
    MemberStatus,
    PaymentStatus,
)
from utils import as_date


def lifecycle_status(days_since_expiry: int, days_until_expiry: int, remaining: float) -> LifecycleStatus:
    """
    First match wins:

    1. Lapsed and still owing: Shortlisted for the grace window, then Expired.
    2. Otherwise Expired past the grace window, Shortlisted when just past
       expiry, Expiring inside the warning window, else Active.

    Branch 2's shortlist check also catches fully paid members a few days
    past expiry. That overlap is kept as-is.
    """
    if remaining > 0 and days_since_expiry >= 0:
        if days_since_expiry <= SHORTLIST_GRACE_DAYS:
            return LifecycleStatus.SHORTLISTED
        return LifecycleStatus.EXPIRED

    if days_since_expiry > SHORTLIST_GRACE_DAYS:
        return LifecycleStatus.EXPIRED
    if days_until_expiry < 0 and days_since_expiry <= SHORTLIST_GRACE_DAYS:
        return LifecycleStatus.SHORTLISTED
    if days_until_expiry <= EXPIRY_WARNING_DAYS:
        return LifecycleStatus.EXPIRING
    return LifecycleStatus.ACTIVE


def payment_status(remaining: float, lifecycle: LifecycleStatus) -> PaymentStatus:
    if remaining <= 0:
        return PaymentStatus.PAID
    if lifecycle in (LifecycleStatus.EXPIRED, LifecycleStatus.SHORTLISTED):
        return PaymentStatus.OVERDUE
    return PaymentStatus.PENDING


def evaluate(expiry_date: date | datetime | str, remaining: float, today: date | datetime | str) -> MemberStatus:
    # Calendar days only, so floor and ceil of the difference coincide
    days_since_expiry = (as_date(today) - as_date(expiry_date)).days
    days_until_expiry = -days_since_expiry

    lifecycle = lifecycle_status(days_since_expiry, days_until_expiry, remaining)
    return MemberStatus(
        lifecycle=lifecycle,
        payment=payment_status(remaining, lifecycle),
        days_since_expiry=days_since_expiry,
        days_until_expiry=days_until_expiry,
        days_in_shortlist=(days_since_expiry if lifecycle is LifecycleStatus.SHORTLISTED else 0),
    )


def member_status(member: Member, today: date | datetime | str) -> MemberStatus:
    return evaluate(member.expiry_date, member.remaining, today)


def days_overdue(status: MemberStatus) -> int:
    return max(status.days_since_expiry, 0)


def payment_priority(status: MemberStatus) -> str:
    """Collection priority for an owing member: high, medium or low."""
    if status.payment is PaymentStatus.OVERDUE:
        if days_overdue(status) > HIGH_PRIORITY_OVERDUE_DAYS:
            return "high"
        return "medium"
    return "low"
