"""
models.py
Lightweight domain helpers (tiers, statuses, dataclasses).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from errors import UnknownTierError

# Default fee per membership tier (used when registering without an explicit fee)
MEMBERSHIP_FEES = {
    "regular": 1200,
    "training": 5000,
    "premium": 8000,
}

# Lapsed-but-owing members stay Shortlisted for this many days after expiry
SHORTLIST_GRACE_DAYS = 10
# Members within this many days of expiry are flagged Expiring
EXPIRY_WARNING_DAYS = 5
# Overdue balances older than this are high priority
HIGH_PRIORITY_OVERDUE_DAYS = 30

DURATION_UNITS = ("day", "month", "year")

PENDING_SYNC = "pending_sync"


class LifecycleStatus(str, Enum):
    ACTIVE = "active"
    EXPIRING = "expiring"
    SHORTLISTED = "shortlisted"
    EXPIRED = "expired"


class PaymentStatus(str, Enum):
    PAID = "paid"
    PENDING = "pending"
    OVERDUE = "overdue"


class PaymentKind(str, Enum):
    REGISTRATION = "registration"
    PAYMENT = "payment"
    RENEWAL = "renewal"


def tier_fee(tier: str) -> float:
    try:
        return MEMBERSHIP_FEES[tier]
    except KeyError:
        raise UnknownTierError(
            f"Unknown membership tier {tier!r}; expected one of {', '.join(MEMBERSHIP_FEES)}"
        ) from None


@dataclass(frozen=True)
class Member:
    id: int | None
    roll_number: str
    name: str
    phone: str
    join_date: date
    current_date: date  # last visit / renewal reference date
    expiry_date: date
    membership_tier: str
    fee: float
    paid_amount: float
    remaining: float
    email: str | None = None


@dataclass(frozen=True)
class AttendanceRecord:
    member_id: int
    date: date
    status: str = "present"
    id: int | None = None


@dataclass(frozen=True)
class PaymentEvent:
    member_id: int | None
    roll_number: str
    amount: float
    kind: PaymentKind
    timestamp: datetime


@dataclass(frozen=True)
class BillingFields:
    fee: float
    paid_amount: float
    remaining: float


@dataclass(frozen=True)
class MemberStatus:
    lifecycle: LifecycleStatus
    payment: PaymentStatus
    days_since_expiry: int
    days_until_expiry: int
    days_in_shortlist: int = 0


@dataclass(frozen=True)
class PendingSyncRecord:
    """A registration captured locally while the record store was unreachable."""

    member: Member
    captured_at: datetime
    reason: str = ""
    tag: str = PENDING_SYNC
    id: int | None = None
    events: tuple[PaymentEvent, ...] = field(default_factory=tuple)
