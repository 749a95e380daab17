"""
billing.py
Fee, payment and renewal arithmetic.

The ledger is the only code allowed to change ``fee``, ``paid_amount``,
``remaining`` and ``expiry_date``. After every operation
``remaining == fee - paid_amount`` and ``remaining >= 0``. Invalid input is
rejected before anything is computed, so a failed call never yields a
partially updated member.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime

from errors import InvalidAmountError, UnknownTierError
from models import MEMBERSHIP_FEES, BillingFields, Member, PaymentEvent, PaymentKind
from utils import add_duration, as_date

logger = logging.getLogger(__name__)


def _check_amount(value, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidAmountError(f"{name} must be a number, got {value!r}")
    if value != value:  # NaN
        raise InvalidAmountError(f"{name} must be a number, got {value!r}")
    return value


class BillingLedger:

    def register_new_member(self, tier_fee: float, initial_paid: float) -> BillingFields:
        fee = _check_amount(tier_fee, "Fee")
        paid = _check_amount(initial_paid, "Initial payment")
        if fee < 0:
            raise InvalidAmountError("Fee cannot be negative")
        if paid < 0:
            raise InvalidAmountError("Initial payment cannot be negative")
        if paid > fee:
            raise InvalidAmountError(f"Initial payment {paid} exceeds the fee {fee}")
        return BillingFields(fee=fee, paid_amount=paid, remaining=fee - paid)

    def record_payment(self, member: Member, amount: float, now: datetime) -> tuple[Member, PaymentEvent]:
        """
        Apply an incremental payment.

        Returns the updated member and the payment event to append to the
        payment history.
        """
        amount = _check_amount(amount, "Payment amount")
        if amount <= 0:
            raise InvalidAmountError("Payment amount must be greater than 0")
        if amount > member.remaining:
            raise InvalidAmountError(
                f"Payment {amount} exceeds the remaining balance {member.remaining}"
            )

        updated = replace(
            member,
            paid_amount=member.paid_amount + amount,
            remaining=member.remaining - amount,
        )
        event = PaymentEvent(
            member_id=member.id,
            roll_number=member.roll_number,
            amount=amount,
            kind=PaymentKind.PAYMENT,
            timestamp=now,
        )
        logger.debug("Payment of %s applied to %s, remaining %s", amount, member.roll_number, updated.remaining)
        return updated, event

    def renew(
        self,
        member: Member,
        tier: str,
        duration_value: int,
        duration_unit: str,
        start_date: date | datetime | str,
        new_fee: float,
        amount_paid_now: float,
    ) -> Member:
        """
        Restart the member's cycle from ``start_date``.

        The new expiry is counted from ``start_date``, not from the current
        expiry, and the balance is replaced rather than carried over. Any
        member may renew regardless of status.
        """
        if tier not in MEMBERSHIP_FEES:
            raise UnknownTierError(f"Unknown membership tier {tier!r}")
        fee = _check_amount(new_fee, "Renewal fee")
        paid = _check_amount(amount_paid_now, "Amount paid")
        if fee < 0:
            raise InvalidAmountError("Renewal fee cannot be negative")
        if paid < 0:
            raise InvalidAmountError("Amount paid cannot be negative")
        if paid > fee:
            raise InvalidAmountError(f"Amount paid {paid} exceeds the renewal fee {fee}")

        start = as_date(start_date)
        new_expiry = add_duration(start, duration_value, duration_unit)

        return replace(
            member,
            membership_tier=tier,
            fee=fee,
            paid_amount=paid,
            remaining=fee - paid,
            current_date=start,
            expiry_date=new_expiry,
        )
