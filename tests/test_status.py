from datetime import date, datetime, timedelta

import pytest

import status
from models import LifecycleStatus, PaymentStatus
from tests.conftest import TODAY, make_member


def test_scenario_owing_member_four_days_past_expiry_is_shortlisted():
    member = make_member(join_date=date(2024, 1, 1), expiry_date=date(2024, 2, 1), remaining=1000)

    result = status.member_status(member, date(2024, 2, 5))

    assert result.days_since_expiry == 4
    assert result.lifecycle is LifecycleStatus.SHORTLISTED
    assert result.days_in_shortlist == 4
    assert result.payment is PaymentStatus.OVERDUE


def test_owing_member_expiring_today_is_shortlisted_day_zero():
    result = status.evaluate(TODAY, 500, TODAY)

    assert result.lifecycle is LifecycleStatus.SHORTLISTED
    assert result.days_in_shortlist == 0


def test_owing_member_eleven_days_past_expiry_is_expired():
    result = status.evaluate(TODAY - timedelta(days=11), 500, TODAY)

    assert result.lifecycle is LifecycleStatus.EXPIRED
    assert result.payment is PaymentStatus.OVERDUE
    assert result.days_in_shortlist == 0


def test_owing_member_ten_days_past_expiry_is_still_shortlisted():
    result = status.evaluate(TODAY - timedelta(days=10), 500, TODAY)

    assert result.lifecycle is LifecycleStatus.SHORTLISTED
    assert result.days_in_shortlist == 10


def test_paid_member_long_past_expiry_is_expired():
    result = status.evaluate(TODAY - timedelta(days=30), 0, TODAY)

    assert result.lifecycle is LifecycleStatus.EXPIRED
    assert result.payment is PaymentStatus.PAID


def test_paid_member_just_past_expiry_is_shortlisted_yet_paid():
    # Fully paid members a few days past expiry also fall into the shortlist
    # branch; kept for compatibility with the existing decision order.
    result = status.evaluate(TODAY - timedelta(days=3), 0, TODAY)

    assert result.lifecycle is LifecycleStatus.SHORTLISTED
    assert result.payment is PaymentStatus.PAID
    assert result.days_in_shortlist == 3


def test_paid_member_expiring_today_is_expiring():
    result = status.evaluate(TODAY, 0, TODAY)

    assert result.lifecycle is LifecycleStatus.EXPIRING
    assert result.payment is PaymentStatus.PAID


@pytest.mark.parametrize("days_left, expected", [
    (1, LifecycleStatus.EXPIRING),
    (5, LifecycleStatus.EXPIRING),
    (6, LifecycleStatus.ACTIVE),
    (30, LifecycleStatus.ACTIVE),
])
def test_warning_window_before_expiry(days_left, expected):
    result = status.evaluate(TODAY + timedelta(days=days_left), 0, TODAY)

    assert result.lifecycle is expected
    assert result.days_until_expiry == days_left


def test_owing_member_before_expiry_is_pending():
    result = status.evaluate(TODAY + timedelta(days=20), 1000, TODAY)

    assert result.lifecycle is LifecycleStatus.ACTIVE
    assert result.payment is PaymentStatus.PENDING


def test_owing_member_inside_warning_window_is_pending_not_overdue():
    result = status.evaluate(TODAY + timedelta(days=2), 1000, TODAY)

    assert result.lifecycle is LifecycleStatus.EXPIRING
    assert result.payment is PaymentStatus.PENDING


def test_time_of_day_is_ignored():
    morning = status.evaluate(date(2024, 2, 1), 1000, datetime(2024, 2, 5, 0, 1))
    night = status.evaluate(date(2024, 2, 1), 1000, datetime(2024, 2, 5, 23, 59))

    assert morning == night
    assert morning.days_since_expiry == 4


def test_same_inputs_give_same_result():
    member = make_member(expiry_date=TODAY - timedelta(days=2), remaining=300)

    assert status.member_status(member, TODAY) == status.member_status(member, TODAY)


def test_accepts_iso_strings():
    result = status.evaluate("2024-02-01", 1000, "2024-02-05")

    assert result.days_since_expiry == 4


@pytest.mark.parametrize("expiry_offset, remaining, priority", [
    (-40, 1000, "high"),
    (-5, 1000, "medium"),
    (20, 1000, "low"),
])
def test_payment_priority(expiry_offset, remaining, priority):
    result = status.evaluate(TODAY + timedelta(days=expiry_offset), remaining, TODAY)

    assert status.payment_priority(result) == priority


def test_days_overdue_is_zero_before_expiry():
    result = status.evaluate(TODAY + timedelta(days=3), 1000, TODAY)

    assert status.days_overdue(result) == 0
