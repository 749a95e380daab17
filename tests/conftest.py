from datetime import date, datetime

import pytest

from errors import StoreUnavailableError
from models import Member
from services import GymService
from store import AttendanceStore, LocalCache, MemberStore, PaymentLog

TODAY = date(2024, 2, 5)
NOW = datetime(2024, 2, 5, 10, 30)


class UnreachableMemberStore(MemberStore):
    """Member store whose remote end never answers."""

    def count(self):
        raise StoreUnavailableError("timed out")

    def create(self, member, events=()):
        raise StoreUnavailableError("timed out")

    def get(self, member_id):
        raise StoreUnavailableError("timed out")

    def update(self, member_id, fields, events=()):
        raise StoreUnavailableError("timed out")


class WriteFailingMemberStore(MemberStore):
    """Member store that answers reads but drops the connection on writes."""

    def create(self, member, events=()):
        raise StoreUnavailableError("connection reset")

    def update(self, member_id, fields, events=()):
        raise StoreUnavailableError("connection reset")


def make_member(**overrides) -> Member:
    values = dict(
        id=1,
        roll_number="GYM-0001",
        name="Test Member",
        phone="03001234567",
        join_date=date(2024, 1, 1),
        current_date=date(2024, 1, 1),
        expiry_date=date(2024, 2, 1),
        membership_tier="training",
        fee=5000,
        paid_amount=0,
        remaining=5000,
    )
    values.update(overrides)
    return Member(**values)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "gym.db"


@pytest.fixture
def cache(tmp_path):
    return LocalCache(tmp_path / "cache.db")


@pytest.fixture
def member_store(db_path):
    store = MemberStore(db_path)
    store.init_schema()
    return store


@pytest.fixture
def attendance_store(db_path, member_store):
    return AttendanceStore(db_path)


@pytest.fixture
def payment_log(db_path, member_store):
    return PaymentLog(db_path)


@pytest.fixture
def clock():
    current = {"now": NOW}

    def now():
        return current["now"]

    now.set = lambda value: current.update(now=value)
    return now


@pytest.fixture
def service(member_store, attendance_store, payment_log, cache, clock):
    return GymService(
        members=member_store,
        attendance=attendance_store,
        payments=payment_log,
        cache=cache,
        clock=clock,
        roll_prefix="GYM",
        roll_floor=0,
    )
