"""
errors.py
Exception types raised by the membership core.

Every operation fails fast with one of these and leaves prior state untouched.
"""

from __future__ import annotations


class GymError(Exception):
    """Base exception for membership operations"""
    pass


class InvalidAmountError(GymError):
    """Raised when a fee, payment or renewal amount is out of bounds"""
    pass


class InvalidDurationError(GymError):
    """Raised when a renewal duration is not a positive day/month/year count"""
    pass


class UnknownTierError(GymError):
    """Raised when a membership tier is not one of the offered tiers"""
    pass


class AlreadyMarkedError(GymError):
    """Raised when attendance is already recorded for the member today"""

    def __init__(self, member_id, day):
        super().__init__(f"Attendance already marked for member {member_id} on {day}")
        self.member_id = member_id
        self.day = day


class MembershipExpiredError(GymError):
    """Raised when an expired member tries to check in"""

    def __init__(self, member_id, days_since_expiry: int):
        super().__init__(
            f"Membership of member {member_id} expired {days_since_expiry} days ago"
        )
        self.member_id = member_id
        self.days_since_expiry = days_since_expiry


class StoreUnavailableError(GymError):
    """Raised when the record store cannot be reached. Safe to retry."""
    pass


class ConstraintViolationError(GymError):
    """Raised by a store when a record breaks a table constraint"""
    pass


class DuplicateRecordError(ConstraintViolationError):
    """Raised by a store when a uniqueness constraint rejects a record"""
    pass


class MemberNotFoundError(GymError):
    """Raised when no member exists for the given id"""
    pass


class CounterDriftError(GymError):
    """Raised when a counter override would re-issue a roll number"""

    def __init__(self, requested: int, last_issued: int):
        super().__init__(
            f"Cannot set counter to {requested}: roll numbers up to {last_issued} were already issued"
        )
        self.requested = requested
        self.last_issued = last_issued


class NothingToCommitError(GymError):
    """Raised when commit() is called without an outstanding peek_next()"""
    pass


class StaleAllocationError(GymError):
    """Raised when a peeked roll number was issued elsewhere before commit()"""

    def __init__(self, roll_number: str, local_value: int):
        super().__init__(
            f"Roll number {roll_number} is no longer free: counter already at {local_value}"
        )
        self.roll_number = roll_number
        self.local_value = local_value
