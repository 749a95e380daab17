"""
sequence.py
Allocates sequential roll numbers (GYM-0001, GYM-0002, ...).

The counter is cached locally so numbers keep coming while the record store is
unreachable. When the store answers, its member count is folded in, so the next
number is always ``max(local, remote) + 1`` and never goes backwards.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path

from errors import CounterDriftError, NothingToCommitError, StaleAllocationError
from store import LocalCache
from utils import format_roll_number

logger = logging.getLogger(__name__)

LOCAL_VALUE_KEY = "sequence.local_value"
LAST_ISSUED_KEY = "sequence.last_issued"

# One lock per cache file, shared by every allocator in the process
_LOCKS: dict[str, threading.RLock] = {}
_LOCKS_GUARD = threading.Lock()


def lock_for(path: Path | str) -> threading.RLock:
    key = str(Path(path).resolve())
    with _LOCKS_GUARD:
        if key not in _LOCKS:
            _LOCKS[key] = threading.RLock()
        return _LOCKS[key]


@dataclass(frozen=True)
class Allocation:
    roll_number: str
    counter: int
    degraded: bool  # True when the store count was unavailable


class SequenceAllocator:
    def __init__(self, cache: LocalCache, prefix: str = "GYM"):
        self.cache = cache
        self.prefix = prefix
        # Held by callers across peek_next()/commit() for one registration
        self.lock = lock_for(cache.path)
        self._pending: Allocation | None = None

    @property
    def local_value(self) -> int | None:
        value = self.cache.get(LOCAL_VALUE_KEY)
        return int(value) if value is not None else None

    @property
    def last_issued(self) -> int:
        return int(self.cache.get(LAST_ISSUED_KEY, "0"))

    def initialize(self, floor: int) -> None:
        """Seed the counter at ``floor``; numbers up to the floor count as issued."""
        with self.lock:
            if self.local_value is None:
                self.cache.set_many({
                    LOCAL_VALUE_KEY: str(floor),
                    LAST_ISSUED_KEY: str(max(floor, self.last_issued)),
                })
                logger.info("Roll number counter initialized at %s", floor)

    def peek_next(self, remote_count: int | None) -> Allocation:
        """
        Preview the next roll number.

        ``remote_count`` is the store's member count, or None when the store
        could not be reached; the allocation is then marked degraded.
        """
        with self.lock:
            local = self.local_value
            if local is None:
                local = 0
                self.cache.set(LOCAL_VALUE_KEY, "0")

            if remote_count is not None and remote_count > local:
                local = remote_count
                self.cache.set(LOCAL_VALUE_KEY, str(local))

            counter = local + 1
            allocation = Allocation(
                roll_number=format_roll_number(self.prefix, counter),
                counter=counter,
                degraded=remote_count is None,
            )
            if allocation.degraded:
                logger.warning("Record store unavailable, allocating %s from local counter", allocation.roll_number)
            self._pending = allocation
            return allocation

    def commit(self) -> int:
        """
        Mark the last peeked number as issued and return its counter.

        Call once the registration was accepted by the store or queued offline.
        Raises StaleAllocationError if another allocator on the same cache
        issued that number first; peek again in that case.
        """
        with self.lock:
            pending = self._pending
            if pending is None:
                raise NothingToCommitError("No roll number is awaiting commit")
            self._pending = None

            local = self.local_value or 0
            if local >= pending.counter:
                logger.warning("Roll number %s was issued elsewhere (counter at %s)", pending.roll_number, local)
                raise StaleAllocationError(pending.roll_number, local)

            self.cache.set_many({
                LOCAL_VALUE_KEY: str(pending.counter),
                LAST_ISSUED_KEY: str(max(pending.counter, self.last_issued)),
            })
            return pending.counter

    def abandon(self) -> None:
        """Forget the last peek without advancing (e.g. the registration failed)."""
        with self.lock:
            self._pending = None

    def set_override(self, value: int) -> None:
        with self.lock:
            if value < self.last_issued:
                logger.warning("Refused counter override to %s below last issued %s", value, self.last_issued)
                raise CounterDriftError(value, self.last_issued)
            self.cache.set(LOCAL_VALUE_KEY, str(value))
            self._pending = None
            logger.info("Roll number counter overridden to %s", value)
