"""
Sliding-Window Rate Limiter

Counts requests per identifier (usually the client IP) over the trailing
window. Each identifier has its own lock, so bursts sharing an identifier
are serialized while different identifiers proceed independently. The map
of identifiers is LRU-bounded and can be swept of idle entries.
"""

import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable

from core.logger import get_logger

logger = get_logger(__name__)


@dataclass
class _WindowEntry:
    timestamps: list[float] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)
    removed: bool = False  # Set under ``lock`` once the entry leaves the map


class RateLimiter:
    """
    Admits at most ``limit`` requests per identifier within ``window`` seconds.

    Instances are independent; create one per protection tier.
    """

    def __init__(
        self,
        limit: int,
        window: float,
        max_identifiers: int = 10000,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the limiter.

        Args:
            limit: Maximum requests admitted per window
            window: Window length in seconds
            max_identifiers: Upper bound on tracked identifiers (LRU eviction)
            clock: Time source returning seconds; injectable for tests
        """
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if max_identifiers < 1:
            raise ValueError("max_identifiers must be at least 1")
        if window <= 0:
            raise ValueError("window must be positive")

        self.limit = limit
        self.window = window
        self.max_identifiers = max_identifiers
        self._clock = clock
        self._entries: "OrderedDict[str, _WindowEntry]" = OrderedDict()
        self._entries_lock = threading.Lock()

    @property
    def tracked(self) -> int:
        """Number of identifiers currently tracked."""
        with self._entries_lock:
            return len(self._entries)

    def _entry(self, identifier: str) -> _WindowEntry:
        with self._entries_lock:
            entry = self._entries.get(identifier)
            if entry is None:
                entry = _WindowEntry()
                self._entries[identifier] = entry
                while len(self._entries) > self.max_identifiers:
                    evicted, evicted_entry = self._entries.popitem(last=False)
                    with evicted_entry.lock:
                        evicted_entry.removed = True
                    logger.debug(f"Evicted rate limit entry for {evicted}")
            else:
                self._entries.move_to_end(identifier)
            return entry

    def admit(self, identifier: str) -> bool:
        """
        Record a request for ``identifier`` if it is within quota.

        Returns:
            True if admitted, False if the quota for the window is exhausted
        """
        while True:
            entry = self._entry(identifier)
            with entry.lock:
                # Swept or evicted between lookup and lock: record in the live entry
                if entry.removed:
                    continue

                now = self._clock()
                window_start = now - self.window
                valid = [ts for ts in entry.timestamps if ts > window_start]

                if len(valid) >= self.limit:
                    entry.timestamps = valid
                    return False

                valid.append(now)
                entry.timestamps = valid
                return True

    def retry_after(self, identifier: str) -> int:
        """Seconds until the oldest request for ``identifier`` leaves the window."""
        with self._entries_lock:
            entry = self._entries.get(identifier)
        if entry is None:
            return 1

        with entry.lock:
            now = self._clock()
            valid = [ts for ts in entry.timestamps if ts > now - self.window]
            if not valid:
                return 1
            return max(1, math.ceil(valid[0] + self.window - now))

    def sweep(self) -> int:
        """
        Drop identifiers with no requests inside the current window.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        window_start = now - self.window
        removed = 0

        with self._entries_lock:
            for identifier in list(self._entries):
                entry = self._entries[identifier]
                with entry.lock:
                    if not entry.timestamps or entry.timestamps[-1] <= window_start:
                        del self._entries[identifier]
                        entry.removed = True
                        removed += 1

        if removed:
            logger.debug(f"Swept {removed} idle rate limit entries")
        return removed
