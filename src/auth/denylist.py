"""
In-memory token denylist.

Tokens are otherwise stateless; a revoked token id is remembered only
until the token would have expired anyway.
"""

import threading
import time
from typing import Callable


class TokenDenylist:
    """Set of revoked token ids, each kept until its own expiry."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._revoked: dict[str, float] = {}
        self._lock = threading.Lock()

    def revoke(self, token_id: str, expires_at: float) -> None:
        """Deny ``token_id`` until ``expires_at`` (epoch seconds)."""
        if expires_at <= self._clock():
            return
        with self._lock:
            self._revoked[token_id] = expires_at

    def is_revoked(self, token_id: str) -> bool:
        with self._lock:
            expires_at = self._revoked.get(token_id)
            if expires_at is None:
                return False
            if expires_at <= self._clock():
                del self._revoked[token_id]
                return False
            return True

    def purge(self) -> int:
        """Remove entries whose token has expired. Returns the count removed."""
        now = self._clock()
        with self._lock:
            expired = [token_id for token_id, exp in self._revoked.items() if exp <= now]
            for token_id in expired:
                del self._revoked[token_id]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._revoked)
