"""
Credential store backed by the ``APP_BASIC_AUTH`` setting.
"""

import hmac
from typing import Iterable


class CredentialStore:
    """Checks username/password pairs against a fixed list."""

    def __init__(self, pairs: Iterable[tuple[str, str]]):
        self._pairs = list(pairs)

    def verify(self, username: str, password: str) -> bool:
        """Return True if the pair is known. Compares every entry in constant time."""
        matched = False
        for known_user, known_password in self._pairs:
            user_ok = hmac.compare_digest(known_user.encode("utf-8"), username.encode("utf-8"))
            password_ok = hmac.compare_digest(known_password.encode("utf-8"), password.encode("utf-8"))
            matched |= user_ok and password_ok
        return matched

    def __len__(self) -> int:
        return len(self._pairs)
