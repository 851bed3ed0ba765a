"""
Token Manager

Issues, validates and refreshes HS256 JWTs carrying user id, username and
role. Validation is stateless: a token is valid when its signature matches
the shared secret and ``not_before <= now < expires_at`` against the
injected clock. An optional TokenDenylist allows early revocation.
"""

import base64
import hashlib
import secrets
import time
from typing import Callable, Optional

import jwt

from auth.denylist import TokenDenylist
from auth.models import Claims, Role, TokenPair
from core.errors import TokenIssueError
from core.logger import get_logger

logger = get_logger(__name__)

ALGORITHM = "HS256"


class TokenError(Exception):
    """Base class for token rejections. Never shown to the caller verbatim."""

    kind = "invalid"


class InvalidSignature(TokenError):
    kind = "invalid_signature"


class Expired(TokenError):
    kind = "expired"


class NotYetValid(TokenError):
    kind = "not_yet_valid"


class Malformed(TokenError):
    kind = "malformed"


class Revoked(TokenError):
    kind = "revoked"


class TokenManager:
    """
    Stateless token service.

    Holds no per-token state, so one instance can be shared across threads
    and tasks without locking.
    """

    def __init__(
        self,
        secret_key: str,
        issuer: str = "whatsapp-api",
        access_ttl: int = 3600,
        refresh_ttl: int = 7 * 24 * 3600,
        admin_username: str = "admin",
        denylist: Optional[TokenDenylist] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the token manager.

        Args:
            secret_key: Shared HMAC signing secret
            issuer: Value of the ``iss`` claim
            access_ttl: Access token lifetime in seconds
            refresh_ttl: Refresh token lifetime in seconds
            admin_username: Username that resolves to the admin role
            denylist: Optional revocation list checked on validation
            clock: Time source returning seconds; injectable for tests
        """
        if not secret_key:
            raise ValueError("secret_key must not be empty")

        self._secret_key = secret_key
        self.issuer = issuer
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.admin_username = admin_username
        self.denylist = denylist
        self._clock = clock

    def resolve_role(self, username: str) -> Role:
        """Role is fixed by username: the administrator name is admin, all others user."""
        return Role.ADMIN if username == self.admin_username else Role.USER

    def _user_id(self, username: str, now: float) -> str:
        digest = hashlib.sha256(f"{username}{now}".encode("utf-8")).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii")[:16]

    def _claims(self, username: str, user_id: str, now: int, ttl: int) -> Claims:
        return Claims(
            user_id=user_id,
            username=username,
            role=self.resolve_role(username),
            issued_at=now,
            expires_at=now + ttl,
            not_before=now,
            issuer=self.issuer,
            token_id=secrets.token_urlsafe(16),
        )

    def _encode(self, claims: Claims) -> str:
        try:
            return jwt.encode(claims.to_payload(), self._secret_key, algorithm=ALGORITHM)
        except Exception as e:
            logger.error(f"Token signing failed: {e}")
            raise TokenIssueError() from e

    def issue(self, username: str) -> TokenPair:
        """
        Issue an access/refresh token pair for ``username``.

        Returns:
            TokenPair(access_token, refresh_token, expires_in)

        Raises:
            TokenIssueError: if the signing backend fails
        """
        now = int(self._clock())
        user_id = self._user_id(username, self._clock())

        access = self._encode(self._claims(username, user_id, now, self.access_ttl))
        refresh = self._encode(self._claims(username, user_id, now, self.refresh_ttl))

        logger.info(f"Issued tokens for {username}")
        return TokenPair(access, refresh, self.access_ttl)

    def validate(self, token: str) -> Claims:
        """
        Validate a token and return its claims.

        Raises:
            InvalidSignature: signature does not match the shared secret
            Expired: now >= expires_at
            NotYetValid: now < not_before
            Malformed: the token cannot be decoded into the claim shape
            Revoked: the token id is on the denylist
        """
        if not token:
            raise Malformed("empty token")

        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[ALGORITHM],
                options={
                    "verify_exp": False,
                    "verify_nbf": False,
                    "verify_iat": False,
                    "verify_iss": False,
                    "require": ["exp", "iat", "nbf", "iss", "jti"],
                },
            )
        except jwt.InvalidSignatureError as e:
            raise InvalidSignature(str(e)) from e
        except jwt.PyJWTError as e:
            raise Malformed(str(e)) from e

        try:
            claims = Claims.from_payload(payload)
        except (KeyError, TypeError, ValueError) as e:
            raise Malformed(f"unexpected claim shape: {e}") from e

        now = self._clock()
        if now < claims.not_before:
            raise NotYetValid("token is not valid yet")
        if now >= claims.expires_at:
            raise Expired("token has expired")

        if self.denylist is not None and self.denylist.is_revoked(claims.token_id):
            raise Revoked("token has been revoked")

        return claims

    def refresh(self, refresh_token: str) -> TokenPair:
        """
        Exchange a refresh token for a new pair.

        The refresh token is validated exactly like an access token.
        """
        claims = self.validate(refresh_token)
        return self.issue(claims.username)

    def revoke(self, claims: Claims) -> None:
        """Deny the token described by ``claims`` until it expires."""
        if self.denylist is None:
            logger.warning("Token revocation requested but no denylist is configured")
            return
        self.denylist.revoke(claims.token_id, claims.expires_at)
        logger.info(f"Revoked token for {claims.username}")
