"""
Identity types carried by signed tokens and injected into request state.
"""

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


ROLE_PERMISSIONS: dict[Role, list[str]] = {
    Role.ADMIN: [
        "send_message",
        "view_messages",
        "manage_sessions",
        "admin_dashboard",
        "manage_users",
        "view_logs",
    ],
    Role.USER: [
        "send_message",
        "view_messages",
    ],
}


@dataclass(frozen=True)
class Claims:
    """Identity and authorization facts embedded in a token."""

    user_id: str
    username: str
    role: Role
    issued_at: int
    expires_at: int
    not_before: int
    issuer: str
    token_id: str

    def to_payload(self) -> dict:
        """JWT payload using the registered claim names."""
        return {
            "user_id": self.user_id,
            "username": self.username,
            "role": self.role.value,
            "iat": self.issued_at,
            "exp": self.expires_at,
            "nbf": self.not_before,
            "iss": self.issuer,
            "jti": self.token_id,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "Claims":
        """
        Build claims from a decoded JWT payload.

        Raises:
            KeyError, ValueError, TypeError: if the payload has the wrong shape
        """
        return cls(
            user_id=str(payload["user_id"]),
            username=str(payload["username"]),
            role=Role(payload["role"]),
            issued_at=int(payload["iat"]),
            expires_at=int(payload["exp"]),
            not_before=int(payload["nbf"]),
            issuer=str(payload["iss"]),
            token_id=str(payload["jti"]),
        )


@dataclass(frozen=True)
class User:
    """Verified identity handed to business handlers."""

    id: str
    username: str
    role: Role
    created: int

    @classmethod
    def from_claims(cls, claims: Claims) -> "User":
        return cls(
            id=claims.user_id,
            username=claims.username,
            role=claims.role,
            created=claims.issued_at,
        )

    @property
    def permissions(self) -> list[str]:
        return list(ROLE_PERMISSIONS.get(self.role, []))

    def to_dict(self) -> dict:
        return {"id": self.id, "username": self.username, "role": self.role.value, "created": self.created}


class TokenPair(NamedTuple):
    access_token: str
    refresh_token: str
    expires_in: int
