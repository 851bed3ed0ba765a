"""
Authentication Module

Layered request security:
1. Security Headers - Fixed response headers on every request
2. Rate Limiting - Sliding window per client IP, one limiter per tier
3. Token Verification - Signed JWTs carrying identity and role
4. Role Checks - Admin-only route groups
"""

from .credentials import CredentialStore
from .denylist import TokenDenylist
from .middleware import (
    CORS_ALLOW_HEADERS,
    CORS_ALLOW_METHODS,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    get_client_ip,
)
from .models import Claims, Role, TokenPair, User
from .pipeline import (
    SecurityPipeline,
    authenticate,
    current_claims,
    current_user,
    pipeline_guards,
    rate_limit,
    require_role,
)
from .rate_limiter import RateLimiter
from .token_manager import (
    Expired,
    InvalidSignature,
    Malformed,
    NotYetValid,
    Revoked,
    TokenError,
    TokenManager,
)

__all__ = [
    "CORS_ALLOW_HEADERS",
    "CORS_ALLOW_METHODS",
    "Claims",
    "CredentialStore",
    "Expired",
    "InvalidSignature",
    "Malformed",
    "NotYetValid",
    "RateLimiter",
    "RequestLoggingMiddleware",
    "Revoked",
    "Role",
    "SecurityHeadersMiddleware",
    "SecurityPipeline",
    "TokenDenylist",
    "TokenError",
    "TokenManager",
    "TokenPair",
    "User",
    "authenticate",
    "current_claims",
    "current_user",
    "get_client_ip",
    "pipeline_guards",
    "rate_limit",
    "require_role",
]
