"""
Request Guard Pipeline

Guards are FastAPI dependencies that either let a request through or raise
an AppError, which the registered exception handler turns into the final
JSON response. FastAPI resolves them in declaration order, so a route group
declares them as::

    dependencies=pipeline_guards("global", role=Role.ADMIN)

which expands to rate limit -> authenticate -> role check. ``require_role``
itself depends on ``authenticate``, so a role check can never run before
the identity has been verified.

The SecurityPipeline holding the limiters and the token manager is built
once in create_app() and stored on ``app.state.security``.
"""

from functools import lru_cache
from typing import Callable, Collection, Optional

from fastapi import Depends, Request

from auth.middleware import get_client_ip
from auth.models import Claims, Role, User
from auth.rate_limiter import RateLimiter
from auth.token_manager import TokenError, TokenManager
from core.errors import AuthenticationError, AuthorizationError, RateLimited
from core.logger import get_logger

logger = get_logger(__name__)


class SecurityPipeline:
    """Holds the injected security components shared by all guards."""

    def __init__(
        self,
        token_manager: TokenManager,
        limiters: dict[str, RateLimiter],
        trusted_proxies: Collection[str] = ("*",),
    ):
        self.token_manager = token_manager
        self.limiters = limiters
        self.trusted_proxies = trusted_proxies

    def client_ip(self, request: Request) -> str:
        """Rate limit identifier for ``request``; forwarding headers count only from trusted proxies."""
        return get_client_ip(request, self.trusted_proxies)

    def limiter(self, tier: str) -> RateLimiter:
        try:
            return self.limiters[tier]
        except KeyError:
            raise KeyError(f"Unknown rate limit tier: {tier}") from None

    def check_rate_limit(self, tier: str, identifier: str) -> None:
        limiter = self.limiter(tier)
        if not limiter.admit(identifier):
            retry_after = limiter.retry_after(identifier)
            logger.warning(f"Rate limit exceeded ({tier}) for {identifier}")
            raise RateLimited(retry_after)

    def authenticate_header(self, authorization: Optional[str], client_ip: str = "unknown") -> Claims:
        """
        Validate an ``Authorization: Bearer <token>`` header value.

        Every failure raises the same AuthenticationError; only the log line
        records the reason.
        """
        if not authorization:
            logger.warning(f"Missing authorization header ({client_ip})")
            raise AuthenticationError()

        scheme, _, token = authorization.partition(" ")
        token = token.strip()
        if scheme.lower() != "bearer" or not token:
            logger.warning(f"Malformed authorization header ({client_ip})")
            raise AuthenticationError()

        try:
            return self.token_manager.validate(token)
        except TokenError as e:
            logger.warning(f"Token rejected ({e.kind}) for {client_ip}")
            raise AuthenticationError() from e

    @staticmethod
    def check_role(claims: Claims, role: Role) -> None:
        if claims.role != role:
            logger.warning(f"User {claims.username} lacks role {role.value}")
            raise AuthorizationError(f"{role.value.capitalize()} access required")


def get_pipeline(request: Request) -> SecurityPipeline:
    return request.app.state.security


@lru_cache
def rate_limit(tier: str = "global") -> Callable:
    """Guard admitting the request against the ``tier`` limiter, keyed by client IP."""

    async def rate_limit_guard(request: Request) -> None:
        pipeline = get_pipeline(request)
        pipeline.check_rate_limit(tier, pipeline.client_ip(request))

    return rate_limit_guard


async def authenticate(request: Request) -> Claims:
    """Guard validating the bearer token and injecting Claims and User into request state."""
    pipeline = get_pipeline(request)
    claims = pipeline.authenticate_header(
        request.headers.get("authorization"),
        client_ip=pipeline.client_ip(request),
    )
    request.state.claims = claims
    request.state.user = User.from_claims(claims)
    return claims


@lru_cache
def require_role(role: Role) -> Callable:
    """Guard rejecting authenticated callers whose role is not ``role``."""

    async def role_guard(claims: Claims = Depends(authenticate)) -> Claims:
        SecurityPipeline.check_role(claims, role)
        return claims

    return role_guard


async def current_claims(claims: Claims = Depends(authenticate)) -> Claims:
    return claims


async def current_user(request: Request, claims: Claims = Depends(authenticate)) -> User:
    return request.state.user


def pipeline_guards(tier: str = "global", authenticated: bool = True, role: Optional[Role] = None) -> list:
    """Ordered guard list for a route group."""
    guards = [Depends(rate_limit(tier))]
    if authenticated or role is not None:
        guards.append(Depends(authenticate))
    if role is not None:
        guards.append(Depends(require_role(role)))
    return guards
