"""
WhatsApp API Gateway

FastAPI application fronting the messaging API with:
- Sliding-window rate limiting per client IP
- JWT access/refresh tokens with role claims
- HMAC-SHA256 signed inbound and outbound webhooks

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8080 --reload

Or run directly:
    python main.py
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from auth import (
    CORS_ALLOW_HEADERS,
    CORS_ALLOW_METHODS,
    CredentialStore,
    RateLimiter,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    SecurityPipeline,
    TokenDenylist,
    TokenManager,
)
from core.config import (
    Settings,
    get_allowed_origins,
    get_basic_auth_pairs,
    get_settings,
    get_trusted_proxies,
    get_webhook_urls,
    resolve_jwt_secret,
    resolve_webhook_secret,
)
from core.errors import register_exception_handlers
from core.logger import get_logger, setup_logging
from routers import auth_router, health_router, protected_router, webhook_router
from services import MessageStore, create_message_store
from webhooks import BackgroundDispatcher, WebhookDispatcher, WebhookRegistry, WebhookSigner

logger = get_logger(__name__)


async def _sweep_periodically(app: FastAPI, interval: float) -> None:
    """Drop idle rate limit entries and expired denylist entries."""
    while True:
        await asyncio.sleep(interval)
        security: SecurityPipeline = app.state.security
        for limiter in security.limiters.values():
            limiter.sweep()
        denylist = security.token_manager.denylist
        if denylist is not None:
            denylist.purge()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events for proper resource management.
    """
    settings: Settings = app.state.settings

    # Startup
    logger.info("=" * 60)
    logger.info("WhatsApp API Gateway Starting")
    logger.info("=" * 60)
    logger.info(f"HTTP endpoint: http://{settings.server_host}:{settings.server_port}")
    logger.info(f"Production mode: {settings.production}")
    for tier, limiter in app.state.security.limiters.items():
        logger.info(f"Rate limit [{tier}]: {limiter.limit} requests / {limiter.window:g}s")
    logger.info(f"Webhook destinations: {len(app.state.registry)}")
    logger.info("=" * 60)

    sweeper = asyncio.create_task(_sweep_periodically(app, settings.rate_limit_sweep_interval))

    yield

    # Shutdown
    logger.info("Shutting down...")
    sweeper.cancel()
    await asyncio.gather(sweeper, return_exceptions=True)
    await app.state.background.shutdown(timeout=settings.webhook_timeout)
    if app.state.owns_http_client:
        await app.state.http_client.aclose()


def create_app(
    settings: Optional[Settings] = None,
    *,
    message_store: Optional[MessageStore] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """
    Build the application and wire its security components.

    Args:
        settings: Application settings (cached environment settings if omitted)
        message_store: Persistence collaborator (selected from settings if omitted)
        http_client: Client for outbound calls (created and owned here if omitted)
        clock: Time source shared by limiters, tokens and the denylist

    Raises:
        ConfigurationError: if production mode is on and a secret is missing
    """
    settings = settings or get_settings()
    setup_logging("DEBUG" if settings.debug else settings.log_level)

    app = FastAPI(
        title="WhatsApp API Gateway",
        description="""
    Security layer for the WhatsApp messaging API.

    ## Authentication

    - `POST /api/auth/login` with `{"username", "password"}` returns an access and refresh token
    - Send `Authorization: Bearer <token>` to protected endpoints
    - `POST /api/auth/refresh` with `{"refresh_token"}` returns a new pair

    ## Webhooks

    - Inbound deliveries must carry `X-Hub-Signature-256: sha256=<hex>` over the raw body
    - Outbound deliveries are signed the same way with the shared webhook secret
    """,
        version="1.0.0",
        lifespan=lifespan,
    )

    denylist = TokenDenylist(clock=clock)
    token_manager = TokenManager(
        secret_key=resolve_jwt_secret(settings),
        issuer=settings.token_issuer,
        access_ttl=settings.access_token_ttl,
        refresh_ttl=settings.refresh_token_ttl,
        admin_username=settings.admin_username,
        denylist=denylist,
        clock=clock,
    )
    limiters = {
        "global": RateLimiter(
            settings.rate_limit_global_requests,
            settings.rate_limit_global_window,
            max_identifiers=settings.rate_limit_max_identifiers,
            clock=clock,
        ),
        "auth": RateLimiter(
            settings.rate_limit_auth_requests,
            settings.rate_limit_auth_window,
            max_identifiers=settings.rate_limit_max_identifiers,
            clock=clock,
        ),
    }

    owns_http_client = http_client is None
    http_client = http_client or httpx.AsyncClient(timeout=settings.webhook_timeout)

    signer = WebhookSigner(resolve_webhook_secret(settings))
    registry = WebhookRegistry(get_webhook_urls(settings))
    dispatcher = WebhookDispatcher(
        signer,
        http_client,
        url_provider=registry.urls,
        timeout=settings.webhook_timeout,
        user_agent=settings.webhook_user_agent,
    )

    app.state.settings = settings
    trusted_proxies = get_trusted_proxies(settings)
    app.state.security = SecurityPipeline(token_manager, limiters, trusted_proxies=trusted_proxies)
    app.state.credentials = CredentialStore(get_basic_auth_pairs(settings))
    app.state.message_store = message_store or create_message_store(settings, http_client)
    app.state.http_client = http_client
    app.state.owns_http_client = owns_http_client
    app.state.signer = signer
    app.state.registry = registry
    app.state.dispatcher = dispatcher
    app.state.background = BackgroundDispatcher(dispatcher)

    register_exception_handlers(app)

    # Last added runs first: security headers wrap everything, including logging
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_allowed_origins(settings),
        allow_credentials=False,  # Bearer tokens, no cookies
        allow_methods=CORS_ALLOW_METHODS,
        allow_headers=CORS_ALLOW_HEADERS,
    )
    app.add_middleware(RequestLoggingMiddleware, trusted_proxies=trusted_proxies)
    app.add_middleware(SecurityHeadersMiddleware)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(protected_router)
    app.include_router(webhook_router)

    return app


app = create_app()


if __name__ == "__main__":
    settings = get_settings()

    uvicorn.run(
        "main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
