"""
Core Module

Provides foundational utilities used across the application:
- Configuration management
- Logging setup
- Error taxonomy and HTTP error rendering
"""

from .config import (
    ConfigurationError,
    Settings,
    get_allowed_origins,
    get_basic_auth_pairs,
    get_settings,
    get_trusted_proxies,
    get_webhook_urls,
    resolve_jwt_secret,
    resolve_webhook_secret,
)
from .errors import (
    AppError,
    AuthenticationError,
    AuthorizationError,
    NoDestinationsConfigured,
    RateLimited,
    SignatureMismatch,
    TokenIssueError,
    UpstreamUnavailable,
    ValidationError,
    register_exception_handlers,
)
from .logger import get_logger, setup_logging

__all__ = [
    # Config
    "ConfigurationError",
    "Settings",
    "get_settings",
    "get_allowed_origins",
    "get_basic_auth_pairs",
    "get_trusted_proxies",
    "get_webhook_urls",
    "resolve_jwt_secret",
    "resolve_webhook_secret",
    # Errors
    "AppError",
    "AuthenticationError",
    "AuthorizationError",
    "NoDestinationsConfigured",
    "RateLimited",
    "SignatureMismatch",
    "TokenIssueError",
    "UpstreamUnavailable",
    "ValidationError",
    "register_exception_handlers",
    # Logging
    "setup_logging",
    "get_logger",
]
