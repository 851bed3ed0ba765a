"""
Application Configuration

Centralized configuration using Pydantic Settings for type-safe
environment variable management with validation.

Secrets fall back to fixed development defaults when unset. With
``production`` enabled a missing secret is a startup error instead.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from core.logger import get_logger

logger = get_logger(__name__)

# Get the directory containing this file, then go up to the project root
_CONFIG_DIR = Path(__file__).parent.parent.parent

DEFAULT_JWT_SECRET = "whatsapp-api-secret-key-change-in-production"
DEFAULT_WEBHOOK_SECRET = "super-secret-webhook-key"
DEFAULT_BASIC_AUTH = "admin:whatsapp2024"


class ConfigurationError(RuntimeError):
    """Raised when the settings cannot be used to start the server."""


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Example: JWT_SECRET=xxx or jwt_secret=xxx
    """

    model_config = SettingsConfigDict(
        env_file=_CONFIG_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server Configuration
    server_host: str = "0.0.0.0"
    server_port: int = 8080
    debug: bool = False
    log_level: str = "INFO"
    production: bool = False  # Refuse to start with fallback secrets
    cors_allowed_origins: str = "*"
    trusted_proxies: str = "*"  # Peers whose X-Forwarded-For / X-Real-IP are honoured; empty trusts none

    # Token Configuration
    jwt_secret: str = ""  # HMAC secret key (generate with: openssl rand -hex 32)
    token_issuer: str = "whatsapp-api"
    admin_username: str = "admin"
    access_token_ttl: int = 3600  # 1 hour
    refresh_token_ttl: int = 7 * 24 * 3600  # 7 days

    # Credential store: comma-separated "username:password" pairs
    app_basic_auth: str = ""

    # Webhook Configuration
    webhook_secret: str = ""
    webhook_urls: str = ""  # Comma-separated destination URLs
    webhook_timeout: float = 10.0
    webhook_user_agent: str = "WhatsApp-API-Webhook/1.0"

    # Rate Limiting
    rate_limit_global_requests: int = 100
    rate_limit_global_window: float = 3600.0  # 100 requests per hour
    rate_limit_auth_requests: int = 5
    rate_limit_auth_window: float = 900.0  # 5 attempts per 15 minutes
    rate_limit_max_identifiers: int = 10000
    rate_limit_sweep_interval: float = 300.0  # Idle entry sweep period, seconds

    # Persistence collaborator (Supabase PostgREST); in-memory when unset
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_table: str = "chat_storage"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once
    and reused throughout the application lifecycle.
    """
    return Settings()


def _split_csv(value: str) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def get_allowed_origins(settings: Settings | None = None) -> list[str]:
    """Parse allowed CORS origins from comma-separated string."""
    settings = settings or get_settings()
    return _split_csv(settings.cors_allowed_origins) or ["*"]


def get_trusted_proxies(settings: Settings | None = None) -> list[str]:
    """Parse proxy addresses allowed to set forwarding headers. "*" trusts every peer."""
    settings = settings or get_settings()
    return _split_csv(settings.trusted_proxies)


def get_webhook_urls(settings: Settings | None = None) -> list[str]:
    """Parse webhook destination URLs from comma-separated string."""
    settings = settings or get_settings()
    return _split_csv(settings.webhook_urls)


def get_basic_auth_pairs(settings: Settings | None = None) -> list[tuple[str, str]]:
    """
    Parse the credential store into (username, password) pairs.

    Entries that are not exactly ``username:password`` are skipped.
    """
    settings = settings or get_settings()
    raw = settings.app_basic_auth
    if not raw:
        _require_secret(settings, "APP_BASIC_AUTH")
        raw = DEFAULT_BASIC_AUTH

    pairs = []
    for entry in _split_csv(raw):
        parts = entry.split(":")
        if len(parts) == 2 and parts[0] and parts[1]:
            pairs.append((parts[0], parts[1]))
    return pairs


def resolve_jwt_secret(settings: Settings | None = None) -> str:
    """Return the token signing secret, or the development fallback."""
    settings = settings or get_settings()
    if settings.jwt_secret:
        return settings.jwt_secret
    _require_secret(settings, "JWT_SECRET")
    return DEFAULT_JWT_SECRET


def resolve_webhook_secret(settings: Settings | None = None) -> str:
    """Return the webhook signing secret, or the development fallback."""
    settings = settings or get_settings()
    if settings.webhook_secret:
        return settings.webhook_secret
    _require_secret(settings, "WEBHOOK_SECRET")
    return DEFAULT_WEBHOOK_SECRET


def _require_secret(settings: Settings, name: str) -> None:
    if settings.production:
        raise ConfigurationError(f"{name} must be set when PRODUCTION is enabled")
    logger.warning(f"No {name} set. Using built-in default (not suitable for production)")
