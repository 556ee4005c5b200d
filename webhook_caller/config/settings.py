"""
Environment-driven settings for the webhook caller service.

Values are read once per process from environment variables (a ``.env``
file is loaded by ``main.py`` at startup) and cached. Tests build their own
``Settings`` instances and inject them through dependency overrides.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

# Hard ceiling for outbound webhook calls, regardless of what the caller asks for
MAX_TIMEOUT_MS = 30000

DEFAULT_ALLOWED_DOMAINS: Tuple[str, ...] = (
    "hooks.slack.com",
    "discord.com",
    "api.zapier.com",
    "hooks.zapier.com",
    "maker.ifttt.com",
    "api.webhook.site",
    "webhook.site",
)

DEFAULT_USER_AGENT = "TaxManagement-Webhook/1.0"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("json", "text")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_domains(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if not raw:
        return default
    domains = tuple(
        d.strip().lower().rstrip(".") for d in raw.split(",") if d.strip()
    )
    return domains or default


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, treated as static input after startup."""

    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    service_role_key: Optional[str] = None
    jwt_secret: Optional[str] = None

    allowed_domains: Tuple[str, ...] = DEFAULT_ALLOWED_DOMAINS
    rate_limit: int = 10
    rate_window_seconds: int = 60
    default_timeout_ms: int = 10000
    user_agent: str = DEFAULT_USER_AGENT

    environment: str = "development"
    app_version: str = "0.1.0"
    metrics_enabled: bool = True
    log_level: str = "INFO"
    log_format: str = "json"

    def __post_init__(self):
        if self.rate_limit < 1:
            raise ValueError("rate_limit must be at least 1")
        if self.rate_window_seconds < 1:
            raise ValueError("rate_window_seconds must be at least 1")
        if not 0 < self.default_timeout_ms <= MAX_TIMEOUT_MS:
            raise ValueError(
                f"default_timeout_ms must be between 1 and {MAX_TIMEOUT_MS}"
            )
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")

    @property
    def identity_verification_mode(self) -> Optional[str]:
        """Which identity verifier the service will use, if any."""
        if self.jwt_secret:
            return "jwt"
        if self.supabase_url and self.supabase_anon_key:
            return "supabase"
        return None

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the current process environment."""
        return cls(
            supabase_url=os.getenv("SUPABASE_URL") or None,
            supabase_anon_key=os.getenv("SUPABASE_ANON_KEY") or None,
            service_role_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY") or None,
            jwt_secret=os.getenv("SUPABASE_JWT_SECRET") or None,
            allowed_domains=_env_domains(
                "WEBHOOK_ALLOWED_DOMAINS", DEFAULT_ALLOWED_DOMAINS
            ),
            rate_limit=_env_int("WEBHOOK_RATE_LIMIT", 10),
            rate_window_seconds=_env_int("WEBHOOK_RATE_WINDOW_SECONDS", 60),
            default_timeout_ms=_env_int("WEBHOOK_DEFAULT_TIMEOUT_MS", 10000),
            user_agent=os.getenv("WEBHOOK_USER_AGENT", DEFAULT_USER_AGENT),
            environment=os.getenv("ENV", "development"),
            app_version=os.getenv("APP_VERSION", "0.1.0"),
            metrics_enabled=os.getenv("METRICS_ENABLED", "true").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("LOG_FORMAT", "json").lower(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return Settings.from_env()
