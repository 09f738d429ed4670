from functools import lru_cache
import logging
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from inkwell.core.logger import init_sentry, setup_logger


class Settings(BaseSettings):
    # Application settings
    ENVIRONMENT: str = "development"  # Options: development, production, test
    APP_NAME: str = "Inkwell"
    APP_VERSION: str = "1.0.0"
    APP_URL: str = "http://localhost:8000"
    DEBUG: bool = False
    LOG_DIR: str = "logs"

    # Redirect targets used by the auth flows
    AUTH_SUCCESS_REDIRECT: str = "/home"
    AUTH_LOGIN_REDIRECT: str = "/auth/login"
    AUTH_VERIFY_REDIRECT: str = "/auth/verify"

    # Cookie session settings
    SESSION_COOKIE_NAME: str = "__auth-session"
    SESSION_SECRET_KEY: str = "s3cr3t"
    SESSION_SAME_SITE_COOKIE_POLICY: Literal["lax", "strict", "none"] = "lax"
    SESSION_MAX_AGE: int = 60 * 60 * 24 * 15  # 15 days
    TOAST_COOKIE_NAME: str = "__toast"
    TOAST_SECRET_KEY: str = "s3Cr3t"

    # TOTP settings
    TOTP_PERIOD: int = 60 * 10  # 10 minutes
    TOTP_SEND_COOLDOWN: int = 60
    TOTP_MAX_ATTEMPTS: int = 3
    TOTP_DIGITS: int = 6
    TOTP_ALGORITHM: Literal["SHA-1", "SHA-256", "SHA-512"] = "SHA-256"
    TOTP_CHARSET: str = "ABCDEFGHJKLMNPQRSTUVWXYZ123456789"

    # Key-value store settings
    KV_BACKEND: Literal["memory", "redis"] = "memory"
    REDIS_URL: str = "redis://localhost:6379/0"

    # Database settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./inkwell.db"
    DB_CREATE_TABLES: bool = True

    # Rate limiting settings
    RATE_LIMIT_WINDOW: int = 60  # seconds
    RATE_LIMIT_MAX_REQUESTS: int = 10

    # OAuth settings
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""
    GITHUB_CLIENT_ID: str = ""
    GITHUB_CLIENT_SECRET: str = ""

    # Email settings
    RESEND_API_KEY: str = ""
    RESEND_BASE_URL: str = "https://api.resend.com"
    EMAIL_SENDER_NAME: str = "Inkwell"
    EMAIL_SENDER_ADDRESS: str = "no-reply@inkwell.local"
    EMAIL_MX_LOOKUP_URL: str = "https://cloudflare-dns.com/dns-query"

    # Sentry settings
    SENTRY_DSN: str = ""
    SENTRY_ENVIRONMENT: str = "development"
    SENTRY_TRACES_SAMPLE_RATE: float = 0.1

    model_config: SettingsConfigDict = SettingsConfigDict(  # type: ignore
        env_file=".env",
        extra="ignore",
    )

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @model_validator(mode="after")
    def _validate_production_secrets(self) -> "Settings":
        """Ensure insecure default secrets are overridden in production."""
        if self.ENVIRONMENT != "production":
            return self

        insecure_defaults: dict[str, str] = {
            "SESSION_SECRET_KEY": "s3cr3t",
            "TOAST_SECRET_KEY": "s3Cr3t",
        }

        still_default = [
            name
            for name, default_val in insecure_defaults.items()
            if getattr(self, name) == default_val
        ]

        if still_default:
            raise ValueError(
                f"ENVIRONMENT is 'production' but the following secrets still "
                f"have their insecure default values: {', '.join(still_default)}. "
                f"Set them via environment variables or .env file."
            )

        return self


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()

if not settings.DEBUG:
    init_sentry(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
    )


def _logger(name: str, tag: str) -> logging.Logger:
    return setup_logger(
        name=f"{name}_logger",
        log_file=f"{settings.LOG_DIR}/{name}.log",
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        sentry_tag=tag,
    )


app_logger = _logger("app", "app")
request_logger = _logger("request", "request")
auth_logger = _logger("auth", "auth")
session_logger = _logger("session", "session")
verification_logger = _logger("verification", "verification")
kv_logger = _logger("kv", "kv")
redis_logger = _logger("redis", "redis")
email_logger = _logger("email", "email")
rate_limit_logger = _logger("rate_limit", "rate_limit")
database_logger = _logger("database", "database")
utils_logger = _logger("utils", "utils")

__all__ = [
    "Settings",
    "get_settings",
    "settings",
    "app_logger",
    "request_logger",
    "auth_logger",
    "session_logger",
    "verification_logger",
    "kv_logger",
    "redis_logger",
    "email_logger",
    "rate_limit_logger",
    "database_logger",
    "utils_logger",
]
