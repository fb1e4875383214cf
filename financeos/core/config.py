"""Environment-driven configuration for the FinanceOS backend."""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

_FALSE_VALUES = {"0", "false", "False", "no", ""}


@dataclass(frozen=True, slots=True)
class DatabaseSettings:
    """Connection details for the relational store."""

    driver: str
    host: str
    port: int
    user: str
    password: str
    name: str
    url_override: str | None = None

    @property
    def sqlalchemy_url(self) -> str:
        """Build a SQLAlchemy compatible URL."""

        if self.url_override:
            return self.url_override
        if self.driver.startswith("sqlite"):
            return f"{self.driver}:///{self.name}"
        if self.password:
            credentials = f"{self.user}:{self.password}"
        else:
            credentials = self.user
        return f"{self.driver}://{credentials}@{self.host}:{self.port}/{self.name}"


@dataclass(frozen=True, slots=True)
class AuthSettings:
    """Bearer token settings."""

    secret_key: str
    algorithm: str
    access_token_expire_minutes: int
    verification_ttl_minutes: int


@dataclass(frozen=True, slots=True)
class SecurityCodeSettings:
    """Server-side limits for the post-login security code."""

    max_attempts: int = 3
    lockout_base_seconds: int = 60
    lockout_max_seconds: int = 3600
    code_ttl_days: int = 30


@dataclass(frozen=True, slots=True)
class AuditSettings:
    """Whether audit-log write failures abort the primary operation."""

    strict: bool = False


@dataclass(frozen=True, slots=True)
class CorsSettings:
    allow_origins: tuple[str, ...] = ("*",)


@dataclass(frozen=True, slots=True)
class ServerSettings:
    """Bind address for ``python -m financeos``."""

    host: str = "127.0.0.1"
    port: int = 8000
    reload: bool = False


@dataclass(frozen=True, slots=True)
class Settings:
    """Top-level application configuration container."""

    database: DatabaseSettings
    auth: AuthSettings
    security_codes: SecurityCodeSettings
    audit: AuditSettings
    cors: CorsSettings
    server: ServerSettings = ServerSettings()
    sqlalchemy_echo: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Load configuration values from environment variables."""

        def _get_env(name: str, default: str) -> str:
            return os.getenv(name, default)

        def _get_flag(name: str, default: str) -> bool:
            return _get_env(name, default) not in _FALSE_VALUES

        db = DatabaseSettings(
            driver=_get_env("DB_DRIVER", "mysql+pymysql"),
            host=_get_env("DB_HOST", "127.0.0.1"),
            port=int(_get_env("DB_PORT", "3306")),
            user=_get_env("DB_USER", "financeos"),
            password=_get_env("DB_PASSWORD", "financeos"),
            name=_get_env("DB_NAME", "financeos"),
            url_override=os.getenv("DATABASE_URL") or None,
        )
        auth = AuthSettings(
            secret_key=_get_env("JWT_SECRET_KEY", "change-me"),
            algorithm=_get_env("JWT_ALGORITHM", "HS256"),
            access_token_expire_minutes=int(_get_env("JWT_EXPIRE_MINUTES", "120")),
            verification_ttl_minutes=int(_get_env("SECURITY_CODE_VERIFICATION_MINUTES", "60")),
        )
        security_codes = SecurityCodeSettings(
            max_attempts=int(_get_env("SECURITY_CODE_MAX_ATTEMPTS", "3")),
            lockout_base_seconds=int(_get_env("SECURITY_CODE_LOCKOUT_SECONDS", "60")),
            lockout_max_seconds=int(_get_env("SECURITY_CODE_LOCKOUT_MAX_SECONDS", "3600")),
            code_ttl_days=int(_get_env("SECURITY_CODE_TTL_DAYS", "30")),
        )
        origins = tuple(
            origin.strip()
            for origin in _get_env("CORS_ALLOW_ORIGINS", "*").split(",")
            if origin.strip()
        )
        return cls(
            database=db,
            auth=auth,
            security_codes=security_codes,
            audit=AuditSettings(strict=_get_flag("AUDIT_STRICT", "0")),
            cors=CorsSettings(allow_origins=origins or ("*",)),
            server=ServerSettings(
                host=_get_env("HOST", "127.0.0.1"),
                port=int(_get_env("PORT", "8000")),
                reload=_get_flag("RELOAD", "0"),
            ),
            sqlalchemy_echo=_get_flag("SQLALCHEMY_ECHO", "0"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance."""

    settings = Settings.from_env()

    # Import locally to avoid circular dependencies during module import time.
    from .log import get_logger

    logger = get_logger(__name__)
    logger.debug(
        "Settings initialised",
        extra={
            "sqlalchemy_echo": settings.sqlalchemy_echo,
            "database": {
                "driver": settings.database.driver,
                "host": settings.database.host,
                "port": settings.database.port,
                "name": settings.database.name,
                "user": settings.database.user,
            },
            "auth": {
                "token_ttl": settings.auth.access_token_expire_minutes,
                "verification_ttl": settings.auth.verification_ttl_minutes,
            },
            "security_codes": {
                "max_attempts": settings.security_codes.max_attempts,
                "lockout_base_seconds": settings.security_codes.lockout_base_seconds,
            },
            "audit_strict": settings.audit.strict,
        },
    )
    return settings
