import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv(override=True)

INSECURE_JWT_SECRET = "fallback-secret-change-this"


def _env_bool(name: str, default: bool = False) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return default
    return int(raw_value)


def _env_list(name: str, default: str = "") -> tuple[str, ...]:
    raw_value = os.getenv(name, default)
    return tuple(item.strip() for item in raw_value.split(",") if item.strip())


def _env_emails(name: str) -> tuple[str, ...]:
    return tuple(item.lower() for item in _env_list(name))


@dataclass(frozen=True)
class Settings:
    jwt_secret: str = os.getenv("JWT_SECRET", "")
    jwt_algorithm: str = os.getenv("ALGORITHM", "HS256")
    require_jwt_secret: bool = _env_bool("REQUIRE_JWT_SECRET", False)
    token_ttl_hours: int = _env_int("TOKEN_TTL_HOURS", 24)
    code_ttl_seconds: int = _env_int("VERIFY_CODE_TTL_SEC", 600)
    resend_cooldown_seconds: int = _env_int("VERIFY_COOLDOWN_SEC", 60)
    max_attempts: int = _env_int("VERIFY_MAX_ATTEMPTS", 6)
    admin_emails: tuple[str, ...] = field(
        default_factory=lambda: _env_emails("ADMIN_EMAILS")
    )
    email_backend: str = os.getenv("EMAIL_BACKEND", "smtp").strip().lower()
    smtp_host: str = os.getenv("SMTP_HOST", "")
    smtp_port: int = _env_int("SMTP_PORT", 2525)
    smtp_secure: bool = _env_bool("SMTP_SECURE", False)
    smtp_user: str = os.getenv("SMTP_USER", "")
    smtp_pass: str = os.getenv("SMTP_PASS", "")
    smtp_from: str = os.getenv("SMTP_FROM", "admin@teamplus.cloud")
    email_subject: str = os.getenv(
        "VERIFY_EMAIL_SUBJECT", "Your Team Plus verification code"
    )
    cors_origins: tuple[str, ...] = field(
        default_factory=lambda: _env_list("CORS_ORIGINS", "*")
    )
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = _env_int("PORT", 3000)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def signing_key(self) -> str:
        return self.jwt_secret or INSECURE_JWT_SECRET

    @property
    def uses_insecure_signing_key(self) -> bool:
        return self.signing_key == INSECURE_JWT_SECRET


settings = Settings()
