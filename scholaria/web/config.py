"""
Configuration and startup security checks for Scholaria.

Why: A course platform holds student data; an accidental deployment with a
default signing secret or without a database would silently issue forgeable
tokens or lose every write on restart. `ensure_secure_config_on_startup`
refuses to boot in prod-like environments when that is the case, while local
development stays permissive.

Settings are read from the process environment. Outside pytest a local `.env`
file is loaded first (python-dotenv); tests provide their own environment.
"""
from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import Tuple

from dotenv import load_dotenv

DEV_JWT_SECRET = "dev-only-insecure-secret"
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024


def _under_pytest() -> bool:
    return "pytest" in sys.modules or bool(os.getenv("PYTEST_CURRENT_TEST"))


def _should_load_dotenv() -> bool:
    """Never under pytest; otherwise opt-out via SCHOLARIA_ENABLE_DOTENV."""
    if _under_pytest():
        return False
    flag = (os.getenv("SCHOLARIA_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


def load_environment() -> None:
    if _should_load_dotenv():
        load_dotenv()


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def _int_env(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _csv_env(name: str, default: str) -> Tuple[str, ...]:
    raw = os.getenv(name) or default
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    environment: str = "dev"
    api_prefix: str = "/api/v1"
    mongo_uri: str = ""
    mongo_db: str = "scholaria"
    jwt_secret: str = DEV_JWT_SECRET
    jwt_expire_minutes: int = 60 * 24 * 7
    upload_dir: str = "./uploads"
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    cors_origins: Tuple[str, ...] = field(default=("http://localhost:3000",))
    log_level: str = "INFO"

    @property
    def is_prod_like(self) -> bool:
        return _is_prod_like(self.environment)


def get_settings() -> Settings:
    """Snapshot the current environment into a `Settings` value."""
    prefix = "/" + (os.getenv("API_PREFIX") or "/api/v1").strip().strip("/")
    return Settings(
        environment=(os.getenv("SCHOLARIA_ENV") or "dev").strip().lower(),
        api_prefix=prefix,
        mongo_uri=(os.getenv("MONGO_URI") or "").strip(),
        mongo_db=(os.getenv("MONGO_DB") or "scholaria").strip(),
        jwt_secret=(os.getenv("JWT_SECRET") or "").strip() or DEV_JWT_SECRET,
        jwt_expire_minutes=_int_env("JWT_EXPIRE_MINUTES", 60 * 24 * 7),
        upload_dir=(os.getenv("UPLOAD_DIR") or "./uploads").strip(),
        max_file_size=_int_env("MAX_FILE_SIZE", DEFAULT_MAX_FILE_SIZE),
        cors_origins=_csv_env("CORS_ORIGIN", "http://localhost:3000"),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
    )


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Checks (prod/stage only):
    - JWT_SECRET must be set, not a placeholder and at least 32 characters.
    - MONGO_URI must be set; the in-memory store is for development only.
    """
    env = os.getenv("SCHOLARIA_ENV", "dev")
    if not _is_prod_like(env):
        return  # dev/test remain permissive

    secret = (os.getenv("JWT_SECRET") or "").strip()
    if not secret or secret == DEV_JWT_SECRET or secret.upper().startswith("CHANGE_ME"):
        raise SystemExit("Refusing to start: JWT_SECRET is unset or a placeholder in production.")
    if len(secret) < 32:
        raise SystemExit("Refusing to start: JWT_SECRET must be at least 32 characters in production.")

    if not (os.getenv("MONGO_URI") or "").strip():
        raise SystemExit("Refusing to start: MONGO_URI is required in production.")


__all__ = [
    "Settings",
    "get_settings",
    "load_environment",
    "ensure_secure_config_on_startup",
    "DEV_JWT_SECRET",
]
