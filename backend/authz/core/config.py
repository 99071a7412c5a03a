"""Runtime settings for the authorization core.

Configuration is via environment variables only (optionally seeded from a
`.env` file). Numeric values are validated when settings are built so that a
bad deployment fails at start-up instead of at decision time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Optional

from authz.core.env import load_env_if_present


DATABASE_URL_ENV: Final[str] = "DATABASE_URL"
ROLES_API_URL_ENV: Final[str] = "AUTHZ_ROLES_API_URL"
ROLES_API_KEY_ENV: Final[str] = "AUTHZ_ROLES_API_KEY"
SESSION_FILE_ENV: Final[str] = "AUTHZ_SESSION_FILE"
ROLE_FETCH_TIMEOUT_ENV: Final[str] = "AUTHZ_ROLE_FETCH_TIMEOUT_SECONDS"
LOGIN_TIMEOUT_ENV: Final[str] = "AUTHZ_LOGIN_TIMEOUT_SECONDS"
SUPPORT_EMAIL_ENV: Final[str] = "AUTHZ_SUPPORT_EMAIL"
SUPPORT_PHONE_ENV: Final[str] = "AUTHZ_SUPPORT_PHONE"
TOKEN_SECRET_ENV: Final[str] = "AUTHZ_TOKEN_SECRET"
TOKEN_TTL_ENV: Final[str] = "AUTHZ_TOKEN_TTL_SECONDS"

DEFAULT_ROLE_FETCH_TIMEOUT: Final[float] = 2.0
DEFAULT_LOGIN_TIMEOUT: Final[float] = 3.0
DEFAULT_SUPPORT_EMAIL: Final[str] = "admin@dostanfarms.com"
DEFAULT_SUPPORT_PHONE: Final[str] = "+91 9502395261"
DEFAULT_TOKEN_TTL: Final[int] = 8 * 60 * 60


@dataclass(frozen=True, slots=True)
class Settings:
    database_url: Optional[str]
    roles_api_url: Optional[str]
    roles_api_key: Optional[str]
    session_file: Path
    role_fetch_timeout: float
    login_timeout: float
    support_email: str
    support_phone: str
    token_secret: Optional[str] = None
    token_ttl: int = DEFAULT_TOKEN_TTL


def _positive_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid {name}; must be a number of seconds.") from e
    if value <= 0:
        raise RuntimeError(f"{name} must be > 0.")
    return value


def _default_session_file() -> Path:
    return Path.home() / ".authz" / "session.json"


def get_settings() -> Settings:
    load_env_if_present()
    session_file = os.environ.get(SESSION_FILE_ENV)
    return Settings(
        database_url=os.environ.get(DATABASE_URL_ENV) or None,
        roles_api_url=os.environ.get(ROLES_API_URL_ENV) or None,
        roles_api_key=os.environ.get(ROLES_API_KEY_ENV) or None,
        session_file=Path(session_file).expanduser() if session_file else _default_session_file(),
        role_fetch_timeout=_positive_float(ROLE_FETCH_TIMEOUT_ENV, DEFAULT_ROLE_FETCH_TIMEOUT),
        login_timeout=_positive_float(LOGIN_TIMEOUT_ENV, DEFAULT_LOGIN_TIMEOUT),
        support_email=os.environ.get(SUPPORT_EMAIL_ENV) or DEFAULT_SUPPORT_EMAIL,
        support_phone=os.environ.get(SUPPORT_PHONE_ENV) or DEFAULT_SUPPORT_PHONE,
        token_secret=os.environ.get(TOKEN_SECRET_ENV) or None,
        token_ttl=int(_positive_float(TOKEN_TTL_ENV, DEFAULT_TOKEN_TTL)),
    )
