# backend/stockdesk/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def parse_api_tokens(raw: str | None) -> dict[str, str]:
    """
    Parse "token:role,token2:role2" into {token: role}.

    Tokens are issued by the external identity provider; entries without a
    role default to "staff".
    """
    tokens: dict[str, str] = {}
    if not raw:
        return tokens
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        token, _, role = entry.partition(":")
        tokens[token.strip()] = (role.strip() or "staff").lower()
    return tokens


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockdesk.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockdesk.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer tokens accepted by require_auth, mapped to a role
    API_TOKENS = parse_api_tokens(os.environ.get("STOCKDESK_API_TOKENS"))
    AUTH_DISABLED = _env_flag("AUTH_DISABLED")

    DEFAULT_PAGE_LIMIT = int(os.environ.get("DEFAULT_PAGE_LIMIT", "10"))
    MAX_PAGE_LIMIT = 100

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
