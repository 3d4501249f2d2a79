from __future__ import annotations

import os
from pathlib import Path
from urllib.parse import urlparse

DEFAULT_DB_PATH = "./data/sharedlists.db"
DEFAULT_SECRET_KEY = "dev-insecure-secret-key-change-me-before-deploying"
DEFAULT_SESSION_TTL_DAYS = 7
DEFAULT_FRONTEND_URL = "http://localhost:5173"
DEFAULT_MAX_REQUEST_BYTES = 1_000_000
DEFAULT_RATE_LIMIT_ENABLED = True
DEFAULT_RATE_LIMIT_RPM = 600
DEFAULT_RATE_LIMIT_BURST = 60
DEFAULT_LOG_LEVEL = "INFO"

DEFAULT_OAUTH_AUTHORIZE_URL = "https://id.twitch.tv/oauth2/authorize"
DEFAULT_OAUTH_TOKEN_URL = "https://id.twitch.tv/oauth2/token"
DEFAULT_OAUTH_USERINFO_URL = "https://api.twitch.tv/helix/users"
DEFAULT_OAUTH_SCOPE = "user:read:email"
DEFAULT_SWAGGER_UI_CDN_BASE_URL = "https://unpkg.com/swagger-ui-dist@5"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    lowered = raw.strip().lower()
    if lowered in _FALSY:
        return False
    if lowered in _TRUTHY:
        return True
    return default


def _env_positive_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def db_path() -> str:
    path = os.environ.get("SHAREDLISTS_DB_PATH", DEFAULT_DB_PATH)
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    return path


def secret_key() -> str:
    return os.environ.get("SHAREDLISTS_SECRET_KEY") or DEFAULT_SECRET_KEY


def using_default_secret_key() -> bool:
    return not os.environ.get("SHAREDLISTS_SECRET_KEY")


def session_ttl_days() -> int:
    return _env_positive_int("SHAREDLISTS_SESSION_TTL_DAYS", DEFAULT_SESSION_TTL_DAYS)


def frontend_url() -> str:
    raw = os.environ.get("SHAREDLISTS_FRONTEND_URL") or DEFAULT_FRONTEND_URL
    return raw.rstrip("/")


def frontend_origin() -> str | None:
    """scheme://host[:port] of the frontend, or None when the URL has no host."""
    parsed = urlparse(frontend_url())
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}"


def cookie_secure() -> bool:
    """Secure cookies unless the frontend is served over plain http; env overrides."""
    default = urlparse(frontend_url()).scheme != "http"
    return _env_bool("SHAREDLISTS_COOKIE_SECURE", default)


def oauth_client_id() -> str:
    return os.environ.get("SHAREDLISTS_OAUTH_CLIENT_ID", "")


def oauth_client_secret() -> str:
    return os.environ.get("SHAREDLISTS_OAUTH_CLIENT_SECRET", "")


def oauth_redirect_uri() -> str:
    return os.environ.get(
        "SHAREDLISTS_OAUTH_REDIRECT_URI", "http://localhost:8000/api/auth/callback"
    )


def oauth_authorize_url() -> str:
    return os.environ.get("SHAREDLISTS_OAUTH_AUTHORIZE_URL") or DEFAULT_OAUTH_AUTHORIZE_URL


def oauth_token_url() -> str:
    return os.environ.get("SHAREDLISTS_OAUTH_TOKEN_URL") or DEFAULT_OAUTH_TOKEN_URL


def oauth_userinfo_url() -> str:
    return os.environ.get("SHAREDLISTS_OAUTH_USERINFO_URL") or DEFAULT_OAUTH_USERINFO_URL


def oauth_scope() -> str:
    return os.environ.get("SHAREDLISTS_OAUTH_SCOPE") or DEFAULT_OAUTH_SCOPE


def max_request_bytes() -> int:
    return _env_positive_int("SHAREDLISTS_MAX_REQUEST_BYTES", DEFAULT_MAX_REQUEST_BYTES)


def rate_limit_enabled() -> bool:
    return _env_bool("SHAREDLISTS_RATE_LIMIT_ENABLED", DEFAULT_RATE_LIMIT_ENABLED)


def rate_limit_requests_per_minute() -> int:
    return _env_positive_int("SHAREDLISTS_RATE_LIMIT_RPM", DEFAULT_RATE_LIMIT_RPM)


def rate_limit_burst() -> int:
    return _env_positive_int("SHAREDLISTS_RATE_LIMIT_BURST", DEFAULT_RATE_LIMIT_BURST)


def trust_proxy() -> bool:
    return _env_bool("SHAREDLISTS_TRUST_PROXY", False)


def log_level() -> str:
    raw = (os.environ.get("SHAREDLISTS_LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper()
    if raw not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        return DEFAULT_LOG_LEVEL
    return raw


def swagger_ui_cdn_base_url() -> str:
    raw = os.environ.get("SHAREDLISTS_SWAGGER_UI_CDN_BASE_URL") or DEFAULT_SWAGGER_UI_CDN_BASE_URL
    return raw.rstrip("/")


def seed_value() -> int | None:
    raw = os.environ.get("SHAREDLISTS_SEED")
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None
