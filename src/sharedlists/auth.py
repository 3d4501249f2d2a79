from __future__ import annotations

import logging
from typing import Any

from flask import Flask, Response, g, jsonify, request

from .api_keys import verify_token
from .db import get_connection
from .errors import Forbidden
from .schemas import AuthMethod, ScopeType
from .sessions import COOKIE_NAME, decode_session_token
from .users import get_user

logger = logging.getLogger(__name__)

# Reachable without credentials.
PUBLIC_PATHS = {
    "/api/health",
    "/api/docs",
    "/api/openapi.json",
    "/api/auth/login",
    "/api/auth/callback",
    "/api/auth/logout",
}
PUBLIC_PREFIXES = ("/api/public/",)
API_KEY_MANAGEMENT_PREFIX = "/api/settings/api-keys"
READ_METHODS = {"GET", "HEAD"}


def _is_public(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES)


def _bearer_token() -> str | None:
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        token = auth[7:].strip()
        if token:
            return token
    provided = request.headers.get("X-API-Key", "").strip()
    return provided or None


def _unauthorized() -> Response:
    response = jsonify({"error": "Unauthorized"})
    response.status_code = 401
    response.headers["WWW-Authenticate"] = "Bearer"
    return response


def resolve_credentials() -> dict[str, Any] | None:
    """
    Identify the caller from the session cookie or a bearer credential.

    A bearer value is tried as a session JWT first and as an API key second. On success the
    user, auth method and API key scopes are stored on ``g``.
    """
    candidates = [request.cookies.get(COOKIE_NAME), _bearer_token()]
    with get_connection() as conn:
        for token in candidates:
            if not token:
                continue
            claims = decode_session_token(token)
            if claims is not None:
                user = get_user(conn, claims["sub"])
                if user is not None:
                    g.auth_method = "session"
                    g.api_key_scopes = None
                    return user
                continue
            verified = verify_token(conn, token)
            if verified is not None:
                user = get_user(conn, verified.user_id)
                if user is not None:
                    g.auth_method = "api_key"
                    g.api_key_scopes = verified.scopes
                    return user
    return None


def enforce_api_key_scope(method: str, path: str, scopes: tuple[str, ...]) -> None:
    if path.startswith(API_KEY_MANAGEMENT_PREFIX):
        raise Forbidden("API keys cannot be managed with an API key")
    required: ScopeType = "read" if method in READ_METHODS else "write"
    if required not in scopes:
        raise Forbidden(f"API key lacks the '{required}' scope")


def install_auth(app: Flask) -> None:
    @app.before_request
    def _require_auth() -> Response | None:
        if request.method == "OPTIONS":
            return None
        path = request.path
        if not path.startswith("/api/") or _is_public(path):
            return None

        user = resolve_credentials()
        if user is None:
            logger.info("rejected unauthenticated %s %s", request.method, path)
            return _unauthorized()

        g.current_user = user
        if auth_method() == "api_key":
            enforce_api_key_scope(request.method, path, g.api_key_scopes)
        return None


def current_user() -> dict[str, Any]:
    return g.current_user


def auth_method() -> AuthMethod | None:
    return g.get("auth_method")
