from __future__ import annotations

import logging
import os
from typing import Any

from flask import Flask, Response, g, jsonify, request
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from .api import register_routes
from .auth import install_auth
from .config import (
    frontend_origin,
    log_level,
    max_request_bytes,
    swagger_ui_cdn_base_url,
    using_default_secret_key,
)
from .db import init_db
from .errors import ApiError, Unauthorized
from .rate_limit import RateLimitConfig, install_rate_limiter

logger = logging.getLogger(__name__)

API_CSP = "default-src 'none'; frame-ancestors 'none'"
ALLOWED_METHODS = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
ALLOWED_HEADERS = "Authorization, Content-Type, X-API-Key"


def configure_logging() -> None:
    logging.basicConfig(
        level=log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("sharedlists").setLevel(log_level())


def _request_context() -> str:
    user = g.get("current_user")
    user_id = user["id"] if isinstance(user, dict) else "-"
    return f"{request.method} {request.path} user={user_id}"


def _docs_csp() -> str:
    cdn_base = swagger_ui_cdn_base_url()
    return (
        f"default-src 'none'; script-src {cdn_base} 'unsafe-inline'; "
        f"style-src {cdn_base} 'unsafe-inline'; img-src {cdn_base} data:; "
        "connect-src 'self'; frame-ancestors 'none'"
    )


def install_error_handlers(app: Flask) -> None:
    @app.errorhandler(ApiError)
    def handle_api_error(exc: ApiError) -> tuple[Any, int]:
        level = logging.WARNING if exc.status_code >= 500 else logging.INFO
        logger.log(level, "%s -> %d %s", _request_context(), exc.status_code, exc.message)
        response = jsonify(exc.to_dict())
        if isinstance(exc, Unauthorized):
            response.headers["WWW-Authenticate"] = "Bearer"
        return response, exc.status_code

    @app.errorhandler(RequestEntityTooLarge)
    def handle_request_too_large(exc: RequestEntityTooLarge) -> tuple[Any, int]:
        # Raised before route handlers run.
        logger.info("%s -> 413 body over %d bytes", _request_context(), max_request_bytes())
        return (
            jsonify(
                {
                    "error": "Request entity too large",
                    "hint": "Raise SHAREDLISTS_MAX_REQUEST_BYTES to accept larger bodies.",
                }
            ),
            413,
        )

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException) -> tuple[Any, int]:
        status = exc.code or 500
        logger.info("%s -> %d", _request_context(), status)
        return jsonify({"error": exc.description or exc.name}), status

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception) -> tuple[Any, int]:
        logger.exception("%s -> unhandled error", _request_context())
        return jsonify({"error": "Internal server error"}), 500


def install_response_hardening(app: Flask) -> None:
    origin = frontend_origin()

    @app.before_request
    def _preflight() -> Response | None:
        if request.method == "OPTIONS":
            return Response(status=204)
        return None

    @app.after_request
    def _security_headers(response: Response) -> Response:
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if request.path == "/api/docs":
            response.headers.setdefault("Content-Security-Policy", _docs_csp())
        else:
            response.headers.setdefault("Content-Security-Policy", API_CSP)

        if origin and request.headers.get("Origin") == origin:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
            response.headers["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
            response.headers["Vary"] = "Origin"
        return response


def create_app() -> Flask:
    configure_logging()
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = max_request_bytes()

    if using_default_secret_key():
        logger.warning(
            "SHAREDLISTS_SECRET_KEY is not set; using the development default. "
            "Sessions and API keys are not secure."
        )

    init_db()
    install_error_handlers(app)
    install_response_hardening(app)
    install_rate_limiter(app, RateLimitConfig.from_env())
    install_auth(app)
    register_routes(app)
    return app


app = create_app()


if __name__ == "__main__":
    debug = os.environ.get("SHAREDLISTS_DEBUG", "").strip().lower() in {"1", "true", "yes", "on"}
    host = os.environ.get("SHAREDLISTS_HOST", "0.0.0.0")
    port_raw = os.environ.get("SHAREDLISTS_PORT") or os.environ.get("PORT") or "8000"
    try:
        port = int(port_raw)
    except ValueError:
        port = 8000

    app.run(host=host, port=port, debug=debug)
