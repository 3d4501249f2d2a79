from __future__ import annotations

import logging
import secrets
from typing import Any, cast

from flask import Flask, Response, jsonify, redirect, request

from . import api_keys, lists, oauth, pages, sharing, users
from .access import require_creator, require_edit, require_list_edit, require_list_view, require_view
from .auth import current_user
from .config import cookie_secure, frontend_url, swagger_ui_cdn_base_url
from .db import get_connection
from .errors import Unauthorized, ValidationError
from .openapi import openapi_spec
from .sessions import COOKIE_NAME, create_session_token, session_max_age_seconds

logger = logging.getLogger(__name__)

STATE_COOKIE_NAME = "oauth_state"
STATE_COOKIE_MAX_AGE = 600


def _request_json_object() -> dict[str, Any]:
    payload = request.get_json(silent=True)
    if payload is None:
        raise ValidationError("body", "JSON body required")
    if not isinstance(payload, dict):
        raise ValidationError("body", "Body must be an object")
    return cast(dict[str, Any], payload)


def _no_content() -> Response:
    return Response(status=204)


def _truthy_arg(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in {"1", "true", "yes", "on"}


def register_routes(app: Flask) -> None:
    @app.get("/api/health")
    def health() -> Any:
        return jsonify({"status": "ok"})

    @app.get("/api/openapi.json")
    def openapi() -> Any:
        return jsonify(openapi_spec())

    @app.get("/api/docs")
    def docs() -> Any:
        cdn_base = swagger_ui_cdn_base_url()
        html = f"""
<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>Shared Lists API Docs</title>
    <link rel="stylesheet" href="{cdn_base}/swagger-ui.css" />
    <style>
      body {{ margin: 0; }}
    </style>
  </head>
  <body>
    <div id="swagger-ui"></div>
    <script src="{cdn_base}/swagger-ui-bundle.js"></script>
    <script>
      window.onload = () => {{
        SwaggerUIBundle({{
          url: "/api/openapi.json",
          dom_id: "#swagger-ui",
          withCredentials: true,
        }});
      }};
    </script>
  </body>
</html>
"""
        return Response(html, mimetype="text/html")

    # Auth

    @app.get("/api/auth/login")
    def login() -> Any:
        state = secrets.token_urlsafe(32)
        response = redirect(oauth.authorize_url(state))
        response.set_cookie(
            STATE_COOKIE_NAME,
            state,
            max_age=STATE_COOKIE_MAX_AGE,
            httponly=True,
            secure=cookie_secure(),
            samesite="Lax",
            path="/api/auth",
        )
        return response

    @app.get("/api/auth/callback")
    def auth_callback() -> Any:
        code = request.args.get("code")
        state = request.args.get("state")
        expected = request.cookies.get(STATE_COOKIE_NAME)
        if not state or not expected or not secrets.compare_digest(state, expected):
            logger.warning("oauth callback with missing or mismatched state")
            raise Unauthorized("Invalid OAuth state")
        if not code:
            raise ValidationError("code", "code is required")

        access_token = oauth.exchange_code(code)
        profile = oauth.fetch_profile(access_token)
        with get_connection() as conn:
            user = users.upsert_oauth_user(conn, profile)
        logger.info("user %s logged in", user["id"])

        response = redirect(f"{frontend_url()}/auth/callback")
        response.set_cookie(
            COOKIE_NAME,
            create_session_token(user),
            max_age=session_max_age_seconds(),
            httponly=True,
            secure=cookie_secure(),
            samesite="Lax",
            path="/",
        )
        response.delete_cookie(STATE_COOKIE_NAME, path="/api/auth")
        return response

    @app.post("/api/auth/logout")
    def logout() -> Any:
        response = _no_content()
        response.delete_cookie(
            COOKIE_NAME, path="/", secure=cookie_secure(), httponly=True, samesite="Lax"
        )
        return response

    # Users

    @app.get("/api/users/me")
    def get_me() -> Any:
        return jsonify(current_user())

    @app.patch("/api/users/me")
    def update_me() -> Any:
        payload = _request_json_object()
        with get_connection() as conn:
            user = users.update_user(conn, current_user()["id"], payload)
        return jsonify(user)

    @app.get("/api/users/search")
    def search_users() -> Any:
        query = request.args.get("q", "")
        with get_connection() as conn:
            results = users.search_users(conn, query, current_user()["id"])
        return jsonify(results)

    # Pages

    @app.get("/api/pages")
    def list_pages() -> Any:
        with get_connection() as conn:
            return jsonify(pages.list_pages_for_user(conn, current_user()["id"]))

    @app.post("/api/pages")
    def create_page() -> Any:
        payload = _request_json_object()
        with get_connection() as conn:
            page = pages.create_page(conn, current_user()["id"], payload)
        page.update({"is_creator": True, "can_edit": True})
        return jsonify(page), 201

    @app.get("/api/pages/<page_id>")
    def get_page(page_id: str) -> Any:
        with get_connection() as conn:
            access = require_view(conn, page_id, current_user()["id"])
            return jsonify(pages.page_with_permission(access))

    @app.patch("/api/pages/<page_id>")
    def update_page(page_id: str) -> Any:
        payload = _request_json_object()
        with get_connection() as conn:
            access = require_edit(conn, page_id, current_user()["id"])
            page = pages.update_page(conn, page_id, payload)
        page.update({"is_creator": access.is_creator, "can_edit": True})
        return jsonify(page)

    @app.delete("/api/pages/<page_id>")
    def delete_page(page_id: str) -> Any:
        with get_connection() as conn:
            require_creator(conn, page_id, current_user()["id"])
            pages.delete_page(conn, page_id)
        return _no_content()

    @app.put("/api/pages/<page_id>/public-slug")
    def set_public_slug(page_id: str) -> Any:
        payload = _request_json_object()
        with get_connection() as conn:
            access = require_creator(conn, page_id, current_user()["id"])
            page = sharing.set_public_slug(conn, access.page, payload)
        page.update({"is_creator": True, "can_edit": True})
        return jsonify(page)

    @app.get("/api/public/<slug>")
    def get_public_page(slug: str) -> Any:
        with get_connection() as conn:
            return jsonify(sharing.get_public_page(conn, slug))

    # Permissions

    @app.get("/api/pages/<page_id>/permissions")
    def list_permissions(page_id: str) -> Any:
        with get_connection() as conn:
            require_creator(conn, page_id, current_user()["id"])
            return jsonify(sharing.list_permissions(conn, page_id))

    @app.post("/api/pages/<page_id>/permissions")
    def grant_permission(page_id: str) -> Any:
        payload = _request_json_object()
        user_id = current_user()["id"]
        with get_connection() as conn:
            access = require_creator(conn, page_id, user_id)
            permission = sharing.grant_permission(conn, access.page, user_id, payload)
        return jsonify(permission), 201

    @app.patch("/api/pages/<page_id>/permissions/<permission_id>")
    def update_permission(page_id: str, permission_id: str) -> Any:
        payload = _request_json_object()
        with get_connection() as conn:
            require_creator(conn, page_id, current_user()["id"])
            permission = sharing.update_permission(conn, page_id, permission_id, payload)
        return jsonify(permission)

    @app.delete("/api/pages/<page_id>/permissions/<permission_id>")
    def revoke_permission(page_id: str, permission_id: str) -> Any:
        with get_connection() as conn:
            require_creator(conn, page_id, current_user()["id"])
            sharing.revoke_permission(conn, page_id, permission_id)
        return _no_content()

    # Lists

    @app.get("/api/pages/<page_id>/lists")
    def list_lists(page_id: str) -> Any:
        with get_connection() as conn:
            require_view(conn, page_id, current_user()["id"])
            return jsonify(lists.list_lists(conn, page_id))

    @app.post("/api/pages/<page_id>/lists")
    def create_list(page_id: str) -> Any:
        payload = _request_json_object()
        with get_connection() as conn:
            require_edit(conn, page_id, current_user()["id"])
            created = lists.create_list(conn, page_id, payload)
        return jsonify(created), 201

    @app.post("/api/pages/<page_id>/lists/reorder")
    def reorder_lists(page_id: str) -> Any:
        payload = _request_json_object()
        with get_connection() as conn:
            require_edit(conn, page_id, current_user()["id"])
            return jsonify(lists.reorder_lists(conn, page_id, payload.get("positions")))

    @app.get("/api/pages/<page_id>/lists/<list_id>")
    def get_list(page_id: str, list_id: str) -> Any:
        with get_connection() as conn:
            require_view(conn, page_id, current_user()["id"])
            return jsonify(lists.get_list_with_items(conn, page_id, list_id))

    @app.patch("/api/pages/<page_id>/lists/<list_id>")
    def update_list(page_id: str, list_id: str) -> Any:
        payload = _request_json_object()
        with get_connection() as conn:
            require_edit(conn, page_id, current_user()["id"])
            return jsonify(lists.update_list(conn, page_id, list_id, payload))

    @app.delete("/api/pages/<page_id>/lists/<list_id>")
    def delete_list(page_id: str, list_id: str) -> Any:
        with get_connection() as conn:
            require_edit(conn, page_id, current_user()["id"])
            lists.delete_list(conn, page_id, list_id)
        return _no_content()

    # Items

    @app.get("/api/lists/<list_id>/items")
    def list_items(list_id: str) -> Any:
        with get_connection() as conn:
            require_list_view(conn, list_id, current_user()["id"])
            return jsonify(lists.list_items(conn, list_id))

    @app.post("/api/lists/<list_id>/items")
    def create_item(list_id: str) -> Any:
        payload = _request_json_object()
        with get_connection() as conn:
            require_list_edit(conn, list_id, current_user()["id"])
            item = lists.create_item(conn, list_id, payload)
        return jsonify(item), 201

    @app.post("/api/lists/<list_id>/items/reorder")
    def reorder_items(list_id: str) -> Any:
        payload = _request_json_object()
        with get_connection() as conn:
            require_list_edit(conn, list_id, current_user()["id"])
            return jsonify(lists.reorder_items(conn, list_id, payload.get("positions")))

    @app.get("/api/lists/<list_id>/items/<item_id>")
    def get_item(list_id: str, item_id: str) -> Any:
        with get_connection() as conn:
            require_list_view(conn, list_id, current_user()["id"])
            return jsonify(lists.get_item(conn, list_id, item_id))

    @app.patch("/api/lists/<list_id>/items/<item_id>")
    def update_item(list_id: str, item_id: str) -> Any:
        payload = _request_json_object()
        with get_connection() as conn:
            require_list_edit(conn, list_id, current_user()["id"])
            return jsonify(lists.update_item(conn, list_id, item_id, payload))

    @app.delete("/api/lists/<list_id>/items/<item_id>")
    def delete_item(list_id: str, item_id: str) -> Any:
        with get_connection() as conn:
            require_list_edit(conn, list_id, current_user()["id"])
            lists.delete_item(conn, list_id, item_id)
        return _no_content()

    # API keys

    @app.get("/api/settings/api-keys")
    def list_api_keys() -> Any:
        with get_connection() as conn:
            return jsonify(api_keys.list_api_keys(conn, current_user()["id"]))

    @app.post("/api/settings/api-keys")
    def create_api_key() -> Any:
        payload = _request_json_object()
        with get_connection() as conn:
            created = api_keys.create_api_key(conn, current_user()["id"], payload)
        return jsonify(created), 201

    @app.delete("/api/settings/api-keys/<key_id>")
    def delete_api_key(key_id: str) -> Any:
        with get_connection() as conn:
            if _truthy_arg("hard"):
                api_keys.delete_api_key(conn, current_user()["id"], key_id)
            else:
                api_keys.revoke_api_key(conn, current_user()["id"], key_id)
        return _no_content()
