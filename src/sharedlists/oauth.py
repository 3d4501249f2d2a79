"""
OAuth2 authorization-code client for the login provider.

Defaults target Twitch (``/helix/users`` wraps the profile in ``{"data": [...]}``); any provider
with the same shapes can be configured through the ``SHAREDLISTS_OAUTH_*`` variables.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

import requests

from .config import (
    oauth_authorize_url,
    oauth_client_id,
    oauth_client_secret,
    oauth_redirect_uri,
    oauth_scope,
    oauth_token_url,
    oauth_userinfo_url,
)
from .errors import UpstreamError
from .users import OAuthProfile

logger = logging.getLogger(__name__)

HTTP_TIMEOUT_S = 10.0


class OAuthError(UpstreamError):
    default_message = "Login provider request failed"


def _http_json(
    url: str,
    *,
    method: str = "GET",
    data: dict[str, str] | None = None,
    headers: dict[str, str] | None = None,
) -> dict[str, Any]:
    try:
        response = requests.request(
            method,
            url,
            data=data,
            headers={"Accept": "application/json", **(headers or {})},
            timeout=HTTP_TIMEOUT_S,
        )
    except requests.RequestException as exc:
        logger.warning("oauth provider request to %s failed: %s", url, exc)
        raise OAuthError() from exc
    if response.status_code >= 400:
        logger.warning("oauth provider returned %s for %s", response.status_code, url)
        raise OAuthError()
    try:
        payload = response.json()
    except ValueError as exc:
        raise OAuthError("Login provider returned an unexpected response") from exc
    if not isinstance(payload, dict):
        raise OAuthError("Login provider returned an unexpected response")
    return payload


def authorize_url(state: str) -> str:
    params = {
        "client_id": oauth_client_id(),
        "redirect_uri": oauth_redirect_uri(),
        "response_type": "code",
        "scope": oauth_scope(),
        "state": state,
    }
    return f"{oauth_authorize_url()}?{urlencode(params)}"


def exchange_code(code: str) -> str:
    """Trade an authorization code for a provider access token."""
    payload = _http_json(
        oauth_token_url(),
        method="POST",
        data={
            "client_id": oauth_client_id(),
            "client_secret": oauth_client_secret(),
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": oauth_redirect_uri(),
        },
    )
    token = payload.get("access_token")
    if not isinstance(token, str) or not token:
        raise OAuthError("Login provider did not return an access token")
    return token


def fetch_profile(access_token: str) -> OAuthProfile:
    payload = _http_json(
        oauth_userinfo_url(),
        headers={
            "Authorization": f"Bearer {access_token}",
            "Client-Id": oauth_client_id(),
        },
    )
    data = payload.get("data")
    if isinstance(data, list):
        record = data[0] if data else None
    else:
        record = payload
    if not isinstance(record, dict) or not record.get("id"):
        raise OAuthError("Login provider returned no user profile")

    username = record.get("login") or record.get("username") or str(record["id"])
    return OAuthProfile(
        external_id=str(record["id"]),
        username=str(username),
        display_name=record.get("display_name"),
        profile_image_url=record.get("profile_image_url"),
        email=record.get("email"),
    )
