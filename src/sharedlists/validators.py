from __future__ import annotations

import re
from typing import Any

from .errors import ValidationError

TITLE_MIN = 1
TITLE_MAX = 200
DESCRIPTION_MAX = 2000
ITEM_CONTENT_MIN = 1
ITEM_CONTENT_MAX = 2000
USERNAME_MIN = 3
USERNAME_MAX = 32
DISPLAY_NAME_MAX = 64
API_KEY_NAME_MAX = 100

_USERNAME_RE = re.compile(r"^[A-Za-z0-9_.-]+$")
_PUBLIC_SLUG_RE = re.compile(r"[a-z0-9-]{3,50}")
_SCOPE_RE = re.compile(r"^[a-z]+$")


def optional_text(data: dict[str, Any], key: str) -> str | None:
    """String field that may be omitted or explicitly null."""
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(key, f"{key} must be a string")
    return value


def require_str(data: dict[str, Any], key: str) -> str:
    value = optional_text(data, key)
    if value is None:
        raise ValidationError(key, f"{key} is required")
    return value


def optional_bool(data: dict[str, Any], key: str) -> bool | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ValidationError(key, f"{key} must be a boolean")
    return value


def require_bool(data: dict[str, Any], key: str) -> bool:
    value = optional_bool(data, key)
    if value is None:
        raise ValidationError(key, f"{key} is required")
    return value


def parse_position(value: Any, field: str = "position") -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field, f"{field} must be an integer")
    if value < 0:
        raise ValidationError(field, f"{field} must be zero or greater")
    return value


def optional_position(data: dict[str, Any], key: str = "position") -> int | None:
    value = data.get(key)
    if value is None:
        return None
    return parse_position(value, key)


def validate_title(value: str) -> str:
    v = value.strip()
    if not TITLE_MIN <= len(v) <= TITLE_MAX:
        raise ValidationError(
            "title", f"Title must be between {TITLE_MIN} and {TITLE_MAX} characters"
        )
    return v


def validate_description(value: str | None) -> str | None:
    if value is None:
        return None
    v = value.strip()
    if len(v) > DESCRIPTION_MAX:
        raise ValidationError(
            "description", f"Description must be at most {DESCRIPTION_MAX} characters"
        )
    return v or None


def validate_item_content(value: str) -> str:
    v = value.strip()
    if not ITEM_CONTENT_MIN <= len(v) <= ITEM_CONTENT_MAX:
        raise ValidationError(
            "content",
            f"Item content must be between {ITEM_CONTENT_MIN} and {ITEM_CONTENT_MAX} characters",
        )
    return v


def validate_username(value: str) -> str:
    v = value.strip()
    if not USERNAME_MIN <= len(v) <= USERNAME_MAX:
        raise ValidationError(
            "username",
            f"Username must be between {USERNAME_MIN} and {USERNAME_MAX} characters",
        )
    if not _USERNAME_RE.match(v):
        raise ValidationError("username", "Username contains invalid characters")
    return v


def validate_display_name(value: str | None) -> str | None:
    if value is None:
        return None
    v = value.strip()
    if len(v) > DISPLAY_NAME_MAX:
        raise ValidationError(
            "display_name", f"Display name must be at most {DISPLAY_NAME_MAX} characters"
        )
    return v


def validate_public_slug(value: str) -> str:
    # checked as sent; surrounding whitespace is not trimmed away
    if not _PUBLIC_SLUG_RE.fullmatch(value):
        raise ValidationError(
            "public_slug",
            "Slug must be 3-50 characters, lowercase letters, numbers, and hyphens only",
        )
    return value


def validate_api_key_name(value: str | None) -> str | None:
    if value is None:
        return None
    v = value.strip()
    if len(v) > API_KEY_NAME_MAX:
        raise ValidationError(
            "name", f"API key name must be at most {API_KEY_NAME_MAX} characters"
        )
    return v or None


def validate_scopes(value: Any) -> list[str]:
    if not isinstance(value, list) or not value:
        raise ValidationError("scopes", "At least one scope must be provided")
    scopes: list[str] = []
    for raw in value:
        if not isinstance(raw, str) or not _SCOPE_RE.match(raw.strip()):
            raise ValidationError("scopes", f"Invalid scope: {raw}")
        scope = raw.strip()
        if scope not in scopes:
            scopes.append(scope)
    return scopes
