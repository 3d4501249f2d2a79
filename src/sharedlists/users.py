from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from .errors import NotFound, ValidationError
from .validators import (
    optional_text,
    validate_display_name,
    validate_username,
)

logger = logging.getLogger(__name__)

SEARCH_MIN_QUERY = 2
SEARCH_LIMIT = 10


@dataclass(frozen=True)
class OAuthProfile:
    external_id: str
    username: str
    display_name: str | None = None
    profile_image_url: str | None = None
    email: str | None = None


def _now() -> str:
    return datetime.now(UTC).isoformat()


def row_to_user(row: sqlite3.Row) -> dict[str, Any]:
    return {
        "id": row["id"],
        "external_id": row["external_id"],
        "username": row["username"],
        "display_name": row["display_name"],
        "profile_image_url": row["profile_image_url"],
        "email": row["email"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def get_user(conn: sqlite3.Connection, user_id: str) -> dict[str, Any] | None:
    row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    return row_to_user(row) if row else None


def require_user(conn: sqlite3.Connection, user_id: str) -> dict[str, Any]:
    user = get_user(conn, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def upsert_oauth_user(conn: sqlite3.Connection, profile: OAuthProfile) -> dict[str, Any]:
    """Create the user on first login, refresh profile fields on later ones."""
    now = _now()
    existing = conn.execute(
        "SELECT id FROM users WHERE external_id = ?", (profile.external_id,)
    ).fetchone()
    if existing:
        conn.execute(
            """
            UPDATE users
            SET username = ?, display_name = ?, profile_image_url = ?, email = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                profile.username,
                profile.display_name,
                profile.profile_image_url,
                profile.email,
                now,
                existing["id"],
            ),
        )
        user_id = existing["id"]
    else:
        user_id = str(uuid4())
        conn.execute(
            """
            INSERT INTO users (
                id,
                external_id,
                username,
                display_name,
                profile_image_url,
                email,
                created_at,
                updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                user_id,
                profile.external_id,
                profile.username,
                profile.display_name,
                profile.profile_image_url,
                profile.email,
                now,
                now,
            ),
        )
        logger.info("created user %s for external id %s", user_id, profile.external_id)
    return require_user(conn, user_id)


def update_user(
    conn: sqlite3.Connection, user_id: str, payload: dict[str, Any]
) -> dict[str, Any]:
    """Apply a partial profile update; nullable fields are cleared by an explicit null."""
    user = require_user(conn, user_id)
    changes: dict[str, Any] = {}
    if "username" in payload:
        username = optional_text(payload, "username")
        if username is None:
            raise ValidationError("username", "username cannot be null")
        changes["username"] = validate_username(username)
    if "display_name" in payload:
        changes["display_name"] = validate_display_name(optional_text(payload, "display_name"))
    if "profile_image_url" in payload:
        url = optional_text(payload, "profile_image_url")
        changes["profile_image_url"] = url.strip() if url else None
    if "email" in payload:
        email = optional_text(payload, "email")
        changes["email"] = email.strip() if email else None

    if not changes:
        return user

    assignments = ", ".join(f"{column} = ?" for column in changes)
    conn.execute(
        f"UPDATE users SET {assignments}, updated_at = ? WHERE id = ?",
        (*changes.values(), _now(), user_id),
    )
    return require_user(conn, user_id)


def search_users(
    conn: sqlite3.Connection, query: str, exclude_user_id: str
) -> list[dict[str, Any]]:
    query = query.strip()
    if len(query) < SEARCH_MIN_QUERY:
        return []
    like = f"%{query}%"
    rows = conn.execute(
        """
        SELECT * FROM users
        WHERE (username LIKE ? OR display_name LIKE ?) AND id != ?
        ORDER BY username, id
        LIMIT ?
        """,
        (like, like, exclude_user_id, SEARCH_LIMIT),
    ).fetchall()
    return [row_to_user(row) for row in rows]
