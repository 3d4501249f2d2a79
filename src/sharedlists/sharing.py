"""
Collaborator permissions and the anonymous public view.

Every function here assumes the caller already passed ``require_creator`` for the page, except
``get_public_page`` which is reachable without credentials and is keyed only by slug.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from .errors import Conflict, NotFound, ValidationError
from .lists import list_items, list_lists
from .pages import get_page
from .users import require_user, row_to_user
from .validators import (
    optional_bool,
    optional_text,
    require_bool,
    require_str,
    validate_public_slug,
)

logger = logging.getLogger(__name__)

PERMISSION_NOT_FOUND = "Permission not found"


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _permission_with_user(conn: sqlite3.Connection, row: sqlite3.Row) -> dict[str, Any]:
    user_row = conn.execute("SELECT * FROM users WHERE id = ?", (row["user_id"],)).fetchone()
    return {
        "id": row["id"],
        "page_id": row["page_id"],
        "user_id": row["user_id"],
        "can_edit": bool(row["can_edit"]),
        "granted_by": row["granted_by"],
        "created_at": row["created_at"],
        "user": row_to_user(user_row) if user_row else None,
    }


def _require_permission_row(
    conn: sqlite3.Connection, page_id: str, permission_id: str
) -> sqlite3.Row:
    row = conn.execute(
        "SELECT * FROM page_permissions WHERE id = ? AND page_id = ?",
        (permission_id, page_id),
    ).fetchone()
    if not row:
        raise NotFound(PERMISSION_NOT_FOUND)
    return row


def list_permissions(conn: sqlite3.Connection, page_id: str) -> list[dict[str, Any]]:
    rows = conn.execute(
        "SELECT * FROM page_permissions WHERE page_id = ? ORDER BY created_at, id",
        (page_id,),
    ).fetchall()
    return [_permission_with_user(conn, row) for row in rows]


def grant_permission(
    conn: sqlite3.Connection,
    page: sqlite3.Row,
    granted_by: str,
    payload: dict[str, Any],
) -> dict[str, Any]:
    user_id = require_str(payload, "user_id").strip()
    can_edit = optional_bool(payload, "can_edit") or False

    require_user(conn, user_id)
    if user_id == page["creator_id"]:
        raise ValidationError("user_id", "The page creator already has full access")

    existing = conn.execute(
        "SELECT 1 FROM page_permissions WHERE page_id = ? AND user_id = ?",
        (page["id"], user_id),
    ).fetchone()
    if existing:
        raise Conflict("User already has access to this page")

    permission_id = str(uuid4())
    try:
        conn.execute(
            """
            INSERT INTO page_permissions (id, page_id, user_id, can_edit, granted_by, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (permission_id, page["id"], user_id, int(can_edit), granted_by, _now()),
        )
    except sqlite3.IntegrityError as exc:
        raise Conflict("User already has access to this page") from exc

    logger.info(
        "granted %s access on page %s to user %s",
        "edit" if can_edit else "view",
        page["id"],
        user_id,
    )
    return _permission_with_user(conn, _require_permission_row(conn, page["id"], permission_id))


def update_permission(
    conn: sqlite3.Connection, page_id: str, permission_id: str, payload: dict[str, Any]
) -> dict[str, Any]:
    _require_permission_row(conn, page_id, permission_id)
    can_edit = require_bool(payload, "can_edit")
    conn.execute(
        "UPDATE page_permissions SET can_edit = ? WHERE id = ? AND page_id = ?",
        (int(can_edit), permission_id, page_id),
    )
    logger.info("set can_edit=%s on permission %s", can_edit, permission_id)
    return _permission_with_user(conn, _require_permission_row(conn, page_id, permission_id))


def revoke_permission(conn: sqlite3.Connection, page_id: str, permission_id: str) -> None:
    cursor = conn.execute(
        "DELETE FROM page_permissions WHERE id = ? AND page_id = ?",
        (permission_id, page_id),
    )
    if cursor.rowcount == 0:
        raise NotFound(PERMISSION_NOT_FOUND)
    logger.info("revoked permission %s on page %s", permission_id, page_id)


def set_public_slug(
    conn: sqlite3.Connection, page: sqlite3.Row, payload: dict[str, Any]
) -> dict[str, Any]:
    """Publish the page under ``public_slug``, or unpublish it when the slug is null."""
    raw = optional_text(payload, "public_slug")
    slug = validate_public_slug(raw) if raw is not None else None

    if slug is not None and slug != page["public_slug"]:
        taken = conn.execute(
            "SELECT 1 FROM pages WHERE public_slug = ? AND id != ?", (slug, page["id"])
        ).fetchone()
        if taken:
            raise Conflict("This slug is already in use")

    if slug != page["public_slug"]:
        try:
            conn.execute(
                "UPDATE pages SET public_slug = ?, updated_at = ? WHERE id = ?",
                (slug, _now(), page["id"]),
            )
        except sqlite3.IntegrityError as exc:
            raise Conflict("This slug is already in use") from exc
        logger.info("page %s public slug set to %s", page["id"], slug)

    return get_page(conn, page["id"])


def _public_item(item: dict[str, Any], show_checkboxes: bool) -> dict[str, Any]:
    data = {
        "id": item["id"],
        "content": item["content"],
        "position": item["position"],
    }
    if show_checkboxes:
        data["checked"] = item["checked"]
    return data


def get_public_page(conn: sqlite3.Connection, slug: str) -> dict[str, Any]:
    """
    Anonymous read view of a published page.

    Items of lists with checkboxes hidden carry no ``checked`` state at all. Lists that show
    progress carry ``progress`` computed from the full item set.
    """
    row = conn.execute("SELECT * FROM pages WHERE public_slug = ?", (slug,)).fetchone()
    if row is None:
        raise NotFound("Page not found")

    public_lists: list[dict[str, Any]] = []
    for entry in list_lists(conn, row["id"]):
        items = list_items(conn, entry["id"])
        data: dict[str, Any] = {
            "id": entry["id"],
            "title": entry["title"],
            "position": entry["position"],
            "show_checkboxes": entry["show_checkboxes"],
            "show_progress": entry["show_progress"],
            "items": [_public_item(item, entry["show_checkboxes"]) for item in items],
        }
        if entry["show_progress"]:
            data["progress"] = {
                "checked": sum(1 for item in items if item["checked"]),
                "total": len(items),
            }
        public_lists.append(data)

    creator = conn.execute(
        "SELECT username, display_name, profile_image_url FROM users WHERE id = ?",
        (row["creator_id"],),
    ).fetchone()
    return {
        "id": row["id"],
        "title": row["title"],
        "description": row["description"],
        "public_slug": row["public_slug"],
        "updated_at": row["updated_at"],
        "creator": dict(creator) if creator else None,
        "lists": public_lists,
    }
