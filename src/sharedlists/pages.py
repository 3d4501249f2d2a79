from __future__ import annotations

import logging
import sqlite3
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from .access import PAGE_NOT_FOUND, PageAccess
from .errors import NotFound
from .validators import (
    optional_text,
    require_str,
    validate_description,
    validate_title,
)

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(UTC).isoformat()


def row_to_page(row: sqlite3.Row) -> dict[str, Any]:
    return {
        "id": row["id"],
        "title": row["title"],
        "description": row["description"],
        "creator_id": row["creator_id"],
        "public_slug": row["public_slug"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def page_with_permission(access: PageAccess) -> dict[str, Any]:
    data = row_to_page(access.page)
    data["is_creator"] = access.is_creator
    data["can_edit"] = access.can_edit
    return data


def get_page(conn: sqlite3.Connection, page_id: str) -> dict[str, Any]:
    row = conn.execute("SELECT * FROM pages WHERE id = ?", (page_id,)).fetchone()
    if row is None:
        raise NotFound(PAGE_NOT_FOUND)
    return row_to_page(row)


def list_pages_for_user(conn: sqlite3.Connection, user_id: str) -> list[dict[str, Any]]:
    """Pages the user created (newest first), followed by pages shared with them."""
    created = conn.execute(
        "SELECT * FROM pages WHERE creator_id = ? ORDER BY created_at DESC, id DESC",
        (user_id,),
    ).fetchall()
    shared = conn.execute(
        """
        SELECT p.*, pp.can_edit AS permission_can_edit
        FROM page_permissions pp
        JOIN pages p ON p.id = pp.page_id
        WHERE pp.user_id = ?
        ORDER BY pp.created_at DESC, p.id DESC
        """,
        (user_id,),
    ).fetchall()

    result: list[dict[str, Any]] = []
    for row in created:
        data = row_to_page(row)
        data.update({"is_creator": True, "can_edit": True})
        result.append(data)
    for row in shared:
        data = row_to_page(row)
        data.update({"is_creator": False, "can_edit": bool(row["permission_can_edit"])})
        result.append(data)
    return result


def create_page(
    conn: sqlite3.Connection, creator_id: str, payload: dict[str, Any]
) -> dict[str, Any]:
    title = validate_title(require_str(payload, "title"))
    description = validate_description(optional_text(payload, "description"))
    page_id = str(uuid4())
    created_at = _now()
    conn.execute(
        """
        INSERT INTO pages (id, title, description, creator_id, public_slug, created_at, updated_at)
        VALUES (?, ?, ?, ?, NULL, ?, ?)
        """,
        (page_id, title, description, creator_id, created_at, created_at),
    )
    logger.info("user %s created page %s", creator_id, page_id)
    return get_page(conn, page_id)


def update_page(
    conn: sqlite3.Connection, page_id: str, payload: dict[str, Any]
) -> dict[str, Any]:
    changes: dict[str, Any] = {}
    if payload.get("title") is not None:
        changes["title"] = validate_title(require_str(payload, "title"))
    if "description" in payload:
        changes["description"] = validate_description(optional_text(payload, "description"))
    if changes:
        assignments = ", ".join(f"{column} = ?" for column in changes)
        conn.execute(
            f"UPDATE pages SET {assignments}, updated_at = ? WHERE id = ?",
            (*changes.values(), _now(), page_id),
        )
    return get_page(conn, page_id)


def delete_page(conn: sqlite3.Connection, page_id: str) -> None:
    # lists, items and permissions go with it through ON DELETE CASCADE
    conn.execute("DELETE FROM pages WHERE id = ?", (page_id,))
    logger.info("deleted page %s", page_id)
