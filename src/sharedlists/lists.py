from __future__ import annotations

import logging
import sqlite3
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from .errors import NotFound
from .ordering import (
    ORDER_BY,
    SiblingScope,
    apply_reorder,
    make_room,
    next_position,
    parse_moves,
)
from .validators import (
    optional_bool,
    optional_position,
    require_str,
    validate_item_content,
    validate_title,
)

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(UTC).isoformat()


def row_to_list(row: sqlite3.Row) -> dict[str, Any]:
    return {
        "id": row["id"],
        "page_id": row["page_id"],
        "title": row["title"],
        "position": row["position"],
        "show_checkboxes": bool(row["show_checkboxes"]),
        "show_progress": bool(row["show_progress"]),
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def row_to_item(row: sqlite3.Row) -> dict[str, Any]:
    return {
        "id": row["id"],
        "list_id": row["list_id"],
        "content": row["content"],
        "checked": bool(row["checked"]),
        "position": row["position"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


# Lists


def list_lists(conn: sqlite3.Connection, page_id: str) -> list[dict[str, Any]]:
    rows = conn.execute(
        f"SELECT * FROM lists WHERE page_id = ? ORDER BY {ORDER_BY}", (page_id,)
    ).fetchall()
    return [row_to_list(row) for row in rows]


def get_list(conn: sqlite3.Connection, page_id: str, list_id: str) -> dict[str, Any]:
    row = conn.execute(
        "SELECT * FROM lists WHERE id = ? AND page_id = ?", (list_id, page_id)
    ).fetchone()
    if not row:
        raise NotFound("List not found")
    return row_to_list(row)


def get_list_with_items(
    conn: sqlite3.Connection, page_id: str, list_id: str
) -> dict[str, Any]:
    data = get_list(conn, page_id, list_id)
    data["items"] = list_items(conn, list_id)
    return data


def create_list(
    conn: sqlite3.Connection, page_id: str, payload: dict[str, Any]
) -> dict[str, Any]:
    title = validate_title(require_str(payload, "title"))
    position = optional_position(payload)
    show_checkboxes = optional_bool(payload, "show_checkboxes")
    show_progress = optional_bool(payload, "show_progress")

    scope = SiblingScope.lists_of(page_id)
    if position is None:
        position = next_position(conn, scope)
    else:
        make_room(conn, scope, position)

    list_id = str(uuid4())
    created_at = _now()
    conn.execute(
        """
        INSERT INTO lists (
            id,
            page_id,
            title,
            position,
            show_checkboxes,
            show_progress,
            created_at,
            updated_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            list_id,
            page_id,
            title,
            position,
            int(show_checkboxes if show_checkboxes is not None else True),
            int(show_progress if show_progress is not None else True),
            created_at,
            created_at,
        ),
    )
    logger.info("created list %s on page %s at position %d", list_id, page_id, position)
    return get_list(conn, page_id, list_id)


def update_list(
    conn: sqlite3.Connection, page_id: str, list_id: str, payload: dict[str, Any]
) -> dict[str, Any]:
    get_list(conn, page_id, list_id)
    changes: dict[str, Any] = {}
    if payload.get("title") is not None:
        changes["title"] = validate_title(require_str(payload, "title"))
    for flag in ("show_checkboxes", "show_progress"):
        value = optional_bool(payload, flag)
        if value is not None:
            changes[flag] = int(value)
    position = optional_position(payload)
    if position is not None:
        make_room(conn, SiblingScope.lists_of(page_id), position, exclude_id=list_id)
        changes["position"] = position

    if changes:
        assignments = ", ".join(f"{column} = ?" for column in changes)
        conn.execute(
            f"UPDATE lists SET {assignments}, updated_at = ? WHERE id = ? AND page_id = ?",
            (*changes.values(), _now(), list_id, page_id),
        )
    return get_list(conn, page_id, list_id)


def delete_list(conn: sqlite3.Connection, page_id: str, list_id: str) -> None:
    cursor = conn.execute("DELETE FROM lists WHERE id = ? AND page_id = ?", (list_id, page_id))
    if cursor.rowcount == 0:
        raise NotFound("List not found")
    logger.info("deleted list %s from page %s", list_id, page_id)


def reorder_lists(
    conn: sqlite3.Connection, page_id: str, positions: Any
) -> list[dict[str, Any]]:
    apply_reorder(conn, SiblingScope.lists_of(page_id), parse_moves(positions))
    return list_lists(conn, page_id)


# Items


def list_items(conn: sqlite3.Connection, list_id: str) -> list[dict[str, Any]]:
    rows = conn.execute(
        f"SELECT * FROM list_items WHERE list_id = ? ORDER BY {ORDER_BY}", (list_id,)
    ).fetchall()
    return [row_to_item(row) for row in rows]


def get_item(conn: sqlite3.Connection, list_id: str, item_id: str) -> dict[str, Any]:
    row = conn.execute(
        "SELECT * FROM list_items WHERE id = ? AND list_id = ?", (item_id, list_id)
    ).fetchone()
    if not row:
        raise NotFound("Item not found")
    return row_to_item(row)


def create_item(
    conn: sqlite3.Connection, list_id: str, payload: dict[str, Any]
) -> dict[str, Any]:
    content = validate_item_content(require_str(payload, "content"))
    position = optional_position(payload)
    checked = optional_bool(payload, "checked") or False

    scope = SiblingScope.items_of(list_id)
    if position is None:
        position = next_position(conn, scope)
    else:
        make_room(conn, scope, position)

    item_id = str(uuid4())
    created_at = _now()
    conn.execute(
        """
        INSERT INTO list_items (id, list_id, content, checked, position, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (item_id, list_id, content, int(checked), position, created_at, created_at),
    )
    return get_item(conn, list_id, item_id)


def update_item(
    conn: sqlite3.Connection, list_id: str, item_id: str, payload: dict[str, Any]
) -> dict[str, Any]:
    get_item(conn, list_id, item_id)
    changes: dict[str, Any] = {}
    if payload.get("content") is not None:
        changes["content"] = validate_item_content(require_str(payload, "content"))
    checked = optional_bool(payload, "checked")
    if checked is not None:
        changes["checked"] = int(checked)
    position = optional_position(payload)
    if position is not None:
        make_room(conn, SiblingScope.items_of(list_id), position, exclude_id=item_id)
        changes["position"] = position

    if changes:
        assignments = ", ".join(f"{column} = ?" for column in changes)
        conn.execute(
            f"UPDATE list_items SET {assignments}, updated_at = ? WHERE id = ? AND list_id = ?",
            (*changes.values(), _now(), item_id, list_id),
        )
    return get_item(conn, list_id, item_id)


def delete_item(conn: sqlite3.Connection, list_id: str, item_id: str) -> None:
    cursor = conn.execute(
        "DELETE FROM list_items WHERE id = ? AND list_id = ?", (item_id, list_id)
    )
    if cursor.rowcount == 0:
        raise NotFound("Item not found")


def reorder_items(
    conn: sqlite3.Connection, list_id: str, positions: Any
) -> list[dict[str, Any]]:
    apply_reorder(conn, SiblingScope.items_of(list_id), parse_moves(positions))
    return list_items(conn, list_id)
