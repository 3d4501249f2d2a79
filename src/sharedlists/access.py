"""
Page-level authorization.

A page's creator has full rights and is never stored in ``page_permissions``. Any other user
needs a permission row: ``can_edit = 1`` grants edit, ``can_edit = 0`` grants view only.

Callers that may not view a page get the same ``NotFound`` as callers asking for a page that
does not exist, so page ids cannot be probed. ``Forbidden`` is only raised once the caller is
known to be able to see the page.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any

from .errors import Forbidden, NotFound

PAGE_NOT_FOUND = "Page not found"


@dataclass(frozen=True)
class PageAccess:
    page: sqlite3.Row
    is_creator: bool
    can_view: bool
    can_edit: bool

    @property
    def page_id(self) -> str:
        return self.page["id"]


def can_view(page: sqlite3.Row | dict[str, Any], user_id: str | None, permission: Any) -> bool:
    if user_id is None:
        return False
    return page["creator_id"] == user_id or permission is not None


def can_edit(page: sqlite3.Row | dict[str, Any], user_id: str | None, permission: Any) -> bool:
    if user_id is None:
        return False
    if page["creator_id"] == user_id:
        return True
    return permission is not None and bool(permission["can_edit"])


def get_permission_row(
    conn: sqlite3.Connection, page_id: str, user_id: str
) -> sqlite3.Row | None:
    return conn.execute(
        "SELECT * FROM page_permissions WHERE page_id = ? AND user_id = ?",
        (page_id, user_id),
    ).fetchone()


def resolve_access(conn: sqlite3.Connection, page_id: str, user_id: str) -> PageAccess | None:
    page = conn.execute("SELECT * FROM pages WHERE id = ?", (page_id,)).fetchone()
    if page is None:
        return None
    is_creator = page["creator_id"] == user_id
    permission = None if is_creator else get_permission_row(conn, page_id, user_id)
    return PageAccess(
        page=page,
        is_creator=is_creator,
        can_view=can_view(page, user_id, permission),
        can_edit=can_edit(page, user_id, permission),
    )


def require_view(conn: sqlite3.Connection, page_id: str, user_id: str) -> PageAccess:
    access = resolve_access(conn, page_id, user_id)
    if access is None or not access.can_view:
        raise NotFound(PAGE_NOT_FOUND)
    return access


def require_edit(conn: sqlite3.Connection, page_id: str, user_id: str) -> PageAccess:
    access = require_view(conn, page_id, user_id)
    if not access.can_edit:
        raise Forbidden("You do not have edit access to this page")
    return access


def require_creator(conn: sqlite3.Connection, page_id: str, user_id: str) -> PageAccess:
    access = require_view(conn, page_id, user_id)
    if not access.is_creator:
        raise Forbidden("Only the page creator can do this")
    return access


def page_id_for_list(conn: sqlite3.Connection, list_id: str) -> str | None:
    row = conn.execute("SELECT page_id FROM lists WHERE id = ?", (list_id,)).fetchone()
    return row["page_id"] if row else None


def require_list_view(conn: sqlite3.Connection, list_id: str, user_id: str) -> PageAccess:
    page_id = page_id_for_list(conn, list_id)
    if page_id is None:
        raise NotFound("List not found")
    access = resolve_access(conn, page_id, user_id)
    if access is None or not access.can_view:
        raise NotFound("List not found")
    return access


def require_list_edit(conn: sqlite3.Connection, list_id: str, user_id: str) -> PageAccess:
    access = require_list_view(conn, list_id, user_id)
    if not access.can_edit:
        raise Forbidden("You do not have edit access to this page")
    return access
