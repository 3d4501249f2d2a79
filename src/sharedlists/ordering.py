"""
Position bookkeeping for sibling sets.

Lists are ordered within a page and items within a list. Positions are integers that are
unique within a sibling set but need not be contiguous; readers always sort by
``position, created_at, id``.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from .errors import ValidationError
from .schemas import OrderedTable
from .validators import parse_position

logger = logging.getLogger(__name__)

_PARENT_COLUMNS: dict[str, str] = {"lists": "page_id", "list_items": "list_id"}
ORDER_BY = "position, created_at, id"


def _now() -> str:
    return datetime.now(UTC).isoformat()


@dataclass(frozen=True)
class SiblingScope:
    table: OrderedTable
    parent_id: str

    @property
    def parent_column(self) -> str:
        return _PARENT_COLUMNS[self.table]

    @classmethod
    def lists_of(cls, page_id: str) -> SiblingScope:
        return cls(table="lists", parent_id=page_id)

    @classmethod
    def items_of(cls, list_id: str) -> SiblingScope:
        return cls(table="list_items", parent_id=list_id)


@dataclass(frozen=True)
class Move:
    id: str
    position: int


def sibling_positions(conn: sqlite3.Connection, scope: SiblingScope) -> dict[str, int]:
    rows = conn.execute(
        f"SELECT id, position FROM {scope.table} WHERE {scope.parent_column} = ?",
        (scope.parent_id,),
    ).fetchall()
    return {row["id"]: row["position"] for row in rows}


def next_position(conn: sqlite3.Connection, scope: SiblingScope) -> int:
    row = conn.execute(
        f"SELECT COALESCE(MAX(position), -1) + 1 AS next FROM {scope.table} "
        f"WHERE {scope.parent_column} = ?",
        (scope.parent_id,),
    ).fetchone()
    return int(row["next"])


def make_room(
    conn: sqlite3.Connection,
    scope: SiblingScope,
    position: int,
    *,
    exclude_id: str | None = None,
) -> None:
    """
    Free ``position`` for a new or moved sibling.

    If another sibling holds ``position``, it and every sibling after it shift up by one.
    Shifting a contiguous run keeps positions unique.
    """
    params: list[Any] = [scope.parent_id, position]
    exclude_sql = ""
    if exclude_id is not None:
        exclude_sql = " AND id != ?"
        params.append(exclude_id)
    taken = conn.execute(
        f"SELECT 1 FROM {scope.table} WHERE {scope.parent_column} = ? AND position = ?"
        f"{exclude_sql}",
        tuple(params),
    ).fetchone()
    if not taken:
        return
    conn.execute(
        f"UPDATE {scope.table} SET position = position + 1 "
        f"WHERE {scope.parent_column} = ? AND position >= ?{exclude_sql}",
        tuple(params),
    )


def parse_moves(payload: Any) -> list[Move]:
    """Parse ``[{"id": ..., "position": ...}, ...]`` from a reorder request body."""
    if not isinstance(payload, list) or not payload:
        raise ValidationError("positions", "positions must be a non-empty array")
    moves: list[Move] = []
    seen_ids: set[str] = set()
    seen_positions: set[int] = set()
    for entry in payload:
        if not isinstance(entry, dict):
            raise ValidationError("positions", "each entry must be an object")
        entity_id = entry.get("id")
        if not isinstance(entity_id, str) or not entity_id.strip():
            raise ValidationError("positions", "each entry needs an id")
        position = parse_position(entry.get("position"), "position")
        if entity_id in seen_ids:
            raise ValidationError("positions", f"duplicate id in batch: {entity_id}")
        if position in seen_positions:
            raise ValidationError("positions", f"duplicate position in batch: {position}")
        seen_ids.add(entity_id)
        seen_positions.add(position)
        moves.append(Move(id=entity_id, position=position))
    return moves


def apply_reorder(conn: sqlite3.Connection, scope: SiblingScope, moves: list[Move]) -> None:
    """
    Apply a batch of position changes to one sibling set.

    Everything is validated before the first write, so a rejected batch leaves every
    position untouched. The caller's transaction makes the writes visible together.
    """
    current = sibling_positions(conn, scope)
    foreign = [move.id for move in moves if move.id not in current]
    if foreign:
        raise ValidationError(
            "positions", f"ids do not belong to this {_noun(scope)}: {', '.join(foreign)}"
        )

    final = dict(current)
    for move in moves:
        final[move.id] = move.position
    if len(set(final.values())) != len(final):
        raise ValidationError(
            "positions", "positions would collide with siblings outside the batch"
        )

    conn.executemany(
        f"UPDATE {scope.table} SET position = ?, updated_at = ? "
        f"WHERE id = ? AND {scope.parent_column} = ?",
        [(move.position, _now(), move.id, scope.parent_id) for move in moves],
    )
    logger.info(
        "reordered %d %s under %s", len(moves), scope.table, scope.parent_id
    )


def _noun(scope: SiblingScope) -> str:
    return "page" if scope.table == "lists" else "list"
