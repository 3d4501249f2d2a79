"""
Long-lived bearer credentials.

Only an HMAC of each token is stored, keyed by the application secret, so a leaked database
alone cannot be used to authenticate. The plaintext token is returned once, at creation.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import sqlite3
import string
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from .config import secret_key
from .errors import Conflict, NotFound
from .validators import optional_text, validate_api_key_name, validate_scopes

logger = logging.getLogger(__name__)

TOKEN_LENGTH = 64
TOKEN_ALPHABET = string.ascii_letters + string.digits
MAX_CREATE_ATTEMPTS = 3
API_KEY_NOT_FOUND = "API key not found"


@dataclass(frozen=True)
class VerifiedKey:
    key_id: str
    user_id: str
    scopes: tuple[str, ...]


def _now() -> str:
    return datetime.now(UTC).isoformat()


def generate_token() -> str:
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))


def hash_token(token: str) -> str:
    return hmac.new(secret_key().encode("utf-8"), token.encode("utf-8"), hashlib.sha256).hexdigest()


def row_to_api_key(row: sqlite3.Row) -> dict[str, Any]:
    return {
        "id": row["id"],
        "name": row["name"],
        "scopes": row["scopes"].split(",") if row["scopes"] else [],
        "revoked": bool(row["revoked"]),
        "created_at": row["created_at"],
    }


def _require_key_row(conn: sqlite3.Connection, user_id: str, key_id: str) -> sqlite3.Row:
    row = conn.execute(
        "SELECT * FROM api_keys WHERE id = ? AND user_id = ?", (key_id, user_id)
    ).fetchone()
    if not row:
        raise NotFound(API_KEY_NOT_FOUND)
    return row


def create_api_key(
    conn: sqlite3.Connection, user_id: str, payload: dict[str, Any]
) -> dict[str, Any]:
    name = validate_api_key_name(optional_text(payload, "name"))
    scopes = validate_scopes(payload.get("scopes", ["read"]))

    key_id = str(uuid4())
    created_at = _now()
    for attempt in range(1, MAX_CREATE_ATTEMPTS + 1):
        token = generate_token()
        try:
            conn.execute(
                """
                INSERT INTO api_keys (id, user_id, name, token_hash, scopes, revoked, created_at)
                VALUES (?, ?, ?, ?, ?, 0, ?)
                """,
                (key_id, user_id, name, hash_token(token), ",".join(scopes), created_at),
            )
        except sqlite3.IntegrityError:
            logger.warning("api key hash collision on attempt %d", attempt)
            continue
        logger.info("issued api key %s for user %s scopes=%s", key_id, user_id, scopes)
        data = row_to_api_key(_require_key_row(conn, user_id, key_id))
        data["token"] = token
        return data
    raise Conflict("Could not generate a unique API key, try again")


def list_api_keys(conn: sqlite3.Connection, user_id: str) -> list[dict[str, Any]]:
    rows = conn.execute(
        "SELECT * FROM api_keys WHERE user_id = ? ORDER BY created_at DESC, id DESC",
        (user_id,),
    ).fetchall()
    return [row_to_api_key(row) for row in rows]


def revoke_api_key(conn: sqlite3.Connection, user_id: str, key_id: str) -> None:
    row = _require_key_row(conn, user_id, key_id)
    if row["revoked"]:
        return
    conn.execute("UPDATE api_keys SET revoked = 1 WHERE id = ?", (key_id,))
    logger.info("revoked api key %s", key_id)


def delete_api_key(conn: sqlite3.Connection, user_id: str, key_id: str) -> None:
    row = _require_key_row(conn, user_id, key_id)
    if not row["revoked"]:
        raise Conflict("Revoke the API key before deleting it")
    conn.execute("DELETE FROM api_keys WHERE id = ?", (key_id,))
    logger.info("deleted api key %s", key_id)


def verify_token(conn: sqlite3.Connection, token: str) -> VerifiedKey | None:
    if not token:
        return None
    row = conn.execute(
        "SELECT id, user_id, scopes FROM api_keys WHERE token_hash = ? AND revoked = 0",
        (hash_token(token),),
    ).fetchone()
    if not row:
        return None
    return VerifiedKey(
        key_id=row["id"],
        user_id=row["user_id"],
        scopes=tuple(row["scopes"].split(",")) if row["scopes"] else (),
    )
