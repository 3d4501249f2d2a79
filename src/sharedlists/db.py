from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator

from .config import db_path


BUSY_TIMEOUT_S = 30.0


def _connect() -> sqlite3.Connection:
    # transactions are opened explicitly in get_connection
    conn = sqlite3.connect(db_path(), timeout=BUSY_TIMEOUT_S, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db() -> None:
    with _connect() as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                external_id TEXT UNIQUE NOT NULL,
                username TEXT NOT NULL,
                display_name TEXT,
                profile_image_url TEXT,
                email TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS pages (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                description TEXT,
                creator_id TEXT NOT NULL,
                public_slug TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                FOREIGN KEY(creator_id) REFERENCES users(id) ON DELETE CASCADE
            );
            CREATE TABLE IF NOT EXISTS page_permissions (
                id TEXT PRIMARY KEY,
                page_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                can_edit INTEGER NOT NULL DEFAULT 0,
                granted_by TEXT NOT NULL,
                created_at TEXT NOT NULL,
                UNIQUE(page_id, user_id),
                FOREIGN KEY(page_id) REFERENCES pages(id) ON DELETE CASCADE,
                FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE,
                FOREIGN KEY(granted_by) REFERENCES users(id) ON DELETE CASCADE
            );
            CREATE TABLE IF NOT EXISTS lists (
                id TEXT PRIMARY KEY,
                page_id TEXT NOT NULL,
                title TEXT NOT NULL,
                position INTEGER NOT NULL DEFAULT 0,
                show_checkboxes INTEGER NOT NULL DEFAULT 1,
                show_progress INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                FOREIGN KEY(page_id) REFERENCES pages(id) ON DELETE CASCADE
            );
            CREATE TABLE IF NOT EXISTS list_items (
                id TEXT PRIMARY KEY,
                list_id TEXT NOT NULL,
                content TEXT NOT NULL,
                checked INTEGER NOT NULL DEFAULT 0,
                position INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                FOREIGN KEY(list_id) REFERENCES lists(id) ON DELETE CASCADE
            );
            CREATE TABLE IF NOT EXISTS api_keys (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                name TEXT,
                token_hash TEXT NOT NULL UNIQUE,
                scopes TEXT NOT NULL,
                revoked INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
            );
            CREATE INDEX IF NOT EXISTS idx_users_external_id ON users(external_id);
            CREATE INDEX IF NOT EXISTS idx_pages_creator ON pages(creator_id);
            CREATE UNIQUE INDEX IF NOT EXISTS idx_pages_public_slug ON pages(public_slug);
            CREATE INDEX IF NOT EXISTS idx_page_permissions_page ON page_permissions(page_id);
            CREATE INDEX IF NOT EXISTS idx_page_permissions_user ON page_permissions(user_id);
            CREATE INDEX IF NOT EXISTS idx_lists_page_position ON lists(page_id, position);
            CREATE INDEX IF NOT EXISTS idx_list_items_list_position
            ON list_items(list_id, position);
            CREATE INDEX IF NOT EXISTS idx_api_keys_user ON api_keys(user_id);
            """
        )


@contextmanager
def get_connection() -> Iterator[sqlite3.Connection]:
    """
    One connection per unit of work.

    Everything executed inside the block is a single transaction: it is committed when the
    block exits normally and rolled back when it raises. The transaction takes the write lock
    up front (``BEGIN IMMEDIATE``), so reads that decide a later write, such as the next free
    sibling position, cannot interleave with another writer.
    """
    conn = _connect()
    try:
        conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()
