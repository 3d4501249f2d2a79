from __future__ import annotations

import importlib

import pytest

from sharedlists.db import get_connection, init_db
from sharedlists.sessions import create_session_token
from sharedlists.users import OAuthProfile, upsert_oauth_user

TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"


@pytest.fixture
def env(tmp_path, monkeypatch):
    monkeypatch.setenv("SHAREDLISTS_DB_PATH", str(tmp_path / "test.db"))
    monkeypatch.setenv("SHAREDLISTS_SECRET_KEY", TEST_SECRET)
    monkeypatch.setenv("SHAREDLISTS_RATE_LIMIT_ENABLED", "0")
    return monkeypatch


@pytest.fixture
def build_client(env):
    def _build(extra_env: dict[str, str] | None = None):
        for key, value in (extra_env or {}).items():
            env.setenv(key, value)
        import sharedlists.main

        importlib.reload(sharedlists.main)
        app = sharedlists.main.create_app()
        app.config.update(TESTING=True)
        return app.test_client()

    return _build


@pytest.fixture
def client(build_client):
    return build_client()


@pytest.fixture
def conn(env):
    init_db()
    with get_connection() as connection:
        yield connection


def profile_for(username: str) -> OAuthProfile:
    return OAuthProfile(
        external_id=f"ext-{username}",
        username=username,
        display_name=username.title(),
        email=f"{username}@example.com",
    )


@pytest.fixture
def make_user(env):
    """Create (or refresh) a user the way an OAuth login would, in its own transaction."""

    def _make(username: str) -> dict:
        init_db()
        with get_connection() as connection:
            return upsert_oauth_user(connection, profile_for(username))

    return _make


@pytest.fixture
def add_user(conn):
    """Like make_user, but inside the test's own connection."""

    def _add(username: str) -> dict:
        return upsert_oauth_user(conn, profile_for(username))

    return _add


def auth_headers(user: dict) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_session_token(user)}"}


@pytest.fixture
def headers():
    return auth_headers
