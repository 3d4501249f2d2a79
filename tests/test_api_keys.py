from __future__ import annotations

import pytest

from sharedlists import api_keys
from sharedlists.errors import Conflict, NotFound, ValidationError


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def test_create_stores_only_a_hash(conn, add_user):
    user = add_user("alice")
    created = api_keys.create_api_key(conn, user["id"], {"name": " cli ", "scopes": ["read", "read"]})

    token = created["token"]
    assert len(token) == api_keys.TOKEN_LENGTH
    assert token.isalnum()
    assert created["name"] == "cli"
    assert created["scopes"] == ["read"]
    assert created["revoked"] is False

    stored = conn.execute("SELECT token_hash FROM api_keys WHERE id = ?", (created["id"],)).fetchone()
    assert stored["token_hash"] != token
    assert stored["token_hash"] == api_keys.hash_token(token)

    listed = api_keys.list_api_keys(conn, user["id"])
    assert [key["id"] for key in listed] == [created["id"]]
    assert "token" not in listed[0]
    assert "token_hash" not in listed[0]


def test_verify_token_and_revoke(conn, add_user):
    user = add_user("alice")
    created = api_keys.create_api_key(conn, user["id"], {"scopes": ["read", "write"]})

    verified = api_keys.verify_token(conn, created["token"])
    assert verified is not None
    assert verified.user_id == user["id"]
    assert verified.scopes == ("read", "write")
    assert api_keys.verify_token(conn, "x" * 64) is None

    api_keys.revoke_api_key(conn, user["id"], created["id"])
    assert api_keys.verify_token(conn, created["token"]) is None
    # Revoking twice is a no-op.
    api_keys.revoke_api_key(conn, user["id"], created["id"])
    assert api_keys.list_api_keys(conn, user["id"])[0]["revoked"] is True


def test_hard_delete_requires_revocation(conn, add_user):
    user = add_user("alice")
    created = api_keys.create_api_key(conn, user["id"], {})

    with pytest.raises(Conflict):
        api_keys.delete_api_key(conn, user["id"], created["id"])

    api_keys.revoke_api_key(conn, user["id"], created["id"])
    api_keys.delete_api_key(conn, user["id"], created["id"])
    assert api_keys.list_api_keys(conn, user["id"]) == []

    with pytest.raises(NotFound):
        api_keys.revoke_api_key(conn, user["id"], created["id"])


def test_keys_are_scoped_to_their_owner(conn, add_user):
    alice = add_user("alice")
    bob = add_user("bob")
    created = api_keys.create_api_key(conn, alice["id"], {})
    with pytest.raises(NotFound):
        api_keys.revoke_api_key(conn, bob["id"], created["id"])
    assert api_keys.list_api_keys(conn, bob["id"]) == []


def test_hash_collision_is_retried(conn, add_user, monkeypatch):
    user = add_user("alice")
    monkeypatch.setattr(api_keys, "generate_token", lambda: "a" * 64)
    api_keys.create_api_key(conn, user["id"], {})

    tokens = iter(["a" * 64, "b" * 64])
    monkeypatch.setattr(api_keys, "generate_token", lambda: next(tokens))
    second = api_keys.create_api_key(conn, user["id"], {})
    assert second["token"] == "b" * 64

    monkeypatch.setattr(api_keys, "generate_token", lambda: "a" * 64)
    with pytest.raises(Conflict):
        api_keys.create_api_key(conn, user["id"], {})


@pytest.mark.parametrize("scopes", [[], "read", ["READ"], ["read", 7]])
def test_invalid_scopes_are_rejected(conn, add_user, scopes):
    user = add_user("alice")
    with pytest.raises(ValidationError) as excinfo:
        api_keys.create_api_key(conn, user["id"], {"scopes": scopes})
    assert excinfo.value.fields[0].field == "scopes"


def test_api_key_http_flow(client, make_user, headers):
    session = headers(make_user("alice"))

    resp = client.post(
        "/api/settings/api-keys", json={"name": "reader", "scopes": ["read"]}, headers=session
    )
    assert resp.status_code == 201
    reader = resp.get_json()
    writer = client.post(
        "/api/settings/api-keys", json={"name": "writer", "scopes": ["read", "write"]}, headers=session
    ).get_json()

    assert client.get("/api/users/me", headers=_bearer(reader["token"])).status_code == 200
    assert client.get("/api/pages", headers=_bearer(reader["token"])).status_code == 200
    denied = client.post("/api/pages", json={"title": "Nope"}, headers=_bearer(reader["token"]))
    assert denied.status_code == 403
    assert "write" in denied.get_json()["error"]
    assert (
        client.post("/api/pages", json={"title": "Yes"}, headers=_bearer(writer["token"])).status_code
        == 201
    )
    # X-API-Key works as well as Authorization.
    assert client.get("/api/pages", headers={"X-API-Key": reader["token"]}).status_code == 200

    # Key management needs a session.
    assert client.get("/api/settings/api-keys", headers=_bearer(writer["token"])).status_code == 403

    listed = client.get("/api/settings/api-keys", headers=session).get_json()
    assert [key["name"] for key in listed] == ["writer", "reader"]
    assert all("token" not in key for key in listed)

    url = f"/api/settings/api-keys/{reader['id']}"
    assert client.delete(f"{url}?hard=true", headers=session).status_code == 409
    assert client.delete(url, headers=session).status_code == 204
    assert client.delete(url, headers=session).status_code == 204
    assert client.get("/api/pages", headers=_bearer(reader["token"])).status_code == 401
    assert client.delete(f"{url}?hard=true", headers=session).status_code == 204
    assert client.delete(url, headers=session).status_code == 404

    invalid = client.post("/api/settings/api-keys", json={"scopes": []}, headers=session)
    assert invalid.status_code == 400
