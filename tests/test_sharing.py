from __future__ import annotations

import pytest

from sharedlists import sharing
from sharedlists.errors import Conflict, NotFound, ValidationError
from sharedlists.lists import create_item, create_list
from sharedlists.pages import create_page


def _page_row(conn, page_id):
    return conn.execute("SELECT * FROM pages WHERE id = ?", (page_id,)).fetchone()


@pytest.fixture
def shared(conn, add_user):
    alice = add_user("alice")
    bob = add_user("bob")
    page = create_page(conn, alice["id"], {"title": "Trip"})
    return {"alice": alice, "bob": bob, "page": page}


def test_grant_embeds_user_and_defaults_to_view(conn, shared):
    page_row = _page_row(conn, shared["page"]["id"])
    permission = sharing.grant_permission(
        conn, page_row, shared["alice"]["id"], {"user_id": shared["bob"]["id"]}
    )
    assert permission["can_edit"] is False
    assert permission["granted_by"] == shared["alice"]["id"]
    assert permission["user"]["username"] == "bob"
    assert sharing.list_permissions(conn, shared["page"]["id"]) == [permission]


def test_grant_rejects_creator_duplicates_and_unknown_users(conn, shared):
    page_row = _page_row(conn, shared["page"]["id"])
    alice_id = shared["alice"]["id"]

    with pytest.raises(ValidationError) as excinfo:
        sharing.grant_permission(conn, page_row, alice_id, {"user_id": alice_id})
    assert excinfo.value.fields[0].field == "user_id"

    sharing.grant_permission(conn, page_row, alice_id, {"user_id": shared["bob"]["id"]})
    with pytest.raises(Conflict):
        sharing.grant_permission(
            conn, page_row, alice_id, {"user_id": shared["bob"]["id"], "can_edit": True}
        )

    with pytest.raises(NotFound):
        sharing.grant_permission(conn, page_row, alice_id, {"user_id": "nobody"})

    with pytest.raises(ValidationError):
        sharing.grant_permission(
            conn, page_row, alice_id, {"user_id": shared["bob"]["id"], "can_edit": "yes"}
        )

    creator_rows = conn.execute(
        "SELECT COUNT(*) AS n FROM page_permissions WHERE user_id = ?", (alice_id,)
    ).fetchone()
    assert creator_rows["n"] == 0


def test_update_and_revoke(conn, shared):
    page_id = shared["page"]["id"]
    permission = sharing.grant_permission(
        conn, _page_row(conn, page_id), shared["alice"]["id"], {"user_id": shared["bob"]["id"]}
    )

    updated = sharing.update_permission(conn, page_id, permission["id"], {"can_edit": True})
    assert updated["can_edit"] is True
    with pytest.raises(ValidationError):
        sharing.update_permission(conn, page_id, permission["id"], {})

    sharing.revoke_permission(conn, page_id, permission["id"])
    assert sharing.list_permissions(conn, page_id) == []
    with pytest.raises(NotFound):
        sharing.revoke_permission(conn, page_id, permission["id"])
    with pytest.raises(NotFound):
        sharing.update_permission(conn, page_id, permission["id"], {"can_edit": False})


def test_public_slug_lifecycle(conn, shared):
    page_id = shared["page"]["id"]
    other = create_page(conn, shared["bob"]["id"], {"title": "Other"})

    published = sharing.set_public_slug(conn, _page_row(conn, page_id), {"public_slug": "road-trip"})
    assert published["public_slug"] == "road-trip"

    # Setting the same slug again is not a conflict with itself.
    again = sharing.set_public_slug(conn, _page_row(conn, page_id), {"public_slug": "road-trip"})
    assert again["updated_at"] == published["updated_at"]

    with pytest.raises(Conflict):
        sharing.set_public_slug(conn, _page_row(conn, other["id"]), {"public_slug": "road-trip"})
    with pytest.raises(ValidationError):
        sharing.set_public_slug(conn, _page_row(conn, other["id"]), {"public_slug": "No Spaces"})

    cleared = sharing.set_public_slug(conn, _page_row(conn, page_id), {"public_slug": None})
    assert cleared["public_slug"] is None
    with pytest.raises(NotFound):
        sharing.get_public_page(conn, "road-trip")

    # The freed slug can be claimed by another page.
    sharing.set_public_slug(conn, _page_row(conn, other["id"]), {"public_slug": "road-trip"})
    assert sharing.get_public_page(conn, "road-trip")["id"] == other["id"]


def test_public_view_hides_checked_state_and_reports_progress(conn, shared):
    page_id = shared["page"]["id"]
    plain = create_list(
        conn, page_id, {"title": "Plain", "show_checkboxes": False, "show_progress": False}
    )
    tracked = create_list(conn, page_id, {"title": "Tracked"})
    create_item(conn, plain["id"], {"content": "secret", "checked": True})
    create_item(conn, tracked["id"], {"content": "done", "checked": True})
    create_item(conn, tracked["id"], {"content": "todo"})
    sharing.set_public_slug(conn, _page_row(conn, page_id), {"public_slug": "trip-plan"})

    view = sharing.get_public_page(conn, "trip-plan")
    assert view["title"] == "Trip"
    assert view["creator"]["username"] == "alice"
    assert "email" not in view["creator"]

    by_title = {entry["title"]: entry for entry in view["lists"]}
    assert [entry["title"] for entry in view["lists"]] == ["Plain", "Tracked"]
    assert "checked" not in by_title["Plain"]["items"][0]
    assert "progress" not in by_title["Plain"]
    assert [item["checked"] for item in by_title["Tracked"]["items"]] == [True, False]
    assert by_title["Tracked"]["progress"] == {"checked": 1, "total": 2}


def test_unpublished_page_has_no_public_view(conn, shared):
    with pytest.raises(NotFound):
        sharing.get_public_page(conn, "missing-slug")
