from __future__ import annotations

import pytest

from sharedlists.access import (
    require_creator,
    require_edit,
    require_list_edit,
    require_list_view,
    require_view,
    resolve_access,
)
from sharedlists.errors import Forbidden, NotFound
from sharedlists.lists import create_list
from sharedlists.pages import create_page
from sharedlists.sharing import grant_permission


@pytest.fixture
def members(conn, add_user):
    creator = add_user("alice")
    editor = add_user("bob")
    viewer = add_user("carol")
    stranger = add_user("dave")
    page = create_page(conn, creator["id"], {"title": "Shared"})
    page_row = conn.execute("SELECT * FROM pages WHERE id = ?", (page["id"],)).fetchone()
    grant_permission(conn, page_row, creator["id"], {"user_id": editor["id"], "can_edit": True})
    grant_permission(conn, page_row, creator["id"], {"user_id": viewer["id"], "can_edit": False})
    return {
        "page": page,
        "creator": creator,
        "editor": editor,
        "viewer": viewer,
        "stranger": stranger,
    }


def test_edit_implies_view(conn, members):
    flags = {}
    for role in ("creator", "editor", "viewer", "stranger"):
        access = resolve_access(conn, members["page"]["id"], members[role]["id"])
        assert access is not None
        assert access.can_view or not access.can_edit
        flags[role] = (access.can_view, access.can_edit, access.is_creator)
    assert flags == {
        "creator": (True, True, True),
        "editor": (True, True, False),
        "viewer": (True, False, False),
        "stranger": (False, False, False),
    }


def test_unknown_and_hidden_pages_look_the_same(conn, members):
    with pytest.raises(NotFound) as missing:
        require_view(conn, "no-such-page", members["stranger"]["id"])
    with pytest.raises(NotFound) as hidden:
        require_view(conn, members["page"]["id"], members["stranger"]["id"])
    assert missing.value.message == hidden.value.message
    # Edit checks on a hidden page also answer NotFound, not Forbidden.
    with pytest.raises(NotFound):
        require_edit(conn, members["page"]["id"], members["stranger"]["id"])


def test_viewer_and_editor_limits(conn, members):
    page_id = members["page"]["id"]
    require_view(conn, page_id, members["viewer"]["id"])
    with pytest.raises(Forbidden):
        require_edit(conn, page_id, members["viewer"]["id"])

    assert require_edit(conn, page_id, members["editor"]["id"]).can_edit
    with pytest.raises(Forbidden):
        require_creator(conn, page_id, members["editor"]["id"])

    assert require_creator(conn, page_id, members["creator"]["id"]).is_creator


def test_list_level_checks_follow_the_page(conn, members):
    todo = create_list(conn, members["page"]["id"], {"title": "Todo"})

    access = require_list_view(conn, todo["id"], members["viewer"]["id"])
    assert access.page_id == members["page"]["id"]
    with pytest.raises(Forbidden):
        require_list_edit(conn, todo["id"], members["viewer"]["id"])
    require_list_edit(conn, todo["id"], members["editor"]["id"])

    with pytest.raises(NotFound):
        require_list_view(conn, todo["id"], members["stranger"]["id"])
    with pytest.raises(NotFound):
        require_list_view(conn, "no-such-list", members["creator"]["id"])
