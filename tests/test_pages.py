from __future__ import annotations

import pytest

from sharedlists.errors import NotFound
from sharedlists.pages import create_page, get_page, update_page


def test_get_page_raises_for_unknown_id(conn):
    with pytest.raises(NotFound) as excinfo:
        get_page(conn, "no-such-page")
    assert excinfo.value.message == "Page not found"


def test_blank_description_is_stored_as_null(conn, add_user):
    owner = add_user("alice")
    page = create_page(conn, owner["id"], {"title": "Notes", "description": "   "})
    assert page["description"] is None

    described = update_page(conn, page["id"], {"description": "weekly shop"})
    assert described["description"] == "weekly shop"

    cleared = update_page(conn, page["id"], {"description": ""})
    assert cleared["description"] is None
    stored = conn.execute("SELECT description FROM pages WHERE id = ?", (page["id"],)).fetchone()
    assert stored["description"] is None
