from __future__ import annotations

import threading

import pytest

from sharedlists.db import get_connection
from sharedlists.errors import ValidationError
from sharedlists.lists import create_item, create_list, list_items, list_lists
from sharedlists.ordering import (
    Move,
    SiblingScope,
    apply_reorder,
    make_room,
    next_position,
    parse_moves,
)
from sharedlists.pages import create_page


@pytest.fixture
def page(conn, add_user):
    owner = add_user("alice")
    return create_page(conn, owner["id"], {"title": "Groceries"})


def _titles(conn, page_id):
    return [(entry["title"], entry["position"]) for entry in list_lists(conn, page_id)]


def test_next_position_starts_at_zero_and_follows_max(conn, page):
    scope = SiblingScope.lists_of(page["id"])
    assert next_position(conn, scope) == 0
    create_list(conn, page["id"], {"title": "A", "position": 7})
    assert next_position(conn, scope) == 8


def test_make_room_only_shifts_when_taken(conn, page):
    create_list(conn, page["id"], {"title": "A"})
    create_list(conn, page["id"], {"title": "B", "position": 5})
    scope = SiblingScope.lists_of(page["id"])

    make_room(conn, scope, 3)
    assert _titles(conn, page["id"]) == [("A", 0), ("B", 5)]

    make_room(conn, scope, 0)
    assert _titles(conn, page["id"]) == [("A", 1), ("B", 6)]


def test_create_at_explicit_position_keeps_positions_unique(conn, page):
    for title in ("A", "B", "C"):
        create_list(conn, page["id"], {"title": title})
    create_list(conn, page["id"], {"title": "Inserted", "position": 1})

    assert _titles(conn, page["id"]) == [("A", 0), ("Inserted", 1), ("B", 2), ("C", 3)]


def test_apply_reorder_yields_requested_order(conn, page):
    ids = {
        title: create_list(conn, page["id"], {"title": title})["id"] for title in ("A", "B", "C")
    }
    apply_reorder(
        conn,
        SiblingScope.lists_of(page["id"]),
        [Move(ids["C"], 0), Move(ids["A"], 1), Move(ids["B"], 2)],
    )
    assert _titles(conn, page["id"]) == [("C", 0), ("A", 1), ("B", 2)]


def test_apply_reorder_rejects_collision_with_sibling_outside_batch(conn, page):
    a = create_list(conn, page["id"], {"title": "A"})
    create_list(conn, page["id"], {"title": "B"})

    with pytest.raises(ValidationError):
        apply_reorder(conn, SiblingScope.lists_of(page["id"]), [Move(a["id"], 1)])
    assert _titles(conn, page["id"]) == [("A", 0), ("B", 1)]


def test_apply_reorder_does_not_touch_other_scopes(conn, page):
    todo = create_list(conn, page["id"], {"title": "Todo"})
    other = create_list(conn, page["id"], {"title": "Other"})
    x = create_item(conn, todo["id"], {"content": "x"})
    y = create_item(conn, todo["id"], {"content": "y"})
    z = create_item(conn, other["id"], {"content": "z"})

    apply_reorder(
        conn, SiblingScope.items_of(todo["id"]), [Move(x["id"], 1), Move(y["id"], 0)]
    )
    assert [item["content"] for item in list_items(conn, todo["id"])] == ["y", "x"]
    assert [(item["id"], item["position"]) for item in list_items(conn, other["id"])] == [
        (z["id"], 0)
    ]

    with pytest.raises(ValidationError):
        apply_reorder(conn, SiblingScope.items_of(todo["id"]), [Move(z["id"], 5)])
    assert list_items(conn, other["id"])[0]["position"] == 0


def test_ties_fall_back_to_creation_order(conn, page):
    first = create_list(conn, page["id"], {"title": "First"})
    second = create_list(conn, page["id"], {"title": "Second"})
    conn.execute("UPDATE lists SET position = 4 WHERE id IN (?, ?)", (first["id"], second["id"]))
    assert [entry["title"] for entry in list_lists(conn, page["id"])] == ["First", "Second"]


@pytest.mark.parametrize(
    "payload",
    [
        None,
        [],
        "positions",
        [{"position": 0}],
        [{"id": "a", "position": "0"}],
        [{"id": "a", "position": True}],
        [{"id": "a", "position": -1}],
        [{"id": "a", "position": 0}, {"id": "a", "position": 1}],
        [{"id": "a", "position": 0}, {"id": "b", "position": 0}],
    ],
)
def test_parse_moves_rejects_malformed_batches(payload):
    with pytest.raises(ValidationError):
        parse_moves(payload)


def test_parse_moves_accepts_sparse_positions():
    moves = parse_moves([{"id": "a", "position": 10}, {"id": "b", "position": 3}])
    assert moves == [Move("a", 10), Move("b", 3)]


def test_concurrent_creates_get_distinct_positions(env, make_user):
    owner = make_user("alice")
    with get_connection() as setup:
        page_id = create_page(setup, owner["id"], {"title": "Busy"})["id"]

    workers = 8
    barrier = threading.Barrier(workers)
    errors: list[Exception] = []

    def add_list(index: int) -> None:
        try:
            barrier.wait()
            with get_connection() as worker_conn:
                create_list(worker_conn, page_id, {"title": f"List {index}"})
        except Exception as exc:  # surfaced by the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=add_list, args=(index,)) for index in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    with get_connection() as check:
        entries = list_lists(check, page_id)
        assert sorted(entry["position"] for entry in entries) == list(range(workers))
        # A partial batch still applies once positions are unique.
        apply_reorder(
            check, SiblingScope.lists_of(page_id), [Move(entries[0]["id"], workers + 5)]
        )
        assert list_lists(check, page_id)[-1]["id"] == entries[0]["id"]
