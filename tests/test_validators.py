from __future__ import annotations

import pytest

from sharedlists.errors import ValidationError
from sharedlists.validators import (
    TITLE_MAX,
    optional_bool,
    parse_position,
    validate_api_key_name,
    validate_public_slug,
    validate_scopes,
    validate_title,
)


def test_title_is_trimmed_and_bounded():
    assert validate_title("  Groceries ") == "Groceries"
    with pytest.raises(ValidationError):
        validate_title("   ")
    with pytest.raises(ValidationError):
        validate_title("x" * (TITLE_MAX + 1))


@pytest.mark.parametrize(
    "slug", ["ab", "UPPER", "has space", "under_score", "x" * 51, " team-todo ", "team-todo\n"]
)
def test_public_slug_rejects_bad_values(slug):
    with pytest.raises(ValidationError) as excinfo:
        validate_public_slug(slug)
    assert excinfo.value.fields[0].field == "public_slug"


def test_public_slug_accepts_lowercase_digits_and_hyphens():
    assert validate_public_slug("my-list-2") == "my-list-2"


def test_positions_and_booleans_are_strict():
    assert parse_position(0) == 0
    for bad in (True, 1.5, "3", -1):
        with pytest.raises(ValidationError):
            parse_position(bad)
    assert optional_bool({}, "checked") is None
    with pytest.raises(ValidationError):
        optional_bool({"checked": 1}, "checked")


def test_api_key_name_and_scopes():
    assert validate_api_key_name("   ") is None
    assert validate_scopes(["write", " read", "write"]) == ["write", "read"]
