from __future__ import annotations

from typing import Literal

AuthMethod = Literal["session", "api_key"]
ScopeType = Literal["read", "write"]
OrderedTable = Literal["lists", "list_items"]
