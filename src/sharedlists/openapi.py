from __future__ import annotations

from typing import Any

from . import __version__


def _ref(name: str) -> dict[str, str]:
    return {"$ref": f"#/components/schemas/{name}"}


def _json(description: str, schema: dict[str, Any]) -> dict[str, Any]:
    return {"description": description, "content": {"application/json": {"schema": schema}}}


def _array_of(name: str) -> dict[str, Any]:
    return {"type": "array", "items": _ref(name)}


def _body(name: str) -> dict[str, Any]:
    return {"required": True, "content": {"application/json": {"schema": _ref(name)}}}


def _path_params(*names: str) -> list[dict[str, Any]]:
    return [
        {"name": name, "in": "path", "required": True, "schema": {"type": "string"}}
        for name in names
    ]


_ERROR = _json("Error", _ref("Error"))
_NO_CONTENT = {"description": "No content"}


def openapi_spec() -> dict[str, Any]:
    """
    Hand-maintained OpenAPI spec for the Shared Lists API.

    Only documents what the routes actually accept and return; keep it in step with api.py.
    """
    return {
        "openapi": "3.0.3",
        "info": {
            "title": "Shared Lists API",
            "version": __version__,
            "description": (
                "Pages of ordered, checkable lists, shared per user or published by slug.\n\n"
                "Auth note: send the `auth_token` session cookie set by the OAuth login, or "
                "`Authorization: Bearer <token>` with a session JWT or an API key. API keys "
                "need the `read` scope for GET and the `write` scope for everything else."
            ),
        },
        "servers": [{"url": "/api"}],
        "security": [{"CookieAuth": []}, {"BearerAuth": []}],
        "paths": {
            "/health": {
                "get": {
                    "summary": "Health check",
                    "security": [],
                    "responses": {"200": _json("OK", {"type": "object"})},
                }
            },
            "/auth/login": {
                "get": {
                    "summary": "Start the OAuth login",
                    "security": [],
                    "responses": {"302": {"description": "Redirect to the login provider"}},
                }
            },
            "/auth/callback": {
                "get": {
                    "summary": "Finish the OAuth login and set the session cookie",
                    "security": [],
                    "parameters": [
                        {"name": "code", "in": "query", "schema": {"type": "string"}},
                        {"name": "state", "in": "query", "schema": {"type": "string"}},
                    ],
                    "responses": {
                        "302": {"description": "Redirect to the frontend"},
                        "401": _ERROR,
                        "502": _ERROR,
                    },
                }
            },
            "/auth/logout": {
                "post": {
                    "summary": "Clear the session cookie",
                    "security": [],
                    "responses": {"204": _NO_CONTENT},
                }
            },
            "/users/me": {
                "get": {
                    "summary": "Current user",
                    "responses": {"200": _json("User", _ref("User")), "401": _ERROR},
                },
                "patch": {
                    "summary": "Update the current user's profile",
                    "requestBody": _body("UserUpdate"),
                    "responses": {"200": _json("User", _ref("User")), "400": _ERROR},
                },
            },
            "/users/search": {
                "get": {
                    "summary": "Search users by username or display name",
                    "parameters": [
                        {
                            "name": "q",
                            "in": "query",
                            "required": True,
                            "schema": {"type": "string", "minLength": 2},
                        }
                    ],
                    "responses": {"200": _json("Up to 10 users", _array_of("User"))},
                }
            },
            "/pages": {
                "get": {
                    "summary": "Pages created by or shared with the current user",
                    "responses": {"200": _json("Pages", _array_of("Page"))},
                },
                "post": {
                    "summary": "Create a page",
                    "requestBody": _body("PageIn"),
                    "responses": {"201": _json("Created", _ref("Page")), "400": _ERROR},
                },
            },
            "/pages/{page_id}": {
                "parameters": _path_params("page_id"),
                "get": {
                    "summary": "Get a page",
                    "responses": {"200": _json("Page", _ref("Page")), "404": _ERROR},
                },
                "patch": {
                    "summary": "Update a page (creator or editor)",
                    "requestBody": _body("PageIn"),
                    "responses": {
                        "200": _json("Page", _ref("Page")),
                        "403": _ERROR,
                        "404": _ERROR,
                    },
                },
                "delete": {
                    "summary": "Delete a page with its lists, items and permissions (creator)",
                    "responses": {"204": _NO_CONTENT, "403": _ERROR, "404": _ERROR},
                },
            },
            "/pages/{page_id}/public-slug": {
                "parameters": _path_params("page_id"),
                "put": {
                    "summary": "Publish under a slug, or unpublish with null (creator)",
                    "requestBody": _body("PublicSlugIn"),
                    "responses": {
                        "200": _json("Page", _ref("Page")),
                        "400": _ERROR,
                        "403": _ERROR,
                        "409": _ERROR,
                    },
                },
            },
            "/public/{slug}": {
                "parameters": _path_params("slug"),
                "get": {
                    "summary": "Read-only view of a published page",
                    "security": [],
                    "responses": {
                        "200": _json("Public page", _ref("PublicPage")),
                        "404": _ERROR,
                    },
                },
            },
            "/pages/{page_id}/permissions": {
                "parameters": _path_params("page_id"),
                "get": {
                    "summary": "List collaborators (creator)",
                    "responses": {"200": _json("Permissions", _array_of("Permission"))},
                },
                "post": {
                    "summary": "Grant a user view or edit access (creator)",
                    "requestBody": _body("PermissionIn"),
                    "responses": {
                        "201": _json("Created", _ref("Permission")),
                        "400": _ERROR,
                        "404": _ERROR,
                        "409": _ERROR,
                    },
                },
            },
            "/pages/{page_id}/permissions/{permission_id}": {
                "parameters": _path_params("page_id", "permission_id"),
                "patch": {
                    "summary": "Toggle edit access (creator)",
                    "requestBody": _body("PermissionUpdate"),
                    "responses": {"200": _json("Permission", _ref("Permission")), "404": _ERROR},
                },
                "delete": {
                    "summary": "Revoke access (creator)",
                    "responses": {"204": _NO_CONTENT, "404": _ERROR},
                },
            },
            "/pages/{page_id}/lists": {
                "parameters": _path_params("page_id"),
                "get": {
                    "summary": "Lists of a page, in position order",
                    "responses": {"200": _json("Lists", _array_of("List"))},
                },
                "post": {
                    "summary": "Create a list (creator or editor)",
                    "requestBody": _body("ListIn"),
                    "responses": {"201": _json("Created", _ref("List")), "400": _ERROR},
                },
            },
            "/pages/{page_id}/lists/reorder": {
                "parameters": _path_params("page_id"),
                "post": {
                    "summary": "Move several lists at once; all or nothing",
                    "requestBody": _body("ReorderIn"),
                    "responses": {"200": _json("Lists", _array_of("List")), "400": _ERROR},
                },
            },
            "/pages/{page_id}/lists/{list_id}": {
                "parameters": _path_params("page_id", "list_id"),
                "get": {
                    "summary": "A list with its items",
                    "responses": {"200": _json("List", _ref("ListWithItems")), "404": _ERROR},
                },
                "patch": {
                    "summary": "Update a list",
                    "requestBody": _body("ListIn"),
                    "responses": {"200": _json("List", _ref("List")), "404": _ERROR},
                },
                "delete": {
                    "summary": "Delete a list and its items",
                    "responses": {"204": _NO_CONTENT, "404": _ERROR},
                },
            },
            "/lists/{list_id}/items": {
                "parameters": _path_params("list_id"),
                "get": {
                    "summary": "Items of a list, in position order",
                    "responses": {"200": _json("Items", _array_of("Item"))},
                },
                "post": {
                    "summary": "Create an item",
                    "requestBody": _body("ItemIn"),
                    "responses": {"201": _json("Created", _ref("Item")), "400": _ERROR},
                },
            },
            "/lists/{list_id}/items/reorder": {
                "parameters": _path_params("list_id"),
                "post": {
                    "summary": "Move several items at once; all or nothing",
                    "requestBody": _body("ReorderIn"),
                    "responses": {"200": _json("Items", _array_of("Item")), "400": _ERROR},
                },
            },
            "/lists/{list_id}/items/{item_id}": {
                "parameters": _path_params("list_id", "item_id"),
                "get": {
                    "summary": "Get an item",
                    "responses": {"200": _json("Item", _ref("Item")), "404": _ERROR},
                },
                "patch": {
                    "summary": "Update an item",
                    "requestBody": _body("ItemIn"),
                    "responses": {"200": _json("Item", _ref("Item")), "404": _ERROR},
                },
                "delete": {
                    "summary": "Delete an item",
                    "responses": {"204": _NO_CONTENT, "404": _ERROR},
                },
            },
            "/settings/api-keys": {
                "get": {
                    "summary": "API keys of the current user (session only)",
                    "responses": {"200": _json("API keys", _array_of("ApiKey"))},
                },
                "post": {
                    "summary": "Issue an API key; the token is only ever returned here",
                    "requestBody": _body("ApiKeyIn"),
                    "responses": {"201": _json("Created", _ref("ApiKeyCreated")), "400": _ERROR},
                },
            },
            "/settings/api-keys/{key_id}": {
                "parameters": _path_params("key_id"),
                "delete": {
                    "summary": "Revoke a key, or remove a revoked key with hard=true",
                    "parameters": [
                        {"name": "hard", "in": "query", "schema": {"type": "boolean"}},
                    ],
                    "responses": {"204": _NO_CONTENT, "404": _ERROR, "409": _ERROR},
                },
            },
        },
        "components": {
            "securitySchemes": {
                "CookieAuth": {"type": "apiKey", "in": "cookie", "name": "auth_token"},
                "BearerAuth": {"type": "http", "scheme": "bearer"},
            },
            "schemas": {
                "Error": {
                    "type": "object",
                    "properties": {
                        "error": {"type": "string"},
                        "fields": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "field": {"type": "string"},
                                    "message": {"type": "string"},
                                },
                            },
                        },
                    },
                    "required": ["error"],
                },
                "User": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string"},
                        "external_id": {"type": "string"},
                        "username": {"type": "string"},
                        "display_name": {"type": "string", "nullable": True},
                        "profile_image_url": {"type": "string", "nullable": True},
                        "email": {"type": "string", "nullable": True},
                        "created_at": {"type": "string"},
                        "updated_at": {"type": "string"},
                    },
                    "required": ["id", "external_id", "username", "created_at", "updated_at"],
                },
                "UserUpdate": {
                    "type": "object",
                    "properties": {
                        "username": {"type": "string", "minLength": 3, "maxLength": 32},
                        "display_name": {"type": "string", "nullable": True, "maxLength": 64},
                        "profile_image_url": {"type": "string", "nullable": True},
                        "email": {"type": "string", "nullable": True},
                    },
                },
                "PageIn": {
                    "type": "object",
                    "properties": {
                        "title": {"type": "string", "minLength": 1, "maxLength": 200},
                        "description": {"type": "string", "nullable": True, "maxLength": 2000},
                    },
                    "required": ["title"],
                },
                "Page": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string"},
                        "title": {"type": "string"},
                        "description": {"type": "string", "nullable": True},
                        "creator_id": {"type": "string"},
                        "public_slug": {"type": "string", "nullable": True},
                        "is_creator": {"type": "boolean"},
                        "can_edit": {"type": "boolean"},
                        "created_at": {"type": "string"},
                        "updated_at": {"type": "string"},
                    },
                    "required": ["id", "title", "creator_id", "created_at", "updated_at"],
                },
                "PublicSlugIn": {
                    "type": "object",
                    "properties": {
                        "public_slug": {
                            "type": "string",
                            "nullable": True,
                            "pattern": "^[a-z0-9-]{3,50}$",
                        }
                    },
                },
                "PermissionIn": {
                    "type": "object",
                    "properties": {
                        "user_id": {"type": "string"},
                        "can_edit": {"type": "boolean", "default": False},
                    },
                    "required": ["user_id"],
                },
                "PermissionUpdate": {
                    "type": "object",
                    "properties": {"can_edit": {"type": "boolean"}},
                    "required": ["can_edit"],
                },
                "Permission": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string"},
                        "page_id": {"type": "string"},
                        "user_id": {"type": "string"},
                        "can_edit": {"type": "boolean"},
                        "granted_by": {"type": "string"},
                        "created_at": {"type": "string"},
                        "user": _ref("User"),
                    },
                    "required": ["id", "page_id", "user_id", "can_edit", "created_at"],
                },
                "ListIn": {
                    "type": "object",
                    "properties": {
                        "title": {"type": "string", "minLength": 1, "maxLength": 200},
                        "position": {"type": "integer", "minimum": 0},
                        "show_checkboxes": {"type": "boolean"},
                        "show_progress": {"type": "boolean"},
                    },
                },
                "List": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string"},
                        "page_id": {"type": "string"},
                        "title": {"type": "string"},
                        "position": {"type": "integer"},
                        "show_checkboxes": {"type": "boolean"},
                        "show_progress": {"type": "boolean"},
                        "created_at": {"type": "string"},
                        "updated_at": {"type": "string"},
                    },
                    "required": ["id", "page_id", "title", "position"],
                },
                "ListWithItems": {
                    "allOf": [
                        _ref("List"),
                        {
                            "type": "object",
                            "properties": {"items": _array_of("Item")},
                        },
                    ]
                },
                "ItemIn": {
                    "type": "object",
                    "properties": {
                        "content": {"type": "string", "minLength": 1, "maxLength": 2000},
                        "checked": {"type": "boolean"},
                        "position": {"type": "integer", "minimum": 0},
                    },
                },
                "Item": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string"},
                        "list_id": {"type": "string"},
                        "content": {"type": "string"},
                        "checked": {"type": "boolean"},
                        "position": {"type": "integer"},
                        "created_at": {"type": "string"},
                        "updated_at": {"type": "string"},
                    },
                    "required": ["id", "list_id", "content", "checked", "position"],
                },
                "ReorderIn": {
                    "type": "object",
                    "properties": {
                        "positions": {
                            "type": "array",
                            "minItems": 1,
                            "items": {
                                "type": "object",
                                "properties": {
                                    "id": {"type": "string"},
                                    "position": {"type": "integer", "minimum": 0},
                                },
                                "required": ["id", "position"],
                            },
                        }
                    },
                    "required": ["positions"],
                },
                "PublicPage": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string"},
                        "title": {"type": "string"},
                        "description": {"type": "string", "nullable": True},
                        "public_slug": {"type": "string"},
                        "creator": {"type": "object", "nullable": True},
                        "lists": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "id": {"type": "string"},
                                    "title": {"type": "string"},
                                    "position": {"type": "integer"},
                                    "show_checkboxes": {"type": "boolean"},
                                    "show_progress": {"type": "boolean"},
                                    "progress": {
                                        "type": "object",
                                        "properties": {
                                            "checked": {"type": "integer"},
                                            "total": {"type": "integer"},
                                        },
                                    },
                                    "items": {
                                        "type": "array",
                                        "items": {
                                            "type": "object",
                                            "description": (
                                                "`checked` is omitted when the list hides "
                                                "checkboxes."
                                            ),
                                        },
                                    },
                                },
                            },
                        },
                    },
                    "required": ["id", "title", "public_slug", "lists"],
                },
                "ApiKeyIn": {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string", "maxLength": 100},
                        "scopes": {
                            "type": "array",
                            "items": {"type": "string"},
                            "default": ["read"],
                        },
                    },
                },
                "ApiKey": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string"},
                        "name": {"type": "string", "nullable": True},
                        "scopes": {"type": "array", "items": {"type": "string"}},
                        "revoked": {"type": "boolean"},
                        "created_at": {"type": "string"},
                    },
                    "required": ["id", "scopes", "revoked", "created_at"],
                },
                "ApiKeyCreated": {
                    "allOf": [
                        _ref("ApiKey"),
                        {"type": "object", "properties": {"token": {"type": "string"}}},
                    ]
                },
            },
        },
    }
