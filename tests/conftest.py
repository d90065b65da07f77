"""Shared pytest fixtures and configuration for all tests."""

import json
import os
import uuid
from typing import Any

import httpx
import pytest

os.environ.setdefault("ENVIRONMENT", "test")

from restaurant_menu_admin.models.auth_models import Session, User  # noqa: E402
from restaurant_menu_admin.services.backend_client import BackendClient  # noqa: E402

BACKEND_URL = "https://project.test"
ANON_KEY = "anon-key"
ADMIN_EMAIL = "admin@restaurant.test"
ADMIN_PASSWORD = "correct-horse"


def _format(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _split_columns(columns: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current = ""
    for char in columns:
        if char == "," and depth == 0:
            parts.append(current)
            current = ""
            continue
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        current += char
    if current:
        parts.append(current)
    return parts


def _sort(rows: list[dict[str, Any]], terms: str) -> list[dict[str, Any]]:
    for term in reversed(terms.split(",")):
        column, _, direction = term.partition(".")
        rows = sorted(rows, key=lambda row: row[column], reverse=direction == "desc")
    return rows


class FakeBackend:
    """In-memory stand-in for the hosted backend's data and auth APIs.

    Speaks just enough of the PostgREST and auth HTTP contract for the
    queries this service sends. Writes require a signed-in user's token.
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {"categories": [], "menu_items": []}
        self.users = {ADMIN_EMAIL: (ADMIN_PASSWORD, User(id="user_1", email=ADMIN_EMAIL))}
        self.tokens: dict[str, User] = {}
        self.failures: dict[tuple[str, str], tuple[int, str]] = {}
        self.requests: list[tuple[str, str]] = []
        self.cascade_deletes = False

    # Test helpers

    def add_category(self, name: str, display_order: int) -> dict[str, Any]:
        row = {"id": f"cat_{uuid.uuid4().hex[:8]}", "name": name, "display_order": display_order}
        self.tables["categories"].append(row)
        return row

    def add_item(
        self,
        category_id: str,
        name: str,
        price: float,
        is_available: bool = True,
        description: str | None = None,
    ) -> dict[str, Any]:
        row = {
            "id": f"item_{uuid.uuid4().hex[:8]}",
            "category_id": category_id,
            "name": name,
            "description": description,
            "price": price,
            "is_available": is_available,
        }
        self.tables["menu_items"].append(row)
        return row

    def issue_token(self, email: str = ADMIN_EMAIL) -> str:
        token = f"token_{uuid.uuid4().hex}"
        self.tokens[token] = self.users[email][1]
        return token

    def fail_next(self, resource: str, method: str, status: int, message: str) -> None:
        """Make the next `method` request to `resource` fail with `message`."""
        self.failures[(resource, method)] = (status, message)

    def count(self, method: str, resource: str) -> int:
        return self.requests.count((method, resource))

    # Transport

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.headers.get("apikey") != ANON_KEY:
            return httpx.Response(401, json={"message": "No API key found in request"})

        token = request.headers.get("Authorization", "").removeprefix("Bearer ")
        if path.startswith("/auth/v1/"):
            resource = "auth/" + path.removeprefix("/auth/v1/")
        else:
            resource = path.removeprefix("/rest/v1/")
        self.requests.append((request.method, resource))

        failure = self.failures.pop((resource, request.method), None)
        if failure is not None:
            status, message = failure
            return httpx.Response(status, json={"message": message, "code": "XX000"})

        if resource.startswith("auth/"):
            return self._auth(request, resource, token)
        return self._rest(request, resource, token)

    def _auth(self, request: httpx.Request, resource: str, token: str) -> httpx.Response:
        if resource == "auth/token":
            body = json.loads(request.content)
            known = self.users.get(body.get("email"))
            if known is None or known[0] != body.get("password"):
                return httpx.Response(
                    400,
                    json={"error": "invalid_grant", "error_description": "Invalid login credentials"},
                )
            access_token = self.issue_token(body["email"])
            return httpx.Response(
                200,
                json={
                    "access_token": access_token,
                    "token_type": "bearer",
                    "expires_in": 3600,
                    "refresh_token": "refresh",
                    "user": known[1].model_dump(),
                },
            )
        if resource == "auth/user":
            user = self.tokens.get(token)
            if user is None:
                return httpx.Response(401, json={"msg": "invalid JWT"})
            return httpx.Response(200, json=user.model_dump())
        if resource == "auth/logout":
            if self.tokens.pop(token, None) is None:
                return httpx.Response(401, json={"msg": "invalid JWT"})
            return httpx.Response(204)
        return httpx.Response(404, json={"msg": "Not found"})

    def _rest(self, request: httpx.Request, table: str, token: str) -> httpx.Response:
        if table not in self.tables:
            return httpx.Response(404, json={"message": f'relation "public.{table}" does not exist'})
        if request.method != "GET" and token not in self.tokens:
            return httpx.Response(401, json={"message": f"permission denied for table {table}"})

        params = request.url.params
        filters = [
            (key, value.removeprefix("eq."))
            for key, value in params.multi_items()
            if key != "select" and not key.endswith("order")
        ]
        rows = self.tables[table]
        matched = [row for row in rows if all(_format(row.get(k)) == v for k, v in filters)]

        if request.method == "GET":
            return httpx.Response(200, json=self._select(table, matched, params))

        if request.method == "POST":
            return self._insert(table, json.loads(request.content))

        if request.method == "PATCH":
            changes = json.loads(request.content)
            for row in matched:
                row.update(changes)
            return httpx.Response(200, json=matched)

        if request.method == "DELETE":
            if table == "categories":
                ids = {row["id"] for row in matched}
                dependents = [i for i in self.tables["menu_items"] if i["category_id"] in ids]
                if dependents and not self.cascade_deletes:
                    return httpx.Response(
                        409,
                        json={
                            "code": "23503",
                            "message": 'update or delete on table "categories" violates foreign key constraint',
                        },
                    )
                self.tables["menu_items"] = [i for i in self.tables["menu_items"] if i not in dependents]
            self.tables[table] = [row for row in rows if row not in matched]
            return httpx.Response(200, json=matched)

        return httpx.Response(405)

    def _insert(self, table: str, body: dict[str, Any]) -> httpx.Response:
        row = dict(body)
        row["id"] = f"{table[:4]}_{uuid.uuid4().hex[:8]}"
        if table == "categories":
            row.setdefault("display_order", 0)
        if table == "menu_items":
            if not any(c["id"] == row.get("category_id") for c in self.tables["categories"]):
                return httpx.Response(
                    409,
                    json={
                        "code": "23503",
                        "message": 'insert or update on table "menu_items" violates foreign key constraint',
                    },
                )
            row.setdefault("description", None)
            row.setdefault("is_available", True)
        self.tables[table].append(row)
        return httpx.Response(201, json=[row])

    def _select(self, table: str, rows: list[dict[str, Any]], params: httpx.QueryParams) -> list[dict[str, Any]]:
        if params.get("order"):
            rows = _sort(rows, params["order"])

        result = []
        for row in rows:
            shaped: dict[str, Any] = {}
            for column in _split_columns(params.get("select", "*")):
                if "(" in column:
                    embedded = column[: column.index("(")]
                    inner = _split_columns(column[column.index("(") + 1 : -1])
                    shaped[embedded] = self._embed(table, row, embedded, inner, params)
                elif column == "*":
                    shaped.update(row)
                else:
                    shaped[column] = row.get(column)
            result.append(shaped)
        return result

    def _embed(
        self,
        table: str,
        row: dict[str, Any],
        embedded: str,
        columns: list[str],
        params: httpx.QueryParams,
    ) -> Any:
        if table == "categories" and embedded == "menu_items":
            children = [i for i in self.tables["menu_items"] if i["category_id"] == row["id"]]
            if params.get("menu_items.order"):
                children = _sort(children, params["menu_items.order"])
            return [{c: child.get(c) for c in columns} for child in children]
        if table == "menu_items" and embedded == "categories":
            parent = next(c for c in self.tables["categories"] if c["id"] == row["category_id"])
            return {c: parent.get(c) for c in columns}
        raise AssertionError(f"Unexpected embed {table}.{embedded}")


@pytest.fixture
def mock_restaurant_id() -> str:
    """Fixture providing a standard test restaurant ID."""
    return "rest_123456"


@pytest.fixture
def fake_backend() -> FakeBackend:
    """Fixture providing an empty in-memory backend."""
    return FakeBackend()


@pytest.fixture
def backend_client(fake_backend: FakeBackend) -> BackendClient:
    """Fixture providing an anonymous client wired to the fake backend."""
    return BackendClient(url=BACKEND_URL, anon_key=ANON_KEY, transport=httpx.MockTransport(fake_backend))


@pytest.fixture
def admin_session(fake_backend: FakeBackend) -> Session:
    """Fixture providing a live admin session on the fake backend."""
    token = fake_backend.issue_token()
    return Session(access_token=token, user=fake_backend.tokens[token])


@pytest.fixture
def admin_client(backend_client: BackendClient, admin_session: Session) -> BackendClient:
    """Fixture providing a client acting on behalf of the admin session."""
    return backend_client.with_session(admin_session)


@pytest.fixture
def mock_categories() -> list[dict]:
    """Fixture providing sample category rows, deliberately out of display order."""
    return [
        {"id": "cat_2", "name": "Desserts", "display_order": 2},
        {"id": "cat_1", "name": "Soups", "display_order": 1},
    ]
