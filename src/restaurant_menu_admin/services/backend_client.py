"""Client for the hosted backend's table data API.

The backend exposes each collection as a PostgREST resource under
`/rest/v1/<table>`. Filters and ordering travel as query parameters, writes
as JSON bodies. Authentication is handled by `AuthClient`, which this client
carries so that copies bound to different sessions share one set of
session-change listeners.
"""

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from restaurant_menu_admin.auth.auth_client import AuthClient
from restaurant_menu_admin.models.auth_models import Session
from restaurant_menu_admin.observability.metrics import record_backend_request
from restaurant_menu_admin.services.errors import BackendError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class APIResponse:
    """Rows returned by a table request.

    Attributes:
        data: Rows as dictionaries (empty for writes without representation)
        count: Total row count when the backend reports one
    """

    data: list[dict[str, Any]]
    count: int | None = None

    def models(self, model: type[ModelT]) -> list[ModelT]:
        """Validate every row as `model`.

        Raises:
            BackendError: If a row does not have the expected shape
        """
        try:
            return [model.model_validate(row) for row in self.data]
        except ValidationError as e:
            logger.error(f"Backend returned malformed {model.__name__} rows: {e}")
            raise BackendError(
                f"The backend returned data in an unexpected format ({e.error_count()} invalid fields).",
                code="invalid_row",
            ) from e


class BackendClient:
    """HTTP client for the hosted backend.

    Requests go out with the project's anon key as `apikey` and, as bearer,
    either the session access token this client is bound to or the anon key
    itself for public reads.
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        access_token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        auth: AuthClient | None = None,
    ) -> None:
        """Initialize the backend client.

        Args:
            url: Project base URL (e.g., "https://xyz.supabase.co")
            anon_key: Public anon key of the project
            access_token: Session token to send as bearer, None for anonymous access
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used to stub the backend in tests)
            auth: Auth client to share; created from the same settings when omitted
        """
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.access_token = access_token
        self.timeout = timeout
        self.transport = transport
        self.rest_url = f"{self.url}/rest/v1"
        self.auth = auth or AuthClient(
            url=self.url, anon_key=anon_key, timeout=timeout, transport=transport
        )

    def with_session(self, session: Session) -> "BackendClient":
        """Return a copy of this client that acts on behalf of `session`."""
        return BackendClient(
            url=self.url,
            anon_key=self.anon_key,
            access_token=session.access_token,
            timeout=self.timeout,
            transport=self.transport,
            auth=self.auth,
        )

    def table(self, name: str) -> "TableQuery":
        """Start a query against a collection."""
        return TableQuery(self, name)

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.access_token or self.anon_key}",
        }

    async def request(
        self,
        method: str,
        table: str,
        params: list[tuple[str, str]],
        json: Any = None,
        prefer: str | None = None,
    ) -> APIResponse:
        """Send one request to a table resource.

        Raises:
            BackendError: On transport failure or any non-2xx response
        """
        url = f"{self.rest_url}/{table}"
        headers = self._headers()
        if prefer:
            headers["Prefer"] = prefer

        started = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(method, url, params=params, json=json, headers=headers)
        except httpx.RequestError as e:
            logger.error(f"Backend request {method} {table} failed: {e}")
            raise BackendError(f"Could not reach backend: {e}") from e
        finally:
            record_backend_request(table, method, time.perf_counter() - started)

        if response.is_error:
            error = BackendError.from_response(response)
            logger.error(
                f"Backend request {method} {table} returned {response.status_code}: {error.message}"
            )
            raise error

        if response.status_code == 204 or not response.content:
            return APIResponse(data=[])

        body = response.json()
        if isinstance(body, dict):
            body = [body]
        return APIResponse(data=body, count=_parse_count(response.headers.get("content-range")))


def _parse_count(content_range: str | None) -> int | None:
    # "0-24/3573" or "*/0"; the total is "*" when not requested
    if not content_range or "/" not in content_range:
        return None
    total = content_range.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else None


def _format_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class TableQuery:
    """Fluent request builder for a single collection.

    Example:
        await client.table("categories").select("*").order("display_order").execute()
        await client.table("menu_items").update({"is_available": False}).eq("id", item_id).execute()
    """

    def __init__(self, client: BackendClient, table: str) -> None:
        self.client = client
        self.table = table
        self.method = "GET"
        self.body: Any = None
        self.prefer: str | None = None
        self.filters: list[tuple[str, str]] = []
        self.orderings: dict[str, list[str]] = {}
        self.columns: str | None = None

    def select(self, columns: str = "*") -> "TableQuery":
        """Read rows, projecting `columns` (embedded joins allowed, e.g. "id, categories(name)")."""
        self.method = "GET"
        self.columns = "".join(columns.split())
        return self

    def insert(self, values: dict[str, Any] | list[dict[str, Any]]) -> "TableQuery":
        self.method = "POST"
        self.body = values
        self.prefer = "return=representation"
        return self

    def update(self, values: dict[str, Any]) -> "TableQuery":
        self.method = "PATCH"
        self.body = values
        self.prefer = "return=representation"
        return self

    def delete(self) -> "TableQuery":
        self.method = "DELETE"
        self.prefer = "return=representation"
        return self

    def eq(self, column: str, value: Any) -> "TableQuery":
        """Keep only rows where `column` equals `value`."""
        self.filters.append((column, f"eq.{_format_value(value)}"))
        return self

    def order(
        self, column: str, ascending: bool = True, foreign_table: str | None = None
    ) -> "TableQuery":
        """Order rows by `column`; with `foreign_table`, order that embedded collection instead."""
        key = f"{foreign_table}.order" if foreign_table else "order"
        direction = "asc" if ascending else "desc"
        self.orderings.setdefault(key, []).append(f"{column}.{direction}")
        return self

    def build_params(self) -> list[tuple[str, str]]:
        params: list[tuple[str, str]] = []
        if self.columns is not None:
            params.append(("select", self.columns))
        params.extend(self.filters)
        for key, terms in self.orderings.items():
            params.append((key, ",".join(terms)))
        return params

    async def execute(self) -> APIResponse:
        """Send the request.

        Raises:
            BackendError: If the backend rejects the request or cannot be reached
        """
        if self.method in ("PATCH", "DELETE") and not self.filters:
            # Writes without a filter would hit every row
            raise BackendError(f"Refusing unfiltered {self.method} on {self.table}")

        return await self.client.request(
            self.method,
            self.table,
            params=self.build_params(),
            json=self.body,
            prefer=self.prefer,
        )


def create_backend_client() -> BackendClient:
    """Create the anonymous backend client from environment variables.

    Returns:
        BackendClient for the configured project

    Raises:
        ValueError: If the project URL or anon key is missing
    """
    url = os.getenv("SUPABASE_URL")
    anon_key = os.getenv("SUPABASE_ANON_KEY")

    if not url or not anon_key:
        raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be set in environment")

    timeout = float(os.getenv("BACKEND_TIMEOUT_SECONDS", "10"))
    logger.info(f"Backend client configured - URL: {url}")
    return BackendClient(url=url, anon_key=anon_key, timeout=timeout)
