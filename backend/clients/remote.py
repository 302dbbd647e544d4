# backend/clients/remote.py
import inspect
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

import httpx

from clients.polling import PollingTask

logger = logging.getLogger(__name__)

Rows = List[Dict[str, Any]]
SnapshotCallback = Callable[[Dict[str, Rows]], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class QueryResult:
    """Outcome of one request: exactly one of ``data`` and ``error`` is meaningful."""

    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


@dataclass(frozen=True)
class TableQuery:
    """Immutable description of one table request.

    Builder methods return a new value, so a partially built query can be
    reused as the base of several requests. Nothing is sent until one of the
    terminal coroutines (``fetch``, ``insert``, ``update``, ``delete``) runs.
    """

    client: "RemoteDataClient" = field(repr=False, compare=False)
    table: str
    columns: str = "*"
    filters: Tuple[Tuple[str, str], ...] = ()
    order_by: Optional[str] = None
    row_limit: Optional[int] = None

    def select(self, columns: str = "*") -> "TableQuery":
        return replace(self, columns=columns)

    def eq(self, column: str, value: Any) -> "TableQuery":
        return replace(self, filters=self.filters + ((column, f"eq.{_format_value(value)}"),))

    def neq(self, column: str, value: Any) -> "TableQuery":
        return replace(self, filters=self.filters + ((column, f"neq.{_format_value(value)}"),))

    def order(self, column: str, ascending: bool = True) -> "TableQuery":
        direction = "asc" if ascending else "desc"
        return replace(self, order_by=f"{column}.{direction}")

    def limit(self, count: int) -> "TableQuery":
        return replace(self, row_limit=count)

    # Query string for reads: select, filters, order, limit
    def read_params(self) -> List[Tuple[str, str]]:
        params = [("select", self.columns)]
        params.extend(self.filters)
        if self.order_by:
            params.append(("order", self.order_by))
        if self.row_limit is not None:
            params.append(("limit", str(self.row_limit)))
        return params

    async def fetch(self) -> QueryResult:
        return await self.client.request("GET", self.table, params=self.read_params())

    async def insert(self, rows: Union[Dict[str, Any], Rows]) -> QueryResult:
        # Filters never apply to inserts
        body = rows if isinstance(rows, list) else [rows]
        return await self.client.request("POST", self.table, json=body)

    async def update(self, values: Dict[str, Any]) -> QueryResult:
        return await self.client.request("PATCH", self.table, params=list(self.filters), json=values)

    async def delete(self) -> QueryResult:
        return await self.client.request("DELETE", self.table, params=list(self.filters))


class RemoteDataClient:
    """Minimal client for a REST-over-HTTP table API (PostgREST dialect)."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        # Tests swap in httpx.MockTransport here
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Prefer": "return=representation",
        }

    def table(self, name: str) -> TableQuery:
        return TableQuery(client=self, table=name)

    async def request(
        self,
        method: str,
        table: str,
        params: Optional[List[Tuple[str, str]]] = None,
        json: Any = None,
    ) -> QueryResult:
        url = f"{self.base_url}/rest/v1/{table}"
        async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
            try:
                response = await client.request(method, url, params=params, json=json, headers=self._headers())
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                message = f"HTTP {e.response.status_code}: {e.response.reason_phrase}"
                logger.error(f"Remote request error ({method} {table}): {message} {e.response.text}")
                return QueryResult(error=message)
            except httpx.RequestError as e:
                logger.error(f"Remote request error ({method} {table}): {e!r}")
                return QueryResult(error=str(e) or e.__class__.__name__)

        if not response.content:
            return QueryResult(data=[])
        try:
            return QueryResult(data=response.json())
        except ValueError as e:
            logger.error(f"Remote response for {method} {table} is not JSON: {e}")
            return QueryResult(error=f"Invalid JSON response: {e}")

    def snapshot_queries(self) -> Dict[str, TableQuery]:
        return {
            "products": self.table("products").select("*"),
            "transactions": self.table("transactions").select("*").order("created_at", ascending=False),
            "daily_outbound": self.table("daily_outbound").select("*"),
        }

    def subscribe(self, callback: SnapshotCallback, interval: float = 2.0) -> PollingTask:
        """Poll all three tables every ``interval`` seconds and hand the rows to ``callback``.

        A failed fetch is delivered as an empty list for that table. The returned
        task must be cancelled by the caller.
        """
        queries = self.snapshot_queries()

        async def poll() -> None:
            rows: Dict[str, Rows] = {}
            for name, query in queries.items():
                result = await query.fetch()
                rows[name] = (result.data or []) if result.ok else []
            outcome = callback(rows)
            if inspect.isawaitable(outcome):
                await outcome

        return PollingTask(poll, interval).start()
