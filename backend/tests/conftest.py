"""
Pytest fixtures for the inventory backend tests.

Provides a throwaway local storage database, an in-memory fake of the
REST table API served through httpx.MockTransport, and services wired to
either backend.
"""

import copy
import json
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Set, Tuple

import httpx
import pytest

from clients.local import DEMO_PRODUCTS, LocalDataClient
from clients.remote import RemoteDataClient
from clients.storage import SqlKeyValueStore
from database import create_session_factory
from services.backends import LocalInventoryBackend, RemoteInventoryBackend
from services.inventory import InventoryService

FIXED_NOW = datetime(2026, 10, 18, 9, 30, 0)
BASE_URL = "https://inventory.example.test"
API_KEY = "test-anon-key"


def fixed_clock() -> datetime:
    return FIXED_NOW


class FakeRestApi:
    """Just enough of a PostgREST server for the client: eq/neq filters, order, limit."""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            "products": [],
            "transactions": [],
            "daily_outbound": [],
        }
        self.requests: List[httpx.Request] = []
        self.failing: Set[Tuple[str, str]] = set()
        self.offline = False
        self._next_id = 1000
        self._inserted = 0

    def seed_products(self, products: List[Dict[str, Any]]) -> None:
        self.tables["products"] = copy.deepcopy(products)

    # Make (method, table) answer with HTTP 500
    def fail(self, method: str, table: str) -> None:
        self.failing.add((method, table))

    @staticmethod
    def _matches(row: Dict[str, Any], filters: List[Tuple[str, str, str]]) -> bool:
        for column, op, value in filters:
            actual = "null" if row.get(column) is None else str(row.get(column))
            if op == "eq" and actual != value:
                return False
            if op == "neq" and actual == value:
                return False
        return True

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.offline:
            raise httpx.ConnectError("connection refused", request=request)

        table = request.url.path.rsplit("/", 1)[-1]
        if (request.method, table) in self.failing:
            return httpx.Response(500, json={"message": "boom"})
        if table not in self.tables:
            return httpx.Response(404, json={"message": f"relation {table} does not exist"})

        filters, order, limit = [], None, None
        for key, value in request.url.params.multi_items():
            if key == "select":
                continue
            elif key == "order":
                order = value
            elif key == "limit":
                limit = int(value)
            else:
                op, _, operand = value.partition(".")
                filters.append((key, op, operand))

        rows = self.tables[table]
        if request.method == "GET":
            result = [dict(r) for r in rows if self._matches(r, filters)]
            if order:
                column, _, direction = order.partition(".")
                result.sort(
                    key=lambda r: (r.get(column) is None, "" if r.get(column) is None else r.get(column)),
                    reverse=direction == "desc",
                )
            if limit is not None:
                result = result[:limit]
            return httpx.Response(200, json=result)

        if request.method == "POST":
            created = []
            for row in json.loads(request.content):
                self._next_id += 1
                self._inserted += 1
                stamp = datetime(2026, 1, 1) + timedelta(seconds=self._inserted)
                record = {"id": self._next_id, "created_at": stamp.isoformat(), **row}
                rows.append(record)
                created.append(dict(record))
            return httpx.Response(201, json=created)

        if request.method == "PATCH":
            values = json.loads(request.content)
            updated = []
            for row in rows:
                if self._matches(row, filters):
                    row.update(values)
                    updated.append(dict(row))
            return httpx.Response(200, json=updated)

        if request.method == "DELETE":
            removed = [dict(r) for r in rows if self._matches(r, filters)]
            self.tables[table] = [r for r in rows if not self._matches(r, filters)]
            return httpx.Response(200, json=removed)

        return httpx.Response(405)


@pytest.fixture
def fake_api() -> FakeRestApi:
    api = FakeRestApi()
    api.seed_products(DEMO_PRODUCTS)
    return api


@pytest.fixture
def remote_client(fake_api) -> RemoteDataClient:
    return RemoteDataClient(BASE_URL, API_KEY, transport=httpx.MockTransport(fake_api.handle))


@pytest.fixture
def kv_store(tmp_path) -> SqlKeyValueStore:
    return SqlKeyValueStore(create_session_factory(f"sqlite:///{tmp_path / 'local_storage.db'}"))


@pytest.fixture
def local_client(kv_store) -> LocalDataClient:
    return LocalDataClient(kv_store, clock=fixed_clock)


def make_service(kind: str, local_client: LocalDataClient, remote_client: RemoteDataClient) -> InventoryService:
    if kind == "local":
        backend = LocalInventoryBackend(local_client)
    else:
        backend = RemoteInventoryBackend(remote_client, clock=fixed_clock)
    return InventoryService(backend, clock=fixed_clock)


# The same domain tests run against both backends
@pytest.fixture(params=["local", "remote"])
def service(request, local_client, remote_client) -> InventoryService:
    return make_service(request.param, local_client, remote_client)


def product_stock(service: InventoryService, product_id: int) -> Optional[int]:
    product = service.find_product(product_id)
    return product.stock if product else None
