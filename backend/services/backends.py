# backend/services/backends.py
import inspect
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Type, TypeVar, Union

import pydantic

from clients.local import LocalDataClient
from clients.polling import PollingTask
from clients.remote import QueryResult, RemoteDataClient
from schemas.inventory import Product, Snapshot, StagingEntry, StoredRecord, Transaction
from utils.errors import OperationError

logger = logging.getLogger(__name__)

SnapshotHandler = Callable[[Snapshot], Union[None, Awaitable[None]]]
Record = TypeVar("Record", bound=StoredRecord)

PRODUCTS = "products"
TRANSACTIONS = "transactions"
DAILY_OUTBOUND = "daily_outbound"


class InventoryBackend(Protocol):
    """Storage operations the domain layer needs, identical for both backends."""

    name: str

    async def load_snapshot(self) -> Snapshot: ...

    async def insert_product(self, product: Dict[str, Any]) -> None: ...

    async def set_stock(self, product_id: int, stock: int) -> None: ...

    async def record_transaction(self, transaction: Dict[str, Any]) -> None: ...

    async def find_staging_entry(self, product_id: int) -> Optional[StagingEntry]: ...

    async def create_staging_entry(self, entry: Dict[str, Any]) -> None: ...

    async def set_staging_quantity(self, product_id: int, quantity: int) -> None: ...

    async def delete_staging_entry(self, product_id: int) -> None: ...

    async def clear_staging(self) -> None: ...

    def subscribe(self, handler: SnapshotHandler, interval: float) -> Optional[PollingTask]: ...


def _unwrap(result: QueryResult, action: str) -> Any:
    if not result.ok:
        raise OperationError(f"{action} failed: {result.error}")
    return result.data


def parse_record(model: Type[Record], row: Any, source: str) -> Optional[Record]:
    try:
        return model.model_validate(row)
    except pydantic.ValidationError as e:
        logger.warning(f"Skipping unreadable {source} record: {e.error_count()} error(s), first: {e.errors()[0]['msg']}")
        return None


def parse_records(model: Type[Record], rows: Any, source: str) -> List[Record]:
    if not isinstance(rows, list):
        return []
    parsed = (parse_record(model, row, source) for row in rows)
    return [record for record in parsed if record is not None]


def build_snapshot(products: Any, transactions: Any, daily_outbound: Any) -> Snapshot:
    """Build a snapshot from raw stored rows.

    Storage accepts anything, so a record that does not fit its model is
    dropped with a warning instead of failing the whole read.
    """
    return Snapshot(
        products=parse_records(Product, products, PRODUCTS),
        transactions=parse_records(Transaction, transactions, TRANSACTIONS),
        daily_outbound=parse_records(StagingEntry, daily_outbound, DAILY_OUTBOUND),
    )


class RemoteInventoryBackend:
    name = "remote"

    def __init__(self, client: RemoteDataClient, clock: Callable[[], datetime] = datetime.now):
        self.client = client
        self._clock = clock

    async def load_snapshot(self) -> Snapshot:
        rows = {}
        for name, query in self.client.snapshot_queries().items():
            rows[name] = _unwrap(await query.fetch(), f"Loading {name}") or []
        return build_snapshot(**rows)

    async def insert_product(self, product: Dict[str, Any]) -> None:
        _unwrap(await self.client.table(PRODUCTS).insert(product), "Adding product")

    async def set_stock(self, product_id: int, stock: int) -> None:
        values = {"stock": stock, "updated_at": self._clock().isoformat()}
        updated = _unwrap(await self.client.table(PRODUCTS).eq("id", product_id).update(values), "Updating stock")
        if not updated:
            raise OperationError(f"Updating stock failed: product {product_id} does not exist")

    async def record_transaction(self, transaction: Dict[str, Any]) -> None:
        _unwrap(await self.client.table(TRANSACTIONS).insert(transaction), "Recording transaction")

    async def find_staging_entry(self, product_id: int) -> Optional[StagingEntry]:
        rows = _unwrap(
            await self.client.table(DAILY_OUTBOUND).select("*").eq("product_id", product_id).fetch(),
            "Reading outbound list",
        )
        return parse_record(StagingEntry, rows[0], DAILY_OUTBOUND) if rows else None

    async def create_staging_entry(self, entry: Dict[str, Any]) -> None:
        _unwrap(await self.client.table(DAILY_OUTBOUND).insert(entry), "Adding to outbound list")

    async def set_staging_quantity(self, product_id: int, quantity: int) -> None:
        query = self.client.table(DAILY_OUTBOUND).eq("product_id", product_id)
        _unwrap(await query.update({"quantity": quantity}), "Updating outbound quantity")

    async def delete_staging_entry(self, product_id: int) -> None:
        query = self.client.table(DAILY_OUTBOUND).eq("product_id", product_id)
        _unwrap(await query.delete(), "Removing from outbound list")

    async def clear_staging(self) -> None:
        # The table API refuses an unfiltered delete; every row has id != 0
        _unwrap(await self.client.table(DAILY_OUTBOUND).neq("id", 0).delete(), "Clearing outbound list")

    def subscribe(self, handler: SnapshotHandler, interval: float) -> Optional[PollingTask]:
        async def on_rows(rows):
            outcome = handler(build_snapshot(**rows))
            if inspect.isawaitable(outcome):
                await outcome

        return self.client.subscribe(on_rows, interval=interval)


class LocalInventoryBackend:
    """Adapter over the synchronous local document.

    Methods are coroutines only to share the interface; each one runs its
    SQLite read-modify-write on the event loop without yielding. That keeps
    local writes serialized, so do not move them to a thread pool without
    adding a lock around the document.
    """

    name = "local"

    def __init__(self, client: LocalDataClient):
        self.client = client

    async def load_snapshot(self) -> Snapshot:
        document = self.client.read_all()
        return build_snapshot(document["products"], document["transactions"], document["dailyOutbound"])

    async def insert_product(self, product: Dict[str, Any]) -> None:
        self.client.add_product(product)

    async def set_stock(self, product_id: int, stock: int) -> None:
        if not self.client.update_stock(product_id, stock):
            raise OperationError(f"Updating stock failed: product {product_id} is not in local storage")

    async def record_transaction(self, transaction: Dict[str, Any]) -> None:
        self.client.append_transaction(transaction)

    async def find_staging_entry(self, product_id: int) -> Optional[StagingEntry]:
        for entry in self.client.read_all()["dailyOutbound"]:
            if entry.get("product_id") == product_id:
                return parse_record(StagingEntry, entry, DAILY_OUTBOUND)
        return None

    async def create_staging_entry(self, entry: Dict[str, Any]) -> None:
        entries = self.client.read_all()["dailyOutbound"]
        entries.append(dict(entry))
        self.client.replace_staging(entries)

    async def set_staging_quantity(self, product_id: int, quantity: int) -> None:
        entries = self.client.read_all()["dailyOutbound"]
        for entry in entries:
            if entry.get("product_id") == product_id:
                entry["quantity"] = quantity
        self.client.replace_staging(entries)

    async def delete_staging_entry(self, product_id: int) -> None:
        entries = self.client.read_all()["dailyOutbound"]
        self.client.replace_staging([e for e in entries if e.get("product_id") != product_id])

    async def clear_staging(self) -> None:
        self.client.replace_staging([])

    # Local storage has no other writers, so nothing to poll
    def subscribe(self, handler: SnapshotHandler, interval: float) -> Optional[PollingTask]:
        return None
