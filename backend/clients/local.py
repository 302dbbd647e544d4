# backend/clients/local.py
import copy
import json
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Tuple

import pydantic

from clients.storage import SqlKeyValueStore
from schemas.inventory import Product, StagingEntry, Transaction
from utils.errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "inventory_data"
COLLECTIONS = ("products", "transactions", "dailyOutbound")
RECORD_MODELS = {"products": Product, "transactions": Transaction, "dailyOutbound": StagingEntry}

# Demonstration products written on first run and after a reset
DEMO_PRODUCTS = [
    {"id": 1, "barcode": "1234567890", "name": "Sample Product A", "stock": 50, "min_stock": 10},
    {"id": 2, "barcode": "2345678901", "name": "Sample Product B", "stock": 30, "min_stock": 5},
    {"id": 3, "barcode": "3456789012", "name": "Sample Product C", "stock": 3, "min_stock": 5},
]


def to_int(value: Any, default: int) -> int:
    """Coerce form-style input to an int, falling back to ``default``."""
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return default


def _empty_document() -> Dict[str, List[Dict[str, Any]]]:
    return {name: [] for name in COLLECTIONS}


# Every record must load as its model, or nothing is written
def _check_records(document: Dict[str, List[Any]]) -> None:
    for name, model in RECORD_MODELS.items():
        for index, record in enumerate(document[name]):
            try:
                model.model_validate(record)
            except pydantic.ValidationError as e:
                problem = e.errors()[0]
                field = ".".join(str(part) for part in problem["loc"]) or "record"
                raise ValidationError(f"Backup {name}[{index}] is invalid: {field}: {problem['msg']}") from e


class LocalDataClient:
    """Inventory document stored as one JSON blob under a fixed storage key.

    Every call reads or writes the whole document synchronously; there is no
    caching and no rollback across calls.
    """

    def __init__(
        self,
        store: SqlKeyValueStore,
        key: str = DEFAULT_STORAGE_KEY,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.key = key
        self._clock = clock
        if self.store.get_item(self.key) is None:
            self._seed()

    def _seed(self) -> None:
        document = _empty_document()
        document["products"] = copy.deepcopy(DEMO_PRODUCTS)
        self.write_all(document)
        logger.info(f"Seeded local storage '{self.key}' with {len(DEMO_PRODUCTS)} demo products")

    def read_all(self) -> Dict[str, List[Dict[str, Any]]]:
        raw = self.store.get_item(self.key)
        if raw is None:
            return _empty_document()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Local document '{self.key}' is corrupt, reading as empty: {e}")
            return _empty_document()
        if not isinstance(data, dict):
            logger.warning(f"Local document '{self.key}' is not an object, reading as empty")
            return _empty_document()

        document = _empty_document()
        for name in COLLECTIONS:
            value = data.get(name)
            if isinstance(value, list):
                document[name] = [record for record in value if isinstance(record, dict)]
        return document

    def write_all(self, data: Dict[str, Any]) -> None:
        self.store.set_item(self.key, json.dumps(data, ensure_ascii=False))

    # Millisecond timestamp, bumped until it is not taken
    def _new_id(self, records: List[Dict[str, Any]]) -> int:
        taken = {r.get("id") for r in records}
        candidate = int(self._clock().timestamp() * 1000)
        while candidate in taken:
            candidate += 1
        return candidate

    def add_product(self, product: Dict[str, Any]) -> Dict[str, Any]:
        data = self.read_all()
        record = {
            **product,
            "id": self._new_id(data["products"]),
            "stock": to_int(product.get("stock"), 0),
            "min_stock": to_int(product.get("min_stock"), 5),
            "created_at": self._clock().isoformat(),
        }
        data["products"].append(record)
        self.write_all(data)
        return record

    def update_stock(self, product_id: int, stock: int) -> bool:
        data = self.read_all()
        for product in data["products"]:
            if product.get("id") == product_id:
                product["stock"] = stock
                product["updated_at"] = self._clock().isoformat()
                self.write_all(data)
                return True
        return False

    def append_transaction(self, transaction: Dict[str, Any]) -> Dict[str, Any]:
        data = self.read_all()
        now = self._clock()
        record = {
            **transaction,
            "id": self._new_id(data["transactions"]),
            "date": transaction.get("date") or now.date().isoformat(),
            "time": transaction.get("time") or now.strftime("%H:%M:%S"),
            "created_at": now.isoformat(),
        }
        # Newest first
        data["transactions"].insert(0, record)
        self.write_all(data)
        return record

    def replace_staging(self, entries: List[Dict[str, Any]]) -> None:
        data = self.read_all()
        data["dailyOutbound"] = list(entries)
        self.write_all(data)

    def export_snapshot(self) -> Tuple[str, str]:
        """Return ``(filename, json_text)`` of the whole document for download."""
        filename = f"inventory-backup-{self._clock().date().isoformat()}.json"
        return filename, json.dumps(self.read_all(), ensure_ascii=False, indent=2)

    def import_snapshot(self, text: str) -> Dict[str, List[Dict[str, Any]]]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Backup is not valid JSON: {e}") from e
        if not isinstance(data, dict) or not all(isinstance(data.get(name, []), list) for name in COLLECTIONS):
            raise ValidationError("Backup must be an object with products, transactions and dailyOutbound lists")

        document = _empty_document()
        for name in COLLECTIONS:
            document[name] = data.get(name, [])
        _check_records(document)
        self.write_all(document)
        return document

    def clear_all(self, confirmed: bool = False) -> bool:
        """Wipe everything and re-seed the demo products. Does nothing unless confirmed."""
        if not confirmed:
            return False
        self.store.remove_item(self.key)
        self._seed()
        logger.info(f"Local storage '{self.key}' cleared and re-seeded")
        return True

