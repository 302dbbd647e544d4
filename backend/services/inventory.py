# backend/services/inventory.py
import logging
from datetime import datetime
from typing import Callable, List, Optional

from clients.local import to_int
from schemas.inventory import (
    CommitOutcome,
    CommitStep,
    Product,
    Snapshot,
    StagingEntry,
)
from services.backends import InventoryBackend
from utils.errors import NotFoundError, OperationError, ValidationError

logger = logging.getLogger(__name__)


class InventoryService:
    """Inventory operations shared by the remote and local backends.

    Lookups run against the last loaded snapshot, not a fresh query, so two
    writers can race. Writes go to the backend one at a time, and the snapshot
    is re-read after each operation.
    """

    def __init__(self, backend: InventoryBackend, clock: Callable[[], datetime] = datetime.now):
        self.backend = backend
        self._clock = clock
        self.snapshot = Snapshot()
        self.last_sync: Optional[datetime] = None

    # --- snapshot ---

    def apply_snapshot(self, snapshot: Snapshot) -> None:
        self.snapshot = snapshot
        self.last_sync = self._clock()

    async def refresh(self) -> Snapshot:
        self.apply_snapshot(await self.backend.load_snapshot())
        return self.snapshot

    # Re-read after a write; a failed re-read keeps the previous snapshot
    async def _refresh_after_write(self) -> None:
        try:
            await self.refresh()
        except OperationError as e:
            logger.warning(f"Refresh after write failed, keeping previous snapshot: {e}")

    def _today(self) -> str:
        return self._clock().date().isoformat()

    def _now_time(self) -> str:
        return self._clock().strftime("%H:%M:%S")

    # --- lookups ---

    def find_by_barcode(self, barcode: str) -> Optional[Product]:
        return next((p for p in self.snapshot.products if p.barcode == barcode), None)

    def find_product(self, product_id: int) -> Optional[Product]:
        return next((p for p in self.snapshot.products if p.id == product_id), None)

    def search_products(self, term: str) -> List[Product]:
        if not term:
            return list(self.snapshot.products)
        lowered = term.lower()
        return [p for p in self.snapshot.products if lowered in p.name.lower() or term in p.barcode]

    def staging_entry(self, product_id: int) -> Optional[StagingEntry]:
        return next((e for e in self.snapshot.daily_outbound if e.product_id == product_id), None)

    # --- outbound staging ---

    async def scan_barcode(self, barcode: str) -> Product:
        barcode = (barcode or "").strip()
        if not barcode:
            raise ValidationError("Barcode is required")
        product = self.find_by_barcode(barcode)
        if product is None:
            raise NotFoundError(f"No product found for barcode {barcode}")
        await self.add_to_staging(product)
        return product

    async def add_to_staging(self, product: Product) -> None:
        existing = await self.backend.find_staging_entry(product.id)
        if existing:
            await self.backend.set_staging_quantity(product.id, existing.quantity + 1)
        else:
            await self.backend.create_staging_entry({
                "product_id": product.id,
                "product_name": product.name,
                "barcode": product.barcode,
                "stock": product.stock,
                "min_stock": product.min_stock,
                "quantity": 1,
            })
        await self._refresh_after_write()

    async def adjust_staging_quantity(self, product_id: int, delta: int) -> int:
        """Apply ``delta`` to a staged quantity and return the new value.

        The quantity never drops below zero; at zero the entry is removed.
        """
        entry = self.staging_entry(product_id)
        if entry is None:
            raise NotFoundError(f"Product {product_id} is not on the outbound list")

        new_quantity = max(0, entry.quantity + delta)
        if new_quantity == 0:
            await self.backend.delete_staging_entry(product_id)
        else:
            await self.backend.set_staging_quantity(product_id, new_quantity)
        await self._refresh_after_write()
        return new_quantity

    async def clear_staging(self) -> None:
        await self.backend.clear_staging()
        await self._refresh_after_write()

    # --- commits ---

    async def commit_outbound(self) -> CommitOutcome:
        staged = list(self.snapshot.daily_outbound)
        if not staged:
            raise ValidationError("There are no products to ship")

        today, now = self._today(), self._now_time()
        outcome = CommitOutcome(direction="OUT")
        try:
            for entry in staged:
                product = self.find_product(entry.product_id)
                if product is None:
                    outcome.skipped_product_ids.append(entry.product_id)
                    continue

                step = CommitStep(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=entry.quantity,
                    previous_stock=product.stock,
                    new_stock=max(0, product.stock - entry.quantity),
                )
                outcome.steps.append(step)

                await self.backend.set_stock(product.id, step.new_stock)
                step.stock_updated = True

                await self.backend.record_transaction({
                    "product_id": product.id,
                    "product_name": product.name,
                    "type": "OUT",
                    "quantity": entry.quantity,
                    "date": today,
                    "time": now,
                })
                step.transaction_recorded = True

            await self.backend.clear_staging()
            outcome.staging_cleared = True
        except OperationError as e:
            outcome.error = e.message
            logger.error(f"Outbound commit stopped after {outcome.processed} product(s): {e.message}")
        else:
            logger.info(f"Outbound commit processed {outcome.processed} product(s)")

        await self._refresh_after_write()
        return outcome

    async def commit_inbound(self, product_id: int, quantity: int, date: Optional[str] = None) -> CommitOutcome:
        if not product_id or quantity is None or quantity <= 0:
            raise ValidationError("Select a product and enter a quantity greater than zero")
        product = self.find_product(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        if date:
            try:
                datetime.strptime(date, "%Y-%m-%d")
            except ValueError:
                raise ValidationError(f"Bad date format: {date}")

        step = CommitStep(
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            previous_stock=product.stock,
            new_stock=product.stock + quantity,
        )
        outcome = CommitOutcome(direction="IN", steps=[step])
        try:
            await self.backend.set_stock(product.id, step.new_stock)
            step.stock_updated = True

            await self.backend.record_transaction({
                "product_id": product.id,
                "product_name": product.name,
                "type": "IN",
                "quantity": quantity,
                "date": date or self._today(),
                "time": self._now_time(),
            })
            step.transaction_recorded = True
        except OperationError as e:
            outcome.error = e.message
            logger.error(f"Inbound commit for product {product.id} failed: {e.message}")
        else:
            logger.info(f"Received {quantity} x {product.name}, stock {step.previous_stock} -> {step.new_stock}")

        await self._refresh_after_write()
        return outcome

    # --- catalogue ---

    async def register_product(self, barcode: str, name: str, stock=0, min_stock=5) -> None:
        barcode = (barcode or "").strip()
        name = (name or "").strip()
        if not barcode or not name:
            raise ValidationError("Barcode and product name are required")
        # Checked against the loaded snapshot only
        if self.find_by_barcode(barcode) is not None:
            raise ValidationError(f"Barcode {barcode} already exists")

        stock_value = to_int(stock, 0)
        min_stock_value = to_int(min_stock, 5)
        if stock_value < 0 or min_stock_value < 0:
            raise ValidationError("Stock values cannot be negative")

        await self.backend.insert_product({
            "barcode": barcode,
            "name": name,
            "stock": stock_value,
            "min_stock": min_stock_value,
        })
        await self._refresh_after_write()
