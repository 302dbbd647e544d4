# backend/schemas/inventory.py
from pydantic import BaseModel, Field, ConfigDict, computed_field
from datetime import datetime
from typing import List, Optional, Literal

# Direction of a stock movement
TransactionType = Literal["IN", "OUT"]


# Records coming from storage may carry extra columns; they are ignored
class StoredRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Product(StoredRecord):
    id: int
    barcode: str
    name: str
    stock: int = 0
    min_stock: int = 5
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @computed_field
    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.min_stock


# Pending outbound quantity for one product, with product fields captured at scan time
class StagingEntry(StoredRecord):
    id: Optional[int] = None
    product_id: int
    product_name: str
    barcode: str
    stock: int = 0
    min_stock: int = 5
    quantity: int


# Append-only movement log entry
class Transaction(StoredRecord):
    id: Optional[int] = None
    product_id: int
    product_name: str
    type: TransactionType
    quantity: int
    date: str
    time: str
    created_at: Optional[datetime] = None


# Full read of all three collections at one point in time
class Snapshot(StoredRecord):
    products: List[Product] = Field(default_factory=list)
    transactions: List[Transaction] = Field(default_factory=list)
    daily_outbound: List[StagingEntry] = Field(default_factory=list, alias="dailyOutbound")


class SnapshotResponse(BaseModel):
    backend: str
    last_sync: Optional[datetime] = None
    products: List[Product]
    transactions: List[Transaction]
    daily_outbound: List[StagingEntry]


# --- Requests ---

class ProductCreate(BaseModel):
    barcode: str = ""
    name: str = ""
    stock: Optional[int] = Field(default=0, ge=0)
    min_stock: Optional[int] = Field(default=5, ge=0)


class ScanRequest(BaseModel):
    barcode: str


class AdjustRequest(BaseModel):
    delta: int


class InboundCreate(BaseModel):
    product_id: int
    quantity: int
    date: Optional[str] = Field(default=None, description="YYYY-MM-DD, defaults to today")


class AdjustResponse(BaseModel):
    product_id: int
    quantity: int
    removed: bool


# --- Commit outcome ---

# Progress of one product within a commit
class CommitStep(BaseModel):
    product_id: int
    product_name: str
    quantity: int
    previous_stock: int
    new_stock: int
    stock_updated: bool = False
    transaction_recorded: bool = False


class CommitOutcome(BaseModel):
    direction: TransactionType
    steps: List[CommitStep] = Field(default_factory=list)
    skipped_product_ids: List[int] = Field(default_factory=list)
    staging_cleared: bool = False
    error: Optional[str] = None

    @computed_field
    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def processed(self) -> int:
        return sum(1 for step in self.steps if step.stock_updated and step.transaction_recorded)
