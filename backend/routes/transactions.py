# backend/routes/transactions.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from schemas.inventory import Transaction, TransactionType
from services.inventory import InventoryService
from utils.deps import get_inventory_service

router = APIRouter(prefix="/transactions", tags=["Transactions"])


# Newest first, as stored
@router.get("", response_model=List[Transaction])
def list_transactions(
    type: Optional[TransactionType] = Query(None),
    product_id: Optional[int] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    service: InventoryService = Depends(get_inventory_service),
):
    items = service.snapshot.transactions
    if type:
        items = [t for t in items if t.type == type]
    if product_id is not None:
        items = [t for t in items if t.product_id == product_id]
    if limit:
        items = items[:limit]
    return items
