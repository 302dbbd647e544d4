# backend/routes/outbound.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from schemas.inventory import AdjustRequest, AdjustResponse, CommitOutcome, ScanRequest, StagingEntry
from services.inventory import InventoryService
from utils.deps import get_inventory_service

router = APIRouter(prefix="/outbound", tags=["Outbound"])


@router.get("", response_model=List[StagingEntry])
def list_outbound(service: InventoryService = Depends(get_inventory_service)):
    return service.snapshot.daily_outbound


@router.post("/scan", response_model=StagingEntry)
async def scan(payload: ScanRequest, service: InventoryService = Depends(get_inventory_service)):
    product = await service.scan_barcode(payload.barcode)
    entry = service.staging_entry(product.id)
    if not entry:
        raise HTTPException(status_code=502, detail=f"{product.name} staged but could not be read back")
    return entry


@router.post("/{product_id}/adjust", response_model=AdjustResponse)
async def adjust(product_id: int, payload: AdjustRequest, service: InventoryService = Depends(get_inventory_service)):
    entry = service.staging_entry(product_id)
    if not entry:
        raise HTTPException(status_code=404, detail=f"Product {product_id} is not on the outbound list")

    # Staged quantity may not exceed what is on the shelf
    product = service.find_product(product_id)
    if payload.delta > 0 and product and entry.quantity + payload.delta > product.stock:
        raise HTTPException(status_code=400, detail=f"Only {product.stock} x {product.name} in stock")

    quantity = await service.adjust_staging_quantity(product_id, payload.delta)
    return {"product_id": product_id, "quantity": quantity, "removed": quantity == 0}


@router.delete("", status_code=204)
async def clear_outbound(service: InventoryService = Depends(get_inventory_service)):
    await service.clear_staging()


@router.post("/commit", response_model=CommitOutcome)
async def commit_outbound(service: InventoryService = Depends(get_inventory_service)):
    outcome = await service.commit_outbound()
    if not outcome.ok:
        return JSONResponse(status_code=502, content=outcome.model_dump(mode="json"))
    return outcome
