# backend/routes/inbound.py
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from schemas.inventory import CommitOutcome, InboundCreate
from services.inventory import InventoryService
from utils.deps import get_inventory_service

router = APIRouter(tags=["Inbound"])


@router.post("/inbound", response_model=CommitOutcome)
async def commit_inbound(payload: InboundCreate, service: InventoryService = Depends(get_inventory_service)):
    outcome = await service.commit_inbound(payload.product_id, payload.quantity, payload.date)
    if not outcome.ok:
        return JSONResponse(status_code=502, content=outcome.model_dump(mode="json"))
    return outcome
