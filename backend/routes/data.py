# backend/routes/data.py
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response

from clients.local import LocalDataClient
from schemas.inventory import SnapshotResponse
from services.inventory import InventoryService
from utils.deps import get_inventory_service, get_local_client
from utils.errors import ValidationError

router = APIRouter(tags=["Data"])


@router.get("/snapshot", response_model=SnapshotResponse)
def get_snapshot(service: InventoryService = Depends(get_inventory_service)):
    snap = service.snapshot
    return {
        "backend": service.backend.name,
        "last_sync": service.last_sync,
        "products": snap.products,
        "transactions": snap.transactions,
        "daily_outbound": snap.daily_outbound,
    }


@router.get("/data/export")
def export_data(client: LocalDataClient = Depends(get_local_client)):
    filename, content = client.export_snapshot()
    return Response(
        content=content,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# Body is a file produced by /data/export
@router.post("/data/import", response_model=SnapshotResponse)
async def import_data(
    request: Request,
    client: LocalDataClient = Depends(get_local_client),
    service: InventoryService = Depends(get_inventory_service),
):
    body = await request.body()
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ValidationError(f"Backup is not valid UTF-8: {e}") from e
    client.import_snapshot(text)
    await service.refresh()
    return get_snapshot(service)


@router.post("/data/reset", response_model=SnapshotResponse)
async def reset_data(
    confirm: bool = Query(False),
    client: LocalDataClient = Depends(get_local_client),
    service: InventoryService = Depends(get_inventory_service),
):
    if not client.clear_all(confirmed=confirm):
        raise HTTPException(status_code=400, detail="Pass confirm=true to wipe all local data")
    await service.refresh()
    return get_snapshot(service)
