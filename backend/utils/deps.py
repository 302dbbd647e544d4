# backend/utils/deps.py
import logging

from fastapi import Depends, HTTPException, Request

from clients.local import LocalDataClient
from clients.remote import RemoteDataClient
from clients.storage import SqlKeyValueStore
from config import Settings
from database import create_session_factory
from services.backends import LocalInventoryBackend, RemoteInventoryBackend
from services.inventory import InventoryService

logger = logging.getLogger(__name__)


# Construct the configured backend and the service on top of it
def build_service(settings: Settings) -> InventoryService:
    if settings.INVENTORY_BACKEND == "remote":
        if not settings.REMOTE_API_URL or not settings.REMOTE_API_KEY:
            raise ValueError("REMOTE_API_URL and REMOTE_API_KEY are required for the remote backend")
        client = RemoteDataClient(
            settings.REMOTE_API_URL,
            settings.REMOTE_API_KEY,
            timeout=settings.REMOTE_TIMEOUT_SECONDS,
        )
        backend = RemoteInventoryBackend(client)
    else:
        store = SqlKeyValueStore(create_session_factory(settings.LOCAL_DATABASE_URL))
        backend = LocalInventoryBackend(LocalDataClient(store, key=settings.LOCAL_STORAGE_KEY))

    logger.info(f"Inventory backend: {backend.name}")
    return InventoryService(backend)


def get_inventory_service(request: Request) -> InventoryService:
    return request.app.state.inventory


# Export, import and reset exist only for the local document
def get_local_client(service: InventoryService = Depends(get_inventory_service)) -> LocalDataClient:
    if not isinstance(service.backend, LocalInventoryBackend):
        raise HTTPException(status_code=409, detail="Only available with the local storage backend")
    return service.backend.client
