# backend/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from config import Settings, get_settings
from services.inventory import InventoryService
from utils.deps import build_service
from utils.errors import NotFoundError, OperationError, ValidationError

# Import routerów
from routes.products import router as products_router
from routes.outbound import router as outbound_router
from routes.inbound import router as inbound_router
from routes.transactions import router as transactions_router
from routes.data import router as data_router

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, service: Optional[InventoryService] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    service = service or build_service(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            await service.refresh()
        except OperationError as e:
            logger.error(f"Initial snapshot load failed: {e.message}")

        # Remote storage is shared with other clients, so keep polling it
        subscription = service.backend.subscribe(service.apply_snapshot, settings.POLL_INTERVAL_SECONDS)
        try:
            yield
        finally:
            if subscription is not None:
                subscription.cancel()

    app = FastAPI(title="Inventory Tracker API", version="1.0.0", lifespan=lifespan)
    app.state.inventory = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Errors from inventory operations map onto plain HTTP errors
    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": exc.message})

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"detail": exc.message})

    @app.exception_handler(OperationError)
    async def operation_handler(request: Request, exc: OperationError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=502, content={"detail": exc.message})

    # Rejestracja routerów
    app.include_router(products_router)
    app.include_router(outbound_router)
    app.include_router(inbound_router)
    app.include_router(transactions_router)
    app.include_router(data_router)

    @app.get("/")
    def read_root():
        return {"message": "Inventory Tracker API is running", "backend": service.backend.name}

    return app


if __name__ == "__main__":
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
