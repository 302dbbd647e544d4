# backend/routes/products.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from schemas.inventory import Product, ProductCreate
from services.inventory import InventoryService
from utils.deps import get_inventory_service

router = APIRouter(prefix="/products", tags=["Products"])


@router.get("", response_model=List[Product])
def list_products(
    q: Optional[str] = Query(None, description="Search by name or barcode"),
    low_stock: bool = Query(False, description="Only products at or below their minimum stock"),
    service: InventoryService = Depends(get_inventory_service),
):
    products = service.search_products(q or "")
    if low_stock:
        products = [p for p in products if p.is_low_stock]
    return products


@router.get("/barcode/{barcode}", response_model=Product)
def get_by_barcode(barcode: str, service: InventoryService = Depends(get_inventory_service)):
    product = service.find_by_barcode(barcode)
    if not product:
        raise HTTPException(status_code=404, detail=f"No product found for barcode {barcode}")
    return product


@router.post("", response_model=Product, status_code=201)
async def register_product(payload: ProductCreate, service: InventoryService = Depends(get_inventory_service)):
    await service.register_product(payload.barcode, payload.name, payload.stock, payload.min_stock)
    product = service.find_by_barcode(payload.barcode.strip())
    if not product:
        raise HTTPException(status_code=502, detail="Product saved but could not be read back")
    return product
