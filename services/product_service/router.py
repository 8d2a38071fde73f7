from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db, unit_of_work
from shared.errors import ProductNotFoundError
from shared.security.dependencies import verify_internal_api_key
from .models import ProductStatus
from .schemas import ProductResponse, StockResponse, StockUpdate
from .service import InventoryLedger

# Stock endpoints are for other services only; catalog CRUD lives elsewhere
router = APIRouter(dependencies=[Depends(verify_internal_api_key)])
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health")
async def health_check():
    return {"service": "product", "status": "running"}


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    try:
        return await InventoryLedger.get_product(db, product_id)
    except ProductNotFoundError:
        raise HTTPException(status_code=404, detail="Product not found")


@router.post("/{product_id}/reserve", response_model=StockResponse)
async def reserve_stock(
    product_id: int,
    stock_update: StockUpdate,
    db: AsyncSession = Depends(get_db)
):
    try:
        async with unit_of_work(db, "reserve stock"):
            stock = await InventoryLedger.reserve(db, product_id, stock_update.quantity)
    except ProductNotFoundError:
        raise HTTPException(status_code=404, detail="Product not found")
    product_status = ProductStatus.SOLD if stock == 0 else ProductStatus.ACTIVE
    return StockResponse(product_id=product_id, stock=stock, status=product_status.value)


@router.post("/{product_id}/release", response_model=StockResponse)
async def release_stock(
    product_id: int,
    stock_update: StockUpdate,
    db: AsyncSession = Depends(get_db)
):
    try:
        async with unit_of_work(db, "release stock"):
            stock = await InventoryLedger.release(db, product_id, stock_update.quantity)
    except ProductNotFoundError:
        raise HTTPException(status_code=404, detail="Product not found")
    return StockResponse(product_id=product_id, stock=stock, status=ProductStatus.ACTIVE.value)
