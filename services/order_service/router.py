from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from shared.config.database import get_db
from shared.security import CHECKOUT_RATE_LIMIT, get_current_user, limiter
from shared.security.dependencies import verify_internal_api_key
from services.payment_service.schemas import TransactionResponse
from .schemas import (
    OrderCreate,
    OrderDetailResponse,
    OrderResponse,
    OrderStatusUpdate,
    PaymentStatusUpdate,
)
from .service import OrderService

# Buyer-facing routes: every call is scoped to the authenticated user
router = APIRouter()
# Seller/admin tooling and other services
internal_router = APIRouter(dependencies=[Depends(verify_internal_api_key)])
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health")
async def health_check():
    return {"service": "order", "status": "running"}


@router.post("/", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(CHECKOUT_RATE_LIMIT)
async def place_order(
    request: Request,                          # REQUIRED: slowapi needs this to check IP/Headers
    payload: OrderCreate,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.place_order(db, user_id, payload)


@router.get("/", response_model=List[OrderResponse])
async def list_my_orders(
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.list_orders(db, user_id)


@router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(
    order_id: int,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    order, transaction = await OrderService.get_order(db, order_id, user_id)
    detail = OrderDetailResponse.model_validate(order)
    if transaction is not None:
        detail.transaction = TransactionResponse.model_validate(transaction)
    return detail


@router.patch("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: int,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.cancel_order(db, order_id, user_id)


@internal_router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.update_status(db, order_id, payload.order_status)


@internal_router.patch("/{order_id}/payment", response_model=OrderResponse)
async def record_payment(
    order_id: int,
    payload: PaymentStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.record_payment(db, order_id, payload.payment_status, payload.reference)
