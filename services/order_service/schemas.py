from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from services.payment_service.models import PaymentMethod, PaymentStatus
from services.payment_service.schemas import TransactionResponse
from .state_machine import OrderStatus

class OrderItemCreate(BaseModel):
    # quantity is range-checked by the service so it surfaces as InvalidQuantity
    product_id: int
    quantity: int

class OrderCreate(BaseModel):
    # An empty list is accepted here so the service can reject it as EmptyOrder
    items: List[OrderItemCreate]
    shipping_address: str = Field(min_length=1)
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY

class OrderStatusUpdate(BaseModel):
    order_status: OrderStatus

class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus
    reference: Optional[str] = Field(default=None, max_length=64)

class ProductSummary(BaseModel):
    """Seller-facing product fields only; stock is not exposed to buyers."""
    id: int
    title: str
    price: Decimal

    class Config:
        from_attributes = True

class OrderItemResponse(BaseModel):
    id: int
    product_id: int
    quantity: int
    price: Decimal
    product: Optional[ProductSummary] = None

    class Config:
        from_attributes = True

class OrderResponse(BaseModel):
    id: int
    user_id: int
    total_amount: Decimal
    shipping_address: str
    payment_method: str
    payment_status: str
    order_status: str
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemResponse] = []

    class Config:
        from_attributes = True

class OrderDetailResponse(OrderResponse):
    transaction: Optional[TransactionResponse] = None
