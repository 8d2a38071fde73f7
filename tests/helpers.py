"""Request builders shared by the test modules."""

import os

from shared.security import create_access_token
from services.order_service.schemas import OrderCreate, OrderItemCreate

INTERNAL_HEADERS = {"X-Internal-API-Key": os.environ["INTERNAL_API_KEY"]}


def order_request(*lines, shipping_address="Hostel B, Room 214", **kwargs) -> OrderCreate:
    """Build an OrderCreate from (product_id, quantity) pairs."""
    return OrderCreate(
        items=[OrderItemCreate(product_id=pid, quantity=qty) for pid, qty in lines],
        shipping_address=shipping_address,
        **kwargs,
    )


def auth_headers(user_id: int) -> dict:
    token = create_access_token({"sub": str(user_id)})
    return {"Authorization": f"Bearer {token}"}
