"""
Error taxonomy shared by the order and product services.

Every business rule violation is a MarketplaceError subclass carrying the HTTP
status it maps to and a stable machine-readable code. Routers never translate
these by hand: register_exception_handlers() installs one handler per app.
"""
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class MarketplaceError(Exception):
    """Base class for all order/inventory errors."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "MarketplaceError"

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code, **self.context}


class EmptyOrderError(MarketplaceError):
    code = "EmptyOrder"

    def __init__(self):
        super().__init__("Order must contain at least one item")


class InvalidQuantityError(MarketplaceError):
    code = "InvalidQuantity"

    def __init__(self, product_id: int, quantity: int):
        super().__init__(
            f"Quantity for product {product_id} must be at least 1, got {quantity}",
            product_id=product_id,
            quantity=quantity,
        )


class ProductNotFoundError(MarketplaceError):
    code = "ProductNotFound"

    def __init__(self, product_ids):
        ids = sorted(product_ids)
        super().__init__(
            f"Product(s) not found: {', '.join(str(i) for i in ids)}",
            product_ids=ids,
        )


class InsufficientStockError(MarketplaceError):
    code = "InsufficientStock"

    def __init__(self, product_id: int, available: int, requested: int, title: str | None = None):
        name = title or f"product {product_id}"
        super().__init__(
            f"Not enough stock for {name}. Available: {available}",
            product_id=product_id,
            available=available,
            requested=requested,
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class OrderNotFoundError(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "OrderNotFound"

    def __init__(self, order_id: int):
        super().__init__("Order not found", order_id=order_id)


class InvalidTransitionError(MarketplaceError):
    code = "InvalidTransition"

    def __init__(self, current: str, requested: str, reason: str | None = None):
        message = f"Cannot change status from {current} to {requested}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, current=current, requested=requested)
        self.current = current
        self.requested = requested


class StorageFailureError(MarketplaceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "StorageFailure"


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)
