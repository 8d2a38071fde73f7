"""
Checkout and cancellation orchestration.

place_order() and cancel_order() each run as a single database transaction
(see unit_of_work): the order header, its items, the stock adjustments and the
Transaction record are committed together or not at all. There is no
compensation step; rollback is the only recovery path.
"""
from decimal import Decimal
from typing import Iterable, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from shared.config.database import unit_of_work
from shared.errors import (
    EmptyOrderError,
    InsufficientStockError,
    InvalidQuantityError,
    InvalidTransitionError,
    MarketplaceError,
    OrderNotFoundError,
    ProductNotFoundError,
    StorageFailureError,
)
from shared.observability import (
    marketplace_cancellation_total,
    marketplace_checkout_duration_seconds,
    marketplace_checkout_total,
    marketplace_order_transitions_total,
)
from services.payment_service.models import PaymentStatus, Transaction
from services.payment_service.service import TransactionService
from services.product_service.service import InventoryLedger
from .models import Order, OrderItem
from .repository import OrderRepository
from .schemas import OrderCreate, OrderItemCreate
from .state_machine import (
    OrderStatus,
    payment_status_on_cancel,
    validate_payment_transition,
    validate_transition,
)

logger = structlog.get_logger(__name__)

CENTS = Decimal("0.01")


def _outcome(exc: Exception) -> str:
    return "failed" if isinstance(exc, StorageFailureError) else "rejected"


def merge_line_items(items: Iterable[OrderItemCreate]) -> dict[int, int]:
    """Collapse repeated product ids into one line, keeping first-seen order."""
    quantities: dict[int, int] = {}
    for item in items:
        if item.quantity < 1:
            raise InvalidQuantityError(item.product_id, item.quantity)
        quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity
    return quantities


class OrderService:

    @staticmethod
    async def place_order(db: AsyncSession, user_id: int, data: OrderCreate) -> Order:
        """
        Turn a cart snapshot into a placed order.

        Validation (missing products, stock shortfalls) happens before any
        write. The per-item reserve() is still the authoritative check: if a
        concurrent checkout drained the stock in between, it raises
        InsufficientStockError and the whole order is rolled back.
        """
        try:
            with marketplace_checkout_duration_seconds.time():
                order = await OrderService._place_order(db, user_id, data)
        except MarketplaceError as exc:
            marketplace_checkout_total.labels(status=_outcome(exc)).inc()
            logger.info("checkout_rejected", user_id=user_id, code=exc.code, detail=exc.message)
            raise

        marketplace_checkout_total.labels(status="success").inc()
        logger.info(
            "order_placed",
            order_id=order.id,
            user_id=user_id,
            total_amount=str(order.total_amount),
            items=len(order.items),
        )
        return await OrderRepository.get_order(db, order.id)

    @staticmethod
    async def _place_order(db: AsyncSession, user_id: int, data: OrderCreate) -> Order:
        if not data.items:
            raise EmptyOrderError()
        quantities = merge_line_items(data.items)

        async with unit_of_work(db, "create order"):
            products = await InventoryLedger.get_products(db, quantities.keys())
            missing = set(quantities) - set(products)
            if missing:
                raise ProductNotFoundError(missing)

            for product_id, quantity in quantities.items():
                product = products[product_id]
                if product.stock < quantity:
                    raise InsufficientStockError(
                        product_id, available=product.stock, requested=quantity, title=product.title
                    )

            total = sum(
                (Decimal(products[pid].price) * qty for pid, qty in quantities.items()),
                Decimal("0"),
            ).quantize(CENTS)

            order = Order(
                user_id=user_id,
                total_amount=total,
                shipping_address=data.shipping_address,
                payment_method=data.payment_method.value,
                payment_status=PaymentStatus.PENDING.value,
                order_status=OrderStatus.PLACED.value,
                items=[],
            )
            await OrderRepository.add_order(db, order)

            # Lock stock rows in product id order so crossed carts cannot deadlock
            for product_id in sorted(quantities):
                quantity = quantities[product_id]
                product = products[product_id]
                item = OrderItem(order=order, product=product, quantity=quantity, price=product.price)
                await OrderRepository.add_item(db, item)
                await InventoryLedger.reserve(db, product_id, quantity)

            await TransactionService.record_pending(db, order)

        return order

    @staticmethod
    async def cancel_order(db: AsyncSession, order_id: int, user_id: int) -> Order:
        """Cancel the caller's order, restore its stock and settle its Transaction."""
        try:
            async with unit_of_work(db, "cancel order"):
                order = await OrderRepository.get_order(db, order_id, user_id=user_id, for_update=True)
                if not order:
                    raise OrderNotFoundError(order_id)

                refund_status = payment_status_on_cancel(order.payment_status)
                await OrderService.transition(
                    db, order, OrderStatus.CANCELLED, payment_status=refund_status.value
                )

                for item in sorted(order.items, key=lambda i: i.product_id):
                    await InventoryLedger.release(db, item.product_id, item.quantity)

                await TransactionService.apply_cancellation(db, order.id)
        except MarketplaceError as exc:
            marketplace_cancellation_total.labels(status=_outcome(exc)).inc()
            logger.info("cancellation_rejected", order_id=order_id, user_id=user_id, code=exc.code)
            raise

        marketplace_cancellation_total.labels(status="success").inc()
        logger.info("order_cancelled", order_id=order_id, user_id=user_id)
        return await OrderRepository.get_order(db, order_id)

    @staticmethod
    async def transition(db: AsyncSession, order: Order, target: OrderStatus, **values) -> Order:
        """
        Validate and persist `order` moving to `target`. Extra column values
        (payment_status on cancellation) are written in the same statement.
        Does not commit.
        """
        current = OrderStatus(order.order_status)
        validate_transition(current, target)

        applied = await OrderRepository.update_status(
            db, order.id, current, order_status=target.value, **values
        )
        if not applied:
            raise InvalidTransitionError(current.value, target.value, "order was modified concurrently")

        # Reflect the UPDATE on the loaded instance without scheduling another one
        set_committed_value(order, "order_status", target.value)
        for key, value in values.items():
            set_committed_value(order, key, value)

        marketplace_order_transitions_total.labels(from_status=current.value, to_status=target.value).inc()
        return order

    @staticmethod
    async def update_status(db: AsyncSession, order_id: int, target: OrderStatus) -> Order:
        """Seller/admin status progression. Never touches stock or the Transaction."""
        async with unit_of_work(db, "update order status"):
            order = await OrderRepository.get_order(db, order_id, for_update=True)
            if not order:
                raise OrderNotFoundError(order_id)
            if target is OrderStatus.CANCELLED:
                raise InvalidTransitionError(
                    order.order_status, target.value, "use the cancel endpoint so stock is restored"
                )
            await OrderService.transition(db, order, target)

        logger.info("order_status_updated", order_id=order_id, order_status=target.value)
        return await OrderRepository.get_order(db, order_id)

    @staticmethod
    async def record_payment(
        db: AsyncSession, order_id: int, status: PaymentStatus, reference: Optional[str] = None
    ) -> Order:
        """Record a payment outcome label on the order and its Transaction."""
        async with unit_of_work(db, "record payment"):
            order = await OrderRepository.get_order(db, order_id, for_update=True)
            if not order:
                raise OrderNotFoundError(order_id)

            current = PaymentStatus(order.payment_status)
            new = validate_payment_transition(current, status)
            if not await OrderRepository.update_payment_status(db, order.id, current, new):
                raise InvalidTransitionError(current.value, new.value, "order was modified concurrently")
            await TransactionService.record_outcome(db, order.id, new, reference)

        logger.info("payment_recorded", order_id=order_id, payment_status=status.value)
        return await OrderRepository.get_order(db, order_id)

    @staticmethod
    async def get_order(db: AsyncSession, order_id: int, user_id: int) -> tuple[Order, Optional[Transaction]]:
        order = await OrderRepository.get_order(db, order_id, user_id=user_id)
        if not order:
            raise OrderNotFoundError(order_id)
        transaction = await TransactionService.get_for_order(db, order.id)
        return order, transaction

    @staticmethod
    async def list_orders(db: AsyncSession, user_id: int) -> list[Order]:
        return await OrderRepository.list_orders_for_user(db, user_id)
