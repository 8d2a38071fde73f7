"""Tests for OrderService.place_order: validation, totals, and all-or-nothing writes."""

from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from shared.errors import (
    EmptyOrderError,
    InsufficientStockError,
    InvalidQuantityError,
    ProductNotFoundError,
    StorageFailureError,
)
from services.order_service.models import Order, OrderItem
from services.order_service.service import OrderService, merge_line_items
from services.order_service.state_machine import OrderStatus
from services.payment_service.models import PaymentMethod, PaymentStatus, Transaction
from services.payment_service.service import TransactionService
from services.product_service.models import ProductStatus
from tests.helpers import order_request


async def _count(session_factory, model) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(model))


class TestPlaceOrderHappyPath:

    async def test_creates_order_with_correct_total(self, db, make_product):
        lamp = await make_product(title="Desk Lamp", price="12.50", stock=5)
        kettle = await make_product(title="Kettle", price="20.00", stock=2)

        order = await OrderService.place_order(db, 7, order_request((lamp.id, 2), (kettle.id, 1)))

        assert order.total_amount == Decimal("45.00")
        assert order.order_status == OrderStatus.PLACED.value
        assert order.payment_status == PaymentStatus.PENDING.value
        assert order.payment_method == PaymentMethod.CASH_ON_DELIVERY.value
        assert order.user_id == 7
        assert [(i.product_id, i.quantity) for i in order.items] == [(lamp.id, 2), (kettle.id, 1)]

    async def test_decrements_stock_and_marks_sold(self, db, make_product, read_product):
        product = await make_product(stock=2)
        await OrderService.place_order(db, 1, order_request((product.id, 2)))

        stored = await read_product(product.id)
        assert stored.stock == 0
        assert stored.status == ProductStatus.SOLD.value

    async def test_creates_pending_transaction(self, db, session_factory, make_product):
        product = await make_product(price="8.00")
        order = await OrderService.place_order(
            db, 3, order_request((product.id, 3), payment_method=PaymentMethod.UPI)
        )

        async with session_factory() as session:
            transaction = await session.scalar(select(Transaction).where(Transaction.order_id == order.id))
        assert transaction.status == PaymentStatus.PENDING.value
        assert transaction.amount == Decimal("24.00")
        assert transaction.payment_method == "UPI"
        assert transaction.user_id == 3

    async def test_item_price_is_a_snapshot(self, db, session_factory, make_product):
        product = await make_product(price="10.00", stock=3)
        order = await OrderService.place_order(db, 1, order_request((product.id, 1)))

        async with session_factory() as session:
            stored = await session.get(type(product), product.id)
            stored.price = Decimal("99.00")
            await session.commit()

        fetched, _ = await OrderService.get_order(db, order.id, 1)
        assert fetched.items[0].price == Decimal("10.00")
        assert fetched.total_amount == Decimal("10.00")

    async def test_duplicate_lines_are_merged(self, db, make_product, read_product):
        product = await make_product(price="5.00", stock=4)
        order = await OrderService.place_order(db, 1, order_request((product.id, 1), (product.id, 2)))

        assert len(order.items) == 1
        assert order.items[0].quantity == 3
        assert order.total_amount == Decimal("15.00")
        assert (await read_product(product.id)).stock == 1

    async def test_items_carry_product_summary(self, db, make_product):
        product = await make_product(title="Calculus Textbook", price="30.00")
        order = await OrderService.place_order(db, 1, order_request((product.id, 1)))
        assert order.items[0].product.title == "Calculus Textbook"


class TestPlaceOrderRejections:

    async def test_empty_order(self, db):
        with pytest.raises(EmptyOrderError):
            await OrderService.place_order(db, 1, order_request())

    async def test_zero_quantity(self, db, make_product):
        product = await make_product()
        with pytest.raises(InvalidQuantityError):
            await OrderService.place_order(db, 1, order_request((product.id, 0)))

    async def test_missing_products_are_listed(self, db, make_product):
        product = await make_product()
        with pytest.raises(ProductNotFoundError) as exc_info:
            await OrderService.place_order(db, 1, order_request((product.id, 1), (500, 1), (404, 2)))
        assert exc_info.value.context["product_ids"] == [404, 500]

    async def test_shortfall_reports_first_failing_product(self, db, make_product):
        plenty = await make_product(title="Chair", stock=10)
        scarce = await make_product(title="Mini Fridge", stock=1)
        with pytest.raises(InsufficientStockError) as exc_info:
            await OrderService.place_order(db, 1, order_request((plenty.id, 2), (scarce.id, 3)))

        assert exc_info.value.product_id == scarce.id
        assert exc_info.value.available == 1
        assert "Mini Fridge" in exc_info.value.message

    async def test_rejection_writes_nothing(self, db, session_factory, make_product, read_product):
        plenty = await make_product(stock=10)
        scarce = await make_product(stock=1)
        with pytest.raises(InsufficientStockError):
            await OrderService.place_order(db, 1, order_request((plenty.id, 2), (scarce.id, 3)))

        assert (await read_product(plenty.id)).stock == 10
        assert (await read_product(scarce.id)).stock == 1
        assert await _count(session_factory, Order) == 0
        assert await _count(session_factory, OrderItem) == 0
        assert await _count(session_factory, Transaction) == 0


class TestConcurrentShortfall:

    async def test_reservation_loses_race_and_rolls_back(
        self, db, session_factory, make_product, read_product, monkeypatch
    ):
        """Stock drained between validation and reserve: the ledger still refuses
        and the half-built order disappears."""
        from services.product_service.repository import ProductRepository
        from services.product_service.service import InventoryLedger

        first = await make_product(title="Bike Lock", stock=3)
        second = await make_product(title="Helmet", stock=3)
        original_get_products = InventoryLedger.get_products

        async def stale_get_products(session, product_ids):
            products = await original_get_products(session, product_ids)
            # Another checkout commits right after our read
            async with session_factory() as other:
                await ProductRepository.decrement_stock(other, second.id, 2)
                await other.commit()
            return products

        monkeypatch.setattr(InventoryLedger, "get_products", staticmethod(stale_get_products))

        with pytest.raises(InsufficientStockError) as exc_info:
            await OrderService.place_order(db, 1, order_request((first.id, 1), (second.id, 2)))

        assert exc_info.value.available == 1
        assert (await read_product(first.id)).stock == 3
        assert (await read_product(second.id)).stock == 1
        assert await _count(session_factory, Order) == 0


class TestLockOrdering:

    async def test_reserves_in_product_id_order(self, db, make_product, monkeypatch):
        from services.product_service.repository import ProductRepository

        first = await make_product(title="Bike Lock", stock=3)
        second = await make_product(title="Helmet", stock=3)
        original = ProductRepository.decrement_stock
        seen = []

        async def recording_decrement(session, product_id, quantity):
            seen.append(product_id)
            return await original(session, product_id, quantity)

        monkeypatch.setattr(ProductRepository, "decrement_stock", staticmethod(recording_decrement))

        await OrderService.place_order(db, 1, order_request((second.id, 1), (first.id, 1)))

        assert seen == [first.id, second.id]

    async def test_releases_in_product_id_order(self, db, make_product, monkeypatch):
        from services.product_service.repository import ProductRepository

        first = await make_product(title="Bike Lock", stock=3)
        second = await make_product(title="Helmet", stock=3)
        order = await OrderService.place_order(db, 1, order_request((second.id, 1), (first.id, 1)))
        original = ProductRepository.increment_stock
        seen = []

        async def recording_increment(session, product_id, quantity):
            seen.append(product_id)
            return await original(session, product_id, quantity)

        monkeypatch.setattr(ProductRepository, "increment_stock", staticmethod(recording_increment))

        await OrderService.cancel_order(db, order.id, 1)

        assert seen == [first.id, second.id]


class TestStorageFailure:

    async def test_driver_error_rolls_back_everything(
        self, db, session_factory, make_product, read_product, monkeypatch
    ):
        product = await make_product(stock=3)

        async def broken_record_pending(session, order):
            raise OperationalError("INSERT INTO transactions", {}, Exception("disk I/O error"))

        monkeypatch.setattr(TransactionService, "record_pending", staticmethod(broken_record_pending))

        with pytest.raises(StorageFailureError, match="Failed to create order"):
            await OrderService.place_order(db, 1, order_request((product.id, 2)))

        assert (await read_product(product.id)).stock == 3
        assert await _count(session_factory, Order) == 0
        assert await _count(session_factory, OrderItem) == 0


class TestMergeLineItems:

    def test_keeps_first_seen_order(self):
        request = order_request((3, 1), (1, 2), (3, 4))
        assert list(merge_line_items(request.items).items()) == [(3, 5), (1, 2)]

    def test_negative_quantity_rejected(self):
        with pytest.raises(InvalidQuantityError):
            merge_line_items(order_request((1, -2)).items)
