from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from services.payment_service.models import PaymentStatus
from .models import Order, OrderItem
from .state_machine import OrderStatus

class OrderRepository:
    """Order/OrderItem data access. Writes are flushed, never committed here."""

    @staticmethod
    async def add_order(db: AsyncSession, order: Order) -> Order:
        db.add(order)
        await db.flush()
        return order

    @staticmethod
    async def add_item(db: AsyncSession, item: OrderItem) -> OrderItem:
        db.add(item)
        await db.flush()
        return item

    @staticmethod
    async def get_order(
        db: AsyncSession, order_id: int, user_id: Optional[int] = None, for_update: bool = False
    ) -> Optional[Order]:
        stmt = select(Order).where(Order.id == order_id)
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt.execution_options(populate_existing=True))
        return result.scalars().first()

    @staticmethod
    async def list_orders_for_user(db: AsyncSession, user_id: int) -> list[Order]:
        result = await db.execute(
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def update_status(
        db: AsyncSession, order_id: int, expected: OrderStatus, **values
    ) -> bool:
        """
        Apply `values` only if the order still has status `expected`.
        False means another request changed the order first.
        """
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.order_status == expected.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1

    @staticmethod
    async def update_payment_status(
        db: AsyncSession, order_id: int, expected: PaymentStatus, new: PaymentStatus
    ) -> bool:
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.payment_status == expected.value)
            .values(payment_status=new.value)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1
