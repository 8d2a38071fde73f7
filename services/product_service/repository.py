from typing import Iterable, Optional

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Product, ProductStatus


class ProductRepository:
    """
    Data access for products. Nothing here commits: stock writes join whatever
    transaction the caller has open.
    """

    @staticmethod
    async def get_product_by_id(db: AsyncSession, product_id: int) -> Optional[Product]:
        result = await db.execute(
            select(Product)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def get_products_by_ids(db: AsyncSession, product_ids: Iterable[int]) -> list[Product]:
        result = await db.execute(
            select(Product)
            .where(Product.id.in_(list(product_ids)))
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_stock(db: AsyncSession, product_id: int) -> Optional[int]:
        result = await db.execute(select(Product.stock).where(Product.id == product_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def decrement_stock(db: AsyncSession, product_id: int, quantity: int) -> Optional[int]:
        """
        Check-and-decrement in one statement. Returns the new stock, or None when
        the row is missing or holds fewer than `quantity` units.
        """
        remaining = Product.stock - quantity
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(
                stock=remaining,
                status=case(
                    (remaining == 0, ProductStatus.SOLD.value),
                    else_=ProductStatus.ACTIVE.value,
                ),
            )
            .returning(Product.stock)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def increment_stock(db: AsyncSession, product_id: int, quantity: int) -> Optional[int]:
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + quantity, status=ProductStatus.ACTIVE.value)
            .returning(Product.stock)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()
