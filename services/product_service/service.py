"""
Inventory ledger: the only code path allowed to change Product.stock/status.

reserve() and release() each issue a single conditional UPDATE, so two
checkouts racing for the same product can never both see enough stock.
Neither method commits; callers wrap them in a unit of work.
"""
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.errors import InsufficientStockError, InvalidQuantityError, ProductNotFoundError
from shared.observability import marketplace_stock_conflicts_total

from .models import Product
from .repository import ProductRepository

logger = structlog.get_logger(__name__)

# Conditional update retries when stock was released mid-check
RESERVE_ATTEMPTS = 3


class InventoryLedger:

    @staticmethod
    async def get_product(db: AsyncSession, product_id: int) -> Product:
        product = await ProductRepository.get_product_by_id(db, product_id)
        if not product:
            raise ProductNotFoundError([product_id])
        return product

    @staticmethod
    async def get_products(db: AsyncSession, product_ids) -> dict[int, Product]:
        """Batch-load products keyed by id. Missing ids are simply absent."""
        products = await ProductRepository.get_products_by_ids(db, product_ids)
        return {product.id: product for product in products}

    @staticmethod
    async def reserve(db: AsyncSession, product_id: int, quantity: int) -> int:
        if quantity < 1:
            raise InvalidQuantityError(product_id, quantity)

        for _ in range(RESERVE_ATTEMPTS):
            new_stock = await ProductRepository.decrement_stock(db, product_id, quantity)
            if new_stock is not None:
                logger.info("stock_reserved", product_id=product_id, quantity=quantity, stock=new_stock)
                return new_stock

            # Zero rows matched: either the product is gone or stock ran short
            available = await ProductRepository.get_stock(db, product_id)
            if available is None:
                raise ProductNotFoundError([product_id])
            if available < quantity:
                break
            # A release committed between the update and the re-read; try again
        else:
            # Never report a shortfall that the caller could have satisfied
            available = min(available, quantity - 1)

        marketplace_stock_conflicts_total.inc()
        logger.info(
            "stock_reservation_rejected",
            product_id=product_id,
            requested=quantity,
            available=available,
        )
        raise InsufficientStockError(product_id, available=available, requested=quantity)

    @staticmethod
    async def release(db: AsyncSession, product_id: int, quantity: int) -> int:
        if quantity < 1:
            raise InvalidQuantityError(product_id, quantity)

        new_stock = await ProductRepository.increment_stock(db, product_id, quantity)
        if new_stock is None:
            raise ProductNotFoundError([product_id])

        logger.info("stock_released", product_id=product_id, quantity=quantity, stock=new_stock)
        return new_stock
