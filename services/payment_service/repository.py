from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from .models import Transaction

class TransactionRepository:
    @staticmethod
    async def add(db: AsyncSession, transaction: Transaction) -> Transaction:
        db.add(transaction)
        await db.flush()
        return transaction

    @staticmethod
    async def get_by_order_id(db: AsyncSession, order_id: int) -> Optional[Transaction]:
        result = await db.execute(
            select(Transaction)
            .where(Transaction.order_id == order_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()
