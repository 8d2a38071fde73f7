import uuid
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.state_machine import payment_status_on_cancel, validate_payment_transition
from .models import PaymentStatus, Transaction
from .repository import TransactionRepository

logger = structlog.get_logger(__name__)


class TransactionService:
    """Keeps the Transaction record in step with its order. Never commits."""

    @staticmethod
    async def record_pending(db: AsyncSession, order) -> Transaction:
        transaction = Transaction(
            order_id=order.id,
            user_id=order.user_id,
            amount=order.total_amount,
            payment_method=order.payment_method,
            status=PaymentStatus.PENDING.value,
        )
        return await TransactionRepository.add(db, transaction)

    @staticmethod
    async def get_for_order(db: AsyncSession, order_id: int) -> Optional[Transaction]:
        return await TransactionRepository.get_by_order_id(db, order_id)

    @staticmethod
    async def record_outcome(
        db: AsyncSession, order_id: int, status: PaymentStatus, reference: str | None = None
    ) -> Optional[Transaction]:
        transaction = await TransactionRepository.get_by_order_id(db, order_id)
        if transaction is None:
            logger.warning("transaction_missing", order_id=order_id, action="record_outcome")
            return None

        transaction.status = validate_payment_transition(transaction.status, status).value
        if status is PaymentStatus.COMPLETED:
            # Label only: generate a reference when the caller has none
            transaction.transaction_id = reference or str(uuid.uuid4())
        await db.flush()
        return transaction

    @staticmethod
    async def apply_cancellation(db: AsyncSession, order_id: int) -> Optional[Transaction]:
        transaction = await TransactionRepository.get_by_order_id(db, order_id)
        if transaction is None:
            # Legacy rows may predate atomic checkout; cancel the order anyway
            logger.warning("transaction_missing", order_id=order_id, action="cancel")
            return None

        transaction.status = payment_status_on_cancel(transaction.status).value
        await db.flush()
        return transaction
