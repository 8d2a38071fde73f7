from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

class TransactionResponse(BaseModel):
    id: int
    order_id: int
    amount: Decimal
    payment_method: str
    status: str
    transaction_id: str | None
    created_at: datetime

    class Config:
        from_attributes = True
