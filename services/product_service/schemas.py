from decimal import Decimal

from pydantic import BaseModel, Field


class StockUpdate(BaseModel):
    quantity: int = Field(ge=1)


class StockResponse(BaseModel):
    product_id: int
    stock: int
    status: str


class ProductResponse(BaseModel):
    id: int
    title: str
    price: Decimal
    stock: int
    status: str
    seller_id: int

    class Config:
        from_attributes = True
