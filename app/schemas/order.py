from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.db.enums import OrderStatus
from app.schemas.common import BaseSchema, ProductSummary, UserSummary


# REQUESTS
class OrderItemCreate(BaseModel):
    product_id: UUID
    quantity: int = Field(..., gt=0, json_schema_extra={"example": 1})


class OrderCreate(BaseModel):
    user_id: UUID
    # Emptiness is rejected by the order service with a 400
    items: list[OrderItemCreate]


class OrderStatusUpdate(BaseModel):
    status: OrderStatus = Field(..., json_schema_extra={"example": OrderStatus.PROCESSING.value})


# RESPONSES
class OrderItemRead(BaseSchema):
    id: UUID
    product_id: UUID
    quantity: int
    price_at_purchase: Decimal
    product: ProductSummary


class OrderRead(BaseSchema):
    id: UUID
    user_id: UUID
    status: OrderStatus
    total_amount: Decimal
    created_at: datetime
    updated_at: datetime
    user: UserSummary
    items: list[OrderItemRead]

    @field_validator("items")
    @classmethod
    def order_by_product_title(cls, items: list[OrderItemRead]) -> list[OrderItemRead]:
        return sorted(items, key=lambda item: item.product.title)
