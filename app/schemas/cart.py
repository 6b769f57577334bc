from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, computed_field, field_validator

from app.schemas.common import BaseSchema, ProductRead


class CartItemAdd(BaseModel):
    user_id: UUID
    product_id: UUID
    quantity: int = Field(..., gt=0, json_schema_extra={"example": 1})  # Must be at least 1


class CartItemSetQuantity(BaseModel):
    """PATCH body. A quantity of 0 removes the line."""
    user_id: UUID
    product_id: UUID
    quantity: int = Field(..., ge=0, json_schema_extra={"example": 2})


class CartItemRead(BaseSchema):
    id: UUID
    product_id: UUID
    quantity: int
    product: ProductRead


class CartRead(BaseSchema):
    id: UUID
    user_id: UUID
    created_at: datetime
    updated_at: datetime
    items: list[CartItemRead]

    @field_validator("items")
    @classmethod
    def order_by_product_title(cls, items: list[CartItemRead]) -> list[CartItemRead]:
        return sorted(items, key=lambda item: item.product.title)

    @computed_field
    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)
