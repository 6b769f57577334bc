from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UserSummary(BaseSchema):
    id: UUID
    email: str
    name: str | None = None


class ProductSummary(BaseSchema):
    id: UUID
    title: str
    description: str | None = None


class ProductRead(ProductSummary):
    price: Decimal
    original_price: Decimal | None = None
    category: str | None = None
    created_at: datetime
    updated_at: datetime
