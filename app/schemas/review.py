from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.common import BaseSchema, ProductSummary, UserSummary


class ReviewCreate(BaseModel):
    product_id: UUID
    rating: int = Field(..., ge=1, le=5, json_schema_extra={"example": 5})
    comment: str | None = Field(
        None,
        max_length=1000,
        json_schema_extra={"example": "Great product, would buy again!"},
    )


class ReviewUpdate(BaseModel):
    """Partial update; only the fields present in the body are applied."""
    rating: int | None = Field(None, ge=1, le=5)
    comment: str | None = Field(None, max_length=1000)


class ReviewRead(BaseSchema):
    id: UUID
    user_id: UUID
    product_id: UUID
    rating: int
    comment: str | None = None
    created_at: datetime
    updated_at: datetime
    user: UserSummary
    product: ProductSummary


class ReviewPage(BaseSchema):
    reviews: list[ReviewRead]
    total: int
    current_page: int
    total_pages: int
