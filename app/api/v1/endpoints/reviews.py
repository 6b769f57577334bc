import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from starlette import status

from app.core.config import settings
from app.core.deps import get_current_user, get_service
from app.core.limiter import limiter
from app.models.user import User
from app.schemas.review import ReviewCreate, ReviewPage, ReviewRead, ReviewUpdate
from app.services.review_service import ReviewService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.post("", response_model=ReviewRead, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_reviews)
async def create_review(
    request: Request,
    review_in: ReviewCreate,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_service(ReviewService)),
):
    """
    Review a product the current user bought and received.
    """
    return await service.create_review(
        user_id=current_user.id,
        product_id=review_in.product_id,
        rating=review_in.rating,
        comment=review_in.comment,
    )


@router.get("/product/{product_id}", response_model=ReviewPage)
async def list_product_reviews(
    product_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: ReviewService = Depends(get_service(ReviewService)),
):
    return await service.list_product_reviews(product_id, page=page, limit=limit)


@router.get("/mine", response_model=ReviewPage)
async def list_my_reviews(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_service(ReviewService)),
):
    return await service.list_user_reviews(current_user.id, page=page, limit=limit)


@router.get("/{review_id}", response_model=ReviewRead)
async def get_review(
    review_id: UUID,
    service: ReviewService = Depends(get_service(ReviewService)),
):
    return await service.find_review(review_id)


@router.patch("/{review_id}", response_model=ReviewRead)
async def update_review(
    review_id: UUID,
    review_in: ReviewUpdate,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_service(ReviewService)),
):
    """
    Owner-only partial update of rating and/or comment.
    """
    return await service.update_review(
        review_id,
        current_user.id,
        review_in.model_dump(exclude_unset=True),
    )


@router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_review(
    review_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_service(ReviewService)),
):
    await service.delete_review(review_id, current_user.id)
    # 204 → NO RESPONSE BODY
    return None
