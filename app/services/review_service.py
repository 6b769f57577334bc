import logging
import math
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    InvalidArgument,
    NotAuthorized,
    PersistenceError,
    ResourceConflict,
    ResourceNotFound,
)
from app.crud.order import OrderCRUD
from app.crud.review import ReviewCRUD
from app.models.review import Review
from app.services.lookups import AccountLookup, CatalogLookup

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5
MAX_COMMENT_LENGTH = 1000


def _validate_rating(rating: int) -> None:
    if not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidArgument(f"Rating must be between {MIN_RATING} and {MAX_RATING}.")


def _validate_comment(comment: str | None) -> None:
    if comment is not None and len(comment) > MAX_COMMENT_LENGTH:
        raise InvalidArgument(f"Comment cannot exceed {MAX_COMMENT_LENGTH} characters.")


class ReviewService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.review_crud = ReviewCRUD(session)
        self.order_crud = OrderCRUD(session)
        self.accounts = AccountLookup(session)
        self.catalog = CatalogLookup(session)

    async def check_eligibility(self, user_id: UUID, product_id: UUID) -> None:
        """
        A user may review a product only after at least one of their orders
        containing it has been delivered. Any such order qualifies.
        """
        await self.accounts.ensure_exists(user_id)
        await self.catalog.get(product_id)

        delivered = await self.order_crud.count_delivered_containing(user_id, product_id)
        if delivered == 0:
            raise NotAuthorized(
                "You can only review products you bought and that were delivered."
            )

    async def create_review(
        self,
        *,
        user_id: UUID,
        product_id: UUID,
        rating: int,
        comment: str | None = None,
    ) -> Review:
        _validate_rating(rating)
        _validate_comment(comment)

        await self.check_eligibility(user_id, product_id)

        review = Review(
            user_id=user_id,
            product_id=product_id,
            rating=rating,
            comment=comment,
        )

        try:
            await self.review_crud.create(review)
        except IntegrityError as e:
            await self.session.rollback()
            logger.info(
                f"Duplicate review rejected for user {user_id} and product {product_id}",
                extra={"user_id": user_id, "product_id": product_id},
            )
            raise ResourceConflict("You have already reviewed this product.") from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                f"Error creating review for product {product_id} by user {user_id}: {e}",
                extra={"user_id": user_id, "product_id": product_id},
            )
            raise PersistenceError("Could not create the review.") from e

        review_id = review.id
        logger.info(
            f"Review {review_id} created for product {product_id}",
            extra={"user_id": user_id, "product_id": product_id, "review_id": review_id},
        )
        return await self.find_review(review_id)

    async def find_review(self, review_id: UUID) -> Review:
        review = await self.review_crud.get_with_details(review_id)
        if not review:
            raise ResourceNotFound(f"Review with ID '{review_id}' not found.")
        return review

    async def _owned_review(self, review_id: UUID, user_id: UUID, action: str) -> Review:
        review = await self.find_review(review_id)
        if review.user_id != user_id:
            raise NotAuthorized(f"You are not allowed to {action} this review.")
        return review

    async def update_review(self, review_id: UUID, user_id: UUID, changes: dict) -> Review:
        """
        Apply a partial update. `changes` holds only the fields the client sent;
        `comment` may be explicitly set to None. No changes returns the review untouched.
        """
        review = await self._owned_review(review_id, user_id, "update")

        updates = {}
        if changes.get("rating") is not None:
            _validate_rating(changes["rating"])
            updates["rating"] = changes["rating"]
        if "comment" in changes:
            _validate_comment(changes["comment"])
            updates["comment"] = changes["comment"]

        if not updates:
            return review

        for field, value in updates.items():
            setattr(review, field, value)

        try:
            await self.review_crud.save(review)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Error updating review {review_id}: {e}", extra={"review_id": review_id})
            raise PersistenceError("Could not update the review.") from e

        return await self.find_review(review_id)

    async def delete_review(self, review_id: UUID, user_id: UUID) -> None:
        review = await self._owned_review(review_id, user_id, "delete")

        try:
            await self.review_crud.delete(review)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Error deleting review {review_id}: {e}", extra={"review_id": review_id})
            raise PersistenceError("Could not delete the review.") from e

        logger.info(f"Review {review_id} removed", extra={"user_id": user_id, "review_id": review_id})

    async def _page(self, page: int, limit: int, **filters) -> dict:
        if page < 1 or limit < 1:
            raise InvalidArgument("Page and limit must be positive integers.")

        reviews, total = await self.review_crud.list_by(
            skip=(page - 1) * limit, limit=limit, **filters
        )
        return {
            "reviews": reviews,
            "total": total,
            "current_page": page,
            "total_pages": math.ceil(total / limit),
        }

    async def list_product_reviews(self, product_id: UUID, page: int = 1, limit: int = 10) -> dict:
        await self.catalog.get(product_id)
        return await self._page(page, limit, product_id=product_id)

    async def list_user_reviews(self, user_id: UUID, page: int = 1, limit: int = 10) -> dict:
        await self.accounts.ensure_exists(user_id)
        return await self._page(page, limit, user_id=user_id)
