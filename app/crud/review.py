from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.review import Review


class ReviewCRUD:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_with_details(self, review_id: UUID) -> Review | None:
        result = await self.session.execute(
            select(Review)
            .where(Review.id == review_id)
            .options(selectinload(Review.user), selectinload(Review.product))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create(self, review: Review) -> Review:
        self.session.add(review)
        await self.session.commit()
        return review

    async def list_by(self, *, skip: int, limit: int, **filters) -> tuple[list[Review], int]:
        """
        One page of reviews matching `filters` (column=value), newest first,
        plus the total number of matches.
        """
        conditions = [getattr(Review, column) == value for column, value in filters.items()]

        result = await self.session.execute(
            select(Review)
            .where(*conditions)
            .options(selectinload(Review.user), selectinload(Review.product))
            .order_by(Review.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        reviews = list(result.scalars().all())

        total = await self.session.scalar(
            select(func.count(Review.id)).where(*conditions)
        )
        return reviews, total or 0

    async def save(self, review: Review) -> None:
        self.session.add(review)
        await self.session.commit()

    async def delete(self, review: Review) -> None:
        await self.session.delete(review)
        await self.session.commit()
