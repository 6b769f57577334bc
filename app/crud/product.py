from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.product import Product


class CRUDProduct:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, id: UUID) -> Product | None:
        """Fetch a product by ID."""
        return await self.session.get(Product, id)
