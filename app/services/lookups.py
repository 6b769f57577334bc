"""
Narrow views onto the account and catalog services.

The shop never edits users or products; it only needs to know that a user
exists and what a product currently costs. Both lookups read the mirrored
tables in the shop database.
"""
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ResourceNotFound
from app.crud.product import CRUDProduct
from app.crud.user import UserCRUD
from app.models.product import Product

logger = logging.getLogger(__name__)


class AccountLookup:
    def __init__(self, session: AsyncSession):
        self.user_crud = UserCRUD(session)

    async def exists(self, user_id: UUID) -> bool:
        return await self.user_crud.exists(user_id)

    async def ensure_exists(self, user_id: UUID) -> None:
        if not await self.exists(user_id):
            logger.warning(f"Lookup failed: User {user_id} not found.")
            raise ResourceNotFound(f"User with ID '{user_id}' not found.")


class CatalogLookup:
    def __init__(self, session: AsyncSession):
        self.product_crud = CRUDProduct(session)

    async def get(self, product_id: UUID) -> Product:
        """Current catalog entry for `product_id`; its price is the live price."""
        product = await self.product_crud.get(product_id)
        if not product:
            logger.warning(f"Lookup failed: Product {product_id} not found.")
            raise ResourceNotFound(f"Product with ID '{product_id}' not found.")
        return product
