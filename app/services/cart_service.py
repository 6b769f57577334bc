import logging
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidArgument, PersistenceError, ResourceNotFound
from app.crud.cart import CartCRUD
from app.models.cart import Cart
from app.services.lookups import AccountLookup, CatalogLookup

logger = logging.getLogger(__name__)


class CartService:
    """
    The single active cart of each user and its line items.

    Every mutation commits on its own and then returns the cart re-read from
    the database, so callers never see a partially applied change.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.cart_crud = CartCRUD(session)
        self.accounts = AccountLookup(session)
        self.catalog = CatalogLookup(session)

    async def _get_or_create(self, user_id: UUID) -> Cart:
        await self.accounts.ensure_exists(user_id)

        cart = await self.cart_crud.get_by_user(user_id)
        if cart:
            return cart

        try:
            cart = await self.cart_crud.create(user_id)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Failed to create cart for user {user_id}: {e}", extra={"user_id": user_id})
            raise PersistenceError("Could not create the cart.") from e

        logger.info(f"Cart created for user {user_id}", extra={"user_id": user_id})
        return cart

    async def _fresh_view(self, user_id: UUID) -> Cart:
        cart = await self.cart_crud.get_with_items(user_id)
        if cart is None:
            # Only possible if the user was deleted mid-request
            raise ResourceNotFound(f"Cart for user '{user_id}' not found.")
        return cart

    async def _commit(self, action: str, user_id: UUID) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Failed to {action} for user {user_id}: {e}", extra={"user_id": user_id})
            raise PersistenceError(f"Could not {action}.") from e

    async def get_cart(self, user_id: UUID) -> Cart:
        """Return the user's cart, creating an empty one on first access."""
        await self._get_or_create(user_id)
        return await self._fresh_view(user_id)

    async def add_item(self, user_id: UUID, product_id: UUID, quantity: int) -> Cart:
        """
        Add `quantity` units of a product. An existing line is incremented,
        never duplicated.
        """
        if quantity <= 0:
            raise InvalidArgument("Quantity must be greater than zero.")

        await self.catalog.get(product_id)
        cart = await self._get_or_create(user_id)

        try:
            await self.cart_crud.upsert_item(cart.id, product_id, quantity)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                f"Failed to add product {product_id} to cart {cart.id}: {e}",
                extra={"user_id": user_id, "product_id": product_id},
            )
            raise PersistenceError("Could not add the item to the cart.") from e

        await self._commit("add the item to the cart", user_id)
        return await self._fresh_view(user_id)

    async def set_item_quantity(self, user_id: UUID, product_id: UUID, quantity: int) -> Cart:
        """
        Overwrite the quantity of a line already in the cart.
        A quantity of zero or less removes the line.
        """
        cart = await self._get_or_create(user_id)

        item = await self.cart_crud.get_item(cart.id, product_id)
        if not item:
            raise ResourceNotFound(
                f"Product with ID '{product_id}' is not in the user's cart."
            )

        if quantity <= 0:
            await self.cart_crud.delete_item(item)
        else:
            await self.cart_crud.set_item_quantity(item, quantity)

        await self._commit("update the cart item", user_id)
        return await self._fresh_view(user_id)

    async def remove_item(self, user_id: UUID, product_id: UUID) -> Cart:
        cart = await self._get_or_create(user_id)

        item = await self.cart_crud.get_item(cart.id, product_id)
        if not item:
            raise ResourceNotFound(
                f"Product with ID '{product_id}' is not in the user's cart."
            )

        await self.cart_crud.delete_item(item)
        await self._commit("remove the cart item", user_id)
        return await self._fresh_view(user_id)

    async def clear(self, user_id: UUID) -> Cart:
        """Empty the cart. Clearing an empty cart is a no-op."""
        cart = await self._get_or_create(user_id)

        removed = await self.cart_crud.clear_items(cart.id)
        await self._commit("clear the cart", user_id)

        logger.info(f"Cart cleared for user {user_id} ({removed} items)", extra={"user_id": user_id})
        return await self._fresh_view(user_id)
