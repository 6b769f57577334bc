import logging
from uuid import UUID, uuid4

from sqlalchemy import delete, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.cart import Cart, CartItem

logger = logging.getLogger(__name__)

# Dialects with INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class CartCRUD:
    def __init__(self, session: AsyncSession):
        self.session = session

    # CART
    async def get_by_user(self, user_id: UUID) -> Cart | None:
        result = await self.session.execute(
            select(Cart).where(Cart.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def create(self, user_id: UUID) -> Cart:
        """
        Insert an empty cart. If a concurrent request created it first, the
        unique user_id constraint fires and the existing cart is returned.
        """
        cart = Cart(user_id=user_id)
        self.session.add(cart)

        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            logger.info(f"Cart for user {user_id} was created concurrently, reusing it.")
            existing = await self.get_by_user(user_id)
            if existing is None:
                raise
            return existing

        return cart

    async def get_with_items(self, user_id: UUID) -> Cart | None:
        """
        Cart with items and their products, always re-read from the database.
        Items come back ordered by product title.
        """
        result = await self.session.execute(
            select(Cart)
            .where(Cart.user_id == user_id)
            .options(selectinload(Cart.items).selectinload(CartItem.product))
            .execution_options(populate_existing=True)
        )
        cart = result.scalar_one_or_none()
        if cart is not None:
            cart.items.sort(key=lambda item: item.product.title)
        return cart

    # ITEMS
    async def get_item(self, cart_id: UUID, product_id: UUID) -> CartItem | None:
        result = await self.session.execute(
            select(CartItem).where(
                CartItem.cart_id == cart_id,
                CartItem.product_id == product_id,
            )
        )
        return result.scalar_one_or_none()

    async def upsert_item(self, cart_id: UUID, product_id: UUID, quantity: int) -> None:
        """
        Insert the (cart, product) row or add `quantity` to the existing one,
        as a single statement where the dialect allows it.
        """
        dialect = self.session.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)

        if insert is not None:
            stmt = insert(CartItem).values(
                id=uuid4(),
                cart_id=cart_id,
                product_id=product_id,
                quantity=quantity,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["cart_id", "product_id"],
                set_={"quantity": CartItem.quantity + stmt.excluded.quantity},
            )
            await self.session.execute(stmt)
            return

        # Portable path: try the insert in a savepoint, fall back to an increment
        try:
            async with self.session.begin_nested():
                self.session.add(
                    CartItem(cart_id=cart_id, product_id=product_id, quantity=quantity)
                )
        except IntegrityError:
            logger.info(
                f"Cart item ({cart_id}, {product_id}) already exists, incrementing instead."
            )
            await self.session.execute(
                update(CartItem)
                .where(CartItem.cart_id == cart_id, CartItem.product_id == product_id)
                .values(quantity=CartItem.quantity + quantity)
            )

    async def set_item_quantity(self, item: CartItem, quantity: int) -> None:
        item.quantity = quantity
        self.session.add(item)

    async def delete_item(self, item: CartItem) -> None:
        await self.session.delete(item)

    async def clear_items(self, cart_id: UUID) -> int:
        result = await self.session.execute(
            delete(CartItem).where(CartItem.cart_id == cart_id)
        )
        return result.rowcount or 0
