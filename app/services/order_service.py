import logging
from decimal import Decimal
from typing import Iterable, Protocol
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    InvalidArgument,
    NotAuthorized,
    PersistenceError,
    ResourceNotFound,
)
from app.crud.order import OrderCRUD
from app.db.enums import OrderStatus
from app.db.sessions import transaction_scope
from app.models.order import Order
from app.models.order_item import OrderItem
from app.services.cart_service import CartService
from app.services.lookups import AccountLookup, CatalogLookup
from app.services.order_status import ensure_transition

logger = logging.getLogger(__name__)


class RequestedItem(Protocol):
    product_id: UUID
    quantity: int


class OrderService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.order_crud = OrderCRUD(session)
        self.accounts = AccountLookup(session)
        self.catalog = CatalogLookup(session)
        self.cart_service = CartService(session)

    async def create_order(self, *, user_id: UUID, items: Iterable[RequestedItem]) -> Order:
        """
        Turn a list of (product, quantity) requests into a PENDING order.

        1. Validates the user and every line before writing anything
        2. Snapshots each product's current price as price_at_purchase
        3. Writes the order and all its items in one transaction
        4. Empties the user's cart, best-effort, after the commit
        """
        items = list(items)
        if not items:
            raise InvalidArgument("An order must contain at least one item.")

        await self.accounts.ensure_exists(user_id)

        total = Decimal("0.00")
        lines: list[OrderItem] = []

        for requested in items:
            product = await self.catalog.get(requested.product_id)

            if requested.quantity <= 0:
                raise InvalidArgument(
                    f"Quantity for product '{product.title}' (ID: {product.id}) must be positive."
                )

            unit_price = product.price
            total += unit_price * requested.quantity

            lines.append(
                OrderItem(
                    product_id=product.id,
                    quantity=requested.quantity,
                    price_at_purchase=unit_price,
                )
            )

        order = Order(
            user_id=user_id,
            status=OrderStatus.PENDING,
            total_amount=total,
            items=lines,
        )

        try:
            async with transaction_scope(self.session):
                await self.order_crud.add_with_items(order)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create order for user {user_id}: {e}", extra={"user_id": user_id})
            raise PersistenceError("Could not create the order.") from e

        order_id = order.id
        logger.info(
            f"Order {order_id} created for user {user_id} | {len(lines)} items | total {total}",
            extra={"user_id": user_id, "order_id": order_id},
        )

        await self._clear_cart_after_order(user_id, order_id)

        created = await self.order_crud.get_with_details(order_id)
        if created is None:
            raise PersistenceError("Failed to load the order after creation.")
        return created

    async def _clear_cart_after_order(self, user_id: UUID, order_id: UUID) -> None:
        # The order is already committed; a failure here must not reach the caller
        try:
            await self.cart_service.clear(user_id)
        except Exception as e:
            await self.session.rollback()
            logger.error(
                f"ALERT: Failed to clear cart of user {user_id} after creating order {order_id}: {e}",
                exc_info=True,
                extra={"user_id": user_id, "order_id": order_id},
            )

    async def find_user_orders(self, user_id: UUID) -> list[Order]:
        """All orders of a user with their items, newest first."""
        await self.accounts.ensure_exists(user_id)
        return await self.order_crud.get_user_orders(user_id)

    async def find_order_by_id(
        self, order_id: UUID, requesting_user_id: UUID | None = None
    ) -> Order:
        order = await self.order_crud.get_with_details(order_id)

        if not order:
            raise ResourceNotFound(f"Order with ID '{order_id}' not found.")

        if requesting_user_id is not None and order.user_id != requesting_user_id:
            logger.warning(
                f"User {requesting_user_id} tried to read order {order_id} they do not own.",
                extra={"user_id": requesting_user_id, "order_id": order_id},
            )
            raise NotAuthorized("You are not allowed to view this order.")

        return order

    async def update_status(self, order_id: UUID, new_status: OrderStatus) -> Order:
        order = await self.find_order_by_id(order_id)

        previous = order.status
        ensure_transition(previous, new_status)

        order.status = new_status
        try:
            await self.order_crud.save(order)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Failed to update status of order {order_id}: {e}", extra={"order_id": order_id})
            raise PersistenceError("Could not update the order status.") from e

        logger.info(
            f"Order {order_id} status changed {previous.value} -> {new_status.value}",
            extra={"order_id": order_id},
        )
        return await self.find_order_by_id(order_id)
