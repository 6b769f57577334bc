from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.db.enums import OrderStatus
from app.models.order import Order
from app.models.order_item import OrderItem


def _with_details(stmt):
    # Owner summary plus every line with its product
    return stmt.options(
        selectinload(Order.user),
        selectinload(Order.items).selectinload(OrderItem.product),
    ).execution_options(populate_existing=True)


class OrderCRUD:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_with_details(self, order_id: UUID) -> Order | None:
        result = await self.session.execute(
            _with_details(select(Order).where(Order.id == order_id))
        )
        return result.scalar_one_or_none()

    async def get_user_orders(self, user_id: UUID) -> list[Order]:
        result = await self.session.execute(
            _with_details(
                select(Order)
                .where(Order.user_id == user_id)
                .order_by(Order.created_at.desc())
            )
        )
        return list(result.scalars().all())

    async def count_delivered_containing(self, user_id: UUID, product_id: UUID) -> int:
        """Number of the user's delivered orders with at least one line for the product."""
        result = await self.session.execute(
            select(func.count(func.distinct(Order.id)))
            .join(OrderItem, OrderItem.order_id == Order.id)
            .where(
                Order.user_id == user_id,
                Order.status == OrderStatus.DELIVERED,
                OrderItem.product_id == product_id,
            )
        )
        return result.scalar_one()

    async def add_with_items(self, order: Order) -> Order:
        """Stage the order and its items; the caller owns the transaction."""
        self.session.add(order)
        await self.session.flush()
        return order

    async def save(self, order: Order) -> None:
        self.session.add(order)
        await self.session.commit()
