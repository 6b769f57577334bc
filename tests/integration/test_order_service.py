import uuid
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.core.exceptions import (
    InvalidArgument,
    NotAuthorized,
    PersistenceError,
    ResourceNotFound,
)
from app.crud.order import OrderCRUD
from app.db.enums import OrderStatus
from app.models.order import Order
from app.models.order_item import OrderItem
from app.services.cart_service import CartService
from app.services.order_service import OrderService


def line(product_id, quantity):
    return SimpleNamespace(product_id=product_id, quantity=quantity)


async def _order_rows(db_session) -> tuple[int, int]:
    orders = await db_session.scalar(select(func.count(Order.id)))
    items = await db_session.scalar(select(func.count(OrderItem.id)))
    return orders, items


@pytest.mark.asyncio
async def test_create_order_snapshots_prices(db_session, test_customer, sample_products):
    user_id = test_customer.id
    notebook = sample_products["notebook"]
    pencil = sample_products["pencil"]
    notebook_id, pencil_id = notebook.id, pencil.id

    order = await OrderService(db_session).create_order(
        user_id=user_id,
        items=[line(notebook_id, 2), line(pencil_id, 1)],
    )

    assert order.status == OrderStatus.PENDING
    assert order.total_amount == Decimal("25.00")
    snapshot = {item.product_id: item.price_at_purchase for item in order.items}
    assert snapshot == {notebook_id: Decimal("10.00"), pencil_id: Decimal("5.00")}

    # A later price change must not touch the placed order
    notebook.price = Decimal("99.00")
    await db_session.commit()

    reloaded = await OrderService(db_session).find_order_by_id(order.id)
    assert reloaded.total_amount == Decimal("25.00")
    notebook_line = next(i for i in reloaded.items if i.product_id == notebook_id)
    assert notebook_line.price_at_purchase == Decimal("10.00")


@pytest.mark.asyncio
async def test_create_order_empties_cart(db_session, test_customer, sample_products):
    user_id = test_customer.id
    notebook_id = sample_products["notebook"].id
    pencil_id = sample_products["pencil"].id
    carts = CartService(db_session)
    await carts.add_item(user_id, notebook_id, 1)
    await carts.add_item(user_id, pencil_id, 1)

    order = await OrderService(db_session).create_order(
        user_id=user_id, items=[line(notebook_id, 1), line(pencil_id, 1)]
    )

    assert order.total_amount == Decimal("15.00")
    assert len(order.items) == 2
    cart = await carts.get_cart(user_id)
    assert cart.items == []


@pytest.mark.asyncio
async def test_failed_cart_clear_still_returns_order(db_session, test_customer, sample_products, monkeypatch, caplog):
    user_id = test_customer.id
    product_id = sample_products["notebook"].id
    carts = CartService(db_session)
    await carts.add_item(user_id, product_id, 1)

    async def broken_clear(self, user_id):
        raise OperationalError("DELETE FROM cart_items", {}, Exception("database is locked"))

    monkeypatch.setattr(CartService, "clear", broken_clear)

    order = await OrderService(db_session).create_order(user_id=user_id, items=[line(product_id, 1)])
    order_id = order.id

    assert order.status == OrderStatus.PENDING
    assert await _order_rows(db_session) == (1, 1)
    assert any("Failed to clear cart" in r.getMessage() for r in caplog.records)

    monkeypatch.undo()
    cart = await CartService(db_session).get_cart(user_id)
    assert [item.product_id for item in cart.items] == [product_id]

    persisted = await OrderService(db_session).find_order_by_id(order_id)
    assert persisted.total_amount == Decimal("10.00")


@pytest.mark.asyncio
async def test_empty_order_writes_nothing(db_session, test_customer):
    with pytest.raises(InvalidArgument):
        await OrderService(db_session).create_order(user_id=test_customer.id, items=[])

    assert await _order_rows(db_session) == (0, 0)


@pytest.mark.asyncio
async def test_unknown_product_writes_nothing(db_session, test_customer, sample_products):
    items = [line(sample_products["notebook"].id, 1), line(uuid.uuid4(), 1)]

    with pytest.raises(ResourceNotFound):
        await OrderService(db_session).create_order(user_id=test_customer.id, items=items)

    assert await _order_rows(db_session) == (0, 0)


@pytest.mark.asyncio
async def test_non_positive_quantity_writes_nothing(db_session, test_customer, sample_products):
    items = [line(sample_products["notebook"].id, 1), line(sample_products["pencil"].id, 0)]

    with pytest.raises(InvalidArgument) as exc:
        await OrderService(db_session).create_order(user_id=test_customer.id, items=items)

    assert "Pencil" in exc.value.detail
    assert await _order_rows(db_session) == (0, 0)


@pytest.mark.asyncio
async def test_unknown_user(db_session, sample_products):
    with pytest.raises(ResourceNotFound):
        await OrderService(db_session).create_order(
            user_id=uuid.uuid4(), items=[line(sample_products["notebook"].id, 1)]
        )


@pytest.mark.asyncio
async def test_repeated_product_lines_are_kept(db_session, test_customer, sample_products):
    product_id = sample_products["pencil"].id

    order = await OrderService(db_session).create_order(
        user_id=test_customer.id, items=[line(product_id, 1), line(product_id, 2)]
    )

    assert sorted(item.quantity for item in order.items) == [1, 2]
    assert order.total_amount == Decimal("15.00")


@pytest.mark.asyncio
async def test_user_orders_newest_first(db_session, test_customer, sample_products):
    service = OrderService(db_session)
    user_id = test_customer.id
    first = await service.create_order(user_id=user_id, items=[line(sample_products["pencil"].id, 1)])
    second = await service.create_order(user_id=user_id, items=[line(sample_products["notebook"].id, 1)])

    orders = await service.find_user_orders(user_id)

    assert [o.id for o in orders] == [second.id, first.id]


@pytest.mark.asyncio
async def test_find_order_of_another_user(db_session, test_customer, other_customer, sample_products):
    service = OrderService(db_session)
    order = await service.create_order(
        user_id=test_customer.id, items=[line(sample_products["pencil"].id, 1)]
    )

    with pytest.raises(NotAuthorized):
        await service.find_order_by_id(order.id, requesting_user_id=other_customer.id)

    owned = await service.find_order_by_id(order.id, requesting_user_id=test_customer.id)
    assert owned.id == order.id


@pytest.mark.asyncio
async def test_delivered_is_terminal(db_session, test_customer, sample_products):
    service = OrderService(db_session)
    order = await service.create_order(
        user_id=test_customer.id, items=[line(sample_products["pencil"].id, 1)]
    )

    # Skipping straight to DELIVERED is allowed
    await service.update_status(order.id, OrderStatus.DELIVERED)

    with pytest.raises(InvalidArgument):
        await service.update_status(order.id, OrderStatus.CANCELLED)

    same = await service.update_status(order.id, OrderStatus.DELIVERED)
    assert same.status == OrderStatus.DELIVERED


@pytest.mark.asyncio
async def test_backward_transition_allowed(db_session, test_customer, sample_products):
    service = OrderService(db_session)
    order = await service.create_order(
        user_id=test_customer.id, items=[line(sample_products["pencil"].id, 1)]
    )

    await service.update_status(order.id, OrderStatus.SHIPPED)
    back = await service.update_status(order.id, OrderStatus.PENDING)

    assert back.status == OrderStatus.PENDING


@pytest.mark.asyncio
async def test_update_status_unknown_order(db_session):
    with pytest.raises(ResourceNotFound):
        await OrderService(db_session).update_status(uuid.uuid4(), OrderStatus.SHIPPED)


@pytest.mark.asyncio
async def test_failure_after_order_flush_rolls_everything_back(
    db_session, test_customer, sample_products, monkeypatch
):
    """The order row is already flushed when the write fails; nothing may survive."""

    async def flush_order_then_fail(self, order):
        order.items = []
        self.session.add(order)
        await self.session.flush()
        raise OperationalError("INSERT INTO order_items", {}, Exception("disk full"))

    monkeypatch.setattr(OrderCRUD, "add_with_items", flush_order_then_fail)
    items = [line(sample_products["notebook"].id, 1), line(sample_products["pencil"].id, 2)]

    with pytest.raises(PersistenceError):
        await OrderService(db_session).create_order(user_id=test_customer.id, items=items)

    assert await _order_rows(db_session) == (0, 0)
