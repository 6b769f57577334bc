import asyncio
import uuid
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.core.exceptions import InvalidArgument, ResourceNotFound
from app.crud.cart import CartCRUD
from app.db.base import Base
from app.db.enums import UserRole
from app.models.cart import Cart, CartItem
from app.models.product import Product
from app.models.user import User
from app.services.cart_service import CartService


@pytest.mark.asyncio
async def test_add_item_on_top_of_existing_row(db_session, test_customer, sample_products):
    """A line already written by someone else is incremented, not duplicated."""
    user_id = test_customer.id
    product_id = sample_products["notebook"].id

    cart = Cart(user_id=user_id)
    db_session.add(cart)
    await db_session.flush()
    db_session.add(CartItem(cart_id=cart.id, product_id=product_id, quantity=2))
    await db_session.commit()

    result = await CartService(db_session).add_item(user_id, product_id, 3)

    assert [(item.product_id, item.quantity) for item in result.items] == [(product_id, 5)]
    rows = await db_session.scalar(select(func.count(CartItem.id)))
    assert rows == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("quantity", [0, -1])
async def test_add_item_non_positive_quantity(db_session, test_customer, sample_products, quantity):
    with pytest.raises(InvalidArgument):
        await CartService(db_session).add_item(
            test_customer.id, sample_products["notebook"].id, quantity
        )

    assert await db_session.scalar(select(func.count(CartItem.id))) == 0


@pytest.mark.asyncio
async def test_set_negative_quantity_removes_line(db_session, test_customer, sample_products):
    service = CartService(db_session)
    user_id = test_customer.id
    product_id = sample_products["pencil"].id

    await service.add_item(user_id, product_id, 2)
    cart = await service.set_item_quantity(user_id, product_id, -4)

    assert cart.items == []


@pytest.mark.asyncio
async def test_one_cart_per_user(db_session, test_customer):
    service = CartService(db_session)

    first = await service.get_cart(test_customer.id)
    second = await service.get_cart(test_customer.id)

    assert first.id == second.id
    assert await db_session.scalar(select(func.count(Cart.id))) == 1


@pytest.mark.asyncio
async def test_cart_for_unknown_user(db_session):
    with pytest.raises(ResourceNotFound):
        await CartService(db_session).get_cart(uuid.uuid4())

    assert await db_session.scalar(select(func.count(Cart.id))) == 0


@pytest.mark.asyncio
async def test_service_returns_items_sorted_by_title(db_session, test_customer, sample_products):
    service = CartService(db_session)
    user_id = test_customer.id

    await service.add_item(user_id, sample_products["pencil"].id, 1)
    cart = await service.add_item(user_id, sample_products["notebook"].id, 1)

    assert [item.product.title for item in cart.items] == ["Notebook", "Pencil"]


@pytest.mark.asyncio
async def test_add_item_savepoint_path_increments(db_session, test_customer, sample_products, monkeypatch):
    """Dialects without ON CONFLICT insert in a savepoint and fall back to an increment."""
    monkeypatch.setattr("app.crud.cart._UPSERT_INSERTS", {})
    service = CartService(db_session)
    user_id = test_customer.id
    product_id = sample_products["notebook"].id

    await service.add_item(user_id, product_id, 2)
    cart = await service.add_item(user_id, product_id, 3)

    assert [(item.product_id, item.quantity) for item in cart.items] == [(product_id, 5)]
    assert await db_session.scalar(select(func.count(CartItem.id))) == 1


@pytest.mark.asyncio
async def test_create_cart_after_losing_race_reuses_winner(db_session, test_customer):
    user_id = test_customer.id
    winner = Cart(user_id=user_id)
    db_session.add(winner)
    await db_session.commit()
    winner_id = winner.id

    cart = await CartCRUD(db_session).create(user_id)

    assert cart.id == winner_id
    assert await db_session.scalar(select(func.count(Cart.id))) == 1


@pytest.fixture
async def file_session_factory(tmp_path):
    """Separate connections over one SQLite file, so two sessions can really interleave."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'carts.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, expire_on_commit=False)

    await engine.dispose()


@pytest.mark.asyncio
async def test_concurrent_adds_merge_into_one_row(file_session_factory):
    async with file_session_factory() as setup:
        user = User(name="Racer", email="racer@example.com", role=UserRole.CUSTOMER)
        product = Product(title="Eraser", price=Decimal("1.50"))
        setup.add_all([user, product])
        await setup.flush()
        setup.add(Cart(user_id=user.id))
        await setup.commit()
        user_id, product_id = user.id, product.id

    async def add(quantity):
        async with file_session_factory() as session:
            await CartService(session).add_item(user_id, product_id, quantity)

    await asyncio.gather(add(2), add(3))

    async with file_session_factory() as check:
        quantities = (await check.scalars(select(CartItem.quantity))).all()

    assert quantities == [5]
