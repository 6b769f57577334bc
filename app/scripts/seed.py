import asyncio
from decimal import Decimal

from sqlalchemy import select

from app.core.security import create_access_token
from app.crud.user import UserCRUD
from app.db.enums import OrderStatus, UserRole
from app.db.sessions import get_async_session
from app.models.order import Order
from app.models.order_item import OrderItem
from app.models.product import Product
from app.models.user import User


USERS = [
    {"email": "alice@example.com", "name": "Alice Wonderland"},
    {"email": "bob@example.com", "name": "Bob The Builder"},
]

PRODUCTS = [
    {
        "title": "Laptop Pro X",
        "description": "A powerful laptop for professionals.",
        "price": Decimal("1200.99"),
        "original_price": Decimal("1500.00"),
        "category": "Electronics",
    },
    {
        "title": "Cafeteira MasterBrew",
        "description": "Brew the perfect coffee every morning.",
        "price": Decimal("89.50"),
        "category": "Home & Kitchen",
    },
    {
        "title": "Livro: A Arte da Guerra",
        "description": "Classic strategy by Sun Tzu.",
        "price": Decimal("19.90"),
        "original_price": Decimal("25.00"),
        "category": "Books",
    },
]


async def _get_or_create_user(session, email: str, name: str) -> User:
    user = await UserCRUD(session).get_by_email(email)
    if user:
        return user

    user = User(email=email, name=name, role=UserRole.CUSTOMER)
    session.add(user)
    await session.flush()
    return user


async def seed():
    async for session in get_async_session():
        alice, bob = [await _get_or_create_user(session, **data) for data in USERS]
        print(f"Users ready: {alice.name}, {bob.name}")

        existing = await session.execute(select(Product).limit(1))
        if existing.scalar_one_or_none():
            print("Catalog already seeded, skipping products and orders.")
            await session.commit()
        else:
            laptop, coffee_maker, book = [Product(**data) for data in PRODUCTS]
            session.add_all([laptop, coffee_maker, book])
            await session.flush()
            print(f"Created products: {laptop.title}, {coffee_maker.title}, {book.title}")

            order = Order(
                user_id=alice.id,
                status=OrderStatus.PENDING,
                total_amount=laptop.price + book.price * 2,
                items=[
                    OrderItem(product_id=laptop.id, quantity=1, price_at_purchase=laptop.price),
                    OrderItem(product_id=book.id, quantity=2, price_at_purchase=book.price),
                ],
            )
            session.add(order)
            await session.commit()
            print(f"Created PENDING order {order.id} for {alice.email}")

        for user in (alice, bob):
            print(f"Bearer token for {user.email}:\n{create_access_token(user)}\n")


if __name__ == "__main__":
    asyncio.run(seed())
