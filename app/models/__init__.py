from app.models.cart import Cart, CartItem
from app.models.order import Order
from app.models.order_item import OrderItem
from app.models.product import Product
from app.models.review import Review
from app.models.user import User

__all__ = ["Cart", "CartItem", "Order", "OrderItem", "Product", "Review", "User"]
