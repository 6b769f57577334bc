import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from starlette import status

from app.core.deps import get_current_user, get_service
from app.schemas.cart import CartItemAdd, CartItemSetQuantity, CartRead
from app.services.cart_service import CartService


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/cart",
    tags=["Cart"],
    dependencies=[Depends(get_current_user)],
)

# -------------------------------
# ADD ITEM TO CART
# -------------------------------
@router.post("/items", response_model=CartRead, status_code=status.HTTP_200_OK)
async def add_to_cart(
    item_in: CartItemAdd,
    service: CartService = Depends(get_service(CartService)),
):
    """
    Add a product to the user's cart, or increment its quantity if it is
    already there.
    """
    return await service.add_item(
        user_id=item_in.user_id,
        product_id=item_in.product_id,
        quantity=item_in.quantity,
    )


# -------------------------------
# UPDATE CART ITEM
# -------------------------------
@router.patch("/items", response_model=CartRead, status_code=status.HTTP_200_OK)
async def update_cart_item(
    item_in: CartItemSetQuantity,
    service: CartService = Depends(get_service(CartService)),
):
    """
    Set a product quantity.
    If quantity is 0, the item is removed.
    """
    return await service.set_item_quantity(
        user_id=item_in.user_id,
        product_id=item_in.product_id,
        quantity=item_in.quantity,
    )


# -------------------------------
# REMOVE SINGLE ITEM
# -------------------------------
@router.delete("/items", response_model=CartRead, status_code=status.HTTP_200_OK)
async def remove_cart_item(
    user_id: UUID = Query(...),
    product_id: UUID = Query(...),
    service: CartService = Depends(get_service(CartService)),
):
    """
    Remove a single product from the cart.
    """
    return await service.remove_item(user_id=user_id, product_id=product_id)


# -------------------------------
# VIEW CART
# -------------------------------
@router.get("/{user_id}", response_model=CartRead, status_code=status.HTTP_200_OK)
async def view_cart(
    user_id: UUID,
    service: CartService = Depends(get_service(CartService)),
):
    """
    Retrieve the user's cart, creating it empty on first access.
    """
    return await service.get_cart(user_id)


# -------------------------------
# CLEAR CART
# -------------------------------
@router.delete("/{user_id}", response_model=CartRead, status_code=status.HTTP_200_OK)
async def clear_cart(
    user_id: UUID,
    service: CartService = Depends(get_service(CartService)),
):
    """
    Empty the cart completely.
    """
    return await service.clear(user_id)
