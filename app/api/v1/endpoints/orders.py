from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from starlette import status

from app.core.config import settings
from app.core.deps import get_current_user, get_service
from app.core.limiter import limiter
from app.schemas.order import OrderCreate, OrderRead, OrderStatusUpdate
from app.services.order_service import OrderService

router = APIRouter(
    prefix="/orders",
    tags=["Orders"],
    dependencies=[Depends(get_current_user)],
)


# PLACE ORDER
@router.post("", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_orders)
async def create_order(
    request: Request,
    order_in: OrderCreate,
    service: OrderService = Depends(get_service(OrderService)),
):
    """
    Place an order. Prices are snapshotted from the catalog and the user's
    cart is emptied afterwards.
    """
    return await service.create_order(user_id=order_in.user_id, items=order_in.items)


# LIST USER ORDERS
@router.get("/user/{user_id}", response_model=list[OrderRead])
async def list_user_orders(
    user_id: UUID,
    service: OrderService = Depends(get_service(OrderService)),
):
    """
    All orders of a user, newest first.
    """
    return await service.find_user_orders(user_id)


# SINGLE ORDER
@router.get("", response_model=OrderRead)
async def get_order(
    order_id: UUID = Query(...),
    user_id: UUID | None = Query(None),
    service: OrderService = Depends(get_service(OrderService)),
):
    """
    One order. When `user_id` is given the order must belong to that user.
    """
    return await service.find_order_by_id(order_id, requesting_user_id=user_id)


# STATUS
@router.patch("/{order_id}/status", response_model=OrderRead)
async def update_order_status(
    order_id: UUID,
    status_in: OrderStatusUpdate,
    service: OrderService = Depends(get_service(OrderService)),
):
    return await service.update_status(order_id, status_in.status)
