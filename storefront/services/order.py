# storefront/services/order.py

from sqlalchemy import select
from sqlalchemy.orm import selectinload
from fastapi import Request

from storefront.models.order import Order as OrderModel
from storefront.utils.errors import OrderNotFound


def normalize_tracking_code(code: str) -> str:
    return (code or "").strip().upper()


async def read_orders_service(request: Request, skip: int = 0, limit: int = 100) -> list[OrderModel]:
    """
    All orders, newest first.
    """
    db = request.state.db
    log = request.app.state.log

    result = await db.execute(
        select(OrderModel).order_by(OrderModel.created_at.desc()).offset(skip).limit(limit)
    )
    orders = result.scalars().all()

    await log.log_info("order", f"{len(orders)} orders loaded")
    return orders


async def read_order_by_tracking_code_service(code: str, request: Request) -> OrderModel:
    """
    Looks an order up by its customer-facing tracking code, with its items.
    The code is matched case-insensitively. Raises OrderNotFound.
    """
    db = request.state.db
    log = request.app.state.log

    tracking_code = normalize_tracking_code(code)
    result = await db.execute(
        select(OrderModel)
        .options(selectinload(OrderModel.items))
        .where(OrderModel.tracking_code == tracking_code)
    )
    db_order = result.scalar_one_or_none()
    if db_order is None:
        await log.log_info("order", "No order for tracking code", {"tracking_code": tracking_code})
        raise OrderNotFound(f"Order not found with tracking code {tracking_code}")

    await log.log_info("order", "Order loaded by tracking code", {"id": db_order.id})
    return db_order
