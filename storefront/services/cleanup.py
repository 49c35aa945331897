# storefront/services/cleanup.py

"""
Administrative bulk deletion of orders.

Order items reference orders, so deletion runs in two phases: all items of
the selected orders first, then the orders. Each phase commits on its own.
If the item phase fails nothing has been removed. If the order phase fails
the items are gone but every order row is still present; running the
delete again is safe because there are no items left to duplicate.
"""

from typing import Iterable, List

from fastapi import Request
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError

from storefront.models.order import Order as OrderModel, OrderItem as OrderItemModel
from storefront.utils.errors import BulkDeleteFailed, EmptyInput, PartialDeleteOrders

ITEMS_PHASE = "order_items"
ORDERS_PHASE = "orders"


def normalize_order_ids(order_ids: Iterable) -> List[str]:
    ids = {str(i).strip() for i in (order_ids or []) if i is not None and str(i).strip()}
    return sorted(ids)


async def delete_order_items(db, order_ids: List[str]) -> int:
    result = await db.execute(delete(OrderItemModel).where(OrderItemModel.order_id.in_(order_ids)))
    await db.commit()
    return result.rowcount or 0


async def delete_order_rows(db, order_ids: List[str]) -> int:
    result = await db.execute(delete(OrderModel).where(OrderModel.id.in_(order_ids)))
    await db.commit()
    return result.rowcount or 0


async def delete_orders_service(order_ids: Iterable, request: Request) -> int:
    """
    Deletes the given orders and their items, returning the number of order rows removed.

    Raises EmptyInput when no ids are given, BulkDeleteFailed when the item phase
    fails and PartialDeleteOrders when the order phase fails after the items went.
    """
    db = request.state.db
    log = request.app.state.log

    ids = normalize_order_ids(order_ids)
    if not ids:
        raise EmptyInput("No order IDs provided")

    # ---- 1. Order items ----
    try:
        items_deleted = await delete_order_items(db, ids)
    except SQLAlchemyError as e:
        await db.rollback()
        await log.log_error("cleanup", "Failed to delete order items", {"order_ids": ids, "error": str(e)})
        raise BulkDeleteFailed("Failed to delete order items", completed_phase=None) from e

    await log.log_info("cleanup", "Order items deleted", {"order_ids": ids, "rows": items_deleted})

    # ---- 2. Orders ----
    try:
        orders_deleted = await delete_order_rows(db, ids)
    except SQLAlchemyError as e:
        await db.rollback()
        await log.log_error("cleanup", "Failed to delete orders after their items were deleted", {
            "order_ids": ids, "items_deleted": items_deleted, "error": str(e)
        })
        raise PartialDeleteOrders(
            "Failed to delete orders", completed_phase=ITEMS_PHASE, items_deleted=items_deleted
        ) from e

    await log.log_info("cleanup", "Orders deleted", {"order_ids": ids, "rows": orders_deleted})
    return orders_deleted
