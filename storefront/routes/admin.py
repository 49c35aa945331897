# storefront/routes/admin.py

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from storefront.schemas.order import BulkDeleteRequest, Order
from storefront.services.cleanup import delete_orders_service
from storefront.services.order import read_orders_service
from storefront.utils.auth import with_admin_auth
from storefront.utils.errors import BulkDeleteFailed, EmptyInput, PartialDeleteOrders

router = APIRouter()


# ────────────── ALL ORDERS ──────────────
@router.get(
    "/orders",
    summary="All orders (admin)",
    responses={
        200: {"description": "Orders, newest first"},
        401: {"description": "Authentication required"},
    },
)
@with_admin_auth
async def all_orders(request: Request, skip: int = 0, limit: int = 100):
    orders = await read_orders_service(request, skip, limit)
    return {"orders": [Order.model_validate(o).model_dump(mode="json") for o in orders]}


# ────────────── BULK DELETE ──────────────
@router.post(
    "/cleanup/delete-selected",
    summary="Delete selected orders and their items (admin)",
    responses={
        200: {
            "description": "Orders deleted",
            "content": {
                "application/json": {
                    "example": {"success": True, "deletedCount": 2, "message": "Successfully deleted 2 orders and their items"}
                }
            },
        },
        400: {"description": "No order IDs provided, or `orderIds` is not a list of strings"},
        401: {"description": "Authentication required"},
        500: {"description": "Delete failed; `completedPhase` tells which phase had committed"},
    },
)
@with_admin_auth
async def delete_selected_orders(request: Request):
    """
    Deletes the orders listed in `orderIds`, items first.

    - `completedPhase: null`: nothing was deleted
    - `completedPhase: "order_items"`: items are gone, orders remain; repeating the request is safe
    """
    try:
        payload = BulkDeleteRequest.model_validate(await request.json())
    except (ValueError, ValidationError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={
            "error": "orderIds must be a list of strings",
        })

    try:
        deleted = await delete_orders_service(payload.orderIds or [], request)
    except EmptyInput:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "No order IDs provided"})
    except PartialDeleteOrders as e:
        return JSONResponse(status_code=500, content={
            "error": "Failed to delete orders",
            "completedPhase": e.completed_phase,
            "deletedCount": 0,
            "retrySafe": True,
        })
    except BulkDeleteFailed as e:
        return JSONResponse(status_code=500, content={
            "error": "Failed to delete order items",
            "completedPhase": e.completed_phase,
            "deletedCount": 0,
            "retrySafe": True,
        })

    return {
        "success": True,
        "deletedCount": deleted,
        "message": f"Successfully deleted {deleted} orders and their items",
    }
