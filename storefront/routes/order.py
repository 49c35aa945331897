# storefront/routes/order.py

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from storefront.schemas.order import OrderWithItems
from storefront.services.order import read_order_by_tracking_code_service
from storefront.utils.errors import OrderNotFound

router = APIRouter()


# ────────────── TRACK ──────────────
@router.get(
    "/track/{code}",
    status_code=status.HTTP_200_OK,
    summary="Find an order by tracking code",
    response_description="The order with its items",
    responses={
        200: {"description": "Order found"},
        404: {"description": "Order not found with this tracking code"},
        500: {"description": "Failed to fetch order details"},
    },
)
async def track_order(code: str, request: Request):
    """
    Customer-facing lookup; the tracking code is case-insensitive.
    """
    try:
        order = await read_order_by_tracking_code_service(code, request)
    except OrderNotFound:
        return JSONResponse(status_code=404, content={
            "success": False,
            "error": "Order not found with this tracking code",
        })

    return {
        "success": True,
        "order": OrderWithItems.model_validate(order).model_dump(mode="json"),
    }
