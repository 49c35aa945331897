# storefront/routes/payment.py

from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from storefront.schemas.payment import PaymentCallback
from storefront.services.reconciler import reconcile
from storefront.utils.errors import ConfigurationMissing, GatewayError, GatewayUnreachable, OrderNotFound

router = APIRouter()


def gateway_failure_response(error: Exception, action: str) -> JSONResponse:
    """Safe JSON answer for gateway and configuration failures; the full error goes to the log."""
    if isinstance(error, GatewayUnreachable):
        return JSONResponse(status_code=503, content={
            "error": f"Failed to {action}",
            "details": "Payment gateway is unreachable, try again later",
        })
    if isinstance(error, GatewayError):
        return JSONResponse(status_code=502, content={
            "error": f"Failed to {action}",
            "details": f"Payment gateway error {error.code}",
        })
    return JSONResponse(status_code=500, content={
        "error": "Payment gateway is not configured",
        "details": "Contact the store administrator",
    })


# ────────────── STATUS ──────────────
@router.get(
    "/status",
    summary="Check a payment's status with the gateway",
    responses={
        200: {
            "description": "Gateway status fetched and applied to the order",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "orderTrackingId": "b945e4af-80a5-4ec1-8706-e03f8332fb04",
                        "paymentStatus": "completed",
                        "gatewayStatus": "COMPLETED",
                        "amount": 1500,
                        "currency": "KES",
                        "orderStatus": "paid",
                    }
                }
            },
        },
        400: {"description": "Missing orderTrackingId parameter"},
        500: {"description": "Payment gateway is not configured"},
        502: {"description": "The gateway reported an error"},
        503: {"description": "The gateway could not be reached"},
    },
)
async def payment_status(request: Request, orderTrackingId: Optional[str] = Query(None)):
    """
    Asks the gateway for the transaction's status and updates the matching order.

    An order that cannot be matched or updated does not fail the check:
    the customer still sees what the gateway reported.
    """
    log = request.app.state.log
    tracking_id = (orderTrackingId or "").strip()
    if not tracking_id:
        return JSONResponse(status_code=400, content={
            "error": "Missing orderTrackingId parameter",
            "details": "Pass the gateway tracking id as ?orderTrackingId=...",
        })

    try:
        result = await reconcile(tracking_id, request)
    except (GatewayUnreachable, GatewayError, ConfigurationMissing) as e:
        await log.log_error("reconcile", "Payment status check failed", {
            "orderTrackingId": tracking_id, "error": str(e)
        })
        return gateway_failure_response(e, "check payment status")

    return result.to_response()


# ────────────── CALLBACK ──────────────
async def _callback_tracking_id(request: Request) -> Optional[str]:
    tracking_id = request.query_params.get("OrderTrackingId")
    if not tracking_id and request.method == "POST":
        try:
            tracking_id = PaymentCallback.model_validate(await request.json()).OrderTrackingId
        except (ValueError, ValidationError):
            tracking_id = None
    return (tracking_id or "").strip() or None


@router.api_route(
    "/callback",
    methods=["GET", "POST"],
    summary="Gateway payment notification",
    responses={
        200: {"description": "Notification processed"},
        400: {"description": "Invalid callback data"},
        404: {"description": "No order carries this tracking id"},
        500: {"description": "Payment gateway is not configured"},
        502: {"description": "The gateway reported an error"},
        503: {"description": "The gateway could not be reached"},
    },
)
async def payment_callback(request: Request):
    """
    Handles the gateway's notification that a transaction changed.

    The status in the notification itself is not trusted: the transaction is
    read back from the gateway and reconciled like a status check.
    """
    log = request.app.state.log
    tracking_id = await _callback_tracking_id(request)
    if not tracking_id:
        await log.log_error("reconcile", "Callback without OrderTrackingId")
        return JSONResponse(status_code=400, content={"error": "Invalid callback data"})

    await log.log_info("reconcile", "Gateway callback received", {"orderTrackingId": tracking_id})

    try:
        result = await reconcile(tracking_id, request, require_match=True)
    except OrderNotFound:
        return JSONResponse(status_code=404, content={
            "error": "Order not found",
            "details": "No order carries this tracking id",
        })
    except (GatewayUnreachable, GatewayError, ConfigurationMissing) as e:
        await log.log_error("reconcile", "Callback processing failed", {
            "orderTrackingId": tracking_id, "error": str(e)
        })
        return gateway_failure_response(e, "process callback")

    return {
        "success": True,
        "message": "Callback processed successfully",
        "orderTrackingId": tracking_id,
        "orderStatus": result.order_status,
        "paymentStatus": result.payment_status,
    }
