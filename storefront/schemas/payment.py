# storefront/schemas/payment.py

from pydantic import BaseModel, ConfigDict
from typing import Any, Optional


class GatewayTransactionStatus(BaseModel):
    """
    Read-only snapshot of a transaction as reported by the payment gateway.
    Only the fields used by reconciliation are typed; the rest are ignored.
    """
    model_config = ConfigDict(extra="ignore")

    payment_status_description: Optional[str] = None
    amount: Optional[Any] = None
    currency: Optional[str] = None
    payment_account: Optional[str] = None
    payment_method: Optional[str] = None
    confirmation_code: Optional[str] = None
    merchant_reference: Optional[str] = None


class ReconciliationResult(BaseModel):
    order_tracking_id: str
    gateway_status: str
    amount: Optional[Any] = None
    currency: Optional[str] = None
    order_status: str
    payment_status: str
    order_matched: bool        # an order row carries this transaction's state
    order_updated: bool        # this call changed the row

    def to_response(self) -> dict:
        return {
            "success": True,
            "orderTrackingId": self.order_tracking_id,
            "paymentStatus": self.payment_status,
            "gatewayStatus": self.gateway_status,
            "amount": self.amount,
            "currency": self.currency,
            "orderStatus": self.order_status,
        }


class PaymentCallback(BaseModel):
    model_config = ConfigDict(extra="ignore")

    OrderTrackingId: Optional[str] = None
    OrderMerchantReference: Optional[str] = None
    OrderNotificationType: Optional[str] = None
