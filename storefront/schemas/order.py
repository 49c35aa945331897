# storefront/schemas/order.py

from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional


class OrderItem(BaseModel):
    id: int
    order_id: str
    product_name: Optional[str] = None
    quantity: int
    unit_price: Optional[Decimal] = None

    model_config = {
        "from_attributes": True
    }


class Order(BaseModel):
    id: str
    tracking_code: str
    status: str
    payment_status: str
    payment_reference: Optional[str] = None
    gateway_tracking_id: Optional[str] = None
    payment_error: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    total_amount: Optional[Decimal] = None
    currency: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }


class OrderWithItems(Order):
    items: List[OrderItem] = []


# ────────────── Bulk delete ──────────────
class BulkDeleteRequest(BaseModel):
    orderIds: Optional[List[str]] = Field(None, description="IDs of the orders to delete")
