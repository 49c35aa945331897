# storefront/services/reconciler.py

"""
Reconciles local order state with the payment gateway's view of a transaction.

Used by the status polling endpoint and by the gateway callback. The row
update only fires when it would change something, so repeating a
reconciliation with the same gateway answer leaves the row untouched.

An order is found by payment_reference (the tracking id stored at checkout)
or by gateway_tracking_id. The first reconciliation copies the tracking id
into gateway_tracking_id, because payment_reference is then overwritten with
the gateway's payment account, which several orders may share.

Two concurrent reconciliations for the same tracking id are last-write-wins
on updated_at: the order ends up reflecting one of the two gateway answers,
with no ordering guarantee between them.
"""

from datetime import datetime, timezone
from typing import NamedTuple, Optional

from fastapi import Request
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError

from storefront.models.order import Order as OrderModel
from storefront.schemas.payment import GatewayTransactionStatus, ReconciliationResult
from storefront.services.payment_gateway import get_gateway
from storefront.utils.errors import OrderNotFound


class OrderOutcome(NamedTuple):
    status: str
    payment_status: str


PENDING = OrderOutcome("pending", "pending")

# Every status the gateway defines has an entry; anything unknown falls back to PENDING.
GATEWAY_STATUS_TABLE = {
    "COMPLETED": OrderOutcome("paid", "completed"),
    "FAILED":    OrderOutcome("payment_failed", "failed"),
    "PENDING":   PENDING,
    "INVALID":   PENDING,
    "REVERSED":  PENDING,
}

PAYMENT_FAILED_MESSAGE = "Payment failed"


def map_gateway_status(description: Optional[str]) -> OrderOutcome:
    key = (description or "").strip().upper()
    return GATEWAY_STATUS_TABLE.get(key, PENDING)


async def apply_transaction_status(
    tracking_id: str,
    transaction: GatewayTransactionStatus,
    request: Request,
    now: Optional[datetime] = None,
) -> ReconciliationResult:
    """
    Writes the mapped gateway status onto the order carrying tracking_id.

    A missing order or a storage error is not raised: the result reports
    order_matched=False and the caller still gets the gateway's answer.
    """
    db = request.state.db
    log = request.app.state.log

    outcome = map_gateway_status(transaction.payment_status_description)
    new_reference = transaction.payment_account or tracking_id
    payment_error = PAYMENT_FAILED_MESSAGE if outcome.payment_status == "failed" else None

    values = {
        "status": outcome.status,
        "payment_status": outcome.payment_status,
        "payment_reference": new_reference,
        "gateway_tracking_id": tracking_id,
        "payment_error": payment_error,
        "updated_at": now or datetime.now(timezone.utc),
    }
    carries_tracking_id = or_(
        OrderModel.payment_reference == tracking_id,
        OrderModel.gateway_tracking_id == tracking_id,
    )

    updated = 0
    matched = False
    persist_failed = False
    try:
        result = await db.execute(
            update(OrderModel)
            .where(carries_tracking_id)
            .where(or_(
                OrderModel.status.is_distinct_from(outcome.status),
                OrderModel.payment_status.is_distinct_from(outcome.payment_status),
                OrderModel.payment_reference.is_distinct_from(new_reference),
                OrderModel.gateway_tracking_id.is_distinct_from(tracking_id),
                OrderModel.payment_error.is_distinct_from(payment_error),
            ))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        updated = result.rowcount or 0

        if updated:
            matched = True
        else:
            # nothing changed: either this answer was already applied or no order carries the id
            already_applied = await db.scalar(
                select(func.count()).select_from(OrderModel).where(and_(
                    carries_tracking_id,
                    OrderModel.status == outcome.status,
                    OrderModel.payment_status == outcome.payment_status,
                ))
            )
            matched = bool(already_applied)
    except SQLAlchemyError as e:
        persist_failed = True
        await db.rollback()
        await log.log_error("reconcile", "Failed to persist order payment status", {
            "orderTrackingId": tracking_id, "error": str(e)
        })

    # a storage failure was already logged as an error, not as a miss
    if not matched and not persist_failed:
        await log.log_warning("reconcile", "No order matches the gateway tracking id", {
            "orderTrackingId": tracking_id
        })
    elif updated:
        await log.log_info("reconcile", "Order payment status updated", {
            "orderTrackingId": tracking_id,
            "status": outcome.status,
            "payment_status": outcome.payment_status,
            "rows": updated,
        })

    return ReconciliationResult(
        order_tracking_id=tracking_id,
        gateway_status=transaction.payment_status_description or "",
        amount=transaction.amount,
        currency=transaction.currency,
        order_status=outcome.status,
        payment_status=outcome.payment_status,
        order_matched=matched,
        order_updated=bool(updated),
    )


async def reconcile(tracking_id: str, request: Request, require_match: bool = False) -> ReconciliationResult:
    """
    Fetches the transaction status from the gateway and applies it to the matching order.

    GatewayUnreachable and GatewayError propagate to the caller.
    OrderNotFound is raised only when require_match is set and no order carries the id.
    """
    gateway = get_gateway(request)
    transaction = await gateway.get_transaction_status(tracking_id)

    result = await apply_transaction_status(tracking_id, transaction, request)
    if require_match and not result.order_matched:
        raise OrderNotFound(f"No order with payment reference {tracking_id}")
    return result
