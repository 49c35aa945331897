# tests/test_reconciler.py

import asyncio
from types import SimpleNamespace

import httpx
import pytest
from sqlalchemy.exc import OperationalError

from storefront.config import settings
from storefront.schemas.payment import GatewayTransactionStatus
from storefront.services.reconciler import GATEWAY_STATUS_TABLE, apply_transaction_status, map_gateway_status

from conftest import FakeGateway, fetch_order


def row_state(order):
    return {
        "status": order.status,
        "payment_status": order.payment_status,
        "payment_reference": order.payment_reference,
        "payment_error": order.payment_error,
        "updated_at": order.updated_at,
    }


@pytest.mark.parametrize("description, expected", [
    ("COMPLETED", ("paid", "completed")),
    ("FAILED", ("payment_failed", "failed")),
    ("PENDING", ("pending", "pending")),
    ("INVALID", ("pending", "pending")),
    ("REVERSED", ("pending", "pending")),
    ("UNKNOWN", ("pending", "pending")),
    ("", ("pending", "pending")),
    (None, ("pending", "pending")),
    (" Completed ", ("paid", "completed")),
])
def test_status_mapping(description, expected):
    assert tuple(map_gateway_status(description)) == expected


def test_every_table_entry_uses_known_internal_states():
    for outcome in GATEWAY_STATUS_TABLE.values():
        assert outcome.status in {"pending", "paid", "payment_failed"}
        assert outcome.payment_status in {"pending", "completed", "failed"}


async def test_status_check_marks_order_paid(client, gateway, make_order):
    await make_order("o1", "ABC123", payment_reference="trk-1")
    gateway.status = FakeGateway.transaction("COMPLETED", payment_account="ACC-77", amount=1500, currency="KES")

    response = await client.get("/api/payments/status", params={"orderTrackingId": "trk-1"})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "orderTrackingId": "trk-1",
        "paymentStatus": "completed",
        "gatewayStatus": "COMPLETED",
        "amount": 1500,
        "currency": "KES",
        "orderStatus": "paid",
    }

    order = await fetch_order("o1")
    assert order.status == "paid"
    assert order.payment_status == "completed"
    assert order.payment_reference == "ACC-77"
    assert order.payment_error is None
    assert order.updated_at is not None


async def test_failed_payment(client, gateway, make_order):
    await make_order("o1", "ABC123", payment_reference="trk-1")
    gateway.status = FakeGateway.transaction("FAILED")

    response = await client.get("/api/payments/status", params={"orderTrackingId": "trk-1"})

    assert response.json()["orderStatus"] == "payment_failed"
    order = await fetch_order("o1")
    assert (order.status, order.payment_status) == ("payment_failed", "failed")
    assert order.payment_error == "Payment failed"


async def test_unrecognised_status_stays_pending(client, gateway, make_order):
    await make_order("o1", "ABC123", payment_reference="trk-1")
    gateway.status = FakeGateway.transaction("SOMETHING_NEW")

    response = await client.get("/api/payments/status", params={"orderTrackingId": "trk-1"})

    assert response.json()["orderStatus"] == "pending"
    assert response.json()["gatewayStatus"] == "SOMETHING_NEW"
    order = await fetch_order("o1")
    assert (order.status, order.payment_status) == ("pending", "pending")


@pytest.mark.parametrize("payment_account", ["ACC-77", None])
async def test_reconciling_twice_leaves_an_identical_row(client, gateway, make_order, payment_account):
    await make_order("o1", "ABC123", payment_reference="trk-1")
    gateway.status = FakeGateway.transaction("COMPLETED", payment_account=payment_account)

    first = await client.get("/api/payments/status", params={"orderTrackingId": "trk-1"})
    after_first = row_state(await fetch_order("o1"))

    second = await client.get("/api/payments/status", params={"orderTrackingId": "trk-1"})
    after_second = row_state(await fetch_order("o1"))

    assert first.json() == second.json()
    assert after_first == after_second
    assert after_first["payment_reference"] == (payment_account or "trk-1")


async def test_unmatched_tracking_id_still_reports_gateway_status(client, gateway, make_order):
    await make_order("o1", "ABC123", payment_reference="trk-other")

    response = await client.get("/api/payments/status", params={"orderTrackingId": "trk-missing"})

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["orderStatus"] == "paid"
    assert (await fetch_order("o1")).status == "pending"


async def test_order_stays_matchable_after_reference_becomes_the_account(client, gateway, make_order):
    await make_order("o1", "ABC123", payment_reference="trk-1")
    gateway.status = FakeGateway.transaction("PENDING", payment_account="254700000001")
    await client.get("/api/payments/status", params={"orderTrackingId": "trk-1"})

    gateway.status = FakeGateway.transaction("COMPLETED", payment_account="254700000001")
    response = await client.get("/api/payments/status", params={"orderTrackingId": "trk-1"})

    assert response.json()["orderStatus"] == "paid"
    order = await fetch_order("o1")
    assert (order.status, order.payment_reference, order.gateway_tracking_id) == ("paid", "254700000001", "trk-1")


async def test_shared_payment_account_does_not_match_other_orders(client, gateway, make_order):
    await make_order("o1", "ABC123", payment_reference="254700000001", status="paid", payment_status="completed")
    gateway.status = FakeGateway.transaction("COMPLETED", payment_account="254700000001")

    callback = await client.post("/api/payments/callback", json={"OrderTrackingId": "trk-never-issued"})
    status = await client.get("/api/payments/status", params={"orderTrackingId": "trk-never-issued"})

    assert callback.status_code == 404
    assert status.status_code == 200
    order = await fetch_order("o1")
    assert order.gateway_tracking_id is None


async def test_storage_failure_is_not_logged_as_a_miss():
    class RecordingLog:
        def __init__(self):
            self.lines = []

        async def log_info(self, target="", message="", data=None, is_console=None):
            self.lines.append(("info", message))

        async def log_warning(self, target="", message="", data=None, is_console=None):
            self.lines.append(("warning", message))

        async def log_error(self, target="", message="", data=None, is_console=None):
            self.lines.append(("error", message))

    class BrokenSession:
        rolled_back = False

        async def execute(self, *args, **kwargs):
            raise OperationalError("UPDATE", {}, Exception("disk I/O error"))

        async def rollback(self):
            self.rolled_back = True

    log = RecordingLog()
    db = BrokenSession()
    request = SimpleNamespace(state=SimpleNamespace(db=db), app=SimpleNamespace(state=SimpleNamespace(log=log)))

    result = await apply_transaction_status(
        "trk-1", GatewayTransactionStatus(payment_status_description="COMPLETED"), request
    )

    assert result.order_matched is False
    assert result.order_status == "paid"
    assert db.rolled_back
    assert [level for level, _ in log.lines] == ["error"]


async def test_concurrent_checks_settle_on_the_gateway_answer(client, gateway, make_order):
    await make_order("o1", "ABC123", payment_reference="trk-1")
    gateway.status = FakeGateway.transaction("COMPLETED", payment_account=None)

    responses = await asyncio.gather(*[
        client.get("/api/payments/status", params={"orderTrackingId": "trk-1"}) for _ in range(3)
    ])

    assert all(r.status_code == 200 for r in responses)
    order = await fetch_order("o1")
    assert (order.status, order.payment_status, order.payment_reference) == ("paid", "completed", "trk-1")


async def test_missing_tracking_id(client, gateway):
    response = await client.get("/api/payments/status")

    assert response.status_code == 400
    assert response.json()["error"] == "Missing orderTrackingId parameter"
    assert gateway.status_requests == []


async def test_unreachable_gateway_is_retryable_and_leaves_order(client, gateway, make_order):
    await make_order("o1", "ABC123", payment_reference="trk-1")
    gateway.failure = httpx.ReadTimeout("timed out")

    response = await client.get("/api/payments/status", params={"orderTrackingId": "trk-1"})

    assert response.status_code == 503
    assert set(response.json()) == {"error", "details"}
    assert len(gateway.status_requests) == 1
    assert (await fetch_order("o1")).status == "pending"


async def test_gateway_error_is_reported(client, gateway, make_order):
    await make_order("o1", "ABC123", payment_reference="trk-1")
    gateway.failure = httpx.Response(500, text="boom")

    response = await client.get("/api/payments/status", params={"orderTrackingId": "trk-1"})

    assert response.status_code == 502
    assert response.json()["error"] == "Failed to check payment status"
    assert "500" in response.json()["details"]


async def test_badly_shaped_gateway_answer_is_a_gateway_error(client, gateway, make_order):
    await make_order("o1", "ABC123", payment_reference="trk-1")
    gateway.status = FakeGateway.transaction("COMPLETED", payment_account=254700000001)

    response = await client.get("/api/payments/status", params={"orderTrackingId": "trk-1"})

    assert response.status_code == 502
    assert response.json()["error"] == "Failed to check payment status"
    assert "invalid_payload" in response.json()["details"]
    assert (await fetch_order("o1")).status == "pending"


async def test_unconfigured_gateway_fails_fast(client, monkeypatch):
    monkeypatch.setattr(settings, "GATEWAY_CONSUMER_KEY", "")

    response = await client.get("/api/payments/status", params={"orderTrackingId": "trk-1"})

    assert response.status_code == 500
    assert response.json()["error"] == "Payment gateway is not configured"
    assert "GATEWAY_CONSUMER_KEY" not in response.text


# ────────────── Callback ──────────────
async def test_callback_rereads_status_from_the_gateway(client, gateway, make_order):
    await make_order("o1", "ABC123", payment_reference="trk-1")
    gateway.status = FakeGateway.transaction("FAILED", payment_account=None)

    response = await client.post("/api/payments/callback", json={
        "OrderTrackingId": "trk-1",
        "OrderNotificationType": "IPNCHANGE",
        "PaymentStatusDescription": "COMPLETED",   # not trusted
    })

    assert response.status_code == 200
    assert response.json()["orderStatus"] == "payment_failed"
    order = await fetch_order("o1")
    assert (order.status, order.payment_status) == ("payment_failed", "failed")


async def test_callback_via_query_string(client, gateway, make_order):
    await make_order("o1", "ABC123", payment_reference="trk-1")

    response = await client.get("/api/payments/callback", params={"OrderTrackingId": "trk-1"})

    assert response.status_code == 200
    assert (await fetch_order("o1")).status == "paid"


async def test_callback_repeated_is_idempotent(client, gateway, make_order):
    await make_order("o1", "ABC123", payment_reference="trk-1")
    gateway.status = FakeGateway.transaction("COMPLETED", payment_account="ACC-9")

    first = await client.post("/api/payments/callback", json={"OrderTrackingId": "trk-1"})
    state = row_state(await fetch_order("o1"))
    second = await client.post("/api/payments/callback", json={"OrderTrackingId": "trk-1"})

    assert first.status_code == second.status_code == 200
    assert row_state(await fetch_order("o1")) == state


async def test_callback_for_unknown_order(client, gateway):
    response = await client.post("/api/payments/callback", json={"OrderTrackingId": "trk-nope"})

    assert response.status_code == 404


async def test_callback_without_tracking_id(client, gateway):
    response = await client.post("/api/payments/callback", json={"OrderMerchantReference": "MR-1"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid callback data"}
