# tests/test_order_tracking.py

import pytest

from storefront.models.order import Order
from storefront.services.order import normalize_tracking_code

from conftest import fetch_order


@pytest.mark.parametrize("code", ["ABC123", "abc123", " aBc123 "])
async def test_tracking_code_is_case_insensitive(client, make_order, code):
    await make_order("o1", "ABC123", items=2)

    response = await client.get(f"/api/orders/track/{code}")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["order"]["id"] == "o1"
    assert body["order"]["tracking_code"] == "ABC123"
    assert len(body["order"]["items"]) == 2
    assert {i["product_name"] for i in body["order"]["items"]} == {"Strawberry box 1", "Strawberry box 2"}


async def test_unknown_tracking_code(client, make_order):
    await make_order("o1", "ABC123")

    response = await client.get("/api/orders/track/ZZZ999")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Order not found with this tracking code"}


async def test_stored_codes_are_upper_cased(make_order):
    await make_order("o1", " trk-lower ")

    assert (await fetch_order("o1")).tracking_code == "TRK-LOWER"


def test_model_validator_normalizes_on_assignment():
    order = Order(tracking_code="abc")
    order.tracking_code = " xyz9 "

    assert order.tracking_code == "XYZ9"


@pytest.mark.parametrize("raw, expected", [("abc", "ABC"), ("  Ab1 ", "AB1"), ("", ""), (None, "")])
def test_normalize_tracking_code(raw, expected):
    assert normalize_tracking_code(raw) == expected
