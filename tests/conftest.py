# tests/conftest.py

import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="storefront-tests-")

# configuration must be in place before storefront.config is imported
os.environ["AUTH_SECRET_KEY"] = "test-secret-key-0123456789-abcdefghijklmnopqrstuvwxyz"
os.environ["AUTH_TOKEN_EXPIRE_MINUTES"] = "60"
os.environ["AUTH_LOGIN"] = "admin"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'storefront.db')}"
os.environ["GATEWAY_BASE_URL"] = "https://gateway.test/v3"
os.environ["GATEWAY_CONSUMER_KEY"] = "test-consumer-key"
os.environ["GATEWAY_CONSUMER_SECRET"] = "test-consumer-secret"
os.environ["GATEWAY_TIMEOUT_SECONDS"] = "5"
os.environ["LOG_DIR"] = os.path.join(_TMP_DIR, "log")
os.environ["LOG_PRINT"] = "0"

from decimal import Decimal  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import select  # noqa: E402
from sqlalchemy.orm import selectinload  # noqa: E402

from storefront.main import app as main_app, token_codec  # noqa: E402
from storefront.models.order import Order, OrderItem  # noqa: E402
from storefront.services.payment_gateway import PaymentGatewayClient  # noqa: E402
from storefront.utils.database import AsyncSessionLocal, drop_db, engine, init_db  # noqa: E402
from storefront.utils.log import Log  # noqa: E402

GATEWAY_URL = os.environ["GATEWAY_BASE_URL"]


class FakeGateway:
    """
    Stands in for the payment gateway behind httpx.MockTransport.
    `status` is the transaction body returned; `failure` replaces it with an
    httpx.Response or raises an httpx exception.
    """

    def __init__(self):
        self.status = self.transaction("COMPLETED")
        self.failure = None
        self.token_calls = 0
        self.status_requests = []

    @staticmethod
    def transaction(description, payment_account="ACC-0001", amount=1500.0, currency="KES"):
        return {
            "payment_method": "Visa",
            "amount": amount,
            "created_date": "2026-10-18T10:00:00.000",
            "confirmation_code": "CONF-1",
            "payment_status_description": description,
            "description": "",
            "message": "Request processed successfully",
            "payment_account": payment_account,
            "call_back_url": "https://shop.test/payment/callback",
            "status_code": 1,
            "merchant_reference": "MR-1",
            "currency": currency,
            "error": {"error_type": None, "code": None, "message": None, "call_back_url": None},
            "status": "200",
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/api/Auth/RequestToken"):
            self.token_calls += 1
            return httpx.Response(200, json={"token": "gateway-token", "expiryDate": "2030-01-01T00:00:00Z", "error": None, "status": "200"})

        if request.url.path.endswith("/api/Transactions/GetTransactionStatus"):
            self.status_requests.append(request)
            if isinstance(self.failure, Exception):
                raise self.failure
            if self.failure is not None:
                return self.failure
            return httpx.Response(200, json=self.status)

        return httpx.Response(404, json={"error": "not found"})

    def client(self, **kwargs) -> PaymentGatewayClient:
        return PaymentGatewayClient(
            base_url=GATEWAY_URL,
            consumer_key="test-consumer-key",
            consumer_secret="test-consumer-secret",
            timeout=5.0,
            transport=httpx.MockTransport(self.handler),
            **kwargs,
        )


@pytest.fixture
async def log():
    log = Log(os.environ["LOG_DIR"], "0")
    yield log
    await log.shutdown()


@pytest.fixture
async def app(log):
    await drop_db()
    await init_db()
    main_app.state.log = log
    main_app.state.gateway = None
    yield main_app
    if main_app.state.gateway is not None:
        await main_app.state.gateway.close()
        main_app.state.gateway = None
    await engine.dispose()


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


@pytest.fixture
def gateway(app, log):
    fake = FakeGateway()
    app.state.gateway = fake.client(log=log)
    return fake


@pytest.fixture
def admin_token():
    return token_codec.issue("admin-admin", "admin")


@pytest.fixture
def admin_headers(admin_token):
    return {"Cookie": f"admin-session={admin_token}"}


@pytest.fixture
def make_order(app):
    async def _make_order(id, tracking_code, payment_reference=None, items=0, **fields):
        async with AsyncSessionLocal() as session:
            order = Order(
                id=id,
                tracking_code=tracking_code,
                payment_reference=payment_reference,
                customer_name=fields.pop("customer_name", "Jane Wanjiru"),
                total_amount=fields.pop("total_amount", Decimal("1500.00")),
                currency=fields.pop("currency", "KES"),
                **fields,
            )
            session.add(order)
            for n in range(items):
                session.add(OrderItem(order_id=id, product_name=f"Strawberry box {n + 1}", quantity=1, unit_price=Decimal("750.00")))
            await session.commit()
        return id

    return _make_order


async def fetch_order(id):
    """Reads an order with its items in a fresh session."""
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(Order).options(selectinload(Order.items)).where(Order.id == id))
        return result.scalar_one_or_none()


async def count_items(order_ids):
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(OrderItem).where(OrderItem.order_id.in_(order_ids)))
        return len(result.scalars().all())
