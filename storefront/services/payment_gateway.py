# storefront/services/payment_gateway.py

"""
Client for the payment gateway's transaction status API.

Each status query obtains a bearer token from the gateway and then reads the
transaction. Every call is bounded by the configured timeout and nothing is
retried here: a status read is always safe to repeat, so the caller decides
whether and when to try again.
"""

from typing import Any, Dict, Optional

import httpx
from fastapi import Request
from pydantic import ValidationError

from storefront.config import Settings, settings as default_settings
from storefront.schemas.payment import GatewayTransactionStatus
from storefront.utils.errors import ConfigurationMissing, GatewayError, GatewayUnreachable


class PaymentGatewayClient:
    TOKEN_PATH = "/api/Auth/RequestToken"
    STATUS_PATH = "/api/Transactions/GetTransactionStatus"

    def __init__(
        self,
        base_url: str,
        consumer_key: str,
        consumer_secret: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        log=None,
    ):
        missing = [
            name for name, value in (
                ("GATEWAY_BASE_URL", base_url),
                ("GATEWAY_CONSUMER_KEY", consumer_key),
                ("GATEWAY_CONSUMER_SECRET", consumer_secret),
            ) if not value
        ]
        if missing:
            raise ConfigurationMissing(missing)

        self.base_url = base_url.rstrip("/")
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.timeout = timeout
        self.log = log
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs) -> "PaymentGatewayClient":
        settings = settings or default_settings
        return cls(
            base_url=settings.gateway_base_url,
            consumer_key=settings.GATEWAY_CONSUMER_KEY,
            consumer_secret=settings.GATEWAY_CONSUMER_SECRET,
            timeout=settings.GATEWAY_TIMEOUT_SECONDS,
            **kwargs,
        )

    async def close(self):
        await self._client.aclose()

    # ==========================================================
    # HTTP
    # ==========================================================
    async def _send(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            await self._log_error("Gateway timeout", {"path": path, "timeout": self.timeout})
            raise GatewayUnreachable(f"Payment gateway did not answer within {self.timeout}s") from e
        except httpx.TransportError as e:
            await self._log_error("Gateway connection failed", {"path": path, "error": str(e)})
            raise GatewayUnreachable("Payment gateway is unreachable") from e

        if not response.is_success:
            await self._log_error("Gateway HTTP error", {
                "path": path, "status_code": response.status_code, "body": response.text[:500]
            })
            raise GatewayError(response.status_code, response.reason_phrase)

        try:
            data = response.json()
        except ValueError as e:
            await self._log_error("Gateway returned non-JSON body", {"path": path, "body": response.text[:500]})
            raise GatewayError(response.status_code, "Response is not JSON") from e

        if not isinstance(data, dict):
            raise GatewayError(response.status_code, "Unexpected response shape")

        # the gateway always sends an "error" object; it only matters when filled in
        error = data.get("error")
        if isinstance(error, dict) and (error.get("code") or error.get("message")):
            await self._log_error("Gateway reported an error", {"path": path, "error": error})
            raise GatewayError(error.get("code") or data.get("status") or response.status_code,
                               error.get("message") or "")
        if error and not isinstance(error, dict):
            await self._log_error("Gateway reported an error", {"path": path, "error": error})
            raise GatewayError(data.get("status") or response.status_code, str(error))

        return data

    async def _log_error(self, message: str, data: dict):
        if self.log:
            await self.log.log_error("gateway", message, data)

    # ==========================================================
    # API
    # ==========================================================
    async def request_access_token(self) -> str:
        data = await self._send(
            "POST",
            self.TOKEN_PATH,
            json={"consumer_key": self.consumer_key, "consumer_secret": self.consumer_secret},
        )
        token = data.get("token")
        if not token:
            raise GatewayError(data.get("status") or "no_token", "Token response without token")
        return token

    async def get_transaction_status(self, tracking_id: str) -> GatewayTransactionStatus:
        """
        Reads the gateway's view of a transaction.

        Raises GatewayUnreachable on timeouts and connection failures,
        GatewayError for any error the gateway itself reports or a payload
        that does not have the expected shape.
        """
        token = await self.request_access_token()
        data = await self._send(
            "GET",
            self.STATUS_PATH,
            params={"orderTrackingId": tracking_id},
            headers={"Authorization": f"Bearer {token}"},
        )
        if self.log:
            await self.log.log_info("gateway", "Transaction status received", {
                "orderTrackingId": tracking_id,
                "payment_status_description": data.get("payment_status_description"),
            })
        try:
            return GatewayTransactionStatus.model_validate(data)
        except ValidationError as e:
            await self._log_error("Gateway returned an unexpected transaction payload", {
                "orderTrackingId": tracking_id, "error": str(e)
            })
            raise GatewayError("invalid_payload", "Unexpected transaction payload") from e


def get_gateway(request: Request) -> PaymentGatewayClient:
    """
    Returns the application's gateway client, creating it on first use.
    Raises ConfigurationMissing when gateway credentials are not set.
    """
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        gateway = PaymentGatewayClient.from_settings(log=getattr(request.app.state, "log", None))
        request.app.state.gateway = gateway
    return gateway
