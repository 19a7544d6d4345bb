"""
Razorpay API Client

Async client for Razorpay order creation using HTTP Basic auth.

Connection Details:
    - Base URL: https://api.razorpay.com/v1
    - Auth: Basic (key_id:key_secret)

Endpoints:
    - POST /orders - Create a gateway order for an amount in paise
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from storefront.config.settings import Settings, get_settings
from storefront.core.domain import IntegrationException

logger = logging.getLogger(__name__)

# Razorpay rejects receipts longer than this
MAX_RECEIPT_LENGTH = 40


class RazorpayError(IntegrationException):
    """
    Base exception for Razorpay errors.

    Attributes:
        error_code: Machine-readable error code
        error_message: Human-readable error description
    """

    def __init__(self, error_code: str, error_message: str, original_error: Exception | None = None):
        self.error_code = error_code
        self.error_message = error_message
        super().__init__("razorpay", f"{error_code}: {error_message}", original_error=original_error)


class RazorpayAuthError(RazorpayError):
    """Authentication error (invalid key pair)."""

    def __init__(self, message: str = "Invalid Razorpay credentials"):
        super().__init__("AUTH_ERROR", message)


class RazorpayConnectionError(RazorpayError):
    """Network connectivity issues."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__("CONNECTION_ERROR", message, original_error=original_error)


class RazorpayValidationError(RazorpayError):
    """Request validation error."""

    def __init__(self, message: str):
        super().__init__("VALIDATION_ERROR", message)


class RazorpayClient:
    """
    Async HTTP client for the Razorpay Orders API.

    Example:
        async with RazorpayClient() as client:
            gateway_order = await client.create_order(
                amount_paise=349900,
                receipt="ORD-20250101-ABC123",
            )
            # gateway_order["id"] is the order_... id the checkout widget needs
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = settings or get_settings()

        if not settings.RAZORPAY_ENABLED:
            logger.warning("RazorpayClient initialized but RAZORPAY_ENABLED=false")

        self._base_url = settings.RAZORPAY_API_BASE
        self._key_id = settings.RAZORPAY_KEY_ID
        self._key_secret = settings.RAZORPAY_KEY_SECRET
        self._timeout = settings.RAZORPAY_TIMEOUT
        self._currency = settings.CURRENCY
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        if not (self._key_id and self._key_secret):
            logger.error("RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET not configured")

    async def __aenter__(self) -> RazorpayClient:
        """Enter async context and create HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            auth=(self._key_id or "", self._key_secret or ""),
            headers={"Content-Type": "application/json"},
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args) -> None:
        """Exit async context and close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def create_order(
        self,
        amount_paise: int,
        receipt: str,
        notes: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """
        Create a Razorpay order.

        Args:
            amount_paise: Amount in the smallest currency unit
            receipt: Internal reference, truncated to Razorpay's limit
            notes: Free-form key/value pairs stored with the order

        Returns:
            Razorpay order payload (``id``, ``amount``, ``currency``, ``status``, ...)

        Raises:
            RazorpayAuthError: Invalid key pair
            RazorpayValidationError: Invalid request parameters
            RazorpayConnectionError: Network error
        """
        if not self._client:
            raise RazorpayError("CLIENT_NOT_INITIALIZED", "Client not initialized. Use 'async with' context.")

        if amount_paise <= 0:
            raise RazorpayValidationError("Amount must be greater than zero")

        payload: dict[str, Any] = {
            "amount": amount_paise,
            "currency": self._currency,
            "receipt": receipt[:MAX_RECEIPT_LENGTH],
        }
        if notes:
            payload["notes"] = notes

        try:
            logger.info(f"[RAZORPAY] Creating order: amount={amount_paise} receipt={receipt}")

            response = await self._client.post("/orders", json=payload)

            if response.status_code == 401:
                raise RazorpayAuthError("Invalid or revoked key pair")

            if response.status_code == 400:
                error = response.json().get("error", {})
                raise RazorpayValidationError(error.get("description", "Validation error"))

            response.raise_for_status()

            data = response.json()
            logger.info(f"[RAZORPAY] Order created: {data.get('id')}")
            return data

        except httpx.HTTPStatusError as e:
            logger.error(f"[RAZORPAY] HTTP error {e.response.status_code}: {e}")
            raise RazorpayError("HTTP_ERROR", f"Razorpay returned {e.response.status_code}", original_error=e) from e

        except httpx.ConnectError as e:
            logger.error(f"[RAZORPAY] Connection error: {e}")
            raise RazorpayConnectionError(f"Could not connect to Razorpay: {e}", original_error=e) from e

        except httpx.TimeoutException as e:
            logger.error(f"[RAZORPAY] Timeout error: {e}")
            raise RazorpayConnectionError(f"Razorpay request timed out: {e}", original_error=e) from e
