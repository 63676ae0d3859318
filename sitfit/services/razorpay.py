"""Razorpay payment provider client."""

import logging
from typing import Dict, Optional

import httpx

from sitfit.schemas.payments import ProviderOrder
from sitfit.utils.errors import PaymentProviderError


class RazorpayClient:
    """Creates orders through the Razorpay REST API."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the Razorpay client.

        Args:
            key_id: Public key id, also handed to the checkout widget
            key_secret: Secret key, used for API auth and signature checks
            base_url: API root
            timeout: Request timeout in seconds
            client: Optional preconfigured httpx client
        """
        self.logger = logging.getLogger(__name__)
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client = client

        if not key_id or not key_secret:
            self.logger.warning("Razorpay credentials are not set. Payments will fail.")

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure httpx client exists."""
        if self.client is None:
            self.client = httpx.AsyncClient(timeout=self.timeout)
        return self.client

    async def create_order(
        self,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, str]] = None,
    ) -> ProviderOrder:
        """Create an order for ``amount_minor`` (paise for INR).

        Raises:
            PaymentProviderError: If the provider cannot be reached or rejects the order
        """
        client = await self._ensure_client()
        payload = {
            "amount": amount_minor,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }

        try:
            response = await client.post(
                f"{self.base_url}/v1/orders",
                json=payload,
                auth=(self.key_id, self.key_secret),
            )
        except httpx.HTTPError as e:
            raise PaymentProviderError(f"Order request failed: {e}") from e

        if response.status_code not in (200, 201):
            raise PaymentProviderError(f"Order creation rejected: {response.text}", response.status_code)

        order = self._parse_order(response)
        self.logger.info(f"Created Razorpay order {order.id} (receipt {receipt})")
        return order

    async def fetch_order(self, order_id: str) -> ProviderOrder:
        """Fetch an order as the provider recorded it.

        Raises:
            PaymentProviderError: If the provider cannot be reached or does not know the order
        """
        client = await self._ensure_client()
        try:
            response = await client.get(
                f"{self.base_url}/v1/orders/{order_id}",
                auth=(self.key_id, self.key_secret),
            )
        except httpx.HTTPError as e:
            raise PaymentProviderError(f"Order lookup failed: {e}") from e

        if response.status_code != 200:
            raise PaymentProviderError(f"Order {order_id} lookup rejected: {response.text}", response.status_code)

        return self._parse_order(response)

    def _parse_order(self, response: httpx.Response) -> ProviderOrder:
        try:
            return ProviderOrder.model_validate(response.json())
        except ValueError as e:
            raise PaymentProviderError(f"Unreadable order response: {e}", response.status_code) from e

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None
