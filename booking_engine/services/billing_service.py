"""
Billing collaborator client.

The engine never captures payments. It asks the billing service to open an
invoice when a definition carries a price, and reports whether a
cancellation happened inside the free-cancellation threshold so billing can
decide on refunds.
"""

import logging
from typing import Optional

import httpx

from ..config import BILLING_API_KEY, BILLING_API_URL, COLLABORATOR_TIMEOUT

logger = logging.getLogger(__name__)


class BillingError(Exception):
    """Billing collaborator rejected or failed a request"""


class BillingClient:
    """Base billing collaborator; does nothing"""

    def create_invoice(
        self,
        customer: str,
        merchant: str,
        context_key: str,
        amount_minor_units: int,
        currency: str,
    ) -> Optional[str]:
        return None

    def report_cancellation(
        self, invoice_id: str, booking_id: str, within_threshold: bool
    ) -> None:
        return None


class HttpBillingClient(BillingClient):
    """Billing collaborator reached over HTTP"""

    def __init__(self, base_url: str, api_key: Optional[str] = None, timeout: float = COLLABORATOR_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def create_invoice(self, customer, merchant, context_key, amount_minor_units, currency):
        payload = {
            "customer": customer,
            "merchant": merchant,
            "context": context_key,
            "amount": amount_minor_units,
            "currency": currency,
        }
        logger.info(f"💳 Creating invoice for {context_key}: {amount_minor_units} {currency}")
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(f"{self.base_url}/invoices", json=payload, headers=self._headers())
                response.raise_for_status()
                invoice_id = response.json().get("id")
        except httpx.HTTPError as e:
            logger.error(f"❌ Invoice creation failed for {context_key}: {e}")
            raise BillingError(f"Invoice creation failed: {e}") from e
        logger.info(f"✅ Invoice {invoice_id} created for {context_key}")
        return invoice_id

    def report_cancellation(self, invoice_id, booking_id, within_threshold):
        payload = {"booking": booking_id, "withinThreshold": within_threshold}
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(
                    f"{self.base_url}/invoices/{invoice_id}/cancellation",
                    json=payload,
                    headers=self._headers(),
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"❌ Failed to report cancellation of booking {booking_id}: {e}")
            raise BillingError(f"Cancellation report failed: {e}") from e


def get_billing_client() -> BillingClient:
    """Configured billing collaborator (no-op when BILLING_API_URL is unset)"""
    if BILLING_API_URL:
        return HttpBillingClient(BILLING_API_URL, BILLING_API_KEY)
    return BillingClient()
