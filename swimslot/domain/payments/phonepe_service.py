"""
PhonePe Payment Gateway Client
Creates pay-page orders and polls order status over the PhonePe PG v1 API
"""

import base64
import json
import logging
import secrets
import time
from typing import Optional

import httpx

from ...config import (
    FRONTEND_URL,
    PHONEPE_BASE_URL,
    PHONEPE_MERCHANT_ID,
    PHONEPE_SALT_INDEX,
    PHONEPE_SALT_KEY,
    PHONEPE_TIMEOUT_SECONDS,
)
from ...webhook_security import compute_checksum

logger = logging.getLogger(__name__)

PAY_ENDPOINT = "/pg/v1/pay"

STATE_TO_STATUS = {
    "COMPLETED": "success",
    "FAILED": "failed",
}


class PaymentGatewayError(Exception):
    """A gateway call failed; kind is "external" for transport/API errors, "malformed" for bad bodies"""

    def __init__(self, message: str, kind: str = "external", status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


def generate_merchant_order_id() -> str:
    """OM<epoch millis><6 random digits>"""
    return f"OM{int(time.time() * 1000)}{100000 + secrets.randbelow(900000)}"


def state_to_status(state: Optional[str]) -> str:
    return STATE_TO_STATUS.get((state or "").upper(), "pending")


def decode_callback_body(body: dict) -> dict:
    """PhonePe callbacks carry the payload base64 encoded under "response"; plain JSON is used as-is"""
    encoded = body.get("response")
    if not encoded:
        return body
    try:
        return json.loads(base64.b64decode(encoded).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as e:
        raise PaymentGatewayError("Malformed callback payload", kind="malformed") from e


class PhonePeClient:
    """Thin async client for the PhonePe PG v1 API"""

    def __init__(
        self,
        merchant_id: str = PHONEPE_MERCHANT_ID,
        salt_key: str = PHONEPE_SALT_KEY,
        salt_index: str = PHONEPE_SALT_INDEX,
        base_url: str = PHONEPE_BASE_URL,
        timeout: float = PHONEPE_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.merchant_id = merchant_id
        self.salt_key = salt_key
        self.salt_index = salt_index
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    @staticmethod
    def _parse(response: httpx.Response) -> dict:
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"❌ Non-JSON PhonePe response ({response.status_code}): {response.text[:200]}")
            raise PaymentGatewayError(
                "Malformed response from payment gateway", kind="malformed", status_code=response.status_code
            ) from e

    async def create_order(
        self,
        amount: float,
        user_details: dict,
        merchant_order_id: Optional[str] = None,
        callback_url: Optional[str] = None,
    ) -> dict:
        """
        Create a pay-page order

        Args:
            amount: Amount in rupees
            user_details: Customer details; "email" or "phone" identifies the payer
            merchant_order_id: Our order id, generated when omitted
            callback_url: Server-to-server callback for payment updates

        Returns:
            Dict with merchant_order_id, redirect_url and the raw gateway response
        """
        order_id = merchant_order_id or generate_merchant_order_id()
        payload = {
            "merchantId": self.merchant_id,
            "merchantTransactionId": order_id,
            "merchantUserId": user_details.get("email") or user_details.get("phone") or "guest",
            "amount": int(round(amount * 100)),  # paise
            "redirectUrl": f"{FRONTEND_URL}/customer/payment?merchantOrderId={order_id}",
            "redirectMode": "REDIRECT",
            "callbackUrl": callback_url or f"{FRONTEND_URL}/customer/payment?merchantOrderId={order_id}",
            "paymentInstrument": {"type": "PAY_PAGE"},
        }
        if user_details.get("phone"):
            payload["mobileNumber"] = user_details["phone"].lstrip("+")[-10:]

        encoded = base64.b64encode(json.dumps(payload).encode("utf-8")).decode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-VERIFY": compute_checksum(encoded + PAY_ENDPOINT, self.salt_key, self.salt_index),
        }

        logger.info(f"💳 Creating PhonePe order {order_id} for {amount}")
        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self.base_url}{PAY_ENDPOINT}", json={"request": encoded}, headers=headers
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ PhonePe create order failed for {order_id}: {e}")
            raise PaymentGatewayError(f"Payment gateway request failed: {e}") from e

        result = self._parse(response)
        if response.status_code >= 400 or not result.get("success"):
            message = result.get("message") or result.get("code") or response.status_code
            logger.error(f"❌ PhonePe rejected order {order_id}: {message}")
            raise PaymentGatewayError(
                f"Payment gateway rejected the order: {message}", status_code=response.status_code
            )

        redirect_url = (
            result.get("data", {}).get("instrumentResponse", {}).get("redirectInfo", {}).get("url")
        )
        if not redirect_url:
            raise PaymentGatewayError("Payment gateway response has no redirect URL", kind="malformed")

        logger.info(f"✅ PhonePe order {order_id} created")
        return {"merchant_order_id": order_id, "redirect_url": redirect_url, "response": result}

    async def check_status(self, merchant_order_id: str) -> dict:
        """
        Fetch the current state of an order

        Returns:
            Dict with state (COMPLETED/FAILED/PENDING), status (success/failed/pending),
            amount in rupees, transaction_id, payment_method and the raw response
        """
        endpoint = f"/pg/v1/status/{self.merchant_id}/{merchant_order_id}"
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-VERIFY": compute_checksum(endpoint, self.salt_key, self.salt_index),
            "X-MERCHANT-ID": self.merchant_id,
        }

        try:
            async with self._client() as client:
                response = await client.get(f"{self.base_url}{endpoint}", headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"❌ PhonePe status check failed for {merchant_order_id}: {e}")
            raise PaymentGatewayError(f"Payment gateway request failed: {e}") from e

        result = self._parse(response)
        if response.status_code >= 500:
            raise PaymentGatewayError(
                f"Payment gateway error ({response.status_code})", status_code=response.status_code
            )

        data = result.get("data") or {}
        state = data.get("state") or ("FAILED" if result.get("code") == "PAYMENT_ERROR" else "PENDING")
        amount = data.get("amount")
        instrument = data.get("paymentInstrument") or {}

        logger.info(f"🔍 PhonePe order {merchant_order_id} state: {state}")
        return {
            "merchant_order_id": merchant_order_id,
            "state": state,
            "status": state_to_status(state),
            "amount": amount / 100 if amount is not None else None,
            "transaction_id": data.get("transactionId"),
            "payment_method": instrument.get("type"),
            "response": result,
        }
