"""
Webhook Security Module

Signature checks for PhonePe requests and callbacks.
PhonePe signs with X-VERIFY = sha256(<payload><path><salt key>) + "###" + <salt index>.
"""

import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)


class WebhookSignatureError(Exception):
    """Raised when webhook signature verification fails"""

    pass


def constant_time_compare(a: str, b: str) -> bool:
    """
    Compare two strings in constant time to prevent timing attacks.
    Uses hmac.compare_digest which is designed for this purpose.
    """
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_checksum(payload: str, salt_key: str, salt_index: str) -> str:
    """X-VERIFY value for an already concatenated payload (body and/or endpoint path)"""
    digest = hashlib.sha256(f"{payload}{salt_key}".encode("utf-8")).hexdigest()
    return f"{digest}###{salt_index}"


def verify_phonepe_signature(raw_body: bytes, x_verify: str, salt_key: str, salt_index: str) -> None:
    """
    Verify a PhonePe callback signature.

    Raises:
        WebhookSignatureError: missing header, wrong salt index, or hash mismatch
    """
    if not x_verify:
        logger.error("❌ Missing X-VERIFY header on PhonePe callback")
        raise WebhookSignatureError("Missing X-VERIFY header")

    received_hash, _, received_index = x_verify.partition("###")
    if received_index != str(salt_index):
        logger.error(f"❌ PhonePe callback salt index mismatch: {received_index!r}")
        raise WebhookSignatureError("Salt index mismatch")

    expected_hash, _, _ = compute_checksum(
        raw_body.decode("utf-8", errors="replace"), salt_key, salt_index
    ).partition("###")

    if not constant_time_compare(expected_hash, received_hash):
        logger.warning(f"🚫 PhonePe callback signature mismatch ({len(raw_body)} bytes)")
        raise WebhookSignatureError("Invalid webhook signature")

    logger.info("✅ PhonePe callback signature verified")
