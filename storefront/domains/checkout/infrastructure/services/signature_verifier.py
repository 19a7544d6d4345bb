"""
Razorpay signature verification.

Webhooks are signed with HMAC-SHA256 of the raw request body using the
webhook secret; checkout callbacks sign ``"<order_id>|<payment_id>"`` with
the key secret.
"""

import hashlib
import hmac
import logging

from storefront.core.domain import InvalidSignatureException
from storefront.domains.checkout.application.ports import ISignatureVerifier

logger = logging.getLogger(__name__)


def compute_signature(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), msg=message, digestmod=hashlib.sha256).hexdigest()


class RazorpaySignatureVerifier(ISignatureVerifier):
    def __init__(self, webhook_secret: str | None, key_secret: str | None = None):
        self._webhook_secret = webhook_secret
        self._key_secret = key_secret

    def verify_webhook(self, raw_body: bytes, signature: str | None) -> None:
        if not self._webhook_secret:
            logger.error("[WEBHOOK] RAZORPAY_WEBHOOK_SECRET not configured; rejecting webhook")
            raise InvalidSignatureException("webhook", "Webhook secret not configured")
        self._check(self._webhook_secret, raw_body, signature, "webhook")

    def verify_payment(self, gateway_order_id: str, payment_id: str, signature: str | None) -> None:
        if not self._key_secret:
            logger.error("[PAYMENT] RAZORPAY_KEY_SECRET not configured; rejecting payment signature")
            raise InvalidSignatureException("payment", "Key secret not configured")
        message = f"{gateway_order_id}|{payment_id}".encode("utf-8")
        self._check(self._key_secret, message, signature, "payment")

    @staticmethod
    def _check(secret: str, message: bytes, signature: str | None, source: str) -> None:
        if not signature:
            logger.warning(f"[WEBHOOK] Missing {source} signature")
            raise InvalidSignatureException(source, f"Missing {source} signature")

        expected = compute_signature(secret, message)
        if not hmac.compare_digest(expected.encode("utf-8"), signature.strip().encode("utf-8")):
            logger.warning(f"[WEBHOOK] {source.capitalize()} signature verification failed")
            raise InvalidSignatureException(source)
