from .notification_service import ResendNotificationService
from .razorpay_client import (
    RazorpayAuthError,
    RazorpayClient,
    RazorpayConnectionError,
    RazorpayError,
    RazorpayValidationError,
)
from .signature_verifier import RazorpaySignatureVerifier, compute_signature

__all__ = [
    "RazorpayAuthError",
    "RazorpayClient",
    "RazorpayConnectionError",
    "RazorpayError",
    "RazorpaySignatureVerifier",
    "RazorpayValidationError",
    "ResendNotificationService",
    "compute_signature",
]
