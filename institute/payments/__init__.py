"""Payment gateway abstractions for paid renewals."""

from .razorpay import PaymentConfirmation, PaymentOrder, RazorpayGateway

__all__ = [
    "PaymentConfirmation",
    "PaymentOrder",
    "RazorpayGateway",
]
