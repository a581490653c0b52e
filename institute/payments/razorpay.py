"""Razorpay order preparation, delegated to the backend."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping, Optional

from institute.errors import TransientError, ValidationError

if TYPE_CHECKING:
    from institute.api.client import ApiClient


@dataclass(frozen=True)
class PaymentOrder:
    """Details returned by the backend when a Razorpay order is created."""

    order_id: str
    amount: int
    currency: str
    key_id: Optional[str]
    receipt: str


@dataclass(frozen=True)
class PaymentConfirmation:
    """Outcome reported by the checkout once the payment flow finishes."""

    success: bool
    order_id: str
    payment_id: Optional[str] = None


class RazorpayGateway:
    """Builds order requests; the backend talks to Razorpay and verifies signatures."""

    _CREATE_ORDER_PATH = "/payments/create-order"

    def __init__(self, api: "ApiClient", key_id: Optional[str], *, currency: str = "INR") -> None:
        self._api = api
        self._key_id = key_id
        self._currency = currency

    @property
    def is_configured(self) -> bool:
        return bool(self._key_id)

    def build_order_request(self, amount: int, metadata: Mapping[str, Any]) -> dict[str, Any]:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError(f"Order amount must be a positive whole number of rupees, got {amount!r}")
        account_id = str(metadata.get("accountId", ""))
        receipt = f"rcpt_{account_id[:12]}_{uuid.uuid4().hex[:12]}"
        return {
            # Razorpay expects the smallest currency unit.
            "amount": amount * 100,
            "currency": self._currency,
            "receipt": receipt,
            "notes": {key: value for key, value in metadata.items() if value is not None},
        }

    async def create_order(self, amount: int, metadata: Mapping[str, Any]) -> PaymentOrder:
        if not self.is_configured:
            raise RuntimeError("Razorpay key is not configured")

        request_payload = self.build_order_request(amount, metadata)
        data = await self._api.request("POST", self._CREATE_ORDER_PATH, json=request_payload)
        if not isinstance(data, Mapping):
            raise TransientError(f"Unexpected order response: {data!r}")

        order = data.get("order") if isinstance(data.get("order"), Mapping) else data
        order_id = order.get("id") or order.get("orderId")
        if not order_id:
            raise TransientError(f"Order response carries no order id: {data!r}")
        return PaymentOrder(
            order_id=str(order_id),
            amount=amount,
            currency=str(order.get("currency") or self._currency),
            key_id=data.get("keyId") or self._key_id,
            receipt=str(order.get("receipt") or request_payload["receipt"]),
        )
