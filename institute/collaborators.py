"""Interfaces of the external services the subscription core depends on."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Protocol, Sequence

from institute.payments.razorpay import PaymentOrder
from institute.subscription.records import Account, SubscriptionRecord, SubscriptionWindow


class _Unchecked:
    def __repr__(self) -> str:
        return "UNCHECKED"


UNCHECKED: Any = _Unchecked()


class Persistence(Protocol):
    async def get_subscription(self, account_id: str) -> Optional[SubscriptionRecord]:
        ...

    async def list_accounts(self, status: Optional[str] = None) -> Sequence[Account]:
        ...

    async def write_subscription(
        self,
        account_id: str,
        window: SubscriptionWindow,
        amount: int,
        *,
        plan: str,
        method: str,
        reference: Optional[str] = None,
        initiator_id: Optional[str] = None,
        expected_end: Optional[datetime] = UNCHECKED,
    ) -> SubscriptionRecord:
        """Atomically replace the account's current window.

        When ``expected_end`` is given, the write must fail with
        ``ConflictError`` unless the stored end date still equals it
        (``None`` meaning no record exists yet).
        """
        ...

    async def delete_account(self, account_id: str) -> None:
        ...


class PaymentCollaborator(Protocol):
    async def create_order(self, amount: int, metadata: Mapping[str, Any]) -> PaymentOrder:
        ...


class MessagingChannel(Protocol):
    async def open_external_thread(self, phone: str, text: str) -> None:
        ...


class IdentityProvider(Protocol):
    async def get_current_user(self) -> Optional[Account]:
        ...
