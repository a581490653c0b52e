from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

import pytest
import pytest_asyncio

from db import SqlPersistence, create_engine, create_sessionmaker, init_models
from institute.collaborators import UNCHECKED
from institute.errors import ConflictError, TransientError
from institute.payments import PaymentOrder
from institute.subscription import Account, SubscriptionRecord, SubscriptionWindow, as_utc, classify

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


class FakePersistence:
    def __init__(self, *, now: datetime = NOW) -> None:
        self.now = now
        self.accounts: dict[str, Account] = {}
        self.subscriptions: dict[str, SubscriptionRecord] = {}
        self.writes: list[dict[str, Any]] = []
        self.deleted: list[str] = []
        self.fail_with: Optional[BaseException] = None

    def add(self, account: Account) -> None:
        self.accounts[account.id] = account
        if account.subscription is not None:
            self.subscriptions[account.id] = account.subscription

    async def get_subscription(self, account_id: str) -> Optional[SubscriptionRecord]:
        if self.fail_with is not None:
            raise self.fail_with
        return self.subscriptions.get(account_id)

    async def list_accounts(self, status: Optional[str] = None):
        if self.fail_with is not None:
            raise self.fail_with
        result = []
        for account in self.accounts.values():
            account = replace(account, subscription=self.subscriptions.get(account.id))
            if status is None or classify(account.subscription, self.now).status.lower() == status:
                result.append(account)
        return result

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
        if self.fail_with is not None:
            raise self.fail_with
        current = self.subscriptions.get(account_id)
        if expected_end is not UNCHECKED:
            stored = as_utc(current.end_date) if current and current.end_date else None
            wanted = as_utc(expected_end) if expected_end else None
            if stored != wanted:
                raise ConflictError("stale read")
        record = SubscriptionRecord(
            account_id=account_id,
            plan=plan,
            start_date=window.start_date,
            end_date=window.end_date,
            amount_paid=(current.amount_paid if current else 0) + amount,
        )
        self.subscriptions[account_id] = record
        self.writes.append(
            {
                "account_id": account_id,
                "window": window,
                "amount": amount,
                "plan": plan,
                "method": method,
                "reference": reference,
                "initiator_id": initiator_id,
            }
        )
        return record

    async def delete_account(self, account_id: str) -> None:
        self.deleted.append(account_id)
        self.accounts.pop(account_id, None)
        self.subscriptions.pop(account_id, None)


class FakePayments:
    def __init__(self) -> None:
        self.orders: list[tuple[int, Mapping[str, Any]]] = []

    async def create_order(self, amount: int, metadata: Mapping[str, Any]) -> PaymentOrder:
        self.orders.append((amount, dict(metadata)))
        return PaymentOrder(
            order_id=f"order_{len(self.orders)}",
            amount=amount,
            currency="INR",
            key_id="rzp_test_key",
            receipt=f"rcpt_{len(self.orders)}",
        )


class FakeChannel:
    def __init__(self, failing_phones: tuple[str, ...] = ()) -> None:
        self.sent: list[tuple[str, str]] = []
        self.failing_phones = failing_phones

    async def open_external_thread(self, phone: str, text: str) -> None:
        if phone in self.failing_phones:
            raise TransientError(f"could not open chat for {phone}")
        self.sent.append((phone, text))


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def persistence() -> FakePersistence:
    return FakePersistence()


@pytest.fixture
def payments() -> FakePayments:
    return FakePayments()


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'institute.db'}")
    await init_models(engine)
    try:
        yield SqlPersistence(create_sessionmaker(engine), clock=lambda: NOW)
    finally:
        await engine.dispose()
