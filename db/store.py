"""SQLAlchemy-backed persistence collaborator."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from institute.collaborators import UNCHECKED
from institute.errors import ConflictError, TransientError, ValidationError
from institute.subscription.plans import as_utc, utcnow
from institute.subscription.records import Account, SubscriptionRecord, SubscriptionWindow
from institute.subscription.status import classify
from logging_config import register_log_translations

from .model import Account as AccountRow
from .model import PaymentTransaction
from .model import SubscriptionRecord as SubscriptionRow

logger = logging.getLogger(__name__)

register_log_translations(
    {
        "Stored subscription window %s - %s for account %s": {
            "hi": "सदस्यता अवधि %s - %s खाता %s के लिए सहेजी गई",
        },
        "Payment reference %s already applied to account %s": {
            "hi": "भुगतान संदर्भ %s पहले ही खाता %s पर लागू है",
        },
        "Deleted account %s": {
            "hi": "खाता %s हटाया गया",
        },
    }
)

_STATUS_FILTERS = {"active": "Active", "expiring": "Expiring", "expired": "Expired", "inactive": "Inactive"}


def _to_record(row: SubscriptionRow) -> SubscriptionRecord:
    return SubscriptionRecord(
        account_id=row.account_id,
        plan=row.plan,
        start_date=as_utc(row.start_date),
        end_date=as_utc(row.end_date),
        amount_paid=row.amount_paid,
        created_at=as_utc(row.created_at) if row.created_at else None,
    )


def _to_account(row: AccountRow, subscription: Optional[SubscriptionRow]) -> Account:
    return Account(
        id=row.id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        role="admin" if row.role == "admin" else "student",
        subscription=_to_record(subscription) if subscription is not None else None,
    )


async def _current_row(session: AsyncSession, account_id: str) -> Optional[SubscriptionRow]:
    stmt = (
        select(SubscriptionRow)
        .where(SubscriptionRow.account_id == account_id, SubscriptionRow.is_current.is_(True))
        .order_by(SubscriptionRow.id.desc())
        .limit(1)
        .with_for_update()
    )
    return await session.scalar(stmt)


class SqlPersistence:
    """Implements the persistence collaborator on top of an async session factory.

    Each write runs in a single transaction, so callers never observe a
    half-updated record.
    """

    def __init__(self, sessions: async_sessionmaker, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._sessions = sessions
        self._clock = clock

    async def add_account(
        self,
        account_id: str,
        name: str,
        *,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        role: str = "student",
    ) -> Account:
        if role not in ("admin", "student"):
            raise ValidationError(f"Unknown role: {role!r}")
        try:
            async with self._sessions.begin() as session:
                row = AccountRow(id=account_id, name=name, email=email, phone=phone, role=role)
                session.add(row)
        except IntegrityError as exc:
            raise ConflictError(f"Account {account_id} already exists") from exc
        except OperationalError as exc:
            raise TransientError("Database is unavailable") from exc
        return _to_account(row, None)

    async def get_subscription(self, account_id: str) -> Optional[SubscriptionRecord]:
        try:
            async with self._sessions() as session:
                row = await _current_row(session, account_id)
        except OperationalError as exc:
            raise TransientError("Database is unavailable") from exc
        return _to_record(row) if row is not None else None

    async def list_accounts(self, status: Optional[str] = None) -> Sequence[Account]:
        wanted = None
        if status:
            wanted = _STATUS_FILTERS.get(status.lower())
            if wanted is None:
                raise ValidationError(f"Unknown status filter: {status!r}")

        try:
            async with self._sessions() as session:
                accounts = (await session.scalars(select(AccountRow).order_by(AccountRow.created_at, AccountRow.id))).all()
                rows = (
                    await session.scalars(select(SubscriptionRow).where(SubscriptionRow.is_current.is_(True)))
                ).all()
        except OperationalError as exc:
            raise TransientError("Database is unavailable") from exc

        current = {row.account_id: row for row in sorted(rows, key=lambda r: r.id)}
        now = self._clock()
        result: List[Account] = []
        for row in accounts:
            account = _to_account(row, current.get(row.id))
            if wanted is None or classify(account.subscription, now).status == wanted:
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
        start_date = as_utc(window.start_date)
        end_date = as_utc(window.end_date)
        if end_date < start_date:
            raise ValidationError("Subscription cannot end before it starts")
        if amount < 0:
            raise ValidationError("Amount cannot be negative")

        try:
            async with self._sessions.begin() as session:
                account = await session.get(AccountRow, account_id)
                if account is None:
                    raise ValidationError(f"Unknown account: {account_id}")

                current = await _current_row(session, account_id)
                if reference is not None:
                    applied = await session.scalar(
                        select(PaymentTransaction).where(PaymentTransaction.reference == reference)
                    )
                    if applied is not None and current is not None:
                        logger.info("Payment reference %s already applied to account %s", reference, account_id)
                        return _to_record(current)

                if expected_end is not UNCHECKED:
                    stored_end = as_utc(current.end_date) if current is not None else None
                    wanted_end = as_utc(expected_end) if expected_end is not None else None
                    if stored_end != wanted_end:
                        raise ConflictError(
                            f"Subscription for account {account_id} changed; reload it and try again"
                        )

                previous_total = 0
                if current is not None:
                    previous_total = current.amount_paid
                    current.is_current = False

                row = SubscriptionRow(
                    account_id=account_id,
                    plan=plan,
                    start_date=start_date,
                    end_date=end_date,
                    amount_paid=previous_total + amount,
                    is_current=True,
                    created_at=as_utc(self._clock()),
                )
                session.add(row)
                session.add(
                    PaymentTransaction(
                        account_id=account_id,
                        plan=plan,
                        amount=amount,
                        method=method.lower(),
                        is_manual=method.lower() == "manual",
                        initiator_id=initiator_id,
                        reference=reference,
                        created_at=as_utc(self._clock()),
                    )
                )
                await session.flush()
                record = _to_record(row)
        except IntegrityError as exc:
            raise ConflictError(f"Concurrent update for account {account_id}") from exc
        except OperationalError as exc:
            raise TransientError("Database is unavailable") from exc

        logger.info(
            "Stored subscription window %s - %s for account %s",
            start_date.date(),
            end_date.date(),
            account_id,
        )
        return record

    async def delete_account(self, account_id: str) -> None:
        try:
            async with self._sessions.begin() as session:
                account = await session.get(AccountRow, account_id)
                if account is None:
                    raise ValidationError(f"Unknown account: {account_id}")
                await session.execute(delete(PaymentTransaction).where(PaymentTransaction.account_id == account_id))
                await session.execute(delete(SubscriptionRow).where(SubscriptionRow.account_id == account_id))
                await session.delete(account)
        except OperationalError as exc:
            raise TransientError("Database is unavailable") from exc
        logger.info("Deleted account %s", account_id)

    async def payment_history(self, account_id: str) -> List[PaymentTransaction]:
        try:
            async with self._sessions() as session:
                stmt = (
                    select(PaymentTransaction)
                    .where(PaymentTransaction.account_id == account_id)
                    .order_by(PaymentTransaction.created_at, PaymentTransaction.id)
                )
                return list((await session.scalars(stmt)).all())
        except OperationalError as exc:
            raise TransientError("Database is unavailable") from exc
