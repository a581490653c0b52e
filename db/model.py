from sqlalchemy import (
    Integer,
    String,
    Index,
    Boolean,
    DateTime,
    ForeignKey,
    func,
)
from sqlalchemy.orm import mapped_column
from datetime import datetime, timezone
from .base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Account(Base):
    __tablename__ = "accounts"

    id = mapped_column(String(64), primary_key=True)
    name = mapped_column(String(255), nullable=False)
    email = mapped_column(String(255), nullable=True, unique=True)
    phone = mapped_column(String(32), nullable=True)
    role = mapped_column(String(16), nullable=False, default="student", server_default="student")
    created_at = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.current_timestamp())


class SubscriptionRecord(Base):
    """Validity windows; the newest row with ``is_current`` set is the account's subscription."""
    __tablename__ = "subscriptions"

    id = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id = mapped_column(String(64), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    plan = mapped_column(String(64), nullable=False)
    start_date = mapped_column(DateTime(timezone=True), nullable=False)
    end_date = mapped_column(DateTime(timezone=True), nullable=False)
    amount_paid = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_current = mapped_column(Boolean, nullable=False, default=True, server_default="1")
    created_at = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.current_timestamp())

    __table_args__ = (
        Index("idx_subscriptions_current", "account_id", "is_current"),
    )


class PaymentTransaction(Base):
    __tablename__ = "payment_transactions"

    id = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id = mapped_column(String(64), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    plan = mapped_column(String(64), nullable=False)
    amount = mapped_column(Integer, nullable=False)
    method = mapped_column(String(32), nullable=False)
    status = mapped_column(String(24), nullable=False, default="success", server_default="success")
    is_manual = mapped_column(Boolean, nullable=False, default=False, server_default="0")
    initiator_id = mapped_column(String(64), nullable=True)
    reference = mapped_column(String(64), nullable=True, unique=True)
    created_at = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.current_timestamp())

    __table_args__ = (Index("idx_payments_created", "created_at"),)
