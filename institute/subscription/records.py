"""Plain records exchanged with the persistence and identity collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

Role = Literal["admin", "student"]


@dataclass(frozen=True)
class SubscriptionWindow:
    start_date: datetime
    end_date: datetime


@dataclass(frozen=True)
class SubscriptionRecord:
    account_id: str
    plan: str
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    amount_paid: int = 0
    # Whatever label the backend stored; never used for classification.
    status: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def window(self) -> Optional[SubscriptionWindow]:
        if self.start_date is None or self.end_date is None:
            return None
        return SubscriptionWindow(self.start_date, self.end_date)


@dataclass(frozen=True)
class Account:
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Role = "student"
    subscription: Optional[SubscriptionRecord] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
