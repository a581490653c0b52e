"""Subscription state classification from stored validity dates."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Literal, Optional, Tuple

from .plans import as_utc
from .records import SubscriptionRecord

SubscriptionStatus = Literal["Active", "Expiring", "Expired", "Inactive"]

EXPIRING_WINDOW_DAYS = 7
_DEFAULT_TOTAL_DAYS = 30
_ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class SubscriptionState:
    status: SubscriptionStatus
    days_remaining: int


INACTIVE = SubscriptionState(status="Inactive", days_remaining=0)


def days_remaining(end_date: datetime, now: datetime) -> int:
    remaining = (as_utc(end_date) - as_utc(now)) / _ONE_DAY
    return max(0, math.ceil(remaining))


def classify(subscription: Optional[SubscriptionRecord], now: datetime) -> SubscriptionState:
    """Derive the status of ``subscription`` at ``now``.

    The stored ``status`` field is ignored; only ``end_date`` matters. A
    subscription ending exactly at ``now`` is already expired.
    """

    if subscription is None or subscription.end_date is None:
        return INACTIVE

    end_date = as_utc(subscription.end_date)
    current = as_utc(now)
    if end_date <= current:
        return SubscriptionState(status="Expired", days_remaining=0)

    remaining = days_remaining(end_date, current)
    if remaining <= EXPIRING_WINDOW_DAYS:
        return SubscriptionState(status="Expiring", days_remaining=remaining)
    return SubscriptionState(status="Active", days_remaining=remaining)


def should_show_renewal_reminder(state: SubscriptionState) -> bool:
    return state.status != "Inactive" and state.days_remaining <= EXPIRING_WINDOW_DAYS


def progress(subscription: Optional[SubscriptionRecord], now: datetime) -> Tuple[int, int]:
    """Return ``(total_days, elapsed_days)`` for the dashboard validity bar."""

    state = classify(subscription, now)
    total = _DEFAULT_TOTAL_DAYS
    if subscription is not None and subscription.start_date and subscription.end_date:
        start = as_utc(subscription.start_date)
        end = as_utc(subscription.end_date)
        if end > start:
            total = math.ceil((end - start) / _ONE_DAY)
    return total, max(0, total - state.days_remaining)
