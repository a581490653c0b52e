"""Reminder candidate selection and message building."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, List, Optional

from config import INSTITUTE_NAME
from institute.localization import get_text
from institute.subscription.records import Account
from institute.subscription.status import SubscriptionState, classify

if TYPE_CHECKING:
    from institute.collaborators import Persistence

logger = logging.getLogger(__name__)

_QUERY_STATUSES = ("expired", "expiring")
_REMINDABLE = ("Expired", "Expiring")


@dataclass(frozen=True)
class ReminderCandidate:
    account_id: str
    name: str
    phone: Optional[str]
    plan: str
    state: SubscriptionState

    @classmethod
    def from_account(cls, account: Account, state: SubscriptionState) -> "ReminderCandidate":
        plan = account.subscription.plan if account.subscription else ""
        return cls(
            account_id=account.id,
            name=account.name,
            phone=account.phone,
            plan=plan,
            state=state,
        )


@dataclass(frozen=True)
class ReminderSummary:
    total: int
    expired: int
    expiring: int


async def select_candidates(persistence: "Persistence", now: datetime) -> List[ReminderCandidate]:
    """Return expired then expiring accounts, re-classified from their end dates.

    The backend's own status filter only narrows the query; an account whose
    dates say otherwise is dropped.
    """

    batches = await asyncio.gather(
        *(persistence.list_accounts(status=status) for status in _QUERY_STATUSES)
    )
    seen: set[str] = set()
    candidates: List[ReminderCandidate] = []
    for accounts in batches:
        for account in accounts:
            if account.id in seen:
                continue
            state = classify(account.subscription, now)
            if state.status not in _REMINDABLE:
                logger.debug("Skipping account %s: classified as %s", account.id, state.status)
                continue
            seen.add(account.id)
            candidates.append(ReminderCandidate.from_account(account, state))
    return candidates


def expiry_phrase(state: SubscriptionState, language: Optional[str] = None) -> str:
    if state.status == "Expired":
        return get_text("reminder_expired", language)
    if state.days_remaining == 0:
        return get_text("reminder_expiring_today", language)
    key = "reminder_expiring_in_one" if state.days_remaining == 1 else "reminder_expiring_in_many"
    return get_text(key, language, days=state.days_remaining)


def build_message(
    candidate: ReminderCandidate,
    *,
    language: Optional[str] = None,
    institute: str = INSTITUTE_NAME,
) -> str:
    return get_text(
        "reminder_body",
        language,
        name=candidate.name,
        plan=candidate.plan,
        institute=institute,
        expiry=expiry_phrase(candidate.state, language),
    )


def summarize(candidates: Iterable[ReminderCandidate]) -> ReminderSummary:
    expired = expiring = 0
    for candidate in candidates:
        if candidate.state.status == "Expired":
            expired += 1
        elif candidate.state.status == "Expiring":
            expiring += 1
    return ReminderSummary(total=expired + expiring, expired=expired, expiring=expiring)
