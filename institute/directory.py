"""Admin user listing: search, status filter and pagination."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional, Tuple

from institute.errors import ValidationError
from institute.subscription.records import Account
from institute.subscription.status import SubscriptionState, classify

if TYPE_CHECKING:
    from institute.collaborators import Persistence

USER_PAGE_SIZE = 20
USER_STATUS_FILTERS: Tuple[str, ...] = ("all", "active", "expiring", "expired", "inactive")


@dataclass(frozen=True)
class DirectoryEntry:
    account: Account
    state: SubscriptionState


@dataclass(frozen=True)
class AccountPage:
    entries: List[DirectoryEntry]
    page: int
    total_pages: int
    total: int


def matches_search(account: Account, term: Optional[str]) -> bool:
    """Case-insensitive match against name, email, phone or id."""

    needle = (term or "").strip().lower()
    if not needle:
        return True
    fields = (account.name, account.email, account.phone, account.id)
    return any(needle in (value or "").lower() for value in fields)


async def list_users(
    persistence: "Persistence",
    now: datetime,
    *,
    status: str = "all",
    search: Optional[str] = None,
    page: int = 1,
    page_size: int = USER_PAGE_SIZE,
) -> AccountPage:
    status = (status or "all").strip().lower()
    if status not in USER_STATUS_FILTERS:
        raise ValidationError(f"Unknown status filter: {status!r}. Expected one of: {', '.join(USER_STATUS_FILTERS)}")
    if page < 1 or page_size < 1:
        raise ValidationError("Page and page size must be positive")

    accounts = await persistence.list_accounts(status=None if status == "all" else status)
    entries: List[DirectoryEntry] = []
    for account in accounts:
        if not matches_search(account, search):
            continue
        state = classify(account.subscription, now)
        # The backend filter is a hint; the derived state decides.
        if status != "all" and state.status.lower() != status:
            continue
        entries.append(DirectoryEntry(account, state))

    total_pages = max(1, math.ceil(len(entries) / page_size))
    if page > total_pages:
        raise ValidationError(f"Page {page} is past the last page ({total_pages})")
    offset = (page - 1) * page_size
    return AccountPage(
        entries=entries[offset : offset + page_size],
        page=page,
        total_pages=total_pages,
        total=len(entries),
    )
