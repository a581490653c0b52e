"""Cached view of the signed-in user."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional

from institute.errors import InstituteError
from institute.subscription.records import Account

if TYPE_CHECKING:
    from institute.collaborators import IdentityProvider

logger = logging.getLogger(__name__)


class SessionCache:
    """Holds the current user and refreshes it from the identity provider.

    A read refreshes the cache when it is older than ``ttl`` seconds. When the
    provider fails, the last known user is returned instead.
    """

    def __init__(
        self,
        identity: "IdentityProvider",
        *,
        ttl: float = 300,
        path: Optional[Path] = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._identity = identity
        self._ttl = ttl
        self._path = path
        self._monotonic = monotonic
        self._user: Optional[Account] = None
        self._fetched_at: Optional[float] = None
        if path is not None:
            self._user = self._load(path)

    @property
    def cached_user(self) -> Optional[Account]:
        return self._user

    def is_stale(self) -> bool:
        if self._fetched_at is None:
            return True
        return self._monotonic() - self._fetched_at >= self._ttl

    async def get_user(self, *, force: bool = False) -> Optional[Account]:
        if not force and not self.is_stale():
            return self._user
        try:
            user = await self._identity.get_current_user()
        except InstituteError as exc:
            logger.warning("Identity refresh failed, using cached user: %s", exc.message)
            return self._user
        self._user = user
        self._fetched_at = self._monotonic()
        self._store()
        return user

    def clear(self) -> None:
        self._user = None
        self._fetched_at = None
        self._store()

    def _store(self) -> None:
        if self._path is None:
            return
        if self._user is None:
            self._path.unlink(missing_ok=True)
            return
        payload = asdict(self._user)
        payload.pop("subscription", None)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(payload), encoding="utf-8")

    @staticmethod
    def _load(path: Path) -> Optional[Account]:
        if not path.exists():
            return None
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            return Account(
                id=str(payload["id"]),
                name=payload.get("name", ""),
                email=payload.get("email"),
                phone=payload.get("phone"),
                role=payload.get("role", "student"),
            )
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Ignoring unreadable session cache %s: %s", path, exc)
            return None
