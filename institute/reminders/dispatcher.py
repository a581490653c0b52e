"""Outbound reminder commands and throttled dispatch."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable, Deque, Dict, List, Optional, Sequence, Union

from config import INSTITUTE_NAME, REMINDER_INTERVAL_MS
from institute.errors import ValidationError
from institute.localization import get_text
from logging_config import register_log_translations

from .selector import ReminderCandidate, build_message

if TYPE_CHECKING:
    from institute.collaborators import MessagingChannel

logger = logging.getLogger(__name__)

register_log_translations(
    {
        "Reminder sent to account %s": {
            "hi": "खाता %s को रिमाइंडर भेजा गया",
        },
        "Reminder to account %s failed": {
            "hi": "खाता %s को रिमाइंडर भेजना विफल रहा",
        },
        "Bulk reminder run cancelled after %s of %s sends": {
            "hi": "बल्क रिमाइंडर %s/%s भेजने के बाद रद्द किया गया",
        },
        "Bulk reminder run declined by operator (%s recipients)": {
            "hi": "ऑपरेटर ने बल्क रिमाइंडर अस्वीकार किया (%s प्राप्तकर्ता)",
        },
    }
)

Confirm = Callable[[int], Union[bool, Awaitable[bool]]]


@dataclass(frozen=True)
class ReminderCommand:
    """A queued, fire-and-forget request to open a pre-filled chat."""

    account_id: str
    phone: str
    text: str

    async def execute(self, channel: "MessagingChannel") -> None:
        await channel.open_external_thread(self.phone, self.text)


@dataclass
class DispatchReport:
    sent: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def attempted(self) -> int:
        return len(self.sent) + len(self.failed)


def build_command(
    candidate: ReminderCandidate,
    *,
    language: Optional[str] = None,
    institute: str = INSTITUTE_NAME,
) -> ReminderCommand:
    phone = (candidate.phone or "").strip()
    if not phone:
        raise ValidationError(f"Account {candidate.account_id} has no phone number")
    return ReminderCommand(
        account_id=candidate.account_id,
        phone=phone,
        text=build_message(candidate, language=language, institute=institute),
    )


class ReminderDispatcher:
    def __init__(
        self,
        channel: "MessagingChannel",
        *,
        interval: float = REMINDER_INTERVAL_MS / 1000,
        language: Optional[str] = None,
        institute: str = INSTITUTE_NAME,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._channel = channel
        self._interval = interval
        self._language = language
        self._institute = institute
        self._sleep = sleep

    def _command(self, candidate: ReminderCandidate) -> ReminderCommand:
        return build_command(candidate, language=self._language, institute=self._institute)

    async def dispatch_one(self, candidate: ReminderCandidate) -> ReminderCommand:
        command = self._command(candidate)
        await command.execute(self._channel)
        logger.info("Reminder sent to account %s", candidate.account_id)
        return command

    async def dispatch_bulk(
        self,
        candidates: Sequence[ReminderCandidate],
        confirm: Optional[Confirm] = None,
        *,
        cancel: Optional[asyncio.Event] = None,
    ) -> DispatchReport:
        """Send one reminder per candidate, spaced by the configured interval.

        More than one recipient needs ``confirm(count)`` to return true. A
        failed send is recorded and the run moves on to the next recipient.
        """

        report = DispatchReport()
        if not candidates:
            return report

        if len(candidates) > 1:
            approved = await _resolve_confirmation(confirm, len(candidates))
            if not approved:
                logger.info("Bulk reminder run declined by operator (%s recipients)", len(candidates))
                report.cancelled = True
                report.skipped.extend(candidate.account_id for candidate in candidates)
                return report

        queue: Deque[ReminderCommand] = deque()
        for candidate in candidates:
            try:
                queue.append(self._command(candidate))
            except ValidationError as exc:
                logger.warning("Skipping account %s: %s", candidate.account_id, exc.message)
                report.skipped.append(candidate.account_id)

        total = len(queue)
        first = True
        while queue:
            if not first and await self._pause(cancel):
                break
            if cancel is not None and cancel.is_set():
                break
            first = False
            command = queue.popleft()
            try:
                await command.execute(self._channel)
            except Exception as exc:
                logger.exception("Reminder to account %s failed", command.account_id)
                report.failed[command.account_id] = str(exc) or exc.__class__.__name__
            else:
                logger.info("Reminder sent to account %s", command.account_id)
                report.sent.append(command.account_id)

        if queue:
            report.cancelled = True
            report.skipped.extend(command.account_id for command in queue)
            logger.info("Bulk reminder run cancelled after %s of %s sends", report.attempted, total)
        return report

    async def _pause(self, cancel: Optional[asyncio.Event]) -> bool:
        """Wait one interval; return True when cancelled meanwhile."""
        if cancel is None:
            await self._sleep(self._interval)
            return False
        try:
            await asyncio.wait_for(cancel.wait(), timeout=self._interval)
        except asyncio.TimeoutError:
            return False
        return True


async def _resolve_confirmation(confirm: Optional[Confirm], count: int) -> bool:
    if confirm is None:
        return False
    result = confirm(count)
    if inspect.isawaitable(result):
        result = await result
    return bool(result)


def bulk_confirmation_prompt(count: int, language: Optional[str] = None) -> str:
    return get_text("reminder_bulk_confirm", language, count=count)
