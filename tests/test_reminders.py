import asyncio
from datetime import timedelta

import pytest

from conftest import NOW, FakeChannel
from institute.errors import ValidationError
from institute.reminders import (
    ReminderCandidate,
    ReminderDispatcher,
    build_command,
    build_message,
    bulk_confirmation_prompt,
    select_candidates,
    summarize,
)
from institute.subscription import Account, SubscriptionRecord, SubscriptionState


def _account(account_id, days, phone="9876543210", name="Ravi"):
    subscription = SubscriptionRecord(
        account_id=account_id,
        plan="3 Months - Evening - Regular",
        start_date=NOW - timedelta(days=80),
        end_date=NOW + timedelta(days=days),
    )
    return Account(id=account_id, name=name, phone=phone, subscription=subscription)


def _candidate(account_id, status="Expiring", days=3, phone="9876543210"):
    return ReminderCandidate(
        account_id=account_id,
        name="Ravi",
        phone=phone,
        plan="3 Months - Evening - Regular",
        state=SubscriptionState(status=status, days_remaining=days),
    )


class RecordingSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def sleep():
    return RecordingSleep()


async def test_select_candidates_keeps_expired_and_expiring(persistence):
    persistence.add(_account("expired", -4))
    persistence.add(_account("expiring", 2))
    persistence.add(_account("active", 20))
    persistence.add(Account(id="inactive", name="Nobody"))

    candidates = await select_candidates(persistence, NOW)

    assert [c.account_id for c in candidates] == ["expired", "expiring"]
    assert candidates[1].state.days_remaining == 2
    assert summarize(candidates).total == 2


async def test_select_candidates_reclassifies_backend_results(persistence):
    persistence.add(_account("renewed", 30))

    async def stale_listing(status=None):
        return [_account("renewed", 30)]

    persistence.list_accounts = stale_listing
    assert await select_candidates(persistence, NOW) == []


async def test_empty_selection_sends_nothing(persistence, channel, sleep):
    candidates = await select_candidates(persistence, NOW)
    report = await ReminderDispatcher(channel, sleep=sleep).dispatch_bulk(candidates, confirm=lambda n: True)
    assert channel.sent == []
    assert report.attempted == 0
    assert not report.cancelled


def test_message_wording():
    expired = build_message(_candidate("a", "Expired", 0), institute="Ultimate Success Institute")
    assert expired.startswith("Hi Ravi! 👋")
    assert "Your 3 Months - Evening - Regular subscription at Ultimate Success Institute has expired 😕." in expired
    assert expired.endswith("Renew today and keep fueling your success! 🚀")

    assert "is expiring in 1 day ⏰" in build_message(_candidate("a", days=1))
    assert "is expiring in 5 days ⏰" in build_message(_candidate("a", days=5))
    assert "is expiring today ⏰" in build_message(_candidate("a", days=0))


def test_message_in_hindi():
    text = build_message(_candidate("a", days=2), language="hi")
    assert text.startswith("नमस्ते Ravi!")
    assert "2 दिनों में" in text


def test_command_requires_phone():
    with pytest.raises(ValidationError):
        build_command(_candidate("a", phone="  "))


def test_bulk_confirmation_prompt():
    assert bulk_confirmation_prompt(4) == "Send 4 reminders?"


async def test_single_reminder_needs_no_confirmation(channel, sleep):
    report = await ReminderDispatcher(channel, sleep=sleep).dispatch_bulk([_candidate("a")])
    assert report.sent == ["a"]
    assert len(channel.sent) == 1
    assert sleep.calls == []


async def test_bulk_send_asks_once_and_spaces_sends(channel, sleep):
    asked = []

    def confirm(count):
        asked.append(count)
        return True

    candidates = [_candidate("a"), _candidate("b"), _candidate("c")]
    report = await ReminderDispatcher(channel, interval=0.6, sleep=sleep).dispatch_bulk(candidates, confirm)

    assert asked == [3]
    assert report.sent == ["a", "b", "c"]
    assert sleep.calls == [0.6, 0.6]


async def test_async_confirmation_is_awaited(channel, sleep):
    async def confirm(count):
        return False

    report = await ReminderDispatcher(channel, sleep=sleep).dispatch_bulk(
        [_candidate("a"), _candidate("b")], confirm
    )
    assert report.cancelled
    assert report.skipped == ["a", "b"]
    assert channel.sent == []


async def test_bulk_without_confirmation_callback_is_declined(channel, sleep):
    report = await ReminderDispatcher(channel, sleep=sleep).dispatch_bulk([_candidate("a"), _candidate("b")])
    assert report.cancelled
    assert channel.sent == []


async def test_failed_send_does_not_stop_the_run(sleep):
    channel = FakeChannel(failing_phones=("1111111111",))
    candidates = [_candidate("a"), _candidate("b", phone="1111111111"), _candidate("c", phone="")]
    report = await ReminderDispatcher(channel, sleep=sleep).dispatch_bulk(candidates, lambda n: True)

    assert report.sent == ["a"]
    assert list(report.failed) == ["b"]
    assert report.skipped == ["c"]
    assert not report.cancelled


async def test_cancel_stops_remaining_sends():
    cancel = asyncio.Event()

    class CancellingChannel(FakeChannel):
        async def open_external_thread(self, phone, text):
            await super().open_external_thread(phone, text)
            cancel.set()

    channel = CancellingChannel()
    dispatcher = ReminderDispatcher(channel, interval=5)
    report = await dispatcher.dispatch_bulk(
        [_candidate("a"), _candidate("b"), _candidate("c")], lambda n: True, cancel=cancel
    )

    assert report.sent == ["a"]
    assert report.cancelled
    assert report.skipped == ["b", "c"]
