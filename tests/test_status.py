from datetime import date, datetime, timedelta, timezone

import pytest

from institute.subscription import SubscriptionRecord, classify, progress, should_show_renewal_reminder
from institute.subscription.status import days_remaining


def _record(now, **offset):
    return SubscriptionRecord(
        account_id="acc-1",
        plan="1 Month - Morning - Regular",
        start_date=now - timedelta(days=30),
        end_date=now + timedelta(**offset),
    )


def test_missing_subscription_is_inactive(now):
    state = classify(None, now)
    assert state.status == "Inactive"
    assert state.days_remaining == 0
    assert not should_show_renewal_reminder(state)


def test_missing_end_date_is_inactive(now):
    record = SubscriptionRecord("acc-1", "1 Month - Morning - Regular", start_date=now, end_date=None)
    assert classify(record, now).status == "Inactive"


def test_end_equal_to_now_is_expired(now):
    state = classify(_record(now, days=0), now)
    assert state.status == "Expired"
    assert state.days_remaining == 0
    assert should_show_renewal_reminder(state)


def test_past_end_is_expired(now):
    assert classify(_record(now, days=-12), now).status == "Expired"


@pytest.mark.parametrize("offset", [timedelta(minutes=1), timedelta(days=3), timedelta(days=7)])
def test_within_a_week_is_expiring(now, offset):
    state = classify(_record(now, seconds=offset.total_seconds()), now)
    assert state.status == "Expiring"
    assert 1 <= state.days_remaining <= 7


def test_partial_days_round_up(now):
    assert classify(_record(now, hours=1), now).days_remaining == 1
    assert classify(_record(now, days=6, hours=1), now).days_remaining == 7


def test_beyond_a_week_is_active(now):
    state = classify(_record(now, days=7, seconds=1), now)
    assert state.status == "Active"
    assert state.days_remaining == 8
    assert not should_show_renewal_reminder(state)


@pytest.mark.parametrize("days", range(-3, 12))
def test_active_always_has_more_than_a_week(now, days):
    state = classify(_record(now, days=days), now)
    if state.status == "Active":
        assert state.days_remaining > 7
    assert state.days_remaining >= 0


def test_stored_status_is_ignored(now):
    record = SubscriptionRecord("acc-1", "plan", start_date=None, end_date=now - timedelta(days=1), status="active")
    assert classify(record, now).status == "Expired"


def test_naive_and_date_values_are_treated_as_utc():
    now = datetime(2025, 3, 10, 0, 0, tzinfo=timezone.utc)
    record = SubscriptionRecord("acc-1", "plan", start_date=None, end_date=date(2025, 3, 20))
    assert classify(record, now.replace(tzinfo=None)).days_remaining == 10
    assert days_remaining(datetime(2025, 3, 1), now) == 0


def test_progress_uses_window_length(now):
    record = SubscriptionRecord(
        "acc-1", "plan", start_date=now - timedelta(days=20), end_date=now + timedelta(days=10)
    )
    assert progress(record, now) == (30, 20)


def test_progress_defaults_to_thirty_days(now):
    assert progress(None, now) == (30, 30)
