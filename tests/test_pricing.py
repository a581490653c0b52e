import itertools

import pytest

from institute.errors import ValidationError
from institute.subscription import (
    DURATIONS,
    SEAT_TYPES,
    SHIFTS,
    AddOns,
    PlanSelection,
    get_base_price,
    min_price_for_duration,
    parse_plan_selection,
    per_month,
    price_breakdown,
    price_for,
    savings_per_month,
)


def test_base_price_without_add_ons():
    selection = PlanSelection("1 Month", "Full Day", "Regular")
    assert price_for(selection) == 850


def test_add_ons_are_added_to_base_price():
    selection = PlanSelection("1 Month", "Full Day", "Regular", AddOns(registration=True, locker=True))
    assert price_for(selection) == 1100


def test_seven_month_breakdown():
    selection = PlanSelection("7 Months", "Morning", "Special", AddOns(locker=True))
    breakdown = price_breakdown(selection)
    assert breakdown.base == 4200
    assert breakdown.locker == 100
    assert breakdown.registration == 0
    assert breakdown.total == 4300
    assert breakdown.per_month == 600
    assert breakdown.savings_per_month == 100


def test_single_month_has_no_savings():
    assert savings_per_month("1 Month", "Evening", "Special") == 0


def test_per_month_rounds_half_up():
    assert per_month(5100, "7 Months") == 729
    assert per_month(1500, "3 Months") == 500
    assert per_month(7, "1 Month") == 7


@pytest.mark.parametrize("shift,seat_type", list(itertools.product(SHIFTS, SEAT_TYPES)))
def test_longer_durations_never_cost_more_per_month(shift, seat_type):
    rates = [per_month(get_base_price(duration, shift, seat_type), duration) for duration in DURATIONS]
    assert rates == sorted(rates, reverse=True)


def test_unknown_plan_is_rejected():
    with pytest.raises(ValidationError):
        get_base_price("2 Months", "Morning", "Regular")
    with pytest.raises(ValidationError):
        PlanSelection("1 Month", "Night", "Regular")


def test_min_price_for_duration():
    assert min_price_for_duration("1 Month") == 550
    assert min_price_for_duration("7 Months") == 3300


def test_parse_plan_selection_ignores_case_and_spacing():
    selection = parse_plan_selection("  7 months ", "full  day", "SPECIAL", registration=True)
    assert selection == PlanSelection("7 Months", "Full Day", "Special", AddOns(registration=True))
    assert selection.label == "7 Months - Full Day - Special"
    assert selection.months == 7


def test_parse_plan_selection_rejects_unknown_values():
    with pytest.raises(ValidationError, match="seat type"):
        parse_plan_selection("1 Month", "Morning", "Premium")
