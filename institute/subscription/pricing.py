"""Static pricing metadata for library subscriptions."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict

from institute.errors import ValidationError

from .plans import DURATION_MONTHS, AddOns, Duration, PlanSelection, SeatType, Shift

REGISTRATION_FEE = 150
LOCKER_FEE = 100

# "7 Months" is priced as six paid months plus one free month.
_PRICING: Dict[Duration, Dict[Shift, Dict[SeatType, int]]] = {
    "1 Month": {
        "Full Day": {"Regular": 850, "Special": 950},
        "Morning": {"Regular": 650, "Special": 700},
        "Evening": {"Regular": 550, "Special": 600},
    },
    "3 Months": {
        "Full Day": {"Regular": 2400, "Special": 2700},
        "Morning": {"Regular": 1800, "Special": 2000},
        "Evening": {"Regular": 1500, "Special": 1700},
    },
    "7 Months": {
        "Full Day": {"Regular": 5100, "Special": 5700},
        "Morning": {"Regular": 3900, "Special": 4200},
        "Evening": {"Regular": 3300, "Special": 3600},
    },
}


@dataclass(frozen=True)
class PriceBreakdown:
    base: int
    registration: int
    locker: int
    total: int
    per_month: int
    savings_per_month: int


def get_base_price(duration: Duration, shift: Shift, seat_type: SeatType) -> int:
    try:
        return _PRICING[duration][shift][seat_type]
    except KeyError as exc:
        raise ValidationError(
            f"No price for plan ({duration!r}, {shift!r}, {seat_type!r})"
        ) from exc


def per_month(amount: int, duration: Duration) -> int:
    months = DURATION_MONTHS.get(duration)
    if months is None:
        raise ValidationError(f"Unknown duration: {duration!r}")
    # Half-up rounding; amounts are never negative.
    return math.floor(amount / months + 0.5)


def savings_per_month(duration: Duration, shift: Shift, seat_type: SeatType) -> int:
    if duration == "1 Month":
        return 0
    monthly_rate = get_base_price("1 Month", shift, seat_type)
    this_per_month = per_month(get_base_price(duration, shift, seat_type), duration)
    return max(0, monthly_rate - this_per_month)


def add_on_total(add_ons: AddOns) -> int:
    total = 0
    if add_ons.registration:
        total += REGISTRATION_FEE
    if add_ons.locker:
        total += LOCKER_FEE
    return total


def price_for(selection: PlanSelection) -> int:
    base = get_base_price(selection.duration, selection.shift, selection.seat_type)
    return base + add_on_total(selection.add_ons)


def price_breakdown(selection: PlanSelection) -> PriceBreakdown:
    base = get_base_price(selection.duration, selection.shift, selection.seat_type)
    registration = REGISTRATION_FEE if selection.add_ons.registration else 0
    locker = LOCKER_FEE if selection.add_ons.locker else 0
    return PriceBreakdown(
        base=base,
        registration=registration,
        locker=locker,
        total=base + registration + locker,
        per_month=per_month(base, selection.duration),
        savings_per_month=savings_per_month(selection.duration, selection.shift, selection.seat_type),
    )


def min_price_for_duration(duration: Duration) -> int:
    """Cheapest base price for a duration, used for "starting from" labels."""
    try:
        shifts = _PRICING[duration]
    except KeyError as exc:
        raise ValidationError(f"Unknown duration: {duration!r}") from exc
    return min(price for seats in shifts.values() for price in seats.values())
