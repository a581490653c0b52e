"""Subscription lifecycle and pricing package."""

from .plans import (
    DURATION_MONTHS,
    DURATIONS,
    SEAT_TYPES,
    SHIFTS,
    AddOns,
    Duration,
    PlanSelection,
    SeatType,
    Shift,
    add_months,
    as_utc,
    parse_plan_selection,
    utcnow,
)
from .pricing import (
    LOCKER_FEE,
    REGISTRATION_FEE,
    PriceBreakdown,
    add_on_total,
    get_base_price,
    min_price_for_duration,
    per_month,
    price_breakdown,
    price_for,
    savings_per_month,
)
from .records import Account, SubscriptionRecord, SubscriptionWindow
from .renewal import (
    MAX_MANUAL_MONTHS,
    MIN_MANUAL_MONTHS,
    PaymentIntent,
    RenewalProcessor,
    RenewalQuote,
    quote_renewal,
    renewal_start,
)
from .status import (
    SubscriptionState,
    SubscriptionStatus,
    classify,
    days_remaining,
    progress,
    should_show_renewal_reminder,
)

__all__ = [
    "DURATIONS",
    "DURATION_MONTHS",
    "SHIFTS",
    "SEAT_TYPES",
    "Duration",
    "Shift",
    "SeatType",
    "AddOns",
    "PlanSelection",
    "parse_plan_selection",
    "add_months",
    "as_utc",
    "utcnow",
    "REGISTRATION_FEE",
    "LOCKER_FEE",
    "PriceBreakdown",
    "add_on_total",
    "get_base_price",
    "min_price_for_duration",
    "per_month",
    "price_breakdown",
    "price_for",
    "savings_per_month",
    "Account",
    "SubscriptionRecord",
    "SubscriptionWindow",
    "MIN_MANUAL_MONTHS",
    "MAX_MANUAL_MONTHS",
    "PaymentIntent",
    "RenewalProcessor",
    "RenewalQuote",
    "quote_renewal",
    "renewal_start",
    "SubscriptionState",
    "SubscriptionStatus",
    "classify",
    "days_remaining",
    "progress",
    "should_show_renewal_reminder",
]
