"""Plan selection definitions and calendar helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Dict, Literal, Optional, Tuple, cast

from dateutil.relativedelta import relativedelta

from institute.errors import ValidationError

Duration = Literal["1 Month", "3 Months", "7 Months"]
Shift = Literal["Full Day", "Morning", "Evening"]
SeatType = Literal["Regular", "Special"]

DURATIONS: Tuple[Duration, ...] = ("1 Month", "3 Months", "7 Months")
SHIFTS: Tuple[Shift, ...] = ("Full Day", "Morning", "Evening")
SEAT_TYPES: Tuple[SeatType, ...] = ("Regular", "Special")

DURATION_MONTHS: Dict[Duration, int] = {
    "1 Month": 1,
    "3 Months": 3,
    "7 Months": 7,
}


@dataclass(frozen=True)
class AddOns:
    registration: bool = False
    locker: bool = False


@dataclass(frozen=True)
class PlanSelection:
    duration: Duration
    shift: Shift
    seat_type: SeatType
    add_ons: AddOns = field(default_factory=AddOns)

    def __post_init__(self) -> None:
        if self.duration not in DURATIONS:
            raise ValidationError(f"Unknown duration: {self.duration!r}")
        if self.shift not in SHIFTS:
            raise ValidationError(f"Unknown shift: {self.shift!r}")
        if self.seat_type not in SEAT_TYPES:
            raise ValidationError(f"Unknown seat type: {self.seat_type!r}")

    @property
    def months(self) -> int:
        return DURATION_MONTHS[self.duration]

    @property
    def label(self) -> str:
        return f"{self.duration} - {self.shift} - {self.seat_type}"

    def as_metadata(self) -> dict[str, object]:
        return {
            "plan": self.label,
            "duration": self.duration,
            "shift": self.shift,
            "seatType": self.seat_type,
            "addOns": {
                "registration": self.add_ons.registration,
                "locker": self.add_ons.locker,
            },
        }


def _match(value: Optional[str], choices: Tuple[str, ...], kind: str) -> str:
    candidate = " ".join((value or "").split()).lower()
    for choice in choices:
        if choice.lower() == candidate:
            return choice
    raise ValidationError(f"Unknown {kind}: {value!r}. Expected one of: {', '.join(choices)}")


def parse_plan_selection(
    duration: Optional[str],
    shift: Optional[str],
    seat_type: Optional[str],
    *,
    registration: bool = False,
    locker: bool = False,
) -> PlanSelection:
    """Build a selection from user-supplied labels, ignoring case and extra spaces."""

    return PlanSelection(
        duration=cast(Duration, _match(duration, DURATIONS, "duration")),
        shift=cast(Shift, _match(shift, SHIFTS, "shift")),
        seat_type=cast(SeatType, _match(seat_type, SEAT_TYPES, "seat type")),
        add_ons=AddOns(registration=registration, locker=locker),
    )


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: date | datetime) -> datetime:
    """Normalize dates and naive datetimes to aware UTC datetimes."""

    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def add_months(start: datetime, months: int) -> datetime:
    """Add calendar months, clamping to the last day of a shorter month."""

    return start + relativedelta(months=months)
