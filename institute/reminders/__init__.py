"""Expiry reminder selection and dispatch."""

from .dispatcher import (
    DispatchReport,
    ReminderCommand,
    ReminderDispatcher,
    build_command,
    bulk_confirmation_prompt,
)
from .selector import (
    ReminderCandidate,
    ReminderSummary,
    build_message,
    expiry_phrase,
    select_candidates,
    summarize,
)

__all__ = [
    "DispatchReport",
    "ReminderCommand",
    "ReminderDispatcher",
    "build_command",
    "bulk_confirmation_prompt",
    "ReminderCandidate",
    "ReminderSummary",
    "build_message",
    "expiry_phrase",
    "select_candidates",
    "summarize",
]
