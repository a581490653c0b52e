"""Localization utilities and message dictionaries."""

from .messages import (
    DEFAULT_LANGUAGE,
    MESSAGES,
    STATUS_LABELS,
    get_label,
    get_text,
)

__all__ = [
    "DEFAULT_LANGUAGE",
    "MESSAGES",
    "STATUS_LABELS",
    "get_label",
    "get_text",
]
