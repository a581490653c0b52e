"""Localized reminder texts and status labels."""

from __future__ import annotations

from typing import Dict

DEFAULT_LANGUAGE = "en"

MESSAGES: Dict[str, Dict[str, str]] = {
    "reminder_body": {
        "en": (
            "Hi {name}! 👋\n\n"
            "Your {plan} subscription at {institute} {expiry}.\n\n"
            "Renew today and keep fueling your success! 🚀"
        ),
        "hi": (
            "नमस्ते {name}! 👋\n\n"
            "{institute} में आपकी {plan} सदस्यता {expiry}।\n\n"
            "आज ही नवीनीकरण करें और अपनी सफलता की तैयारी जारी रखें! 🚀"
        ),
    },
    "reminder_expired": {
        "en": "has expired 😕",
        "hi": "समाप्त हो चुकी है 😕",
    },
    "reminder_expiring_today": {
        "en": "is expiring today ⏰",
        "hi": "आज समाप्त हो रही है ⏰",
    },
    "reminder_expiring_in_one": {
        "en": "is expiring in {days} day ⏰",
        "hi": "{days} दिन में समाप्त हो रही है ⏰",
    },
    "reminder_expiring_in_many": {
        "en": "is expiring in {days} days ⏰",
        "hi": "{days} दिनों में समाप्त हो रही है ⏰",
    },
    "reminder_bulk_confirm": {
        "en": "Send {count} reminders?",
        "hi": "{count} रिमाइंडर भेजें?",
    },
    "delete_confirm": {
        "en": (
            "Are you sure you want to permanently delete {name}? "
            "This will remove all their payment and subscription records."
        ),
        "hi": "क्या आप {name} को स्थायी रूप से हटाना चाहते हैं? उनके सभी भुगतान और सदस्यता रिकॉर्ड हट जाएंगे।",
    },
    "renewal_confirm": {
        "en": "Grant {plan} to {account} for {months} month(s) from {start}?",
        "hi": "{account} को {start} से {months} महीने के लिए {plan} दें?",
    },
    "renewal_reminder_banner": {
        "en": "Your subscription ends in {days} day(s). Renew now to keep your seat.",
        "hi": "आपकी सदस्यता {days} दिन में समाप्त होगी। अपनी सीट बनाए रखने के लिए अभी नवीनीकरण करें।",
    },
}

STATUS_LABELS: Dict[str, Dict[str, str]] = {
    "Active": {
        "en": "Active",
        "hi": "सक्रिय",
    },
    "Expiring": {
        "en": "Expiring",
        "hi": "समाप्ति के करीब",
    },
    "Expired": {
        "en": "Expired",
        "hi": "समाप्त",
    },
    "Inactive": {
        "en": "Inactive",
        "hi": "निष्क्रिय",
    },
}


def get_text(key: str, language: str | None, /, **format_kwargs: object) -> str:
    """Return localized text for the given key and language."""
    lang = (language or DEFAULT_LANGUAGE).lower()
    if key in MESSAGES:
        template = MESSAGES[key].get(lang) or MESSAGES[key][DEFAULT_LANGUAGE]
    else:
        template = key
    return template.format(**format_kwargs)


def get_label(mapping: Dict[str, Dict[str, str]], key: str, language: str | None) -> str:
    """Return localized label from mapping with graceful fallback."""
    lang = (language or DEFAULT_LANGUAGE).lower()
    variants = mapping.get(key, {})
    return variants.get(lang) or variants.get(DEFAULT_LANGUAGE) or key
