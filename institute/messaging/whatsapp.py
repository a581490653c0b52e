"""WhatsApp click-to-chat links."""

from __future__ import annotations

import asyncio
import logging
import re
import webbrowser
from typing import Callable
from urllib.parse import quote

from config import WHATSAPP_COUNTRY_CODE
from institute.errors import ValidationError

logger = logging.getLogger(__name__)

_WA_BASE = "https://wa.me/"
_NON_DIGITS = re.compile(r"\D+")


def build_chat_url(phone: str, text: str, *, country_code: str = WHATSAPP_COUNTRY_CODE) -> str:
    """Return a ``wa.me`` link with ``text`` pre-filled.

    Local ten-digit numbers get ``country_code`` prefixed; numbers that
    already carry it are left alone.
    """

    digits = _NON_DIGITS.sub("", phone or "")
    if not digits:
        raise ValidationError(f"Invalid phone number: {phone!r}")
    code = _NON_DIGITS.sub("", country_code or "")
    if code and not (digits.startswith(code) and len(digits) > 10):
        digits = f"{code}{digits.lstrip('0')}"
    return f"{_WA_BASE}{digits}?text={quote(text, safe='')}"


class WhatsAppChannel:
    """Opens pre-filled chats in the system browser; delivery is not observed."""

    def __init__(
        self,
        *,
        country_code: str = WHATSAPP_COUNTRY_CODE,
        opener: Callable[[str], object] | None = None,
    ) -> None:
        self._country_code = country_code
        self._opener = opener or (lambda url: webbrowser.open(url, new=2))

    async def open_external_thread(self, phone: str, text: str) -> None:
        url = build_chat_url(phone, text, country_code=self._country_code)
        logger.debug("Opening chat link %s", url)
        await asyncio.to_thread(self._opener, url)
