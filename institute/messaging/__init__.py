"""Outbound messaging channels."""

from .whatsapp import WhatsAppChannel, build_chat_url

__all__ = [
    "WhatsAppChannel",
    "build_chat_url",
]
