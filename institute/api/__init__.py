"""Backend API access and the cached user session."""

from .client import ApiClient, parse_account, parse_subscription
from .session import SessionCache

__all__ = [
    "ApiClient",
    "SessionCache",
    "parse_account",
    "parse_subscription",
]
