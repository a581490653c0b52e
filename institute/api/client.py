"""HTTP client for the institute backend."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

import aiohttp
from dateutil.parser import isoparse

from institute.collaborators import UNCHECKED
from institute.errors import ConflictError, TransientError, ValidationError
from institute.subscription.plans import as_utc
from institute.subscription.records import Account, SubscriptionRecord, SubscriptionWindow
from logging_config import register_log_translations

logger = logging.getLogger(__name__)

register_log_translations(
    {
        "Backend request %s %s failed: %s": {
            "hi": "बैकएंड अनुरोध %s %s विफल: %s",
        },
        "Unauthorized / forbidden response from %s": {
            "hi": "%s से अनधिकृत / निषिद्ध प्रतिक्रिया",
        },
    }
)

_NETWORK_ERROR = "Network error. Please check your connection."
_FALLBACK_ERROR = "Something went wrong"
_ACCOUNT_PAGE_SIZE = 100


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    try:
        return as_utc(isoparse(str(value)))
    except ValueError:
        logger.warning("Ignoring unparseable date %r", value)
        return None


def _as_int(value: Any, default: int) -> int:
    if value in (None, ""):
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        logger.warning("Ignoring non-numeric value %r", value)
        return default


def _error_message(payload: Any, fallback: str) -> str:
    if isinstance(payload, Mapping):
        message = payload.get("message") or payload.get("error")
        if message:
            return str(message)
    return fallback


def parse_subscription(account_id: str, payload: Any) -> Optional[SubscriptionRecord]:
    if not isinstance(payload, Mapping):
        return None
    end_date = _parse_datetime(payload.get("endDate") or payload.get("expiryDate"))
    plan = payload.get("plan") or payload.get("planName") or payload.get("duration") or ""
    if end_date is None and not plan:
        return None
    return SubscriptionRecord(
        account_id=str(payload.get("userId") or account_id),
        plan=str(plan),
        start_date=_parse_datetime(payload.get("startDate")),
        end_date=end_date,
        amount_paid=_as_int(payload.get("amountPaid") or payload.get("amount"), 0),
        status=payload.get("status"),
        created_at=_parse_datetime(payload.get("createdAt")),
    )


def parse_account(payload: Mapping[str, Any]) -> Account:
    account_id = str(payload.get("id") or payload.get("_id") or "")
    nested = payload.get("subscription")
    subscription = parse_subscription(account_id, nested if isinstance(nested, Mapping) else payload)
    role = payload.get("role") if payload.get("role") in ("admin", "student") else "student"
    return Account(
        id=account_id,
        name=str(payload.get("name") or ""),
        email=payload.get("email"),
        phone=payload.get("phone"),
        role=role,
        subscription=subscription,
    )


class ApiClient:
    """Thin aiohttp wrapper around the backend REST API.

    Every response is unwrapped from the ``{"success", "data", "message"}``
    envelope; failures are translated into the core error taxonomy.
    """

    def __init__(self, base_url: str, token: Optional[str] = None, *, timeout: float = 30) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout

    @property
    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        allow_missing: bool = False,
    ) -> Any:
        url = f"{self._base_url}/{path.lstrip('/')}"
        try:
            async with aiohttp.ClientSession() as session:
                async with session.request(
                    method,
                    url,
                    json=json,
                    params=params,
                    headers=self._headers,
                    timeout=aiohttp.ClientTimeout(total=self._timeout),
                ) as response:
                    status = response.status
                    try:
                        payload = await response.json(content_type=None)
                    except ValueError:
                        payload = None
        except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as exc:
            logger.warning("Backend request %s %s failed: %s", method, path, exc)
            raise TransientError(_NETWORK_ERROR) from exc
        except aiohttp.ClientError as exc:
            logger.warning("Backend request %s %s failed: %s", method, path, exc)
            raise TransientError(str(exc) or _FALLBACK_ERROR) from exc

        if status == 404 and allow_missing:
            return None
        if status >= 400:
            message = _error_message(payload, f"{_FALLBACK_ERROR} (HTTP {status})")
            if status in (401, 403):
                logger.warning("Unauthorized / forbidden response from %s", path)
            if status >= 500 or status == 429:
                raise TransientError(message)
            if status == 409:
                raise ConflictError(message)
            raise ValidationError(message)

        if isinstance(payload, Mapping):
            if payload.get("success") is False:
                raise ValidationError(_error_message(payload, _FALLBACK_ERROR))
            if "data" in payload:
                return payload["data"]
        return payload

    async def get_current_user(self) -> Optional[Account]:
        try:
            data = await self.request("GET", "/auth/me")
        except ValidationError:
            return None
        user = data.get("user") if isinstance(data, Mapping) else None
        if not isinstance(user, Mapping):
            return None
        return parse_account(user)

    async def get_subscription(self, account_id: str) -> Optional[SubscriptionRecord]:
        data = await self.request(
            "GET",
            "/subscriptions/current",
            params={"userId": account_id},
            allow_missing=True,
        )
        if isinstance(data, Mapping) and isinstance(data.get("subscription"), Mapping):
            data = data["subscription"]
        return parse_subscription(account_id, data)

    async def list_accounts(self, status: Optional[str] = None) -> Sequence[Account]:
        params: dict[str, Any] = {"page": 1, "limit": _ACCOUNT_PAGE_SIZE}
        if status:
            params["status"] = status
        accounts: list[Account] = []
        while True:
            data = await self.request("GET", "/admin/users", params=params)
            users = data.get("users", []) if isinstance(data, Mapping) else []
            accounts.extend(parse_account(user) for user in users if isinstance(user, Mapping))
            pagination = data.get("pagination") if isinstance(data, Mapping) else None
            total_pages = _as_int(pagination.get("totalPages"), 1) if isinstance(pagination, Mapping) else 1
            if params["page"] >= total_pages:
                return accounts
            params["page"] += 1

    async def write_subscription(
        self,
        account_id: str,
        window: SubscriptionWindow,
        amount: int,
        *,
        plan: str,
        method: str,
        reference: Optional[str] = None,
        initiator_id: Optional[str] = None,
        expected_end: Optional[datetime] = UNCHECKED,
    ) -> SubscriptionRecord:
        body: dict[str, Any] = {
            "userId": account_id,
            "plan": plan,
            "startDate": window.start_date.isoformat(),
            "endDate": window.end_date.isoformat(),
            "amount": amount,
            "method": method,
        }
        if reference is not None:
            body["reference"] = reference
        if initiator_id is not None:
            body["initiatorId"] = initiator_id
        if expected_end is not UNCHECKED:
            body["expectedEndDate"] = expected_end.isoformat() if expected_end else None

        data = await self.request("POST", "/admin/update-subscription", json=body)
        if isinstance(data, Mapping) and isinstance(data.get("subscription"), Mapping):
            data = data["subscription"]
        record = parse_subscription(account_id, data)
        if record is None:
            # Older backends answer with a bare success flag.
            record = SubscriptionRecord(
                account_id=account_id,
                plan=plan,
                start_date=window.start_date,
                end_date=window.end_date,
                amount_paid=amount,
            )
        return record

    async def delete_account(self, account_id: str) -> None:
        await self.request("DELETE", f"/admin/users/{account_id}")
