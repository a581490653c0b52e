"""Renewal workflows: quotes, admin grants and paid self-serve renewals."""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable, Dict, Optional, Tuple

from institute.errors import InstituteError, TransientError, ValidationError
from logging_config import register_log_translations

from .plans import PlanSelection, add_months, as_utc, utcnow
from .pricing import price_for
from .records import SubscriptionRecord, SubscriptionWindow

if TYPE_CHECKING:
    from institute.collaborators import PaymentCollaborator, Persistence
    from institute.payments.razorpay import PaymentConfirmation, PaymentOrder

logger = logging.getLogger(__name__)

register_log_translations(
    {
        "Manual renewal for account %s: %s months from %s (admin=%s)": {
            "hi": "खाता %s का मैन्युअल नवीनीकरण: %s महीने, %s से (एडमिन=%s)",
        },
        "Renewal for account %s already matches window %s - %s, nothing to write": {
            "hi": "खाता %s का नवीनीकरण पहले से %s - %s अवधि में है, कुछ लिखना नहीं है",
        },
        "Created payment order %s for account %s (amount=%s)": {
            "hi": "भुगतान ऑर्डर %s खाता %s के लिए बनाया गया (राशि=%s)",
        },
        "Payment for order %s was not successful; renewal not applied": {
            "hi": "ऑर्डर %s का भुगतान सफल नहीं हुआ; नवीनीकरण लागू नहीं किया गया",
        },
        "Subscription for account %s changed since order %s; re-anchoring window": {
            "hi": "खाता %s की सदस्यता ऑर्डर %s के बाद बदल गई; अवधि फिर से तय की जा रही है",
        },
        "Order %s confirmed after its window start; account %s now starts %s": {
            "hi": "ऑर्डर %s की पुष्टि अवधि शुरू होने के बाद हुई; खाता %s अब %s से शुरू होगा",
        },
    }
)

MIN_MANUAL_MONTHS = 1
MAX_MANUAL_MONTHS = 24

_CONFIRMED_CACHE_LIMIT = 512

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class RenewalQuote:
    start_date: datetime
    end_date: datetime
    amount: int

    @property
    def window(self) -> SubscriptionWindow:
        return SubscriptionWindow(self.start_date, self.end_date)


@dataclass(frozen=True)
class PaymentIntent:
    account_id: str
    selection: PlanSelection
    quote: RenewalQuote
    order: "PaymentOrder"
    expected_end: Optional[datetime]


@asynccontextmanager
async def _collaborator_call(action: str) -> AsyncIterator[None]:
    try:
        yield
    except InstituteError:
        raise
    except (asyncio.TimeoutError, ConnectionError, OSError) as exc:
        raise TransientError(f"{action} failed: {exc}") from exc


def renewal_start(current: Optional[SubscriptionRecord], now: datetime) -> datetime:
    """Start a self-serve renewal where the still-valid window ends, else at ``now``."""

    now = as_utc(now)
    if current is not None and current.end_date is not None:
        end_date = as_utc(current.end_date)
        if end_date > now:
            return end_date
    return now


def _same_window(record: Optional[SubscriptionRecord], window: SubscriptionWindow) -> bool:
    if record is None or record.start_date is None or record.end_date is None:
        return False
    return as_utc(record.start_date) == window.start_date and as_utc(record.end_date) == window.end_date


def _validate_months(months: Any) -> int:
    if isinstance(months, bool) or not isinstance(months, int):
        raise ValidationError(f"Month count must be a whole number, got {months!r}")
    if not MIN_MANUAL_MONTHS <= months <= MAX_MANUAL_MONTHS:
        raise ValidationError(
            f"Month count must be between {MIN_MANUAL_MONTHS} and {MAX_MANUAL_MONTHS}, got {months}"
        )
    return months


def _validate_selection(selection: Any) -> PlanSelection:
    if not isinstance(selection, PlanSelection):
        raise ValidationError("A plan selection (duration, shift, seat type) is required")
    return selection


def quote_renewal(
    selection: PlanSelection,
    start_date: Optional[date | datetime] = None,
    *,
    now: Optional[datetime] = None,
) -> RenewalQuote:
    """Price ``selection`` and compute its window starting at ``start_date`` (default ``now``)."""

    selection = _validate_selection(selection)
    if start_date is None:
        start_date = now if now is not None else utcnow()
    start = as_utc(start_date)
    return RenewalQuote(
        start_date=start,
        end_date=add_months(start, selection.months),
        amount=price_for(selection),
    )


class RenewalProcessor:
    """Computes renewal windows and commits them through the persistence collaborator."""

    def __init__(
        self,
        persistence: "Persistence",
        payments: Optional["PaymentCollaborator"] = None,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self._persistence = persistence
        self._payments = payments
        self._clock = clock
        # account id -> (lock, number of holders and waiters)
        self._locks: Dict[str, Tuple[asyncio.Lock, int]] = {}
        self._confirmed: "OrderedDict[str, SubscriptionRecord]" = OrderedDict()

    @asynccontextmanager
    async def _account_lock(self, account_id: str) -> AsyncIterator[None]:
        lock, users = self._locks.get(account_id, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._locks[account_id] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[account_id]
            if users > 1:
                self._locks[account_id] = (lock, users - 1)
            else:
                del self._locks[account_id]

    def _remember_confirmed(self, order_id: str, record: SubscriptionRecord) -> None:
        self._confirmed[order_id] = record
        self._confirmed.move_to_end(order_id)
        if len(self._confirmed) > _CONFIRMED_CACHE_LIMIT:
            self._confirmed.popitem(last=False)

    def quote_renewal(
        self,
        selection: PlanSelection,
        start_date: Optional[date | datetime] = None,
    ) -> RenewalQuote:
        return quote_renewal(selection, start_date, now=self._clock())

    async def apply_manual_renewal(
        self,
        account_id: str,
        selection: PlanSelection,
        start_date: Optional[date | datetime],
        months: int,
        *,
        admin_id: Optional[str] = None,
    ) -> SubscriptionRecord:
        """Grant ``months`` calendar months from ``start_date`` without payment.

        ``start_date`` may lie in the past; administrators are allowed to
        backdate. The amount recorded is the selection's quoted price.
        """

        if not account_id:
            raise ValidationError("Account id is required")
        selection = _validate_selection(selection)
        months = _validate_months(months)
        if start_date is None:
            raise ValidationError("Start date is required for a manual renewal")

        start = as_utc(start_date)
        window = SubscriptionWindow(start, add_months(start, months))
        amount = price_for(selection)

        async with self._account_lock(account_id):
            async with _collaborator_call("Loading subscription"):
                current = await self._persistence.get_subscription(account_id)
            if current is not None and current.plan == selection.label and _same_window(current, window):
                logger.info(
                    "Renewal for account %s already matches window %s - %s, nothing to write",
                    account_id,
                    window.start_date.date(),
                    window.end_date.date(),
                )
                return current

            logger.info(
                "Manual renewal for account %s: %s months from %s (admin=%s)",
                account_id,
                months,
                start.date(),
                admin_id,
            )
            async with _collaborator_call("Saving subscription"):
                return await self._persistence.write_subscription(
                    account_id,
                    window,
                    amount,
                    plan=selection.label,
                    method="manual",
                    initiator_id=admin_id,
                    expected_end=current.end_date if current else None,
                )

    async def apply_paid_renewal(self, account_id: str, selection: PlanSelection) -> PaymentIntent:
        if not account_id:
            raise ValidationError("Account id is required")
        selection = _validate_selection(selection)
        if self._payments is None:
            raise RuntimeError("Payment collaborator is not configured")

        now = as_utc(self._clock())
        async with _collaborator_call("Loading subscription"):
            current = await self._persistence.get_subscription(account_id)
        quote = self.quote_renewal(selection, renewal_start(current, now))

        metadata: Dict[str, Any] = {
            "accountId": account_id,
            **selection.as_metadata(),
            "amount": quote.amount,
            "startDate": quote.start_date.isoformat(),
            "endDate": quote.end_date.isoformat(),
        }
        async with _collaborator_call("Creating payment order"):
            order = await self._payments.create_order(quote.amount, metadata)
        logger.info("Created payment order %s for account %s (amount=%s)", order.order_id, account_id, quote.amount)
        return PaymentIntent(
            account_id=account_id,
            selection=selection,
            quote=quote,
            order=order,
            expected_end=current.end_date if current else None,
        )

    async def confirm_paid_renewal(
        self,
        intent: PaymentIntent,
        confirmation: "PaymentConfirmation",
    ) -> Optional[SubscriptionRecord]:
        """Commit a paid renewal once the payment collaborator reports success.

        Signature verification happens upstream; only the outcome and the
        order id are checked here.
        """

        order_id = intent.order.order_id
        if confirmation.order_id != order_id:
            raise ValidationError(
                f"Confirmation for order {confirmation.order_id!r} does not match order {order_id!r}"
            )
        if not confirmation.success:
            logger.warning("Payment for order %s was not successful; renewal not applied", order_id)
            return None

        async with self._account_lock(intent.account_id):
            committed = self._confirmed.get(order_id)
            if committed is not None:
                return committed

            window = intent.quote.window
            async with _collaborator_call("Loading subscription"):
                current = await self._persistence.get_subscription(intent.account_id)
            current_end = current.end_date if current else None
            now = as_utc(self._clock())
            if not _ends_match(current_end, intent.expected_end):
                logger.info(
                    "Subscription for account %s changed since order %s; re-anchoring window",
                    intent.account_id,
                    order_id,
                )
                start = renewal_start(current, now)
                window = SubscriptionWindow(start, add_months(start, intent.selection.months))

            if window.start_date < now:
                # Paid time never starts in the past; only admins backdate.
                start = renewal_start(current, now)
                logger.info(
                    "Order %s confirmed after its window start; account %s now starts %s",
                    order_id,
                    intent.account_id,
                    start.date(),
                )
                window = SubscriptionWindow(start, add_months(start, intent.selection.months))

            async with _collaborator_call("Saving subscription"):
                record = await self._persistence.write_subscription(
                    intent.account_id,
                    window,
                    intent.quote.amount,
                    plan=intent.selection.label,
                    method="razorpay",
                    reference=order_id,
                    expected_end=current_end,
                )
            self._remember_confirmed(order_id, record)
            return record


def _ends_match(left: Optional[datetime], right: Optional[datetime]) -> bool:
    if left is None or right is None:
        return left is None and right is None
    return as_utc(left) == as_utc(right)
