"""
Institute subscription console: pricing, renewals and expiry reminders.
Run: python main.py --help
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import AsyncIterator, Optional

from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from config import (
    ADMIN_IDS,
    API_BASE_URL,
    API_TIMEOUT,
    API_TOKEN,
    DATABASE_URL,
    LOG_LANGUAGE,
    PAYMENT_CURRENCY,
    RAZORPAY_KEY_ID,
    SESSION_CACHE_PATH,
    SESSION_TTL_SECONDS,
    validate_runtime_config,
)
from logging_config import (
    available_log_languages,
    get_default_log_language,
    get_logger,
    register_log_translations,
    setup_logging,
)

register_log_translations(
    {
        "Using local database backend": {
            "hi": "स्थानीय डेटाबेस बैकएंड का उपयोग हो रहा है",
        },
        "Using remote API backend at %s": {
            "hi": "%s पर रिमोट API बैकएंड का उपयोग हो रहा है",
        },
        "Command %s failed: %s": {
            "hi": "कमांड %s विफल: %s",
        },
    }
)

from db import SqlPersistence, create_engine, create_sessionmaker, init_models
from institute.api import ApiClient, SessionCache
from institute.collaborators import Persistence
from institute.directory import USER_PAGE_SIZE, USER_STATUS_FILTERS, list_users
from institute.errors import ConflictError, TransientError, ValidationError
from institute.localization import STATUS_LABELS, get_label, get_text
from institute.messaging import WhatsAppChannel
from institute.payments import RazorpayGateway
from institute.reminders import (
    ReminderDispatcher,
    bulk_confirmation_prompt,
    select_candidates,
    summarize,
)
from institute.subscription import (
    DURATIONS,
    SEAT_TYPES,
    SHIFTS,
    RenewalProcessor,
    classify,
    get_base_price,
    min_price_for_duration,
    parse_plan_selection,
    per_month,
    price_breakdown,
    progress,
    quote_renewal,
    savings_per_month,
    should_show_renewal_reminder,
    utcnow,
)

logger = get_logger(__name__)
console = Console()

EXIT_VALIDATION = 2
EXIT_CONFLICT = 3
EXIT_TRANSIENT = 75


def _normalize_log_language(candidate: str | None) -> str:
    """Validate and normalize a log language candidate."""

    available = {lang.lower() for lang in available_log_languages()}
    if candidate:
        normalized = candidate.strip().lower()
        if normalized in available:
            return normalized
    return get_default_log_language()


def configure_logging(*, language: str | None = None, level: str | int | None = logging.INFO) -> str:
    """Set up logging once per process and return the active language."""

    effective_language = _normalize_log_language(language or LOG_LANGUAGE)
    setup_logging(level=level, language=effective_language)
    return effective_language


def _fmt_date(value: Optional[datetime]) -> str:
    return value.date().isoformat() if value is not None else "-"


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from exc


def _add_plan_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--duration", required=True, help=f"One of: {', '.join(DURATIONS)}")
    parser.add_argument("--shift", required=True, help=f"One of: {', '.join(SHIFTS)}")
    parser.add_argument("--seat", dest="seat_type", required=True, help=f"One of: {', '.join(SEAT_TYPES)}")
    parser.add_argument("--registration", action="store_true", help="Add the one-time registration fee")
    parser.add_argument("--locker", action="store_true", help="Add a locker")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage institute subscriptions and reminders")
    parser.add_argument(
        "--log-language",
        dest="log_language",
        choices=available_log_languages(),
        metavar="LANG",
        help="Override log language (default from .env)",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        metavar="LEVEL",
        help="Override base log level (name or number)",
    )
    parser.add_argument("--admin-id", dest="admin_id", help="Operator id for admin commands on the local database")

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("prices", help="Show the full price table")

    quote = commands.add_parser("quote", help="Price a plan and show its validity window")
    _add_plan_arguments(quote)
    quote.add_argument("--start", type=_iso_date, help="Start date (default: now)")

    status = commands.add_parser("status", help="Show the subscription state of an account")
    status.add_argument("account_id", nargs="?", help="Account id (default: signed-in user)")

    renew = commands.add_parser("renew", help="Grant a subscription without payment (admin)")
    renew.add_argument("account_id")
    _add_plan_arguments(renew)
    renew.add_argument("--start", type=_iso_date, default=None, help="Start date (default: today)")
    renew.add_argument("--months", type=int, required=True, help="Number of calendar months (1-24)")
    renew.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    pay = commands.add_parser("pay", help="Create a payment order for a renewal")
    pay.add_argument("account_id", nargs="?", help="Account id (default: signed-in user)")
    _add_plan_arguments(pay)

    reminders = commands.add_parser("reminders", help="Expiry reminders (admin)")
    reminder_commands = reminders.add_subparsers(dest="reminder_command", required=True)
    reminder_commands.add_parser("list", help="List expired and expiring accounts")
    reminder_commands.add_parser("summary", help="Count expired and expiring accounts")
    send = reminder_commands.add_parser("send", help="Open WhatsApp reminders")
    send.add_argument("account_id", nargs="?", help="Send to one account; all candidates when omitted")
    send.add_argument("--language", default=None, help="Message language (en, hi)")
    send.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    users = commands.add_parser("users", help="List accounts with search, status filter and pages (admin)")
    users.add_argument("--status", default="all", choices=USER_STATUS_FILTERS)
    users.add_argument("--search", default=None, help="Match name, email, phone or id")
    users.add_argument("--page", type=int, default=1)
    users.add_argument("--page-size", dest="page_size", type=int, default=USER_PAGE_SIZE)

    commands.add_parser("logout", help="Forget the cached signed-in user")

    delete = commands.add_parser("delete", help="Delete an account and its records (admin)")
    delete.add_argument("account_id")
    delete.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    accounts = commands.add_parser("add-account", help="Register an account in the local database")
    accounts.add_argument("account_id")
    accounts.add_argument("name")
    accounts.add_argument("--phone")
    accounts.add_argument("--email")
    accounts.add_argument("--role", choices=("student", "admin"), default="student")

    return parser


def parse_cli_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


@dataclass
class Backend:
    persistence: Persistence
    payments: Optional[RazorpayGateway]
    session: Optional[SessionCache]


@asynccontextmanager
async def open_backend() -> AsyncIterator[Backend]:
    api = ApiClient(API_BASE_URL, API_TOKEN, timeout=API_TIMEOUT) if API_BASE_URL else None
    payments = RazorpayGateway(api, RAZORPAY_KEY_ID, currency=PAYMENT_CURRENCY) if api else None
    session = None
    if api is not None:
        cache_path = Path(SESSION_CACHE_PATH) if SESSION_CACHE_PATH else None
        session = SessionCache(api, ttl=SESSION_TTL_SECONDS, path=cache_path)

    if DATABASE_URL:
        logger.info("Using local database backend")
        engine = create_engine(DATABASE_URL)
        try:
            await init_models(engine)
            yield Backend(SqlPersistence(create_sessionmaker(engine)), payments, None)
        finally:
            await engine.dispose()
        return

    logger.info("Using remote API backend at %s", API_BASE_URL)
    yield Backend(api, payments, session)


async def _require_admin(backend: Backend, admin_id: Optional[str]) -> Optional[str]:
    if backend.session is not None:
        user = await backend.session.get_user()
        if user is None or not user.is_admin:
            raise ValidationError("This command needs an admin account.")
        return user.id
    if ADMIN_IDS and admin_id not in ADMIN_IDS:
        raise ValidationError("This command needs --admin-id set to one of ADMIN_IDS.")
    return admin_id


async def _resolve_account_id(backend: Backend, account_id: Optional[str]) -> str:
    if account_id:
        return account_id
    if backend.session is not None:
        user = await backend.session.get_user()
        if user is not None:
            return user.id
    raise ValidationError("Account id is required.")


def _plan_from_args(args: argparse.Namespace):
    return parse_plan_selection(
        args.duration,
        args.shift,
        args.seat_type,
        registration=args.registration,
        locker=args.locker,
    )


def show_prices() -> None:
    table = Table(title="Subscription prices (₹)")
    for column in ("Duration", "Shift", "Seat", "Price", "Per month", "Saves / month"):
        table.add_column(column)
    for duration in DURATIONS:
        for shift in SHIFTS:
            for seat_type in SEAT_TYPES:
                amount = get_base_price(duration, shift, seat_type)
                table.add_row(
                    duration,
                    shift,
                    seat_type,
                    str(amount),
                    str(per_month(amount, duration)),
                    str(savings_per_month(duration, shift, seat_type)),
                )
    console.print(table)

    starting = Table(title="Starting from (₹)")
    starting.add_column("Duration")
    starting.add_column("Price")
    for duration in DURATIONS:
        starting.add_row(duration, str(min_price_for_duration(duration)))
    console.print(starting)


def show_quote(args: argparse.Namespace) -> None:
    selection = _plan_from_args(args)
    quote = quote_renewal(selection, args.start)
    breakdown = price_breakdown(selection)
    table = Table(title=selection.label, show_header=False)
    table.add_row("Base", f"₹{breakdown.base}")
    if breakdown.registration:
        table.add_row("Registration", f"₹{breakdown.registration}")
    if breakdown.locker:
        table.add_row("Locker", f"₹{breakdown.locker}")
    table.add_row("Total", f"₹{quote.amount}")
    table.add_row("Per month", f"₹{breakdown.per_month}")
    table.add_row("Saves per month", f"₹{breakdown.savings_per_month}")
    table.add_row("Valid", f"{_fmt_date(quote.start_date)} → {_fmt_date(quote.end_date)}")
    console.print(table)


async def show_status(backend: Backend, args: argparse.Namespace) -> None:
    account_id = await _resolve_account_id(backend, args.account_id)
    record = await backend.persistence.get_subscription(account_id)
    now = utcnow()
    state = classify(record, now)
    label = get_label(STATUS_LABELS, state.status, None)
    plan = record.plan if record else "-"
    console.print(f"[bold]{account_id}[/bold]: {label} · {plan} · {state.days_remaining} day(s) remaining")
    if record is not None:
        total_days, elapsed = progress(record, now)
        console.print(
            f"Valid {_fmt_date(record.start_date)} → {_fmt_date(record.end_date)} · "
            f"{elapsed}/{total_days} days used · paid so far ₹{record.amount_paid}"
        )
    if should_show_renewal_reminder(state):
        console.print(get_text("renewal_reminder_banner", None, days=state.days_remaining))

    if isinstance(backend.persistence, SqlPersistence):
        history = await backend.persistence.payment_history(account_id)
        if history:
            table = Table(title="Payment history")
            for column in ("Date", "Plan", "Amount", "Method", "Reference"):
                table.add_column(column)
            for payment in history:
                table.add_row(
                    _fmt_date(payment.created_at),
                    payment.plan,
                    f"₹{payment.amount}",
                    payment.method,
                    payment.reference or "-",
                )
            console.print(table)


async def manual_renewal(backend: Backend, args: argparse.Namespace) -> None:
    admin_id = await _require_admin(backend, args.admin_id)
    selection = _plan_from_args(args)
    start = args.start or date.today()
    prompt = get_text(
        "renewal_confirm",
        None,
        plan=selection.label,
        account=args.account_id,
        months=args.months,
        start=start.isoformat(),
    )
    if not args.yes and not Confirm.ask(prompt, console=console):
        console.print("Cancelled.")
        return
    processor = RenewalProcessor(backend.persistence)
    record = await processor.apply_manual_renewal(
        args.account_id,
        selection,
        start,
        args.months,
        admin_id=admin_id,
    )
    console.print(
        f"Subscription updated: {record.plan}, {_fmt_date(record.start_date)} → {_fmt_date(record.end_date)}, "
        f"paid so far ₹{record.amount_paid}"
    )


async def paid_renewal(backend: Backend, args: argparse.Namespace) -> None:
    if backend.payments is None or not backend.payments.is_configured:
        raise ValidationError("Payments need API_BASE_URL and RAZORPAY_KEY_ID.")
    account_id = await _resolve_account_id(backend, args.account_id)
    processor = RenewalProcessor(backend.persistence, backend.payments)
    intent = await processor.apply_paid_renewal(account_id, _plan_from_args(args))
    console.print(
        f"Order {intent.order.order_id}: ₹{intent.quote.amount} ({intent.order.currency}), "
        f"valid {_fmt_date(intent.quote.start_date)} → {_fmt_date(intent.quote.end_date)} once paid."
    )
    if intent.order.key_id:
        console.print(f"Checkout key: {intent.order.key_id}")


async def reminders(backend: Backend, args: argparse.Namespace) -> None:
    await _require_admin(backend, args.admin_id)
    candidates = await select_candidates(backend.persistence, utcnow())

    if args.reminder_command == "summary":
        summary = summarize(candidates)
        console.print(f"Total: {summary.total} · Expired: {summary.expired} · Expiring: {summary.expiring}")
        return

    if args.reminder_command == "list":
        table = Table(title="Renewal reminders")
        for column in ("Account", "Name", "Phone", "Plan", "Status"):
            table.add_column(column)
        for candidate in candidates:
            state = candidate.state
            status = "Expired" if state.status == "Expired" else f"{state.days_remaining} days left"
            table.add_row(candidate.account_id, candidate.name, candidate.phone or "-", candidate.plan, status)
        console.print(table)
        return

    dispatcher = ReminderDispatcher(WhatsAppChannel(), language=args.language)
    if args.account_id:
        chosen = [candidate for candidate in candidates if candidate.account_id == args.account_id]
        if not chosen:
            raise ValidationError(f"Account {args.account_id} is neither expired nor expiring.")
        await dispatcher.dispatch_one(chosen[0])
        console.print(f"Reminder opened for {chosen[0].name}.")
        return

    def confirm(count: int) -> bool:
        return args.yes or Confirm.ask(bulk_confirmation_prompt(count, args.language), console=console)

    report = await dispatcher.dispatch_bulk(candidates, confirm)
    console.print(
        f"Sent: {len(report.sent)} · Failed: {len(report.failed)} · Skipped: {len(report.skipped)}"
        + (" (cancelled)" if report.cancelled else "")
    )
    for account_id, reason in report.failed.items():
        console.print(f"  {account_id}: {reason}")


async def show_users(backend: Backend, args: argparse.Namespace) -> None:
    await _require_admin(backend, args.admin_id)
    result = await list_users(
        backend.persistence,
        utcnow(),
        status=args.status,
        search=args.search,
        page=args.page,
        page_size=args.page_size,
    )
    table = Table(title=f"Users · page {result.page} of {result.total_pages} · {result.total} total")
    for column in ("Account", "Name", "Email", "Phone", "Plan", "Status", "Days left", "Total paid"):
        table.add_column(column)
    for entry in result.entries:
        account = entry.account
        subscription = account.subscription
        table.add_row(
            account.id,
            account.name,
            account.email or "-",
            account.phone or "-",
            subscription.plan if subscription else "-",
            get_label(STATUS_LABELS, entry.state.status, None),
            str(entry.state.days_remaining),
            f"₹{subscription.amount_paid}" if subscription else "-",
        )
    if not result.entries:
        console.print("No users found.")
    else:
        console.print(table)


async def logout(backend: Backend, args: argparse.Namespace) -> None:
    if backend.session is None:
        console.print("No remote session to clear.")
        return
    backend.session.clear()
    console.print("Signed out; the cached user has been removed.")


async def delete_account(backend: Backend, args: argparse.Namespace) -> None:
    await _require_admin(backend, args.admin_id)
    prompt = get_text("delete_confirm", None, name=args.account_id)
    if not args.yes and not Confirm.ask(prompt, console=console):
        console.print("Cancelled.")
        return
    await backend.persistence.delete_account(args.account_id)
    console.print(f"{args.account_id} has been deleted from the system.")


async def add_account(backend: Backend, args: argparse.Namespace) -> None:
    if not isinstance(backend.persistence, SqlPersistence):
        raise ValidationError("Accounts can only be added to the local database.")
    account = await backend.persistence.add_account(
        args.account_id,
        args.name,
        email=args.email,
        phone=args.phone,
        role=args.role,
    )
    console.print(f"Account {account.id} ({account.role}) created.")


_BACKEND_COMMANDS = {
    "status": show_status,
    "renew": manual_renewal,
    "pay": paid_renewal,
    "reminders": reminders,
    "users": show_users,
    "logout": logout,
    "delete": delete_account,
    "add-account": add_account,
}


async def run(args: argparse.Namespace) -> None:
    if args.command == "prices":
        show_prices()
        return
    if args.command == "quote":
        show_quote(args)
        return

    problems = validate_runtime_config()
    if problems:
        raise ValidationError(" ".join(problems))
    async with open_backend() as backend:
        await _BACKEND_COMMANDS[args.command](backend, args)


def main(argv: list[str] | None = None) -> int:
    args = parse_cli_args(argv)
    configure_logging(language=args.log_language, level=args.log_level or logging.INFO)
    try:
        asyncio.run(run(args))
    except ValidationError as exc:
        console.print(f"[red]{exc.message}[/red]")
        return EXIT_VALIDATION
    except ConflictError as exc:
        console.print(f"[yellow]{exc.message}[/yellow] Reload and try again.")
        return EXIT_CONFLICT
    except TransientError as exc:
        logger.warning("Command %s failed: %s", args.command, exc.message)
        console.print(f"[yellow]{exc.message}[/yellow] This is temporary; please retry.")
        return EXIT_TRANSIENT
    return 0


if __name__ == "__main__":
    sys.exit(main())
