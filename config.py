import os
from pathlib import Path
from dotenv import load_dotenv
from sqlalchemy.engine import make_url

# Load environment variables from the .env file in the current directory
load_dotenv()


def _resolve_sqlite_path(url: str | None) -> str | None:
    """Resolve relative SQLite URLs against the project root."""
    if not url:
        return url

    try:
        parsed = make_url(url)
    except Exception:
        return url

    if not parsed.drivername.startswith("sqlite"):
        return url

    database = parsed.database
    if not database or database == ":memory:":
        return url

    db_path = Path(database)
    if db_path.is_absolute():
        return url

    absolute_path = (Path(__file__).resolve().parent / db_path).resolve()
    updated = parsed.set(database=absolute_path.as_posix())
    return updated.render_as_string(hide_password=False)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw.lstrip("-").isdigit() else default


# Remote backend that owns accounts, subscriptions and payments
API_BASE_URL = os.getenv("API_BASE_URL")
API_TOKEN = os.getenv("API_TOKEN")
API_TIMEOUT = float(os.getenv("API_TIMEOUT", "30"))

# Optional local store (e.g. sqlite+aiosqlite:///./institute.db); takes precedence over the API
DATABASE_URL = _resolve_sqlite_path(os.getenv("DATABASE_URL"))

RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID")
PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "INR")

INSTITUTE_NAME = os.getenv("INSTITUTE_NAME", "Ultimate Success Institute")
WHATSAPP_COUNTRY_CODE = os.getenv("WHATSAPP_COUNTRY_CODE", "91")
REMINDER_INTERVAL_MS = max(0, _int_env("REMINDER_INTERVAL_MS", 600))

SESSION_TTL_SECONDS = _int_env("SESSION_TTL_SECONDS", 300)
SESSION_CACHE_PATH = os.getenv("SESSION_CACHE_PATH")

LOG_LANGUAGE = os.getenv("LOG_LANGUAGE", "en")

ADMIN_IDS_ENV = os.getenv("ADMIN_IDS", "")
ADMIN_IDS = tuple(
    admin_id.strip()
    for admin_id in ADMIN_IDS_ENV.split(",")
    if admin_id.strip()
)


def validate_runtime_config() -> list[str]:
    """Return human-readable problems with the backend settings."""
    problems: list[str] = []
    if not DATABASE_URL and not API_BASE_URL:
        problems.append("Neither DATABASE_URL nor API_BASE_URL is set in the .env file.")
    if API_BASE_URL and not API_BASE_URL.startswith(("http://", "https://")):
        problems.append("API_BASE_URL must start with http:// or https://.")
    return problems
