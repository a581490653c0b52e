import pytest
from rich.console import Console

import config
import main

PLAN = ["--duration", "1 Month", "--shift", "Morning", "--seat", "Regular"]


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    monkeypatch.setattr(main, "console", Console(width=200))


@pytest.fixture
def local_db(tmp_path, monkeypatch):
    url = f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"
    for module in (config, main):
        monkeypatch.setattr(module, "DATABASE_URL", url)
        monkeypatch.setattr(module, "API_BASE_URL", None)
    monkeypatch.setattr(main, "ADMIN_IDS", ("admin-1",))
    return url


def test_parse_renew_arguments():
    args = main.parse_cli_args(["renew", "s1", *PLAN, "--months", "3", "--start", "2025-03-01", "--locker"])
    assert args.command == "renew"
    assert args.months == 3
    assert args.start.isoformat() == "2025-03-01"
    assert args.locker and not args.registration


def test_bad_start_date_is_a_usage_error():
    with pytest.raises(SystemExit):
        main.parse_cli_args(["quote", *PLAN, "--start", "01/03/2025"])


def test_prices_table(capsys):
    assert main.main(["prices"]) == 0
    out = capsys.readouterr().out
    assert "5700" in out
    assert "Full Day" in out


def test_quote_includes_add_ons(capsys):
    code = main.main(["quote", "--duration", "1 month", "--shift", "full day", "--seat", "regular",
                      "--registration", "--locker", "--start", "2025-01-31"])
    assert code == 0
    out = capsys.readouterr().out
    assert "₹1100" in out
    assert "2025-02-28" in out


def test_unknown_plan_exits_with_validation_code(capsys):
    assert main.main(["quote", "--duration", "2 Months", "--shift", "Morning", "--seat", "Regular"]) == 2
    assert "Unknown duration" in capsys.readouterr().out


def test_missing_backend_configuration(monkeypatch):
    for module in (config, main):
        monkeypatch.setattr(module, "DATABASE_URL", None)
        monkeypatch.setattr(module, "API_BASE_URL", None)
    assert main.main(["status", "s1"]) == 2


def test_local_database_renewal_flow(local_db, capsys):
    assert main.main(["add-account", "s1", "Asha", "--phone", "9876543210"]) == 0
    assert main.main(["--admin-id", "admin-1", "renew", "s1", *PLAN, "--months", "2",
                      "--start", "2025-01-31", "--yes"]) == 0
    out = capsys.readouterr().out
    assert "2025-01-31 → 2025-03-31" in out
    assert "₹650" in out

    assert main.main(["status", "s1"]) == 0
    assert "1 Month - Morning - Regular" in capsys.readouterr().out


def test_admin_commands_need_known_admin(local_db, capsys):
    assert main.main(["add-account", "s1", "Asha"]) == 0
    assert main.main(["--admin-id", "intruder", "delete", "s1", "--yes"]) == 2
    assert main.main(["--admin-id", "admin-1", "delete", "s1", "--yes"]) == 0


def test_out_of_range_months_rejected(local_db):
    assert main.main(["add-account", "s1", "Asha"]) == 0
    assert main.main(["--admin-id", "admin-1", "renew", "s1", *PLAN, "--months", "25", "--yes"]) == 2


def test_duplicate_account_exits_with_conflict_code(local_db):
    assert main.main(["add-account", "s1", "Asha"]) == 0
    assert main.main(["add-account", "s1", "Asha"]) == 3


def test_prices_show_starting_from(capsys):
    assert main.main(["prices"]) == 0
    out = capsys.readouterr().out
    assert "Starting from" in out
    assert "3300" in out


def test_status_shows_progress_and_payments(local_db, capsys):
    assert main.main(["add-account", "s1", "Asha"]) == 0
    assert main.main(["--admin-id", "admin-1", "renew", "s1", *PLAN, "--months", "1", "--yes"]) == 0
    capsys.readouterr()

    assert main.main(["status", "s1"]) == 0
    out = capsys.readouterr().out
    assert "days used" in out
    assert "Payment history" in out
    assert "manual" in out


def _seed_users():
    assert main.main(["add-account", "s1", "Asha", "--email", "asha@example.com"]) == 0
    assert main.main(["add-account", "s2", "Ravi"]) == 0
    assert main.main(["add-account", "s3", "Meena"]) == 0
    assert main.main(["--admin-id", "admin-1", "renew", "s1", *PLAN, "--months", "2", "--yes"]) == 0
    assert main.main(["--admin-id", "admin-1", "renew", "s2", *PLAN, "--months", "1",
                      "--start", "2020-01-01", "--yes"]) == 0


def test_users_lists_filters_and_searches(local_db, capsys):
    _seed_users()
    capsys.readouterr()

    assert main.main(["--admin-id", "admin-1", "users"]) == 0
    out = capsys.readouterr().out
    assert all(name in out for name in ("Asha", "Ravi", "Meena"))
    assert "3 total" in out

    assert main.main(["--admin-id", "admin-1", "users", "--status", "expired"]) == 0
    out = capsys.readouterr().out
    assert "Ravi" in out and "Asha" not in out

    assert main.main(["--admin-id", "admin-1", "users", "--search", "EXAMPLE.COM"]) == 0
    out = capsys.readouterr().out
    assert "Asha" in out and "Meena" not in out


def test_users_pages(local_db, capsys):
    _seed_users()
    capsys.readouterr()
    assert main.main(["--admin-id", "admin-1", "users", "--page-size", "1", "--page", "3"]) == 0
    assert "page 3 of 3" in capsys.readouterr().out
    assert main.main(["--admin-id", "admin-1", "users", "--page", "2"]) == 2


def test_users_requires_admin(local_db):
    assert main.main(["--admin-id", "intruder", "users"]) == 2


def test_logout_removes_cached_session(tmp_path, monkeypatch, capsys):
    cache = tmp_path / "session.json"
    cache.write_text('{"id": "a1", "name": "Admin", "role": "admin"}', encoding="utf-8")
    for module in (config, main):
        monkeypatch.setattr(module, "DATABASE_URL", None)
        monkeypatch.setattr(module, "API_BASE_URL", "http://127.0.0.1:9")
    monkeypatch.setattr(main, "SESSION_CACHE_PATH", str(cache))

    assert main.main(["logout"]) == 0
    assert not cache.exists()
    assert "Signed out" in capsys.readouterr().out
