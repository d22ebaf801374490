from __future__ import annotations

from pathlib import Path
from unittest import mock

import httpx
import pytest

import main
from main import _parse_args
from shopadmin.database import Database


def test_default_command_invokes_serve() -> None:
    args = _parse_args([])
    assert args.command == "serve"


def test_default_command_accepts_options_without_subcommand() -> None:
    args = _parse_args(["--host", "127.0.0.1", "--port", "8080"])
    assert args.command == "serve"
    assert args.host == "127.0.0.1"
    assert args.port == 8080


def test_global_config_option_precedes_subcommand() -> None:
    args = _parse_args(["--config", "settings.yaml", "list-admins"])
    assert args.command == "list-admins"
    assert args.config == Path("settings.yaml")

    defaulted = _parse_args(["--config", "settings.yaml"])
    assert defaulted.command == "serve"


def test_config_equals_form_precedes_subcommand() -> None:
    args = _parse_args(["--config=settings.yaml", "list-admins"])
    assert args.command == "list-admins"
    assert args.config == Path("settings.yaml")

    defaulted = _parse_args(["--config=settings.yaml", "--port", "8080"])
    assert defaulted.command == "serve"
    assert defaulted.port == 8080


def test_create_admin_subcommand_options() -> None:
    args = _parse_args(["create-admin", "admin", "--reset"])
    assert args.command == "create-admin"
    assert args.username == "admin"
    assert args.reset is True
    assert args.role == "admin"


@pytest.fixture()
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    db_path = tmp_path / "cli.sqlite3"
    monkeypatch.setenv("SHOPADMIN_DB_PATH", str(db_path))
    monkeypatch.delenv("SHOPADMIN_CONFIG", raising=False)
    return db_path


def test_create_admin_and_reset(cli_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    with mock.patch("main.getpass", side_effect=["long-enough-1", "long-enough-1"]):
        assert main.main(["create-admin", "admin"]) == 0

    with mock.patch("main.getpass", side_effect=["another-pass", "another-pass"]):
        assert main.main(["create-admin", "admin"]) == 1

    database = Database(cli_env)
    user = database.get_user_by_username("admin")
    assert user is not None
    database.set_user_status(user.id, "disabled")

    with mock.patch("main.getpass", side_effect=["another-pass", "another-pass"]):
        assert main.main(["create-admin", "admin", "--reset"]) == 0

    refreshed = database.authenticate_user("admin", "another-pass")
    assert refreshed is not None and refreshed.is_active

    assert main.main(["list-admins"]) == 0
    output = capsys.readouterr().out
    assert "Created admin #1: admin (admin)" in output
    assert "Reset password for admin #1: admin" in output
    assert "1 admin(s) found:" in output


def test_short_password_aborts(cli_env: Path) -> None:
    with mock.patch("main.getpass", return_value="short"):
        assert main.main(["create-admin", "admin"]) == 1
    assert Database(cli_env).list_users() == []


def test_status_reports_session_count(cli_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    response = httpx.Response(
        200,
        json={"status": "ok", "active_sessions": 3},
        request=httpx.Request("GET", "http://service/healthz"),
    )
    with mock.patch("main.httpx.get", return_value=response) as fake_get:
        assert main.main(["status", "--service-url", "http://service/"]) == 0

    fake_get.assert_called_once_with("http://service/healthz", timeout=10.0)
    assert "Active sessions: 3" in capsys.readouterr().out


def test_status_handles_unreachable_service(cli_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    with mock.patch("main.httpx.get", side_effect=httpx.ConnectError("refused")):
        assert main.main(["status"]) == 1
    assert "Failed to contact service" in capsys.readouterr().out
