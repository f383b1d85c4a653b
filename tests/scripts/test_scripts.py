"""
tests/scripts/test_scripts.py

Operator scripts: secret generation, deploy steps and the auth smoke checks.
"""

import io
from typing import Any
from unittest.mock import MagicMock, patch

import httpx
import pytest

from reportsonic.auth.services import FORGOT_PASSWORD_MESSAGE
from reportsonic.scripts import deploy, generate_secrets
from reportsonic.scripts.smoke import SmokeRun


# ========================
# --- generate_secrets ---
# ========================
def test_generate_secret_key_is_random() -> None:
    first = generate_secrets.generate_secret_key()
    assert len(first) >= 43
    assert first != generate_secrets.generate_secret_key()


def test_render_env() -> None:
    env = generate_secrets.render_env("abc123")
    assert "SECRET_KEY=abc123" in env
    assert "DATABASE_URL=mysql+aiomysql://" in env
    assert "EMAILS_ENABLED=false" in env


def test_key_only(capsys: pytest.CaptureFixture[str]) -> None:
    with patch.object(generate_secrets, "generate_secret_key", return_value="k3y"):
        assert generate_secrets.main(["--key-only"]) == 0
    assert capsys.readouterr().out == "k3y\n"


# ==============
# --- deploy ---
# ==============
def _process(returncode: int, output: str = "") -> MagicMock:
    process = MagicMock()
    process.stdout = io.StringIO(output)
    process.wait.return_value = returncode
    return process


@patch("reportsonic.scripts.deploy.subprocess.Popen")
def test_deploy_runs_migrations_then_deploy(
    mock_popen: MagicMock, capsys: pytest.CaptureFixture[str]
) -> None:
    mock_popen.side_effect = [_process(0, "upgraded\n"), _process(0, "deployed\n")]

    assert deploy.main(["--command", "vercel --prod --yes"]) == 0

    commands = [c.args[0] for c in mock_popen.call_args_list]
    assert commands == [["alembic", "upgrade", "head"], ["vercel", "--prod", "--yes"]]
    out = capsys.readouterr().out
    assert "   upgraded" in out
    assert "Deployment finished" in out


@patch("reportsonic.scripts.deploy.subprocess.Popen")
def test_deploy_stops_on_failed_migration(mock_popen: MagicMock) -> None:
    mock_popen.return_value = _process(3)
    assert deploy.main([]) == 3
    assert mock_popen.call_count == 1


@patch("reportsonic.scripts.deploy.subprocess.Popen")
def test_deploy_skip_migrations(mock_popen: MagicMock) -> None:
    mock_popen.return_value = _process(0)
    assert deploy.main(["--skip-migrations", "--command", "fly deploy"]) == 0
    assert mock_popen.call_args.args[0] == ["fly", "deploy"]


@patch("reportsonic.scripts.deploy.subprocess.Popen", side_effect=FileNotFoundError)
def test_run_step_missing_binary(mock_popen: MagicMock) -> None:
    assert deploy.run_step("Deploy", ["not-installed"]) == 127


# =============
# --- smoke ---
# =============
def _client(handler: Any) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler), base_url="http://smoke.example.com")


def test_smoke_login_captures_cookie() -> None:
    smoke = SmokeRun()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"success": True}, headers={"set-cookie": "auth-token=tok123; Path=/; HttpOnly"}
        )

    with _client(handler) as client:
        assert smoke.login(client) is None
    assert smoke.token == "tok123"


def test_smoke_me_replays_cookie() -> None:
    smoke = SmokeRun()
    smoke.token = "tok123"
    seen: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["cookie"] = request.headers.get("cookie", "")
        return httpx.Response(200, json={"user": {"email": smoke.email}})

    with _client(handler) as client:
        assert smoke.me(client) is None
    assert seen["cookie"] == "auth-token=tok123"


def test_smoke_reports_unexpected_status() -> None:
    smoke = SmokeRun()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201, json={})

    with _client(handler) as client:
        assert smoke.duplicate_register(client) == "expected 400, got 201"
        assert smoke.register(client) is None


def test_smoke_forgot_password_message() -> None:
    smoke = SmokeRun()
    messages = iter([FORGOT_PASSWORD_MESSAGE, "Email sent to you!"])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"message": next(messages)})

    with _client(handler) as client:
        assert smoke.forgot_password(client) is None
        assert smoke.forgot_password(client) == "unexpected message: Email sent to you!"


def test_smoke_checks_order() -> None:
    labels = [label for label, _ in SmokeRun().checks()]
    assert labels[0] == "register"
    assert labels[-1] == "logout"
    assert len(labels) == 7
