"""Tests for the onboard CLI (via typer.testing.CliRunner)."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from onboard.cli.app import app
from onboard.models import outcome


@pytest.fixture()
def runner(monkeypatch, tmp_path) -> CliRunner:
    """CliRunner with the database pointed at a temporary file."""
    monkeypatch.setenv("ONBOARD_STORAGE__SQLITE_PATH", str(tmp_path / "cli.db"))
    monkeypatch.delenv("ONBOARD_OTP__SMSPOOL_API_KEY", raising=False)
    monkeypatch.delenv("ONBOARD_OTP__SMSMAN_API_KEY", raising=False)
    return CliRunner()


def _add(runner: CliRunner, email: str = "ada@example.com", *extra: str):
    return runner.invoke(
        app,
        ["users", "add", email, "--first-name", "Ada", "--last-name", "Lovelace", "--password", "hunter22", *extra],
    )


class TestTopLevel:
    """Version, help and the step listing."""

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.startswith("onboard ")

    def test_no_command_shows_help(self, runner: CliRunner) -> None:
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "users" in result.output

    def test_steps(self, runner: CliRunner) -> None:
        """onboard steps lists the declared order."""
        result = runner.invoke(app, ["steps"])
        assert result.exit_code == 0
        assert "work_preference" in result.output
        assert result.output.index("welcome") < result.output.index("submit")


class TestSettingsCli:
    """onboard settings show/validate."""

    def test_show_masks_keys(self, runner: CliRunner, monkeypatch) -> None:
        monkeypatch.setenv("ONBOARD_OTP__SMSPOOL_API_KEY", "live-secret-123")
        result = runner.invoke(app, ["settings", "show"])
        assert result.exit_code == 0
        assert "live-secret-123" not in result.output
        assert "****" in result.output

    def test_validate(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["settings", "validate"])
        assert result.exit_code == 0
        assert "OTP providers: none" in result.output


class TestUsersCli:
    """onboard users add/list/show."""

    def test_add_and_show(self, runner: CliRunner) -> None:
        added = _add(runner, "ada@example.com", "--country", "gb", "--birth-date", "1990-04-02")
        assert added.exit_code == 0, added.output
        assert "Created user 1" in added.output

        shown = runner.invoke(app, ["users", "show", "1"])
        assert shown.exit_code == 0
        assert "ada@example.com" in shown.output
        assert "1990-04-02" in shown.output
        assert "hunter22" not in shown.output

    def test_bad_birth_date(self, runner: CliRunner) -> None:
        result = _add(runner, "ada@example.com", "--birth-date", "02/04/1990")
        assert result.exit_code == 2

    def test_list_pending(self, runner: CliRunner) -> None:
        _add(runner, "ada@example.com")
        result = runner.invoke(app, ["users", "list", "--pending"])
        assert result.exit_code == 0
        assert "ada@example.com" in result.output

    def test_list_empty(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["users", "list"])
        assert result.exit_code == 0
        assert "No users found" in result.output

    def test_show_missing(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["users", "show", "42"])
        assert result.exit_code == 1
        assert "not found" in result.output


class TestRunCli:
    """onboard run flag handling; the run itself is replaced."""

    def test_unknown_step(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["run", "1", "--step", "payment"])
        assert result.exit_code == 2

    def test_failure_exit_code(self, runner: CliRunner, monkeypatch) -> None:
        """A failed run prints its outcome and exits 1."""
        seen = {}

        class FakeRun:
            def __init__(self, user_id, store, otp, settings) -> None:
                seen["user_id"] = user_id
                seen["headless"] = settings.browser.headless

            async def execute(self, options):
                seen["options"] = options
                return outcome.error("CAPTCHA_DETECTED", "network_restriction", "login")

        monkeypatch.setattr("onboard.wizard.runner.ProfileRun", FakeRun)
        result = runner.invoke(app, ["run", "7", "--skip-otp", "--step", "work-preference", "--headful", "--json"])
        assert result.exit_code == 1
        assert "CAPTCHA_DETECTED" in result.output
        assert seen["user_id"] == 7
        assert seen["headless"] is False
        assert seen["options"].skip_otp is True
        assert seen["options"].force_step.value == "work_preference"

    def test_success_exit_code(self, runner: CliRunner, monkeypatch) -> None:
        class FakeRun:
            def __init__(self, *args) -> None:
                pass

            async def execute(self, options):
                return outcome.success("done")

        monkeypatch.setattr("onboard.wizard.runner.ProfileRun", FakeRun)
        result = runner.invoke(app, ["run", "1"])
        assert result.exit_code == 0
        assert "success" in result.output
