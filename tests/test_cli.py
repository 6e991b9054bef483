from pathlib import Path

import pytest
from typer.testing import CliRunner

from nimbus_reports.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    for name in ("NIMBUS_BASE_URL", "NIMBUS_AUTH_MODE", "NIMBUS_USER_ID", "NIMBUS_AUTH_TOKEN",
                 "NIMBUS_APP_TOKEN", "NIMBUS_USERNAME"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def _write_config(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        "nimbus:\n"
        "  base_url: https://nimbus.test\n"
        "  user_id: 7\n"
        "  auth_token: abcd1234wxyz\n"
    )
    return path


def test_config_show_masks_token(tmp_path):
    result = runner.invoke(app, ["config-show", "--config", str(_write_config(tmp_path))])

    assert result.exit_code == 0
    assert "https://nimbus.test" in result.output
    assert "abcd1234wxyz" not in result.output
    assert "abcd****wxyz" in result.output


def test_report_with_incomplete_session_exits_with_error():
    result = runner.invoke(app, ["cost-codes"])

    assert result.exit_code == 1
    assert "Session is incomplete" in result.output


def test_invalid_date_exits_with_error(tmp_path):
    result = runner.invoke(
        app,
        ["deleted-agreements", "--from", "yesterday", "--to", "today", "--config", str(_write_config(tmp_path))],
    )

    assert result.exit_code == 1
    assert "Invalid date" in result.output


def test_missing_date_range_exits_with_error(tmp_path):
    result = runner.invoke(
        app, ["missing-job-roles", "--from", "2024-01-01", "--config", str(_write_config(tmp_path))]
    )

    assert result.exit_code == 1
    assert "Please select both From and To dates" in result.output


@pytest.mark.parametrize("command", ["activities", "missing-activities", "change-history"])
def test_shift_reports_require_a_date_range(tmp_path, command):
    result = runner.invoke(app, [command, "--to", "today", "--config", str(_write_config(tmp_path))])

    assert result.exit_code == 1
    assert "Please select both From and To dates" in result.output
