from pathlib import Path

import pytest

from nimbus_reports.config import AppConfig, load_config
from nimbus_reports.session import AuthMode


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    for name in ("NIMBUS_BASE_URL", "NIMBUS_AUTH_MODE", "NIMBUS_USER_ID", "NIMBUS_AUTH_TOKEN",
                 "NIMBUS_APP_TOKEN", "NIMBUS_USERNAME", "FETCH_MAX_PAGES", "FETCH_PAGE_SIZE",
                 "EXPORT_FORMAT"):
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of the tests
    monkeypatch.chdir(tmp_path)


def test_defaults():
    config = AppConfig()

    assert config.fetch.page_size == 500
    assert config.fetch.expand_page_size == 100
    assert config.fetch.max_pages == 20
    assert config.fetch.max_retries == 3
    assert config.fetch.timeout_seconds == 30.0
    assert config.export.output_dir == Path("output")
    assert config.export.format == "xlsx"
    assert config.nimbus.auth_mode == AuthMode.CREDENTIAL


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("NIMBUS_BASE_URL", "https://tenant.nimbus.test")
    monkeypatch.setenv("NIMBUS_USER_ID", "12")
    monkeypatch.setenv("NIMBUS_AUTH_TOKEN", "tok")
    monkeypatch.setenv("FETCH_PAGE_SIZE", "250")

    config = AppConfig()
    session = config.nimbus.to_session()

    assert config.fetch.page_size == 250
    assert session.user_id == 12
    assert session.is_complete()
    assert session.odata_base == "https://tenant.nimbus.test/CoreAPI/Odata"


def test_from_yaml(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "nimbus:\n"
        "  base_url: https://yaml.nimbus.test/\n"
        "  auth_mode: apptoken\n"
        "  app_token: app-123\n"
        "  username: svc-reports\n"
        "fetch:\n"
        "  max_pages: null\n"
        "export:\n"
        "  format: csv\n"
        "  output_dir: reports\n"
    )

    config = load_config(path)

    assert config.nimbus.auth_mode == AuthMode.APP_TOKEN
    assert config.fetch.max_pages is None
    assert config.export.format == "csv"
    assert config.export.output_dir == Path("reports")
    assert config.nimbus.to_session().is_complete()


def test_missing_yaml_falls_back_to_defaults(tmp_path: Path):
    config = load_config(tmp_path / "absent.yaml")

    assert config.fetch.page_size == 500


def test_invalid_export_format_rejected(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text("export:\n  format: pdf\n")

    with pytest.raises(ValueError):
        load_config(path)
