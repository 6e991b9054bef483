"""Configuration management for nimbus-reports."""

from pathlib import Path
from typing import Literal

import yaml  # type: ignore[import-untyped]
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .session import AuthMode, Session


class NimbusConfig(BaseSettings):
    """Nimbus connection configuration."""

    model_config = SettingsConfigDict(env_prefix="NIMBUS_")

    base_url: str = Field(default="", description="Nimbus base URL (e.g., https://tenant.nimbus.cloud)")
    auth_mode: AuthMode = Field(default=AuthMode.CREDENTIAL, description="credential or apptoken")
    user_id: int | None = Field(default=None, description="User ID for credential auth")
    auth_token: str | None = Field(default=None, description="Authentication token for credential auth")
    app_token: str | None = Field(default=None, description="App token for apptoken auth")
    username: str | None = Field(default=None, description="Username for apptoken auth")

    def to_session(self) -> Session:
        """Build the immutable session used by report runs."""
        return Session(
            base_url=self.base_url,
            auth_mode=self.auth_mode,
            user_id=self.user_id,
            auth_token=self.auth_token,
            app_token=self.app_token,
            username=self.username,
        )


class FetchConfig(BaseSettings):
    """OData fetch behaviour."""

    model_config = SettingsConfigDict(env_prefix="FETCH_")

    page_size: int = Field(default=500, gt=0, description="Records per page")
    expand_page_size: int = Field(
        default=100, gt=0, description="Records per page for queries with $expand"
    )
    max_pages: int | None = Field(
        default=20, description="Page ceiling per fetch (unset for no ceiling)"
    )
    max_retries: int = Field(default=3, gt=0, description="Attempts per page request")
    timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")


class ExportConfig(BaseSettings):
    """Spreadsheet export configuration."""

    model_config = SettingsConfigDict(env_prefix="EXPORT_")

    output_dir: Path = Field(default=Path("output"), description="Directory for exported files")
    format: Literal["xlsx", "csv"] = Field(default="xlsx", description="Export file format")


class AppConfig(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    nimbus: NimbusConfig = Field(default_factory=NimbusConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "AppConfig":
        """Load configuration from a YAML file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load application configuration from environment and optional YAML file."""
    if config_path:
        return AppConfig.from_yaml(config_path)
    return AppConfig()
