"""Configuration for jira-beads-sync.

Values are resolved in this order (first wins):
- constructor arguments
- environment variables
- a local `.env` file (if present)
- the YAML config file written by `jira-beads-sync configure`
- defaults

The config file lives at `$XDG_CONFIG_HOME/jira-beads-sync/config.yml`
(falling back to `~/.config/...`) unless `JIRA_BEADS_SYNC_CONFIG` points
elsewhere. Its layout is:

    jira:
      base_url: https://jira.example.com
      username: me@example.com
      api_token: secret

Notes:
    Pydantic-settings supports overriding the env file in tests via:
    `Settings(_env_file=path_to_env)`.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field, field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from jira_beads_sync.errors import ConfigurationError

CONFIG_PATH_ENV = "JIRA_BEADS_SYNC_CONFIG"
APP_DIR_NAME = "jira-beads-sync"

# config-file key under `jira:` -> settings alias
_FILE_KEYS: dict[str, str] = {
    "base_url": "JIRA_BASE_URL",
    "username": "JIRA_USERNAME",
    "api_token": "JIRA_API_TOKEN",
}

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def default_config_path() -> Path:
    override = os.environ.get(CONFIG_PATH_ENV, "").strip()
    if override:
        return Path(override)
    xdg = os.environ.get("XDG_CONFIG_HOME", "").strip()
    if xdg:
        return Path(xdg) / APP_DIR_NAME / "config.yml"
    return Path.home() / ".config" / APP_DIR_NAME / "config.yml"


def load_config_file(path: Path) -> dict[str, Any]:
    """Read the YAML config file; a missing file is an empty config."""

    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def save_config_file(path: Path, *, base_url: str, username: str, api_token: str) -> Path:
    """Write Jira credentials to the YAML config file, readable only by the owner."""

    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"jira": {"base_url": base_url, "username": username, "api_token": api_token}}
    path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
    path.chmod(0o600)
    return path


class ConfigFileSettingsSource(PydanticBaseSettingsSource):
    """Settings source backed by the YAML config file."""

    def __init__(self, settings_cls: type[BaseSettings], path: Path) -> None:
        super().__init__(settings_cls)
        self._path = path

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        # Values are produced in bulk by __call__.
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        jira = load_config_file(self._path).get("jira") or {}
        if not isinstance(jira, dict):
            raise ConfigurationError(f"'jira' section of {self._path} must be a mapping")
        return {
            alias: str(jira[file_key])
            for file_key, alias in _FILE_KEYS.items()
            if jira.get(file_key) not in (None, "")
        }


class Settings(BaseSettings):
    """Settings for jira-beads-sync.

    Environment variables:
    - JIRA_BASE_URL
    - JIRA_USERNAME
    - JIRA_API_TOKEN
    - JIRA_SEARCH_MAX_RESULTS (optional)
    - LOG_LEVEL               (optional)
    - LOG_FORMAT              (optional: text | json)
    """

    jira_base_url: str = Field(
        default="",
        validation_alias="JIRA_BASE_URL",
        description="Jira base URL, e.g. https://jira.example.com",
    )
    jira_username: str = Field(
        default="",
        validation_alias="JIRA_USERNAME",
        description="Jira username or account email",
    )
    jira_api_token: str = Field(
        default="",
        validation_alias="JIRA_API_TOKEN",
        description="Jira API token used for basic authentication",
    )
    jira_search_max_results: int = Field(
        default=1000,
        gt=0,
        validation_alias="JIRA_SEARCH_MAX_RESULTS",
        description="Upper bound on keys collected from one JQL search",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level (CRITICAL, ERROR, WARNING, INFO or DEBUG)",
    )
    log_format: Literal["text", "json"] = Field(
        default="text",
        validation_alias="LOG_FORMAT",
        description="Log output format",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {value!r}")
        return level

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            ConfigFileSettingsSource(settings_cls, default_config_path()),
            file_secret_settings,
        )

    def missing_jira_settings(self) -> list[str]:
        missing: list[str] = []
        if not self.jira_base_url.strip():
            missing.append("JIRA_BASE_URL")
        if not self.jira_username.strip():
            missing.append("JIRA_USERNAME")
        if not self.jira_api_token.strip():
            missing.append("JIRA_API_TOKEN")
        return missing

    def require_jira(self) -> None:
        """Raise ConfigurationError unless all Jira credentials are present."""

        missing = self.missing_jira_settings()
        if missing:
            raise ConfigurationError(
                f"Missing Jira configuration: {', '.join(missing)}. "
                "Run 'jira-beads-sync configure' or set the environment variables."
            )
