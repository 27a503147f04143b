"""Settings resolution with named profile support."""

import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path

import tomlkit
import typer
from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_PATH = Path.home() / ".config" / "gitjira" / "config.toml"


class GitJiraSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # GitLab
    gitlab_url: str | None = None  # e.g. https://gitlab.example.com
    gitlab_access_token: SecretStr | None = None

    # Jira
    jira_api_base_url: str | None = None  # e.g. https://acme.atlassian.net
    jira_user_email: str | None = None
    jira_api_token: SecretStr | None = None

    # Runtime
    http_timeout: float = 30.0
    board_page_size: int = 50
    project_cache_ttl: float = 24 * 60 * 60  # seconds
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("log_level", "GITJIRA_LOG_LEVEL"))
    log_json: bool = Field(default=False, validation_alias=AliasChoices("log_json", "GITJIRA_LOG_JSON"))

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Profile values arrive as init kwargs; env and .env take precedence over them.
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    @property
    def has_gitlab(self) -> bool:
        return bool(self.gitlab_url and self.gitlab_access_token)

    @property
    def has_jira(self) -> bool:
        return bool(self.jira_api_base_url and self.jira_user_email and self.jira_api_token)


@lru_cache(maxsize=1)
def _load_toml() -> tomlkit.TOMLDocument:
    """Load ~/.config/gitjira/config.toml, returning empty document if missing."""
    if not CONFIG_PATH.exists():
        return tomlkit.document()
    return tomlkit.load(CONFIG_PATH.open())


def _list_profiles(config: Mapping) -> list[str]:
    # tomlkit Table implements MutableMapping but not dict, so check Mapping
    return [k for k, v in config.items() if isinstance(v, Mapping)]


def get_settings(profile: str | None = None) -> GitJiraSettings:
    """Resolve the active profile and return a fully populated GitJiraSettings.

    Profile precedence (highest to lowest):
    1. profile argument (--profile CLI flag)
    2. GITJIRA_PROFILE env var
    3. default_profile key in ~/.config/gitjira/config.toml
    4. First profile defined in ~/.config/gitjira/config.toml

    Environment variables and .env always override values from the profile.
    """
    toml_config = _load_toml()

    active = (
        profile
        or os.environ.get("GITJIRA_PROFILE")
        or toml_config.get("default_profile")
        or ((_profiles := _list_profiles(toml_config)) and _profiles[0] or None)
    )

    profile_defaults: dict = {}
    if active:
        if active in toml_config and isinstance(toml_config[active], Mapping):
            profile_defaults = dict(toml_config[active])
        elif active not in toml_config:
            profiles = _list_profiles(toml_config)
            typer.echo(f"Profile '{active}' not found in {CONFIG_PATH}. Available: {profiles or '(none)'}", err=True)
            raise typer.Exit(1)

    settings = GitJiraSettings(**profile_defaults)

    if not settings.has_gitlab and not settings.has_jira:
        typer.echo(
            "Missing credentials. Set GITLAB_URL and GITLAB_ACCESS_TOKEN and/or "
            "JIRA_API_BASE_URL, JIRA_USER_EMAIL and JIRA_API_TOKEN, "
            f"or add them to the [{active or 'profile'}] section of {CONFIG_PATH}",
            err=True,
        )
        raise typer.Exit(1)

    return settings
