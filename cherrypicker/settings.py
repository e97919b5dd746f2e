"""Settings resolution: env vars, .env, then ~/.config/cherrypicker/config.toml."""

from functools import lru_cache
from pathlib import Path

import tomlkit
import typer
from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

CONFIG_PATH = Path.home() / ".config" / "cherrypicker" / "config.toml"


class CherrypickerSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CHERRYPICKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # GitHub
    github_token: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("github_token", "CHERRYPICKER_GITHUB_TOKEN", "GITHUB_TOKEN"),
    )
    github_auth: str = "token"  # "token" | "gh-cli"
    per_page: int = Field(default=100, ge=1, le=100)
    detail_workers: int = Field(default=4, ge=1)  # concurrent PR detail fetches
    http_timeout: float = 30.0

    # Local repository
    head_branch: str = "main"
    remote: str = "origin"

    log_level: str = "WARNING"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # config.toml values arrive as init kwargs; env and .env override them
        return env_settings, dotenv_settings, init_settings, file_secret_settings


@lru_cache(maxsize=1)
def _load_toml() -> tomlkit.TOMLDocument:
    """Load ~/.config/cherrypicker/config.toml, returning empty document if missing."""
    if not CONFIG_PATH.exists():
        return tomlkit.document()
    return tomlkit.load(CONFIG_PATH.open())


def get_settings(require_token: bool = False) -> CherrypickerSettings:
    """Return settings with the config file as base defaults.

    Precedence (highest to lowest):
    1. CHERRYPICKER_* env vars (GITHUB_TOKEN also accepted for the token)
    2. .env in cwd
    3. ~/.config/cherrypicker/config.toml
    4. field defaults
    """
    file_defaults = {k: v for k, v in _load_toml().unwrap().items() if k in CherrypickerSettings.model_fields}
    settings = CherrypickerSettings(**file_defaults)

    if require_token and settings.github_auth == "token" and not settings.github_token:
        typer.echo(
            "Missing GitHub credentials. Set GITHUB_TOKEN (or CHERRYPICKER_GITHUB_TOKEN), "
            f"github_token in {CONFIG_PATH}, or github_auth = \"gh-cli\" to use the gh CLI.",
            err=True,
        )
        raise typer.Exit(1)

    return settings
