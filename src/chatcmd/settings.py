from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import TomlConfigSettingsSource

from .commands.configuration import (
    DEFAULT_PREFIX,
    DEFAULT_SEPARATORS,
    CommandConfiguration,
)
from .commands.module import DEFAULT_FAILURE_BUFFER
from .commands.parse import SplitPolicy
from .config import ConfigError, read_config, resolve_config_path


class CommandSettings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="forbid",
        env_prefix="CHATCMD__",
        env_nested_delimiter="__",
    )

    prefix: str = DEFAULT_PREFIX
    separators: list[str] = Field(
        default_factory=lambda: sorted(DEFAULT_SEPARATORS)
    )
    split_policy: SplitPolicy = SplitPolicy.DROP_EMPTY
    failure_buffer: int = Field(default=DEFAULT_FAILURE_BUFFER, ge=0)

    @field_validator("prefix", mode="before")
    @classmethod
    def _validate_prefix(cls, value: Any) -> Any:
        if not isinstance(value, str):
            raise ValueError("prefix must be a string")
        return value

    @field_validator("separators")
    @classmethod
    def _validate_separators(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("separators must not be empty")
        for separator in value:
            if len(separator) != 1:
                raise ValueError(
                    f"separators must be single characters, got {separator!r}"
                )
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    def to_configuration(self) -> CommandConfiguration:
        return CommandConfiguration.create(
            self.prefix,
            separators=self.separators,
            split_policy=self.split_policy,
        )


def load_settings(path: str | Path | None = None) -> tuple[CommandSettings, Path]:
    cfg_path = resolve_config_path(path)
    # surfaces a missing file or malformed TOML as a ConfigError
    read_config(cfg_path)
    return _load_settings_from_path(cfg_path), cfg_path


def load_settings_if_exists(
    path: str | Path | None = None,
) -> tuple[CommandSettings, Path] | None:
    cfg_path = resolve_config_path(path)
    if not cfg_path.exists():
        return None
    return load_settings(cfg_path)


def _load_settings_from_path(cfg_path: Path) -> CommandSettings:
    cfg = dict(CommandSettings.model_config)
    cfg["toml_file"] = cfg_path
    Bound = type(
        "CommandSettingsBound",
        (CommandSettings,),
        {"model_config": SettingsConfigDict(**cfg)},
    )
    try:
        return Bound()
    except ValidationError as exc:
        raise ConfigError(f"Invalid config in {cfg_path}: {exc}") from exc
