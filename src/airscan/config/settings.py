from __future__ import annotations

import json
import os
import tomllib
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

from .paths import default_config_path, expand_path

CONFIG_ENV_VAR = "AIRSCAN_CONFIG"


class DiscoveryConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = True
    service_type: str = "_uscan._tcp.local."
    init_scan_time: float = Field(default=1.5, gt=0)
    info_timeout: float = Field(default=3.0, gt=0)
    ready_timeout: float = Field(default=5.0, gt=0)


class StaticDevice(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    name: str = Field(min_length=1)
    url: str

    @field_validator("url")
    @classmethod
    def _check_scheme(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"device URL must be http or https: {value!r}")
        return value


class Settings(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    devices: list[StaticDevice] = Field(default_factory=list)


def resolve_config_path(allow_missing: bool = False) -> tuple[Path, bool]:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        path = expand_path(env_path)
        if not allow_missing and not path.exists():
            raise FileNotFoundError(f"{CONFIG_ENV_VAR} points to missing file: {path}")
        return path, path.exists()

    path = default_config_path()
    return path, path.exists()


def load_settings(path: Path) -> Settings:
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in config file: {path}\n{exc}") from exc

    try:
        return Settings.model_validate(data or {})
    except ValidationError as exc:
        raise ValueError(f"Invalid config file: {path}\n{exc}") from exc


@lru_cache
def get_settings() -> Settings:
    path, exists = resolve_config_path(allow_missing=False)
    if exists:
        return load_settings(path)
    return Settings()


def _toml_string(value: str) -> str:
    return json.dumps(value)


def _toml_bool(value: bool) -> str:
    return "true" if value else "false"


def render_settings_toml(settings: Settings) -> str:
    discovery = settings.discovery
    lines = [
        "# airscan configuration",
        "",
        "[discovery]",
        f"enabled = {_toml_bool(discovery.enabled)}",
        f"service_type = {_toml_string(discovery.service_type)}",
        f"init_scan_time = {discovery.init_scan_time}",
        f"info_timeout = {discovery.info_timeout}",
        f"ready_timeout = {discovery.ready_timeout}",
        "",
    ]

    for device in settings.devices:
        lines.extend(
            [
                "[[devices]]",
                f"name = {_toml_string(device.name)}",
                f"url = {_toml_string(device.url)}",
                "",
            ]
        )

    return "\n".join(lines)


def write_settings(settings: Settings, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_settings_toml(settings))
