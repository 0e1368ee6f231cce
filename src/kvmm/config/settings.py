from __future__ import annotations

import json
import os
import tomllib
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from .paths import default_config_path, default_data_dir, expand_path

CONFIG_ENV_VAR = "KVMM_CONFIG"


class DatabaseConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    path: str = Field(default_factory=lambda: str(default_data_dir()))


class ThumbnailConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    max_width: int = Field(default=400, ge=1)
    max_height: int = Field(default=300, ge=1)
    quality: int = Field(default=85, ge=1, le=100)
    max_upload_bytes: int = Field(default=10 << 20, ge=1)
    fetch_timeout: float = Field(default=30.0, gt=0)


class ProbeConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    timeout: float = Field(default=2.0, gt=0)
    default_port: int = Field(default=80, ge=1, le=65535)


class Settings(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    thumbnails: ThumbnailConfig = Field(default_factory=ThumbnailConfig)
    probe: ProbeConfig = Field(default_factory=ProbeConfig)


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


def data_dir_from_settings(settings: Settings) -> Path:
    return expand_path(settings.database.path)


def toml_string(value: str) -> str:
    # TOML basic strings forbid a raw DEL, which json leaves unescaped
    return json.dumps(value, ensure_ascii=False).replace("\x7f", "\\u007f")


def render_settings_toml(settings: Settings) -> str:
    thumbs = settings.thumbnails
    lines = [
        "# kvmm configuration",
        "",
        "[database]",
        f"path = {toml_string(settings.database.path)}",
        "",
        "[thumbnails]",
        f"max_width = {thumbs.max_width}",
        f"max_height = {thumbs.max_height}",
        f"quality = {thumbs.quality}",
        f"max_upload_bytes = {thumbs.max_upload_bytes}",
        f"fetch_timeout = {thumbs.fetch_timeout}",
        "",
        "[probe]",
        f"timeout = {settings.probe.timeout}",
        f"default_port = {settings.probe.default_port}",
        "",
    ]
    return "\n".join(lines)


def write_settings(settings: Settings, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_settings_toml(settings), encoding="utf-8")
