from __future__ import annotations

import os
from pathlib import Path
from urllib.parse import urlparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RemoteConfig(BaseModel):
    url: str = "http://127.0.0.1:54321"
    anon_key: str = ""
    """Public anon key sent as ``apikey``; row-level policies decide what it may do."""
    table: str = "feedback"
    timeout_s: float = Field(default=10.0, gt=0)

    @field_validator("url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("remote.url must be an http(s) URL")
        return value.rstrip("/")

    @property
    def project_id(self) -> str:
        """First label of the host, e.g. ``abcd`` for ``https://abcd.supabase.co``."""
        host = urlparse(self.url).hostname or ""
        return host.split(".")[0]


class SyncConfig(BaseModel):
    """Background timers of the kiosk runtime."""

    flush_interval_s: int = Field(default=30, gt=0)
    probe_interval_s: int = Field(default=15, gt=0)
    summary_refresh_s: int = Field(default=15, gt=0)


class MessagesConfig(BaseModel):
    success_ms: int = Field(default=2500, gt=0)
    queued_ms: int = Field(default=3200, gt=0)
    denied_ms: int = Field(default=7000, gt=0)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_output: bool = False


class KioskSettings(BaseSettings):
    kiosk_id: str = "kiosk"
    data_dir: Path = Path("./data")
    timezone: str = "Europe/Lisbon"
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    messages: MessagesConfig = Field(default_factory=MessagesConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="KIOSK_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone: {value}") from exc
        return value

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def db_path(self) -> Path:
        return self.data_dir / "kiosk.db"


def _coerce_env_value(value: str) -> object:
    parsed = yaml.safe_load(value)
    return value if parsed is None else parsed


def _set_nested(mapping: dict[str, object], path: list[str], value: object) -> None:
    current = mapping
    for key in path[:-1]:
        existing = current.get(key)
        if not isinstance(existing, dict):
            existing = {}
            current[key] = existing
        current = existing
    current[path[-1]] = value


def _apply_env_overrides(data: dict[str, object]) -> dict[str, object]:
    merged = dict(data)
    prefix = "KIOSK_"
    for key, raw_value in os.environ.items():
        if not key.startswith(prefix):
            continue
        path = key[len(prefix) :].lower().split("__")
        _set_nested(merged, path, _coerce_env_value(raw_value))
    return merged


def load_config(path: str | Path = "config/kiosk.yaml") -> KioskSettings:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"config file not found: {config_path}")

    loaded = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(loaded, dict):
        raise ValueError("config file must contain a top-level mapping")

    raw = loaded.get("kiosk", loaded)
    if not isinstance(raw, dict):
        raise ValueError("kiosk config section must be a mapping")

    merged = _apply_env_overrides(raw)
    return KioskSettings.model_validate(merged)


__all__ = [
    "KioskSettings",
    "LoggingConfig",
    "MessagesConfig",
    "RemoteConfig",
    "SyncConfig",
    "load_config",
]
