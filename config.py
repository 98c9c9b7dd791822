"""
config.py
─────────
Reads config.json and turns its sections into typed settings.

    {
      "discord":   {"token": "...", "guild_id": "..."},
      "backup":    {"saveImages": "base64",
                    "doNotBackup": [{"channels": ["logs", "123456789"]}],
                    "maxMessagesPerChannel": 10,
                    "output": "backup.json"},
      "scheduler": {"maxConcurrent": 2, "minInterval": 0.5,
                    "retryAttempts": 1, "retryBackoff": 1.0}
    }

Every key is optional.
"""

from __future__ import annotations
import json
import os
from dataclasses import dataclass, field

from errors import ConfigError, RemoteFetchError
from exclusion import ExclusionSpec
from scheduler import RetryPolicy, Scheduler

CONFIG_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), "config.json")


def load_config(path: str = CONFIG_FILE) -> dict:
    if os.path.exists(path):
        with open(path, encoding="utf-8") as f:
            try:
                return json.load(f)
            except json.JSONDecodeError as exc:
                raise ConfigError(f"{path} is not valid JSON: {exc}") from exc
    return {}


def _number(section: dict, key: str, default, cast, minimum):
    raw = section.get(key, default)
    try:
        value = cast(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"'{key}' must be a number, got {raw!r}") from None
    if value < minimum:
        raise ConfigError(f"'{key}' must be >= {minimum}, got {value}")
    return value


@dataclass
class BackupOptions:
    save_images: str | None = None  # "base64" inlines emoji images
    do_not_backup: list[dict] = field(default_factory=list)
    max_messages_per_channel: int = 10
    output: str = "backup.json"

    @property
    def inline_images(self) -> bool:
        return self.save_images == "base64"

    @property
    def exclusions(self) -> ExclusionSpec:
        return ExclusionSpec.from_options(self.do_not_backup)

    @classmethod
    def from_dict(cls, cfg: dict) -> BackupOptions:
        do_not_backup = cfg.get("doNotBackup") or []
        if not isinstance(do_not_backup, list):
            raise ConfigError("'doNotBackup' must be a list of {\"channels\": [...]}")
        for entry in do_not_backup:
            if not isinstance(entry, dict):
                raise ConfigError(f"'doNotBackup' entries must be objects, got {entry!r}")
            if "channels" in entry and not isinstance(entry["channels"], list):
                raise ConfigError("'doNotBackup.channels' must be a list of names or ids")
        return cls(
            save_images=cfg.get("saveImages"),
            do_not_backup=do_not_backup,
            max_messages_per_channel=_number(cfg, "maxMessagesPerChannel", 10, int, 0),
            output=cfg.get("output") or "backup.json",
        )


@dataclass
class SchedulerSettings:
    max_concurrent: int = 1
    min_interval: float = 0.5
    retry_attempts: int = 1
    retry_backoff: float = 1.0

    @classmethod
    def from_dict(cls, cfg: dict) -> SchedulerSettings:
        return cls(
            max_concurrent=_number(cfg, "maxConcurrent", 1, int, 1),
            min_interval=_number(cfg, "minInterval", 0.5, float, 0),
            retry_attempts=_number(cfg, "retryAttempts", 1, int, 1),
            retry_backoff=_number(cfg, "retryBackoff", 1.0, float, 0),
        )

    def build(self) -> Scheduler:
        retry = RetryPolicy(
            attempts=self.retry_attempts,
            backoff=self.retry_backoff,
            retry_on=(RemoteFetchError,),
        )
        return Scheduler(
            max_concurrent=self.max_concurrent,
            min_interval=self.min_interval,
            retry=retry,
        )
