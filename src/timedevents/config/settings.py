"""
config/settings.py — timedevents Runtime Settings

Merges config.yaml (defaults/structure) with environment variables.
Pydantic-powered — all fields are validated and typed.

  - SchedulerConfig validates thread naming, shutdown timeout and the
    default dispatch target at parse time
  - validate_all() performs full startup validation and raises ConfigError
    with a clear, human-readable message listing every problem found
  - load_settings() respects TIMEDEVENTS_CONFIG env var as a fallback
    when no explicit config_path argument is given
"""

from __future__ import annotations

import os
import threading as _threading
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, field_validator
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from timedevents.exceptions import ConfigError


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

_VALID_TARGETS = {"background", "foreground"}
_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


# ─────────────────────────────────────────────────────────────────────────────
# Sub-models
# ─────────────────────────────────────────────────────────────────────────────

class SchedulerConfig(BaseModel):
    thread_name: str = "timed-events"
    daemon: bool = True
    shutdown_timeout_seconds: float = 5.0
    default_target: str = "background"

    @field_validator("thread_name")
    @classmethod
    def _non_empty_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("scheduler.thread_name must not be empty")
        return v.strip()

    @field_validator("shutdown_timeout_seconds")
    @classmethod
    def _positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("scheduler.shutdown_timeout_seconds must be > 0")
        return v

    @field_validator("default_target")
    @classmethod
    def _valid_target(cls, v: str) -> str:
        lower = v.lower()
        if lower not in _VALID_TARGETS:
            raise ValueError(
                f"scheduler.default_target must be one of "
                f"{sorted(_VALID_TARGETS)}, got '{v}'"
            )
        return lower


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_dir: str = "./data/logs"
    max_file_size_mb: int = 10
    backup_count: int = 5
    console_output: bool = True
    json_format: Optional[bool] = None

    @field_validator("level")
    @classmethod
    def _valid_log_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"logging.level '{v}' is not valid. "
                f"Must be one of: {sorted(_VALID_LOG_LEVELS)}"
            )
        return upper

    @field_validator("max_file_size_mb")
    @classmethod
    def _positive_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("logging.max_file_size_mb must be >= 1")
        return v


# ─────────────────────────────────────────────────────────────────────────────
# Root Settings
# ─────────────────────────────────────────────────────────────────────────────

class Settings(BaseSettings):
    """
    timedevents runtime settings.

    Priority (highest to lowest):
      1. Environment variables (TIMEDEVENTS_SCHEDULER__THREAD_NAME=...)
      2. .env file
      3. config.yaml
      4. Field defaults
    """

    model_config = SettingsConfigDict(
        env_prefix="TIMEDEVENTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # load_settings() passes config.yaml sections as init kwargs; they
        # must rank below the environment.
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    @field_validator("scheduler", mode="before")
    @classmethod
    def _coerce_scheduler(cls, v: Any) -> Any:
        return SchedulerConfig(**v) if isinstance(v, dict) else v

    @field_validator("logging", mode="before")
    @classmethod
    def _coerce_logging(cls, v: Any) -> Any:
        return LoggingConfig(**v) if isinstance(v, dict) else v

    # -- Convenience properties ----------------------------------------------

    @property
    def log_level(self) -> str:
        return self.logging.level.upper()

    @property
    def log_dir(self) -> Path:
        return Path(self.logging.log_dir)

    def validate_all(self) -> None:
        """
        Full startup validation. Raises ConfigError listing every problem found.

        Pydantic field validators catch type/value errors at parse time; this
        method catches problems that only show up once the whole object
        exists (e.g. an unwritable log directory).
        """
        errors: list[str] = []

        # ── Log directory must be creatable ──────────────────────────────────
        log_dir = self.log_dir
        if log_dir.exists() and not log_dir.is_dir():
            errors.append(
                f"logging.log_dir '{log_dir}' exists but is not a directory."
            )

        # ── Backup count ─────────────────────────────────────────────────────
        if self.logging.backup_count < 0:
            errors.append("logging.backup_count must be >= 0.")

        # ── Scheduler thread name must be printable ──────────────────────────
        if not self.scheduler.thread_name.isprintable():
            errors.append(
                "scheduler.thread_name contains non-printable characters."
            )

        # ── Report all errors together ───────────────────────────────────────
        if errors:
            numbered = "\n".join(f"  {i+1}. {e}" for i, e in enumerate(errors))
            raise ConfigError(
                f"\n\ntimedevents configuration invalid — {len(errors)} "
                f"problem(s) found:\n\n{numbered}\n\n"
                f"Fix the issues above in config/config.yaml or your "
                f"environment and restart.\n"
            )


# ─────────────────────────────────────────────────────────────────────────────
# Loader + singleton
# ─────────────────────────────────────────────────────────────────────────────

_singleton: Optional[Settings] = None
# Reentrant: get_settings() holds it while load_settings() re-acquires it.
_singleton_lock = _threading.RLock()

_KNOWN_SECTIONS = {"scheduler", "logging"}


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _resolve_config_path(config_path: str | Path | None) -> Path:
    """
    Resolve the config file path with this priority:
      1. Explicit config_path argument
      2. TIMEDEVENTS_CONFIG environment variable
      3. Default: config/config.yaml
    """
    if config_path is not None:
        return Path(config_path)
    env_path = os.environ.get("TIMEDEVENTS_CONFIG")
    if env_path:
        return Path(env_path)
    return Path("config/config.yaml")


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings by merging config.yaml with environment variables."""
    global _singleton
    yaml_data = _load_yaml(_resolve_config_path(config_path))
    init_kwargs = {k: v for k, v in yaml_data.items() if k in _KNOWN_SECTIONS}

    instance = Settings(**init_kwargs)
    with _singleton_lock:
        _singleton = instance
    return instance


def get_settings() -> Settings:
    """
    Return the global Settings singleton, loading it from the default
    config path on first use.
    """
    if _singleton is not None:
        return _singleton  # fast path — no lock needed once set
    with _singleton_lock:
        if _singleton is None:
            load_settings()
        return _singleton  # type: ignore[return-value]


def reset_settings() -> None:
    """Forget the cached singleton; the next get_settings() reloads."""
    global _singleton
    with _singleton_lock:
        _singleton = None
