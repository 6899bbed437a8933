"""
Root conftest — isolate timedevents environment variables and the
process-wide scheduler so tests are not affected by a developer's shell,
.env file, or by each other.
"""
import os

import pytest


@pytest.fixture(autouse=True)
def _isolate_timedevents_env(monkeypatch):
    """Remove TIMEDEVENTS_* env vars and disable .env loading for every test,
    so Settings() behaves as if nothing is configured unless the test says so."""
    for var in list(os.environ):
        if var.upper().startswith("TIMEDEVENTS_"):
            monkeypatch.delenv(var, raising=False)

    import timedevents.config.settings as settings_module
    from pydantic_settings import SettingsConfigDict
    patched_config = SettingsConfigDict(
        env_prefix="TIMEDEVENTS_",
        env_file=None,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )
    monkeypatch.setattr(settings_module.Settings, "model_config", patched_config)
    settings_module.reset_settings()


@pytest.fixture(autouse=True)
def _reset_default_scheduler():
    """Never let one test's process-wide scheduler leak into the next."""
    yield
    from timedevents.scheduler.default import shutdown_default_scheduler
    shutdown_default_scheduler()
