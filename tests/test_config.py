"""Tests for environment configuration."""

import pytest

from mockpubsub import PubSub
from mockpubsub.config import DEFAULT_LOG_LEVEL, DEFAULT_PROJECT_ID, PROJECT_ID_VARS, Settings


@pytest.fixture
def clean_env(monkeypatch):
    for var in PROJECT_ID_VARS + ("PUBSUB_LOG_LEVEL",):
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = Settings.from_env()
    assert settings.project_id == DEFAULT_PROJECT_ID
    assert settings.log_level == DEFAULT_LOG_LEVEL


def test_gcp_project_id_fallback(clean_env):
    clean_env.setenv("GCP_PROJECT_ID", "gcp-project")
    assert Settings.from_env().project_id == "gcp-project"


def test_pubsub_project_id_wins(clean_env):
    clean_env.setenv("GOOGLE_CLOUD_PROJECT", "cloud-project")
    clean_env.setenv("PUBSUB_PROJECT_ID", "emulator-project")
    assert Settings.from_env().project_id == "emulator-project"


def test_blank_project_id_is_skipped(clean_env):
    clean_env.setenv("PUBSUB_PROJECT_ID", "   ")
    clean_env.setenv("GOOGLE_CLOUD_PROJECT", "cloud-project")
    assert Settings.from_env().project_id == "cloud-project"


def test_log_level(clean_env):
    clean_env.setenv("PUBSUB_LOG_LEVEL", "debug")
    assert Settings.from_env().log_level == "DEBUG"


def test_invalid_log_level_falls_back(clean_env):
    clean_env.setenv("PUBSUB_LOG_LEVEL", "chatty")
    assert Settings.from_env().log_level == DEFAULT_LOG_LEVEL


def test_client_uses_settings_project():
    pubsub = PubSub(settings=Settings(project_id="from-settings"))
    assert pubsub.project_id == "from-settings"
    assert pubsub.topic("t1").name == "projects/from-settings/topics/t1"


def test_explicit_project_overrides_settings():
    pubsub = PubSub("explicit", settings=Settings(project_id="from-settings"))
    assert pubsub.project_id == "explicit"
