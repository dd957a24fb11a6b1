"""Tests for environment-driven configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from habitkeep.config import BaseConfig, TestConfig

ENV_VARS = [
    "HABITKEEP_DATA_DIR",
    "HABITKEEP_DATABASE_URL",
    "HABITKEEP_DEV_MODE",
    "HABITKEEP_STORAGE_KEY",
    "HABITKEEP_SORT_MODE",
    "HABITKEEP_NEWEST_FIRST",
    "HABITKEEP_CELEBRATION_SECONDS",
    "HABITKEEP_ROLLOVER_ENABLED",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv("HABITKEEP_DATA_DIR", str(tmp_path / "data"))
    config = BaseConfig()

    assert config.DATA_DIR == (tmp_path / "data").resolve()
    assert config.DATA_DIR.is_dir()
    assert config.DATABASE_URL == f"sqlite:///{config.DATA_DIR / 'habitkeep.db'}"
    assert config.STORAGE_KEY == "habits"
    assert config.SORT_MODE == "created"
    assert config.NEWEST_FIRST is True
    assert config.CELEBRATION_SECONDS == 1.5
    assert config.ROLLOVER_ENABLED is True
    assert config.DEV_MODE is True


def test_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("HABITKEEP_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("HABITKEEP_DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.setenv("HABITKEEP_SORT_MODE", " Streak ")
    monkeypatch.setenv("HABITKEEP_NEWEST_FIRST", "no")
    monkeypatch.setenv("HABITKEEP_DEV_MODE", "0")

    config = BaseConfig()

    assert config.DATABASE_URL == "sqlite:///:memory:"
    assert config.SORT_MODE == "streak"
    assert config.NEWEST_FIRST is False
    assert config.DEV_MODE is False


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("HABITKEEP_SORT_MODE", "alphabetical"),
        ("HABITKEEP_CELEBRATION_SECONDS", "-1"),
        ("HABITKEEP_CELEBRATION_SECONDS", "soon"),
        ("HABITKEEP_STORAGE_KEY", "   "),
    ],
)
def test_invalid_values_raise(tmp_path, monkeypatch, name, value):
    monkeypatch.setenv("HABITKEEP_DATA_DIR", str(tmp_path))
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        BaseConfig()


def test_test_config_uses_given_dir_and_disables_rollover(tmp_path):
    config = TestConfig(tmp_path / "t")

    assert Path(config.DATA_DIR) == tmp_path / "t"
    assert config.ROLLOVER_ENABLED is False


def test_test_config_without_dir_uses_temp_dir(monkeypatch):
    monkeypatch.setenv("HABITKEEP_DATA_DIR", "should-not-be-used")
    config = TestConfig()

    assert Path(config.DATA_DIR).name.startswith("habitkeep-test-")
    assert Path(config.DATA_DIR).is_dir()


def test_package_exports_only_used_configs():
    import habitkeep

    assert set(habitkeep.__all__) == {"AppContext", "BaseConfig", "TestConfig", "create_app_context"}
    assert not hasattr(habitkeep, "DevConfig")
