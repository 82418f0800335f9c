"""Tests for cpstress.settings module."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from cpstress.settings import (
    CpstressSettings,
    get_settings,
    limits_from_settings,
    reload_settings,
)

_VARS = [
    "CPSTRESS_LOG_LEVEL",
    "CPSTRESS_LOG_FORMAT",
    "CPSTRESS_HOME",
    "CPSTRESS_TIMEOUT_MS",
    "CPSTRESS_MAX_OUTPUT_BYTES",
    "CPSTRESS_NUM_TESTS",
    "CPSTRESS_CPP_COMPILE_COMMAND",
    "CPSTRESS_C_COMPILE_COMMAND",
    "CPSTRESS_COMPILE_TIMEOUT_S",
]


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> pytest.MonkeyPatch:
    """No CPSTRESS_* variables and no stray .env file."""
    for var in _VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


class TestCpstressSettings:
    """Test the CpstressSettings class."""

    def test_default_values(self, clean_env: pytest.MonkeyPatch) -> None:
        settings = CpstressSettings()
        assert settings.log_level == "INFO"
        assert settings.log_format == "%(asctime)s %(levelname)s %(name)s: %(message)s"
        assert settings.home == ".cpstress"
        assert settings.timeout_ms == 2000
        assert settings.max_output_bytes == 512 * 1024 * 1024
        assert settings.num_tests == 100
        assert "{source}" in settings.cpp_compile_command
        assert "{output}" in settings.cpp_compile_command
        assert settings.compile_timeout_s == 60

    def test_environment_variables(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("CPSTRESS_TIMEOUT_MS", "750")
        clean_env.setenv("CPSTRESS_HOME", "/tmp/somewhere")
        clean_env.setenv("CPSTRESS_NUM_TESTS", "5")
        settings = CpstressSettings()
        assert settings.timeout_ms == 750
        assert settings.home == "/tmp/somewhere"
        assert settings.num_tests == 5

    def test_env_file(self, clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("CPSTRESS_LOG_LEVEL=DEBUG\n", encoding="utf-8")
        assert CpstressSettings().log_level == "DEBUG"

    def test_rejects_non_positive_timeout(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("CPSTRESS_TIMEOUT_MS", "0")
        with pytest.raises(ValidationError):
            CpstressSettings()

    def test_limits_from_settings(self, clean_env: pytest.MonkeyPatch) -> None:
        limits = limits_from_settings(CpstressSettings(timeout_ms=300, max_output_bytes=1024))
        assert limits.timeout_ms == 300
        assert limits.max_output_bytes == 1024
        assert limits.timeout_s == pytest.approx(0.3)


class TestSettingsCache:
    """Test get_settings / reload_settings."""

    def test_get_settings_is_cached(self, clean_env: pytest.MonkeyPatch) -> None:
        reload_settings()
        assert get_settings() is get_settings()

    def test_reload_picks_up_changes(self, clean_env: pytest.MonkeyPatch) -> None:
        first = reload_settings()
        clean_env.setenv("CPSTRESS_NUM_TESTS", "7")
        assert get_settings() is first
        assert reload_settings().num_tests == 7
        clean_env.delenv("CPSTRESS_NUM_TESTS")
        reload_settings()
