# src/cpstress/settings.py
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cpstress.models.execution import DEFAULT_MAX_OUTPUT_BYTES, DEFAULT_TIMEOUT_MS, Limits


class CpstressSettings(BaseSettings):
    """
    Centralized configuration for cpstress.

    Convention:
      - All variables use the CPSTRESS_ prefix (e.g. CPSTRESS_TIMEOUT_MS=3000).
      - A local .env file is honoured; real environment variables win.
    """

    model_config = SettingsConfigDict(
        env_prefix="CPSTRESS_",
        env_file=".env",
        extra="ignore",
    )

    # General
    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    home: str = ".cpstress"

    # Per-process limits applied to generator and solution runs
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    max_output_bytes: int = Field(default=DEFAULT_MAX_OUTPUT_BYTES, gt=0)

    # Default number of generated cases per session (CLI)
    num_tests: int = Field(default=100, ge=0)

    # Toolchain command templates; {source} and {output} are shell-quoted
    cpp_compile_command: str = "g++ -std=c++17 -O2 -Wall {source} -o {output}"
    c_compile_command: str = "gcc -O2 -Wall {source} -o {output}"
    compile_timeout_s: int = Field(default=60, gt=0)


def limits_from_settings(settings: CpstressSettings) -> Limits:
    """Execution limits derived from the configured timeout and output cap."""
    return Limits(timeout_ms=settings.timeout_ms, max_output_bytes=settings.max_output_bytes)


@lru_cache(maxsize=1)
def get_settings() -> CpstressSettings:
    """
    Load settings once (env/.env) and cache.
    """
    return CpstressSettings()


def reload_settings() -> CpstressSettings:
    """
    Clear cache and reload; useful in tests.
    """
    get_settings.cache_clear()
    return get_settings()
