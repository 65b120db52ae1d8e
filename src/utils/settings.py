"""Lightweight settings layer wrapping environment variables with validation.

Does not replace AppConfig; augments it. Use get_settings() where env-driven behavior
is needed (logging format, timing toggle, spatial index strategy threshold).
All variables use the ``LABVIZ_`` prefix, e.g. ``LABVIZ_LOG_LEVEL=DEBUG``.
"""
from __future__ import annotations
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix='LABVIZ_', case_sensitive=False, extra='ignore')

    log_level: str = Field("INFO")
    json_logging: bool = Field(False)
    # Demote detector-level info logs to debug unless explicitly allowed
    verbose_detector_logs: bool = Field(False)
    enable_timing: bool = Field(True)
    # Atom count at or below which SpatialIndex uses vectorized brute force instead of a KD-tree
    spatial_index_brute_force_limit: int = Field(5000, ge=0)
    default_preset: str = Field("literature_default")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
