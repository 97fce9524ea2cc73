"""Runtime settings for aumai-convchaos.

Values are read from ``CONVCHAOS_``-prefixed environment variables or a
``.env`` file.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SIGNIFICANCE_LEVELS = (0.10, 0.05, 0.01)


class ChaosSettings(BaseSettings):
    """Process-wide defaults for injection runs and distribution checks."""

    model_config = SettingsConfigDict(
        env_prefix="CONVCHAOS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    default_seed: int | None = Field(
        default=None,
        description="Seed used when no configuration carries one; None derives one from the clock.",
    )
    validator_trials: int = Field(default=1000, gt=0)
    validator_messages: int = Field(default=100, gt=0)
    validator_agents: int = Field(default=4, gt=0)
    validator_seed: int = 1
    significance: float = Field(default=0.05, description="One of 0.10, 0.05 or 0.01.")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"

    @field_validator("significance")
    @classmethod
    def _check_significance(cls, value: float) -> float:
        if value not in SIGNIFICANCE_LEVELS:
            raise ValueError(f"significance must be one of {SIGNIFICANCE_LEVELS}, got {value}.")
        return value


@lru_cache
def get_settings() -> ChaosSettings:
    """Return the cached settings instance."""
    return ChaosSettings()


__all__ = ["SIGNIFICANCE_LEVELS", "ChaosSettings", "get_settings"]
