"""
Configuration management for the international team rating model.

Uses pydantic-settings for type-safe, validated configuration from environment.
"""

from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Input Data
    # =========================================================================
    results_file: Path = Field(
        default=Path("data/international_soccer_scores.csv"),
        description="Historical international results CSV",
    )
    schedule_files: dict[str, str] = Field(
        default={
            "data/euro2024_schedule.csv": "European Championship",
            "data/copa2024_schedule.csv": "Copa America",
        },
        description="In-progress tournament schedule CSV -> tournament label",
    )
    history_start: date = Field(
        default=date(2018, 1, 1),
        description="Earliest historical match date retained for training",
    )
    min_team_matches: int = Field(
        default=20,
        ge=1,
        description="Appearances a team needs in the historical window to be kept",
    )

    # =========================================================================
    # Sampler Settings
    # =========================================================================
    n_chains: int = Field(default=3, ge=1)
    n_iterations: int = Field(
        default=2000,
        ge=2,
        description="Total iterations per chain, warmup included",
    )
    n_warmup: int = Field(
        default=500,
        ge=1,
        description="Adaptation iterations per chain, discarded from the posterior",
    )
    target_accept: float = Field(default=0.95, gt=0.0, lt=1.0)
    random_seed: int = Field(default=73097)
    n_cores: Optional[int] = Field(
        default=None,
        ge=1,
        description="Parallel chain workers (defaults to min(chains, CPU count))",
    )

    # =========================================================================
    # Convergence Gate
    # =========================================================================
    max_rhat: float = Field(default=1.05, gt=1.0)
    max_divergence_fraction: float = Field(
        default=0.01,
        ge=0.0,
        le=1.0,
        description="Largest tolerated share of divergent post-warmup transitions",
    )
    min_ess_bulk: float = Field(
        default=400.0,
        ge=0.0,
        description="Bulk ESS below this is logged as a warning",
    )

    # =========================================================================
    # Outputs
    # =========================================================================
    ratings_file: Path = Field(default=Path("predictions/ratings.csv"))
    artifacts_dir: Path = Field(default=Path("model_objects"))

    # =========================================================================
    # Logging
    # =========================================================================
    log_level: str = Field(default="INFO")
    log_file: Optional[Path] = Field(default=None)

    # =========================================================================
    # Validation
    # =========================================================================
    @field_validator("artifacts_dir", mode="before")
    @classmethod
    def validate_artifacts_dir(cls, v: str | Path) -> Path:
        """Convert string to Path and create if needed."""
        path = Path(v)
        path.mkdir(parents=True, exist_ok=True)
        return path

    @field_validator("log_file", mode="before")
    @classmethod
    def validate_log_file(cls, v: Optional[str | Path]) -> Optional[Path]:
        """Convert string to Path and create parent dir if needed."""
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return path

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode="after")
    def validate_warmup(self) -> "Settings":
        """Warmup must leave at least one retained draw per chain."""
        if self.n_warmup >= self.n_iterations:
            raise ValueError(
                f"n_warmup ({self.n_warmup}) must be smaller than "
                f"n_iterations ({self.n_iterations})"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Convenience exports
settings = get_settings()
