"""
Prior configuration for the team rating model.

Contains weakly informative priors for:
- Pooling scale of team ability (alpha)
- Pooling location and scale of team home advantage (delta)

These priors keep the hierarchical geometry tame while letting the data
decide how far teams spread.
"""

import os
from dataclasses import dataclass
from typing import Optional

from intl_ratings.config import Settings, settings as default_settings


@dataclass
class RatingPriors:
    """
    Prior scales for the rating model.

    All values are on the log-rate scale.
    """

    # Between-team spread of ability: HalfNormal scale
    # 0.5 lets the best and worst sides differ by a few goals per match
    sigma_alpha_scale: float = 0.5

    # Population mean home advantage: Normal(mean, sd)
    # exp(0.2) ≈ 1.22, i.e. ~22% more goals at home
    home_advantage_mean: float = 0.2
    home_advantage_sd: float = 0.2

    # Between-team spread of home advantage: HalfNormal scale
    sigma_delta_scale: float = 0.25


@dataclass
class ModelConfig:
    """
    Configuration for posterior sampling.
    """

    # Priors
    priors: Optional[RatingPriors] = None

    # Sampling parameters
    n_chains: int = 3
    n_iterations: int = 2000  # per chain, warmup included
    n_warmup: int = 500
    target_accept: float = 0.95
    n_cores: Optional[int] = None

    # Random seed for reproducibility
    random_seed: int = 73097

    # Convergence gate
    max_rhat: float = 1.05
    max_divergence_fraction: float = 0.01
    min_ess_bulk: float = 400.0

    progressbar: bool = False

    def __post_init__(self):
        if self.priors is None:
            self.priors = RatingPriors()
        if self.n_chains < 1:
            raise ValueError(f"n_chains must be positive, got {self.n_chains}")
        if not 0 < self.n_warmup < self.n_iterations:
            raise ValueError(
                f"n_warmup ({self.n_warmup}) must be in (0, n_iterations={self.n_iterations})"
            )
        if not 0.0 < self.target_accept < 1.0:
            raise ValueError(f"target_accept must be in (0, 1), got {self.target_accept}")

    @property
    def n_draws(self) -> int:
        """Post-warmup draws kept per chain."""
        return self.n_iterations - self.n_warmup

    @property
    def cores(self) -> int:
        if self.n_cores is not None:
            return max(1, min(self.n_cores, self.n_chains))
        return max(1, min(self.n_chains, os.cpu_count() or 1))

    @classmethod
    def from_settings(cls, s: Optional[Settings] = None) -> "ModelConfig":
        """Build a sampler configuration from application settings."""
        s = s or default_settings
        return cls(
            n_chains=s.n_chains,
            n_iterations=s.n_iterations,
            n_warmup=s.n_warmup,
            target_accept=s.target_accept,
            n_cores=s.n_cores,
            random_seed=s.random_seed,
            max_rhat=s.max_rhat,
            max_divergence_fraction=s.max_divergence_fraction,
            min_ess_bulk=s.min_ess_bulk,
        )


# Default configuration
DEFAULT_CONFIG = ModelConfig()
