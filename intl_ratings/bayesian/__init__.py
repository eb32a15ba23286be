"""
Bayesian models module.

Provides:
- Hierarchical Poisson team rating model
- Prior and sampler configuration
- Convergence diagnostics
- Rating aggregation and match prediction
"""

from intl_ratings.bayesian.priors import (
    RatingPriors,
    ModelConfig,
    DEFAULT_CONFIG,
)
from intl_ratings.bayesian.diagnostics import (
    FitDiagnostics,
    check_convergence,
    compute_diagnostics,
)
from intl_ratings.bayesian.model import (
    ModelInput,
    PosteriorDraws,
    TeamRatingModel,
    score_log_rates,
)
from intl_ratings.bayesian.ratings import (
    Rating,
    RatingAggregator,
    read_ratings,
    write_ratings,
)
from intl_ratings.bayesian.prediction import (
    MatchPrediction,
    MatchPredictor,
)

__all__ = [
    # Priors
    "RatingPriors",
    "ModelConfig",
    "DEFAULT_CONFIG",
    # Diagnostics
    "FitDiagnostics",
    "check_convergence",
    "compute_diagnostics",
    # Model
    "ModelInput",
    "PosteriorDraws",
    "TeamRatingModel",
    "score_log_rates",
    # Ratings
    "Rating",
    "RatingAggregator",
    "read_ratings",
    "write_ratings",
    # Prediction
    "MatchPrediction",
    "MatchPredictor",
]
