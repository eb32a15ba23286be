"""
Rating aggregation: posterior draws to a ranked rating table.

    net_rating = mean(alpha) + |mean(delta)|

Teams are ordered by net rating, highest first, with ties broken by name.
"""

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List

import numpy as np
import pandas as pd

from intl_ratings.bayesian.model import PosteriorDraws
from intl_ratings.constants import RATING_COLUMNS
from intl_ratings.exceptions import AggregationError
from intl_ratings.features.registry import TeamRegistry
from intl_ratings.utils import get_logger

logger = get_logger("bayesian.ratings")


@dataclass(frozen=True)
class Rating:
    """Point rating for one team."""

    team: str
    team_id: int
    alpha: float
    delta: float
    net_rating: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class RatingAggregator:
    """
    Reduces posterior draws to one rating per registered team.

    Usage:
        aggregator = RatingAggregator(registry)
        ratings = aggregator.aggregate(draws)
    """

    def __init__(self, registry: TeamRegistry):
        self.registry = registry

    def _team_columns(self, draws: PosteriorDraws) -> np.ndarray:
        """
        Column of each registered team in the draw arrays.

        Raises:
            AggregationError: If draws and registry disagree on the team set
        """
        if draws.alpha.shape != draws.delta.shape:
            raise AggregationError(
                f"alpha draws {draws.alpha.shape} and delta draws {draws.delta.shape} differ"
            )
        if draws.n_draws == 0:
            raise AggregationError("Posterior ensemble is empty")
        if len(draws.team_names) != draws.n_teams:
            raise AggregationError(
                f"{len(draws.team_names)} team labels for {draws.n_teams} draw columns"
            )

        columns = {name: i for i, name in enumerate(draws.team_names)}
        missing = [t for t in self.registry if t not in columns]
        if missing:
            raise AggregationError(
                f"{len(missing)} registered teams absent from posterior, first: {missing[0]}"
            )
        extra = [t for t in draws.team_names if t not in self.registry]
        if extra:
            raise AggregationError(
                f"{len(extra)} posterior teams not in registry, first: {extra[0]}"
            )
        return np.array([columns[t] for t in self.registry], dtype=np.int64)

    def aggregate(self, draws: PosteriorDraws) -> List[Rating]:
        """
        Compute mean alpha, mean delta and net rating per team.

        Returns:
            Ratings sorted by net rating descending, then team name
        """
        cols = self._team_columns(draws)
        alpha_mean = draws.alpha[:, cols].mean(axis=0)
        delta_mean = draws.delta[:, cols].mean(axis=0)

        if not (np.isfinite(alpha_mean).all() and np.isfinite(delta_mean).all()):
            raise AggregationError("Posterior means are not finite")

        ratings = [
            Rating(
                team=team,
                team_id=self.registry.id_of(team),
                alpha=float(a),
                delta=float(d),
                net_rating=float(a) + abs(float(d)),
            )
            for team, a, d in zip(self.registry, alpha_mean, delta_mean)
        ]
        ratings.sort(key=lambda r: (-r.net_rating, r.team))

        logger.info(
            f"Aggregated {draws.n_draws} draws into {len(ratings)} ratings; "
            f"top: {ratings[0].team} ({ratings[0].net_rating:.3f})"
        )
        return ratings


# =============================================================================
# Persistence
# =============================================================================

def ratings_to_frame(ratings: List[Rating]) -> pd.DataFrame:
    """Rating table as a DataFrame in output column order."""
    return pd.DataFrame([r.to_dict() for r in ratings], columns=list(RATING_COLUMNS))


def write_ratings(ratings: List[Rating], path: str | Path) -> Path:
    """Write the rating table to CSV."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    ratings_to_frame(ratings).to_csv(path, index=False)
    logger.info(f"Wrote {len(ratings)} ratings to {path}")
    return path


def read_ratings(path: str | Path) -> List[Rating]:
    """Read a rating table written by write_ratings."""
    df = pd.read_csv(path)
    return [
        Rating(
            team=str(row.team),
            team_id=int(row.team_id),
            alpha=float(row.alpha),
            delta=float(row.delta),
            net_rating=float(row.net_rating),
        )
        for row in df.itertuples(index=False)
    ]
