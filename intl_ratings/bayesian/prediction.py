"""
Prediction module for forecasting fixtures from a fitted posterior.

Converts posterior draws into:
- Expected goals for each side
- Home win / draw / away win probabilities
- Most likely scoreline
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import numpy as np

from intl_ratings.bayesian.model import PosteriorDraws, score_log_rates
from intl_ratings.constants import MAX_GOALS
from intl_ratings.exceptions import DataIntegrityError
from intl_ratings.utils import get_logger

logger = get_logger("bayesian.prediction")


@dataclass
class MatchPrediction:
    """Forecast for a single fixture."""

    home_team: str
    away_team: str
    neutral: bool

    expected_home_goals: float
    expected_away_goals: float

    p_home_win: float
    p_draw: float
    p_away_win: float

    most_likely_score: Tuple[int, int]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "home_team": self.home_team,
            "away_team": self.away_team,
            "neutral": self.neutral,
            "expected_goals": [self.expected_home_goals, self.expected_away_goals],
            "p_home_win": self.p_home_win,
            "p_draw": self.p_draw,
            "p_away_win": self.p_away_win,
            "most_likely_score": list(self.most_likely_score),
        }


def poisson_pmf_grid(rates: np.ndarray, max_goals: int = MAX_GOALS) -> np.ndarray:
    """
    Poisson probabilities of 0..max_goals for each rate.

    Returns:
        Array of shape (len(rates), max_goals + 1)
    """
    goals = np.arange(max_goals + 1)
    log_factorial = np.cumsum(np.log(np.maximum(goals, 1)))
    log_pmf = goals[None, :] * np.log(rates)[:, None] - rates[:, None] - log_factorial[None, :]
    return np.exp(log_pmf)


class MatchPredictor:
    """
    Generates fixture forecasts from posterior draws.

    Probabilities are averaged over draws, so parameter uncertainty is
    carried into the forecast.
    """

    def __init__(self, draws: PosteriorDraws, max_goals: int = MAX_GOALS):
        self.draws = draws
        self.max_goals = max_goals
        self._index = {name: i for i, name in enumerate(draws.team_names)}

    def _team_index(self, team: str) -> int:
        try:
            return self._index[team]
        except KeyError:
            raise DataIntegrityError(f"No posterior for team: {team}", team=team) from None

    def scoring_rates(
        self,
        home_team: str,
        away_team: str,
        neutral: bool = True,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Per-draw scoring rates for both sides."""
        home_idx = np.array([self._team_index(home_team)])
        away_idx = np.array([self._team_index(away_team)])
        indicator = np.array([0 if neutral else 1])

        log_home, log_away = score_log_rates(
            self.draws.alpha, self.draws.delta, home_idx, away_idx, indicator
        )
        return np.exp(log_home[:, 0]), np.exp(log_away[:, 0])

    def predict_match(
        self,
        home_team: str,
        away_team: str,
        neutral: bool = True,
    ) -> MatchPrediction:
        """
        Forecast a fixture.

        Args:
            home_team: Team listed first (the host unless neutral)
            away_team: Opponent
            neutral: Played at a site belonging to neither team

        Returns:
            MatchPrediction with expected goals and outcome probabilities
        """
        if home_team == away_team:
            raise DataIntegrityError(f"Team cannot play itself: {home_team}", team=home_team)

        rate_home, rate_away = self.scoring_rates(home_team, away_team, neutral)

        pmf_home = poisson_pmf_grid(rate_home, self.max_goals)
        pmf_away = poisson_pmf_grid(rate_away, self.max_goals)

        # Joint scoreline grid averaged over draws: (home goals, away goals)
        grid = np.einsum("ni,nj->ij", pmf_home, pmf_away) / len(rate_home)
        grid /= grid.sum()

        p_home = float(np.tril(grid, k=-1).sum())
        p_draw = float(np.trace(grid))
        p_away = float(np.triu(grid, k=1).sum())
        best = np.unravel_index(np.argmax(grid), grid.shape)

        return MatchPrediction(
            home_team=home_team,
            away_team=away_team,
            neutral=neutral,
            expected_home_goals=float(rate_home.mean()),
            expected_away_goals=float(rate_away.mean()),
            p_home_win=p_home,
            p_draw=p_draw,
            p_away_win=p_away,
            most_likely_score=(int(best[0]), int(best[1])),
        )
