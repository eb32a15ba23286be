"""
Hierarchical Poisson model for international match scores.

Structure:
    log(λ_home) = α_home - α_away + δ_home · home_indicator
    log(λ_away) = α_away - α_home

    home_score ~ Poisson(λ_home), away_score ~ Poisson(λ_away)

Where:
    α_t = team ability (attack minus defense), partially pooled and
          centered to sum to zero
    δ_t = team home advantage, partially pooled around a population mean
    home_indicator = 0 at neutral sites, so δ drops out entirely

Each match's log-likelihood is multiplied by its importance weight before
being summed into the target density.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import arviz as az

from intl_ratings.bayesian.diagnostics import FitDiagnostics, check_convergence, compute_diagnostics
from intl_ratings.bayesian.priors import ModelConfig, DEFAULT_CONFIG
from intl_ratings.constants import HYPER_PARAMETERS, TEAM_PARAMETERS
from intl_ratings.data.models import WeightedMatch
from intl_ratings.exceptions import AggregationError, DataIntegrityError, ModelFitError
from intl_ratings.features.registry import TeamRegistry
from intl_ratings.utils import get_logger

logger = get_logger("bayesian.model")


@dataclass
class ModelInput:
    """
    Flattened numeric dataset handed to the sampler.

    Arrays are aligned by match index. Team ids are 1-based.
    """

    num_teams: int
    num_games: int

    home_id: np.ndarray  # (num_games,)
    away_id: np.ndarray
    home_score: np.ndarray
    away_score: np.ndarray
    home_indicator: np.ndarray  # 1 if not neutral else 0
    weight: np.ndarray

    team_names: List[str]

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        Check array alignment, id bounds and weight positivity.

        Raises:
            DataIntegrityError: On any violation
        """
        if self.num_games == 0:
            raise DataIntegrityError("ModelInput has no matches")
        if len(self.team_names) != self.num_teams:
            raise DataIntegrityError(
                f"{len(self.team_names)} team names for {self.num_teams} teams"
            )

        arrays = {
            "home_id": self.home_id,
            "away_id": self.away_id,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "home_indicator": self.home_indicator,
            "weight": self.weight,
        }
        for name, arr in arrays.items():
            if arr.shape != (self.num_games,):
                raise DataIntegrityError(
                    f"{name} has shape {arr.shape}, expected ({self.num_games},)"
                )

        for name in ("home_id", "away_id"):
            ids = arrays[name]
            bad = np.flatnonzero((ids < 1) | (ids > self.num_teams))
            if bad.size:
                raise DataIntegrityError(
                    f"{name} out of [1, {self.num_teams}] at match {int(bad[0])}: {int(ids[bad[0]])}"
                )

        if np.any(self.home_score < 0) or np.any(self.away_score < 0):
            raise DataIntegrityError("Negative scores in ModelInput")

        if not np.isin(self.home_indicator, (0, 1)).all():
            raise DataIntegrityError("home_indicator must be 0 or 1")

        bad = np.flatnonzero(~np.isfinite(self.weight) | (self.weight <= 0))
        if bad.size:
            raise DataIntegrityError(
                f"Non-positive weight {float(self.weight[bad[0]])} at match {int(bad[0])}"
            )

    @property
    def home_idx(self) -> np.ndarray:
        """0-based home team index."""
        return self.home_id - 1

    @property
    def away_idx(self) -> np.ndarray:
        """0-based away team index."""
        return self.away_id - 1

    @classmethod
    def from_weighted(
        cls,
        weighted: Sequence[WeightedMatch],
        registry: TeamRegistry,
    ) -> "ModelInput":
        """
        Flatten weighted matches into model arrays.

        Raises:
            DataIntegrityError: If a match is unscored or a team unregistered
        """
        if not weighted:
            raise DataIntegrityError("No weighted matches to build ModelInput from")

        unscored = [wm.match for wm in weighted if not wm.match.has_scores]
        if unscored:
            m = unscored[0]
            raise DataIntegrityError(
                f"{len(unscored)} unscored matches in training data, "
                f"first: {m.date} {m.home_team} v {m.away_team}",
                match=m,
            )

        home_id = np.array([registry.id_of(wm.match.home_team) for wm in weighted], dtype=np.int64)
        away_id = np.array([registry.id_of(wm.match.away_team) for wm in weighted], dtype=np.int64)

        return cls(
            num_teams=registry.num_teams,
            num_games=len(weighted),
            home_id=home_id,
            away_id=away_id,
            home_score=np.array([wm.match.home_score for wm in weighted], dtype=np.int64),
            away_score=np.array([wm.match.away_score for wm in weighted], dtype=np.int64),
            home_indicator=np.array([wm.match.home_indicator for wm in weighted], dtype=np.int64),
            weight=np.array([wm.weight for wm in weighted], dtype=np.float64),
            team_names=registry.names,
        )


def _take(values, idx):
    """Index teams along the last axis."""
    if values.ndim == 1:
        return values[idx]
    return values[:, idx]


def score_log_rates(alpha, delta, home_idx, away_idx, home_indicator) -> Tuple[Any, Any]:
    """
    Log scoring rates for each match.

    Works on numpy arrays and on PyMC tensors alike. alpha and delta are
    either per-team vectors or posterior draws of shape (n_draws, n_teams).

    Returns:
        (log_rate_home, log_rate_away)
    """
    alpha_home = _take(alpha, home_idx)
    alpha_away = _take(alpha, away_idx)
    log_rate_home = alpha_home - alpha_away + _take(delta, home_idx) * home_indicator
    log_rate_away = alpha_away - alpha_home
    return log_rate_home, log_rate_away


@dataclass
class PosteriorDraws:
    """
    Retained post-warmup draws of the team parameters.

    Chains are concatenated in order (chain 0 first), not interleaved.
    """

    alpha: np.ndarray  # (n_draws, n_teams)
    delta: np.ndarray  # (n_draws, n_teams)
    team_names: List[str]
    hyper: Dict[str, np.ndarray]

    @property
    def n_draws(self) -> int:
        return self.alpha.shape[0]

    @property
    def n_teams(self) -> int:
        return self.alpha.shape[1]

    @classmethod
    def from_inference_data(cls, trace: az.InferenceData) -> "PosteriorDraws":
        """
        Pull team parameters out of a fitted trace.

        Raises:
            AggregationError: If a team parameter is missing from the posterior
        """
        posterior = trace.posterior
        for name in TEAM_PARAMETERS:
            if name not in posterior:
                raise AggregationError(f"Posterior has no '{name}' draws")

        teams = [str(t) for t in posterior.coords["team"].values]
        stacked = {}
        for name in TEAM_PARAMETERS:
            values = posterior[name].transpose("chain", "draw", "team").values
            stacked[name] = values.reshape(-1, values.shape[-1])

        hyper = {
            name: posterior[name].values.reshape(-1)
            for name in HYPER_PARAMETERS
            if name in posterior
        }
        return cls(alpha=stacked["alpha"], delta=stacked["delta"], team_names=teams, hyper=hyper)


class TeamRatingModel:
    """
    Hierarchical Poisson model for national team strength.

    - Per-team ability with sum-to-zero centering
    - Per-team home advantage pooled around an estimated mean
    - Non-centered parameterization for both pooled effects
    - Weighted (power) likelihood
    """

    def __init__(self, config: Optional[ModelConfig] = None):
        """
        Initialize model.

        Args:
            config: Sampler and prior configuration
        """
        self.config = config or DEFAULT_CONFIG
        self.trace: Optional[az.InferenceData] = None
        self.model = None
        self.data: Optional[ModelInput] = None
        self.diagnostics: Optional[FitDiagnostics] = None

    def build_model(self, data: ModelInput):
        """
        Build PyMC model.

        Args:
            data: Model input arrays
        """
        import pymc as pm
        import pytensor.tensor as pt

        self.data = data
        priors = self.config.priors

        logger.info(
            f"Building model with {data.num_games} matches and {data.num_teams} teams"
        )

        coords = {"team": data.team_names, "match": np.arange(data.num_games)}

        with pm.Model(coords=coords) as model:
            # =========================================================
            # Data
            # =========================================================
            home_idx = pm.Data("home_idx", data.home_idx, dims="match")
            away_idx = pm.Data("away_idx", data.away_idx, dims="match")
            home_indicator = pm.Data("home_indicator", data.home_indicator, dims="match")
            weight = pm.Data("weight", data.weight, dims="match")
            home_score = pm.Data("home_score", data.home_score, dims="match")
            away_score = pm.Data("away_score", data.away_score, dims="match")

            # =========================================================
            # Team ability (sum-to-zero)
            # =========================================================
            sigma_alpha = pm.HalfNormal("sigma_alpha", sigma=priors.sigma_alpha_scale)
            alpha_raw = pm.Normal("alpha_raw", mu=0.0, sigma=1.0, dims="team")
            alpha_free = sigma_alpha * alpha_raw
            alpha = pm.Deterministic("alpha", alpha_free - pt.mean(alpha_free), dims="team")

            # =========================================================
            # Home advantage
            # =========================================================
            mu_delta = pm.Normal(
                "mu_delta",
                mu=priors.home_advantage_mean,
                sigma=priors.home_advantage_sd,
            )
            sigma_delta = pm.HalfNormal("sigma_delta", sigma=priors.sigma_delta_scale)
            delta_raw = pm.Normal("delta_raw", mu=0.0, sigma=1.0, dims="team")
            delta = pm.Deterministic("delta", mu_delta + sigma_delta * delta_raw, dims="team")

            # =========================================================
            # Weighted likelihood
            # =========================================================
            log_rate_home, log_rate_away = score_log_rates(
                alpha, delta, home_idx, away_idx, home_indicator
            )
            logp_home = pm.logp(pm.Poisson.dist(mu=pt.exp(log_rate_home)), home_score)
            logp_away = pm.logp(pm.Poisson.dist(mu=pt.exp(log_rate_away)), away_score)

            pm.Potential("weighted_loglik", pt.sum(weight * (logp_home + logp_away)))

        self.model = model
        logger.info("Model built successfully")
        return model

    def check_initial_point(self) -> Dict[str, float]:
        """
        Evaluate the log-density at the sampler's starting point.

        Raises:
            ModelFitError: If any term is not finite
        """
        if self.model is None:
            raise ValueError("Model not built")

        point = self.model.initial_point(random_seed=self.config.random_seed)
        point_logps = {k: float(v) for k, v in self.model.point_logps(point).items()}
        total = float(self.model.compile_logp()(point))

        if not np.isfinite(total) or not all(np.isfinite(v) for v in point_logps.values()):
            raise ModelFitError(
                f"Log-density is not finite at the initial point (total={total})",
                diagnostics={"point_logps": point_logps, "logp": total},
            )
        return point_logps

    def fit(self, data: ModelInput) -> az.InferenceData:
        """
        Fit model using NUTS.

        Chains run in parallel worker processes; only post-warmup draws are
        kept in the returned trace.

        Args:
            data: Model input arrays

        Returns:
            ArviZ InferenceData with posterior samples

        Raises:
            ModelFitError: On initialization failure or a failed convergence gate
        """
        import pymc as pm
        from pymc.exceptions import SamplingError

        if self.model is None or self.data is not data:
            self.build_model(data)

        self.check_initial_point()

        cfg = self.config
        logger.info(
            f"Sampling with {cfg.n_chains} chains on {cfg.cores} cores, "
            f"{cfg.n_iterations} iterations ({cfg.n_warmup} warmup), "
            f"target_accept={cfg.target_accept}, seed={cfg.random_seed}"
        )

        with self.model:
            try:
                self.trace = pm.sample(
                    draws=cfg.n_draws,
                    tune=cfg.n_warmup,
                    chains=cfg.n_chains,
                    cores=cfg.cores,
                    target_accept=cfg.target_accept,
                    random_seed=cfg.random_seed,
                    return_inferencedata=True,
                    compute_convergence_checks=False,
                    progressbar=cfg.progressbar,
                )
            except SamplingError as e:
                raise ModelFitError(f"Sampler failed to initialize: {e}") from e

        self.diagnostics = compute_diagnostics(self.trace, cfg)
        check_convergence(self.diagnostics, cfg)

        return self.trace

    def get_diagnostics(self) -> Dict[str, Any]:
        """
        Get MCMC diagnostics for the last fit.

        Returns:
            Dictionary with divergences, R-hat, ESS and health flag
        """
        if self.trace is None:
            raise ValueError("Model not fitted")
        if self.diagnostics is None:
            self.diagnostics = compute_diagnostics(self.trace, self.config)
        return self.diagnostics.to_dict()

    def get_posterior_draws(self) -> PosteriorDraws:
        """Retained draws of alpha and delta, chains concatenated."""
        if self.trace is None:
            raise ValueError("Model not fitted")
        return PosteriorDraws.from_inference_data(self.trace)

    def get_posterior_summary(self) -> Dict[str, Any]:
        """
        Get posterior summary of the population-level parameters.

        Returns:
            Dictionary with home advantage and pooling scales
        """
        if self.trace is None:
            raise ValueError("Model not fitted")

        posterior = self.trace.posterior

        home_adv = posterior["mu_delta"].values.flatten()
        home_adv_mult = np.exp(home_adv)

        return {
            "home_advantage": {
                "log_scale": {
                    "mean": float(np.mean(home_adv)),
                    "ci_5": float(np.percentile(home_adv, 5)),
                    "ci_95": float(np.percentile(home_adv, 95)),
                },
                "multiplicative": {
                    "median": float(np.median(home_adv_mult)),
                    "interpretation": "Home side scores ~{:.0f}% more goals (median)".format(
                        (np.median(home_adv_mult) - 1) * 100
                    ),
                },
            },
            "sigma_alpha": {"mean": float(posterior["sigma_alpha"].values.mean())},
            "sigma_delta": {"mean": float(posterior["sigma_delta"].values.mean())},
        }

    def save(self, path: str | Path) -> Path:
        """Save fitted trace (posterior, sample stats, data) to NetCDF."""
        if self.trace is None:
            raise ValueError("Model not fitted")
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.trace.to_netcdf(str(path))
        logger.info(f"Model saved to {path}")
        return path

    @classmethod
    def load(cls, path: str | Path, config: Optional[ModelConfig] = None) -> "TeamRatingModel":
        """Load fitted model from disk."""
        model = cls(config=config)
        model.trace = az.from_netcdf(str(path))
        logger.info(f"Model loaded from {path}")
        return model

    @property
    def registry(self) -> TeamRegistry:
        """Team registry reconstructed from the trace's team coordinate."""
        if self.trace is None:
            raise ValueError("Model not fitted")
        return TeamRegistry(str(t) for t in self.trace.posterior.coords["team"].values)
