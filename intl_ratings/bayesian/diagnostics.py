"""
MCMC convergence diagnostics.

Computes split R-hat, bulk/tail ESS and divergence counts for the team and
population parameters, and gates a fit on them: too many divergences or an
R-hat above threshold make the fit unusable.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import arviz as az
import numpy as np
import pandas as pd

from intl_ratings.bayesian.priors import ModelConfig
from intl_ratings.constants import HYPER_PARAMETERS, TEAM_PARAMETERS
from intl_ratings.exceptions import ModelFitError
from intl_ratings.utils import get_logger, safe_divide

logger = get_logger("bayesian.diagnostics")

MONITORED = TEAM_PARAMETERS + HYPER_PARAMETERS


@dataclass
class FitDiagnostics:
    """Convergence summary of one fit."""

    n_chains: int
    n_draws_per_chain: int
    n_divergences: int
    max_rhat: float  # NaN with a single chain
    min_ess_bulk: float
    min_ess_tail: float
    worst_rhat: List[Tuple[str, float]] = field(default_factory=list)
    n_rhat_issues: int = 0
    n_ess_issues: int = 0

    @property
    def n_samples(self) -> int:
        return self.n_chains * self.n_draws_per_chain

    @property
    def divergence_fraction(self) -> float:
        return safe_divide(self.n_divergences, self.n_samples)

    @property
    def is_healthy(self) -> bool:
        return (
            self.n_divergences == 0
            and self.n_rhat_issues == 0
            and self.n_ess_issues == 0
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n_chains": self.n_chains,
            "n_draws_per_chain": self.n_draws_per_chain,
            "n_divergences": self.n_divergences,
            "divergence_fraction": self.divergence_fraction,
            "max_rhat": self.max_rhat,
            "min_ess_bulk": self.min_ess_bulk,
            "min_ess_tail": self.min_ess_tail,
            "worst_rhat": self.worst_rhat,
            "n_rhat_issues": self.n_rhat_issues,
            "n_ess_issues": self.n_ess_issues,
            "is_healthy": self.is_healthy,
        }


def count_divergences(trace: az.InferenceData) -> int:
    """Divergent post-warmup transitions across all chains."""
    if not hasattr(trace, "sample_stats"):
        return 0
    diverging = trace.sample_stats.get("diverging", None)
    if diverging is None:
        return 0
    return int(np.sum(diverging.values))


def compute_diagnostics(trace: az.InferenceData, config: ModelConfig) -> FitDiagnostics:
    """
    Summarize convergence of the monitored parameters.

    Args:
        trace: Fitted trace
        config: Thresholds for R-hat and ESS

    Returns:
        FitDiagnostics
    """
    posterior = trace.posterior
    var_names = [v for v in MONITORED if v in posterior]
    n_chains = int(posterior.sizes["chain"])
    n_draws = int(posterior.sizes["draw"])

    summary: pd.DataFrame = az.summary(trace, var_names=var_names, kind="diagnostics")

    rhat = summary["r_hat"]
    max_rhat = float(rhat.max()) if rhat.notna().any() else float("nan")
    rhat_issues = rhat[rhat > config.max_rhat].sort_values(ascending=False)
    worst = [(str(name), float(value)) for name, value in rhat_issues.head(5).items()]

    min_ess_bulk = float(summary["ess_bulk"].min())
    min_ess_tail = float(summary["ess_tail"].min()) if "ess_tail" in summary else min_ess_bulk
    ess_issues = summary[summary["ess_bulk"] < config.min_ess_bulk]

    diagnostics = FitDiagnostics(
        n_chains=n_chains,
        n_draws_per_chain=n_draws,
        n_divergences=count_divergences(trace),
        max_rhat=max_rhat,
        min_ess_bulk=min_ess_bulk,
        min_ess_tail=min_ess_tail,
        worst_rhat=worst,
        n_rhat_issues=len(rhat_issues),
        n_ess_issues=len(ess_issues),
    )

    logger.info(
        f"Diagnostics: {diagnostics.n_divergences} divergences "
        f"({diagnostics.divergence_fraction:.2%}), max R-hat={max_rhat:.3f}, "
        f"min ESS bulk={min_ess_bulk:.0f}"
    )
    return diagnostics


def check_convergence(diagnostics: FitDiagnostics, config: ModelConfig) -> None:
    """
    Reject a fit that cannot be trusted.

    Low ESS is logged; divergences and R-hat above their thresholds raise.

    Raises:
        ModelFitError: With the offending diagnostic values
    """
    if diagnostics.n_ess_issues:
        logger.warning(
            f"ESS < {config.min_ess_bulk:.0f} for {diagnostics.n_ess_issues} parameters "
            f"(min={diagnostics.min_ess_bulk:.0f})"
        )

    if diagnostics.n_divergences:
        logger.warning(f"Found {diagnostics.n_divergences} divergent samples")

    if diagnostics.divergence_fraction > config.max_divergence_fraction:
        raise ModelFitError(
            f"{diagnostics.n_divergences} divergent transitions "
            f"({diagnostics.divergence_fraction:.2%} of {diagnostics.n_samples} draws) "
            f"exceed the {config.max_divergence_fraction:.2%} limit",
            diagnostics=diagnostics.to_dict(),
        )

    if diagnostics.n_chains < 2:
        logger.warning("R-hat needs at least two chains; convergence not checked")
        return

    if diagnostics.n_rhat_issues:
        worst = ", ".join(f"{name}={value:.3f}" for name, value in diagnostics.worst_rhat)
        raise ModelFitError(
            f"R-hat > {config.max_rhat} for {diagnostics.n_rhat_issues} parameters "
            f"(worst: {worst})",
            diagnostics=diagnostics.to_dict(),
        )
