"""
Exceptions raised by the rating pipeline.

Data problems are rejected before fitting, fit problems halt after sampling,
and aggregation problems indicate an inconsistent posterior.
"""

from typing import Any, Optional


class RatingError(Exception):
    """Base exception for the rating pipeline."""
    pass


class DataIntegrityError(RatingError, ValueError):
    """Input data cannot be turned into a valid training set."""

    def __init__(
        self,
        message: str,
        team: Optional[str] = None,
        match: Optional[Any] = None,
    ):
        self.team = team
        self.match = match
        super().__init__(message)


class ModelFitError(RatingError, RuntimeError):
    """Sampling failed or produced an unusable posterior."""

    def __init__(self, message: str, diagnostics: Optional[dict] = None):
        self.diagnostics = diagnostics or {}
        super().__init__(message)


class AggregationError(RatingError, RuntimeError):
    """Posterior draws do not line up with the team registry."""
    pass
