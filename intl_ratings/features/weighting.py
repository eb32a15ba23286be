"""
Match weighting: competition tier times recency decay.

    weight = tier_weight(tournament) * exp(-(D_max - d) / (D_max - D_min))

The date extremes come from the full retained match set and are computed
once, then passed in explicitly. A single-date dataset gets decay 1.
"""

import math
from dataclasses import dataclass
from datetime import date
from functools import lru_cache
from typing import Sequence

from intl_ratings.constants import FRIENDLY_LABEL, TIER_KEYWORDS, CompetitionTier
from intl_ratings.data.models import Match, WeightedMatch
from intl_ratings.exceptions import DataIntegrityError
from intl_ratings.utils import days_between, get_logger

logger = get_logger("features.weighting")


@lru_cache(maxsize=1024)
def classify_tournament(label: str) -> CompetitionTier:
    """
    Resolve a tournament label to its competition tier.

    "Friendly" is matched exactly; other labels are checked against the
    keyword table in order and fall back to OTHER.
    """
    if label == FRIENDLY_LABEL:
        return CompetitionTier.FRIENDLY
    for tier, keywords in TIER_KEYWORDS:
        if any(k in label for k in keywords):
            return tier
    return CompetitionTier.OTHER


def tier_weight(label: str) -> float:
    """Importance weight of a tournament label."""
    return classify_tournament(label).weight


@dataclass(frozen=True)
class DateRange:
    """Earliest and latest match dates of a dataset."""

    start: date
    end: date

    @classmethod
    def from_matches(cls, matches: Sequence[Match]) -> "DateRange":
        if not matches:
            raise DataIntegrityError("Cannot compute a date range without matches")
        dates = [m.date for m in matches]
        return cls(start=min(dates), end=max(dates))

    @property
    def span_days(self) -> int:
        return days_between(self.start, self.end)

    @property
    def is_degenerate(self) -> bool:
        return self.span_days == 0


def recency_decay(match_date: date, date_range: DateRange) -> float:
    """
    Exponential decay from 1 at the latest date to exp(-1) at the earliest.

    Raises:
        DataIntegrityError: If the date lies outside the range
    """
    if match_date < date_range.start or match_date > date_range.end:
        raise DataIntegrityError(
            f"Match date {match_date} outside dataset range "
            f"{date_range.start}..{date_range.end}"
        )
    if date_range.is_degenerate:
        return 1.0
    age = days_between(match_date, date_range.end)
    return math.exp(-age / date_range.span_days)


class WeightingPolicy:
    """
    Assigns an importance weight to every training match.

    Usage:
        policy = WeightingPolicy.from_matches(matches)
        weighted = policy.apply(matches)
    """

    def __init__(self, date_range: DateRange):
        self.date_range = date_range

    @classmethod
    def from_matches(cls, matches: Sequence[Match]) -> "WeightingPolicy":
        return cls(DateRange.from_matches(matches))

    def weigh(self, match: Match) -> WeightedMatch:
        """
        Weight a single match.

        Raises:
            DataIntegrityError: If the weight is not strictly positive
        """
        tw = tier_weight(match.tournament)
        decay = recency_decay(match.date, self.date_range)
        weight = tw * decay

        if not math.isfinite(weight) or weight <= 0:
            raise DataIntegrityError(
                f"Non-positive weight {weight} for {match.date} "
                f"{match.home_team} v {match.away_team}",
                match=match,
            )

        return WeightedMatch(match=match, tier_weight=tw, decay=decay, weight=weight)

    def apply(self, matches: Sequence[Match]) -> list[WeightedMatch]:
        """Weight every match in order."""
        weighted = [self.weigh(m) for m in matches]

        if weighted:
            weights = [w.weight for w in weighted]
            logger.info(
                f"Weighted {len(weighted)} matches over {self.date_range.start}.."
                f"{self.date_range.end}: weight range [{min(weights):.3f}, {max(weights):.3f}]"
            )
        return weighted
