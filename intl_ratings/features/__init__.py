"""
Feature engineering module.

Provides:
- Team registry (stable integer ids)
- Match weighting (competition tier and recency)
"""

from intl_ratings.features.registry import TeamRegistry
from intl_ratings.features.weighting import (
    DateRange,
    WeightingPolicy,
    classify_tournament,
    recency_decay,
    tier_weight,
)

__all__ = [
    # Registry
    "TeamRegistry",
    # Weighting
    "DateRange",
    "WeightingPolicy",
    "classify_tournament",
    "recency_decay",
    "tier_weight",
]
