"""
Constants and enums for the international rating model.

Centralizes the competition-tier table so that tournament labels from the
results file map onto a closed set of weights.
"""

from enum import Enum
from typing import Dict, Tuple


# =============================================================================
# Competition Tiers
# =============================================================================

class CompetitionTier(str, Enum):
    """
    Importance tier of a competition.

    Every tournament label resolves to exactly one tier. Labels that match
    no keyword fall back to OTHER, which is weighted like a friendly.
    """
    FRIENDLY = "friendly"
    NATIONS_LEAGUE = "nations_league"
    CONTINENTAL = "continental"
    WORLD_CUP = "world_cup"
    OTHER = "other"

    @property
    def weight(self) -> float:
        """Importance weight applied to matches of this tier."""
        return TIER_WEIGHTS[self]


TIER_WEIGHTS: Dict[CompetitionTier, float] = {
    CompetitionTier.FRIENDLY: 1.0,
    CompetitionTier.NATIONS_LEAGUE: 1.25,
    CompetitionTier.CONTINENTAL: 2.0,
    CompetitionTier.WORLD_CUP: 2.0,
    CompetitionTier.OTHER: 1.0,
}

# Exact label for base friendlies
FRIENDLY_LABEL = "Friendly"

# Ordered keyword table: first tier with a matching substring wins.
# Matching is case-sensitive ("WC" must not match inside other words).
# "CONCACAF Nations League" is a Nations League match, so that row comes first.
TIER_KEYWORDS: Tuple[Tuple[CompetitionTier, Tuple[str, ...]], ...] = (
    (CompetitionTier.NATIONS_LEAGUE, ("Nations League",)),
    (
        CompetitionTier.CONTINENTAL,
        (
            "CONCACAF",
            "African Cup of Nations",
            "Copa America",
            "Confederations",
            "European",
        ),
    ),
    (CompetitionTier.WORLD_CUP, ("World Cup", "WC")),
)


# =============================================================================
# Data Constants
# =============================================================================

# Columns required in the historical results file
RESULTS_COLUMNS = (
    "date",
    "home_team",
    "away_team",
    "home_score",
    "away_score",
    "tournament",
    "neutral",
)

# Columns required in a tournament schedule file
SCHEDULE_COLUMNS = (
    "date",
    "team1",
    "team2",
    "team1_score",
    "team2_score",
    "location",
)

# Columns of the output rating table, in order
RATING_COLUMNS = ("team", "team_id", "alpha", "delta", "net_rating")


# =============================================================================
# Model Constants
# =============================================================================

# Model parameters reported per team
TEAM_PARAMETERS = ("alpha", "delta")

# Hyperparameters reported alongside team parameters
HYPER_PARAMETERS = ("sigma_alpha", "sigma_delta", "mu_delta")

# Goals grid used for scoreline probabilities
MAX_GOALS = 10

# File names of persisted artifacts
POSTERIOR_FILENAME = "posterior.nc"
