"""
Pydantic models for international match data.

These models define the records handed to the rating core: played or
pending matches from the historical results file, and fixtures from an
in-progress tournament schedule.
"""

import math
from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from intl_ratings.utils import to_date


def _missing(value: Any) -> bool:
    """True for None, NaN and blank strings coming out of a CSV."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


# =============================================================================
# Match Records
# =============================================================================

class Match(BaseModel):
    """One played or pending fixture between two national teams."""

    date: date
    home_team: str = Field(min_length=1)
    away_team: str = Field(min_length=1)
    home_score: Optional[int] = Field(default=None, ge=0)
    away_score: Optional[int] = Field(default=None, ge=0)
    neutral: bool = False
    tournament: str = "Friendly"

    model_config = {"frozen": True}

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> date:
        """Accept dates, datetimes, timestamps and ISO strings."""
        return to_date(v)

    @field_validator("home_score", "away_score", mode="before")
    @classmethod
    def parse_score(cls, v: Any) -> Optional[int]:
        """Blank or NaN scores are missing; floats like 2.0 become ints."""
        if _missing(v):
            return None
        return int(v)

    @field_validator("neutral", mode="before")
    @classmethod
    def parse_neutral(cls, v: Any) -> bool:
        """Accept booleans or TRUE/FALSE text."""
        if isinstance(v, str):
            return v.strip().lower() in {"true", "t", "1", "yes"}
        if _missing(v):
            return False
        return bool(v)

    @model_validator(mode="after")
    def check_teams(self) -> "Match":
        if self.home_team == self.away_team:
            raise ValueError(f"Team cannot play itself: {self.home_team}")
        return self

    @property
    def has_scores(self) -> bool:
        """Check if both scores are available."""
        return self.home_score is not None and self.away_score is not None

    @property
    def home_indicator(self) -> int:
        """1 when the home side plays at home, 0 at a neutral site."""
        return 0 if self.neutral else 1

    @property
    def teams(self) -> tuple[str, str]:
        return (self.home_team, self.away_team)


class WeightedMatch(BaseModel):
    """A training match together with its importance weight."""

    match: Match
    tier_weight: float = Field(gt=0)
    decay: float = Field(gt=0, le=1)
    weight: float

    model_config = {"frozen": True}


# =============================================================================
# Tournament Schedule Records
# =============================================================================

class ScheduleFixture(BaseModel):
    """
    A row from an in-progress tournament schedule.

    Schedules list two teams and a hosting location instead of a home side,
    so they are normalized into a Match before training.
    """

    date: date
    team1: str = Field(min_length=1)
    team2: str = Field(min_length=1)
    team1_score: Optional[int] = Field(default=None, ge=0)
    team2_score: Optional[int] = Field(default=None, ge=0)
    location: str = ""

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> date:
        return to_date(v)

    @field_validator("team1_score", "team2_score", mode="before")
    @classmethod
    def parse_score(cls, v: Any) -> Optional[int]:
        if _missing(v):
            return None
        return int(v)

    @field_validator("location", mode="before")
    @classmethod
    def parse_location(cls, v: Any) -> str:
        return "" if _missing(v) else str(v)

    @property
    def is_played(self) -> bool:
        return self.team1_score is not None and self.team2_score is not None

    @property
    def neutral(self) -> bool:
        """Neither team is the host."""
        return self.team1 != self.location and self.team2 != self.location

    def to_match(self, tournament: str) -> Match:
        """
        Normalize into a Match.

        The host plays at home when it is team2; otherwise team1 is listed
        as the home side.
        """
        if self.team2 == self.location:
            home, away = self.team2, self.team1
            home_score, away_score = self.team2_score, self.team1_score
        else:
            home, away = self.team1, self.team2
            home_score, away_score = self.team1_score, self.team2_score

        return Match(
            date=self.date,
            home_team=home,
            away_team=away,
            home_score=home_score,
            away_score=away_score,
            neutral=self.neutral,
            tournament=tournament,
        )
