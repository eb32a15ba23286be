"""
Tests for data models.
"""

from datetime import date, datetime

import pytest
from pydantic import ValidationError

from intl_ratings.data.models import Match, ScheduleFixture, WeightedMatch


class TestMatch:
    """Test Match parsing and derived properties."""

    def test_has_scores(self):
        match = Match(date=date(2024, 6, 1), home_team="Spain", away_team="Italy",
                      home_score=1, away_score=0)
        assert match.has_scores is True

    def test_missing_score(self):
        match = Match(date=date(2024, 6, 1), home_team="Spain", away_team="Italy",
                      home_score=1, away_score=None)
        assert match.has_scores is False

    def test_nan_and_blank_scores_are_missing(self):
        """CSV blanks arrive as NaN or empty strings."""
        match = Match(date="2024-06-01", home_team="Spain", away_team="Italy",
                      home_score=float("nan"), away_score="")
        assert match.home_score is None
        assert match.away_score is None

    def test_float_scores_become_ints(self):
        match = Match(date="2024-06-01", home_team="Spain", away_team="Italy",
                      home_score=2.0, away_score=1.0)
        assert match.home_score == 2
        assert isinstance(match.home_score, int)

    def test_negative_score_rejected(self):
        with pytest.raises(ValidationError):
            Match(date="2024-06-01", home_team="Spain", away_team="Italy",
                  home_score=-1, away_score=0)

    def test_self_match_rejected(self):
        with pytest.raises(ValidationError, match="cannot play itself"):
            Match(date="2024-06-01", home_team="Spain", away_team="Spain")

    def test_date_parsing(self):
        match = Match(date=datetime(2024, 6, 1, 20, 0), home_team="Spain", away_team="Italy")
        assert match.date == date(2024, 6, 1)

    @pytest.mark.parametrize("raw,expected", [
        (True, True), (False, False), ("TRUE", True), ("FALSE", False), ("true", True),
    ])
    def test_neutral_parsing(self, raw, expected):
        match = Match(date="2024-06-01", home_team="Spain", away_team="Italy", neutral=raw)
        assert match.neutral is expected

    def test_home_indicator(self):
        home = Match(date="2024-06-01", home_team="Spain", away_team="Italy", neutral=False)
        neutral = Match(date="2024-06-01", home_team="Spain", away_team="Italy", neutral=True)

        assert home.home_indicator == 1
        assert neutral.home_indicator == 0


class TestScheduleFixture:
    """Test normalization of tournament schedule rows."""

    def test_host_as_team2_becomes_home(self):
        """When team2 hosts, sides and scores are swapped."""
        fixture = ScheduleFixture(date="2024-06-14", team1="Scotland", team2="Germany",
                                  team1_score=1, team2_score=5, location="Germany")
        match = fixture.to_match("European Championship")

        assert match.home_team == "Germany"
        assert match.away_team == "Scotland"
        assert match.home_score == 5
        assert match.away_score == 1
        assert match.neutral is False
        assert match.tournament == "European Championship"

    def test_host_as_team1_stays_home(self):
        fixture = ScheduleFixture(date="2024-06-14", team1="Germany", team2="Scotland",
                                  team1_score=5, team2_score=1, location="Germany")
        match = fixture.to_match("European Championship")

        assert match.home_team == "Germany"
        assert match.home_score == 5
        assert match.neutral is False

    def test_neutral_site(self):
        """Neither team hosting keeps listed order and is neutral."""
        fixture = ScheduleFixture(date="2024-06-20", team1="Argentina", team2="Chile",
                                  team1_score=1, team2_score=0, location="United States")
        match = fixture.to_match("Copa America")

        assert match.home_team == "Argentina"
        assert match.away_team == "Chile"
        assert match.neutral is True
        assert match.home_indicator == 0

    def test_unplayed_fixture(self):
        fixture = ScheduleFixture(date="2024-07-14", team1="Spain", team2="England",
                                  location="Germany")
        assert fixture.is_played is False
        assert fixture.to_match("European Championship").has_scores is False


class TestWeightedMatch:
    """Test WeightedMatch constraints."""

    def test_decay_bounded(self):
        match = Match(date="2024-06-01", home_team="Spain", away_team="Italy",
                      home_score=1, away_score=1)
        with pytest.raises(ValidationError):
            WeightedMatch(match=match, tier_weight=1.0, decay=1.5, weight=1.5)
