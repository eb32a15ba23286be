"""
Tests for feature engineering.

Tests for:
- Team registry ids
- Competition tier classification
- Recency decay
- Weighting policy
"""

import math
from datetime import date, timedelta

import pytest

from intl_ratings.constants import CompetitionTier
from intl_ratings.data.models import Match
from intl_ratings.exceptions import DataIntegrityError
from intl_ratings.features import (
    DateRange,
    TeamRegistry,
    WeightingPolicy,
    classify_tournament,
    recency_decay,
    tier_weight,
)


def make_match(d, home="A", away="B", tournament="Friendly"):
    return Match(date=d, home_team=home, away_team=away, home_score=1,
                 away_score=1, tournament=tournament)


class TestTeamRegistry:
    """Test team id assignment."""

    def test_ids_are_contiguous_and_sorted(self):
        registry = TeamRegistry(["Spain", "Brazil", "Japan"])

        assert registry.num_teams == 3
        assert registry.names == ["Brazil", "Japan", "Spain"]
        assert registry.ids == [1, 2, 3]
        assert registry.id_of("Brazil") == 1
        assert registry.id_of("Spain") == 3

    def test_bijection(self):
        registry = TeamRegistry(["Spain", "Brazil", "Japan", "Ghana"])

        for team in registry:
            assert registry.name_of(registry.id_of(team)) == team
        for team_id in registry.ids:
            assert registry.id_of(registry.name_of(team_id)) == team_id

    def test_deterministic_across_input_order(self):
        first = TeamRegistry(["C", "A", "B"])
        second = TeamRegistry(["B", "C", "A", "A"])

        assert first == second
        assert first.as_dict() == second.as_dict()

    def test_from_matches(self):
        matches = [
            make_match(date(2023, 1, 1), "Peru", "Chile"),
            make_match(date(2023, 1, 2), "Chile", "Bolivia"),
        ]
        registry = TeamRegistry.from_matches(matches)

        assert registry.names == ["Bolivia", "Chile", "Peru"]
        assert "Peru" in registry
        assert "Brazil" not in registry

    def test_unregistered_team_raises(self):
        registry = TeamRegistry(["A", "B"])

        with pytest.raises(DataIntegrityError) as exc_info:
            registry.id_of("Z")
        assert exc_info.value.team == "Z"

    def test_id_out_of_range_raises(self):
        registry = TeamRegistry(["A", "B"])

        with pytest.raises(DataIntegrityError):
            registry.name_of(0)
        with pytest.raises(DataIntegrityError):
            registry.name_of(3)

    def test_empty_registry_raises(self):
        with pytest.raises(DataIntegrityError):
            TeamRegistry([])


class TestClassifyTournament:
    """Test tier resolution of tournament labels."""

    @pytest.mark.parametrize("label,tier", [
        ("Friendly", CompetitionTier.FRIENDLY),
        ("UEFA Nations League", CompetitionTier.NATIONS_LEAGUE),
        ("CONCACAF Nations League", CompetitionTier.NATIONS_LEAGUE),
        ("CONCACAF Gold Cup", CompetitionTier.CONTINENTAL),
        ("African Cup of Nations", CompetitionTier.CONTINENTAL),
        ("Copa America", CompetitionTier.CONTINENTAL),
        ("European Championship", CompetitionTier.CONTINENTAL),
        ("Confederations Cup", CompetitionTier.CONTINENTAL),
        ("FIFA World Cup", CompetitionTier.WORLD_CUP),
        ("FIFA World Cup qualification", CompetitionTier.WORLD_CUP),
        ("WC Qualifier", CompetitionTier.WORLD_CUP),
        ("Baltic Cup", CompetitionTier.OTHER),
        ("friendly", CompetitionTier.OTHER),
    ])
    def test_classification(self, label, tier):
        assert classify_tournament(label) == tier

    def test_tier_weights(self):
        assert tier_weight("Friendly") == 1.0
        assert tier_weight("UEFA Nations League") == 1.25
        assert tier_weight("Copa America") == 2.0
        assert tier_weight("FIFA World Cup") == 2.0
        assert tier_weight("Island Games") == 1.0


class TestRecencyDecay:
    """Test exponential recency decay."""

    @pytest.fixture
    def date_range(self):
        return DateRange(start=date(2023, 1, 1), end=date(2024, 1, 1))

    def test_latest_date_is_one(self, date_range):
        assert recency_decay(date(2024, 1, 1), date_range) == 1.0

    def test_earliest_date_is_inverse_e(self, date_range):
        assert recency_decay(date(2023, 1, 1), date_range) == pytest.approx(math.exp(-1))

    def test_monotone_in_date(self, date_range):
        decays = [
            recency_decay(date(2023, 1, 1) + timedelta(days=d), date_range)
            for d in range(0, 366, 30)
        ]
        assert decays == sorted(decays)
        assert all(math.exp(-1) <= v <= 1.0 for v in decays)

    def test_degenerate_range(self):
        single = DateRange(start=date(2024, 6, 1), end=date(2024, 6, 1))

        assert single.is_degenerate
        assert recency_decay(date(2024, 6, 1), single) == 1.0

    def test_out_of_range_raises(self, date_range):
        with pytest.raises(DataIntegrityError):
            recency_decay(date(2024, 1, 2), date_range)


class TestWeightingPolicy:
    """Test per-match weights."""

    def test_weight_is_tier_times_decay(self):
        matches = [
            make_match(date(2023, 1, 1)),
            make_match(date(2024, 1, 1), tournament="Copa America"),
        ]
        weighted = WeightingPolicy.from_matches(matches).apply(matches)

        assert weighted[0].weight == pytest.approx(math.exp(-1))
        assert weighted[1].weight == pytest.approx(2.0)
        assert weighted[1].tier_weight == 2.0
        assert weighted[1].decay == 1.0

    def test_weights_strictly_positive(self):
        start = date(2018, 1, 1)
        matches = [make_match(start + timedelta(days=7 * i)) for i in range(300)]
        weighted = WeightingPolicy.from_matches(matches).apply(matches)

        assert all(w.weight > 0 for w in weighted)

    def test_single_date_dataset(self):
        matches = [make_match(date(2024, 6, 1)), make_match(date(2024, 6, 1), "C", "D")]
        weighted = WeightingPolicy.from_matches(matches).apply(matches)

        assert [w.decay for w in weighted] == [1.0, 1.0]

    def test_empty_match_set_raises(self):
        with pytest.raises(DataIntegrityError):
            WeightingPolicy.from_matches([])
