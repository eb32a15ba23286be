"""
Tests for rating aggregation and match prediction.
"""

import numpy as np
import pytest

from intl_ratings.bayesian.model import PosteriorDraws
from intl_ratings.bayesian.prediction import MatchPredictor, poisson_pmf_grid
from intl_ratings.bayesian.ratings import (
    Rating,
    RatingAggregator,
    ratings_to_frame,
    read_ratings,
    write_ratings,
)
from intl_ratings.constants import RATING_COLUMNS
from intl_ratings.exceptions import AggregationError, DataIntegrityError
from intl_ratings.features.registry import TeamRegistry


def make_draws(alpha, delta, teams):
    return PosteriorDraws(
        alpha=np.asarray(alpha, dtype=float),
        delta=np.asarray(delta, dtype=float),
        team_names=list(teams),
        hyper={},
    )


class TestRatingAggregator:
    """Test the posterior-to-table reduction."""

    def test_net_rating_formula(self):
        draws = make_draws(
            alpha=[[0.4, -0.2, -0.2], [0.6, 0.0, -0.6]],
            delta=[[0.1, -0.5, 0.3], [0.3, -0.3, 0.1]],
            teams=["A", "B", "C"],
        )
        ratings = RatingAggregator(TeamRegistry(["A", "B", "C"])).aggregate(draws)
        by_team = {r.team: r for r in ratings}

        assert by_team["A"].alpha == pytest.approx(0.5)
        assert by_team["A"].delta == pytest.approx(0.2)
        assert by_team["A"].net_rating == pytest.approx(0.7)

        # Negative mean home advantage still adds its magnitude
        assert by_team["B"].delta == pytest.approx(-0.4)
        assert by_team["B"].net_rating == pytest.approx(-0.1 + 0.4)

        for r in ratings:
            assert r.net_rating == r.alpha + abs(r.delta)

    def test_sorted_descending(self):
        draws = make_draws(
            alpha=[[-0.5, 0.8, 0.1, -0.4]],
            delta=[[0.0, 0.0, 0.0, 0.0]],
            teams=["A", "B", "C", "D"],
        )
        ratings = RatingAggregator(TeamRegistry("ABCD")).aggregate(draws)

        assert [r.team for r in ratings] == ["B", "C", "D", "A"]
        nets = [r.net_rating for r in ratings]
        assert nets == sorted(nets, reverse=True)

    def test_ties_broken_by_name(self):
        draws = make_draws(
            alpha=[[0.0, 0.0, 0.0]],
            delta=[[0.2, -0.2, 0.2]],
            teams=["Zambia", "Angola", "Mali"],
        )
        registry = TeamRegistry(["Zambia", "Angola", "Mali"])
        ratings = RatingAggregator(registry).aggregate(draws)

        assert [r.team for r in ratings] == ["Angola", "Mali", "Zambia"]

    def test_team_ids_from_registry(self):
        draws = make_draws([[0.1, -0.1]], [[0.2, 0.2]], teams=["Peru", "Chile"])
        ratings = RatingAggregator(TeamRegistry(["Peru", "Chile"])).aggregate(draws)

        assert {r.team: r.team_id for r in ratings} == {"Chile": 1, "Peru": 2}
        assert next(r for r in ratings if r.team == "Peru").alpha == pytest.approx(0.1)

    def test_one_row_per_team(self):
        rng = np.random.default_rng(0)
        teams = [f"T{i:02d}" for i in range(30)]
        draws = make_draws(rng.normal(size=(200, 30)), rng.normal(size=(200, 30)), teams)
        ratings = RatingAggregator(TeamRegistry(teams)).aggregate(draws)

        assert len(ratings) == 30
        assert sorted(r.team for r in ratings) == teams

    def test_missing_team_raises(self):
        draws = make_draws([[0.1, -0.1]], [[0.2, 0.2]], teams=["A", "B"])

        with pytest.raises(AggregationError, match="absent"):
            RatingAggregator(TeamRegistry(["A", "B", "C"])).aggregate(draws)

    def test_unknown_team_raises(self):
        draws = make_draws([[0.1, -0.1, 0.0]], [[0.2, 0.2, 0.2]], teams=["A", "B", "X"])

        with pytest.raises(AggregationError):
            RatingAggregator(TeamRegistry(["A", "B"])).aggregate(draws)

    def test_shape_mismatch_raises(self):
        draws = make_draws([[0.1, -0.1]], [[0.2, 0.2], [0.1, 0.1]], teams=["A", "B"])

        with pytest.raises(AggregationError):
            RatingAggregator(TeamRegistry(["A", "B"])).aggregate(draws)

    def test_empty_draws_raise(self):
        draws = make_draws(np.zeros((0, 2)), np.zeros((0, 2)), teams=["A", "B"])

        with pytest.raises(AggregationError, match="empty"):
            RatingAggregator(TeamRegistry(["A", "B"])).aggregate(draws)


class TestRatingPersistence:
    """Test CSV output of the rating table."""

    def test_write_and_read(self, tmp_path):
        ratings = [
            Rating(team="Argentina", team_id=1, alpha=0.61, delta=0.12, net_rating=0.73),
            Rating(team="Cote d'Ivoire", team_id=2, alpha=-0.05, delta=-0.2, net_rating=0.15),
        ]
        path = write_ratings(ratings, tmp_path / "out" / "ratings.csv")

        assert path.exists()
        loaded = read_ratings(path)
        assert [(r.team, r.team_id) for r in loaded] == [("Argentina", 1), ("Cote d'Ivoire", 2)]
        for got, expected in zip(loaded, ratings):
            assert got.alpha == pytest.approx(expected.alpha)
            assert got.delta == pytest.approx(expected.delta)
            assert got.net_rating == pytest.approx(expected.net_rating)

    def test_column_order(self):
        frame = ratings_to_frame([Rating("A", 1, 0.1, 0.2, 0.3)])
        assert tuple(frame.columns) == RATING_COLUMNS


class TestMatchPredictor:
    """Test fixture forecasts from posterior draws."""

    @pytest.fixture
    def draws(self):
        rng = np.random.default_rng(3)
        n = 400
        alpha = np.column_stack([
            rng.normal(0.5, 0.05, n),
            rng.normal(-0.5, 0.05, n),
            rng.normal(0.0, 0.05, n),
        ])
        delta = np.full((n, 3), 0.3)
        return make_draws(alpha, delta, teams=["Strong", "Weak", "Mid"])

    def test_pmf_grid_rows_sum_to_one(self):
        grid = poisson_pmf_grid(np.array([0.5, 1.5, 3.0]), max_goals=20)

        assert grid.shape == (3, 21)
        np.testing.assert_allclose(grid.sum(axis=1), 1.0, atol=1e-6)
        assert grid[0, 0] == pytest.approx(np.exp(-0.5))

    def test_probabilities_sum_to_one(self, draws):
        pred = MatchPredictor(draws).predict_match("Strong", "Weak", neutral=False)

        assert pred.p_home_win + pred.p_draw + pred.p_away_win == pytest.approx(1.0)

    def test_stronger_team_favoured(self, draws):
        pred = MatchPredictor(draws).predict_match("Weak", "Strong")

        assert pred.p_away_win > pred.p_home_win
        assert pred.expected_away_goals > pred.expected_home_goals

    def test_neutral_site_is_symmetric(self, draws):
        predictor = MatchPredictor(draws)
        forward = predictor.predict_match("Strong", "Mid", neutral=True)
        reverse = predictor.predict_match("Mid", "Strong", neutral=True)

        assert forward.p_home_win == pytest.approx(reverse.p_away_win)
        assert forward.p_draw == pytest.approx(reverse.p_draw)

    def test_home_advantage_helps_host(self, draws):
        predictor = MatchPredictor(draws)
        neutral = predictor.predict_match("Mid", "Strong", neutral=True)
        hosted = predictor.predict_match("Mid", "Strong", neutral=False)

        assert hosted.p_home_win > neutral.p_home_win
        assert hosted.expected_away_goals == pytest.approx(neutral.expected_away_goals)

    def test_unknown_team(self, draws):
        with pytest.raises(DataIntegrityError):
            MatchPredictor(draws).predict_match("Strong", "Atlantis")

    def test_self_match(self, draws):
        with pytest.raises(DataIntegrityError):
            MatchPredictor(draws).predict_match("Strong", "Strong")

    def test_to_dict(self, draws):
        result = MatchPredictor(draws).predict_match("Strong", "Weak").to_dict()

        assert result["home_team"] == "Strong"
        assert len(result["expected_goals"]) == 2
        assert len(result["most_likely_score"]) == 2
