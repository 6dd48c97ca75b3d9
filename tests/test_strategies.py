import dataclasses

import numpy as np
import pytest

from footyforecast.config import AWAY_WIN, DRAW, HOME_WIN
from footyforecast.models.strategies import (
    DEFAULT_W1,
    LayeredWeightsStrategy,
    MajorityVoteStrategy,
    RuleCascadeStrategy,
    Strategy,
    default_strategies,
    pick_outcome,
    scale_inputs,
)


@pytest.mark.parametrize(
    "probabilities, expected",
    [
        ((0.5, 0.3, 0.2), HOME_WIN),
        ((0.2, 0.3, 0.5), AWAY_WIN),
        ((0.2, 0.6, 0.2), DRAW),
        ((0.4, 0.2, 0.4), DRAW),
        ((0.4, 0.4, 0.2), DRAW),
        ((1 / 3, 1 / 3, 1 / 3), DRAW),
    ],
)
def test_pick_outcome_resolves_ties_to_draw(probabilities, expected):
    assert pick_outcome(probabilities) == expected


def test_every_strategy_returns_a_distribution(build_vector):
    fv = build_vector("home_side", "away_side")
    for strategy in default_strategies():
        estimate = strategy.score(fv)
        assert estimate.strategy == strategy.name
        assert sum(estimate.probabilities) == pytest.approx(1.0, abs=1e-9)
        assert all(0.0 <= p <= 1.0 for p in estimate.probabilities)
        assert estimate.probability == max(estimate.probabilities)
        assert not estimate.degraded


def test_rule_cascade_favours_team_in_form(build_vector):
    estimate = RuleCascadeStrategy().score(build_vector("in_form", "out_of_form"))
    home, draw, away = estimate.probabilities

    assert estimate.outcome == HOME_WIN
    assert home == pytest.approx(0.3225 / 0.5225 / 1.05, rel=1e-6)
    assert away == pytest.approx(0.05 / 1.05, rel=1e-6)


def test_rule_cascade_identical_teams_is_draw(build_vector):
    estimate = RuleCascadeStrategy().score(build_vector("home_side", "away_side"))
    assert estimate.outcome == DRAW
    assert estimate.probability == pytest.approx(0.9 / 1.0198, rel=1e-3)


def test_majority_vote_counts_votes(build_vector):
    strategy = MajorityVoteStrategy()
    fv = build_vector("in_form", "out_of_form")

    # form and momentum favour home; position, scoring and home advantage are even
    assert strategy.votes(fv) == [HOME_WIN, DRAW, DRAW, DRAW, HOME_WIN]
    estimate = strategy.score(fv)
    assert estimate.outcome == DRAW
    assert estimate.probabilities == pytest.approx((0.4, 0.6, 0.0))


def test_majority_vote_home_advantage_rule(build_vector):
    fv = build_vector("home_side", "away_side")
    strong = dataclasses.replace(
        fv, match=dataclasses.replace(fv.match, league_avg_home_advantage=0.2)
    )
    weak = dataclasses.replace(
        fv, match=dataclasses.replace(fv.match, league_avg_home_advantage=0.0)
    )
    strategy = MajorityVoteStrategy()

    assert strategy.votes(strong)[3] == HOME_WIN
    assert strategy.votes(weak)[3] == AWAY_WIN


def test_layered_inputs_are_scaled_to_unit_interval(build_vector):
    inputs = scale_inputs(build_vector("in_form", "out_of_form"))

    assert inputs.shape == (10,)
    assert np.all((inputs >= 0) & (inputs <= 1))
    assert inputs[0] == 1.0 and inputs[1] == 0.0
    # never met -> neutral head-to-head ratio
    assert inputs[9] == 0.5


def test_layered_weights_favours_team_in_form(build_vector):
    estimate = LayeredWeightsStrategy().score(build_vector("in_form", "out_of_form"))
    assert estimate.outcome == HOME_WIN
    assert estimate.probability > 0.8


def test_layered_weights_identical_teams_has_no_strong_favourite(build_vector):
    estimate = LayeredWeightsStrategy().score(build_vector("home_side", "away_side"))
    assert max(estimate.probabilities) < 0.5


def test_layered_weights_rejects_wrong_shapes():
    with pytest.raises(ValueError, match="w1"):
        LayeredWeightsStrategy(w1=np.zeros((8, 12)))


def test_layered_weights_artifact_roundtrip(tmp_path, build_vector):
    fv = build_vector("dominant", "rival")
    saved = LayeredWeightsStrategy(w1=DEFAULT_W1 * 0.5)
    path = saved.save_artifact(tmp_path / "weights.joblib")

    loaded = LayeredWeightsStrategy.from_artifact(path)

    assert loaded.score(fv) == saved.score(fv)


class ExplodingStrategy(Strategy):
    name = "rule_cascade"

    def _score(self, features):
        return 1 / 0


def test_internal_error_degrades_to_neutral_estimate(build_vector):
    estimate = ExplodingStrategy().score(build_vector("home_side", "away_side"))

    assert estimate.degraded
    assert estimate.probability == pytest.approx(1 / 3)
    assert estimate.outcome == HOME_WIN


def test_numpy_overflow_degrades_instead_of_warning(build_vector):
    strategy = LayeredWeightsStrategy(b3=np.array([1e308, 1e308, -1e308]))
    estimate = strategy.score(build_vector("home_side", "away_side"))
    assert estimate.degraded


def test_neutral_outcomes_per_strategy():
    outcomes = [s.neutral_estimate().outcome for s in default_strategies()]
    assert outcomes == [HOME_WIN, DRAW, HOME_WIN]
