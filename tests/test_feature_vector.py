import dataclasses

import pytest

from footyforecast.errors import ValidationError
from footyforecast.features.feature_vector import assemble_feature_vector


def test_flat_dict_uses_dotted_section_names(build_vector):
    fv = build_vector("in_form", "out_of_form")
    flat = fv.as_flat_dict()

    assert flat["home_team_features.form_points_last_5"] == 15
    assert flat["away_team_features.form_points_last_5"] == 0
    assert flat["match_features.league_avg_home_advantage"] == pytest.approx(0.15)
    assert "head_to_head_features.h2h_home_win_ratio" in flat
    assert flat["external_features.source"] == "placeholder"


def test_numeric_items_exclude_bools_and_strings(build_vector):
    fv = build_vector("home_side", "away_side")
    names = dict(fv.numeric_items())

    assert "match_features.is_weekend_match" not in names
    assert "home_team_features.current_streak_type" not in names
    assert "external_features.is_placeholder" not in names
    assert fv.count_features() == len(names)
    assert fv.count_features() > 60


def test_non_finite_value_is_rejected(build_vector):
    fv = build_vector("home_side", "away_side")
    broken_home = dataclasses.replace(fv.home_team, points_per_game=float("nan"))

    with pytest.raises(ValidationError, match="home_team_features.points_per_game"):
        assemble_feature_vector(
            broken_home, fv.away_team, fv.match, fv.head_to_head, fv.external
        )


def test_feature_vector_is_immutable(build_vector):
    fv = build_vector("home_side", "away_side")
    with pytest.raises(dataclasses.FrozenInstanceError):
        fv.home_team = fv.away_team
