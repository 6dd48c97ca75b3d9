"""
Feature vector assembly for footyforecast.

A pure structural merge of the four feature families. Assembly only validates:
every numeric field must be finite, which catches division-by-zero bugs
upstream before any strategy sees the vector.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from typing import Any, Dict, Iterator, Tuple

from footyforecast.errors import ValidationError
from footyforecast.features.match_context import (
    ExternalFactors,
    HeadToHeadFeatures,
    MatchFeatures,
)
from footyforecast.features.team_stats import TeamFeatures

SECTION_PREFIXES: Dict[str, str] = {
    "home_team": "home_team_features",
    "away_team": "away_team_features",
    "match": "match_features",
    "head_to_head": "head_to_head_features",
    "external": "external_features",
}


@dataclass(frozen=True)
class FeatureVector:
    """The complete input consumed by every scoring strategy."""

    home_team: TeamFeatures
    away_team: TeamFeatures
    match: MatchFeatures
    head_to_head: HeadToHeadFeatures
    external: ExternalFactors

    def _sections(self) -> Iterator[Tuple[str, Any]]:
        for attr, prefix in SECTION_PREFIXES.items():
            yield prefix, getattr(self, attr)

    def as_flat_dict(self) -> Dict[str, Any]:
        """
        Flatten to dotted names, e.g. 'home_team_features.form_points_last_5'.

        Includes the derived 'head_to_head_features.h2h_home_win_ratio'.
        """
        flat: Dict[str, Any] = {}
        for prefix, section in self._sections():
            for f in fields(section):
                flat[f"{prefix}.{f.name}"] = getattr(section, f.name)
        flat["head_to_head_features.h2h_home_win_ratio"] = (
            self.head_to_head.h2h_home_win_ratio
        )
        return flat

    def numeric_items(self) -> Iterator[Tuple[str, float]]:
        """Yield (name, value) for every int/float field (bools excluded)."""
        for name, value in self.as_flat_dict().items():
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                continue
            yield name, value

    def count_features(self) -> int:
        return sum(1 for _ in self.numeric_items())


def assemble_feature_vector(
    home_team: TeamFeatures,
    away_team: TeamFeatures,
    match: MatchFeatures,
    head_to_head: HeadToHeadFeatures,
    external: ExternalFactors,
) -> FeatureVector:
    """
    Merge the feature families into one FeatureVector.

    Raises
    ------
    ValidationError
        If any numeric field is NaN or infinite.
    """
    vector = FeatureVector(
        home_team=home_team,
        away_team=away_team,
        match=match,
        head_to_head=head_to_head,
        external=external,
    )

    bad = [name for name, value in vector.numeric_items() if not math.isfinite(value)]
    if bad:
        raise ValidationError(f"Non-finite feature values: {bad}")

    return vector
