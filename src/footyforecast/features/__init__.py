"""
Feature engineering for footyforecast.

- `team_stats` aggregates per-team statistics (form, streaks, trends).
- `match_context` builds match-level, head-to-head and external features.
- `feature_vector` assembles and validates the final feature vector.
"""
