"""
Error taxonomy for footyforecast.

Callers receive either a complete result or one of these categorized errors.
Degraded strategy output is not an error: it is flagged on the result itself.
"""


class ForecastError(Exception):
    """Base class for all engine errors."""


class EntityNotFoundError(ForecastError, LookupError):
    """An entity (team) id could not be resolved."""

    def __init__(self, entity_id) -> None:
        super().__init__(f"Team {entity_id!r} not found")
        self.entity_id = entity_id


class ValidationError(ForecastError, ValueError):
    """Malformed or self-referential request, or a non-finite feature."""


class TransientFailureError(ForecastError):
    """A collaborator timed out or was temporarily unavailable; retry later."""

    def __init__(self, collaborator: str, detail: str = "") -> None:
        message = f"{collaborator} temporarily unavailable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.collaborator = collaborator
