class DartScoringError(Exception):
    """Base class for errors raised by the scoring core."""


class NotCalibratedError(DartScoringError, RuntimeError):
    """Scoring was requested before any board calibration was set."""

    def __init__(self, message: str = "dartboard is not calibrated") -> None:
        super().__init__(message)


class GameStateError(DartScoringError, RuntimeError):
    """An operation is not allowed in the session's current state."""
