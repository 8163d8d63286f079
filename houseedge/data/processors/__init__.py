"""
Data processors package.

Exports validation and line movement processors.
"""

from .validate import (
    ValidationResult,
    OddsValidator,
    MatchValidator,
)

from .line_movement import (
    LineMovement,
    LineMovementTracker,
    calculate_line_movement,
    LENGTHENING,
    SHORTENING,
    NO_MOVEMENT,
)


__all__ = [
    # Validate
    "ValidationResult",
    "OddsValidator",
    "MatchValidator",
    # Line movement
    "LineMovement",
    "LineMovementTracker",
    "calculate_line_movement",
    "LENGTHENING",
    "SHORTENING",
    "NO_MOVEMENT",
]
