"""
Data package - feed schemas, validation, line movement and ingestion.

This is the entry point for all inbound data in HOUSEEDGE.
"""

from .schemas import (
    Match, OddsQuote, TrueProbability, LineHistory,
    FormResult, FormMatch, TeamForm,
    BetResult, SignalType, SharpSignal, Bet, BankrollSnapshot,
)

from .processors import (
    OddsValidator, MatchValidator, ValidationResult,
    LineMovement, LineMovementTracker, calculate_line_movement,
)


__all__ = [
    # Schemas
    "Match", "OddsQuote", "TrueProbability", "LineHistory",
    "FormResult", "FormMatch", "TeamForm",
    "BetResult", "SignalType", "SharpSignal", "Bet", "BankrollSnapshot",
    # Processors
    "OddsValidator", "MatchValidator", "ValidationResult",
    "LineMovement", "LineMovementTracker", "calculate_line_movement",
]
