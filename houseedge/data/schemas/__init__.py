"""
Data schemas package.

Re-exports all schema classes for convenient importing:
    from houseedge.data.schemas import Match, OddsQuote, Bet
"""

from .match import (
    Match,
    OddsQuote,
    TrueProbability,
    LineHistory,
    FormResult,
    FormMatch,
    TeamForm,
)

from .bet import (
    BetResult,
    SignalType,
    SharpSignal,
    Bet,
    BankrollSnapshot,
)


__all__ = [
    # Feed schemas
    "Match",
    "OddsQuote",
    "TrueProbability",
    "LineHistory",
    "FormResult",
    "FormMatch",
    "TeamForm",
    # Output schemas
    "BetResult",
    "SignalType",
    "SharpSignal",
    "Bet",
    "BankrollSnapshot",
]
