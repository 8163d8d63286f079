"""Match analysis - form and xG based probability estimates."""

from .match_analyst import (
    MatchAnalyst,
    MatchAnalysis,
    TeamFormSummary,
    score_matrix,
    outcome_probabilities,
)

__all__ = [
    "MatchAnalyst",
    "MatchAnalysis",
    "TeamFormSummary",
    "score_matrix",
    "outcome_probabilities",
]
