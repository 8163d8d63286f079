"""Betting slip generation and ranking."""

from .generator import (
    SlipGenerator,
    BettingSlip,
    SlateResult,
    generate_rationale,
    identify_risk_factors,
    rank_slips,
    format_slip_for_display,
)

__all__ = [
    "SlipGenerator",
    "BettingSlip",
    "SlateResult",
    "generate_rationale",
    "identify_risk_factors",
    "rank_slips",
    "format_slip_for_display",
]
