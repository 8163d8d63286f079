"""HOUSEEDGE Strategy Module - EV, sharp signals and staking."""

from .ev import (
    OddsEngine, EVResult, MatchEVAnalysis, BestPrice, ArbitrageOpportunity,
    selection_label, remove_margin, calculate_ev, kelly_criterion, detect_arbitrage,
)
from .sharp import (
    SharpSignalDetector, SharpAnalysis, SharpScan, SharpMatchInput,
    money_vs_bets_divergence,
)
from .staking import (
    StakingEngine, StakingPolicy, StakingDecision, SimulationResult,
    StrategyComparison, DrawdownStatus, RiskCheck, RiskAlert,
    flat_stake, kelly_stake, confidence_weighted_stake, curve_max_drawdown,
)

__all__ = [
    # EV
    "OddsEngine",
    "EVResult",
    "MatchEVAnalysis",
    "BestPrice",
    "ArbitrageOpportunity",
    "selection_label",
    "remove_margin",
    "calculate_ev",
    "kelly_criterion",
    "detect_arbitrage",
    # Sharp
    "SharpSignalDetector",
    "SharpAnalysis",
    "SharpScan",
    "SharpMatchInput",
    "money_vs_bets_divergence",
    # Staking
    "StakingEngine",
    "StakingPolicy",
    "StakingDecision",
    "SimulationResult",
    "StrategyComparison",
    "DrawdownStatus",
    "RiskCheck",
    "RiskAlert",
    "flat_stake",
    "kelly_stake",
    "confidence_weighted_stake",
    "curve_max_drawdown",
]
