"""
Staking Engine
==============

Three interchangeable stake-sizing policies:
1. Flat - fixed fraction of bankroll
2. Kelly - fractional Kelly, bounded to [min_stake, bankroll * max_fraction]
3. Confidence - 1-5 units (1 unit = 1% of bankroll) by confidence/EV tier

Also provides fork simulation: replaying the recorded bet history under a
different policy to get a counterfactual bankroll curve. Simulation only
reads a ledger snapshot and is fully deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence
import logging

from houseedge.bankroll import Ledger
from houseedge.config import Config
from houseedge.data.schemas import Bet, BetResult
from houseedge.utils.identifiers import new_id
from houseedge.utils.stats import clamp, format_ev, percentage, round_to

from .ev import kelly_criterion

logger = logging.getLogger(__name__)

# Confidence assumed for historical bets recorded without one
DEFAULT_SIMULATION_CONFIDENCE = 0.75

UNIT_FRACTION = 0.01

# (min confidence, min EV, units), checked top-down with strict ">"
CONFIDENCE_TIERS = [
    (0.85, 0.10, 5.0),
    (0.80, 0.08, 4.0),
    (0.75, 0.06, 3.0),
    (0.70, 0.05, 2.0),
]


class StakingPolicy(str, Enum):
    FLAT = "flat"
    KELLY = "kelly"
    CONFIDENCE = "confidence"

    @classmethod
    def parse(cls, value: "str | StakingPolicy") -> "StakingPolicy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown staking policy {value!r}; expected one of {[p.value for p in cls]}"
            ) from None


class RiskAlert(str, Enum):
    OK = "ok"
    CAUTION = "caution"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def message(self) -> str:
        return _ALERT_MESSAGES[self]


_ALERT_MESSAGES = {
    RiskAlert.CRITICAL: "30% drawdown - Consider stopping",
    RiskAlert.WARNING: "20% drawdown - Review strategy",
    RiskAlert.CAUTION: "10% drawdown - Monitor closely",
    RiskAlert.OK: "Within acceptable variance",
}


# ----------------------------------------------------------------------
# Policies
# ----------------------------------------------------------------------

def flat_stake(bankroll: float, flat_fraction: float) -> float:
    return bankroll * flat_fraction


def kelly_stake(
    bankroll: float,
    edge: float,
    odds: float,
    fraction: float,
    min_stake: float,
    max_fraction: float,
) -> float:
    """Fractional Kelly clamped to [min_stake, bankroll * max_fraction]."""
    stake = kelly_criterion(bankroll, edge, odds, fraction)
    return clamp(stake, min_stake, bankroll * max_fraction)


def confidence_units(confidence: float, ev: float) -> float:
    for min_conf, min_ev, units in CONFIDENCE_TIERS:
        if confidence > min_conf and ev > min_ev:
            return units
    return 1.0


def confidence_weighted_stake(
    bankroll: float,
    confidence: float,
    ev: float,
    max_fraction: float,
) -> float:
    unit = bankroll * UNIT_FRACTION
    return min(unit * confidence_units(confidence, ev), bankroll * max_fraction)


# ----------------------------------------------------------------------
# Results
# ----------------------------------------------------------------------

@dataclass
class RiskCheck:
    alert: RiskAlert
    message: str
    drawdown_percentage: float

    def to_dict(self) -> dict:
        return {
            "alert": self.alert.value,
            "message": self.message,
            "drawdown_percentage": round(self.drawdown_percentage, 4),
        }


@dataclass
class DrawdownStatus:
    drawdown: float
    drawdown_percentage: float
    from_peak: float
    current: float


@dataclass
class StakingDecision:
    """Recommended stake for a prospective bet."""
    bet_id: str
    match_id: str
    market: str
    selection: str
    strategy: StakingPolicy
    bankroll: float
    recommended_stake: float
    stake_percentage: float
    rationale: str
    risk_check: RiskCheck

    def to_dict(self) -> dict:
        return {
            "bet_id": self.bet_id,
            "match_id": self.match_id,
            "market": self.market,
            "selection": self.selection,
            "strategy": self.strategy.value,
            "bankroll": round(self.bankroll, 2),
            "recommended_stake": self.recommended_stake,
            "stake_percentage": self.stake_percentage,
            "rationale": self.rationale,
            "risk_check": self.risk_check.to_dict(),
        }


@dataclass
class SimulationResult:
    """Counterfactual replay of the ledger under one policy."""
    strategy: StakingPolicy
    initial_bankroll: float
    final_bankroll: float
    bets: List[Bet] = field(default_factory=list)
    bankroll_curve: List[float] = field(default_factory=list)


@dataclass
class StrategyComparison:
    strategy: StakingPolicy
    final_bankroll: float
    roi: float
    max_drawdown: float
    is_current: bool = False

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy.value,
            "final_bankroll": round(self.final_bankroll, 2),
            "roi": round(self.roi, 4),
            "max_drawdown": round(self.max_drawdown, 2),
            "is_current": self.is_current,
        }


def curve_max_drawdown(curve: Sequence[float]) -> float:
    """Largest peak-to-trough fall along a balance curve."""
    peak = float("-inf")
    max_dd = 0.0
    for balance in curve:
        peak = max(peak, balance)
        max_dd = max(max_dd, peak - balance)
    return max_dd


# ----------------------------------------------------------------------
# Engine
# ----------------------------------------------------------------------

class StakingEngine:
    """
    Stake sizing and risk management on top of the ledger.

    Reads the ledger for bankroll state; the only write is place_bet(),
    which goes through Ledger.append.
    """

    def __init__(self, config: Config, ledger: Ledger):
        self.config = config
        self.ledger = ledger

    def calculate_stake(
        self,
        policy: "str | StakingPolicy",
        bankroll: float,
        edge: float = 0.0,
        odds: float = 0.0,
        confidence: float = DEFAULT_SIMULATION_CONFIDENCE,
        ev: Optional[float] = None,
    ) -> float:
        policy = StakingPolicy.parse(policy)
        cfg = self.config.bankroll
        ev = edge if ev is None else ev

        if policy == StakingPolicy.KELLY:
            return kelly_stake(
                bankroll, edge, odds,
                cfg.kelly_fraction, cfg.min_stake, cfg.max_stake_fraction,
            )
        if policy == StakingPolicy.CONFIDENCE:
            return confidence_weighted_stake(bankroll, confidence, ev, cfg.max_stake_fraction)
        return flat_stake(bankroll, cfg.flat_fraction)

    def _rationale(self, policy: StakingPolicy, ev: float, confidence: float) -> str:
        cfg = self.config.bankroll
        if policy == StakingPolicy.KELLY:
            return f"Kelly Criterion ({percentage(cfg.kelly_fraction)} Kelly) based on {format_ev(ev)} edge"
        if policy == StakingPolicy.CONFIDENCE:
            return f"Confidence-weighted: {confidence:.2f} confidence, {format_ev(ev)} EV"
        return f"Flat betting: {percentage(cfg.flat_fraction)} of bankroll"

    def make_staking_decision(
        self,
        match_id: str,
        market: str,
        selection: str,
        odds: float,
        ev: float,
        confidence: float,
        policy: "str | StakingPolicy | None" = None,
    ) -> StakingDecision:
        """Size a prospective bet from the current ledger bankroll."""
        policy = StakingPolicy.parse(policy or self.config.bankroll.default_strategy)
        bankroll = self.ledger.current_bankroll()

        stake = self.calculate_stake(policy, bankroll, edge=ev, odds=odds, confidence=confidence, ev=ev)
        stake_pct = stake / bankroll if bankroll > 0 else 0.0

        return StakingDecision(
            bet_id=new_id(),
            match_id=match_id,
            market=market,
            selection=selection,
            strategy=policy,
            bankroll=bankroll,
            recommended_stake=round_to(stake, 2),
            stake_percentage=round_to(stake_pct, 4),
            rationale=self._rationale(policy, ev, confidence),
            risk_check=self.check_loss_limits(),
        )

    def place_bet(
        self,
        decision: StakingDecision,
        odds: float,
        ev: float,
        confidence: Optional[float] = None,
    ) -> Bet:
        """Record the decision as a pending bet in the ledger."""
        bet = Bet(
            id=decision.bet_id,
            match_id=decision.match_id,
            market=decision.market,
            selection=decision.selection,
            odds=odds,
            stake=decision.recommended_stake,
            strategy=decision.strategy.value,
            ev=ev,
            confidence=confidence,
        )
        return self.ledger.append(bet)

    # ------------------------------------------------------------------
    # Fork simulation
    # ------------------------------------------------------------------

    def simulate_alternative_strategy(
        self,
        policy: "str | StakingPolicy",
        bets: Optional[Sequence[Bet]] = None,
    ) -> SimulationResult:
        """
        Replay the ledger under another policy.

        Odds, EV and results stay fixed; only stakes and profits are
        recomputed. Pending bets are re-staked but keep profit=None and
        do not move the bankroll.
        """
        policy = StakingPolicy.parse(policy)
        history = self.ledger.bets if bets is None else tuple(bets)
        initial = self.config.bankroll.initial_bankroll

        bankroll = initial
        curve = [initial]
        replayed: List[Bet] = []

        for bet in history:
            confidence = bet.confidence if bet.confidence is not None else DEFAULT_SIMULATION_CONFIDENCE
            stake = self.calculate_stake(
                policy, bankroll, edge=bet.ev, odds=bet.odds, confidence=confidence, ev=bet.ev,
            )

            if bet.is_settled:
                profit: Optional[float] = bet.settlement_profit(bet.result, stake=stake)
                bankroll += profit
                curve.append(bankroll)
            else:
                profit = None

            replayed.append(bet.model_copy(update={
                "stake": stake,
                "profit": profit,
                "strategy": policy.value,
            }))

        return SimulationResult(
            strategy=policy,
            initial_bankroll=initial,
            final_bankroll=bankroll,
            bets=replayed,
            bankroll_curve=curve,
        )

    def compare_strategies(self) -> List[StrategyComparison]:
        """Replay every policy over one snapshot, best final bankroll first."""
        snapshot = self.ledger.bets
        initial = self.config.bankroll.initial_bankroll
        current = StakingPolicy.parse(self.config.bankroll.default_strategy)

        results = []
        for policy in StakingPolicy:
            sim = self.simulate_alternative_strategy(policy, bets=snapshot)
            results.append(StrategyComparison(
                strategy=policy,
                final_bankroll=sim.final_bankroll,
                roi=(sim.final_bankroll - initial) / initial,
                max_drawdown=curve_max_drawdown(sim.bankroll_curve),
                is_current=policy == current,
            ))

        results.sort(key=lambda r: -r.final_bankroll)
        return results

    # ------------------------------------------------------------------
    # Risk
    # ------------------------------------------------------------------

    def current_drawdown(self) -> DrawdownStatus:
        current = self.ledger.current_bankroll()
        peak = self.ledger.peak_bankroll()
        drawdown = peak - current
        return DrawdownStatus(
            drawdown=drawdown,
            drawdown_percentage=drawdown / peak if peak > 0 else 0.0,
            from_peak=peak,
            current=current,
        )

    def check_loss_limits(self) -> RiskCheck:
        dd_pct = self.current_drawdown().drawdown_percentage

        if dd_pct >= 0.30:
            alert = RiskAlert.CRITICAL
        elif dd_pct >= 0.20:
            alert = RiskAlert.WARNING
        elif dd_pct >= 0.10:
            alert = RiskAlert.CAUTION
        else:
            alert = RiskAlert.OK

        if alert != RiskAlert.OK:
            logger.warning(f"Risk alert {alert.value}: drawdown {dd_pct:.1%}")

        return RiskCheck(alert=alert, message=alert.message, drawdown_percentage=dd_pct)
