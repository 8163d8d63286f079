"""
Slip Generator
==============

Turns analysis into ranked betting recommendations ("slips").

For each fixture:
1. Match analyst -> true probabilities + confidence
2. Odds engine -> EV at the best available price, value bets
3. Sharp detector -> supporting signals
4. Staking engine -> recommended stake

Slips are kept only if EV >= min_ev and confidence >= min_confidence,
then ranked by EV x confidence.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence
import logging

from houseedge.analysis import MatchAnalysis, MatchAnalyst
from houseedge.config import Config
from houseedge.data.feed import MatchData
from houseedge.data.schemas import Match, SharpSignal
from houseedge.strategy.ev import EVResult, OddsEngine
from houseedge.strategy.sharp import SharpSignalDetector
from houseedge.strategy.staking import StakingDecision, StakingEngine
from houseedge.utils.identifiers import new_id, utc_now
from houseedge.utils.stats import format_currency, format_ev, format_odds, percentage

logger = logging.getLogger(__name__)

LOW_CONFIDENCE = 0.75
HIGH_SCORING_GOALS = 3.0


@dataclass
class BettingSlip:
    """A single recommendation."""
    match: Match
    market: str
    selection: str
    odds: float
    bookmaker: str
    ev: float
    stake: float
    confidence: float
    rationale: str
    decision: StakingDecision
    risk_factors: List[str] = field(default_factory=list)
    sharp_signals: List[SharpSignal] = field(default_factory=list)
    key_factors: List[str] = field(default_factory=list)
    recommendation_id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=utc_now)

    @property
    def score(self) -> float:
        return self.ev * self.confidence


@dataclass
class SlateResult:
    total_matches: int
    total_slips: int
    recommended_slips: int
    slips: List[BettingSlip]


def generate_rationale(ev: float, confidence: float) -> str:
    return f"Expected value: {format_ev(ev)}. Confidence: {percentage(confidence)}."


def identify_risk_factors(match: Match, analysis: MatchAnalysis) -> List[str]:
    factors = []
    if (match.weather or "").lower() == "rain":
        factors.append("Adverse weather conditions")
    if analysis.confidence < LOW_CONFIDENCE:
        factors.append("Limited data confidence")
    if analysis.expected_total_goals > HIGH_SCORING_GOALS:
        factors.append("High-scoring match expected (increased variance)")
    factors.append("Standard betting risk applies")
    return factors


def rank_slips(slips: Sequence[BettingSlip]) -> List[BettingSlip]:
    """Best first by EV x confidence."""
    return sorted(slips, key=lambda s: s.score, reverse=True)


def format_slip_for_display(slip: BettingSlip) -> dict:
    return {
        "match": slip.match.display_name,
        "league": slip.match.league,
        "kickoff": slip.match.kickoff.strftime("%Y-%m-%d %H:%M"),
        "selection": slip.selection,
        "bookmaker": slip.bookmaker,
        "odds": format_odds(slip.odds),
        "stake": format_currency(slip.stake),
        "ev": format_ev(slip.ev),
        "confidence": percentage(slip.confidence),
        "rationale": slip.rationale,
        "risk_factors": list(slip.risk_factors),
        "sharp_signals": len(slip.sharp_signals),
    }


class SlipGenerator:
    """
    Joins the analyst, odds engine, sharp detector and staking engine.

    Quotes for a fixture must already be ingested into the odds engine.
    """

    def __init__(
        self,
        config: Config,
        analyst: MatchAnalyst,
        engine: OddsEngine,
        detector: SharpSignalDetector,
        staking: StakingEngine,
    ):
        self.config = config
        self.analyst = analyst
        self.engine = engine
        self.detector = detector
        self.staking = staking

    def meets_criteria(self, slip: BettingSlip) -> bool:
        return (
            slip.ev >= self.config.slips.min_ev
            and slip.confidence >= self.config.slips.min_confidence
        )

    def create_slip(
        self,
        match: Match,
        ev_result: EVResult,
        analysis: MatchAnalysis,
        signals: List[SharpSignal],
    ) -> BettingSlip:
        decision = self.staking.make_staking_decision(
            match.id,
            ev_result.market,
            ev_result.selection,
            ev_result.odds,
            ev_result.ev,
            analysis.confidence,
        )
        return BettingSlip(
            match=match,
            market=ev_result.market,
            selection=ev_result.selection,
            odds=ev_result.odds,
            bookmaker=ev_result.bookmaker,
            ev=ev_result.ev,
            stake=decision.recommended_stake,
            confidence=analysis.confidence,
            rationale=generate_rationale(ev_result.ev, analysis.confidence),
            decision=decision,
            risk_factors=identify_risk_factors(match, analysis),
            sharp_signals=[s for s in signals if s.direction == ev_result.selection],
            key_factors=list(analysis.key_factors),
        )

    def generate_for_match(self, data: MatchData, market: str = "match_result") -> List[BettingSlip]:
        match = data.match
        analysis = self.analyst.analyze(match.id, data.home_form, data.away_form)
        if analysis is None:
            return []

        ev_analysis = self.engine.analyze_match_ev(match.id, analysis.true_probability.probabilities, market)

        sharp = self.detector.analyze_match(
            match.id,
            data.line_history(),
            data.public_percentages,
            market=market,
            multi_book_lines=data.multi_book_lines(),
            evs=[r.ev for r in ev_analysis.ev_results],
        )

        slips = [
            self.create_slip(match, r, analysis, sharp.signals)
            for r in ev_analysis.value_bets
        ]
        qualified = [s for s in slips if self.meets_criteria(s)]

        logger.debug(f"{match.display_name}: {len(ev_analysis.value_bets)} value bets, {len(qualified)} slips")
        return qualified

    def generate_slate(self, slate: Sequence[MatchData]) -> SlateResult:
        all_slips: List[BettingSlip] = []
        for data in slate:
            all_slips.extend(self.generate_for_match(data))

        ranked = rank_slips(all_slips)
        top = ranked[: self.config.slips.max_daily_slips]

        logger.info(f"Slate: {len(slate)} matches, {len(all_slips)} slips, {len(top)} recommended")
        return SlateResult(
            total_matches=len(slate),
            total_slips=len(all_slips),
            recommended_slips=len(top),
            slips=top,
        )
