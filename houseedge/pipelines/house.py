"""
HouseEdge Pipeline
==================

Composition root. Builds and owns every stateful component (ledger, odds
engine, sharp detector, staking engine, analyzer, analyst, slip generator)
and wires them together for one process.

Usage:
    house = HouseEdge.from_config(get_config())
    slate = MockFeed(house.config, seed=42).generate_slate()
    result = house.run_slate(slate, place_bets=True)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence
import logging

import numpy as np

from houseedge.analysis import MatchAnalyst
from houseedge.bankroll import Ledger, LedgerStore
from houseedge.config import Config, get_config
from houseedge.data.feed import MatchData
from houseedge.data.schemas import Bet, BetResult
from houseedge.data.stream import OddsStream
from houseedge.performance import PerformanceAnalyzer
from houseedge.slips import SlateResult, SlipGenerator
from houseedge.strategy.ev import OddsEngine, selection_label
from houseedge.strategy.sharp import SharpSignalDetector
from houseedge.strategy.staking import StakingEngine

logger = logging.getLogger(__name__)


@dataclass
class HouseEdge:
    """All long-lived state for one process."""
    config: Config
    ledger: Ledger
    engine: OddsEngine
    detector: SharpSignalDetector
    staking: StakingEngine
    analyzer: PerformanceAnalyzer
    analyst: MatchAnalyst
    slips: SlipGenerator
    placed: List[Bet] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: Optional[Config] = None, persist: bool = True) -> "HouseEdge":
        """
        Build the component graph.

        With persist=False (or no ledger_path) the ledger lives in memory only.
        """
        config = config or get_config()

        store = LedgerStore(config.ledger_path) if persist and config.ledger_path else None
        ledger = Ledger(config.bankroll.initial_bankroll, store=store)

        engine = OddsEngine(config)
        detector = SharpSignalDetector(config)
        staking = StakingEngine(config, ledger)
        analyst = MatchAnalyst(config)

        house = cls(
            config=config,
            ledger=ledger,
            engine=engine,
            detector=detector,
            staking=staking,
            analyzer=PerformanceAnalyzer(config),
            analyst=analyst,
            slips=SlipGenerator(config, analyst, engine, detector, staking),
        )
        logger.info(
            f"HouseEdge ready: {len(ledger)} bets in ledger, "
            f"bankroll {ledger.current_bankroll():.2f}"
        )
        return house

    # ------------------------------------------------------------------
    # Flow
    # ------------------------------------------------------------------

    def ingest_slate(self, slate: Sequence[MatchData]) -> int:
        """Push every quote of the slate through the odds stream and wait for it."""
        stream = OddsStream(self.engine, maxsize=self.config.odds.queue_size)
        stream.start()
        for data in slate:
            for quote in data.quotes:
                stream.submit(quote)
        stream.stop(drain=True)

        if stream.failed:
            logger.warning(f"{stream.failed} quotes rejected during ingestion")
        return stream.processed

    def run_slate(self, slate: Sequence[MatchData], place_bets: bool = False) -> SlateResult:
        """Ingest, analyse and rank a slate; optionally record the top slips as bets."""
        self.ingest_slate(slate)
        result = self.slips.generate_slate(slate)

        if place_bets:
            for slip in result.slips:
                bet = self.staking.place_bet(slip.decision, slip.odds, slip.ev, slip.confidence)
                self.placed.append(bet)

        return result

    def settle_from_simulation(
        self,
        slate: Sequence[MatchData],
        rng: np.random.Generator,
    ) -> List[Bet]:
        """Settle pending bets on the slate by drawing each outcome from its true probabilities."""
        outcomes: Dict[str, str] = {}
        for data in slate:
            probs = np.asarray(data.true_probabilities, dtype=float)
            idx = int(rng.choice(len(probs), p=probs / probs.sum()))
            outcomes[data.match_id] = selection_label(idx, len(probs))

        settled = []
        for bet in self.ledger.pending_bets():
            outcome = outcomes.get(bet.match_id)
            if outcome is None:
                continue
            result = BetResult.WON if bet.selection == outcome else BetResult.LOST
            updated = self.ledger.settle(bet.id, result)
            if updated is not None:
                settled.append(updated)

        return settled

    def status(self) -> dict:
        snapshot = self.ledger.snapshot()
        risk = self.staking.check_loss_limits()
        return {
            "bankroll": snapshot.to_dict(),
            "pending_bets": len(self.ledger.pending_bets()),
            "risk": risk.to_dict(),
            "sharp_signals": self.detector.signal_counts(),
        }
