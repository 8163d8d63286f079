"""
Sharp Signal Detector
=====================

Detects professional ("sharp") money from price movement and public
betting percentages:
1. Reverse Line Movement - public heavy on a selection, yet its price shortens
2. Steam Move - 3+ bookmakers move the same selection the same way
3. Contrarian - little public support but positive EV

Every emitted signal is appended to a rolling history. Emission is not
idempotent: analysing the same match twice records its signals twice.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence
import logging

from houseedge.config import Config
from houseedge.data.schemas import LineHistory, SharpSignal, SignalType
from houseedge.utils.identifiers import utc_now
from houseedge.utils.stats import clamp, mean, percentage, format_ev, round_to

from .ev import selection_label

logger = logging.getLogger(__name__)

PUBLIC_HEAVY = 0.55      # Public share above which a side is "public"
PUBLIC_LIGHT = 0.35      # Public share below which a side is unloved
CONTRARIAN_MIN_EV = 0.05
MIN_STEAM_BOOKS = 3


@dataclass
class RLMCandidate:
    selection_index: int
    public_percentage: float
    line_movement: float
    direction: str


@dataclass
class SteamCandidate:
    selection_index: int
    movement: float
    direction: str
    num_books: int


@dataclass
class ContrarianCandidate:
    selection_index: int
    public_percentage: float
    ev: float
    direction: str


@dataclass
class SharpAnalysis:
    """All signals for one match/market."""
    match_id: str
    market: str
    signals: List[SharpSignal] = field(default_factory=list)
    highest_confidence: float = 0.0
    flagged: bool = False


@dataclass
class SharpScan:
    total_analyzed: int
    signals_detected: int
    sharp_matches: List[SharpAnalysis]


@dataclass
class SharpMatchInput:
    """Inputs needed to analyse one match."""
    match_id: str
    line_history: LineHistory
    public_percentages: Sequence[float]
    market: str = "match_result"
    multi_book_lines: Optional[Sequence[LineHistory]] = None
    evs: Optional[Sequence[float]] = None


def money_vs_bets_divergence(
    bet_percentages: Sequence[float],
    money_percentages: Sequence[float],
) -> List[float]:
    """money% - bets% per selection. Positive = fewer, bigger tickets (sharp side)."""
    return [m - b for b, m in zip(bet_percentages, money_percentages)]


class SharpSignalDetector:
    """
    Sharp money detection with an append-only signal history.

    Args:
        config: Application config (thresholds under config.sharp)
        clock: Time source for signal timestamps and recency queries
    """

    def __init__(self, config: Config, clock: Callable[[], datetime] = utc_now):
        self.config = config
        self.clock = clock
        self._history: List[SharpSignal] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def detect_rlm(
        self,
        line_history: LineHistory,
        public_percentages: Sequence[float],
    ) -> List[RLMCandidate]:
        """
        Reverse Line Movement.

        For each selection: public share > 55%, price shortened
        (current < opening) and the absolute price move exceeds
        the configured threshold.
        """
        opening = line_history.opening_line
        current = line_history.current_line
        if not opening or not current:
            return []

        n = min(len(opening), len(current))
        threshold = self.config.sharp.rlm_threshold
        candidates = []

        for i in range(n):
            public_pct = public_percentages[i] if i < len(public_percentages) else 0.5
            shortened = current[i] < opening[i]
            magnitude = abs(current[i] - opening[i])

            if public_pct > PUBLIC_HEAVY and shortened and magnitude > threshold:
                candidates.append(RLMCandidate(
                    selection_index=i,
                    public_percentage=public_pct,
                    line_movement=magnitude,
                    direction=selection_label(i, n),
                ))

        return candidates

    def detect_steam(self, multi_book_lines: Sequence[LineHistory]) -> List[SteamCandidate]:
        """
        Steam moves: synchronized movement across at least three books.

        A selection qualifies when every book moved it the same way as
        the average and the average fractional move exceeds the threshold.
        """
        if len(multi_book_lines) < MIN_STEAM_BOOKS:
            return []

        movements = []
        for line in multi_book_lines:
            movements.append([
                (c - o) / o for o, c in zip(line.opening_line, line.current_line)
            ])

        n = min(len(m) for m in movements)
        if n == 0:
            return []

        threshold = self.config.sharp.steam_threshold
        candidates = []

        for i in range(n):
            avg_move = mean(m[i] for m in movements)
            same_direction = all((m[i] > 0) == (avg_move > 0) for m in movements)
            magnitude = abs(avg_move)

            if same_direction and magnitude > threshold:
                candidates.append(SteamCandidate(
                    selection_index=i,
                    movement=magnitude,
                    direction=selection_label(i, n),
                    num_books=len(multi_book_lines),
                ))

        return candidates

    def detect_contrarian(
        self,
        public_percentages: Sequence[float],
        evs: Sequence[float],
    ) -> List[ContrarianCandidate]:
        """Contrarian value: < 35% public support but EV above 5%."""
        n = len(public_percentages)
        candidates = []

        for i, public_pct in enumerate(public_percentages):
            ev = evs[i] if i < len(evs) else 0.0
            if public_pct < PUBLIC_LIGHT and ev > CONTRARIAN_MIN_EV:
                candidates.append(ContrarianCandidate(
                    selection_index=i,
                    public_percentage=public_pct,
                    ev=ev,
                    direction=selection_label(i, n),
                ))

        return candidates

    # ------------------------------------------------------------------
    # Signal creation
    # ------------------------------------------------------------------

    def create_rlm_signal(self, match_id: str, market: str, rlm: RLMCandidate) -> SharpSignal:
        confidence = clamp(0.7 * (rlm.line_movement / 0.1), 0.65, 0.95)
        return SharpSignal(
            signal_type=SignalType.RLM,
            match_id=match_id,
            market=market,
            direction=rlm.direction,
            confidence=round_to(confidence, 2),
            evidence=[
                f"Public: {percentage(rlm.public_percentage)} on {rlm.direction}",
                f"Line movement: {percentage(rlm.line_movement)}",
            ],
            timestamp=self.clock(),
            public_percentage=rlm.public_percentage,
            money_percentage=1.0 - rlm.public_percentage,
        )

    def create_steam_signal(self, match_id: str, market: str, steam: SteamCandidate) -> SharpSignal:
        confidence = clamp(0.75 * (steam.movement / 0.05), 0.70, 0.95)
        return SharpSignal(
            signal_type=SignalType.STEAM,
            match_id=match_id,
            market=market,
            direction=steam.direction,
            confidence=round_to(confidence, 2),
            evidence=[
                f"Synchronized movement across {steam.num_books} bookmakers",
                f"Average movement: {percentage(steam.movement)}",
            ],
            timestamp=self.clock(),
        )

    def create_contrarian_signal(
        self, match_id: str, market: str, contrarian: ContrarianCandidate
    ) -> SharpSignal:
        confidence = clamp(0.65 * (1.0 + contrarian.ev), 0.65, 0.90)
        return SharpSignal(
            signal_type=SignalType.CONTRARIAN,
            match_id=match_id,
            market=market,
            direction=contrarian.direction,
            confidence=round_to(confidence, 2),
            evidence=[
                f"Only {percentage(contrarian.public_percentage)} public support",
                f"EV: {format_ev(contrarian.ev)}",
            ],
            timestamp=self.clock(),
            public_percentage=contrarian.public_percentage,
        )

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def analyze_match(
        self,
        match_id: str,
        line_history: LineHistory,
        public_percentages: Sequence[float],
        market: str = "match_result",
        multi_book_lines: Optional[Sequence[LineHistory]] = None,
        evs: Optional[Sequence[float]] = None,
    ) -> SharpAnalysis:
        """
        Run all detectors the inputs allow and record the resulting signals.

        RLM always runs; steam needs multi-book lines, contrarian needs EVs.
        """
        signals = [
            self.create_rlm_signal(match_id, market, c)
            for c in self.detect_rlm(line_history, public_percentages)
        ]

        if multi_book_lines:
            signals.extend(
                self.create_steam_signal(match_id, market, c)
                for c in self.detect_steam(multi_book_lines)
            )

        if evs is not None:
            signals.extend(
                self.create_contrarian_signal(match_id, market, c)
                for c in self.detect_contrarian(public_percentages, evs)
            )

        for signal in signals:
            self.record_signal(signal)

        highest = max((s.confidence for s in signals), default=0.0)
        flagged = bool(signals) and highest >= self.config.sharp.min_confidence

        if flagged:
            logger.info(
                f"Sharp action on {match_id}: {len(signals)} signal(s), "
                f"top confidence {highest:.2f}"
            )

        return SharpAnalysis(
            match_id=match_id,
            market=market,
            signals=signals,
            highest_confidence=highest,
            flagged=flagged,
        )

    def scan(self, matches: Sequence[SharpMatchInput]) -> SharpScan:
        analyses = [
            self.analyze_match(
                m.match_id,
                m.line_history,
                m.public_percentages,
                market=m.market,
                multi_book_lines=m.multi_book_lines,
                evs=m.evs,
            )
            for m in matches
        ]
        flagged = [a for a in analyses if a.flagged]
        return SharpScan(
            total_analyzed=len(matches),
            signals_detected=len(flagged),
            sharp_matches=flagged,
        )

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def record_signal(self, signal: SharpSignal) -> SharpSignal:
        with self._lock:
            self._history.append(signal)
        return signal

    @property
    def history(self) -> List[SharpSignal]:
        with self._lock:
            return list(self._history)

    def get_historical_signals(
        self,
        signal_type: Optional[SignalType] = None,
        min_confidence: Optional[float] = None,
        hours_back: Optional[float] = None,
    ) -> List[SharpSignal]:
        cutoff = self.clock() - timedelta(hours=hours_back) if hours_back is not None else None

        def keep(sig: SharpSignal) -> bool:
            if signal_type is not None and sig.signal_type != SignalType(signal_type):
                return False
            if min_confidence is not None and sig.confidence < min_confidence:
                return False
            if cutoff is not None and sig.timestamp <= cutoff:
                return False
            return True

        return [s for s in self.history if keep(s)]

    def get_sharp_plays(self, min_confidence: Optional[float] = None) -> List[SharpSignal]:
        """Recent signals above a confidence floor (defaults to config)."""
        if min_confidence is None:
            min_confidence = self.config.sharp.min_confidence
        return self.get_historical_signals(
            min_confidence=min_confidence,
            hours_back=self.config.sharp.lookback_hours,
        )

    def signal_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {t.value: 0 for t in SignalType}
        for s in self.history:
            counts[s.signal_type.value] += 1
        return counts
