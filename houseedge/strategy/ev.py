"""
Expected Value (EV) Engine
==========================

The core formula: EV = true_probability * odds - 1

Keeps an append-only store of bookmaker quotes and provides:
1. Margin removal (implied -> true probabilities)
2. Best cross-bookmaker price per selection
3. EV per selection with a Kelly stake suggestion
4. Arbitrage detection across bookmakers
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union
import logging

from houseedge.config import Config
from houseedge.data.processors import OddsValidator, LineMovement, calculate_line_movement
from houseedge.data.schemas import OddsQuote, LineHistory
from houseedge.utils import stats
from houseedge.utils.identifiers import utc_now

logger = logging.getLogger(__name__)

NO_BOOKMAKER = "None"


def selection_label(index: int, num_selections: int = 3) -> str:
    """Selection name by index: 0 = home, last = away, middle = draw (3-way)."""
    if index == 0:
        return "home"
    if index == num_selections - 1:
        return "away"
    if num_selections == 3 and index == 1:
        return "draw"
    return f"selection_{index}"


def remove_margin(prices: Sequence[float]) -> List[float]:
    """Convert a bookmaker price vector into true probabilities summing to 1."""
    return stats.remove_margin(prices)


def calculate_ev(true_prob: float, odds: float) -> float:
    """
    EV = p * odds - 1

    Unbounded; negative values indicate a losing bet.
    """
    return true_prob * odds - 1.0


def kelly_criterion(bankroll: float, edge: float, odds: float, fraction: float) -> float:
    """
    Fractional Kelly stake in currency.

    Kelly% = edge / (odds - 1), floored at 0, then scaled by fraction.
    """
    if odds <= 1.0:
        return 0.0
    full_kelly = max(0.0, edge / (odds - 1.0))
    return bankroll * full_kelly * fraction


@dataclass(frozen=True)
class BestPrice:
    """Best price for a selection. price == 0 means no quote was available."""
    bookmaker: str
    price: float
    timestamp: datetime

    @classmethod
    def none(cls) -> "BestPrice":
        return cls(bookmaker=NO_BOOKMAKER, price=0.0, timestamp=utc_now())

    @property
    def is_available(self) -> bool:
        return self.price > 0


@dataclass
class EVResult:
    """EV calculation result for a single selection."""
    match_id: str
    market: str
    selection: str
    selection_index: int
    bookmaker: str
    odds: float
    true_probability: float
    ev: float
    kelly_stake: Optional[float] = None
    timestamp: datetime = field(default_factory=utc_now)

    @property
    def is_value(self) -> bool:
        return self.ev > 0

    def to_dict(self) -> dict:
        return {
            "match_id": self.match_id,
            "market": self.market,
            "selection": self.selection,
            "bookmaker": self.bookmaker,
            "odds": self.odds,
            "true_probability": round(self.true_probability, 4),
            "ev": round(self.ev, 4),
            "kelly_stake": round(self.kelly_stake, 2) if self.kelly_stake is not None else None,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class MatchEVAnalysis:
    match_id: str
    market: str
    ev_results: List[EVResult]
    value_bets: List[EVResult]


@dataclass(frozen=True)
class ArbitrageOpportunity:
    match_id: str
    market: str
    bookmakers: List[str]
    selections: List[int]
    odds: List[float]
    profit_margin: float
    timestamp: datetime

    def stakes_for(self, total_stake: float) -> List[float]:
        """Split total_stake so every selection returns the same amount."""
        implied = [1.0 / o for o in self.odds]
        total_implied = sum(implied)
        return [total_stake * p / total_implied for p in implied]


def _best_per_selection(quotes: Sequence[OddsQuote]) -> Optional[List[BestPrice]]:
    if not quotes:
        return None

    num_selections = max(len(q.prices) for q in quotes)
    best: List[BestPrice] = []

    for i in range(num_selections):
        candidates = [q for q in quotes if len(q.prices) > i]
        if not candidates:
            return None
        top = max(candidates, key=lambda q: q.prices[i])
        best.append(BestPrice(bookmaker=top.bookmaker, price=top.prices[i], timestamp=top.timestamp))

    return best


def detect_arbitrage(
    quotes: Sequence[OddsQuote],
    match_id: Optional[str] = None,
    market: Optional[str] = None,
) -> Optional[ArbitrageOpportunity]:
    """
    Detect arbitrage across bookmakers' current quotes.

    Arbitrage exists when: sum(1 / best_price_i) < 1
    Requires at least one price per selection.
    """
    best = _best_per_selection(quotes)
    if best is None:
        return None

    total_implied = sum(1.0 / b.price for b in best)
    if total_implied >= 1.0:
        return None

    opportunity = ArbitrageOpportunity(
        match_id=match_id or quotes[0].match_id,
        market=market or quotes[0].market,
        bookmakers=[b.bookmaker for b in best],
        selections=list(range(len(best))),
        odds=[b.price for b in best],
        profit_margin=1.0 - total_implied,
        timestamp=utc_now(),
    )

    logger.info(
        f"Arbitrage on {opportunity.match_id} ({opportunity.market}): "
        f"margin {opportunity.profit_margin:.2%} across {set(opportunity.bookmakers)}"
    )
    if opportunity.profit_margin > 0.05:
        logger.warning(
            f"Suspicious arbitrage margin {opportunity.profit_margin:.2%} on "
            f"{opportunity.match_id} - check for stale or mis-mapped quotes"
        )

    return opportunity


class OddsEngine:
    """
    Quote store and EV calculator.

    Quotes are appended, never mutated. The store is guarded by a lock so a
    single stream consumer and any number of readers can share it.
    """

    def __init__(self, config: Config):
        self.config = config
        self._quotes: List[OddsQuote] = []
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def ingest(self, quote: Union[OddsQuote, Mapping[str, Any]]) -> OddsQuote:
        """Validate and store a quote. Raises pydantic.ValidationError on bad input."""
        quote = OddsValidator.parse_quote(quote)

        check = OddsValidator.validate_quote(quote)
        for warning in check.warnings:
            logger.warning(f"{quote.bookmaker}/{quote.match_id}: {warning}")

        with self._lock:
            self._quotes.append(quote)

        logger.debug(f"Ingested {quote.bookmaker} {quote.market} {quote.prices} for {quote.match_id}")
        return quote

    def ingest_many(self, quotes: Iterable[Union[OddsQuote, Mapping[str, Any]]]) -> int:
        count = 0
        for q in quotes:
            self.ingest(q)
            count += 1
        return count

    @property
    def quotes(self) -> List[OddsQuote]:
        with self._lock:
            return list(self._quotes)

    def __len__(self) -> int:
        with self._lock:
            return len(self._quotes)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def line_history(self, match_id: str, market: str, bookmaker: str) -> List[OddsQuote]:
        """All quotes from one bookmaker for a match/market, oldest first."""
        with self._lock:
            history = [
                q for q in self._quotes
                if q.match_id == match_id and q.market == market and q.bookmaker == bookmaker
            ]
        return sorted(history, key=lambda q: q.timestamp)

    def latest_quote(self, match_id: str, market: str, bookmaker: str) -> Optional[OddsQuote]:
        history = self.line_history(match_id, market, bookmaker)
        return history[-1] if history else None

    def current_quotes(self, match_id: str, market: str) -> List[OddsQuote]:
        """
        Latest quote per bookmaker for a match/market.

        Restricted to the configured bookmakers when that list is non-empty.
        """
        allowed = {b.lower() for b in self.config.odds.bookmakers}
        latest: Dict[str, OddsQuote] = {}

        with self._lock:
            for q in self._quotes:
                if q.match_id != match_id or q.market != market:
                    continue
                if allowed and q.bookmaker.lower() not in allowed:
                    continue
                prev = latest.get(q.bookmaker)
                if prev is None or q.timestamp >= prev.timestamp:
                    latest[q.bookmaker] = q

        return [latest[b] for b in sorted(latest)]

    def opening_and_current(self, match_id: str, market: str, bookmaker: str) -> LineHistory:
        return LineHistory.from_quotes(self.line_history(match_id, market, bookmaker))

    # ------------------------------------------------------------------
    # EV
    # ------------------------------------------------------------------

    def find_best_price(self, match_id: str, market: str, selection_index: int) -> BestPrice:
        """Best price across bookmakers. Returns BestPrice.none() when no quote exists."""
        if selection_index < 0:
            return BestPrice.none()
        candidates = [
            q for q in self.current_quotes(match_id, market)
            if len(q.prices) > selection_index
        ]
        if not candidates:
            return BestPrice.none()

        top = max(candidates, key=lambda q: q.prices[selection_index])
        return BestPrice(bookmaker=top.bookmaker, price=top.prices[selection_index], timestamp=top.timestamp)

    def calculate_ev_for_selection(
        self,
        match_id: str,
        market: str,
        selection_index: int,
        true_prob: float,
        num_selections: int = 3,
    ) -> EVResult:
        """EV for one selection at the best available price."""
        best = self.find_best_price(match_id, market, selection_index)
        ev = calculate_ev(true_prob, best.price)

        kelly = None
        if ev > 0:
            kelly = kelly_criterion(
                self.config.bankroll.initial_bankroll,
                ev,
                best.price,
                self.config.bankroll.kelly_fraction,
            )

        return EVResult(
            match_id=match_id,
            market=market,
            selection=selection_label(selection_index, num_selections),
            selection_index=selection_index,
            bookmaker=best.bookmaker,
            odds=best.price,
            true_probability=true_prob,
            ev=ev,
            kelly_stake=kelly,
        )

    def analyze_match_ev(
        self,
        match_id: str,
        true_probs: Sequence[float],
        market: str = "match_result",
    ) -> MatchEVAnalysis:
        """EV for every selection; value bets are those above the configured min EV."""
        n = len(true_probs)
        results = [
            self.calculate_ev_for_selection(match_id, market, i, p, num_selections=n)
            for i, p in enumerate(true_probs)
        ]
        value_bets = [r for r in results if r.ev > self.config.slips.min_ev]
        value_bets.sort(key=lambda r: -r.ev)

        if value_bets:
            logger.info(f"Found {len(value_bets)} value bets on {match_id}")

        return MatchEVAnalysis(match_id=match_id, market=market, ev_results=results, value_bets=value_bets)

    def detect_arbitrage(self, match_id: str, market: str = "match_result") -> Optional[ArbitrageOpportunity]:
        return detect_arbitrage(self.current_quotes(match_id, market), match_id=match_id, market=market)

    def line_movement(self, match_id: str, market: str, bookmaker: str) -> LineMovement:
        line = self.opening_and_current(match_id, market, bookmaker)
        return calculate_line_movement(line.opening_line, line.current_line)


__all__ = [
    "selection_label",
    "remove_margin",
    "calculate_ev",
    "kelly_criterion",
    "calculate_line_movement",
    "detect_arbitrage",
    "BestPrice",
    "EVResult",
    "MatchEVAnalysis",
    "ArbitrageOpportunity",
    "OddsEngine",
]
