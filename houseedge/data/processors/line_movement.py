"""
Line movement tracking and analysis.

Tracks how prices change between the opening and current quote to feed:
- Reverse line movement (one book, against public money)
- Steam moves (coordinated moves across books)
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence
import logging

from ..schemas import OddsQuote, LineHistory

logger = logging.getLogger(__name__)

LENGTHENING = "lengthening"
SHORTENING = "shortening"
NO_MOVEMENT = "none"


@dataclass(frozen=True)
class LineMovement:
    """Fractional price movement per selection between two price vectors."""
    movements: List[float]
    max_movement: float
    direction: str
    directions: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "movements": [round(m, 4) for m in self.movements],
            "max_movement": round(self.max_movement, 4),
            "direction": self.direction,
            "directions": self.directions,
        }


def _direction(move: float) -> str:
    if move > 0:
        return LENGTHENING
    if move < 0:
        return SHORTENING
    return NO_MOVEMENT


def calculate_line_movement(
    opening: Sequence[float],
    current: Sequence[float],
) -> LineMovement:
    """
    Calculate line movement magnitude.

    movement_i = (current_i - opening_i) / opening_i

    The overall direction follows the first selection only; per-selection
    directions are reported in `directions`.
    """
    movements = [(c - o) / o for o, c in zip(opening, current)]

    if not movements:
        return LineMovement(movements=[], max_movement=0.0, direction=NO_MOVEMENT)

    return LineMovement(
        movements=movements,
        max_movement=max(abs(m) for m in movements),
        direction=LENGTHENING if movements[0] > 0 else SHORTENING,
        directions=[_direction(m) for m in movements],
    )


@dataclass
class LineMovementTracker:
    """
    Tracks quote history for a single match/market across bookmakers.

    Usage:
        tracker = LineMovementTracker(match_id, market)
        tracker.add_quote(opening_quote)
        tracker.add_quote(current_quote)

        lines = tracker.multi_book_lines()  # input for steam detection
    """

    match_id: str
    market: str = "match_result"
    quotes: Dict[str, List[OddsQuote]] = field(default_factory=dict)

    def add_quote(self, quote: OddsQuote) -> None:
        if quote.match_id != self.match_id:
            raise ValueError(f"Quote match_id mismatch: {quote.match_id} != {self.match_id}")
        if quote.market != self.market:
            return
        history = self.quotes.setdefault(quote.bookmaker, [])
        history.append(quote)
        history.sort(key=lambda q: q.timestamp)

    def add_quotes(self, quotes: Sequence[OddsQuote]) -> None:
        for q in quotes:
            self.add_quote(q)

    @property
    def bookmakers(self) -> List[str]:
        return sorted(self.quotes)

    def line_history(self, bookmaker: str) -> LineHistory:
        return LineHistory.from_quotes(self.quotes.get(bookmaker, []))

    def multi_book_lines(self) -> List[LineHistory]:
        """One LineHistory per bookmaker with at least two quotes."""
        return [
            self.line_history(b)
            for b in self.bookmakers
            if len(self.quotes[b]) >= 2
        ]

    def movement(self, bookmaker: str) -> LineMovement:
        line = self.line_history(bookmaker)
        return calculate_line_movement(line.opening_line, line.current_line)
