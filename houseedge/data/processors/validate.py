"""
Data validation processors.

Validates incoming feed data and detects anomalies
before they enter the pipeline. Schema violations are
rejected by the pydantic models themselves; this layer
adds the softer market-sanity checks.
"""

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Union
import logging

from ..schemas import Match, OddsQuote

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of data validation."""
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)
        self.is_valid = False

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


class OddsValidator:
    """
    Validates odds quotes for anomalies.

    Detects:
    - Unusually long prices
    - Negative overround (single-book arbitrage, usually a feed error)
    - Excessive margin
    - Price vectors that do not fit the market shape
    """

    MAX_ODDS = 100.0
    MAX_REASONABLE_OVERROUND = 0.15  # 15%

    @staticmethod
    def parse_quote(data: Union[OddsQuote, Mapping[str, Any]]) -> OddsQuote:
        """Boundary conversion: raises pydantic.ValidationError on bad input."""
        if isinstance(data, OddsQuote):
            return data
        return OddsQuote.model_validate(data)

    @classmethod
    def validate_quote(cls, quote: OddsQuote, expected_selections: int = 0) -> ValidationResult:
        result = ValidationResult()

        if expected_selections and len(quote.prices) != expected_selections:
            result.add_error(
                f"{quote.bookmaker} quote has {len(quote.prices)} prices, "
                f"expected {expected_selections}"
            )

        for i, price in enumerate(quote.prices):
            if price > cls.MAX_ODDS:
                result.add_warning(f"selection {i} price {price} unusually high")

        if quote.overround < 0:
            result.add_warning(f"Negative overround {quote.overround:.2%} - possible arb")
        elif quote.overround > cls.MAX_REASONABLE_OVERROUND:
            result.add_warning(f"High overround {quote.overround:.2%}")

        return result


class MatchValidator:
    """Validates that quotes belong to known matches."""

    @staticmethod
    def validate_quotes_for_match(match: Match, quotes: List[OddsQuote]) -> ValidationResult:
        result = ValidationResult()

        for q in quotes:
            if q.match_id != match.id:
                result.add_error(f"quote from {q.bookmaker} references {q.match_id}, not {match.id}")

        markets = {}
        for q in quotes:
            markets.setdefault(q.market, set()).add(len(q.prices))
        for market, shapes in markets.items():
            if len(shapes) > 1:
                result.add_error(f"inconsistent selection count in market {market}: {sorted(shapes)}")

        return result
