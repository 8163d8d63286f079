"""
Statistics Helpers
==================

Pure numeric helpers shared by the odds, staking and performance layers:
- mean / variance / standard deviation (population)
- Sharpe ratio on per-bet returns
- clamping, rounding and margin removal
- display formatting for odds, EV, ROI and currency
"""

from typing import Iterable, List, Sequence

import numpy as np


# Dispersion below this is float noise from repeated identical values
NEGLIGIBLE_STD = 1e-12


def _as_array(values: Iterable[float]) -> np.ndarray:
    return np.asarray(list(values), dtype=float)


def mean(values: Iterable[float]) -> float:
    arr = _as_array(values)
    if arr.size == 0:
        return 0.0
    return float(arr.mean())


def variance(values: Iterable[float]) -> float:
    """Population variance; 0 for an empty sequence."""
    arr = _as_array(values)
    if arr.size == 0:
        return 0.0
    return float(arr.var())


def standard_deviation(values: Iterable[float]) -> float:
    """Population standard deviation; 0 for an empty sequence or a constant one."""
    std = float(np.sqrt(variance(values)))
    return 0.0 if std < NEGLIGIBLE_STD else std


def sharpe_ratio(returns: Iterable[float]) -> float:
    """
    Sharpe ratio: mean return / std of returns.

    No risk-free rate and no annualization - bets are not periodic returns.
    Returns 0 with fewer than two observations or zero dispersion.
    """
    arr = _as_array(returns)
    if arr.size < 2:
        return 0.0

    std = arr.std()
    if std < NEGLIGIBLE_STD:
        return 0.0

    return float(arr.mean() / std)


def clamp(value: float, lower: float, upper: float) -> float:
    """Bound value to [lower, upper]. If lower > upper, upper wins."""
    return min(max(value, lower), upper)


def round_to(value: float, places: int = 2) -> float:
    return round(float(value), places)


def remove_margin(prices: Sequence[float]) -> List[float]:
    """
    Remove bookmaker margin from a price vector.

    Uses proportional method: true_prob = implied_prob / total_implied

    Args:
        prices: Decimal odds, one per selection

    Returns:
        Probabilities in selection order, summing to 1.0
    """
    arr = _as_array(prices)
    if arr.size == 0:
        return []
    if np.any(arr <= 0):
        raise ValueError(f"Prices must be positive: {arr.tolist()}")

    implied = 1.0 / arr
    return (implied / implied.sum()).tolist()


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def percentage(value: float, places: int = 1) -> str:
    return f"{value * 100:.{places}f}%"


def format_ev(ev: float) -> str:
    return f"{ev * 100:+.1f}%"


def format_roi(roi: float) -> str:
    return f"{roi * 100:+.2f}%"


def format_currency(amount: float) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_odds(odds: float) -> str:
    return f"{odds:.2f}"
