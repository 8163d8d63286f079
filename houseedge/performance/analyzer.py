"""
Performance Analyzer
====================

Realized-vs-expected statistics over a ledger snapshot:
- ROI, yield, CLV
- Variance analysis (are results within tolerance of EV expectations?)
- Max drawdown, Sharpe ratio
- Time-travel queries (predicate filters over the history)
- Weekly report and per-market / per-strategy breakdowns

Every method takes the bet sequence explicitly and never mutates it.
Pending bets are ignored by all profit-based metrics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence
import logging

import pandas as pd

from houseedge.config import Config
from houseedge.data.schemas import Bet, BetResult
from houseedge.utils import stats
from houseedge.utils.identifiers import utc_now

logger = logging.getLogger(__name__)

BetPredicate = Callable[[Bet], bool]


def _settled(bets: Iterable[Bet]) -> List[Bet]:
    return [b for b in bets if b.is_settled]


def _profit(bet: Bet) -> float:
    return bet.profit or 0.0


@dataclass
class VarianceReport:
    expected_profit: float
    actual_profit: float
    variance_delta: float
    standard_deviation: float
    std_devs_away: float
    within_expectations: bool
    analysis: str

    def to_dict(self) -> dict:
        return {
            "expected_profit": self.expected_profit,
            "actual_profit": self.actual_profit,
            "variance_delta": self.variance_delta,
            "standard_deviation": self.standard_deviation,
            "std_devs_away": self.std_devs_away,
            "within_expectations": self.within_expectations,
            "analysis": self.analysis,
        }


@dataclass
class DrawdownReport:
    max_drawdown: float
    max_drawdown_percentage: float
    current_drawdown: float
    current_drawdown_percentage: float


@dataclass
class PerformanceMetrics:
    """Summary of a (sub-)history."""
    period_start: Optional[datetime]
    period_end: Optional[datetime]
    total_bets: int
    won: int
    lost: int
    void: int
    push: int
    total_staked: float
    total_profit: float
    roi: float
    yield_per_bet: float
    avg_odds: float
    closing_line_value: float
    sharpe_ratio: float
    max_drawdown: float
    current_drawdown: float
    variance: float
    expected_variance: float
    sample_warning: Optional[str] = None

    @property
    def win_rate(self) -> float:
        decided = self.won + self.lost
        return self.won / decided if decided else 0.0

    def to_dict(self) -> dict:
        return {
            "period": {
                "start": self.period_start.isoformat() if self.period_start else None,
                "end": self.period_end.isoformat() if self.period_end else None,
            },
            "total_bets": self.total_bets,
            "won": self.won,
            "lost": self.lost,
            "void": self.void,
            "push": self.push,
            "win_rate": round(self.win_rate, 4),
            "total_staked": self.total_staked,
            "total_profit": self.total_profit,
            "roi": self.roi,
            "yield": self.yield_per_bet,
            "avg_odds": self.avg_odds,
            "closing_line_value": self.closing_line_value,
            "sharpe_ratio": self.sharpe_ratio,
            "max_drawdown": self.max_drawdown,
            "current_drawdown": self.current_drawdown,
            "variance": self.variance,
            "expected_variance": self.expected_variance,
            "sample_warning": self.sample_warning,
        }


@dataclass
class PerformanceReport:
    report_type: str
    generated_at: datetime
    metrics: PerformanceMetrics
    variance_analysis: VarianceReport
    summary: str
    breakdown: Dict[str, dict] = field(default_factory=dict)


class PerformanceAnalyzer:
    """
    Read-only analytics over bet histories.

    Args:
        config: Application config (initial bankroll, variance tolerance,
            sample size and report window)
    """

    def __init__(self, config: Config):
        self.config = config

    @property
    def initial_bankroll(self) -> float:
        return self.config.bankroll.initial_bankroll

    # ------------------------------------------------------------------
    # Core ratios
    # ------------------------------------------------------------------

    def calculate_roi(self, bets: Iterable[Bet]) -> float:
        """Total profit / total staked over settled bets."""
        settled = _settled(bets)
        total_staked = sum(b.stake for b in settled)
        if total_staked <= 0:
            return 0.0
        return sum(_profit(b) for b in settled) / total_staked

    def calculate_yield(self, bets: Iterable[Bet]) -> float:
        """Average profit per settled bet."""
        settled = _settled(bets)
        if not settled:
            return 0.0
        return sum(_profit(b) for b in settled) / len(settled)

    @staticmethod
    def calculate_clv(bet_odds: float, closing_odds: float) -> float:
        """CLV = closing / taken - 1. Positive when we beat the close."""
        return closing_odds / bet_odds - 1.0

    def average_clv(
        self,
        bets: Iterable[Bet],
        closing_odds: Optional[Mapping[str, float]] = None,
    ) -> float:
        """
        Mean CLV over bets with a known closing price.

        Closing prices come from the map (keyed by bet id) when given,
        otherwise from each bet's own closing_odds.
        """
        values = []
        for bet in bets:
            closing = closing_odds.get(bet.id) if closing_odds is not None else bet.closing_odds
            if closing:
                values.append(self.calculate_clv(bet.odds, closing))
        return stats.mean(values)

    # ------------------------------------------------------------------
    # Variance
    # ------------------------------------------------------------------

    def variance_analysis(self, bets: Iterable[Bet]) -> VarianceReport:
        """Compare realized profit with the EV-implied expectation."""
        settled = _settled(bets)
        expected = sum(b.stake * b.ev for b in settled)
        profits = [_profit(b) for b in settled]
        actual = sum(profits)
        delta = actual - expected

        std_dev = stats.standard_deviation(profits)
        std_devs_away = delta / std_dev if std_dev > 0 else 0.0

        tolerance = self.config.performance.variance_tolerance
        within = abs(std_devs_away) <= tolerance

        if within:
            analysis = "Results are within expected variance"
        else:
            side = "above" if std_devs_away > 0 else "below"
            analysis = (
                f"Results are {abs(std_devs_away):.1f} standard deviations "
                f"{side} expectations"
            )

        return VarianceReport(
            expected_profit=stats.round_to(expected, 2),
            actual_profit=stats.round_to(actual, 2),
            variance_delta=stats.round_to(delta, 2),
            standard_deviation=stats.round_to(std_dev, 2),
            std_devs_away=stats.round_to(std_devs_away, 2),
            within_expectations=within,
            analysis=analysis,
        )

    # ------------------------------------------------------------------
    # Risk
    # ------------------------------------------------------------------

    def balance_curve(self, bets: Iterable[Bet]) -> List[float]:
        balances = [self.initial_bankroll]
        for bet in _settled(bets):
            balances.append(balances[-1] + _profit(bet))
        return balances

    def max_drawdown(self, bets: Iterable[Bet]) -> DrawdownReport:
        """Largest peak-to-trough fall of the running balance, in order."""
        balances = self.balance_curve(bets)

        peak = balances[0]
        max_dd = 0.0
        for balance in balances:
            peak = max(peak, balance)
            max_dd = max(max_dd, peak - balance)

        current_dd = peak - balances[-1]
        initial = self.initial_bankroll

        return DrawdownReport(
            max_drawdown=max_dd,
            max_drawdown_percentage=max_dd / initial if initial > 0 else 0.0,
            current_drawdown=current_dd,
            current_drawdown_percentage=current_dd / peak if peak > 0 else 0.0,
        )

    def sharpe_ratio(self, bets: Iterable[Bet]) -> float:
        """Mean per-bet return (profit / stake) over its standard deviation."""
        returns = [_profit(b) / b.stake for b in _settled(bets) if b.stake > 0]
        return stats.sharpe_ratio(returns)

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def sample_warning(self, bets: Iterable[Bet]) -> Optional[str]:
        n = len(_settled(bets))
        min_n = self.config.performance.min_sample_size
        if n < min_n:
            return f"Only {n} settled bets; metrics are unreliable below {min_n}"
        return None

    def performance_metrics(
        self,
        bets: Sequence[Bet],
        closing_odds: Optional[Mapping[str, float]] = None,
    ) -> PerformanceMetrics:
        settled = _settled(bets)
        counts = {r: 0 for r in BetResult}
        for b in settled:
            counts[b.result] += 1

        variance = self.variance_analysis(settled)
        drawdown = self.max_drawdown(settled)

        return PerformanceMetrics(
            period_start=settled[0].timestamp if settled else None,
            period_end=settled[-1].timestamp if settled else None,
            total_bets=len(settled),
            won=counts[BetResult.WON],
            lost=counts[BetResult.LOST],
            void=counts[BetResult.VOID],
            push=counts[BetResult.PUSH],
            total_staked=stats.round_to(sum(b.stake for b in settled), 2),
            total_profit=stats.round_to(sum(_profit(b) for b in settled), 2),
            roi=stats.round_to(self.calculate_roi(settled), 4),
            yield_per_bet=stats.round_to(self.calculate_yield(settled), 2),
            avg_odds=stats.round_to(stats.mean(b.odds for b in settled), 2),
            closing_line_value=stats.round_to(self.average_clv(settled, closing_odds), 4),
            sharpe_ratio=stats.round_to(self.sharpe_ratio(settled), 2),
            max_drawdown=stats.round_to(drawdown.max_drawdown, 2),
            current_drawdown=stats.round_to(drawdown.current_drawdown, 2),
            variance=variance.variance_delta,
            expected_variance=variance.standard_deviation,
            sample_warning=self.sample_warning(settled),
        )

    # ------------------------------------------------------------------
    # Time-travel queries
    # ------------------------------------------------------------------

    @staticmethod
    def time_travel_query(bets: Iterable[Bet], predicate: BetPredicate) -> List[Bet]:
        return [b for b in bets if predicate(b)]

    def query_by_market(self, bets: Iterable[Bet], market: str) -> List[Bet]:
        return self.time_travel_query(bets, lambda b: b.market == market)

    def query_by_strategy(self, bets: Iterable[Bet], strategy: str) -> List[Bet]:
        return self.time_travel_query(bets, lambda b: b.strategy == strategy)

    def query_by_date_range(self, bets: Iterable[Bet], start: datetime, end: datetime) -> List[Bet]:
        """Bets placed within [start, end], inclusive."""
        return self.time_travel_query(bets, lambda b: start <= b.timestamp <= end)

    def query_history(
        self,
        bets: Iterable[Bet],
        market: Optional[str] = None,
        strategy: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        predicate: Optional[BetPredicate] = None,
    ) -> List[Bet]:
        """Apply every given filter in turn. A date range needs both ends."""
        result = list(bets)
        if market:
            result = self.query_by_market(result, market)
        if strategy:
            result = self.query_by_strategy(result, strategy)
        if start is not None and end is not None:
            result = self.query_by_date_range(result, start, end)
        if predicate is not None:
            result = self.time_travel_query(result, predicate)
        return result

    # ------------------------------------------------------------------
    # Tabular views
    # ------------------------------------------------------------------

    @staticmethod
    def to_dataframe(bets: Iterable[Bet]) -> pd.DataFrame:
        rows = [
            {
                "id": b.id,
                "match_id": b.match_id,
                "market": b.market,
                "selection": b.selection,
                "strategy": b.strategy,
                "odds": b.odds,
                "stake": b.stake,
                "ev": b.ev,
                "result": b.result.value,
                "profit": b.profit,
                "timestamp": b.timestamp,
            }
            for b in bets
        ]
        columns = [
            "id", "match_id", "market", "selection", "strategy",
            "odds", "stake", "ev", "result", "profit", "timestamp",
        ]
        return pd.DataFrame(rows, columns=columns)

    def breakdown(self, bets: Iterable[Bet], by: str = "market") -> Dict[str, dict]:
        """Per-group bets/staked/profit/ROI over settled bets."""
        df = self.to_dataframe(_settled(bets))
        if df.empty:
            return {}
        if by not in df.columns:
            raise ValueError(f"Cannot break down by {by!r}")

        df["profit"] = df["profit"].fillna(0.0)
        grouped = df.groupby(by).agg(
            bets=("id", "count"),
            staked=("stake", "sum"),
            profit=("profit", "sum"),
            avg_odds=("odds", "mean"),
        )
        grouped["roi"] = grouped["profit"] / grouped["staked"].where(grouped["staked"] > 0)
        grouped["roi"] = grouped["roi"].fillna(0.0)

        return {
            str(key): {
                "bets": int(row["bets"]),
                "staked": round(float(row["staked"]), 2),
                "profit": round(float(row["profit"]), 2),
                "avg_odds": round(float(row["avg_odds"]), 2),
                "roi": round(float(row["roi"]), 4),
            }
            for key, row in grouped.iterrows()
        }

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def weekly_report(self, bets: Sequence[Bet], now: Optional[datetime] = None) -> PerformanceReport:
        now = now or utc_now()
        start = now - timedelta(hours=self.config.performance.report_hours)
        recent = self.query_by_date_range(bets, start, now)

        metrics = self.performance_metrics(recent)
        variance = self.variance_analysis(recent)

        summary = (
            f"Week: {metrics.total_bets} bets, "
            f"{stats.format_roi(metrics.roi)} ROI, "
            f"{stats.format_currency(metrics.total_profit)} profit"
        )
        logger.info(summary)

        return PerformanceReport(
            report_type="weekly",
            generated_at=now,
            metrics=metrics,
            variance_analysis=variance,
            summary=summary,
            breakdown=self.breakdown(recent, by="market"),
        )
