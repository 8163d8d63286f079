"""Shared fixtures."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from houseedge.bankroll import Ledger
from houseedge.config import (
    AnalysisConfig, BankrollConfig, Config, OddsConfig,
    PerformanceConfig, SharpConfig, SlipsConfig,
)
from houseedge.data.feed import MatchData
from houseedge.data.schemas import Bet, BetResult, FormMatch, Match, OddsQuote, TeamForm

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def config():
    """Config with the documented defaults, independent of the environment."""
    return Config(
        odds=OddsConfig(bookmakers=["pinnacle", "betfair", "bet365", "draftkings"], queue_size=100),
        sharp=SharpConfig(rlm_threshold=0.02, steam_threshold=0.015, min_confidence=0.65, lookback_hours=48),
        bankroll=BankrollConfig(
            default_strategy="kelly",
            flat_fraction=0.02,
            kelly_fraction=0.25,
            max_stake_fraction=0.05,
            min_stake=10.0,
            initial_bankroll=1000.0,
        ),
        analysis=AnalysisConfig(form_decay=0.9, matches_lookback=10),
        slips=SlipsConfig(min_ev=0.05, min_confidence=0.70, max_daily_slips=10),
        performance=PerformanceConfig(variance_tolerance=2.0, min_sample_size=30, report_hours=168),
        ledger_path=None,
        log_level="INFO",
    )


@pytest.fixture
def ledger(config):
    return Ledger(config.bankroll.initial_bankroll)


def make_bet(
    odds=2.0,
    stake=100.0,
    ev=0.05,
    result=BetResult.PENDING,
    profit=None,
    market="match_result",
    selection="home",
    strategy="kelly",
    minutes=0,
    **kwargs,
):
    """Bet factory; timestamps step from T0 by `minutes`."""
    return Bet(
        match_id=kwargs.pop("match_id", "arsenal_vs_chelsea_20260301"),
        market=market,
        selection=selection,
        odds=odds,
        stake=stake,
        strategy=strategy,
        ev=ev,
        timestamp=T0 + timedelta(minutes=minutes),
        result=result,
        profit=profit,
        settled_at=T0 + timedelta(minutes=minutes + 90) if result != BetResult.PENDING else None,
        **kwargs,
    )


def settled_bet(result, odds=2.0, stake=100.0, **kwargs):
    """Settled bet with the profit implied by its odds."""
    profit = {BetResult.WON: stake * (odds - 1), BetResult.LOST: -stake}.get(result, 0.0)
    return make_bet(odds=odds, stake=stake, result=result, profit=profit, **kwargs)


def team_form(team, xg_for, xg_against, result="win", matches=5):
    return TeamForm(
        team=team,
        recent_matches=[FormMatch(result=result, xg_for=xg_for, xg_against=xg_against)] * matches,
    )


def strong_home_fixture(public=(0.50, 0.25, 0.25), weather=None, home_result="win"):
    """Dominant home side priced at evens: home is clear value, draw and away are not."""
    match = Match(
        id="arsenal_vs_chelsea_20260301",
        home_team="Arsenal",
        away_team="Chelsea",
        league="EPL",
        kickoff=T0 + timedelta(days=1),
        weather=weather,
    )

    def quotes(minutes):
        return [
            OddsQuote(
                bookmaker=b, match_id=match.id, prices=[2.00, 5.00, 10.00],
                timestamp=T0 + timedelta(minutes=minutes),
            )
            for b in ("pinnacle", "bet365")
        ]

    return MatchData(
        match=match,
        true_probabilities=[0.6, 0.25, 0.15],
        opening_quotes=quotes(0),
        current_quotes=quotes(60),
        home_form=team_form("Arsenal", 2.5, 0.8, result=home_result),
        away_form=team_form("Chelsea", 0.8, 1.5),
        public_percentages=list(public),
    )
