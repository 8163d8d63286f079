"""
Mock Match Feed
===============

Seedable stand-in for the upstream data feed. Produces fixtures, per-bookmaker
opening and current quotes, team form with xG, and simulated public betting
percentages.

All randomness goes through one numpy Generator, so the same seed (and the
same base time) always yields the same slate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional
import logging

import numpy as np

from houseedge.config import Config
from houseedge.utils.identifiers import generate_match_id, utc_now

from .schemas import FormMatch, FormResult, LineHistory, Match, OddsQuote, TeamForm

logger = logging.getLogger(__name__)

LEAGUES: Dict[str, str] = {
    "EPL": "English Premier League",
    "LAL": "La Liga",
    "BUN": "Bundesliga",
    "SER": "Serie A",
    "LIG": "Ligue 1",
}

TEAMS: Dict[str, List[str]] = {
    "EPL": ["Arsenal", "Chelsea", "Liverpool", "Man City", "Man United",
            "Tottenham", "Newcastle", "Brighton", "Aston Villa", "West Ham"],
    "LAL": ["Real Madrid", "Barcelona", "Atletico Madrid", "Sevilla", "Real Sociedad",
            "Villarreal", "Athletic Bilbao", "Real Betis", "Valencia", "Girona"],
    "BUN": ["Bayern Munich", "Borussia Dortmund", "RB Leipzig", "Bayer Leverkusen",
            "Union Berlin", "Freiburg", "Eintracht Frankfurt", "Wolfsburg",
            "Monchengladbach", "Stuttgart"],
    "SER": ["Inter Milan", "AC Milan", "Juventus", "Napoli", "Roma",
            "Lazio", "Atalanta", "Fiorentina", "Bologna", "Torino"],
    "LIG": ["PSG", "Monaco", "Marseille", "Lyon", "Lille",
            "Nice", "Lens", "Rennes", "Strasbourg", "Nantes"],
}

# Bookmaker margin (overround) used when pricing
BOOKMAKER_MARGINS: Dict[str, float] = {
    "pinnacle": 0.02,
    "betfair": 0.025,
    "bet365": 0.06,
    "draftkings": 0.055,
}
DEFAULT_MARGIN = 0.05

WEATHER = ["clear", "cloudy", "rain", "wind"]

MIN_PRICE = 1.01


@dataclass
class MatchData:
    """Everything the feed knows about one fixture."""
    match: Match
    true_probabilities: List[float]
    opening_quotes: List[OddsQuote] = field(default_factory=list)
    current_quotes: List[OddsQuote] = field(default_factory=list)
    home_form: TeamForm = field(default_factory=TeamForm)
    away_form: TeamForm = field(default_factory=TeamForm)
    public_percentages: List[float] = field(default_factory=list)

    @property
    def match_id(self) -> str:
        return self.match.id

    @property
    def quotes(self) -> List[OddsQuote]:
        """Opening then current quotes, in feed order."""
        return self.opening_quotes + self.current_quotes

    def line_history(self, bookmaker: Optional[str] = None) -> LineHistory:
        """Opening/current pair for one bookmaker (first one by default)."""
        if not self.opening_quotes:
            return LineHistory()
        bookmaker = bookmaker or self.opening_quotes[0].bookmaker
        quotes = [q for q in self.quotes if q.bookmaker == bookmaker]
        return LineHistory.from_quotes(quotes)

    def multi_book_lines(self) -> List[LineHistory]:
        return [self.line_history(q.bookmaker) for q in self.opening_quotes]


class MockFeed:
    """
    Deterministic mock feed.

    Args:
        config: Application config (bookmaker list)
        seed: Seed for a fresh numpy Generator
        rng: Explicit Generator (takes precedence over seed)
        now: Base time for kickoffs and quote timestamps
    """

    def __init__(
        self,
        config: Config,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
        now: Optional[datetime] = None,
    ):
        self.config = config
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.now = now or utc_now()

    @property
    def bookmakers(self) -> List[str]:
        return list(self.config.odds.bookmakers) or list(BOOKMAKER_MARGINS)

    def _uniform(self, low: float, high: float) -> float:
        return float(self.rng.uniform(low, high))

    def true_probabilities(self) -> List[float]:
        """[home, draw, away] with a home-advantage skew."""
        home = self._uniform(0.30, 0.55)
        draw = self._uniform(0.22, 0.30)
        away = 1.0 - home - draw
        return [home, draw, away]

    def price(self, probabilities: List[float], bookmaker: str, noise: float = 0.02) -> List[float]:
        """Fair prices shaded by the bookmaker's margin plus a little noise."""
        margin = BOOKMAKER_MARGINS.get(bookmaker.lower(), DEFAULT_MARGIN)
        prices = []
        for p in probabilities:
            fair = 1.0 / (p * (1.0 + margin))
            jitter = float(self.rng.normal(1.0, noise))
            prices.append(round(max(MIN_PRICE, fair * jitter), 2))
        return prices

    def move_line(self, prices: List[float], volatility: float = 0.03) -> List[float]:
        return [
            round(max(MIN_PRICE, p * (1.0 + float(self.rng.normal(0.0, volatility)))), 2)
            for p in prices
        ]

    def team_form(self, team: str, strength: float, num_matches: int = 8) -> TeamForm:
        """Recent results, most recent first. Stronger teams win more and create more xG."""
        matches = []
        for _ in range(num_matches):
            roll = self._uniform(0.0, 1.0)
            if roll < strength:
                result = FormResult.WIN
            elif roll < strength + 0.25:
                result = FormResult.DRAW
            else:
                result = FormResult.LOSS
            matches.append(FormMatch(
                result=result,
                xg_for=round(self._uniform(0.6, 1.6) + strength, 2),
                xg_against=round(self._uniform(0.6, 1.8) - strength / 2, 2),
            ))
        return TeamForm(team=team, recent_matches=matches)

    def public_percentages(self) -> List[float]:
        """Simulated share of tickets as [home, draw, away]."""
        home = self._uniform(0.3, 0.7)
        away = self._uniform(0.2, 1.0 - home)
        return [home, 1.0 - home - away, away]

    def generate_match(self, league: str, home_team: str, away_team: str) -> MatchData:
        kickoff = self.now + timedelta(hours=int(self.rng.integers(24, 96)))
        weather = WEATHER[int(self.rng.integers(len(WEATHER)))]

        match = Match(
            id=generate_match_id(home_team, away_team, kickoff),
            home_team=home_team,
            away_team=away_team,
            league=league,
            kickoff=kickoff,
            weather=weather,
        )

        probs = self.true_probabilities()
        opened_at = self.now - timedelta(hours=24)
        opening, current = [], []

        for bookmaker in self.bookmakers:
            opening_prices = self.price(probs, bookmaker)
            opening.append(OddsQuote(
                bookmaker=bookmaker, match_id=match.id, prices=opening_prices, timestamp=opened_at,
            ))
            current.append(OddsQuote(
                bookmaker=bookmaker, match_id=match.id,
                prices=self.move_line(opening_prices), timestamp=self.now,
            ))

        return MatchData(
            match=match,
            true_probabilities=probs,
            opening_quotes=opening,
            current_quotes=current,
            home_form=self.team_form(home_team, strength=probs[0]),
            away_form=self.team_form(away_team, strength=probs[2]),
            public_percentages=self.public_percentages(),
        )

    def generate_slate(self, matches_per_league: int = 2) -> List[MatchData]:
        """Weekend slate: disjoint fixtures drawn from every league."""
        slate = []
        for league in LEAGUES:
            teams = list(self.rng.permutation(TEAMS[league]))
            n = min(matches_per_league, len(teams) // 2)
            for i in range(n):
                slate.append(self.generate_match(league, str(teams[2 * i]), str(teams[2 * i + 1])))

        logger.info(f"Generated mock slate: {len(slate)} matches across {len(LEAGUES)} leagues")
        return slate
