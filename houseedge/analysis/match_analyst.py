"""
Match Analyst
=============

Estimates true 1X2 probabilities from recent form and expected goals:
1. Exponentially weighted form score per team
2. Expected goals adjusted for the opponent's defence
3. Independent Poisson score matrix (0-5 goals each side)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging

import numpy as np
from scipy.stats import poisson

from houseedge.config import Config
from houseedge.data.schemas import FormResult, TeamForm, TrueProbability
from houseedge.utils.stats import clamp, mean, round_to

logger = logging.getLogger(__name__)

MAX_GOALS = 5
LEAGUE_AVG_XG = 1.5


@dataclass
class TeamFormSummary:
    team: str
    form_score: float
    avg_xg_for: float
    avg_xg_against: float
    wins: int = 0
    draws: int = 0
    losses: int = 0

    @property
    def record(self) -> str:
        return f"{self.wins}W-{self.draws}D-{self.losses}L"


@dataclass
class MatchAnalysis:
    match_id: str
    home_form: TeamFormSummary
    away_form: TeamFormSummary
    true_probability: TrueProbability
    expected_goals_home: float
    expected_goals_away: float
    confidence: float
    key_factors: List[str] = field(default_factory=list)

    @property
    def expected_total_goals(self) -> float:
        return self.expected_goals_home + self.expected_goals_away

    def probabilities(self) -> Dict[str, float]:
        home, draw, away = self.true_probability.probabilities
        return {"home": home, "draw": draw, "away": away}


def score_matrix(lambda_home: float, lambda_away: float, max_goals: int = MAX_GOALS) -> np.ndarray:
    """M[i, j] = P(home scores i) * P(away scores j), truncated at max_goals."""
    goals = np.arange(max_goals + 1)
    return np.outer(poisson.pmf(goals, lambda_home), poisson.pmf(goals, lambda_away))


def outcome_probabilities(lambda_home: float, lambda_away: float, max_goals: int = MAX_GOALS) -> List[float]:
    """Raw (home, draw, away) mass from the truncated score matrix."""
    matrix = score_matrix(lambda_home, lambda_away, max_goals)
    home = float(np.tril(matrix, -1).sum())
    draw = float(np.trace(matrix))
    away = float(np.triu(matrix, 1).sum())
    return [home, draw, away]


class MatchAnalyst:
    """Form and xG based probability model."""

    def __init__(self, config: Config):
        self.config = config

    def form_score(self, form: TeamForm) -> float:
        """
        Weighted points share in [0, 1].

        Most recent match weighs 1, then decay, decay^2, ...
        """
        matches = form.recent_matches[: self.config.analysis.matches_lookback]
        if not matches:
            return 0.0

        decay = self.config.analysis.form_decay
        weights = [decay ** i for i in range(len(matches))]
        earned = sum(w * m.result.points for w, m in zip(weights, matches))
        return earned / (3.0 * sum(weights))

    def summarize_form(self, form: TeamForm) -> TeamFormSummary:
        matches = form.recent_matches[: self.config.analysis.matches_lookback]
        return TeamFormSummary(
            team=form.team,
            form_score=round_to(self.form_score(form), 2),
            avg_xg_for=round_to(mean(m.xg_for for m in matches), 2),
            avg_xg_against=round_to(mean(m.xg_against for m in matches), 2),
            wins=sum(1 for m in matches if m.result == FormResult.WIN),
            draws=sum(1 for m in matches if m.result == FormResult.DRAW),
            losses=sum(1 for m in matches if m.result == FormResult.LOSS),
        )

    @staticmethod
    def expected_goals(home: TeamFormSummary, away: TeamFormSummary) -> tuple:
        home_goals = home.avg_xg_for * (away.avg_xg_against / LEAGUE_AVG_XG)
        away_goals = away.avg_xg_for * (home.avg_xg_against / LEAGUE_AVG_XG)
        return round_to(home_goals, 2), round_to(away_goals, 2)

    @staticmethod
    def key_factors(home: TeamFormSummary, away: TeamFormSummary) -> List[str]:
        factors = []
        if home.form_score > 0.7:
            factors.append(f"{home.team} in excellent form")
        if away.form_score > 0.7:
            factors.append(f"{away.team} in excellent form")
        if home.avg_xg_for > 2.0:
            factors.append(f"{home.team} strong attack (xG {home.avg_xg_for})")
        if away.avg_xg_against < 1.0:
            factors.append(f"{away.team} solid defense (xGA {away.avg_xg_against})")
        return factors

    def analyze(
        self,
        match_id: str,
        home_form: TeamForm,
        away_form: TeamForm,
    ) -> Optional[MatchAnalysis]:
        """
        Full analysis for one fixture.

        Returns None when neither side has xG data or the score matrix
        carries no probability mass.
        """
        home = self.summarize_form(home_form)
        away = self.summarize_form(away_form)
        xg_home, xg_away = self.expected_goals(home, away)
        if xg_home <= 0 and xg_away <= 0:
            logger.warning(f"No xG data for {match_id}, skipping")
            return None

        raw = outcome_probabilities(xg_home, xg_away)
        total = sum(raw)
        if not np.isfinite(total) or total <= 0:
            logger.warning(f"No probability mass for {match_id}, skipping")
            return None

        probs = TrueProbability(probabilities=[p / total for p in raw])
        confidence = clamp(0.75 * mean([home.form_score, away.form_score]), 0.60, 0.90)

        return MatchAnalysis(
            match_id=match_id,
            home_form=home,
            away_form=away,
            true_probability=probs,
            expected_goals_home=xg_home,
            expected_goals_away=xg_away,
            confidence=round_to(confidence, 2),
            key_factors=self.key_factors(home, away),
        )
