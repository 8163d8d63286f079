"""
Core feed schemas for HOUSEEDGE.

Pydantic models with:
- Strict validation at the ingestion boundary
- Immutable (frozen) records - new quotes are appended, never edited
- Computed properties for derived values
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from houseedge.utils.stats import remove_margin

PROBABILITY_TOLERANCE = 1e-6


class Match(BaseModel):
    """
    A fixture as produced by the upstream feed.

    Immutable once created.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique match identifier")
    home_team: str = Field(..., min_length=1)
    away_team: str = Field(..., min_length=1)
    league: str
    kickoff: datetime
    venue: Optional[str] = None
    weather: Optional[str] = None

    @model_validator(mode="after")
    def _distinct_teams(self) -> "Match":
        if self.home_team.strip().lower() == self.away_team.strip().lower():
            raise ValueError(f"home and away team are the same: {self.home_team}")
        return self

    @property
    def display_name(self) -> str:
        return f"{self.home_team} vs {self.away_team}"


class OddsQuote(BaseModel):
    """
    Single price vector from one bookmaker at one point in time.

    prices are ordered by selection, e.g. [home, draw, away].
    "Current odds" = the most recent quote per (match, market, bookmaker).
    """

    model_config = ConfigDict(frozen=True)

    bookmaker: str = Field(..., min_length=1)
    match_id: str = Field(..., min_length=1)
    market: str = "match_result"
    prices: List[float] = Field(..., min_length=2)
    timestamp: datetime
    handicap: Optional[float] = None

    @field_validator("prices")
    @classmethod
    def _prices_above_evens(cls, v: List[float]) -> List[float]:
        for price in v:
            if price <= 1.0:
                raise ValueError(f"decimal price must be > 1.0, got {price}")
        return [round(float(p), 3) for p in v]

    @computed_field
    @property
    def implied_probabilities(self) -> List[float]:
        """Raw implied probabilities (with margin)."""
        return [1.0 / p for p in self.prices]

    @computed_field
    @property
    def overround(self) -> float:
        """Bookmaker margin as a fraction. Lower = sharper book."""
        return sum(self.implied_probabilities) - 1.0


class TrueProbability(BaseModel):
    """De-margined probability vector. Values in [0, 1], summing to 1."""

    model_config = ConfigDict(frozen=True)

    probabilities: List[float] = Field(..., min_length=1)

    @field_validator("probabilities")
    @classmethod
    def _check_distribution(cls, v: List[float]) -> List[float]:
        if any(p < 0 or p > 1 for p in v):
            raise ValueError(f"probabilities must be in [0, 1]: {v}")
        if abs(sum(v) - 1.0) > PROBABILITY_TOLERANCE:
            raise ValueError(f"probabilities must sum to 1, got {sum(v):.6f}")
        return v

    @classmethod
    def from_prices(cls, prices: List[float]) -> "TrueProbability":
        return cls(probabilities=remove_margin(prices))

    def __getitem__(self, index: int) -> float:
        return self.probabilities[index]

    def __len__(self) -> int:
        return len(self.probabilities)


class LineHistory(BaseModel):
    """Opening and current price vectors for one match/market (one bookmaker)."""

    opening_line: List[float] = Field(default_factory=list)
    current_line: List[float] = Field(default_factory=list)
    bookmaker: Optional[str] = None

    @classmethod
    def from_quotes(cls, quotes: List[OddsQuote]) -> "LineHistory":
        """Build from a time-ordered quote history."""
        if not quotes:
            return cls()
        ordered = sorted(quotes, key=lambda q: q.timestamp)
        return cls(
            opening_line=list(ordered[0].prices),
            current_line=list(ordered[-1].prices),
            bookmaker=ordered[0].bookmaker,
        )


class FormResult(str, Enum):
    WIN = "win"
    DRAW = "draw"
    LOSS = "loss"

    @property
    def points(self) -> float:
        return {"win": 3.0, "draw": 1.0, "loss": 0.0}[self.value]


class FormMatch(BaseModel):
    """One recent result with its expected goals."""
    result: FormResult
    xg_for: float = Field(0.0, ge=0)
    xg_against: float = Field(0.0, ge=0)


class TeamForm(BaseModel):
    """Recent form for a team, most recent match first."""
    team: str = "Unknown"
    recent_matches: List[FormMatch] = Field(default_factory=list)
