"""
Bet, signal and bankroll schemas.

These represent the outputs of the analytics pipeline:
the signals we emit, the bets we record and the
derived bankroll views.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from houseedge.utils.identifiers import new_id, utc_now


class BetResult(str, Enum):
    """Bet lifecycle status."""
    PENDING = "pending"
    WON = "won"
    LOST = "lost"
    VOID = "void"
    PUSH = "push"

    @property
    def is_settled(self) -> bool:
        return self is not BetResult.PENDING


class SignalType(str, Enum):
    RLM = "rlm"
    STEAM = "steam"
    CONTRARIAN = "contrarian"


class SharpSignal(BaseModel):
    """
    A sharp-money indicator for one selection of a match market.

    Created by the detector and appended to its history; never mutated.
    """

    model_config = ConfigDict(frozen=True)

    signal_type: SignalType
    match_id: str
    market: str
    direction: str  # Selection sharp money favors
    confidence: float = Field(..., ge=0.0, le=1.0)
    evidence: List[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utc_now)
    public_percentage: Optional[float] = None
    money_percentage: Optional[float] = None


class Bet(BaseModel):
    """
    Record of a wager in the ledger.

    Created once with result=pending; settlement produces a new
    record with the same id (see Ledger.settle).
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    match_id: str
    market: str
    selection: str
    odds: float = Field(..., gt=1.0)
    stake: float = Field(..., ge=0.0)
    strategy: str
    ev: float
    timestamp: datetime = Field(default_factory=utc_now)
    result: BetResult = BetResult.PENDING

    # Settlement
    settled_at: Optional[datetime] = None
    profit: Optional[float] = None

    # Context kept for replay and CLV
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    closing_odds: Optional[float] = Field(None, gt=1.0)

    @computed_field
    @property
    def is_settled(self) -> bool:
        return self.result.is_settled

    @property
    def potential_profit(self) -> float:
        return self.stake * (self.odds - 1)

    def settlement_profit(self, result: BetResult, stake: Optional[float] = None) -> float:
        """Profit for the given result at this bet's odds."""
        stake = self.stake if stake is None else stake
        if result == BetResult.WON:
            return stake * (self.odds - 1)
        if result == BetResult.LOST:
            return -stake
        return 0.0

    def settled(
        self,
        result: BetResult,
        profit: Optional[float] = None,
        settled_at: Optional[datetime] = None,
    ) -> "Bet":
        """Return the settled version of this bet."""
        if profit is None:
            profit = self.settlement_profit(result)
        return self.model_copy(update={
            "result": result,
            "profit": profit,
            "settled_at": settled_at or utc_now(),
        })


class BankrollSnapshot(BaseModel):
    """Point-in-time bankroll view. Derived from the ledger, never stored."""

    timestamp: datetime
    balance: float
    peak_balance: float
    total_staked: float
    total_profit: float
    bet_count: int
    roi: float

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "balance": round(self.balance, 2),
            "peak_balance": round(self.peak_balance, 2),
            "total_staked": round(self.total_staked, 2),
            "total_profit": round(self.total_profit, 2),
            "bet_count": self.bet_count,
            "roi": round(self.roi, 4),
        }
