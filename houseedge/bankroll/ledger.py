"""
Bet Ledger
==========

Append-only record of every wager, and the single source of truth for
bankroll, drawdown and performance queries.

Only two operations mutate it:
    append(bet)                      - new pending bet
    settle(bet_id, result, profit)   - replace a bet by id with its settled copy

Both run under one writer lock. The new sequence is persisted first and
only swapped in when the write succeeds, so readers always see a
consistent tuple and a failed write leaves the ledger untouched.
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Iterator, List, Optional, Tuple
import logging

from houseedge.data.schemas import BankrollSnapshot, Bet, BetResult
from houseedge.exceptions import DuplicateBetError, InvalidTransitionError
from houseedge.utils.identifiers import utc_now

from .store import LedgerStore

logger = logging.getLogger(__name__)


class Ledger:
    """
    Immutable-history bet ledger.

    Args:
        initial_bankroll: Starting balance all bankroll views fold from
        store: Optional snapshot store; loaded on construction when given
    """

    def __init__(self, initial_bankroll: float, store: Optional[LedgerStore] = None):
        self.initial_bankroll = initial_bankroll
        self.store = store
        self._lock = threading.Lock()
        self._bets: Tuple[Bet, ...] = ()

        if store is not None:
            self._bets = tuple(store.load())
            seen = set()
            for bet in self._bets:
                if bet.id in seen:
                    raise DuplicateBetError(f"Duplicate bet id {bet.id} in ledger snapshot {store.path}")
                seen.add(bet.id)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _commit(self, bets: Tuple[Bet, ...]) -> None:
        # Caller holds the lock
        if self.store is not None:
            self.store.save(bets)
        self._bets = bets

    def append(self, bet: Bet) -> Bet:
        if bet.result != BetResult.PENDING:
            raise InvalidTransitionError(f"Only pending bets can be appended, got {bet.result.value}")

        with self._lock:
            if any(b.id == bet.id for b in self._bets):
                raise DuplicateBetError(f"Bet {bet.id} already in ledger")
            self._commit(self._bets + (bet,))

        logger.info(
            f"Bet recorded: {bet.id} {bet.match_id} {bet.market}/{bet.selection} "
            f"@ {bet.odds:.2f} stake {bet.stake:.2f} ({bet.strategy})"
        )
        return bet

    def settle(
        self,
        bet_id: str,
        result: BetResult,
        profit: Optional[float] = None,
        settled_at: Optional[datetime] = None,
    ) -> Optional[Bet]:
        """
        Settle a bet by id.

        Returns the settled bet, or None when the id is unknown (nothing
        changes). Profit defaults to the value implied by the bet's odds.
        """
        result = BetResult(result)
        if result == BetResult.PENDING:
            raise InvalidTransitionError("A bet cannot be settled back to pending")

        with self._lock:
            index = next((i for i, b in enumerate(self._bets) if b.id == bet_id), None)
            if index is None:
                logger.error(f"Bet not found for settlement: {bet_id}")
                return None

            current = self._bets[index]
            if current.is_settled:
                logger.warning(
                    f"Re-settling bet {bet_id}: {current.result.value} -> {result.value}"
                )

            settled = current.settled(result, profit=profit, settled_at=settled_at)
            self._commit(self._bets[:index] + (settled,) + self._bets[index + 1:])

        logger.info(f"Bet settled: {bet_id} {result.value} profit {settled.profit:+.2f}")
        return settled

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def bets(self) -> Tuple[Bet, ...]:
        """Consistent snapshot of the full sequence."""
        return self._bets

    def __len__(self) -> int:
        return len(self._bets)

    def __iter__(self) -> Iterator[Bet]:
        return iter(self._bets)

    def get(self, bet_id: str) -> Optional[Bet]:
        return next((b for b in self._bets if b.id == bet_id), None)

    def pending_bets(self) -> List[Bet]:
        return [b for b in self._bets if not b.is_settled]

    def settled_bets(self) -> List[Bet]:
        return [b for b in self._bets if b.is_settled]

    def balance_history(self) -> List[float]:
        """Running balance: initial, then after each settled bet in order."""
        balances = [self.initial_bankroll]
        for bet in self.settled_bets():
            balances.append(balances[-1] + (bet.profit or 0.0))
        return balances

    def current_bankroll(self) -> float:
        return self.initial_bankroll + sum(b.profit or 0.0 for b in self.settled_bets())

    def peak_bankroll(self) -> float:
        return max(self.balance_history())

    def snapshot(self) -> BankrollSnapshot:
        settled = self.settled_bets()
        balances = [self.initial_bankroll]
        for bet in settled:
            balances.append(balances[-1] + (bet.profit or 0.0))

        total_staked = sum(b.stake for b in settled)
        total_profit = sum(b.profit or 0.0 for b in settled)

        return BankrollSnapshot(
            timestamp=utc_now(),
            balance=balances[-1],
            peak_balance=max(balances),
            total_staked=total_staked,
            total_profit=total_profit,
            bet_count=len(settled),
            roi=total_profit / total_staked if total_staked > 0 else 0.0,
        )
