"""
Tests for the bet ledger and its snapshot store
"""

import json
import sys
import threading
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from houseedge.bankroll import Ledger, LedgerStore
from houseedge.data.schemas import BetResult
from houseedge.exceptions import (
    DuplicateBetError, InvalidTransitionError, LedgerPersistenceError,
)
from conftest import make_bet, settled_bet


class TestAppend:

    def test_append_pending(self, ledger):
        bet = ledger.append(make_bet())
        assert len(ledger) == 1
        assert ledger.get(bet.id) == bet
        assert ledger.pending_bets() == [bet]

    def test_duplicate_id_rejected(self, ledger):
        bet = ledger.append(make_bet())
        with pytest.raises(DuplicateBetError):
            ledger.append(bet)
        assert len(ledger) == 1

    def test_settled_bet_rejected(self, ledger):
        with pytest.raises(InvalidTransitionError):
            ledger.append(settled_bet(BetResult.WON))

    def test_insertion_order(self, ledger):
        ids = [ledger.append(make_bet(minutes=i)).id for i in range(5)]
        assert [b.id for b in ledger] == ids


class TestSettle:

    def test_win_profit_from_odds(self, ledger):
        bet = ledger.append(make_bet(odds=2.5, stake=40.0))
        settled = ledger.settle(bet.id, BetResult.WON)

        assert settled.id == bet.id
        assert settled.result is BetResult.WON
        assert settled.profit == pytest.approx(60.0)
        assert settled.settled_at is not None

    def test_explicit_profit(self, ledger):
        bet = ledger.append(make_bet(stake=40.0))
        assert ledger.settle(bet.id, "lost", profit=-20.0).profit == -20.0

    def test_replaced_in_place(self, ledger):
        bets = [ledger.append(make_bet(minutes=i)) for i in range(3)]
        ledger.settle(bets[1].id, BetResult.LOST)

        assert [b.id for b in ledger] == [b.id for b in bets]
        assert ledger.bets[1].result is BetResult.LOST
        assert ledger.bets[0].result is BetResult.PENDING

    def test_original_record_untouched(self, ledger):
        bet = ledger.append(make_bet())
        ledger.settle(bet.id, BetResult.WON)
        assert bet.result is BetResult.PENDING

    def test_unknown_id(self, ledger):
        bet = ledger.append(make_bet())
        before = ledger.bets

        assert ledger.settle("does-not-exist", BetResult.WON) is None
        assert ledger.bets == before
        assert ledger.get(bet.id).result is BetResult.PENDING

    def test_cannot_return_to_pending(self, ledger):
        bet = ledger.append(make_bet())
        ledger.settle(bet.id, BetResult.WON)
        with pytest.raises(InvalidTransitionError):
            ledger.settle(bet.id, BetResult.PENDING)
        assert ledger.get(bet.id).result is BetResult.WON


class TestBankroll:

    def test_empty(self, ledger):
        assert ledger.current_bankroll() == 1000.0
        assert ledger.peak_bankroll() == 1000.0

    def test_initial_plus_settled_profit(self, ledger):
        a = ledger.append(make_bet(odds=2.0, stake=100.0))
        b = ledger.append(make_bet(odds=3.0, stake=50.0))
        ledger.append(make_bet(stake=500.0))  # pending, ignored
        ledger.settle(a.id, BetResult.WON)
        ledger.settle(b.id, BetResult.LOST)

        total = sum(x.profit for x in ledger.settled_bets())
        assert ledger.current_bankroll() == pytest.approx(1000.0 + total)
        assert ledger.current_bankroll() == pytest.approx(1050.0)

    def test_peak(self, ledger):
        a = ledger.append(make_bet(odds=2.0, stake=100.0))
        b = ledger.append(make_bet(stake=150.0))
        ledger.settle(a.id, BetResult.WON)
        ledger.settle(b.id, BetResult.LOST)

        assert ledger.peak_bankroll() == pytest.approx(1100.0)
        assert ledger.balance_history() == pytest.approx([1000.0, 1100.0, 950.0])

    def test_snapshot(self, ledger):
        a = ledger.append(make_bet(odds=2.0, stake=100.0))
        ledger.append(make_bet(stake=70.0))
        ledger.settle(a.id, BetResult.WON)

        snap = ledger.snapshot()
        assert snap.balance == pytest.approx(1100.0)
        assert snap.peak_balance == pytest.approx(1100.0)
        assert snap.total_staked == pytest.approx(100.0)
        assert snap.bet_count == 1
        assert snap.roi == pytest.approx(1.0)

    def test_concurrent_appends(self, ledger):
        def worker():
            for _ in range(50):
                ledger.append(make_bet())

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(ledger) == 200
        assert len({b.id for b in ledger}) == 200


class TestPersistence:

    def test_missing_file_is_empty(self, tmp_path):
        store = LedgerStore(tmp_path / "ledger.json")
        assert store.load() == []

    def test_persists_every_mutation(self, tmp_path):
        path = tmp_path / "data" / "ledger.json"
        ledger = Ledger(1000.0, store=LedgerStore(path))

        bet = ledger.append(make_bet())
        assert len(json.loads(path.read_text())["bets"]) == 1

        ledger.settle(bet.id, BetResult.WON)
        saved = json.loads(path.read_text())["bets"][0]
        assert saved["result"] == "won"
        assert saved["profit"] == pytest.approx(100.0)

    def test_reload(self, tmp_path):
        path = tmp_path / "ledger.json"
        first = Ledger(1000.0, store=LedgerStore(path))
        bet = first.append(make_bet(odds=2.5, stake=40.0))
        first.settle(bet.id, BetResult.WON)

        second = Ledger(1000.0, store=LedgerStore(path))
        assert second.bets == first.bets
        assert second.current_bankroll() == pytest.approx(1060.0)

    def test_duplicate_ids_rejected_on_load(self, tmp_path):
        store = LedgerStore(tmp_path / "ledger.json")
        bet = make_bet()
        store.save([bet, bet])

        with pytest.raises(DuplicateBetError, match=bet.id):
            Ledger(1000.0, store=store)

    def test_no_temp_file_left(self, tmp_path):
        ledger = Ledger(1000.0, store=LedgerStore(tmp_path / "ledger.json"))
        ledger.append(make_bet())
        assert [p.name for p in tmp_path.iterdir()] == ["ledger.json"]

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text("{not json")
        with pytest.raises(LedgerPersistenceError):
            Ledger(1000.0, store=LedgerStore(path))

    def test_write_failure_leaves_ledger_unchanged(self, tmp_path, monkeypatch):
        store = LedgerStore(tmp_path / "ledger.json")
        ledger = Ledger(1000.0, store=store)
        bet = ledger.append(make_bet())

        def fail(bets):
            raise LedgerPersistenceError("disk full")

        monkeypatch.setattr(store, "save", fail)

        with pytest.raises(LedgerPersistenceError):
            ledger.append(make_bet())
        with pytest.raises(LedgerPersistenceError):
            ledger.settle(bet.id, BetResult.WON)

        assert len(ledger) == 1
        assert ledger.get(bet.id).result is BetResult.PENDING

    def test_unwritable_path(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        ledger = Ledger(1000.0, store=LedgerStore(blocker / "ledger.json"))

        with pytest.raises(LedgerPersistenceError):
            ledger.append(make_bet())
        assert len(ledger) == 0
