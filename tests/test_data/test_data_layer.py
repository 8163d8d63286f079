"""
Tests for data layer components.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import pytest
from pydantic import ValidationError

from houseedge.data.schemas import (
    Match, OddsQuote, TrueProbability, LineHistory,
    FormResult, FormMatch, TeamForm,
    Bet, BetResult, SharpSignal, SignalType,
)
from houseedge.data.processors import (
    OddsValidator, MatchValidator,
    LineMovementTracker, calculate_line_movement,
    LENGTHENING, SHORTENING, NO_MOVEMENT,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def quote(bookmaker="pinnacle", prices=(2.10, 3.40, 4.00), minutes=0, match_id="m1", market="match_result"):
    return OddsQuote(
        bookmaker=bookmaker,
        match_id=match_id,
        market=market,
        prices=list(prices),
        timestamp=NOW + timedelta(minutes=minutes),
    )


class TestMatchSchema:

    def test_valid_match(self):
        m = Match(id="m1", home_team="Arsenal", away_team="Chelsea", league="EPL", kickoff=NOW)
        assert m.display_name == "Arsenal vs Chelsea"
        assert m.weather is None

    def test_same_teams_rejected(self):
        with pytest.raises(ValidationError):
            Match(id="m1", home_team="Arsenal", away_team="arsenal ", league="EPL", kickoff=NOW)

    def test_frozen(self):
        m = Match(id="m1", home_team="Arsenal", away_team="Chelsea", league="EPL", kickoff=NOW)
        with pytest.raises(ValidationError):
            m.league = "LAL"


class TestOddsQuote:

    def test_implied_and_overround(self):
        q = quote(prices=[2.0, 2.0])
        assert q.implied_probabilities == pytest.approx([0.5, 0.5])
        assert q.overround == pytest.approx(0.0)

    def test_overround_positive_for_real_book(self):
        assert quote().overround == pytest.approx(1 / 2.1 + 1 / 3.4 + 1 / 4.0 - 1)

    def test_price_must_exceed_evens(self):
        with pytest.raises(ValidationError):
            quote(prices=[1.0, 3.0])

    def test_needs_two_prices(self):
        with pytest.raises(ValidationError):
            quote(prices=[2.0])

    def test_from_mapping(self):
        q = OddsValidator.parse_quote({
            "bookmaker": "betfair", "match_id": "m1",
            "prices": ["2.5", 3.1, 2.9], "timestamp": NOW.isoformat(),
        })
        assert q.prices == [2.5, 3.1, 2.9]
        assert q.market == "match_result"

    def test_missing_field(self):
        with pytest.raises(ValidationError):
            OddsValidator.parse_quote({"bookmaker": "betfair", "prices": [2.0, 2.0], "timestamp": NOW})


class TestTrueProbability:

    def test_from_prices(self):
        tp = TrueProbability.from_prices([2.10, 3.40, 4.00])
        assert sum(tp.probabilities) == pytest.approx(1.0)
        assert len(tp) == 3
        assert tp[0] > tp[2]

    def test_must_sum_to_one(self):
        with pytest.raises(ValidationError):
            TrueProbability(probabilities=[0.5, 0.3, 0.1])

    def test_out_of_range(self):
        with pytest.raises(ValidationError):
            TrueProbability(probabilities=[1.2, -0.2])


class TestBetSchema:

    def test_defaults(self):
        bet = Bet(match_id="m1", market="match_result", selection="home",
                  odds=2.0, stake=10.0, strategy="flat", ev=0.05)
        assert bet.result is BetResult.PENDING
        assert not bet.is_settled
        assert bet.profit is None
        assert bet.id

    def test_settlement_profit(self):
        bet = Bet(match_id="m1", market="match_result", selection="home",
                  odds=2.5, stake=10.0, strategy="flat", ev=0.05)
        assert bet.settlement_profit(BetResult.WON) == pytest.approx(15.0)
        assert bet.settlement_profit(BetResult.LOST) == pytest.approx(-10.0)
        assert bet.settlement_profit(BetResult.VOID) == 0.0
        assert bet.settlement_profit(BetResult.PUSH) == 0.0

    def test_settled_copy(self):
        bet = Bet(match_id="m1", market="match_result", selection="home",
                  odds=2.5, stake=10.0, strategy="flat", ev=0.05)
        settled = bet.settled(BetResult.WON)
        assert settled.id == bet.id
        assert settled.is_settled
        assert bet.result is BetResult.PENDING

    def test_invalid_odds(self):
        with pytest.raises(ValidationError):
            Bet(match_id="m1", market="match_result", selection="home",
                odds=1.0, stake=10.0, strategy="flat", ev=0.05)

    def test_negative_stake(self):
        with pytest.raises(ValidationError):
            Bet(match_id="m1", market="match_result", selection="home",
                odds=2.0, stake=-1.0, strategy="flat", ev=0.05)


class TestSharpSignalSchema:

    def test_confidence_bounds(self):
        with pytest.raises(ValidationError):
            SharpSignal(signal_type="rlm", match_id="m1", market="match_result",
                        direction="home", confidence=1.5)

    def test_type_coercion(self):
        s = SharpSignal(signal_type="steam", match_id="m1", market="match_result",
                        direction="away", confidence=0.8)
        assert s.signal_type is SignalType.STEAM


class TestTeamForm:

    def test_points(self):
        assert FormResult.WIN.points == 3.0
        assert FormResult.DRAW.points == 1.0
        assert FormResult.LOSS.points == 0.0

    def test_defaults(self):
        form = TeamForm()
        assert form.team == "Unknown"
        assert form.recent_matches == []

    def test_negative_xg_rejected(self):
        with pytest.raises(ValidationError):
            FormMatch(result="win", xg_for=-0.5, xg_against=1.0)


class TestOddsValidator:

    def test_clean_quote(self):
        result = OddsValidator.validate_quote(quote())
        assert result.is_valid
        assert result.warnings == []

    def test_negative_overround_warns(self):
        result = OddsValidator.validate_quote(quote(prices=[2.2, 3.6, 4.2]))
        assert result.is_valid
        assert any("Negative overround" in w for w in result.warnings)

    def test_high_overround_warns(self):
        result = OddsValidator.validate_quote(quote(prices=[1.6, 2.5, 3.0]))
        assert any("High overround" in w for w in result.warnings)

    def test_unusual_price(self):
        result = OddsValidator.validate_quote(quote(prices=[1.01, 150.0]))
        assert any("unusually high" in w for w in result.warnings)

    def test_shape_mismatch(self):
        result = OddsValidator.validate_quote(quote(prices=[1.9, 1.9]), expected_selections=3)
        assert not result.is_valid


class TestMatchValidator:

    def test_foreign_quote(self):
        m = Match(id="m1", home_team="Arsenal", away_team="Chelsea", league="EPL", kickoff=NOW)
        result = MatchValidator.validate_quotes_for_match(m, [quote(), quote(match_id="m2")])
        assert not result.is_valid

    def test_inconsistent_shapes(self):
        m = Match(id="m1", home_team="Arsenal", away_team="Chelsea", league="EPL", kickoff=NOW)
        result = MatchValidator.validate_quotes_for_match(m, [quote(), quote(prices=[1.9, 1.9])])
        assert not result.is_valid


class TestLineMovement:

    def test_fractional_movement(self):
        lm = calculate_line_movement([2.00, 3.40, 4.00], [1.80, 3.40, 4.40])
        assert lm.movements == pytest.approx([-0.10, 0.0, 0.10])
        assert lm.max_movement == pytest.approx(0.10)
        assert lm.direction == SHORTENING
        assert lm.directions == [SHORTENING, NO_MOVEMENT, LENGTHENING]

    def test_direction_follows_first_selection(self):
        lm = calculate_line_movement([2.00, 3.40, 4.00], [2.10, 3.00, 3.00])
        assert lm.direction == LENGTHENING

    def test_empty(self):
        lm = calculate_line_movement([], [])
        assert lm.movements == []
        assert lm.max_movement == 0.0
        assert lm.direction == NO_MOVEMENT


class TestLineMovementTracker:

    def test_history_and_movement(self):
        tracker = LineMovementTracker("m1")
        tracker.add_quotes([
            quote("pinnacle", [1.80, 3.50, 4.40], minutes=60),
            quote("pinnacle", [2.00, 3.40, 4.00], minutes=0),
            quote("bet365", [2.05, 3.30, 3.90], minutes=0),
        ])

        history = tracker.line_history("pinnacle")
        assert history.opening_line == [2.00, 3.40, 4.00]
        assert history.current_line == [1.80, 3.50, 4.40]
        assert tracker.movement("pinnacle").movements[0] == pytest.approx(-0.10)

    def test_multi_book_needs_two_quotes(self):
        tracker = LineMovementTracker("m1")
        tracker.add_quotes([
            quote("pinnacle", minutes=0), quote("pinnacle", minutes=5),
            quote("bet365", minutes=0),
        ])
        lines = tracker.multi_book_lines()
        assert [l.bookmaker for l in lines] == ["pinnacle"]

    def test_other_market_ignored(self):
        tracker = LineMovementTracker("m1")
        tracker.add_quote(quote(market="over_under", prices=[1.9, 1.9]))
        assert tracker.bookmakers == []

    def test_wrong_match(self):
        tracker = LineMovementTracker("m1")
        with pytest.raises(ValueError):
            tracker.add_quote(quote(match_id="m2"))

    def test_empty_history(self):
        assert LineHistory.from_quotes([]) == LineHistory()
