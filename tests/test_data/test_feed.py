"""
Tests for the seeded mock feed.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import pytest

from houseedge.data.feed import LEAGUES, MockFeed

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def feed(config):
    return MockFeed(config, seed=42, now=NOW)


class TestMockFeed:

    def test_deterministic(self, config):
        a = MockFeed(config, seed=7, now=NOW).generate_slate()
        b = MockFeed(config, seed=7, now=NOW).generate_slate()

        assert [m.match_id for m in a] == [m.match_id for m in b]
        assert [q.prices for m in a for q in m.quotes] == [q.prices for m in b for q in m.quotes]

    def test_slate_size(self, feed):
        slate = feed.generate_slate(matches_per_league=2)
        assert len(slate) == 2 * len(LEAGUES)
        assert {m.match.league for m in slate} == set(LEAGUES)

    def test_fixtures_disjoint_within_league(self, feed):
        slate = feed.generate_slate(matches_per_league=5)
        for league in LEAGUES:
            teams = [t for m in slate if m.match.league == league
                     for t in (m.match.home_team, m.match.away_team)]
            assert len(teams) == len(set(teams)) == 10

    def test_quotes_per_bookmaker(self, feed, config):
        data = feed.generate_match("EPL", "Arsenal", "Chelsea")

        assert [q.bookmaker for q in data.opening_quotes] == config.odds.bookmakers
        assert len(data.current_quotes) == len(config.odds.bookmakers)
        assert all(q.timestamp < c.timestamp for q, c in zip(data.opening_quotes, data.current_quotes))
        assert all(p > 1.0 for q in data.quotes for p in q.prices)

    def test_true_probabilities(self, feed):
        data = feed.generate_match("EPL", "Arsenal", "Chelsea")
        assert sum(data.true_probabilities) == pytest.approx(1.0)
        assert all(p > 0 for p in data.true_probabilities)

    def test_public_percentages(self, feed):
        for _ in range(20):
            pct = feed.public_percentages()
            assert sum(pct) == pytest.approx(1.0)
            assert all(p >= 0 for p in pct)

    def test_team_form(self, feed):
        form = feed.team_form("Arsenal", strength=0.5, num_matches=6)
        assert form.team == "Arsenal"
        assert len(form.recent_matches) == 6

    def test_line_history(self, feed):
        data = feed.generate_match("EPL", "Arsenal", "Chelsea")
        line = data.line_history("pinnacle")

        assert line.bookmaker == "pinnacle"
        assert line.opening_line == data.opening_quotes[0].prices
        assert len(data.multi_book_lines()) == len(data.opening_quotes)

    def test_kickoff_after_now(self, feed):
        data = feed.generate_match("LAL", "Sevilla", "Girona")
        assert data.match.kickoff > NOW
        assert data.match_id.startswith("sevilla_vs_girona_")
