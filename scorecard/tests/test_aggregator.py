"""Tests for batting and bowling figures."""

from __future__ import annotations

import pytest

from scorecard.stats.aggregator import BattingFigures, BowlingFigures, StatAggregator


class TestFigures:
    def test_strike_rate_rounds(self):
        assert BattingFigures(runs=10, balls_faced=3).strike_rate == 333
        assert BattingFigures(runs=1, balls_faced=8).strike_rate == 13

    def test_strike_rate_zero_balls(self):
        assert BattingFigures().strike_rate == 0

    def test_overs_string(self):
        assert BowlingFigures(legal_balls=14).overs == "2.2"
        assert BowlingFigures(legal_balls=6).overs == "1.0"

    def test_economy(self):
        assert BowlingFigures(legal_balls=12, runs_conceded=15).economy == pytest.approx(7.5)
        assert BowlingFigures(runs_conceded=3).economy == 0.0


class TestStatAggregator:
    def test_entries_created_lazily(self):
        stats = StatAggregator()
        stats.credit_bat("p1", 4)
        stats.credit_bat("p1", 6)
        stats.credit_bat("p1", 1)
        fig = stats.batting["p1"]
        assert (fig.runs, fig.balls_faced, fig.fours, fig.sixes) == (11, 3, 1, 1)

    def test_credit_bowl(self):
        stats = StatAggregator()
        stats.credit_bowl("b1", legal_ball=True, runs_conceded=2)
        stats.credit_bowl("b1", legal_ball=False, runs_conceded=1)
        stats.credit_bowl("b1", legal_ball=True, runs_conceded=0, wicket=True)
        fig = stats.bowling["b1"]
        assert (fig.legal_balls, fig.runs_conceded, fig.wickets) == (2, 3, 1)

    def test_copy_is_independent(self):
        stats = StatAggregator()
        stats.credit_bat("p1", 2)
        clone = stats.copy()
        stats.credit_bat("p1", 4)
        stats.credit_bowl("b1", True, 4)
        assert clone.batting["p1"].runs == 2
        assert "b1" not in clone.bowling
        assert clone != stats
