"""
Per-player batting and bowling running totals.

Entries are created lazily with zeroed figures on first reference and are
never removed during an innings.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace

from scorecard.config import BALLS_PER_OVER


@dataclass
class BattingFigures:
    runs: int = 0
    balls_faced: int = 0
    fours: int = 0
    sixes: int = 0

    @property
    def strike_rate(self) -> int:
        if self.balls_faced == 0:
            return 0
        # Halves round up, so 12.5 shows as 13
        return math.floor(self.runs * 100 / self.balls_faced + 0.5)


@dataclass
class BowlingFigures:
    legal_balls: int = 0
    runs_conceded: int = 0
    wickets: int = 0

    @property
    def overs(self) -> str:
        """Overs bowled as 'completed.balls', e.g. '3.4'."""
        return f"{self.legal_balls // BALLS_PER_OVER}.{self.legal_balls % BALLS_PER_OVER}"

    @property
    def economy(self) -> float:
        overs = self.legal_balls / BALLS_PER_OVER
        return self.runs_conceded / overs if overs > 0 else 0.0


@dataclass
class StatAggregator:
    """Maps player identity to running batting and bowling figures."""

    batting: dict[str, BattingFigures] = field(default_factory=dict)
    bowling: dict[str, BowlingFigures] = field(default_factory=dict)

    def ensure_batter(self, player_id: str) -> BattingFigures:
        return self.batting.setdefault(player_id, BattingFigures())

    def ensure_bowler(self, player_id: str) -> BowlingFigures:
        return self.bowling.setdefault(player_id, BowlingFigures())

    def credit_bat(self, player_id: str, runs: int) -> None:
        """Credit the striker with runs and one ball faced."""
        fig = self.ensure_batter(player_id)
        fig.runs += runs
        fig.balls_faced += 1
        if runs == 4:
            fig.fours += 1
        elif runs == 6:
            fig.sixes += 1

    def credit_bowl(
        self,
        player_id: str,
        legal_ball: bool,
        runs_conceded: int,
        wicket: bool = False,
    ) -> None:
        fig = self.ensure_bowler(player_id)
        if legal_ball:
            fig.legal_balls += 1
        fig.runs_conceded += runs_conceded
        if wicket:
            fig.wickets += 1

    def copy(self) -> "StatAggregator":
        """Independent copy; mutating it never touches this aggregator."""
        return StatAggregator(
            batting={pid: replace(fig) for pid, fig in self.batting.items()},
            bowling={pid: replace(fig) for pid, fig in self.bowling.items()},
        )
