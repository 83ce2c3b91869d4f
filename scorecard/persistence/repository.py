"""
Score persistence interface.

The scoring engine writes overs and balls through this contract as they
happen. Writes are append-only: a ball rolled back by undo is marked void
rather than deleted, and completing an over twice is harmless.
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from scorecard.state.innings import MatchResult

logger = logging.getLogger(__name__)


@dataclass
class OverRecord:
    match_id: str
    over_number: int
    innings_number: int
    bowler_id: str
    over_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    completed: bool = False
    score_at_over_end: Optional[int] = None
    balls: list["BallRecord"] = field(default_factory=list)


@dataclass
class BallRecord:
    over_id: str
    ball_number: int
    striker_id: str
    bowler_id: str
    runs: int
    is_wide: bool = False
    is_no_ball: bool = False
    is_wicket: bool = False
    ball_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    voided: bool = False
    timestamp: datetime = field(default_factory=datetime.utcnow)

    @property
    def total_runs(self) -> int:
        """Runs this ball added to the team total."""
        return self.runs + (1 if self.is_wide else 0)


@dataclass
class MatchRecord:
    match_id: str
    started: datetime = field(default_factory=datetime.utcnow)
    completed: bool = False
    result: Optional[MatchResult] = None


class ScoreRepository(ABC):
    """Abstract base class for score stores."""

    @abstractmethod
    def create_over(
        self, match_id: str, over_number: int, innings_number: int, bowler_id: str
    ) -> OverRecord:
        """Open a new over record."""

    @abstractmethod
    def record_ball(
        self,
        over: OverRecord,
        ball_number: int,
        striker_id: str,
        bowler_id: str,
        runs: int,
        is_wide: bool,
        is_no_ball: bool,
        is_wicket: bool,
    ) -> BallRecord:
        """Append a ball to an over."""

    @abstractmethod
    def complete_over(self, over: OverRecord, score_at_over_end: int) -> None:
        """Mark an over closed with the team score at its end.

        Called again for the same over when it is bowled again after an
        undo; the latest score replaces the earlier one.
        """

    @abstractmethod
    def void_ball(self, ball: BallRecord) -> None:
        """Mark a ball as rolled back."""

    @abstractmethod
    def complete_match(self, match_id: str, result: MatchResult) -> None:
        """Store the final result of a match."""

    @abstractmethod
    def calculate_score(self, match_id: str, innings_number: int) -> int:
        """Team total for an innings, summed from its recorded balls."""

    @abstractmethod
    def completed_matches_count(self) -> int:
        """Number of matches with a stored result."""


class InMemoryScoreRepository(ScoreRepository):
    """Score store held in process memory, for demos and tests."""

    def __init__(self) -> None:
        self._matches: dict[str, MatchRecord] = {}
        self._overs: list[OverRecord] = []

    def create_over(
        self, match_id: str, over_number: int, innings_number: int, bowler_id: str
    ) -> OverRecord:
        self._matches.setdefault(match_id, MatchRecord(match_id=match_id))
        over = OverRecord(
            match_id=match_id,
            over_number=over_number,
            innings_number=innings_number,
            bowler_id=bowler_id,
        )
        self._overs.append(over)
        logger.debug("Created over %d (innings %d) for %s", over_number, innings_number, match_id)
        return over

    def record_ball(
        self,
        over: OverRecord,
        ball_number: int,
        striker_id: str,
        bowler_id: str,
        runs: int,
        is_wide: bool,
        is_no_ball: bool,
        is_wicket: bool,
    ) -> BallRecord:
        ball = BallRecord(
            over_id=over.over_id,
            ball_number=ball_number,
            striker_id=striker_id,
            bowler_id=bowler_id,
            runs=runs,
            is_wide=is_wide,
            is_no_ball=is_no_ball,
            is_wicket=is_wicket,
        )
        over.balls.append(ball)
        return ball

    def complete_over(self, over: OverRecord, score_at_over_end: int) -> None:
        if over.completed:
            # Bowled again after an undo; keep the latest end-of-over total
            logger.debug("Over %d completed again", over.over_number)
        over.completed = True
        over.score_at_over_end = score_at_over_end

    def void_ball(self, ball: BallRecord) -> None:
        ball.voided = True

    def complete_match(self, match_id: str, result: MatchResult) -> None:
        record = self._matches.setdefault(match_id, MatchRecord(match_id=match_id))
        record.completed = True
        record.result = result
        logger.info("Stored result for %s: %s", match_id, result.summary())

    def calculate_score(self, match_id: str, innings_number: int) -> int:
        return sum(
            ball.total_runs
            for ball in self.balls(match_id, innings_number)
        )

    def completed_matches_count(self) -> int:
        return sum(1 for m in self._matches.values() if m.completed)

    # Read helpers

    def overs(self, match_id: str, innings_number: Optional[int] = None) -> list[OverRecord]:
        return [
            o for o in self._overs
            if o.match_id == match_id
            and (innings_number is None or o.innings_number == innings_number)
        ]

    def balls(self, match_id: str, innings_number: int) -> list[BallRecord]:
        return [
            b
            for o in self.overs(match_id, innings_number)
            for b in o.balls
            if not b.voided
        ]

    def get_match(self, match_id: str) -> Optional[MatchRecord]:
        return self._matches.get(match_id)
