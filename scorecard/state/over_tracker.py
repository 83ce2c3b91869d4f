"""
Current-over tracking.

Holds the ordered ball outcomes of the over in progress and decides when
six legal deliveries have been bowled. Wides and no-balls are recorded
in the over but do not count toward completion.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from scorecard.config import BALLS_PER_OVER
from scorecard.data.delivery import NO_BALL_LABEL, WIDE_LABEL

logger = logging.getLogger(__name__)


@dataclass
class OverState:
    """One over: who bowled it and what happened on each delivery."""

    over_number: int  # 1-indexed
    innings_number: int
    bowler_id: str
    balls: list[str] = field(default_factory=list)
    completed: bool = False

    @property
    def legal_count(self) -> int:
        return sum(
            1 for b in self.balls if b != WIDE_LABEL and not b.startswith(NO_BALL_LABEL)
        )

    def copy(self) -> "OverState":
        return replace(self, balls=list(self.balls))


class OverTracker:
    """Accumulates deliveries into the current over."""

    def __init__(self) -> None:
        self._current: Optional[OverState] = None

    @property
    def current(self) -> Optional[OverState]:
        return self._current

    def open(self, over_number: int, innings_number: int, bowler_id: str) -> OverState:
        """Start a fresh over for the given bowler."""
        self._current = OverState(
            over_number=over_number,
            innings_number=innings_number,
            bowler_id=bowler_id,
        )
        logger.debug(
            "Opened over %d (innings %d) for bowler %s",
            over_number, innings_number, bowler_id,
        )
        return self._current

    def record(self, label: str) -> None:
        if self._current is None:
            raise RuntimeError("No over is open")
        self._current.balls.append(label)

    def is_complete(self) -> bool:
        return self._current is not None and self._current.legal_count >= BALLS_PER_OVER

    def reset(self) -> Optional[OverState]:
        """Close the current over and hand it back for persistence."""
        closed = self._current
        if closed is not None:
            closed.completed = True
        self._current = None
        return closed

    def restore(self, over: Optional[OverState]) -> None:
        self._current = over.copy() if over is not None else None
