"""
Undo history for the innings in progress.

A full snapshot of every mutable piece of innings state is pushed before
each delivery is applied, so the most recent delivery can be rolled back
exactly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from scorecard.data.delivery import Player
from scorecard.errors import EmptyStack
from scorecard.state.over_tracker import OverState
from scorecard.stats.aggregator import StatAggregator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """Innings state immediately before a delivery.

    The stats and over are independent copies taken at capture time and
    copied again when restored, so a snapshot is never aliased by live state.
    """

    runs: int
    wickets: int
    legal_balls: int
    striker: Player
    non_striker: Player
    bowler: Player
    dismissed: frozenset[str]
    over: Optional[OverState]
    stats: StatAggregator
    last_over_bowler_id: Optional[str] = None


class UndoStack:
    """Unbounded LIFO of snapshots for one innings."""

    def __init__(self) -> None:
        self._items: list[Snapshot] = []

    def push(self, snapshot: Snapshot) -> None:
        self._items.append(snapshot)

    def pop(self) -> Snapshot:
        if not self._items:
            raise EmptyStack("Nothing to undo")
        snapshot = self._items.pop()
        logger.debug("Popped snapshot (%d remaining)", len(self._items))
        return snapshot

    def peek(self) -> Optional[Snapshot]:
        return self._items[-1] if self._items else None

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)
