"""
Scoring Engine - match orchestrator.

Receives one delivery intent at a time, drives the innings state machine,
writes overs and balls to the score repository in order, and tells the
caller what must happen next.

Flow per delivery:
    open over record (if needed) → apply to innings → record ball
    → complete over (if closed) → conclude innings (if ended)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, TypeVar

from scorecard.config import ScorerConfig
from scorecard.data.delivery import Delivery, Player, Team
from scorecard.errors import NotReady
from scorecard.persistence.repository import (
    BallRecord,
    InMemoryScoreRepository,
    OverRecord,
    ScoreRepository,
)
from scorecard.state.innings import (
    InningsScore,
    InningsState,
    InningsStateMachine,
    InningsStatus,
    MatchResult,
    NextInningsParams,
)
from scorecard.state.over_tracker import OverState
from scorecard.stats.aggregator import BattingFigures, BowlingFigures

logger = logging.getLogger(__name__)

T = TypeVar("T")


class NextAction(Enum):
    CONTINUE = "continue"
    NEED_BATTER = "need_batter"
    NEED_BOWLER = "need_bowler"
    NEED_BATTER_AND_BOWLER = "need_batter_and_bowler"
    INNINGS_OVER = "innings_over"
    MATCH_OVER = "match_over"


_STATUS_ACTIONS = {
    InningsStatus.IN_PROGRESS: NextAction.CONTINUE,
    InningsStatus.AWAITING_NEW_BATTER: NextAction.NEED_BATTER,
    InningsStatus.AWAITING_NEW_BOWLER: NextAction.NEED_BOWLER,
    InningsStatus.AWAITING_BATTER_AND_BOWLER: NextAction.NEED_BATTER_AND_BOWLER,
}


@dataclass(frozen=True)
class ScoreUpdate:
    """State handed to the presentation layer after every action."""

    action: NextAction
    state: InningsState
    batting: dict[str, BattingFigures]
    bowling: dict[str, BowlingFigures]
    can_undo: bool
    closed_over: Optional[OverState] = None
    next_innings: Optional[NextInningsParams] = None
    result: Optional[MatchResult] = None

    @property
    def needs_batter(self) -> bool:
        return self.action in (NextAction.NEED_BATTER, NextAction.NEED_BATTER_AND_BOWLER)

    @property
    def needs_bowler(self) -> bool:
        return self.action in (NextAction.NEED_BOWLER, NextAction.NEED_BATTER_AND_BOWLER)


class ScoringEngine:
    """Scores one match, innings by innings.

    Persistence failures are logged and never roll back the live score;
    the repository is expected to tolerate retried writes.
    """

    def __init__(
        self,
        match_id: str,
        repository: Optional[ScoreRepository] = None,
        config: Optional[ScorerConfig] = None,
    ):
        self.match_id = match_id
        self.config = config or ScorerConfig()
        self.config.validate()
        self.repository = repository if repository is not None else InMemoryScoreRepository()

        self._innings: list[InningsStateMachine] = []
        self._completed: list[InningsScore] = []
        self._result: Optional[MatchResult] = None
        self._over_handles: dict[tuple[int, int], OverRecord] = {}
        self._ball_handles: list[Optional[BallRecord]] = []

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def machine(self) -> InningsStateMachine:
        if not self._innings:
            raise NotReady("Match has not started")
        return self._innings[-1]

    @property
    def innings_number(self) -> int:
        return len(self._innings)

    @property
    def completed_innings(self) -> list[InningsScore]:
        return list(self._completed)

    @property
    def result(self) -> Optional[MatchResult]:
        return self._result

    @property
    def is_match_over(self) -> bool:
        return self._result is not None

    def innings(self, number: int) -> InningsStateMachine:
        """State machine for an innings (1-indexed), live or concluded."""
        return self._innings[number - 1]

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def start(
        self,
        batting_team: Team,
        bowling_team: Team,
        striker: Optional[Player] = None,
        non_striker: Optional[Player] = None,
        bowler: Optional[Player] = None,
    ) -> ScoreUpdate:
        """Open the first innings. Openers default to the top of each roster."""
        if self._innings:
            raise NotReady("Match already started")
        if len(batting_team.players) < 2:
            raise ValueError(f"{batting_team.name} needs at least two players to bat")
        if not bowling_team.players:
            raise ValueError(f"{bowling_team.name} has no players to bowl")

        machine = InningsStateMachine(
            batting_team=batting_team,
            bowling_team=bowling_team,
            striker=striker or batting_team.players[0],
            non_striker=non_striker or batting_team.players[1],
            bowler=bowler or bowling_team.players[0],
            max_overs=self.config.overs,
            forbid_consecutive_overs=self.config.forbid_consecutive_overs,
            strict_undo=self.config.strict_undo,
        )
        self._innings.append(machine)
        logger.info(
            "Match %s: %s batting against %s, %d overs",
            self.match_id, batting_team.name, bowling_team.name, self.config.overs,
        )
        return self._update()

    def score(self, delivery: Delivery) -> ScoreUpdate:
        """Record one delivery."""
        machine = self.machine
        if machine.status != InningsStatus.IN_PROGRESS:
            raise NotReady(f"Cannot score a delivery while {machine.status.value}")

        over_handle = self._ensure_over(machine.state)
        outcome = machine.apply_delivery(delivery)

        ball = None
        if over_handle is not None:
            ball = self._persist(
                "record_ball",
                lambda: self.repository.record_ball(
                    over_handle,
                    outcome.ball_number,
                    outcome.striker_id,
                    outcome.bowler_id,
                    delivery.bat_runs,
                    delivery.is_wide,
                    delivery.is_no_ball,
                    delivery.is_wicket,
                ),
            )
        self._ball_handles.append(ball)

        if outcome.closed_over is not None:
            self._complete_over(outcome.closed_over, machine.state.runs)
        if outcome.innings_ended:
            return self._finish_innings(machine)
        return self._update(closed_over=outcome.closed_over)

    def select_batter(self, player: Player) -> ScoreUpdate:
        self.machine.supply_new_batter(player)
        return self._update()

    def select_bowler(self, player: Player) -> ScoreUpdate:
        self.machine.supply_new_bowler(player)
        return self._update()

    def undo(self) -> ScoreUpdate:
        """Roll back the last delivery of the innings in progress."""
        machine = self.machine
        if machine.undo():
            ball = self._ball_handles.pop() if self._ball_handles else None
            if ball is not None:
                self._persist("void_ball", lambda: self.repository.void_ball(ball))
            self._drop_later_overs(machine.state)
        return self._update()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _finish_innings(self, machine: InningsStateMachine) -> ScoreUpdate:
        conclusion = machine.conclude_innings()
        if conclusion.closed_over is not None:
            self._complete_over(conclusion.closed_over, conclusion.score.runs)
        self._completed.append(conclusion.score)
        update_state = machine.state
        stats = machine.stats

        if conclusion.next_innings is not None:
            self._innings.append(
                InningsStateMachine.from_params(
                    conclusion.next_innings,
                    forbid_consecutive_overs=self.config.forbid_consecutive_overs,
                    strict_undo=self.config.strict_undo,
                )
            )
            self._ball_handles = []
            return ScoreUpdate(
                action=NextAction.INNINGS_OVER,
                state=update_state,
                batting=stats.batting,
                bowling=stats.bowling,
                can_undo=False,
                closed_over=conclusion.closed_over,
                next_innings=conclusion.next_innings,
            )

        self._result = conclusion.result
        self._ball_handles = []
        self._persist(
            "complete_match",
            lambda: self.repository.complete_match(self.match_id, conclusion.result),
        )
        return ScoreUpdate(
            action=NextAction.MATCH_OVER,
            state=update_state,
            batting=stats.batting,
            bowling=stats.bowling,
            can_undo=False,
            closed_over=conclusion.closed_over,
            result=conclusion.result,
        )

    def _ensure_over(self, state: InningsState) -> Optional[OverRecord]:
        over = state.over
        if over is None:
            return None
        key = (over.innings_number, over.over_number)
        handle = self._over_handles.get(key)
        if handle is None or handle.bowler_id != over.bowler_id:
            handle = self._persist(
                "create_over",
                lambda: self.repository.create_over(
                    self.match_id, over.over_number, over.innings_number, over.bowler_id
                ),
            )
            if handle is not None:
                self._over_handles[key] = handle
        return handle

    def _drop_later_overs(self, state: InningsState) -> None:
        # Overs past the restored one start a fresh record when bowled again
        if state.over is None:
            return
        innings, current = state.over.innings_number, state.over.over_number
        for key in [k for k in self._over_handles if k[0] == innings and k[1] > current]:
            del self._over_handles[key]

    def _complete_over(self, over: OverState, score_at_over_end: int) -> None:
        handle = self._over_handles.get((over.innings_number, over.over_number))
        if handle is None:
            return
        self._persist(
            "complete_over",
            lambda: self.repository.complete_over(handle, score_at_over_end),
        )

    def _persist(self, operation: str, write: Callable[[], T]) -> Optional[T]:
        try:
            return write()
        except Exception:
            logger.exception(
                "Persistence %s failed for match %s; live score kept", operation, self.match_id
            )
            return None

    def _update(self, closed_over: Optional[OverState] = None) -> ScoreUpdate:
        machine = self.machine
        stats = machine.stats
        return ScoreUpdate(
            action=_STATUS_ACTIONS.get(machine.status, NextAction.MATCH_OVER),
            state=machine.state,
            batting=stats.batting,
            bowling=stats.bowling,
            can_undo=machine.can_undo,
            closed_over=closed_over,
            result=self._result,
        )
