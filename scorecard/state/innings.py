"""
Innings State Machine.

Owns the live score, wicket and legal-ball counters, strike assignment and
per-player figures for the innings in progress. After each delivery it
evaluates the innings-end conditions and, once the innings is concluded,
decides the next innings parameters or the final match result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from scorecard.config import BALLS_PER_OVER, MAX_WICKETS
from scorecard.data.delivery import Delivery, Player, Team
from scorecard.errors import InvalidSelection, NotReady
from scorecard.state.over_tracker import OverState, OverTracker
from scorecard.state.undo import Snapshot, UndoStack
from scorecard.stats.aggregator import StatAggregator

logger = logging.getLogger(__name__)


class InningsStatus(Enum):
    IN_PROGRESS = "in_progress"
    AWAITING_NEW_BATTER = "awaiting_new_batter"
    AWAITING_NEW_BOWLER = "awaiting_new_bowler"
    AWAITING_BATTER_AND_BOWLER = "awaiting_batter_and_bowler"
    COMPLETE = "complete"


def format_overs(legal_balls: int) -> str:
    return f"{legal_balls // BALLS_PER_OVER}.{legal_balls % BALLS_PER_OVER}"


@dataclass(frozen=True)
class InningsScore:
    """Final (or current) total for one side."""

    team: str
    runs: int
    wickets: int
    legal_balls: int

    @property
    def overs(self) -> str:
        return format_overs(self.legal_balls)

    def __str__(self) -> str:
        return f"{self.team} {self.runs}/{self.wickets} ({self.overs} ov)"


@dataclass(frozen=True)
class MatchResult:
    """Outcome of the match. A tie has no winning team."""

    first_innings: Optional[InningsScore]
    second_innings: Optional[InningsScore]
    winning_team: Optional[str]
    margin: str

    @property
    def is_tie(self) -> bool:
        return self.winning_team is None

    def summary(self) -> str:
        if self.is_tie:
            return "Match tied"
        return f"{self.winning_team} won {self.margin}"


@dataclass(frozen=True)
class NextInningsParams:
    """Everything needed to open the second innings."""

    batting_team: Team
    bowling_team: Team
    striker: Player
    non_striker: Player
    bowler: Player
    max_overs: int
    target: int
    first_innings: InningsScore
    innings_number: int = 2


@dataclass
class InningsState:
    """Live state of an innings, as handed to the presentation layer."""

    batting_team: Team
    bowling_team: Team
    striker: Player
    non_striker: Player
    bowler: Player
    max_overs: int
    innings_number: int = 1
    target: Optional[int] = None  # Only for 2nd innings
    runs: int = 0
    wickets: int = 0
    legal_balls: int = 0
    dismissed: set[str] = field(default_factory=set)
    over: Optional[OverState] = None
    status: InningsStatus = InningsStatus.IN_PROGRESS

    @property
    def overs(self) -> str:
        return format_overs(self.legal_balls)

    @property
    def balls_remaining(self) -> int:
        return max(0, self.max_overs * BALLS_PER_OVER - self.legal_balls)

    @property
    def runs_required(self) -> Optional[int]:
        if self.target is None:
            return None
        return max(0, self.target - self.runs)

    @property
    def run_rate(self) -> float:
        overs = self.legal_balls / BALLS_PER_OVER
        return self.runs / overs if overs > 0 else 0.0

    @property
    def required_run_rate(self) -> Optional[float]:
        if self.runs_required is None:
            return None
        overs_remaining = self.balls_remaining / BALLS_PER_OVER
        return self.runs_required / overs_remaining if overs_remaining > 0 else float("inf")

    @property
    def status_line(self) -> str:
        if self.runs_required is not None:
            if self.runs_required == 0:
                return "target reached"
            return f"{self.balls_remaining} balls • {self.runs_required} runs to win"
        return f"{self.balls_remaining} balls left"

    def score(self) -> InningsScore:
        return InningsScore(
            team=self.batting_team.name,
            runs=self.runs,
            wickets=self.wickets,
            legal_balls=self.legal_balls,
        )


@dataclass(frozen=True)
class DeliveryOutcome:
    """What a single delivery did to the innings."""

    delivery: Delivery
    ball_number: int  # Legal-ball position within the over, 1-6
    striker_id: str
    bowler_id: str
    closed_over: Optional[OverState] = None
    innings_ended: bool = False
    need_batter: bool = False
    need_bowler: bool = False


@dataclass(frozen=True)
class InningsConclusion:
    score: InningsScore
    closed_over: Optional[OverState] = None
    next_innings: Optional[NextInningsParams] = None
    result: Optional[MatchResult] = None


class InningsStateMachine:
    """Applies deliveries to one innings and decides what must happen next.

    Each instance scores exactly one innings; the second innings is played
    on a fresh instance built from the first innings' handoff parameters.
    """

    def __init__(
        self,
        batting_team: Team,
        bowling_team: Team,
        striker: Player,
        non_striker: Player,
        bowler: Player,
        max_overs: int,
        target: Optional[int] = None,
        innings_number: int = 1,
        first_innings: Optional[InningsScore] = None,
        forbid_consecutive_overs: bool = False,
        strict_undo: bool = False,
    ):
        if max_overs <= 0:
            raise ValueError(f"max_overs must be positive, got {max_overs}")
        if len(batting_team.players) < 2:
            raise InvalidSelection(f"{batting_team.name} needs at least two batters")
        if striker.player_id == non_striker.player_id:
            raise InvalidSelection("Striker and non-striker must be different players", striker.player_id)
        for batter in (striker, non_striker):
            if not batting_team.has_player(batter):
                raise InvalidSelection(f"{batter.name} is not in {batting_team.name}", batter.player_id)
        if not bowling_team.has_player(bowler):
            raise InvalidSelection(f"{bowler.name} is not in {bowling_team.name}", bowler.player_id)

        self._state = InningsState(
            batting_team=batting_team,
            bowling_team=bowling_team,
            striker=striker,
            non_striker=non_striker,
            bowler=bowler,
            max_overs=max_overs,
            innings_number=innings_number,
            target=target,
        )
        self._first_innings = first_innings
        self._forbid_consecutive_overs = forbid_consecutive_overs
        self._strict_undo = strict_undo
        self._wicket_limit = min(MAX_WICKETS, len(batting_team.players) - 1)

        self._stats = StatAggregator()
        self._stats.ensure_batter(striker.player_id)
        self._stats.ensure_batter(non_striker.player_id)
        self._stats.ensure_bowler(bowler.player_id)

        self._overs = OverTracker()
        self._overs.open(1, innings_number, bowler.player_id)
        self._history = UndoStack()
        self._last_over_bowler_id: Optional[str] = None

        self._need_batter = False
        self._need_bowler = False
        self._ended = False
        self._complete = False

    @classmethod
    def from_params(
        cls,
        params: NextInningsParams,
        forbid_consecutive_overs: bool = False,
        strict_undo: bool = False,
    ) -> "InningsStateMachine":
        return cls(
            batting_team=params.batting_team,
            bowling_team=params.bowling_team,
            striker=params.striker,
            non_striker=params.non_striker,
            bowler=params.bowler,
            max_overs=params.max_overs,
            target=params.target,
            innings_number=params.innings_number,
            first_innings=params.first_innings,
            forbid_consecutive_overs=forbid_consecutive_overs,
            strict_undo=strict_undo,
        )

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def status(self) -> InningsStatus:
        if self._ended:
            return InningsStatus.COMPLETE
        if self._need_batter and self._need_bowler:
            return InningsStatus.AWAITING_BATTER_AND_BOWLER
        if self._need_batter:
            return InningsStatus.AWAITING_NEW_BATTER
        if self._need_bowler:
            return InningsStatus.AWAITING_NEW_BOWLER
        return InningsStatus.IN_PROGRESS

    @property
    def state(self) -> InningsState:
        """Independent copy of the live state for display."""
        over = self._overs.current
        return replace(
            self._state,
            dismissed=set(self._state.dismissed),
            over=over.copy() if over is not None else None,
            status=self.status,
        )

    @property
    def stats(self) -> StatAggregator:
        return self._stats.copy()

    @property
    def is_finished(self) -> bool:
        """Termination detected; conclude_innings() is due (or done)."""
        return self._ended

    @property
    def is_concluded(self) -> bool:
        return self._complete

    @property
    def can_undo(self) -> bool:
        return self.status == InningsStatus.IN_PROGRESS and bool(self._history)

    @property
    def wicket_limit(self) -> int:
        return self._wicket_limit

    def available_batters(self) -> list[Player]:
        s = self._state
        batting = {s.striker.player_id, s.non_striker.player_id}
        return [
            p for p in s.batting_team.players
            if p.player_id not in s.dismissed and p.player_id not in batting
        ]

    def available_bowlers(self) -> list[Player]:
        players = list(self._state.bowling_team.players)
        if self._forbid_consecutive_overs and self._last_over_bowler_id is not None:
            players = [p for p in players if p.player_id != self._last_over_bowler_id]
        return players

    def snapshot(self) -> Snapshot:
        s = self._state
        over = self._overs.current
        return Snapshot(
            runs=s.runs,
            wickets=s.wickets,
            legal_balls=s.legal_balls,
            striker=s.striker,
            non_striker=s.non_striker,
            bowler=s.bowler,
            dismissed=frozenset(s.dismissed),
            over=over.copy() if over is not None else None,
            stats=self._stats.copy(),
            last_over_bowler_id=self._last_over_bowler_id,
        )

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def apply_delivery(self, delivery: Delivery) -> DeliveryOutcome:
        """Apply one delivery and report what must happen next."""
        if self.status != InningsStatus.IN_PROGRESS:
            raise NotReady(f"Cannot score a delivery while {self.status.value}")

        s = self._state
        self._history.push(self.snapshot())

        striker_id = s.striker.player_id
        bowler_id = s.bowler.player_id
        ball_number = s.legal_balls % BALLS_PER_OVER + 1
        credited = delivery.team_runs

        if delivery.is_wide:
            self._stats.credit_bowl(bowler_id, legal_ball=False, runs_conceded=credited)
        elif delivery.is_no_ball:
            self._stats.credit_bat(striker_id, delivery.bat_runs)
            self._stats.credit_bowl(bowler_id, legal_ball=False, runs_conceded=credited)
        else:
            self._stats.credit_bat(striker_id, delivery.bat_runs)
            self._stats.credit_bowl(
                bowler_id, legal_ball=True, runs_conceded=credited, wicket=delivery.is_wicket
            )
            s.legal_balls += 1

        s.runs += credited
        self._overs.record(delivery.label)

        if delivery.is_wicket:
            s.wickets += 1
            s.dismissed.add(striker_id)
            logger.info(
                "WICKET: %s out, %d/%d after %s overs",
                s.striker.name, s.runs, s.wickets, s.overs,
            )

        if not delivery.is_wide and credited % 2 == 1:
            self._swap_strike()

        logger.debug(
            "Delivery %s: %s -> %d/%d (%s)",
            delivery.label, s.bowler.name, s.runs, s.wickets, s.overs,
        )

        closed_over: Optional[OverState] = None
        if self._termination_reached():
            self._ended = True
            logger.info(
                "Innings %d ended: %s %d/%d (%s ov)",
                s.innings_number, s.batting_team.name, s.runs, s.wickets, s.overs,
            )
        else:
            if delivery.is_legal and self._overs.is_complete():
                closed_over = self._overs.reset()
                self._last_over_bowler_id = bowler_id
                self._swap_strike()
                self._need_bowler = True
                logger.info(
                    "Over %d complete: %s", closed_over.over_number, " ".join(closed_over.balls)
                )
            if delivery.is_wicket:
                self._need_batter = True

        return DeliveryOutcome(
            delivery=delivery,
            ball_number=ball_number,
            striker_id=striker_id,
            bowler_id=bowler_id,
            closed_over=closed_over,
            innings_ended=self._ended,
            need_batter=self._need_batter,
            need_bowler=self._need_bowler,
        )

    def supply_new_batter(self, player: Player) -> InningsStatus:
        """Send in a batter to replace the one just dismissed."""
        if not self._need_batter:
            raise NotReady(f"No batter is required while {self.status.value}")
        s = self._state
        if not s.batting_team.has_player(player):
            self._reject(f"{player.name} is not in {s.batting_team.name}", player)
        if player.player_id in s.dismissed:
            self._reject(f"{player.name} has already been dismissed", player)
        if player.player_id in (s.striker.player_id, s.non_striker.player_id):
            self._reject(f"{player.name} is already batting", player)

        # The incoming batter takes the dismissed batter's end
        if s.striker.player_id in s.dismissed:
            s.striker = player
        else:
            s.non_striker = player
        self._stats.ensure_batter(player.player_id)
        self._need_batter = False
        logger.info("New batter: %s", player.name)
        return self.status

    def supply_new_bowler(self, player: Player) -> InningsStatus:
        """Hand the ball to the bowler of the next over."""
        if not self._need_bowler:
            raise NotReady(f"No bowler is required while {self.status.value}")
        s = self._state
        if not s.bowling_team.has_player(player):
            self._reject(f"{player.name} is not in {s.bowling_team.name}", player)
        if self._forbid_consecutive_overs and player.player_id == self._last_over_bowler_id:
            self._reject(f"{player.name} bowled the previous over", player)

        s.bowler = player
        self._stats.ensure_bowler(player.player_id)
        self._overs.open(
            s.legal_balls // BALLS_PER_OVER + 1, s.innings_number, player.player_id
        )
        self._need_bowler = False
        logger.info("New bowler: %s", player.name)
        return self.status

    def undo(self) -> bool:
        """Roll back the most recent delivery.

        Blocked while a selection is pending or the innings is complete:
        returns False, or raises NotReady when strict_undo is set. An over
        already closed and persisted is not reopened by the collaborator.
        """
        if self.status != InningsStatus.IN_PROGRESS:
            if self._strict_undo:
                raise NotReady(f"Cannot undo while {self.status.value}")
            logger.debug("Undo ignored while %s", self.status.value)
            return False

        self._restore(self._history.pop())
        logger.info("Undid last delivery: %d/%d (%s ov)",
                    self._state.runs, self._state.wickets, self._state.overs)
        return True

    def conclude_innings(self) -> InningsConclusion:
        """Close the innings and decide what comes next."""
        if not self._ended or self._complete:
            raise NotReady(f"Innings cannot be concluded while {self.status.value}")

        closed_over = self._overs.reset()
        self._need_batter = False
        self._need_bowler = False
        self._complete = True
        self._history.clear()

        s = self._state
        score = s.score()

        if s.target is None:
            next_batting, next_bowling = s.bowling_team, s.batting_team
            if len(next_batting.players) < 2:
                result = MatchResult(
                    first_innings=score,
                    second_innings=None,
                    winning_team=s.batting_team.name,
                    margin=f"({next_batting.name} could not field two batters)",
                )
                logger.warning("Match ended after first innings: %s", result.summary())
                return InningsConclusion(score=score, closed_over=closed_over, result=result)

            params = NextInningsParams(
                batting_team=next_batting,
                bowling_team=next_bowling,
                striker=next_batting.players[0],
                non_striker=next_batting.players[1],
                bowler=next_bowling.players[0],
                max_overs=s.max_overs,
                target=s.runs + 1,
                first_innings=score,
                innings_number=s.innings_number + 1,
            )
            logger.info("%s need %d to win", next_batting.name, params.target)
            return InningsConclusion(score=score, closed_over=closed_over, next_innings=params)

        result = self._match_result(score)
        logger.info("Match over: %s", result.summary())
        return InningsConclusion(score=score, closed_over=closed_over, result=result)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _termination_reached(self) -> bool:
        s = self._state
        if s.legal_balls >= s.max_overs * BALLS_PER_OVER:
            return True
        if s.wickets >= self._wicket_limit:
            return True
        return s.target is not None and s.runs >= s.target

    def _match_result(self, score: InningsScore) -> MatchResult:
        s = self._state
        if s.runs >= s.target:
            remaining = self._wicket_limit - s.wickets
            winner = s.batting_team.name
            margin = f"by {remaining} wicket{'s' if remaining != 1 else ''}"
        elif s.runs == s.target - 1:
            winner = None
            margin = "scores level"
        else:
            deficit = s.target - 1 - s.runs
            winner = s.bowling_team.name
            margin = f"by {deficit} run{'s' if deficit != 1 else ''}"
        return MatchResult(
            first_innings=self._first_innings,
            second_innings=score,
            winning_team=winner,
            margin=margin,
        )

    def _swap_strike(self) -> None:
        s = self._state
        s.striker, s.non_striker = s.non_striker, s.striker

    def _reject(self, message: str, player: Player) -> None:
        logger.warning("Rejected selection: %s", message)
        raise InvalidSelection(message, player.player_id)

    def _restore(self, snap: Snapshot) -> None:
        s = self._state
        s.runs = snap.runs
        s.wickets = snap.wickets
        s.legal_balls = snap.legal_balls
        s.striker = snap.striker
        s.non_striker = snap.non_striker
        s.bowler = snap.bowler
        s.dismissed = set(snap.dismissed)
        self._overs.restore(snap.over)
        self._stats = snap.stats.copy()
        self._last_over_bowler_id = snap.last_over_bowler_id
        self._need_batter = False
        self._need_bowler = False
        self._ended = False
