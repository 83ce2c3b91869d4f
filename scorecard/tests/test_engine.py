"""Tests for the Scoring Engine orchestrator."""

from __future__ import annotations

import logging

import pytest

from scorecard.config import ScorerConfig
from scorecard.data.delivery import Delivery, Team
from scorecard.engine import NextAction, ScoringEngine
from scorecard.errors import NotReady
from scorecard.persistence.repository import InMemoryScoreRepository


class RecordingRepository(InMemoryScoreRepository):
    """Keeps the order of persistence calls."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[str] = []

    def create_over(self, *args, **kwargs):
        self.calls.append("create_over")
        return super().create_over(*args, **kwargs)

    def record_ball(self, *args, **kwargs):
        self.calls.append("record_ball")
        return super().record_ball(*args, **kwargs)

    def complete_over(self, *args, **kwargs):
        self.calls.append("complete_over")
        return super().complete_over(*args, **kwargs)


class FailingRepository(InMemoryScoreRepository):
    def record_ball(self, *args, **kwargs):
        raise RuntimeError("disk full")


def score_all(engine: ScoringEngine, *runs: int):
    update = None
    for r in runs:
        update = engine.score(Delivery.runs(r))
    return update


class TestEngineScoring:
    def test_start_defaults_openers(self, engine: ScoringEngine, thunder: Team, strikers: Team):
        update = engine.start(thunder, strikers)
        assert update.action == NextAction.CONTINUE
        assert update.state.striker == thunder.players[0]
        assert update.state.non_striker == thunder.players[1]
        assert update.state.bowler == strikers.players[0]
        assert not update.can_undo
        assert engine.innings_number == 1

    def test_start_twice(self, engine: ScoringEngine, thunder: Team, strikers: Team):
        engine.start(thunder, strikers)
        with pytest.raises(NotReady):
            engine.start(thunder, strikers)

    def test_score_before_start(self, engine: ScoringEngine):
        with pytest.raises(NotReady):
            engine.score(Delivery.runs(1))

    def test_ball_is_persisted(
        self,
        engine: ScoringEngine,
        repository: InMemoryScoreRepository,
        thunder: Team,
        strikers: Team,
    ):
        engine.start(thunder, strikers)
        update = engine.score(Delivery.runs(4))

        assert update.action == NextAction.CONTINUE
        assert update.can_undo
        assert update.state.runs == 4
        assert update.batting[thunder.players[0].player_id].fours == 1

        overs = repository.overs("test_001", 1)
        assert len(overs) == 1
        assert overs[0].over_number == 1
        assert overs[0].bowler_id == strikers.players[0].player_id
        ball = overs[0].balls[0]
        assert ball.ball_number == 1
        assert ball.striker_id == thunder.players[0].player_id
        assert ball.runs == 4
        assert not (ball.is_wide or ball.is_no_ball or ball.is_wicket)

    def test_extras_persisted(
        self,
        engine: ScoringEngine,
        repository: InMemoryScoreRepository,
        thunder: Team,
        strikers: Team,
    ):
        engine.start(thunder, strikers)
        engine.score(Delivery.wide())
        engine.score(Delivery.no_ball())
        engine.score(Delivery.runs(2))

        balls = repository.balls("test_001", 1)
        assert [(b.runs, b.is_wide, b.is_no_ball) for b in balls] == [
            (0, True, False), (1, False, True), (2, False, False),
        ]
        # Extras do not advance the ball number within the over
        assert [b.ball_number for b in balls] == [1, 1, 1]
        assert repository.calculate_score("test_001", 1) == engine.machine.state.runs == 4

    def test_wicket_needs_batter(self, engine: ScoringEngine, thunder: Team, strikers: Team):
        engine.start(thunder, strikers)
        update = engine.score(Delivery.wicket())

        assert update.action == NextAction.NEED_BATTER
        assert update.needs_batter
        assert not update.can_undo
        with pytest.raises(NotReady):
            engine.score(Delivery.runs(1))

        update = engine.select_batter(thunder.players[2])
        assert update.action == NextAction.CONTINUE
        assert update.state.striker == thunder.players[2]


class TestEngineOvers:
    def test_over_completed_before_returning(self, thunder: Team, strikers: Team):
        repo = RecordingRepository()
        engine = ScoringEngine("m1", repository=repo, config=ScorerConfig(max_overs=2))
        engine.start(thunder, strikers)
        update = score_all(engine, 0, 0, 0, 0, 0, 1)

        assert update.action == NextAction.NEED_BOWLER
        assert update.closed_over is not None
        assert repo.calls == ["create_over"] + ["record_ball"] * 6 + ["complete_over"]
        over = repo.overs("m1", 1)[0]
        assert over.completed
        assert over.score_at_over_end == 1

    def test_next_over_record_uses_new_bowler(self, thunder: Team, strikers: Team):
        repo = InMemoryScoreRepository()
        engine = ScoringEngine("m1", repository=repo, config=ScorerConfig(max_overs=2))
        engine.start(thunder, strikers)
        score_all(engine, 0, 0, 0, 0, 0, 0)
        engine.select_bowler(strikers.players[3])
        engine.score(Delivery.runs(1))

        overs = repo.overs("m1", 1)
        assert [o.over_number for o in overs] == [1, 2]
        assert overs[1].bowler_id == strikers.players[3].player_id

    def test_undo_across_closed_over_reuses_record(self, thunder: Team, strikers: Team):
        repo = InMemoryScoreRepository()
        engine = ScoringEngine("m1", repository=repo, config=ScorerConfig(max_overs=2))
        engine.start(thunder, strikers)
        score_all(engine, 0, 0, 0, 0, 0, 0)
        engine.select_bowler(strikers.players[3])

        update = engine.undo()
        assert update.state.legal_balls == 5
        assert update.state.bowler == strikers.players[0]

        update = engine.score(Delivery.runs(2))
        assert update.action == NextAction.NEED_BOWLER
        overs = repo.overs("m1", 1)
        assert len(overs) == 1
        assert len(repo.balls("m1", 1)) == 6
        assert repo.calculate_score("m1", 1) == 2
        assert overs[0].completed
        assert overs[0].score_at_over_end == 2 == update.state.runs

    def test_over_bowled_again_after_undo_gets_new_bowler_record(self, thunder: Team, strikers: Team):
        repo = InMemoryScoreRepository()
        engine = ScoringEngine("m1", repository=repo, config=ScorerConfig(max_overs=3))
        engine.start(thunder, strikers)
        score_all(engine, 0, 0, 0, 0, 0, 0)
        engine.select_bowler(strikers.players[3])
        engine.score(Delivery.runs(1))

        engine.undo()
        engine.undo()
        update = engine.score(Delivery.runs(0))
        assert update.action == NextAction.NEED_BOWLER
        engine.select_bowler(strikers.players[5])
        update = engine.score(Delivery.runs(2))

        latest = repo.overs("m1", 1)[-1]
        assert latest.over_number == 2
        assert latest.bowler_id == strikers.players[5].player_id
        assert [b.bowler_id for b in latest.balls] == [strikers.players[5].player_id]
        assert repo.calculate_score("m1", 1) == update.state.runs == 2


class TestEngineUndo:
    def test_undo_voids_persisted_ball(
        self,
        engine: ScoringEngine,
        repository: InMemoryScoreRepository,
        thunder: Team,
        strikers: Team,
    ):
        engine.start(thunder, strikers)
        score_all(engine, 4, 1)
        update = engine.undo()

        assert update.state.runs == 4
        assert update.state.striker == thunder.players[0]
        assert len(repository.balls("test_001", 1)) == 1
        assert repository.calculate_score("test_001", 1) == 4

    def test_undo_blocked_while_selection_pending(
        self, engine: ScoringEngine, thunder: Team, strikers: Team
    ):
        engine.start(thunder, strikers)
        engine.score(Delivery.wicket())
        update = engine.undo()
        assert update.action == NextAction.NEED_BATTER
        assert update.state.wickets == 1


class TestEngineMatchFlow:
    def test_full_match(
        self,
        engine: ScoringEngine,
        repository: InMemoryScoreRepository,
        thunder: Team,
        strikers: Team,
    ):
        engine.start(thunder, strikers)
        update = score_all(engine, 4, 1, 0, 2, 0, 6)

        assert update.action == NextAction.INNINGS_OVER
        assert update.next_innings.target == 14
        assert update.state.runs == 13
        assert engine.innings_number == 2
        assert engine.machine.state.batting_team == strikers
        assert engine.machine.state.target == 14

        update = score_all(engine, 6, 6, 1)
        assert update.action == NextAction.CONTINUE
        assert update.state.status_line == "3 balls • 1 runs to win"

        update = engine.score(Delivery.runs(1))
        assert update.action == NextAction.MATCH_OVER
        assert update.result.winning_team == "Strikers"
        assert update.result.summary() == "Strikers won by 10 wickets"
        assert engine.is_match_over
        assert [s.runs for s in engine.completed_innings] == [13, 14]

        assert repository.calculate_score("test_001", 1) == 13
        assert repository.calculate_score("test_001", 2) == 14
        assert repository.completed_matches_count() == 1
        assert repository.get_match("test_001").result == update.result
        assert all(o.completed for o in repository.overs("test_001"))
        assert repository.overs("test_001", 2)[0].score_at_over_end == 14

        with pytest.raises(NotReady):
            engine.score(Delivery.runs(1))

    def test_tied_match(self, engine: ScoringEngine, thunder: Team, strikers: Team):
        engine.start(thunder, strikers)
        score_all(engine, 1, 1, 1, 1, 1, 1)
        update = score_all(engine, 2, 2, 2, 0, 0, 0)

        assert update.action == NextAction.MATCH_OVER
        assert update.result.is_tie

    def test_persistence_failure_keeps_live_score(
        self, thunder: Team, strikers: Team, caplog: pytest.LogCaptureFixture
    ):
        engine = ScoringEngine("m1", repository=FailingRepository(), config=ScorerConfig(max_overs=1))
        engine.start(thunder, strikers)

        with caplog.at_level(logging.ERROR, logger="scorecard.engine"):
            update = engine.score(Delivery.runs(4))

        assert update.state.runs == 4
        assert any("record_ball" in r.getMessage() for r in caplog.records)
        # Undo still works without a persisted ball to void
        assert engine.undo().state.runs == 0
