"""Shared test fixtures for scorer tests."""

from __future__ import annotations

from typing import Optional

import pytest

from scorecard.config import ScorerConfig
from scorecard.data.delivery import Team
from scorecard.persistence.repository import InMemoryScoreRepository
from scorecard.engine import ScoringEngine
from scorecard.state.innings import InningsScore, InningsStateMachine


def make_team(name: str, size: int = 11) -> Team:
    return Team.from_names(name, [f"{name}_{i}" for i in range(1, size + 1)])


def make_machine(
    batting: Team,
    bowling: Team,
    max_overs: int = 2,
    target: Optional[int] = None,
    **kwargs,
) -> InningsStateMachine:
    first_innings = None
    if target is not None:
        first_innings = InningsScore(team=bowling.name, runs=target - 1, wickets=3, legal_balls=max_overs * 6)
    return InningsStateMachine(
        batting_team=batting,
        bowling_team=bowling,
        striker=batting.players[0],
        non_striker=batting.players[1],
        bowler=bowling.players[0],
        max_overs=max_overs,
        target=target,
        innings_number=2 if target is not None else 1,
        first_innings=first_innings,
        **kwargs,
    )


@pytest.fixture
def thunder() -> Team:
    return make_team("Thunder")


@pytest.fixture
def strikers() -> Team:
    return make_team("Strikers")


@pytest.fixture
def machine(thunder: Team, strikers: Team) -> InningsStateMachine:
    """Two-over first innings, Thunder batting."""
    return make_machine(thunder, strikers)


@pytest.fixture
def repository() -> InMemoryScoreRepository:
    return InMemoryScoreRepository()


@pytest.fixture
def engine(repository: InMemoryScoreRepository) -> ScoringEngine:
    """One-over-a-side match engine."""
    return ScoringEngine("test_001", repository=repository, config=ScorerConfig(max_overs=1))
