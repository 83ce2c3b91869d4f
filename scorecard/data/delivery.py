"""
Delivery data model.

Defines the delivery event fed into the scoring engine and the stable
player and team identities that figures are keyed by.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ExtraType(Enum):
    NONE = "none"
    WIDE = "wide"
    NO_BALL = "no_ball"


# Over-strip labels for extras; legal deliveries use the run count or "W"
WIDE_LABEL = "Ex"
NO_BALL_LABEL = "Nb"
WICKET_LABEL = "W"


@dataclass(frozen=True)
class Player:
    """A player keyed by a stable identity rather than object identity."""

    name: str
    player_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Team:
    """A named side with its playing roster in batting order."""

    name: str
    players: tuple[Player, ...] = ()

    @classmethod
    def from_names(cls, name: str, player_names: list[str]) -> "Team":
        return cls(name=name, players=tuple(Player(n) for n in player_names))

    def has_player(self, player: Player) -> bool:
        return any(p.player_id == player.player_id for p in self.players)

    def find(self, player_name: str) -> Optional[Player]:
        """Look up a player by name."""
        for p in self.players:
            if p.name == player_name:
                return p
        return None

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Delivery:
    """A single delivery as entered by the scorer.

    A wicket is always a legal delivery that scores nothing; a wide never
    carries runs off the bat.
    """

    runs_off_bat: int = 0
    extra_type: ExtraType = ExtraType.NONE
    is_wicket: bool = False

    def __post_init__(self) -> None:
        if self.runs_off_bat < 0:
            raise ValueError(f"runs_off_bat must be non-negative, got {self.runs_off_bat}")
        if self.extra_type == ExtraType.WIDE and self.runs_off_bat:
            raise ValueError("A wide cannot carry runs off the bat")
        if self.is_wicket and (self.extra_type != ExtraType.NONE or self.runs_off_bat):
            raise ValueError("A wicket must be a legal delivery scoring 0 runs")

    @classmethod
    def runs(cls, runs: int) -> "Delivery":
        return cls(runs_off_bat=runs)

    @classmethod
    def wide(cls) -> "Delivery":
        return cls(extra_type=ExtraType.WIDE)

    @classmethod
    def no_ball(cls) -> "Delivery":
        return cls(extra_type=ExtraType.NO_BALL)

    @classmethod
    def wicket(cls) -> "Delivery":
        return cls(is_wicket=True)

    @property
    def is_wide(self) -> bool:
        return self.extra_type == ExtraType.WIDE

    @property
    def is_no_ball(self) -> bool:
        return self.extra_type == ExtraType.NO_BALL

    @property
    def is_legal(self) -> bool:
        return self.extra_type == ExtraType.NONE

    @property
    def team_runs(self) -> int:
        """Runs added to the team total.

        A no-ball is always worth exactly one run, whatever was struck.
        """
        if self.extra_type != ExtraType.NONE:
            return 1
        return self.runs_off_bat

    @property
    def bat_runs(self) -> int:
        """Runs credited to the striker."""
        if self.is_wide:
            return 0
        return self.team_runs

    @property
    def label(self) -> str:
        if self.is_wide:
            return WIDE_LABEL
        if self.is_no_ball:
            return NO_BALL_LABEL
        if self.is_wicket:
            return WICKET_LABEL
        return str(self.runs_off_bat)
