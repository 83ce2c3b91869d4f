"""
Configuration management for the scorer.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


class MatchFormat(Enum):
    T10 = "t10"
    T20 = "t20"
    ODI = "odi"


# Format-specific constants
FORMAT_OVERS: dict[MatchFormat, int] = {
    MatchFormat.T10: 10,
    MatchFormat.T20: 20,
    MatchFormat.ODI: 50,
}

BALLS_PER_OVER = 6
MAX_WICKETS = 10


def _env_flag(name: str, default: str = "") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class ScorerConfig:
    """Scoring rules and runtime settings."""

    match_format: MatchFormat = MatchFormat.T20
    max_overs: Optional[int] = None  # Overrides the format default
    forbid_consecutive_overs: bool = False  # Same bowler may bowl back-to-back
    strict_undo: bool = False  # Raise NotReady instead of ignoring a blocked undo
    log_level: str = "INFO"

    @property
    def overs(self) -> int:
        if self.max_overs is not None:
            return self.max_overs
        return FORMAT_OVERS[self.match_format]

    def validate(self) -> None:
        if self.overs <= 0:
            raise ValueError(f"max_overs must be positive, got {self.overs}")

    @classmethod
    def from_env(cls) -> "ScorerConfig":
        """Load configuration from environment variables."""
        raw_overs = os.getenv("SCORER_MAX_OVERS", "").strip()
        config = cls(
            match_format=MatchFormat(os.getenv("SCORER_FORMAT", "t20").lower()),
            max_overs=int(raw_overs) if raw_overs else None,
            forbid_consecutive_overs=_env_flag("SCORER_FORBID_CONSECUTIVE_OVERS"),
            strict_undo=_env_flag("SCORER_STRICT_UNDO"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
        config.validate()
        return config
