"""
Scoring errors.

All of these are local, recoverable conditions: the caller re-prompts
and re-issues a corrected action.
"""

from __future__ import annotations

from typing import Optional


class ScorecardError(Exception):
    """Base class for scorer errors."""


class InvalidSelection(ScorecardError):
    """A batter or bowler choice violates the eligibility rules."""

    def __init__(self, message: str, player_id: Optional[str] = None):
        super().__init__(message)
        self.player_id = player_id


class NotReady(ScorecardError):
    """Action attempted while a selection is pending or the innings is over."""


class EmptyStack(ScorecardError):
    """Undo requested with no recorded delivery to roll back."""
