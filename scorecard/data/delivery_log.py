"""
Delivery log reader/writer.

A delivery log is a CSV with one row per delivery:
innings, runs, extra, wicket, new_batter, new_bowler

`extra` is empty, "wide" or "noball"; `wicket` is 0/1. The two selection
columns name the player sent in after the delivery, when one is needed.
Replaying a log through a fresh engine reproduces the match.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from scorecard.data.delivery import Delivery, ExtraType, Player, Team
from scorecard.engine import NextAction, ScoreUpdate, ScoringEngine

logger = logging.getLogger(__name__)

FIELDNAMES = ["innings", "runs", "extra", "wicket", "new_batter", "new_bowler"]

EXTRAS_MAP = {
    "": ExtraType.NONE,
    "wide": ExtraType.WIDE,
    "noball": ExtraType.NO_BALL,
}
EXTRAS_NAMES = {v: k for k, v in EXTRAS_MAP.items()}


@dataclass(frozen=True)
class LoggedDelivery:
    innings: int
    delivery: Delivery
    new_batter: Optional[str] = None
    new_bowler: Optional[str] = None


def load_deliveries_from_csv(csv_path: Path) -> list[LoggedDelivery]:
    """Load a delivery log.

    Raises:
        ValueError: the file is empty or a row cannot be parsed.
    """
    with open(csv_path, "r", encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))

    if not rows:
        raise ValueError(f"Empty delivery log: {csv_path}")

    logged: list[LoggedDelivery] = []
    for line_no, row in enumerate(rows, start=2):
        try:
            extra = EXTRAS_MAP[(row.get("extra") or "").strip().lower()]
            delivery = Delivery(
                runs_off_bat=int(row.get("runs") or 0),
                extra_type=extra,
                is_wicket=(row.get("wicket") or "0").strip() in {"1", "true", "True"},
            )
            logged.append(
                LoggedDelivery(
                    innings=int(row["innings"]),
                    delivery=delivery,
                    new_batter=(row.get("new_batter") or "").strip() or None,
                    new_bowler=(row.get("new_bowler") or "").strip() or None,
                )
            )
        except (KeyError, ValueError) as e:
            raise ValueError(f"{csv_path}:{line_no}: bad delivery row {row}: {e}") from e

    logger.info("Loaded %d deliveries from %s", len(logged), csv_path)
    return logged


def write_deliveries_to_csv(csv_path: Path, deliveries: Iterable[LoggedDelivery]) -> None:
    with open(csv_path, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
        writer.writeheader()
        for item in deliveries:
            writer.writerow({
                "innings": item.innings,
                "runs": item.delivery.runs_off_bat,
                "extra": EXTRAS_NAMES[item.delivery.extra_type],
                "wicket": int(item.delivery.is_wicket),
                "new_batter": item.new_batter or "",
                "new_bowler": item.new_bowler or "",
            })


def replay(engine: ScoringEngine, deliveries: Iterable[LoggedDelivery]) -> ScoreUpdate:
    """Feed a delivery log to a started engine.

    When a selection is needed but the log names nobody, the first
    eligible player is chosen.
    """
    update: Optional[ScoreUpdate] = None
    for item in deliveries:
        if engine.is_match_over:
            logger.warning("Ignoring deliveries logged after the match ended")
            break
        if item.innings != engine.innings_number:
            raise ValueError(
                f"Logged innings {item.innings} but innings {engine.innings_number} is in play"
            )
        update = engine.score(item.delivery)
        if update.needs_batter:
            state = engine.machine.state
            player = _pick(state.batting_team, item.new_batter, engine.machine.available_batters())
            update = engine.select_batter(player)
        if update.needs_bowler:
            state = engine.machine.state
            player = _pick(state.bowling_team, item.new_bowler, engine.machine.available_bowlers())
            update = engine.select_bowler(player)

    if update is None:
        raise ValueError("No deliveries to replay")
    if update.action == NextAction.MATCH_OVER:
        logger.info("Replay finished: %s", update.result.summary())
    return update


def _pick(team: Team, name: Optional[str], eligible: list[Player]) -> Player:
    if name:
        player = team.find(name)
        if player is None:
            raise ValueError(f"{name} is not in {team.name}")
        return player
    if not eligible:
        raise ValueError(f"No eligible player left in {team.name}")
    return eligible[0]
