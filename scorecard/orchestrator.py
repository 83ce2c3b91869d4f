"""
Scorer entry point.

Usage:
    python -m scorecard.orchestrator --demo
    python -m scorecard.orchestrator --demo --overs 5 --seed 7 --record match.csv
    python -m scorecard.orchestrator --replay match.csv
"""

from __future__ import annotations

import argparse
import logging
import random
import sys
from pathlib import Path
from typing import Optional

from scorecard.config import ScorerConfig
from scorecard.data.delivery import Delivery, Team
from scorecard.data.delivery_log import (
    LoggedDelivery,
    load_deliveries_from_csv,
    replay,
    write_deliveries_to_csv,
)
from scorecard.engine import NextAction, ScoreUpdate, ScoringEngine

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("scorecard.orchestrator")

SQUAD_SIZE = 11


def demo_teams() -> tuple[Team, Team]:
    """Two demo sides with numbered rosters, e.g. Thunder_1..Thunder_11."""
    thunder = Team.from_names("Thunder", [f"Thunder_{i}" for i in range(1, SQUAD_SIZE + 1)])
    strikers = Team.from_names("Strikers", [f"Strikers_{i}" for i in range(1, SQUAD_SIZE + 1)])
    return thunder, strikers


def random_delivery(rng: random.Random) -> Delivery:
    r = rng.random()
    if r < 0.30:
        return Delivery.runs(0)  # Dot
    if r < 0.55:
        return Delivery.runs(1)
    if r < 0.66:
        return Delivery.runs(2)
    if r < 0.68:
        return Delivery.runs(3)
    if r < 0.78:
        return Delivery.runs(4)
    if r < 0.83:
        return Delivery.runs(6)
    if r < 0.87:
        return Delivery.wide()
    if r < 0.89:
        return Delivery.no_ball()
    return Delivery.wicket()


def run_demo(config: ScorerConfig, seed: Optional[int] = None, record: Optional[str] = None) -> None:
    """Score a synthetic match from random deliveries."""
    rng = random.Random(seed)
    thunder, strikers = demo_teams()
    engine = ScoringEngine("demo_001", config=config)

    logger.info("=" * 60)
    logger.info("SCORER - DEMO MODE")
    logger.info("=" * 60)

    update = engine.start(thunder, strikers)
    log: list[LoggedDelivery] = []

    while not engine.is_match_over:
        innings = engine.innings_number
        delivery = random_delivery(rng)
        update = engine.score(delivery)
        new_batter = new_bowler = None

        if update.needs_batter:
            player = engine.machine.available_batters()[0]
            update = engine.select_batter(player)
            new_batter = player.name
        if update.needs_bowler:
            # Rotate through the last five players of the bowling side
            state = engine.machine.state
            attack = list(state.bowling_team.players[-5:])
            candidates = [p for p in attack if p.player_id != state.bowler.player_id]
            player = rng.choice(candidates)
            update = engine.select_bowler(player)
            new_bowler = player.name
            logger.info(
                "  %s %d/%d after %s overs (RR %.2f) | %s",
                state.batting_team.name, state.runs, state.wickets, state.overs,
                state.run_rate, state.status_line,
            )

        log.append(LoggedDelivery(innings, delivery, new_batter, new_bowler))

        if update.action == NextAction.INNINGS_OVER:
            logger.info("End of innings: %s", update.state.score())

    print_summary(engine, update)

    if record:
        write_deliveries_to_csv(Path(record), log)
        logger.info("Delivery log written to %s", record)


def run_replay(config: ScorerConfig, path: str) -> None:
    """Replay a recorded delivery log between the demo sides."""
    deliveries = load_deliveries_from_csv(Path(path))
    thunder, strikers = demo_teams()
    engine = ScoringEngine(Path(path).stem, config=config)
    engine.start(thunder, strikers)
    update = replay(engine, deliveries)
    print_summary(engine, update)


def print_summary(engine: ScoringEngine, update: ScoreUpdate) -> None:
    print("\n" + "=" * 60)
    print("MATCH SUMMARY")
    print("=" * 60)
    for score in engine.completed_innings:
        print(f"  {score}")
    if engine.result is not None:
        print(f"Result: {engine.result.summary()}")
    else:
        print(f"In progress: {update.state.status_line}")
    print()

    for number in range(1, engine.innings_number + 1):
        machine = engine.innings(number)
        state = machine.state
        stats = machine.stats
        print(f"{state.batting_team.name} batting")
        for player in state.batting_team.players:
            fig = stats.batting.get(player.player_id)
            if fig is None:
                continue
            out = "out" if player.player_id in state.dismissed else "not out"
            print(
                f"  {player.name:<14} {out:<8} {fig.runs:>4} ({fig.balls_faced})"
                f"  4s {fig.fours}  6s {fig.sixes}  SR {fig.strike_rate}"
            )
        print(f"{state.bowling_team.name} bowling")
        for player in state.bowling_team.players:
            fig = stats.bowling.get(player.player_id)
            if fig is None:
                continue
            print(
                f"  {player.name:<14} {fig.overs:>5} ov  {fig.runs_conceded:>3} r"
                f"  {fig.wickets} w  econ {fig.economy:.2f}"
            )
        print()


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Ball-by-ball cricket scorer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m scorecard.orchestrator --demo --overs 5
  python -m scorecard.orchestrator --replay match.csv
        """,
    )

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--demo", action="store_true", help="Score a synthetic match")
    mode.add_argument("--replay", type=str, metavar="CSV", help="Replay a delivery log")

    parser.add_argument("--overs", type=int, help="Overs per innings (default from config)")
    parser.add_argument("--seed", type=int, help="Random seed for the demo")
    parser.add_argument("--record", type=str, metavar="CSV", help="Write the demo's delivery log")
    parser.add_argument(
        "--no-consecutive", action="store_true", help="Forbid a bowler bowling consecutive overs"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    config = ScorerConfig.from_env()
    logging.getLogger().setLevel(config.log_level.upper())
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = ScorerConfig(
        match_format=config.match_format,
        max_overs=args.overs if args.overs is not None else config.max_overs,
        forbid_consecutive_overs=args.no_consecutive or config.forbid_consecutive_overs,
        strict_undo=config.strict_undo,
        log_level=config.log_level,
    )
    try:
        config.validate()
    except ValueError as e:
        logger.error("%s", e)
        sys.exit(1)

    if args.demo:
        run_demo(config, seed=args.seed, record=args.record)
    elif args.replay:
        run_replay(config, args.replay)


if __name__ == "__main__":
    main()
