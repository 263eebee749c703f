#!/usr/bin/env python3
"""Watch the search strategy play both sides.

Usage:
    python scripts/self_play.py                       # default board, 200 rounds max
    python scripts/self_play.py --rounds 50 --budget 1.0
    python scripts/self_play.py --config configs/server.yaml --quiet
"""

import argparse
import logging
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import yaml

from flagwar.engine.exploration import ExplorationConfig
from flagwar.engine.scoring import ScoreWeights
from flagwar.game.board import BoardConfig
from flagwar.game.state import Side
from flagwar.match.session import MatchSession


def main():
    parser = argparse.ArgumentParser(description="flagwar self-play")
    parser.add_argument("--config", default=None, help="Optional config YAML (board/scoring/search)")
    parser.add_argument("--rounds", type=int, default=200, help="Maximum rounds to play")
    parser.add_argument("--budget", type=float, default=None, help="Search time budget in seconds")
    parser.add_argument("--quiet", action="store_true", help="Only print the final board")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    config = {}
    if args.config:
        with open(args.config) as f:
            config = yaml.safe_load(f) or {}

    board = BoardConfig.from_dict(config.get("board"))
    weights = ScoreWeights.from_dict(config.get("scoring"))
    exploration = ExplorationConfig.from_dict(config.get("search"), weights=weights)
    if args.budget is not None:
        exploration.time_budget = args.budget

    session = MatchSession("selfplay", board, ai_sides=(Side.A, Side.B),
                           exploration=exploration, weights=weights)
    session.start()

    for _ in range(args.rounds):
        record = session.tick()
        if not args.quiet:
            print(session.render())
            print(f"scores: A={record.scores['A']:.0f} B={record.scores['B']:.0f}")
            print()
        if session.state.done:
            break

    print(session.render())
    status = session.get_status()
    winner = status["winner"].value if status["winner"] else "none"
    print(f"Finished at round {status['round']}: winner={winner} captures={status['captures']}")


if __name__ == "__main__":
    main()
