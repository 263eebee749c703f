"""FastAPI dependency injection setup."""

from __future__ import annotations

import logging

from flagwar.engine.exploration import ExplorationConfig
from flagwar.engine.scoring import ScoreWeights
from flagwar.game.board import BoardConfig
from flagwar.match.session_manager import MatchManager

logger = logging.getLogger("flagwar.match")


def init_app(app, config: dict) -> None:
    """Initialize FastAPI app with shared resources from config.

    Builds the board geometry, scoring weights and search settings, then
    creates a MatchManager and stores it on app.state. Invalid board
    geometry raises ConfigError here, before any match exists.

    Args:
        app: FastAPI application instance.
        config: Configuration dict with keys:
            - board: BoardConfig fields (missing ones use the default board)
            - scoring: ScoreWeights fields
            - search.time_budget, search.max_distance
            - match.tick_seconds, match.default_ai_sides
    """
    config = config or {}

    board = BoardConfig.from_dict(config.get("board"))
    logger.info(f"Board: {board.width}x{board.height}, "
                f"{len(board.starting_positions['A'])} pieces per side")

    weights = ScoreWeights.from_dict(config.get("scoring"))
    exploration = ExplorationConfig.from_dict(config.get("search"), weights=weights)

    match_cfg = config.get("match", {})
    manager = MatchManager(
        board=board,
        exploration=exploration,
        weights=weights,
        tick_seconds=float(match_cfg.get("tick_seconds", 0.0)),
        default_ai_sides=match_cfg.get("default_ai_sides", ["B"]),
    )

    app.state.match_manager = manager
    logger.info("Match API initialized")


def get_match_manager(app) -> MatchManager:
    """Get MatchManager from app state."""
    return app.state.match_manager
