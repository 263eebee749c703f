"""flagwar game engine: board, state, movement, collisions, flags, rescue, rounds."""

from flagwar.game.board import BoardConfig, ConfigError, Rect, DEFAULT_CONFIG, render_board
from flagwar.game.state import (
    GameState, GameStatus, Side, Direction, DIRECTIONS, Piece, Movement, Flag, Carrier, Roster,
)
from flagwar.game.rules import CaptureEvents, RoundResult, execute_round, simulate_round

__all__ = [
    "BoardConfig", "ConfigError", "Rect", "DEFAULT_CONFIG", "render_board",
    "GameState", "GameStatus", "Side", "Direction", "DIRECTIONS",
    "Piece", "Movement", "Flag", "Carrier", "Roster",
    "CaptureEvents", "RoundResult", "execute_round", "simulate_round",
]
