"""Shared test fixtures for flagwar tests."""

import dataclasses

import pytest

from flagwar.game.board import DEFAULT_CONFIG
from flagwar.game.state import Carrier, Direction, GameState, GameStatus, Movement, Side


# Default geometry with two pieces per side, spawned away from the center.
SMALL_CONFIG = dataclasses.replace(
    DEFAULT_CONFIG,
    starting_positions={
        "A": ((1, 1, 10), (2, 2, 10)),
        "B": ((1, 1, 2), (2, 2, 2)),
    },
).validate()


def place(state: GameState, side: Side, piece_id: int, x: int, y: int) -> None:
    """Move a piece onto a cell directly, bypassing the rules."""
    piece = state.get_piece(side, piece_id)
    piece.x, piece.y = x, y


def give_flag(state: GameState, carrier_side: Side, piece_id: int) -> None:
    """Hand the opposing flag to a piece, wherever it stands."""
    piece = state.get_piece(carrier_side, piece_id)
    flag = state.flags[carrier_side.opponent]
    flag.x, flag.y = piece.x, piece.y
    flag.carried_by = Carrier(carrier_side, piece_id)
    state.no_guard_zone_active[carrier_side.opponent] = False


def mv(piece_id: int, direction: str, distance: int) -> Movement:
    return Movement(piece_id, Direction(direction), distance)


@pytest.fixture
def small_state():
    """Two-per-side state, already playing."""
    state = GameState(SMALL_CONFIG)
    state.status = GameStatus.PLAYING
    return state


@pytest.fixture
def default_state():
    state = GameState()
    state.status = GameStatus.PLAYING
    return state
