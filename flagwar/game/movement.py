"""Movement path resolution: one command per piece -> per-step path."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, NamedTuple, Optional

from flagwar.game.state import (
    DIRECTION_DELTAS, Direction, GameState, Movement, Piece, Side,
)

logger = logging.getLogger("flagwar.game")


class Step(NamedTuple):
    x: int
    y: int
    step: int

    @property
    def cell(self) -> tuple[int, int]:
        return (self.x, self.y)


@dataclass
class PiecePath:
    side: Side
    piece_id: int
    path: list[Step]
    final_position: tuple[int, int]

    def halt_at(self, step: int) -> None:
        """Freeze the piece on the cell it occupies at ``step`` for the rest of the round."""
        x, y = self.path[step].x, self.path[step].y
        for i in range(step + 1, len(self.path)):
            self.path[i] = Step(x, y, i)
        self.final_position = (x, y)

    def to_dict(self) -> dict:
        return {
            "side": self.side.value,
            "piece_id": self.piece_id,
            "path": [{"x": s.x, "y": s.y, "step": s.step} for s in self.path],
            "final_position": list(self.final_position),
        }


def coerce_movement(command) -> Optional[Movement]:
    """Turn an untrusted command into a Movement, or None if malformed."""
    if isinstance(command, Movement):
        piece_id, direction, distance = command.piece_id, command.direction, command.distance
    elif isinstance(command, Mapping):
        piece_id = command.get("piece_id", command.get("pieceId"))
        direction = command.get("direction")
        distance = command.get("distance")
    else:
        return None

    if isinstance(piece_id, bool) or not isinstance(piece_id, int):
        return None
    if isinstance(distance, bool) or not isinstance(distance, int) or distance < 0:
        return None
    try:
        direction = Direction(direction)
    except ValueError:
        return None
    return Movement(piece_id, direction, distance)


def sanitize_commands(state: GameState, side: Side, commands: Optional[Iterable]) -> dict[int, Movement]:
    """Validate one side's commands against the current state.

    Unknown/dead pieces and malformed entries are dropped; the last entry
    for a piece wins; distance is capped at the largest board dimension.
    """
    roster = state.rosters[side]
    cap = state.config.max_dimension
    accepted: dict[int, Movement] = {}
    for command in commands or ():
        movement = coerce_movement(command)
        if movement is None:
            logger.debug(f"Dropped malformed command for side {side.value}: {command!r}")
            continue
        piece = roster.get_piece(movement.piece_id)
        if piece is None or not piece.alive:
            logger.debug(f"Dropped command for unavailable piece {side.value}{movement.piece_id}")
            continue
        if movement.distance > cap:
            movement = Movement(movement.piece_id, movement.direction, cap)
        accepted[piece.id] = movement
    return accepted


def trace_path(state: GameState, side: Side, piece: Piece, movement: Optional[Movement]) -> list[tuple[int, int]]:
    """Cells a piece visits on its own, starting with its current cell.

    Stops before leaving the board, and before entering the mover's own
    active no-guard zone unless it carries the opposing flag.
    """
    cells = [(piece.x, piece.y)]
    if movement is None or movement.distance <= 0:
        return cells

    config = state.config
    dx, dy = DIRECTION_DELTAS[movement.direction]
    carrier = state.flags[side.opponent].carried_by
    carrying = carrier is not None and carrier.side == side and carrier.piece_id == piece.id
    zone_blocks = state.no_guard_zone_active[side] and not carrying

    x, y = piece.x, piece.y
    for _ in range(movement.distance):
        nx, ny = x + dx, y + dy
        if not config.in_bounds(nx, ny):
            break
        if zone_blocks and config.in_no_guard_zone(side, nx, ny):
            break
        x, y = nx, ny
        cells.append((x, y))
    return cells


def resolve_paths(state: GameState, commands: Optional[Mapping] = None) -> list[PiecePath]:
    """Build padded paths for every living piece of both sides.

    Args:
        state: Current game state (not modified).
        commands: Mapping of side -> iterable of commands. Missing sides or
            pieces stay put.

    Returns:
        One PiecePath per living piece, side A first, in roster order. All
        paths share the same length: max requested distance + 1, at least 2.
    """
    commands = commands or {}
    accepted = {side: sanitize_commands(state, side, commands.get(side, commands.get(side.value)))
                for side in Side}

    round_length = max(
        (m.distance for moves in accepted.values() for m in moves.values()), default=0
    )
    steps = max(round_length, 1) + 1

    paths = []
    for side in (Side.A, Side.B):
        for piece in state.rosters[side].pieces:
            if not piece.alive:
                continue
            cells = trace_path(state, side, piece, accepted[side].get(piece.id))
            cells += [cells[-1]] * (steps - len(cells))
            paths.append(PiecePath(
                side=side,
                piece_id=piece.id,
                path=[Step(x, y, i) for i, (x, y) in enumerate(cells)],
                final_position=cells[-1],
            ))
    return paths


def apply_final_positions(state: GameState, paths: Iterable[PiecePath]) -> None:
    """Move living pieces onto their settled cells."""
    for path in paths:
        piece = state.get_piece(path.side, path.piece_id)
        if piece is not None and piece.alive:
            piece.x, piece.y = path.final_position
