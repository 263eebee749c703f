"""Game state representation for flagwar."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from flagwar.game.board import DEFAULT_CONFIG, BoardConfig


class Side(str, Enum):
    A = "A"
    B = "B"

    @property
    def opponent(self) -> "Side":
        return Side.B if self is Side.A else Side.A


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


# Search and tie-break order.
DIRECTIONS = (Direction.UP, Direction.DOWN, Direction.LEFT, Direction.RIGHT)

DIRECTION_DELTAS = {
    Direction.UP: (0, 1),
    Direction.DOWN: (0, -1),
    Direction.LEFT: (-1, 0),
    Direction.RIGHT: (1, 0),
}


class GameStatus(str, Enum):
    WAITING = "waiting"
    PAUSED = "paused"
    PLAYING = "playing"
    FINISHED = "finished"


@dataclass
class Piece:
    id: int
    x: int
    y: int
    alive: bool = True

    @property
    def position(self) -> tuple[int, int]:
        return (self.x, self.y)


@dataclass(frozen=True)
class Movement:
    """Intended move of one piece for one round. Distance 0 means stay."""
    piece_id: int
    direction: Direction
    distance: int

    @classmethod
    def stay(cls, piece_id: int) -> "Movement":
        return cls(piece_id, Direction.UP, 0)

    @property
    def is_stay(self) -> bool:
        return self.distance == 0

    def to_dict(self) -> dict:
        return {"piece_id": self.piece_id, "direction": self.direction.value,
                "distance": self.distance}


@dataclass(frozen=True)
class Carrier:
    side: Side
    piece_id: int


@dataclass
class Flag:
    x: int
    y: int
    carried_by: Optional[Carrier] = None

    @property
    def is_carried(self) -> bool:
        return self.carried_by is not None


@dataclass
class Roster:
    """One side's pieces plus the ids currently in jail."""
    pieces: list[Piece] = field(default_factory=list)
    jailed_piece_ids: list[int] = field(default_factory=list)

    def get_piece(self, piece_id: int) -> Optional[Piece]:
        for piece in self.pieces:
            if piece.id == piece_id:
                return piece
        return None

    def living(self) -> list[Piece]:
        return [p for p in self.pieces if p.alive]

    def alive_count(self) -> int:
        return sum(1 for p in self.pieces if p.alive)


class GameState:
    """Complete mutable state of one match.

    The board config is immutable and shared between clones.
    """

    def __init__(self, config: Optional[BoardConfig] = None):
        self.config = (config or DEFAULT_CONFIG).validate()
        self.round = 0
        self.status = GameStatus.WAITING
        self.winner: Optional[Side] = None

        self.rosters: dict[Side, Roster] = {}
        self.flags: dict[Side, Flag] = {}
        self.rescue_keys: dict[Side, Optional[tuple[int, int]]] = {}
        self.no_guard_zone_active: dict[Side, bool] = {}
        # Rescuers to relocate to spawn at the start of the next round.
        self.pending_resets: dict[Side, list[int]] = {}

        for side in Side:
            self.rosters[side] = Roster(pieces=[
                Piece(pid, x, y) for pid, x, y in self.config.starting_positions[side.value]
            ])
            fx, fy = self.config.flag_home(side)
            self.flags[side] = Flag(fx, fy)
            self.rescue_keys[side] = None
            self.no_guard_zone_active[side] = True
            self.pending_resets[side] = []

    @property
    def done(self) -> bool:
        return self.status == GameStatus.FINISHED

    def get_piece(self, side: Side, piece_id: int) -> Optional[Piece]:
        return self.rosters[side].get_piece(piece_id)

    def pieces_at(self, x: int, y: int, side: Optional[Side] = None) -> list[tuple[Side, Piece]]:
        """Living pieces on a cell, in roster order."""
        found = []
        for s in (Side.A, Side.B) if side is None else (side,):
            for piece in self.rosters[s].pieces:
                if piece.alive and piece.x == x and piece.y == y:
                    found.append((s, piece))
        return found

    def carrier_of(self, flag_side: Side) -> Optional[Piece]:
        carrier = self.flags[flag_side].carried_by
        if carrier is None:
            return None
        return self.get_piece(carrier.side, carrier.piece_id)

    def clone(self) -> GameState:
        """Copy for search simulations. Shares the board config."""
        new = GameState.__new__(GameState)
        new.config = self.config
        new.round = self.round
        new.status = self.status
        new.winner = self.winner
        new.rosters = {
            side: Roster(
                pieces=[Piece(p.id, p.x, p.y, p.alive) for p in roster.pieces],
                jailed_piece_ids=list(roster.jailed_piece_ids),
            )
            for side, roster in self.rosters.items()
        }
        new.flags = {side: Flag(f.x, f.y, f.carried_by) for side, f in self.flags.items()}
        new.rescue_keys = dict(self.rescue_keys)
        new.no_guard_zone_active = dict(self.no_guard_zone_active)
        new.pending_resets = {side: list(ids) for side, ids in self.pending_resets.items()}
        return new

    def to_dict(self) -> dict:
        """JSON-friendly export, including the board geometry."""
        return {
            "round": self.round,
            "status": self.status.value,
            "winner": self.winner.value if self.winner else None,
            "board": self.config.to_dict(),
            "sides": {
                side.value: {
                    "pieces": [
                        {"id": p.id, "x": p.x, "y": p.y, "alive": p.alive}
                        for p in roster.pieces
                    ],
                    "jailed_piece_ids": list(roster.jailed_piece_ids),
                }
                for side, roster in self.rosters.items()
            },
            "flags": {
                side.value: {
                    "x": f.x,
                    "y": f.y,
                    "carried_by": (
                        {"side": f.carried_by.side.value, "piece_id": f.carried_by.piece_id}
                        if f.carried_by else None
                    ),
                }
                for side, f in self.flags.items()
            },
            "rescue_keys": {
                side.value: ({"x": k[0], "y": k[1]} if k else None)
                for side, k in self.rescue_keys.items()
            },
            "no_guard_zone_active": {
                side.value: active for side, active in self.no_guard_zone_active.items()
            },
            "pending_resets": {
                side.value: list(ids) for side, ids in self.pending_resets.items()
            },
        }

    @classmethod
    def from_dict(cls, d: dict) -> GameState:
        config = BoardConfig.from_dict(d["board"]) if d.get("board") else None
        state = cls(config)
        state.round = d["round"]
        state.status = GameStatus(d["status"])
        state.winner = Side(d["winner"]) if d.get("winner") else None
        for side in Side:
            sd = d["sides"][side.value]
            state.rosters[side] = Roster(
                pieces=[Piece(p["id"], p["x"], p["y"], p["alive"]) for p in sd["pieces"]],
                jailed_piece_ids=list(sd["jailed_piece_ids"]),
            )
            fd = d["flags"][side.value]
            carrier = fd.get("carried_by")
            state.flags[side] = Flag(
                fd["x"], fd["y"],
                Carrier(Side(carrier["side"]), carrier["piece_id"]) if carrier else None,
            )
            key = d.get("rescue_keys", {}).get(side.value)
            state.rescue_keys[side] = (key["x"], key["y"]) if key else None
            state.no_guard_zone_active[side] = d.get("no_guard_zone_active", {}).get(side.value, True)
            state.pending_resets[side] = list(d.get("pending_resets", {}).get(side.value, []))
        return state

    def serialize(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def deserialize(cls, s: str) -> GameState:
        return cls.from_dict(json.loads(s))

    def __eq__(self, other) -> bool:
        if not isinstance(other, GameState):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return (f"GameState(round={self.round}, status={self.status.value}, "
                f"A={self.rosters[Side.A].alive_count()}, B={self.rosters[Side.B].alive_count()})")
