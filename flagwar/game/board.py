"""Board geometry for flagwar: territories, no-guard zones, flags, keys, spawns."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from flagwar.game.state import GameState, Side


class ConfigError(ValueError):
    """Raised when a board configuration describes impossible geometry."""


@dataclass(frozen=True)
class Rect:
    """Inclusive rectangle of cells."""
    min_x: int
    max_x: int
    min_y: int
    max_y: int

    def contains(self, x: int, y: int) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    def to_dict(self) -> dict:
        return {"min_x": self.min_x, "max_x": self.max_x,
                "min_y": self.min_y, "max_y": self.max_y}


@dataclass(frozen=True)
class BoardConfig:
    """Static geometry of a match. Keys of every mapping are side values ("A"/"B")."""
    width: int
    height: int
    territories: dict            # side -> (min_y, max_y)
    no_guard_zones: dict         # side -> Rect
    flag_positions: dict         # side -> (x, y)
    key_positions: dict          # side -> (x, y), inside the opposing territory
    starting_positions: dict     # side -> ((piece_id, x, y), ...)

    # ------------------------------------------------------------------
    # Geometry helpers
    # ------------------------------------------------------------------

    @property
    def max_dimension(self) -> int:
        return max(self.width, self.height)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def territory_at(self, y: int) -> Optional[Side]:
        """Side whose home band contains row y, or None for the neutral band."""
        from flagwar.game.state import Side

        for side in Side:
            lo, hi = self.territories[side.value]
            if lo <= y <= hi:
                return side
        return None

    def in_territory(self, side: Side, y: int) -> bool:
        lo, hi = self.territories[_key(side)]
        return lo <= y <= hi

    def in_no_guard_zone(self, side: Side, x: int, y: int) -> bool:
        return self.no_guard_zones[_key(side)].contains(x, y)

    def back_rank(self, side: Side) -> int:
        """Row of the side's home band that touches the board edge."""
        lo, hi = self.territories[_key(side)]
        if hi == self.height - 1:
            return hi
        if lo == 0:
            return lo
        # A band floating in the middle has no edge; use the row farthest from center.
        return hi if hi - (self.height - 1) / 2 > (self.height - 1) / 2 - lo else lo

    def flag_home(self, side: Side) -> tuple[int, int]:
        return tuple(self.flag_positions[_key(side)])

    def key_position(self, side: Side) -> tuple[int, int]:
        return tuple(self.key_positions[_key(side)])

    def spawn_of(self, side: Side, piece_id: int) -> Optional[tuple[int, int]]:
        for pid, x, y in self.starting_positions[_key(side)]:
            if pid == piece_id:
                return (x, y)
        return None

    # ------------------------------------------------------------------
    # Validation and (de)serialization
    # ------------------------------------------------------------------

    def validate(self) -> "BoardConfig":
        """Check the geometry is playable. Raises ConfigError otherwise."""
        if self.width <= 0 or self.height <= 0:
            raise ConfigError(f"Board dimensions must be positive, got {self.width}x{self.height}")

        sides = ("A", "B")
        for name, mapping in (
            ("territories", self.territories),
            ("no_guard_zones", self.no_guard_zones),
            ("flag_positions", self.flag_positions),
            ("key_positions", self.key_positions),
            ("starting_positions", self.starting_positions),
        ):
            missing = [s for s in sides if s not in mapping]
            if missing:
                raise ConfigError(f"{name} missing entries for sides {missing}")

        for side in sides:
            lo, hi = self.territories[side]
            if not (0 <= lo <= hi < self.height):
                raise ConfigError(f"Territory of {side} ({lo}..{hi}) is outside the board")
        (a_lo, a_hi), (b_lo, b_hi) = self.territories["A"], self.territories["B"]
        if a_lo <= b_hi and b_lo <= a_hi:
            raise ConfigError("Territories of A and B overlap")

        for side in sides:
            other = "B" if side == "A" else "A"
            lo, hi = self.territories[side]
            zone = self.no_guard_zones[side]
            if zone.min_x > zone.max_x or zone.min_y > zone.max_y:
                raise ConfigError(f"No-guard zone of {side} is empty")
            if not (0 <= zone.min_x and zone.max_x < self.width and lo <= zone.min_y and zone.max_y <= hi):
                raise ConfigError(f"No-guard zone of {side} must lie inside its own territory")

            fx, fy = self.flag_positions[side]
            if not self.in_bounds(fx, fy) or not lo <= fy <= hi:
                raise ConfigError(f"Flag of {side} at ({fx}, {fy}) must lie inside its own territory")

            kx, ky = self.key_positions[side]
            o_lo, o_hi = self.territories[other]
            if not self.in_bounds(kx, ky) or not o_lo <= ky <= o_hi:
                raise ConfigError(f"Rescue key of {side} at ({kx}, {ky}) must lie inside territory of {other}")

            spawns = self.starting_positions[side]
            if not spawns:
                raise ConfigError(f"Side {side} has no pieces")
            ids = [pid for pid, _, _ in spawns]
            if len(set(ids)) != len(ids):
                raise ConfigError(f"Duplicate piece ids for side {side}: {ids}")
            cells = [(x, y) for _, x, y in spawns]
            if len(set(cells)) != len(cells):
                raise ConfigError(f"Duplicate spawn cells for side {side}")
            for pid, x, y in spawns:
                if not self.in_bounds(x, y) or not lo <= y <= hi:
                    raise ConfigError(f"Spawn of {side}{pid} at ({x}, {y}) must lie inside its own territory")
                if zone.contains(x, y):
                    raise ConfigError(f"Spawn of {side}{pid} at ({x}, {y}) is inside its own no-guard zone")
        return self

    def to_dict(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "territories": {s: list(v) for s, v in self.territories.items()},
            "no_guard_zones": {s: z.to_dict() for s, z in self.no_guard_zones.items()},
            "flag_positions": {s: list(v) for s, v in self.flag_positions.items()},
            "key_positions": {s: list(v) for s, v in self.key_positions.items()},
            "starting_positions": {
                s: [{"id": pid, "x": x, "y": y} for pid, x, y in v]
                for s, v in self.starting_positions.items()
            },
        }

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> "BoardConfig":
        """Build a validated config. Missing sections fall back to the default board."""
        if not d:
            return DEFAULT_CONFIG
        base = DEFAULT_CONFIG.to_dict()
        base.update(d)
        try:
            config = cls(
                width=int(base["width"]),
                height=int(base["height"]),
                territories={s: tuple(v) for s, v in base["territories"].items()},
                no_guard_zones={s: Rect(**z) for s, z in base["no_guard_zones"].items()},
                flag_positions={s: tuple(v) for s, v in base["flag_positions"].items()},
                key_positions={s: tuple(v) for s, v in base["key_positions"].items()},
                starting_positions={
                    s: tuple(_spawn_entry(e) for e in v)
                    for s, v in base["starting_positions"].items()
                },
            )
        except ConfigError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Malformed board config: {e}") from e
        return config.validate()


def _key(side) -> str:
    return getattr(side, "value", side)


def _spawn_entry(entry) -> tuple[int, int, int]:
    if isinstance(entry, dict):
        return (int(entry["id"]), int(entry["x"]), int(entry["y"]))
    pid, x, y = entry
    return (int(pid), int(x), int(y))


BOARD_WIDTH = 19
BOARD_HEIGHT = 13
PIECES_PER_SIDE = 7

DEFAULT_CONFIG = BoardConfig(
    width=BOARD_WIDTH,
    height=BOARD_HEIGHT,
    territories={"A": (8, 12), "B": (0, 4)},
    no_guard_zones={"A": Rect(6, 12, 11, 12), "B": Rect(6, 12, 0, 1)},
    flag_positions={"A": (9, 12), "B": (9, 0)},
    key_positions={"A": (17, 1), "B": (1, 11)},
    starting_positions={
        "A": tuple((i + 1, 6 + i, 10) for i in range(PIECES_PER_SIDE)),
        "B": tuple((i + 1, 6 + i, 2) for i in range(PIECES_PER_SIDE)),
    },
).validate()


def render_board(state: GameState) -> str:
    """Render the board as text, top row (highest y) first.

    A/B = living pieces, F/f = flags of A/B, K/k = rescue keys of A/B,
    ':' = active no-guard zone cell, '-' = territory row, '.' = neutral row.
    """
    config = state.config
    grid = []
    for y in range(config.height):
        owner = config.territory_at(y)
        row = []
        for x in range(config.width):
            ch = "." if owner is None else "-"
            for side in state.rosters:
                if state.no_guard_zone_active[side] and config.in_no_guard_zone(side, x, y):
                    ch = ":"
            row.append(ch)
        grid.append(row)

    for side, key in state.rescue_keys.items():
        if key is not None:
            grid[key[1]][key[0]] = "K" if side.value == "A" else "k"
    for side, flag in state.flags.items():
        grid[flag.y][flag.x] = "F" if side.value == "A" else "f"
    for side, roster in state.rosters.items():
        for piece in roster.pieces:
            if piece.alive:
                grid[piece.y][piece.x] = side.value

    lines = [f"Round {state.round}  status={state.status.value}"]
    header = "    " + "".join(str(x % 10) for x in range(config.width))
    lines.append(header)
    for y in reversed(range(config.height)):
        owner = config.territory_at(y)
        tag = owner.value if owner is not None else " "
        lines.append(f"{y:2d}{tag} " + "".join(grid[y]))
    lines.append(header)
    for side, roster in state.rosters.items():
        jailed = ",".join(str(pid) for pid in roster.jailed_piece_ids) or "-"
        lines.append(f"{side.value}: alive={roster.alive_count()} jailed=[{jailed}]")
    return "\n".join(lines)
