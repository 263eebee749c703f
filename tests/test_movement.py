"""Tests for command sanitization and path resolution."""

from flagwar.game.movement import (
    apply_final_positions, coerce_movement, resolve_paths, sanitize_commands, trace_path,
)
from flagwar.game.state import Direction, Movement, Side

from conftest import give_flag, mv, place


def _path_of(paths, side, piece_id):
    for p in paths:
        if p.side == side and p.piece_id == piece_id:
            return p
    raise AssertionError(f"no path for {side}{piece_id}")


class TestSanitize:
    def test_valid_commands_kept(self, small_state):
        accepted = sanitize_commands(small_state, Side.A, [mv(1, "up", 2), mv(2, "left", 1)])
        assert accepted == {1: mv(1, "up", 2), 2: mv(2, "left", 1)}

    def test_dict_commands(self, small_state):
        accepted = sanitize_commands(small_state, Side.A, [
            {"pieceId": 1, "direction": "down", "distance": 3},
            {"piece_id": 2, "direction": "right", "distance": 0},
        ])
        assert accepted[1] == mv(1, "down", 3)
        assert accepted[2].is_stay

    def test_malformed_entries_dropped(self, small_state):
        accepted = sanitize_commands(small_state, Side.A, [
            {"piece_id": 1, "direction": "sideways", "distance": 2},
            {"piece_id": 1, "direction": "up", "distance": -1},
            {"piece_id": 1, "direction": "up", "distance": 1.5},
            {"piece_id": 1, "direction": "up", "distance": True},
            {"piece_id": "1", "direction": "up", "distance": 1},
            "up 3",
            None,
        ])
        assert accepted == {}

    def test_unknown_and_dead_pieces_dropped(self, small_state):
        small_state.get_piece(Side.A, 2).alive = False
        accepted = sanitize_commands(small_state, Side.A, [mv(2, "up", 1), mv(9, "up", 1)])
        assert accepted == {}

    def test_last_command_wins(self, small_state):
        accepted = sanitize_commands(small_state, Side.A, [mv(1, "up", 2), mv(1, "down", 1)])
        assert accepted == {1: mv(1, "down", 1)}

    def test_distance_capped(self, small_state):
        accepted = sanitize_commands(small_state, Side.A, [mv(1, "right", 500)])
        assert accepted[1].distance == 19

    def test_none_commands(self, small_state):
        assert sanitize_commands(small_state, Side.B, None) == {}

    def test_coerce_rejects_non_commands(self):
        assert coerce_movement(42) is None
        assert coerce_movement(Movement(1, Direction.UP, 2)) == Movement(1, Direction.UP, 2)


class TestTracePath:
    def test_straight_line(self, small_state):
        place(small_state, Side.A, 1, 4, 6)
        cells = trace_path(small_state, Side.A, small_state.get_piece(Side.A, 1), mv(1, "up", 3))
        assert cells == [(4, 6), (4, 7), (4, 8), (4, 9)]

    def test_down_decreases_y(self, small_state):
        place(small_state, Side.A, 1, 4, 6)
        cells = trace_path(small_state, Side.A, small_state.get_piece(Side.A, 1), mv(1, "down", 2))
        assert cells[-1] == (4, 4)

    def test_stops_at_board_edge(self, small_state):
        place(small_state, Side.A, 1, 0, 6)
        cells = trace_path(small_state, Side.A, small_state.get_piece(Side.A, 1), mv(1, "left", 5))
        assert cells == [(0, 6)]
        place(small_state, Side.A, 1, 16, 6)
        cells = trace_path(small_state, Side.A, small_state.get_piece(Side.A, 1), mv(1, "right", 10))
        assert cells[-1] == (18, 6)

    def test_own_zone_blocks_entry(self, small_state):
        place(small_state, Side.A, 1, 9, 8)
        cells = trace_path(small_state, Side.A, small_state.get_piece(Side.A, 1), mv(1, "up", 4))
        assert cells == [(9, 8), (9, 9), (9, 10)]

    def test_inactive_zone_does_not_block(self, small_state):
        place(small_state, Side.A, 1, 9, 8)
        small_state.no_guard_zone_active[Side.A] = False
        cells = trace_path(small_state, Side.A, small_state.get_piece(Side.A, 1), mv(1, "up", 4))
        assert cells[-1] == (9, 12)

    def test_carrier_may_enter_own_zone(self, small_state):
        place(small_state, Side.A, 1, 9, 8)
        give_flag(small_state, Side.A, 1)
        # A's own zone is still active: only B's flag is out.
        assert small_state.no_guard_zone_active[Side.A]
        cells = trace_path(small_state, Side.A, small_state.get_piece(Side.A, 1), mv(1, "up", 4))
        assert cells[-1] == (9, 12)

    def test_enemy_zone_does_not_block(self, small_state):
        place(small_state, Side.B, 1, 9, 8)
        cells = trace_path(small_state, Side.B, small_state.get_piece(Side.B, 1), mv(1, "up", 4))
        assert cells[-1] == (9, 12)


class TestResolvePaths:
    def test_all_living_pieces_get_paths(self, small_state):
        paths = resolve_paths(small_state, {})
        assert [(p.side, p.piece_id) for p in paths] == [
            (Side.A, 1), (Side.A, 2), (Side.B, 1), (Side.B, 2),
        ]

    def test_stay_round_has_two_entries(self, small_state):
        paths = resolve_paths(small_state, {})
        for p in paths:
            assert len(p.path) == 2
            assert p.path[0].cell == p.path[1].cell

    def test_paths_padded_to_longest(self, small_state):
        place(small_state, Side.A, 1, 4, 6)
        paths = resolve_paths(small_state, {Side.A: [mv(1, "up", 3)], Side.B: [mv(1, "right", 1)]})
        assert all(len(p.path) == 4 for p in paths)
        b1 = _path_of(paths, Side.B, 1)
        assert [s.cell for s in b1.path] == [(1, 2), (2, 2), (2, 2), (2, 2)]
        assert [s.step for s in b1.path] == [0, 1, 2, 3]

    def test_truncated_path_padded(self, small_state):
        place(small_state, Side.A, 1, 0, 6)
        paths = resolve_paths(small_state, {Side.A: [mv(1, "left", 5)]})
        a1 = _path_of(paths, Side.A, 1)
        assert len(a1.path) == 6
        assert a1.final_position == (0, 6)

    def test_dead_pieces_have_no_path(self, small_state):
        small_state.get_piece(Side.B, 2).alive = False
        paths = resolve_paths(small_state, {})
        assert (Side.B, 2) not in [(p.side, p.piece_id) for p in paths]

    def test_string_side_keys(self, small_state):
        paths = resolve_paths(small_state, {"A": [{"piece_id": 1, "direction": "down", "distance": 1}]})
        assert _path_of(paths, Side.A, 1).final_position == (1, 9)

    def test_apply_final_positions(self, small_state):
        paths = resolve_paths(small_state, {Side.A: [mv(2, "down", 3)]})
        apply_final_positions(small_state, paths)
        assert small_state.get_piece(Side.A, 2).position == (2, 7)

    def test_state_not_modified(self, small_state):
        before = small_state.to_dict()
        resolve_paths(small_state, {Side.A: [mv(1, "down", 3)]})
        assert small_state.to_dict() == before
