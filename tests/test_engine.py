import logging

import numpy as np
import pytest

from conftest import set_active
from tetris_engine.game import (
    Action,
    EngineStatus,
    GameConfig,
    ManualScheduler,
    Piece,
    TetrisEngine,
    TetrominoType,
)


def test_start_spawns_two_pieces_and_one_tick(engine, scheduler):
    assert engine.status is EngineStatus.RUNNING
    assert engine.current_piece is not None
    assert engine.next_piece is not None
    assert engine.current_y == 0
    assert engine.current_x == 5 - engine.current_piece.width // 2
    assert scheduler.active_count == 1


def test_start_while_running_is_ignored(engine, caplog):
    piece, nxt = engine.current_piece, engine.next_piece
    with caplog.at_level(logging.WARNING):
        engine.start()
    assert engine.current_piece is piece
    assert engine.next_piece is nxt
    assert "already running" in caplog.text


def test_same_seed_same_pieces():
    a = TetrisEngine(GameConfig(random_seed=42))
    b = TetrisEngine(GameConfig(random_seed=42))
    a.start()
    b.start()
    assert (a.current_piece.kind, a.next_piece.kind) == (b.current_piece.kind, b.next_piece.kind)
    a.restart(seed=5)
    b.restart(seed=5)
    assert (a.current_piece.kind, a.next_piece.kind) == (b.current_piece.kind, b.next_piece.kind)


def test_gravity_tick_follows_drop_interval(engine, scheduler):
    set_active(engine, "O")
    scheduler.advance(999)
    assert engine.current_y == 0
    scheduler.advance(1)
    assert engine.current_y == 1
    scheduler.advance(3000)
    assert engine.current_y == 4


def test_commands_are_noops_before_start():
    eng = TetrisEngine()
    assert eng.status is EngineStatus.IDLE
    assert not eng.move_left()
    assert not eng.move_right()
    assert not eng.rotate()
    assert not eng.soft_drop()
    assert not eng.hard_drop()
    assert not eng.advance_gravity()
    assert not eng.pause()
    assert not eng.resume()


def test_move_stops_at_walls(engine):
    set_active(engine, "O")
    moves = 0
    while engine.move_left():
        moves += 1
    assert moves == 4
    assert engine.current_x == 0
    while engine.move_right():
        pass
    assert engine.current_x == 8


def test_soft_drop_awards_a_point(engine):
    set_active(engine, "O")
    assert engine.soft_drop()
    assert engine.current_y == 1
    assert engine.state.score == 1


def test_soft_drop_on_resting_piece_locks_it(engine):
    set_active(engine, "O", y=18)
    assert engine.soft_drop()
    assert engine.pieces_locked == 1
    assert engine.state.score == 0
    assert engine.grid.get_cell(19, 4) == int(TetrominoType.O)


def test_hard_drop_scores_two_per_cell_and_locks(engine):
    set_active(engine, "O")
    upcoming = engine.next_piece
    assert engine.hard_drop()
    assert engine.state.score == 36
    assert np.all(engine.grid.grid[18:20, 4:6] == int(TetrominoType.O))
    assert engine.pieces_locked == 1
    assert engine.current_piece is upcoming
    assert engine.current_y == 0


def test_rotate_without_obstruction(engine):
    set_active(engine, "T", x=4, y=5)
    assert engine.rotate()
    assert engine.current_piece.rotation == 1
    assert engine.rotate(clockwise=False)
    assert engine.current_piece.rotation == 0
    assert engine.current_x == 4


def test_rotate_uses_wall_kick_near_right_wall(engine):
    set_active(engine, "I", x=8, y=5, rotation=1)
    assert engine.rotate()
    assert engine.current_piece.rotation == 2
    assert engine.current_x == 6


def test_blocked_rotation_reverts(engine):
    engine.grid.grid[5:9, :] = 1
    engine.grid.grid[5:9, 4] = 0
    set_active(engine, "I", x=4, y=5, rotation=1)
    assert not engine.rotate()
    assert engine.current_piece.rotation == 1
    assert engine.current_x == 4


def test_pause_releases_tick_and_blocks_commands(engine, scheduler):
    set_active(engine, "O")
    assert engine.pause()
    assert engine.status is EngineStatus.PAUSED
    assert scheduler.active_count == 0
    assert not engine.pause()
    assert not engine.move_left()
    scheduler.advance(5000)
    assert engine.current_y == 0

    assert engine.resume()
    assert engine.status is EngineStatus.RUNNING
    assert scheduler.active_count == 1
    assert not engine.resume()
    scheduler.advance(1000)
    assert engine.current_y == 1


def test_toggle_pause(engine):
    assert engine.toggle_pause()
    assert engine.status is EngineStatus.PAUSED
    assert engine.toggle_pause()
    assert engine.status is EngineStatus.RUNNING


def test_line_clear_through_lock_sequence(engine):
    events = []
    engine.add_listener(lambda name, payload: events.append((name, payload)))
    engine.grid.grid[19, :] = 1
    engine.grid.grid[19, 4:6] = 0
    set_active(engine, "O")
    engine.hard_drop()

    assert engine.state.lines == 1
    assert engine.state.score == 36 + 100
    assert list(engine.grid.grid[19]) == [0, 0, 0, 0, 2, 2, 0, 0, 0, 0]
    names = [name for name, _ in events]
    assert names == ["piece_locked", "lines_cleared"]
    assert events[1][1]["rows"] == [19]
    assert events[1][1]["result"].label == "Single"


def test_level_up_reschedules_faster_tick(engine, scheduler):
    events = []
    engine.add_listener(lambda name, payload: events.append(name))
    engine.state.lines = 9
    engine.grid.grid[19, :] = 1
    engine.grid.grid[19, 4:6] = 0
    set_active(engine, "O")
    engine.hard_drop()

    assert engine.state.level == 2
    assert "level_up" in events
    assert scheduler.active_count == 1
    assert engine.snapshot().state.drop_interval_ms == pytest.approx(900.0)
    set_active(engine, "O")
    scheduler.advance(899)
    assert engine.current_y == 0
    scheduler.advance(1)
    assert engine.current_y == 1


def test_blocked_spawn_ends_game_and_freezes_board(engine, scheduler):
    events = []
    engine.add_listener(lambda name, payload: events.append(name))
    engine.grid.grid[2:, 1:] = 1  # column 0 stays open so nothing clears
    set_active(engine, "O")
    engine.next_piece = Piece.create("O")

    engine.hard_drop()

    assert engine.status is EngineStatus.GAME_OVER
    assert engine.state.game_over and not engine.state.running and not engine.state.paused
    assert events[-1] == "game_over"
    assert scheduler.active_count == 0
    frozen = engine.grid.clone_state()
    scheduler.advance(60_000)
    assert not engine.advance_gravity()
    assert not engine.hard_drop()
    assert not engine.move_left()
    assert not engine.pause()
    assert np.array_equal(engine.grid.grid, frozen)


def test_block_out_at_start():
    scheduler = ManualScheduler()
    eng = TetrisEngine(GameConfig(height=1), scheduler=scheduler)
    eng._random_piece = lambda: Piece.create("O")
    eng.start()
    assert eng.status is EngineStatus.GAME_OVER
    assert scheduler.active_count == 0


def test_topout_rows_only_warn(engine, caplog):
    engine.grid.grid[3, 0] = 1
    set_active(engine, "O")
    with caplog.at_level(logging.WARNING):
        engine.hard_drop()
    assert engine.status is EngineStatus.RUNNING
    assert "reached the top" in caplog.text
    assert engine.snapshot().in_danger


def test_restart_after_game_over(engine, scheduler):
    engine.grid.grid[2:, 1:] = 1
    set_active(engine, "O")
    engine.next_piece = Piece.create("O")
    engine.hard_drop()
    assert engine.status is EngineStatus.GAME_OVER

    engine.restart()
    assert engine.status is EngineStatus.RUNNING
    assert engine.grid.filled_count() == 0
    assert engine.state.score == 0
    assert scheduler.active_count == 1


def test_reset_returns_to_idle(engine, scheduler):
    engine.reset()
    assert engine.status is EngineStatus.IDLE
    assert engine.current_piece is None
    assert scheduler.active_count == 0


def test_close_releases_tick(engine, scheduler):
    engine.close()
    assert scheduler.active_count == 0


def test_snapshot_is_a_copy(engine):
    set_active(engine, "T", x=3, y=2)
    snap = engine.snapshot()
    assert snap.status is EngineStatus.RUNNING
    assert snap.piece.kind is TetrominoType.T
    assert (snap.piece.x, snap.piece.y, snap.piece.rotation) == (3, 2, 0)
    assert snap.next_kind is engine.next_piece.kind
    assert snap.ghost_y == 18
    assert not snap.in_danger
    snap.board[:] = 7
    assert engine.grid.filled_count() == 0


def test_get_state_overlays_falling_piece(engine):
    set_active(engine, "O")
    board = engine.get_state()
    assert board[0, 4] == -int(TetrominoType.O)
    assert engine.grid.grid[0, 4] == 0


def test_step_reports_score_delta(engine):
    set_active(engine, "O")
    obs, reward, done, info = engine.step(Action.HARD_DROP)
    assert reward == 36
    assert not done
    assert info["score"] == 36
    assert obs.shape == (20, 10)
    _, reward, _, _ = engine.step(Action.NONE)
    assert reward == 0


def test_remove_listener(engine):
    events = []
    listener = lambda name, payload: events.append(name)  # noqa: E731
    engine.add_listener(listener)
    engine.remove_listener(listener)
    engine.hard_drop()
    assert events == []


def test_validate_and_fix_repairs_grid_and_counters(engine):
    engine.grid.grid[19, 0] = 50
    engine.state.score = -1
    assert engine.validate_and_fix()
    assert engine.grid.get_cell(19, 0) == 7
    assert engine.state.score == 0


def test_gravity_tick_repairs_corrupted_counters(engine, scheduler, caplog):
    engine.state.score = -40
    engine.state.lines = 12.0
    engine.grid.grid[19, 9] = 99
    with caplog.at_level(logging.WARNING):
        scheduler.advance(1000)
    assert engine.state.score == 0
    assert engine.state.lines == 12 and type(engine.state.lines) is int
    assert engine.grid.get_cell(19, 9) == 7
    assert engine.current_y == 1
    assert "Engine state repaired" in caplog.text
