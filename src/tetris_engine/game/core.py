from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from .grid import DEFAULT_TOPOUT_ROWS, GameGrid
from .pieces import Piece, TetrominoType
from .rules import ScoringRules
from .scheduler import Scheduler, TickHandle
from .state import GameState, LineClearResult, StateSnapshot


logger = logging.getLogger(__name__)

Listener = Callable[[str, Dict[str, Any]], None]


class Action(IntEnum):
    LEFT = 0
    RIGHT = 1
    ROTATE_CW = 2
    ROTATE_CCW = 3
    SOFT_DROP = 4
    HARD_DROP = 5
    NONE = 6


class EngineStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    GAME_OVER = "game_over"


@dataclass
class GameConfig:
    width: int = 10
    height: int = 20
    random_seed: Optional[int] = None
    spawn_y: int = 0
    topout_rows: int = DEFAULT_TOPOUT_ROWS
    wall_kicks: Tuple[int, ...] = (-1, 1, -2, 2)


@dataclass(frozen=True)
class ActivePiece:
    kind: TetrominoType
    rotation: int
    x: int
    y: int
    shape: np.ndarray


@dataclass(frozen=True)
class EngineSnapshot:
    """Everything a display needs, copied out of the engine."""

    board: np.ndarray
    piece: Optional[ActivePiece]
    next_kind: Optional[TetrominoType]
    ghost_y: Optional[int]
    state: StateSnapshot
    status: EngineStatus
    in_danger: bool


class TetrisEngine:
    """Owns one game session: the grid, the score state and the falling pieces.

    Gravity arrives either from the injected scheduler (one periodic tick held
    at a time, released on pause, game over and teardown) or from a caller
    invoking :meth:`advance_gravity` directly. Player commands are no-ops
    unless the engine is running.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        rules: Optional[ScoringRules] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self.config = config or GameConfig()
        self.rules = rules or ScoringRules()
        self.scheduler = scheduler
        self.rng = random.Random(self.config.random_seed)
        self.grid = GameGrid(self.config.width, self.config.height)
        self.state = GameState(self.rules)
        self.current_piece: Optional[Piece] = None
        self.next_piece: Optional[Piece] = None
        self.current_x = 0
        self.current_y = 0
        self.pieces_locked = 0
        self._tick: Optional[TickHandle] = None
        self._listeners: List[Listener] = []

    # ----- lifecycle -----
    @property
    def status(self) -> EngineStatus:
        if self.state.game_over:
            return EngineStatus.GAME_OVER
        if self.state.running:
            return EngineStatus.PAUSED if self.state.paused else EngineStatus.RUNNING
        return EngineStatus.IDLE

    def start(self, seed: Optional[int] = None) -> None:
        if self.state.running:
            logger.warning("start() ignored: game already running")
            return
        self.reset()
        if seed is not None:
            self.rng.seed(seed)
        self.current_piece = self._random_piece()
        self.next_piece = self._random_piece()
        self.current_x, self.current_y = self.spawn_position(self.current_piece)
        if not self.grid.is_valid_position(self.current_piece, self.current_x, self.current_y):
            logger.info("Spawn position blocked at start")
            self._game_over()
            return
        self.state.start()
        self._schedule_tick()
        logger.info("Game started (%dx%d)", self.grid.width, self.grid.height)

    def pause(self) -> bool:
        if self.status is not EngineStatus.RUNNING:
            return False
        self.state.set_paused(True)
        self._cancel_tick()
        logger.info("Game paused")
        return True

    def resume(self) -> bool:
        if self.status is not EngineStatus.PAUSED:
            return False
        self.state.set_paused(False)
        # Fresh interval so the piece does not drop the instant play resumes.
        self._schedule_tick()
        logger.info("Game resumed")
        return True

    def toggle_pause(self) -> bool:
        return self.pause() or self.resume()

    def reset(self) -> None:
        self._cancel_tick()
        self.grid.reset()
        self.state.reset()
        self.current_piece = None
        self.next_piece = None
        self.current_x = 0
        self.current_y = 0
        self.pieces_locked = 0
        logger.debug("Game reset")

    def restart(self, seed: Optional[int] = None) -> None:
        self.reset()
        self.start(seed)

    def close(self) -> None:
        self._cancel_tick()

    # ----- observers -----
    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: str, **payload: Any) -> None:
        for listener in list(self._listeners):
            listener(event, payload)

    # ----- tick handling -----
    def _schedule_tick(self) -> None:
        self._cancel_tick()
        if self.scheduler is None:
            return
        self._tick = self.scheduler.schedule(self.state.drop_interval_ms(), self.advance_gravity)

    def _cancel_tick(self) -> None:
        if self._tick is not None and self.scheduler is not None:
            self.scheduler.cancel(self._tick)
        self._tick = None

    # ----- pieces -----
    def _random_piece(self) -> Piece:
        return Piece.create(self.rng.choice(list(TetrominoType)))

    def spawn_position(self, piece: Piece) -> Tuple[int, int]:
        return self.grid.width // 2 - piece.width // 2, self.config.spawn_y

    def _spawn_next(self) -> None:
        assert self.next_piece is not None
        self.current_piece = self.next_piece
        self.next_piece = self._random_piece()
        self.current_x, self.current_y = self.spawn_position(self.current_piece)
        if not self.grid.is_valid_position(self.current_piece, self.current_x, self.current_y):
            logger.info("Cannot spawn %s: spawn position blocked", self.current_piece.kind.name)
            self._game_over()
            return
        logger.debug("Spawned %s at (%d, %d)", self.current_piece.kind.name, self.current_x, self.current_y)

    def _game_over(self) -> None:
        self.state.set_game_over()
        self._cancel_tick()
        logger.info("Game over: score=%d level=%d lines=%d", self.state.score, self.state.level, self.state.lines)
        self._emit("game_over", state=self.state.snapshot())

    def _lock_piece(self) -> Optional[LineClearResult]:
        assert self.current_piece is not None
        piece = self.current_piece
        if not self.grid.place(piece, self.current_x, self.current_y):
            logger.error("Failed to lock %s at (%d, %d)", piece.kind.name, self.current_x, self.current_y)
            self._game_over()
            return None
        self.pieces_locked += 1
        self._emit("piece_locked", kind=piece.kind, x=self.current_x, y=self.current_y)

        rows = self.grid.find_completed_lines()
        cleared = self.grid.clear_lines(rows)
        result = self.state.process_line_clear(cleared)
        if cleared:
            self._emit("lines_cleared", rows=rows, result=result)
        if result.level_increased:
            self._emit("level_up", level=result.level, drop_interval_ms=result.drop_interval_ms)
            self._schedule_tick()
        if self.grid.is_topout_state(self.config.topout_rows):
            logger.warning("Stack has reached the top %d rows", self.config.topout_rows)

        self._spawn_next()
        return result

    # ----- gravity and commands -----
    def _can_act(self) -> bool:
        return self.status is EngineStatus.RUNNING and self.current_piece is not None

    def _fits(self, piece: Piece, x: int, y: int) -> bool:
        return self.grid.is_valid_position(piece, x, y)

    def advance_gravity(self) -> bool:
        """One gravity tick. Returns True if the piece moved, False if it locked or nothing ran."""
        if not self._can_act():
            return False
        self.validate_and_fix()
        if not self._can_act():
            return False
        assert self.current_piece is not None
        if self._fits(self.current_piece, self.current_x, self.current_y + 1):
            self.current_y += 1
            return True
        self._lock_piece()
        return False

    def _move(self, dx: int) -> bool:
        if not self._can_act():
            return False
        assert self.current_piece is not None
        if self._fits(self.current_piece, self.current_x + dx, self.current_y):
            self.current_x += dx
            return True
        return False

    def move_left(self) -> bool:
        return self._move(-1)

    def move_right(self) -> bool:
        return self._move(1)

    def soft_drop(self) -> bool:
        """Move down one row for a point; lock the piece if it is already resting."""
        if not self._can_act():
            return False
        assert self.current_piece is not None
        if self._fits(self.current_piece, self.current_x, self.current_y + 1):
            self.current_y += 1
            self.state.award_soft_drop(1)
            return True
        self._lock_piece()
        return True

    def hard_drop(self) -> bool:
        if not self._can_act():
            return False
        assert self.current_piece is not None
        target = self.ghost_y()
        assert target is not None
        cells = target - self.current_y
        self.current_y = target
        self.state.award_hard_drop(cells)
        logger.debug("Hard drop: %d cells", cells)
        self._lock_piece()
        return True

    def rotate(self, clockwise: bool = True) -> bool:
        """Rotate the active piece, trying each wall kick offset before giving up."""
        if not self._can_act():
            return False
        assert self.current_piece is not None
        trial = self.current_piece.clone()
        if clockwise:
            trial.rotate_clockwise()
        else:
            trial.rotate_counter_clockwise()
        for dx in (0,) + tuple(self.config.wall_kicks):
            if self._fits(trial, self.current_x + dx, self.current_y):
                self.current_piece = trial
                self.current_x += dx
                if dx:
                    logger.debug("Rotated with wall kick %+d", dx)
                return True
        logger.debug("Rotation blocked")
        return False

    def step(self, action: Action) -> Tuple[np.ndarray, int, bool, dict]:
        """Apply one command. Returns (observation, score delta, game over, info)."""
        before = self.state.score
        if self._can_act():
            action = Action(int(action))
            if action == Action.LEFT:
                self.move_left()
            elif action == Action.RIGHT:
                self.move_right()
            elif action == Action.ROTATE_CW:
                self.rotate(True)
            elif action == Action.ROTATE_CCW:
                self.rotate(False)
            elif action == Action.SOFT_DROP:
                self.soft_drop()
            elif action == Action.HARD_DROP:
                self.hard_drop()
        info = {
            "score": self.state.score,
            "level": self.state.level,
            "lines": self.state.lines,
            "status": self.status.value,
        }
        return self.get_state(), self.state.score - before, self.state.game_over, info

    # ----- read side -----
    def ghost_y(self) -> Optional[int]:
        """Row the active piece would land on if dropped now."""
        if self.current_piece is None:
            return None
        y = self.current_y
        while self._fits(self.current_piece, self.current_x, y + 1):
            y += 1
        return y

    def get_state(self) -> np.ndarray:
        # Overlay current piece on a copy of the grid for observation
        state = self.grid.clone_state()
        if self.current_piece is not None and not self.state.game_over:
            for x, y in self.current_piece.cells_at(self.current_x, self.current_y):
                if self.grid.is_inside(x, y):
                    # Use negative to indicate falling piece overlay
                    state[y, x] = -self.current_piece.color_id
        return state

    def snapshot(self) -> EngineSnapshot:
        piece = None
        if self.current_piece is not None:
            piece = ActivePiece(
                kind=self.current_piece.kind,
                rotation=self.current_piece.rotation,
                x=self.current_x,
                y=self.current_y,
                shape=self.current_piece.shape(),
            )
        return EngineSnapshot(
            board=self.grid.clone_state(),
            piece=piece,
            next_kind=self.next_piece.kind if self.next_piece is not None else None,
            ghost_y=self.ghost_y() if not self.state.game_over else None,
            state=self.state.snapshot(),
            status=self.status,
            in_danger=self.grid.is_topout_state(self.config.topout_rows),
        )

    def validate_and_fix(self) -> bool:
        """Repair corrupted grid cells and counters. Returns True if the session is consistent afterwards."""
        grid_fixed = self.grid.sanitize()
        state_ok = self.state.validate_and_fix()
        if grid_fixed or not state_ok:
            logger.warning("Engine state repaired (grid=%s, state_ok=%s)", grid_fixed, state_ok)
        return state_ok
