from __future__ import annotations

import os

import pytest

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

from tetris_engine.game import GameConfig, ManualScheduler, Piece, TetrisEngine


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def engine(scheduler: ManualScheduler) -> TetrisEngine:
    eng = TetrisEngine(GameConfig(random_seed=7), scheduler=scheduler)
    eng.start()
    yield eng
    eng.close()


def set_active(engine: TetrisEngine, kind: str, x: int | None = None, y: int = 0, rotation: int = 0) -> Piece:
    """Replace the falling piece, defaulting to the spawn column."""
    piece = Piece(Piece.create(kind).kind, rotation)
    engine.current_piece = piece
    spawn_x, _ = engine.spawn_position(piece)
    engine.current_x = spawn_x if x is None else x
    engine.current_y = y
    return piece
