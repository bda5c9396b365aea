"""Game module for the Tetris engine.

Exports the core game engine and supporting classes:
- GameGrid: Grid representation, collision checks and line clearing
- Piece: Tetromino piece with precomputed rotation states
- TetrominoType: Enum of available piece types
- ScoringRules: Scoring and speed configuration
- GameState: Score, level and run/pause/game-over bookkeeping
- ManualScheduler: Host-driven periodic tick scheduler
- TetrisEngine: Game loop and state machine
"""

from .errors import TetrisError, InvalidPieceType, ShapeTableError
from .grid import GameGrid
from .pieces import Piece, TetrominoType
from .rules import ScoringRules
from .state import GameState, LineClearResult, StateSnapshot
from .scheduler import ManualScheduler, Scheduler, TickHandle
from .core import TetrisEngine, Action, EngineStatus, EngineSnapshot, GameConfig

__all__ = [
    "TetrisError",
    "InvalidPieceType",
    "ShapeTableError",
    "GameGrid",
    "Piece",
    "TetrominoType",
    "ScoringRules",
    "GameState",
    "LineClearResult",
    "StateSnapshot",
    "ManualScheduler",
    "Scheduler",
    "TickHandle",
    "TetrisEngine",
    "Action",
    "EngineStatus",
    "EngineSnapshot",
    "GameConfig",
]
