from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Tuple, Union

import numpy as np

from .errors import InvalidPieceType, ShapeTableError


class TetrominoType(IntEnum):
    """Piece types. The integer value doubles as the board color id."""

    I = 1
    O = 2
    T = 3
    S = 4
    Z = 5
    J = 6
    L = 7


Shape = np.ndarray
PieceKind = Union[TetrominoType, int, str]


def _shapes(*rotations: List[List[int]]) -> Tuple[Shape, ...]:
    return tuple(np.array(r, dtype=np.int8) for r in rotations)


# Four precomputed rotation states per type, clockwise order.
ROTATIONS: Dict[TetrominoType, Tuple[Shape, ...]] = {
    TetrominoType.I: _shapes(
        [[1, 1, 1, 1]],
        [[1], [1], [1], [1]],
        [[1, 1, 1, 1]],
        [[1], [1], [1], [1]],
    ),
    TetrominoType.O: _shapes(
        [[1, 1], [1, 1]],
        [[1, 1], [1, 1]],
        [[1, 1], [1, 1]],
        [[1, 1], [1, 1]],
    ),
    TetrominoType.T: _shapes(
        [[0, 1, 0], [1, 1, 1]],
        [[1, 0], [1, 1], [1, 0]],
        [[1, 1, 1], [0, 1, 0]],
        [[0, 1], [1, 1], [0, 1]],
    ),
    TetrominoType.S: _shapes(
        [[0, 1, 1], [1, 1, 0]],
        [[1, 0], [1, 1], [0, 1]],
        [[0, 1, 1], [1, 1, 0]],
        [[1, 0], [1, 1], [0, 1]],
    ),
    TetrominoType.Z: _shapes(
        [[1, 1, 0], [0, 1, 1]],
        [[0, 1], [1, 1], [1, 0]],
        [[1, 1, 0], [0, 1, 1]],
        [[0, 1], [1, 1], [1, 0]],
    ),
    TetrominoType.J: _shapes(
        [[1, 0, 0], [1, 1, 1]],
        [[1, 1], [1, 0], [1, 0]],
        [[1, 1, 1], [0, 0, 1]],
        [[0, 1], [0, 1], [1, 1]],
    ),
    TetrominoType.L: _shapes(
        [[0, 0, 1], [1, 1, 1]],
        [[1, 0], [1, 0], [1, 1]],
        [[1, 1, 1], [1, 0, 0]],
        [[1, 1], [0, 1], [0, 1]],
    ),
}

NUM_ROTATIONS = 4


def validate_shape_tables() -> None:
    """Check every rotation table: four states, non-empty, constant mass."""
    for kind in TetrominoType:
        states = ROTATIONS.get(kind)
        if states is None or len(states) != NUM_ROTATIONS:
            raise ShapeTableError(f"{kind.name}: expected {NUM_ROTATIONS} rotation states")
        masses = {int(np.count_nonzero(s)) for s in states}
        if 0 in masses:
            raise ShapeTableError(f"{kind.name}: empty rotation state")
        if len(masses) != 1:
            raise ShapeTableError(f"{kind.name}: filled-cell count changes across rotations")
        for s in states:
            if s.ndim != 2 or not np.isin(s, (0, 1)).all():
                raise ShapeTableError(f"{kind.name}: malformed rotation state")


validate_shape_tables()


def parse_kind(kind: PieceKind) -> TetrominoType:
    if isinstance(kind, TetrominoType):
        return kind
    if isinstance(kind, str):
        try:
            return TetrominoType[kind.strip().upper()]
        except KeyError:
            raise InvalidPieceType(kind) from None
    if isinstance(kind, (int, np.integer)) and not isinstance(kind, bool):
        try:
            return TetrominoType(int(kind))
        except ValueError:
            raise InvalidPieceType(kind) from None
    raise InvalidPieceType(kind)


@dataclass
class Piece:
    kind: TetrominoType
    rotation: int = 0  # 0..3

    def __post_init__(self) -> None:
        self.kind = parse_kind(self.kind)
        self.rotation = int(self.rotation) % NUM_ROTATIONS

    @classmethod
    def create(cls, kind: PieceKind) -> "Piece":
        return cls(parse_kind(kind), 0)

    def shape(self) -> Shape:
        return ROTATIONS[self.kind][self.rotation].copy()

    @property
    def width(self) -> int:
        return int(ROTATIONS[self.kind][self.rotation].shape[1])

    @property
    def height(self) -> int:
        return int(ROTATIONS[self.kind][self.rotation].shape[0])

    @property
    def color_id(self) -> int:
        return int(self.kind)

    def rotate_clockwise(self) -> None:
        self.rotation = (self.rotation + 1) % NUM_ROTATIONS

    def rotate_counter_clockwise(self) -> None:
        self.rotation = (self.rotation - 1) % NUM_ROTATIONS

    def rotated(self, delta: int) -> "Piece":
        return Piece(self.kind, (self.rotation + delta) % NUM_ROTATIONS)

    def clone(self) -> "Piece":
        return Piece(self.kind, self.rotation)

    def filled_cells(self) -> List[Tuple[int, int]]:
        """(dx, dy) offsets of the filled cells relative to the bounding box."""
        s = ROTATIONS[self.kind][self.rotation]
        ys, xs = np.nonzero(s)
        return [(int(dx), int(dy)) for dy, dx in zip(ys, xs)]

    def cells_at(self, origin_x: int, origin_y: int) -> List[Tuple[int, int]]:
        return [(origin_x + dx, origin_y + dy) for dx, dy in self.filled_cells()]

    def __str__(self) -> str:
        rows = ["".join("█" if c else "·" for c in row) for row in ROTATIONS[self.kind][self.rotation]]
        return f"{self.kind.name} (rotation {self.rotation})\n" + "\n".join(rows)


PIECE_COLORS: Dict[TetrominoType, Tuple[int, int, int]] = {
    TetrominoType.I: (0, 240, 240),
    TetrominoType.O: (240, 240, 0),
    TetrominoType.T: (160, 0, 240),
    TetrominoType.S: (0, 240, 0),
    TetrominoType.Z: (240, 0, 0),
    TetrominoType.J: (0, 0, 240),
    TetrominoType.L: (240, 160, 0),
}


def color_for_value(value: int, default: Tuple[int, int, int] = (20, 20, 26)) -> Tuple[int, int, int]:
    """RGB for a grid cell; negative values (falling piece overlay) use the same color."""
    try:
        return PIECE_COLORS[TetrominoType(abs(int(value)))]
    except ValueError:
        return default
