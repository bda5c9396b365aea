from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .pieces import Piece, TetrominoType


logger = logging.getLogger(__name__)

Coordinate = Tuple[int, int]

EMPTY = 0
MAX_COLOR_ID = max(int(t) for t in TetrominoType)
DEFAULT_TOPOUT_ROWS = 4


class GameGrid:
    """Playfield of ``height`` rows by ``width`` columns.

    Row 0 is the top. The grid uses 0 for empty cells and the color id of the
    piece type (1..7) for filled cells.
    """

    def __init__(self, width: int = 10, height: int = 20) -> None:
        self.width = int(width)
        self.height = int(height)
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid grid size {self.width}x{self.height}")
        self.grid = np.zeros((self.height, self.width), dtype=np.int8)

    def reset(self) -> None:
        self.grid.fill(EMPTY)

    def is_inside(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def can_place(self, cells: Iterable[Coordinate]) -> bool:
        for x, y in cells:
            if not self.is_inside(x, y):
                return False
            if self.grid[y, x] != EMPTY:
                return False
        return True

    def is_valid_position(self, piece: Piece, x: int, y: int) -> bool:
        return self.can_place(piece.cells_at(x, y))

    def place(self, piece: Piece, x: int, y: int) -> bool:
        """Write ``piece`` into the grid with its top-left at (x, y).

        Returns False and leaves the grid untouched if the position is not valid.
        """
        cells = piece.cells_at(x, y)
        if not self.can_place(cells):
            logger.warning("Cannot place %s at (%d, %d): invalid position", piece.kind.name, x, y)
            return False
        for cx, cy in cells:
            self.grid[cy, cx] = piece.color_id
        logger.debug("Placed %s at (%d, %d)", piece.kind.name, x, y)
        return True

    def get_cell(self, row: int, col: int) -> Optional[int]:
        if not self.is_inside(col, row):
            return None
        return int(self.grid[row, col])

    def is_line_complete(self, row: int) -> bool:
        if not 0 <= row < self.height:
            return False
        return bool(np.all(self.grid[row] != EMPTY))

    def is_line_empty(self, row: int) -> bool:
        if not 0 <= row < self.height:
            return False
        return bool(np.all(self.grid[row] == EMPTY))

    def find_completed_lines(self) -> List[int]:
        """Indices of full rows, bottom to top."""
        full_rows = np.where(np.all(self.grid != EMPTY, axis=1))[0]
        return sorted((int(r) for r in full_rows), reverse=True)

    def clear_lines(self, rows: Sequence[int]) -> int:
        """Remove ``rows`` in one pass and drop everything above them.

        Each remaining row moves down by the number of removed rows below it;
        the same number of empty rows is inserted at the top.
        """
        to_remove = sorted({int(r) for r in rows if 0 <= int(r) < self.height})
        if not to_remove:
            return 0
        num = len(to_remove)
        kept = np.delete(self.grid, to_remove, axis=0)
        new_rows = np.zeros((num, self.width), dtype=self.grid.dtype)
        self.grid = np.vstack((new_rows, kept))
        logger.debug("Cleared %d line(s): rows %s", num, to_remove)
        return num

    def clear_full_lines(self) -> int:
        return self.clear_lines(self.find_completed_lines())

    def is_topout_state(self, rows: int = DEFAULT_TOPOUT_ROWS) -> bool:
        """Whether any cell in the top ``rows`` rows is filled."""
        rows = max(0, min(int(rows), self.height))
        return bool(np.any(self.grid[:rows] != EMPTY))

    def filled_count(self) -> int:
        return int(np.count_nonzero(self.grid))

    def load_state(self, matrix: Sequence[Sequence[int]] | np.ndarray) -> bool:
        """Replace the grid contents, used for tests and state restoration.

        A matrix of the wrong shape is rejected. Cell values outside the color
        range are clamped to the nearest valid id.
        """
        try:
            arr = _as_int_matrix(matrix)
        except (TypeError, ValueError):
            logger.error("Rejected board state: not a rectangular integer matrix")
            return False
        if arr.shape != (self.height, self.width):
            logger.error("Rejected board state with shape %s, expected %s", arr.shape, (self.height, self.width))
            return False
        self.grid = arr.astype(np.int8, copy=True) if _in_range(arr) else _clamp(arr)
        return True

    def sanitize(self) -> bool:
        """Clamp corrupted cell values of the live grid. Returns True if anything changed."""
        if _in_range(self.grid):
            return False
        self.grid = _clamp(self.grid)
        return True

    def column_heights(self) -> List[int]:
        heights: List[int] = []
        for x in range(self.width):
            filled = np.flatnonzero(self.grid[:, x])
            heights.append(self.height - int(filled[0]) if filled.size else 0)
        return heights

    def get_max_height(self) -> int:
        # y=0 is top; find first non-empty from top
        non_empty_rows = np.where(np.any(self.grid != EMPTY, axis=1))[0]
        if non_empty_rows.size == 0:
            return 0
        return self.height - int(non_empty_rows[0])

    def count_holes(self) -> int:
        holes = 0
        for x in range(self.width):
            seen_block = False
            for cell in self.grid[:, x]:
                if cell != EMPTY:
                    seen_block = True
                elif seen_block:
                    holes += 1
        return holes

    def bumpiness(self) -> int:
        heights = self.column_heights()
        return sum(abs(a - b) for a, b in zip(heights, heights[1:]))

    def clone_state(self) -> np.ndarray:
        return self.grid.copy()

    def __str__(self) -> str:
        return "\n".join("".join("█" if cell else "·" for cell in row) for row in self.grid)


def _in_range(arr: np.ndarray) -> bool:
    return bool(np.all((arr >= EMPTY) & (arr <= MAX_COLOR_ID)))


def _as_int_matrix(matrix: Sequence[Sequence[int]] | np.ndarray) -> np.ndarray:
    try:
        return np.asarray(matrix, dtype=np.int64)
    except OverflowError:
        # values beyond int64 land just outside the color range so _clamp counts them
        obj = np.asarray(matrix, dtype=object)
        return np.minimum(np.maximum(obj, EMPTY - 1), MAX_COLOR_ID + 1).astype(np.int64)


def _clamp(arr: np.ndarray) -> np.ndarray:
    bad = int(np.count_nonzero((arr < EMPTY) | (arr > MAX_COLOR_ID)))
    logger.warning("Clamped %d corrupted cell value(s) into [%d, %d]", bad, EMPTY, MAX_COLOR_ID)
    return np.clip(arr, EMPTY, MAX_COLOR_ID).astype(np.int8)
