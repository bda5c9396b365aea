from __future__ import annotations


class TetrisError(Exception):
    """Base class for engine errors."""


class InvalidPieceType(TetrisError, ValueError):
    """Raised when a piece is built from an unknown type tag."""

    def __init__(self, kind: object) -> None:
        valid = ", ".join("IOTSZJL")
        super().__init__(f"Invalid tetromino type: {kind!r}. Valid types are: {valid}")
        self.kind = kind


class ShapeTableError(TetrisError):
    """The built-in rotation tables are inconsistent."""
