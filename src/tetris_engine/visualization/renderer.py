from __future__ import annotations

from typing import Optional, Tuple

import numpy as np
import pygame

from tetris_engine.game import EngineSnapshot, EngineStatus, Piece
from tetris_engine.game.pieces import color_for_value


BACKGROUND = (10, 10, 14)
BOARD_BG = (30, 30, 36)
EMPTY_CELL = (20, 20, 26)
TEXT = (230, 230, 230)
GHOST_ALPHA = 70


class Renderer:
    """Draws an :class:`EngineSnapshot`. Reads only; never touches the engine."""

    def __init__(self, cell_size: int = 30, margin: int = 20, panel_cells: int = 6) -> None:
        self.cell_size = cell_size
        self.margin = margin
        self.panel_cells = panel_cells
        self._font: Optional[pygame.font.Font] = None
        self._big_font: Optional[pygame.font.Font] = None

    def window_size(self, width: int, height: int) -> Tuple[int, int]:
        board_w = width * self.cell_size
        board_h = height * self.cell_size
        return self.margin * 3 + board_w + self.panel_cells * self.cell_size, self.margin * 2 + board_h

    def _fonts(self) -> Tuple[pygame.font.Font, pygame.font.Font]:
        if self._font is None or self._big_font is None:
            self._font = pygame.font.SysFont(None, 26)
            self._big_font = pygame.font.SysFont(None, 44)
        return self._font, self._big_font

    def _cell_rect(self, x: int, y: int, ox: int = 0, oy: int = 0) -> pygame.Rect:
        return pygame.Rect(
            ox + x * self.cell_size,
            oy + y * self.cell_size,
            self.cell_size - 1,
            self.cell_size - 1,
        )

    def _grid_surface(self, snap: EngineSnapshot) -> pygame.Surface:
        board = snap.board
        h, w = board.shape
        surf = pygame.Surface((w * self.cell_size, h * self.cell_size), pygame.SRCALPHA)
        surf.fill(BOARD_BG)
        for y in range(h):
            for x in range(w):
                v = int(board[y, x])
                color = color_for_value(v) if v else EMPTY_CELL
                pygame.draw.rect(surf, color, self._cell_rect(x, y))

        piece = snap.piece
        if piece is not None and snap.status is not EngineStatus.GAME_OVER:
            color = color_for_value(int(piece.kind))
            ys, xs = np.nonzero(piece.shape)
            if snap.ghost_y is not None and snap.ghost_y != piece.y:
                for dy, dx in zip(ys, xs):
                    pygame.draw.rect(surf, color + (GHOST_ALPHA,), self._cell_rect(piece.x + dx, snap.ghost_y + dy), 2)
            for dy, dx in zip(ys, xs):
                pygame.draw.rect(surf, color, self._cell_rect(piece.x + dx, piece.y + dy))
        return surf

    def _draw_panel(self, screen: pygame.Surface, snap: EngineSnapshot, left: int) -> None:
        font, _ = self._fonts()
        top = self.margin
        screen.blit(font.render("NEXT", True, TEXT), (left, top))
        if snap.next_kind is not None:
            preview = Piece.create(snap.next_kind)
            color = color_for_value(int(snap.next_kind))
            for dx, dy in preview.filled_cells():
                rect = self._cell_rect(dx, dy, left, top + 30)
                pygame.draw.rect(screen, color, rect)

        lines = [
            f"SCORE {snap.state.score}",
            f"LEVEL {snap.state.level}",
            f"LINES {snap.state.lines}",
            f"SPEED {snap.state.drop_interval_ms:.0f} ms",
        ]
        y = top + 30 + 5 * self.cell_size
        for text in lines:
            screen.blit(font.render(text, True, TEXT), (left, y))
            y += 30
        if snap.in_danger and snap.status is EngineStatus.RUNNING:
            screen.blit(font.render("DANGER", True, (240, 60, 60)), (left, y + 10))

    def _draw_banner(self, screen: pygame.Surface, text: str, hint: str) -> None:
        font, big = self._fonts()
        shade = pygame.Surface(screen.get_size(), pygame.SRCALPHA)
        shade.fill((0, 0, 0, 150))
        screen.blit(shade, (0, 0))
        center = (screen.get_width() // 2, screen.get_height() // 2)
        title = big.render(text, True, TEXT)
        screen.blit(title, title.get_rect(center=center))
        sub = font.render(hint, True, TEXT)
        screen.blit(sub, sub.get_rect(center=(center[0], center[1] + 40)))

    def draw(self, screen: pygame.Surface, snap: EngineSnapshot) -> None:
        grid_surf = self._grid_surface(snap)
        screen.fill(BACKGROUND)
        screen.blit(grid_surf, (self.margin, self.margin))
        self._draw_panel(screen, snap, self.margin * 2 + grid_surf.get_width())
        if snap.status is EngineStatus.PAUSED:
            self._draw_banner(screen, "PAUSED", "P to resume")
        elif snap.status is EngineStatus.GAME_OVER:
            self._draw_banner(screen, "GAME OVER", "R to restart, Q to quit")
        elif snap.status is EngineStatus.IDLE:
            self._draw_banner(screen, "TETRIS", "R to start")
        pygame.display.flip()
