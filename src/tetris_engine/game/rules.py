from __future__ import annotations

import logging
from dataclasses import dataclass


logger = logging.getLogger(__name__)

MAX_LINES_PER_CLEAR = 4
LINE_CLEAR_LABELS = {1: "Single", 2: "Double", 3: "Triple", 4: "Tetris"}


@dataclass
class ScoringRules:
    line_clear_scores: tuple[int, int, int, int] = (100, 300, 500, 800)
    soft_drop_points: int = 1  # per cell
    hard_drop_points: int = 2  # per cell
    lines_per_level: int = 10
    base_interval_ms: float = 1000.0
    speed_rate: float = 0.9
    min_interval_ms: float = 50.0

    def score_for_lines(self, lines: int) -> int:
        """Base points for ``lines`` rows cleared by a single lock, before the level multiplier."""
        if lines == 0:
            return 0
        if not 1 <= lines <= MAX_LINES_PER_CLEAR:
            logger.warning("Rejected line count %r: a single lock clears 0 to %d lines", lines, MAX_LINES_PER_CLEAR)
            return 0
        return self.line_clear_scores[lines - 1]

    def level_for_lines(self, total_lines: int) -> int:
        return total_lines // self.lines_per_level + 1

    def drop_interval_ms(self, level: int) -> float:
        return max(self.min_interval_ms, self.base_interval_ms * self.speed_rate ** (level - 1))
