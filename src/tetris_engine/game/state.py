from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from .rules import LINE_CLEAR_LABELS, ScoringRules


logger = logging.getLogger(__name__)

MAX_SCORE = 999_999_999
MAX_LEVEL = 999
MAX_LINES = 999_999


@dataclass(frozen=True)
class StateSnapshot:
    score: int
    level: int
    lines: int
    running: bool
    paused: bool
    game_over: bool
    drop_interval_ms: float


@dataclass(frozen=True)
class LineClearResult:
    lines_cleared: int
    label: str
    points: int
    previous_level: int
    level: int
    level_increased: bool
    drop_interval_ms: float


@dataclass
class GameState:
    """Score, level and line counters plus the run/pause/game-over flags.

    Invariants: ``game_over`` implies neither ``running`` nor ``paused``, and
    ``paused`` implies ``running``.
    """

    rules: ScoringRules = field(default_factory=ScoringRules)
    score: int = 0
    level: int = 1
    lines: int = 0
    running: bool = False
    paused: bool = False
    game_over: bool = False

    def reset(self) -> None:
        self.score = 0
        self.level = 1
        self.lines = 0
        self.running = False
        self.paused = False
        self.game_over = False

    # ----- transitions -----
    def start(self) -> bool:
        """Enter the running state. A finished game stays finished until reset()."""
        if self.game_over:
            logger.warning("start() ignored: game is over, reset first")
            return False
        self.running = True
        self.paused = False
        self.game_over = False
        return True

    def set_paused(self, paused: bool) -> bool:
        """Returns True if the flag changed. Only meaningful while running."""
        if self.game_over or not self.running:
            return False
        paused = bool(paused)
        if paused == self.paused:
            return False
        self.paused = paused
        return True

    def set_game_over(self) -> None:
        self.game_over = True
        self.running = False
        self.paused = False

    # ----- scoring -----
    def score_for_clear(self, lines: int) -> int:
        return self.rules.score_for_lines(lines) * self.level

    def award_line_clear(self, lines: int) -> int:
        points = self.score_for_clear(lines)
        self.score += points
        return points

    def add_lines(self, lines: int) -> bool:
        """Add cleared lines to the total. Returns whether the level went up."""
        if lines < 0:
            logger.warning("Rejected negative line count %r", lines)
            return False
        previous = self.level
        self.lines += lines
        self.level = self.rules.level_for_lines(self.lines)
        if self.level > previous:
            logger.info("Level up: %d -> %d at %d lines", previous, self.level, self.lines)
            return True
        return False

    def process_line_clear(self, lines: int) -> LineClearResult:
        previous_level = self.level
        points = self.award_line_clear(lines)
        increased = self.add_lines(lines)
        label = LINE_CLEAR_LABELS.get(lines, f"{lines} lines")
        if lines:
            logger.info("%s! %d x %d (level) = %d points", label, self.rules.score_for_lines(lines), previous_level, points)
        return LineClearResult(
            lines_cleared=lines,
            label=label,
            points=points,
            previous_level=previous_level,
            level=self.level,
            level_increased=increased,
            drop_interval_ms=self.drop_interval_ms(),
        )

    def award_soft_drop(self, cells: int) -> int:
        if cells <= 0:
            return 0
        points = cells * self.rules.soft_drop_points
        self.score += points
        return points

    def award_hard_drop(self, cells: int) -> int:
        if cells <= 0:
            return 0
        points = cells * self.rules.hard_drop_points
        self.score += points
        return points

    # ----- derived values -----
    def drop_interval_ms(self) -> float:
        return self.rules.drop_interval_ms(self.level)

    def lines_until_next_level(self) -> int:
        return max(0, self.level * self.rules.lines_per_level - self.lines)

    def level_progress(self) -> float:
        """Percent of the way through the current level, 0..100."""
        done = self.lines - (self.level - 1) * self.rules.lines_per_level
        return min(100.0, 100.0 * done / self.rules.lines_per_level)

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            score=self.score,
            level=self.level,
            lines=self.lines,
            running=self.running,
            paused=self.paused,
            game_over=self.game_over,
            drop_interval_ms=self.drop_interval_ms(),
        )

    # ----- corruption repair -----
    def validate(self) -> List[str]:
        problems: List[str] = []
        if not isinstance(self.score, int) or self.score < 0:
            problems.append(f"invalid score: {self.score!r}")
        elif self.score > MAX_SCORE:
            problems.append(f"score too high: {self.score}")
        if not isinstance(self.level, int) or self.level < 1:
            problems.append(f"invalid level: {self.level!r}")
        elif self.level > MAX_LEVEL:
            problems.append(f"level too high: {self.level}")
        if not isinstance(self.lines, int) or self.lines < 0:
            problems.append(f"invalid lines: {self.lines!r}")
        elif self.lines > MAX_LINES:
            problems.append(f"lines too high: {self.lines}")
        if self.game_over and self.running:
            problems.append("game over while running")
        if self.game_over and self.paused:
            problems.append("paused while game over")
        if self.paused and not self.running:
            problems.append("paused while not running")
        return problems

    def fix_invalid_state(self) -> bool:
        """Clamp every field to its nearest valid value. Returns True if anything changed."""
        fixed = False
        score = _clamp_int(self.score, 0, MAX_SCORE)
        if not _is_exact(score, self.score):
            logger.warning("Fixed invalid score %r -> %d", self.score, score)
            self.score, fixed = score, True
        level = _clamp_int(self.level, 1, MAX_LEVEL)
        if not _is_exact(level, self.level):
            logger.warning("Fixed invalid level %r -> %d", self.level, level)
            self.level, fixed = level, True
        lines = _clamp_int(self.lines, 0, MAX_LINES)
        if not _is_exact(lines, self.lines):
            logger.warning("Fixed invalid lines %r -> %d", self.lines, lines)
            self.lines, fixed = lines, True
        if self.game_over and (self.running or self.paused):
            logger.warning("Fixed inconsistent game-over flags")
            self.running = self.paused = False
            fixed = True
        if self.paused and not self.running:
            logger.warning("Fixed paused flag on a stopped game")
            self.paused = False
            fixed = True
        return fixed

    def validate_and_fix(self) -> bool:
        problems = self.validate()
        if not problems:
            return True
        logger.error("Game state validation failed: %s", "; ".join(problems))
        self.fix_invalid_state()
        return not self.validate()

    def __str__(self) -> str:
        return (
            f"GameState(score={self.score}, level={self.level}, lines={self.lines}, "
            f"running={self.running}, paused={self.paused}, game_over={self.game_over})"
        )


def _clamp_int(value: object, low: int, high: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value != value:
        return low
    if value in (float("inf"), float("-inf")):
        return high if value > 0 else low
    return int(max(low, min(high, value)))


def _is_exact(fixed: int, value: object) -> bool:
    # 10.0 and True compare equal to ints but are still invalid counters
    return type(value) is int and value == fixed
