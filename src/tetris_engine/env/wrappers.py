from __future__ import annotations

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from tetris_engine.game import GameGrid


FEATURE_NAMES = ("lines", "holes", "bumpiness", "aggregate_height", "max_height")


def board_features(grid: GameGrid, lines: int = 0) -> np.ndarray:
    heights = grid.column_heights()
    return np.array(
        [lines, grid.count_holes(), grid.bumpiness(), sum(heights), max(heights, default=0)],
        dtype=np.float32,
    )


class BoardFeaturesObservation(gym.ObservationWrapper):
    """Replaces the raw board with hand-crafted features of the locked stack.

    Features, in order: total lines cleared, holes, bumpiness, aggregate
    height, max height.
    """

    def __init__(self, env: gym.Env):
        super().__init__(env)
        game = env.unwrapped.game
        h, w = game.grid.height, game.grid.width
        high = np.array([np.inf, h * w, h * w, h * w, h], dtype=np.float32)
        self.observation_space = spaces.Box(low=0.0, high=high, shape=(len(FEATURE_NAMES),), dtype=np.float32)

    def observation(self, observation):  # type: ignore[override]
        game = self.env.unwrapped.game
        return board_features(game.grid, game.state.lines)
