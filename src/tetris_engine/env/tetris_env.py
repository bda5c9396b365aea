from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from tetris_engine.game import Action, GameConfig, ScoringRules, TetrisEngine
from tetris_engine.game.pieces import color_for_value


MAX_SEED = 2**31 - 1


class TetrisEnv(gym.Env):
    """Single-player Tetris, one player command plus one gravity tick per step.

    The reward is the change in engine score, so line clears and drop bonuses
    are the only signal unless a wrapper shapes it further.
    """

    metadata = {"render_modes": ["rgb_array"], "render_fps": 30}

    def __init__(self, config: Optional[GameConfig] = None, rules: Optional[ScoringRules] = None,
                 render_mode: Optional[str] = None, max_episode_steps: int = 10000) -> None:
        super().__init__()
        self.game = TetrisEngine(config, rules)
        self.render_mode = render_mode
        self.max_episode_steps = int(max_episode_steps)

        h, w = self.game.grid.height, self.game.grid.width
        n_types = 7
        # Board: 0 empty, +id locked cell, -id falling piece. next_piece: 0 when unknown.
        self.observation_space = spaces.Dict(
            {
                "board": spaces.Box(low=-n_types, high=n_types, shape=(h, w), dtype=np.int8),
                "next_piece": spaces.Discrete(n_types + 1),
            }
        )
        self.action_space = spaces.Discrete(len(Action))
        self._steps = 0

    def _get_obs(self) -> Dict[str, Any]:
        next_piece = self.game.next_piece
        return {
            "board": self.game.get_state().astype(np.int8),
            "next_piece": int(next_piece.kind) if next_piece is not None else 0,
        }

    def _get_info(self) -> Dict[str, Any]:
        return {
            "score": self.game.state.score,
            "level": self.game.state.level,
            "lines": self.game.state.lines,
            "pieces_locked": self.game.pieces_locked,
            "steps": self._steps,
        }

    def reset(self, *, seed: Optional[int] = None, options: Optional[dict] = None) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        super().reset(seed=seed)
        self.game.reset()
        self.game.start(seed=int(self.np_random.integers(0, MAX_SEED)))
        self._steps = 0
        return self._get_obs(), self._get_info()

    def step(self, action: int | np.integer):
        locked_before = self.game.pieces_locked
        _, gained, done, _ = self.game.step(Action(int(action)))
        # Gravity only when the command did not already lock the piece.
        if not done and self.game.pieces_locked == locked_before:
            before = self.game.state.score
            self.game.advance_gravity()
            gained += self.game.state.score - before
            done = self.game.state.game_over

        self._steps += 1
        terminated = bool(done)
        truncated = self._steps >= self.max_episode_steps and not terminated
        return self._get_obs(), float(gained), terminated, truncated, self._get_info()

    def render(self) -> Optional[np.ndarray]:
        if self.render_mode == "rgb_array":
            board = self.game.get_state()
            cell = 12
            h, w = board.shape
            img = np.zeros((h * cell, w * cell, 3), dtype=np.uint8)
            for y in range(h):
                for x in range(w):
                    color = color_for_value(int(board[y, x]), default=(30, 30, 36))
                    img[y * cell : (y + 1) * cell, x * cell : (x + 1) * cell, :] = color
            return img
        # human rendering delegated to the pygame host; noop
        return None

    def close(self) -> None:
        self.game.close()
