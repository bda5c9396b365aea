from __future__ import annotations

import argparse
import logging
from typing import Callable, Dict, Optional, Sequence

import pygame

from tetris_engine.game import GameConfig, ManualScheduler, TetrisEngine
from .renderer import Renderer


logger = logging.getLogger(__name__)


def build_keymap(engine: TetrisEngine) -> Dict[int, Callable[[], object]]:
    return {
        pygame.K_LEFT: engine.move_left,
        pygame.K_RIGHT: engine.move_right,
        pygame.K_UP: engine.rotate,
        pygame.K_z: lambda: engine.rotate(clockwise=False),
        pygame.K_DOWN: engine.soft_drop,
        pygame.K_SPACE: engine.hard_drop,
        pygame.K_p: engine.toggle_pause,
        pygame.K_ESCAPE: engine.toggle_pause,
    }


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Play Tetris with the keyboard")
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--width", type=int, default=10)
    p.add_argument("--height", type=int, default=20)
    p.add_argument("--cell-size", type=int, default=30)
    p.add_argument("--fps", type=int, default=60)
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return p


def run(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    scheduler = ManualScheduler()
    engine = TetrisEngine(GameConfig(width=args.width, height=args.height, random_seed=args.seed), scheduler=scheduler)
    renderer = Renderer(cell_size=args.cell_size)
    keymap = build_keymap(engine)

    pygame.init()
    try:
        screen = pygame.display.set_mode(renderer.window_size(args.width, args.height))
        pygame.display.set_caption("Tetris")
        clock = pygame.time.Clock()
        engine.start()

        running = True
        while running:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.KEYDOWN:
                    if event.key == pygame.K_q:
                        running = False
                    elif event.key == pygame.K_r:
                        engine.restart()
                    else:
                        command = keymap.get(event.key)
                        if command is not None:
                            command()

            # Gravity, synced to the display frame rate
            scheduler.advance(clock.tick(args.fps))
            renderer.draw(screen, engine.snapshot())
    finally:
        engine.close()
        pygame.quit()
    logger.info("Final score %d", engine.state.score)


if __name__ == "__main__":  # pragma: no cover
    run()
