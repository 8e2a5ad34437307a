"""
Snake, the pod's built-in game.

Pure game state: the caller drives ``tick`` every SNAKE_TICK_SECONDS and
feeds directions from the wheel buttons.
"""

import random
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from shared.constants import SNAKE_FOOD_ATTEMPTS, SNAKE_GRID_SIZE


@dataclass(frozen=True)
class Point:
    x: int
    y: int


class Direction(Enum):
    UP = (0, -1)
    DOWN = (0, 1)
    LEFT = (-1, 0)
    RIGHT = (1, 0)

    @property
    def dx(self) -> int:
        return self.value[0]

    @property
    def dy(self) -> int:
        return self.value[1]

    def is_opposite(self, other: 'Direction') -> bool:
        return self.dx == -other.dx and self.dy == -other.dy


class SnakeGame:
    """Grid snake that grows by one cell per food eaten."""

    def __init__(self, grid_size: int = SNAKE_GRID_SIZE, rng: Optional[random.Random] = None):
        self.grid_size = grid_size
        self._rng = rng or random.Random()
        self.restart()

    def restart(self) -> None:
        center = self.grid_size // 2
        self.snake: List[Point] = [Point(center, center)]
        self.direction = Direction.RIGHT
        self.pending_direction: Optional[Direction] = None
        self.score = 0
        self.is_game_over = False
        self.food = self.random_food()

    def random_food(self) -> Point:
        """Random cell, retried a bounded number of times to avoid the snake."""
        occupied = set(self.snake)
        food = Point(0, 0)
        for _ in range(SNAKE_FOOD_ATTEMPTS):
            food = Point(self._rng.randrange(self.grid_size), self._rng.randrange(self.grid_size))
            if food not in occupied:
                break
        return food

    def queue_direction(self, direction: Direction) -> None:
        """Direction for the next tick; a reversal is held until it becomes legal."""
        self.pending_direction = direction

    def tick(self) -> bool:
        """Advance one step. Returns False once the game is over."""
        if self.is_game_over:
            return False

        pending = self.pending_direction
        if pending is not None and not pending.is_opposite(self.direction):
            self.direction = pending
            self.pending_direction = None

        head = self.snake[0]
        new_head = Point(head.x + self.direction.dx, head.y + self.direction.dy)

        if not (0 <= new_head.x < self.grid_size and 0 <= new_head.y < self.grid_size):
            self.is_game_over = True
            return False
        if new_head in self.snake:
            self.is_game_over = True
            return False

        self.snake.insert(0, new_head)
        if new_head == self.food:
            self.score += 1
            self.food = self.random_food()
        else:
            self.snake.pop()
        return True
