"""
Grid model — tiles, positions and the square board the rover lives on.

A board is a ``size x size`` list of rows of ``Tile`` objects, addressed
``board[y][x]``. The agent position is never encoded in the board; it is
tracked by the episode state.

Boards are treated as copy-on-write values: every transition clones the
board before touching it, so a board handed out for rendering is never
mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Iterator, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from reward_rover.constants import (
    GOAL_REWARD,
    MIN_GRID_SIZE,
    OBSTACLE_PENALTY,
    PUNISHMENT_VALUE,
    REWARD_VALUE,
)


# ---------------------------------------------------------------------------
# Positions and directions
# ---------------------------------------------------------------------------

class Position(NamedTuple):
    """Zero-based (x, y) cell coordinate; x is the column, y the row."""
    x: int
    y: int

    def offset(self, dx: int, dy: int) -> "Position":
        return Position(self.x + dx, self.y + dy)

    @property
    def key(self) -> str:
        return f"{self.x},{self.y}"


class Direction(Enum):
    """The four moves, in the order candidate actions are enumerated."""
    UP = (0, -1)
    DOWN = (0, 1)
    LEFT = (-1, 0)
    RIGHT = (1, 0)

    def delta(self) -> Tuple[int, int]:
        """(dx, dy) displacement for this direction."""
        return self.value

    @staticmethod
    def all() -> List["Direction"]:
        return [Direction.UP, Direction.DOWN, Direction.LEFT, Direction.RIGHT]

    @staticmethod
    def between(src: Position, dst: Position) -> Optional["Direction"]:
        """Direction of a one-cell move, or None for waits and teleports."""
        delta = (dst.x - src.x, dst.y - src.y)
        for direction in Direction.all():
            if direction.value == delta:
                return direction
        return None


# ---------------------------------------------------------------------------
# Tiles
# ---------------------------------------------------------------------------

class TileType(str, Enum):
    """What occupies a grid cell."""
    EMPTY = "empty"
    OBSTACLE = "obstacle"
    REWARD = "reward"
    PUNISHMENT = "punishment"
    GOAL = "goal"
    PORTAL = "portal"

    @classmethod
    def parse(cls, name: str) -> "TileType":
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"Unknown tile type {name!r}") from None


def tile_value(kind: TileType) -> float:
    """Display value shown on a freshly placed tile of this type."""
    if kind is TileType.REWARD:
        return REWARD_VALUE
    if kind is TileType.PUNISHMENT:
        return PUNISHMENT_VALUE
    if kind is TileType.GOAL:
        return GOAL_REWARD
    if kind is TileType.OBSTACLE:
        return OBSTACLE_PENALTY
    return 0.0


@dataclass
class Tile:
    """One grid cell and the value the rover has learned for arriving here."""
    type: TileType = TileType.EMPTY
    learned_value: float = 0.0
    visit_count: int = 0
    display_value: float = 0.0

    @classmethod
    def of(cls, kind: TileType) -> "Tile":
        """A fresh, unvisited tile of the given type."""
        return cls(type=kind, display_value=tile_value(kind))

    @property
    def enterable(self) -> bool:
        return self.type is not TileType.OBSTACLE

    def copy(self) -> "Tile":
        return replace(self)


Board = List[List[Tile]]


def create_empty_grid(size: int) -> Board:
    """A ``size x size`` board of empty, unvisited tiles."""
    if size < MIN_GRID_SIZE:
        raise ValueError(f"Grid size must be at least {MIN_GRID_SIZE}, got {size}")
    return [[Tile() for _ in range(size)] for _ in range(size)]


def clone_grid(board: Board) -> Board:
    """Deep copy of every tile."""
    return [[tile.copy() for tile in row] for row in board]


def in_bounds(board: Board, pos: Position) -> bool:
    size = len(board)
    return 0 <= pos.x < size and 0 <= pos.y < size


def tile_at(board: Board, pos: Position) -> Tile:
    return board[pos.y][pos.x]


def set_tile(board: Board, pos: Position, kind: TileType) -> None:
    """Replace the tile at ``pos`` with a fresh one (in place)."""
    board[pos.y][pos.x] = Tile.of(kind)


def iter_positions(board: Board) -> Iterator[Position]:
    """Row-major walk over every cell."""
    size = len(board)
    for y in range(size):
        for x in range(size):
            yield Position(x, y)


def positions_of(board: Board, kind: TileType) -> List[Position]:
    return [pos for pos in iter_positions(board) if tile_at(board, pos).type is kind]


def manhattan_distance(a: Position, b: Position) -> int:
    return abs(a.x - b.x) + abs(a.y - b.y)


def clear_learning(board: Board) -> Board:
    """Copy of ``board`` with the same layout but all learned values reset."""
    fresh = clone_grid(board)
    for row in fresh:
        for tile in row:
            tile.learned_value = 0.0
            tile.visit_count = 0
            tile.display_value = tile_value(tile.type)
    return fresh


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

_SYMBOLS = {
    TileType.EMPTY: ".",
    TileType.OBSTACLE: "#",
    TileType.REWARD: "+",
    TileType.PUNISHMENT: "-",
    TileType.GOAL: "G",
    TileType.PORTAL: "O",
}

_ARROWS = {
    Direction.UP: "^",
    Direction.DOWN: "v",
    Direction.LEFT: "<",
    Direction.RIGHT: ">",
}


def render(board: Board, agent: Optional[Position] = None,
           goals: Sequence[Position] = (),
           arrows: Optional[dict] = None) -> str:
    """
    ASCII rendering of a board for debugging and console demos.

    ``arrows`` optionally maps positions to a Direction; visited empty cells
    with an entry are drawn as the greedy move instead of ``.``.
    """
    goal_set = set(goals)
    lines = []
    for y, row in enumerate(board):
        cells = []
        for x, tile in enumerate(row):
            pos = Position(x, y)
            if pos == agent:
                cells.append("A")
            elif pos in goal_set:
                cells.append("G")
            elif (arrows and tile.type is TileType.EMPTY
                  and tile.visit_count > 0 and arrows.get(pos) is not None):
                cells.append(_ARROWS[arrows[pos]])
            else:
                cells.append(_SYMBOLS[tile.type])
        lines.append(" ".join(cells))
    return "\n".join(lines)


def value_matrix(board: Board) -> np.ndarray:
    """Learned values as a ``(size, size)`` numpy array indexed ``[y, x]``."""
    return np.array([[tile.learned_value for tile in row] for row in board],
                    dtype=float)


def visit_matrix(board: Board) -> np.ndarray:
    """Visit counts as a ``(size, size)`` numpy array indexed ``[y, x]``."""
    return np.array([[tile.visit_count for tile in row] for row in board],
                    dtype=int)


def count_tiles(board: Board, kinds: Iterable[TileType]) -> int:
    wanted = set(kinds)
    return sum(1 for row in board for tile in row if tile.type in wanted)
