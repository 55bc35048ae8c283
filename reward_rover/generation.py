"""
Procedural world generation.

Two recipes, picked by the level tier:

- **Scatter** (level 1/2 style): obstacles, portals, rewards and
  punishments are dropped on random empty cells, each in a count derived
  from ``round(size^2 * density)``.
- **Maze** (hardest tier): the board starts as solid wall and a recursive
  backtracker carves corridors two cells at a time, which leaves every
  carved cell connected by construction. A few extra walls and border
  cells are knocked out afterwards so there is more than one route.

Goals are then placed far from the spawn, preferring cells the rover can
actually reach. Goal placement never fails: if too few cells are far
enough away the distance requirement is relaxed, and if no empty cell
is left at all, the farthest non-spawn cell is turned into a goal.
"""

from __future__ import annotations

import math
import random
from collections import deque
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set

from reward_rover.constants import (
    MIN_GOAL_DISTANCE,
    MIN_GRID_SIZE,
    PLACEMENT_GUARD,
    LevelConfig,
)
from reward_rover.grid import (
    Board,
    Direction,
    Position,
    TileType,
    create_empty_grid,
    in_bounds,
    iter_positions,
    manhattan_distance,
    set_tile,
    tile_at,
)

MAZE_EXTRA_OPENINGS = 0.03   # fraction of cells re-opened after carving
MAZE_BORDER_OPENINGS = 0.1   # fraction of eligible border walls re-opened


@dataclass
class GeneratedWorld:
    """A freshly generated board plus where the rover starts and must go."""
    grid: Board
    spawn: Position
    goals: List[Position]
    level: LevelConfig

    @property
    def size(self) -> int:
        return len(self.grid)


def calculate_item_count(size: int, density: float, minimum: int = 1) -> int:
    """``round(size^2 * density)`` (halves round up), never below ``minimum``."""
    return max(minimum, int(math.floor(size * size * density + 0.5)))


def neighbours(board: Board, pos: Position) -> List[Position]:
    """In-bounds orthogonal neighbours, regardless of tile type."""
    result = []
    for direction in Direction.all():
        nxt = pos.offset(*direction.delta())
        if in_bounds(board, nxt):
            result.append(nxt)
    return result


def reachable_cells(board: Board, start: Position) -> Set[Position]:
    """Breadth-first flood fill over enterable cells."""
    seen = {start}
    queue = deque([start])
    while queue:
        pos = queue.popleft()
        for nxt in neighbours(board, pos):
            if nxt not in seen and tile_at(board, nxt).enterable:
                seen.add(nxt)
                queue.append(nxt)
    return seen


# ---------------------------------------------------------------------------
# Scatter placement
# ---------------------------------------------------------------------------

def place_random_tiles(board: Board, count: int, kind: TileType,
                       forbidden: Set[Position],
                       rng: random.Random) -> List[Position]:
    """
    Drop up to ``count`` tiles of ``kind`` on random empty, allowed cells.

    Gives up after PLACEMENT_GUARD draws so a saturated board cannot loop
    forever. Placed cells are added to ``forbidden``.
    """
    size = len(board)
    placed: List[Position] = []
    guard = 0
    while len(placed) < count and guard < PLACEMENT_GUARD:
        guard += 1
        pos = Position(rng.randrange(size), rng.randrange(size))
        if pos in forbidden or tile_at(board, pos).type is not TileType.EMPTY:
            continue
        set_tile(board, pos, kind)
        forbidden.add(pos)
        placed.append(pos)
    return placed


# ---------------------------------------------------------------------------
# Maze carving
# ---------------------------------------------------------------------------

def generate_maze(board: Board, forbidden: Set[Position], rng: random.Random,
                  start: Optional[Position] = None) -> None:
    """
    Carve a maze into ``board`` in place.

    Forbidden cells are never walled. Carving starts at ``start`` (default:
    one cell in from the bottom-left corner) and jumps two cells at a time,
    opening the wall cell in between.
    """
    size = len(board)
    start = start or Position(1, size - 2)

    for pos in iter_positions(board):
        if pos not in forbidden:
            set_tile(board, pos, TileType.OBSTACLE)

    def open_cell(pos: Position) -> None:
        if pos not in forbidden:
            set_tile(board, pos, TileType.EMPTY)

    # Recursive backtracker with an explicit stack
    visited = {start}
    open_cell(start)
    stack = [start]
    while stack:
        cur = stack[-1]
        jumps = [
            (cur.offset(dx * 2, dy * 2), cur.offset(dx, dy))
            for dx, dy in (d.delta() for d in Direction.all())
        ]
        rng.shuffle(jumps)
        for nxt, wall in jumps:
            if in_bounds(board, nxt) and nxt not in visited:
                open_cell(wall)
                open_cell(nxt)
                visited.add(nxt)
                stack.append(nxt)
                break
        else:
            stack.pop()

    # Extra openings for alternate routes
    extra = max(1, int(size * size * MAZE_EXTRA_OPENINGS))
    for _ in range(extra):
        pos = Position(rng.randrange(size), rng.randrange(size))
        if pos not in forbidden and tile_at(board, pos).type is TileType.OBSTACLE:
            open_cell(pos)

    # Knock a few holes in the outer ring next to carved corridors
    border = [
        pos for pos in iter_positions(board)
        if pos not in forbidden
        and (pos.x in (0, size - 1) or pos.y in (0, size - 1))
        and tile_at(board, pos).type is TileType.OBSTACLE
        and any(tile_at(board, n).type is TileType.EMPTY
                for n in neighbours(board, pos))
    ]
    if border:
        count = max(1, int(len(border) * MAZE_BORDER_OPENINGS))
        for pos in rng.sample(border, min(count, len(border))):
            open_cell(pos)


# ---------------------------------------------------------------------------
# Goal placement
# ---------------------------------------------------------------------------

def select_goal_positions(board: Board, count: int, start: Position,
                          forbidden: Set[Position], min_distance: int,
                          rng: random.Random,
                          allowed: Optional[Iterable[Position]] = None
                          ) -> List[Position]:
    """
    Pick ``count`` empty cells at least ``min_distance`` from ``start``.

    If too few qualify, the farthest available cells (up to three times
    ``count``) form the pool instead. ``allowed`` restricts the search,
    typically to cells reachable from the spawn; when it leaves nothing,
    every empty cell is considered.
    """
    allowed_set = set(allowed) if allowed is not None else None

    def collect(restrict: Optional[Set[Position]]) -> List[Position]:
        return [
            pos for pos in iter_positions(board)
            if tile_at(board, pos).type is TileType.EMPTY
            and pos not in forbidden and pos != start
            and (restrict is None or pos in restrict)
        ]

    fallbacks = collect(allowed_set)
    if not fallbacks and allowed_set is not None:
        fallbacks = collect(None)
    if not fallbacks:
        # Nothing empty left: take any non-forbidden, non-spawn cell
        fallbacks = [pos for pos in iter_positions(board)
                     if pos not in forbidden and pos != start]

    candidates = [p for p in fallbacks if manhattan_distance(start, p) >= min_distance]
    if len(candidates) >= count:
        pool = candidates
    else:
        ranked = sorted(fallbacks, key=lambda p: manhattan_distance(start, p),
                        reverse=True)
        pool = ranked[:min(len(ranked), max(count, count * 3))]

    pool = list(pool)
    selected: List[Position] = []
    while len(selected) < count and pool:
        selected.append(pool.pop(rng.randrange(len(pool))))
    return selected


# ---------------------------------------------------------------------------
# Whole worlds
# ---------------------------------------------------------------------------

def generate_world(level: LevelConfig, base_size: int,
                   rng: Optional[random.Random] = None) -> GeneratedWorld:
    """Build a complete random board for ``level``."""
    rng = rng or random.Random()
    size = max(MIN_GRID_SIZE, base_size + level.size_offset)
    board = create_empty_grid(size)
    spawn = Position(1, size - 2)
    forbidden = {spawn}

    if level.maze:
        generate_maze(board, forbidden, rng, start=spawn)
        min_distance = MIN_GOAL_DISTANCE + size // 2
    else:
        safe_zone = forbidden | set(neighbours(board, spawn))
        place_random_tiles(board, calculate_item_count(size, level.obstacle_density),
                           TileType.OBSTACLE, safe_zone, rng)
        min_distance = MIN_GOAL_DISTANCE

    goals = select_goal_positions(board, level.goals, spawn, forbidden,
                                  min_distance, rng,
                                  allowed=reachable_cells(board, spawn))
    for goal in goals:
        set_tile(board, goal, TileType.GOAL)
        forbidden.add(goal)

    if level.portal_pairs:
        place_random_tiles(board, level.portal_pairs * 2, TileType.PORTAL,
                           forbidden, rng)
    place_random_tiles(board, calculate_item_count(size, level.reward_density),
                       TileType.REWARD, forbidden, rng)
    place_random_tiles(board, calculate_item_count(size, level.punishment_density),
                       TileType.PUNISHMENT, forbidden, rng)

    return GeneratedWorld(grid=board, spawn=spawn, goals=goals, level=level)
