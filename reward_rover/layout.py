"""
GridConfig — the serialisable layout shape shared with the persistence
service and the preset catalogue.

A layout is a board size, a sparse list of special tiles, an agent start
and one or more goals:

    {
        "size": 9,
        "tiles": [{"x": 2, "y": 1, "type": "obstacle"}, ...],
        "agent": {"x": 0, "y": 0},
        "goals": [{"x": 8, "y": 8}]
    }

Older payloads carrying a single ``"goal"`` object are accepted on load.
Only non-empty, non-goal tiles are listed; learned values are not stored.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence

from reward_rover.constants import MIN_GRID_SIZE
from reward_rover.grid import (
    Position,
    TileType,
    create_empty_grid,
    iter_positions,
    set_tile,
    tile_at,
)
from reward_rover.episode import EpisodeState


@dataclass(frozen=True)
class TileSpec:
    x: int
    y: int
    type: TileType

    @property
    def position(self) -> Position:
        return Position(self.x, self.y)


@dataclass
class GridConfig:
    """Sparse description of a board layout."""
    size: int
    tiles: List[TileSpec] = field(default_factory=list)
    agent: Optional[Position] = None
    goals: List[Position] = field(default_factory=list)

    def default_agent(self) -> Position:
        return self.agent if self.agent is not None else Position(1, 1)

    def default_goals(self) -> List[Position]:
        if self.goals:
            return list(self.goals)
        return [Position(self.size - 2, self.size - 2)]

    def validate(self) -> None:
        if self.size < MIN_GRID_SIZE:
            raise ValueError(f"Grid size must be at least {MIN_GRID_SIZE}, got {self.size}")
        points = [t.position for t in self.tiles] + [self.default_agent()] + self.default_goals()
        for pos in points:
            if not (0 <= pos.x < self.size and 0 <= pos.y < self.size):
                raise ValueError(f"Position {tuple(pos)} is outside the "
                                 f"{self.size}x{self.size} grid")

    # -- edits ---------------------------------------------------------------

    def with_tile(self, pos: Position, kind: TileType) -> "GridConfig":
        """Copy with ``pos`` set to ``kind``; EMPTY removes the entry."""
        tiles = [t for t in self.tiles if t.position != pos]
        if kind is not TileType.EMPTY:
            tiles.append(TileSpec(pos.x, pos.y, kind))
        return replace(self, tiles=tiles, goals=list(self.goals))

    def with_agent(self, pos: Position) -> "GridConfig":
        return replace(self, tiles=list(self.tiles), agent=pos,
                       goals=list(self.goals))

    def with_goals(self, goals: Sequence[Position]) -> "GridConfig":
        tiles = [t for t in self.tiles if t.position not in goals]
        return replace(self, tiles=tiles, goals=list(goals))

    # -- conversion to/from plain data -------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "size": self.size,
            "tiles": [{"x": t.x, "y": t.y, "type": t.type.value} for t in self.tiles],
            "goals": [{"x": g.x, "y": g.y} for g in self.goals],
        }
        if self.agent is not None:
            data["agent"] = {"x": self.agent.x, "y": self.agent.y}
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GridConfig":
        try:
            size = int(data["size"])
        except KeyError:
            raise ValueError("GridConfig is missing 'size'") from None

        tiles = [
            TileSpec(int(t["x"]), int(t["y"]), TileType.parse(t["type"]))
            for t in data.get("tiles", [])
        ]
        agent = _position(data.get("agent"))
        goals = [_position(g) for g in data.get("goals", [])]
        if not goals and data.get("goal") is not None:
            goals = [_position(data["goal"])]

        config = cls(size=size, tiles=tiles, agent=agent, goals=goals)
        config.validate()
        return config

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str) -> "GridConfig":
        return cls.from_dict(json.loads(text))


def _position(raw: Optional[Dict[str, Any]]) -> Optional[Position]:
    if raw is None:
        return None
    return Position(int(raw["x"]), int(raw["y"]))


# ---------------------------------------------------------------------------
# Episode state <-> layout
# ---------------------------------------------------------------------------

def state_from_config(config: GridConfig, mode: str = "playground",
                      **kwargs) -> EpisodeState:
    """
    Rehydrate a fresh episode from a layout.

    Tiles listed under the agent or a goal are dropped so those cells stay
    enterable. Goal cells are marked as goal tiles on the board.
    """
    config.validate()
    board = create_empty_grid(config.size)
    agent = config.default_agent()
    goals = config.default_goals()
    reserved = set(goals) | {agent}

    for spec in config.tiles:
        if spec.position in reserved or spec.type is TileType.GOAL:
            continue
        set_tile(board, spec.position, spec.type)
    for goal in goals:
        set_tile(board, goal, TileType.GOAL)

    return EpisodeState.create(board, agent, goals, mode=mode, **kwargs)


def config_from_state(state: EpisodeState) -> GridConfig:
    """Serialise the layout of ``state``; the spawn is saved as the agent."""
    goals = set(state.goals)
    tiles = [
        TileSpec(pos.x, pos.y, tile_at(state.grid, pos).type)
        for pos in iter_positions(state.grid)
        if tile_at(state.grid, pos).type not in (TileType.EMPTY, TileType.GOAL)
        and pos not in goals
    ]
    return GridConfig(size=state.size, tiles=tiles, agent=state.spawn,
                      goals=list(state.goals))


def layout_tiles(config: GridConfig, kind: TileType) -> Sequence[Position]:
    return [t.position for t in config.tiles if t.type is kind]
