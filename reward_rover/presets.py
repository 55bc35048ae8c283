"""
Hand-authored Playground layouts.

Each preset is stored as the same sparse shape the persistence service
uses, so loading one goes through ``GridConfig.from_dict``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from reward_rover.layout import GridConfig


@dataclass(frozen=True)
class PresetLevel:
    key: str
    name: str
    description: str
    config: GridConfig


def _tiles(kind: str, cells: List[Tuple[int, int]]) -> List[dict]:
    return [{"x": x, "y": y, "type": kind} for x, y in cells]


_TRAP = {
    "size": 9,
    "tiles": (
        # upper trap: rewards leading into a punishment
        _tiles("obstacle", [(2, 1), (2, 2), (2, 3), (3, 3)])
        + _tiles("reward", [(3, 1), (3, 2)])
        + _tiles("punishment", [(4, 2)])
        # middle trap that looks like a shortcut
        + _tiles("obstacle", [(5, 3), (5, 4), (5, 5), (6, 5)])
        + _tiles("reward", [(6, 3), (6, 4)])
        + _tiles("punishment", [(7, 4)])
        # lower portal trap
        + _tiles("obstacle", [(1, 6), (2, 6), (2, 7)])
        + _tiles("reward", [(1, 7)])
        + _tiles("portal", [(1, 8), (7, 1)])
        # main path
        + _tiles("obstacle", [(4, 4), (4, 5), (3, 6), (5, 7)])
        + _tiles("reward", [(1, 4), (3, 5), (4, 7), (6, 7)])
        + _tiles("punishment", [(2, 5), (5, 6)])
    ),
    "agent": {"x": 0, "y": 0},
    "goal": {"x": 8, "y": 8},
}

_SPIRAL_WALLS = (
    [(x, 1) for x in range(1, 8)]
    + [(7, y) for y in range(2, 8)]
    + [(x, 7) for x in range(6, 0, -1)]
    + [(1, y) for y in range(6, 1, -1)]
    + [(3, 3), (4, 3), (5, 3), (5, 4), (5, 5), (4, 5), (3, 5), (3, 4)]
)

_SPIRAL = {
    "size": 9,
    "tiles": (
        _tiles("obstacle", _SPIRAL_WALLS)
        + _tiles("portal", [(4, 4), (6, 6)])
        + _tiles("reward", [(2, 3), (6, 3), (2, 5), (6, 5)])
        + _tiles("punishment", [(2, 2), (6, 2), (2, 6)])
    ),
    "agent": {"x": 0, "y": 0},
    "goal": {"x": 8, "y": 8},
}

_CROSSROADS = {
    "size": 11,
    "tiles": (
        # centre cross
        _tiles("obstacle", [(5, 3), (5, 4), (5, 6), (5, 7),
                            (3, 5), (4, 5), (6, 5), (7, 5)])
        # north: risky but rewarding
        + _tiles("reward", [(5, 0), (5, 1)])
        + _tiles("punishment", [(5, 2)])
        + _tiles("obstacle", [(4, 1), (6, 1)])
        # south: safe but long
        + _tiles("reward", [(5, 8), (5, 9)])
        + _tiles("obstacle", [(4, 9), (6, 9)])
        # east: portal shortcut
        + _tiles("portal", [(8, 5), (10, 5)])
        + _tiles("reward", [(9, 5)])
        + _tiles("obstacle", [(9, 4), (9, 6)])
        # west: punishment heavy
        + _tiles("punishment", [(2, 5), (1, 5)])
        + _tiles("reward", [(0, 5)])
        + _tiles("obstacle", [(1, 4), (1, 6)])
        # corners
        + _tiles("reward", [(2, 2), (8, 2), (2, 8)])
        + _tiles("punishment", [(8, 8)])
        + _tiles("obstacle", [(3, 3), (7, 3), (3, 7), (7, 7)])
    ),
    "agent": {"x": 5, "y": 5},
    "goal": {"x": 10, "y": 0},
}


PRESET_LEVELS: Dict[str, PresetLevel] = {
    "trap": PresetLevel(
        key="trap",
        name="The Trap",
        description="Multiple tempting dead ends with rewards - the rover must learn patience!",
        config=GridConfig.from_dict(_TRAP),
    ),
    "spiral": PresetLevel(
        key="spiral",
        name="Spiral of Chaos",
        description="A dangerous spiral with portals at the center - only the smartest rovers find the way!",
        config=GridConfig.from_dict(_SPIRAL),
    ),
    "crossroads": PresetLevel(
        key="crossroads",
        name="Crossroads of Decisions",
        description="Four paths, one decision - which path leads to victory?",
        config=GridConfig.from_dict(_CROSSROADS),
    ),
}


def get_preset(key: str) -> PresetLevel:
    if key not in PRESET_LEVELS:
        raise ValueError(f"Unknown preset {key!r}; expected one of {sorted(PRESET_LEVELS)}")
    return PRESET_LEVELS[key]
