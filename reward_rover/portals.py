"""
Portal teleportation and cooldown bookkeeping.

Any portal leads to a uniformly chosen *other* portal on the board. After a
jump both ends are locked for PORTAL_COOLDOWN_STEPS ticks so the rover cannot
immediately bounce back; a cooled portal behaves like plain floor.

Cooldown maps are plain ``{Position: remaining_ticks}`` dicts and every
helper here returns a new dict rather than editing the one it was given.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from reward_rover.constants import PORTAL_COOLDOWN_STEPS
from reward_rover.grid import Board, Position, TileType, positions_of

Cooldowns = Dict[Position, int]


@dataclass(frozen=True)
class PendingTeleport:
    """A jump that has been triggered but not yet carried out."""
    origin: Position
    destination: Position
    wait_counter: int


def find_portals(board: Board) -> List[Position]:
    """All portal cells, in row-major order."""
    return positions_of(board, TileType.PORTAL)


def resolve_teleport(board: Board, entry: Position,
                     rng: Optional[random.Random] = None) -> Position:
    """
    Exit portal for a rover entering at ``entry``.

    With fewer than two portals on the board this is a no-op and ``entry``
    is returned unchanged.
    """
    rng = rng or random
    portals = find_portals(board)
    if len(portals) < 2:
        return entry
    others = [p for p in portals if p != entry]
    if not others:
        return entry
    return others[rng.randrange(len(others))]


def decrement_cooldowns(cooldowns: Cooldowns) -> Cooldowns:
    """Tick every counter down by one, dropping those that hit zero."""
    return {pos: left - 1 for pos, left in cooldowns.items() if left > 1}


def with_cooldowns(cooldowns: Cooldowns, positions: Iterable[Position],
                   duration: int = PORTAL_COOLDOWN_STEPS) -> Cooldowns:
    """Copy of ``cooldowns`` with each of ``positions`` locked for ``duration``."""
    updated = dict(cooldowns)
    for pos in positions:
        updated[pos] = duration
    return updated


def is_on_cooldown(cooldowns: Cooldowns, pos: Position) -> bool:
    return cooldowns.get(pos, 0) > 0


def cooldowns_to_dict(cooldowns: Cooldowns) -> Dict[str, int]:
    """String-keyed form (``"x,y"``) for serialisation."""
    return {pos.key: left for pos, left in cooldowns.items()}


def cooldowns_from_dict(raw: Dict[str, int]) -> Cooldowns:
    parsed = {}
    for key, left in raw.items():
        x, y = key.split(",")
        parsed[Position(int(x), int(y))] = int(left)
    return parsed
