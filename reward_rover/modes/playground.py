"""
Playground mode — one rover, one goal, a board the user edits.

The board comes from a preset, a saved layout or a blank grid. While the
simulation is paused the user can paint tiles and move the spawn or goal;
learned values survive edits but not a reset.

Portals here take two ticks to resolve: the rover visibly waits on the
entry portal before it appears at the exit.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

from reward_rover.constants import (
    DEFAULT_GRID_SIZE,
    MIN_GRID_SIZE,
    PLAYGROUND_SPEEDS,
    PORTAL_WAIT_TICKS,
)
from reward_rover.episode import (
    EpisodeState,
    PolicyParams,
    StepOptions,
    StepResult,
    advance,
)
from reward_rover.grid import (
    Direction,
    Position,
    TileType,
    clear_learning,
    clone_grid,
    in_bounds,
    set_tile,
    tile_at,
)
from reward_rover.layout import GridConfig, state_from_config
from reward_rover.modes.base import SimulationMode
from reward_rover.presets import get_preset


@dataclass
class PlaygroundConfig:
    """Configuration for the Playground."""
    size: int = DEFAULT_GRID_SIZE
    policy: PolicyParams = field(default_factory=PolicyParams)
    consume_rewards: bool = False
    auto_restart: bool = True
    speed: str = "1x"
    seed: Optional[int] = None


class Playground(SimulationMode):
    """Single-rover sandbox with editing and a two-tick portal delay."""

    name = "playground"

    def __init__(self, config: Optional[PlaygroundConfig] = None,
                 layout: Optional[GridConfig] = None):
        self.config = config or PlaygroundConfig()
        super().__init__(self.config.seed)
        if self.config.speed not in PLAYGROUND_SPEEDS:
            raise ValueError(f"Unknown speed {self.config.speed!r}")
        self.policy = self.config.policy
        self.bias: Optional[Direction] = None
        self.load_layout(layout or GridConfig(size=self.config.size))

    # -- SimulationMode ----------------------------------------------------

    @property
    def tick_interval_ms(self) -> int:
        return PLAYGROUND_SPEEDS[self.config.speed]

    def states(self) -> Dict[str, EpisodeState]:
        return {self.name: self.state}

    def _set_running(self, running: bool) -> None:
        self.state = self.state.with_running(running)

    def step_options(self) -> StepOptions:
        return StepOptions(
            consume_rewards=self.config.consume_rewards,
            auto_restart=self.config.auto_restart,
            portal_delay=PORTAL_WAIT_TICKS,
            bias=self.bias,
        )

    def tick(self) -> List[StepResult]:
        if not self.state.is_running:
            return []
        return [self.step()]

    def step(self) -> StepResult:
        """Advance once regardless of the running flag."""
        result = advance(self.state, self.policy, self.step_options(), self.rng)
        self.state = result.state
        return result

    def reset(self) -> None:
        """
        Authored layout, fresh learning, episode counter and history.

        Tiles consumed during the run come back; edits made since the layout
        was loaded are kept.
        """
        self.state = state_from_config(self.layout, mode=self.name)

    # -- settings ----------------------------------------------------------

    def set_speed(self, speed: str) -> None:
        if speed not in PLAYGROUND_SPEEDS:
            raise ValueError(f"Unknown speed {speed!r}; expected one of {list(PLAYGROUND_SPEEDS)}")
        self.config.speed = speed

    def set_policy(self, **changes) -> None:
        self.policy = replace(self.policy, **changes)

    def set_bias(self, direction: Optional[Direction]) -> None:
        """Held arrow key, or None when released."""
        self.bias = direction

    def clear_learning(self) -> None:
        """Forget learned values but keep layout, position and history."""
        self.state = replace(self.state, grid=clear_learning(self.state.grid))

    # -- layouts -----------------------------------------------------------

    def load_layout(self, layout: GridConfig) -> None:
        self.state = state_from_config(layout, mode=self.name)
        self.layout = layout.with_agent(self.state.spawn).with_goals(self.state.goals)

    def load_preset(self, key: str) -> None:
        self.load_layout(get_preset(key).config)

    def export_layout(self) -> GridConfig:
        """The authored layout: consumed tiles are still listed."""
        return self.layout.with_goals(self.layout.goals)

    def resize(self, size: int) -> None:
        """New blank board; everything learned is discarded."""
        if size < MIN_GRID_SIZE:
            raise ValueError(f"Grid size must be at least {MIN_GRID_SIZE}, got {size}")
        self.config.size = size
        self.load_layout(GridConfig(size=size))

    # -- editing -----------------------------------------------------------

    def _editable(self, pos: Position) -> bool:
        return (in_bounds(self.state.grid, pos)
                and pos != self.state.agent
                and pos != self.state.spawn
                and pos not in self.state.goals)

    def place_tile(self, pos: Position, kind: TileType) -> bool:
        """
        Paint ``kind`` at ``pos``; painting the same type again clears it.

        Returns False for cells that cannot be edited (agent, spawn, goal,
        out of bounds). Goals are moved with ``move_goal`` instead.
        """
        pos = Position(*pos)
        if kind is TileType.GOAL or not self._editable(pos):
            return False
        grid = clone_grid(self.state.grid)
        current = tile_at(grid, pos).type
        painted = TileType.EMPTY if current is kind else kind
        set_tile(grid, pos, painted)
        self.state = replace(self.state, grid=grid)
        self.layout = self.layout.with_tile(pos, painted)
        return True

    def move_spawn(self, pos: Position) -> bool:
        """Move the spawn (and the rover) to an enterable, non-goal cell."""
        pos = Position(*pos)
        if (not in_bounds(self.state.grid, pos) or pos in self.state.goals
                or not tile_at(self.state.grid, pos).enterable):
            return False
        self.state = replace(self.state, spawn=pos, agent=pos,
                             pending_teleport=None, current_steps=0,
                             total_reward=0.0)
        self.layout = self.layout.with_agent(pos)
        return True

    def move_goal(self, pos: Position) -> bool:
        """Move the single goal; whatever tile was there is replaced."""
        pos = Position(*pos)
        if (not in_bounds(self.state.grid, pos)
                or pos in (self.state.agent, self.state.spawn)):
            return False
        grid = clone_grid(self.state.grid)
        set_tile(grid, self.state.goal, TileType.EMPTY)
        set_tile(grid, pos, TileType.GOAL)
        self.state = replace(self.state, grid=grid, goals=(pos,))
        self.layout = self.layout.with_goals([pos])
        return True
