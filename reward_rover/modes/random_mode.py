"""
Random mode — procedurally generated worlds, optionally against the clock.

Every success throws the board away and generates a new one, so the rover
keeps meeting unfamiliar layouts. Boards may hold several goals; reaching
any of them ends the episode.

**Speedrun**: a one-second countdown runs next to the simulation. Reaching
a goal or running out of time both move the run to the next (harder,
larger) stage, up to the last one; only the first counts as a success.

**Live challenge**: every BONUS_INTERVAL seconds a bonus drops. The user
may spend it once: place a reward, punishment, obstacle or portal on an
empty cell, or teleport the rover to any free cell.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from reward_rover.constants import (
    BONUS_INTERVAL,
    DEFAULT_GRID_SIZE,
    MAX_SPEEDRUN_STAGE,
    RANDOM_TICK_MS,
    LevelConfig,
    get_level,
    pick_weighted_bonus,
    speedrun_stage,
)
from reward_rover.episode import (
    EpisodeState,
    EpisodeSummary,
    PolicyParams,
    StepOptions,
    StepResult,
    advance,
    finish_episode,
)
from reward_rover.generation import generate_world
from reward_rover.grid import (
    Position,
    TileType,
    clone_grid,
    in_bounds,
    set_tile,
    tile_at,
)
from reward_rover.modes.base import SimulationMode

PLACEABLE_BONUSES = {
    "reward": TileType.REWARD,
    "punishment": TileType.PUNISHMENT,
    "obstacle": TileType.OBSTACLE,
    "portal": TileType.PORTAL,
}


@dataclass
class RandomModeConfig:
    """Configuration for Random mode."""
    level: str = "level1"
    base_size: int = DEFAULT_GRID_SIZE
    policy: PolicyParams = field(default_factory=PolicyParams)
    consume_rewards: bool = True
    speedrun: bool = False
    seed: Optional[int] = None


@dataclass(frozen=True)
class SpeedrunState:
    active: bool = False
    stage: int = 0
    time_left: int = 0
    time_limit: int = 0

    @property
    def time_used(self) -> int:
        return self.time_limit - self.time_left


class RandomMode(SimulationMode):
    """Generated worlds with multi-goal boards, speedrun and bonus drops."""

    name = "random"
    tick_interval_ms = RANDOM_TICK_MS

    def __init__(self, config: Optional[RandomModeConfig] = None):
        self.config = config or RandomModeConfig()
        super().__init__(self.config.seed)
        self.level = get_level(self.config.level)
        self.policy = self.config.policy
        self._reset_run()

    # -- construction ------------------------------------------------------

    def _reset_run(self) -> None:
        self.speedrun = self._stage_state(0) if self.config.speedrun else SpeedrunState()
        self.bonus_ready = False
        self.active_bonus: Optional[str] = None
        self.latest_drop: Optional[str] = None
        self.bonus_countdown = BONUS_INTERVAL
        self.state = self._fresh_state()

    @staticmethod
    def _stage_state(stage: int) -> SpeedrunState:
        limit = speedrun_stage(stage).time_limit
        return SpeedrunState(active=True, stage=stage, time_left=limit, time_limit=limit)

    @property
    def mode_tag(self) -> str:
        return "speedrun" if self.speedrun.active else "random"

    def current_level(self) -> LevelConfig:
        if self.speedrun.active:
            return speedrun_stage(self.speedrun.stage).level
        return self.level

    def _fresh_state(self, episode: int = 1,
                     history: Tuple[EpisodeSummary, ...] = (),
                     running: bool = False) -> EpisodeState:
        world = generate_world(self.current_level(), self.config.base_size, self.rng)
        return EpisodeState.create(world.grid, world.spawn, world.goals,
                                   mode=self.mode_tag, episode=episode,
                                   history=history, is_running=running)

    def _regenerate(self, carried: EpisodeState) -> None:
        """New board; episode counter, history and running flag carry over."""
        self.state = self._fresh_state(carried.episode, carried.history,
                                       carried.is_running)

    def _next_stage(self) -> None:
        self.speedrun = self._stage_state(min(self.speedrun.stage + 1, MAX_SPEEDRUN_STAGE))

    # -- SimulationMode ----------------------------------------------------

    def states(self) -> Dict[str, EpisodeState]:
        return {self.name: self.state}

    def _set_running(self, running: bool) -> None:
        self.state = self.state.with_running(running)

    def reset(self) -> None:
        self._reset_run()

    def step_options(self) -> StepOptions:
        return StepOptions(consume_rewards=self.config.consume_rewards,
                           auto_restart=True)

    def tick(self) -> List[StepResult]:
        if not self.state.is_running:
            return []

        result = advance(self.state, self.policy, self.step_options(), self.rng)
        if not result.reached_goal:
            self.state = result.state
            return [result]

        finished = result.state
        summary = result.summary
        if self.speedrun.active:
            summary = replace(summary, stage=self.speedrun.stage,
                              time_limit=self.speedrun.time_limit,
                              time_used=self.speedrun.time_used)
            finished = replace(finished, history=finished.history[:-1] + (summary,))
            self._next_stage()
        self._regenerate(finished)
        return [result._replace(state=self.state, summary=summary)]

    def tick_timer(self) -> List[EpisodeSummary]:
        """Bonus countdown and, in a speedrun, the stage clock."""
        if not self.state.is_running:
            return []

        if not self.bonus_ready:
            self.bonus_countdown -= 1
            if self.bonus_countdown <= 0:
                self.active_bonus = pick_weighted_bonus(self.rng)
                self.latest_drop = self.active_bonus
                self.bonus_ready = True
                self.bonus_countdown = BONUS_INTERVAL

        if not self.speedrun.active:
            return []

        self.speedrun = replace(self.speedrun, time_left=self.speedrun.time_left - 1)
        if self.speedrun.time_left > 0:
            return []
        return [self.expire()]

    def expire(self) -> EpisodeSummary:
        """Record a speedrun timeout and move on to the next stage."""
        finished, summary = finish_episode(
            self.state, success=False, mode="speedrun",
            stage=self.speedrun.stage,
            time_limit=self.speedrun.time_limit,
            time_used=self.speedrun.time_limit,
        )
        self._next_stage()
        self._regenerate(finished)
        return summary

    # -- settings ----------------------------------------------------------

    def set_level(self, key: str) -> None:
        self.level = get_level(key)
        self.config.level = key
        self._reset_run()

    def set_speedrun(self, active: bool) -> None:
        self.config.speedrun = active
        self._reset_run()

    def set_policy(self, **changes) -> None:
        self.policy = replace(self.policy, **changes)

    # -- live challenge ----------------------------------------------------

    def use_bonus(self, pos: Position) -> bool:
        """
        Spend the ready bonus at ``pos``.

        Tile bonuses need an empty cell that is not the rover, its spawn or
        a goal. The teleport bonus needs any enterable non-goal cell. Returns
        False (and keeps the bonus) when nothing is ready or the cell is
        unsuitable.
        """
        if not self.bonus_ready or self.active_bonus is None:
            return False
        pos = Position(*pos)
        state = self.state
        if not in_bounds(state.grid, pos) or pos in state.goals:
            return False

        if self.active_bonus == "teleport":
            if not tile_at(state.grid, pos).enterable or pos == state.agent:
                return False
            self.state = replace(state, agent=pos, pending_teleport=None)
        else:
            if (pos in (state.agent, state.spawn)
                    or tile_at(state.grid, pos).type is not TileType.EMPTY):
                return False
            grid = clone_grid(state.grid)
            set_tile(grid, pos, PLACEABLE_BONUSES[self.active_bonus])
            self.state = replace(state, grid=grid)

        self.bonus_ready = False
        self.active_bonus = None
        return True
