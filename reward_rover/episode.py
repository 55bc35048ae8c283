"""
Episode state and the single-tick transition shared by every mode.

One call to ``advance`` is one simulation tick:

    1. tick portal cooldowns down
    2. finish a pending teleport, or pick the next cell (epsilon-greedy)
       and trigger a teleport if it is an unlocked portal
    3. compute the immediate reward of the resolved destination
    4. optionally consume a reward/punishment tile
    5. Q-update the tile being departed
    6. move, count the step, accumulate the reward
    7. on a goal: record a summary, respawn, bump the episode counter

``advance`` never mutates the state it is given. It returns a new
``EpisodeState`` holding a freshly cloned board, so the previous tick's
state can keep being rendered while the next one is built.

Modes differ only in how they wrap this: Playground asks for a two-tick
teleport delay, Random regenerates the world on success, Comparison runs
two states side by side.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field, replace
from typing import Any, Dict, NamedTuple, Optional, Sequence, Tuple

from reward_rover.constants import (
    DISCOUNT_FACTOR,
    EXPLORATION_RATE,
    HISTORY_LIMIT,
    LEARNING_RATE,
    STEP_PENALTY,
)
from reward_rover.grid import (
    Board,
    Direction,
    Position,
    Tile,
    TileType,
    clone_grid,
    in_bounds,
    tile_at,
)
from reward_rover.portals import (
    Cooldowns,
    PendingTeleport,
    decrement_cooldowns,
    is_on_cooldown,
    resolve_teleport,
    with_cooldowns,
)
from reward_rover.qlearning import select_action, tile_reward, update_q_value


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PolicyParams:
    """Exploration rate, learning rate and discount factor for one rover."""
    epsilon: float = EXPLORATION_RATE
    alpha: float = LEARNING_RATE
    gamma: float = DISCOUNT_FACTOR

    def __post_init__(self):
        if not 0.0 <= self.epsilon <= 1.0:
            raise ValueError(f"epsilon must be in [0, 1], got {self.epsilon}")
        if not 0.0 < self.alpha <= 0.5:
            raise ValueError(f"alpha must be in (0, 0.5], got {self.alpha}")
        if not 0.0 <= self.gamma <= 0.99:
            raise ValueError(f"gamma must be in [0, 0.99], got {self.gamma}")


@dataclass(frozen=True)
class StepOptions:
    """Per-tick switches supplied by the host."""
    consume_rewards: bool = False   # reward/punishment tiles vanish on pickup
    auto_restart: bool = True       # keep running after reaching a goal
    portal_delay: int = 0           # ticks a teleport takes; 0 = instant
    bias: Optional[Direction] = None


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EpisodeSummary:
    """Record of one finished episode, kept for statistics only."""
    episode: int
    steps: int
    reward: float
    success: bool
    mode: str
    stage: Optional[int] = None
    time_limit: Optional[int] = None
    time_used: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "episode": self.episode,
            "steps": self.steps,
            "reward": self.reward,
            "success": self.success,
            "mode": self.mode,
        }
        for name in ("stage", "time_limit", "time_used"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data


@dataclass(frozen=True)
class EpisodeState:
    """Complete snapshot of one rover's simulation."""
    agent: Position
    goals: Tuple[Position, ...]
    grid: Board
    spawn: Position
    mode: str = "playground"
    is_running: bool = False
    episode: int = 1
    total_reward: float = 0.0
    current_steps: int = 0
    history: Tuple[EpisodeSummary, ...] = ()
    portal_cooldowns: Cooldowns = field(default_factory=dict)
    pending_teleport: Optional[PendingTeleport] = None

    @classmethod
    def create(cls, grid: Board, agent: Position, goals: Sequence[Position],
               mode: str = "playground", **kwargs) -> "EpisodeState":
        """Validated constructor; the agent position doubles as the spawn."""
        agent = Position(*agent)
        goals = tuple(Position(*g) for g in goals)
        if not goals:
            raise ValueError("At least one goal is required")
        for pos in (agent,) + goals:
            if not in_bounds(grid, pos):
                raise ValueError(f"Position {tuple(pos)} is outside the "
                                 f"{len(grid)}x{len(grid)} grid")
            if not tile_at(grid, pos).enterable:
                raise ValueError(f"Position {tuple(pos)} is an obstacle")
        if agent in goals:
            raise ValueError("Agent cannot start on a goal")
        return cls(agent=agent, goals=goals, grid=grid, spawn=agent,
                   mode=mode, **kwargs)

    @property
    def size(self) -> int:
        return len(self.grid)

    @property
    def goal(self) -> Position:
        """First goal, for single-goal modes."""
        return self.goals[0]

    def with_running(self, running: bool) -> "EpisodeState":
        return replace(self, is_running=running)


class StepResult(NamedTuple):
    """Outcome of one tick."""
    state: EpisodeState
    reward: float
    reached_goal: bool
    teleported: bool
    collected: Optional[TileType]
    waiting: bool = False
    summary: Optional[EpisodeSummary] = None


def append_history(history: Sequence[EpisodeSummary],
                   summary: EpisodeSummary,
                   limit: int = HISTORY_LIMIT) -> Tuple[EpisodeSummary, ...]:
    """History with ``summary`` appended, keeping only the newest ``limit``."""
    return (tuple(history) + (summary,))[-limit:]


def finish_episode(state: EpisodeState, success: bool,
                   steps: Optional[int] = None,
                   reward: Optional[float] = None,
                   keep_running: bool = True,
                   **extra) -> Tuple[EpisodeState, EpisodeSummary]:
    """
    Close the current episode: record it and respawn the rover.

    Used both for goal arrival and for speedrun timeouts. ``extra`` is passed
    through to the summary (stage, time_limit, time_used).
    """
    summary = EpisodeSummary(
        episode=state.episode,
        steps=state.current_steps if steps is None else steps,
        reward=state.total_reward if reward is None else reward,
        success=success,
        mode=extra.pop("mode", state.mode),
        **extra,
    )
    next_state = replace(
        state,
        agent=state.spawn,
        total_reward=0.0,
        current_steps=0,
        episode=state.episode + 1,
        history=append_history(state.history, summary),
        portal_cooldowns={},
        pending_teleport=None,
        is_running=state.is_running and keep_running,
    )
    return next_state, summary


# ---------------------------------------------------------------------------
# The tick
# ---------------------------------------------------------------------------

def advance(state: EpisodeState, policy: PolicyParams,
            options: Optional[StepOptions] = None,
            rng: Optional[random.Random] = None) -> StepResult:
    """Advance one rover by one tick. See the module docstring."""
    options = options or StepOptions()
    rng = rng or random

    cooldowns = decrement_cooldowns(state.portal_cooldowns)
    pending = state.pending_teleport
    current = state.agent
    teleported = False
    cooled_landing = False

    if pending is not None:
        if pending.wait_counter > 1:
            held = replace(pending, wait_counter=pending.wait_counter - 1)
            return StepResult(
                replace(state, portal_cooldowns=cooldowns, pending_teleport=held),
                reward=0.0, reached_goal=False, teleported=False,
                collected=None, waiting=True,
            )
        destination = pending.destination
        pending = None
        teleported = True
    else:
        destination = select_action(state.grid, current, policy.epsilon,
                                    options.bias, rng)
        landing = tile_at(state.grid, destination)
        if landing.type is TileType.PORTAL and destination not in state.goals:
            if is_on_cooldown(cooldowns, destination):
                cooled_landing = True
            else:
                exit_portal = resolve_teleport(state.grid, destination, rng)
                if exit_portal != destination:
                    cooldowns = with_cooldowns(cooldowns, [destination, exit_portal])
                    if options.portal_delay > 0:
                        pending = PendingTeleport(destination, exit_portal,
                                                  options.portal_delay)
                    else:
                        destination = exit_portal
                        teleported = True

    if cooled_landing:
        reward = STEP_PENALTY
    else:
        reward = tile_reward(state.grid, state.goals, destination)

    grid = clone_grid(state.grid)
    collected = None
    target = tile_at(grid, destination)
    if (options.consume_rewards
            and target.type in (TileType.REWARD, TileType.PUNISHMENT)
            and destination not in state.goals):
        collected = target.type
        grid[destination.y][destination.x] = Tile(visit_count=target.visit_count)

    update_q_value(grid, current, destination, reward, policy.alpha, policy.gamma)

    steps = state.current_steps + 1
    total = state.total_reward + reward

    if destination in state.goals:
        finished, summary = finish_episode(
            replace(state, grid=grid), success=True, steps=steps, reward=total,
            keep_running=options.auto_restart,
        )
        return StepResult(finished, reward, True, teleported, collected,
                          summary=summary)

    moved = replace(
        state,
        grid=grid,
        agent=destination,
        current_steps=steps,
        total_reward=total,
        portal_cooldowns=cooldowns,
        pending_teleport=pending,
    )
    return StepResult(moved, reward, False, teleported, collected)
