"""
Comparison mode — two rovers, one layout, different hyperparameters.

Both rovers start on copies of the same generated board and are advanced
one after the other inside the same tick. Each owns its board, cooldowns
and history, so consumed rewards and learned values diverge from the first
step on.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

from reward_rover.constants import (
    COMPARISON_TICK_MS,
    DEFAULT_GRID_SIZE,
    get_level,
)
from reward_rover.episode import (
    EpisodeState,
    PolicyParams,
    StepOptions,
    StepResult,
    advance,
)
from reward_rover.generation import generate_world
from reward_rover.grid import clone_grid
from reward_rover.modes.base import SimulationMode
from reward_rover.stats import HistoryStats, compute_episode_summary


@dataclass
class RoverSetup:
    name: str
    policy: PolicyParams = field(default_factory=PolicyParams)


@dataclass
class ComparisonConfig:
    """Configuration for a head-to-head run."""
    level: str = "level1"
    base_size: int = DEFAULT_GRID_SIZE
    left: RoverSetup = field(default_factory=lambda: RoverSetup(
        "Rover A", PolicyParams(epsilon=0.1, alpha=0.1, gamma=0.85)))
    right: RoverSetup = field(default_factory=lambda: RoverSetup(
        "Rover B", PolicyParams(epsilon=0.3, alpha=0.3, gamma=0.6)))
    consume_rewards: bool = True
    seed: Optional[int] = None

    def __post_init__(self):
        if self.left.name == self.right.name:
            raise ValueError(f"Rovers need distinct names, both are {self.left.name!r}")


@dataclass
class Rover:
    """One contestant: its name, its own policy and its own episode state."""
    name: str
    policy: PolicyParams
    state: EpisodeState

    def stats(self) -> HistoryStats:
        return compute_episode_summary(self.state.history)


class ComparisonMode(SimulationMode):
    """Two independent rovers sharing a layout and a tick cadence."""

    name = "comparison"
    tick_interval_ms = COMPARISON_TICK_MS

    def __init__(self, config: Optional[ComparisonConfig] = None):
        self.config = config or ComparisonConfig()
        super().__init__(self.config.seed)
        self.level = get_level(self.config.level)
        self._build()

    def _build(self) -> None:
        world = generate_world(replace(self.level, goals=1), self.config.base_size,
                               self.rng)

        def rover(setup: RoverSetup) -> Rover:
            state = EpisodeState.create(clone_grid(world.grid), world.spawn,
                                        world.goals, mode=self.name)
            return Rover(setup.name, setup.policy, state)

        self.left = rover(self.config.left)
        self.right = rover(self.config.right)

    @property
    def rovers(self) -> List[Rover]:
        return [self.left, self.right]

    # -- SimulationMode ----------------------------------------------------

    def states(self) -> Dict[str, EpisodeState]:
        return {r.name: r.state for r in self.rovers}

    def _set_running(self, running: bool) -> None:
        for r in self.rovers:
            r.state = r.state.with_running(running)

    def reset(self) -> None:
        """New shared layout; both rovers start from scratch."""
        self._build()

    def step_options(self) -> StepOptions:
        return StepOptions(consume_rewards=self.config.consume_rewards,
                           auto_restart=True)

    def tick(self) -> List[StepResult]:
        results = []
        for r in self.rovers:
            if not r.state.is_running:
                continue
            result = advance(r.state, r.policy, self.step_options(), self.rng)
            r.state = result.state
            results.append(result)
        return results

    # -- settings and reporting -------------------------------------------

    def set_policy(self, side: str, **changes) -> None:
        """Change ``"left"`` or ``"right"`` rover hyperparameters."""
        if side not in ("left", "right"):
            raise ValueError(f"side must be 'left' or 'right', got {side!r}")
        r = getattr(self, side)
        r.policy = replace(r.policy, **changes)

    def leader(self) -> Optional[str]:
        """
        Name of the rover doing better, or None while tied.

        More finished episodes wins; equal counts are split on average
        episode reward.
        """
        a, b = self.left.stats(), self.right.stats()
        if a.count != b.count:
            return self.left.name if a.count > b.count else self.right.name
        if a.count == 0 or a.avg_reward == b.avg_reward:
            return None
        return self.left.name if a.avg_reward > b.avg_reward else self.right.name

    def summary(self) -> str:
        lines = [
            "═" * 55,
            "  Comparison — Head to Head",
            "═" * 55,
        ]
        for r in self.rovers:
            p = r.policy
            lines.append(f"  {r.name}  (eps={p.epsilon:.2f}, alpha={p.alpha:.2f}, "
                         f"gamma={p.gamma:.2f})")
            lines.append(r.stats().summary())
            lines.append("")
        lines.append(f"  Leader:            {self.leader() or 'tied'}")
        lines.append("═" * 55)
        return "\n".join(lines)
