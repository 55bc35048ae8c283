"""
Tunable constants for the Reward Rover simulation.

Reward magnitudes, policy defaults, portal timing, level tiers and the
speedrun ladder all live here so the rest of the package can stay free of
magic numbers.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, replace
from typing import Dict, List


# ---------------------------------------------------------------------------
# Q-learning hyperparameters and rewards
# ---------------------------------------------------------------------------

LEARNING_RATE = 0.1
DISCOUNT_FACTOR = 0.85
EXPLORATION_RATE = 0.1

STEP_PENALTY = -1.0
REWARD_VALUE = 12.0
PUNISHMENT_VALUE = -15.0
OBSTACLE_PENALTY = -20.0
GOAL_REWARD = REWARD_VALUE * 2

# Directional bias (held arrow key)
BIAS_OVERRIDE_CHANCE = 0.35
BIAS_BONUS = 0.05

# ---------------------------------------------------------------------------
# Portals, grid and episode bookkeeping
# ---------------------------------------------------------------------------

PORTAL_COOLDOWN_STEPS = 4
PORTAL_WAIT_TICKS = 2

MIN_GRID_SIZE = 4
DEFAULT_GRID_SIZE = 10
MIN_GOAL_DISTANCE = 5
PLACEMENT_GUARD = 5000
HISTORY_LIMIT = 20

# ---------------------------------------------------------------------------
# Scheduling cadence (milliseconds per tick)
# ---------------------------------------------------------------------------

RANDOM_TICK_MS = 220
COMPARISON_TICK_MS = 220
PLAYGROUND_SPEEDS: Dict[str, int] = {
    "1x": 220,
    "2x": 110,
    "5x": 44,
    "max": 16,
}

# ---------------------------------------------------------------------------
# Live challenge bonuses
# ---------------------------------------------------------------------------

BONUS_INTERVAL = 10  # seconds between bonus drops
BONUS_TYPES: List[str] = ["reward", "punishment", "obstacle", "portal", "teleport"]
BONUS_WEIGHTS: Dict[str, int] = {
    "reward": 3,
    "punishment": 3,
    "obstacle": 3,
    "portal": 1,
    "teleport": 2,
}


def pick_weighted_bonus(rng: random.Random) -> str:
    """Draw a bonus type proportionally to BONUS_WEIGHTS."""
    total = sum(BONUS_WEIGHTS[kind] for kind in BONUS_TYPES)
    roll = rng.random() * total
    for kind in BONUS_TYPES:
        roll -= BONUS_WEIGHTS[kind]
        if roll <= 0:
            return kind
    return BONUS_TYPES[0]


# ---------------------------------------------------------------------------
# Level tiers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LevelConfig:
    """Density recipe for a procedurally generated board."""
    key: str
    name: str
    description: str
    size_offset: int = 0
    reward_density: float = 0.08
    punishment_density: float = 0.05
    obstacle_density: float = 0.12
    goals: int = 1
    portal_pairs: int = 0
    maze: bool = False   # carve a maze instead of scattering obstacles


LEVELS: Dict[str, LevelConfig] = {
    "level1": LevelConfig(
        key="level1",
        name="Level 1 - Training Meadow",
        description="Wide-open field with few obstacles. Perfect for getting started.",
        reward_density=0.08,
        punishment_density=0.05,
        obstacle_density=0.12,
        goals=1,
    ),
    "level2": LevelConfig(
        key="level2",
        name="Level 2 - Path Finder",
        description="More obstacles and traps - your rover needs sharper strategies.",
        reward_density=0.1,
        punishment_density=0.08,
        obstacle_density=0.18,
        goals=2,
        portal_pairs=1,
    ),
    "level3": LevelConfig(
        key="level3",
        name="Level 3 - Labyrinth",
        description="Dense maze filled with penalties - only for experienced rovers!",
        reward_density=0.12,
        punishment_density=0.1,
        obstacle_density=0.24,
        goals=1,
        portal_pairs=1,
        maze=True,
    ),
}


def get_level(key: str) -> LevelConfig:
    if key not in LEVELS:
        raise ValueError(f"Unknown level {key!r}; expected one of {sorted(LEVELS)}")
    return LEVELS[key]


# ---------------------------------------------------------------------------
# Speedrun ladder
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SpeedrunStage:
    time_limit: int   # seconds
    level: LevelConfig


def _harder(base: LevelConfig, size_offset: int, reward: float,
            punishment: float, obstacle: float) -> LevelConfig:
    return replace(
        base,
        size_offset=size_offset,
        reward_density=base.reward_density + reward,
        punishment_density=base.punishment_density + punishment,
        obstacle_density=base.obstacle_density + obstacle,
    )


SPEEDRUN_STAGES: List[SpeedrunStage] = [
    SpeedrunStage(55, _harder(LEVELS["level2"], 0, 0.02, 0.02, 0.04)),
    SpeedrunStage(48, _harder(LEVELS["level2"], 1, 0.03, 0.03, 0.06)),
    SpeedrunStage(42, _harder(LEVELS["level3"], 1, 0.02, 0.02, 0.04)),
    SpeedrunStage(36, _harder(LEVELS["level3"], 2, 0.03, 0.03, 0.05)),
    SpeedrunStage(30, _harder(LEVELS["level3"], 3, 0.04, 0.04, 0.06)),
]

MAX_SPEEDRUN_STAGE = len(SPEEDRUN_STAGES) - 1


def speedrun_stage(stage: int) -> SpeedrunStage:
    """Stage config for an index, clamped to the last stage."""
    return SPEEDRUN_STAGES[max(0, min(stage, MAX_SPEEDRUN_STAGE))]
