"""
Operating modes: thin stateful wrappers that feed ``advance`` one tick at a
time on behalf of a host scheduler.

- Playground: editable board, single goal, two-tick portals
- Random: generated boards, several goals, speedrun clock, bonus drops
- Comparison: two rovers with separate hyperparameters on one layout
"""

from reward_rover.modes.base import SimulationMode
from reward_rover.modes.playground import Playground, PlaygroundConfig
from reward_rover.modes.random_mode import RandomMode, RandomModeConfig, SpeedrunState
from reward_rover.modes.comparison import (
    ComparisonConfig,
    ComparisonMode,
    Rover,
    RoverSetup,
)

__all__ = [
    "SimulationMode",
    "Playground",
    "PlaygroundConfig",
    "RandomMode",
    "RandomModeConfig",
    "SpeedrunState",
    "ComparisonMode",
    "ComparisonConfig",
    "Rover",
    "RoverSetup",
]
