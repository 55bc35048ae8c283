"""
Reward Rover: tabular Q-learning on a 2D grid world, one tick at a time.

A rover learns the value of arriving at each cell of a square board and
walks it epsilon-greedily, picking up rewards, dodging punishments and
jumping through portals on its way to a goal. The package holds the
simulation core (board model, Q-learning, portals, world generation) and
the three operating modes that drive it for a host scheduler.
"""

from reward_rover.grid import Direction, Position, Tile, TileType, create_empty_grid, clone_grid
from reward_rover.qlearning import legal_actions, select_action, tile_reward, update_q_value
from reward_rover.portals import find_portals, resolve_teleport
from reward_rover.episode import (
    EpisodeState,
    EpisodeSummary,
    PolicyParams,
    StepOptions,
    StepResult,
    advance,
)
from reward_rover.generation import generate_world
from reward_rover.layout import GridConfig, config_from_state, state_from_config
from reward_rover.modes import ComparisonMode, Playground, RandomMode
from reward_rover.host import HeadlessHost, RunResult

__version__ = "0.1.0"
__all__ = [
    "Direction",
    "Position",
    "Tile",
    "TileType",
    "create_empty_grid",
    "clone_grid",
    "legal_actions",
    "select_action",
    "tile_reward",
    "update_q_value",
    "find_portals",
    "resolve_teleport",
    "EpisodeState",
    "EpisodeSummary",
    "PolicyParams",
    "StepOptions",
    "StepResult",
    "advance",
    "generate_world",
    "GridConfig",
    "config_from_state",
    "state_from_config",
    "Playground",
    "RandomMode",
    "ComparisonMode",
    "HeadlessHost",
    "RunResult",
]
