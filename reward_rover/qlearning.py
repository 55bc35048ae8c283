"""
Action selection, rewards and the tabular Q-learning update.

The rover learns one value per cell: the value of *arriving* at that cell.
Choosing an action therefore means comparing the learned values of the
neighbouring cells it could step onto, and learning means nudging the value
of the cell it just left towards

    reward + gamma * (best value reachable from where it landed)

i.e. the one-step temporal-difference rule

    Q(s) <- Q(s) + alpha * [r + gamma * max Q(s') - Q(s)]

Action selection is epsilon-greedy with an optional directional bias (a
held arrow key): the bias is a nudge the agent may still ignore, never a
command.
"""

from __future__ import annotations

import random
from typing import Dict, List, Optional, Sequence

from reward_rover.constants import (
    BIAS_BONUS,
    BIAS_OVERRIDE_CHANCE,
    GOAL_REWARD,
    OBSTACLE_PENALTY,
    PUNISHMENT_VALUE,
    REWARD_VALUE,
    STEP_PENALTY,
)
from reward_rover.grid import (
    Board,
    Direction,
    Position,
    TileType,
    in_bounds,
    iter_positions,
    tile_at,
)


# ---------------------------------------------------------------------------
# Legal moves
# ---------------------------------------------------------------------------

def legal_actions(board: Board, pos: Position) -> List[Position]:
    """
    Neighbour cells the rover may step onto, in UP, DOWN, LEFT, RIGHT order.

    Out-of-bounds cells and obstacles are excluded. A fully boxed-in rover
    gets ``[pos]`` back, meaning it waits in place.
    """
    actions = []
    for direction in Direction.all():
        nxt = pos.offset(*direction.delta())
        if in_bounds(board, nxt) and tile_at(board, nxt).enterable:
            actions.append(nxt)
    if not actions:
        actions.append(pos)
    return actions


def _greedy(board: Board, candidates: Sequence[Position],
            favoured: Optional[Position] = None) -> Position:
    """Highest-valued candidate; the first one seen wins ties."""
    best = candidates[0]
    best_value = tile_at(board, best).learned_value + (
        BIAS_BONUS if best == favoured else 0.0)
    for action in candidates[1:]:
        value = tile_at(board, action).learned_value + (
            BIAS_BONUS if action == favoured else 0.0)
        if value > best_value:
            best, best_value = action, value
    return best


def select_action(board: Board, pos: Position, epsilon: float,
                  bias: Optional[Direction] = None,
                  rng: Optional[random.Random] = None) -> Position:
    """
    Epsilon-greedy choice of the next cell.

    With a bias direction whose move is legal, that move is returned outright
    with probability BIAS_OVERRIDE_CHANCE (checked before the epsilon roll);
    otherwise it only gets a small BIAS_BONUS when values are compared. The
    bonus is never written back to the board.
    """
    rng = rng or random
    possible = legal_actions(board, pos)

    favoured = None
    if bias is not None:
        target = pos.offset(*bias.delta())
        if target in possible:
            favoured = target
            if rng.random() < BIAS_OVERRIDE_CHANCE:
                return favoured

    if rng.random() < epsilon:
        return possible[rng.randrange(len(possible))]

    return _greedy(board, possible, favoured)


def best_direction(board: Board, pos: Position) -> Optional[Direction]:
    """Greedy move from ``pos`` as a Direction (None when boxed in)."""
    return Direction.between(pos, _greedy(board, legal_actions(board, pos)))


def policy_arrows(board: Board) -> Dict[Position, Optional[Direction]]:
    """Greedy direction for every enterable cell, for arrow overlays."""
    return {
        pos: best_direction(board, pos)
        for pos in iter_positions(board)
        if tile_at(board, pos).enterable
    }


# ---------------------------------------------------------------------------
# Rewards
# ---------------------------------------------------------------------------

def tile_reward(board: Board, goals: Sequence[Position],
                destination: Position) -> float:
    """
    Immediate reward for arriving at ``destination``.

    Goal positions take priority over whatever the tile itself holds.
    Plain cells cost STEP_PENALTY, which is what pushes the learned policy
    towards short paths.
    """
    if destination in goals:
        return GOAL_REWARD

    kind = tile_at(board, destination).type
    if kind is TileType.OBSTACLE:
        return OBSTACLE_PENALTY
    if kind is TileType.REWARD:
        return REWARD_VALUE
    if kind is TileType.PUNISHMENT:
        return PUNISHMENT_VALUE
    if kind is TileType.PORTAL:
        return 0.0
    return STEP_PENALTY


# ---------------------------------------------------------------------------
# Temporal-difference update
# ---------------------------------------------------------------------------

def max_next_value(board: Board, pos: Position) -> float:
    """Best learned value reachable from ``pos``; 0.0 if nothing is."""
    possible = legal_actions(board, pos)
    if not possible:
        return 0.0
    return max(tile_at(board, action).learned_value for action in possible)


def td_update(current_value: float, reward: float, next_value: float,
              alpha: float, gamma: float) -> float:
    """One step of Q(s) += alpha * (r + gamma * max Q(s') - Q(s))."""
    return current_value + alpha * (reward + gamma * next_value - current_value)


def update_q_value(board: Board, current: Position, destination: Position,
                   reward: float, alpha: float, gamma: float) -> float:
    """
    Apply the Q-learning update to the tile being departed, in place.

    The new value is stored as both learned and display value and the
    departed tile's visit count goes up by one. Callers own ``board`` and
    are expected to have cloned it first.
    """
    tile = tile_at(board, current)
    new_value = td_update(tile.learned_value, reward,
                          max_next_value(board, destination), alpha, gamma)
    tile.learned_value = new_value
    tile.display_value = new_value
    tile.visit_count += 1
    return new_value
