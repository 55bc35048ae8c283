"""
Leaderboard statistics over finished episodes.

These are read-only views for display; nothing here feeds back into the
simulation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from reward_rover.episode import EpisodeSummary


@dataclass
class MoveStats:
    """Step counts: the running episode and the completed ones."""
    current: int
    total_completed: int
    episodes: int
    average: Optional[float]
    best: Optional[int]


@dataclass
class HistoryStats:
    """Aggregate view of an episode history."""
    count: int
    avg_steps: Optional[float]
    avg_reward: Optional[float]
    best_reward: Optional[float]
    best_steps: Optional[int]
    success_rate: Optional[float] = None

    def summary(self) -> str:
        if self.count == 0:
            return "  No finished episodes yet."

        lines = [
            f"  Episodes:          {self.count}",
            f"  Avg steps:         {self.avg_steps:.1f}",
            f"  Avg reward:        {self.avg_reward:.2f}",
            f"  Best reward:       {self.best_reward:.1f}",
            f"  Fewest steps:      {self.best_steps}",
        ]
        if self.success_rate is not None:
            lines.append(f"  Success rate:      {self.success_rate:.0%}")
        return "\n".join(lines)


def compute_move_stats(current_steps: int,
                       history: Sequence[EpisodeSummary]) -> MoveStats:
    steps = np.array([episode.steps for episode in history], dtype=int)
    if steps.size == 0:
        return MoveStats(current_steps, 0, 0, None, None)
    return MoveStats(
        current=current_steps,
        total_completed=int(steps.sum()),
        episodes=int(steps.size),
        average=float(steps.mean()),
        best=int(steps.min()),
    )


def compute_episode_summary(history: Sequence[EpisodeSummary]) -> HistoryStats:
    """Averages and bests over ``history``; all None when it is empty."""
    if not history:
        return HistoryStats(0, None, None, None, None)

    steps = np.array([episode.steps for episode in history], dtype=float)
    rewards = np.array([episode.reward for episode in history], dtype=float)
    successes = np.array([episode.success for episode in history], dtype=bool)
    return HistoryStats(
        count=len(history),
        avg_steps=float(np.mean(steps)),
        avg_reward=float(np.mean(rewards)),
        best_reward=float(np.max(rewards)),
        best_steps=int(np.min(steps)),
        success_rate=float(np.mean(successes)),
    )
