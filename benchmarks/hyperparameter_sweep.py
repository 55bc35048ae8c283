"""
Hyperparameter sweep for Reward Rover.

Pits a fixed baseline rover against a grid of challengers in Comparison
mode, on each level tier, and reports how quickly each setting learns:
- Episodes finished within a fixed tick budget
- Average steps over the last episodes (lower is a better learned path)
- Average episode reward
"""

import itertools
import time
from dataclasses import dataclass
from typing import List

import numpy as np

from reward_rover import HeadlessHost, PolicyParams
from reward_rover.modes import ComparisonConfig, ComparisonMode, RoverSetup

BASELINE = PolicyParams(epsilon=0.1, alpha=0.1, gamma=0.85)

EPSILONS = [0.05, 0.2, 0.4]
ALPHAS = [0.1, 0.3, 0.5]
GAMMAS = [0.5, 0.85, 0.99]


@dataclass
class SweepPoint:
    level: str
    policy: PolicyParams
    episodes: int
    recent_steps: float
    avg_reward: float
    beat_baseline: bool


def run_point(level: str, policy: PolicyParams, ticks: int = 3000,
              seed: int = 42) -> SweepPoint:
    """Run one challenger against the baseline on a shared board."""
    mode = ComparisonMode(ComparisonConfig(
        level=level,
        left=RoverSetup("baseline", BASELINE),
        right=RoverSetup("challenger", policy),
        seed=seed,
    ))
    HeadlessHost(mode).run(ticks=ticks)

    history = mode.right.state.history
    steps = [e.steps for e in history[-10:]]
    rewards = [e.reward for e in history]
    return SweepPoint(
        level=level,
        policy=policy,
        episodes=mode.right.state.episode - 1,
        recent_steps=float(np.mean(steps)) if steps else float("nan"),
        avg_reward=float(np.mean(rewards)) if rewards else float("nan"),
        beat_baseline=mode.leader() == "challenger",
    )


def run_sweep(levels=("level1", "level2", "level3"), ticks: int = 3000,
              seed: int = 42, verbose: bool = True) -> List[SweepPoint]:
    print("=" * 80)
    print("  Reward Rover — Hyperparameter Sweep")
    print("=" * 80)
    print()

    points = []
    for level in levels:
        t0 = time.time()
        if verbose:
            print(f"  [{level}]")
        for eps, alpha, gamma in itertools.product(EPSILONS, ALPHAS, GAMMAS):
            p = run_point(level, PolicyParams(eps, alpha, gamma), ticks, seed)
            points.append(p)
            if verbose:
                mark = "✓" if p.beat_baseline else "✗"
                print(f"    {mark} eps={eps:.2f} alpha={alpha:.2f} gamma={gamma:.2f}  "
                      f"episodes={p.episodes:4d}  "
                      f"recent_steps={p.recent_steps:7.1f}  "
                      f"avg_reward={p.avg_reward:8.1f}")
        if verbose:
            print(f"    ({time.time() - t0:.1f}s)")
            print()

    wins = sum(1 for p in points if p.beat_baseline)
    print("=" * 80)
    print(f"  Challengers ahead of baseline: {wins}/{len(points)}")
    for level in levels:
        ranked = sorted((p for p in points if p.level == level),
                        key=lambda p: p.episodes, reverse=True)
        if ranked:
            best = ranked[0].policy
            print(f"    {level}: best eps={best.epsilon:.2f} "
                  f"alpha={best.alpha:.2f} gamma={best.gamma:.2f} "
                  f"({ranked[0].episodes} episodes)")
    print("=" * 80)
    return points


if __name__ == "__main__":
    run_sweep()
