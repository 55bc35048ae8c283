"""
Reward Rover demo: the three modes, run headless in the console.

- Playground: a preset board learned from scratch, then the greedy policy
- Random: generated boards, with and without the speedrun clock
- Comparison: a careful rover against a reckless one on the same board
"""

from reward_rover import HeadlessHost
from reward_rover.grid import render
from reward_rover.modes import (
    ComparisonConfig,
    ComparisonMode,
    Playground,
    PlaygroundConfig,
    RandomMode,
    RandomModeConfig,
)
from reward_rover.presets import get_preset
from reward_rover.qlearning import policy_arrows


def main():
    print("=" * 60)
    print("  Reward Rover — Tabular Q-learning on a grid")
    print("=" * 60)

    # --- Playground ---
    print("\n--- Playground: The Trap ---\n")
    playground = Playground(PlaygroundConfig(seed=42),
                            layout=get_preset("trap").config)
    state = playground.state
    print(render(state.grid, state.agent, state.goals))
    print()

    result = HeadlessHost(playground, verbose=True).run(episodes=60)
    print()
    print(result.summary())

    state = playground.state
    print("\nGreedy policy after training:")
    print(render(state.grid, state.agent, state.goals, policy_arrows(state.grid)))

    # --- Random ---
    print("\n--- Random mode: Path Finder ---\n")
    random_mode = RandomMode(RandomModeConfig(level="level2", seed=7))
    result = HeadlessHost(random_mode, verbose=True, log_every=5).run(ticks=3000)
    print()
    print(result.summary())

    print("\n--- Random mode: Speedrun ---\n")
    speedrun = RandomMode(RandomModeConfig(level="level1", speedrun=True, seed=7))
    result = HeadlessHost(speedrun, verbose=True, log_every=1).run(ticks=2000)
    print()
    print(result.summary())
    print(f"  Reached stage {speedrun.speedrun.stage + 1}")

    # --- Comparison ---
    print("\n--- Comparison mode ---\n")
    comparison = ComparisonMode(ComparisonConfig(seed=3))
    HeadlessHost(comparison).run(ticks=4000)
    print(comparison.summary())


if __name__ == "__main__":
    main()
