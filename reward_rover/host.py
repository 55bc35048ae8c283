"""
HeadlessHost — drives a mode without a UI, on a simulated clock.

The browser host calls ``tick()`` on a timer and ``tick_timer()`` once a
second. This does the same as fast as possible: each tick advances the
simulated clock by the mode's tick interval, and every full second of
simulated time fires the timer callback. Useful for scripts, benchmarks
and tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from reward_rover.episode import EpisodeSummary
from reward_rover.modes.base import SimulationMode
from reward_rover.stats import compute_episode_summary


@dataclass
class RunResult:
    """What happened during a headless run."""
    mode: str
    ticks: int
    elapsed_ms: int
    finished: Dict[str, List[EpisodeSummary]] = field(default_factory=dict)

    @property
    def episodes_finished(self) -> int:
        return sum(len(v) for v in self.finished.values())

    def summary(self) -> str:
        lines = [
            "═" * 55,
            f"  Headless run — {self.mode}",
            "═" * 55,
            f"  Ticks:             {self.ticks}",
            f"  Simulated time:    {self.elapsed_ms / 1000:.1f}s",
            f"  Episodes finished: {self.episodes_finished}",
            "",
        ]
        for name, episodes in self.finished.items():
            lines.append(f"  [{name}]")
            lines.append(compute_episode_summary(episodes).summary())
            if episodes:
                recent = [e.steps for e in episodes[-5:]]
                lines.append(f"  Last 5 step counts: {recent}  "
                             f"(mean {np.mean(recent):.1f})")
            lines.append("")
        lines.append("═" * 55)
        return "\n".join(lines)


class HeadlessHost:
    """Runs a SimulationMode for a number of ticks or finished episodes."""

    def __init__(self, mode: SimulationMode, verbose: bool = False,
                 log_every: int = 10):
        self.mode = mode
        self.verbose = verbose
        self.log_every = log_every
        self.elapsed_ms = 0
        self._timer_ms = 0

    def run(self, ticks: Optional[int] = None, episodes: Optional[int] = None,
            max_ticks: int = 100_000) -> RunResult:
        """
        Tick until ``ticks`` ticks have run or ``episodes`` episodes (summed
        over all rovers) have finished, whichever comes first. The run also
        ends when the mode stops itself. ``max_ticks`` caps it either way.
        """
        limit = min(ticks, max_ticks) if ticks is not None else max_ticks
        finished: Dict[str, List[EpisodeSummary]] = {
            name: [] for name in self.mode.states()
        }
        if not self.mode.is_running:
            self.mode.start()

        done = 0
        count = 0
        while count < limit:
            count += 1
            before = {name: s.episode for name, s in self.mode.states().items()}
            self.mode.tick()
            self._advance_clock()

            for name, state in self.mode.states().items():
                if state.episode > before.get(name, state.episode) and state.history:
                    new = state.history[-(state.episode - before[name]):]
                    finished.setdefault(name, []).extend(new)
                    done += len(new)
                    if self.verbose and done % self.log_every == 0:
                        self._log(name, new[-1], count)

            if episodes is not None and done >= episodes:
                break
            if not self.mode.is_running:
                break

        return RunResult(mode=self.mode.name, ticks=count,
                         elapsed_ms=self.elapsed_ms, finished=finished)

    def _advance_clock(self) -> None:
        self.elapsed_ms += self.mode.tick_interval_ms
        self._timer_ms += self.mode.tick_interval_ms
        while self._timer_ms >= 1000:
            self._timer_ms -= 1000
            self.mode.tick_timer()

    def _log(self, name: str, summary: EpisodeSummary, tick: int) -> None:
        mark = "✓" if summary.success else "✗"
        print(
            f"  [tick {tick:6d}] {name:<12s} {mark} "
            f"ep={summary.episode:4d}  "
            f"steps={summary.steps:4d}  "
            f"reward={summary.reward:8.1f}"
        )
