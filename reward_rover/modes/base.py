"""
Common surface of the three operating modes.

A mode owns one or more ``EpisodeState`` snapshots and swaps them for new
ones on every tick. The host drives it:

    mode.start()
    every mode.tick_interval_ms:   mode.tick()
    every second:                  mode.tick_timer()
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from reward_rover.episode import EpisodeState, EpisodeSummary, StepResult


class SimulationMode(ABC):
    """Base class: running flag plumbing and the host-facing hooks."""

    name = "mode"
    tick_interval_ms = 220

    def __init__(self, seed: Optional[int] = None):
        self.rng = random.Random(seed)

    # -- states ------------------------------------------------------------

    @abstractmethod
    def states(self) -> Dict[str, EpisodeState]:
        """Current snapshot of every rover, by rover name."""

    @abstractmethod
    def _set_running(self, running: bool) -> None:
        """Set the running flag on every rover."""

    @property
    def is_running(self) -> bool:
        return any(s.is_running for s in self.states().values())

    # -- controls ----------------------------------------------------------

    def start(self) -> None:
        self._set_running(True)

    def pause(self) -> None:
        self._set_running(False)

    def resume(self) -> None:
        self._set_running(True)

    def toggle(self) -> None:
        self._set_running(not self.is_running)

    @abstractmethod
    def reset(self) -> None:
        """Replace every episode state with a fresh one."""

    # -- host callbacks ----------------------------------------------------

    @abstractmethod
    def tick(self) -> List[StepResult]:
        """Advance every running rover by one step."""

    def tick_timer(self) -> List[EpisodeSummary]:
        """One-second wall-clock callback; returns episodes it ended."""
        return []

    def histories(self) -> Dict[str, List[EpisodeSummary]]:
        return {name: list(s.history) for name, s in self.states().items()}
