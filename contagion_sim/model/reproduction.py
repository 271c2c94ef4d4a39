"""Sliding-window estimate of the effective reproduction number."""

from collections import deque
from typing import Deque, Iterable, Mapping, Optional

from .transmission import InfectionEvent

# Trailing window, in ticks
RT_WINDOW = 50


class ReproductionEstimator:
    """
    Tracks recent infection events and derives a live Rt.

    The estimate is the mean secondary-infection count of the distinct
    sources seen in the trailing window, using each source's count for its
    whole current episode. Sources whose episode has ended count as zero.
    """

    def __init__(self, window: int = RT_WINDOW):
        self.window = window
        self.events: Deque[InfectionEvent] = deque()
        self.current = 0.0
        self.maximum = 0.0

    def record(self, events: Iterable[InfectionEvent]) -> None:
        self.events.extend(events)

    def update(self, now: int,
               infection_counts: Mapping[int, Optional[int]]) -> float:
        """Drop expired events and recompute the estimate at tick `now`."""
        cutoff = now - self.window
        while self.events and self.events[0].tick <= cutoff:
            self.events.popleft()

        sources = {event.source_id for event in self.events}
        if sources:
            total = sum(infection_counts.get(s) or 0 for s in sources)
            self.current = total / len(sources)
        else:
            self.current = 0.0
        self.maximum = max(self.maximum, self.current)
        return self.current

    def reset(self) -> None:
        self.events.clear()
        self.current = 0.0
        self.maximum = 0.0
