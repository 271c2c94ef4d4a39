"""Contact-based transmission between agents sharing a region."""

from dataclasses import dataclass
from typing import List, Sequence
import numpy as np

from .agent import Agent, HealthStatus
from .layout import NORMAL_REGIONS
from .spatial import SpatialIndex

# Slack added to the infection radius to get the bucket size
CELL_MARGIN = 3.0
# The configured per-contact probability is divided by this before use.
PROBABILITY_DAMPENING = 10.0


@dataclass(frozen=True)
class InfectionEvent:
    """A successful transmission, attributed to its source."""
    source_id: int
    target_id: int
    tick: int


class TransmissionEngine:
    """
    Evaluates infection attempts once per tick.

    Each normal region is handled on its own with a fresh spatial index, so
    contacts never cross region walls and the quarantine region never takes
    part. A pair is considered only if both agents are at the region center
    or neither is. Within the radius, each contact succeeds with
    probability / PROBABILITY_DAMPENING.
    """

    def __init__(self, infection_radius: float, infection_probability: float):
        self.infection_radius = infection_radius
        self.infection_probability = infection_probability

    @property
    def cell_size(self) -> float:
        return self.infection_radius + CELL_MARGIN

    @property
    def contact_probability(self) -> float:
        return self.infection_probability / PROBABILITY_DAMPENING

    def run(self, agents: Sequence[Agent], tick: int,
            rng: np.random.Generator) -> List[InfectionEvent]:
        """Run one transmission pass; returns the infections it caused."""
        events: List[InfectionEvent] = []
        for region in range(NORMAL_REGIONS):
            index = SpatialIndex.build(agents, self.cell_size, region_filter=region)
            for source in agents:
                if source.current_region != region or not source.is_infectious():
                    continue
                events.extend(self._spread_from(source, agents, index, tick, rng))
        return events

    def _spread_from(self, source: Agent, agents: Sequence[Agent],
                     index: SpatialIndex, tick: int,
                     rng: np.random.Generator) -> List[InfectionEvent]:
        radius_sq = self.infection_radius * self.infection_radius
        events = []
        for target_id in index.candidates(source.current_region, source.x,
                                          source.y, self.infection_radius):
            if target_id == source.id:
                continue
            target = agents[target_id]
            if target.health is not HealthStatus.HEALTHY:
                continue
            if source.at_center() != target.at_center():
                continue
            dx = source.x - target.x
            dy = source.y - target.y
            if dx * dx + dy * dy >= radius_sq:
                continue
            if rng.random() < self.contact_probability:
                target.expose()
                source.infection_count = (source.infection_count or 0) + 1
                events.append(InfectionEvent(source.id, target.id, tick))
        return events
