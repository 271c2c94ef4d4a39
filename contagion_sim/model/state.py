"""State snapshot dataclasses for the contagion simulation."""

from dataclasses import dataclass, asdict
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class AgentSnapshot:
    """Immutable view of one agent, enough to draw it."""
    agent_id: int
    x: float
    y: float
    status: str       # "healthy", "exposed", "infected", "recovered", "dead"
    quarantine: str   # QuarantineStatus value
    quarantined: bool
    region: int
    home_region: int
    at_center: bool


@dataclass(frozen=True)
class StatusCounts:
    """Per-status totals plus the quarantined count layered across them."""
    healthy: int = 0
    exposed: int = 0
    infected: int = 0
    recovered: int = 0
    dead: int = 0
    quarantined: int = 0

    @property
    def total(self) -> int:
        """Population size; quarantined agents are already in a status."""
        return self.healthy + self.exposed + self.infected + self.recovered + self.dead

    @property
    def active(self) -> int:
        return self.exposed + self.infected


@dataclass(frozen=True)
class HistoryRecord:
    """One point of the compartment time series."""
    tick: int
    healthy: int
    exposed: int
    infected: int
    recovered: int
    dead: int
    quarantined: int
    rt: float

    @classmethod
    def from_counts(cls, tick: int, counts: StatusCounts, rt: float) -> "HistoryRecord":
        return cls(tick=tick, rt=rt, **asdict(counts))

    def to_row(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class SimulationState:
    """Complete snapshot of the simulation after an advance call."""
    tick: int
    agents: Tuple[AgentSnapshot, ...]
    counts: StatusCounts
    rt: float
    max_rt: float

    def to_csv_rows(self) -> List[Dict]:
        """Per-agent rows for the agent log."""
        return [
            {
                "tick": self.tick,
                "agent_id": a.agent_id,
                "x": round(a.x, 3),
                "y": round(a.y, 3),
                "status": a.status,
                "quarantine": a.quarantine,
                "region": a.region
            }
            for a in self.agents
        ]

    def history_record(self) -> HistoryRecord:
        return HistoryRecord.from_counts(self.tick, self.counts, self.rt)
