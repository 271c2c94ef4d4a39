"""Simulation driver for the contagion model."""

import numpy as np
from typing import List, Dict, Optional, TYPE_CHECKING, Any

from .agent import (
    Agent,
    HealthStatus,
    INITIAL_SPEED,
    validate_agent,
)
from .layout import NORMAL_REGIONS, region_bounds
from .reproduction import ReproductionEstimator
from .state import AgentSnapshot, HistoryRecord, SimulationState, StatusCounts
from .transmission import TransmissionEngine
from ..config import SPEED_RANGE, ConfigError, check_range, validate_config

if TYPE_CHECKING:
    from ..config import SimulationConfig


class SimulationEngine:
    """
    Owns the population and advances it tick by tick.

    Each tick runs, in order:
    1. Quarantine lifecycle and one motion rule per agent
    2. Status clocks and infected progression (death / recovery)
    3. Transmission pass, one spatial index per normal region
    4. Exposed clocks and incubation (exposed -> infected); the exposure
       tick itself counts toward the incubation period
    5. Reproduction-number update

    Only the engine mutates agents. Callers get immutable snapshots and
    must not run two advances on the same instance at once.
    """

    def __init__(self, config: "SimulationConfig"):
        validate_config(config)
        self.config = config
        self.history: List[HistoryRecord] = []
        self.estimator = ReproductionEstimator()
        self.restart()

    def restart(self, config: Optional["SimulationConfig"] = None) -> SimulationState:
        """Discard everything and rebuild the population from configuration."""
        if config is not None:
            validate_config(config)
            self.config = config

        self.rng = np.random.default_rng(self.config.seed)
        self.current_tick = 0
        self.agents: List[Agent] = self._populate()
        self.estimator.reset()
        self.history = []

        # Metrics tracking
        self.total_infections = 0
        self.peak_infected = self.config.epidemic.initial_infected
        self.peak_tick = 0

        return self.snapshot()

    def update_config(self, config: "SimulationConfig") -> None:
        """Swap configuration between advances; takes effect next tick."""
        validate_config(config)
        if config.agent_count != self.config.agent_count:
            raise ConfigError([
                f"agent_count cannot change mid-run ({self.config.agent_count} -> "
                f"{config.agent_count}); restart instead"
            ])
        self.config = config

    def _populate(self) -> List[Agent]:
        """Create the initial population, block-assigned to home regions."""
        count = self.config.agent_count
        per_region = max(1, count // NORMAL_REGIONS)
        initial_infected = self.config.epidemic.initial_infected

        agents = []
        for agent_id in range(count):
            home = min(agent_id // per_region, NORMAL_REGIONS - 1)
            bounds = region_bounds(home)
            agents.append(Agent(
                agent_id=agent_id,
                position=(float(self.rng.uniform(bounds.min_x, bounds.max_x)),
                          float(self.rng.uniform(bounds.min_y, bounds.max_y))),
                velocity=(float(self.rng.uniform(-1, 1)) * INITIAL_SPEED,
                          float(self.rng.uniform(-1, 1)) * INITIAL_SPEED),
                home_region=home,
                health=(HealthStatus.INFECTED if agent_id < initial_infected
                        else HealthStatus.HEALTHY)
            ))
        return agents

    def advance(self, ticks: Optional[int] = None) -> SimulationState:
        """
        Run `ticks` ticks (default: the configured speed) and snapshot.

        Appends one history record per call.
        """
        validate_config(self.config)
        if ticks is None:
            ticks = self.config.speed
        problems = []
        check_range(problems, 'ticks', ticks, *SPEED_RANGE, integer=True)
        if problems:
            raise ConfigError(problems)

        for _ in range(ticks):
            self._tick()

        state = self.snapshot()
        if state.counts.infected > self.peak_infected:
            self.peak_infected = state.counts.infected
            self.peak_tick = state.tick
        self.history.append(state.history_record())
        return state

    def _tick(self) -> None:
        """Execute one discrete time step."""
        self.current_tick += 1
        epidemic = self.config.epidemic
        quarantine = self.config.quarantine

        # Phase 1: quarantine lifecycle, then motion
        for agent in self.agents:
            if quarantine.enabled:
                agent.update_quarantine(quarantine.effectiveness, self.rng)
            agent.release_from_quarantine(self.rng)
            agent.move(self.rng)

        # Phase 2: clocks and infected progression (exposed clocks run in phase 4)
        for agent in self.agents:
            if agent.health is not HealthStatus.EXPOSED:
                agent.time_in_status += 1
            if agent.health is HealthStatus.INFECTED:
                agent.progress_infection(epidemic.recovery_time,
                                         epidemic.death_rate, self.rng)

        # Phase 3: transmission
        transmission = TransmissionEngine(epidemic.infection_radius,
                                          epidemic.infection_probability)
        events = transmission.run(self.agents, self.current_tick, self.rng)
        self.total_infections += len(events)

        # Phase 4: incubation
        for agent in self.agents:
            if agent.health is HealthStatus.EXPOSED:
                agent.time_in_status += 1
                agent.progress_incubation(epidemic.incubation_period,
                                          quarantine.enabled)

        # Phase 5: reproduction number
        self.estimator.record(events)
        self.estimator.update(self.current_tick, {
            a.id: a.infection_count for a in self.agents if a.infection_count
        })

        if self.config.validate:
            self.check_invariants()

    def check_invariants(self) -> None:
        """Validate every agent; raises StateInvariantError on the first breach."""
        if len(self.agents) != self.config.agent_count:
            raise RuntimeError(
                f"Population changed size: {len(self.agents)} != {self.config.agent_count}"
            )
        for agent in self.agents:
            validate_agent(agent)

    def count_statuses(self) -> StatusCounts:
        tally = {status.value: 0 for status in HealthStatus}
        quarantined = 0
        for agent in self.agents:
            tally[agent.health.value] += 1
            if agent.is_quarantined():
                quarantined += 1
        return StatusCounts(quarantined=quarantined, **tally)

    def snapshot(self) -> SimulationState:
        """Create immutable snapshot of current simulation state."""
        agent_snapshots = tuple(
            AgentSnapshot(
                agent_id=a.id,
                x=a.x,
                y=a.y,
                status=a.health.value,
                quarantine=a.quarantine.value,
                quarantined=a.is_quarantined(),
                region=a.current_region,
                home_region=a.home_region,
                at_center=a.at_center()
            )
            for a in self.agents
        )
        return SimulationState(
            tick=self.current_tick,
            agents=agent_snapshots,
            counts=self.count_statuses(),
            rt=self.estimator.current,
            max_rt=self.estimator.maximum
        )

    def is_finished(self) -> bool:
        """Check if simulation should terminate."""
        if self.current_tick >= self.config.max_ticks:
            return True
        return self.count_statuses().active == 0

    def get_summary(self) -> Dict[str, Any]:
        """Get summary statistics for the simulation."""
        counts = self.count_statuses()
        ever_infected = counts.total - counts.healthy
        return {
            'total_ticks': self.current_tick,
            'agents_total': counts.total,
            'healthy': counts.healthy,
            'exposed': counts.exposed,
            'infected': counts.infected,
            'recovered': counts.recovered,
            'dead': counts.dead,
            'quarantined': counts.quarantined,
            'total_infections': self.total_infections,
            'peak_infected': self.peak_infected,
            'peak_tick': self.peak_tick,
            'rt': self.estimator.current,
            'max_rt': self.estimator.maximum,
            'attack_rate': ever_infected / counts.total if counts.total > 0 else 0.0
        }
