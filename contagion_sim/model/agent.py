"""Agent state machine: health, movement and quarantine lifecycle."""

import math
from enum import Enum
from typing import Optional, Tuple
import numpy as np

from .layout import (
    CENTER_RADIUS,
    NORMAL_REGIONS,
    QUARANTINE_REGION,
    RegionBounds,
    is_quarantine,
    region_bounds,
)


class HealthStatus(Enum):
    """Compartment an agent currently belongs to."""
    HEALTHY = "healthy"
    EXPOSED = "exposed"
    INFECTED = "infected"
    RECOVERED = "recovered"
    DEAD = "dead"


class MovementMode(Enum):
    """Which motion rule applies to an agent outside quarantine."""
    SETTLED = "settled"
    VISITING_CENTER = "visiting_center"
    TRAVELING_OUT = "traveling_out"
    VISITING = "visiting"
    TRAVELING_BACK = "traveling_back"


class QuarantineStatus(Enum):
    """Position of an agent in the quarantine lifecycle."""
    NOT_QUARANTINED = "not_quarantined"
    PENDING_DETECTION = "pending_detection"
    EN_ROUTE_TO_QUARANTINE = "en_route_to_quarantine"
    QUARANTINED = "quarantined"
    EN_ROUTE_HOME = "en_route_home"


class StateInvariantError(RuntimeError):
    """An agent reached a combination of states that the model forbids."""


# Movement
TRAVEL_PROBABILITY = 0.0002       # per tick, settled agents only
VISIT_DURATION = 150              # ticks, plus up to VISIT_JITTER
VISIT_JITTER = 40
CENTER_VISIT_PROBABILITY = 0.001  # per tick, settled agents only
CENTER_DURATION_MIN = 20
CENTER_DURATION_MAX = 65
CENTER_JITTER = 40
CENTER_STEP = 0.9
CENTER_EXIT_MARGIN = 5.0
TRAVEL_STEP = 8.0
TARGET_JITTER = 30.0
INITIAL_SPEED = 0.3
ARRIVAL_SPEED = 0.4
BROWNIAN_JITTER = 0.02

# Coarse clamp back into the region
BOUNCE_INSET = 1.2
BOUNCE_SPEED = 0.15
# Finer edge correction after free motion
EDGE_MARGIN = 1.0
EDGE_INSET = 1.1
EDGE_SPEED = 0.08

# Quarantine
DETECTION_DELAY = 5     # ticks infected before an eligible agent is removed
TRANSIT_STEP = 10.0
QUARANTINE_INSET = 20.0
ARRIVAL_EPSILON = 3.0

TRAVELING_MODES = frozenset({MovementMode.TRAVELING_OUT, MovementMode.TRAVELING_BACK})
IN_TRANSIT = frozenset({QuarantineStatus.EN_ROUTE_TO_QUARANTINE,
                        QuarantineStatus.EN_ROUTE_HOME})
# Statuses whose agents occupy the quarantine region
CONFINED = IN_TRANSIT | {QuarantineStatus.QUARANTINED}

_EPISODE_STATES = frozenset({HealthStatus.INFECTED, HealthStatus.RECOVERED,
                             HealthStatus.DEAD})
_LEGAL_COMBINATIONS = {
    QuarantineStatus.NOT_QUARANTINED: frozenset(HealthStatus),
    QuarantineStatus.PENDING_DETECTION: frozenset({HealthStatus.INFECTED}),
    QuarantineStatus.EN_ROUTE_TO_QUARANTINE: _EPISODE_STATES,
    QuarantineStatus.QUARANTINED: _EPISODE_STATES,
    QuarantineStatus.EN_ROUTE_HOME: frozenset({HealthStatus.RECOVERED,
                                               HealthStatus.DEAD}),
}


def _rand(rng: np.random.Generator, low: float = -1.0, high: float = 1.0) -> float:
    return float(rng.uniform(low, high))


class Agent:
    """
    One mobile individual of the simulated population.

    Health, movement and quarantine are three independent axes. Each tick
    exactly one motion rule applies, chosen in priority order:

    1. quarantine transit (straight flight into or out of quarantine)
    2. confinement (frozen in place)
    3. dead agents stay where they fell
    4. center visit (small random orbit around the region center)
    5. inter-region travel (straight flight to a destination center)
    6. free Brownian motion inside the current region

    Per-episode draws (will_die, quarantine_eligible) are None until decided.
    """

    def __init__(self, agent_id: int,
                 position: Tuple[float, float],
                 velocity: Tuple[float, float],
                 home_region: int,
                 health: HealthStatus = HealthStatus.HEALTHY):
        if not 0 <= home_region < NORMAL_REGIONS:
            raise ValueError(f"home_region must be a normal region, got {home_region}")
        self.id = agent_id
        self.x, self.y = position
        self.vx, self.vy = velocity
        self.health = health
        self.time_in_status = 0
        self.will_die: Optional[bool] = None
        self.infection_count: Optional[int] = None

        self.home_region = home_region
        self.current_region = home_region
        self.movement = MovementMode.SETTLED
        self.travel_target: Optional[Tuple[float, float]] = None
        self.center_ticks_remaining = 0
        self.visit_ticks_remaining = 0

        self.quarantine = QuarantineStatus.NOT_QUARANTINED
        self.quarantine_eligible: Optional[bool] = None
        self.ticks_since_infected: Optional[int] = (
            0 if health is HealthStatus.INFECTED else None
        )
        self.transit_target: Optional[Tuple[float, float]] = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def is_dead(self) -> bool:
        return self.health is HealthStatus.DEAD

    def is_infectious(self) -> bool:
        """Infected and still mixing with the population."""
        return (self.health is HealthStatus.INFECTED
                and self.quarantine not in CONFINED)

    def at_center(self) -> bool:
        return self.movement is MovementMode.VISITING_CENTER

    def is_quarantined(self) -> bool:
        """Confined, or released but not yet home."""
        return self.quarantine in (QuarantineStatus.QUARANTINED,
                                   QuarantineStatus.EN_ROUTE_HOME)

    # ------------------------------------------------------------------
    # Quarantine lifecycle
    # ------------------------------------------------------------------

    def update_quarantine(self, effectiveness: float,
                          rng: np.random.Generator) -> None:
        """Detection bookkeeping; only called while quarantine mode is on."""
        if self.health is not HealthStatus.INFECTED:
            return

        if self.quarantine_eligible is None:
            # One detection draw per episode
            self.quarantine_eligible = bool(rng.random() * 100 < effectiveness)
            if self.ticks_since_infected is None:
                self.ticks_since_infected = 0
            if self.quarantine_eligible and self.quarantine is QuarantineStatus.NOT_QUARANTINED:
                self.quarantine = QuarantineStatus.PENDING_DETECTION

        if self.quarantine is QuarantineStatus.PENDING_DETECTION:
            self.ticks_since_infected = (self.ticks_since_infected or 0) + 1
            if self.ticks_since_infected >= DETECTION_DELAY:
                self._begin_quarantine_transit(rng)
        elif self.quarantine is QuarantineStatus.QUARANTINED:
            self.ticks_since_infected = (self.ticks_since_infected or 0) + 1

    def release_from_quarantine(self, rng: np.random.Generator) -> bool:
        """Send a recovered or dead inmate home. Returns True if released."""
        if (self.quarantine is not QuarantineStatus.QUARANTINED
                or self.health not in (HealthStatus.RECOVERED, HealthStatus.DEAD)):
            return False
        home = region_bounds(self.home_region)
        self.transit_target = (
            home.center_x + _rand(rng, -TARGET_JITTER, TARGET_JITTER),
            home.center_y + _rand(rng, -TARGET_JITTER, TARGET_JITTER),
        )
        self.quarantine = QuarantineStatus.EN_ROUTE_HOME
        return True

    def _begin_quarantine_transit(self, rng: np.random.Generator) -> None:
        ward = region_bounds(QUARANTINE_REGION)
        self.transit_target = (
            _rand(rng, ward.min_x + QUARANTINE_INSET, ward.max_x - QUARANTINE_INSET),
            _rand(rng, ward.min_y + QUARANTINE_INSET, ward.max_y - QUARANTINE_INSET),
        )
        self.quarantine = QuarantineStatus.EN_ROUTE_TO_QUARANTINE
        self.current_region = QUARANTINE_REGION
        self.vx = 0.0
        self.vy = 0.0
        self._reset_movement()

    def _finish_transit(self, rng: np.random.Generator) -> None:
        if self.quarantine is QuarantineStatus.EN_ROUTE_TO_QUARANTINE:
            self.quarantine = QuarantineStatus.QUARANTINED
            self.vx = 0.0
            self.vy = 0.0
        else:
            self.quarantine = QuarantineStatus.NOT_QUARANTINED
            self.current_region = self.home_region
            self.quarantine_eligible = None
            self.ticks_since_infected = None
            self.vx = _rand(rng) * INITIAL_SPEED
            self.vy = _rand(rng) * INITIAL_SPEED
            self._reset_movement()
        self.transit_target = None

    # ------------------------------------------------------------------
    # Motion
    # ------------------------------------------------------------------

    def move(self, rng: np.random.Generator) -> None:
        """Apply exactly one motion rule for this tick."""
        if self.quarantine in IN_TRANSIT:
            tx, ty = self.transit_target
            if self._step_towards(tx, ty, TRANSIT_STEP):
                self._finish_transit(rng)
            return

        if self.quarantine is QuarantineStatus.QUARANTINED or self.is_dead():
            return

        bounds = region_bounds(self.current_region)
        self._bounce(bounds)

        if self.movement is MovementMode.SETTLED and rng.random() < CENTER_VISIT_PROBABILITY:
            self._enter_center(bounds, rng)

        if self.movement is MovementMode.VISITING_CENTER:
            self._orbit_center(bounds, rng)
            return

        if self.movement in TRAVELING_MODES:
            self._travel(rng)
            return

        self._brownian(bounds, rng)

        if self.movement is MovementMode.SETTLED and rng.random() < TRAVEL_PROBABILITY:
            self._start_travel(rng)
        elif self.movement is MovementMode.VISITING:
            self.visit_ticks_remaining -= 1
            if self.visit_ticks_remaining <= 0:
                self.movement = MovementMode.TRAVELING_BACK
                self.travel_target = None
                self.current_region = self.home_region

    def _step_towards(self, tx: float, ty: float, max_step: float) -> bool:
        """Move straight at the target; snap and return True when close enough."""
        dx = tx - self.x
        dy = ty - self.y
        dist = math.hypot(dx, dy)
        if dist < ARRIVAL_EPSILON:
            self.x, self.y = tx, ty
            return True
        step = min(dist, max_step)
        self.x += dx / dist * step
        self.y += dy / dist * step
        return False

    def _bounce(self, bounds: RegionBounds) -> None:
        if self.x < bounds.min_x:
            self.x = bounds.min_x + BOUNCE_INSET
            self.vx = abs(self.vx) or BOUNCE_SPEED
        elif self.x > bounds.max_x:
            self.x = bounds.max_x - BOUNCE_INSET
            self.vx = -abs(self.vx) or -BOUNCE_SPEED
        if self.y < bounds.min_y:
            self.y = bounds.min_y + BOUNCE_INSET
            self.vy = abs(self.vy) or BOUNCE_SPEED
        elif self.y > bounds.max_y:
            self.y = bounds.max_y - BOUNCE_INSET
            self.vy = -abs(self.vy) or -BOUNCE_SPEED

    def _enter_center(self, bounds: RegionBounds, rng: np.random.Generator) -> None:
        if is_quarantine(self.current_region):
            return
        self.movement = MovementMode.VISITING_CENTER
        self.center_ticks_remaining = (
            int(rng.integers(CENTER_DURATION_MIN, CENTER_DURATION_MAX + 1))
            + int(rng.integers(0, CENTER_JITTER))
        )
        angle = _rand(rng, 0.0, 2 * math.pi)
        r = _rand(rng, 0.0, CENTER_RADIUS - 5)
        self.x = bounds.center_x + r * math.cos(angle)
        self.y = bounds.center_y + r * math.sin(angle)
        self.vx = 0.0
        self.vy = 0.0

    def _orbit_center(self, bounds: RegionBounds, rng: np.random.Generator) -> None:
        self.center_ticks_remaining -= 1
        angle = _rand(rng, 0.0, 2 * math.pi)
        self.x += math.cos(angle) * CENTER_STEP
        self.y += math.sin(angle) * CENTER_STEP
        if self.center_ticks_remaining <= 0:
            self.movement = MovementMode.SETTLED
            self.center_ticks_remaining = 0
            self.x = min(max(bounds.min_x + CENTER_EXIT_MARGIN, self.x),
                         bounds.max_x - CENTER_EXIT_MARGIN)
            self.y = min(max(bounds.min_y + CENTER_EXIT_MARGIN, self.y),
                         bounds.max_y - CENTER_EXIT_MARGIN)
            self.vx = _rand(rng) * INITIAL_SPEED
            self.vy = _rand(rng) * INITIAL_SPEED

    def _travel(self, rng: np.random.Generator) -> None:
        if self.travel_target is None:
            # current_region already names the destination
            dest = region_bounds(self.current_region)
            self.travel_target = (
                dest.center_x + _rand(rng, -TARGET_JITTER, TARGET_JITTER),
                dest.center_y + _rand(rng, -TARGET_JITTER, TARGET_JITTER),
            )
        tx, ty = self.travel_target
        if not self._step_towards(tx, ty, TRAVEL_STEP):
            return

        self.travel_target = None
        self.vx = _rand(rng) * ARRIVAL_SPEED
        self.vy = _rand(rng) * ARRIVAL_SPEED
        if self.movement is MovementMode.TRAVELING_BACK:
            self.movement = MovementMode.SETTLED
            self.current_region = self.home_region
        else:
            self.movement = MovementMode.VISITING
            self.visit_ticks_remaining = VISIT_DURATION + int(rng.integers(0, VISIT_JITTER))

    def _brownian(self, bounds: RegionBounds, rng: np.random.Generator) -> None:
        self.vx += _rand(rng, -BROWNIAN_JITTER, BROWNIAN_JITTER)
        self.vy += _rand(rng, -BROWNIAN_JITTER, BROWNIAN_JITTER)
        self.x += self.vx
        self.y += self.vy

        # Keep agents from sticking to the walls
        if self.x < bounds.min_x + EDGE_MARGIN:
            self.x = bounds.min_x + EDGE_INSET
            self.vx = abs(self.vx) or EDGE_SPEED
        elif self.x > bounds.max_x - EDGE_MARGIN:
            self.x = bounds.max_x - EDGE_INSET
            self.vx = -abs(self.vx) or -EDGE_SPEED
        if self.y < bounds.min_y + EDGE_MARGIN:
            self.y = bounds.min_y + EDGE_INSET
            self.vy = abs(self.vy) or EDGE_SPEED
        elif self.y > bounds.max_y - EDGE_MARGIN:
            self.y = bounds.max_y - EDGE_INSET
            self.vy = -abs(self.vy) or -EDGE_SPEED

    def _start_travel(self, rng: np.random.Generator) -> None:
        if is_quarantine(self.current_region):
            return
        destinations = [r for r in range(NORMAL_REGIONS) if r != self.home_region]
        self.current_region = destinations[int(rng.integers(0, len(destinations)))]
        self.movement = MovementMode.TRAVELING_OUT
        self.visit_ticks_remaining = 0
        self.travel_target = None

    def _reset_movement(self) -> None:
        self.movement = MovementMode.SETTLED
        self.travel_target = None
        self.center_ticks_remaining = 0
        self.visit_ticks_remaining = 0

    # ------------------------------------------------------------------
    # Health progression
    # ------------------------------------------------------------------

    def _set_health(self, status: HealthStatus) -> None:
        self.health = status
        self.time_in_status = 0

    def expose(self) -> None:
        """Healthy -> Exposed after a successful contact."""
        self._set_health(HealthStatus.EXPOSED)
        self.will_die = None

    def progress_infection(self, recovery_time: int, death_rate: float,
                           rng: np.random.Generator) -> HealthStatus:
        """
        Advance an Infected agent toward its fixed outcome.

        The outcome is drawn on the first infected tick and never redrawn;
        doomed agents die after half the recovery time.
        """
        if self.will_die is None:
            self.will_die = bool(rng.random() < death_rate)
            self.infection_count = 0

        if self.will_die and self.time_in_status > recovery_time / 2:
            self._end_episode(HealthStatus.DEAD)
        elif not self.will_die and self.time_in_status > recovery_time:
            self._end_episode(HealthStatus.RECOVERED)
        return self.health

    def progress_incubation(self, incubation_period: int,
                            quarantine_enabled: bool) -> bool:
        """Exposed -> Infected once incubation is over. Returns True on change."""
        if self.time_in_status <= incubation_period:
            return False
        self._set_health(HealthStatus.INFECTED)
        self.will_die = None
        if quarantine_enabled:
            self.ticks_since_infected = 0
            self.quarantine_eligible = None
        return True

    def _end_episode(self, status: HealthStatus) -> None:
        self._set_health(status)
        self.infection_count = None
        if self.quarantine is QuarantineStatus.PENDING_DETECTION:
            self.quarantine = QuarantineStatus.NOT_QUARANTINED
        if status is HealthStatus.DEAD:
            self.vx = 0.0
            self.vy = 0.0
            self._reset_movement()

    def __repr__(self) -> str:
        return (f"Agent(id={self.id}, pos=({self.x:.1f}, {self.y:.1f}), "
                f"health={self.health.value}, movement={self.movement.value}, "
                f"quarantine={self.quarantine.value})")


def validate_agent(agent: Agent) -> None:
    """
    Check the cross-axis invariants for one agent.

    Raises StateInvariantError naming the first violated rule.
    """
    def fail(message: str) -> None:
        raise StateInvariantError(f"Agent {agent.id}: {message} ({agent!r})")

    if agent.health not in _LEGAL_COMBINATIONS[agent.quarantine]:
        fail(f"{agent.health.value} agent cannot be {agent.quarantine.value}")
    if not 0 <= agent.home_region < NORMAL_REGIONS:
        fail(f"home region {agent.home_region} is not a normal region")
    if (agent.current_region == QUARANTINE_REGION) != (agent.quarantine in CONFINED):
        fail(f"region {agent.current_region} disagrees with {agent.quarantine.value}")
    if not 0 <= agent.current_region <= QUARANTINE_REGION:
        fail(f"region {agent.current_region} does not exist")
    if (agent.transit_target is not None) != (agent.quarantine in IN_TRANSIT):
        fail("transit target without quarantine transit")
    if agent.travel_target is not None and agent.movement not in TRAVELING_MODES:
        fail(f"travel target while {agent.movement.value}")
    if agent.quarantine in CONFINED and agent.movement is not MovementMode.SETTLED:
        fail(f"confined agent is {agent.movement.value}")
    if agent.is_dead() and agent.movement is not MovementMode.SETTLED:
        fail(f"dead agent is {agent.movement.value}")
    if agent.will_die is not None and agent.health in (HealthStatus.HEALTHY,
                                                       HealthStatus.EXPOSED):
        fail("outcome decided before infection")
    if agent.time_in_status < 0:
        fail("negative time in status")
