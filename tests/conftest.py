"""Shared fixtures for the contagion simulation tests."""

import matplotlib
matplotlib.use('Agg')

import numpy as np
import pytest

from contagion_sim.config import EpidemicConfig, QuarantineConfig, SimulationConfig


def make_config(agent_count=120, seed=7, max_ticks=2000, speed=1,
                quarantine=False, effectiveness=70.0, **epidemic) -> SimulationConfig:
    """Small, seeded configuration; epidemic kwargs override the defaults."""
    return SimulationConfig(
        agent_count=agent_count,
        max_ticks=max_ticks,
        speed=speed,
        seed=seed,
        epidemic=EpidemicConfig(**epidemic),
        quarantine=QuarantineConfig(enabled=quarantine, effectiveness=effectiveness),
    )


def run_ticks(engine, ticks, step=10):
    """Advance `ticks` ticks in calls of at most `step`; returns the last state."""
    state = engine.snapshot()
    while ticks > 0:
        state = engine.advance(min(step, ticks))
        ticks -= step
    return state


class FixedRng:
    """Stands in for a Generator where only random() is used."""

    def __init__(self, value=0.0):
        self.value = value

    def random(self):
        return self.value


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def small_config():
    return make_config()
