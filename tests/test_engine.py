"""Tests for contagion_sim.model.engine: tick orchestration and snapshots.

Covers:
  1. Population construction and restart reproducibility
  2. Snapshot conservation and history bookkeeping
  3. Status-clock monotonicity and cross-axis invariants
  4. Outbreak scenarios: no transmission, no quarantine, certain death,
     certain detection, zero Rt at start
  5. Configuration changes between advances
"""

import dataclasses

import numpy as np
import pytest

from conftest import make_config, run_ticks
from contagion_sim.config import ConfigError
from contagion_sim.model.agent import (
    CONFINED,
    DETECTION_DELAY,
    HealthStatus,
    QuarantineStatus,
)
from contagion_sim.model.engine import SimulationEngine
from contagion_sim.model.layout import NORMAL_REGIONS, QUARANTINE_REGION, region_bounds


def population_signature(engine):
    return [(a.x, a.y, a.vx, a.vy, a.health, a.home_region) for a in engine.agents]


# ═══════════════════════════════════════════════════════════════════════
# POPULATION
# ═══════════════════════════════════════════════════════════════════════

class TestPopulation:
    def test_agent_count_and_ids(self, small_config):
        engine = SimulationEngine(small_config)
        assert len(engine.agents) == 120
        assert [a.id for a in engine.agents] == list(range(120))

    def test_home_regions_block_assigned(self):
        engine = SimulationEngine(make_config(agent_count=500))
        homes = [a.home_region for a in engine.agents]
        # 500 // 8 = 62 per region, remainder lands in the last one
        assert homes[:62] == [0] * 62
        assert homes[62] == 1
        assert homes.count(NORMAL_REGIONS - 1) == 500 - 62 * 7
        assert max(homes) == NORMAL_REGIONS - 1

    def test_agents_start_inside_home(self, small_config):
        engine = SimulationEngine(small_config)
        for a in engine.agents:
            assert region_bounds(a.home_region).contains(a.x, a.y)
            assert abs(a.vx) <= 0.3 and abs(a.vy) <= 0.3

    def test_first_agents_infected(self):
        engine = SimulationEngine(make_config(initial_infected=7))
        statuses = [a.health for a in engine.agents]
        assert statuses[:7] == [HealthStatus.INFECTED] * 7
        assert all(s is HealthStatus.HEALTHY for s in statuses[7:])

    def test_restart_is_reproducible(self, small_config):
        engine = SimulationEngine(small_config)
        first = population_signature(engine)
        run_ticks(engine, 25)
        engine.restart(small_config)
        assert population_signature(engine) == first
        assert engine.current_tick == 0
        assert engine.history == []
        assert engine.estimator.maximum == 0.0

    def test_restart_clears_reproduction_window(self):
        config = make_config(infection_probability=1.0, incubation_period=10)
        engine = SimulationEngine(config)
        run_ticks(engine, 300)
        assert engine.estimator.maximum > 0
        engine.restart(config)
        assert not engine.estimator.events
        assert engine.snapshot().max_rt == 0.0
        assert engine.total_infections == 0

    def test_two_engines_same_seed(self, small_config):
        a = SimulationEngine(small_config)
        b = SimulationEngine(small_config)
        assert population_signature(a) == population_signature(b)
        for _ in range(5):
            sa = a.advance(10)
            sb = b.advance(10)
        assert sa == sb
        np.testing.assert_array_equal(
            np.array([(s.x, s.y) for s in sa.agents]),
            np.array([(a.x, a.y) for a in b.agents]),
        )

    def test_different_seeds_differ(self):
        a = SimulationEngine(make_config(seed=1))
        b = SimulationEngine(make_config(seed=2))
        assert population_signature(a) != population_signature(b)


# ═══════════════════════════════════════════════════════════════════════
# SNAPSHOTS AND HISTORY
# ═══════════════════════════════════════════════════════════════════════

class TestSnapshots:
    def test_initial_rt_is_zero(self, small_config):
        engine = SimulationEngine(small_config)
        state = engine.snapshot()
        assert state.tick == 0
        assert state.rt == 0.0
        assert state.max_rt == 0.0
        assert state.counts.infected == 5

    def test_conservation(self):
        engine = SimulationEngine(make_config(infection_probability=1.0,
                                              quarantine=True, effectiveness=50.0))
        for _ in range(60):
            state = engine.advance(5)
            assert state.counts.total == 120
            assert len(state.agents) == 120

    def test_snapshot_is_immutable(self, small_config):
        state = SimulationEngine(small_config).advance()
        with pytest.raises(dataclasses.FrozenInstanceError):
            state.tick = 99
        with pytest.raises(dataclasses.FrozenInstanceError):
            state.agents[0].x = 0.0
        assert isinstance(state.agents, tuple)

    def test_snapshot_detached_from_agents(self, small_config):
        engine = SimulationEngine(small_config)
        state = engine.advance()
        x = state.agents[10].x
        run_ticks(engine, 20)
        assert state.agents[10].x == x

    def test_one_history_record_per_advance(self, small_config):
        engine = SimulationEngine(small_config)
        engine.advance(3)
        engine.advance(4)
        engine.advance()
        assert [h.tick for h in engine.history] == [3, 7, 8]

    def test_speed_is_default_tick_count(self):
        engine = SimulationEngine(make_config(speed=4))
        assert engine.advance().tick == 4

    def test_history_matches_snapshot(self, small_config):
        engine = SimulationEngine(small_config)
        state = engine.advance(10)
        record = engine.history[-1]
        assert record.infected == state.counts.infected
        assert record.healthy == state.counts.healthy
        assert record.rt == state.rt

    @pytest.mark.parametrize("ticks", [0, -1, 2.5, True, 11, 300])
    def test_invalid_tick_count(self, small_config, ticks):
        engine = SimulationEngine(small_config)
        with pytest.raises(ConfigError):
            engine.advance(ticks)


# ═══════════════════════════════════════════════════════════════════════
# PER-TICK PROPERTIES
# ═══════════════════════════════════════════════════════════════════════

class TestTickProperties:
    def test_time_in_status_monotone(self):
        engine = SimulationEngine(make_config(infection_probability=1.0,
                                              incubation_period=10,
                                              recovery_time=100,
                                              death_rate=0.3))
        previous = {a.id: (a.health, a.time_in_status) for a in engine.agents}
        changes = 0
        for _ in range(300):
            engine.advance(1)
            for a in engine.agents:
                health, clock = previous[a.id]
                if a.health is health:
                    assert a.time_in_status == clock + 1
                else:
                    # The exposure tick already counts toward incubation
                    expected = 1 if a.health is HealthStatus.EXPOSED else 0
                    assert a.time_in_status == expected
                    changes += 1
                previous[a.id] = (a.health, a.time_in_status)
        assert changes > 0

    def test_incubation_lasts_exactly_the_period(self):
        engine = SimulationEngine(make_config(infection_probability=1.0,
                                              incubation_period=10,
                                              recovery_time=300))
        exposed_at, infected_at = {}, {}
        for _ in range(200):
            state = engine.advance(1)
            for a in engine.agents:
                if a.health is HealthStatus.EXPOSED:
                    exposed_at.setdefault(a.id, state.tick)
                elif a.health is HealthStatus.INFECTED and a.id in exposed_at:
                    infected_at.setdefault(a.id, state.tick)
        assert infected_at
        gaps = {infected_at[i] - exposed_at[i] for i in infected_at}
        assert gaps == {10}

    def test_invariants_hold_with_quarantine(self):
        config = make_config(infection_probability=1.0, incubation_period=10,
                             recovery_time=100, death_rate=0.2,
                             quarantine=True, effectiveness=80.0)
        config.validate = True
        engine = SimulationEngine(config)
        saw_confined = False
        for _ in range(400):
            engine.advance(1)
            in_ward = sum(a.current_region == QUARANTINE_REGION for a in engine.agents)
            confined = sum(a.quarantine in CONFINED for a in engine.agents)
            assert in_ward == confined
            saw_confined = saw_confined or confined > 0
            for a in engine.agents:
                if a.quarantine is not QuarantineStatus.NOT_QUARANTINED:
                    assert a.health not in (HealthStatus.HEALTHY, HealthStatus.EXPOSED)
        engine.check_invariants()
        assert saw_confined


# ═══════════════════════════════════════════════════════════════════════
# SCENARIOS
# ═══════════════════════════════════════════════════════════════════════

class TestScenarios:
    def test_no_transmission_without_probability(self):
        """Scenario A: probability 0 over 1000 ticks infects nobody."""
        engine = SimulationEngine(make_config(infection_probability=0.0,
                                              initial_infected=5))
        for _ in range(100):
            state = engine.advance(10)
            assert state.counts.exposed == 0
        assert engine.total_infections == 0
        assert state.tick == 1000

    def test_quarantine_disabled_never_quarantines(self):
        """Scenario B."""
        engine = SimulationEngine(make_config(infection_probability=1.0,
                                              incubation_period=10,
                                              quarantine=False))
        for _ in range(300):
            engine.advance(1)
            assert all(a.quarantine is QuarantineStatus.NOT_QUARANTINED
                       for a in engine.agents)
            assert all(a.current_region != QUARANTINE_REGION for a in engine.agents)

    def test_certain_death(self):
        """Scenario C: death rate 1.0 means no one ever recovers."""
        engine = SimulationEngine(make_config(infection_probability=1.0,
                                              incubation_period=10,
                                              recovery_time=100,
                                              death_rate=1.0,
                                              max_ticks=3000))
        while not engine.is_finished():
            state = engine.advance(10)
            assert state.counts.recovered == 0
        assert state.counts.dead >= 5
        for a in engine.agents:
            assert a.health is not HealthStatus.RECOVERED
            if a.health is HealthStatus.INFECTED:
                assert a.will_die is True

    def test_certain_detection_reaches_quarantine(self):
        """Scenario D: 100% effectiveness quarantines every case in bounded time."""
        engine = SimulationEngine(make_config(infection_probability=0.0,
                                              death_rate=0.0,
                                              quarantine=True,
                                              effectiveness=100.0))
        cases = engine.agents[:5]

        engine.advance(DETECTION_DELAY - 1)
        assert all(a.quarantine is QuarantineStatus.PENDING_DETECTION for a in cases)
        engine.advance(1)
        assert all(a.quarantine is QuarantineStatus.EN_ROUTE_TO_QUARANTINE for a in cases)

        # Longest possible flight across the canvas at 10 units per tick
        run_ticks(engine, 120)
        for a in cases:
            assert a.quarantine is QuarantineStatus.QUARANTINED
            assert a.current_region == QUARANTINE_REGION
            assert a.health is HealthStatus.INFECTED
        assert engine.snapshot().counts.quarantined == 5

    def test_quarantined_cases_recover_and_return(self):
        engine = SimulationEngine(make_config(infection_probability=0.0,
                                              death_rate=0.0,
                                              recovery_time=100,
                                              quarantine=True,
                                              effectiveness=100.0))
        run_ticks(engine, 250)
        for a in engine.agents[:5]:
            assert a.health is HealthStatus.RECOVERED
            assert a.quarantine is QuarantineStatus.NOT_QUARANTINED
            assert a.current_region == a.home_region
        assert engine.snapshot().counts.quarantined == 0

    def test_outbreak_spreads(self):
        engine = SimulationEngine(make_config(infection_probability=1.0,
                                              incubation_period=10))
        run_ticks(engine, 300)
        assert engine.total_infections > 0
        assert engine.estimator.maximum > 0
        assert engine.peak_infected >= 5


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION CHANGES
# ═══════════════════════════════════════════════════════════════════════

class TestConfigChanges:
    def test_invalid_config_rejected(self):
        with pytest.raises(ConfigError):
            SimulationEngine(make_config(infection_radius=-1.0))

    def test_restart_rejects_invalid(self, small_config):
        engine = SimulationEngine(small_config)
        with pytest.raises(ConfigError):
            engine.restart(make_config(recovery_time=5))

    def test_advance_rejects_mutated_config(self, small_config):
        engine = SimulationEngine(small_config)
        engine.config.epidemic.death_rate = 2.0
        with pytest.raises(ConfigError):
            engine.advance()

    def test_agent_count_fixed(self, small_config):
        engine = SimulationEngine(small_config)
        with pytest.raises(ConfigError):
            engine.update_config(make_config(agent_count=200))

    def test_outcome_draws_not_retroactive(self):
        engine = SimulationEngine(make_config(infection_probability=0.0,
                                              death_rate=0.0,
                                              recovery_time=100))
        engine.advance(1)
        assert all(a.will_die is False for a in engine.agents[:5])
        engine.update_config(make_config(infection_probability=0.0,
                                         death_rate=1.0,
                                         recovery_time=100))
        run_ticks(engine, 110)
        assert all(a.health is HealthStatus.RECOVERED for a in engine.agents[:5])

    def test_finished_when_epidemic_over(self):
        engine = SimulationEngine(make_config(infection_probability=0.0,
                                              death_rate=0.0,
                                              recovery_time=100))
        assert not engine.is_finished()
        run_ticks(engine, 102)
        assert engine.is_finished()

    def test_finished_at_max_ticks(self):
        engine = SimulationEngine(make_config(max_ticks=10))
        engine.advance(10)
        assert engine.is_finished()

    def test_summary(self, small_config):
        engine = SimulationEngine(small_config)
        engine.advance(10)
        summary = engine.get_summary()
        assert summary['total_ticks'] == 10
        assert summary['agents_total'] == 120
        assert 0.0 <= summary['attack_rate'] <= 1.0
        for key in ('healthy', 'infected', 'dead', 'max_rt', 'peak_infected'):
            assert key in summary
