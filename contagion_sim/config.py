"""Configuration dataclasses and YAML loader for the contagion simulation."""

from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional
from pathlib import Path
import yaml


class ConfigError(ValueError):
    """Raised when a configuration value lies outside its documented range."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("Invalid configuration: " + "; ".join(self.problems))


@dataclass
class EpidemicConfig:
    initial_infected: int = 5
    incubation_period: int = 50          # ticks spent Exposed
    infection_radius: float = 20.0       # contact distance (length units)
    infection_probability: float = 0.2   # per-contact slider value (dampened x10)
    recovery_time: int = 300             # ticks spent Infected
    death_rate: float = 0.01             # probability an episode ends in death


@dataclass
class QuarantineConfig:
    enabled: bool = False
    effectiveness: float = 70.0  # detection chance, percent


@dataclass
class SimulationConfig:
    agent_count: int = 500
    max_ticks: int = 3000
    speed: int = 1  # ticks per advance call
    epidemic: EpidemicConfig = field(default_factory=EpidemicConfig)
    quarantine: QuarantineConfig = field(default_factory=QuarantineConfig)

    # Export flags (can be overridden by CLI)
    csv_enabled: bool = True
    agent_log_enabled: bool = False
    snapshot_enabled: bool = True
    chart_enabled: bool = True
    gif_enabled: bool = False
    quiet: bool = False
    validate: bool = False
    seed: Optional[int] = None
    out_dir: Path = field(default_factory=lambda: Path("./output"))


# Ticks per advance call
SPEED_RANGE = (1, 10)

# (name, lower, upper) for every bounded setting
_EPIDEMIC_RANGES = [
    ('initial_infected', 1, 20),
    ('incubation_period', 10, 100),
    ('infection_radius', 5, 40),
    ('infection_probability', 0.0, 1.0),
    ('recovery_time', 100, 300),
    ('death_rate', 0.0, 1.0),
]

_INTEGER_FIELDS = {'initial_infected', 'incubation_period', 'recovery_time'}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def check_range(problems: List[str], name: str, value: Any,
                lower: float, upper: float, integer: bool = False) -> None:
    """Append a problem if `value` is not a number in [lower, upper]."""
    if integer and not _is_integer(value):
        problems.append(f"{name} must be an integer, got {value!r}")
    elif not _is_number(value):
        problems.append(f"{name} must be a number, got {value!r}")
    elif not lower <= value <= upper:
        problems.append(f"{name} must be in [{lower}, {upper}], got {value}")


def validate_config(config: SimulationConfig) -> None:
    """
    Check every setting against its documented range.

    All violations are collected and reported together; nothing is clamped.
    Raises ConfigError if any setting is out of range.
    """
    problems: List[str] = []

    if not _is_integer(config.agent_count) or config.agent_count < 1:
        problems.append(f"agent_count must be a positive integer, got {config.agent_count!r}")
    if not _is_integer(config.max_ticks) or config.max_ticks < 0:
        problems.append(f"max_ticks must be a non-negative integer, got {config.max_ticks!r}")
    check_range(problems, 'speed', config.speed, *SPEED_RANGE, integer=True)

    epidemic = config.epidemic
    for name, lower, upper in _EPIDEMIC_RANGES:
        check_range(problems, f"epidemic.{name}", getattr(epidemic, name),
                     lower, upper, integer=name in _INTEGER_FIELDS)

    if (_is_integer(epidemic.initial_infected) and _is_integer(config.agent_count)
            and epidemic.initial_infected > config.agent_count):
        problems.append(
            f"epidemic.initial_infected ({epidemic.initial_infected}) exceeds "
            f"agent_count ({config.agent_count})"
        )

    if not isinstance(config.quarantine.enabled, bool):
        problems.append(f"quarantine.enabled must be a boolean, got {config.quarantine.enabled!r}")
    check_range(problems, 'quarantine.effectiveness',
                 config.quarantine.effectiveness, 0, 100)

    if config.seed is not None and not _is_integer(config.seed):
        problems.append(f"seed must be an integer or null, got {config.seed!r}")

    if problems:
        raise ConfigError(problems)


def _parse_epidemic(raw: Dict[str, Any]) -> EpidemicConfig:
    """Parse epidemic parameters from raw YAML data."""
    defaults = EpidemicConfig()
    return EpidemicConfig(
        initial_infected=raw.get('initial_infected', defaults.initial_infected),
        incubation_period=raw.get('incubation_period', defaults.incubation_period),
        infection_radius=raw.get('infection_radius', defaults.infection_radius),
        infection_probability=raw.get('infection_probability',
                                      defaults.infection_probability),
        recovery_time=raw.get('recovery_time', defaults.recovery_time),
        death_rate=raw.get('death_rate', defaults.death_rate)
    )


def _parse_quarantine(raw: Dict[str, Any]) -> QuarantineConfig:
    """Parse quarantine settings from raw YAML data."""
    defaults = QuarantineConfig()
    return QuarantineConfig(
        enabled=raw.get('enabled', defaults.enabled),
        effectiveness=raw.get('effectiveness', defaults.effectiveness)
    )


def load_config(config_path: Path) -> SimulationConfig:
    """Load and validate YAML configuration file."""
    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ConfigError([f"top level of {config_path} must be a mapping"])

    sim_raw = raw.get('simulation', {}) or {}
    export_raw = raw.get('export', {}) or {}
    defaults = SimulationConfig()

    config = SimulationConfig(
        agent_count=sim_raw.get('agent_count', defaults.agent_count),
        max_ticks=sim_raw.get('max_ticks', defaults.max_ticks),
        speed=sim_raw.get('speed', defaults.speed),
        seed=sim_raw.get('seed'),
        epidemic=_parse_epidemic(raw.get('epidemic', {}) or {}),
        quarantine=_parse_quarantine(raw.get('quarantine', {}) or {}),
        csv_enabled=export_raw.get('csv', True),
        agent_log_enabled=export_raw.get('agent_log', False),
        snapshot_enabled=export_raw.get('snapshot', True),
        chart_enabled=export_raw.get('chart', True),
        gif_enabled=export_raw.get('gif', False)
    )
    validate_config(config)
    return config
