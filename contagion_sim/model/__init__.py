"""Model package for the contagion simulation."""

from .state import AgentSnapshot, HistoryRecord, SimulationState, StatusCounts
from .layout import RegionBounds, region_bounds
from .spatial import SpatialIndex
from .agent import (
    Agent,
    HealthStatus,
    MovementMode,
    QuarantineStatus,
    StateInvariantError,
    validate_agent,
)
from .transmission import InfectionEvent, TransmissionEngine
from .reproduction import ReproductionEstimator
from .engine import SimulationEngine

__all__ = [
    'AgentSnapshot',
    'HistoryRecord',
    'SimulationState',
    'StatusCounts',
    'RegionBounds',
    'region_bounds',
    'SpatialIndex',
    'Agent',
    'HealthStatus',
    'MovementMode',
    'QuarantineStatus',
    'StateInvariantError',
    'validate_agent',
    'InfectionEvent',
    'TransmissionEngine',
    'ReproductionEstimator',
    'SimulationEngine',
]
