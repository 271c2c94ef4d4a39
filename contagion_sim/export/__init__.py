"""I/O package for the contagion simulation."""

from .csv_writer import CSVWriter, AGENT_FIELDS, HISTORY_FIELDS
from .visualizer import Visualizer
from .reporter import Reporter

__all__ = ['CSVWriter', 'AGENT_FIELDS', 'HISTORY_FIELDS', 'Visualizer', 'Reporter']
