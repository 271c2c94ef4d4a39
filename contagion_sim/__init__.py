"""Agent-based contagion simulation across eight communities and a quarantine ward."""

__version__ = "0.1.0"
