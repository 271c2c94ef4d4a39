"""Summary report generation for the contagion simulation."""

from typing import Any, Dict, Optional, TYPE_CHECKING
from pathlib import Path

if TYPE_CHECKING:
    from ..model.state import SimulationState


class Reporter:
    """
    Formats the end-of-run report.

    Peak infections and Rt come from the engine summary; the reporter only
    follows what the engine does not keep (quarantine peak, first death).
    """

    def __init__(self, config_path: Optional[str], seed: Optional[int]):
        self.config_path = config_path
        self.seed = seed
        self.peak_quarantined = 0
        self.first_death_tick: Optional[int] = None

    def update(self, state: "SimulationState") -> None:
        """Accumulate metrics per advance call."""
        counts = state.counts
        self.peak_quarantined = max(self.peak_quarantined, counts.quarantined)
        if self.first_death_tick is None and counts.dead > 0:
            self.first_death_tick = state.tick

    def generate_summary(self, final_state: "SimulationState",
                         summary: Dict[str, Any],
                         output_dir: Path,
                         csv_enabled: bool,
                         snapshot_enabled: bool,
                         chart_enabled: bool,
                         gif_enabled: bool,
                         agent_log_enabled: bool = False) -> str:
        """Returns formatted text report."""
        counts = final_state.counts
        total = counts.total
        ever_infected = total - counts.healthy
        attack_pct = (ever_infected / total * 100) if total > 0 else 0
        resolved = counts.recovered + counts.dead
        fatality_pct = (counts.dead / resolved * 100) if resolved > 0 else 0

        # Build report
        lines = [
            "",
            "=" * 80,
            "                      CONTAGION SIMULATION REPORT",
            "=" * 80,
            f"Configuration: {self.config_path or '(defaults)'}",
            f"Random Seed: {self.seed if self.seed is not None else 'None (random)'}",
            "",
            "FINAL COMPARTMENTS",
            "-" * 40,
            f"Total Ticks:           {final_state.tick}",
            f"Healthy:               {counts.healthy} / {total}",
            f"Exposed:               {counts.exposed}",
            f"Infected:              {counts.infected}",
            f"Recovered:             {counts.recovered}",
            f"Dead:                  {counts.dead}",
            f"Quarantined:           {counts.quarantined}",
            "",
            "EPIDEMIC METRICS",
            "-" * 40,
            f"Attack Rate:           {ever_infected} / {total} ({attack_pct:.1f}%)",
            f"Transmissions:         {summary['total_infections']}",
            f"Case Fatality:         {fatality_pct:.1f}% of resolved cases",
            f"Peak Infected:         {summary['peak_infected']} at tick {summary['peak_tick']}",
            f"Peak Quarantined:      {self.peak_quarantined}",
            f"Final Rt:              {final_state.rt:.2f}",
            f"Max Rt:                {summary['max_rt']:.2f}",
            f"First Death:           "
            + (f"tick {self.first_death_tick}" if self.first_death_tick is not None else "none"),
            "",
            "OUTPUT FILES",
            "-" * 40,
        ]

        # Output file paths
        outputs = [
            ("CSV Log:   ", csv_enabled, 'history.csv'),
            ("Agent Log: ", agent_log_enabled, 'agents.csv'),
            ("Snapshot:  ", snapshot_enabled, 'final_state.png'),
            ("Chart:     ", chart_enabled, 'history.png'),
            ("Animation: ", gif_enabled, 'simulation.gif'),
        ]
        for label, enabled, filename in outputs:
            if enabled:
                lines.append(f"{label} {output_dir / filename}")
            else:
                lines.append(f"{label} (disabled)")

        lines.append("=" * 80)

        return "\n".join(lines)
