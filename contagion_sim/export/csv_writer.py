"""CSV export for the contagion simulation."""

import csv
from pathlib import Path
from typing import Dict, Iterable, List, Optional, TextIO, TYPE_CHECKING

if TYPE_CHECKING:
    from ..model.state import SimulationState

HISTORY_FIELDS = ['tick', 'healthy', 'exposed', 'infected', 'recovered',
                  'dead', 'quarantined', 'rt']
AGENT_FIELDS = ['tick', 'agent_id', 'x', 'y', 'status', 'quarantine', 'region']


class CSVWriter:
    """
    Streams rows to a CSV file as the run progresses.

    With the default columns one row is written per advance call:
        tick,healthy,exposed,infected,recovered,dead,quarantined,rt
        1,490,0,5,0,0,0,0.0

    Passing AGENT_FIELDS turns it into a per-agent log instead.
    """

    def __init__(self, output_path: Path, fieldnames: Optional[List[str]] = None):
        self.output_path = Path(output_path)
        self.fieldnames = list(fieldnames or HISTORY_FIELDS)
        self.file: Optional[TextIO] = None
        self.writer: Optional[csv.DictWriter] = None

    @property
    def is_open(self) -> bool:
        return self.file is not None

    def open(self) -> None:
        """Create the file (and parent directories) and write the header."""
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self.file = open(self.output_path, 'w', newline='')
        self.writer = csv.DictWriter(self.file, fieldnames=self.fieldnames)
        self.writer.writeheader()

    def write_rows(self, rows: Iterable[Dict]) -> None:
        if not self.is_open:
            self.open()
        self.writer.writerows(rows)
        self.file.flush()

    def append(self, state: "SimulationState") -> None:
        """Write the history point for one advance call."""
        self.write_rows([state.history_record().to_row()])

    def append_agents(self, state: "SimulationState") -> None:
        """Write one row per agent for the current tick."""
        self.write_rows(state.to_csv_rows())

    def close(self) -> None:
        if self.file is not None:
            self.file.close()
        self.file = None
        self.writer = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
