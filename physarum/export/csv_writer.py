"""CSV export of per-iteration field statistics."""

import csv
from dataclasses import asdict
from pathlib import Path
from typing import Iterable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..model.state import FieldStats


class StatsWriter:
    """
    Exports field statistics to CSV format incrementally.

    Output format:
        iteration,population,mean,maximum,saturation
        1,0,0.0123,5.0,2.5
        ...
    """

    FIELDNAMES = ['iteration', 'population', 'mean', 'maximum', 'saturation']

    def __init__(self, output_path: Path):
        self.output_path = Path(output_path)
        self.file: Optional[object] = None
        self.writer: Optional[csv.DictWriter] = None
        self._is_open = False

    def open(self) -> None:
        """Initialize file and write header."""
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self.file = open(self.output_path, 'w', newline='')
        self.writer = csv.DictWriter(self.file, fieldnames=self.FIELDNAMES)
        self.writer.writeheader()
        self._is_open = True

    def append(self, stats: Iterable["FieldStats"]) -> None:
        """Write one row per population for the current iteration."""
        if not self._is_open:
            self.open()
        for s in stats:
            self.writer.writerow(asdict(s))
        self.file.flush()

    def close(self) -> None:
        """Close file handle."""
        if self.file:
            self.file.close()
            self.file = None
            self.writer = None
            self._is_open = False

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
