"""I/O package for the Physarum simulation."""

from .csv_writer import StatsWriter
from .palette import random_palette
from .visualizer import Visualizer, ensure_output_dir
from .snapshot_queue import SnapshotQueue, ExportError
from .reporter import Reporter

__all__ = [
    'StatsWriter',
    'random_palette',
    'Visualizer',
    'ensure_output_dir',
    'SnapshotQueue',
    'ExportError',
    'Reporter',
]
