"""Deferred rendering of field snapshots on a background thread."""

import logging
import queue
import threading
from pathlib import Path
from typing import List, Optional, TYPE_CHECKING

from .visualizer import Visualizer, ensure_output_dir

if TYPE_CHECKING:
    from ..model.state import FieldSnapshot

logger = logging.getLogger(__name__)

_STOP = object()


class ExportError(RuntimeError):
    """A snapshot could not be rendered or written."""


class SnapshotQueue:
    """
    Bounded queue of FieldSnapshots drained by one rendering thread.

    Each snapshot is written to `out_dir/out_<iteration>.png`. `put()` blocks
    while the queue is full, which caps memory held by pending snapshots.
    A rendering failure is re-raised as ExportError from the next `put()`
    or from `close()`; snapshots queued after a failure are dropped.
    """

    def __init__(self, visualizer: Visualizer, out_dir: Path, maxsize: int = 4):
        self.visualizer = visualizer
        self.out_dir = Path(out_dir)
        self.written: List[Path] = []
        self._queue: "queue.Queue" = queue.Queue(maxsize=maxsize)
        self._error: Optional[BaseException] = None
        self._thread: Optional[threading.Thread] = None

    def path_for(self, iteration: int) -> Path:
        return self.out_dir / f"out_{iteration:06d}.png"

    def start(self) -> None:
        """Create the output directory and start the rendering thread."""
        ensure_output_dir(self.out_dir)
        self._thread = threading.Thread(target=self._run,
                                        name="snapshot-renderer", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                if self._error is None:
                    self._render(item)
            finally:
                self._queue.task_done()

    def _render(self, snapshot: "FieldSnapshot") -> None:
        path = self.path_for(snapshot.iteration)
        try:
            self.visualizer.save_snapshot(snapshot, path)
        except Exception as e:
            logger.error("Failed to write %s: %s", path, e)
            self._error = e
        else:
            self.written.append(path)

    def _raise_pending(self) -> None:
        if self._error is not None:
            raise ExportError(f"snapshot rendering failed: {self._error}") \
                from self._error

    def put(self, snapshot: "FieldSnapshot") -> None:
        """Queue a snapshot for rendering, blocking while the queue is full."""
        if self._thread is None:
            raise RuntimeError("snapshot queue not started")
        self._raise_pending()
        self._queue.put(snapshot)

    def close(self) -> List[Path]:
        """Render everything still queued, stop the thread, return written paths."""
        if self._thread is not None:
            self._queue.put(_STOP)
            self._thread.join()
            self._thread = None
        self._raise_pending()
        return list(self.written)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.close()
        elif self._thread is not None:
            # Already failing; stop the worker without masking the error
            self._queue.put(_STOP)
            self._thread.join()
            self._thread = None
        return False
