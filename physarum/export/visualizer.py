"""Image rendering and export for the Physarum simulation."""

import logging
from pathlib import Path
from typing import List, Sequence, Tuple, TYPE_CHECKING

import numpy as np
from PIL import Image

if TYPE_CHECKING:
    from ..model.grid import Grid
    from ..model.state import FieldSnapshot

logger = logging.getLogger(__name__)

# Saturation values at or below this are treated as an empty field
_EPSILON = 1e-12


def ensure_output_dir(path: Path) -> Path:
    """
    Create `path` (and parents) if absent.

    An existing directory is fine; any other OSError, including a file in
    the way, propagates.
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


class Visualizer:
    """
    Turns trail fields into images.

    One population renders as grayscale, scaled so the `quantile` value is
    white. Several populations render as RGB: each field is normalized against
    quantile * headroom, gamma corrected, and added into the pixel weighted by
    the population's color.
    """

    def __init__(self, colors: Sequence[Tuple[int, int, int]],
                 quantile: float = 0.999, headroom: float = 1.5,
                 gamma: float = 2.2):
        self.colors = [tuple(c) for c in colors]
        self.quantile = quantile
        self.headroom = headroom
        self.gamma = gamma

    @staticmethod
    def _normalize(field: np.ndarray, saturation: float) -> np.ndarray:
        """Scale to [0, 1]; an empty field (saturation ~ 0) is all dark."""
        if saturation <= _EPSILON:
            return np.zeros_like(field)
        return np.clip(field / saturation, 0.0, 1.0)

    def render_grayscale(self, grid: "Grid") -> Image.Image:
        """Grayscale image of one grid."""
        normalized = self._normalize(grid.field, grid.quantile(self.quantile))
        pixels = (normalized * 255.0).astype(np.uint8)
        return Image.fromarray(pixels)

    def render_rgb(self, grids: Sequence["Grid"]) -> Image.Image:
        """Additively blended RGB image of several grids."""
        if len(self.colors) < len(grids):
            raise ValueError(f"{len(grids)} grids but only "
                             f"{len(self.colors)} colors")
        height, width = grids[0].field.shape
        rgb = np.zeros((height, width, 3), dtype=np.float64)

        for grid, color in zip(grids, self.colors):
            saturation = grid.quantile(self.quantile) * self.headroom
            t = self._normalize(grid.field, saturation) ** (1.0 / self.gamma)
            rgb += t[:, :, np.newaxis] * np.asarray(color, dtype=np.float64)

        pixels = np.clip(rgb, 0, 255).astype(np.uint8)
        return Image.fromarray(pixels)

    def render(self, snapshot: "FieldSnapshot") -> Image.Image:
        """Render a snapshot: grayscale for one population, RGB otherwise."""
        if len(snapshot.grids) == 1:
            return self.render_grayscale(snapshot.grids[0])
        return self.render_rgb(snapshot.grids)

    def save_snapshot(self, snapshot: "FieldSnapshot", output_path: Path) -> Path:
        """Save a PNG image of the snapshot."""
        output_path = Path(output_path)
        ensure_output_dir(output_path.parent)
        self.render(snapshot).save(output_path)
        logger.debug("Wrote %s (iteration %d)", output_path, snapshot.iteration)
        return output_path

    def describe_colors(self) -> List[str]:
        return ['#%02x%02x%02x' % color for color in self.colors]
