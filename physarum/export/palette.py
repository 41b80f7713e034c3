"""Per-population color palettes."""

from typing import List, Tuple

import numpy as np
from matplotlib.colors import hsv_to_rgb

Color = Tuple[int, int, int]


def random_palette(n: int, rng: np.random.Generator,
                   saturation: float = 0.75, value: float = 1.0) -> List[Color]:
    """
    Return `n` distinct RGB colors (0-255).

    Hues are evenly spaced around the color wheel, rotated by a random offset
    so each run gets a different look.
    """
    if n < 1:
        raise ValueError(f"palette size must be at least 1, got {n}")
    hues = (rng.random() + np.arange(n) / n) % 1.0
    hsv = np.stack([hues, np.full(n, saturation), np.full(n, value)], axis=1)
    rgb = np.rint(hsv_to_rgb(hsv) * 255).astype(int)
    return [tuple(int(c) for c in color) for color in rgb]
