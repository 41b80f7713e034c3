"""Summary report generation for the Physarum simulation."""

from typing import List, Dict, Optional, Sequence, TYPE_CHECKING
from pathlib import Path

if TYPE_CHECKING:
    from ..model.engine import Model
    from ..model.state import FieldStats


class Reporter:
    """Generates summary statistics and formatted text report."""

    def __init__(self, config_path: Optional[str], seed: Optional[int]):
        self.config_path = config_path
        self.seed = seed
        self.iterations_seen = 0
        self.peak_mean: Dict[int, float] = {}
        self.peak_iteration: Dict[int, int] = {}
        self.last_stats: List["FieldStats"] = []

    def update(self, stats: Sequence["FieldStats"]) -> None:
        """Accumulate field statistics for one iteration."""
        self.iterations_seen += 1
        for s in stats:
            if s.mean > self.peak_mean.get(s.population, float('-inf')):
                self.peak_mean[s.population] = s.mean
                self.peak_iteration[s.population] = s.iteration
        self.last_stats = list(stats)

    def generate_summary(self, model: "Model",
                         output_dir: Path,
                         images: Sequence[Path],
                         stats_path: Optional[Path],
                         colors: Sequence[str]) -> str:
        """Returns formatted text report."""
        summary = model.get_summary()

        lines = [
            "",
            "=" * 80,
            "                    PHYSARUM SIMULATION REPORT",
            "=" * 80,
            f"Configuration: {self.config_path or '(defaults)'}",
            f"Random Seed: {self.seed if self.seed is not None else 'None (random)'}",
            "",
            "SIMULATION",
            "-" * 40,
            f"Grid:                  {model.width}x{model.height}",
            f"Iterations:            {summary['iterations']}",
            f"Populations:           {summary['populations']}",
            f"Agents:                {summary['agents_total']} "
            f"({summary['agents_per_population']} per population, "
            f"{summary['agents_requested']} requested)",
            f"Diffusivity:           {summary['diffusivity']}",
            "",
            "POPULATIONS",
            "-" * 40,
        ]
        lines.extend(model.describe().splitlines())

        if self.last_stats:
            lines += ["", "FINAL FIELDS", "-" * 40]
            for s in self.last_stats:
                color = colors[s.population] if s.population < len(colors) else '-'
                line = (f"[{s.population}] {color}  mean {s.mean:.4f}  "
                        f"max {s.maximum:.4f}  q99.9 {s.saturation:.4f}")
                # peaks are only tracked when stats were collected every step
                if self.iterations_seen > 1:
                    line += (f"  (peak mean {self.peak_mean[s.population]:.4f} "
                             f"at iteration {self.peak_iteration[s.population]})")
                lines.append(line)

        lines += ["", "OUTPUT FILES", "-" * 40]
        lines.append(f"Output dir: {output_dir}")
        if images:
            lines.append(f"Images:     {len(images)} written, last {images[-1]}")
        else:
            lines.append("Images:     (none)")
        if stats_path is not None:
            lines.append(f"Stats CSV:  {stats_path}")
        else:
            lines.append("Stats CSV:  (disabled)")

        lines.append("=" * 80)

        return "\n".join(lines)
