import csv

import numpy as np
import pytest
from PIL import Image

from physarum.export.csv_writer import StatsWriter
from physarum.export.palette import random_palette
from physarum.export.reporter import Reporter
from physarum.export.snapshot_queue import ExportError, SnapshotQueue
from physarum.export.visualizer import Visualizer, ensure_output_dir
from physarum.main import main
from physarum.model.engine import Model
from physarum.model.state import FieldSnapshot


def _snapshot(grids, iteration=1):
    return FieldSnapshot(iteration=iteration, grids=tuple(grids))


def test_grayscale_scales_to_high_quantile(make_grid):
    grid = make_grid(width=4, height=4)
    grid.field[:] = 2.0
    grid.field[0, 0] = 0.0
    grid.field[1, 1] = 1.0

    image = Visualizer([(255, 255, 255)]).render(_snapshot([grid]))
    pixels = np.asarray(image)

    assert image.mode == 'L'
    assert pixels.shape == (4, 4)
    assert pixels[0, 0] == 0
    assert pixels[1, 1] == 127
    assert pixels[3, 3] == 255


def test_empty_field_renders_dark(make_grid):
    grid = make_grid()
    pixels = np.asarray(Visualizer([(255, 0, 0)]).render(_snapshot([grid])))
    assert not pixels.any()

    other = make_grid()
    pixels = np.asarray(Visualizer([(255, 0, 0), (0, 255, 0)])
                        .render(_snapshot([grid, other])))
    assert not pixels.any()


def test_rgb_blends_gamma_corrected_colors(make_grid):
    red, blue = make_grid(width=4, height=4), make_grid(width=4, height=4)
    red.field[:] = 2.0
    blue.field[:] = 0.0
    blue.field[2, 3] = 4.0

    image = Visualizer([(255, 0, 0), (0, 0, 255)]).render(_snapshot([red, blue]))
    pixels = np.asarray(image)

    assert image.mode == 'RGB'
    expected_red = int(255 * (2.0 / 3.0) ** (1 / 2.2))
    assert pixels[0, 0].tolist() == [expected_red, 0, 0]
    # headroom keeps blue's single peak below full intensity
    expected_blue = int(255 * (4.0 / (blue.quantile(0.999) * 1.5)) ** (1 / 2.2))
    assert 0 < expected_blue < 255
    assert pixels[2, 3].tolist() == [expected_red, 0, expected_blue]
    assert pixels[0, 0, 2] == 0


def test_rgb_channels_clamp(make_grid):
    a, b = make_grid(width=2, height=2), make_grid(width=2, height=2)
    a.field[:] = 1.0
    b.field[:] = 1.0
    pixels = np.asarray(Visualizer([(200, 0, 0), (200, 0, 0)])
                        .render(_snapshot([a, b])))
    assert np.all(pixels[:, :, 0] == 255)


def test_rgb_needs_a_color_per_population(make_grid):
    with pytest.raises(ValueError):
        Visualizer([(255, 0, 0)]).render_rgb([make_grid(), make_grid()])


def test_ensure_output_dir(tmp_path):
    target = tmp_path / "a" / "b"
    assert ensure_output_dir(target) == target
    assert target.is_dir()
    # Already existing is success
    ensure_output_dir(target)

    blocker = tmp_path / "file"
    blocker.write_text("x")
    with pytest.raises(OSError):
        ensure_output_dir(blocker)


def test_save_snapshot_writes_png(tmp_path, make_grid):
    grid = make_grid()
    grid.deposit(3.0, 3.0)
    path = Visualizer([(255, 255, 255)]).save_snapshot(
        _snapshot([grid]), tmp_path / "nested" / "out.png")
    with Image.open(path) as image:
        assert image.size == (8, 8)


def test_snapshot_queue_renders_in_background(tmp_path, make_model):
    model = make_model(particles=40, populations=2)
    visualizer = Visualizer(random_palette(2, np.random.default_rng(0)))

    with SnapshotQueue(visualizer, tmp_path / "frames", maxsize=1) as queue:
        for _ in range(3):
            model.step()
            queue.put(model.snapshot())
        written = queue.close()

    assert [p.name for p in written] == [
        "out_000001.png", "out_000002.png", "out_000003.png"]
    assert all(p.exists() for p in written)


def test_snapshot_queue_surfaces_write_errors(tmp_path, make_grid):
    (tmp_path / "out_000001.png").mkdir()
    queue = SnapshotQueue(Visualizer([(255, 255, 255)]), tmp_path)
    queue.start()
    queue.put(_snapshot([make_grid()], iteration=1))
    with pytest.raises(ExportError):
        queue.close()


def test_snapshot_queue_requires_start(tmp_path, make_grid):
    queue = SnapshotQueue(Visualizer([(255, 255, 255)]), tmp_path)
    with pytest.raises(RuntimeError):
        queue.put(_snapshot([make_grid()]))


def test_random_palette_is_distinct(rng):
    colors = random_palette(5, rng)
    assert len(colors) == 5
    assert len(set(colors)) == 5
    assert all(0 <= c <= 255 for color in colors for c in color)
    with pytest.raises(ValueError):
        random_palette(0, rng)


def test_stats_writer_and_reporter(tmp_path, make_model):
    model = make_model(particles=30, populations=2)
    reporter = Reporter(None, 0)
    path = tmp_path / "stats.csv"

    with StatsWriter(path) as writer:
        for _ in range(3):
            model.step()
            stats = model.stats()
            writer.append(stats)
            reporter.update(stats)

    with open(path, newline='') as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 6
    assert rows[0].keys() == set(StatsWriter.FIELDNAMES)
    assert [int(r['iteration']) for r in rows] == [1, 1, 2, 2, 3, 3]

    report = reporter.generate_summary(model, tmp_path, [], path,
                                       ['#ff0000', '#0000ff'])
    assert "PHYSARUM SIMULATION REPORT" in report
    assert "Iterations:            3" in report
    assert str(path) in report
    assert reporter.iterations_seen == 3


def test_main_runs_end_to_end(tmp_path):
    out_dir = tmp_path / "run"
    code = main([
        '--width', '16', '--height', '16',
        '--particles', '50', '--populations', '2',
        '--steps', '4', '--snapshot-every', '2',
        '--seed', '1', '--workers', '2',
        '--stats', '--quiet',
        '--out-dir', str(out_dir),
    ])
    assert code == 0
    assert (out_dir / "out_000002.png").exists()
    assert (out_dir / "out_000004.png").exists()
    with open(out_dir / "field_stats.csv", newline='') as f:
        assert len(list(csv.DictReader(f))) == 8


def test_main_reports_bad_configuration(tmp_path, capsys):
    assert main(['--populations', '0', '--out-dir', str(tmp_path)]) == 1
    assert "population count" in capsys.readouterr().err

    assert main(['--config', str(tmp_path / "missing.yaml")]) == 1


def test_main_reports_malformed_config_file(tmp_path, capsys):
    path = tmp_path / "bad.yaml"
    path.write_text("grid: {width: abc, height: 8}\n")
    assert main(['--config', str(path), '--out-dir', str(tmp_path)]) == 1
    assert "invalid configuration" in capsys.readouterr().err


def test_main_skips_per_step_stats_when_disabled(tmp_path, monkeypatch):
    calls = []
    original = Model.stats

    def counting_stats(self, *args, **kwargs):
        calls.append(self.iteration)
        return original(self, *args, **kwargs)

    monkeypatch.setattr(Model, 'stats', counting_stats)
    code = main(['--width', '8', '--height', '8', '--particles', '10',
                 '--steps', '5', '--seed', '2', '--no-stats', '--quiet',
                 '--out-dir', str(tmp_path)])
    assert code == 0
    assert calls == [5]
