import numpy as np
import pytest

from raymarch_fractals.acceleration.multiprocessing import (
    MultiprocessingAccelerator, TileResult, assemble_tiles, create_tile_grid,
    get_optimal_process_count, render_sequential,
)
from raymarch_fractals.core.fractal_types import SphereLattice
from raymarch_fractals.core.renderer import SceneRenderer
from raymarch_fractals.rendering.coloring import ColorMode


def test_tile_grid_covers_every_pixel_once():
    coverage = np.zeros((21, 30), dtype=int)
    for tile in create_tile_grid(30, 21, tile_size=8):
        assert tile.width == tile.x_end - tile.x_start
        assert tile.height == tile.y_end - tile.y_start
        coverage[tile.y_start:tile.y_end, tile.x_start:tile.x_end] += 1
    assert np.all(coverage == 1)


def test_tile_ids_are_sequential():
    tiles = create_tile_grid(16, 16, tile_size=8)
    assert [t.tile_id for t in tiles] == [0, 1, 2, 3]


def test_tile_grid_rejects_bad_size():
    with pytest.raises(ValueError):
        create_tile_grid(16, 16, tile_size=0)


def test_assemble_tiles_places_blocks():
    red = np.full((2, 2, 3), (255, 0, 0), dtype=np.uint8)
    blue = np.full((2, 2, 3), (0, 0, 255), dtype=np.uint8)
    image = assemble_tiles([TileResult(0, red, 0, 0, 0.0), TileResult(1, blue, 2, 0, 0.0)], 4, 2)
    assert image[:, :2].tolist() == red.tolist()
    assert image[:, 2:].tolist() == blue.tolist()


def test_sequential_matches_single_region():
    fractal = SphereLattice()
    progress = []
    image = render_sequential(fractal, 12, 10, ColorMode.NORMAL, tile_size=8,
                              progress_callback=lambda done, total: progress.append((done, total)))

    expected = SceneRenderer(fractal).render_region(0, 12, 0, 10, (12, 10), ColorMode.NORMAL)
    assert np.array_equal(image, expected)
    assert progress[-1] == (4, 4)


def test_parallel_matches_sequential():
    fractal = SphereLattice()
    accelerator = MultiprocessingAccelerator(num_processes=2, tile_size=8)

    parallel = accelerator.render_parallel(fractal, 16, 8, ColorMode.GRAYSCALE)
    sequential = render_sequential(fractal, 16, 8, ColorMode.GRAYSCALE, tile_size=8)
    assert np.array_equal(parallel, sequential)


def test_optimal_process_count_is_positive():
    assert get_optimal_process_count() >= 1
