"""
Multiprocessing backend for parallel fractal rendering.

This module provides tile-based parallel rendering using Python's
multiprocessing library for CPU-based acceleration across multiple cores.
Tiles cover disjoint pixel rectangles, so workers never write the same
pixel and assembly needs no locking.
"""

import numpy as np
from typing import List, Optional, Callable
import multiprocessing as mp
import logging
import time
from dataclasses import dataclass
from concurrent.futures import ProcessPoolExecutor, as_completed

from ..core.fractal_types import DistanceEstimator
from ..core.renderer import SceneRenderer
from ..rendering.coloring import ColorMode, Shader

logger = logging.getLogger(__name__)


@dataclass
class TileSpec:
    """Specification for a single tile in parallel rendering."""
    tile_id: int
    x_start: int
    x_end: int
    y_start: int
    y_end: int
    width: int
    height: int


@dataclass
class TileResult:
    """Result from rendering a single tile."""
    tile_id: int
    pixels: np.ndarray
    x_start: int
    y_start: int
    processing_time: float


def create_tile_grid(width: int, height: int, tile_size: int = 64) -> List[TileSpec]:
    """
    Create a grid of tiles for parallel processing.

    Args:
        width: Total image width
        height: Total image height
        tile_size: Target tile size (pixels)

    Returns:
        List of TileSpec objects
    """
    if tile_size <= 0:
        raise ValueError("tile_size must be positive")

    tiles = []
    tile_id = 0

    for y in range(0, height, tile_size):
        for x in range(0, width, tile_size):
            x_end = min(x + tile_size, width)
            y_end = min(y + tile_size, height)

            tiles.append(TileSpec(
                tile_id=tile_id,
                x_start=x,
                x_end=x_end,
                y_start=y,
                y_end=y_end,
                width=x_end - x,
                height=y_end - y
            ))
            tile_id += 1

    logger.debug(f"Created {len(tiles)} tiles of target size {tile_size}x{tile_size}")
    return tiles


def render_tile(args) -> TileResult:
    """
    Render a single tile, possibly in a separate process.

    Args:
        args: Tuple of (fractal, shader, zoom, tile_spec, screen_dimensions, color_mode)

    Returns:
        TileResult object
    """
    fractal, shader, zoom, tile_spec, screen_dimensions, color_mode = args

    start_time = time.time()
    renderer = SceneRenderer(fractal, shader, zoom)
    pixels = renderer.render_region(tile_spec.x_start, tile_spec.x_end,
                                    tile_spec.y_start, tile_spec.y_end,
                                    screen_dimensions, color_mode)

    return TileResult(
        tile_id=tile_spec.tile_id,
        pixels=pixels,
        x_start=tile_spec.x_start,
        y_start=tile_spec.y_start,
        processing_time=time.time() - start_time
    )


def assemble_tiles(tile_results: List[TileResult], total_width: int, total_height: int) -> np.ndarray:
    """
    Assemble tile results into a complete image.

    Args:
        tile_results: List of TileResult objects
        total_width: Total image width
        total_height: Total image height

    Returns:
        uint8 RGB image of shape (total_height, total_width, 3)
    """
    image = np.zeros((total_height, total_width, 3), dtype=np.uint8)

    for tile_result in tile_results:
        x_start = tile_result.x_start
        y_start = tile_result.y_start
        tile_height, tile_width = tile_result.pixels.shape[:2]

        image[y_start:y_start+tile_height, x_start:x_start+tile_width] = tile_result.pixels

    return image


class MultiprocessingAccelerator:
    """Multiprocessing-based parallel fractal rendering."""

    def __init__(self, num_processes: Optional[int] = None, tile_size: int = 64):
        """
        Initialize multiprocessing accelerator.

        Args:
            num_processes: Number of worker processes (None for CPU count)
            tile_size: Size of tiles for parallel processing
        """
        if num_processes is None:
            self.num_processes = mp.cpu_count()
        else:
            self.num_processes = max(1, num_processes)

        self.tile_size = tile_size
        logger.info(f"Multiprocessing accelerator: {self.num_processes} processes, {tile_size}x{tile_size} tiles")

    def render_parallel(self, fractal: DistanceEstimator, width: int, height: int,
                        color_mode: ColorMode, shader: Optional[Shader] = None,
                        zoom: float = 1.0,
                        progress_callback: Optional[Callable[[int, int], None]] = None) -> np.ndarray:
        """
        Render a fractal image using parallel tile-based processing.

        Args:
            fractal: Distance estimator to render
            width, height: Image resolution in pixels
            color_mode: Color mode for every pixel
            shader: Optional shader (defaults to Shader())
            zoom: Camera zoom
            progress_callback: Called with (completed_tiles, total_tiles)

        Returns:
            uint8 RGB image of shape (height, width, 3)
        """
        start_time = time.time()

        tiles = create_tile_grid(width, height, self.tile_size)
        screen_dimensions = (width, height)
        tile_args = [(fractal, shader, zoom, tile, screen_dimensions, color_mode) for tile in tiles]

        logger.info(f"Processing {len(tiles)} tiles with {self.num_processes} processes")

        tile_results = []
        with ProcessPoolExecutor(max_workers=self.num_processes) as executor:
            future_to_tile = {executor.submit(render_tile, args): i
                              for i, args in enumerate(tile_args)}

            for future in as_completed(future_to_tile):
                tile_idx = future_to_tile[future]
                try:
                    tile_results.append(future.result())
                except Exception as e:
                    logger.error(f"Tile {tile_idx} failed: {e}")
                    raise

                completed = len(tile_results)
                if progress_callback:
                    progress_callback(completed, len(tiles))
                if completed % max(1, len(tiles) // 10) == 0:
                    progress = (completed / len(tiles)) * 100
                    logger.info(f"Completed {completed}/{len(tiles)} tiles ({progress:.1f}%)")

        image = assemble_tiles(tile_results, width, height)

        total_time = time.time() - start_time
        total_processing_time = sum(tr.processing_time for tr in tile_results)
        logger.info(f"Parallel rendering complete: {total_time:.2f}s total, "
                    f"{total_processing_time:.2f}s processing time, "
                    f"efficiency: {total_processing_time/max(total_time, 1e-9):.2f}")

        return image


def render_sequential(fractal: DistanceEstimator, width: int, height: int,
                      color_mode: ColorMode, shader: Optional[Shader] = None,
                      zoom: float = 1.0, tile_size: int = 64,
                      progress_callback: Optional[Callable[[int, int], None]] = None) -> np.ndarray:
    """Render tile by tile in the current process."""
    tiles = create_tile_grid(width, height, tile_size)
    results = []
    for tile in tiles:
        results.append(render_tile((fractal, shader, zoom, tile, (width, height), color_mode)))
        if progress_callback:
            progress_callback(len(results), len(tiles))
    return assemble_tiles(results, width, height)


def get_optimal_process_count() -> int:
    """Get optimal number of processes for rendering, leaving one core for the system."""
    return max(1, mp.cpu_count() - 1)
