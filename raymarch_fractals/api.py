"""
Main API classes for fractal rendering.

This module provides the high-level interface for rendering ray-marched
fractals, combining the per-pixel core with tiled parallel execution,
supersampling and image export.
"""

import numpy as np
from typing import Optional, Union, Dict, Any, List, Callable
from dataclasses import dataclass
from pathlib import Path
import logging
import time

from .core.fractal_types import DistanceEstimator, GalleryPreset, GALLERY_PRESETS
from .rendering.coloring import ColorMode, Shader
from .rendering.image_output import ImageExporter, ImageProcessor, RenderMetadata
from .acceleration.multiprocessing import (MultiprocessingAccelerator, render_sequential,
                                           get_optimal_process_count)

logger = logging.getLogger(__name__)


@dataclass
class RenderConfig:
    """Configuration for fractal rendering."""

    # Image parameters
    width: int = 1920
    height: int = 1080
    supersampling: int = 2  # Linear factor, downsampled with Lanczos

    # Shading
    color_mode: str = 'normal'
    zoom: float = 1.0

    # Performance
    use_multiprocessing: bool = True
    num_processes: Optional[int] = None
    tile_size: int = 64

    # Output
    output_dir: str = '.'
    resample_method: str = 'lanczos'
    save_metadata: bool = True

    def validate(self):
        """Validate configuration parameters."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError("Width and height must be positive")

        if self.supersampling < 1:
            raise ValueError("supersampling must be >= 1")

        if self.zoom <= 0:
            raise ValueError("zoom must be positive")

        if self.tile_size < 8:
            raise ValueError("tile_size must be >= 8")

        if self.num_processes is not None and self.num_processes < 1:
            raise ValueError("num_processes must be >= 1")

        ColorMode.parse(self.color_mode)


def output_filename(fractal_key: str, config_name: str, color_mode: Union[ColorMode, str]) -> str:
    """Build the output file name, e.g. fractal-cube-2-normal.png."""
    mode = ColorMode.parse(color_mode)
    return f"fractal-{fractal_key}{config_name}-{mode.value}.png".lower()


class FractalRenderer:
    """Main fractal rendering engine."""

    def __init__(self, config: Optional[RenderConfig] = None, shader: Optional[Shader] = None):
        """
        Initialize fractal renderer.

        Args:
            config: Rendering configuration (uses defaults if None)
            shader: Shader used for every pixel (uses defaults if None)
        """
        self.config = config or RenderConfig()
        self.config.validate()
        self.shader = shader or Shader()

        self.image_exporter = ImageExporter()
        self.image_processor = ImageProcessor()

        self.accelerator = None
        if self.config.use_multiprocessing:
            num_proc = self.config.num_processes or get_optimal_process_count()
            self.accelerator = MultiprocessingAccelerator(num_proc, self.config.tile_size)

        logger.info(f"FractalRenderer initialized: {self.config.width}x{self.config.height}, "
                    f"{self.config.supersampling}x supersampling")

    def render(self, fractal: DistanceEstimator, color_mode: Optional[Union[ColorMode, str]] = None,
               progress_callback: Optional[Callable[[int, int], None]] = None) -> np.ndarray:
        """
        Render fractal to an image array.

        Args:
            fractal: Distance estimator to render
            color_mode: Overrides the configured color mode
            progress_callback: Called with (completed_tiles, total_tiles)

        Returns:
            uint8 RGB image of shape (height, width, 3)
        """
        mode = ColorMode.parse(color_mode or self.config.color_mode)
        start_time = time.time()

        factor = self.config.supersampling
        width = self.config.width * factor
        height = self.config.height * factor

        logger.info(f"Starting render: {fractal.name} at {width}x{height} ({mode.value})")

        if self.accelerator is not None:
            image = self.accelerator.render_parallel(fractal, width, height, mode, self.shader,
                                                     self.config.zoom, progress_callback)
        else:
            image = render_sequential(fractal, width, height, mode, self.shader,
                                      self.config.zoom, self.config.tile_size, progress_callback)

        if factor > 1:
            image = self.image_processor.resize_image(
                image, (self.config.width, self.config.height), self.config.resample_method)

        logger.info(f"Render complete: {time.time() - start_time:.2f}s")
        return image

    def render_to_file(self, fractal: DistanceEstimator, fractal_key: str, config_name: str = '',
                       color_mode: Optional[Union[ColorMode, str]] = None,
                       output_path: Optional[Path] = None) -> Path:
        """
        Render and save a fractal image.

        Args:
            fractal: Distance estimator to render
            fractal_key: Registry name used in the output file name
            config_name: Variant suffix used in the output file name
            color_mode: Overrides the configured color mode
            output_path: Explicit output path (defaults to output_dir/output_filename)

        Returns:
            Path of the written image
        """
        mode = ColorMode.parse(color_mode or self.config.color_mode)
        if output_path is None:
            output_path = Path(self.config.output_dir) / output_filename(fractal_key, config_name, mode)
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Creating {output_path.name}")
        start_time = time.time()
        image = self.render(fractal, mode)
        render_time = time.time() - start_time

        metadata = None
        if self.config.save_metadata:
            metadata = RenderMetadata(
                fractal_type=fractal_key,
                resolution=(self.config.width, self.config.height),
                supersampling=self.config.supersampling,
                color_mode=mode.value,
                camera_position=fractal.camera_position.to_tuple(),
                camera_look_at=fractal.camera_look_at.to_tuple(),
                render_time_seconds=render_time,
                fractal_parameters=fractal.parameters.to_dict(),
            )

        self.image_exporter.save_image(image, output_path, metadata)
        return output_path

    def update_config(self, **kwargs):
        """Update rendering configuration."""
        for key, value in kwargs.items():
            if hasattr(self.config, key):
                setattr(self.config, key, value)
            else:
                raise ValueError(f"Unknown configuration parameter: {key}")

        self.config.validate()

        if any(key in ['use_multiprocessing', 'num_processes', 'tile_size'] for key in kwargs):
            self.accelerator = None
            if self.config.use_multiprocessing:
                num_proc = self.config.num_processes or get_optimal_process_count()
                self.accelerator = MultiprocessingAccelerator(num_proc, self.config.tile_size)


class GalleryRenderer:
    """Renders a list of named presets one after another."""

    def __init__(self, base_config: Optional[RenderConfig] = None,
                 presets: Optional[List[GalleryPreset]] = None):
        """Initialize gallery renderer."""
        self.base_config = base_config or RenderConfig()
        self.presets = list(presets if presets is not None else GALLERY_PRESETS)
        self.results: List[Dict[str, Any]] = []

    def run(self, progress_callback: Optional[Callable[[int, int, Dict[str, Any]], None]] = None
            ) -> List[Dict[str, Any]]:
        """
        Render every preset.

        Any failure aborts the gallery: a preset that cannot be written is
        a fatal error for the driver.

        Returns:
            List of per-preset results
        """
        renderer = FractalRenderer(self.base_config)
        results = []

        for i, preset in enumerate(self.presets):
            logger.info(f"Processing preset {i+1}/{len(self.presets)}: "
                        f"{preset.fractal_type}{preset.config_name}")

            start_time = time.time()
            fractal = preset.create_fractal()
            path = renderer.render_to_file(fractal, preset.fractal_type, preset.config_name,
                                           preset.color_mode)
            result = {
                'preset': f"{preset.fractal_type}{preset.config_name}",
                'output_path': str(path),
                'render_time': time.time() - start_time,
            }
            results.append(result)

            if progress_callback:
                progress_callback(i + 1, len(self.presets), result)

        self.results = results
        return results

    def get_summary(self) -> Dict[str, Any]:
        """Get gallery summary."""
        if not self.results:
            return {'status': 'not_run'}

        total_time = sum(r['render_time'] for r in self.results)
        return {
            'total_presets': len(self.results),
            'total_render_time': total_time,
            'average_render_time': total_time / len(self.results),
        }
