"""
Per-pixel rendering of a single distance estimator.

SceneRenderer ties the camera, ray caster, normal estimator and shader
together. It only relies on the DistanceEstimator interface, so any
registered fractal can be rendered without changes here.
"""

import numpy as np
from typing import Tuple, Optional, Union
import logging

from .camera import Camera
from .raymarch import RayCaster, NormalEstimator
from .fractal_types import DistanceEstimator
from ..rendering.coloring import ColorMode, Shader

logger = logging.getLogger(__name__)


class SceneRenderer:
    """Renders pixels of one fractal; safe to share read-only across workers."""

    def __init__(self, fractal: DistanceEstimator, shader: Optional[Shader] = None,
                 zoom: float = 1.0):
        """
        Initialize scene renderer.

        Args:
            fractal: Distance estimator to render
            shader: Shader to color hits and misses (defaults to Shader())
            zoom: Image plane distance of the camera
        """
        self.fractal = fractal
        self.shader = shader or Shader()
        self.camera = Camera(fractal.camera_position, fractal.camera_look_at, zoom)
        self.caster = RayCaster(fractal.trace_settings)
        self.normals = NormalEstimator.from_settings(fractal.trace_settings)

    def render(self, pixel: Tuple[float, float], screen_dimensions: Tuple[float, float],
               color_mode: Union[ColorMode, str]) -> Tuple[int, int, int]:
        """
        Render one pixel.

        Args:
            pixel: (x, y) pixel coordinate
            screen_dimensions: (width, height) of the screen
            color_mode: Color mode to apply

        Returns:
            8-bit (r, g, b) tuple
        """
        x, y = pixel
        color = self.render_pixels(np.array([x], dtype=np.float64),
                                   np.array([y], dtype=np.float64),
                                   screen_dimensions, color_mode)[0]
        return (int(color[0]), int(color[1]), int(color[2]))

    def render_pixels(self, xs: np.ndarray, ys: np.ndarray,
                      screen_dimensions: Tuple[float, float],
                      color_mode: Union[ColorMode, str]) -> np.ndarray:
        """
        Render a batch of pixels.

        Args:
            xs: Pixel x coordinates, 1-D
            ys: Pixel y coordinates, same shape as xs
            screen_dimensions: (width, height) of the screen
            color_mode: Color mode applied to every pixel of the batch

        Returns:
            uint8 array of shape (len(xs), 3)
        """
        mode = ColorMode.parse(color_mode)
        xs = np.atleast_1d(np.asarray(xs, dtype=np.float64))
        ys = np.atleast_1d(np.asarray(ys, dtype=np.float64))

        origin, direction = self.camera.pixel_ray(xs, ys, screen_dimensions)
        trace = self.caster.cast(origin, direction, self.fractal)
        return self.shader.shade(mode, trace, origin, direction, self.fractal, self.normals)

    def render_region(self, x_start: int, x_end: int, y_start: int, y_end: int,
                      screen_dimensions: Tuple[int, int],
                      color_mode: Union[ColorMode, str]) -> np.ndarray:
        """
        Render a rectangular block of pixels.

        Returns:
            uint8 array of shape (y_end - y_start, x_end - x_start, 3)
        """
        ys, xs = np.mgrid[y_start:y_end, x_start:x_end]
        colors = self.render_pixels(xs.ravel(), ys.ravel(), screen_dimensions, color_mode)
        return colors.reshape(y_end - y_start, x_end - x_start, 3)
