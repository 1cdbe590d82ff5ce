"""
Pinhole camera producing ray directions for screen pixels.
"""

import numpy as np
from typing import Tuple
import logging

from .vector import Vec3, ZERO, WORLD_UP

logger = logging.getLogger(__name__)


class Camera:
    """
    Look-at camera with a fixed world-up vector.

    Args:
        position: Camera position
        look_at: Point the camera looks at
        zoom: Distance from the eye to the image plane; larger is narrower
    """

    def __init__(self, position: Vec3, look_at: Vec3 = ZERO, zoom: float = 1.0):
        self.position = Vec3.of(position)
        self.look_at = Vec3.of(look_at)
        self.zoom = zoom

        if zoom <= 0:
            raise ValueError("zoom must be positive")

        offset = self.look_at - self.position
        if offset.length() == 0:
            raise ValueError("Camera position and look-at target coincide")

        # Orthonormal basis (forward, right, up)
        self.forward = offset.normalize()
        right = WORLD_UP.cross(self.forward)
        if right.length() < 1e-12:
            raise ValueError(
                f"Unsupported camera: looking from {self.position.to_tuple()} to "
                f"{self.look_at.to_tuple()} is parallel to world up, so the right axis is undefined"
            )
        self.right = right.normalize()
        self.up = self.forward.cross(self.right)

    @staticmethod
    def screen_uv(pixel_x, pixel_y, screen_dimensions: Tuple[float, float]):
        """
        Map pixel coordinates to aspect-correct screen coordinates.

        Returns (u, v) = (pixel - 0.5 * dimensions) / height, so v spans
        [-0.5, 0.5] and u is stretched by the aspect ratio.
        """
        width, height = screen_dimensions
        u = (np.asarray(pixel_x, dtype=np.float64) - 0.5 * width) / height
        v = (np.asarray(pixel_y, dtype=np.float64) - 0.5 * height) / height
        return u, v

    def ray_direction(self, u, v) -> Vec3:
        """Normalized direction through screen coordinates (u, v)."""
        return (self.right * u + self.up * v + self.forward * self.zoom).normalize()

    def pixel_ray(self, pixel_x, pixel_y,
                  screen_dimensions: Tuple[float, float]) -> Tuple[Vec3, Vec3]:
        """
        Build the ray(s) through pixel coordinates.

        Returns:
            Tuple of (origin, direction)
        """
        u, v = self.screen_uv(pixel_x, pixel_y, screen_dimensions)
        return self.position, self.ray_direction(u, v)
