"""
Shading and color mapping for ray-marched fractals.

This module turns trace results into 8-bit RGB colors: a single point
light gives a diffuse term, which is gamma corrected and mapped through
one of several color modes. Misses are colored by a background policy
chosen per color mode.
"""

import numpy as np
from typing import Dict, Tuple, Optional, TYPE_CHECKING
from abc import ABC, abstractmethod
from enum import Enum
import logging

from ..core.vector import Vec3
from ..core.raymarch import TraceResult, NormalEstimator

if TYPE_CHECKING:
    from ..core.fractal_types import DistanceEstimator

logger = logging.getLogger(__name__)

RGB8 = Tuple[int, int, int]


class ColorMode(Enum):
    """How a hit is turned into a color."""
    GRAYSCALE = 'grayscale'
    DISTANCE = 'distance'
    NORMAL = 'normal'
    DISTANCE_SHADED = 'distance_shaded'

    @classmethod
    def parse(cls, value) -> 'ColorMode':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            available = ', '.join(mode.value for mode in cls)
            raise ValueError(f"Unknown color mode '{value}'. Available: {available}")


class Background(ABC):
    """Color policy for rays that miss the fractal."""

    @abstractmethod
    def colors(self, direction: Vec3) -> np.ndarray:
        """Return uint8 colors of shape direction.shape + (3,)."""


class SolidBackground(Background):
    """Flat background color, black by default."""

    def __init__(self, color: RGB8 = (0, 0, 0)):
        self.color = np.asarray(color, dtype=np.uint8)

    def colors(self, direction: Vec3) -> np.ndarray:
        return np.broadcast_to(self.color, np.shape(direction.y) + (3,)).copy()


class GradientBackground(Background):
    """Vertical gradient tinted by the ray direction's y component."""

    def __init__(self, bottom: RGB8 = (24, 26, 32), top: RGB8 = (170, 185, 210)):
        self.bottom = np.asarray(bottom, dtype=np.float64)
        self.top = np.asarray(top, dtype=np.float64)

    def colors(self, direction: Vec3) -> np.ndarray:
        t = np.clip(0.5 * (np.asarray(direction.y, dtype=np.float64) + 1.0), 0.0, 1.0)
        blend = self.bottom + (self.top - self.bottom) * t[..., np.newaxis]
        return blend.astype(np.uint8)


DEFAULT_BACKGROUNDS: Dict[ColorMode, Background] = {
    ColorMode.GRAYSCALE: GradientBackground(),
    ColorMode.DISTANCE: SolidBackground(),
    ColorMode.NORMAL: SolidBackground(),
    ColorMode.DISTANCE_SHADED: SolidBackground(),
}


def quantize(values: np.ndarray, factor: float = 256.0) -> np.ndarray:
    """Scale to 8-bit with saturation; NaN becomes 0."""
    scaled = np.nan_to_num(np.asarray(values, dtype=np.float64) * factor, nan=0.0)
    return np.clip(scaled, 0, 255).astype(np.uint8)


class Shader:
    """Single point light shader with per-mode background policies."""

    def __init__(self, light_offset: Tuple[float, float, float] = (2.0, 2.0, 0.0),
                 gamma: float = 0.4545,
                 backgrounds: Optional[Dict[ColorMode, Background]] = None):
        """
        Initialize shader.

        Args:
            light_offset: Light position relative to the camera
            gamma: Exponent applied to the diffuse term before quantization
            backgrounds: Miss policy per color mode; missing modes use the defaults
        """
        if gamma <= 0:
            raise ValueError("gamma must be positive")
        self.light_offset = Vec3.of(light_offset)
        self.gamma = gamma
        self.backgrounds = dict(DEFAULT_BACKGROUNDS)
        if backgrounds:
            self.backgrounds.update({ColorMode.parse(k): v for k, v in backgrounds.items()})

    def light_position(self, camera_position: Vec3) -> Vec3:
        return camera_position + self.light_offset

    @staticmethod
    def diffuse(point: Vec3, normal: Vec3, light_position: Vec3):
        """Half-Lambert diffuse term clamped to [0, 1]."""
        to_light = (light_position - point).normalize()
        return np.clip(normal.dot(to_light) * 0.5 + 0.5, 0.0, 1.0)

    def gamma_correct(self, intensity):
        with np.errstate(invalid='ignore'):
            return np.power(intensity, self.gamma)

    def shade(self, mode: ColorMode, trace: TraceResult, origin: Vec3, direction: Vec3,
              estimator: 'DistanceEstimator', normals: NormalEstimator) -> np.ndarray:
        """
        Color a batch of traced rays.

        Args:
            mode: Color mode for the whole batch
            trace: Result of marching the rays
            origin: Ray origin (the camera position)
            direction: Normalized ray directions, array components
            estimator: Distance estimator the rays were traced against
            normals: Normal estimator for hit points

        Returns:
            uint8 array of shape (n, 3)
        """
        mode = ColorMode.parse(mode)
        hit = np.asarray(trace.hit, dtype=bool)
        colors = self.backgrounds[mode].colors(direction)

        if not np.any(hit):
            return colors

        points = trace.hit_points(origin, direction).take(hit)
        max_distance = estimator.trace_settings.max_distance

        if mode is ColorMode.DISTANCE:
            colors[hit] = self._distance_colors(points, max_distance)
            return colors

        normal = normals.estimate(points, estimator)
        light = self.gamma_correct(
            self.diffuse(points, normal, self.light_position(origin)))

        if mode is ColorMode.GRAYSCALE:
            gray = quantize(light)
            colors[hit] = np.stack([gray, gray, gray], axis=-1)
        elif mode is ColorMode.DISTANCE_SHADED:
            # Distance pseudocolor darkened by the light term
            base = self._distance_colors(points, max_distance).astype(np.float64)
            colors[hit] = quantize(base * light[..., np.newaxis], factor=1.0)
        else:
            channels = np.stack([normal.x, normal.y, normal.z], axis=-1) * 0.5 + 0.5
            colors[hit] = quantize(channels * 255.0 * light[..., np.newaxis], factor=1.0)

        return colors

    @staticmethod
    def _distance_colors(points: Vec3, max_distance: float) -> np.ndarray:
        """Spread distance-from-origin over a 24-bit value split into channels."""
        normalized = np.clip(points.length() / max_distance, 0.0, 1.0)
        value = np.nan_to_num(normalized * 255.0 ** 3, nan=0.0).astype(np.int64)
        return np.stack([(value >> 16) & 255, (value >> 8) & 255, value & 255],
                        axis=-1).astype(np.uint8)
