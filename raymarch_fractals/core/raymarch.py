"""
Sphere tracing and surface normal estimation.

The ray caster marches whole batches of rays at once, keeping an active
mask in the same way escape-time iterators track unescaped points: each
step evaluates the distance estimator only for rays that have neither hit
a surface nor left the scene.
"""

import numpy as np
from typing import Any, TYPE_CHECKING
from dataclasses import dataclass
import logging

from .vector import Vec3

if TYPE_CHECKING:
    from .fractal_types import DistanceEstimator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TraceSettings:
    """Precision and performance tradeoffs for tracing one fractal."""

    min_distance: float = 0.001
    max_distance: float = 1000.0
    max_steps: int = 1000
    normal_epsilon: float = 0.001
    normal_secondary_epsilon: float = 0.0

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate trace settings."""
        if self.min_distance <= 0:
            raise ValueError("min_distance must be positive")
        if self.max_distance <= self.min_distance:
            raise ValueError("max_distance must exceed min_distance")
        if self.max_steps <= 0:
            raise ValueError("max_steps must be positive")
        if self.normal_epsilon <= 0:
            raise ValueError("normal_epsilon must be positive")
        if self.normal_secondary_epsilon < 0:
            raise ValueError("normal_secondary_epsilon cannot be negative")


@dataclass
class TraceResult:
    """
    Outcome of marching one ray or a batch of rays.

    distance is the accumulated t, hit is True where a step fell below the
    minimum distance, steps counts estimator evaluations per ray.
    """
    distance: Any
    hit: Any
    steps: Any

    def hit_points(self, origin: Vec3, direction: Vec3) -> Vec3:
        return origin + direction * self.distance


class RayCaster:
    """Sphere tracer with per-instance precision settings."""

    def __init__(self, settings: TraceSettings = TraceSettings()):
        """
        Initialize ray caster.

        Args:
            settings: Minimum step, far plane and step budget
        """
        self.settings = settings

    def cast(self, origin: Vec3, direction: Vec3, estimator: 'DistanceEstimator') -> TraceResult:
        """
        March rays against a distance estimator.

        Each step advances by the estimator's value, so a ray never moves
        further than the distance bound allows. A ray stops as a hit when
        the estimate drops below min_distance, and as a miss when t passes
        max_distance or the step budget runs out.

        Args:
            origin: Ray origin(s)
            direction: Normalized ray direction(s)
            estimator: Distance estimator to march against

        Returns:
            TraceResult with the same shape as the inputs
        """
        settings = self.settings
        shape = np.broadcast(origin.x, origin.y, origin.z,
                             direction.x, direction.y, direction.z).shape
        scalar = shape == ()
        if scalar:
            shape = (1,)

        origin = origin.broadcast(shape)
        direction = direction.broadcast(shape)

        t = np.zeros(shape, dtype=np.float64)
        hit = np.zeros(shape, dtype=bool)
        steps = np.zeros(shape, dtype=np.int64)
        active = np.ones(shape, dtype=bool)

        for _ in range(settings.max_steps):
            if not np.any(active):
                break

            o = origin.take(active)
            d = direction.take(active)
            t_active = t[active]

            estimate = np.asarray(estimator.evaluate(o + d * t_active), dtype=np.float64)

            # Inside-surface estimates are negative; never step backwards
            t_active = t_active + np.maximum(estimate, 0.0)
            surface = estimate < settings.min_distance
            escaped = t_active > settings.max_distance

            t[active] = t_active
            steps[active] += 1
            hit[active] = surface
            active[active] = ~(surface | escaped)

        remaining = int(np.count_nonzero(active))
        if remaining:
            logger.debug(f"{remaining} rays exhausted the step budget of {settings.max_steps}")

        if scalar:
            return TraceResult(float(t[0]), bool(hit[0]), int(steps[0]))
        return TraceResult(t, hit, steps)


class NormalEstimator:
    """Finite-difference surface normals."""

    def __init__(self, epsilon: float = 0.001, secondary_epsilon: float = 0.0):
        """
        Initialize normal estimator.

        Args:
            epsilon: Offset along the differentiated axis
            secondary_epsilon: Offset along the two other axes
        """
        if epsilon <= 0:
            raise ValueError("epsilon must be positive")
        self.epsilon = epsilon
        self.secondary_epsilon = secondary_epsilon

    @classmethod
    def from_settings(cls, settings: TraceSettings) -> 'NormalEstimator':
        return cls(settings.normal_epsilon, settings.normal_secondary_epsilon)

    def estimate(self, p: Vec3, estimator: 'DistanceEstimator') -> Vec3:
        """
        Approximate the unit gradient of the distance field at p.

        Uses the backward difference d(p) - d(p - offset) per axis. Where
        the local gradient vanishes the result is NaN.
        """
        e, s = self.epsilon, self.secondary_epsilon
        d = estimator.evaluate(p)
        gradient = Vec3(
            d - estimator.evaluate(p - Vec3(e, s, s)),
            d - estimator.evaluate(p - Vec3(s, e, s)),
            d - estimator.evaluate(p - Vec3(s, s, e)),
        )
        return gradient.normalize()
