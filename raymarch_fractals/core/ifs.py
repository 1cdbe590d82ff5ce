"""
Iterated function system skeleton shared by the folding fractals.

Every folding estimator runs the same loop: optionally rotate, fold,
optionally rotate again, then scale about an anchor point. Only the fold
step differs between variants, so each fold is a small strategy object
and the loop itself lives in iterate_folds.
"""

import numpy as np
from typing import Optional, Tuple, Sequence
from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging

from .vector import Vec3

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IterationParameters:
    """Constants for one run of the fold-scale-translate loop."""
    iterations: int
    scale: float
    offset: Vec3
    bailout: float = np.inf
    pre_rotation: Optional[np.ndarray] = None
    post_rotation: Optional[np.ndarray] = None


class FoldStep(ABC):
    """A single per-iteration fold or projection."""

    @abstractmethod
    def apply(self, z: Vec3, offset: Vec3) -> Tuple[Vec3, Vec3]:
        """
        Fold a point.

        Args:
            z: Current orbit point
            offset: The variant's configured offset

        Returns:
            Tuple of (folded point, anchor to scale about)
        """


def _invert_and_swap(z: Vec3, a: str, b: str) -> Vec3:
    va, vb = getattr(z, a), getattr(z, b)
    folded = (va + vb) < 0
    return z.replace(**{a: np.where(folded, -vb, va), b: np.where(folded, -va, vb)})


def _absolute_pair(z: Vec3, a: str, b: str) -> Vec3:
    va, vb = getattr(z, a), getattr(z, b)
    folded = (va + vb) < 0
    return z.replace(**{a: np.where(folded, np.abs(va), va), b: np.where(folded, np.abs(vb), vb)})


def _order_pair(z: Vec3, a: str, b: str) -> Vec3:
    # Swap so that component a >= component b
    va, vb = getattr(z, a), getattr(z, b)
    swap = va < vb
    return z.replace(**{a: np.where(swap, vb, va), b: np.where(swap, va, vb)})


FOLD_PAIRS = (('x', 'y'), ('x', 'z'), ('z', 'y'))
ORDER_PAIRS = (('x', 'y'), ('x', 'z'), ('y', 'z'))


class InvertAndSwapFold(FoldStep):
    """Reflect across the planes x+y=0, x+z=0 and y+z=0 by negating and swapping."""

    def apply(self, z: Vec3, offset: Vec3) -> Tuple[Vec3, Vec3]:
        for a, b in FOLD_PAIRS:
            z = _invert_and_swap(z, a, b)
        return z, offset


class AbsoluteFold(FoldStep):
    """Replace a coordinate pair by its absolute values when the pair sum is negative."""

    def apply(self, z: Vec3, offset: Vec3) -> Tuple[Vec3, Vec3]:
        for a, b in FOLD_PAIRS:
            z = _absolute_pair(z, a, b)
        return z, offset


class NearestVertexFold(FoldStep):
    """Leave the point alone and pick the closest vertex as the scaling anchor."""

    def __init__(self, vertices: Sequence[Vec3]):
        if not vertices:
            raise ValueError("NearestVertexFold needs at least one vertex")
        self.vertices = tuple(vertices)

    def apply(self, z: Vec3, offset: Vec3) -> Tuple[Vec3, Vec3]:
        best = self.vertices[0]
        best_distance = (z - best).length()
        for vertex in self.vertices[1:]:
            distance = (z - vertex).length()
            # Strictly closer wins, so ties go to the earlier vertex
            closer = distance < best_distance
            best = Vec3.select(closer, vertex, best)
            best_distance = np.where(closer, distance, best_distance)
        return z, best


class MengerBoxFold(FoldStep):
    """
    Menger-style fold: mirror into the octant, sort to x >= y >= z and
    fold z around the box half-width.
    """

    def __init__(self, scale: float):
        self.scale = scale

    def apply(self, z: Vec3, offset: Vec3) -> Tuple[Vec3, Vec3]:
        z = z.abs()
        for a, b in ORDER_PAIRS:
            z = _order_pair(z, a, b)

        half_width = 0.5 * offset.z * (self.scale - 1.0) / self.scale
        z = z.replace(z=half_width - np.abs(z.z - half_width))

        # z is scaled but not translated
        return z, Vec3(offset.x, offset.y, 0.0)


def iterate_folds(z: Vec3, fold: FoldStep, params: IterationParameters):
    """
    Run the fold-scale-translate loop and return the distance estimate.

    Iteration continues while i < iterations and |z|^2 < bailout, tracked
    per element so batches of points escape independently.

    Args:
        z: Point or batch of points to evaluate
        fold: Fold strategy applied each iteration
        params: Loop constants

    Returns:
        sqrt(|z|^2) * scale^-i for the final orbit point
    """
    scale = params.scale
    r = z.length_squared()
    count = np.zeros(np.shape(r), dtype=np.int64)

    for _ in range(params.iterations):
        active = r < params.bailout
        if not np.any(active):
            break

        w = z
        if params.pre_rotation is not None:
            w = w.transform(params.pre_rotation)
        w, anchor = fold.apply(w, params.offset)
        if params.post_rotation is not None:
            w = w.transform(params.post_rotation)
        w = w * scale - anchor * (scale - 1.0)

        z = Vec3.select(active, w, z)
        count = count + active
        r = z.length_squared()

    return np.sqrt(r) * np.power(scale, -count.astype(np.float64))
