"""
Three-dimensional vector math for ray marching.

This module provides the immutable Vec3 value type used throughout the
renderer. Components may be plain floats or NumPy arrays of a common
shape, so the same expression evaluates a single point or an entire
batch of rays at once.
"""

import numpy as np
from typing import Tuple, Union, Any
from dataclasses import dataclass, replace
import logging

logger = logging.getLogger(__name__)

Scalar = Union[float, np.ndarray]


@dataclass(frozen=True)
class Vec3:
    """Immutable 3D point/vector."""

    x: Any
    y: Any
    z: Any

    # Keeps NumPy scalars from swallowing Vec3 operands in reflected ops
    __array_ufunc__ = None

    @classmethod
    def of(cls, value: Union['Vec3', Tuple[float, float, float]]) -> 'Vec3':
        """Coerce a Vec3 or a 3-sequence to a Vec3."""
        if isinstance(value, Vec3):
            return value
        if len(value) != 3:
            raise ValueError(f"Expected 3 components, got {len(value)}")
        x, y, z = value
        return cls(float(x), float(y), float(z))

    @staticmethod
    def select(mask, if_true: 'Vec3', if_false: 'Vec3') -> 'Vec3':
        """Element-wise choice between two vectors."""
        return Vec3(np.where(mask, if_true.x, if_false.x),
                    np.where(mask, if_true.y, if_false.y),
                    np.where(mask, if_true.z, if_false.z))

    def _components(self, other) -> Tuple[Any, Any, Any]:
        if isinstance(other, Vec3):
            return other.x, other.y, other.z
        return other, other, other

    def __add__(self, other) -> 'Vec3':
        ox, oy, oz = self._components(other)
        return Vec3(self.x + ox, self.y + oy, self.z + oz)

    def __sub__(self, other) -> 'Vec3':
        ox, oy, oz = self._components(other)
        return Vec3(self.x - ox, self.y - oy, self.z - oz)

    def __mul__(self, other) -> 'Vec3':
        ox, oy, oz = self._components(other)
        return Vec3(self.x * ox, self.y * oy, self.z * oz)

    __radd__ = __add__
    __rmul__ = __mul__

    def __truediv__(self, scalar) -> 'Vec3':
        return Vec3(self.x / scalar, self.y / scalar, self.z / scalar)

    def __neg__(self) -> 'Vec3':
        return Vec3(-self.x, -self.y, -self.z)

    add = __add__
    sub = __sub__
    mul = __mul__

    def dot(self, other: 'Vec3') -> Scalar:
        """Scalar product."""
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: 'Vec3') -> 'Vec3':
        """Vector product."""
        return Vec3(self.y * other.z - self.z * other.y,
                    self.z * other.x - self.x * other.z,
                    self.x * other.y - self.y * other.x)

    def length_squared(self) -> Scalar:
        return self.dot(self)

    def length(self) -> Scalar:
        """Euclidean length."""
        return np.sqrt(self.dot(self))

    def normalize(self) -> 'Vec3':
        """
        Scale to unit length.

        The zero vector has no direction: its normalization yields NaN
        components instead of raising, so a degenerate pixel never aborts
        a render.
        """
        with np.errstate(divide='ignore', invalid='ignore'):
            inverse = np.float64(1.0) / self.length()
            return self * inverse

    def mod(self, n: float) -> 'Vec3':
        """
        Component-wise mathematical modulo a - n*floor(a/n).

        Unlike a truncating remainder the result is never negative for a
        positive n, which keeps periodic fields continuous across zero.
        """
        return Vec3(self.x - n * np.floor(self.x / n),
                    self.y - n * np.floor(self.y / n),
                    self.z - n * np.floor(self.z / n))

    def abs(self) -> 'Vec3':
        return Vec3(np.abs(self.x), np.abs(self.y), np.abs(self.z))

    def transform(self, matrix: np.ndarray) -> 'Vec3':
        """Multiply by a 3x3 matrix (column vector convention)."""
        m = matrix
        return Vec3(m[0, 0] * self.x + m[0, 1] * self.y + m[0, 2] * self.z,
                    m[1, 0] * self.x + m[1, 1] * self.y + m[1, 2] * self.z,
                    m[2, 0] * self.x + m[2, 1] * self.y + m[2, 2] * self.z)

    def rotate(self, angles: Union['Vec3', Tuple[float, float, float]]) -> 'Vec3':
        """Rotate by Euler angles, see rotation_matrix."""
        return self.transform(rotation_matrix(angles))

    def replace(self, **components) -> 'Vec3':
        """Copy with some components replaced."""
        return replace(self, **components)

    def broadcast(self, shape: Tuple[int, ...]) -> 'Vec3':
        """Expand every component to a float array of the given shape."""
        return Vec3(np.broadcast_to(np.asarray(self.x, dtype=np.float64), shape).copy(),
                    np.broadcast_to(np.asarray(self.y, dtype=np.float64), shape).copy(),
                    np.broadcast_to(np.asarray(self.z, dtype=np.float64), shape).copy())

    def take(self, mask: np.ndarray) -> 'Vec3':
        """Subset of an array-valued vector selected by a boolean mask."""
        return Vec3(self.x[mask], self.y[mask], self.z[mask])

    @property
    def shape(self) -> Tuple[int, ...]:
        return np.broadcast(self.x, self.y, self.z).shape

    def to_tuple(self) -> Tuple[float, float, float]:
        return (float(self.x), float(self.y), float(self.z))


ZERO = Vec3(0.0, 0.0, 0.0)
ONE = Vec3(1.0, 1.0, 1.0)
WORLD_UP = Vec3(0.0, 1.0, 0.0)


def rotation_matrix(angles: Union[Vec3, Tuple[float, float, float]]) -> np.ndarray:
    """
    Build the Euler rotation matrix Rz(a) @ Ry(b) @ Rx(c).

    Args:
        angles: (a, b, c) in radians; a turns in the xy plane, b in the
            zx plane and c in the yz plane

    Returns:
        3x3 rotation matrix
    """
    a, b, c = Vec3.of(angles).to_tuple()
    ca, sa = np.cos(a), np.sin(a)
    cb, sb = np.cos(b), np.sin(b)
    cc, sc = np.cos(c), np.sin(c)

    return np.array([
        [ca * cb, ca * sb * sc - sa * cc, ca * sb * cc + sa * sc],
        [sa * cb, sa * sb * sc + ca * cc, sa * sb * cc - ca * sc],
        [-sb, cb * sc, cb * cc],
    ])
