"""
Ray-marched 3D fractal rendering library.

This library renders implicit fractal geometry by sphere tracing signed
distance estimators: a camera builds one ray per pixel, the ray caster
marches it against the active estimator, and a point-light shader maps
hits to one of several color modes.

Key Features:
- Sphere lattice, folded tetrahedron, nearest-vertex tetrahedron and
  Menger-style cube distance estimators
- Vectorised NumPy ray marching over whole tiles of pixels
- Grayscale, distance and normal color modes with per-mode backgrounds
- Tile-based multiprocessing and supersampled antialiasing
- Extensible registry for custom distance estimators

Example usage:
    >>> from raymarch_fractals import FractalRenderer, RenderConfig, SphereLattice
    >>> renderer = FractalRenderer(RenderConfig(width=640, height=360))
    >>> image = renderer.render(SphereLattice(), color_mode='grayscale')
"""

__version__ = "1.0.0"
__author__ = "Raymarch Fractals Team"

from raymarch_fractals.core.vector import Vec3, rotation_matrix
from raymarch_fractals.core.fractal_types import (DistanceEstimator, SphereLattice, FoldedTetrahedron,
                                                  Triangles, VertexTetrahedron, FoldedCube, Squares,
                                                  FractalRegistry)
from raymarch_fractals.core.camera import Camera
from raymarch_fractals.core.raymarch import RayCaster, NormalEstimator, TraceSettings
from raymarch_fractals.core.renderer import SceneRenderer
from raymarch_fractals.rendering.coloring import ColorMode, Shader
from raymarch_fractals.rendering.image_output import ImageExporter

# Main API classes
from raymarch_fractals.api import FractalRenderer, RenderConfig, GalleryRenderer

__all__ = [
    "FractalRenderer",
    "RenderConfig",
    "GalleryRenderer",
    "SceneRenderer",
    "Vec3",
    "rotation_matrix",
    "DistanceEstimator",
    "SphereLattice",
    "FoldedTetrahedron",
    "Triangles",
    "VertexTetrahedron",
    "FoldedCube",
    "Squares",
    "FractalRegistry",
    "Camera",
    "RayCaster",
    "NormalEstimator",
    "TraceSettings",
    "ColorMode",
    "Shader",
    "ImageExporter",
]
