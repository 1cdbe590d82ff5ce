"""
Fractal distance estimator definitions and parameter management.

This module defines the fractal variants as configurable classes sharing
one DistanceEstimator interface, providing a plugin-style architecture in
which new fractals can be registered without touching the tracer or
shader.
"""

import numpy as np
from typing import Dict, Any, Optional, Tuple
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
import logging

from .vector import Vec3, ZERO, rotation_matrix
from .raymarch import TraceSettings
from .ifs import (IterationParameters, FoldStep, InvertAndSwapFold, AbsoluteFold,
                  NearestVertexFold, MengerBoxFold, iterate_folds)

logger = logging.getLogger(__name__)

Triple = Tuple[float, float, float]


@dataclass
class FractalParameters:
    """Base class for fractal parameters with validation."""

    def validate(self) -> None:
        """Validate parameter values."""
        pass

    def to_dict(self) -> Dict[str, Any]:
        """Convert parameters to dictionary."""
        return {k: v for k, v in self.__dict__.items() if not k.startswith('_')}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FractalParameters':
        """Create parameters from dictionary."""
        return cls(**data)


def _check_triple(name: str, value) -> None:
    if len(value) != 3 or not all(isinstance(v, (int, float)) for v in value):
        raise ValueError(f"{name} must be three numbers")


class DistanceEstimator(ABC):
    """Abstract base class for fractal distance estimators."""

    DEFAULT_CAMERA_POSITION: Triple = (3.0, 4.0, -4.0)
    DEFAULT_CAMERA_LOOK_AT: Triple = (0.0, 0.0, 0.0)
    DEFAULT_TRACE_SETTINGS = TraceSettings()

    def __init__(self, name: str, parameters: FractalParameters,
                 camera_position: Optional[Triple] = None,
                 camera_look_at: Optional[Triple] = None,
                 trace_settings: Optional[TraceSettings] = None):
        """
        Initialize distance estimator.

        Args:
            name: Human-readable name for the fractal
            parameters: Fractal-specific parameters
            camera_position: Overrides the variant's camera position
            camera_look_at: Overrides the variant's look-at target
            trace_settings: Overrides the variant's trace precision
        """
        self.name = name
        self.parameters = parameters
        self.parameters.validate()

        self.camera_position = Vec3.of(camera_position or self.DEFAULT_CAMERA_POSITION)
        self.camera_look_at = Vec3.of(camera_look_at or self.DEFAULT_CAMERA_LOOK_AT)
        self.trace_settings = trace_settings or self.DEFAULT_TRACE_SETTINGS

    def evaluate(self, p: Vec3):
        """
        Lower bound on the distance from p to the fractal surface.

        Negative inside the surface. Accepts a single point (returns a
        float) or a batch of points with array components.
        """
        result = self.estimate_distance(p)
        if np.ndim(result) == 0:
            return float(result)
        return result

    @abstractmethod
    def estimate_distance(self, p: Vec3):
        """Compute the distance estimate for a point or batch of points."""
        pass

    def get_description(self) -> str:
        """Get a description of this fractal type."""
        return f"{self.name} fractal"


@dataclass
class SphereParameters(FractalParameters):
    """Parameters for the sphere lattice."""

    radius: float = 0.15

    def validate(self) -> None:
        if not isinstance(self.radius, (int, float)):
            raise ValueError("radius must be numeric")
        if not 0 < self.radius < 0.5:
            raise ValueError("radius must be in (0, 0.5) to fit the unit cell")


class SphereLattice(DistanceEstimator):
    """Infinite lattice of spheres centred in every unit cell."""

    DEFAULT_CAMERA_POSITION = (3.0, 4.0, -4.0)
    DEFAULT_TRACE_SETTINGS = TraceSettings(min_distance=0.001, max_distance=100.0, max_steps=200)

    def __init__(self, parameters: Optional[SphereParameters] = None, **camera):
        if parameters is None:
            parameters = SphereParameters()
        super().__init__("Spheres", parameters, **camera)

    def estimate_distance(self, p: Vec3):
        return (p.mod(1.0) - 0.5).length() - self.parameters.radius

    def get_description(self) -> str:
        return f"Sphere lattice: |mod(p, 1) - 0.5| - {self.parameters.radius}"


@dataclass
class FoldParameters(FractalParameters):
    """Parameters for the folded tetrahedron family."""

    iterations: int = 10
    scale: float = 2.0
    offset: Triple = (1.0, 1.0, 1.0)
    pre_rotation: Optional[Triple] = None
    post_rotation: Optional[Triple] = None

    def validate(self) -> None:
        if not isinstance(self.iterations, int) or self.iterations <= 0:
            raise ValueError("iterations must be a positive integer")
        if not isinstance(self.scale, (int, float)) or self.scale <= 1:
            raise ValueError("scale must be greater than 1")
        _check_triple("offset", self.offset)
        for name in ('pre_rotation', 'post_rotation'):
            value = getattr(self, name)
            if value is not None:
                _check_triple(name, value)


def _optional_rotation(angles: Optional[Triple]) -> Optional[np.ndarray]:
    if angles is None:
        return None
    return rotation_matrix(angles)


class FoldedTetrahedron(DistanceEstimator):
    """
    Sierpinski tetrahedron built by folding across the planes x+y=0,
    x+z=0 and y+z=0.

    The fold policy selects between the invert-and-swap reflection and
    the absolute-value fold; they produce different geometry and are
    registered as separate variants.
    """

    DEFAULT_CAMERA_POSITION = (-2.0, -2.0, -3.0)
    DEFAULT_TRACE_SETTINGS = TraceSettings(min_distance=0.001, max_distance=1000.0, max_steps=1000)

    def __init__(self, parameters: Optional[FoldParameters] = None,
                 fold: Optional[FoldStep] = None, name: str = "Tetrahedron", **camera):
        if parameters is None:
            parameters = FoldParameters()
        super().__init__(name, parameters, **camera)
        self.fold = fold or AbsoluteFold()
        self.iteration = IterationParameters(
            iterations=parameters.iterations,
            scale=float(parameters.scale),
            offset=Vec3.of(parameters.offset),
            pre_rotation=_optional_rotation(parameters.pre_rotation),
            post_rotation=_optional_rotation(parameters.post_rotation),
        )

    def estimate_distance(self, p: Vec3):
        return iterate_folds(p, self.fold, self.iteration)

    def get_description(self) -> str:
        return (f"{self.name}: {self.fold.__class__.__name__} folded tetrahedron, "
                f"{self.parameters.iterations} iterations, scale {self.parameters.scale}")


class Triangles(FoldedTetrahedron):
    """Folded tetrahedron using the invert-and-swap fold, without rotations."""

    def __init__(self, parameters: Optional[FoldParameters] = None, **camera):
        super().__init__(parameters, fold=InvertAndSwapFold(), name="Triangles", **camera)


@dataclass
class VertexParameters(FractalParameters):
    """Parameters for the nearest-vertex tetrahedron."""

    iterations: int = 15
    scale: float = 2.0

    def validate(self) -> None:
        if not isinstance(self.iterations, int) or self.iterations <= 0:
            raise ValueError("iterations must be a positive integer")
        if not isinstance(self.scale, (int, float)) or self.scale <= 1:
            raise ValueError("scale must be greater than 1")


TETRAHEDRON_VERTICES = (
    Vec3(1.0, 1.0, 1.0),
    Vec3(-1.0, -1.0, 1.0),
    Vec3(1.0, -1.0, -1.0),
    Vec3(-1.0, 1.0, -1.0),
)


class VertexTetrahedron(DistanceEstimator):
    """Sierpinski tetrahedron contracting towards the nearest corner each iteration."""

    DEFAULT_CAMERA_POSITION = (-2.0, -2.0, -3.0)
    DEFAULT_TRACE_SETTINGS = TraceSettings(min_distance=0.0005, max_distance=1000.0, max_steps=1000)

    def __init__(self, parameters: Optional[VertexParameters] = None, **camera):
        if parameters is None:
            parameters = VertexParameters()
        super().__init__("Vertex Tetrahedron", parameters, **camera)
        self.fold = NearestVertexFold(TETRAHEDRON_VERTICES)
        self.iteration = IterationParameters(
            iterations=parameters.iterations,
            scale=float(parameters.scale),
            offset=ZERO,
        )

    def estimate_distance(self, p: Vec3):
        return iterate_folds(p, self.fold, self.iteration)

    def get_description(self) -> str:
        return (f"Vertex tetrahedron: z -> z*{self.parameters.scale} - c*({self.parameters.scale}-1) "
                f"towards the nearest vertex c")


@dataclass
class CubeParameters(FractalParameters):
    """Parameters for the Menger-style folded cube."""

    iterations: int = 10
    scale: float = 3.0
    shape: Triple = (1.0, 1.0, 1.0)
    bailout: float = 1e5
    pre_rotation: Optional[Triple] = None
    post_rotation: Optional[Triple] = None

    def validate(self) -> None:
        if not isinstance(self.iterations, int) or self.iterations <= 0:
            raise ValueError("iterations must be a positive integer")
        if not isinstance(self.scale, (int, float)) or self.scale <= 1:
            raise ValueError("scale must be greater than 1")
        if not isinstance(self.bailout, (int, float)) or self.bailout <= 0:
            raise ValueError("bailout must be positive")
        _check_triple("shape", self.shape)
        for name in ('pre_rotation', 'post_rotation'):
            value = getattr(self, name)
            if value is not None:
                _check_triple(name, value)


class FoldedCube(DistanceEstimator):
    """Menger sponge style fractal from octant mirroring and a box fold."""

    DEFAULT_CAMERA_POSITION = (-2.5, 2.0, -3.0)
    DEFAULT_TRACE_SETTINGS = TraceSettings(min_distance=0.001, max_distance=1000.0, max_steps=1000)

    def __init__(self, parameters: Optional[CubeParameters] = None, name: str = "Cube", **camera):
        if parameters is None:
            parameters = CubeParameters()
        super().__init__(name, parameters, **camera)
        self.fold = MengerBoxFold(float(parameters.scale))
        self.iteration = IterationParameters(
            iterations=parameters.iterations,
            scale=float(parameters.scale),
            offset=Vec3.of(parameters.shape),
            bailout=float(parameters.bailout),
            pre_rotation=_optional_rotation(parameters.pre_rotation),
            post_rotation=_optional_rotation(parameters.post_rotation),
        )

    def estimate_distance(self, p: Vec3):
        return iterate_folds(p, self.fold, self.iteration)

    def get_description(self) -> str:
        return (f"{self.name}: Menger fold, scale {self.parameters.scale}, "
                f"shape {tuple(self.parameters.shape)}, bailout {self.parameters.bailout:g}")


@dataclass
class SquaresParameters(CubeParameters):
    """Folded cube parameters with the lower squares bailout."""

    bailout: float = 1e3


class Squares(FoldedCube):
    """Unrotated folded cube with the lower bailout."""

    DEFAULT_CAMERA_POSITION = (-2.0, -2.0, -3.0)

    def __init__(self, parameters: Optional[CubeParameters] = None, **camera):
        if parameters is None:
            parameters = SquaresParameters()
        elif not isinstance(parameters, SquaresParameters):
            # A bailout left at the cube default becomes the squares default
            values = parameters.to_dict()
            if values['bailout'] == CubeParameters.bailout:
                values['bailout'] = SquaresParameters.bailout
            parameters = SquaresParameters(**values)
        super().__init__(parameters, name="Squares", **camera)


class FractalRegistry:
    """Registry for managing available fractal types."""

    _fractals: Dict[str, type] = {
        'spheres': SphereLattice,
        'triangles': Triangles,
        'tetrahedron': FoldedTetrahedron,
        'vertex_tetrahedron': VertexTetrahedron,
        'cube': FoldedCube,
        'squares': Squares,
    }

    _parameters: Dict[str, type] = {
        'spheres': SphereParameters,
        'triangles': FoldParameters,
        'tetrahedron': FoldParameters,
        'vertex_tetrahedron': VertexParameters,
        'cube': CubeParameters,
        'squares': SquaresParameters,
    }

    @classmethod
    def register(cls, name: str, fractal_class: type,
                 parameter_class: type = FractalParameters) -> None:
        """
        Register a new fractal type.

        Args:
            name: Unique identifier for the fractal
            fractal_class: Class implementing the fractal
            parameter_class: Parameters dataclass accepted by its constructor
        """
        if not issubclass(fractal_class, DistanceEstimator):
            raise ValueError("Fractal class must inherit from DistanceEstimator")
        cls._fractals[name.lower()] = fractal_class
        cls._parameters[name.lower()] = parameter_class
        logger.info(f"Registered fractal type: {name}")

    @classmethod
    def get(cls, name: str) -> type:
        """
        Get a fractal class by name.

        Args:
            name: Fractal identifier

        Returns:
            Fractal class
        """
        fractal_class = cls._fractals.get(name.lower())
        if fractal_class is None:
            available = ', '.join(cls._fractals.keys())
            raise ValueError(f"Unknown fractal type '{name}'. Available: {available}")
        return fractal_class

    @classmethod
    def names(cls):
        return list(cls._fractals.keys())

    @classmethod
    def parameter_names(cls, name: str) -> Tuple[str, ...]:
        """Keyword parameters create_fractal accepts for a fractal type."""
        cls.get(name)
        return tuple(f.name for f in fields(cls._parameters[name.lower()]))

    @classmethod
    def list_fractals(cls) -> Dict[str, str]:
        """Get a dictionary of available fractals and their descriptions."""
        return {name: cls.create_fractal(name).get_description() for name in cls._fractals}

    @classmethod
    def create_fractal(cls, name: str, camera_position: Optional[Triple] = None,
                       camera_look_at: Optional[Triple] = None, **kwargs) -> DistanceEstimator:
        """
        Create a fractal instance with the given parameters.

        Args:
            name: Fractal type name
            camera_position: Optional camera position override
            camera_look_at: Optional look-at override
            **kwargs: Parameters for the fractal

        Returns:
            Configured fractal instance
        """
        fractal_class = cls.get(name)
        camera = {'camera_position': camera_position, 'camera_look_at': camera_look_at}

        if kwargs:
            param_class = cls._parameters[name.lower()]
            return fractal_class(param_class(**kwargs), **camera)
        return fractal_class(**camera)


@dataclass(frozen=True)
class GalleryPreset:
    """A named render: fractal type, its parameters and the color mode."""
    fractal_type: str
    config_name: str
    color_mode: str
    parameters: Tuple[Tuple[str, Any], ...] = ()

    def create_fractal(self) -> DistanceEstimator:
        return FractalRegistry.create_fractal(self.fractal_type, **dict(self.parameters))


GALLERY_PRESETS = (
    GalleryPreset('cube', '-1', 'normal'),
    GalleryPreset('cube', '-2', 'normal', (('pre_rotation', (0.0, 3.0, 0.0)),)),
    GalleryPreset('cube', '-3', 'normal', (('pre_rotation', (0.2, 0.2, 0.2)),)),
    GalleryPreset('cube', '-4', 'grayscale', (('shape', (1.2, 1.0, 0.4)),)),
    GalleryPreset('spheres', '-1', 'normal'),
    GalleryPreset('spheres', '-2', 'grayscale', (('radius', 0.1),)),
    GalleryPreset('tetrahedron', '-1', 'normal'),
    GalleryPreset('tetrahedron', '-2', 'distance', (('pre_rotation', (4.0, 4.0, 0.0)),)),
    GalleryPreset('tetrahedron', '-3', 'grayscale', (('pre_rotation', (0.0, -0.2, 0.0)),)),
    GalleryPreset('tetrahedron', '-4', 'normal', (('pre_rotation', (0.0, 0.35, 0.0)),
                                                  ('post_rotation', (0.0, -0.2, 0.0)))),
    GalleryPreset('triangles', '-1', 'grayscale'),
    GalleryPreset('squares', '-1', 'grayscale'),
    GalleryPreset('vertex_tetrahedron', '-1', 'normal'),
)
