import math

import numpy as np
import pytest

from raymarch_fractals.core.vector import Vec3
from raymarch_fractals.core.fractal_types import DistanceEstimator, FractalParameters, SphereLattice
from raymarch_fractals.core.raymarch import RayCaster, NormalEstimator, TraceSettings


class RecordingField:
    """Wraps an estimator and records the x coordinate of every sampled point."""

    def __init__(self, inner):
        self.inner = inner
        self.samples = []

    def evaluate(self, p):
        self.samples.extend(np.atleast_1d(p.x).tolist())
        return self.inner.evaluate(p)


class ConstantField(DistanceEstimator):
    def __init__(self):
        super().__init__("Constant", FractalParameters())

    def estimate_distance(self, p):
        return p.x * 0.0 + 1.0


def test_trace_settings_validation():
    with pytest.raises(ValueError):
        TraceSettings(min_distance=0.0)
    with pytest.raises(ValueError):
        TraceSettings(min_distance=1.0, max_distance=0.5)
    with pytest.raises(ValueError):
        TraceSettings(max_steps=0)


def test_ray_hits_sphere_lattice_from_default_camera():
    spheres = SphereLattice()
    origin = Vec3(3.0, 4.0, -4.0)
    direction = (-origin).normalize()

    result = RayCaster(spheres.trace_settings).cast(origin, direction, spheres)

    assert result.hit is True
    assert result.distance < spheres.trace_settings.max_distance
    # First sphere on the way is centred at (2.5, 3.5, -3.5)
    assert result.distance == pytest.approx(0.7574, abs=0.01)

    point = result.hit_points(origin, direction)
    assert abs(spheres.evaluate(point)) < spheres.trace_settings.min_distance


def test_ray_misses_when_leaving_the_scene():
    spheres = SphereLattice()
    result = RayCaster(spheres.trace_settings).cast(Vec3(0.0, 0.0, 0.0), Vec3(0.0, 1.0, 0.0), spheres)

    assert result.hit is False
    assert result.distance > spheres.trace_settings.max_distance


def test_step_budget_exhaustion_is_a_miss():
    spheres = SphereLattice()
    caster = RayCaster(TraceSettings(max_distance=100.0, max_steps=3))
    result = caster.cast(Vec3(0.0, 0.0, 0.0), Vec3(0.0, 1.0, 0.0), spheres)

    assert result.hit is False
    assert result.steps == 3
    assert result.distance < 100.0


def test_trace_distance_is_monotonic_and_bounded():
    recorder = RecordingField(SphereLattice())
    settings = TraceSettings(max_distance=100.0, max_steps=50)
    result = RayCaster(settings).cast(Vec3(0.0, 0.0, 0.0), Vec3(1.0, 0.0, 0.0), recorder)

    # Along +x from the origin the sampled x coordinate is t itself
    assert recorder.samples == sorted(recorder.samples)
    assert len(recorder.samples) <= settings.max_steps
    assert result.steps == len(recorder.samples)


def test_ray_starting_inside_surface_hits_without_moving_backwards():
    spheres = SphereLattice()
    result = RayCaster(spheres.trace_settings).cast(Vec3(0.5, 0.5, 0.5), Vec3(0.0, 0.0, 1.0), spheres)

    assert result.hit is True
    assert result.distance == 0.0
    assert result.steps == 1


def test_batch_cast_matches_single_rays():
    spheres = SphereLattice()
    caster = RayCaster(spheres.trace_settings)
    origin = Vec3(3.0, 4.0, -4.0)
    directions = [(-3.0, -4.0, 4.0), (0.0, 1.0, 0.0), (-1.0, -0.2, 0.3)]

    units = [Vec3.of(d).normalize() for d in directions]
    batch = caster.cast(origin, Vec3(np.array([u.x for u in units]),
                                     np.array([u.y for u in units]),
                                     np.array([u.z for u in units])), spheres)

    for i, unit in enumerate(units):
        single = caster.cast(origin, unit, spheres)
        assert batch.hit[i] == single.hit
        assert batch.distance[i] == pytest.approx(single.distance)
        assert batch.steps[i] == single.steps


@pytest.mark.parametrize("point", [
    (0.5 + 0.151, 0.5, 0.5),
    (0.5, 0.5 - 0.1505, 0.5),
    (0.6, 0.6, 0.6),
    (1.4, 0.43, 0.62),
])
def test_normals_are_unit_length(point):
    normal = NormalEstimator().estimate(Vec3.of(point), SphereLattice())
    assert normal.length() == pytest.approx(1.0, abs=1e-9)


def test_normal_points_away_from_sphere_centre():
    normal = NormalEstimator().estimate(Vec3(0.5 + 0.151, 0.5, 0.5), SphereLattice())
    x, y, z = normal.to_tuple()
    assert x == pytest.approx(1.0, abs=1e-3)
    assert abs(y) < 1e-2
    assert abs(z) < 1e-2


def test_normal_of_flat_field_is_nan():
    normal = NormalEstimator().estimate(Vec3(0.2, 0.3, 0.4), ConstantField())
    assert all(math.isnan(c) for c in normal.to_tuple())


def test_normal_estimator_from_settings():
    estimator = NormalEstimator.from_settings(TraceSettings(normal_epsilon=0.01,
                                                            normal_secondary_epsilon=0.001))
    assert estimator.epsilon == 0.01
    assert estimator.secondary_epsilon == 0.001
    with pytest.raises(ValueError):
        NormalEstimator(epsilon=0.0)
