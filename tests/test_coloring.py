import numpy as np
import pytest

from raymarch_fractals.core.vector import Vec3
from raymarch_fractals.core.fractal_types import SphereLattice
from raymarch_fractals.core.raymarch import NormalEstimator, TraceResult
from raymarch_fractals.rendering.coloring import (
    ColorMode, Shader, SolidBackground, GradientBackground, quantize,
)


def directions(*vectors):
    units = [Vec3.of(v).normalize() for v in vectors]
    return Vec3(np.array([u.x for u in units]), np.array([u.y for u in units]),
                np.array([u.z for u in units]))


def test_color_mode_parse():
    assert ColorMode.parse('Grayscale') is ColorMode.GRAYSCALE
    assert ColorMode.parse(ColorMode.NORMAL) is ColorMode.NORMAL
    with pytest.raises(ValueError):
        ColorMode.parse('sepia')


def test_quantize_saturates_and_zeroes_nan():
    values = quantize(np.array([0.0, 0.5, 1.0, np.nan]))
    assert values.tolist() == [0, 128, 255, 0]
    assert values.dtype == np.uint8


def test_distance_colors_split_24_bit_value():
    colors = Shader._distance_colors(Vec3(np.array([50.0]), np.array([0.0]), np.array([0.0])), 100.0)
    # int(0.5 * 255**3) = 8290687 = 0x7E817F
    assert colors.tolist() == [[126, 129, 127]]


def test_gradient_background_follows_direction():
    background = GradientBackground(bottom=(0, 0, 0), top=(200, 100, 50))
    colors = background.colors(directions((0.0, 1.0, 0.0), (0.0, -1.0, 0.0), (1.0, 0.0, 0.0)))
    assert colors.tolist() == [[200, 100, 50], [0, 0, 0], [100, 50, 25]]


def test_backgrounds_are_configurable_per_mode():
    shader = Shader(backgrounds={'distance': SolidBackground((9, 8, 7))})
    assert isinstance(shader.backgrounds[ColorMode.GRAYSCALE], GradientBackground)
    assert isinstance(shader.backgrounds[ColorMode.NORMAL], SolidBackground)
    assert shader.backgrounds[ColorMode.DISTANCE].color.tolist() == [9, 8, 7]


def test_diffuse_is_clamped_half_lambert():
    point = Vec3(0.0, 0.0, 0.0)
    normal = Vec3(0.0, 1.0, 0.0)
    assert Shader.diffuse(point, normal, Vec3(0.0, 5.0, 0.0)) == pytest.approx(1.0)
    assert Shader.diffuse(point, normal, Vec3(5.0, 0.0, 0.0)) == pytest.approx(0.5)
    assert Shader.diffuse(point, normal, Vec3(0.0, -5.0, 0.0)) == pytest.approx(0.0)


def test_light_is_offset_from_camera():
    shader = Shader()
    assert shader.light_position(Vec3(3.0, 4.0, -4.0)).to_tuple() == (5.0, 6.0, -4.0)


@pytest.mark.parametrize("mode", list(ColorMode))
def test_misses_use_the_mode_background(mode):
    shader = Shader(backgrounds={mode: SolidBackground((12, 34, 56))})
    dirs = directions((0.0, 1.0, 0.0), (1.0, 0.0, 0.0))
    trace = TraceResult(np.array([150.0, 150.0]), np.array([False, False]), np.array([10, 10]))

    colors = shader.shade(mode, trace, Vec3(0.0, 0.0, 0.0), dirs, SphereLattice(), NormalEstimator())
    assert colors.tolist() == [[12, 34, 56], [12, 34, 56]]


def test_hit_shading_per_mode():
    spheres = SphereLattice()
    shader = Shader()
    origin = Vec3(0.5, 0.5, 1.0)
    dirs = directions((0.0, 0.0, -1.0), (0.0, 1.0, 0.0))
    # First ray reaches the top of the sphere centred at (0.5, 0.5, 0.5)
    trace = TraceResult(np.array([0.3505, 150.0]), np.array([True, False]), np.array([5, 200]))

    gray = shader.shade('grayscale', trace, origin, dirs, spheres, NormalEstimator())
    assert gray[0, 0] == gray[0, 1] == gray[0, 2]
    assert 0 < gray[0, 0] < 255

    normal = shader.shade('normal', trace, origin, dirs, spheres, NormalEstimator())
    # Normal is close to +z, so blue dominates
    assert normal[0, 2] > normal[0, 0]
    assert normal[0, 2] > normal[0, 1]
    assert normal[1].tolist() == [0, 0, 0]

    distance = shader.shade('distance', trace, origin, dirs, spheres, NormalEstimator())
    assert distance[1].tolist() == [0, 0, 0]
    assert distance[0].tolist() != [0, 0, 0]


def test_shader_rejects_bad_gamma():
    with pytest.raises(ValueError):
        Shader(gamma=0.0)


def test_distance_shaded_darkens_the_distance_colors():
    spheres = SphereLattice()
    shader = Shader()
    origin = Vec3(0.5, 0.5, 1.0)
    dirs = directions((0.0, 0.0, -1.0), (0.0, 1.0, 0.0))
    trace = TraceResult(np.array([0.3505, 150.0]), np.array([True, False]), np.array([5, 200]))

    distance = shader.shade(ColorMode.DISTANCE, trace, origin, dirs, spheres, NormalEstimator())
    shaded = shader.shade('distance_shaded', trace, origin, dirs, spheres, NormalEstimator())

    assert np.all(shaded[0] <= distance[0])
    # The light term is below one on this surface, so the green byte drops
    assert 0 < shaded[0, 1] < distance[0, 1]
    assert shaded[1].tolist() == [0, 0, 0]
