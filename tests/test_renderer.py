import numpy as np
import pytest

from raymarch_fractals.core.fractal_types import FractalRegistry, SphereLattice
from raymarch_fractals.core.renderer import SceneRenderer
from raymarch_fractals.rendering.coloring import ColorMode, Shader, SolidBackground


def test_center_pixel_hits_sphere_lattice_in_grayscale():
    renderer = SceneRenderer(SphereLattice())
    r, g, b = renderer.render((32, 32), (64, 64), ColorMode.GRAYSCALE)

    assert r == g == b
    assert 0 < r < 255


def test_miss_returns_configured_background_exactly():
    # Looking along +x from a cell corner threads between the spheres
    fractal = SphereLattice(camera_position=(0.0, 0.0, 0.0), camera_look_at=(1.0, 0.0, 0.0))
    shader = Shader(backgrounds={ColorMode.GRAYSCALE: SolidBackground((12, 34, 56))})
    renderer = SceneRenderer(fractal, shader)

    assert renderer.render((32, 32), (64, 64), 'grayscale') == (12, 34, 56)
    assert renderer.render((32, 32), (64, 64), 'distance') == (0, 0, 0)


def test_render_is_deterministic_and_matches_batches():
    renderer = SceneRenderer(SphereLattice())
    xs = np.array([0, 10, 32, 50])
    ys = np.array([5, 20, 32, 60])

    batch = renderer.render_pixels(xs, ys, (64, 64), 'normal')
    for i in range(len(xs)):
        single = renderer.render((xs[i], ys[i]), (64, 64), 'normal')
        assert tuple(batch[i].tolist()) == single
        assert renderer.render((xs[i], ys[i]), (64, 64), 'normal') == single


def test_render_region_shape():
    renderer = SceneRenderer(SphereLattice())
    region = renderer.render_region(2, 7, 1, 4, (16, 8), 'distance')
    assert region.shape == (3, 5, 3)
    assert region.dtype == np.uint8


@pytest.mark.parametrize("name", FractalRegistry.names())
@pytest.mark.parametrize("mode", list(ColorMode))
def test_every_fractal_renders_in_every_mode(name, mode):
    renderer = SceneRenderer(FractalRegistry.create_fractal(name))
    image = renderer.render_region(0, 6, 0, 4, (6, 4), mode)
    assert image.shape == (4, 6, 3)
    assert image.dtype == np.uint8
