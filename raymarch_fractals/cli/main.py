"""
Command-line interface for fractal rendering.

This module provides a CLI for rendering single fractals, rendering the
preset gallery and listing the available distance estimators.
"""

import click
import sys
from pathlib import Path
from typing import Optional, Dict, Any, Tuple
import logging
import time

from .. import __version__
from ..api import FractalRenderer, RenderConfig, GalleryRenderer, output_filename
from ..core.fractal_types import FractalRegistry
from ..rendering.coloring import ColorMode

logger = logging.getLogger(__name__)

COLOR_MODES = [mode.value for mode in ColorMode]


def parse_triple(value: Optional[str]) -> Optional[Tuple[float, float, float]]:
    """Parse "x,y,z" into a float triple."""
    if value is None:
        return None
    try:
        parts = tuple(float(x.strip()) for x in value.split(','))
    except ValueError:
        raise click.BadParameter(f"Expected 'x,y,z', got '{value}'")
    if len(parts) != 3:
        raise click.BadParameter(f"Expected 'x,y,z', got '{value}'")
    return parts


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress most output')
@click.pass_context
def main(ctx, version, verbose, quiet):
    """
    Raymarch Fractals - render 3D fractals by sphere tracing distance estimators.
    """
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    else:
        logging.basicConfig(level=logging.INFO,
                            format='%(levelname)s: %(message)s')

    if version:
        click.echo(f"Raymarch Fractals v{__version__}")
        click.echo(f"Python: {sys.version}")
        if ctx.invoked_subcommand is None:
            sys.exit(0)

    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose


@main.command()
@click.argument('fractal_type', type=click.Choice(FractalRegistry.names()))
@click.argument('output', type=click.Path(), required=False)
@click.option('--width', '-w', type=int, default=1920, help='Image width')
@click.option('--height', '-h', type=int, default=1080, help='Image height')
@click.option('--ssaa', type=int, default=2, help='Supersampling factor')
@click.option('--color-mode', '-c', type=click.Choice(COLOR_MODES), default='normal',
              help='Color mode')
@click.option('--zoom', type=float, default=1.0, help='Camera zoom')
@click.option('--camera', type=str, help='Camera position "x,y,z"')
@click.option('--look-at', type=str, help='Camera target "x,y,z"')
@click.option('--radius', type=float, help='Sphere radius (spheres)')
@click.option('--iterations', type=int, help='Fold iterations')
@click.option('--scale', type=float, help='Fold scale factor')
@click.option('--rotation', type=str, help='Pre-fold rotation angles "a,b,c"')
@click.option('--processes', type=int, help='Number of processes for parallel rendering')
@click.option('--tile-size', type=int, default=64, help='Tile size for parallel rendering')
@click.option('--no-parallel', is_flag=True, help='Render in the current process')
@click.pass_context
def render(ctx, fractal_type, output, width, height, ssaa, color_mode, zoom, camera, look_at,
           radius, iterations, scale, rotation, processes, tile_size, no_parallel):
    """
    Render a single fractal image.

    FRACTAL_TYPE: Registered fractal name
    OUTPUT: Output image path (defaults to fractal-<type>-<mode>.png)
    """
    overrides = [
        ('--radius', 'radius', radius),
        ('--iterations', 'iterations', iterations),
        ('--scale', 'scale', scale),
        ('--rotation', 'pre_rotation', rotation),
    ]
    accepted = FractalRegistry.parameter_names(fractal_type)
    for option, key, value in overrides:
        if value is not None and key not in accepted:
            raise click.BadParameter(f"'{fractal_type}' has no {key} parameter",
                                     param_hint=option)

    try:
        fractal_params: Dict[str, Any] = {key: value for _, key, value in overrides
                                          if value is not None}
        if rotation is not None:
            fractal_params['pre_rotation'] = parse_triple(rotation)

        fractal = FractalRegistry.create_fractal(
            fractal_type,
            camera_position=parse_triple(camera),
            camera_look_at=parse_triple(look_at),
            **fractal_params
        )

        config = RenderConfig(
            width=width,
            height=height,
            supersampling=ssaa,
            color_mode=color_mode,
            zoom=zoom,
            use_multiprocessing=not no_parallel,
            num_processes=processes,
            tile_size=tile_size,
        )
        renderer = FractalRenderer(config)

        output_path = Path(output) if output else Path(output_filename(fractal_type, '', color_mode))

        click.echo(f"Rendering {fractal_type} fractal...")
        start_time = time.time()
        renderer.render_to_file(fractal, fractal_type, color_mode=color_mode, output_path=output_path)
        click.echo(f"Render complete: {time.time() - start_time:.2f}s")
        click.echo(f"Saved: {output_path}")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        if ctx.obj.get('verbose'):
            import traceback
            traceback.print_exc()
        sys.exit(1)


@main.command()
@click.argument('output_dir', type=click.Path(), default='.')
@click.option('--width', '-w', type=int, default=1920, help='Image width')
@click.option('--height', '-h', type=int, default=1080, help='Image height')
@click.option('--ssaa', type=int, default=2, help='Supersampling factor')
@click.option('--processes', type=int, help='Number of processes for parallel rendering')
@click.option('--no-parallel', is_flag=True, help='Render in the current process')
@click.option('--dry-run', is_flag=True, help='Show what would be rendered without rendering')
@click.pass_context
def gallery(ctx, output_dir, width, height, ssaa, processes, no_parallel, dry_run):
    """
    Render every gallery preset.

    OUTPUT_DIR: Directory for the rendered images
    """
    try:
        config = RenderConfig(
            width=width,
            height=height,
            supersampling=ssaa,
            use_multiprocessing=not no_parallel,
            num_processes=processes,
            output_dir=output_dir,
        )
        gallery_renderer = GalleryRenderer(config)

        if dry_run:
            for preset in gallery_renderer.presets:
                name = output_filename(preset.fractal_type, preset.config_name, preset.color_mode)
                click.echo(f"Would render: {Path(output_dir) / name}")
            return

        def progress_callback(completed, total, result):
            click.echo(f"Completed {completed}/{total}: {result['output_path']}")

        gallery_renderer.run(progress_callback)

        summary = gallery_renderer.get_summary()
        click.echo(f"\nGallery complete:")
        click.echo(f"  Images: {summary['total_presets']}")
        click.echo(f"  Total time: {summary['total_render_time']:.2f}s")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        if ctx.obj.get('verbose'):
            import traceback
            traceback.print_exc()
        sys.exit(1)


@main.command('list')
def list_fractals():
    """List available fractal types."""
    click.echo("Available fractal types:\n")
    for name, description in FractalRegistry.list_fractals().items():
        click.echo(f"  {name:20} {description}")


if __name__ == '__main__':
    main()
