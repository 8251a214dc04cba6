"""Command-line harness: time grid evaluations, report checksums, write images."""

from __future__ import annotations

import logging
import os
import sys
import time
from argparse import ArgumentDefaultsHelpFormatter, ArgumentParser
from pathlib import Path
from typing import Optional, Sequence

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
if not _cli_verbose and os.environ.get("TF_CPP_MIN_LOG_LEVEL") is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


from .engine import evaluate_grid
from .errors import ConfigurationError
from .generator import ZoomPlanner, compute_zoom_factors, julia_constants, render_sequence
from .image import GifWriter, checksum, colorize, write_image
from .model import (
    BACKENDS,
    DEFAULT_ESCAPE_RADIUS,
    DEFAULT_LANE_WIDTH,
    FAMILIES,
    FractalParams,
    IterationBudget,
    JuliaConstant,
    Viewport,
)
from .pool import KINDS, WorkerPool
from .symmetry import symmetry_eligible
from .tiling import DEFAULT_INTERLEAVE, POLICIES


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog="fractalgrid", formatter_class=ArgumentDefaultsHelpFormatter)

    parser.add_argument('--min-x', type=float, default=-2.0, help='real part of the left edge')
    parser.add_argument('--max-x', type=float, default=0.5, help='real part of the right edge')
    parser.add_argument('--min-y', type=float, default=-1.25, help='imaginary part of the first row')
    parser.add_argument('--max-y', type=float, default=1.25, help='imaginary part past the last row')
    parser.add_argument('--x-res', type=int, default=1000, help='samples along the real axis')
    parser.add_argument('--y-res', type=int, default=1000, help='samples along the imaginary axis')
    parser.add_argument('--max-iterations', type=int, default=256, help='iteration budget per point')

    parser.add_argument('--family', choices=FAMILIES, default='mandelbrot', help='recurrence to evaluate')
    parser.add_argument('--julia', type=float, nargs=2, metavar=('X', 'Y'), default=None,
                        help='Julia constant; implies --family julia')
    parser.add_argument('--escape-radius', type=float, default=DEFAULT_ESCAPE_RADIUS,
                        help='orbit magnitude treated as escaped (at least 2)')

    parser.add_argument('--backend', choices=BACKENDS, default='numpy', help='lane kernel to use')
    parser.add_argument('--lane-width', type=int, default=DEFAULT_LANE_WIDTH, help='points per batch')
    parser.add_argument('--pool', choices=KINDS + ('none',), default='thread', help='worker pool kind')
    parser.add_argument('--workers', type=int, default=None, help='pool size (default: CPU count)')
    parser.add_argument('--interleave', type=int, default=DEFAULT_INTERLEAVE, help='blocks per worker')
    parser.add_argument('--policy', choices=POLICIES, default='interleaved', help='tile assignment policy')
    parser.add_argument('--no-prune', dest='prune', action='store_false', help='disable interior region pruning')
    parser.add_argument('--no-symmetry', dest='symmetry', action='store_false', help='disable row mirroring')

    parser.add_argument('--repeat', type=int, default=1, help='evaluate the same grid this many times')
    parser.add_argument('--frames', type=int, default=1, help='animation frames to render')
    parser.add_argument('--zoom-factor', type=float, default=1.0, help='viewport scale change per frame')
    parser.add_argument('--final-zoom', type=float, default=None,
                        help='overall scale reached by the last frame; overrides --zoom-factor')
    parser.add_argument('--easing', default='ease', help='"linear" or "ease" schedule for --final-zoom')
    parser.add_argument('--follow-boundary', action='store_true', help='recenter on the set boundary each frame')
    parser.add_argument('--orbit-radius', type=float, default=None,
                        help='animate the Julia constant around a circle of this radius')

    parser.add_argument('--output', type=str, default=None, help='image (.png, .jpg, ...) or .gif to write')
    parser.add_argument('--colormap', default='twilight_shifted', help='matplotlib colormap')
    parser.add_argument('--inside-color', default='#000000', help='hex color for bounded points')
    parser.add_argument('--gamma', type=float, default=0.85, help='gamma correction for tone mapping')
    parser.add_argument('--invert', action='store_true', help='invert the colormap')
    parser.add_argument('-v', '--verbose', action='store_true', help='log evaluation details')
    return parser


def resolve_params(opt, parser: ArgumentParser) -> tuple[Viewport, IterationBudget, FractalParams]:
    family = 'julia' if opt.julia is not None or opt.orbit_radius is not None else opt.family
    constant = None
    if family == 'julia':
        x, y = opt.julia if opt.julia is not None else (-0.8, 0.156)
        constant = JuliaConstant(x, y)
    try:
        viewport = Viewport.from_bounds(opt.min_x, opt.max_x, opt.min_y, opt.max_y, opt.x_res, opt.y_res)
        budget = IterationBudget(opt.max_iterations)
        params = FractalParams(
            family=family,
            julia_constant=constant,
            escape_radius=opt.escape_radius,
            lane_width=opt.lane_width,
            backend=opt.backend,
            prune=opt.prune,
            symmetry=opt.symmetry,
        )
        viewport.validate()
        budget.validate()
        params.validate()
    except ConfigurationError as exc:
        parser.error(str(exc))
    if opt.repeat <= 0:
        parser.error('--repeat must be positive.')
    if opt.frames <= 0:
        parser.error('--frames must be positive.')
    return viewport, budget, params


def _render(grid, max_iters: int, opt):
    return colorize(
        grid,
        max_iters,
        colormap=opt.colormap,
        inside_color=opt.inside_color,
        invert=opt.invert,
        gamma=opt.gamma,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    opt = parser.parse_args(argv)

    global VERBOSE
    VERBOSE = bool(opt.verbose)
    if VERBOSE:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(message)s")
    else:
        logging.getLogger("tensorflow").setLevel(logging.ERROR)

    viewport, budget, params = resolve_params(opt, parser)
    log(f"grid {viewport.width}x{viewport.height}, max_iters={budget.max_iters}, params={params}")
    log(f"mirroring eligible: {symmetry_eligible(viewport, params)}")

    pool = None if opt.pool == 'none' else WorkerPool(opt.workers, kind=opt.pool)
    grid_options = dict(interleave_factor=opt.interleave, policy=opt.policy)
    output = Path(opt.output).expanduser() if opt.output else None

    try:
        if opt.frames == 1:
            pixels = None
            for run in range(opt.repeat):
                start = time.perf_counter()
                pixels = evaluate_grid(viewport, budget, params, pool, **grid_options)
                elapsed = time.perf_counter() - start
                print(f"run {run}: {elapsed:.4f}s checksum {checksum(pixels)}")
            if output is not None:
                grid = pixels.reshape(viewport.height, viewport.width)
                write_image(_render(grid, budget.max_iters, opt), output)
                log(f"wrote {output}")
            return 0

        zoom_factors = compute_zoom_factors(opt.frames, opt.zoom_factor, final_zoom=opt.final_zoom, easing=opt.easing)
        constants = julia_constants(opt.frames, opt.orbit_radius) if opt.orbit_radius is not None else None
        planner = ZoomPlanner(lock_aspect=False, aspect=1.0, follow_boundary=opt.follow_boundary)
        gif = GifWriter(output) if output is not None and output.suffix.lower() == '.gif' else None
        last_grid = None
        try:
            start = time.perf_counter()
            for frame in render_sequence(
                viewport,
                budget,
                params,
                pool,
                frames=opt.frames,
                zoom_factors=zoom_factors,
                constants=constants,
                planner=planner,
                **grid_options,
            ):
                print(f"frame {frame.index}: checksum {checksum(frame.pixels)}")
                last_grid = frame.grid
                if gif is not None:
                    gif.append(_render(last_grid, budget.max_iters, opt))
            print(f"{opt.frames} frames in {time.perf_counter() - start:.4f}s")
        finally:
            if gif is not None:
                gif.close()
        if output is not None and gif is None and last_grid is not None:
            write_image(_render(last_grid, budget.max_iters, opt), output)
        return 0
    finally:
        if pool is not None:
            pool.close()


if __name__ == '__main__':
    sys.exit(main())
