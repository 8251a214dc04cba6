"""Public API for escape-time fractal grid evaluation."""

from .assembler import GridAssembler
from .batch import BatchEvaluator
from .engine import evaluate_grid, evaluate_grid_2d, make_evaluator, render_rows
from .errors import AssemblyError, ConfigurationError, FractalGridError, PoolClosedError
from .generator import (
    Frame,
    ZoomPlanner,
    apply_zoom,
    compute_zoom_factors,
    julia_constants,
    render_sequence,
)
from .model import (
    DEFAULT_ESCAPE_RADIUS,
    DEFAULT_LANE_WIDTH,
    FractalParams,
    IterationBudget,
    JuliaConstant,
    Viewport,
    pixel_to_complex,
    result_dtype,
)
from .point import evaluate_point
from .pool import WorkerPool
from .regions import CardioidRegion, DiskRegion, MANDELBROT_REGIONS, RegionPruner
from .symmetry import mirror_rows, rows_to_compute, symmetry_eligible
from .tiling import Tile, TilePlanner, plan_tiles

__all__ = [
    "AssemblyError",
    "BatchEvaluator",
    "CardioidRegion",
    "ConfigurationError",
    "DEFAULT_ESCAPE_RADIUS",
    "DEFAULT_LANE_WIDTH",
    "DiskRegion",
    "FractalGridError",
    "FractalParams",
    "Frame",
    "GridAssembler",
    "IterationBudget",
    "JuliaConstant",
    "MANDELBROT_REGIONS",
    "PoolClosedError",
    "RegionPruner",
    "Tile",
    "TilePlanner",
    "Viewport",
    "WorkerPool",
    "ZoomPlanner",
    "apply_zoom",
    "compute_zoom_factors",
    "evaluate_grid",
    "evaluate_grid_2d",
    "evaluate_point",
    "julia_constants",
    "make_evaluator",
    "mirror_rows",
    "pixel_to_complex",
    "plan_tiles",
    "render_rows",
    "render_sequence",
    "result_dtype",
    "rows_to_compute",
    "symmetry_eligible",
]
