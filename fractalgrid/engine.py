"""Grid evaluation: planning, per-worker pipelines and final assembly."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from multiprocessing import shared_memory
from typing import Optional

import numpy as np

from .assembler import GridAssembler
from .batch import BatchEvaluator
from .model import FractalParams, IterationBudget, Viewport
from .point import evaluate_point
from .pool import WorkerPool
from .regions import RegionPruner
from .symmetry import rows_to_compute, symmetry_eligible
from .tiling import DEFAULT_INTERLEAVE, Tile, plan_tiles, tiles_by_worker

logger = logging.getLogger(__name__)


def make_evaluator(params: FractalParams) -> Optional[BatchEvaluator]:
    """Lane evaluator for ``params.backend``; ``None`` selects the scalar path."""

    if params.backend == "scalar":
        return None
    if params.backend == "tensorflow":
        from .tensor import TensorBatchEvaluator

        return TensorBatchEvaluator(params.lane_width, params.escape_radius)
    return BatchEvaluator(params.lane_width, params.escape_radius)


def render_rows(
    viewport: Viewport,
    budget: IterationBudget,
    params: FractalParams,
    row_start: int,
    row_end: int,
    out: np.ndarray,
    evaluator: Optional[BatchEvaluator] = None,
    pruner: Optional[RegionPruner] = None,
) -> np.ndarray:
    """Evaluate rows ``[row_start, row_end)`` into ``out`` of shape ``(rows, width)``.

    Points inside a pruning region are set to ``max_iters`` without being
    iterated. Everything else goes through ``evaluator``, or through the
    scalar evaluator point by point when ``evaluator`` is ``None``.
    """

    max_iters = budget.max_iters
    const = params.constant
    if pruner is None:
        pruner = RegionPruner.for_params(params)

    xs = viewport.x_coords()
    ys = viewport.y_coords()[row_start:row_end]
    shape = (ys.size, xs.size)
    counts = np.full(shape, max_iters, dtype=np.int32)

    if evaluator is None:
        for r, cy in enumerate(ys):
            for w, cx in enumerate(xs):
                if pruner and pruner.is_known_bounded(cx, cy):
                    continue
                counts[r, w] = evaluate_point(cx, cy, max_iters, const, params.escape_radius)
    else:
        cx = np.broadcast_to(xs[np.newaxis, :], shape)
        cy = np.broadcast_to(ys[:, np.newaxis], shape)
        if pruner:
            pending = ~pruner.known_bounded_mask(cx, cy)
            counts[pending] = evaluator.evaluate_points(cx[pending], cy[pending], max_iters, const)
        else:
            counts[...] = evaluator.evaluate_points(cx, cy, max_iters, const).reshape(shape)

    out[...] = counts
    return out


@dataclass(frozen=True)
class TileJob:
    """Everything one worker needs to fill its tiles."""

    viewport: Viewport
    budget: IterationBudget
    params: FractalParams
    tiles: tuple[Tile, ...]
    shm_name: Optional[str] = None
    dtype: str = "uint8"


def _render_job(job: TileJob, grid: np.ndarray) -> tuple[Tile, ...]:
    evaluator = make_evaluator(job.params)
    pruner = RegionPruner.for_params(job.params)
    for tile in job.tiles:
        render_rows(
            job.viewport,
            job.budget,
            job.params,
            tile.row_start,
            tile.row_end,
            grid[tile.row_start:tile.row_end],
            evaluator,
            pruner,
        )
    return job.tiles


def _render_shared(job: TileJob) -> tuple[Tile, ...]:
    """Process-pool entry point: attach to the output buffer and fill this job's rows."""

    shm = shared_memory.SharedMemory(name=job.shm_name)
    try:
        grid = np.ndarray((job.viewport.height, job.viewport.width), dtype=job.dtype, buffer=shm.buf)
        try:
            return _render_job(job, grid)
        finally:
            del grid
    finally:
        shm.close()


def _validate(viewport: Viewport, budget: IterationBudget, params: FractalParams) -> None:
    viewport.validate()
    budget.validate()
    params.validate()


def evaluate_grid(
    viewport: Viewport,
    iteration_budget: IterationBudget,
    fractal_params: FractalParams,
    worker_pool: Optional[WorkerPool] = None,
    *,
    interleave_factor: int = DEFAULT_INTERLEAVE,
    policy: str = "interleaved",
) -> np.ndarray:
    """Escape counts for every pixel of ``viewport`` as a flat row-major array.

    Values lie in ``[0, max_iters]``; ``max_iters`` marks points that never
    escaped. All parameters are validated before any work is dispatched. The
    pool is borrowed, never closed; without one the tiles run in-process.
    """

    _validate(viewport, iteration_budget, fractal_params)
    mirrored = symmetry_eligible(viewport, fractal_params)
    height_to_compute = rows_to_compute(viewport.height) if mirrored else viewport.height
    worker_count = worker_pool.size if worker_pool is not None else 1
    tiles = plan_tiles(height_to_compute, worker_count, interleave_factor, policy)
    dtype = iteration_budget.dtype

    jobs = [
        TileJob(viewport, iteration_budget, fractal_params, tuple(worker_tiles), dtype=dtype.name)
        for _, worker_tiles in sorted(tiles_by_worker(tiles).items())
    ]

    start = time.perf_counter()
    if worker_pool is None or worker_pool.shares_memory:
        assembler = GridAssembler(viewport.width, viewport.height, height_to_compute, dtype)
        grid = assembler.rows(Tile(0, height_to_compute))
        if worker_pool is None:
            finished = [_render_job(job, grid) for job in jobs]
        else:
            finished = worker_pool.run(lambda job: _render_job(job, grid), jobs)
        for done in finished:
            for tile in done:
                assembler.report(tile)
        result = assembler.finalize(mirrored)
    else:
        result = _evaluate_shared(viewport, height_to_compute, jobs, worker_pool, mirrored, dtype)

    logger.debug(
        "evaluated %dx%d grid (%d rows computed, mirrored=%s) in %.3fs",
        viewport.width,
        viewport.height,
        height_to_compute,
        mirrored,
        time.perf_counter() - start,
    )
    return result


def _evaluate_shared(
    viewport: Viewport,
    height_to_compute: int,
    jobs: list[TileJob],
    worker_pool: WorkerPool,
    mirrored: bool,
    dtype: np.dtype,
) -> np.ndarray:
    size = viewport.width * viewport.height
    shm = shared_memory.SharedMemory(create=True, size=max(size * dtype.itemsize, 1))
    try:
        buffer = np.ndarray(size, dtype=dtype, buffer=shm.buf)
        assembler = GridAssembler(viewport.width, viewport.height, height_to_compute, dtype, buffer=buffer)
        try:
            shared_jobs = [
                TileJob(job.viewport, job.budget, job.params, job.tiles, shm.name, job.dtype) for job in jobs
            ]
            for done in worker_pool.run(_render_shared, shared_jobs):
                for tile in done:
                    assembler.report(tile)
            return assembler.finalize(mirrored).copy()
        finally:
            del assembler, buffer
    finally:
        shm.close()
        shm.unlink()


def evaluate_grid_2d(
    viewport: Viewport,
    iteration_budget: IterationBudget,
    fractal_params: FractalParams,
    worker_pool: Optional[WorkerPool] = None,
    **kwargs,
) -> np.ndarray:
    """Same as :func:`evaluate_grid`, shaped ``(height, width)``."""

    flat = evaluate_grid(viewport, iteration_budget, fractal_params, worker_pool, **kwargs)
    return flat.reshape(viewport.height, viewport.width)
