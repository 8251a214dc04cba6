"""Utilities for animating repeated grid evaluations."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Iterator, Optional, Sequence

import numpy as np

from .engine import evaluate_grid
from .errors import ConfigurationError
from .model import FractalParams, IterationBudget, JuliaConstant, Viewport
from .pool import WorkerPool


@dataclass(frozen=True)
class Frame:
    """One evaluated frame of an animation."""

    index: int
    viewport: Viewport
    params: FractalParams
    pixels: np.ndarray

    @property
    def grid(self) -> np.ndarray:
        return self.pixels.reshape(self.viewport.height, self.viewport.width)


@dataclass(frozen=True)
class ZoomPlanner:
    """Maintain the viewport updates for a zoom sequence."""

    lock_aspect: bool
    aspect: float
    follow_boundary: bool = False

    def enforce_aspect(self, viewport: Viewport) -> Viewport:
        if not self.lock_aspect:
            return viewport
        scale_y = math.copysign(abs(viewport.scale_x) * self.aspect * viewport.width / viewport.height, viewport.scale_y)
        return _rescale(viewport, viewport.scale_x, scale_y)

    def update_after_frame(self, viewport: Viewport, frame: Frame, zoom_factor: float, max_iters: int) -> Viewport:
        if self.follow_boundary:
            row, col = select_zoom_center(boundary_mask(frame.grid, max_iters))
            viewport = recenter(viewport, int(row), int(col))
        return apply_zoom(viewport, zoom_factor)


def compute_zoom_factors(frames: int, zoom_factor: float, *, final_zoom: Optional[float] = None, easing: str = "ease") -> np.ndarray:
    """Compute per-frame zoom multipliers for the animation."""

    if frames <= 0:
        return np.array([], dtype=np.float64)

    if final_zoom is not None and final_zoom > 0:
        log_target = np.log(final_zoom)

        def ease_in_out(t: float) -> float:
            return 3 * t ** 2 - 2 * t ** 3

        ease = (lambda u: u) if easing.lower() == "linear" else ease_in_out
        if frames == 1:
            alphas = np.array([1.0], dtype=np.float64)
        else:
            alphas = np.array([ease(i / (frames - 1)) for i in range(frames)], dtype=np.float64)
        alphas = np.clip(alphas, 0.0, 1.0)
        increments = np.diff(np.concatenate(([0.0], alphas)))
        return np.exp(increments * log_target)

    return np.full(frames, np.float64(zoom_factor), dtype=np.float64)


def _rescale(viewport: Viewport, scale_x: float, scale_y: float) -> Viewport:
    x_center, y_center = viewport.center
    return replace(
        viewport,
        min_x=float(x_center - scale_x * viewport.width / 2.0),
        min_y=float(y_center - scale_y * viewport.height / 2.0),
        scale_x=float(scale_x),
        scale_y=float(scale_y),
    )


def apply_zoom(viewport: Viewport, zoom_factor: float) -> Viewport:
    """Scale the viewport about its centre; factors below 1 zoom in."""

    if not zoom_factor > 0:
        raise ConfigurationError(f"zoom_factor must be positive, got {zoom_factor}")
    factor = np.float64(zoom_factor)
    return _rescale(viewport, np.float64(viewport.scale_x) * factor, np.float64(viewport.scale_y) * factor)


def recenter(viewport: Viewport, row: int, col: int) -> Viewport:
    """Move the viewport so that pixel ``(row, col)`` becomes its centre."""

    x_center, y_center = viewport.center
    dx = (col - (viewport.width - 1) / 2.0) * viewport.scale_x
    dy = (row - (viewport.height - 1) / 2.0) * viewport.scale_y
    return replace(viewport, min_x=float(viewport.min_x + dx), min_y=float(viewport.min_y + dy))


def boundary_mask(grid: np.ndarray, max_iters: int) -> np.ndarray:
    """Pixels where membership changes between vertically adjacent rows."""

    inside = grid >= max_iters
    return np.logical_xor(np.roll(inside, 1, axis=0), inside)


def select_zoom_center(edges: np.ndarray) -> np.ndarray:
    """Select a deterministic focus pixel near the center of the edge map."""

    height, width = edges.shape
    center = np.array([(height - 1) / 2.0, (width - 1) / 2.0], dtype=np.float64)
    indices = np.argwhere(edges)
    if indices.size == 0:
        return np.array([height // 2, width // 2], dtype=np.int64)
    distances = np.sum((indices.astype(np.float64) - center) ** 2, axis=1)
    return indices[int(np.argmin(distances))]


def julia_constants(
    frames: int, radius: float = 0.7885, *, start_angle: float = 0.0, turns: float = 1.0
) -> list[JuliaConstant]:
    """Julia constants on a circle around the origin, one per frame."""

    if frames <= 0:
        return []
    angles = start_angle + 2.0 * np.pi * turns * np.arange(frames, dtype=np.float64) / frames
    return [JuliaConstant(float(radius * np.cos(a)), float(radius * np.sin(a))) for a in angles]


def render_sequence(
    viewport: Viewport,
    budget: IterationBudget,
    params: FractalParams,
    worker_pool: Optional[WorkerPool] = None,
    *,
    frames: int = 1,
    zoom_factors: Optional[Sequence[float]] = None,
    constants: Optional[Sequence[JuliaConstant]] = None,
    planner: Optional[ZoomPlanner] = None,
    **grid_options,
) -> Iterator[Frame]:
    """Evaluate ``frames`` grids against one pool.

    ``zoom_factors`` scale the viewport after each frame; ``constants``
    replace the Julia constant per frame.
    """

    if constants is not None:
        if not params.is_julia:
            raise ConfigurationError("per-frame constants need the julia family")
        if len(constants) < frames:
            raise ConfigurationError(f"{frames} frames need as many constants, got {len(constants)}")
    if zoom_factors is not None and len(zoom_factors) < frames:
        raise ConfigurationError(f"{frames} frames need as many zoom factors, got {len(zoom_factors)}")
    if planner is None:
        planner = ZoomPlanner(lock_aspect=False, aspect=1.0)

    viewport = planner.enforce_aspect(viewport)
    for index in range(frames):
        frame_params = params if constants is None else replace(params, julia_constant=constants[index])
        pixels = evaluate_grid(viewport, budget, frame_params, worker_pool, **grid_options)
        frame = Frame(index, viewport, frame_params, pixels)
        yield frame
        if zoom_factors is not None and index < frames - 1:
            viewport = planner.update_after_frame(viewport, frame, float(zoom_factors[index]), budget.max_iters)
