"""Lane-wise escape-time evaluation with numpy."""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from .errors import ConfigurationError
from .model import DEFAULT_ESCAPE_RADIUS, DEFAULT_LANE_WIDTH, validate_lane_width
from .point import evaluate_point


class BatchEvaluator:
    """Evaluate groups of ``lane_width`` points in lock step.

    Every lane runs the same arithmetic each step. A lane's counter stops
    being credited once its escape predicate fires, and a group is retired
    once all of its lanes have escaped. Escaped lanes may overflow to
    ``inf``/``nan``; their values are never read again.
    """

    def __init__(self, lane_width: int = DEFAULT_LANE_WIDTH, escape_radius: float = DEFAULT_ESCAPE_RADIUS):
        validate_lane_width(lane_width)
        if not math.isfinite(escape_radius) or escape_radius < 2.0:
            raise ConfigurationError(f"escape_radius must be at least 2.0, got {escape_radius}")
        self.lane_width = int(lane_width)
        self.escape_radius = float(escape_radius)
        self.threshold = self.escape_radius * self.escape_radius

    def __repr__(self) -> str:
        return f"{type(self).__name__}(lane_width={self.lane_width}, escape_radius={self.escape_radius})"

    def evaluate_batch(self, cx, cy, max_iters: int, const: Optional[tuple[float, float]] = None) -> np.ndarray:
        """Evaluate exactly one batch of ``lane_width`` points."""

        cx = np.asarray(cx, dtype=np.float64)
        cy = np.asarray(cy, dtype=np.float64)
        if cx.shape != (self.lane_width,) or cy.shape != (self.lane_width,):
            raise ConfigurationError(
                f"a batch holds exactly {self.lane_width} lanes, got {cx.shape} and {cy.shape}"
            )
        return self.evaluate_groups(cx[np.newaxis, :], cy[np.newaxis, :], max_iters, const)[0]

    def evaluate_groups(self, cx, cy, max_iters: int, const: Optional[tuple[float, float]] = None) -> np.ndarray:
        """Evaluate a ``(groups, lane_width)`` block, one batch per row."""

        cx = np.asarray(cx, dtype=np.float64)
        cy = np.asarray(cy, dtype=np.float64)
        if cx.ndim != 2 or cx.shape[1] != self.lane_width or cx.shape != cy.shape:
            raise ConfigurationError(
                f"expected matching (groups, {self.lane_width}) blocks, got {cx.shape} and {cy.shape}"
            )

        counts = np.zeros(cx.shape, dtype=np.int32)
        if cx.shape[0] == 0:
            return counts

        zx = cx.copy()
        zy = cy.copy()
        if const is None:
            const_x, const_y = cx, cy
        else:
            const_x, const_y = np.float64(const[0]), np.float64(const[1])
        per_lane_const = const is None

        live_groups = np.arange(cx.shape[0])
        active = np.ones(cx.shape, dtype=bool)
        threshold = np.float64(self.threshold)

        with np.errstate(over="ignore", invalid="ignore"):
            for _ in range(max_iters):
                zx2 = zx * zx
                zy2 = zy * zy
                active &= ~(zx2 + zy2 > threshold)

                live = active.any(axis=1)
                if not live.all():
                    if not live.any():
                        break
                    zx, zy, zx2, zy2 = zx[live], zy[live], zx2[live], zy2[live]
                    active = active[live]
                    live_groups = live_groups[live]
                    if per_lane_const:
                        const_x, const_y = const_x[live], const_y[live]

                counts[live_groups] += active
                new_zx = zx2 - zy2 + const_x
                zy = 2.0 * zx * zy + const_y
                zx = new_zx

        return counts

    def evaluate_points(self, cx, cy, max_iters: int, const: Optional[tuple[float, float]] = None) -> np.ndarray:
        """Evaluate any number of points.

        Whole lanes go through :meth:`evaluate_groups`; the trailing
        ``len % lane_width`` points go through the scalar evaluator.
        """

        cx = np.asarray(cx, dtype=np.float64).ravel()
        cy = np.asarray(cy, dtype=np.float64).ravel()
        if cx.shape != cy.shape:
            raise ConfigurationError(f"coordinate arrays differ in length: {cx.size} and {cy.size}")

        total = cx.size
        full = total - total % self.lane_width
        counts = np.empty(total, dtype=np.int32)
        if full:
            counts[:full] = self.evaluate_groups(
                cx[:full].reshape(-1, self.lane_width),
                cy[:full].reshape(-1, self.lane_width),
                max_iters,
                const,
            ).ravel()
        for i in range(full, total):
            counts[i] = evaluate_point(cx[i], cy[i], max_iters, const, self.escape_radius)
        return counts
