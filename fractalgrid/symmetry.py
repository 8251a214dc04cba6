"""Reflection of computed rows about the real axis."""

from __future__ import annotations

import logging

import numpy as np

from .model import FractalParams, Viewport

logger = logging.getLogger(__name__)

DEFAULT_AXIS_TOLERANCE = 0.5
# Odd heights have a row on the axis itself; it must line up with the centre row.
ODD_AXIS_TOLERANCE = 1e-6


def rows_to_compute(height: int) -> int:
    """Rows evaluated directly when mirroring; an odd centre row is included."""

    return (height + 1) // 2


def axis_offset(viewport: Viewport) -> float:
    """Distance in pixels between the real axis and the grid's centre line."""

    centre_row = (viewport.height - 1) / 2.0
    return -viewport.min_y / viewport.scale_y - centre_row


def symmetry_eligible(
    viewport: Viewport, params: FractalParams, tolerance: float = DEFAULT_AXIS_TOLERANCE
) -> bool:
    """Whether row ``h`` and row ``height - 1 - h`` may share results.

    The recurrence must commute with complex conjugation (the Mandelbrot
    family, or a Julia constant on the real axis) and the real axis must sit
    on the grid's centre line. Even heights allow ``tolerance`` pixels, which
    covers an axis that falls on the first row past the centre; odd heights
    must put the axis on the centre row.
    """

    if not params.symmetry or viewport.height < 2:
        return False
    if params.is_julia:
        if params.julia_constant is None or params.julia_constant.y != 0.0:
            return False
    offset = axis_offset(viewport)
    if viewport.height % 2:
        tolerance = min(tolerance, ODD_AXIS_TOLERANCE)
    eligible = abs(offset) <= tolerance + 1e-9
    logger.debug("axis offset %.6f px, mirroring %s", offset, "enabled" if eligible else "disabled")
    return eligible


def mirror_rows(grid: np.ndarray) -> np.ndarray:
    """Copy rows ``[0, height // 2)`` onto rows ``[height - height // 2, height)``.

    Performs no eligibility check. The centre row of an odd-height grid is
    left untouched.
    """

    height = grid.shape[0]
    half = height // 2
    if half:
        grid[height - half:] = grid[half - 1::-1]
    return grid
