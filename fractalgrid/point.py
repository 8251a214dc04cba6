"""Scalar escape-time evaluation of a single point."""

from __future__ import annotations

from typing import Optional

from .model import DEFAULT_ESCAPE_RADIUS


def evaluate_point(
    cx: float,
    cy: float,
    max_iters: int,
    const: Optional[tuple[float, float]] = None,
    escape_radius: float = DEFAULT_ESCAPE_RADIUS,
) -> int:
    """Return the number of steps survived by the orbit starting at ``(cx, cy)``.

    The orbit starts at the sample point. ``const`` is the additive constant of
    the recurrence: the sample point itself for the Mandelbrot set, the fixed
    Julia constant otherwise. ``max_iters`` means the orbit never left the
    escape radius.
    """

    zx = float(cx)
    zy = float(cy)
    if const is None:
        const_x, const_y = zx, zy
    else:
        const_x, const_y = float(const[0]), float(const[1])
    threshold = float(escape_radius) * float(escape_radius)

    for i in range(max_iters):
        zx2 = zx * zx
        zy2 = zy * zy
        if zx2 + zy2 > threshold:
            return i
        new_zx = zx2 - zy2 + const_x
        zy = 2.0 * zx * zy + const_y
        zx = new_zx
    return max_iters
