"""Closed-form tests for regions known to lie inside the set.

A region only ever under-approximates the bounded set: pruning a point that
would escape corrupts the output, failing to prune a bounded point only
costs time. Regions are plain data so the list used for a family can be
swapped or tested on its own.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .model import FractalParams


@dataclass(frozen=True)
class BoundingBox:
    min_x: float
    max_x: float
    min_y: float
    max_y: float

    def contains(self, cx: float, cy: float) -> bool:
        return self.min_x <= cx <= self.max_x and self.min_y <= cy <= self.max_y

    def mask(self, cx: np.ndarray, cy: np.ndarray) -> np.ndarray:
        return (cx >= self.min_x) & (cx <= self.max_x) & (cy >= self.min_y) & (cy <= self.max_y)


@dataclass(frozen=True)
class Region(ABC):
    """A bounding box followed by a closed-form membership test."""

    box: BoundingBox

    @abstractmethod
    def test(self, cx, cy):
        """Membership for points already inside ``box``; scalars or arrays."""

    def contains(self, cx: float, cy: float) -> bool:
        return self.box.contains(cx, cy) and bool(self.test(cx, cy))

    def mask(self, cx: np.ndarray, cy: np.ndarray) -> np.ndarray:
        inside = self.box.mask(cx, cy)
        if inside.any():
            inside[inside] = self.test(cx[inside], cy[inside])
        return inside


@dataclass(frozen=True)
class DiskRegion(Region):
    """``(cx - x0)^2 + (cy - y0)^2 < r^2``."""

    x0: float = 0.0
    y0: float = 0.0
    radius: float = 0.0

    @classmethod
    def around(cls, x0: float, y0: float, radius: float) -> "DiskRegion":
        box = BoundingBox(x0 - radius, x0 + radius, y0 - radius, y0 + radius)
        return cls(box=box, x0=x0, y0=y0, radius=radius)

    def test(self, cx, cy):
        dx = cx - self.x0
        dy = cy - self.y0
        return dx * dx + dy * dy < self.radius * self.radius


@dataclass(frozen=True)
class CardioidRegion(Region):
    """Main cardioid of the Mandelbrot set, pulled inward by ``margin``.

    With ``q = (cx - 1/4)^2 + cy^2`` a point lies inside the cardioid when
    ``q * (q + cx - 1/4) < cy^2 / 4``.
    """

    margin: float = 0.0

    def test(self, cx, cy):
        xr = cx - 0.25
        y2 = cy * cy
        q = xr * xr + y2
        return q * (q + xr) < 0.25 * y2 - self.margin


MANDELBROT_REGIONS: tuple[Region, ...] = (
    CardioidRegion(box=BoundingBox(-0.75, 0.375, -0.65, 0.65), margin=1e-4),
    DiskRegion.around(-1.0, 0.0, 0.25 * (1.0 - 1e-3)),
)

# No closed-form interior is known for a general Julia constant.
JULIA_REGIONS: tuple[Region, ...] = ()


class RegionPruner:
    """Ordered disjunction of regions, checked cheapest-box first."""

    def __init__(self, regions: Sequence[Region] = MANDELBROT_REGIONS):
        self.regions = tuple(regions)

    @classmethod
    def for_params(cls, params: FractalParams) -> "RegionPruner":
        if not params.prune:
            return cls(())
        return cls(JULIA_REGIONS if params.is_julia else MANDELBROT_REGIONS)

    def __bool__(self) -> bool:
        return bool(self.regions)

    def __repr__(self) -> str:
        return f"RegionPruner({len(self.regions)} regions)"

    def is_known_bounded(self, cx: float, cy: float) -> bool:
        return any(region.contains(cx, cy) for region in self.regions)

    def known_bounded_mask(self, cx, cy) -> np.ndarray:
        cx = np.asarray(cx, dtype=np.float64)
        cy = np.asarray(cy, dtype=np.float64)
        cx, cy = np.broadcast_arrays(cx, cy)
        bounded = np.zeros(cx.shape, dtype=bool)
        for region in self.regions:
            pending = ~bounded
            if not pending.any():
                break
            bounded[pending] = region.mask(cx[pending], cy[pending])
        return bounded
