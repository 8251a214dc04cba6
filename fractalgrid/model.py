"""Value types shared by every stage of a grid evaluation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .errors import ConfigurationError

DEFAULT_ESCAPE_RADIUS = 2.0
DEFAULT_LANE_WIDTH = 8

FAMILIES = ("mandelbrot", "julia")
BACKENDS = ("numpy", "tensorflow", "scalar")


@dataclass(frozen=True)
class Viewport:
    """Mapping from pixel indices to points of the complex plane.

    ``cx = min_x + w * scale_x`` and ``cy = min_y + h * scale_y`` for column
    ``w`` and row ``h``.
    """

    min_x: float
    min_y: float
    scale_x: float
    scale_y: float
    width: int
    height: int

    @classmethod
    def from_bounds(
        cls, min_x: float, max_x: float, min_y: float, max_y: float, width: int, height: int
    ) -> "Viewport":
        if width <= 0 or height <= 0:
            raise ConfigurationError(f"grid size must be positive, got {width}x{height}")
        scale_x = (np.float64(max_x) - np.float64(min_x)) / np.float64(width)
        scale_y = (np.float64(max_y) - np.float64(min_y)) / np.float64(height)
        return cls(
            min_x=float(min_x),
            min_y=float(min_y),
            scale_x=float(scale_x),
            scale_y=float(scale_y),
            width=int(width),
            height=int(height),
        )

    @classmethod
    def from_center(
        cls, x_center: float, y_center: float, x_width: float, y_width: float, width: int, height: int
    ) -> "Viewport":
        x_center = np.float64(x_center)
        y_center = np.float64(y_center)
        return cls.from_bounds(
            float(x_center - np.float64(x_width) / 2.0),
            float(x_center + np.float64(x_width) / 2.0),
            float(y_center - np.float64(y_width) / 2.0),
            float(y_center + np.float64(y_width) / 2.0),
            width,
            height,
        )

    @property
    def max_x(self) -> float:
        return self.min_x + self.width * self.scale_x

    @property
    def max_y(self) -> float:
        return self.min_y + self.height * self.scale_y

    @property
    def center(self) -> tuple[float, float]:
        return (self.min_x + self.max_x) / 2.0, (self.min_y + self.max_y) / 2.0

    def validate(self) -> None:
        if not isinstance(self.width, (int, np.integer)) or not isinstance(self.height, (int, np.integer)):
            raise ConfigurationError("grid width and height must be integers")
        if self.width <= 0 or self.height <= 0:
            raise ConfigurationError(f"grid size must be positive, got {self.width}x{self.height}")
        for name in ("min_x", "min_y", "scale_x", "scale_y"):
            if not math.isfinite(getattr(self, name)):
                raise ConfigurationError(f"{name} must be finite")
        if self.scale_x == 0.0 or self.scale_y == 0.0:
            raise ConfigurationError("viewport scale must be non-zero")

    def x_coords(self) -> np.ndarray:
        return np.float64(self.min_x) + np.arange(self.width, dtype=np.float64) * np.float64(self.scale_x)

    def y_coords(self) -> np.ndarray:
        return np.float64(self.min_y) + np.arange(self.height, dtype=np.float64) * np.float64(self.scale_y)


@dataclass(frozen=True)
class IterationBudget:
    """Upper bound on the number of recurrence steps per point."""

    max_iters: int

    def validate(self) -> None:
        if isinstance(self.max_iters, bool) or not isinstance(self.max_iters, (int, np.integer)):
            raise ConfigurationError(f"max_iters must be an integer, got {self.max_iters!r}")
        if self.max_iters <= 0:
            raise ConfigurationError(f"max_iters must be positive, got {self.max_iters}")

    @property
    def dtype(self) -> np.dtype:
        return result_dtype(self.max_iters)


@dataclass(frozen=True)
class JuliaConstant:
    """The fixed ``c`` of a Julia recurrence."""

    x: float
    y: float


@dataclass(frozen=True)
class FractalParams:
    """Selects the recurrence and how the engine is allowed to evaluate it."""

    family: str = "mandelbrot"
    julia_constant: Optional[JuliaConstant] = None
    escape_radius: float = DEFAULT_ESCAPE_RADIUS
    lane_width: int = DEFAULT_LANE_WIDTH
    backend: str = "numpy"
    prune: bool = True
    symmetry: bool = True

    @classmethod
    def mandelbrot(cls, **kwargs) -> "FractalParams":
        return cls(family="mandelbrot", **kwargs)

    @classmethod
    def julia(cls, x: float, y: float, **kwargs) -> "FractalParams":
        return cls(family="julia", julia_constant=JuliaConstant(float(x), float(y)), **kwargs)

    @property
    def is_julia(self) -> bool:
        return self.family == "julia"

    @property
    def threshold(self) -> float:
        return float(self.escape_radius) * float(self.escape_radius)

    @property
    def constant(self) -> Optional[tuple[float, float]]:
        if self.julia_constant is None:
            return None
        return float(self.julia_constant.x), float(self.julia_constant.y)

    def validate(self) -> None:
        if self.family not in FAMILIES:
            raise ConfigurationError(f"unknown fractal family {self.family!r}; choose from {', '.join(FAMILIES)}")
        if self.is_julia and self.julia_constant is None:
            raise ConfigurationError("the julia family needs a julia_constant")
        if not self.is_julia and self.julia_constant is not None:
            raise ConfigurationError("a julia_constant is only valid for the julia family")
        if not math.isfinite(self.escape_radius) or self.escape_radius < 2.0:
            raise ConfigurationError(f"escape_radius must be at least 2.0, got {self.escape_radius}")
        if self.backend not in BACKENDS:
            raise ConfigurationError(f"unknown backend {self.backend!r}; choose from {', '.join(BACKENDS)}")
        validate_lane_width(self.lane_width)


def validate_lane_width(lane_width: int) -> None:
    if isinstance(lane_width, bool) or not isinstance(lane_width, (int, np.integer)):
        raise ConfigurationError(f"lane_width must be an integer, got {lane_width!r}")
    if lane_width <= 0 or lane_width & (lane_width - 1):
        raise ConfigurationError(f"lane_width must be a positive power of two, got {lane_width}")


def result_dtype(max_iters: int) -> np.dtype:
    """Smallest unsigned integer type able to hold ``[0, max_iters]``."""

    if max_iters <= np.iinfo(np.uint8).max:
        return np.dtype(np.uint8)
    if max_iters <= np.iinfo(np.uint16).max:
        return np.dtype(np.uint16)
    return np.dtype(np.uint32)


def pixel_to_complex(viewport: Viewport, row: int, col: int) -> tuple[float, float]:
    x = np.float64(viewport.min_x) + np.float64(col) * np.float64(viewport.scale_x)
    y = np.float64(viewport.min_y) + np.float64(row) * np.float64(viewport.scale_y)
    return float(x), float(y)
