"""Turning escape-count heightmaps into checksums and pictures."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np
import PIL.Image
import imageio

try:
    from matplotlib import colormaps as _mpl_colormaps
except ImportError:  # Matplotlib < 3.5
    from matplotlib import cm as _mpl_colormaps  # type: ignore


def get_colormap(name: str):
    return _mpl_colormaps.get_cmap(name) if hasattr(_mpl_colormaps, "get_cmap") else _mpl_colormaps[name]


def checksum(pixels: np.ndarray) -> int:
    """Sum of all escape counts, accumulated without overflow."""

    return int(np.asarray(pixels).sum(dtype=np.uint64))


def parse_hex_color(hex_color: str) -> tuple[float, float, float]:
    hex_color = hex_color.lstrip('#')
    if len(hex_color) != 6:
        raise ValueError('colors must be in the form #RRGGBB.')
    try:
        return tuple(int(hex_color[i:i + 2], 16) / 255.0 for i in (0, 2, 4))
    except ValueError as exc:
        raise ValueError('colors must contain only hexadecimal digits.') from exc


def normalize(
    grid: np.ndarray,
    max_iters: int,
    *,
    clip_low: float = 0.5,
    clip_high: float = 99.5,
    gamma: float = 0.85,
) -> np.ndarray:
    """Map escape counts of escaping points to ``[0, 1]`` with percentile clipping."""

    v = np.asarray(grid, dtype=np.float64)
    inside = v >= max_iters
    selection = v[~inside]
    eps = 1e-12
    if selection.size:
        lo = np.percentile(selection, clip_low)
        hi = np.percentile(selection, clip_high)
        hi = max(hi, lo + eps)
        v = (np.clip(v, lo, hi) - lo) / (hi - lo)
    else:
        v = np.zeros_like(v)
    return np.clip(v, 0.0, 1.0) ** gamma


def colorize(
    grid: np.ndarray,
    max_iters: int,
    *,
    colormap: str = "twilight_shifted",
    inside_color: str = "#000000",
    invert: bool = False,
    **normalize_options,
) -> np.ndarray:
    """RGBA ``uint8`` image of a ``(height, width)`` escape-count grid."""

    v = normalize(grid, max_iters, **normalize_options)
    inside = np.asarray(grid) >= max_iters
    inside_rgb = parse_hex_color(inside_color)
    cmap = get_colormap(colormap)
    rgba = np.array(cmap(1.0 - v if invert else v), copy=True)
    for k in (0, 1, 2):
        rgba[..., k] = np.where(inside, inside_rgb[k], rgba[..., k])
    rgba[..., 3] = 1.0
    return np.uint8(np.clip(rgba * 255, 0, 255))


def monochrome(grid: np.ndarray, max_iters: int, **normalize_options) -> np.ndarray:
    return np.uint8(normalize(grid, max_iters, **normalize_options) * 255)


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def write_image(frame_array: np.ndarray, output_path: Path) -> Path:
    """Write an image array, picking the format from the file suffix."""

    output_path = Path(output_path)
    image = PIL.Image.fromarray(frame_array)
    image_format = output_path.suffix.lstrip(".") or "png"
    if image_format.upper() in {"JPG", "JPEG"} and image.mode == "RGBA":
        image = image.convert("RGB")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(str(output_path), format=_pil_format_name(image_format))
    return output_path


class GifWriter:
    """Append frames to an animated GIF."""

    def __init__(self, path: Path, duration: float = 0.1):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._writer: Any = imageio.get_writer(str(self.path), mode='I', duration=duration, loop=0)

    def append(self, frame_array: np.ndarray) -> None:
        self._writer.append_data(frame_array)

    def close(self) -> None:
        if self._writer is not None:
            self._writer.close()
            self._writer = None

    def __enter__(self) -> "GifWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
