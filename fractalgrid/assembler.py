"""Collection of per-tile results into one row-major pixel buffer."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

import numpy as np

from .errors import AssemblyError
from .symmetry import mirror_rows
from .tiling import Tile

logger = logging.getLogger(__name__)


class GridAssembler:
    """Owns the output buffer until every tile has reported.

    Tiles write disjoint row ranges, so they may fill the buffer in any order
    and from any thread without locking. Only :meth:`finalize` hands the
    buffer out, and only once coverage is complete.
    """

    def __init__(
        self,
        width: int,
        height: int,
        rows_computed: int,
        dtype=np.uint8,
        buffer: Optional[np.ndarray] = None,
    ):
        if not 0 < rows_computed <= height:
            raise AssemblyError(f"rows_computed must lie in (0, {height}], got {rows_computed}")
        self.width = width
        self.height = height
        self.rows_computed = rows_computed
        if buffer is None:
            buffer = np.empty(width * height, dtype=dtype)
        elif buffer.size != width * height:
            raise AssemblyError(f"buffer holds {buffer.size} pixels, expected {width * height}")
        self._flat = buffer
        self._grid = buffer.reshape(height, width)
        self._covered = np.zeros(rows_computed, dtype=bool)
        self._finalized = False

    def _check_tile(self, tile: Tile) -> None:
        if tile.row_start < 0 or tile.row_end > self.rows_computed or tile.row_start >= tile.row_end:
            raise AssemblyError(f"{tile} lies outside the computed rows [0, {self.rows_computed})")

    def rows(self, tile: Tile) -> np.ndarray:
        """Writable ``(rows, width)`` view of the buffer owned by ``tile``."""

        self._check_tile(tile)
        return self._grid[tile.row_start:tile.row_end]

    def report(self, tile: Tile) -> None:
        if self._finalized:
            raise AssemblyError("the buffer has already been finalized")
        self._check_tile(tile)
        span = self._covered[tile.row_start:tile.row_end]
        if span.any():
            raise AssemblyError(f"{tile} overlaps rows that were already reported")
        span[:] = True

    def assemble(self, tile_results: Mapping[Tile, np.ndarray], mirrored: bool = False) -> np.ndarray:
        """Copy each tile's ``(rows, width)`` block into place and finalize."""

        for tile, block in tile_results.items():
            target = self.rows(tile)
            block = np.asarray(block)
            if block.size != target.size:
                raise AssemblyError(f"{tile} reported {block.size} values, expected {target.size}")
            self.report(tile)
            target[...] = block.reshape(target.shape)
        return self.finalize(mirrored)

    @property
    def complete(self) -> bool:
        return bool(self._covered.all())

    def finalize(self, mirrored: bool = False) -> np.ndarray:
        """Return the flat row-major buffer, mirroring the uncomputed half if asked."""

        if self._finalized:
            raise AssemblyError("the buffer has already been finalized")
        if not self.complete:
            missing = int(self.rows_computed - self._covered.sum())
            raise AssemblyError(f"{missing} of {self.rows_computed} rows were never reported")
        if mirrored:
            if self.rows_computed < (self.height + 1) // 2:
                raise AssemblyError("mirroring needs the upper half of the rows")
            mirror_rows(self._grid)
        elif self.rows_computed != self.height:
            raise AssemblyError(f"only {self.rows_computed} of {self.height} rows were computed")
        self._finalized = True
        logger.debug("assembled %dx%d buffer (mirrored=%s)", self.width, self.height, mirrored)
        return self._flat
