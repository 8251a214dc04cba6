"""Partitioning of the rows to compute into per-worker tiles."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_INTERLEAVE = 4
POLICIES = ("interleaved", "contiguous")


@dataclass(frozen=True, order=True)
class Tile:
    """Half-open row range ``[row_start, row_end)`` owned by one worker."""

    row_start: int
    row_end: int
    worker: int = 0

    @property
    def rows(self) -> int:
        return self.row_end - self.row_start

    def overlaps(self, other: "Tile") -> bool:
        return self.row_start < other.row_end and other.row_start < self.row_end


def _split(total: int, parts: int) -> list[tuple[int, int]]:
    """Split ``[0, total)`` into ``parts`` near-equal ranges, larger ones first."""

    base, extra = divmod(total, parts)
    bounds = []
    start = 0
    for i in range(parts):
        end = start + base + (1 if i < extra else 0)
        bounds.append((start, end))
        start = end
    return bounds


def plan_tiles(
    height_to_compute: int,
    worker_count: int,
    interleave_factor: int = 1,
    policy: str = "interleaved",
) -> list[Tile]:
    """Assign every row of ``[0, height_to_compute)`` to exactly one worker.

    ``contiguous`` gives each worker one band. ``interleaved`` cuts
    ``worker_count * interleave_factor`` blocks and deals them out
    round-robin, so every worker samples the whole height. Empty blocks are
    dropped.
    """

    if height_to_compute < 0:
        raise ConfigurationError(f"height_to_compute must be non-negative, got {height_to_compute}")
    if worker_count <= 0:
        raise ConfigurationError(f"worker_count must be positive, got {worker_count}")
    if interleave_factor <= 0:
        raise ConfigurationError(f"interleave_factor must be positive, got {interleave_factor}")
    if policy not in POLICIES:
        raise ConfigurationError(f"unknown tiling policy {policy!r}; choose from {', '.join(POLICIES)}")

    blocks = worker_count if policy == "contiguous" else worker_count * interleave_factor
    tiles = [
        Tile(start, end, index % worker_count)
        for index, (start, end) in enumerate(_split(height_to_compute, blocks))
        if end > start
    ]
    logger.debug(
        "planned %d %s tiles over %d rows for %d workers", len(tiles), policy, height_to_compute, worker_count
    )
    return tiles


def tiles_by_worker(tiles: Iterable[Tile]) -> dict[int, list[Tile]]:
    grouped: dict[int, list[Tile]] = defaultdict(list)
    for tile in tiles:
        grouped[tile.worker].append(tile)
    return dict(grouped)


@dataclass(frozen=True)
class TilePlanner:
    """Tiling configuration reused across evaluations."""

    worker_count: int
    interleave_factor: int = DEFAULT_INTERLEAVE
    policy: str = "interleaved"

    def plan(self, height_to_compute: int) -> list[Tile]:
        return plan_tiles(height_to_compute, self.worker_count, self.interleave_factor, self.policy)
