import numpy as np
import pytest

from fractalgrid import ConfigurationError, Tile, TilePlanner, plan_tiles
from fractalgrid.tiling import tiles_by_worker


def _coverage(tiles, height):
    hits = np.zeros(height, dtype=int)
    for tile in tiles:
        assert 0 <= tile.row_start < tile.row_end <= height
        hits[tile.row_start:tile.row_end] += 1
    return hits


@pytest.mark.parametrize("policy", ["interleaved", "contiguous"])
@pytest.mark.parametrize("interleave_factor", [1, 2, 3, 4, 7])
@pytest.mark.parametrize("height", [0, 1, 7, 100, 501])
def test_tiles_partition_rows_exactly(policy, interleave_factor, height):
    for workers in range(1, 13):
        tiles = plan_tiles(height, workers, interleave_factor, policy)
        assert (_coverage(tiles, height) == 1).all()
        assert all(0 <= tile.worker < workers for tile in tiles)


def test_tiles_are_ordered_and_contiguous_in_row_order():
    tiles = plan_tiles(103, 4, 3)
    assert tiles == sorted(tiles)
    for left, right in zip(tiles, tiles[1:]):
        assert left.row_end == right.row_start


def test_interleaved_blocks_are_dealt_round_robin():
    tiles = plan_tiles(120, 3, 4)
    assert len(tiles) == 12
    assert [tile.worker for tile in tiles] == [0, 1, 2] * 4
    assert {tile.rows for tile in tiles} == {10}


def test_uneven_split_differs_by_at_most_one_row():
    tiles = plan_tiles(101, 4, 2)
    sizes = [tile.rows for tile in tiles]
    assert max(sizes) - min(sizes) <= 1
    assert sum(sizes) == 101


def test_contiguous_gives_one_band_per_worker():
    tiles = plan_tiles(100, 4, interleave_factor=5, policy="contiguous")
    assert [(t.row_start, t.row_end, t.worker) for t in tiles] == [
        (0, 25, 0),
        (25, 50, 1),
        (50, 75, 2),
        (75, 100, 3),
    ]


def test_more_workers_than_rows_skips_empty_blocks():
    tiles = plan_tiles(3, 8, 2)
    assert len(tiles) == 3
    assert all(tile.rows == 1 for tile in tiles)


def test_every_worker_samples_the_whole_height():
    by_worker = tiles_by_worker(plan_tiles(400, 4, 4))
    assert sorted(by_worker) == [0, 1, 2, 3]
    for tiles in by_worker.values():
        assert tiles[0].row_start < 100
        assert tiles[-1].row_end > 300


@pytest.mark.parametrize(
    "args",
    [(-1, 2, 1, "interleaved"), (10, 0, 1, "interleaved"), (10, 2, 0, "interleaved"), (10, 2, 1, "striped")],
)
def test_invalid_plans_are_rejected(args):
    with pytest.raises(ConfigurationError):
        plan_tiles(*args)


def test_planner_carries_configuration():
    planner = TilePlanner(worker_count=2, interleave_factor=3)
    assert planner.plan(60) == plan_tiles(60, 2, 3)


def test_tile_overlap():
    assert Tile(0, 5).overlaps(Tile(4, 8))
    assert not Tile(0, 5).overlaps(Tile(5, 8))
