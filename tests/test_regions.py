import numpy as np
import pytest

from fractalgrid import (
    BatchEvaluator,
    CardioidRegion,
    DiskRegion,
    FractalParams,
    MANDELBROT_REGIONS,
    RegionPruner,
    evaluate_point,
)
from fractalgrid.regions import BoundingBox, Region


@pytest.mark.parametrize("cx, cy", [(0.0, 0.0), (-0.5, 0.3), (-1.0, 0.0), (-1.1, 0.1), (0.2, 0.1)])
def test_interior_points_are_pruned(cx, cy):
    assert RegionPruner().is_known_bounded(cx, cy)


@pytest.mark.parametrize(
    "cx, cy", [(0.3, 0.0), (0.26, 0.0), (-0.75, 0.0), (-1.3, 0.0), (1.0, 1.0), (-2.0, 0.0), (0.0, 1.0)]
)
def test_outside_or_boundary_points_are_not_pruned(cx, cy):
    assert not RegionPruner().is_known_bounded(cx, cy)


def test_disk_region_uses_bounding_box_and_disk():
    disk = DiskRegion.around(1.0, 1.0, 0.5)
    assert disk.box == BoundingBox(0.5, 1.5, 0.5, 1.5)
    assert disk.contains(1.2, 1.2)
    # inside the box corner, outside the disk
    assert not disk.contains(1.45, 1.45)
    assert not disk.contains(2.0, 1.0)


def test_cardioid_margin_shrinks_region():
    box = BoundingBox(-0.75, 0.375, -0.65, 0.65)
    tight = CardioidRegion(box=box, margin=0.0)
    loose = CardioidRegion(box=box, margin=0.05)
    xs, ys = np.meshgrid(np.linspace(-0.8, 0.4, 121), np.linspace(-0.7, 0.7, 141))
    tight_mask = tight.mask(xs.ravel(), ys.ravel())
    loose_mask = loose.mask(xs.ravel(), ys.ravel())
    assert loose_mask.sum() < tight_mask.sum()
    assert not (loose_mask & ~tight_mask).any()


def test_vector_mask_matches_scalar_test():
    rng = np.random.default_rng(7)
    cx = rng.uniform(-2.0, 0.5, 2000)
    cy = rng.uniform(-1.25, 1.25, 2000)
    pruner = RegionPruner()
    mask = pruner.known_bounded_mask(cx, cy)
    expected = [pruner.is_known_bounded(x, y) for x, y in zip(cx, cy)]
    np.testing.assert_array_equal(mask, expected)


def test_pruning_is_sound_against_point_evaluator():
    max_iters = 256
    pruner = RegionPruner()
    xs = np.linspace(-2.0, 0.5, 201)
    ys = np.linspace(-1.25, 1.25, 201)
    pruned = 0
    for cy in ys:
        for cx in xs:
            if pruner.is_known_bounded(cx, cy):
                pruned += 1
                assert evaluate_point(cx, cy, max_iters) >= max_iters - 1, (cx, cy)
    assert pruned > 1000


def test_pruning_is_sound_on_fine_grid():
    max_iters = 256
    xs, ys = np.meshgrid(np.linspace(-1.3, 0.4, 701), np.linspace(-0.7, 0.7, 577))
    mask = RegionPruner().known_bounded_mask(xs, ys)
    counts = BatchEvaluator(8).evaluate_points(xs[mask], ys[mask], max_iters)
    assert counts.size > 10000
    assert counts.min() >= max_iters - 1


def test_pruner_selection_by_params():
    assert RegionPruner.for_params(FractalParams.mandelbrot()).regions == MANDELBROT_REGIONS
    assert not RegionPruner.for_params(FractalParams.mandelbrot(prune=False))
    assert not RegionPruner.for_params(FractalParams.julia(-0.8, 0.156))


def test_empty_pruner_marks_nothing():
    pruner = RegionPruner(())
    assert not pruner.is_known_bounded(0.0, 0.0)
    assert not pruner.known_bounded_mask([0.0, -1.0], [0.0, 0.0]).any()


def test_region_base_needs_a_membership_test():
    box = BoundingBox(-1.0, 1.0, -1.0, 1.0)
    with pytest.raises(TypeError):
        Region(box)
    assert DiskRegion.around(0.0, 0.0, 0.5).contains(0.1, 0.1)
