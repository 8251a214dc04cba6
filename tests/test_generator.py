import numpy as np
import pytest

from fractalgrid import (
    ConfigurationError,
    FractalParams,
    IterationBudget,
    JuliaConstant,
    Viewport,
    ZoomPlanner,
    apply_zoom,
    compute_zoom_factors,
    julia_constants,
    render_sequence,
)
from fractalgrid.generator import boundary_mask, recenter, select_zoom_center


def test_no_frames_no_factors():
    assert compute_zoom_factors(0, 0.8).size == 0


def test_constant_zoom_factor():
    np.testing.assert_allclose(compute_zoom_factors(4, 0.8), [0.8] * 4)


@pytest.mark.parametrize("easing", ["linear", "ease"])
def test_final_zoom_is_reached(easing):
    factors = compute_zoom_factors(10, 0.8, final_zoom=1e-3, easing=easing)
    assert factors.shape == (10,)
    assert np.prod(factors) == pytest.approx(1e-3)


def test_linear_schedule_is_geometric():
    factors = compute_zoom_factors(5, 0.8, final_zoom=1e-4, easing="linear")
    np.testing.assert_allclose(factors[1:], factors[1])


def test_apply_zoom_keeps_centre():
    viewport = Viewport.from_bounds(-2.0, 0.5, -1.25, 1.25, 100, 80)
    zoomed = apply_zoom(viewport, 0.5)
    assert zoomed.scale_x == pytest.approx(viewport.scale_x / 2)
    assert zoomed.scale_y == pytest.approx(viewport.scale_y / 2)
    assert zoomed.center == pytest.approx(viewport.center)
    assert (zoomed.width, zoomed.height) == (100, 80)
    with pytest.raises(ConfigurationError):
        apply_zoom(viewport, 0.0)


def test_recenter_moves_pixel_to_centre():
    viewport = Viewport(min_x=0.0, min_y=0.0, scale_x=1.0, scale_y=1.0, width=11, height=11)
    moved = recenter(viewport, row=2, col=8)
    assert moved.min_x == pytest.approx(3.0)
    assert moved.min_y == pytest.approx(-3.0)


def test_enforce_aspect():
    viewport = Viewport.from_bounds(-2.0, 2.0, -2.0, 2.0, 200, 100)
    planner = ZoomPlanner(lock_aspect=True, aspect=100 / 200)
    locked = planner.enforce_aspect(viewport)
    assert locked.scale_y == pytest.approx(locked.scale_x)
    assert locked.center == pytest.approx(viewport.center)
    assert ZoomPlanner(lock_aspect=False, aspect=1.0).enforce_aspect(viewport) is viewport


def test_select_zoom_center_prefers_nearest_edge():
    edges = np.zeros((9, 9), dtype=bool)
    edges[0, 0] = True
    edges[5, 4] = True
    np.testing.assert_array_equal(select_zoom_center(edges), [5, 4])
    np.testing.assert_array_equal(select_zoom_center(np.zeros((4, 6), dtype=bool)), [2, 3])


def test_boundary_mask_marks_membership_changes():
    grid = np.array([[0, 10], [10, 10], [10, 0]])
    mask = boundary_mask(grid, 10)
    assert mask.dtype == bool
    np.testing.assert_array_equal(mask[1], [True, False])


def test_julia_constants_on_circle():
    constants = julia_constants(8, 0.7885)
    assert len(constants) == 8
    assert all(isinstance(c, JuliaConstant) for c in constants)
    for c in constants:
        assert np.hypot(c.x, c.y) == pytest.approx(0.7885)
    assert constants[0] == JuliaConstant(0.7885, 0.0)
    assert julia_constants(0) == []


def test_zoom_sequence_shrinks_viewport(thread_pool):
    viewport = Viewport.from_bounds(-2.0, 0.5, -1.25, 1.25, 32, 32)
    frames = list(
        render_sequence(
            viewport,
            IterationBudget(32),
            FractalParams.mandelbrot(),
            thread_pool,
            frames=3,
            zoom_factors=[0.5, 0.5, 0.5],
        )
    )
    assert [frame.index for frame in frames] == [0, 1, 2]
    assert frames[2].viewport.scale_x == pytest.approx(viewport.scale_x / 4)
    for frame in frames:
        assert frame.grid.shape == (32, 32)
        assert frame.pixels.max() <= 32


def test_boundary_following_zoom_stays_in_plane(thread_pool):
    viewport = Viewport.from_bounds(-2.0, 0.5, -1.25, 1.25, 40, 40)
    planner = ZoomPlanner(lock_aspect=False, aspect=1.0, follow_boundary=True)
    frames = list(
        render_sequence(
            viewport,
            IterationBudget(40),
            FractalParams.mandelbrot(),
            thread_pool,
            frames=3,
            zoom_factors=compute_zoom_factors(3, 0.7),
            planner=planner,
        )
    )
    assert len(frames) == 3
    x_center, y_center = frames[-1].viewport.center
    assert -2.0 <= x_center <= 0.5
    assert -1.25 <= y_center <= 1.25


def test_julia_sequence_swaps_constants(thread_pool):
    viewport = Viewport.from_bounds(-1.5, 1.5, -1.5, 1.5, 24, 24)
    constants = julia_constants(3, 0.7885)
    frames = list(
        render_sequence(
            viewport,
            IterationBudget(48),
            FractalParams.julia(0.0, 0.0),
            thread_pool,
            frames=3,
            constants=constants,
        )
    )
    assert [frame.params.julia_constant for frame in frames] == constants
    assert all(frame.viewport == viewport for frame in frames)


def test_sequence_argument_checks():
    viewport = Viewport.from_bounds(-1.5, 1.5, -1.5, 1.5, 8, 8)
    with pytest.raises(ConfigurationError):
        next(render_sequence(viewport, IterationBudget(8), FractalParams.mandelbrot(), constants=julia_constants(2), frames=2))
    with pytest.raises(ConfigurationError):
        next(render_sequence(viewport, IterationBudget(8), FractalParams.julia(0.0, 0.0), constants=julia_constants(1), frames=2))
    with pytest.raises(ConfigurationError):
        next(render_sequence(viewport, IterationBudget(8), FractalParams.mandelbrot(), zoom_factors=[0.5], frames=2))
