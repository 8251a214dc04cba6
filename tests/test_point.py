import pytest

from fractalgrid import evaluate_point


def test_origin_never_escapes():
    assert evaluate_point(0.0, 0.0, 50) == 50


def test_period_two_point_never_escapes():
    assert evaluate_point(-1.0, 0.0, 200) == 200


def test_far_point_escapes_immediately():
    assert evaluate_point(3.0, 0.0, 50) == 0
    assert evaluate_point(0.0, -2.5, 50) == 0


def test_escape_count_follows_orbit_from_sample_point():
    # 0.5 -> 0.75 -> 1.0625 -> 1.6289 -> 3.1533, which leaves radius 2 on step 4
    assert evaluate_point(0.5, 0.0, 50) == 4


def test_point_on_escape_radius_is_not_escaped():
    # |z| == 2 is still inside; the orbit leaves on the next step
    assert evaluate_point(2.0, 0.0, 10) == 1


def test_larger_escape_radius_delays_escape():
    assert evaluate_point(0.5, 0.0, 50, escape_radius=4.0) == 5


def test_budget_caps_result():
    assert evaluate_point(0.5, 0.0, 3) == 3
    assert evaluate_point(0.5, 0.0, 1) == 1


def test_julia_uses_fixed_constant():
    assert evaluate_point(0.0, 0.0, 40, const=(0.0, 0.0)) == 40
    # z^2 + 0 from 1.5 grows past 2 after one squaring
    assert evaluate_point(1.5, 0.0, 40, const=(0.0, 0.0)) == 1
    # A constant far outside the set pushes the origin away at once
    assert evaluate_point(0.0, 0.0, 40, const=(3.0, 0.0)) == 1


@pytest.mark.parametrize("cx, cy", [(-0.75, 0.1), (0.3, 0.5), (-1.5, 0.0), (0.25, 0.0)])
def test_result_in_budget_range(cx, cy):
    assert 0 <= evaluate_point(cx, cy, 128) <= 128
