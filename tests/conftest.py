import pytest

from fractalgrid import FractalParams, IterationBudget, Viewport, WorkerPool


@pytest.fixture(scope="session")
def thread_pool():
    with WorkerPool(4, kind="thread") as pool:
        yield pool


@pytest.fixture
def classic_viewport():
    return Viewport.from_bounds(-2.0, 0.5, -1.25, 1.25, 64, 48)


@pytest.fixture
def symmetric_viewport():
    # Real axis falls exactly on row 40 of 81.
    return Viewport(min_x=-2.0, min_y=-1.0, scale_x=0.025, scale_y=0.025, width=101, height=81)


@pytest.fixture
def budget():
    return IterationBudget(64)


@pytest.fixture
def mandelbrot():
    return FractalParams.mandelbrot()
