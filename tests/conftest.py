"""Shared fixtures: every test runs on the Taichi CPU backend."""

import numpy as np
import pytest
import taichi as ti

from points import PointBuffer


@pytest.fixture(scope="session", autouse=True)
def taichi_cpu():
    ti.init(arch=ti.cpu, random_seed=0)
    yield
    ti.reset()


@pytest.fixture
def line_points():
    """Four points on the x axis at x = 0, 1, 2, 3."""
    points = PointBuffer(4)
    points.set_positions(np.array([[0.0, 0.0, 0.0],
                                   [1.0, 0.0, 0.0],
                                   [2.0, 0.0, 0.0],
                                   [3.0, 0.0, 0.0]]))
    points.clear_forces()
    return points
