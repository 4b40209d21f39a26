"""Tests for terrain_generator.postprocess."""

import numpy as np
import pytest

from terrain_generator.postprocess import erode, post_process, smooth


@pytest.fixture
def rough_grid():
    rng = np.random.default_rng(42)
    return rng.uniform(0.0, 100.0, size=(12, 12))


def assert_border_equal(a, b):
    assert np.array_equal(a[0, :], b[0, :])
    assert np.array_equal(a[-1, :], b[-1, :])
    assert np.array_equal(a[:, 0], b[:, 0])
    assert np.array_equal(a[:, -1], b[:, -1])


class TestErode:
    def test_peak_moves_toward_neighbour_mean(self):
        grid = np.zeros((5, 5))
        grid[2, 2] = 10.0
        result = erode(grid, 1)
        assert result[2, 2] == pytest.approx(9.0)
        # Cells below their neighbour mean are left alone.
        assert result[1, 2] == 0.0

    def test_custom_rate(self):
        grid = np.zeros((5, 5))
        grid[2, 2] = 10.0
        assert erode(grid, 1, rate=0.5)[2, 2] == pytest.approx(5.0)

    def test_border_untouched(self, rough_grid):
        assert_border_equal(erode(rough_grid, 5), rough_grid)

    def test_does_not_modify_input(self, rough_grid):
        before = rough_grid.copy()
        erode(rough_grid, 3)
        assert np.array_equal(rough_grid, before)

    def test_never_raises_peaks(self, rough_grid):
        assert np.all(erode(rough_grid, 3) <= rough_grid)

    def test_zero_iterations_is_a_copy(self, rough_grid):
        result = erode(rough_grid, 0)
        assert np.array_equal(result, rough_grid)
        assert result is not rough_grid


class TestSmooth:
    def test_box_mean_of_spike(self):
        grid = np.zeros((5, 5))
        grid[2, 2] = 9.0
        result = smooth(grid, 1)
        assert result[2, 2] == pytest.approx(1.0)
        assert result[1, 1] == pytest.approx(1.0)

    def test_constant_grid_unchanged(self):
        grid = np.full((6, 6), 42.0)
        np.testing.assert_allclose(smooth(grid, 3), grid)

    def test_border_untouched(self, rough_grid):
        assert_border_equal(smooth(rough_grid, 4), rough_grid)

    def test_reduces_roughness(self, rough_grid):
        assert smooth(rough_grid, 2)[1:-1, 1:-1].std() < rough_grid[1:-1, 1:-1].std()


class TestPostProcess:
    def test_grids_without_interior_pass_through(self):
        grid = np.array([[1.0, 5.0], [3.0, 2.0]])
        assert np.array_equal(post_process(grid, 3, 3), grid)

    def test_runs_both_passes(self, rough_grid):
        expected = smooth(erode(rough_grid, 2), 1)
        assert np.array_equal(post_process(rough_grid, 2, 1), expected)
        assert_border_equal(post_process(rough_grid, 2, 1), rough_grid)
