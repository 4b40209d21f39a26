# terrain_generator/postprocess.py

"""
Erosion and smoothing passes applied to a chunk after edge blending.

Only interior cells change. The outer ring holds the blended seam values that
neighbouring chunks agree on, so it is copied through untouched. Every pass
reads the previous pass's complete output, never a half-updated grid.
"""

import numpy as np
from scipy import ndimage

from . import config as DEFAULTS

_ORTHOGONAL_MEAN = np.array([[0.0, 0.25, 0.0],
                             [0.25, 0.0, 0.25],
                             [0.0, 0.25, 0.0]])


def erode(grid: np.ndarray, iterations: int, rate: float = DEFAULTS.EROSION_RATE) -> np.ndarray:
    """Pulls interior peaks toward the mean of their four neighbours by `rate`."""
    result = np.array(grid, dtype=np.float64)
    if iterations <= 0 or min(result.shape) < 3:
        return result

    for _ in range(iterations):
        neighbour_mean = ndimage.convolve(result, _ORTHOGONAL_MEAN, mode='nearest')
        interior = result[1:-1, 1:-1]
        mean = neighbour_mean[1:-1, 1:-1]
        eroded = np.where(interior > mean, interior - (interior - mean) * rate, interior)
        result = result.copy()
        result[1:-1, 1:-1] = eroded
    return result


def smooth(grid: np.ndarray, passes: int) -> np.ndarray:
    """3x3 box blur over interior cells."""
    result = np.array(grid, dtype=np.float64)
    if passes <= 0 or min(result.shape) < 3:
        return result

    for _ in range(passes):
        blurred = ndimage.uniform_filter(result, size=3, mode='nearest')
        result = result.copy()
        result[1:-1, 1:-1] = blurred[1:-1, 1:-1]
    return result


def post_process(grid: np.ndarray, erosion_iterations: int = 0, smoothing_passes: int = 0,
                 erosion_rate: float = DEFAULTS.EROSION_RATE) -> np.ndarray:
    """Erosion first, then smoothing."""
    return smooth(erode(grid, erosion_iterations, erosion_rate), smoothing_passes)
