# terrain_generator/noise.py

"""
================================================================================
NOISE GENERATION UTILITIES
================================================================================
This module provides functions for generating seeded 2D gradient (Perlin)
noise and the chunk-coordinate hash. It is designed to be a pure, stateless
utility.

Unlike a permutation-table Perlin, the lattice gradients are picked by an
integer hash of (ix, iz, seed), so any seed gives an unbounded, non-repeating
field.

Data Contract:
---------------
- Inputs:
    - x, z: Scalars or NumPy arrays of world coordinates (broadcastable).
    - frequency: Multiplier applied to the coordinates before sampling.
    - seed: Any integer. Reduced to unsigned 32 bits.
    - octaves, persistence, lacunarity: Standard fractal parameters.
- Outputs:
    - NumPy arrays (or floats for the scalar helpers) in the range [0, 1].
- Side Effects: None.
- Invariants:
    - The output shape matches the broadcast shape of x and z.
    - Identical inputs produce bit-identical outputs, in any process.
================================================================================
"""

import numpy as np
from numba import njit

from . import config as DEFAULTS

_MASK = 0xFFFFFFFF
_DIAGONAL = 0.7071067811865476
_SQRT2 = 1.4142135623730951

# Eight unit gradients: the four axes and the four diagonals.
_GRADIENT_VECTORS = np.array([
    [1.0, 0.0], [-1.0, 0.0], [0.0, 1.0], [0.0, -1.0],
    [_DIAGONAL, _DIAGONAL], [-_DIAGONAL, _DIAGONAL],
    [_DIAGONAL, -_DIAGONAL], [-_DIAGONAL, -_DIAGONAL],
])


@njit(nogil=True)
def _lerp(a, b, x):
    "Linear interpolation."
    return a + x * (b - a)


@njit(nogil=True)
def _fade(t):
    "6t^5 - 15t^4 + 10t^3"
    return t * t * t * (t * (t * 6 - 15) + 10)


@njit(nogil=True)
def _lattice_hash(ix, iz, seed):
    """Mixes a lattice point and a seed into an unsigned 32-bit integer."""
    # Every product is masked so it fits in int64 without overflow.
    h = (ix * 374761393) & _MASK
    h = (h + ((iz * 668265263) & _MASK)) & _MASK
    h = h ^ seed
    h = (h * 1274126177) & _MASK
    h = h ^ (h >> 16)
    return h


@njit(nogil=True)
def _gradient(h, x, z):
    """Calculates the dot product between a gradient vector and coordinates."""
    g = _GRADIENT_VECTORS[h & 7]
    return g[0] * x + g[1] * z


@njit(nogil=True)
def _noise_at(x, z, seed):
    """Single normalized noise sample at an already frequency-scaled point."""
    xi = int(np.floor(x))
    zi = int(np.floor(z))

    xf = x - xi
    zf = z - zi

    u = _fade(xf)
    v = _fade(zf)

    g00 = _gradient(_lattice_hash(xi, zi, seed), xf, zf)
    g10 = _gradient(_lattice_hash(xi + 1, zi, seed), xf - 1.0, zf)
    g01 = _gradient(_lattice_hash(xi, zi + 1, seed), xf, zf - 1.0)
    g11 = _gradient(_lattice_hash(xi + 1, zi + 1, seed), xf - 1.0, zf - 1.0)

    x1 = _lerp(g00, g10, u)
    x2 = _lerp(g01, g11, u)
    raw = _lerp(x1, x2, v)

    # Unit gradients bound 2D Perlin to +/- sqrt(0.5).
    value = (raw * _SQRT2 + 1.0) * 0.5
    if value < 0.0:
        return 0.0
    if value > 1.0:
        return 1.0
    return value


@njit(nogil=True)
def _noise_array(xs, zs, frequency, seed):
    n = xs.shape[0]
    out = np.empty(n)
    for i in range(n):
        out[i] = _noise_at(xs[i] * frequency, zs[i] * frequency, seed)
    return out


@njit(nogil=True)
def _octave_sum(xs, zs, frequency, seed, octaves, lacunarity, persistence,
                seed_step, ridged, sharpness):
    """
    Weighted octave sum normalized by the total weight, so the result stays
    in [0, 1]. With ridged=True each octave is folded into a ridge first.
    """
    n = xs.shape[0]
    total = np.zeros(n)
    total_weight = 0.0
    weight = 1.0
    freq = frequency

    for octave in range(octaves):
        octave_seed = (seed + octave * seed_step) & _MASK
        for i in range(n):
            value = _noise_at(xs[i] * freq, zs[i] * freq, octave_seed)
            if ridged:
                value = 1.0 - abs(2.0 * value - 1.0)
                if sharpness != 1.0:
                    value = value ** sharpness
            total[i] += value * weight
        total_weight += weight
        weight *= persistence
        freq *= lacunarity

    if total_weight > 0.0:
        for i in range(n):
            total[i] /= total_weight
    return total


def mask_seed(seed: int) -> int:
    """Reduces any integer seed to unsigned 32 bits."""
    return int(seed) & _MASK


def _flatten(x, z):
    x_arr, z_arr = np.broadcast_arrays(np.asarray(x, dtype=np.float64),
                                       np.asarray(z, dtype=np.float64))
    shape = x_arr.shape
    return np.ascontiguousarray(x_arr).ravel(), np.ascontiguousarray(z_arr).ravel(), shape


def noise_2d(x, z, frequency: float, seed: int) -> np.ndarray:
    """Single-octave noise in [0, 1] over arrays of world coordinates."""
    xs, zs, shape = _flatten(x, z)
    return _noise_array(xs, zs, float(frequency), mask_seed(seed)).reshape(shape)


def sample(x: float, z: float, frequency: float, seed: int) -> float:
    """Scalar form of noise_2d."""
    return float(noise_2d(x, z, frequency, seed))


def fractal_noise(x, z, frequency: float, seed: int, octaves: int = 1,
                  lacunarity: float = DEFAULTS.DEFAULT_LACUNARITY,
                  persistence: float = DEFAULTS.DEFAULT_PERSISTENCE,
                  seed_step: int = DEFAULTS.FRACTAL_OCTAVE_SEED_STEP) -> np.ndarray:
    """Fractal Brownian motion in [0, 1]."""
    xs, zs, shape = _flatten(x, z)
    result = _octave_sum(xs, zs, float(frequency), mask_seed(seed), int(octaves),
                         float(lacunarity), float(persistence), int(seed_step),
                         False, 1.0)
    return result.reshape(shape)


def ridged_noise(x, z, frequency: float, seed: int, octaves: int = 1,
                 lacunarity: float = DEFAULTS.DEFAULT_LACUNARITY,
                 persistence: float = DEFAULTS.DEFAULT_PERSISTENCE,
                 sharpness: float = 1.0,
                 seed_step: int = DEFAULTS.FRACTAL_OCTAVE_SEED_STEP) -> np.ndarray:
    """Ridged multi-octave noise in [0, 1]: each octave folded by 1 - |2n - 1|."""
    xs, zs, shape = _flatten(x, z)
    result = _octave_sum(xs, zs, float(frequency), mask_seed(seed), int(octaves),
                         float(lacunarity), float(persistence), int(seed_step),
                         True, float(sharpness))
    return result.reshape(shape)


def hash_chunk(chunk_x: int, chunk_z: int, seed: int) -> int:
    """Deterministic unsigned 32-bit hash of a chunk coordinate and a seed."""
    return (chunk_x * DEFAULTS.CHUNK_HASH_PRIME_X
            + chunk_z * DEFAULTS.CHUNK_HASH_PRIME_Z
            + int(seed)) & _MASK


def jitter(chunk_x: int, chunk_z: int, seed: int) -> float:
    """Per-chunk value in [0, 1] derived from the chunk hash."""
    return hash_chunk(chunk_x, chunk_z, seed) / _MASK
