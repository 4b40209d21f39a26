# terrain_generator/algorithms.py

"""
================================================================================
NOISE ALGORITHM CATALOGUE
================================================================================
Every algorithm kind a terrain profile may list is a small immutable class
here. The kind is resolved once, when the profile document is parsed, so an
unknown kind fails at load time instead of during generation.

Data Contract:
---------------
- Inputs:
    - A mapping from a profile document (`parse_algorithm`).
    - World coordinate arrays, a 32-bit seed and the profile span
      (`NoiseAlgorithm.evaluate`).
- Outputs:
    - A NumPy array of height contributions, same shape as the coordinates.
- Side Effects: None.
- Invariants:
    - `shape()` returns values >= 0 (most kinds stay within [0, 1]).
    - Modifiers run in a fixed order: power, absolute, threshold, then
      scaling by amplitude_factor and the profile span.
================================================================================
"""

from dataclasses import dataclass, fields
from typing import ClassVar

import numpy as np

from . import noise
from .errors import ConfigValidationError


@dataclass(frozen=True)
class NoiseAlgorithm:
    """Base class. Subclasses define `kind`, their defaults and `shape()`."""

    kind: ClassVar[str] = ""

    frequency: float
    amplitude_factor: float = 1.0
    octaves: int | None = None
    power: float | None = None
    ridged: bool = False
    absolute: bool = False
    threshold: float | None = None
    lacunarity: float | None = None
    persistence: float | None = None
    ridge_sharpness: float | None = None
    ridge_offset: float | None = None
    elevation_bias: float | None = None
    cutoff: float | None = None

    default_octaves: ClassVar[int] = 1
    default_lacunarity: ClassVar[float] = 2.0
    default_persistence: ClassVar[float] = 0.5
    default_ridge_sharpness: ClassVar[float] = 1.0
    default_ridge_offset: ClassVar[float] = 0.0
    default_elevation_bias: ClassVar[float] = 0.0
    default_cutoff: ClassVar[float] = 0.0

    def _param(self, name: str):
        value = getattr(self, name)
        return getattr(self, f"default_{name}") if value is None else value

    def shape(self, x: np.ndarray, z: np.ndarray, seed: int) -> np.ndarray:
        raise NotImplementedError

    def apply_modifiers(self, values: np.ndarray) -> np.ndarray:
        if self.power is not None and self.power != 1.0:
            values = np.power(values, self.power)
        if self.absolute:
            values = np.abs(values)
        if self.threshold is not None:
            values = np.maximum(0.0, values - self.threshold)
        return values

    def evaluate(self, x, z, seed: int, span: float = 1.0) -> np.ndarray:
        """Height contribution at world coordinates (x, z), scaled to `span`."""
        values = self.apply_modifiers(self.shape(x, z, seed))
        return values * self.amplitude_factor * span

    def to_dict(self) -> dict:
        data = {"kind": self.kind}
        for field in fields(self):
            value = getattr(self, field.name)
            if value is not None and value is not False:
                data[field.name] = value
        return data


# --- Octave sums ---

@dataclass(frozen=True)
class FractalNoise(NoiseAlgorithm):
    """Plain fBm. Honours `ridged` to fold each octave."""
    kind = "fractal"
    default_octaves = 4

    def shape(self, x, z, seed):
        if self.ridged:
            return noise.ridged_noise(x, z, self.frequency, seed, self._param("octaves"),
                                      self._param("lacunarity"), self._param("persistence"),
                                      self._param("ridge_sharpness"))
        return noise.fractal_noise(x, z, self.frequency, seed, self._param("octaves"),
                                   self._param("lacunarity"), self._param("persistence"))


@dataclass(frozen=True)
class RidgedNoise(NoiseAlgorithm):
    kind = "ridged"
    default_octaves = 4

    def shape(self, x, z, seed):
        return noise.ridged_noise(x, z, self.frequency, seed, self._param("octaves"),
                                  self._param("lacunarity"), self._param("persistence"),
                                  self._param("ridge_sharpness"))


@dataclass(frozen=True)
class GentleHills(NoiseAlgorithm):
    kind = "gentle_hills"
    default_octaves = 3
    default_lacunarity = 1.8
    default_persistence = 0.6

    def shape(self, x, z, seed):
        return noise.fractal_noise(x, z, self.frequency, seed, self._param("octaves"),
                                   self._param("lacunarity"), self._param("persistence"),
                                   seed_step=100)


@dataclass(frozen=True)
class MountainSpine(NoiseAlgorithm):
    """Sharp ridged octaves raised to a steep exponent: tall, narrow spines."""
    kind = "mountain_spine"
    exponent: ClassVar[float] = 3.5
    default_octaves = 8
    default_lacunarity = 2.5
    default_persistence = 0.6
    default_ridge_sharpness = 4.0

    def shape(self, x, z, seed):
        ridges = noise.ridged_noise(x, z, self.frequency, seed, self._param("octaves"),
                                    self._param("lacunarity"), self._param("persistence"),
                                    self._param("ridge_sharpness"), seed_step=77)
        return np.power(ridges, self.exponent)


@dataclass(frozen=True)
class ContinentalRidges(NoiseAlgorithm):
    """Difference of two crossed fields, offset and sharpened per octave."""
    kind = "continental_ridges"
    exponent: ClassVar[float] = 3.0
    default_octaves = 6
    default_lacunarity = 2.1
    default_persistence = 0.65
    default_ridge_offset = 1.0

    def shape(self, x, z, seed):
        x = np.asarray(x, dtype=np.float64)
        z = np.asarray(z, dtype=np.float64)
        offset = self._param("ridge_offset")
        total = np.zeros(np.broadcast(x, z).shape)
        total_weight = 0.0
        weight = 1.0
        freq = self.frequency
        for octave in range(self._param("octaves")):
            primary = noise.noise_2d(x, z, freq, seed + octave * 123)
            crossed = noise.noise_2d(z, x, freq * 1.1, seed + octave * 234)
            ridge = np.abs(primary - crossed + offset) / (1.0 + abs(offset))
            total += np.power(ridge, self.exponent) * weight
            total_weight += weight
            weight *= self._param("persistence")
            freq *= self._param("lacunarity")
        return total / total_weight


@dataclass(frozen=True)
class MassiveElevation(NoiseAlgorithm):
    """Broad, heavily lifted masses for the highest ground."""
    kind = "massive_elevation"
    exponent: ClassVar[float] = 4.2
    default_octaves = 5
    default_lacunarity = 2.3
    default_persistence = 0.55
    default_elevation_bias = 0.7

    def shape(self, x, z, seed):
        x = np.asarray(x, dtype=np.float64)
        z = np.asarray(z, dtype=np.float64)
        total = np.zeros(np.broadcast(x, z).shape)
        total_weight = 0.0
        weight = 1.0
        freq = self.frequency
        for octave in range(self._param("octaves")):
            primary = noise.noise_2d(x, z, freq, seed + octave * 345)
            secondary = noise.noise_2d(x * 1.3, z * 0.8, freq * 1.7, seed + octave * 456)
            total += np.power(0.7 * primary + 0.3 * secondary, self.exponent) * weight
            total_weight += weight
            weight *= self._param("persistence")
            freq *= self._param("lacunarity")
        return total / total_weight * (1.0 + self._param("elevation_bias"))


# --- Shape kinds ---

@dataclass(frozen=True)
class DuneNoise(NoiseAlgorithm):
    kind = "dune_noise"

    def shape(self, x, z, seed):
        x = np.asarray(x, dtype=np.float64)
        z = np.asarray(z, dtype=np.float64)
        base = noise.noise_2d(x, z, self.frequency, seed)
        variation = noise.noise_2d(x * 1.3, z * 0.8, self.frequency * 1.5, seed + 500)
        return (base + 0.3 * variation) / 1.3


@dataclass(frozen=True)
class RollingHills(NoiseAlgorithm):
    kind = "rolling_hills"

    def shape(self, x, z, seed):
        return (0.6 * noise.noise_2d(x, z, self.frequency, seed)
                + 0.3 * noise.noise_2d(x, z, self.frequency * 2, seed + 100)
                + 0.1 * noise.noise_2d(x, z, self.frequency * 4, seed + 200))


@dataclass(frozen=True)
class FlatBase(NoiseAlgorithm):
    kind = "flat_base"

    def shape(self, x, z, seed):
        return 0.5 * noise.noise_2d(x, z, self.frequency, seed)


@dataclass(frozen=True)
class MoundSpots(NoiseAlgorithm):
    """Isolated mounds: values at or below the cutoff drop to zero."""
    kind = "mound_spots"
    default_cutoff = 0.5

    def shape(self, x, z, seed):
        values = noise.noise_2d(x, z, self.frequency, seed)
        return np.where(values > self._param("cutoff"), values, 0.0)


@dataclass(frozen=True)
class Windswept(NoiseAlgorithm):
    kind = "windswept"

    def shape(self, x, z, seed):
        x = np.asarray(x, dtype=np.float64)
        z = np.asarray(z, dtype=np.float64)
        primary = noise.noise_2d(x * 0.7, z, self.frequency, seed)
        cross = noise.noise_2d(x, z * 1.3, self.frequency * 1.2, seed + 300)
        return 0.7 * primary + 0.3 * cross


@dataclass(frozen=True)
class PermafrostBumps(NoiseAlgorithm):
    kind = "permafrost_bumps"

    def shape(self, x, z, seed):
        values = noise.noise_2d(x, z, self.frequency, seed)
        return np.where(values > 0.6, values, values * 0.2)


@dataclass(frozen=True)
class BogBase(NoiseAlgorithm):
    kind = "bog_base"

    def shape(self, x, z, seed):
        return (0.5 * noise.noise_2d(x, z, self.frequency, seed)
                + 0.3 * noise.noise_2d(x, z, self.frequency * 3, seed + 150)
                + 0.2 * noise.noise_2d(x, z, self.frequency * 6, seed + 250))


@dataclass(frozen=True)
class WaterChannels(NoiseAlgorithm):
    kind = "water_channels"
    default_cutoff = 0.4

    def shape(self, x, z, seed):
        values = noise.noise_2d(x, z, self.frequency, seed)
        return np.where(values > self._param("cutoff"), values, 0.0)


@dataclass(frozen=True)
class DetailNoise(NoiseAlgorithm):
    """Single-octave surface detail. Registered under several names."""
    kind = "detail_noise"

    def shape(self, x, z, seed):
        return noise.noise_2d(x, z, self.frequency, seed)


ALGORITHM_KINDS: dict[str, type[NoiseAlgorithm]] = {
    cls.kind: cls for cls in (
        FractalNoise, RidgedNoise, GentleHills, MountainSpine, ContinentalRidges,
        MassiveElevation, DuneNoise, RollingHills, FlatBase, MoundSpots, Windswept,
        PermafrostBumps, BogBase, WaterChannels, DetailNoise,
    )
}

# Alternative names found in profile documents.
KIND_ALIASES = {
    "fbm": "fractal",
    "fractal_noise": "fractal",
    "ridged_noise": "ridged",
    "ripple_noise": "detail_noise",
    "fine_sand": "detail_noise",
    "tree_variation": "detail_noise",
    "root_system": "detail_noise",
    "bog_detail": "detail_noise",
    "ice_detail": "detail_noise",
    "grass_tufts": "detail_noise",
    "meadow_variation": "detail_noise",
    "grass_detail": "detail_noise",
}

_NUMBER_FIELDS = ("frequency", "amplitude_factor", "power", "threshold", "lacunarity",
                  "persistence", "ridge_sharpness", "ridge_offset", "elevation_bias", "cutoff")
_INT_FIELDS = ("octaves",)
_BOOL_FIELDS = ("ridged", "absolute")


def resolve_kind(name: str) -> type[NoiseAlgorithm] | None:
    key = str(name).strip().lower().replace("-", "_")
    key = KIND_ALIASES.get(key, key)
    return ALGORITHM_KINDS.get(key)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and np.isfinite(value)


def parse_algorithm(data: dict, path: str = "noise_algorithm") -> NoiseAlgorithm:
    """
    Builds the algorithm object for one document entry.

    The kind may be given as `kind` or `type`. Unknown keys are ignored so a
    document can carry annotations, but every known key must be well typed.
    """
    if not isinstance(data, dict):
        raise ConfigValidationError("algorithm entry must be a mapping", path)

    kind_name = data.get("kind", data.get("type"))
    if kind_name is None:
        raise ConfigValidationError("missing algorithm kind", path)
    cls = resolve_kind(kind_name)
    if cls is None:
        raise ConfigValidationError(f"unknown algorithm kind '{kind_name}'", path)

    if data.get("frequency") is None:
        raise ConfigValidationError("missing 'frequency'", path)

    kwargs = {}
    for key in _NUMBER_FIELDS:
        if key in data and data[key] is not None:
            if not _is_number(data[key]):
                raise ConfigValidationError(f"'{key}' must be a finite number", path)
            kwargs[key] = float(data[key])
    for key in _INT_FIELDS:
        if key in data and data[key] is not None:
            value = data[key]
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigValidationError(f"'{key}' must be a positive integer", path)
            kwargs[key] = value
    for key in _BOOL_FIELDS:
        if key in data and data[key] is not None:
            if not isinstance(data[key], bool):
                raise ConfigValidationError(f"'{key}' must be true or false", path)
            kwargs[key] = data[key]

    if kwargs["frequency"] <= 0:
        raise ConfigValidationError("'frequency' must be positive", path)
    if kwargs.get("power") is not None and kwargs["power"] <= 0:
        raise ConfigValidationError("'power' must be positive", path)

    return cls(**kwargs)
