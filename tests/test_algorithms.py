"""Tests for terrain_generator.algorithms."""

import numpy as np
import pytest

from terrain_generator import noise
from terrain_generator.algorithms import (
    ALGORITHM_KINDS,
    KIND_ALIASES,
    DetailNoise,
    FractalNoise,
    MountainSpine,
    MoundSpots,
    WaterChannels,
    parse_algorithm,
    resolve_kind,
)
from terrain_generator.errors import ConfigValidationError


@pytest.fixture
def coords():
    return np.meshgrid(np.arange(0.0, 96.0, 3.0), np.arange(-64.0, 32.0, 3.0))


class TestCatalogue:
    @pytest.mark.parametrize("kind", sorted(ALGORITHM_KINDS) + sorted(KIND_ALIASES))
    def test_every_kind_evaluates(self, kind, coords):
        """Every registered name parses and yields finite, non-negative heights."""
        algorithm = parse_algorithm({"kind": kind, "frequency": 0.02, "amplitude_factor": 0.5})
        values = algorithm.evaluate(*coords, 314159, span=100.0)
        assert values.shape == coords[0].shape
        assert np.all(np.isfinite(values))
        assert values.min() >= 0.0

    def test_unknown_kind_fails_at_parse(self):
        with pytest.raises(ConfigValidationError, match="unknown algorithm kind 'volcano'"):
            parse_algorithm({"kind": "volcano", "frequency": 0.1})

    def test_hyphenated_and_type_key(self):
        algorithm = parse_algorithm({"type": "mountain-spine", "frequency": 0.01, "octaves": 8})
        assert isinstance(algorithm, MountainSpine)
        assert algorithm.octaves == 8

    def test_detail_aliases_share_one_class(self):
        assert resolve_kind("grass_tufts") is DetailNoise
        assert resolve_kind("Fine-Sand") is DetailNoise
        assert resolve_kind("fbm") is FractalNoise

    def test_algorithms_are_immutable(self):
        algorithm = parse_algorithm({"kind": "fractal", "frequency": 0.1})
        with pytest.raises(AttributeError):
            algorithm.frequency = 0.2


class TestValidation:
    @pytest.mark.parametrize("entry, message", [
        ({"frequency": 0.1}, "missing algorithm kind"),
        ({"kind": "fractal"}, "missing 'frequency'"),
        ({"kind": "fractal", "frequency": 0}, "'frequency' must be positive"),
        ({"kind": "fractal", "frequency": True}, "'frequency' must be a finite number"),
        ({"kind": "fractal", "frequency": "fast"}, "'frequency' must be a finite number"),
        ({"kind": "fractal", "frequency": 0.1, "octaves": 0}, "'octaves' must be a positive integer"),
        ({"kind": "fractal", "frequency": 0.1, "octaves": 2.5}, "'octaves' must be a positive integer"),
        ({"kind": "fractal", "frequency": 0.1, "ridged": "yes"}, "'ridged' must be true or false"),
        ({"kind": "fractal", "frequency": 0.1, "power": -1}, "'power' must be positive"),
    ])
    def test_rejects_bad_entries(self, entry, message):
        with pytest.raises(ConfigValidationError, match=message):
            parse_algorithm(entry)

    def test_error_names_the_path(self):
        with pytest.raises(ConfigValidationError) as excinfo:
            parse_algorithm({"kind": "nope", "frequency": 1}, "terrain_types.x.noise_algorithms[2]")
        assert excinfo.value.path == "terrain_types.x.noise_algorithms[2]"


class TestModifiers:
    def test_order_is_power_absolute_threshold(self):
        """power runs before threshold: 0.5**2 - 0.1, not (0.5 - 0.1)**2."""
        algorithm = DetailNoise(frequency=0.1, power=2.0, absolute=True, threshold=0.1)
        result = algorithm.apply_modifiers(np.array([0.5]))
        assert result[0] == pytest.approx(0.15)

    def test_threshold_floors_at_zero(self):
        algorithm = DetailNoise(frequency=0.1, threshold=0.6)
        result = algorithm.apply_modifiers(np.array([0.2, 0.9]))
        np.testing.assert_allclose(result, [0.0, 0.3])

    def test_power_of_one_is_identity(self):
        algorithm = DetailNoise(frequency=0.1, power=1.0)
        values = np.array([0.1, 0.7])
        assert np.array_equal(algorithm.apply_modifiers(values), values)

    def test_scaled_by_amplitude_and_span(self, coords):
        algorithm = DetailNoise(frequency=0.05, amplitude_factor=0.5)
        expected = noise.noise_2d(*coords, 0.05, 77) * 0.5 * 200.0
        np.testing.assert_allclose(algorithm.evaluate(*coords, 77, span=200.0), expected)


class TestShapes:
    def test_cutoff_kinds_zero_below_cutoff(self, coords):
        for algorithm in (MoundSpots(frequency=0.05), WaterChannels(frequency=0.05, cutoff=0.55)):
            values = algorithm.shape(*coords, 11)
            cutoff = algorithm._param("cutoff")
            assert np.all((values == 0.0) | (values > cutoff))

    def test_mountain_spine_defaults(self):
        spine = MountainSpine(frequency=0.01)
        assert spine._param("octaves") == 8
        assert spine._param("lacunarity") == 2.5
        assert spine._param("persistence") == 0.6

    def test_mountain_spine_within_unit_range(self, coords):
        values = MountainSpine(frequency=0.01).shape(*coords, 5)
        assert values.min() >= 0.0
        assert values.max() <= 1.0

    def test_fractal_honours_ridged_flag(self, coords):
        plain = FractalNoise(frequency=0.03, octaves=2).shape(*coords, 3)
        ridged = FractalNoise(frequency=0.03, octaves=2, ridged=True).shape(*coords, 3)
        np.testing.assert_allclose(
            ridged, noise.ridged_noise(*coords, 0.03, 3, octaves=2))
        assert not np.allclose(plain, ridged)

    def test_to_dict_round_trips_through_parse(self):
        algorithm = parse_algorithm({"kind": "continental_ridges", "frequency": 0.004,
                                     "amplitude_factor": 0.25, "ridge_offset": 0.5})
        assert parse_algorithm(algorithm.to_dict()) == algorithm
