"""Tests for terrain_generator.engine."""

import logging

import numpy as np
import pytest

from terrain_generator import TerrainEngine
from terrain_generator.errors import ConfigValidationError, InvalidChunkRequest
from terrain_generator.profiles import TerrainProfileRegistry

SEED = 12345


@pytest.fixture
def engine(file_registry, logger):
    return TerrainEngine(file_registry, config={"seed": SEED, "cache_capacity": 8}, logger=logger)


@pytest.fixture
def mountain_engine(mountain_document):
    registry = TerrainProfileRegistry.from_mapping(mountain_document)
    return TerrainEngine(registry, config={"seed": SEED})


class TestConfiguration:
    def test_settings_fall_back_to_defaults(self, mountain_engine):
        assert mountain_engine.settings["seed"] == SEED
        assert mountain_engine.settings["cache_capacity"] == 100
        assert mountain_engine.settings["eviction_policy"] == "lru"
        assert mountain_engine.settings["max_region_span"] == 4

    def test_fifo_policy_from_settings(self, mountain_document):
        registry = TerrainProfileRegistry.from_mapping(mountain_document)
        engine = TerrainEngine(registry, config={"eviction_policy": "fifo"})
        assert engine.cache.policy == "fifo"

    def test_from_config_file_defaults_to_bundled_profiles(self):
        engine = TerrainEngine.from_config_file(config={"seed": 7})
        chunk = engine.generate_chunk(0, 0, 16)
        profile = engine.registry.resolve(chunk.biome.name)
        assert chunk.height_range == profile.height_range
        assert chunk.height_grid.min() >= profile.height_range[0]
        assert chunk.height_grid.max() <= profile.height_range[1]


class TestGenerateChunk:
    def test_mountain_scenario(self, mountain_engine):
        a = mountain_engine.generate_chunk(0, 0, 64)
        b = mountain_engine.generate_chunk(1, 0, 64)
        assert a.height_grid.min() >= 50.0
        assert a.height_grid.max() <= 800.0
        np.testing.assert_allclose(a.height_grid[:, -1], b.height_grid[:, 0], atol=1e-6, rtol=0)

    def test_cache_hit_returns_same_chunk(self, engine):
        first = engine.generate_chunk(2, 3, 16)
        assert engine.generate_chunk(2, 3, 16) is first
        assert engine.cache_stats["hits"] == 1

    def test_cache_does_not_change_results(self, engine, file_registry):
        """A cached neighbour never leaks into a chunk's generation."""
        engine.generate_chunk(0, 0, 16)
        warm = engine.generate_chunk(1, 0, 16)
        cold = TerrainEngine(file_registry, config={"seed": SEED}).generate_chunk(1, 0, 16)
        assert warm.height_grid.tobytes() == cold.height_grid.tobytes()

    def test_eviction_does_not_change_results(self, engine):
        first = engine.generate_chunk(0, 0, 8)
        for x in range(1, 10):
            engine.generate_chunk(x, 0, 8)
        assert (0, 0, 8) not in engine.cache
        again = engine.generate_chunk(0, 0, 8)
        assert again is not first
        assert np.array_equal(again.height_grid, first.height_grid)

    @pytest.mark.parametrize("x, z, size", [(0, 0, 0), (0, 0, -1), (float("nan"), 0, 16), (0, 0, 2048)])
    def test_invalid_requests(self, engine, x, z, size):
        with pytest.raises(InvalidChunkRequest):
            engine.generate_chunk(x, z, size)

    def test_max_chunk_size_setting(self, mountain_document):
        registry = TerrainProfileRegistry.from_mapping(mountain_document)
        engine = TerrainEngine(registry, config={"max_chunk_size": 8})
        with pytest.raises(InvalidChunkRequest, match="exceeds"):
            engine.generate_chunk(0, 0, 16)

    def test_raised_max_chunk_size_reaches_generator(self, mountain_document):
        """A limit above the default applies to the whole pipeline, not just the engine."""
        registry = TerrainProfileRegistry.from_mapping(mountain_document)
        engine = TerrainEngine(registry, config={"max_chunk_size": 2048})
        chunk = engine.generate_chunk(0, 0, 1025)
        assert chunk.height_grid.shape == (1025, 1025)
        assert chunk.height_grid.min() >= 50.0


class TestHotReload:
    def test_reload_clears_cache(self, engine, profile_file, mixed_document, rewrite):
        before = engine.generate_chunk(0, 0, 16)
        mixed_document["terrain_types"]["hills"]["height_range"] = [30, 50]
        mixed_document["terrain_types"]["plains"]["height_range"] = [30, 50]
        rewrite(profile_file, mixed_document)

        after = engine.generate_chunk(0, 0, 16)
        assert after is not before
        assert after.height_range == (30.0, 50.0)
        assert after.height_grid.min() >= 30.0
        assert after.height_grid.max() <= 50.0

    def test_malformed_reload_keeps_serving(self, engine, profile_file, rewrite, caplog):
        before = engine.generate_chunk(0, 0, 16)
        rewrite(profile_file, "{ broken")
        with caplog.at_level(logging.ERROR):
            assert engine.generate_chunk(0, 0, 16) is before
        assert "Rejected terrain profile reload" in caplog.text
        assert engine.classify(0, 0) == before.biome

    def test_forced_reload_raises_on_bad_document(self, engine, profile_file, rewrite):
        rewrite(profile_file, {"terrain_types": {"x": {"height_range": [1, 0]}}})
        with pytest.raises(ConfigValidationError):
            engine.reload_config()
        assert engine.registry.version == 1

    def test_forced_reload(self, engine, profile_file, mixed_document, rewrite):
        engine.generate_chunk(0, 0, 8)
        rewrite(profile_file, mixed_document)
        assert engine.reload_config() is True
        assert len(engine.cache) == 0


class TestRegion:
    def test_region_generates_every_chunk(self, engine):
        region = engine.generate_region(-1, -1, 0, 0, 16)
        assert sorted(region) == [(-1, -1), (-1, 0), (0, -1), (0, 0)]
        assert region[(0, 0)].key == (0, 0, 16)

    def test_region_chunks_tile(self, engine):
        region = engine.generate_region(0, 0, 1, 1, 16)
        np.testing.assert_allclose(region[(0, 0)].height_grid[:, -1], region[(1, 0)].height_grid[:, 0],
                                   atol=1e-6, rtol=0)
        np.testing.assert_allclose(region[(0, 0)].height_grid[-1, :], region[(0, 1)].height_grid[0, :],
                                   atol=1e-6, rtol=0)

    def test_region_span_limit(self, engine):
        with pytest.raises(InvalidChunkRequest, match="maximum span"):
            engine.generate_region(0, 0, 4, 0, 16)

    def test_empty_region_rejected(self, engine):
        with pytest.raises(InvalidChunkRequest, match="Empty region"):
            engine.generate_region(1, 0, 0, 0, 16)


class TestPositionQueries:
    def test_height_at_position(self, engine):
        chunk = engine.generate_chunk(1, 0, 16)
        assert engine.get_height_at_position(22.5, 3.2, 16) == chunk.height_grid[3, 6]

    def test_height_at_negative_position(self, engine):
        chunk = engine.generate_chunk(-1, -1, 16)
        assert engine.get_height_at_position(-0.5, -1.0, 16) == chunk.height_grid[15, 15]

    def test_biome_at_position(self, engine):
        assert engine.get_biome_at_position(-3.0, 40.0, 16) == engine.classify(-1, 2)

    def test_numpy_positions_accepted(self, engine):
        assert engine.get_height_at_position(np.int64(22), np.float64(3.2), 16) == \
            engine.get_height_at_position(22, 3.2, 16)
        assert engine.get_biome_at_position(np.int64(-3), np.int64(40), 16) == engine.classify(-1, 2)

    def test_position_must_be_finite(self, engine):
        with pytest.raises(InvalidChunkRequest):
            engine.get_height_at_position(float("inf"), 0.0, 16)


class TestHeightmapImage:
    def test_image_bytes(self, engine):
        chunk = engine.generate_chunk(0, 0, 16)
        data = engine.generate_heightmap_image(chunk)
        assert len(data) == 16 * 16 * 4
        assert set(data[3::4]) == {255}
