# terrain_generator/engine.py

"""
================================================================================
TERRAIN ENGINE
================================================================================
The TerrainEngine is the single entry point a host application holds on to.
It owns the profile registry, the world seed, the chunk generator and the
chunk cache, and exposes the generation API.

Data Contract:
---------------
- Inputs (on initialization):
    - registry (TerrainProfileRegistry): Source of terrain profiles.
    - config (dict): Settings overriding the internal defaults. Recognized
      keys: 'seed', 'cache_capacity', 'eviction_policy', 'max_chunk_size',
      'max_region_span', 'max_workers'.
    - logger: A configured Python logging object for runtime messages.
- Outputs (from methods):
    - Chunk objects, RGBA heightmap bytes, biome descriptors, heights.
- Side Effects: Checks the profile document for changes on every chunk
  request. Logs messages using the provided logger.
- Invariants:
    - Given the same seed and profile document, results are deterministic
      whether or not they come from the cache.
    - A profile reload invalidates every cached chunk.
================================================================================
"""

import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from . import config as DEFAULTS
from . import heightmap_image
from .biomes import BiomeDescriptor
from .cache import ChunkCache
from .errors import InvalidChunkRequest
from .generator import Chunk, ChunkGenerator, validate_request
from .profiles import TerrainProfileRegistry


class TerrainEngine:
    """
    Generates, caches and encodes terrain chunks for one world seed.
    Safe to share between threads.
    """
    def __init__(self, registry: TerrainProfileRegistry, config: dict | None = None,
                 logger: logging.Logger | None = None):
        """
        Initializes the engine.

        Args:
            registry (TerrainProfileRegistry): The loaded profile registry.
            config (dict, optional): User-defined settings to override defaults.
            logger (logging.Logger, optional): The logger instance for all output.
        """
        self.logger = logger or logging.getLogger(__name__)
        self.user_config = config or {}
        self.logger.info("TerrainEngine initializing...")

        # --- Consolidate Configuration ---
        self.settings = {
            'seed': self.user_config.get('seed', DEFAULTS.DEFAULT_SEED),
            'cache_capacity': self.user_config.get('cache_capacity', DEFAULTS.CACHE_CAPACITY),
            'eviction_policy': self.user_config.get('eviction_policy', DEFAULTS.EVICTION_POLICY),
            'max_chunk_size': self.user_config.get('max_chunk_size', DEFAULTS.MAX_CHUNK_SIZE),
            'max_region_span': self.user_config.get('max_region_span', DEFAULTS.MAX_REGION_SPAN),
            'max_workers': self.user_config.get('max_workers', DEFAULTS.MAX_REGION_WORKERS),
        }

        self.seed = self.settings['seed']
        self.registry = registry
        self.generator = ChunkGenerator(self.seed, logger=self.logger,
                                        max_chunk_size=self.settings['max_chunk_size'])
        self.cache = ChunkCache(self.settings['cache_capacity'], self.settings['eviction_policy'],
                                logger=self.logger)

        self._version_lock = threading.Lock()
        self._cache_version = registry.version

        self.logger.info(
            f"TerrainEngine initialized with seed: {self.seed}, "
            f"{len(registry.snapshot.profiles)} profiles, "
            f"cache {self.settings['cache_capacity']} ({self.settings['eviction_policy']})."
        )

    @classmethod
    def from_config_file(cls, path: str | None = None, config: dict | None = None,
                         logger: logging.Logger | None = None) -> "TerrainEngine":
        """Builds an engine on a hot-reloading registry. Defaults to the bundled profiles."""
        registry = TerrainProfileRegistry(path or DEFAULTS.DEFAULT_PROFILE_PATH, logger=logger)
        return cls(registry, config=config, logger=logger)

    # --- Configuration ---

    def _current_profiles(self):
        """Picks up document changes and drops chunks built from an older snapshot."""
        self.registry.refresh()
        snapshot = self.registry.snapshot
        with self._version_lock:
            if snapshot.version != self._cache_version:
                self.logger.info(
                    f"Terrain profiles changed (version {self._cache_version} -> {snapshot.version}); "
                    f"clearing {len(self.cache)} cached chunks."
                )
                self.cache.clear()
                self._cache_version = snapshot.version
        return snapshot

    def reload_config(self) -> bool:
        """Forces a reload. Raises ConfigValidationError and keeps the old profiles on failure."""
        previous = self.registry.version
        self.registry.load()
        self._current_profiles()
        return self.registry.version != previous

    # --- Generation API ---

    def generate_chunk(self, chunk_x: int, chunk_z: int, size: int = DEFAULTS.DEFAULT_CHUNK_SIZE) -> Chunk:
        chunk_x, chunk_z, size = validate_request(chunk_x, chunk_z, size, self.settings['max_chunk_size'])
        profiles = self._current_profiles()

        cached = self.cache.get(chunk_x, chunk_z, size)
        if cached is not None:
            return cached

        chunk = self.generator.generate(profiles, chunk_x, chunk_z, size)
        with self._version_lock:
            # A chunk built from a snapshot that was replaced mid-request is returned but not cached.
            if profiles.version == self._cache_version:
                self.cache.put(chunk)
        return chunk

    def generate_heightmap_image(self, chunk: Chunk, height_range: tuple[float, float] | None = None) -> bytes:
        return heightmap_image.encode_heightmap(chunk, height_range)

    def classify(self, chunk_x: int, chunk_z: int) -> BiomeDescriptor:
        chunk_x, chunk_z, _ = validate_request(chunk_x, chunk_z, 1)
        return self.generator.classifier.classify(self._current_profiles(), chunk_x, chunk_z)

    def generate_region(self, min_x: int, min_z: int, max_x: int, max_z: int,
                        size: int = DEFAULTS.DEFAULT_CHUNK_SIZE) -> dict[tuple[int, int], Chunk]:
        """Generates the inclusive rectangle of chunks [min_x..max_x] x [min_z..max_z]."""
        min_x, min_z, size = validate_request(min_x, min_z, size, self.settings['max_chunk_size'])
        max_x, max_z, _ = validate_request(max_x, max_z, size, self.settings['max_chunk_size'])
        if max_x < min_x or max_z < min_z:
            raise InvalidChunkRequest(f"Empty region ({min_x}, {min_z}) .. ({max_x}, {max_z})")
        span = self.settings['max_region_span']
        if max_x - min_x + 1 > span or max_z - min_z + 1 > span:
            raise InvalidChunkRequest(f"Region exceeds the maximum span of {span} chunks per axis")

        coords = [(x, z) for z in range(min_z, max_z + 1) for x in range(min_x, max_x + 1)]
        with ThreadPoolExecutor(max_workers=self.settings['max_workers']) as executor:
            futures = {coord: executor.submit(self.generate_chunk, coord[0], coord[1], size) for coord in coords}
            return {coord: future.result() for coord, future in futures.items()}

    # --- Position queries ---

    def _locate(self, world_x: float, world_z: float, size: int) -> tuple[int, int, int, int]:
        for name, value in (("world_x", world_x), ("world_z", world_z)):
            numeric = isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool)
            if not numeric or not math.isfinite(value):
                raise InvalidChunkRequest(f"{name} must be a finite number, got {value!r}")
        cell_x = math.floor(world_x)
        cell_z = math.floor(world_z)
        return cell_x // size, cell_z // size, cell_x % size, cell_z % size

    def get_height_at_position(self, world_x: float, world_z: float,
                               size: int = DEFAULTS.DEFAULT_CHUNK_SIZE) -> float:
        """Height of the cell containing a world position."""
        _, _, size = validate_request(0, 0, size, self.settings['max_chunk_size'])
        chunk_x, chunk_z, col, row = self._locate(world_x, world_z, size)
        chunk = self.generate_chunk(chunk_x, chunk_z, size)
        return float(chunk.height_grid[row, col])

    def get_biome_at_position(self, world_x: float, world_z: float,
                              size: int = DEFAULTS.DEFAULT_CHUNK_SIZE) -> BiomeDescriptor:
        _, _, size = validate_request(0, 0, size, self.settings['max_chunk_size'])
        chunk_x, chunk_z, _, _ = self._locate(world_x, world_z, size)
        return self.classify(chunk_x, chunk_z)

    @property
    def cache_stats(self) -> dict:
        return self.cache.stats
