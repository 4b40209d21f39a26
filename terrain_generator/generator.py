# terrain_generator/generator.py

"""
================================================================================
CHUNK GENERATOR
================================================================================
This module contains the ChunkGenerator, responsible for turning a chunk
coordinate into a finished height grid, and the Chunk value it returns.

Pipeline for one chunk:
    classify biome -> resolve profile -> chunk seed -> evaluate algorithms
    -> chunk variation -> clamp -> edge blending -> post-processing -> clamp

Data Contract:
---------------
- Inputs:
    - seed (int): The world seed.
    - profiles (ProfileSet): One immutable configuration snapshot, used for the
      whole request including neighbour re-derivation.
    - chunk_x, chunk_z (int), size (int > 0).
- Outputs:
    - Chunk objects whose height_grid is a read-only (size, size) float64
      array indexed [row=z][col=x].
- Side Effects: Logs messages using the provided logger.
- Invariants:
    - Given the same seed and profile set, the output grid is byte-identical.
    - Every cell lies inside the resolved profile's height range.
================================================================================
"""

import hashlib
import logging
import math
import time
import uuid
from dataclasses import dataclass, field

import numpy as np

from . import config as DEFAULTS
from . import noise
from . import postprocess
from .biomes import BiomeClassifier, BiomeDescriptor
from .blending import EdgeBlender
from .errors import InvalidChunkRequest, ProfileNotFound
from .profiles import ProfileSet, TerrainProfile


def validate_request(chunk_x, chunk_z, size, max_size: int = DEFAULTS.MAX_CHUNK_SIZE) -> tuple[int, int, int]:
    """Normalizes a chunk request to ints or raises InvalidChunkRequest."""
    coords = []
    for name, value in (("chunk_x", chunk_x), ("chunk_z", chunk_z)):
        if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
            raise InvalidChunkRequest(f"{name} must be a number, got {value!r}")
        if not math.isfinite(value):
            raise InvalidChunkRequest(f"{name} must be finite, got {value!r}")
        if value != int(value):
            raise InvalidChunkRequest(f"{name} must be an integer, got {value!r}")
        coords.append(int(value))

    if isinstance(size, bool) or not isinstance(size, (int, np.integer)):
        raise InvalidChunkRequest(f"size must be an integer, got {size!r}")
    if size <= 0:
        raise InvalidChunkRequest(f"size must be positive, got {size}")
    if size > max_size:
        raise InvalidChunkRequest(f"size {size} exceeds the maximum of {max_size}")
    return coords[0], coords[1], int(size)


@dataclass(frozen=True)
class ChunkRecipe:
    """
    Everything needed to evaluate one chunk's raw height at any world point.

    The generator builds one for the requested chunk and one per neighbour;
    the edge blender evaluates neighbour recipes outside their own chunk.
    """
    chunk_x: int
    chunk_z: int
    size: int
    seed: int
    biome: BiomeDescriptor
    profile: TerrainProfile
    sub_seeds: tuple[int, ...]
    variation: float
    local_strength: float

    def raw_heights(self, world_x, world_z) -> np.ndarray:
        """Raw (pre-blend) heights, clamped to the profile range."""
        world_x = np.asarray(world_x, dtype=np.float64)
        world_z = np.asarray(world_z, dtype=np.float64)
        low, high = self.profile.height_range
        span = self.profile.span

        heights = np.full(np.broadcast(world_x, world_z).shape, low + self.variation)
        for algorithm, sub_seed in zip(self.profile.noise_algorithms, self.sub_seeds):
            heights += algorithm.evaluate(world_x, world_z, sub_seed, span)
        if self.local_strength:
            local = noise.noise_2d(world_x, world_z, DEFAULTS.LOCAL_VARIATION_FREQUENCY,
                                   self.seed + DEFAULTS.LOCAL_VARIATION_SEED_OFFSET)
            heights += local * DEFAULTS.LOCAL_VARIATION_AMPLITUDE * self.local_strength
        return np.clip(heights, low, high)

    def grid(self) -> np.ndarray:
        """Raw heights over the chunk's own cells."""
        index = np.arange(self.size, dtype=np.float64)
        world_x, world_z = np.meshgrid(self.chunk_x * self.size + index,
                                       self.chunk_z * self.size + index)
        return self.raw_heights(world_x, world_z)


@dataclass(frozen=True, eq=False)
class Chunk:
    x: int
    z: int
    size: int
    height_grid: np.ndarray
    biome: BiomeDescriptor
    height_range: tuple[float, float]
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    generated_at: float = field(default_factory=time.time)

    @property
    def key(self) -> tuple[int, int, int]:
        return (self.x, self.z, self.size)

    @property
    def content_hash(self) -> str:
        """sha256 of the height grid bytes. Equal for identical terrain."""
        return hashlib.sha256(np.ascontiguousarray(self.height_grid).tobytes()).hexdigest()

    def to_dict(self, flat: bool = False) -> dict:
        heights = self.height_grid.ravel().tolist() if flat else self.height_grid.tolist()
        return {
            "id": self.id,
            "position": [self.x, self.z],
            "size": self.size,
            "heightmap": heights,
            "biome": self.biome.to_dict(),
            "height_range": list(self.height_range),
            "generated_at": self.generated_at,
        }


class ChunkGenerator:
    """
    Generates chunks for one world seed. Holds no mutable state, so one
    instance can serve many threads at once.
    """
    def __init__(self, seed: int, logger: logging.Logger | None = None,
                 max_chunk_size: int = DEFAULTS.MAX_CHUNK_SIZE):
        self.seed = seed
        self.max_chunk_size = max_chunk_size
        self.logger = logger or logging.getLogger(__name__)
        self.classifier = BiomeClassifier(seed)

    def recipe(self, profiles: ProfileSet, chunk_x: int, chunk_z: int, size: int) -> ChunkRecipe:
        biome = self.classifier.classify(profiles, chunk_x, chunk_z)
        profile = profiles.resolve(biome.name)
        if profile is None:
            raise ProfileNotFound(biome.name)

        params = profiles.parameters
        chunk_seed = noise.hash_chunk(chunk_x, chunk_z, self.seed)
        multipliers = params.seed_multipliers
        sub_seeds = tuple(
            noise.mask_seed(chunk_seed * multipliers[i % len(multipliers)])
            for i in range(len(profile.noise_algorithms))
        )
        strength = params.chunk_variation_strength
        variation = (math.sin(chunk_x * DEFAULTS.VARIATION_X_FREQUENCY)
                     * math.cos(chunk_z * DEFAULTS.VARIATION_Z_FREQUENCY)
                     * DEFAULTS.VARIATION_AMPLITUDE * strength)

        return ChunkRecipe(
            chunk_x=chunk_x, chunk_z=chunk_z, size=size, seed=self.seed,
            biome=biome, profile=profile, sub_seeds=sub_seeds,
            variation=variation, local_strength=strength,
        )

    def generate(self, profiles: ProfileSet, chunk_x: int, chunk_z: int, size: int) -> Chunk:
        chunk_x, chunk_z, size = validate_request(chunk_x, chunk_z, size, self.max_chunk_size)
        start_time = time.perf_counter()

        recipe = self.recipe(profiles, chunk_x, chunk_z, size)
        recipes = {(chunk_x, chunk_z): recipe}

        def recipe_at(x: int, z: int) -> ChunkRecipe:
            if (x, z) not in recipes:
                recipes[(x, z)] = self.recipe(profiles, x, z, size)
            return recipes[(x, z)]

        params = profiles.parameters
        grid = recipe.grid()
        grid = EdgeBlender(params.edge_blend_margin, self.logger).blend(grid, recipe, recipe_at)
        grid = postprocess.post_process(grid, params.erosion_iterations,
                                        params.smoothing_passes, params.erosion_rate)

        low, high = recipe.profile.height_range
        grid = np.clip(grid, low, high)
        grid.setflags(write=False)

        self.logger.debug(
            f"Generated chunk ({chunk_x}, {chunk_z}) size {size} as '{recipe.biome.name}' "
            f"in {(time.perf_counter() - start_time) * 1000:.1f} ms."
        )
        return Chunk(
            x=chunk_x, z=chunk_z, size=size, height_grid=grid,
            biome=recipe.biome, height_range=recipe.profile.height_range,
        )
