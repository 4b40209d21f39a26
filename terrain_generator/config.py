# terrain_generator/config.py

"""
================================================================================
INTERNAL DEFAULT CONFIGURATION
================================================================================
This module contains the default, fallback internal constants for the terrain
generator. These values are used if they are not explicitly provided by the
caller's settings dictionary or by the terrain profile document.

DO NOT MODIFY THIS FILE FOR A SPECIFIC WORLD.
Instead, pass a settings dictionary to the TerrainEngine instance, or edit the
terrain profile document it loads.
================================================================================
"""
import os

# --- Seeds & Hashing ---
DEFAULT_SEED = 12345
# Large primes used by the chunk-coordinate hash. The same triple is used for
# the chunk seed and for the biome jitter so both stay reproducible.
CHUNK_HASH_PRIME_X = 73856093
CHUNK_HASH_PRIME_Z = 19349663
# All seeds and hashes live in unsigned 32-bit space.
SEED_MASK = 0xFFFFFFFF

# Prime offsets for the independent biome fields, so elevation, temperature
# and moisture never sample the same noise.
ELEVATION_SEED_OFFSET = 7919
TEMPERATURE_SEED_OFFSET = 12347
MOISTURE_SEED_OFFSET = 98761
# Offset for the per-cell local variation layer.
LOCAL_VARIATION_SEED_OFFSET = 54321

# --- Biome Fields ---
# Chunk coordinates are scaled down before sampling so biomes span many chunks.
BIOME_COORDINATE_SCALE = 0.15
ELEVATION_FIELD_FREQUENCY = 0.08
TEMPERATURE_FIELD_FREQUENCY = 0.12
MOISTURE_FIELD_FREQUENCY = 0.09
BIOME_FIELD_OCTAVES = 3
BIOME_FIELD_PERSISTENCE = 0.5
BIOME_FIELD_LACUNARITY = 2.0

# --- Chunk Variation ---
# A smooth, chunk-level offset so neighbouring chunks of the same biome
# are not carbon copies. Multiplied by chunk_variation_strength.
VARIATION_X_FREQUENCY = 0.47
VARIATION_Z_FREQUENCY = 0.61
VARIATION_AMPLITUDE = 3.0
# Fine per-cell variation, sampled in world space.
LOCAL_VARIATION_FREQUENCY = 0.1
LOCAL_VARIATION_AMPLITUDE = 2.0

# --- Octave Sums ---
FRACTAL_OCTAVE_SEED_STEP = 1000
DEFAULT_LACUNARITY = 2.0
DEFAULT_PERSISTENCE = 0.5

# --- Generation Parameters (document fallbacks) ---
DEFAULT_GENERATION_PARAMETERS = {
    "chunk_variation_strength": 0.0,
    "edge_blend_margin": 8,
    "seed_multipliers": [1, 31, 127, 521, 2053],
    "erosion_iterations": 0,
    "smoothing_passes": 0,
    "erosion_rate": 0.1,
}

# --- Post-Processing ---
EROSION_RATE = DEFAULT_GENERATION_PARAMETERS["erosion_rate"]

# --- Cache ---
CACHE_CAPACITY = 100
# 'lru' refreshes an entry on every hit; 'fifo' evicts strictly by insertion.
EVICTION_POLICY = 'lru'

# --- Requests ---
DEFAULT_CHUNK_SIZE = 64
MAX_CHUNK_SIZE = 1024
# The largest region, in chunks per axis, a single region request may cover.
MAX_REGION_SPAN = 4
# Worker threads for region generation. None lets the executor decide.
MAX_REGION_WORKERS = None

# --- Heightmap Images ---
GRAY_LEVELS = 255
ALPHA_OPAQUE = 255

# --- Profile Documents ---
DEFAULT_PROFILE_PATH = os.path.join(os.path.dirname(__file__), "data", "terrain_types.json")
