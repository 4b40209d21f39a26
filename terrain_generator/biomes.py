# terrain_generator/biomes.py

"""
================================================================================
BIOME CLASSIFIER
================================================================================
Decides which terrain profile governs a chunk.

Three independent large-scale fields (elevation, temperature, moisture) are
sampled at the chunk coordinate scaled down by BIOME_COORDINATE_SCALE, so a
biome region spans many chunks. A per-chunk jitter from the coordinate hash
lets profiles break up otherwise uniform regions.

Data Contract:
---------------
- Inputs: chunk coordinates, the world seed, a ProfileSet.
- Outputs: a BiomeDescriptor (profile name plus the four field values).
- Side Effects: None.
- Invariants: Pure function of its inputs; identical across calls and processes.
================================================================================
"""

from dataclasses import dataclass, asdict

from . import config as DEFAULTS
from . import noise
from .errors import ProfileNotFound
from .profiles import ProfileSet


@dataclass(frozen=True)
class BiomeDescriptor:
    name: str
    elevation: float
    temperature: float
    moisture: float
    jitter: float

    def to_dict(self) -> dict:
        return asdict(self)


def _field(chunk_x: int, chunk_z: int, frequency: float, seed: int) -> float:
    scale = DEFAULTS.BIOME_COORDINATE_SCALE
    return float(noise.fractal_noise(
        chunk_x * scale, chunk_z * scale, frequency, seed,
        octaves=DEFAULTS.BIOME_FIELD_OCTAVES,
        lacunarity=DEFAULTS.BIOME_FIELD_LACUNARITY,
        persistence=DEFAULTS.BIOME_FIELD_PERSISTENCE,
    ))


def biome_fields(chunk_x: int, chunk_z: int, seed: int) -> tuple[float, float, float, float]:
    """(elevation, temperature, moisture, jitter) for a chunk, each in [0, 1]."""
    elevation = _field(chunk_x, chunk_z, DEFAULTS.ELEVATION_FIELD_FREQUENCY,
                       seed + DEFAULTS.ELEVATION_SEED_OFFSET)
    temperature = _field(chunk_x, chunk_z, DEFAULTS.TEMPERATURE_FIELD_FREQUENCY,
                         seed + DEFAULTS.TEMPERATURE_SEED_OFFSET)
    moisture = _field(chunk_x, chunk_z, DEFAULTS.MOISTURE_FIELD_FREQUENCY,
                      seed + DEFAULTS.MOISTURE_SEED_OFFSET)
    return elevation, temperature, moisture, noise.jitter(chunk_x, chunk_z, seed)


class BiomeClassifier:
    def __init__(self, seed: int):
        self.seed = seed

    def classify(self, profiles: ProfileSet, chunk_x: int, chunk_z: int) -> BiomeDescriptor:
        elevation, temperature, moisture, jitter = biome_fields(chunk_x, chunk_z, self.seed)
        name = profiles.match_biome(elevation, temperature, moisture, jitter)
        if name is None:
            raise ProfileNotFound(
                None,
                f"No profile matches chunk ({chunk_x}, {chunk_z}) "
                f"(elevation={elevation:.3f}, temperature={temperature:.3f}, "
                f"moisture={moisture:.3f}) and no default profile is defined",
            )
        return BiomeDescriptor(name, elevation, temperature, moisture, jitter)


def classify(profiles: ProfileSet, chunk_x: int, chunk_z: int, seed: int) -> BiomeDescriptor:
    return BiomeClassifier(seed).classify(profiles, chunk_x, chunk_z)
