# terrain_generator/__init__.py

# Public API of the terrain generator package.

from .engine import TerrainEngine
from .errors import ConfigValidationError, InvalidChunkRequest, ProfileNotFound, TerrainError
from .generator import Chunk, ChunkGenerator
from .profiles import TerrainProfileRegistry

__all__ = [
    "TerrainEngine",
    "TerrainProfileRegistry",
    "ChunkGenerator",
    "Chunk",
    "TerrainError",
    "ConfigValidationError",
    "ProfileNotFound",
    "InvalidChunkRequest",
]
