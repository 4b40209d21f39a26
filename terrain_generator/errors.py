# terrain_generator/errors.py

"""
Exception types raised by the terrain generator.

All of them derive from TerrainError so a caller can catch the whole family,
and from the matching built-in so generic handlers keep working.
"""


class TerrainError(Exception):
    """Base class for all terrain generator errors."""


class ConfigValidationError(TerrainError, ValueError):
    """A terrain profile document is malformed or inconsistent.

    Raised at load time. The previously active profile set stays in use.
    """

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class ProfileNotFound(TerrainError, LookupError):
    """A biome was classified but no profile (and no default) matches it."""

    def __init__(self, name: str | None, message: str | None = None):
        self.name = name
        super().__init__(message or f"No terrain profile for biome '{name}'")


class InvalidChunkRequest(TerrainError, ValueError):
    """A chunk request has bad coordinates or size."""
