"""
Shared fixtures for the terrain generator tests.

Profile documents are built as plain dicts so each test can tweak them, and
written to tmp_path when a test needs a real file for hot reload.
"""

import copy
import json
import logging
import os

import pytest

from terrain_generator.profiles import TerrainProfileRegistry, parse_document


# =============================================================================
# Documents
# =============================================================================

MOUNTAIN_DOCUMENT = {
    "terrain_types": {
        "mountain": {
            "height_range": [50, 800],
            "noise_algorithms": [
                {"kind": "mountain-spine", "frequency": 0.01, "amplitude_factor": 1.0, "octaves": 8},
            ],
            "biome_conditions": {"default": True},
        },
    },
    "generation_parameters": {
        "chunk_variation_strength": 0.0,
        "edge_blend_margin": 8,
        "seed_multipliers": [1, 31, 127],
    },
}

# Two biomes split by the per-chunk jitter so neighbouring chunks regularly
# disagree. Ranges overlap on [20, 60].
MIXED_DOCUMENT = {
    "terrain_types": {
        "hills": {
            "height_range": [20, 120],
            "noise_algorithms": [
                {"kind": "rolling_hills", "frequency": 0.03, "amplitude_factor": 0.7},
                {"kind": "ridged", "frequency": 0.05, "amplitude_factor": 0.3, "octaves": 3},
            ],
            "biome_conditions": {"jitter_range": [0.0, 0.5]},
        },
        "plains": {
            "height_range": [0, 60],
            "noise_algorithms": [
                {"kind": "gentle_hills", "frequency": 0.02, "amplitude_factor": 0.6},
                {"kind": "grass_tufts", "frequency": 0.3, "amplitude_factor": 0.1},
            ],
            "biome_conditions": {"default": True},
        },
    },
    "generation_parameters": {
        "chunk_variation_strength": 1.0,
        "edge_blend_margin": 4,
        "seed_multipliers": [1, 31, 127],
        "erosion_iterations": 2,
        "smoothing_passes": 1,
    },
}


def write_document(path, document) -> str:
    """Writes a document and pushes its mtime forward so a reload always sees it."""
    path = str(path)
    previous = os.stat(path).st_mtime_ns if os.path.exists(path) else None
    with open(path, "w") as f:
        if isinstance(document, str):
            f.write(document)
        else:
            json.dump(document, f)
    if previous is not None:
        bumped = previous + 1_000_000_000
        os.utime(path, ns=(bumped, bumped))
    return path


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def rewrite():
    """The write_document helper, for tests that edit a document mid-test."""
    return write_document


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("terrain-tests")


@pytest.fixture
def mountain_document() -> dict:
    return copy.deepcopy(MOUNTAIN_DOCUMENT)


@pytest.fixture
def mixed_document() -> dict:
    return copy.deepcopy(MIXED_DOCUMENT)


@pytest.fixture
def mountain_profiles(mountain_document):
    return parse_document(mountain_document)


@pytest.fixture
def mixed_profiles(mixed_document):
    return parse_document(mixed_document)


@pytest.fixture
def profile_file(tmp_path, mixed_document) -> str:
    return write_document(tmp_path / "terrain_types.json", mixed_document)


@pytest.fixture
def file_registry(profile_file, logger) -> TerrainProfileRegistry:
    return TerrainProfileRegistry(profile_file, logger=logger)
