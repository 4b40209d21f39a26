# terrain_generator/heightmap_image.py

"""
================================================================================
HEIGHTMAP IMAGE ENCODING
================================================================================
Converts a chunk's height grid into grayscale pixel data.

It is designed to be a pure, stateless utility. The raw RGBA bytes are what
the generation API hands to clients; the Pillow helpers are used by the
offline baker to write PNG files.

Data Contract:
---------------
- Inputs: a Chunk, optionally an explicit (min, max) height range.
- Outputs: row-major RGBA bytes, size * size * 4 long; or a Pillow Image.
- Side Effects: save_heightmap_png writes one file.
- Invariants: R = G = B = gray, A = 255. gray is 0 at the range minimum and
  255 at the maximum.
================================================================================
"""

import os

import numpy as np
from PIL import Image

from . import config as DEFAULTS


def gray_values(height_grid: np.ndarray, height_range: tuple[float, float]) -> np.ndarray:
    """Scales heights in [min, max] to uint8 gray levels."""
    low, high = height_range
    span = high - low
    if span <= 0:
        return np.zeros(height_grid.shape, dtype=np.uint8)
    normalized = (np.asarray(height_grid, dtype=np.float64) - low) / span
    return np.clip(np.floor(normalized * DEFAULTS.GRAY_LEVELS), 0, DEFAULTS.GRAY_LEVELS).astype(np.uint8)


def get_heightmap_rgba_array(chunk, height_range: tuple[float, float] | None = None) -> np.ndarray:
    """(size, size, 4) uint8 array, indexed [row][col][channel]."""
    gray = gray_values(chunk.height_grid, height_range or chunk.height_range)
    alpha = np.full(gray.shape, DEFAULTS.ALPHA_OPAQUE, dtype=np.uint8)
    return np.stack([gray, gray, gray, alpha], axis=-1)


def encode_heightmap(chunk, height_range: tuple[float, float] | None = None) -> bytes:
    """Row-major RGBA bytes of the chunk's heightmap."""
    return np.ascontiguousarray(get_heightmap_rgba_array(chunk, height_range)).tobytes()


def heightmap_image(chunk, height_range: tuple[float, float] | None = None) -> Image.Image:
    """Single-channel grayscale Pillow image of the chunk."""
    # A 2D uint8 array maps to Pillow's 'L' mode.
    return Image.fromarray(gray_values(chunk.height_grid, height_range or chunk.height_range))


def save_heightmap_png(chunk, directory: str, file_name: str,
                       height_range: tuple[float, float] | None = None) -> str:
    os.makedirs(directory, exist_ok=True)
    file_path = os.path.join(directory, f"{file_name}.png")
    heightmap_image(chunk, height_range).save(file_path, 'PNG')
    return file_path
