# terrain_generator/blending.py

"""
================================================================================
EDGE BLENDER
================================================================================
Makes independently generated chunks meet without a visible step.

Both chunks on either side of a border evaluate the same "seam" value: the
mean of the two chunks' raw heights at the boundary line between their edge
cells (half a cell outside each of them). Edge cells take the seam value
exactly and cells further in ramp linearly back to their own height over
`margin` cells. Because the seam is a symmetric function of the two
chunks' recipes, the last column of one chunk and the first column of the
next are the same number.

Corner cells are shared by four chunks and take the mean of all four at the
corner point.

Data Contract:
---------------
- Inputs:
    - grid: (size, size) raw heights of the chunk, indexed [row=z][col=x].
    - recipe: the chunk's own recipe.
    - recipe_at: callable (chunk_x, chunk_z) -> recipe for a neighbour.
      Neighbours are re-derived, never read from the chunk cache.
- Outputs:
    - A new (size, size) array. The input is not modified.
- Side Effects: Logs a warning when neighbouring height ranges are disjoint.
- Invariants:
    - Every value stays inside the chunk's own height range.
    - With overlapping ranges, border cells equal the neighbour's border cells.
================================================================================
"""

import logging

import numpy as np


class EdgeBlender:
    def __init__(self, margin: int, logger: logging.Logger | None = None):
        self.margin = margin
        self.logger = logger or logging.getLogger(__name__)

    def shared_height(self, recipes, world_x, world_z, own) -> np.ndarray:
        """
        Mean height of several chunk recipes at the same world coordinates.

        Recipes are summed in (chunk_x, chunk_z) order and the mean is clamped
        to the intersection of their height ranges, so every participant
        computes an identical, in-range value.
        """
        ordered = sorted(recipes, key=lambda r: (r.chunk_x, r.chunk_z))
        total = None
        for recipe in ordered:
            heights = recipe.raw_heights(world_x, world_z)
            total = heights if total is None else total + heights
        mean = total / len(ordered)

        low = max(r.profile.height_range[0] for r in ordered)
        high = min(r.profile.height_range[1] for r in ordered)
        if low > high:
            names = ", ".join(sorted({r.profile.name for r in ordered}))
            self.logger.warning(
                f"Height ranges of neighbouring profiles do not overlap ({names}); "
                f"chunk ({own.chunk_x}, {own.chunk_z}) keeps its own range at this seam."
            )
            low, high = own.profile.height_range
        return np.clip(mean, low, high)

    def weights(self, size: int) -> np.ndarray:
        """Per-index blend weight: 0 on the border, 1 at `margin` cells and beyond."""
        index = np.arange(size)
        distance = np.minimum(index, size - 1 - index)
        return np.minimum(distance / self.margin, 1.0)

    def blend(self, grid: np.ndarray, recipe, recipe_at) -> np.ndarray:
        size = grid.shape[0]
        # A single cell is every border at once; nothing sensible to blend.
        if self.margin <= 0 or size < 2:
            return grid.copy()

        cx, cz = recipe.chunk_x, recipe.chunk_z
        x0, z0 = cx * size, cz * size
        index = np.arange(size)
        cols_x = (x0 + index).astype(np.float64)
        rows_z = (z0 + index).astype(np.float64)
        west_line = np.full(size, x0 - 0.5)
        east_line = np.full(size, x0 + size - 0.5)
        north_line = np.full(size, z0 - 0.5)
        south_line = np.full(size, z0 + size - 0.5)

        # Seam values: one per row for x borders, one per column for z borders.
        west = self.shared_height([recipe, recipe_at(cx - 1, cz)], west_line, rows_z, recipe)
        east = self.shared_height([recipe, recipe_at(cx + 1, cz)], east_line, rows_z, recipe)
        north = self.shared_height([recipe, recipe_at(cx, cz - 1)], cols_x, north_line, recipe)
        south = self.shared_height([recipe, recipe_at(cx, cz + 1)], cols_x, south_line, recipe)

        w = self.weights(size)
        weight_x = np.broadcast_to(w[np.newaxis, :], (size, size))
        weight_z = np.broadcast_to(w[:, np.newaxis], (size, size))

        west_side = index <= size - 1 - index
        target_x = np.where(west_side[np.newaxis, :], west[:, np.newaxis], east[:, np.newaxis])
        target_z = np.where(west_side[:, np.newaxis], north[np.newaxis, :], south[np.newaxis, :])

        # The more restrictive (smaller) weight wins; ties go to the x axis.
        use_x = weight_x <= weight_z
        weight = np.where(use_x, weight_x, weight_z)
        target = np.where(use_x, target_x, target_z)
        blended = np.where(weight < 1.0, weight * grid + (1.0 - weight) * target, grid)

        last = size - 1
        corners = (
            (0, 0, x0 - 0.5, z0 - 0.5, (-1, 0), (-1, 0)),
            (0, last, x0 + size - 0.5, z0 - 0.5, (0, 1), (-1, 0)),
            (last, 0, x0 - 0.5, z0 + size - 0.5, (-1, 0), (0, 1)),
            (last, last, x0 + size - 0.5, z0 + size - 0.5, (0, 1), (0, 1)),
        )
        for row, col, corner_x, corner_z, dxs, dzs in corners:
            sharing = [recipe_at(cx + dx, cz + dz) for dx in dxs for dz in dzs]
            value = self.shared_height(sharing, np.array([corner_x]), np.array([corner_z]), recipe)
            blended[row, col] = value[0]

        return blended
