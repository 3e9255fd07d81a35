"""
Occupancy Grid

Rasterizes detection boxes onto a coarse grid (20x20 by default).
Occupied cells are never used for text; a border margin is always occupied
so text is not placed flush against the image edge.
"""

import math
from enum import IntEnum
from typing import Sequence

import numpy as np

from detection_parser import Detection


class CellState(IntEnum):
    EMPTY = 0
    OCCUPIED = 1
    CLAIMED = 2  # Already part of an accepted empty space


class OccupancyGrid:
    """Square grid of cell states for one image."""

    def __init__(self, image_width: int, image_height: int, grid_size: int = 20):
        if image_width <= 0 or image_height <= 0:
            raise ValueError(f"Invalid image size: {image_width}x{image_height}")
        if grid_size <= 0:
            raise ValueError(f"Invalid grid size: {grid_size}")

        self.image_width = image_width
        self.image_height = image_height
        self.size = grid_size
        self.cells = np.full((grid_size, grid_size), CellState.EMPTY, dtype=np.uint8)

    @property
    def cell_width(self) -> int:
        return self.image_width // self.size

    @property
    def cell_height(self) -> int:
        return self.image_height // self.size

    def is_empty(self, row: int, col: int) -> bool:
        return self.cells[row, col] == CellState.EMPTY

    def mark(self, row_start: int, row_end: int, col_start: int, col_end: int, state: CellState):
        """Mark the inclusive cell range [row_start..row_end] x [col_start..col_end]."""
        self.cells[row_start:row_end + 1, col_start:col_end + 1] = state

    def count(self, state: CellState) -> int:
        return int(np.count_nonzero(self.cells == state))

    def to_cell(self, coord: float, dimension: int) -> int:
        """Map a pixel coordinate to a cell index, clamped to the grid."""
        if math.isnan(coord):
            return 0
        index = math.floor(coord / dimension * self.size)
        return max(0, min(self.size - 1, index))

    def __repr__(self):
        return (f"OccupancyGrid({self.image_width}x{self.image_height}, size={self.size}, "
                f"empty={self.count(CellState.EMPTY)})")


def build_occupancy_grid(
    image_width: int,
    image_height: int,
    detections: Sequence[Detection],
    grid_size: int = 20,
    margin: int = 1
) -> OccupancyGrid:
    """
    Build the occupancy grid for an image.

    Args:
        image_width: Image width in pixels
        image_height: Image height in pixels
        detections: Detected objects to avoid
        grid_size: Number of cells per dimension
        margin: Border width in cells that is always occupied

    Returns:
        OccupancyGrid with detection cells and border marked OCCUPIED
    """
    grid = OccupancyGrid(image_width, image_height, grid_size)

    for detection in detections:
        box = detection.box
        start_col = grid.to_cell(box.left, image_width)
        start_row = grid.to_cell(box.top, image_height)
        end_col = grid.to_cell(box.right, image_width)
        end_row = grid.to_cell(box.bottom, image_height)
        grid.mark(start_row, end_row, start_col, end_col, CellState.OCCUPIED)

    if margin > 0:
        grid.cells[:margin, :] = CellState.OCCUPIED
        grid.cells[-margin:, :] = CellState.OCCUPIED
        grid.cells[:, :margin] = CellState.OCCUPIED
        grid.cells[:, -margin:] = CellState.OCCUPIED

    return grid
