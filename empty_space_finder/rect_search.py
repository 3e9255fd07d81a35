"""
Empty Rectangle Search

Greedy scan of the occupancy grid for empty rectangles.

From each empty origin (row-major order) the width is grown first along the
row, then the height is grown while every cell across that width stays empty.
The width is not re-optimized per row, so this does not always find the
largest rectangle of a region. Accepted rectangles are claimed so later
origins inside them are skipped.

Height counts the origin row, so a single clear row is a one-cell-tall
candidate (kept when its pixel height reaches the minimum), not a
zero-height one that is always rejected.
"""

from typing import List, Tuple

from geometry import Rect
from logging_config import get_logger
from .occupancy_grid import CellState, OccupancyGrid

logger = get_logger('rect_search')


def _grow(grid: OccupancyGrid, start_row: int, start_col: int) -> Tuple[int, int]:
    """Return (width, height) in cells of the greedy rectangle at an origin."""
    size = grid.size

    width = 0
    while start_col + width < size and grid.is_empty(start_row, start_col + width):
        width += 1

    height = 1  # origin row
    while start_row + height < size:
        row = start_row + height
        if not all(grid.is_empty(row, start_col + w) for w in range(width)):
            break
        height += 1

    return width, height


def search_empty_rects(
    grid: OccupancyGrid,
    min_width: int = 200,
    min_height: int = 100
) -> List[Rect]:
    """
    Enumerate empty rectangles in discovery order.

    The grid is modified in place: cells of accepted rectangles become CLAIMED.

    Args:
        grid: Occupancy grid built for the image
        min_width: Minimum rectangle width in pixels
        min_height: Minimum rectangle height in pixels

    Returns:
        Unranked list of pixel rectangles
    """
    cell_w = grid.cell_width
    cell_h = grid.cell_height
    found = []

    for start_row in range(grid.size):
        for start_col in range(grid.size):
            if not grid.is_empty(start_row, start_col):
                continue

            width, height = _grow(grid, start_row, start_col)

            real_width = width * cell_w
            real_height = height * cell_h
            if real_width < min_width or real_height < min_height:
                continue

            found.append(Rect(
                start_col * cell_w,
                start_row * cell_h,
                (start_col + width) * cell_w,
                (start_row + height) * cell_h
            ))

            grid.mark(start_row, start_row + height - 1,
                      start_col, start_col + width - 1, CellState.CLAIMED)

    logger.debug(f"Found {len(found)} empty rectangle(s) in {grid!r}")
    return found
