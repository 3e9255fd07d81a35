"""
Empty Space Finder Package

Finds empty rectangular regions of an image that are suitable for text
placement, given the bounding boxes of detected objects.
"""

from .occupancy_grid import CellState, OccupancyGrid, build_occupancy_grid
from .rect_search import search_empty_rects
from .scoring import EmptySpace, rank_candidates, score_candidate
from .finder import find_empty_spaces

__all__ = [
    'CellState', 'OccupancyGrid', 'build_occupancy_grid',
    'search_empty_rects',
    'EmptySpace', 'rank_candidates', 'score_candidate',
    'find_empty_spaces',
]
