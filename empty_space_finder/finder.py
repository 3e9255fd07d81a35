"""
Empty Space Finder - Main Module

Combines grid building, rectangle search and ranking.
"""

from typing import List, Optional, Sequence

from detection_parser import Detection
from logging_config import get_logger
from poster_config import PlacementConfig
from .occupancy_grid import build_occupancy_grid
from .rect_search import search_empty_rects
from .scoring import EmptySpace, rank_candidates, score_candidate

logger = get_logger('empty_space_finder')


def find_empty_spaces(
    image_width: int,
    image_height: int,
    detections: Sequence[Detection],
    config: Optional[PlacementConfig] = None
) -> List[EmptySpace]:
    """
    Find empty spaces suitable for text placement.

    This is the main entry point.

    Args:
        image_width: Image width in pixels
        image_height: Image height in pixels
        detections: Detected objects to avoid
        config: Tunables (grid size, margin, minimum size, weights)

    Returns:
        Empty spaces sorted best first; empty when nothing is large enough
    """
    config = config or PlacementConfig()

    grid = build_occupancy_grid(
        image_width, image_height, detections,
        grid_size=config.grid_size,
        margin=config.margin
    )
    rects = search_empty_rects(
        grid,
        min_width=config.min_space_width,
        min_height=config.min_space_height
    )

    candidates = [
        score_candidate(rect, image_width, image_height,
                        config.center_weight, config.size_weight)
        for rect in rects
    ]
    ranked = rank_candidates(candidates)

    if ranked:
        logger.info(f"Found {len(ranked)} empty space(s), best weight {ranked[0].weight:.3f}")
    else:
        logger.info(f"No empty space of at least {config.min_space_width}x{config.min_space_height}px")

    return ranked
