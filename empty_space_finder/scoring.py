"""
Candidate Scoring

Ranks empty spaces: regions near the image center and close to square
score higher than thin slivers at the edges.
"""

from dataclasses import dataclass
from typing import Dict, List, Sequence

from geometry import Rect, clamp

CENTER_WEIGHT = 0.6
SIZE_WEIGHT = 0.4


@dataclass(frozen=True)
class EmptySpace:
    """Candidate text region with its ranking weight."""
    rect: Rect
    weight: float

    @property
    def area(self) -> float:
        return self.rect.area

    def to_dict(self) -> Dict:
        return {
            'rect': self.rect.to_dict(),
            'weight': round(self.weight, 4),
            'area': self.area,
        }


def center_weight(rect: Rect, image_width: int, image_height: int) -> float:
    """Higher weight the closer the rect center is to the image center."""
    center_x = image_width / 2
    center_y = image_height / 2

    distance_x = abs(center_x - rect.center_x) / center_x
    distance_y = abs(center_y - rect.center_y) / center_y
    total_distance = (distance_x + distance_y) / 2

    return clamp(1.0 - total_distance, 0.0, 1.0)


def size_weight(width: float, height: float) -> float:
    """Aspect ratio closeness to 1:1."""
    longest = max(width, height)
    if longest <= 0:
        return 0.0
    return clamp(min(width, height) / longest, 0.0, 1.0)


def score_candidate(
    rect: Rect,
    image_width: int,
    image_height: int,
    center_share: float = CENTER_WEIGHT,
    size_share: float = SIZE_WEIGHT
) -> EmptySpace:
    weight = (center_weight(rect, image_width, image_height) * center_share +
              size_weight(rect.width, rect.height) * size_share)
    return EmptySpace(rect=rect, weight=weight)


def rank_candidates(candidates: Sequence[EmptySpace]) -> List[EmptySpace]:
    """Sort by descending weight; ties keep discovery order."""
    return sorted(candidates, key=lambda c: c.weight, reverse=True)
