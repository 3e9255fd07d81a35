"""
Geometry Helpers

Pixel-space rectangle shared by detections, empty spaces and text layout.
"""

import math
from dataclasses import dataclass
from typing import Dict


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]. NaN collapses to low."""
    if math.isnan(value):
        return low
    return max(low, min(high, value))


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in pixel coordinates (left <= right, top <= bottom)."""
    left: float
    top: float
    right: float
    bottom: float

    @classmethod
    def from_edges(cls, left: float, top: float, right: float, bottom: float) -> 'Rect':
        """Build a rect from edges given in any order."""
        return cls(min(left, right), min(top, bottom), max(left, right), max(top, bottom))

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def center_x(self) -> float:
        return self.left + self.width / 2

    @property
    def center_y(self) -> float:
        return self.top + self.height / 2

    @property
    def area(self) -> float:
        return self.width * self.height

    def clamped(self, image_width: float, image_height: float) -> 'Rect':
        """Return this rect clipped to the image bounds."""
        left = clamp(self.left, 0, image_width)
        top = clamp(self.top, 0, image_height)
        right = clamp(self.right, left, image_width)
        bottom = clamp(self.bottom, top, image_height)
        return Rect(left, top, right, bottom)

    def mirrored(self, image_width: float) -> 'Rect':
        """Return the horizontal mirror image of this rect."""
        return Rect(image_width - self.right, self.top, image_width - self.left, self.bottom)

    def to_dict(self) -> Dict[str, float]:
        return {
            'left': self.left,
            'top': self.top,
            'right': self.right,
            'bottom': self.bottom,
            'width': self.width,
            'height': self.height,
        }
