"""
Placement Configuration

Tunable parameters for detection parsing, empty space search and text fitting.
Every value can be overridden through POSTER_* environment variables
(loaded from .env when present).
"""

import os
from dataclasses import dataclass, asdict
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv


DEFAULT_SAMPLE_TEXT = "GALLERY\nEXHIBITION\nAPRIL 15-20"


@dataclass
class PlacementConfig:
    """All tunables of one poster composition run."""
    # Detection parsing
    confidence_threshold: float = 0.5
    # Occupancy grid / empty space search
    grid_size: int = 20
    margin: int = 1
    min_space_width: int = 200
    min_space_height: int = 100
    # Candidate ranking
    center_weight: float = 0.6
    size_weight: float = 0.4
    # Text style
    busy_swatch_threshold: int = 3
    stroke_width: int = 2
    # Text fitting
    min_font_size: int = 12
    max_font_size: int = 1000
    fit_margin: float = 0.9
    # Image loading
    max_image_dim: int = 1024
    # Visualization
    max_visualized_spaces: int = 3
    labels_path: Optional[str] = None
    sample_text: str = DEFAULT_SAMPLE_TEXT

    @property
    def min_space_size(self) -> Tuple[int, int]:
        return self.min_space_width, self.min_space_height

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_env(cls) -> 'PlacementConfig':
        """
        Build a config from POSTER_* environment variables.

        Unset variables keep their defaults. Invalid values raise ValueError
        so misconfiguration fails at startup instead of mid-request.
        """
        load_dotenv()

        defaults = cls()
        config = cls(
            confidence_threshold=_env_float('POSTER_CONFIDENCE_THRESHOLD', defaults.confidence_threshold),
            grid_size=_env_int('POSTER_GRID_SIZE', defaults.grid_size),
            margin=_env_int('POSTER_MARGIN', defaults.margin),
            min_space_width=_env_int('POSTER_MIN_SPACE_WIDTH', defaults.min_space_width),
            min_space_height=_env_int('POSTER_MIN_SPACE_HEIGHT', defaults.min_space_height),
            center_weight=_env_float('POSTER_CENTER_WEIGHT', defaults.center_weight),
            size_weight=_env_float('POSTER_SIZE_WEIGHT', defaults.size_weight),
            busy_swatch_threshold=_env_int('POSTER_BUSY_SWATCH_THRESHOLD', defaults.busy_swatch_threshold),
            stroke_width=_env_int('POSTER_STROKE_WIDTH', defaults.stroke_width),
            min_font_size=_env_int('POSTER_MIN_FONT_SIZE', defaults.min_font_size),
            max_font_size=_env_int('POSTER_MAX_FONT_SIZE', defaults.max_font_size),
            fit_margin=_env_float('POSTER_FIT_MARGIN', defaults.fit_margin),
            max_image_dim=_env_int('MAX_IMAGE_DIM', defaults.max_image_dim),
            max_visualized_spaces=_env_int('POSTER_MAX_VISUALIZED_SPACES', defaults.max_visualized_spaces),
            labels_path=os.getenv('LABELS_PATH') or None,
            sample_text=os.getenv('POSTER_SAMPLE_TEXT', defaults.sample_text),
        )
        config.validate()
        return config

    def validate(self):
        """Raise ValueError naming the first tunable that is out of range."""
        checks = [
            ('confidence_threshold', 0.0 <= self.confidence_threshold <= 1.0, 'in [0, 1]'),
            ('grid_size', self.grid_size >= 1, 'at least 1'),
            ('margin', 0 <= self.margin < self.grid_size, 'in [0, grid_size)'),
            ('min_space_width', self.min_space_width >= 0, 'non-negative'),
            ('min_space_height', self.min_space_height >= 0, 'non-negative'),
            ('center_weight', self.center_weight >= 0.0, 'non-negative'),
            ('size_weight', self.size_weight >= 0.0, 'non-negative'),
            ('busy_swatch_threshold', self.busy_swatch_threshold >= 0, 'non-negative'),
            ('stroke_width', self.stroke_width >= 0, 'non-negative'),
            ('min_font_size', self.min_font_size >= 1, 'at least 1'),
            ('max_font_size', self.max_font_size >= self.min_font_size, 'at least min_font_size'),
            ('fit_margin', 0.0 < self.fit_margin <= 1.0, 'in (0, 1]'),
            ('max_image_dim', self.max_image_dim >= 1, 'at least 1'),
            ('max_visualized_spaces', self.max_visualized_spaces >= 0, 'non-negative'),
        ]
        for name, ok, expected in checks:
            if not ok:
                raise ValueError(f"{name} must be {expected}, got {getattr(self, name)!r}")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")
