"""
Background Color Analyzer and Text Style Selector

Summarizes the colors behind a text region and derives a legible style:
- Dark background (luminance < 128) = white text, otherwise black text
- Busy background (more than 3 swatches) = outline stroke in the text color
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import cv2
import numpy as np
from PIL import Image

from geometry import Rect
from logging_config import get_logger

logger = get_logger('text_style')

RGB = Tuple[int, int, int]

WHITE: RGB = (255, 255, 255)
BLACK: RGB = (0, 0, 0)

DARK_LUMINANCE_THRESHOLD = 128
BUSY_SWATCH_THRESHOLD = 3

# Regions are downsampled to this many pixels before quantization
MAX_SAMPLE_AREA = 112 * 112
MAX_PALETTE_COLORS = 16

DEFAULT_FONT_FAMILY = 'DejaVuSans'


@dataclass(frozen=True)
class Swatch:
    """Representative color with the number of pixels it stands for."""
    rgb: RGB
    population: int

    @property
    def hex(self) -> str:
        return '#{:02x}{:02x}{:02x}'.format(*self.rgb)


@dataclass(frozen=True)
class BackgroundSummary:
    """Swatches of a region, most common first."""
    swatches: Tuple[Swatch, ...] = ()

    @property
    def dominant(self) -> Optional[Swatch]:
        return self.swatches[0] if self.swatches else None

    @property
    def swatch_count(self) -> int:
        return len(self.swatches)


@dataclass
class TextStyle:
    """Text paint settings. font_size is set by the fit sizer."""
    color: RGB
    stroke_enabled: bool
    is_dark_background: bool
    stroke_width: int = 2
    font_weight: str = 'bold'
    font_family: str = DEFAULT_FONT_FAMILY
    font_size: float = 12.0

    @property
    def hex_color(self) -> str:
        return '#{:02x}{:02x}{:02x}'.format(*self.color)

    def to_dict(self) -> Dict:
        return {
            'color': self.hex_color,
            'stroke_enabled': self.stroke_enabled,
            'stroke_width': self.stroke_width if self.stroke_enabled else 0,
            'is_dark_background': self.is_dark_background,
            'font_weight': self.font_weight,
            'font_family': self.font_family,
            'font_size': self.font_size,
        }


PaletteExtractor = Callable[[Image.Image], List[Swatch]]


def quantize_palette(region: Image.Image, max_colors: int = MAX_PALETTE_COLORS) -> List[Swatch]:
    """
    Extract representative colors from an image region.

    The region is downsampled to at most MAX_SAMPLE_AREA pixels, then
    median-cut quantized. Only palette entries actually used become swatches.

    Args:
        region: Region to analyze
        max_colors: Maximum number of palette colors

    Returns:
        Swatches sorted by population, largest first
    """
    pixels = np.asarray(region.convert('RGB'))
    h, w = pixels.shape[:2]

    if h * w > MAX_SAMPLE_AREA:
        scale = (MAX_SAMPLE_AREA / float(h * w)) ** 0.5
        new_w = max(1, int(w * scale))
        new_h = max(1, int(h * scale))
        pixels = cv2.resize(pixels, (new_w, new_h), interpolation=cv2.INTER_AREA)

    sample = Image.fromarray(np.ascontiguousarray(pixels))
    quantized = sample.quantize(colors=max_colors, method=Image.Quantize.MEDIANCUT)

    palette = quantized.getpalette() or []
    used = quantized.getcolors(maxcolors=256) or []

    swatches = []
    for population, index in used:
        r, g, b = palette[index * 3:index * 3 + 3]
        swatches.append(Swatch(rgb=(r, g, b), population=population))

    swatches.sort(key=lambda s: s.population, reverse=True)
    return swatches


def crop_region(image: Image.Image, rect: Rect) -> Optional[Image.Image]:
    """Crop rect (clamped to the image) or None if nothing is left."""
    left = max(0, int(rect.left))
    top = max(0, int(rect.top))
    right = min(image.width, int(rect.right))
    bottom = min(image.height, int(rect.bottom))

    if right - left <= 0 or bottom - top <= 0:
        return None
    return image.crop((left, top, right, bottom))


def analyze_background(
    image: Image.Image,
    rect: Rect,
    extractor: PaletteExtractor = quantize_palette
) -> BackgroundSummary:
    """
    Summarize the background colors behind a candidate text region.

    Args:
        image: Full image
        rect: Region in pixel coordinates
        extractor: Color quantization function

    Returns:
        BackgroundSummary; empty when the region is degenerate
    """
    region = crop_region(image, rect)
    if region is None:
        logger.warning(f"Degenerate background region {rect}, assuming dark background")
        return BackgroundSummary()

    swatches = extractor(region)
    logger.debug(f"Background region {region.size}: {len(swatches)} swatch(es)")
    return BackgroundSummary(swatches=tuple(swatches))


def luminance(rgb: RGB) -> float:
    r, g, b = rgb
    return 0.299 * r + 0.587 * g + 0.114 * b


def select_text_style(
    summary: BackgroundSummary,
    busy_swatch_threshold: int = BUSY_SWATCH_THRESHOLD,
    stroke_width: int = 2
) -> TextStyle:
    """
    Choose text color and outline from a background summary.

    Args:
        summary: Background colors of the text region
        busy_swatch_threshold: Swatch count above which an outline is added
        stroke_width: Outline width when enabled

    Returns:
        TextStyle with maximum contrast color
    """
    dominant = summary.dominant
    if dominant is None:
        is_dark = True
    else:
        is_dark = luminance(dominant.rgb) < DARK_LUMINANCE_THRESHOLD

    return TextStyle(
        color=WHITE if is_dark else BLACK,
        stroke_enabled=summary.swatch_count > busy_swatch_threshold,
        is_dark_background=is_dark,
        stroke_width=stroke_width
    )
