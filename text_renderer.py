"""
Text Renderer Module

Fits and lays out a multi-line text block inside an empty space and draws it
with Pillow:
- Font size: largest size whose lines fit 90% of the region
- Layout: block vertically centered, each line horizontally centered
- Drawing: rect outlines and text runs applied to a Pillow image copy
"""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, List, Protocol, Sequence

from PIL import Image, ImageDraw, ImageFont

from detection_parser import Detection
from empty_space_finder import EmptySpace
from geometry import Rect
from logging_config import get_logger
from text_style import RGB, TextStyle, WHITE

logger = get_logger('text_renderer')

MIN_FONT_SIZE = 12
MAX_FONT_SIZE = 1000
FIT_MARGIN = 0.9

# Bold face lookup order; Pillow searches the system font dirs for bare names
BOLD_FONT_FILES = [
    'DejaVuSans-Bold.ttf',
    '/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf',
    'Arial Bold.ttf',
    'arialbd.ttf',
]

# Debug overlay colors for the top empty spaces
SPACE_COLORS: List[RGB] = [
    (255, 0, 0),
    (0, 255, 0),
    (0, 0, 255),
    (255, 255, 0),
    (0, 255, 255),
]
DETECTION_COLOR: RGB = (255, 0, 0)


class TextMeasurer(Protocol):
    """Text metrics provider."""

    def measure(self, text: str, font_size: float) -> float:
        """Pixel width of a single line."""
        ...

    def line_spacing(self, font_size: float) -> float:
        """Vertical distance between consecutive baselines."""
        ...


@lru_cache(maxsize=64)
def load_font(size: int) -> ImageFont.FreeTypeFont:
    """
    Load the bold default face with fallback.

    Args:
        size: Font size in pixels

    Returns:
        PIL ImageFont
    """
    for font_file in BOLD_FONT_FILES:
        try:
            return ImageFont.truetype(font_file, size)
        except OSError:
            continue
    logger.warning(f"No bold TrueType font found, using Pillow default at {size}px")
    return ImageFont.load_default(size=size)


class PillowTextMeasurer:
    """TextMeasurer backed by Pillow font metrics."""

    def measure(self, text: str, font_size: float) -> float:
        return float(load_font(int(round(font_size))).getlength(text))

    def line_spacing(self, font_size: float) -> float:
        ascent, descent = load_font(int(round(font_size))).getmetrics()
        return float(ascent + descent)


def split_lines(text: str) -> List[str]:
    """Explicit line breaks only; empty text has no lines."""
    if not text:
        return []
    return text.replace('\r\n', '\n').split('\n')


def fit_font_size(
    text: str,
    max_width: float,
    max_height: float,
    measurer: TextMeasurer,
    min_size: int = MIN_FONT_SIZE,
    fit_margin: float = FIT_MARGIN,
    max_size: int = MAX_FONT_SIZE
) -> int:
    """
    Find the largest font size at which the text fits the region.

    Sizes grow by 1 from min_size until the widest line exceeds
    fit_margin * max_width or the block height exceeds fit_margin * max_height.

    Args:
        text: Text, lines separated by newlines
        max_width: Region width in pixels
        max_height: Region height in pixels
        measurer: Text metrics provider
        min_size: Smallest size ever returned
        fit_margin: Share of the region the text may use
        max_size: Upper bound of the search

    Returns:
        Largest fitting integer size, never below min_size
    """
    lines = split_lines(text)
    if not lines:
        return min_size

    width_limit = max_width * fit_margin
    height_limit = max_height * fit_margin

    size = min_size
    while size <= max_size:
        widest = max(measurer.measure(line, size) for line in lines)
        total_height = measurer.line_spacing(size) * len(lines)
        if widest > width_limit or total_height > height_limit:
            break
        size += 1

    return max(min_size, size - 1)


def fit_text_style(
    style: TextStyle,
    text: str,
    rect: Rect,
    measurer: TextMeasurer,
    min_size: int = MIN_FONT_SIZE,
    fit_margin: float = FIT_MARGIN,
    max_size: int = MAX_FONT_SIZE
) -> TextStyle:
    """Set style.font_size to the fitted size for rect and return the style."""
    style.font_size = float(fit_font_size(
        text, rect.width, rect.height, measurer,
        min_size=min_size, fit_margin=fit_margin, max_size=max_size
    ))
    return style


@dataclass(frozen=True)
class RectOutline:
    """Draw op: rectangle outline."""
    rect: Rect
    color: RGB
    width: int = 5


@dataclass(frozen=True)
class TextRun:
    """Draw op: one line of text anchored at (x, y)."""
    text: str
    x: float
    y: float
    color: RGB
    font_size: float
    stroke: bool = False
    stroke_width: int = 0
    anchor: str = 'ms'  # middle-baseline, 'ls' = left-baseline

    def to_dict(self) -> Dict:
        return {'text': self.text, 'x': round(self.x, 2), 'y': round(self.y, 2)}


@dataclass
class TextLayout:
    """Positioned lines of a text block."""
    runs: List[TextRun] = field(default_factory=list)
    line_spacing: float = 0.0

    @property
    def block_height(self) -> float:
        return self.line_spacing * len(self.runs)

    def to_dict(self) -> Dict:
        return {
            'line_spacing': round(self.line_spacing, 2),
            'block_height': round(self.block_height, 2),
            'lines': [run.to_dict() for run in self.runs],
        }


def layout_text_block(
    text: str,
    rect: Rect,
    style: TextStyle,
    measurer: TextMeasurer
) -> TextLayout:
    """
    Center a text block inside rect.

    The first baseline sits at center_y - block_height / 2 + line_spacing / 2
    and each following line one line_spacing lower.

    Args:
        text: Text, lines separated by newlines
        rect: Target region
        style: Style with the fitted font size
        measurer: Text metrics provider

    Returns:
        TextLayout with one TextRun per line
    """
    lines = split_lines(text)
    if not lines:
        return TextLayout()

    line_spacing = measurer.line_spacing(style.font_size)
    total_height = line_spacing * len(lines)

    y = rect.center_y - total_height / 2 + line_spacing / 2
    runs = []
    for line in lines:
        runs.append(TextRun(
            text=line,
            x=rect.center_x,
            y=y,
            color=style.color,
            font_size=style.font_size,
            stroke=style.stroke_enabled,
            stroke_width=style.stroke_width if style.stroke_enabled else 0
        ))
        y += line_spacing

    return TextLayout(runs=runs, line_spacing=line_spacing)


def empty_space_overlay_ops(spaces: Sequence[EmptySpace], max_spaces: int = 3) -> list:
    """Outline the top spaces and print their weights (debug view)."""
    ops = []
    for index, space in enumerate(spaces[:max_spaces]):
        ops.append(RectOutline(space.rect, SPACE_COLORS[index % len(SPACE_COLORS)], width=5))
        ops.append(TextRun(
            text=f"{space.weight:.2f}",
            x=space.rect.left + 10,
            y=space.rect.top + 50,
            color=WHITE,
            font_size=40,
            stroke=True,
            stroke_width=2,
            anchor='ls'
        ))
    return ops


def detection_overlay_ops(detections: Sequence[Detection], font_size: float = 36) -> list:
    """Box outlines with 'label NN%' captions above each detection."""
    ops = []
    for detection in detections:
        box = detection.box
        ops.append(RectOutline(box, DETECTION_COLOR, width=4))
        ops.append(TextRun(
            text=f"{detection.label} {int(detection.confidence * 100)}%",
            x=box.left,
            y=max(box.top - 8, font_size),
            color=DETECTION_COLOR,
            font_size=font_size,
            anchor='ls'
        ))
    return ops


class PillowSurface:
    """Applies draw ops to a copy of a Pillow image."""

    def __init__(self, image: Image.Image):
        self.image = image.copy().convert('RGB')
        self._draw = ImageDraw.Draw(self.image)

    def apply(self, ops: Sequence) -> Image.Image:
        for op in ops:
            if isinstance(op, RectOutline):
                self._draw_rect(op)
            elif isinstance(op, TextRun):
                self._draw_text(op)
            else:
                raise TypeError(f"Unsupported draw op: {type(op).__name__}")
        return self.image

    def _draw_rect(self, op: RectOutline):
        r = op.rect
        self._draw.rectangle([r.left, r.top, r.right, r.bottom], outline=op.color, width=op.width)

    def _draw_text(self, op: TextRun):
        if not op.text:
            return
        font = load_font(int(round(op.font_size)))
        if op.stroke and op.stroke_width > 0:
            # Stroke uses the fill color, no separate outline color
            self._draw.text((op.x, op.y), op.text, font=font, fill=op.color, anchor=op.anchor,
                            stroke_width=op.stroke_width, stroke_fill=op.color)
        else:
            self._draw.text((op.x, op.y), op.text, font=font, fill=op.color, anchor=op.anchor)


def render_text_block(image: Image.Image, layout: TextLayout) -> Image.Image:
    """Draw a laid out text block; returns a new image."""
    return PillowSurface(image).apply(layout.runs)


def render_overlay(image: Image.Image, ops: Sequence) -> Image.Image:
    return PillowSurface(image).apply(ops)
