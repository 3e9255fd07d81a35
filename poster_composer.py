"""
Poster Composer

Runs one photo through the whole pipeline:
1. Parse each model's output tensors into detections
2. Find and rank empty spaces around the first model's detections
3. Analyze the best space's background and pick a text style
4. Fit the font size and lay out the text block
5. Draw the poster plus debug overlays (detections, top spaces)
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from PIL import Image

from detection_parser import Detection, OutputTensor, parse_detections
from empty_space_finder import EmptySpace, find_empty_spaces
from logging_config import get_logger, log_duration
from poster_config import PlacementConfig
from text_renderer import (
    PillowTextMeasurer, TextLayout, TextMeasurer,
    detection_overlay_ops, empty_space_overlay_ops, fit_text_style,
    layout_text_block, render_overlay, render_text_block
)
from text_style import (
    BackgroundSummary, PaletteExtractor, TextStyle,
    analyze_background, quantize_palette, select_text_style
)

logger = get_logger('composer')


class PosterComposerError(Exception):
    """Raised when a poster cannot be composed from the given inputs."""
    pass


@dataclass
class ModelOutput:
    """Output tensors of one detection model."""
    model_name: str
    tensors: List[OutputTensor]


@dataclass
class ModelDetections:
    """Normalized detections of one model plus its annotated image."""
    model_name: str
    detections: List[Detection]
    parse_time_ms: float
    annotated: Optional[Image.Image] = None


@dataclass
class Placement:
    """Where and how the text is drawn."""
    space: EmptySpace
    background: BackgroundSummary
    style: TextStyle
    layout: TextLayout

    def to_dict(self) -> Dict:
        dominant = self.background.dominant
        return {
            'space': self.space.to_dict(),
            'background': {
                'dominant': dominant.hex if dominant else None,
                'swatch_count': self.background.swatch_count,
            },
            'style': self.style.to_dict(),
            'layout': self.layout.to_dict(),
        }


@dataclass
class PosterResult:
    """Everything produced by one composition run."""
    image_size: Dict[str, int]
    models: List[ModelDetections]
    empty_spaces: List[EmptySpace]
    placement: Optional[Placement]
    poster: Image.Image
    spaces_visualization: Image.Image
    metadata: Dict = field(default_factory=dict)

    @property
    def detections(self) -> List[Detection]:
        return self.models[0].detections if self.models else []

    def to_dict(self) -> Dict:
        return {
            'image_size': self.image_size,
            'models': [
                {
                    'model': m.model_name,
                    'parse_time_ms': round(m.parse_time_ms, 3),
                    'detections': [d.to_dict() for d in m.detections],
                }
                for m in self.models
            ],
            'empty_spaces': [s.to_dict() for s in self.empty_spaces],
            'placement': self.placement.to_dict() if self.placement else None,
            'metadata': self.metadata,
        }


def place_text(
    image: Image.Image,
    space: EmptySpace,
    text: str,
    config: Optional[PlacementConfig] = None,
    extractor: PaletteExtractor = quantize_palette,
    measurer: Optional[TextMeasurer] = None
) -> Placement:
    """
    Style, fit and lay out text inside an empty space.

    Args:
        image: Source image
        space: Chosen empty space
        text: Text, lines separated by newlines
        config: Tunables
        extractor: Color quantization function
        measurer: Text metrics provider (Pillow by default)

    Returns:
        Placement with style, fitted size and line positions
    """
    config = config or PlacementConfig()
    measurer = measurer or PillowTextMeasurer()

    background = analyze_background(image, space.rect, extractor)
    style = select_text_style(
        background,
        busy_swatch_threshold=config.busy_swatch_threshold,
        stroke_width=config.stroke_width
    )
    fit_text_style(
        style, text, space.rect, measurer,
        min_size=config.min_font_size,
        fit_margin=config.fit_margin,
        max_size=config.max_font_size
    )
    layout = layout_text_block(text, space.rect, style, measurer)

    logger.debug(f"Placed {len(layout.runs)} line(s) at {style.font_size:.0f}px, "
                 f"color={style.hex_color}, stroke={style.stroke_enabled}")

    return Placement(space=space, background=background, style=style, layout=layout)


def compose_poster(
    image: Image.Image,
    model_outputs: Sequence[ModelOutput],
    labels: Sequence[str],
    text: Optional[str] = None,
    config: Optional[PlacementConfig] = None,
    extractor: PaletteExtractor = quantize_palette,
    measurer: Optional[TextMeasurer] = None,
    log=None
) -> PosterResult:
    """
    Compose a poster from a photo and detector outputs.

    Every model's detections are parsed and annotated; the first model
    drives text placement.

    Args:
        image: Source image (already oriented)
        model_outputs: Output tensors per model, primary model first
        labels: Label table shared by the models
        text: Poster text, defaults to config.sample_text
        config: Tunables
        extractor: Color quantization function
        measurer: Text metrics provider
        log: Optional logger (e.g. a request logger)

    Returns:
        PosterResult; placement is None when no empty space is large enough

    Raises:
        PosterComposerError: If no model output was given or the image is empty
    """
    config = config or PlacementConfig()
    log = log or logger
    text = config.sample_text if text is None else text

    if not model_outputs:
        raise PosterComposerError("No model outputs provided")

    width, height = image.size
    if width <= 0 or height <= 0:
        raise PosterComposerError(f"Invalid image size: {width}x{height}")

    log.info(f"Composing poster for {width}x{height} image with {len(model_outputs)} model(s)")

    models = []
    for output in model_outputs:
        with log_duration(log, f"Parsing {output.model_name} outputs") as timer:
            detections = parse_detections(
                output.tensors, width, height, labels,
                confidence_threshold=config.confidence_threshold
            )

        annotated = render_overlay(image, detection_overlay_ops(detections))
        models.append(ModelDetections(output.model_name, detections, timer.elapsed_ms, annotated))
        log.debug(f"{output.model_name}: {len(detections)} detection(s)")

    primary = models[0]
    spaces = find_empty_spaces(width, height, primary.detections, config)
    visualization = render_overlay(image, empty_space_overlay_ops(spaces, config.max_visualized_spaces))

    placement = None
    poster = image.copy()
    if spaces:
        placement = place_text(image, spaces[0], text, config, extractor, measurer)
        poster = render_text_block(image, placement.layout)
    else:
        log.warning("No suitable placement found")

    return PosterResult(
        image_size={'w': width, 'h': height},
        models=models,
        empty_spaces=spaces,
        placement=placement,
        poster=poster,
        spaces_visualization=visualization,
        metadata={
            'primary_model': primary.model_name,
            'detection_count': len(primary.detections),
            'candidate_count': len(spaces),
            'grid_size': config.grid_size,
        }
    )
