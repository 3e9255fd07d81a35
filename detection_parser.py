"""
Detection Parser

Normalizes raw object-detector output tensors into a uniform detection list.

SSD / EfficientDet style postprocessed models emit four outputs whose order
differs between exports, so each tensor is classified by its shape:
- boxes:   [batch, N, 4] rows of (top, left, bottom, right) in 0-1
- classes: [batch, N] class indices
- scores:  [batch, N] confidences
- count:   [1] number of valid detections
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from geometry import Rect, clamp
from logging_config import get_logger

logger = get_logger('detection_parser')

UNKNOWN_LABEL = 'Unknown'
DEFAULT_CONFIDENCE_THRESHOLD = 0.5


class TensorRole(Enum):
    BOXES = 'boxes'
    CLASSES = 'classes'
    SCORES = 'scores'
    COUNT = 'count'
    UNKNOWN = 'unknown'


@dataclass(frozen=True)
class OutputTensor:
    """One model output, tagged with its output index."""
    index: int
    data: np.ndarray

    @property
    def shape(self) -> Tuple[int, ...]:
        return tuple(self.data.shape)

    @property
    def rank(self) -> int:
        return len(self.shape)


@dataclass(frozen=True)
class Detection:
    """Normalized detection in pixel coordinates."""
    class_id: int
    label: str
    confidence: float
    box: Rect

    def to_dict(self) -> Dict:
        return {
            'class_id': self.class_id,
            'label': self.label,
            'confidence': round(self.confidence, 4),
            'box': self.box.to_dict(),
        }


def classify_tensor(tensor: OutputTensor, assigned: Iterable[TensorRole]) -> TensorRole:
    """
    Assign a semantic role to a tensor from its rank and shape.

    Args:
        tensor: Tensor to classify
        assigned: Roles already taken by earlier tensors

    Returns:
        The role for this tensor, UNKNOWN when it should be ignored
    """
    taken = set(assigned)
    shape = tensor.shape

    if tensor.rank == 3 and shape[-1] == 4 and TensorRole.BOXES not in taken:
        return TensorRole.BOXES
    if tensor.rank == 2:
        if TensorRole.CLASSES not in taken:
            return TensorRole.CLASSES
        if TensorRole.SCORES not in taken:
            return TensorRole.SCORES
    if tensor.rank == 1 and TensorRole.COUNT not in taken:
        return TensorRole.COUNT
    return TensorRole.UNKNOWN


def assign_roles(tensors: Sequence[OutputTensor]) -> Dict[TensorRole, OutputTensor]:
    """Classify every tensor once, in output index order."""
    roles: Dict[TensorRole, OutputTensor] = {}
    for tensor in sorted(tensors, key=lambda t: t.index):
        role = classify_tensor(tensor, roles.keys())
        if role is TensorRole.UNKNOWN:
            logger.debug(f"Ignoring output {tensor.index} with shape {tensor.shape}")
            continue
        roles[role] = tensor
    return roles


def _row_value(tensor: Optional[OutputTensor], i: int) -> Optional[float]:
    """Read batch 0, index i of a [batch, N] tensor; None if missing or non-finite."""
    if tensor is None or tensor.data.shape[0] == 0 or i >= tensor.data.shape[1]:
        return None
    value = float(tensor.data[0, i])
    return value if math.isfinite(value) else None


def _detection_count(roles: Dict[TensorRole, OutputTensor]) -> int:
    boxes = roles[TensorRole.BOXES]
    available = boxes.data.shape[1]

    count_tensor = roles.get(TensorRole.COUNT)
    if count_tensor is None or count_tensor.data.size == 0:
        return available

    value = float(count_tensor.data.reshape(-1)[0])
    if not math.isfinite(value):
        logger.warning("Detection count is not finite, falling back to box count")
        return available
    return int(clamp(value, 0, available))


def parse_detections(
    tensors: Sequence[OutputTensor],
    image_width: int,
    image_height: int,
    labels: Sequence[str],
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
) -> List[Detection]:
    """
    Convert one inference call's output tensors into detections.

    Malformed entries are skipped one by one; parsing never aborts for
    partial data.

    Args:
        tensors: Output tensors of a single inference call
        image_width: Width of the analyzed image in pixels
        image_height: Height of the analyzed image in pixels
        labels: Label table indexed by class id
        confidence_threshold: Minimum score to keep a detection

    Returns:
        List of detections with pixel boxes clamped to the image
    """
    roles = assign_roles(tensors)

    if TensorRole.BOXES not in roles:
        logger.warning(f"No boxes tensor among {len(tensors)} outputs, nothing to parse")
        return []

    boxes = roles[TensorRole.BOXES].data
    classes = roles.get(TensorRole.CLASSES)
    scores = roles.get(TensorRole.SCORES)

    if boxes.shape[0] == 0:
        return []

    count = _detection_count(roles)
    detections = []
    skipped = 0

    for i in range(count):
        score = _row_value(scores, i)
        if score is None:
            skipped += 1
            continue
        if score < confidence_threshold:
            continue

        class_value = _row_value(classes, i)
        location = boxes[0, i]
        if class_value is None or not np.all(np.isfinite(location)):
            skipped += 1
            continue

        class_id = int(class_value)
        label = labels[class_id] if 0 <= class_id < len(labels) else UNKNOWN_LABEL

        top, left, bottom, right = (clamp(float(v), 0.0, 1.0) for v in location)
        box = Rect.from_edges(
            left * image_width,
            top * image_height,
            right * image_width,
            bottom * image_height
        )
        if box.width <= 0 or box.height <= 0:
            skipped += 1
            continue

        detections.append(Detection(
            class_id=class_id,
            label=label,
            confidence=clamp(score, 0.0, 1.0),
            box=box
        ))

    if skipped:
        logger.warning(f"Skipped {skipped} malformed detection(s)")
    logger.debug(f"Parsed {len(detections)} detection(s) from {count} candidate(s)")

    return detections


def tensors_from_json(items: Sequence[Dict]) -> List[OutputTensor]:
    """
    Build output tensors from JSON-friendly dicts.

    Each item is {"index": int, "data": nested lists}. Items that are not
    objects, have a non-integer index, or carry missing or ragged data are
    dropped.
    """
    tensors = []
    for position, item in enumerate(items):
        if not isinstance(item, dict):
            logger.warning(f"Dropping output at position {position}: not an object")
            continue
        try:
            index = int(item.get('index', position))
            data = np.asarray(item['data'], dtype=np.float32)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Dropping output at position {position}: {e}")
            continue
        tensors.append(OutputTensor(index=index, data=data))
    return tensors


def load_labels(path: str) -> List[str]:
    """
    Load a label table, one label per line.

    Args:
        path: Path to a labels.txt file

    Returns:
        List of labels indexed by class id
    """
    with open(path, 'r', encoding='utf-8') as f:
        labels = [line.rstrip('\r\n') for line in f]

    # Drop trailing blank lines
    while labels and not labels[-1].strip():
        labels.pop()

    logger.debug(f"Loaded {len(labels)} labels from {path}")
    return labels
