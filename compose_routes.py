"""
Compose API Routes

Endpoint for composing a poster layout from a photo and detector outputs.
Returns the placement as JSON; the rendered image is not exported.
"""

import json

from flask import Blueprint, current_app, jsonify, request

from detection_parser import load_labels, tensors_from_json
from image_utils import ImageLoadError, load_image
from logging_config import get_request_logger, new_request_id
from poster_composer import ModelOutput, PosterComposerError, compose_poster


compose_bp = Blueprint('compose', __name__, url_prefix='/api')

ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'webp', 'bmp'}


class RequestError(Exception):
    """Invalid request payload."""
    pass


def allowed_file(filename):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def _parse_json_field(name, default=None):
    raw = request.form.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise RequestError(f"Field '{name}' is not valid JSON: {e.msg}")


def _parse_model_outputs():
    """
    Read detector outputs from the form.

    Accepts either 'outputs' = [{"model": str, "tensors": [...]}, ...]
    or a single 'tensors' = [{"index": int, "data": [...]}, ...].
    """
    outputs = _parse_json_field('outputs')
    if outputs is None:
        tensors = _parse_json_field('tensors')
        if tensors is None:
            raise RequestError("No detector outputs provided")
        outputs = [{'model': 'default', 'tensors': tensors}]

    if not isinstance(outputs, list) or not outputs:
        raise RequestError("'outputs' must be a non-empty list")

    model_outputs = []
    for position, item in enumerate(outputs):
        if not isinstance(item, dict) or not isinstance(item.get('tensors'), list):
            raise RequestError(f"Output {position} must have a 'tensors' list")
        name = str(item.get('model') or f'model_{position}')
        model_outputs.append(ModelOutput(name, tensors_from_json(item['tensors'])))
    return model_outputs


def _resolve_labels(config, log):
    labels = _parse_json_field('labels')
    if labels is not None:
        if not isinstance(labels, list):
            raise RequestError("'labels' must be a list")
        return [str(label) for label in labels]
    if config.labels_path:
        try:
            return load_labels(config.labels_path)
        except (OSError, UnicodeDecodeError) as e:
            # Unreadable table: every class is reported as Unknown
            log.warning(f"Could not read label table {config.labels_path}: {e}")
    return []


@compose_bp.route('/compose', methods=['POST'])
def compose():
    """
    Compose a poster layout.

    Form fields:
        image: Photo file (png/jpg/jpeg/webp/bmp)
        text: Poster text, newlines separate lines (optional)
        outputs / tensors: Detector outputs as JSON
        labels: Label table as JSON list (optional)

    Returns:
        JSON with detections per model, ranked empty spaces and placement
    """
    request_id = new_request_id()
    log = get_request_logger('compose', request_id)
    config = current_app.config['PLACEMENT']

    upload = request.files.get('image')
    if upload is None or not upload.filename:
        return jsonify({'error': 'No image provided'}), 400
    if not allowed_file(upload.filename):
        return jsonify({'error': f'Unsupported file type: {upload.filename}'}), 400

    try:
        model_outputs = _parse_model_outputs()
        labels = _resolve_labels(config, log)
        image = load_image(upload.stream, max_dim=config.max_image_dim)
        result = compose_poster(
            image, model_outputs, labels,
            text=request.form.get('text'),
            config=config,
            log=log
        )
    except (RequestError, ImageLoadError, PosterComposerError) as e:
        log.warning(f"Compose rejected: {e}")
        return jsonify({'error': str(e)}), 400

    payload = result.to_dict()
    payload['request_id'] = request_id

    if result.placement is None:
        payload['error'] = 'No suitable placement found'
        return jsonify(payload), 422

    log.info(f"Composed poster: {len(result.empty_spaces)} candidate(s), "
             f"font {result.placement.style.font_size:.0f}px")
    return jsonify(payload)


@compose_bp.route('/config', methods=['GET'])
def get_config():
    """Effective placement tunables."""
    return jsonify(current_app.config['PLACEMENT'].to_dict())
