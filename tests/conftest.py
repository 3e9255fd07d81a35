"""
Shared pytest fixtures for Poster Composer tests.
"""
import os
import sys
import tempfile
import pytest
import numpy as np
from io import BytesIO
from PIL import Image

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Keep test logs out of the source tree
os.environ.setdefault('LOG_DIR', tempfile.mkdtemp(prefix='poster-logs-'))


class LinearMeasurer:
    """Fake text metrics: width and spacing grow linearly with font size."""

    def __init__(self, width_per_size=0.5, spacing_per_size=1.2, per_char=True):
        self.width_per_size = width_per_size
        self.spacing_per_size = spacing_per_size
        self.per_char = per_char

    def measure(self, text, font_size):
        chars = len(text) if self.per_char else 1
        return chars * self.width_per_size * font_size

    def line_spacing(self, font_size):
        return self.spacing_per_size * font_size


@pytest.fixture
def measurer():
    """Deterministic text measurer."""
    return LinearMeasurer()


@pytest.fixture
def labels():
    """Small label table."""
    return ['a', 'b', 'cat']


@pytest.fixture
def coco_labels():
    return ['person', 'bicycle', 'car', 'motorcycle', 'airplane', 'bus']


def make_ssd_tensors(boxes, classes, scores, count=None, order=('boxes', 'classes', 'scores', 'count')):
    """Build SSD-style output tensors in the given output order."""
    from detection_parser import OutputTensor

    arrays = {
        'boxes': np.array([boxes], dtype=np.float32).reshape(1, -1, 4),
        'classes': np.array([classes], dtype=np.float32),
        'scores': np.array([scores], dtype=np.float32),
    }
    if count is not None:
        arrays['count'] = np.array([count], dtype=np.float32)

    tensors = []
    for index, name in enumerate(n for n in order if n in arrays):
        tensors.append(OutputTensor(index=index, data=arrays[name]))
    return tensors


@pytest.fixture
def ssd_tensors():
    """Factory fixture for SSD-style tensors."""
    return make_ssd_tensors


@pytest.fixture
def empty_tensors():
    """Outputs of a model that detected nothing."""
    return make_ssd_tensors([[0, 0, 0, 0]], [0], [0.0], count=0)


@pytest.fixture
def blue_image():
    """Solid dark blue 800x600 photo."""
    return Image.new('RGB', (800, 600), color=(0, 0, 255))


@pytest.fixture
def white_image():
    return Image.new('RGB', (800, 600), color=(250, 250, 250))


@pytest.fixture
def noisy_image():
    """Random noise, a visually busy background."""
    rng = np.random.default_rng(0)
    pixels = rng.integers(0, 256, size=(300, 400, 3), dtype=np.uint8)
    return Image.fromarray(pixels)


@pytest.fixture
def sample_image_bytes():
    """PNG upload payload."""
    img = Image.new('RGB', (800, 600), color='blue')
    img_bytes = BytesIO()
    img.save(img_bytes, format='PNG')
    img_bytes.seek(0)
    return img_bytes


@pytest.fixture
def sample_image_file(tmp_path):
    """Create a sample test image file on disk."""
    img_path = tmp_path / "test_image.png"
    img = Image.new('RGB', (800, 600), color='red')
    img.save(str(img_path))
    return str(img_path)


@pytest.fixture
def labels_file(tmp_path, coco_labels):
    path = tmp_path / "labels.txt"
    path.write_text('\n'.join(coco_labels) + '\n\n', encoding='utf-8')
    return str(path)


@pytest.fixture(scope='session')
def app():
    """Create Flask application for testing."""
    os.environ['TESTING'] = 'true'

    from app import app as flask_app
    flask_app.config['TESTING'] = True

    yield flask_app


@pytest.fixture
def client(app):
    """Create Flask test client."""
    return app.test_client()
