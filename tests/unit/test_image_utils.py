"""
Unit tests for image_utils module.
"""
import os
import sys
import pytest
from io import BytesIO
from PIL import Image

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from image_utils import ImageLoadError, calculate_sample_size, load_image


def encode(image, fmt='JPEG', **kwargs):
    buffer = BytesIO()
    image.save(buffer, format=fmt, **kwargs)
    buffer.seek(0)
    return buffer


class TestCalculateSampleSize:
    """Tests for power-of-two sample size."""

    def test_small_image(self):
        assert calculate_sample_size(800, 600, 1024, 1024) == 1

    def test_large_image(self):
        assert calculate_sample_size(4000, 3000, 1024, 1024) == 2

    def test_very_large_image(self):
        assert calculate_sample_size(8192, 8192, 1024, 1024) == 8


class TestLoadImage:
    """Tests for load_image function."""

    def test_loads_file_path(self, sample_image_file):
        image = load_image(sample_image_file)
        assert image.size == (800, 600)
        assert image.mode == 'RGB'

    def test_downsamples_large_image(self):
        image = load_image(encode(Image.new('RGB', (4000, 3000), 'green')))
        assert image.size == (2000, 1500)

    def test_converts_to_rgb(self):
        image = load_image(encode(Image.new('RGBA', (64, 32), (0, 0, 0, 0)), fmt='PNG'))
        assert image.mode == 'RGB'

    def test_exif_orientation(self):
        exif = Image.Exif()
        exif[0x0112] = 6  # rotate 90 CW
        image = load_image(encode(Image.new('RGB', (400, 200), 'red'), exif=exif))

        assert image.size == (200, 400)

    def test_invalid_data(self):
        with pytest.raises(ImageLoadError):
            load_image(BytesIO(b'not an image'))
