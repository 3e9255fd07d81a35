"""
Image Loading Utilities

Decodes uploaded photos, fixes EXIF orientation and downsamples large
images by a power-of-two factor before analysis.
"""

from typing import BinaryIO, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from logging_config import get_logger

logger = get_logger('image_utils')

DEFAULT_MAX_DIM = 1024


class ImageLoadError(Exception):
    """Raised when an image cannot be decoded."""
    pass


def calculate_sample_size(width: int, height: int, req_width: int, req_height: int) -> int:
    """
    Largest power-of-two reduction that keeps both sides at or above the
    requested size.

    Args:
        width: Source width
        height: Source height
        req_width: Requested width
        req_height: Requested height

    Returns:
        Sample size (1, 2, 4, ...)
    """
    sample_size = 1

    if height > req_height or width > req_width:
        half_height = height // 2
        half_width = width // 2

        while (half_height // sample_size) >= req_height and (half_width // sample_size) >= req_width:
            sample_size *= 2

    return sample_size


def load_image(source: Union[str, BinaryIO], max_dim: int = DEFAULT_MAX_DIM) -> Image.Image:
    """
    Load an image, apply EXIF orientation and downsample it.

    Args:
        source: File path or binary stream
        max_dim: Requested size for power-of-two downsampling

    Returns:
        RGB Pillow image

    Raises:
        ImageLoadError: If the data is not a decodable image
    """
    try:
        image = Image.open(source)
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageLoadError(f"Could not decode image: {e}")

    image = ImageOps.exif_transpose(image)

    sample_size = calculate_sample_size(image.width, image.height, max_dim, max_dim)
    if sample_size > 1:
        logger.debug(f"Downsampling {image.width}x{image.height} by {sample_size}")
        image = image.reduce(sample_size)

    return image.convert('RGB')
