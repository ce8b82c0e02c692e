"""Utility functions for image I/O, byte scaling and logging setup."""

import logging
import sys
from pathlib import Path
from typing import Optional, Tuple, Union

import cv2
import numpy as np

logger = logging.getLogger(__name__)

FLOAT_FORMATS = (".tif", ".tiff", ".exr", ".hdr", ".pfm")


def setup_logging(level: int = logging.INFO) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level (default: INFO)
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


def load_image(
    image_path: Union[str, Path],
    grayscale: bool = False
) -> Tuple[np.ndarray, float]:
    """Load an image and normalise it to [0, 1].

    Args:
        image_path: Path to image file
        grayscale: Convert to a single channel on load

    Returns:
        (image, max_value): float64 image with 1 or 3 channels, and the full
        scale value of the source dtype (255 for 8-bit, 65535 for 16-bit)

    Raises:
        FileNotFoundError: If the image doesn't exist or cannot be decoded
    """
    image_path = Path(image_path)
    flags = cv2.IMREAD_GRAYSCALE if grayscale else cv2.IMREAD_UNCHANGED
    image = cv2.imread(str(image_path), flags)

    if image is None:
        raise FileNotFoundError(f"Could not load: {image_path}")

    # Drop alpha
    if image.ndim == 3 and image.shape[2] == 4:
        image = image[:, :, :3]

    if np.issubdtype(image.dtype, np.integer):
        max_value = float(np.iinfo(image.dtype).max)
    else:
        max_value = 1.0

    channels = 1 if image.ndim == 2 else image.shape[2]
    logger.info(
        f"Input image: {image_path} Size: {image.shape[1]} x {image.shape[0]} "
        f"Channels: {channels}"
    )
    return image.astype(np.float64) / max_value, max_value


def save_image(
    output_path: Union[str, Path],
    image: np.ndarray,
    max_value: float = 255.0
) -> Path:
    """Save a [0, 1] image after scaling it to its native range.

    Values are clipped to [0, 1] and rounded. ``max_value`` selects the
    output dtype: 255 writes 8-bit, 65535 writes 16-bit, anything else is
    written as float32. Formats that cannot store float data (PNG, JPEG, ...)
    receive 8-bit output instead.

    Returns:
        Path of the written file
    """
    output_path = Path(output_path)
    ensure_output_directory(output_path)

    if max_value not in (255.0, 65535.0) and output_path.suffix.lower() not in FLOAT_FORMATS:
        logger.info(f"{output_path.suffix} cannot store float data, writing 8-bit")
        max_value = 255.0

    scaled = np.clip(image, 0.0, 1.0) * max_value
    if max_value == 255.0:
        scaled = np.rint(scaled).astype(np.uint8)
    elif max_value == 65535.0:
        scaled = np.rint(scaled).astype(np.uint16)
    else:
        scaled = scaled.astype(np.float32)

    if not cv2.imwrite(str(output_path), scaled):
        raise ValueError(f"Failed to write image: {output_path}")

    logger.info(f"Saved image to: {output_path}")
    return output_path


def byte_scale(
    image: np.ndarray,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None
) -> np.ndarray:
    """Linearly stretch an image to the full uint8 range.

    ``min_value`` maps to 0 and ``max_value`` to 255; both default to the
    image's own extremes. A constant image maps to all zeros.
    """
    image = np.asarray(image, dtype=np.float64)
    if min_value is None:
        min_value = float(image.min())
    if max_value is None:
        max_value = float(image.max())

    if max_value <= min_value:
        return np.zeros(image.shape, dtype=np.uint8)

    logger.debug(f"ByteScale: min = {min_value}, max = {max_value}")
    scaled = cv2.convertScaleAbs(image - min_value, alpha=255.0 / (max_value - min_value))
    return scaled.reshape(image.shape)


def ensure_output_directory(output_path: Union[str, Path]) -> Path:
    """Ensure output directory exists, create if needed.

    Args:
        output_path: Path to output file

    Returns:
        Path object for the output directory
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    return output_path.parent
