"""Local Laplacian filtering for edge-aware detail and tone manipulation.

This module implements the filter of Paris, Hasinoff and Kautz (2011):
1. Build a Gaussian pyramid of the input
2. For every coefficient of every level, remap the neighbourhood that
   coefficient depends on, using the Gaussian value there as reference
3. Build a small Laplacian pyramid of the remapped neighbourhood and copy the
   matching coefficient into the output pyramid
4. Copy the Gaussian residual and reconstruct the output image

The neighbourhood pyramids are built with the crop's sub-window so their
sample lattice agrees with the full-image pyramid at the coefficient.
"""

import logging
from typing import Callable, Optional

import numpy as np

from local_laplacian.core.pyramids import (
    GaussianPyramid,
    LaplacianPyramid,
    SubWindow,
    channel_count,
    to_pixel_buffer,
)
from local_laplacian.core.remapping import RemappingFunction

logger = logging.getLogger(__name__)

DEFAULT_BASE_SIZE = 30

LevelCallback = Callable[[int, np.ndarray], None]


def subregion_radius(level: int) -> int:
    """Radius, in full-resolution pixels, of the input a level coefficient depends on.

    The footprint is $3 (2^{l+2} - 1)$ pixels wide.
    """
    subregion_size = 3 * ((1 << (level + 2)) - 1)
    return subregion_size // 2


def _filter_level(
    image: np.ndarray,
    gaussian: GaussianPyramid,
    output: LaplacianPyramid,
    level: int,
    remapping: RemappingFunction,
    sigma_r: float
) -> None:
    """Computes every coefficient of one output level."""
    rows, cols = image.shape[:2]
    radius = subregion_radius(level)
    level_rows, level_cols = output[level].shape[:2]
    reference_level = gaussian[level]

    logger.info(
        f"Level {level + 1} ({level_rows} x {level_cols}), "
        f"footprint: {2 * radius + 1}x{2 * radius + 1}"
    )

    for y in range(level_rows):
        # Row bounds of the region in the full-res image
        full_res_y = (1 << level) * y
        row_start = max(0, full_res_y - radius)
        row_stop = min(full_res_y + radius + 1, rows)

        for x in range(level_cols):
            full_res_x = (1 << level) * x
            col_start = max(0, full_res_x - radius)
            col_stop = min(full_res_x + radius + 1, cols)

            remapped = remapping.evaluate_region(
                image[row_start:row_stop, col_start:col_stop],
                reference_level[y, x],
                sigma_r
            )

            local_pyramid = LaplacianPyramid(
                remapped,
                level + 1,
                SubWindow(row_start, row_stop - 1, col_start, col_stop - 1)
            )
            output.set_coefficient(
                level, y, x,
                local_pyramid[level][(full_res_y - row_start) >> level,
                                     (full_res_x - col_start) >> level]
            )

        logger.debug(f"Level {level + 1}: {round(100.0 * (y + 1) / level_rows)}%")


def local_laplacian_filter(
    image: np.ndarray,
    alpha: float,
    beta: float,
    sigma_r: float,
    desired_base_size: int = DEFAULT_BASE_SIZE,
    level_callback: Optional[LevelCallback] = None
) -> np.ndarray:
    """Performs local Laplacian filtering on an image.

    Args:
        image: Input image with 1 or 3 channels, values normalised to [0, 1].
        alpha: Exponent of the detail remapping (< 1 enhances detail,
            > 1 suppresses it).
        beta: Slope of the edge remapping (< 1 for tone mapping, > 1 for
            inverse tone mapping).
        sigma_r: Edge threshold in image range space.
        desired_base_size: Approximate size of the residual level.
        level_callback: Called with (level, coefficients) after each output
            level has been computed.

    Returns:
        Filtered float64 image with the same shape as the input.
    """
    remapping = RemappingFunction(alpha, beta)
    if sigma_r <= 0:
        raise ValueError(f"sigma_r must be > 0, got {sigma_r}")

    image = to_pixel_buffer(image)
    rows, cols = image.shape[:2]

    num_levels = LaplacianPyramid.get_level_count(rows, cols, desired_base_size)
    logger.info(f"Number of levels: {num_levels}")

    gaussian = GaussianPyramid(image, num_levels)

    # Unfilled output pyramid; the residual is the top of the Gaussian pyramid
    output = LaplacianPyramid.blank(rows, cols, num_levels, channel_count(image))
    output.set_level(num_levels, gaussian[num_levels])

    for level in range(num_levels):
        _filter_level(image, gaussian, output, level, remapping, sigma_r)
        if level_callback is not None:
            level_callback(level, output[level])

    return output.reconstruct()


class LocalLaplacianFilter:
    """Reusable local Laplacian filter with fixed remapping parameters."""

    def __init__(
        self,
        alpha: float,
        beta: float,
        desired_base_size: int = DEFAULT_BASE_SIZE
    ) -> None:
        self.remapping = RemappingFunction(alpha, beta)
        self.desired_base_size = desired_base_size

    def apply(
        self,
        image: np.ndarray,
        sigma_r: float,
        level_callback: Optional[LevelCallback] = None
    ) -> np.ndarray:
        """Filters ``image`` with edge threshold ``sigma_r``."""
        return local_laplacian_filter(
            image,
            self.remapping.alpha,
            self.remapping.beta,
            sigma_r,
            desired_base_size=self.desired_base_size,
            level_callback=level_callback
        )
