"""Separable 5-tap filtering used by pyramid reduction and expansion.

This module implements the Burt & Adelson generating kernel and the two
resampling operations built on it:

- ``reduce_image``: blur with border-clipped, renormalised weights and keep
  every other sample, starting at a parity offset.
- ``expand_image``: place samples on a 2x lattice at a parity offset and fill
  every position by normalised convolution.

Both operations take explicit row/column offsets so that pyramids of cropped
sub-windows stay aligned with pyramids of the full image.
"""

import cv2
import numpy as np
from typing import Tuple

# a = 0.3 broad blur, 0.4 Gaussian-like, 0.5 triangle, 0.6 trimodal
KERNEL_A = 0.4


def weighting_function(i: int, a: float = KERNEL_A) -> float:
    """Returns the generating kernel weight for tap ``i`` in [-2, 2].

    The weights are $w(0) = a$, $w(\\pm 1) = 1/4$ and $w(\\pm 2) = 1/4 - a/2$,
    which sum to 1 for any ``a``. Taps outside the support have weight 0.
    """
    if i == 0:
        return a
    if i in (-1, 1):
        return 0.25
    if i in (-2, 2):
        return 0.25 - 0.5 * a
    return 0.0


def get_gaussian_kernel(a: float = KERNEL_A) -> np.ndarray:
    """Returns the 1D generating kernel for pyramid operations.

    With ``a = 0.4`` this is [0.05, 0.25, 0.4, 0.25, 0.05], an approximate
    Gaussian. The kernel is separable: it is applied horizontally (1x5) and
    then vertically (5x1).

    Returns:
        A 1x5 float64 array.
    """
    weights = [weighting_function(i, a) for i in range(-2, 3)]
    return np.array(weights, dtype=np.float64).reshape(1, 5)


def convolve(image: np.ndarray, kernel_1d: np.ndarray) -> np.ndarray:
    """Performs separable 2D convolution with zero padding outside the image.

    Pixels outside the buffer contribute nothing, so sums near the border
    only cover the taps that land inside the image. Pair this with a
    convolution of the sample indicator to renormalise.

    Args:
        image: 2D array, or 3D array with channels last.
        kernel_1d: 1D kernel of shape (1, k).

    Returns:
        Convolved float64 image with the same shape as the input.
    """
    image = np.array(image, dtype=np.float64, order="C")
    # Horizontal pass
    temp_image = cv2.filter2D(image, -1, kernel_1d, borderType=cv2.BORDER_CONSTANT)
    # Vertical pass
    result_image = cv2.filter2D(temp_image, -1, kernel_1d.T, borderType=cv2.BORDER_CONSTANT)

    return result_image.reshape(image.shape)


def normalized_convolve(
    values: np.ndarray,
    indicator: np.ndarray,
    kernel: np.ndarray
) -> np.ndarray:
    """Divides the convolved values by the convolved sample indicator.

    $O = (K * (V \\cdot M)) / (K * M)$, where ``values`` is already zero
    wherever ``indicator`` is zero. This handles clipped borders and the
    alternating known/unknown lattice of an upsampled image in one pass.

    Args:
        values: Sample values (2D, or 3D with channels last).
        indicator: 2D array, 1 where a sample is known and 0 elsewhere.
        kernel: 1D kernel of shape (1, k).

    Returns:
        Normalised float64 image with the same shape as ``values``.
    """
    weighted = convolve(values, kernel)
    total_weight = convolve(indicator, kernel)
    if weighted.ndim == 3:
        total_weight = total_weight[:, :, np.newaxis]
    return weighted / total_weight


def reduce_image(
    image: np.ndarray,
    row_offset: int,
    col_offset: int,
    output_shape: Tuple[int, int],
    kernel: np.ndarray
) -> np.ndarray:
    """Reduces an image by half using blur and parity-aware decimation.

    Each output pixel (i, j) is the weighted mean of the 5x5 neighbourhood
    centred on (row_offset + 2i, col_offset + 2j) of the input. The
    neighbourhood is clipped at the border and renormalised by the weights
    actually used, which avoids edge darkening.

    Args:
        image: Input level (2D, or 3D with channels last).
        row_offset: 0 or 1, the parity of the input level's first row.
        col_offset: 0 or 1, the parity of the input level's first column.
        output_shape: (rows, cols) of the reduced level.
        kernel: 1D generating kernel.

    Returns:
        Reduced image with ``output_shape`` rows and columns.
    """
    rows, cols = image.shape[:2]
    out_rows, out_cols = output_shape
    if row_offset + 2 * (out_rows - 1) >= rows or col_offset + 2 * (out_cols - 1) >= cols:
        raise ValueError(
            f"Cannot reduce a {rows}x{cols} level with offsets "
            f"({row_offset}, {col_offset}) to {out_rows}x{out_cols}"
        )

    blurred = normalized_convolve(image, np.ones((rows, cols)), kernel)
    reduced = blurred[row_offset:row_offset + 2 * out_rows:2,
                      col_offset:col_offset + 2 * out_cols:2]
    return np.ascontiguousarray(reduced)


def expand_image(
    image: np.ndarray,
    row_offset: int,
    col_offset: int,
    output_shape: Tuple[int, int],
    kernel: np.ndarray
) -> np.ndarray:
    """Expands an image by 2x using lattice insertion and normalised blur.

    1. Create a canvas of ``output_shape`` with holes everywhere
    2. Place input pixels at (row_offset + 2i, col_offset + 2j)
    3. Fill every position with $(K * V) / (K * M)$

    Unlike zero-insertion followed by a fixed gain of 4, dividing by the
    convolved indicator stays correct at the borders and for odd sizes.

    Args:
        image: Input level (2D, or 3D with channels last).
        row_offset: 0 or 1, the parity of the output level's first row.
        col_offset: 0 or 1, the parity of the output level's first column.
        output_shape: (rows, cols) of the expanded level.
        kernel: 1D generating kernel.

    Returns:
        Expanded float64 image with ``output_shape`` rows and columns.
    """
    out_rows, out_cols = output_shape
    upsampled = np.zeros((out_rows, out_cols) + image.shape[2:], dtype=np.float64)
    indicator = np.zeros((out_rows, out_cols), dtype=np.float64)

    lattice = (slice(row_offset, None, 2), slice(col_offset, None, 2))
    if upsampled[lattice].shape != image.shape:
        raise ValueError(
            f"Cannot expand a {image.shape[0]}x{image.shape[1]} level with offsets "
            f"({row_offset}, {col_offset}) to {out_rows}x{out_cols}"
        )

    upsampled[lattice] = image
    indicator[lattice] = 1.0

    return normalized_convolve(upsampled, indicator, kernel)
