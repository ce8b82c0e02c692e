"""Visualization functions for pyramids and filter output levels.

This module provides tools for visualizing:
- Gaussian and Laplacian pyramid levels side by side
- Individual Laplacian levels of the filter output, as byte-scaled images
"""

import logging
from pathlib import Path
from typing import List, Sequence, Union

import cv2
import numpy as np
import matplotlib.pyplot as plt

from local_laplacian.core.pyramids import GaussianPyramid, LaplacianPyramid
from local_laplacian.utils.io import byte_scale, ensure_output_directory

logger = logging.getLogger(__name__)


def _to_display(image: np.ndarray) -> np.ndarray:
    """Flips BGR to RGB for matplotlib."""
    return np.ascontiguousarray(image[:, :, ::-1])


def save_level_images(
    levels: Sequence[np.ndarray],
    directory: Union[str, Path]
) -> List[Path]:
    """Saves each level as ``level{i}.png``, byte-scaled from its absolute value.

    Args:
        levels: Pyramid levels to save.
        directory: Output directory, created if missing.

    Returns:
        Paths of the written files.
    """
    return [save_level_image(level, i, directory) for i, level in enumerate(levels)]


def save_level_image(level: np.ndarray, index: int, directory: Union[str, Path]) -> Path:
    """Saves one level as ``level{index}.png``."""
    path = Path(directory) / f"level{index}.png"
    ensure_output_directory(path)
    cv2.imwrite(str(path), byte_scale(np.abs(level)))
    logger.debug(f"Saved level {index} to: {path}")
    return path


def save_pyramid_visualization(
    gaussian: GaussianPyramid,
    laplacian: LaplacianPyramid,
    filename: Union[str, Path]
) -> None:
    """Creates and saves a visualization of Gaussian and Laplacian pyramids.

    The visualization shows:
    - Top row: Gaussian pyramid levels (G0, G1, ..., GN)
    - Bottom row: Laplacian pyramid levels (L0, L1, ..., LN)

    Args:
        gaussian: Gaussian pyramid of a [0, 1] image.
        laplacian: Laplacian pyramid with the same number of levels.
        filename: Output filename for the visualization.
    """
    count = len(gaussian)
    fig, axes = plt.subplots(2, count, figsize=(4 * count, 6), squeeze=False)
    fig.suptitle(f'Pyramid Analysis: {Path(filename).name}', fontsize=16)

    for i in range(count):
        # Gaussian (Top Row)
        ax_g = axes[0, i]
        g_disp = np.clip(gaussian[i], 0.0, 1.0)
        if g_disp.ndim == 2:
            ax_g.imshow(g_disp, cmap='gray', vmin=0.0, vmax=1.0)
        else:
            ax_g.imshow(_to_display(g_disp))
        ax_g.set_title(f'G{i}')
        ax_g.axis('off')

        # Laplacian (Bottom Row)
        ax_l = axes[1, i]
        if i < len(laplacian):
            l_disp = byte_scale(laplacian[i])
            if l_disp.ndim == 2:
                ax_l.imshow(l_disp, cmap='gray')
            else:
                ax_l.imshow(_to_display(l_disp))
            ax_l.set_title(f'L{i}')
        ax_l.axis('off')

    plt.tight_layout()
    ensure_output_directory(filename)
    logger.info(f"Saving visualization to: {filename}")
    plt.savefig(str(filename))
    plt.close(fig)
