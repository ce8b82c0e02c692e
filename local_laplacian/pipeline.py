"""Pipeline class running the local Laplacian filter on an image file."""

import logging
from pathlib import Path

import numpy as np

from local_laplacian.config import FilterConfig
from local_laplacian.pipelines.local_laplacian import LocalLaplacianFilter
from local_laplacian.utils.io import load_image, save_image
from local_laplacian.utils.visualization import save_level_image

logger = logging.getLogger(__name__)


class LocalLaplacianPipeline:
    """Loads an image, filters it and writes the result.

    Optionally writes the unfiltered input as ``original.png`` next to the
    output and each finished output level as ``level{l}.png``.
    """

    def __init__(self, config: FilterConfig) -> None:
        """Initialize pipeline with configuration.

        Args:
            config: FilterConfig instance
        """
        config.validate()
        self.config = config
        self.filter = LocalLaplacianFilter(
            config.alpha, config.beta, desired_base_size=config.desired_base_size
        )
        logger.info("LocalLaplacianPipeline initialized")

    def run(self) -> Path:
        """Execute the pipeline.

        Returns:
            Path to the filtered image

        Raises:
            FileNotFoundError: If the input image cannot be loaded
        """
        logger.info("Starting local Laplacian pipeline")

        image, max_value = load_image(self.config.input_path, grayscale=self.config.grayscale)
        output_path = Path(self.config.output_path)

        if self.config.save_original:
            save_image(output_path.parent / "original.png", image, max_value)

        level_callback = self._save_level if self.config.save_levels else None
        result = self.filter.apply(image, self.config.sigma_r, level_callback=level_callback)

        save_image(output_path, result, max_value)
        logger.info(f"Pipeline complete. Output: {output_path}")
        return output_path

    def _save_level(self, level: int, coefficients: np.ndarray) -> None:
        save_level_image(coefficients, level, self.config.levels_dir)
