"""Configuration management using dataclasses for type safety and validation."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


@dataclass
class FilterConfig:
    """Configuration for a local Laplacian filtering run.

    The defaults tone-map without touching detail: ``alpha = 1`` keeps
    detail as is and ``beta = 0`` flattens edges above ``sigma_r``.
    """

    # Input / output
    input_path: str
    output_path: str = "output.png"
    grayscale: bool = False

    # Remapping
    alpha: float = 1.0
    beta: float = 0.0
    sigma_r: float = 0.3

    # Pyramid
    desired_base_size: int = 30

    # Debug output
    save_levels: bool = False
    levels_dir: str = "levels"
    save_original: bool = False

    @classmethod
    def from_json(cls, json_path: Union[str, Path]) -> "FilterConfig":
        """Load configuration from JSON file.

        Args:
            json_path: Path to JSON configuration file

        Returns:
            FilterConfig instance with loaded parameters

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is malformed
        """
        json_path = Path(json_path)
        if not json_path.exists():
            raise FileNotFoundError(f"Config file not found: {json_path}")

        try:
            with open(json_path, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in config file: {e}")

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a JSON object")
        if "input_path" not in data:
            raise ValueError("Missing required field: input_path")

        config = cls(
            input_path=data["input_path"],
            output_path=data.get("output_path", "output.png"),
            grayscale=data.get("grayscale", False),
            alpha=float(data.get("alpha", 1.0)),
            beta=float(data.get("beta", 0.0)),
            sigma_r=float(data.get("sigma_r", 0.3)),
            desired_base_size=int(data.get("desired_base_size", 30)),
            save_levels=data.get("save_levels", False),
            levels_dir=data.get("levels_dir", "levels"),
            save_original=data.get("save_original", False)
        )

        logger.info(f"Loaded config from {json_path}")
        return config

    def validate(self) -> None:
        """Validate configuration parameters.

        Raises:
            ValueError: If any parameter is invalid
        """
        if self.sigma_r <= 0:
            raise ValueError("sigma_r must be > 0")
        if self.alpha < 0:
            raise ValueError("alpha must be >= 0")
        if self.beta < 0:
            raise ValueError("beta must be >= 0")
        if self.desired_base_size < 1:
            raise ValueError("desired_base_size must be >= 1")
