"""Pointwise detail/edge remapping for the local Laplacian filter.

Differences from a local reference smaller than ``sigma_r`` are treated as
detail and reshaped by the exponent ``alpha``; larger differences are treated
as edges and scaled by the slope ``beta``. Pixels are either scalars or
3-vectors; for vectors the magnitude of the difference is remapped and its
direction is kept.
"""

from dataclasses import dataclass
from typing import Union

import numpy as np

NOISE_LEVEL = 0.01
EPSILON = 1e-10

Pixel = Union[float, np.ndarray]


def smooth_step(x_min: float, x_max: float, x):
    """Smooth 0 -> 1 ramp over [x_min, x_max] with zero slope at both ends.

    Computes $y^2 (y - 2)^2$ where $y$ is ``(x - x_min) / (x_max - x_min)``
    clamped to [0, 1]. Works elementwise on arrays.
    """
    y = np.clip((np.asarray(x, dtype=np.float64) - x_min) / (x_max - x_min), 0.0, 1.0)
    return y ** 2 * (y - 2) ** 2


@dataclass(frozen=True)
class RemappingFunction:
    """Detail/edge remapping with detail exponent ``alpha`` and edge slope ``beta``.

    ``alpha < 1`` enhances detail and ``alpha > 1`` suppresses it.
    ``beta < 1`` compresses large-scale contrast (tone mapping) and
    ``beta > 1`` expands it.
    """

    alpha: float
    beta: float

    def __post_init__(self) -> None:
        if self.alpha < 0:
            raise ValueError(f"alpha must be >= 0, got {self.alpha}")

    def evaluate(self, value: Pixel, reference: Pixel, sigma_r: float) -> Pixel:
        """Remaps a single pixel relative to ``reference``.

        Args:
            value: Scalar or 3-vector pixel.
            reference: Reference pixel of the same kind as ``value``.
            sigma_r: Edge threshold in range space.

        Returns:
            The remapped pixel, of the same kind as ``value``.
        """
        value = np.asarray(value, dtype=np.float64)
        reference = np.asarray(reference, dtype=np.float64)
        if value.shape != reference.shape or value.ndim > 1:
            raise ValueError(
                f"Pixel shape {value.shape} does not match reference shape {reference.shape}"
            )
        result = self._remap(value, reference, sigma_r, vector=value.ndim == 1)
        return float(result) if result.ndim == 0 else result

    def evaluate_region(
        self,
        region: np.ndarray,
        reference: Pixel,
        sigma_r: float
    ) -> np.ndarray:
        """Remaps every pixel of a region with one fixed reference.

        Args:
            region: 2D array of scalar pixels or (rows, cols, 3) array of
                vector pixels.
            reference: Scalar for 2D regions, 3-vector for vector regions.
            sigma_r: Edge threshold in range space.

        Returns:
            Remapped float64 region of the same shape.
        """
        region = np.asarray(region, dtype=np.float64)
        reference = np.asarray(reference, dtype=np.float64)
        if region.ndim == 2:
            expected = ()
        elif region.ndim == 3:
            expected = region.shape[2:]
        else:
            raise ValueError(f"Expected a 2D or 3D region, got shape {region.shape}")
        if reference.shape != expected:
            raise ValueError(
                f"Reference shape {reference.shape} does not match region pixels {expected}"
            )
        return self._remap(region, reference, sigma_r, vector=region.ndim == 3)

    def _remap(
        self,
        value: np.ndarray,
        reference: np.ndarray,
        sigma_r: float,
        vector: bool
    ) -> np.ndarray:
        if sigma_r <= 0:
            raise ValueError(f"sigma_r must be > 0, got {sigma_r}")

        difference = value - reference
        if vector:
            delta = np.linalg.norm(difference, axis=-1)
            safe_delta = np.where(delta < EPSILON, 1.0, delta)
            direction = np.where(
                (delta < EPSILON)[..., np.newaxis], 0.0, difference / safe_delta[..., np.newaxis]
            )
        else:
            delta = np.abs(difference)
            direction = np.where(delta < EPSILON, 0.0, np.sign(difference))

        magnitude = self._remap_magnitude(delta, sigma_r)
        if vector:
            magnitude = magnitude[..., np.newaxis]
        return reference + direction * magnitude

    def _remap_magnitude(self, delta: np.ndarray, sigma_r: float) -> np.ndarray:
        """Distance of the output from the reference, given the input distance."""
        fraction = delta / sigma_r
        polynomial = fraction ** self.alpha
        if self.alpha < 1:
            # Fall back to the identity near zero so noise is not amplified
            blend = smooth_step(NOISE_LEVEL, 2 * NOISE_LEVEL, fraction * sigma_r)
            polynomial = blend * polynomial + (1 - blend) * fraction

        detail = sigma_r * polynomial
        edge = sigma_r + self.beta * (delta - sigma_r)
        return np.where(delta < sigma_r, detail, edge)
