"""Gaussian and Laplacian pyramids over arbitrary sub-windows of an image.

A pyramid built from a crop of a larger image records which region of the
larger image its base level represents (its ``SubWindow``). Bounds are halved
per level with the start rounded up and the end rounded down, and the parity
of each level's start decides where samples sit under 2:1 decimation and
expansion. This keeps the samples of a cropped pyramid on the same lattice as
the pyramid of the full image, which the local Laplacian filter depends on.

The implementation follows

    BURT, P. J., AND ADELSON, E. H. 1983. The Laplacian pyramid as a compact
    image code. IEEE Transactions on Communication 31, 4, 532-540.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from local_laplacian.core.filters import expand_image, get_gaussian_kernel, reduce_image

logger = logging.getLogger(__name__)


def to_pixel_buffer(image: np.ndarray) -> np.ndarray:
    """Converts an image to a float64 pixel buffer with 1 or 3 channels.

    Single-channel images are stored as 2D arrays and 3-channel images as
    (rows, cols, 3) arrays. A trailing axis of length 1 is dropped.

    Raises:
        ValueError: If the image is empty or has an unsupported channel count.
    """
    buffer = np.array(image, dtype=np.float64)
    if buffer.ndim == 3 and buffer.shape[2] == 1:
        buffer = buffer[:, :, 0]

    if buffer.ndim not in (2, 3) or (buffer.ndim == 3 and buffer.shape[2] != 3):
        raise ValueError(f"Expected a 1 or 3 channel image, got shape {buffer.shape}")
    if buffer.shape[0] == 0 or buffer.shape[1] == 0:
        raise ValueError(f"Image is empty: shape {buffer.shape}")

    return buffer


def channel_count(buffer: np.ndarray) -> int:
    """Returns the number of channels of a pixel buffer."""
    return 1 if buffer.ndim == 2 else buffer.shape[2]


@dataclass(frozen=True)
class SubWindow:
    """Inclusive bounds of the region a pyramid's base level represents.

    Coordinates are in the frame of some reference image, usually the full
    image a crop was taken from.
    """

    row_start: int
    row_end: int
    col_start: int
    col_end: int

    def __post_init__(self) -> None:
        if self.row_end < self.row_start or self.col_end < self.col_start:
            raise ValueError(f"Sub-window has non-positive extent: {self}")

    @classmethod
    def full(cls, rows: int, cols: int) -> "SubWindow":
        """Sub-window covering a whole rows x cols image."""
        return cls(0, rows - 1, 0, cols - 1)

    @property
    def rows(self) -> int:
        return self.row_end - self.row_start + 1

    @property
    def cols(self) -> int:
        return self.col_end - self.col_start + 1

    @property
    def shape(self) -> Tuple[int, int]:
        return self.rows, self.cols

    def halve(self) -> "SubWindow":
        """Sub-window of the next coarser level.

        Start bounds round up and end bounds round down, so the result only
        covers samples that lie inside this window.

        Raises:
            ValueError: If no sample of the coarser lattice falls inside.
        """
        return SubWindow(
            (self.row_start >> 1) + self.row_start % 2,
            self.row_end >> 1,
            (self.col_start >> 1) + self.col_start % 2,
            self.col_end >> 1,
        )

    def at_level(self, level: int) -> "SubWindow":
        """Sub-window of the given pyramid level, with this one as level 0."""
        window = self
        for _ in range(level):
            window = window.halve()
        return window

    def offsets(self) -> Tuple[int, int]:
        """Returns (row_offset, col_offset) of the coarser lattice.

        Samples of the next level sit at local positions
        (row_offset + 2i, col_offset + 2j) of this level. Reduction,
        expansion and reconstruction all take their offsets from here.
        """
        return self.row_start % 2, self.col_start % 2


def _check_level(level: int, count: int) -> None:
    if not 0 <= level < count:
        raise IndexError(f"Pyramid level {level} out of range [0, {count - 1}]")


def _describe(name: str, levels: List[np.ndarray]) -> str:
    lines = [f"{name}:"]
    for i, level in enumerate(levels):
        lines.append(f"Level {i}: {level.shape[1]} x {level.shape[0]}")
    return "\n".join(lines)


class GaussianPyramid:
    """Gaussian pyramid of an image or of a sub-window of a larger image.

    Level 0 is the input converted to float64; level k+1 is level k blurred
    with the 5-tap generating kernel and decimated by 2. The number of levels
    does not count the base, so the pyramid holds ``num_levels + 1`` buffers.
    Levels are read-only once the pyramid is built.
    """

    def __init__(
        self,
        image: np.ndarray,
        num_levels: int,
        subwindow: Optional[SubWindow] = None
    ) -> None:
        """Builds the pyramid.

        Args:
            image: Input image, 1 or 3 channels, any numeric dtype.
            num_levels: Number of reductions to perform.
            subwindow: Region of a larger image that ``image`` covers. Defaults
                to the image's own extent. Needed whenever the crop starts at
                an odd row or column.

        Raises:
            ValueError: If the image or sub-window geometry is invalid.
        """
        base = to_pixel_buffer(image)
        rows, cols = base.shape[:2]

        if num_levels < 0:
            raise ValueError(f"num_levels must be >= 0, got {num_levels}")

        # Crops of a larger image are routinely small; only whole images warn
        report = logger.debug if subwindow is not None else logger.warning
        if subwindow is None:
            subwindow = SubWindow.full(rows, cols)
        elif subwindow.shape != (rows, cols):
            raise ValueError(
                f"Sub-window {subwindow} does not match image size {rows}x{cols}"
            )

        if rows >> num_levels == 0 or cols >> num_levels == 0:
            report(
                f"Too many levels requested. Image size {cols} x {rows} and "
                f"{num_levels} levels were requested."
            )

        self._subwindow = subwindow
        self._levels = [base]

        kernel = get_gaussian_kernel()
        window = subwindow
        for _ in range(num_levels):
            next_window = window.halve()
            row_offset, col_offset = window.offsets()
            self._levels.append(
                reduce_image(self._levels[-1], row_offset, col_offset, next_window.shape, kernel)
            )
            window = next_window

        for level in self._levels:
            level.setflags(write=False)

    def __getitem__(self, level: int) -> np.ndarray:
        _check_level(level, len(self._levels))
        return self._levels[level]

    def __len__(self) -> int:
        return len(self._levels)

    def __str__(self) -> str:
        return _describe("Gaussian Pyramid", self._levels)

    @property
    def num_levels(self) -> int:
        """Number of reductions, excluding the base level."""
        return len(self._levels) - 1

    @property
    def subwindow(self) -> SubWindow:
        return self._subwindow

    def level_subwindow(self, level: int) -> SubWindow:
        """Sub-window covered by the given level, in that level's coordinates."""
        _check_level(level, len(self._levels))
        return self._subwindow.at_level(level)

    def expand(self, level: int, times: int) -> np.ndarray:
        """Expands a level by repeated 2x upsampling.

        Each step upsamples to the size of the next finer level of this
        pyramid, with samples placed according to that level's parity.
        ``times`` is clamped to ``level``, since the pyramid determines the
        output size; ``times == level`` returns an image at base resolution.

        Args:
            level: Level to expand.
            times: Number of 2x upsampling steps.

        Returns:
            Expanded float64 image at the resolution of ``level - times``.

        Raises:
            IndexError: If ``level`` is out of range.
        """
        _check_level(level, len(self._levels))
        if times < 1:
            return self._levels[level]
        times = min(times, level)

        kernel = get_gaussian_kernel()
        expanded = self._levels[level]
        for target in range(level - 1, level - times - 1, -1):
            row_offset, col_offset = self.level_subwindow(target).offsets()
            expanded = expand_image(
                expanded, row_offset, col_offset, self._levels[target].shape[:2], kernel
            )

        return expanded


class LaplacianPyramid:
    """Laplacian pyramid: band-pass detail levels plus a coarse residual.

    Level k < L is $G_k - Expand(G_{k+1})$ and level L is $G_L$. A pyramid
    is either derived from an image (read-only) or created blank with
    ``LaplacianPyramid.blank`` and filled coefficient by coefficient.
    """

    def __init__(
        self,
        image: np.ndarray,
        num_levels: int,
        subwindow: Optional[SubWindow] = None
    ) -> None:
        """Builds the Laplacian pyramid of an image.

        Args:
            image: Input image, 1 or 3 channels; converted to float64.
            num_levels: Number of detail levels (the residual is extra).
            subwindow: Region of a larger image that ``image`` covers, with
                both ends inclusive.
        """
        gaussian = GaussianPyramid(image, num_levels, subwindow)
        self._subwindow = gaussian.subwindow
        self._levels = [
            gaussian[k] - gaussian.expand(k + 1, 1) for k in range(num_levels)
        ]
        self._levels.append(gaussian[num_levels].copy())
        self._populated: Optional[List[np.ndarray]] = None

        for level in self._levels:
            level.setflags(write=False)

    @classmethod
    def blank(
        cls,
        rows: int,
        cols: int,
        num_levels: int,
        channels: int = 1
    ) -> "LaplacianPyramid":
        """Allocates an empty pyramid to be filled in by the caller.

        Level k has ceil(rows / 2^k) x ceil(cols / 2^k) pixels, matching the
        Gaussian pyramid of a full rows x cols image. Every coefficient must
        be written before ``reconstruct`` can be called.

        Args:
            rows: Rows of the base level.
            cols: Columns of the base level.
            num_levels: Number of detail levels (the residual is extra).
            channels: 1 or 3.
        """
        if channels not in (1, 3):
            raise ValueError(f"channels must be 1 or 3, got {channels}")
        if num_levels < 0:
            raise ValueError(f"num_levels must be >= 0, got {num_levels}")

        pyramid = cls.__new__(cls)
        pyramid._subwindow = SubWindow.full(rows, cols)
        pyramid._levels = []
        pyramid._populated = []
        for k in range(num_levels + 1):
            shape = (math.ceil(rows / (1 << k)), math.ceil(cols / (1 << k)))
            pixel_shape = () if channels == 1 else (channels,)
            pyramid._levels.append(np.zeros(shape + pixel_shape, dtype=np.float64))
            pyramid._populated.append(np.zeros(shape, dtype=bool))
        return pyramid

    def __getitem__(self, level: int) -> np.ndarray:
        _check_level(level, len(self._levels))
        buffer = self._levels[level]
        if self.is_writable:
            buffer = buffer.view()
            buffer.setflags(write=False)
        return buffer

    def __len__(self) -> int:
        return len(self._levels)

    def __str__(self) -> str:
        return _describe("Laplacian Pyramid", self._levels)

    @property
    def num_levels(self) -> int:
        """Number of detail levels, excluding the residual."""
        return len(self._levels) - 1

    @property
    def channels(self) -> int:
        return channel_count(self._levels[0])

    @property
    def subwindow(self) -> SubWindow:
        return self._subwindow

    @property
    def is_writable(self) -> bool:
        return self._populated is not None

    @property
    def is_complete(self) -> bool:
        """True once every coefficient of every level holds a value."""
        if self._populated is None:
            return True
        return all(mask.all() for mask in self._populated)

    def _check_writable(self, level: int) -> None:
        if not self.is_writable:
            raise TypeError("Pyramids derived from an image are read-only")
        _check_level(level, len(self._levels))

    def set_level(self, level: int, buffer: np.ndarray) -> None:
        """Overwrites a whole level of a blank pyramid."""
        self._check_writable(level)
        buffer = np.asarray(buffer, dtype=np.float64)
        if buffer.shape != self._levels[level].shape:
            raise ValueError(
                f"Level {level} has shape {self._levels[level].shape}, got {buffer.shape}"
            )
        self._levels[level][...] = buffer
        self._populated[level][...] = True

    def set_coefficient(self, level: int, row: int, col: int, value) -> None:
        """Writes a single coefficient (a scalar or a 3-vector) of a blank pyramid."""
        self._check_writable(level)
        pixel = np.asarray(value, dtype=np.float64)
        if pixel.shape != self._levels[level].shape[2:]:
            raise ValueError(
                f"Coefficient shape {pixel.shape} does not match pyramid pixels "
                f"{self._levels[level].shape[2:]}"
            )
        self._levels[level][row, col] = pixel
        self._populated[level][row, col] = True

    def reconstruct(self) -> np.ndarray:
        """Collapses the pyramid back into a full-resolution image.

        Starting from the residual, repeatedly expand to the next finer level
        (using that level's sub-window parity) and add its detail:
        $G_i = Expand(G_{i+1}) + L_i$. The levels are not modified.

        Raises:
            RuntimeError: If a blank pyramid has unwritten coefficients.
        """
        if not self.is_complete:
            raise RuntimeError("Cannot reconstruct a partially populated pyramid")

        kernel = get_gaussian_kernel()
        current_image = np.array(self._levels[-1])

        for level in range(len(self._levels) - 2, -1, -1):
            detail = self._levels[level]
            row_offset, col_offset = self._subwindow.at_level(level).offsets()
            expanded_image = expand_image(
                current_image, row_offset, col_offset, detail.shape[:2], kernel
            )
            current_image = expanded_image + detail

        return current_image

    @staticmethod
    def get_level_count(rows: int, cols: int, desired_base_size: int) -> int:
        """Recommended number of levels for a rows x cols image.

        Returns $\\lceil |\\log_2 \\min(rows, cols) - \\log_2 base| \\rceil$, the
        number of halvings that brings the smaller dimension to roughly
        ``desired_base_size``, and never less than 1.
        """
        if rows < 1 or cols < 1 or desired_base_size < 1:
            raise ValueError(
                f"Dimensions must be positive, got {rows}x{cols} "
                f"with base size {desired_base_size}"
            )
        min_dim = min(rows, cols)
        count = math.ceil(abs(math.log2(min_dim) - math.log2(desired_base_size)))
        return max(1, count)
