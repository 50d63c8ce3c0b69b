"""
Probability table and probability map containers, plus grid validation.

A ProbabilityTable is the discrete distribution of one channel for one class
(256 intensity levels). A ProbabilityMap is the per-pixel joint likelihood of
an image under one class. Both are read-only once built.
"""

import numpy as np
from typing import Iterator, List, Optional, Sequence, Tuple

from scribble_kde.cste import ChannelInfo, HistogramConfig
from scribble_kde.exceptions import DimensionMismatch


# ============================================================================
# GRID VALIDATION
# ============================================================================


def check_grid(
    grid: np.ndarray,
    name: str,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> Tuple[int, int]:
    """
    Check that a grid is 2-D and matches the declared size.

    Args:
        grid: Array of shape (H, W)
        name: Name used in error messages
        width: Declared width W, or None to skip the check
        height: Declared height H, or None to skip the check

    Returns:
        Tuple (H, W) of the grid

    Raises:
        DimensionMismatch: If the grid is not 2-D or disagrees with width/height
    """
    grid = np.asarray(grid)
    if grid.ndim != 2:
        raise DimensionMismatch(f"{name} must be a 2-D grid, got shape {grid.shape}")

    h, w = grid.shape
    if width is not None and w != width:
        raise DimensionMismatch(f"{name} width {w} does not match declared width {width}")
    if height is not None and h != height:
        raise DimensionMismatch(f"{name} height {h} does not match declared height {height}")
    return h, w


def check_same_shape(first: np.ndarray, second: np.ndarray, names: Tuple[str, str]) -> None:
    """Raise DimensionMismatch if two grids differ in shape."""
    if np.shape(first) != np.shape(second):
        raise DimensionMismatch(
            f"Shape mismatch: {names[0]} {np.shape(first)} vs {names[1]} {np.shape(second)}"
        )


def as_intensity_grid(channel: np.ndarray, name: str = "channel") -> np.ndarray:
    """
    Return a channel buffer as an integer array usable as a table index.

    uint8 buffers are returned as-is (no copy). Other integer buffers are
    range-checked.

    Raises:
        ValueError: If values are not integers in [0, 255]
    """
    channel = np.asarray(channel)
    if channel.dtype == np.uint8:
        return channel

    if not np.issubdtype(channel.dtype, np.integer):
        raise ValueError(f"{name} must hold integer intensities, got dtype {channel.dtype}")
    if channel.size and (channel.min() < 0 or channel.max() > HistogramConfig.MAX_LEVEL):
        raise ValueError(
            f"{name} values must lie in [0, {HistogramConfig.MAX_LEVEL}], "
            f"got [{channel.min()}, {channel.max()}]"
        )
    return channel


def check_channel_triple(channels: Sequence[np.ndarray], name: str = "channels") -> None:
    """Raise ValueError unless exactly three channels are given."""
    if len(channels) != ChannelInfo.NUM_CHANNELS:
        raise ValueError(
            f"{name} must contain {ChannelInfo.NUM_CHANNELS} entries, got {len(channels)}"
        )


def _read_only(values: np.ndarray) -> np.ndarray:
    values.flags.writeable = False
    return values


# ============================================================================
# PROBABILITY TABLE
# ============================================================================


class ProbabilityTable:
    """Discrete distribution over the 256 intensity levels of one channel."""

    def __init__(
        self,
        values: Sequence[float],
        num_samples: Optional[int] = None,
        smoothed: bool = False,
    ):
        """
        Build a table from 256 non-negative values summing to 1.

        Args:
            values: Probability of each intensity level (index = level)
            num_samples: Number of labeled pixels the table was built from
            smoothed: Whether the histogram was median-filtered

        Raises:
            ValueError: If the values are not a valid distribution
        """
        # Always copy so that two tables never share a buffer
        values = np.array(values, dtype=np.float64)

        if values.shape != (HistogramConfig.NUM_BINS,):
            raise ValueError(
                f"Probability table needs {HistogramConfig.NUM_BINS} entries, got shape {values.shape}"
            )
        if not np.all(np.isfinite(values)) or np.any(values < 0):
            raise ValueError("Probability table values must be finite and non-negative")

        total = values.sum()
        if abs(total - 1.0) > HistogramConfig.SUM_TOLERANCE:
            raise ValueError(f"Probability table must sum to 1.0, got {total}")

        self._values = _read_only(values)
        self.num_samples = num_samples
        self.smoothed = smoothed

    @property
    def values(self) -> np.ndarray:
        """Read-only array of the 256 probabilities."""
        return self._values

    def __len__(self) -> int:
        return len(self._values)

    def __getitem__(self, level):
        return self._values[level]

    def __iter__(self) -> Iterator[float]:
        return iter(self._values.tolist())

    def __repr__(self) -> str:
        support = np.count_nonzero(self._values)
        return (
            f"ProbabilityTable(num_samples={self.num_samples}, "
            f"smoothed={self.smoothed}, support={support})"
        )

    def tolist(self) -> List[float]:
        return self._values.tolist()

    def lookup(self, channel: np.ndarray) -> np.ndarray:
        """Probability of every intensity in a channel buffer (same shape)."""
        return self._values[as_intensity_grid(channel)]

    def log_values(self, floor: Optional[float] = None) -> np.ndarray:
        """
        Natural log of the table.

        Empty buckets give -inf unless a floor is given, in which case values
        are clamped to at least `floor` before the log.
        """
        values = self._values
        if floor is not None:
            if floor <= 0:
                raise ValueError(f"Log floor must be positive, got {floor}")
            values = np.maximum(values, floor)
        with np.errstate(divide="ignore"):
            return np.log(values)


# ============================================================================
# PROBABILITY MAP
# ============================================================================


class ProbabilityMap:
    """Per-pixel joint likelihood of an image under one class."""

    def __init__(self, values: np.ndarray, log_space: bool = False):
        """
        Args:
            values: Array of shape (H, W), float64
            log_space: True if values hold log-probabilities
        """
        values = np.array(values, dtype=np.float64)
        check_grid(values, "probability map")
        self._values = _read_only(values)
        self.log_space = log_space

    @property
    def values(self) -> np.ndarray:
        """Read-only (H, W) array."""
        return self._values

    @property
    def height(self) -> int:
        return self._values.shape[0]

    @property
    def width(self) -> int:
        return self._values.shape[1]

    @property
    def shape(self) -> Tuple[int, int]:
        return self._values.shape

    def flat(self) -> np.ndarray:
        """Row-major sequence of the W*H values."""
        return self._values.ravel()

    def to_linear(self) -> "ProbabilityMap":
        """Return the map in probability space (exp of a log-space map)."""
        if not self.log_space:
            return self
        return ProbabilityMap(np.exp(self._values), log_space=False)

    def __repr__(self) -> str:
        return f"ProbabilityMap(height={self.height}, width={self.width}, log_space={self.log_space})"
