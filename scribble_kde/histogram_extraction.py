"""
Histogram-based density extraction from scribble masks.

This module builds, for one color channel and one labeled sample region, a
discrete probability table over the 256 intensity levels: a histogram of the
selected pixels, optionally median-filtered, normalized to sum to one.
"""

import multiprocessing as mp
import numpy as np
from scipy.ndimage import median_filter
from tqdm import tqdm
from typing import Dict, List, Optional, Sequence, Tuple

from scribble_kde.cste import ClassInfo, HistogramConfig
from scribble_kde.exceptions import EmptySampleSet
from scribble_kde.logger import get_logger
from scribble_kde.probability_table import (
    ProbabilityTable,
    as_intensity_grid,
    check_channel_triple,
    check_grid,
    check_same_shape,
)

log = get_logger("histogram_extraction")


# ============================================================================
# HISTOGRAM ACCUMULATION
# ============================================================================


def _band_histogram(args: Tuple[np.ndarray, np.ndarray]) -> np.ndarray:
    """Histogram of one band of rows. Runs inside a worker process."""
    channel_band, mask_band = args
    selected = channel_band[mask_band != 0]
    return np.bincount(selected.ravel(), minlength=HistogramConfig.NUM_BINS)


def accumulate_histogram(
    channel: np.ndarray,
    mask: np.ndarray,
    num_workers: int = 1,
    show_progress: bool = False,
) -> np.ndarray:
    """
    Count the intensities of the selected pixels of a channel.

    With several workers the rows are split into bands. Each worker fills its
    own partial histogram and the partials are summed once at the end.

    Args:
        channel: Channel buffer, shape (H, W), intensities in [0, 255]
        mask: Sample mask, shape (H, W), non-zero = selected
        num_workers: Number of worker processes (1 = serial)
        show_progress: Display a progress bar over the bands

    Returns:
        Histogram counts, shape (256,), dtype int64
    """
    check_grid(channel, "channel")
    check_same_shape(channel, mask, ("channel", "mask"))
    channel = as_intensity_grid(channel)
    mask = np.asarray(mask)

    if num_workers <= 1 or channel.shape[0] < 2:
        return _band_histogram((channel, mask)).astype(np.int64)

    #! Split rows into at most num_workers bands
    num_bands = min(num_workers, channel.shape[0])
    bands = list(
        zip(
            np.array_split(channel, num_bands, axis=0),
            np.array_split(mask, num_bands, axis=0),
        )
    )

    histogram = np.zeros(HistogramConfig.NUM_BINS, dtype=np.int64)
    with mp.Pool(processes=num_bands) as pool:
        partials = pool.imap(_band_histogram, bands)
        for partial in tqdm(partials, total=num_bands, desc="Histogram bands", disable=not show_progress):
            histogram += partial

    return histogram


# ============================================================================
# SMOOTHING
# ============================================================================


def median_smooth_histogram(
    histogram: np.ndarray, window_size: int = HistogramConfig.MEDIAN_WINDOW
) -> np.ndarray:
    """
    Apply a 1-D median filter over the histogram buckets.

    Edge buckets use a clamped window (the nearest bucket is repeated).

    Args:
        histogram: Histogram counts, shape (256,)
        window_size: Odd window size

    Returns:
        Smoothed histogram, shape (256,), float64
    """
    if window_size <= 0 or window_size % 2 == 0:
        raise ValueError(f"Median window size must be odd and positive, got {window_size}")

    return median_filter(
        np.asarray(histogram, dtype=np.float64), size=window_size, mode="nearest"
    )


# ============================================================================
# DENSITY ESTIMATION
# ============================================================================


def estimate_channel_density(
    channel: np.ndarray,
    mask: np.ndarray,
    width: Optional[int] = None,
    height: Optional[int] = None,
    smooth: bool = False,
    window_size: int = HistogramConfig.MEDIAN_WINDOW,
    num_workers: int = 1,
) -> ProbabilityTable:
    """
    Estimate the intensity distribution of one channel over a sample mask.

    This is a frequency estimate (boxcar kernel one level wide), optionally
    regularized by median-filtering the histogram before normalization.

    Args:
        channel: Channel buffer, shape (H, W), intensities in [0, 255]
        mask: Sample mask, shape (H, W), non-zero = selected
        width: Declared image width, checked against both grids if given
        height: Declared image height, checked against both grids if given
        smooth: Median-filter the histogram before normalization
        window_size: Odd median window size, used when smooth is set
        num_workers: Worker processes for histogram accumulation

    Returns:
        ProbabilityTable with 256 entries summing to 1

    Raises:
        DimensionMismatch: If channel, mask and declared size disagree
        EmptySampleSet: If the mask selects no pixel
    """
    check_grid(channel, "channel", width, height)
    check_grid(mask, "mask", width, height)
    check_same_shape(channel, mask, ("channel", "mask"))

    histogram = accumulate_histogram(channel, mask, num_workers=num_workers)
    num_samples = int(histogram.sum())

    if num_samples == 0:
        raise EmptySampleSet("Sample mask selects no pixel, cannot estimate a density")

    counts = histogram.astype(np.float64)
    smoothed = False

    if smooth:
        filtered = median_smooth_histogram(counts, window_size)
        #! A median filter erases isolated spikes; keep raw counts if nothing survives
        if filtered.sum() > 0:
            counts = filtered
            smoothed = True
        else:
            log.warning(
                f"Median filter (window {window_size}) removed every bucket of a "
                f"{np.count_nonzero(histogram)}-level histogram, using raw counts"
            )

    #! Normalize to sum to 1 (divides by num_samples when unsmoothed)
    table = counts / counts.sum()

    log.debug(
        f"Density from {num_samples} samples, support {np.count_nonzero(table)} levels, "
        f"smoothed={smoothed}"
    )
    return ProbabilityTable(table, num_samples=num_samples, smoothed=smoothed)


def estimate_channel_densities(
    channels: Sequence[np.ndarray],
    mask: np.ndarray,
    width: Optional[int] = None,
    height: Optional[int] = None,
    smooth: bool = False,
    window_size: int = HistogramConfig.MEDIAN_WINDOW,
    num_workers: int = 1,
) -> List[ProbabilityTable]:
    """
    Estimate one table per channel against the same sample mask.

    Returns:
        List of three ProbabilityTable, in channel order
    """
    check_channel_triple(channels)
    return [
        estimate_channel_density(
            channel,
            mask,
            width=width,
            height=height,
            smooth=smooth,
            window_size=window_size,
            num_workers=num_workers,
        )
        for channel in channels
    ]


def estimate_class_densities(
    channels: Sequence[np.ndarray],
    fg_mask: np.ndarray,
    bg_mask: np.ndarray,
    width: Optional[int] = None,
    height: Optional[int] = None,
    smooth: bool = False,
    window_size: int = HistogramConfig.MEDIAN_WINDOW,
    num_workers: int = 1,
) -> Dict[str, List[ProbabilityTable]]:
    """
    Build the foreground and background table sets of an image.

    The two sets are estimated independently; nothing links them.

    Args:
        channels: Three channel buffers of shape (H, W)
        fg_mask: Foreground scribble mask, shape (H, W)
        bg_mask: Background scribble mask, shape (H, W)
        width, height, smooth, window_size, num_workers: See estimate_channel_density

    Returns:
        Dictionary {ClassInfo.FOREGROUND: [3 tables], ClassInfo.BACKGROUND: [3 tables]}
    """
    masks = {ClassInfo.FOREGROUND: fg_mask, ClassInfo.BACKGROUND: bg_mask}
    densities = {}

    for class_name, mask in masks.items():
        densities[class_name] = estimate_channel_densities(
            channels,
            mask,
            width=width,
            height=height,
            smooth=smooth,
            window_size=window_size,
            num_workers=num_workers,
        )
        num_samples = densities[class_name][0].num_samples
        log.info(f"{class_name}: {num_samples:,} labeled pixels")

    return densities
