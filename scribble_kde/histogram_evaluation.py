"""
Joint probability scoring of an image against per-channel density tables.

Channels are treated as independent given the class, so the likelihood of a
pixel is the product of its three per-channel table lookups.

Numerical note: table entries are often far below 1e-5, and the product of
three of them can underflow to exactly 0.0 for large low-likelihood images.
Linear space (the default) accepts that limitation. Pass log_space=True to
sum log lookups instead; empty buckets then give -inf unless a log_floor is
set.
"""

import numpy as np
from typing import Dict, List, Optional, Sequence

from scribble_kde.cste import HistogramConfig, ScoringConfig
from scribble_kde.exceptions import DimensionMismatch
from scribble_kde.histogram_extraction import estimate_channel_densities
from scribble_kde.logger import get_logger
from scribble_kde.probability_table import (
    ProbabilityMap,
    ProbabilityTable,
    as_intensity_grid,
    check_channel_triple,
    check_grid,
)

log = get_logger("histogram_evaluation")


# ============================================================================
# SCORING FUNCTIONS
# ============================================================================


def _check_channels(
    channels: Sequence[np.ndarray],
    width: Optional[int],
    height: Optional[int],
) -> None:
    """Raise DimensionMismatch unless all channels share the declared size."""
    check_channel_triple(channels)
    first_shape = check_grid(channels[0], "channel 0", width, height)
    for idx, channel in enumerate(channels[1:], start=1):
        shape = check_grid(channel, f"channel {idx}", width, height)
        if shape != first_shape:
            raise DimensionMismatch(
                f"Shape mismatch: channel 0 {first_shape} vs channel {idx} {shape}"
            )


def score_image(
    tables: Sequence[ProbabilityTable],
    channels: Sequence[np.ndarray],
    width: Optional[int] = None,
    height: Optional[int] = None,
    log_space: bool = False,
    log_floor: Optional[float] = None,
) -> ProbabilityMap:
    """
    Compute the joint probability of every pixel under one class.

    map[p] = t0[c0[p]] * t1[c1[p]] * t2[c2[p]], in row-major order.

    Args:
        tables: Three ProbabilityTable, one per channel, same class
        channels: Three channel buffers of shape (H, W), same order as tables
        width: Declared image width, checked if given
        height: Declared image height, checked if given
        log_space: Sum log-probabilities instead of multiplying probabilities
        log_floor: In log space, clamp table values to at least this value
            before the log. None keeps log(0) = -inf for empty buckets.

    Returns:
        ProbabilityMap of shape (H, W); log-probabilities if log_space

    Raises:
        DimensionMismatch: If channel sizes disagree with each other or W x H
    """
    check_channel_triple(tables, "tables")
    _check_channels(channels, width, height)

    if log_floor is not None and not log_space:
        raise ValueError("log_floor only applies when log_space is set")

    if log_space:
        scores = np.zeros(np.shape(channels[0]), dtype=np.float64)
        for table, channel in zip(tables, channels):
            #! Sum of log lookups, -inf propagates for empty buckets
            scores += table.log_values(log_floor)[as_intensity_grid(channel)]
    else:
        scores = np.ones(np.shape(channels[0]), dtype=np.float64)
        for table, channel in zip(tables, channels):
            scores *= table.lookup(channel)

    log.debug(
        f"Scored {scores.size} pixels (log_space={log_space}), "
        f"range [{scores.min() if scores.size else 0}, {scores.max() if scores.size else 0}]"
    )
    return ProbabilityMap(scores, log_space=log_space)


def score_class_images(
    class_tables: Dict[str, List[ProbabilityTable]],
    channels: Sequence[np.ndarray],
    width: Optional[int] = None,
    height: Optional[int] = None,
    log_space: bool = False,
    log_floor: Optional[float] = None,
) -> Dict[str, ProbabilityMap]:
    """
    Score an image once per class.

    Args:
        class_tables: Output of estimate_class_densities
        channels: Three channel buffers of shape (H, W)
        width, height, log_space, log_floor: See score_image

    Returns:
        Dictionary mapping class name to its ProbabilityMap
    """
    maps = {}
    for class_name, tables in class_tables.items():
        maps[class_name] = score_image(
            tables,
            channels,
            width=width,
            height=height,
            log_space=log_space,
            log_floor=log_floor,
        )
        log.info(f"Scored {class_name} map {maps[class_name].shape}")
    return maps


def image_probability(
    channels: Sequence[np.ndarray],
    mask: np.ndarray,
    width: Optional[int] = None,
    height: Optional[int] = None,
    smooth: bool = True,
    window_size: int = HistogramConfig.MEDIAN_WINDOW,
    log_space: bool = False,
    log_floor: Optional[float] = None,
    num_workers: int = 1,
) -> ProbabilityMap:
    """
    Estimate the three channel tables of one class and score the image with them.

    Smoothing is on by default for this one-shot path.

    Returns:
        ProbabilityMap of shape (H, W)
    """
    tables = estimate_channel_densities(
        channels,
        mask,
        width=width,
        height=height,
        smooth=smooth,
        window_size=window_size,
        num_workers=num_workers,
    )
    return score_image(
        tables,
        channels,
        width=width,
        height=height,
        log_space=log_space,
        log_floor=log_floor,
    )


def floored_log_score(
    tables: Sequence[ProbabilityTable],
    channels: Sequence[np.ndarray],
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> ProbabilityMap:
    """Log-space score with table values floored at ScoringConfig.LOG_EPSILON."""
    return score_image(
        tables,
        channels,
        width=width,
        height=height,
        log_space=True,
        log_floor=ScoringConfig.LOG_EPSILON,
    )
