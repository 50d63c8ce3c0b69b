"""
Input/Output utilities: images, scribble masks and tab-separated dumps.
"""

import cv2
import numpy as np
import os
import pandas as pd
from PIL import Image
from typing import List, Sequence, Tuple

from scribble_kde.cste import ChannelInfo, HistogramConfig, ScribbleConfig
from scribble_kde.logger import get_logger
from scribble_kde.probability_table import ProbabilityMap, ProbabilityTable

log = get_logger("io_utils")


# ============================================================================
# IMAGES
# ============================================================================


def load_image(img_path: str) -> np.ndarray:
    """
    Load an RGB image from file path.

    Args:
        img_path: Path to image file

    Returns:
        RGB image, shape (H, W, 3), dtype uint8

    Raises:
        FileNotFoundError: If image path does not exist
        ValueError: If image cannot be loaded or converted to RGB
    """
    if not os.path.exists(img_path):
        raise FileNotFoundError(f"Image not found: {img_path}")

    try:
        img = Image.open(img_path).convert("RGB")
    except Exception as e:
        raise ValueError(f"Failed to load image {img_path}: {e}")

    return np.array(img, dtype=np.uint8)


def rgb_to_lab(img: np.ndarray) -> np.ndarray:
    """Convert an RGB uint8 image to 8-bit Lab (OpenCV scaling, all channels in [0, 255])."""
    if img.ndim != 3 or img.shape[2] != ChannelInfo.NUM_CHANNELS:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {img.shape}")
    return cv2.cvtColor(img.astype(np.uint8), cv2.COLOR_RGB2Lab)


def split_channels(img: np.ndarray) -> List[np.ndarray]:
    """
    Split an (H, W, 3) image into three contiguous (H, W) channel buffers.

    The returned buffers are copies, the caller owns them.
    """
    if img.ndim != 3 or img.shape[2] != ChannelInfo.NUM_CHANNELS:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {img.shape}")
    return [np.ascontiguousarray(c) for c in cv2.split(img)]


def load_scribble_mask(
    mask_path: str,
    threshold: int = ScribbleConfig.THRESHOLD,
    invert: bool = ScribbleConfig.INVERT,
) -> np.ndarray:
    """
    Load a user-drawn annotation image and binarize it.

    Args:
        mask_path: Path to annotation image (read as grayscale)
        threshold: Binarization threshold
        invert: If True, pixels <= threshold are selected (dark strokes on white)

    Returns:
        Mask of shape (H, W), dtype uint8, values in {0, 255}

    Raises:
        FileNotFoundError: If the path does not exist
        ValueError: If the image cannot be decoded
    """
    if not os.path.exists(mask_path):
        raise FileNotFoundError(f"Scribble image not found: {mask_path}")

    gray = cv2.imread(mask_path, cv2.IMREAD_GRAYSCALE)
    if gray is None:
        raise ValueError(f"Failed to read scribble image: {mask_path}")

    return binarize_scribble(gray, threshold=threshold, invert=invert)


def binarize_scribble(
    gray: np.ndarray,
    threshold: int = ScribbleConfig.THRESHOLD,
    invert: bool = ScribbleConfig.INVERT,
) -> np.ndarray:
    """Threshold a grayscale annotation into a {0, 255} selection grid."""
    mode = cv2.THRESH_BINARY_INV if invert else cv2.THRESH_BINARY
    _, mask = cv2.threshold(gray.astype(np.uint8), threshold, ScribbleConfig.SELECTED, mode)

    log.info(
        f"Scribble mask {mask.shape}: {np.count_nonzero(mask):,} selected pixels"
    )
    return mask


# ============================================================================
# TAB-SEPARATED DUMPS
# ============================================================================


def _ensure_parent(path: str) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)


def save_vector_tsv(save_path: str, values: Sequence[float]) -> None:
    """Write a sequence of floats as one tab-separated row."""
    _ensure_parent(save_path)
    pd.DataFrame([list(values)]).to_csv(save_path, sep="\t", header=False, index=False)


def save_densities_tsv(
    save_path: str,
    fg_tables: Sequence[ProbabilityTable],
    bg_tables: Sequence[ProbabilityTable],
) -> None:
    """
    Save foreground and background densities for external plotting.

    Layout: one row per (channel, class), channel-major with the foreground
    row before the background row, 256 tab-separated values per row.

    Args:
        save_path: Output file path
        fg_tables: Three foreground tables
        bg_tables: Three background tables
    """
    if len(fg_tables) != len(bg_tables):
        raise ValueError("Foreground and background table sets must have the same length")

    rows = []
    for fg_table, bg_table in zip(fg_tables, bg_tables):
        rows.append(fg_table.tolist())
        rows.append(bg_table.tolist())

    _ensure_parent(save_path)
    pd.DataFrame(rows).to_csv(save_path, sep="\t", header=False, index=False)
    log.info(f"Saved densities for {len(fg_tables)} channels to: {save_path}")


def load_densities_tsv(
    load_path: str,
) -> Tuple[List[ProbabilityTable], List[ProbabilityTable]]:
    """
    Load densities saved by save_densities_tsv.

    Returns:
        Tuple (fg_tables, bg_tables)

    Raises:
        ValueError: If the file does not hold pairs of 256-value rows
    """
    df = pd.read_csv(load_path, sep="\t", header=None, float_precision="round_trip")

    if df.shape[1] != HistogramConfig.NUM_BINS or df.shape[0] % 2 != 0:
        raise ValueError(
            f"Density file must hold pairs of {HistogramConfig.NUM_BINS}-value rows, got {df.shape}"
        )

    values = df.to_numpy(dtype=np.float64)
    fg_tables = [ProbabilityTable(row) for row in values[0::2]]
    bg_tables = [ProbabilityTable(row) for row in values[1::2]]

    log.info(f"Loaded densities for {len(fg_tables)} channels from: {load_path}")
    return fg_tables, bg_tables


def save_probability_map_tsv(save_path: str, prob_map: ProbabilityMap) -> None:
    """Write a probability map as H rows of W tab-separated values."""
    _ensure_parent(save_path)
    pd.DataFrame(prob_map.values).to_csv(save_path, sep="\t", header=False, index=False)
    log.info(f"Saved {prob_map.height}x{prob_map.width} probability map to: {save_path}")
