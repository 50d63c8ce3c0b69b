"""
Rendering of probability maps and density tables.
"""

import cv2
import matplotlib.pyplot as plt
import numpy as np
import os
from typing import Dict, Optional, Sequence

from scribble_kde.cste import ChannelInfo, HistogramConfig
from scribble_kde.logger import get_logger
from scribble_kde.probability_table import ProbabilityTable

log = get_logger("visualization")

ESCAPE_KEY = 27


def imagesc(values: np.ndarray) -> np.ndarray:
    """
    Min-max scale a 2-D array to [0, 255] and apply the JET colormap.

    Non-finite values (e.g. -inf of a log-space map) are ignored for the
    scaling and rendered at the bottom of the colormap.

    Args:
        values: Array of shape (H, W)

    Returns:
        BGR image, shape (H, W, 3), dtype uint8
    """
    values = np.asarray(values, dtype=np.float64)
    finite = np.isfinite(values)

    if finite.any():
        vmin = values[finite].min()
        vmax = values[finite].max()
    else:
        vmin = vmax = 0.0
    log.info(f"[imagesc] min = {vmin}, max = {vmax}")

    scaled = np.zeros_like(values)
    if vmax > vmin:
        scaled[finite] = (values[finite] - vmin) / (vmax - vmin)

    display = np.round(scaled * 255.0).astype(np.uint8)
    return cv2.applyColorMap(display, cv2.COLORMAP_JET)


def show_image(img: np.ndarray, window_name: str, wait_for_esc: bool = True) -> None:
    """Display an image in a resizable window, optionally until Escape is pressed."""
    cv2.namedWindow(window_name, cv2.WINDOW_NORMAL | cv2.WINDOW_KEEPRATIO)
    cv2.imshow(window_name, img)
    if wait_for_esc:
        while cv2.waitKey(0) != ESCAPE_KEY:
            pass


def save_heatmap(values: np.ndarray, save_path: str) -> None:
    """Render values with imagesc and write the result to disk."""
    parent = os.path.dirname(save_path)
    if parent:
        os.makedirs(parent, exist_ok=True)

    if not cv2.imwrite(save_path, imagesc(values)):
        raise ValueError(f"Failed to write heat-map: {save_path}")
    log.info(f"Saved heat-map to: {save_path}")


def plot_densities(
    fg_tables: Sequence[ProbabilityTable],
    bg_tables: Sequence[ProbabilityTable],
    channel_names: Optional[Dict[int, str]] = None,
    save_path: Optional[str] = None,
) -> None:
    """
    Plot foreground and background densities, one subplot per channel.

    Args:
        fg_tables: Foreground tables, one per channel
        bg_tables: Background tables, one per channel
        channel_names: Mapping channel index -> name (default: Lab names)
        save_path: Optional path to save figure, shown otherwise
    """
    if channel_names is None:
        channel_names = ChannelInfo.LAB_NAMES

    levels = np.arange(HistogramConfig.NUM_BINS)
    num_channels = len(fg_tables)
    fig, axes = plt.subplots(num_channels, 1, figsize=(10, 3 * num_channels), squeeze=False)

    for idx, (fg_table, bg_table) in enumerate(zip(fg_tables, bg_tables)):
        ax = axes[idx, 0]
        ax.plot(levels, fg_table.values, label="foreground", linewidth=2)
        ax.plot(levels, bg_table.values, label="background", linewidth=2)
        ax.set_ylabel("Probability")
        ax.set_title(f"Channel {channel_names.get(idx, idx)}")
        ax.legend()
        ax.grid(True, alpha=0.3)

    axes[-1, 0].set_xlabel("Intensity level")
    fig.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")
        log.info(f"Saved density plot to: {save_path}")
    else:
        plt.show()

    plt.close(fig)
