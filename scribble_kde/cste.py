"""
Constants and configuration for the scribble-based color density pipeline.
"""

from typing import Dict, List

# ============================================================================
# PATH CONFIGURATION
# ============================================================================
class GeneralConfig:
    """General project configuration."""
    NB_JOBS: int = 4  # Number of parallel jobs for histogram accumulation


class GeneralPath:
    """General project paths."""
    LOG_PATH: str = r".logs/"


class DataPath:
    """Data directory paths."""
    IMG_INPUT: str = r"data/alphamatting.com/input_training_lowres/GT18.png"
    SCRIBBLE_FG: str = r"data/alphamatting.com/GT18_FG.png"
    SCRIBBLE_BG: str = r"data/alphamatting.com/GT18_BG.png"

    RESULT_PATH: str = r"data/results/"

    DENSITIES_NOMEDFILTER: str = r"densities_nomedfilter.txt"
    DENSITIES_MEDFILTER: str = r"densities_medfilter.txt"


# ============================================================================
# CLASS DEFINITIONS
# ============================================================================

class ClassInfo:
    """Scribble classes. Each class gets its own independent table set."""

    FOREGROUND: str = "foreground"
    BACKGROUND: str = "background"

    CLASS_NAMES: List[str] = [FOREGROUND, BACKGROUND]
    NUM_CLASSES: int = len(CLASS_NAMES)


class ChannelInfo:
    """
    Channel indices of a three-channel image.

    Estimation and scoring must use the same ordering.
    """

    CHANNEL_A: int = 0
    CHANNEL_B: int = 1
    CHANNEL_C: int = 2

    NUM_CHANNELS: int = 3

    LAB_NAMES: Dict[int, str] = {
        0: "L",
        1: "a",
        2: "b",
    }
    RGB_NAMES: Dict[int, str] = {
        0: "Red",
        1: "Green",
        2: "Blue",
    }


# ============================================================================
# ESTIMATION PARAMETERS
# ============================================================================

class HistogramConfig:
    """Configuration for the per-channel histogram density estimate."""

    NUM_BINS: int = 256  # One bucket per 8-bit intensity level
    MAX_LEVEL: int = NUM_BINS - 1
    MEDIAN_WINDOW: int = 5  # Odd window of the 1-D median filter
    SUM_TOLERANCE: float = 1e-6  # Allowed deviation of a table sum from 1.0


class ScoringConfig:
    """Configuration for the joint probability scorer."""

    LOG_EPSILON: float = 1e-10  # Floor applied before log when requested


class ScribbleConfig:
    """Binarization of user-drawn annotation images."""

    # Drawn pixels are dark on a white sheet: everything at or below
    # THRESHOLD becomes selected (255) when INVERT is set.
    THRESHOLD: int = 1
    INVERT: bool = True
    SELECTED: int = 255
    NOT_SELECTED: int = 0
