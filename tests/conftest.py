import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest


@pytest.fixture
def block_channel():
    """4x4 channel made of four 2x2 blocks of levels 0, 1, 2, 3."""
    return np.array(
        [
            [0, 0, 1, 1],
            [0, 0, 1, 1],
            [2, 2, 3, 3],
            [2, 2, 3, 3],
        ],
        dtype=np.uint8,
    )


@pytest.fixture
def top_left_mask():
    mask = np.zeros((4, 4), dtype=np.uint8)
    mask[:2, :2] = 255
    return mask


@pytest.fixture
def spiky_channel():
    """Histogram 5,5,5,40,5,5 over levels 100..105."""
    values = [100] * 5 + [101] * 5 + [102] * 5 + [103] * 40 + [104] * 5 + [105] * 5
    return np.array(values, dtype=np.uint8).reshape(5, 13)
