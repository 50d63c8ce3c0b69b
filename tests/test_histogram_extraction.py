import numpy as np
import pytest

from scribble_kde.cste import ClassInfo
from scribble_kde.exceptions import DimensionMismatch, EmptySampleSet
from scribble_kde.histogram_extraction import (
    accumulate_histogram,
    estimate_channel_densities,
    estimate_channel_density,
    estimate_class_densities,
    median_smooth_histogram,
)


def test_accumulate_histogram_counts_selected_pixels(block_channel, top_left_mask):
    histogram = accumulate_histogram(block_channel, top_left_mask)
    assert histogram.shape == (256,)
    assert histogram[0] == 4
    assert histogram.sum() == 4


def test_accumulate_histogram_parallel_matches_serial():
    rng = np.random.default_rng(0)
    channel = rng.integers(0, 256, size=(48, 64), dtype=np.uint8)
    mask = rng.integers(0, 2, size=(48, 64), dtype=np.uint8)

    serial = accumulate_histogram(channel, mask, num_workers=1)
    parallel = accumulate_histogram(channel, mask, num_workers=3)

    np.testing.assert_array_equal(serial, parallel)
    assert serial.sum() == np.count_nonzero(mask)


def test_estimate_block_scenario(block_channel, top_left_mask):
    table = estimate_channel_density(block_channel, top_left_mask, width=4, height=4)

    expected = np.zeros(256)
    expected[0] = 1.0
    np.testing.assert_array_equal(table.values, expected)
    assert table.num_samples == 4
    assert not table.smoothed


def test_estimate_sums_to_one_for_random_mask():
    rng = np.random.default_rng(1)
    channel = rng.integers(0, 256, size=(30, 40), dtype=np.uint8)
    mask = rng.random((30, 40)) > 0.7

    table = estimate_channel_density(channel, mask)

    assert len(table) == 256
    assert np.all(table.values >= 0)
    assert table.values.sum() == pytest.approx(1.0, abs=1e-6)


def test_estimate_accepts_boolean_and_0_255_masks(block_channel):
    bool_mask = block_channel >= 2
    byte_mask = bool_mask.astype(np.uint8) * 255

    t_bool = estimate_channel_density(block_channel, bool_mask)
    t_byte = estimate_channel_density(block_channel, byte_mask)

    np.testing.assert_array_equal(t_bool.values, t_byte.values)
    assert t_bool[2] == pytest.approx(0.5)
    assert t_bool[3] == pytest.approx(0.5)


def test_estimate_empty_mask_raises(block_channel):
    with pytest.raises(EmptySampleSet):
        estimate_channel_density(block_channel, np.zeros((4, 4), dtype=np.uint8))


def test_empty_sample_set_is_a_value_error(block_channel):
    with pytest.raises(ValueError):
        estimate_channel_density(block_channel, np.zeros((4, 4), dtype=bool), smooth=True)


def test_estimate_mask_shape_mismatch(block_channel):
    with pytest.raises(DimensionMismatch):
        estimate_channel_density(block_channel, np.ones((4, 5), dtype=np.uint8))


def test_estimate_declared_size_mismatch(block_channel, top_left_mask):
    with pytest.raises(DimensionMismatch):
        estimate_channel_density(block_channel, top_left_mask, width=5, height=4)
    with pytest.raises(DimensionMismatch):
        estimate_channel_density(block_channel, top_left_mask, width=4, height=3)


def test_estimate_rejects_non_2d_channel():
    with pytest.raises(DimensionMismatch):
        estimate_channel_density(np.zeros(16, dtype=np.uint8), np.ones(16, dtype=np.uint8))


def test_estimate_rejects_out_of_range_intensities():
    channel = np.array([[0, 300], [1, 2]], dtype=np.int32)
    with pytest.raises(ValueError):
        estimate_channel_density(channel, np.ones((2, 2), dtype=np.uint8))


def test_estimate_rejects_float_channel():
    channel = np.zeros((2, 2), dtype=np.float32)
    with pytest.raises(ValueError):
        estimate_channel_density(channel, np.ones((2, 2), dtype=np.uint8))


def test_estimate_is_deterministic():
    rng = np.random.default_rng(2)
    channel = rng.integers(0, 256, size=(20, 20), dtype=np.uint8)
    mask = rng.random((20, 20)) > 0.5

    first = estimate_channel_density(channel, mask, smooth=True)
    second = estimate_channel_density(channel, mask, smooth=True)

    assert first.values.tobytes() == second.values.tobytes()


def test_smoothing_flattens_spike(spiky_channel):
    mask = np.ones_like(spiky_channel)

    raw = estimate_channel_density(spiky_channel, mask)
    smoothed = estimate_channel_density(spiky_channel, mask, smooth=True)

    assert raw[103] == pytest.approx(40 / 65)
    assert smoothed.smoothed
    assert not np.array_equal(raw.values, smoothed.values)
    np.testing.assert_allclose(smoothed.values[100:106], 1 / 6)
    assert smoothed.values.sum() == pytest.approx(1.0, abs=1e-6)
    assert np.all(smoothed.values >= 0)
    assert smoothed.num_samples == 65


def test_smoothing_one_hot_interior_falls_back_to_raw():
    channel = np.full((3, 3), 128, dtype=np.uint8)
    table = estimate_channel_density(channel, np.ones((3, 3)), smooth=True)

    assert table[128] == 1.0
    assert table.values.sum() == pytest.approx(1.0, abs=1e-6)
    assert not table.smoothed


def test_smoothing_one_hot_at_edge_keeps_support():
    channel = np.zeros((3, 3), dtype=np.uint8)
    table = estimate_channel_density(channel, np.ones((3, 3)), smooth=True)

    assert table[0] == 1.0
    assert np.count_nonzero(table.values) == 1
    assert table.smoothed


def test_median_smooth_clamps_edges():
    histogram = np.zeros(256)
    histogram[:2] = 10
    smoothed = median_smooth_histogram(histogram, window_size=3)

    # window at bucket 0 is [h0, h0, h1]
    assert smoothed[0] == 10
    assert smoothed[1] == 10
    assert smoothed[2] == 0


@pytest.mark.parametrize("window_size", [0, 2, -3])
def test_median_smooth_rejects_bad_window(window_size):
    with pytest.raises(ValueError):
        median_smooth_histogram(np.ones(256), window_size=window_size)


def test_estimate_channel_densities_needs_three_channels(block_channel, top_left_mask):
    with pytest.raises(ValueError):
        estimate_channel_densities([block_channel, block_channel], top_left_mask)


def test_estimate_class_densities_are_independent(block_channel):
    channels = [block_channel, block_channel.copy(), block_channel.copy()]
    fg_mask = block_channel == 0
    bg_mask = block_channel == 3

    densities = estimate_class_densities(channels, fg_mask, bg_mask)

    assert set(densities) == {ClassInfo.FOREGROUND, ClassInfo.BACKGROUND}
    for fg_table, bg_table in zip(densities[ClassInfo.FOREGROUND], densities[ClassInfo.BACKGROUND]):
        assert fg_table is not bg_table
        assert fg_table[0] == 1.0
        assert bg_table[3] == 1.0
        assert not np.shares_memory(fg_table.values, bg_table.values)
