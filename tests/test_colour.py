import numpy as np
import pytest

from facefinder.colour import (
    calculate_hue_saturation,
    calculate_irgby,
    calculate_texture_amplitude,
    correct_zero_response,
    hue_saturation,
    median_filter,
    rgb_grid,
    to_greyscale,
)
from facefinder.grid import Grid


def test_rgb_grid_requires_three_channels():
    assert rgb_grid(np.zeros((4, 5, 3), dtype=np.uint8)).shape == (5, 4)
    with pytest.raises(ValueError):
        rgb_grid(np.zeros((4, 5)))


def test_greyscale_weights():
    assert to_greyscale((255, 255, 255)) == pytest.approx(0.9999 * 255)
    np.testing.assert_allclose(to_greyscale(np.array([[[100, 0, 0], [0, 0, 100]]])), [[29.89, 11.40]])


def test_correct_zero_response_subtracts_smallest_channel_value():
    pixels = np.array([[[20, 30, 40], [50, 25, 200]]], dtype=np.uint8)
    corrected = correct_zero_response(rgb_grid(pixels))
    np.testing.assert_array_equal(corrected.values, pixels - 20)


def test_irgby_for_grey_pixel():
    irgby = calculate_irgby(rgb_grid(np.full((1, 1, 3), 99, dtype=np.uint8)))
    value = irgby.get(0, 0)
    assert value['rg'] == pytest.approx(0)
    assert value['by'] == pytest.approx(0)
    assert value['i'] == pytest.approx(105 * 2)


def test_irgby_opponent_channels():
    value = calculate_irgby(rgb_grid(np.array([[[99, 9, 0]]], dtype=np.uint8))).get(0, 0)
    # log10(100) = 2, log10(10) = 1, log10(1) = 0
    assert value['rg'] == pytest.approx(105)
    assert value['by'] == pytest.approx(-157.5)
    assert value['i'] == pytest.approx(105)


def test_median_filter_uses_blocks_of_block_size_plus_one():
    values = Grid(np.arange(16, dtype=np.float64).reshape(4, 4))
    smoothed = median_filter(values, None, 1)
    # Upper median of each 2x2 block
    np.testing.assert_array_equal(smoothed.values, [
        [4, 4, 6, 6],
        [4, 4, 6, 6],
        [12, 12, 14, 14],
        [12, 12, 14, 14],
    ])


def test_median_filter_truncates_edge_blocks():
    values = Grid(np.array([[1, 9, 2, 3, 8]], dtype=np.float64))
    smoothed = median_filter(values, None, 2)
    np.testing.assert_array_equal(smoothed.values, [[2, 2, 2, 8, 8]])


def test_median_filter_rejects_non_positive_block_size():
    with pytest.raises(ValueError):
        median_filter(Grid(np.zeros((2, 2))), None, 0)


def test_texture_amplitude_is_zero_for_flat_image():
    irgby = calculate_irgby(rgb_grid(np.full((10, 10, 3), 128, dtype=np.uint8)))
    texture = calculate_texture_amplitude(irgby, 2, 3)
    assert texture.shape == (10, 10)
    np.testing.assert_array_equal(texture.values, 0)


def test_hue_saturation_grid():
    pixels = np.zeros((6, 6, 3), dtype=np.uint8)
    pixels[...] = (200, 150, 120)
    irgby = calculate_irgby(rgb_grid(pixels))
    texture = Grid(np.full((6, 6), 3.0))
    hue_saturations = calculate_hue_saturation(irgby, texture, 2)

    value = irgby.get(0, 0)
    expected_hue = np.degrees(np.arctan2(value['rg'], value['by']))
    expected_saturation = np.hypot(value['rg'], value['by'])
    result = hue_saturations.get(5, 5)
    assert result['hue'] == pytest.approx(expected_hue)
    assert result['saturation'] == pytest.approx(expected_saturation)
    assert result['texture_amplitude'] == 3.0


def test_hue_saturation_rejects_mismatched_texture():
    irgby = calculate_irgby(rgb_grid(np.zeros((4, 4, 3), dtype=np.uint8)))
    with pytest.raises(ValueError):
        calculate_hue_saturation(irgby, Grid(np.zeros((3, 4))), 1)


def test_hue_saturation_record():
    record = hue_saturation(130, 20, 1.5)
    assert (record['hue'], record['saturation'], record['texture_amplitude']) == (130, 20, 1.5)
