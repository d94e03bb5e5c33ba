"""
Colour space and texture helpers for skin tone detection.

Grids used here:
    RGB grids           - (height, width, 3) uint8, channels in R, G, B order
    I/RgBy grids        - structured IRGBY_DTYPE (intensity, red-green, blue-yellow)
    hue/saturation grids - structured HUE_SATURATION_DTYPE

The I/RgBy transform follows Jay Kapur's skin detection write-up
(http://web.archive.org/web/20090723024922/http:/geocities.com/jaykapur/face.html).
"""

import numpy as np

from facefinder.grid import Grid

IRGBY_DTYPE = np.dtype([('i', np.float64), ('rg', np.float64), ('by', np.float64)])
HUE_SATURATION_DTYPE = np.dtype([
    ('hue', np.float64),
    ('saturation', np.float64),
    ('texture_amplitude', np.float64),
])

GREYSCALE_WEIGHTS = (0.2989, 0.5870, 0.1140)


def rgb_grid(pixels):
    """Wrap an (H, W, 3) RGB uint8 array (eg. from utils.load_image) as a Grid."""
    pixels = np.asarray(pixels)
    if (pixels.ndim != 3) or (pixels.shape[2] != 3):
        raise ValueError(f"expected (height, width, 3) RGB data, got shape {pixels.shape}")
    return Grid(pixels.astype(np.uint8, copy=False))


def to_greyscale(rgb_values):
    """Greyscale intensity for an RGB value or an array of them (last axis is R, G, B)."""
    rgb_values = np.asarray(rgb_values, dtype=np.float64)
    return (
        (GREYSCALE_WEIGHTS[0] * rgb_values[..., 0])
        + (GREYSCALE_WEIGHTS[1] * rgb_values[..., 1])
        + (GREYSCALE_WEIGHTS[2] * rgb_values[..., 2])
    )


def hue_saturation(hue, saturation, texture_amplitude):
    """A single hue/saturation cell, the same record type a hue/saturation grid holds."""
    return np.array((hue, saturation, texture_amplitude), dtype=HUE_SATURATION_DTYPE)[()]


def correct_zero_response(rgb):
    """
    Subtract the smallest channel value found anywhere in the image from every
    channel (removes any black level offset from the sensor).
    """
    smallest_value = rgb.values.min()
    return rgb.map_values(lambda values: (values - smallest_value).astype(np.uint8))


def _log_response(channel):
    return 105 * np.log10(channel.astype(np.float64) + 1)


def calculate_irgby(rgb):
    """Convert an RGB grid into intensity and the two opponent colour channels."""
    def convert(values):
        r = _log_response(values[..., 0])
        g = _log_response(values[..., 1])
        b = _log_response(values[..., 2])
        result = np.empty(values.shape[:2], dtype=IRGBY_DTYPE)
        result['rg'] = r - g
        result['by'] = b - ((g + r) / 2)
        result['i'] = (r + b + g) / 3
        return result

    return rgb.map_values(convert)


def median_filter(source, value_extractor, block_size):
    """
    Reduce noise by breaking the data into blocks and overwriting every value in a
    block with the median for that block.

    Blocks are (block_size + 1) square, start at the top-left and are truncated
    where they run off the right or bottom edge. This is a lossy box filter, not a
    sliding window median, so the output is blocky.

    Args:
        source (Grid): Data to smooth
        value_extractor: Vectorised function taking the grid's value array and
            returning the (height, width) float values to smooth, or None to use
            the values as they are
        block_size (int): Distance to expand each block right and down

    Returns:
        Grid of float64
    """
    if block_size <= 0:
        raise ValueError(f"block_size must be greater than zero, got {block_size}")

    extracted = source.map_values(value_extractor) if value_extractor is not None else source
    values = extracted.values.astype(np.float64)
    result = np.empty_like(values)
    distance_between_blocks = block_size + 1
    for top in range(0, source.height, distance_between_blocks):
        for left in range(0, source.width, distance_between_blocks):
            # Blocks only ever expand right and down from their top-left corner
            block = source.rectangle_around((left, top), 0, block_size)
            ordered = np.sort(values[block.top:block.bottom, block.left:block.right], axis=None)
            result[block.top:block.bottom, block.left:block.right] = ordered[ordered.size // 2]
    return Grid(result, copy=False)


def calculate_texture_amplitude(irgby, first_pass_block_size, second_pass_block_size):
    """
    Texture amplitude, as described by Jay Kapur:
        1. Smooth the intensity data with a median filter
        2. Subtract the result from the original intensity
        3. Run the absolute differences through a second median filter
    """
    smoothed_intensity = median_filter(irgby, lambda values: values['i'], first_pass_block_size)
    difference = irgby.combine_values(smoothed_intensity, lambda values, smoothed: np.abs(values['i'] - smoothed))
    return median_filter(difference, None, second_pass_block_size)


def calculate_hue_saturation(irgby, texture_amplitude, rgby_block_size):
    """Smooth Rg and By then combine them with the texture amplitude into a hue/saturation grid."""
    if texture_amplitude.shape != irgby.shape:
        raise ValueError(f"texture amplitude grid is {texture_amplitude.shape}, expected {irgby.shape}")
    smoothed_rg = median_filter(irgby, lambda values: values['rg'], rgby_block_size)
    smoothed_by = median_filter(irgby, lambda values: values['by'], rgby_block_size)

    def combine(rg, by):
        result = np.empty(rg.shape, dtype=HUE_SATURATION_DTYPE)
        result['hue'] = np.degrees(np.arctan2(rg, by))
        result['saturation'] = np.sqrt((rg * rg) + (by * by))
        result['texture_amplitude'] = texture_amplitude.values
        return result

    return smoothed_rg.combine_values(smoothed_by, combine)
