"""
Histogram of Oriented Gradients feature generation.

The description at http://mccormickml.com/2013/05/09/hog-person-detector-tutorial/
is a good introduction - in particular "we split the contribution between the two
closest bins".
"""

from collections import namedtuple

import numpy as np

from facefinder.colour import to_greyscale
from facefinder.grid import Grid

BIN_SIZE = 20
NUMBER_OF_BINS = 180 // BIN_SIZE
BIN_CENTRES = tuple((i * BIN_SIZE) + (BIN_SIZE // 2) for i in range(NUMBER_OF_BINS))

_HistogramOfGradientBase = namedtuple('HistogramOfGradient', [f'degrees{centre}' for centre in BIN_CENTRES])


class HistogramOfGradient(_HistogramOfGradientBase):
    """Gradient magnitudes for the nine 20 degree bins centred on 10, 30, .., 170."""

    __slots__ = ()

    def __new__(cls, *magnitudes):
        if any(magnitude < 0 for magnitude in magnitudes):
            raise ValueError(f"histogram magnitudes may not be negative: {magnitudes}")
        return super().__new__(cls, *(float(magnitude) for magnitude in magnitudes))

    @classmethod
    def from_values(cls, values):
        return cls(*np.asarray(values, dtype=np.float64).tolist())

    @property
    def total(self):
        return sum(self)

    @property
    def greatest_magnitude(self):
        return max(self)

    def multiply(self, value):
        return HistogramOfGradient(*(magnitude * value for magnitude in self))

    def normalise(self):
        """Scale so that the bins sum to one (all bins equal if there is no gradient at all)."""
        total = self.total
        if total == 0:
            return HistogramOfGradient(*([1 / NUMBER_OF_BINS] * NUMBER_OF_BINS))
        return self.multiply(1 / total)


def histogram_at(hogs, x, y):
    """The HistogramOfGradient at (x, y) of an (H, W, 9) histogram grid."""
    return HistogramOfGradient.from_values(hogs.get(x, y))


def to_intensity_grid(source):
    """Greyscale (rounded) intensities for an RGB grid; greyscale grids pass through as floats."""
    if source.values.ndim == 3:
        return source.map_values(lambda values: np.round(to_greyscale(values)))
    return source.map_values(lambda values: values.astype(np.float64))


def calculate_gradients(intensities):
    """
    Per-pixel gradient magnitude and angle as an (H, W, 2) grid.

    Angles are whole degrees in [0, 180), zero meaning "getting lighter going up".
    Edge pixels get a zero vector - pretending the content beyond the edge matches
    would introduce angles that aren't in the image.
    """
    def gradients(values):
        result = np.zeros(values.shape + (2,), dtype=np.float64)
        if (values.shape[0] < 3) or (values.shape[1] < 3):
            return result
        dx = values[1:-1, 2:] - values[1:-1, :-2]
        dy = values[2:, 1:-1] - values[:-2, 1:-1]
        # Row zero is the top of the image so the y change is flipped to get the
        # conventional angles
        angles = np.rint(np.degrees(np.arctan2(dx, -dy)))
        angles[angles < 0] += 180
        angles[angles >= 180] -= 180
        result[1:-1, 1:-1, 0] = np.sqrt((dx * dx) + (dy * dy))
        result[1:-1, 1:-1, 1] = angles
        return result

    return intensities.map_values(gradients)


def generate_histogram(gradients):
    """
    Reduce a grid of (magnitude, angle) gradient vectors to nine bin magnitudes.

    Each magnitude is split between the two closest bin centres. Angles within 10
    degrees of 0 or 180 wrap, being split between the first and last bins (at
    least half going to the closer one). An angle exactly on a bin centre goes
    entirely into that bin.
    """
    values = gradients.values.reshape(-1, 2)
    magnitudes = values[:, 0]
    angles = values[:, 1]

    low = angles <= 10
    high = angles >= 170
    middle = ~(low | high)

    bin0 = np.empty(angles.shape, dtype=np.int64)
    bin1 = np.empty(angles.shape, dtype=np.int64)
    fraction_for_bin0 = np.empty(angles.shape, dtype=np.float64)

    bin0[low] = 0
    bin1[low] = NUMBER_OF_BINS - 1
    fraction_for_bin0[low] = 0.5 + (0.25 * (angles[low] / BIN_SIZE))

    bin0[high] = NUMBER_OF_BINS - 1
    bin1[high] = 0
    fraction_for_bin0[high] = 0.5 + (0.25 * ((180 - angles[high]) / BIN_SIZE))

    # eg. 105 degrees: (105 - 10) / 20 = 4.75 so bins 4 and 5 share it
    position = (angles[middle] - (BIN_SIZE / 2)) / BIN_SIZE
    bin0[middle] = np.floor(position)
    bin1[middle] = np.ceil(position)
    bin1_centre = (bin1[middle] * BIN_SIZE) + (BIN_SIZE / 2)
    fraction_for_bin0[middle] = (bin1_centre - angles[middle]) / BIN_SIZE

    bins = np.zeros(NUMBER_OF_BINS, dtype=np.float64)
    np.add.at(bins, bin0, magnitudes * fraction_for_bin0)
    np.add.at(bins, bin1, magnitudes * (1 - fraction_for_bin0))
    return bins


def get_histograms(source, block_size):
    """
    Generate one HistogramOfGradient per block_size x block_size block.

    Args:
        source (Grid): RGB grid (H, W, 3) or greyscale intensity grid (H, W)
        block_size (int): Pixels per block side, at most the smaller dimension

    Returns:
        Grid of shape (round(H / block_size), round(W / block_size), 9)
    """
    if not isinstance(source, Grid):
        raise TypeError("source must be a Grid")
    if (block_size <= 0) or (block_size > source.width) or (block_size > source.height):
        raise ValueError(
            f"block_size ({block_size}) must be positive and no larger than {source.width}x{source.height}"
        )
    return calculate_gradients(to_intensity_grid(source)).block_out(block_size, generate_histogram, dtype=np.float64)


def flatten(hogs):
    """
    Feature vector for a histogram grid: blocks in row-major order (top row first,
    left to right) and, within each block, bins 10, 30, .., 170 degrees.
    """
    return np.array(hogs.values, dtype=np.float64).reshape(-1)
