"""
Normalisation strategies for histogram grids (each is a HistogramGrid -> HistogramGrid
function). All of them scale magnitudes so that nothing exceeds one; when the
relevant maximum is zero, histograms are instead scaled so their bins sum to one.
"""

import numpy as np

from facefinder.grid import Grid, Rectangle
from facefinder.hog import NUMBER_OF_BINS


def _normalise_individually(histograms):
    """Scale each histogram (last axis) to sum to one, all bins equal where a histogram is empty."""
    totals = histograms.sum(axis=-1, keepdims=True)
    uniform = np.full(histograms.shape, 1 / NUMBER_OF_BINS)
    with np.errstate(divide='ignore', invalid='ignore'):
        return np.where(totals == 0, uniform, histograms / totals)


def _normalise_by_max(histograms):
    max_magnitude = histograms.max()
    if max_magnitude == 0:
        return _normalise_individually(histograms)
    return histograms * (1 / max_magnitude)


def global_normalise(hogs):
    """Divide every magnitude by the single greatest magnitude anywhere in the grid."""
    return hogs.map_values(_normalise_by_max)


class BlockwiseNormaliser:
    """
    Normalise each histogram by the greatest magnitude within the block_size x
    block_size window starting at it (moved back where needed so the window stays
    inside the grid).
    """

    def __init__(self, block_size):
        if block_size <= 0:
            raise ValueError(f"block_size must be greater than zero, got {block_size}")
        self.block_size = block_size

    def __call__(self, hogs):
        return self.normalise(hogs)

    def normalise(self, hogs):
        if (hogs.width < self.block_size) or (hogs.height < self.block_size):
            raise ValueError(
                f"too little data ({hogs.width}x{hogs.height}) for specified block size ({self.block_size})"
            )

        values = hogs.values
        result = np.empty(values.shape, dtype=np.float64)
        for y in range(hogs.height):
            y2 = min(y + self.block_size, hogs.height)
            y1 = y2 - self.block_size
            for x in range(hogs.width):
                x2 = min(x + self.block_size, hogs.width)
                x1 = x2 - self.block_size
                max_magnitude_within_block = values[y1:y2, x1:x2].max()
                if max_magnitude_within_block == 0:
                    result[y, x] = _normalise_individually(values[y, x])
                else:
                    result[y, x] = values[y, x] * (1 / max_magnitude_within_block)
        return Grid(result, copy=False)

    def __repr__(self):
        return f"BlockwiseNormaliser(block_size={self.block_size})"


class OverlappingBlockwiseNormaliser:
    """
    Slide a block_size x block_size window one histogram at a time across the grid,
    normalising each window independently and laying the normalised windows side
    by side. Histograms appear once for every window that covers them, so a 3x2
    grid with block_size 2

        1 2 3
        4 5 6

    becomes the 4x2 grid of windows {1,2,4,5} and {2,3,5,6}.
    """

    def __init__(self, block_size):
        if block_size <= 0:
            raise ValueError(f"block_size must be greater than zero, got {block_size}")
        self.block_size = block_size

    def __call__(self, hogs):
        return self.normalise(hogs)

    def normalise(self, hogs):
        if (hogs.width < self.block_size) or (hogs.height < self.block_size):
            raise ValueError(
                f"too little data ({hogs.width}x{hogs.height}) for specified block size ({self.block_size})"
            )

        block_size = self.block_size
        blocks_across = hogs.width - (block_size - 1)
        blocks_down = hogs.height - (block_size - 1)
        result = np.empty(
            (blocks_down * block_size, blocks_across * block_size) + hogs.values.shape[2:],
            dtype=np.float64,
        )
        for y in range(blocks_down):
            for x in range(blocks_across):
                hogs_in_block = hogs.slice(Rectangle(x, y, block_size, block_size))
                result[y * block_size:(y + 1) * block_size, x * block_size:(x + 1) * block_size] = (
                    _normalise_by_max(hogs_in_block.values)
                )
        return Grid(result, copy=False)

    def __repr__(self):
        return f"OverlappingBlockwiseNormaliser(block_size={self.block_size})"


def get_normaliser(name, block_size=2):
    """Look up a normaliser by name: 'global', 'blockwise' or 'overlapping'."""
    if name == 'global':
        return global_normalise
    if name == 'blockwise':
        return BlockwiseNormaliser(block_size)
    if name == 'overlapping':
        return OverlappingBlockwiseNormaliser(block_size)
    raise ValueError(f"unknown normaliser '{name}' (expected global, blockwise or overlapping)")
