import numpy as np
import pytest

from facefinder.grid import Grid
from facefinder.hog import NUMBER_OF_BINS, get_histograms
from facefinder.normalise import global_normalise
from facefinder.preview import render_hog_preview


def test_preview_size():
    hogs = Grid(np.zeros((3, 4, NUMBER_OF_BINS)))
    preview = render_hog_preview(hogs, cell_size=16)
    assert preview.shape == (48, 64, 3)
    assert preview.dtype == np.uint8


def test_empty_histograms_draw_nothing():
    preview = render_hog_preview(Grid(np.zeros((2, 2, NUMBER_OF_BINS))), cell_size=16)
    assert not preview.any()


def test_vertical_edges_are_drawn_vertically():
    # Intensity changing left to right is a vertical edge
    hogs = global_normalise(get_histograms(Grid.from_function(16, 16, lambda x, y: x), 16))
    preview = render_hog_preview(hogs, cell_size=32)
    red = preview[..., 0]
    assert red[:, 16].sum() > 0
    assert red[16, :8].sum() == 0


def test_preview_with_source_and_outline():
    hogs = Grid(np.zeros((2, 2, NUMBER_OF_BINS)))
    source = np.full((10, 20, 3), 80, dtype=np.uint8)
    preview = render_hog_preview(hogs, cell_size=10, source=source, outline=True)
    # Source is letterboxed into the middle rows
    assert (preview[5:15, 1:19, 1] == 80).all()
    assert (preview[1, 1:9] == 0).all()
    # Outlines are drawn over it
    assert preview[0, 5, 0] > 0


def test_cell_size_must_be_positive():
    with pytest.raises(ValueError):
        render_hog_preview(Grid(np.zeros((1, 1, NUMBER_OF_BINS))), cell_size=0)
