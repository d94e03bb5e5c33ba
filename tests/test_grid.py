import numpy as np
import pytest

from facefinder.grid import Grid, Point, Rectangle


def _numbered_grid(width, height):
    return Grid.from_function(width, height, lambda x, y: (y * width) + x, dtype=int)


def test_rectangle_geometry():
    rectangle = Rectangle.from_ltrb(2, 3, 6, 5)
    assert rectangle == Rectangle(2, 3, 4, 2)
    assert (rectangle.right, rectangle.bottom, rectangle.area) == (6, 5, 8)
    assert rectangle.contains((5, 4))
    assert not rectangle.contains((6, 4))


def test_rectangle_intersection():
    assert Rectangle(0, 0, 10, 10).intersect(Rectangle(5, 5, 10, 10)) == Rectangle(5, 5, 5, 5)
    # Touching edges don't overlap
    assert Rectangle(0, 0, 5, 5).intersect(Rectangle(5, 0, 5, 5)).is_empty


def test_empty_grids_are_rejected():
    with pytest.raises(ValueError):
        Grid(np.zeros((0, 3)))
    with pytest.raises(ValueError):
        Grid(np.zeros((3, 0)))
    with pytest.raises(ValueError):
        Grid(np.zeros(3))
    with pytest.raises(ValueError):
        Grid.from_function(0, 2, lambda x, y: 0)


def test_get_is_addressed_by_x_then_y():
    grid = _numbered_grid(4, 3)
    assert grid.shape == (4, 3)
    assert grid.get(3, 0) == 3
    assert grid.get(0, 2) == 8
    assert grid[Point(1, 1)] == 5


@pytest.mark.parametrize("x, y", [(-1, 0), (4, 0), (0, -1), (0, 3)])
def test_get_out_of_range_fails_for_each_axis(x, y):
    with pytest.raises(IndexError):
        _numbered_grid(4, 3).get(x, y)


def test_grid_is_isolated_from_source_array():
    source = np.zeros((2, 2))
    grid = Grid(source)
    source[0, 0] = 5
    assert grid.get(0, 0) == 0
    with pytest.raises(ValueError):
        grid.values[0, 0] = 1


def test_enumerate_is_row_major_and_filtered():
    grid = _numbered_grid(3, 2)
    assert [value for _, value in grid.enumerate()] == [0, 1, 2, 3, 4, 5]
    assert [point for point, _ in grid.enumerate(lambda point, value: value % 2 == 1)] == [
        Point(1, 0), Point(0, 1), Point(2, 1)
    ]


def test_enumerate_points_are_relative_to_slice():
    view = _numbered_grid(4, 4).slice(Rectangle(1, 2, 2, 2))
    assert list(view.enumerate())[0] == (Point(0, 0), 9)


def test_slice_composition():
    grid = _numbered_grid(10, 8)
    twice = grid.slice(Rectangle(2, 1, 6, 6)).slice(Rectangle(3, 2, 2, 3))
    once = grid.slice(Rectangle(5, 3, 2, 3))
    assert twice.shape == (2, 3)
    np.testing.assert_array_equal(twice.values, once.values)


def test_slice_shares_backing_data():
    grid = _numbered_grid(5, 5)
    view = grid.slice(Rectangle(1, 1, 2, 2))
    assert np.shares_memory(view.values, grid.values)


def test_slice_bounds_are_checked_against_the_view():
    view = _numbered_grid(10, 10).slice(Rectangle(5, 5, 3, 3))
    with pytest.raises(ValueError):
        view.slice(Rectangle(1, 1, 3, 3))
    with pytest.raises(ValueError):
        view.slice(Rectangle(0, 0, 0, 1))


def test_transform_and_combine():
    grid = _numbered_grid(3, 2)
    doubled = grid.transform(lambda value: value * 2)
    np.testing.assert_array_equal(doubled.values, grid.values * 2)

    with_points = grid.transform(lambda value, point: point.x, with_coordinates=True)
    np.testing.assert_array_equal(with_points.values, [[0, 1, 2], [0, 1, 2]])

    summed = grid.combine(doubled, lambda a, b: a + b)
    np.testing.assert_array_equal(summed.values, grid.values * 3)


def test_combine_rejects_mismatched_grids():
    with pytest.raises(ValueError):
        _numbered_grid(3, 2).combine(_numbered_grid(2, 3), lambda a, b: a)
    with pytest.raises(ValueError):
        _numbered_grid(3, 2).combine_values(_numbered_grid(3, 3), lambda a, b: a)


def test_map_values_never_shares_storage():
    grid = _numbered_grid(3, 3)
    same = grid.map_values(lambda values: values)
    assert not np.shares_memory(same.values, grid.values)


def test_block_out_with_one_is_identity():
    grid = _numbered_grid(5, 4)
    result = grid.block_out(1, lambda block: block.get(0, 0))
    np.testing.assert_array_equal(result.values, grid.values)


@pytest.mark.parametrize("width, height, block_size", [(64, 60, 8), (10, 10, 3), (20, 12, 8), (7, 9, 7)])
def test_block_out_dimensions(width, height, block_size):
    result = _numbered_grid(width, height).block_out(block_size, lambda block: block.width * block.height)
    assert result.shape == (int(round(width / block_size)), int(round(height / block_size)))


def test_block_out_truncates_edge_blocks():
    # 12 / 8 rounds to 2 so the second block is only 4 wide
    result = _numbered_grid(12, 8).block_out(8, lambda block: block.width)
    np.testing.assert_array_equal(result.values, [[8, 4]])


def test_block_out_rejects_bad_block_sizes():
    with pytest.raises(ValueError):
        _numbered_grid(4, 4).block_out(0, lambda block: 0)
    with pytest.raises(ValueError):
        _numbered_grid(4, 4).block_out(5, lambda block: 0)


def test_any_match():
    grid = _numbered_grid(4, 4)
    assert grid.any_match(Rectangle(2, 2, 2, 2), lambda value: value == 15)
    assert not grid.any_match(Rectangle(0, 0, 2, 2), lambda value: value == 15)
    with pytest.raises(ValueError):
        grid.any_match(Rectangle(3, 3, 2, 2), lambda value: True)


def test_rectangle_around_is_clamped():
    grid = _numbered_grid(5, 5)
    assert grid.rectangle_around((2, 2), 1, 1) == Rectangle(1, 1, 3, 3)
    assert grid.rectangle_around((0, 0), 1, 1) == Rectangle(0, 0, 2, 2)
    assert grid.rectangle_around((4, 4), 0, 3) == Rectangle(4, 4, 1, 1)


def test_rectangle_around_requires_a_right_and_down_expansion():
    grid = _numbered_grid(5, 5)
    assert grid.rectangle_around((1, 1), 0, 1) == Rectangle(1, 1, 2, 2)
    with pytest.raises(ValueError):
        grid.rectangle_around((1, 1), 1, 0)
    with pytest.raises(ValueError):
        grid.rectangle_around((1, 1), -1, 1)
