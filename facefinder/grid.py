from typing import Callable, Iterator, NamedTuple, Optional, Tuple

import numpy as np


class Point(NamedTuple):
    x: int
    y: int


class Rectangle(NamedTuple):
    """
    Axis-aligned region described by its top-left corner and size.

    Right and bottom are exclusive, so a 2x2 rectangle at (0, 0) covers
    x in {0, 1} and y in {0, 1}.
    """
    left: int
    top: int
    width: int
    height: int

    @classmethod
    def from_ltrb(cls, left, top, right, bottom):
        return cls(left, top, right - left, bottom - top)

    @property
    def right(self):
        return self.left + self.width

    @property
    def bottom(self):
        return self.top + self.height

    @property
    def area(self):
        return self.width * self.height

    @property
    def is_empty(self):
        return (self.width <= 0) or (self.height <= 0)

    def contains(self, point):
        return (self.left <= point[0] < self.right) and (self.top <= point[1] < self.bottom)

    def intersect(self, other):
        """Return the overlapping region (an empty rectangle if there is no overlap)."""
        left = max(self.left, other.left)
        top = max(self.top, other.top)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        if (right <= left) or (bottom <= top):
            return Rectangle(0, 0, 0, 0)
        return Rectangle.from_ltrb(left, top, right, bottom)

    def inflate(self, dx, dy):
        """Grow by dx on the left and right and by dy on the top and bottom."""
        return Rectangle(self.left - dx, self.top - dy, self.width + (2 * dx), self.height + (2 * dy))

    def lies_within(self, width, height):
        return (self.left >= 0) and (self.top >= 0) and (self.right <= width) and (self.bottom <= height)


class Grid:
    """
    Immutable 2D container addressed by zero-based (x, y).

    Values are held in a read-only numpy array of shape (height, width, ...);
    any trailing dimensions belong to the cell (an RGB grid is (H, W, 3), a
    histogram grid is (H, W, 9)). Record-like cells may instead use a numpy
    structured dtype. A grid may be a window onto a backing array shared with
    other grids - nothing is ever written to a backing array once a Grid owns
    it, every transform allocates a fresh one.
    """

    def __init__(self, values, copy=True):
        """
        Args:
            values: Array-like of shape (height, width, ...)
            copy (bool): Take an isolating copy of values. Pass False only when
                the caller is handing over the array and will not modify it
                again (the array is marked read-only either way).
        """
        backing = np.array(values, copy=True) if copy else np.asarray(values)
        if backing.ndim < 2:
            raise ValueError(f"grid data must have at least two dimensions, got shape {backing.shape}")
        if (backing.shape[0] == 0) or (backing.shape[1] == 0):
            raise ValueError("zero element grids are not supported")
        backing.flags.writeable = False
        self._backing = backing
        self._window = Rectangle(0, 0, backing.shape[1], backing.shape[0])

    @classmethod
    def _view(cls, backing, window):
        grid = cls.__new__(cls)
        grid._backing = backing
        grid._window = window
        return grid

    @classmethod
    def from_function(cls, width, height, fn, dtype=float):
        """Build a width x height grid of fn(x, y)."""
        if (width <= 0) or (height <= 0):
            raise ValueError(f"grid dimensions must be positive, got {width}x{height}")
        values = np.empty((height, width), dtype=dtype)
        for y in range(height):
            for x in range(width):
                values[y, x] = fn(x, y)
        return cls(values, copy=False)

    @property
    def width(self):
        """This will always be greater than zero"""
        return self._window.width

    @property
    def height(self):
        """This will always be greater than zero"""
        return self._window.height

    @property
    def shape(self):
        return self.width, self.height

    @property
    def values(self):
        """Read-only (height, width, ...) numpy view of this grid's window."""
        w = self._window
        return self._backing[w.top:w.bottom, w.left:w.right]

    @property
    def dtype(self):
        return self._backing.dtype

    def get(self, x, y):
        if (x < 0) or (x >= self.width):
            raise IndexError(f"x ({x}) is outside of the grid width ({self.width})")
        if (y < 0) or (y >= self.height):
            raise IndexError(f"y ({y}) is outside of the grid height ({self.height})")
        return self._backing[self._window.top + y, self._window.left + x]

    def __getitem__(self, point):
        x, y = point
        return self.get(x, y)

    def __repr__(self):
        return f"Grid({self.width}x{self.height}, dtype={self.dtype})"

    def enumerate(self, predicate: Optional[Callable] = None) -> Iterator[Tuple[Point, object]]:
        """
        Lazily yield (point, value) pairs in row-major order (top row first,
        left to right), optionally only those where predicate(point, value)
        is true. Points are relative to this grid's window.
        """
        values = self.values
        for y in range(self.height):
            for x in range(self.width):
                point = Point(x, y)
                value = values[y, x]
                if (predicate is None) or predicate(point, value):
                    yield point, value

    def any_match(self, area, predicate):
        """True if any cell within area (relative to this grid) satisfies predicate."""
        if predicate is None:
            raise TypeError("predicate is required")
        area = Rectangle(*area)
        if not area.lies_within(self.width, self.height):
            raise ValueError(f"area {area} is outside of the {self.width}x{self.height} grid")
        values = self.values
        for y in range(area.top, area.bottom):
            for x in range(area.left, area.right):
                if predicate(values[y, x]):
                    return True
        return False

    def rectangle_around(self, point, distance_to_expand_left_and_up, distance_to_expand_right_and_down):
        """
        Rectangle around point, expanded by the given distances and clamped to this
        grid. Expanding left/up may be zero but expanding right/down must be at
        least one.
        """
        x, y = point
        if (x < 0) or (x >= self.width) or (y < 0) or (y >= self.height):
            raise ValueError(f"point {point} is outside of the {self.width}x{self.height} grid")
        if distance_to_expand_left_and_up < 0:
            raise ValueError("distance_to_expand_left_and_up must not be negative")
        if distance_to_expand_right_and_down <= 0:
            raise ValueError("distance_to_expand_right_and_down must be greater than zero")

        min_x = max(x - distance_to_expand_left_and_up, 0)
        max_x = min(x + distance_to_expand_right_and_down, self.width - 1)
        min_y = max(y - distance_to_expand_left_and_up, 0)
        max_y = min(y + distance_to_expand_right_and_down, self.height - 1)
        return Rectangle(min_x, min_y, (max_x - min_x) + 1, (max_y - min_y) + 1)

    def transform(self, transformer, dtype=None, with_coordinates=False):
        """
        Apply transformer to every cell, returning a new grid of the same shape.

        Args:
            transformer: Called as transformer(value), or transformer(value, point)
                when with_coordinates is True
            dtype: Element type for the result; inferred from the results if None
                (tuple results become trailing cell dimensions)
            with_coordinates (bool): Pass the cell's Point as second argument

        Returns:
            Grid with freshly allocated storage
        """
        if transformer is None:
            raise TypeError("transformer is required")
        values = self.values
        results = []
        for y in range(self.height):
            for x in range(self.width):
                if with_coordinates:
                    results.append(transformer(values[y, x], Point(x, y)))
                else:
                    results.append(transformer(values[y, x]))
        return Grid(self._assemble(results, dtype), copy=False)

    def combine(self, other, combiner, dtype=None, with_coordinates=False):
        """
        Combine with an identically shaped grid, cell by cell.

        Args:
            other (Grid): Grid with the same width and height
            combiner: Called as combiner(value, other_value) or, when
                with_coordinates is True, combiner(value, other_value, point)
        """
        if combiner is None:
            raise TypeError("combiner is required")
        if (other.width != self.width) or (other.height != self.height):
            raise ValueError(
                f"other grid is a different shape ({other.width}x{other.height} vs {self.width}x{self.height})"
            )
        values = self.values
        other_values = other.values
        results = []
        for y in range(self.height):
            for x in range(self.width):
                if with_coordinates:
                    results.append(combiner(values[y, x], other_values[y, x], Point(x, y)))
                else:
                    results.append(combiner(values[y, x], other_values[y, x]))
        return Grid(self._assemble(results, dtype), copy=False)

    def map_values(self, fn):
        """
        Vectorised counterpart of transform: fn receives the whole (height,
        width, ...) value array and must return an array with the same height
        and width.
        """
        result = np.asarray(fn(self.values))
        if result.shape[:2] != (self.height, self.width):
            raise ValueError(f"mapped values have shape {result.shape[:2]}, expected {(self.height, self.width)}")
        if np.shares_memory(result, self._backing):
            result = result.copy()
        return Grid(result, copy=False)

    def combine_values(self, other, fn):
        """Vectorised counterpart of combine."""
        if (other.width != self.width) or (other.height != self.height):
            raise ValueError(
                f"other grid is a different shape ({other.width}x{other.height} vs {self.width}x{self.height})"
            )
        result = np.asarray(fn(self.values, other.values))
        if result.shape[:2] != (self.height, self.width):
            raise ValueError(f"combined values have shape {result.shape[:2]}, expected {(self.height, self.width)}")
        if np.shares_memory(result, self._backing) or np.shares_memory(result, other._backing):
            result = result.copy()
        return Grid(result, copy=False)

    def slice(self, bounds):
        """
        Return a view onto part of this grid. bounds are validated against this
        grid's window (not the whole backing array) and the returned grid shares
        the backing data.
        """
        bounds = Rectangle(*bounds)
        if not bounds.lies_within(self.width, self.height):
            raise ValueError(f"slice bounds {bounds} are outside of the {self.width}x{self.height} grid")
        if bounds.is_empty:
            raise ValueError("zero element grids are not supported")
        return Grid._view(
            self._backing,
            Rectangle(self._window.left + bounds.left, self._window.top + bounds.top, bounds.width, bounds.height),
        )

    def block_out(self, block_size, reducer, dtype=None):
        """
        Reduce each block_size x block_size block to a single value.

        The output is round(width / block_size) x round(height / block_size);
        rounding means a thin overflow strip is dropped while a wide one gets
        its own (truncated) block.
        """
        if block_size <= 0:
            raise ValueError(f"block_size must be greater than zero, got {block_size}")
        if (block_size > self.width) or (block_size > self.height):
            raise ValueError(
                f"block_size ({block_size}) must not be larger than either width ({self.width}) or height ({self.height})"
            )
        if reducer is None:
            raise TypeError("reducer is required")

        new_width = int(round(self.width / block_size))
        new_height = int(round(self.height / block_size))
        results = []
        for y in range(new_height):
            for x in range(new_width):
                left = x * block_size
                top = y * block_size
                results.append(reducer(self.slice(Rectangle.from_ltrb(
                    left,
                    top,
                    min(left + block_size, self.width),
                    min(top + block_size, self.height),
                ))))
        return Grid(self._assemble(results, dtype, shape=(new_height, new_width)), copy=False)

    def _assemble(self, results, dtype, shape=None):
        height, width = shape if shape is not None else (self.height, self.width)
        if (dtype is not None) and (np.dtype(dtype).names is not None):
            assembled = np.empty(len(results), dtype=dtype)
            for i, result in enumerate(results):
                assembled[i] = result
        elif dtype is object:
            assembled = np.empty(len(results), dtype=object)
            for i, result in enumerate(results):
                assembled[i] = result
        else:
            assembled = np.array(results, dtype=dtype)
        return assembled.reshape((height, width) + assembled.shape[1:])

