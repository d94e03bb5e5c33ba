import math

import cv2
import numpy as np

from facefinder.hog import BIN_CENTRES

LINE_COLOUR = (255, 0, 0)


def render_hog_preview(hogs, cell_size=64, source=None, outline=False):
    """
    Draw a histogram grid so it can be eyeballed against the image it came from.

    Each histogram is drawn in a cell_size square as one line per bin through the
    cell centre, longer for greater magnitudes (normalised histograms fill the
    cell). The lines are rotated by 90 degrees so that they trace edges rather
    than the direction of the intensity change, which makes faces easier to make
    out.

    Args:
        hogs (Grid): (H, W, 9) histogram grid, ideally normalised
        cell_size (int): Edge length of the square drawn for each histogram
        source: Optional (height, width, 3) RGB image to draw underneath, resized
            to fit and centred
        outline (bool): Draw the bounds of each histogram's cell

    Returns:
        (H * cell_size, W * cell_size, 3) RGB uint8 array
    """
    if cell_size <= 0:
        raise ValueError(f"cell_size must be greater than zero, got {cell_size}")

    preview_height = hogs.height * cell_size
    preview_width = hogs.width * cell_size
    preview = np.zeros((preview_height, preview_width, 3), dtype=np.uint8)

    if source is not None:
        source = np.asarray(source, dtype=np.uint8)
        source_height, source_width = source.shape[:2]
        # The block rounding means aspect ratios may not quite match so fit it inside
        scale = min(preview_width / source_width, preview_height / source_height)
        resized_width = min(int(round(source_width * scale)), preview_width)
        resized_height = min(int(round(source_height * scale)), preview_height)
        resized = cv2.resize(source, (resized_width, resized_height), interpolation=cv2.INTER_AREA)
        offset_x = (preview_width - resized_width) // 2
        offset_y = (preview_height - resized_height) // 2
        preview[offset_y:offset_y + resized_height, offset_x:offset_x + resized_width] = resized

    lines = np.zeros_like(preview)
    max_line_length = cell_size / 2
    thickness = max(1, cell_size // 16)
    values = hogs.values
    for y in range(hogs.height):
        for x in range(hogs.width):
            centre_x = (x * cell_size) + (cell_size // 2)
            centre_y = (y * cell_size) + (cell_size // 2)
            for angle, magnitude in zip(BIN_CENTRES, values[y, x]):
                length = min(float(magnitude), 1.0) * max_line_length
                if length <= 0:
                    continue
                # Zero degrees is up and y increases downwards
                radians = math.radians(angle + 90)
                across = math.sin(radians) * length
                down = math.cos(radians) * -length
                cv2.line(
                    lines,
                    (int(round(centre_x - across)), int(round(centre_y - down))),
                    (int(round(centre_x + across)), int(round(centre_y + down))),
                    LINE_COLOUR,
                    thickness,
                )
            if outline:
                cv2.rectangle(
                    lines,
                    (x * cell_size, y * cell_size),
                    (((x + 1) * cell_size) - 1, ((y + 1) * cell_size) - 1),
                    LINE_COLOUR,
                    1,
                )
    return cv2.addWeighted(preview, 1.0, lines, 0.75, 0)
