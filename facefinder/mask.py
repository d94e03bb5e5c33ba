import cv2
import numpy as np

from facefinder.colour import to_greyscale
from facefinder.grid import Grid

MINIMUM_SKIN_INTENSITY = 90
MAXIMUM_SKIN_INTENSITY = 240

NEIGHBOURHOOD_KERNEL = np.ones((3, 3), np.uint8)


def apply_filter(grid, predicate):
    """
    Evaluate a HueSaturation predicate over a whole grid, returning a bool grid.

    Predicates written with element-wise operators are evaluated on the whole
    array at once, anything else falls back to one call per cell.
    """
    if predicate is None:
        raise TypeError("predicate is required")
    try:
        result = np.asarray(predicate(grid.values))
    except (ValueError, TypeError):
        # Predicates using "and"/"or", float() or math.* only work on single cells
        result = None
    if result is not None and result.shape == (grid.height, grid.width):
        return Grid(result.astype(bool), copy=False)
    return grid.transform(lambda value: bool(predicate(value)), dtype=bool)


def _any_adjacent(mask_values):
    """True wherever the 3x3 neighbourhood (clamped to the edges) contains a True."""
    return cv2.dilate(mask_values.astype(np.uint8), NEIGHBOURHOOD_KERNEL).astype(bool)


def expand_skin_mask(skin_mask, hue_saturations, relaxed_skin_filter, number_of_expansions):
    """
    Grow a skin mask into neighbouring pixels that pass the relaxed filter.

    Every pass reads the previous pass's complete mask, so the mask can only grow
    by one neighbourhood hop per pass.
    """
    if number_of_expansions < 0:
        raise ValueError("number_of_expansions must not be negative")
    if skin_mask.shape != hue_saturations.shape:
        raise ValueError(f"skin mask is {skin_mask.shape} but hue data is {hue_saturations.shape}")

    relaxed = apply_filter(hue_saturations, relaxed_skin_filter)
    for _ in range(number_of_expansions):
        skin_mask = skin_mask.combine_values(
            relaxed,
            lambda mask, accepted: mask | (accepted & _any_adjacent(mask)),
        )
    return skin_mask


def apply_intensity_band(skin_mask, rgb, minimum=MINIMUM_SKIN_INTENSITY, maximum=MAXIMUM_SKIN_INTENSITY):
    """
    Drop masked pixels whose greyscale intensity in the original image is outside of
    [minimum, maximum] (near-black and near-white areas are rarely skin).
    """
    if skin_mask.shape != rgb.shape:
        raise ValueError(f"skin mask is {skin_mask.shape} but image is {rgb.shape}")

    def combine(mask, colours):
        intensity = to_greyscale(colours)
        return mask & (intensity >= minimum) & (intensity <= maximum)

    return skin_mask.combine_values(rgb, combine)


def build_skin_mask(hue_saturations, rgb, skin_filter, relaxed_skin_filter, number_of_expansions, logger=None):
    """
    Build the final skin mask: strict filter, relaxed growth passes, then the
    greyscale intensity band against the (zero-corrected) RGB data.
    """
    skin_mask = apply_filter(hue_saturations, skin_filter)
    if logger is not None:
        logger("Built initial skin mask")

    skin_mask = expand_skin_mask(skin_mask, hue_saturations, relaxed_skin_filter, number_of_expansions)
    if logger is not None:
        logger(f"Expanded initial skin mask (fixed loop count of {number_of_expansions})")

    skin_mask = apply_intensity_band(skin_mask, rgb)
    if logger is not None:
        logger("Completed final skin mask")
    return skin_mask
