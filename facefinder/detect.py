import logging

import cv2
import numpy as np

from facefinder.colour import (
    calculate_hue_saturation,
    calculate_texture_amplitude,
    correct_zero_response,
    rgb_grid,
)
from facefinder.config import default_configuration
from facefinder.grid import Grid, Rectangle
from facefinder.mask import build_skin_mask
from facefinder.regions import expand_rectangle, identify_faces_from_skin_mask, scale_rectangle


class FaceDetector:
    """
    Locates possible face regions using skin tone and texture alone: skin coloured
    areas are masked, split into connected objects and any object that fully
    encloses a non-skin hole (eyes, mouth) is reported.
    """

    def __init__(self, config=None, logger=None):
        """
        Initialize the face detector.

        Args:
            config (DetectorConfig): Detection settings, default_configuration() if None
            logger: logging.Logger or any callable taking a message string, used for
                progress messages (logging.getLogger(__name__) if None)
        """
        self.config = config if config is not None else default_configuration()
        if logger is None:
            logger = logging.getLogger(__name__)
        self._log = logger.info if isinstance(logger, logging.Logger) else logger
        if not callable(self._log):
            raise TypeError("logger must be a logging.Logger or a callable")

    def get_possible_face_regions(self, source):
        """
        Find candidate face regions in an RGB grid.

        Args:
            source (Grid): (height, width, 3) RGB grid

        Returns:
            list of Rectangle in the coordinate space of source
        """
        if not isinstance(source, Grid):
            raise TypeError("source must be a Grid")

        config = self.config
        scale = config.calculate_scale(source.width, source.height)
        self._log(f"Loaded file - Dimensions: {source.width}x{source.height}, Scale: {scale}")

        colour_data = correct_zero_response(source)
        self._log("Corrected zero response")

        values = config.irgby_calculator(colour_data)
        self._log("Calculated I/RgBy values")

        texture_amplitude = calculate_texture_amplitude(
            values,
            config.texture_amplitude_first_pass_smoothen_multiplier * scale,
            config.texture_amplitude_second_pass_smoothen_multiplier * scale,
        )
        self._log("Calculated texture amplitude")

        hue_saturations = calculate_hue_saturation(values, texture_amplitude, config.rgby_smoothen_multiplier * scale)
        self._log("Calculated hue data")

        skin_mask = build_skin_mask(
            hue_saturations,
            colour_data,
            config.skin_filter,
            config.relaxed_skin_filter,
            config.number_of_skin_mask_relaxed_expansions,
            logger=self._log,
        )

        face_regions = [
            expand_rectangle(face_region, config.percent_to_expand_final_face_region_by, source.width, source.height)
            for face_region in config.face_region_filter(identify_faces_from_skin_mask(skin_mask, scale))
        ]
        self._log("Identified face regions")
        return face_regions

    def detect(self, pixels):
        """
        Find candidate face regions in an image of any size.

        Images larger than config.maximum_image_dimension are shrunk first and the
        regions scaled back up to match the original.

        Args:
            pixels: (height, width, 3) RGB uint8 array

        Returns:
            list of Rectangle in the coordinate space of pixels
        """
        pixels = np.asarray(pixels)
        if (pixels.ndim != 3) or (pixels.shape[2] != 3):
            raise ValueError(f"expected (height, width, 3) RGB data, got shape {pixels.shape}")

        height, width = pixels.shape[:2]
        largest_dimension = max(width, height)
        maximum_dimension = self.config.maximum_image_dimension
        scale_down = (largest_dimension / maximum_dimension) if largest_dimension > maximum_dimension else 1
        if scale_down > 1:
            resize_to = (max(1, int(round(width / scale_down))), max(1, int(round(height / scale_down))))
            pixels = cv2.resize(pixels, resize_to, interpolation=cv2.INTER_AREA)

        face_regions = self.get_possible_face_regions(rgb_grid(pixels))
        if scale_down > 1:
            face_regions = [scale_rectangle(region, scale_down, width, height) for region in face_regions]
        self._log(f"Complete - {len(face_regions)} region(s) identified")
        return face_regions


class SlidingWindowRegionGenerator:
    """
    Generates square candidate regions by sliding windows of a few sizes across the
    image (left to right, then down). No filtering is applied - every window is a
    candidate, so this only makes sense in front of a classifier.
    """

    DEFAULT_LARGEST_DIMENSION_FRACTIONS = (1 / 8, 1 / 6, 1 / 4, 1 / 3)
    DEFAULT_WINDOW_OVERLAP_FRACTION = 1 / 3

    def __init__(self, largest_dimension_fractions=DEFAULT_LARGEST_DIMENSION_FRACTIONS,
                 window_overlap_fraction=DEFAULT_WINDOW_OVERLAP_FRACTION):
        """
        Args:
            largest_dimension_fractions: Window sizes, as fractions of the image's
                longest side (a 600x400 image and 1/8 gives 75x75 windows)
            window_overlap_fraction (float): How far to move each time, as a
                fraction of the window size
        """
        self.largest_dimension_fractions = tuple(largest_dimension_fractions)
        if any((fraction <= 0) or (fraction > 1) for fraction in self.largest_dimension_fractions):
            raise ValueError("all largest_dimension_fractions must be greater than zero and at most one")
        if (window_overlap_fraction <= 0) or (window_overlap_fraction > 1):
            raise ValueError("window_overlap_fraction must be greater than zero and at most one")
        self.window_overlap_fraction = window_overlap_fraction

    def get_possible_face_regions(self, width, height):
        if (width <= 0) or (height <= 0):
            raise ValueError(f"image dimensions must be positive, got {width}x{height}")

        largest_dimension = max(width, height)
        window_sizes = []
        for fraction in self.largest_dimension_fractions:
            size = int(round(largest_dimension * fraction))
            if (0 < size <= min(width, height)) and (size not in window_sizes):
                window_sizes.append(size)

        for window_size in window_sizes:
            step = max(1, int(round(window_size * self.window_overlap_fraction)))
            y = 0
            while (y + window_size) <= height:
                x = 0
                while (x + window_size) <= width:
                    yield Rectangle(x, y, window_size, window_size)
                    x += step
                y += step

    def detect(self, pixels):
        """Every window for an (height, width, 3) image, so this can stand in for a FaceDetector."""
        height, width = np.asarray(pixels).shape[:2]
        return list(self.get_possible_face_regions(width, height))
