"""
Configuration for the skin tone face region detector.

A configuration is a plain (frozen) value - variants are built with
dataclasses.replace rather than by subclassing. Skin filters take a single
hue/saturation record. Filters written with element-wise operators (&, |) are
also applied to a whole hue/saturation array at once, any other filter is
called once per cell.
"""

from dataclasses import dataclass, replace
from typing import Callable, Iterable, List

from facefinder.colour import calculate_irgby
from facefinder.grid import Rectangle
from facefinder.regions import default_face_region_filter, no_face_region_filter


def scale_by_640(width, height):
    """
    Larger images need more smoothing to get the same effect as less processing
    applied to small images. Never less than one so that every smoothing block has
    a positive size.
    """
    if width <= 0:
        raise ValueError(f"width must be greater than zero, got {width}")
    if height <= 0:
        raise ValueError(f"height must be greater than zero, got {height}")
    return max(1, int(round((width + height) / 640)))


def scale_by_320(width, height):
    """Twice the smoothing of scale_by_640."""
    if width <= 0:
        raise ValueError(f"width must be greater than zero, got {width}")
    if height <= 0:
        raise ValueError(f"height must be greater than zero, got {height}")
    return max(1, int(round((width + height) / 320)))


def default_skin_filter(colour):
    return (
        (
            ((colour['hue'] >= 105) & (colour['hue'] <= 120) & (colour['saturation'] >= 10) & (colour['saturation'] <= 60))
            | ((colour['hue'] >= 120) & (colour['hue'] <= 160) & (colour['saturation'] >= 10) & (colour['saturation'] <= 60))
            | ((colour['hue'] >= 160) & (colour['hue'] <= 180) & (colour['saturation'] >= 30) & (colour['saturation'] <= 30))
        )
        & (colour['texture_amplitude'] <= 20)
    )


def jay_kapur_skin_filter(colour):
    return (
        (
            ((colour['hue'] >= 120) & (colour['hue'] <= 160) & (colour['saturation'] >= 10) & (colour['saturation'] <= 60))
            | ((colour['hue'] >= 150) & (colour['hue'] <= 180) & (colour['saturation'] >= 20) & (colour['saturation'] <= 80))
        )
        & (colour['texture_amplitude'] <= 4.5)
    )


def tweaked_jay_kapur_skin_filter(colour):
    # Lighter tones allowed, strong yellows less so, and a higher texture amplitude
    # for photos where the face is a small part of the image
    return (
        (
            ((colour['hue'] >= 105) & (colour['hue'] <= 120) & (colour['saturation'] >= 10) & (colour['saturation'] <= 60))
            | ((colour['hue'] >= 120) & (colour['hue'] <= 160) & (colour['saturation'] >= 10) & (colour['saturation'] <= 60))
            | ((colour['hue'] >= 160) & (colour['hue'] <= 180) & (colour['saturation'] >= 30) & (colour['saturation'] <= 40))
        )
        & (colour['texture_amplitude'] <= 9)
    )


def relaxed_skin_filter(colour):
    # Fleck and Forsyth's "naked people" skin filter
    return (colour['hue'] >= 110) & (colour['hue'] <= 180) & (colour['saturation'] >= 0) & (colour['saturation'] <= 180)


@dataclass(frozen=True)
class DetectorConfig:
    # Images with a longer side than this are shrunk before detection
    maximum_image_dimension: int = 600
    calculate_scale: Callable[[int, int], int] = scale_by_640
    texture_amplitude_first_pass_smoothen_multiplier: int = 8
    texture_amplitude_second_pass_smoothen_multiplier: int = 12
    irgby_calculator: Callable = calculate_irgby
    rgby_smoothen_multiplier: int = 2
    skin_filter: Callable = default_skin_filter
    relaxed_skin_filter: Callable = relaxed_skin_filter
    number_of_skin_mask_relaxed_expansions: int = 2
    face_region_filter: Callable[[Iterable[Rectangle]], List[Rectangle]] = default_face_region_filter
    percent_to_expand_final_face_region_by: float = 0.13

    def __post_init__(self):
        if self.maximum_image_dimension <= 0:
            raise ValueError("maximum_image_dimension must be greater than zero")
        for name in (
            'texture_amplitude_first_pass_smoothen_multiplier',
            'texture_amplitude_second_pass_smoothen_multiplier',
            'rgby_smoothen_multiplier',
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be greater than zero")
        if self.number_of_skin_mask_relaxed_expansions < 0:
            raise ValueError("number_of_skin_mask_relaxed_expansions must not be negative")
        if self.percent_to_expand_final_face_region_by < 0:
            raise ValueError("percent_to_expand_final_face_region_by must not be negative")
        for name in ('calculate_scale', 'irgby_calculator', 'skin_filter', 'relaxed_skin_filter', 'face_region_filter'):
            if not callable(getattr(self, name)):
                raise TypeError(f"{name} must be callable")


def default_configuration():
    return DetectorConfig()


def jay_kapur_configuration():
    """The settings from Jay Kapur's original write-up."""
    return replace(
        DetectorConfig(),
        skin_filter=jay_kapur_skin_filter,
        number_of_skin_mask_relaxed_expansions=5,
        face_region_filter=no_face_region_filter,
        percent_to_expand_final_face_region_by=0,
    )


def tweaked_jay_kapur_configuration():
    return replace(
        jay_kapur_configuration(),
        skin_filter=tweaked_jay_kapur_skin_filter,
        face_region_filter=default_face_region_filter,
        percent_to_expand_final_face_region_by=0.1,
    )


PRESETS = {
    'default': default_configuration,
    'jay_kapur': jay_kapur_configuration,
    'tweaked': tweaked_jay_kapur_configuration,
}
