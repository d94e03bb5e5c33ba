from dataclasses import FrozenInstanceError, replace

import numpy as np
import pytest

from facefinder.colour import HUE_SATURATION_DTYPE, hue_saturation
from facefinder.config import (
    PRESETS,
    DetectorConfig,
    default_configuration,
    default_skin_filter,
    jay_kapur_configuration,
    jay_kapur_skin_filter,
    relaxed_skin_filter,
    scale_by_320,
    scale_by_640,
    tweaked_jay_kapur_configuration,
    tweaked_jay_kapur_skin_filter,
)
from facefinder.regions import default_face_region_filter, no_face_region_filter


@pytest.mark.parametrize("width, height, expected", [
    (320, 320, 1),
    (100, 100, 1),
    (1000, 600, 2),
    (1920, 1080, 5),
])
def test_scale_by_640(width, height, expected):
    assert scale_by_640(width, height) == expected


def test_scale_by_320():
    assert scale_by_320(640, 640) == 4
    assert scale_by_320(10, 10) == 1
    with pytest.raises(ValueError):
        scale_by_320(0, 10)


def test_default_skin_filter():
    assert default_skin_filter(hue_saturation(130, 30, 5))
    assert default_skin_filter(hue_saturation(105, 10, 20))
    assert default_skin_filter(hue_saturation(170, 30, 0))
    assert not default_skin_filter(hue_saturation(170, 31, 0))
    assert not default_skin_filter(hue_saturation(130, 30, 21))
    assert not default_skin_filter(hue_saturation(100, 30, 0))


def test_jay_kapur_skin_filters():
    assert jay_kapur_skin_filter(hue_saturation(170, 70, 4.5))
    assert not jay_kapur_skin_filter(hue_saturation(110, 30, 0))
    assert tweaked_jay_kapur_skin_filter(hue_saturation(170, 35, 9))
    assert not tweaked_jay_kapur_skin_filter(hue_saturation(170, 70, 0))


def test_relaxed_skin_filter():
    assert relaxed_skin_filter(hue_saturation(110, 0, 100))
    assert relaxed_skin_filter(hue_saturation(180, 180, 100))
    assert not relaxed_skin_filter(hue_saturation(109, 50, 0))


@pytest.mark.parametrize("skin_filter", [
    default_skin_filter, jay_kapur_skin_filter, tweaked_jay_kapur_skin_filter, relaxed_skin_filter
])
def test_filters_work_on_records_and_arrays(skin_filter):
    rng = np.random.default_rng(11)
    values = np.empty((6, 7), dtype=HUE_SATURATION_DTYPE)
    values['hue'] = rng.uniform(90, 190, size=(6, 7))
    values['saturation'] = rng.choice([5, 30, 35, 70, 200], size=(6, 7))
    values['texture_amplitude'] = rng.uniform(0, 25, size=(6, 7))

    whole = skin_filter(values)
    for y in range(6):
        for x in range(7):
            assert bool(whole[y, x]) == bool(skin_filter(values[y, x]))


def test_default_configuration():
    config = default_configuration()
    assert config.maximum_image_dimension == 600
    assert config.calculate_scale is scale_by_640
    assert config.texture_amplitude_first_pass_smoothen_multiplier == 8
    assert config.texture_amplitude_second_pass_smoothen_multiplier == 12
    assert config.rgby_smoothen_multiplier == 2
    assert config.number_of_skin_mask_relaxed_expansions == 2
    assert config.face_region_filter is default_face_region_filter
    assert config.percent_to_expand_final_face_region_by == 0.13
    assert config.calculate_scale(640, 640) == 2


def test_presets():
    jay_kapur = jay_kapur_configuration()
    assert jay_kapur.skin_filter is jay_kapur_skin_filter
    assert jay_kapur.number_of_skin_mask_relaxed_expansions == 5
    assert jay_kapur.face_region_filter is no_face_region_filter
    assert jay_kapur.percent_to_expand_final_face_region_by == 0

    tweaked = tweaked_jay_kapur_configuration()
    assert tweaked.skin_filter is tweaked_jay_kapur_skin_filter
    assert tweaked.number_of_skin_mask_relaxed_expansions == 5
    assert tweaked.face_region_filter is default_face_region_filter
    assert tweaked.percent_to_expand_final_face_region_by == 0.1

    assert sorted(PRESETS) == ['default', 'jay_kapur', 'tweaked']
    assert PRESETS['tweaked']() == tweaked


def test_configurations_are_fresh_immutable_values():
    config = default_configuration()
    assert config is not default_configuration()
    with pytest.raises(FrozenInstanceError):
        config.maximum_image_dimension = 100
    assert replace(config, calculate_scale=scale_by_320).calculate_scale(640, 640) == 4


def test_configuration_validation():
    with pytest.raises(ValueError):
        DetectorConfig(maximum_image_dimension=0)
    with pytest.raises(ValueError):
        DetectorConfig(rgby_smoothen_multiplier=0)
    with pytest.raises(ValueError):
        DetectorConfig(number_of_skin_mask_relaxed_expansions=-1)
    with pytest.raises(ValueError):
        DetectorConfig(percent_to_expand_final_face_region_by=-0.1)
    with pytest.raises(TypeError):
        DetectorConfig(skin_filter=None)
