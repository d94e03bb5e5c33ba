import logging
import os

import numpy as np
import pytest

from facefinder.grid import Rectangle
from facefinder.utils import (
    IntervalTimer,
    extract_image_section_and_resize,
    load_from_h5,
    load_image,
    save_image,
    save_to_h5,
    setup_logger,
)


def test_interval_timer_prefixes_messages():
    messages = []
    timer = IntervalTimer(messages.append)
    timer.log("First")
    timer("Second")
    assert len(messages) == 2
    assert messages[0].startswith("[") and messages[0].endswith("ms] First")
    assert "ms / " in messages[1]


def test_interval_timer_rejects_blank_messages():
    timer = IntervalTimer(lambda message: None)
    with pytest.raises(ValueError):
        timer.log("   ")
    with pytest.raises(ValueError):
        timer.log(None)
    with pytest.raises(TypeError):
        IntervalTimer(None)


def test_setup_logger_writes_to_file(tmp_path):
    logger = setup_logger(log_dir=str(tmp_path / 'logs'))
    try:
        assert logger.name == 'facefinder'
        logger.info("hello")
        log_files = os.listdir(tmp_path / 'logs')
        assert len(log_files) == 1
        assert log_files[0].startswith('facefinder_')
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


def test_h5_round_trip(tmp_path):
    features = np.arange(12, dtype=np.float64).reshape(3, 4)
    labels = np.array([1, 0, 1])
    path = str(tmp_path / 'features.h5')
    assert save_to_h5(features, labels, path)
    loaded_features, loaded_labels = load_from_h5(path)
    np.testing.assert_array_equal(loaded_features, features)
    np.testing.assert_array_equal(loaded_labels, labels)


def test_load_from_missing_h5_file(tmp_path, caplog):
    with caplog.at_level(logging.ERROR):
        assert load_from_h5(str(tmp_path / 'missing.h5')) == (None, None)
    assert any("Error loading H5 file" in message for message in caplog.messages)


def test_image_round_trip_keeps_rgb_order(tmp_path):
    pixels = np.zeros((4, 6, 3), dtype=np.uint8)
    pixels[..., 0] = 200
    path = str(tmp_path / 'red.png')
    assert save_image(pixels, path)
    np.testing.assert_array_equal(load_image(path), pixels)


def test_load_image_returns_none_for_missing_file(tmp_path):
    assert load_image(str(tmp_path / 'missing.png')) is None


def test_extract_section_keeps_aspect_ratio():
    pixels = np.full((100, 200, 3), 255, dtype=np.uint8)
    sample = extract_image_section_and_resize(pixels, Rectangle(0, 0, 200, 100), (64, 64))
    assert sample.shape == (64, 64, 3)
    # 200x100 becomes 64x32, centred vertically on black
    assert (sample[:16] == 0).all()
    assert (sample[16:48] == 255).all()
    assert (sample[48:] == 0).all()


def test_extract_section_crops_region():
    pixels = np.zeros((50, 50, 3), dtype=np.uint8)
    pixels[10:20, 30:40] = 90
    sample = extract_image_section_and_resize(pixels, Rectangle(30, 10, 10, 10), (20, 20))
    assert (sample == 90).all()


def test_extract_section_argument_checks():
    pixels = np.zeros((10, 10, 3), dtype=np.uint8)
    with pytest.raises(ValueError):
        extract_image_section_and_resize(pixels, Rectangle(5, 5, 10, 10), (8, 8))
    with pytest.raises(ValueError):
        extract_image_section_and_resize(pixels, Rectangle(0, 0, 0, 5), (8, 8))
    with pytest.raises(ValueError):
        extract_image_section_and_resize(pixels, Rectangle(0, 0, 5, 5), (0, 8))
