import os
import time
import logging
import datetime
import h5py
import numpy as np
import cv2

# Configure logging
def setup_logger(log_dir='logs'):
    """Set up and configure logger for the application."""
    if not os.path.exists(log_dir):
        os.makedirs(log_dir)

    timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(log_dir, f'facefinder_{timestamp}.log')

    # Configure logger
    logger = logging.getLogger('facefinder')
    logger.setLevel(logging.INFO)

    # File handler
    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.INFO)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)

    # Format
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    # Add handlers
    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger


class IntervalTimer:
    """Prefixes messages with the time since the previous message and since creation."""

    def __init__(self, write_to):
        if not callable(write_to):
            raise TypeError("write_to must be callable")
        self.write_to = write_to
        self._started = time.perf_counter()
        self._last_event = self._started

    def log(self, message):
        if message is None or not message.strip():
            raise ValueError("Null/blank message specified")
        now = time.perf_counter()
        since_last_event = (now - self._last_event) * 1000
        total = (now - self._started) * 1000
        self._last_event = now
        self.write_to(f"[{since_last_event:,.0f}ms / {total:,.0f}ms] {message}")

    __call__ = log

# Create directories if they don't exist
def ensure_directory(directory):
    """Ensure directory exists, create if it doesn't."""
    if not os.path.exists(directory):
        os.makedirs(directory)
        logging.info(f"Created directory: {directory}")

# Save dataset to H5 file
def save_to_h5(features, labels, file_path):
    """Save features and labels to H5 file."""
    try:
        with h5py.File(file_path, 'w') as h5f:
            h5f.create_dataset('features', data=np.asarray(features, dtype=np.float64))
            h5f.create_dataset('labels', data=np.asarray(labels, dtype=np.int8))

        logging.info(f"Dataset saved to {file_path}")
        return True
    except Exception as e:
        logging.error(f"Error saving H5 file: {e}")
        return False

# Load dataset from H5 file
def load_from_h5(file_path):
    """Load features and labels from H5 file."""
    try:
        with h5py.File(file_path, 'r') as h5f:
            features = h5f['features'][:]
            labels = h5f['labels'][:]

        logging.info(f"Dataset loaded from {file_path}")
        return features, labels
    except Exception as e:
        logging.error(f"Error loading H5 file: {e}")
        return None, None

# Read an image as RGB
def load_image(image_path):
    """Load an image file as an (H, W, 3) RGB uint8 array, or None if it can't be read."""
    image = cv2.imread(image_path, cv2.IMREAD_COLOR)
    if image is None:
        logging.warning(f"Could not read image: {image_path}")
        return None
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)

# Write an RGB image
def save_image(pixels, image_path):
    """Save an (H, W, 3) RGB uint8 array."""
    try:
        if not cv2.imwrite(image_path, cv2.cvtColor(np.asarray(pixels, dtype=np.uint8), cv2.COLOR_RGB2BGR)):
            logging.error(f"Could not write image: {image_path}")
            return False
        return True
    except Exception as e:
        logging.error(f"Error saving image {image_path}: {e}")
        return False

# Crop, resize and letterbox
def extract_image_section_and_resize(pixels, region, size):
    """
    Cut region out of an image and resize it to fit size (width, height) without
    changing its aspect ratio, centred on a black background.
    """
    pixels = np.asarray(pixels)
    height, width = pixels.shape[:2]
    destination_width, destination_height = size
    if (region.left < 0) or (region.top < 0) or (region.right > width) or (region.bottom > height):
        raise ValueError(f"region {region} is outside of the {width}x{height} image")
    if (region.width <= 0) or (region.height <= 0):
        raise ValueError(f"region {region} must have positive dimensions")
    if (destination_width <= 0) or (destination_height <= 0):
        raise ValueError(f"size {size} must have positive dimensions")

    section = pixels[region.top:region.bottom, region.left:region.right]
    aspect_ratio = region.width / region.height
    sample_aspect_ratio = destination_width / destination_height
    if aspect_ratio >= sample_aspect_ratio:
        resize_ratio = destination_width / region.width
    else:
        resize_ratio = destination_height / region.height
    new_width = min(max(1, int(round(region.width * resize_ratio))), destination_width)
    new_height = min(max(1, int(round(region.height * resize_ratio))), destination_height)
    resized = cv2.resize(section, (new_width, new_height), interpolation=cv2.INTER_AREA)

    result = np.zeros((destination_height, destination_width) + pixels.shape[2:], dtype=pixels.dtype)
    offset_x = (destination_width - new_width) // 2
    offset_y = (destination_height - new_height) // 2
    result[offset_y:offset_y + new_height, offset_x:offset_x + new_width] = resized
    return result
