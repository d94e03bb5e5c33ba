import os
import logging
import numpy as np

from facefinder.colour import rgb_grid
from facefinder.grid import Grid, Rectangle
from facefinder.hog import get_histograms, flatten
from facefinder.normalise import get_normaliser
from facefinder.preview import render_hog_preview
from facefinder.utils import ensure_directory, extract_image_section_and_resize, load_image, save_image, save_to_h5

IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.bmp')

class FeatureExtractor:
    """
    Module for extracting HOG feature vectors from face and non-face samples.
    """

    def __init__(self, input_dir='data/raw', output_dir='data/processed',
                 sample_size=(128, 128), hog_params=None):
        """
        Initialize the feature extractor.

        Args:
            input_dir (str): Directory containing face/ and nonface/ sample folders
            output_dir (str): Directory to save processed features
            sample_size (tuple): (width, height) every sample is resized to
            hog_params (dict): Parameters for HOG feature extraction
        """
        self.input_dir = input_dir
        self.output_dir = output_dir
        self.sample_size = sample_size

        # Default HOG parameters
        self.hog_params = {
            'block_size': 8,
            'normaliser': 'overlapping',
            'normaliser_block_size': 2
        }

        # Update with custom parameters if provided
        if hog_params is not None:
            self.hog_params.update(hog_params)

        self.normaliser = get_normaliser(self.hog_params['normaliser'], self.hog_params['normaliser_block_size'])

    def extract_features(self, pixels, preview_path=None):
        """
        Extract a HOG feature vector from an image that is already sample_size.

        Args:
            pixels: (height, width, 3) RGB uint8 array or RGB Grid
            preview_path (str): Also save a HOG preview image here if given

        Returns:
            1D float array of normalised histogram magnitudes
        """
        source = pixels if isinstance(pixels, Grid) else rgb_grid(pixels)
        hogs = self.normaliser(get_histograms(source, self.hog_params['block_size']))
        if preview_path is not None:
            save_image(render_hog_preview(hogs, source=source.values), preview_path)
        return flatten(hogs)

    def extract_region_features(self, pixels, region):
        """
        Crop region out of an image, letterbox it to sample_size and extract its features.

        Args:
            pixels: (height, width, 3) RGB uint8 array
            region (Rectangle): Area of pixels to describe

        Returns:
            1D float array
        """
        return self.extract_features(extract_image_section_and_resize(pixels, region, self.sample_size))

    def _load_sample(self, image_path):
        pixels = load_image(image_path)
        if pixels is None:
            return None
        height, width = pixels.shape[:2]
        if (width, height) != tuple(self.sample_size):
            pixels = extract_image_section_and_resize(pixels, Rectangle(0, 0, width, height), self.sample_size)
        return pixels

    def process_dataset(self, output_filename='face_features.h5'):
        """
        Process the face/ and nonface/ samples in the input directory and save their features.

        Args:
            output_filename (str): Name of the H5 file to save features

        Returns:
            bool: True if processing was successful, False otherwise
        """
        features_list = []
        labels_list = []

        for folder, label in (('face', 1), ('nonface', 0)):
            sample_dir = os.path.join(self.input_dir, folder)
            if not os.path.isdir(sample_dir):
                logging.error(f"Sample directory not found: {sample_dir}")
                return False

            # Get all image files for this label
            image_files = sorted(f for f in os.listdir(sample_dir)
                                 if f.lower().endswith(IMAGE_EXTENSIONS))

            if not image_files:
                logging.warning(f"No images found in {sample_dir}")
                continue

            logging.info(f"Processing {len(image_files)} {folder} samples")

            for img_file in image_files:
                img_path = os.path.join(sample_dir, img_file)

                try:
                    pixels = self._load_sample(img_path)
                    if pixels is None:
                        continue

                    features_list.append(self.extract_features(pixels))
                    labels_list.append(label)

                except ValueError as e:
                    logging.error(f"Error processing {img_path}: {e}")

        # Check if we have features
        if not features_list:
            logging.error("No features extracted from dataset")
            return False

        # Convert lists to numpy arrays
        features_array = np.array(features_list)
        labels_array = np.array(labels_list)

        # Save features and labels to H5 file
        ensure_directory(self.output_dir)
        output_path = os.path.join(self.output_dir, output_filename)
        success = save_to_h5(features_array, labels_array, output_path)

        if success:
            logging.info(f"Processed {int(labels_array.sum())} face and "
                         f"{int(len(labels_array) - labels_array.sum())} non-face samples")
            logging.info(f"Features shape: {features_array.shape}")

        return success
