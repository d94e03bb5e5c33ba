import os
import cv2
import logging
import numpy as np

from facefinder.detect import FaceDetector
from facefinder.extract import FeatureExtractor
from facefinder.utils import ensure_directory, extract_image_section_and_resize, load_image, save_image

FACE_COLOUR = (0, 255, 0)

class FaceRecognizer:
    """
    Module that runs the skin tone detector over whole images and asks the
    classifier about each candidate region.
    """

    def __init__(self, classifier, detector=None, feature_extractor=None):
        """
        Initialize the face recognizer.

        Args:
            classifier: Trained FaceClassifier instance (anything with is_face)
            detector: Candidate region source with a detect(pixels) method,
                FaceDetector() if None
            feature_extractor (FeatureExtractor): Turns regions into feature
                vectors, must match the one the classifier was trained with
        """
        if not callable(getattr(classifier, 'is_face', None)):
            raise TypeError("classifier must provide an is_face method")

        self.classifier = classifier
        self.detector = detector if detector is not None else FaceDetector()
        self.feature_extractor = feature_extractor if feature_extractor is not None else FeatureExtractor()

    def detect_and_classify(self, pixels):
        """
        Detect candidate regions in an image and classify them.

        Args:
            pixels: (height, width, 3) RGB uint8 array

        Returns:
            List of (Rectangle, is_face) tuples
        """
        results = []
        for region in self.detector.detect(pixels):
            if region.is_empty:
                continue
            hog_features = self.feature_extractor.extract_region_features(pixels, region)
            results.append((region, self.classifier.is_face(hog_features)))

        logging.info(f"{sum(1 for _, is_face in results if is_face)} of {len(results)} region(s) accepted as faces")
        return results

    def process_image(self, image_path, output_dir):
        """
        Classify the candidate regions of an image file and save the results.

        Writes the image with accepted regions outlined plus a FACE_ or NEG_
        sample for every candidate region.

        Args:
            image_path (str): Path to the input image
            output_dir (str): Directory to save results to

        Returns:
            List of (Rectangle, is_face) tuples, or None on failure
        """
        pixels = load_image(image_path)
        if pixels is None:
            logging.error(f"Error: Could not open image {image_path}")
            return None

        ensure_directory(output_dir)

        try:
            results = self.detect_and_classify(pixels)
        except ValueError as e:
            logging.error(f"Error processing {image_path}: {e}")
            return None

        base_name = os.path.splitext(os.path.basename(image_path))[0]
        annotated = np.array(pixels)
        for i, (region, is_face) in enumerate(results):
            # Save the region sample
            prefix = 'FACE' if is_face else 'NEG'
            sample = extract_image_section_and_resize(pixels, region, self.feature_extractor.sample_size)
            save_image(sample, os.path.join(output_dir, f"{prefix}_{base_name}_{i}.png"))

            # Draw rectangle around accepted faces
            if is_face:
                cv2.rectangle(annotated, (region.left, region.top),
                              (region.right - 1, region.bottom - 1), FACE_COLOUR, 2)

        output_path = os.path.join(output_dir, f"{base_name}_faces.png")
        if save_image(annotated, output_path):
            logging.info(f"Processed image saved to {output_path}")

        return results
