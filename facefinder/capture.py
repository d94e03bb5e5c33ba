import os
import logging
from collections import namedtuple
from itertools import groupby

import numpy as np

from facefinder.grid import Point, Rectangle
from facefinder.utils import ensure_directory, extract_image_section_and_resize, load_image, save_image

FACE_REGION_MULTIPLIERS = (3, 4, 5)
MAXIMUM_NEGATIVE_ATTEMPTS = 100


class FaceFeatures(namedtuple('FaceFeatures', ['left_eye', 'right_eye', 'nose', 'mouth'])):
    """Annotated feature positions of a single face."""

    __slots__ = ()

    def bounding_box(self):
        xs = [point.x for point in self]
        ys = [point.y for point in self]
        return Rectangle.from_ltrb(min(xs), min(ys), max(xs), max(ys))

    def seed(self, multiplier):
        """Stable 32 bit seed for this face, so repeated runs pick the same negatives."""
        seed = 2166136261
        for value in [coordinate for point in self for coordinate in point] + [multiplier]:
            seed = ((seed * 16777619) + value) & 0xFFFFFFFF
        return seed


def _overlaps(feature_box, region):
    # Zero width or height feature boxes (eyes and mouth in line) still count
    return (
        (region.left < feature_box.right) and (feature_box.left < region.right) and
        (region.top < feature_box.bottom) and (feature_box.top < region.bottom)
    )


def parse_ground_truth(lines):
    """
    Parse Caltech WebFaces ground truth lines ("<filename> lx ly rx ry nx ny mx my").

    Args:
        lines: Iterable of text lines, blank lines are ignored

    Returns:
        list of (filename, [FaceFeatures, ..]) sorted by filename, with the faces
        of filenames that differ only by case grouped together
    """
    entries = []
    for line_number, line in enumerate(lines, start=1):
        parts = line.split()
        if not parts:
            continue
        if len(parts) != 9:
            raise ValueError(f"line {line_number} has {len(parts) - 1} values, expected 8")
        try:
            values = [int(round(float(part))) for part in parts[1:]]
        except ValueError:
            raise ValueError(f"line {line_number} contains a non-numeric value: {line.strip()}")
        points = [Point(values[i], values[i + 1]) for i in range(0, 8, 2)]
        entries.append((parts[0], FaceFeatures(*points)))

    entries.sort(key=lambda entry: entry[0].lower())
    grouped = []
    for _, group in groupby(entries, key=lambda entry: entry[0].lower()):
        group = list(group)
        grouped.append((group[0][0], [face for _, face in group]))
    return grouped


def load_ground_truth(ground_truth_file):
    with open(ground_truth_file, 'r') as f:
        return parse_ground_truth(f)


class SampleHarvester:
    """
    Module to cut face and non-face training samples out of annotated photographs.
    """

    def __init__(self, output_dir='data/raw', sample_size=(128, 128)):
        """
        Initialize the sample harvester.

        Args:
            output_dir (str): Directory to save samples to (in face/ and nonface/)
            sample_size (tuple): (width, height) of each saved sample
        """
        sample_width, sample_height = sample_size
        if (sample_width <= 0) or (sample_height <= 0):
            error_msg = f"Error: sample_size must be positive, got {sample_size}"
            logging.error(error_msg)
            raise ValueError(error_msg)

        self.output_dir = output_dir
        self.sample_size = (sample_width, sample_height)

        # Ensure output directories exist
        self.face_dir = os.path.join(self.output_dir, 'face')
        self.nonface_dir = os.path.join(self.output_dir, 'nonface')
        ensure_directory(self.face_dir)
        ensure_directory(self.nonface_dir)

    def face_regions_for(self, face, width, height):
        """
        Estimated face regions, one per multiplier, centred on the face's features.

        Returns:
            list of (multiplier, region size (width, height), Rectangle clipped to the image)
        """
        sample_width, sample_height = self.sample_size
        feature_box = face.bounding_box()
        centre_x = int(round((feature_box.left + feature_box.right) / 2))
        centre_y = int(round((feature_box.top + feature_box.bottom) / 2))

        regions = []
        for multiplier in FACE_REGION_MULTIPLIERS:
            side_length = max(feature_box.width, feature_box.height) * multiplier
            region_width = int(round((side_length * sample_width) / sample_height))
            region_height = side_length
            left = centre_x - (region_width // 2)
            top = centre_y - (region_height // 2)
            region = Rectangle.from_ltrb(
                max(left, 0),
                max(top, 0),
                min(left + region_width, width),
                min(top + region_height, height),
            )
            regions.append((multiplier, (region_width, region_height), region))
        return regions

    def find_negative_region(self, faces, face, multiplier, region_size, width, height):
        """
        Pick a region_size area that doesn't touch any face's features.

        Returns:
            Rectangle, or None if no such area was found
        """
        region_width, region_height = region_size
        available_width = width - region_width
        available_height = height - region_height
        if (available_width < 0) or (available_height < 0):
            return None

        feature_boxes = [other.bounding_box() for other in faces]
        rng = np.random.default_rng(face.seed(multiplier))
        for _ in range(MAXIMUM_NEGATIVE_ATTEMPTS):
            left = int(round(available_width * rng.random()))
            top = int(round(available_height * rng.random()))
            region = Rectangle.from_ltrb(
                left, top, min(left + region_width, width), min(top + region_height, height)
            )
            if not any(_overlaps(feature_box, region) for feature_box in feature_boxes):
                return region
        return None

    def samples_for_image(self, pixels, faces):
        """
        Cut positive and negative samples out of a single annotated image.

        Returns:
            tuple of (positive samples, negative samples), each a list of arrays
        """
        height, width = pixels.shape[:2]
        positives = []
        negatives = []
        for face in faces:
            for multiplier, region_size, face_region in self.face_regions_for(face, width, height):
                if face_region.is_empty:
                    continue
                positives.append(extract_image_section_and_resize(pixels, face_region, self.sample_size))

                negative_region = self.find_negative_region(faces, face, multiplier, region_size, width, height)
                if negative_region is not None:
                    negatives.append(extract_image_section_and_resize(pixels, negative_region, self.sample_size))
        return positives, negatives

    def harvest_caltech(self, image_dir, ground_truth_file, max_samples=None):
        """
        Harvest samples from the Caltech WebFaces images and their ground truth file.

        Images that yield fewer negatives than positives are skipped so that the
        saved sets stay balanced.

        Args:
            image_dir (str): Directory containing the Caltech images
            ground_truth_file (str): Path to the ground truth text file
            max_samples (int): Stop once at least this many samples are saved

        Returns:
            tuple: (number of face samples, number of non-face samples) saved
        """
        if (max_samples is not None) and (max_samples <= 0):
            raise ValueError(f"max_samples must be positive, got {max_samples}")

        try:
            files = load_ground_truth(ground_truth_file)
        except OSError as e:
            logging.error(f"Error reading ground truth file: {e}")
            return 0, 0

        logging.info(f"Found {len(files)} annotated images")

        face_count = 0
        nonface_count = 0
        for filename, faces in files:
            image_path = os.path.join(image_dir, filename)
            pixels = load_image(image_path)
            if pixels is None:
                continue

            positives, negatives = self.samples_for_image(pixels, faces)
            if len(positives) != len(negatives):
                logging.info(f"Skipping {filename}: {len(positives)} face and {len(negatives)} non-face samples")
                continue

            base_name = os.path.splitext(os.path.basename(filename))[0]
            for i, (positive, negative) in enumerate(zip(positives, negatives)):
                if save_image(positive, os.path.join(self.face_dir, f"{base_name}_{i}.png")):
                    face_count += 1
                if save_image(negative, os.path.join(self.nonface_dir, f"{base_name}_{i}.png")):
                    nonface_count += 1

            if (face_count // 20) > ((face_count - len(positives)) // 20):
                logging.info(f"Saved {face_count} face and {nonface_count} non-face samples")

            if (max_samples is not None) and ((face_count + nonface_count) >= max_samples):
                break

        logging.info(f"Harvest complete: {face_count} face and {nonface_count} non-face samples")
        return face_count, nonface_count
