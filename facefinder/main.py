import os
import argparse
import cv2
import numpy as np
from facefinder.config import PRESETS
from facefinder.utils import (
    setup_logger, load_image, save_image, ensure_directory, extract_image_section_and_resize, IntervalTimer
)
from facefinder.capture import SampleHarvester
from facefinder.detect import FaceDetector, SlidingWindowRegionGenerator
from facefinder.extract import FeatureExtractor
from facefinder.train import FaceClassifier
from facefinder.recognize import FaceRecognizer

def build_parser():
    """
    Build the command-line argument parser.
    """
    parser = argparse.ArgumentParser(description='Skin Tone Face Detection System')

    # Mode selection
    parser.add_argument('--mode', type=str, required=True,
                       choices=['harvest', 'extract', 'train', 'detect', 'recognize'],
                       help='Operation mode: harvest, extract, train, detect, or recognize')

    # Harvest mode arguments
    parser.add_argument('--caltech_dir', type=str,
                       help='Folder of Caltech WebFaces images (required for harvest mode)')
    parser.add_argument('--ground_truth', type=str,
                       help='Caltech ground truth file (default: WebFaces_GroundThruth.txt in --caltech_dir)')
    parser.add_argument('--max_samples', type=int,
                       help='Stop harvesting once this many samples have been saved')

    # Training mode arguments
    parser.add_argument('--validation_split', type=float, default=0.2,
                       help='Fraction of samples held back for validation (default: 0.2)')
    parser.add_argument('--complexity', type=float, default=1.0,
                       help='SVM complexity / C parameter (default: 1.0)')

    # Detection and recognition mode arguments
    parser.add_argument('--image', type=str,
                       help='Path to the image to search for faces')
    parser.add_argument('--output', type=str, default='results',
                       help='Folder to write results to (default: results)')
    parser.add_argument('--preset', type=str, default='default',
                       choices=sorted(PRESETS),
                       help='Skin tone detector configuration (default: default)')
    parser.add_argument('--regions', type=str, default='skin',
                       choices=['skin', 'sliding'],
                       help='Candidate regions from the skin tone detector or from sliding windows (default: skin)')
    parser.add_argument('--preview', action='store_true',
                       help='Also save a HOG preview image for each region')

    return parser

def _save_region_previews(feature_extractor, pixels, regions, output_dir, base_name):
    for i, region in enumerate(regions):
        sample = extract_image_section_and_resize(pixels, region, feature_extractor.sample_size)
        feature_extractor.extract_features(sample, preview_path=os.path.join(output_dir, f"HOG_{base_name}_{i}.png"))

def main(argv=None):
    """
    Main entry point for the face detection system.
    """
    # Parse command-line arguments
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logger
    logger = setup_logger()

    # Execute requested mode
    if args.mode == 'harvest':
        # Check required arguments
        if args.caltech_dir is None:
            parser.error("Harvest mode requires --caltech_dir")

        logger.info("Starting sample harvest mode")

        ground_truth = args.ground_truth or os.path.join(args.caltech_dir, 'WebFaces_GroundThruth.txt')
        if not os.path.exists(ground_truth):
            logger.error(f"Ground truth file not found: {ground_truth}")
            return

        harvester = SampleHarvester()
        face_count, nonface_count = harvester.harvest_caltech(args.caltech_dir, ground_truth, args.max_samples)

        if face_count:
            logger.info(f"Successfully harvested {face_count} face and {nonface_count} non-face samples")
        else:
            logger.error("Failed to harvest any samples")

    elif args.mode == 'extract':
        logger.info("Starting feature extraction mode")

        # Initialize feature extraction module
        feature_extractor = FeatureExtractor()

        # Process dataset
        success = feature_extractor.process_dataset()

        if success:
            logger.info("Successfully extracted HOG features from dataset")
        else:
            logger.error("Failed to extract HOG features from dataset")

    elif args.mode == 'train':
        logger.info("Starting model training mode")

        # Path to extracted features
        features_file = os.path.join('data', 'processed', 'face_features.h5')

        if not os.path.exists(features_file):
            logger.error(f"Features file not found: {features_file}")
            logger.error("Please run feature extraction first")
            return

        # Initialize and train model
        model = FaceClassifier()
        history = model.train(features_file, validation_split=args.validation_split, complexity=args.complexity)

        if history:
            logger.info("Successfully trained face classifier")
        else:
            logger.error("Failed to train face classifier")

    elif args.mode in ('detect', 'recognize'):
        if args.image is None:
            parser.error(f"{args.mode.capitalize()} mode requires --image")

        logger.info(f"Starting face {'detection' if args.mode == 'detect' else 'recognition'} mode")

        if args.regions == 'sliding':
            detector = SlidingWindowRegionGenerator()
        else:
            detector = FaceDetector(PRESETS[args.preset](), logger=IntervalTimer(logger.info))
        ensure_directory(args.output)
        base_name = os.path.splitext(os.path.basename(args.image))[0]

        if args.mode == 'detect':
            pixels = load_image(args.image)
            if pixels is None:
                logger.error(f"Error: Could not open image {args.image}")
                return

            regions = detector.detect(pixels)

            # Draw rectangles around possible faces
            annotated = np.array(pixels)
            for region in regions:
                cv2.rectangle(annotated, (region.left, region.top),
                              (region.right - 1, region.bottom - 1), (0, 255, 0), 2)
            output_path = os.path.join(args.output, f"{base_name}_regions.png")
            if save_image(annotated, output_path):
                logger.info(f"Identified {len(regions)} possible face region(s), saved to {output_path}")

            if args.preview:
                _save_region_previews(FeatureExtractor(), pixels, regions, args.output, base_name)
            return

        # Initialize model
        model = FaceClassifier()

        # Load trained model
        success = model.load_model()

        if not success:
            logger.error("Failed to load trained model")
            logger.error("Please train the model first")
            return

        # Initialize face recognizer
        recognizer = FaceRecognizer(model, detector=detector)
        results = recognizer.process_image(args.image, args.output)

        if results is not None:
            logger.info(f"{sum(1 for _, is_face in results if is_face)} of {len(results)} possible face "
                        f"region(s) were determined to be faces, see the {args.output} folder")

            if args.preview:
                pixels = load_image(args.image)
                regions = [region for region, _ in results]
                _save_region_previews(recognizer.feature_extractor, pixels, regions, args.output, base_name)

if __name__ == '__main__':
    main()
