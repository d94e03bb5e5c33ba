import os
import logging
import joblib
import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from sklearn.model_selection import train_test_split
from sklearn.pipeline import make_pipeline
from sklearn.preprocessing import StandardScaler
from sklearn.svm import LinearSVC
from sklearn.metrics import accuracy_score

from facefinder.utils import load_from_h5, ensure_directory

class FaceClassifier:
    """
    Linear SVM that decides whether a HOG feature vector describes a face.
    """

    def __init__(self, model_dir='models'):
        """
        Initialize the face classifier.

        Args:
            model_dir (str): Directory to save trained models
        """
        self.model_dir = model_dir
        self.model = None

        # Ensure model directory exists
        ensure_directory(self.model_dir)

    def build_model(self, complexity=1.0):
        """
        Build the classifier pipeline.

        Args:
            complexity (float): SVM regularisation parameter (C)

        Returns:
            Unfitted sklearn pipeline
        """
        if complexity <= 0:
            raise ValueError(f"complexity must be greater than zero, got {complexity}")

        return make_pipeline(
            StandardScaler(),
            LinearSVC(C=complexity, max_iter=10000)
        )

    def train(self, features_file, validation_split=0.2, complexity=1.0):
        """
        Train the SVM on face and non-face HOG features.

        Args:
            features_file (str): Path to H5 file containing features and labels
            validation_split (float): Fraction of data to use for validation
            complexity (float): SVM regularisation parameter (C)

        Returns:
            dict: Training and validation accuracy, or None on failure
        """
        # Load features and labels
        features, labels = load_from_h5(features_file)

        if features is None or labels is None:
            return None

        labels = labels.astype(int)
        if len(np.unique(labels)) != 2:
            logging.error("Training data must contain both face and non-face samples")
            return None

        # Split data into training and validation sets
        X_train, X_val, y_train, y_val = train_test_split(
            features, labels, test_size=validation_split, stratify=labels, random_state=0
        )

        logging.info(f"Training with {X_train.shape[0]} samples, validating with {X_val.shape[0]} samples")
        logging.info(f"Input feature dimension: {features.shape[1]}")

        # Build and fit model
        self.model = self.build_model(complexity)
        self.model.fit(X_train, y_train)

        history = {
            'accuracy': accuracy_score(y_train, self.model.predict(X_train)),
            'val_accuracy': accuracy_score(y_val, self.model.predict(X_val))
        }
        logging.info(f"Training accuracy: {history['accuracy']:.4f}, "
                     f"validation accuracy: {history['val_accuracy']:.4f}")

        # Save model
        self.save_model()

        # Plot decision scores
        self._plot_decision_scores(self.model.decision_function(X_val), y_val)

        return history

    def save_model(self, model_filename='face_classifier.joblib'):
        """
        Save the trained model.

        Args:
            model_filename (str): Filename for model

        Returns:
            bool: True if saving was successful, False otherwise
        """
        if self.model is None:
            logging.error("No model to save")
            return False

        try:
            model_path = os.path.join(self.model_dir, model_filename)
            joblib.dump(self.model, model_path)

            logging.info(f"Model saved to {model_path}")
            return True

        except Exception as e:
            logging.error(f"Error saving model: {e}")
            return False

    def load_model(self, model_filename='face_classifier.joblib'):
        """
        Load a trained model.

        Args:
            model_filename (str): Filename for model

        Returns:
            bool: True if loading was successful, False otherwise
        """
        try:
            model_path = os.path.join(self.model_dir, model_filename)
            self.model = joblib.load(model_path)

            logging.info(f"Model loaded from {model_path}")
            return True

        except Exception as e:
            logging.error(f"Error loading model: {e}")
            return False

    def is_face(self, hog_features):
        """
        Decide whether a feature vector describes a face.

        Args:
            hog_features: 1D feature vector from FeatureExtractor

        Returns:
            bool
        """
        if self.model is None:
            raise ValueError("No model loaded")

        # Reshape features if needed
        hog_features = np.asarray(hog_features, dtype=np.float64)
        if len(hog_features.shape) == 1:
            hog_features = np.expand_dims(hog_features, axis=0)

        return bool(self.model.predict(hog_features)[0] == 1)

    def _plot_decision_scores(self, scores, labels):
        """
        Plot and save the validation decision scores for each class.

        Args:
            scores: SVM decision function values
            labels: True labels (1 face, 0 non-face)
        """
        try:
            plt.figure(figsize=(8, 5))

            plt.hist(scores[labels == 1], bins=30, alpha=0.6, label='Face')
            plt.hist(scores[labels == 0], bins=30, alpha=0.6, label='Non-face')
            plt.axvline(0, color='black', linestyle='--')
            plt.xlabel('Decision score')
            plt.ylabel('Samples')
            plt.title('Validation Decision Scores')
            plt.legend()

            plt.tight_layout()

            # Save plot
            plot_path = os.path.join(self.model_dir, 'decision_scores.png')
            plt.savefig(plot_path)
            plt.close()
            logging.info(f"Decision score plot saved to {plot_path}")

        except Exception as e:
            logging.error(f"Error plotting decision scores: {e}")
