"""
Skin Tone Face Detection System

A Python-based face detection system that finds candidate face regions from
skin tone and texture, describes them with Histogram of Oriented Gradients (HOG)
features and confirms them with a linear SVM.

This package contains modules for region detection, training sample harvesting,
feature extraction, classifier training and image processing.
"""

__version__ = '1.0.0'
