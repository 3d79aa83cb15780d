"""
Prediction Engine Module
========================

Responsibility:
- Prepares test data for a trained model (dense conversion, feature alignment).
- Predicts labels and reports accuracy when test labels exist.
"""

from .prediction_engine import PredictionEngine

__all__ = ['PredictionEngine']
