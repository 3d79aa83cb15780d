"""
Training Engine Module
======================

Responsibility:
- Rebuilds a fresh model from the winning Task.
- Fits it on the full training Dataset (no cross validation).
- Optionally persists the model (.pkl) and training metadata (.json).
"""

from .training_engine import TrainingEngine

__all__ = ['TrainingEngine']
