"""
Final Pipeline Module
=====================

Responsibility:
- Retrains the winning configuration on the full training set.
- Predicts the test set and emits the predictions.
"""

from .final_pipeline import FinalPipeline

__all__ = ['FinalPipeline']
