"""
Model Factory Module
====================

Responsibility:
- Translates a Task's hyperparameters into a configured estimator.
"""

from .model_factory import ModelFactory

__all__ = ['ModelFactory']
