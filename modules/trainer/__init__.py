"""
Trainer Module
==============

Responsibility:
- Fits one model for one Task (train/test) or scores it with k-fold CV.
- Fold assignment is fixed per Trainer seed, so every Task of a run sees the
  same folds.
"""

from .trainer import Trainer

__all__ = ['Trainer']
