"""
Selection Engine Module
=======================

Responsibility:
- Picks the winning Task of a grid search.
- Simple mode: highest score, first in Queue order on ties.
- Consistency repeats: reruns the whole search and keeps only configurations
  that stay at or above the percentile threshold in every run.
"""

from .selection_engine import SelectionEngine

__all__ = ['SelectionEngine']
