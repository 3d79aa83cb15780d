"""
Data Manager Module
===================

Responsibility:
- Loading of dense text and LibSVM/SVMlight data files.
- Validation of class labels (contiguous, starting at 1).
- Sparse to dense materialisation for non-linear kernels.
"""

from .data_manager import Dataset, DataManager

__all__ = ['Dataset', 'DataManager']
