"""
Grid Specification Module
=========================

Responsibility:
- In-memory representation of a parsed grid file (GridSpec).
- Line-oriented parsing of ``key: values`` grid files (GridSpecParser).
- Kernel parameter applicability rules and early validation.
"""

from .grid_spec import KernelType, GridSpec
from .grid_parser import GridSpecParser

__all__ = ['KernelType', 'GridSpec', 'GridSpecParser']
