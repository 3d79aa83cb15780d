"""
Shared helpers for the grid search pipeline: exceptions, error handling,
constants and file I/O.
"""
