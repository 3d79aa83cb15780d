"""
Custom exception hierarchy for the SVM Grid Search System.
"""

class GridSearchException(Exception):
    """Base exception for all system errors."""
    pass

class ConfigurationError(GridSearchException):
    """Grid file or runtime settings validation failed."""
    pass

class DataValidationError(GridSearchException):
    """Data loading or validation failed."""
    pass

class ModelTrainingError(GridSearchException):
    """Model training failed."""
    pass

class PredictionError(GridSearchException):
    """Prediction generation failed."""
    pass
