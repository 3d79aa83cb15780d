"""
Logging Configuration Module
============================

Responsibility:
- Builds the diagnostics sink shared by every engine.
- Coloured console output, optional rotating log file.
- Quiet mode: no diagnostics of any level are emitted.
"""

from .logging_config import LoggingConfigurator, ColoredFormatter

__all__ = ['LoggingConfigurator', 'ColoredFormatter']
