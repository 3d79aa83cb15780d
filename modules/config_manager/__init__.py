"""
Configuration Manager Module
============================

Responsibility:
- Loading and validation of the optional runtime settings JSON.
- Enforcement of schema constraints and logical rules.
- Resource guardrails (grid size, memory budget).
- Deterministic seed propagation for consistency repeats.
"""

from .config_manager import ConfigurationManager, DEFAULT_CONFIG

__all__ = ['ConfigurationManager', 'DEFAULT_CONFIG']
