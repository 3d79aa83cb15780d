"""
HPO Search Engine
=================

Responsibility:
- Runs one complete grid search: Queue expansion followed by evaluation of
  every Task in Queue order.
- Dispatches each Task to cross validation or train/test evaluation.
- Applies the task failure policy (fail fast or penalise and continue).
- Saves the per-run Task table when a results directory is configured.
"""

from .hpo_search_engine import HPOSearchEngine

__all__ = ['HPOSearchEngine']
