"""
Task Expander Module
====================

Responsibility:
- Cross-product expansion of a GridSpec into an ordered Queue of Tasks.
- Dense, deterministic Task ID assignment in enumeration order.
- Uniform evaluation mode per run (cross validation or train/test).
"""

from .task import EvaluationMode, Task, Queue
from .task_expander import TaskExpander

__all__ = ['EvaluationMode', 'Task', 'Queue', 'TaskExpander']
