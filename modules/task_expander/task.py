from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from modules.grid_spec import KernelType
from utils import constants


class EvaluationMode(Enum):
    CROSS_VALIDATION = "cv"
    TRAIN_TEST = "tt"


@dataclass(frozen=True)
class TaskResult:
    performance: float
    model: Any = None
    duration: float = 0.0
    status: str = constants.STATUS_SUCCESS


@dataclass(frozen=True)
class Task:
    """
    One fully resolved hyperparameter combination.

    Frozen at creation. ``result`` is the only slot that changes, and only
    once, through ``set_result``.
    """
    ID: int
    p: float
    lambda_: float
    kappa: float
    epsilon: float
    weight_idx: int
    kernel: KernelType
    gamma: Optional[float]
    coef: Optional[float]
    degree: Optional[float]
    mode: EvaluationMode
    folds: int
    result: Optional[TaskResult] = field(default=None, compare=False)

    @property
    def config_key(self) -> Tuple:
        """Identifies the same configuration across independently expanded queues."""
        return (self.p, self.lambda_, self.kappa, self.epsilon, self.weight_idx,
                self.kernel.value, self.gamma, self.coef, self.degree)

    @property
    def performance(self) -> Optional[float]:
        return self.result.performance if self.result is not None else None

    @property
    def is_evaluated(self) -> bool:
        return self.result is not None

    def set_result(self, result: TaskResult) -> None:
        if self.result is not None:
            raise RuntimeError(f"Task {self.ID} has already been evaluated.")
        object.__setattr__(self, 'result', result)

    def params(self) -> Dict[str, Any]:
        """Hyperparameters as a flat dict, kernel parameters only when they apply."""
        params = {
            'p': self.p,
            'lambda': self.lambda_,
            'kappa': self.kappa,
            'epsilon': self.epsilon,
            'weight_idx': self.weight_idx,
            'kernel': self.kernel.value,
        }
        if self.kernel.uses_gamma:
            params['gamma'] = self.gamma
        if self.kernel.uses_coef:
            params['coef'] = self.coef
        if self.kernel.uses_degree:
            params['degree'] = self.degree
        return params

    def describe(self) -> str:
        return " ".join(f"{k}={v}" for k, v in self.params().items())


class Queue:
    """Ordered Tasks of a single search run."""

    def __init__(self, tasks: Optional[List[Task]] = None):
        self.tasks: List[Task] = list(tasks or [])

    def __len__(self) -> int:
        return len(self.tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(self.tasks)

    def __getitem__(self, idx: int) -> Task:
        return self.tasks[idx]

    def append(self, task: Task) -> None:
        self.tasks.append(task)

    def get_task(self, task_id: int) -> Task:
        for task in self.tasks:
            if task.ID == task_id:
                return task
        raise KeyError(f"No task with ID {task_id} in queue.")

    def performances(self) -> List[Optional[float]]:
        return [task.performance for task in self.tasks]

    def to_records(self) -> List[Dict[str, Any]]:
        records = []
        for task in self.tasks:
            record = {'task_id': task.ID, **task.params(), 'mode': task.mode.value}
            if task.result is not None:
                record.update({
                    'performance': task.result.performance,
                    'duration_sec': task.result.duration,
                    'status': task.result.status,
                })
            else:
                record['status'] = constants.STATUS_PENDING
            records.append(record)
        return records
