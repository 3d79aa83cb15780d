import logging
from typing import Optional

from sklearn.model_selection import ParameterGrid

from modules.grid_spec import GridSpec
from modules.data_manager import Dataset
from modules.task_expander.task import EvaluationMode, Task, Queue


class TaskExpander:
    """
    Expands a GridSpec into a Queue.

    ``ParameterGrid`` iterates its keys in sorted order with the last key varying
    fastest: weight, then p, lambda, kappa, gamma, epsilon, degree and finally
    coef. IDs follow that order starting at ``base_id``.
    """

    def __init__(self, logger: logging.Logger, base_id: int = 0):
        self.logger = logger
        self.base_id = base_id

    def fill_queue(self, grid: GridSpec, train_data: Dataset,
                   test_data: Optional[Dataset] = None) -> Queue:
        mode = EvaluationMode.TRAIN_TEST if test_data is not None else EvaluationMode.CROSS_VALIDATION

        param_grid = {
            'p': list(grid.ps),
            'lambda': list(grid.lambdas),
            'kappa': list(grid.kappas),
            'epsilon': list(grid.epsilons),
            'weight': list(grid.weight_idxs),
            # Kernel parameters that do not apply contribute a single None
            'gamma': list(grid.gammas) or [None],
            'coef': list(grid.coefs) or [None],
            'degree': list(grid.degrees) or [None],
        }

        queue = Queue()
        for offset, params in enumerate(ParameterGrid(param_grid)):
            queue.append(Task(
                ID=self.base_id + offset,
                p=params['p'],
                lambda_=params['lambda'],
                kappa=params['kappa'],
                epsilon=params['epsilon'],
                weight_idx=params['weight'],
                kernel=grid.kernel,
                gamma=params['gamma'],
                coef=params['coef'],
                degree=params['degree'],
                mode=mode,
                folds=grid.folds,
            ))

        self.logger.debug(
            f"Queue filled with {len(queue)} tasks ({mode.name}, {train_data.n_samples} training samples)"
        )
        return queue
