import gc  # Explicit garbage collection
import logging
import time
import pandas as pd
from typing import Optional

from modules.base.base_engine import BaseEngine
from modules.config_manager import ConfigurationManager
from modules.data_manager import Dataset
from modules.grid_spec import GridSpec
from modules.task_expander import EvaluationMode, Queue, TaskExpander
from modules.task_expander.task import Task, TaskResult
from modules.trainer import Trainer
from utils.error_handling import handle_engine_errors
from utils.exceptions import GridSearchException
from utils.file_io import save_dataframe
from utils import constants


class HPOSearchEngine(BaseEngine):
    """
    Grid search over a GridSpec.

    ``execute`` evaluates an existing Queue; ``run_search`` builds a fresh Queue
    with its own Trainer seed and evaluates it, which is what every consistency
    repeat does.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)
        execution = config.get('execution', {})
        self.n_jobs = execution.get('n_jobs', 1)
        self.failure_policy = execution.get('on_task_failure', constants.FAIL_FAST)
        self.failure_penalty = execution.get('failure_penalty', -1.0)

    def _get_engine_directory_name(self) -> str:
        return constants.GRID_SEARCH_DIR

    def run_search(self, grid: GridSpec, train_data: Dataset,
                   test_data: Optional[Dataset] = None, repeat_idx: int = 0) -> Queue:
        """
        Expand and evaluate the whole grid with the seed belonging to ``repeat_idx``.
        """
        seed = ConfigurationManager.repeat_seed(self.config, repeat_idx)
        queue = TaskExpander(self.logger).fill_queue(grid, train_data, test_data)
        trainer = Trainer(self.logger, random_state=seed, n_jobs=self.n_jobs)
        return self.execute(queue, trainer, train_data, test_data, run_idx=repeat_idx)

    @handle_engine_errors("Grid Search")
    def execute(self, queue: Queue, trainer: Trainer, train_data: Dataset,
                test_data: Optional[Dataset] = None, run_idx: int = 0) -> Queue:
        """
        Evaluate every Task of ``queue`` in order, storing the results on the Tasks.

        Returns:
            The same Queue, fully evaluated.
        """
        self.logger.info(f"Starting training of {len(queue)} tasks (run {run_idx})...")
        start_time = time.time()

        for task in queue:
            if task.is_evaluated:
                continue
            self._evaluate_task(task, trainer, train_data, test_data)

        duration = time.time() - start_time
        self.logger.info(f"Training finished for run {run_idx} in {duration:.2f} seconds.")

        if self.output_dir is not None:
            results_df = pd.DataFrame(queue.to_records())
            save_path = self.output_dir / constants.TASK_RESULTS_FILE.format(run=run_idx)
            save_dataframe(results_df, save_path, excel_copy=self.excel_copy, index=False)

        return queue

    def _evaluate_task(self, task: Task, trainer: Trainer, train_data: Dataset,
                       test_data: Optional[Dataset]) -> None:
        start_time = time.time()
        model = None
        try:
            if task.mode is EvaluationMode.CROSS_VALIDATION:
                performance = trainer.cross_validate(task, train_data, task.folds)
            else:
                model, performance = trainer.train(task, train_data, test_data)
            status = constants.STATUS_SUCCESS
        except GridSearchException as e:
            if self.failure_policy != constants.PENALIZE:
                raise
            self.logger.error(f"Task {task.ID} failed, scoring it {self.failure_penalty}: {e}")
            performance = self.failure_penalty
            status = constants.STATUS_FAILED

        duration = time.time() - start_time
        task.set_result(TaskResult(
            performance=performance,
            model=model,
            duration=duration,
            status=status,
        ))
        self.logger.info(
            f"ID: {task.ID:4d}  {task.describe()}  perf={performance:3.3f}%  time={duration:.2f}s"
        )

        # Fold models are throwaway; free them before the next task
        gc.collect()
