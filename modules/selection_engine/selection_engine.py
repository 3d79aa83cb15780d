import gc
import logging
import numpy as np
import pandas as pd
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Tuple

from modules.base.base_engine import BaseEngine
from modules.task_expander import Queue
from utils.error_handling import handle_engine_errors
from utils.exceptions import GridSearchException
from utils.file_io import save_dataframe, save_json
from utils import constants

# Called with a repeat index (1-based) and returns a freshly evaluated Queue
SearchRunner = Callable[[int], Queue]

# Scores of one run per configuration, in Queue order within a configuration
ScoreColumn = Dict[Tuple, List[float]]


class SelectionEngine(BaseEngine):
    """
    Chooses the single best Task of the original search run.

    With ``repeats > 0`` the search is rerun ``repeats`` times through
    ``search_runner``. A configuration is a consistent winner when, in every
    run including the original one, its score is not below that run's
    ``percentile``-th percentile. Among consistent winners the best original
    score wins, ties going to the earlier Task. Without consistent winners the
    simple selection on the original run is used.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)
        selection = config.get('selection', {})
        self.inclusive_boundary = selection.get('inclusive_boundary', True)
        self.percentile_method = selection.get('percentile_method', 'linear')

    def _get_engine_directory_name(self) -> str:
        return constants.SELECTION_DIR

    @handle_engine_errors("Model Selection")
    def execute(self, queue: Queue, repeats: int = 0, percentile: float = -1.0,
                search_runner: Optional[SearchRunner] = None) -> int:
        """
        Select the winning Task.

        Args:
            queue: Evaluated Queue of the original run.
            repeats: Number of additional search runs; 0 disables consistency repeats.
            percentile: Threshold percentile used with repeats.
            search_runner: Produces the Queue of a repeat; required when repeats > 0.

        Returns:
            ID of the winning Task in ``queue``.
        """
        if len(queue) == 0:
            raise GridSearchException("Cannot select from an empty queue.")
        if not all(task.is_evaluated for task in queue):
            raise GridSearchException("Every task must be evaluated before selection.")

        if repeats > 0:
            if search_runner is None:
                raise GridSearchException("Consistency repeats need a search runner.")
            repeat_scores = []
            for r in range(1, repeats + 1):
                self.logger.info(f"--- Consistency repeat {r}/{repeats} ---")
                # Only the scores outlive a repeat, its Queue and models are released here
                repeat_scores.append(self.score_column(search_runner(r)))
                gc.collect()
            best_id = self.select_consistent(queue, repeat_scores, percentile)
        else:
            best_id = self.select_simple(queue)

        best_task = queue.get_task(best_id)
        self.logger.info(
            f"Best configuration: ID {best_task.ID}  {best_task.describe()}  "
            f"perf={best_task.performance:3.3f}%"
        )
        if self.output_dir is not None:
            save_json({
                'task_id': best_task.ID,
                'params': best_task.params(),
                'performance': best_task.performance,
                'mode': best_task.mode.value,
                'repeats': repeats,
                'percentile': percentile if repeats > 0 else None,
            }, self.output_dir / constants.BEST_CONFIGURATION_FILE)
        return best_id

    @staticmethod
    def select_simple(queue: Queue) -> int:
        """Strictly greatest score; ties resolve to the first Task in Queue order."""
        best_task = queue[0]
        for task in queue:
            if task.performance > best_task.performance:
                best_task = task
        return best_task.ID

    def select_consistent(self, queue: Queue, repeat_scores: List[ScoreColumn], percentile: float) -> int:
        """Consistency-repeat selection over the original and repeated runs."""
        history = self.build_history(queue, repeat_scores)
        thresholds = self.run_thresholds(history, percentile)

        if self.inclusive_boundary:
            passed = history.ge(thresholds, axis=1)
        else:
            passed = history.gt(thresholds, axis=1)
        consistent = passed.all(axis=1)

        ranks = history.rank(axis=0, ascending=False, method='min')
        self._log_consistency(history, ranks, consistent, thresholds, percentile)

        if self.output_dir is not None:
            summary = history.copy()
            summary['consistent'] = consistent
            summary['mean_rank'] = ranks.mean(axis=1)
            save_dataframe(summary.reset_index(), self.output_dir / constants.CONSISTENCY_HISTORY_FILE,
                           excel_copy=self.excel_copy, index=False)
            save_dataframe(ranks.reset_index(), self.output_dir / constants.CONSISTENCY_RANKS_FILE,
                           excel_copy=self.excel_copy, index=False)

        if not consistent.any():
            self.logger.warning(
                "No configuration reached the percentile threshold in every run. "
                "Falling back to the best score of the original run."
            )
            return self.select_simple(queue)

        # History rows follow Queue order, so idxmax keeps the first on ties
        original_scores = history.loc[consistent, 'run_0']
        return int(original_scores.idxmax())

    @staticmethod
    def score_column(queue: Queue) -> ScoreColumn:
        """Reduce an evaluated Queue to its scores keyed by hyperparameter tuple."""
        column: ScoreColumn = defaultdict(list)
        for task in queue:
            if not task.is_evaluated:
                raise GridSearchException(f"Task {task.ID} ({task.describe()}) was not evaluated.")
            column[task.config_key].append(task.performance)
        return dict(column)

    def build_history(self, queue: Queue, repeat_scores: List[ScoreColumn]) -> pd.DataFrame:
        """
        Score table indexed by original Task ID, one ``run_<k>`` column per run.

        Repeats are matched by hyperparameter tuple, not by ID. Tasks sharing a
        tuple (a value listed twice in the grid) are matched by their position
        among those Tasks.
        """
        runs: Dict[str, List[float]] = {'run_0': [task.performance for task in queue]}
        for r, scores in enumerate(repeat_scores, start=1):
            seen: Dict[Tuple, int] = defaultdict(int)
            column = []
            for task in queue:
                key = task.config_key
                matches = scores.get(key, [])
                if seen[key] >= len(matches):
                    raise GridSearchException(
                        f"Repeat {r} has no result for task {task.ID} ({task.describe()})."
                    )
                column.append(matches[seen[key]])
                seen[key] += 1
            runs[f'run_{r}'] = column

        index = pd.Index([task.ID for task in queue], name='task_id')
        return pd.DataFrame(runs, index=index, dtype=float)

    def run_thresholds(self, history: pd.DataFrame, percentile: float) -> pd.Series:
        """Per-run score at ``percentile``."""
        return pd.Series(
            {run: float(np.percentile(history[run].to_numpy(), percentile, method=self.percentile_method))
             for run in history.columns}
        )

    def _log_consistency(self, history: pd.DataFrame, ranks: pd.DataFrame, consistent: pd.Series,
                         thresholds: pd.Series, percentile: float) -> None:
        self.logger.info(
            f"Percentile {percentile} thresholds per run: "
            + ", ".join(f"{run}={value:.3f}" for run, value in thresholds.items())
        )
        self.logger.info(f"{int(consistent.sum())} of {len(history)} configurations are consistent.")
        for task_id in history.index[consistent]:
            self.logger.info(
                f"  ID {task_id}: mean perf={history.loc[task_id].mean():3.3f}% "
                f"std={history.loc[task_id].std(ddof=0):.3f} mean rank={ranks.loc[task_id].mean():.1f}"
            )
