import logging
import warnings
import numpy as np
from typing import Any, List, Optional, Tuple
from joblib import Parallel, delayed

from sklearn.exceptions import ConvergenceWarning
from sklearn.metrics import accuracy_score
from sklearn.model_selection import StratifiedKFold, KFold

from modules.data_manager import Dataset
from modules.model_factory import ModelFactory
from modules.task_expander.task import Task
from utils.exceptions import DataValidationError, ModelTrainingError


class Trainer:
    """
    Fits and scores models for single Tasks.

    Scores are classification accuracy in percent. Deterministic for a fixed
    ``random_state``.
    """

    def __init__(self, logger: logging.Logger, random_state: int = 0, n_jobs: int = 1):
        self.logger = logger
        self.random_state = random_state
        self.n_jobs = n_jobs
        self._splits_cache: Optional[Tuple[int, int, List[Tuple[np.ndarray, np.ndarray]]]] = None

    def train(self, task: Task, train_data: Dataset,
              test_data: Optional[Dataset] = None) -> Tuple[Any, float]:
        """
        Fit ``task`` on the whole of ``train_data``.

        Returns:
            (model, score): score is held-out accuracy on ``test_data`` when it has
            labels, training accuracy otherwise.
        """
        model = self._fit(task, train_data.X, train_data.y)
        if test_data is not None and test_data.has_labels:
            score = self._accuracy(test_data.y, self._predict(task, model, test_data.X))
        else:
            score = self._accuracy(train_data.y, self._predict(task, model, train_data.X))
        return model, score

    def cross_validate(self, task: Task, data: Dataset, folds: int) -> float:
        """
        k-fold cross validation score of ``task`` on ``data``.

        The score is pooled: correct predictions over all folds divided by the
        number of samples.
        """
        splits = self.make_cv_split(data, folds)

        fold_predictions = Parallel(n_jobs=self.n_jobs)(
            delayed(self._run_single_fold)(task, data, train_idx, test_idx)
            for train_idx, test_idx in splits
        )

        correct = 0
        for (_, test_idx), preds in zip(splits, fold_predictions):
            correct += int(np.sum(preds == data.y[test_idx]))
        return 100.0 * correct / data.n_samples

    def make_cv_split(self, data: Dataset, folds: int) -> List[Tuple[np.ndarray, np.ndarray]]:
        """Fold indices for ``data``; computed once per (dataset size, folds)."""
        key = (data.n_samples, folds)
        if self._splits_cache is not None and self._splits_cache[:2] == key:
            return self._splits_cache[2]

        if folds > data.n_samples:
            raise DataValidationError(
                f"Cannot make {folds} folds from {data.n_samples} samples."
            )

        # Stratify when every class can populate every fold
        _, counts = np.unique(data.y, return_counts=True)
        if counts.min() >= folds:
            cv = StratifiedKFold(n_splits=folds, shuffle=True, random_state=self.random_state)
            splits = list(cv.split(np.zeros(data.n_samples), data.y))
        else:
            self.logger.debug(f"Smallest class has {counts.min()} samples, using unstratified folds.")
            cv = KFold(n_splits=folds, shuffle=True, random_state=self.random_state)
            splits = list(cv.split(np.zeros(data.n_samples)))

        self._splits_cache = (data.n_samples, folds, splits)
        return splits

    def _run_single_fold(self, task: Task, data: Dataset, train_idx, test_idx) -> np.ndarray:
        """Helper for parallel fold execution."""
        y_train = data.y[train_idx]
        if np.unique(y_train).size < 2:
            # Nothing to separate; every held-out sample gets the only class seen
            return np.full(len(test_idx), y_train[0])
        model = self._fit(task, data.X[train_idx], y_train)
        return self._predict(task, model, data.X[test_idx])

    def _fit(self, task: Task, X, y) -> Any:
        try:
            model = ModelFactory.create(task, n_samples=X.shape[0])
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", category=ConvergenceWarning)
                model.fit(X, y)
            return model
        except Exception as e:
            raise ModelTrainingError(f"Training failed for task {task.ID} ({task.describe()}): {e}") from e

    def _predict(self, task: Task, model: Any, X) -> np.ndarray:
        try:
            return model.predict(X)
        except Exception as e:
            raise ModelTrainingError(f"Prediction failed for task {task.ID} ({task.describe()}): {e}") from e

    @staticmethod
    def _accuracy(y_true, y_pred) -> float:
        return 100.0 * accuracy_score(y_true, y_pred)
