import logging
import numpy as np
import pandas as pd
import scipy.sparse as sp
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from sklearn.datasets import load_svmlight_file

from utils.exceptions import DataValidationError
from utils.error_handling import handle_engine_errors


@dataclass
class Dataset:
    """
    Feature matrix plus optional labels.

    ``X`` is either a dense ``numpy.ndarray`` or a ``scipy.sparse`` CSR matrix,
    never both at the same time.
    """
    X: Union[np.ndarray, sp.csr_matrix]
    y: Optional[np.ndarray] = None
    source: Optional[str] = None

    @property
    def n_samples(self) -> int:
        return self.X.shape[0]

    @property
    def n_features(self) -> int:
        return self.X.shape[1]

    @property
    def n_classes(self) -> int:
        if self.y is None:
            return 0
        return int(np.unique(self.y).size)

    @property
    def is_sparse(self) -> bool:
        return sp.issparse(self.X)

    @property
    def has_labels(self) -> bool:
        return self.y is not None


class DataManager:
    """
    Loads training and test data from whitespace text or LibSVM files.

    Densifying a sparse matrix is refused when its estimated size exceeds
    ``resources.max_memory_mb``.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        self.config = config
        self.logger = logger
        self.max_memory_mb = config.get('resources', {}).get('max_memory_mb')

    @handle_engine_errors("Data Loading")
    def execute(self, path: Union[str, Path], libsvm_format: bool = False,
                n_features: Optional[int] = None) -> Dataset:
        """
        Load a dataset in the requested format.

        Args:
            path: Data file.
            libsvm_format: Read LibSVM/SVMlight instead of the dense text format.
            n_features: Feature count to enforce for LibSVM files (test data is
                read with the training feature count).
        """
        self.logger.info(f"Reading data from {path}")
        if libsvm_format:
            data = self.load_sparse_libsvm(path, n_features=n_features)
        else:
            data = self.load_dense(path)
        self.logger.info(
            f"Loaded {data.n_samples} samples, {data.n_features} features"
            + (f", {data.n_classes} classes" if data.has_labels else " (unlabelled)")
        )
        return data

    def load_dense(self, path: Union[str, Path]) -> Dataset:
        """
        Read the dense text format: ``n``, ``m`` on the first two lines, then n rows
        of m features, each optionally followed by an integer label.
        """
        path = self._check_path(path)
        try:
            with open(path, 'r') as f:
                n = int(f.readline().split()[0])
                m = int(f.readline().split()[0])
            table = pd.read_csv(path, sep=r"\s+", header=None, skiprows=2, dtype=float)
        except (ValueError, IndexError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise DataValidationError(f"Malformed data file {path}: {e}")

        if len(table) != n:
            raise DataValidationError(f"Expected {n} rows in {path}, found {len(table)}.")
        if table.isna().to_numpy().any():
            raise DataValidationError(f"Rows of unequal length in {path}.")

        if table.shape[1] == m + 1:
            X = table.iloc[:, :m].to_numpy()
            y = table.iloc[:, m].to_numpy()
            if not np.all(np.equal(np.mod(y, 1), 0)):
                raise DataValidationError(f"Non-integer class labels in {path}.")
            y = y.astype(np.int64)
        elif table.shape[1] == m:
            X = table.to_numpy()
            y = None
        else:
            raise DataValidationError(
                f"Expected {m} or {m + 1} columns in {path}, found {table.shape[1]}."
            )
        return Dataset(X=X, y=y, source=str(path))

    def load_sparse_libsvm(self, path: Union[str, Path], n_features: Optional[int] = None) -> Dataset:
        """Read a LibSVM/SVMlight file into a CSR matrix."""
        path = self._check_path(path)
        try:
            X, y = load_svmlight_file(str(path), n_features=n_features, dtype=np.float64)
        except ValueError as e:
            raise DataValidationError(f"Malformed LibSVM file {path}: {e}")
        if not np.all(np.equal(np.mod(y, 1), 0)):
            raise DataValidationError(f"Non-integer class labels in {path}.")
        return Dataset(X=sp.csr_matrix(X), y=y.astype(np.int64), source=str(path))

    def _check_path(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        if not path.is_file():
            raise DataValidationError(f"Data file not found: {path}")
        return path

    @staticmethod
    def check_labels_contiguous(data: Dataset) -> bool:
        """True when the labels are exactly 1..K without gaps."""
        if data.y is None or data.y.size == 0:
            return False
        classes = np.unique(data.y)
        return bool(classes[0] == 1 and np.array_equal(classes, np.arange(1, classes.size + 1)))

    def validate_training_labels(self, data: Dataset) -> None:
        if not self.check_labels_contiguous(data):
            raise DataValidationError(
                "Class labels should start from 1 and have no gaps. Please reformat your data."
            )

    def to_dense(self, data: Dataset) -> Dataset:
        """Replace a sparse feature matrix by its dense equivalent, in place."""
        if not data.is_sparse:
            return data
        required_mb = data.n_samples * data.n_features * 8 / (1024 * 1024)
        if self.max_memory_mb and required_mb > self.max_memory_mb:
            self.logger.warning(
                f"Dense copy of {data.source or 'dataset'} needs ~{required_mb:.0f}MB, "
                f"above the configured limit of {self.max_memory_mb}MB."
            )
        data.X = data.X.toarray()
        return data
