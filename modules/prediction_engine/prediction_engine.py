import logging
import numpy as np
import scipy.sparse as sp
from typing import Any, Optional, Tuple

from sklearn.metrics import accuracy_score

from modules.base.base_engine import BaseEngine
from modules.data_manager import Dataset, DataManager
from modules.grid_spec import KernelType
from utils.error_handling import handle_engine_errors
from utils.exceptions import DataValidationError, PredictionError
from utils.file_io import save_json
from utils import constants


class PredictionEngine(BaseEngine):
    """
    Generates test predictions with a trained model.
    Ensures the test matrix matches what the model was trained on.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)
        self.data_manager = DataManager(config, logger)

    def _get_engine_directory_name(self) -> str:
        return constants.PREDICTIONS_DIR

    @handle_engine_errors("Prediction")
    def execute(self, model: Any, kernel: KernelType, train_data: Dataset,
                test_data: Dataset) -> Tuple[np.ndarray, Optional[float]]:
        """
        Predict labels for every test sample.

        Returns:
            (labels, performance): performance is accuracy in percent, or None when
            the test data has no labels.
        """
        self.logger.info(f"Generating predictions for {test_data.n_samples} test samples...")

        if test_data.is_sparse and kernel is not KernelType.LINEAR:
            self.logger.warning(
                "Sparse matrices with nonlinear kernels are not yet supported. "
                "Dense matrices will be used."
            )
            self.data_manager.to_dense(test_data)

        X = self.kernel_postprocess(model, train_data, test_data)

        try:
            labels = np.asarray(model.predict(X)).astype(np.int64)
        except Exception as e:
            self.logger.error(f"Prediction failed: {e}")
            raise PredictionError(f"Prediction failed: {e}") from e

        performance = None
        if test_data.has_labels:
            performance = 100.0 * accuracy_score(test_data.y, labels)
            self.logger.info(f"Predictive performance: {performance:3.2f}%")

        if self.output_dir is not None:
            save_json({
                'n_samples': test_data.n_samples,
                'performance': performance,
                'label_counts': {int(k): int(v) for k, v in zip(*np.unique(labels, return_counts=True))},
            }, self.output_dir / constants.PREDICTION_SUMMARY_FILE)

        return labels, performance

    def kernel_postprocess(self, model: Any, train_data: Dataset, test_data: Dataset):
        """
        Bring the test matrix into the model's input space.

        A test file can legitimately mention fewer features than the training file
        (trailing all-zero features in LibSVM files); those columns are zero-padded.
        More features than the model knows is an error. A sparse test matrix is
        densified when the model was fit on dense data.
        """
        n_features = getattr(model, 'n_features_in_', train_data.n_features)
        X = test_data.X

        if X.shape[1] > n_features:
            raise DataValidationError(
                f"Test data has {X.shape[1]} features, the model was trained on {n_features}."
            )
        if X.shape[1] < n_features:
            self.logger.debug(f"Padding test data from {X.shape[1]} to {n_features} features.")
            if sp.issparse(X):
                X = sp.csr_matrix(X, copy=True)
                X.resize((X.shape[0], n_features))
            else:
                X = np.hstack([X, np.zeros((X.shape[0], n_features - X.shape[1]))])

        if sp.issparse(X) and not train_data.is_sparse:
            X = X.toarray()
        return X
