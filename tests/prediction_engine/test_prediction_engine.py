import pytest
import numpy as np
import scipy.sparse as sp
import logging
import json
from unittest.mock import MagicMock
from sklearn.datasets import make_blobs
from sklearn.svm import SVC

from modules.data_manager import Dataset
from modules.grid_spec import KernelType
from modules.prediction_engine import PredictionEngine
from utils.exceptions import DataValidationError, PredictionError

# --- Fixtures ---

@pytest.fixture
def mock_logger():
    return MagicMock(spec=logging.Logger)

@pytest.fixture
def base_config():
    return {'outputs': {'results_dir': None}, 'resources': {'max_memory_mb': 1024}}

@pytest.fixture
def blobs():
    X, y = make_blobs(n_samples=40, centers=3, n_features=3, cluster_std=0.4, random_state=2)
    return X, y + 1

# --- Tests ---

class TestPredictionEngine:

    def test_labels_and_performance(self, base_config, mock_logger, blobs):
        X, y = blobs
        train = Dataset(X=X, y=y)
        model = SVC(kernel='linear').fit(X, y)

        labels, performance = PredictionEngine(base_config, mock_logger).execute(
            model, KernelType.LINEAR, train, Dataset(X=X.copy(), y=y.copy())
        )

        assert labels.tolist() == y.tolist()
        assert performance == pytest.approx(100.0)
        mock_logger.info.assert_any_call("Predictive performance: 100.00%")

    def test_unlabelled_test_data(self, base_config, mock_logger, blobs):
        X, y = blobs
        model = SVC(kernel='linear').fit(X, y)

        labels, performance = PredictionEngine(base_config, mock_logger).execute(
            model, KernelType.LINEAR, Dataset(X=X, y=y), Dataset(X=X[:5])
        )

        assert len(labels) == 5
        assert performance is None

    def test_sparse_rbf_matches_dense(self, base_config, mock_logger, blobs):
        X, y = blobs
        train = Dataset(X=X, y=y)
        model = SVC(kernel='rbf', gamma=0.5).fit(X, y)
        engine = PredictionEngine(base_config, mock_logger)

        dense_labels, _ = engine.execute(model, KernelType.RBF, train, Dataset(X=X.copy()))
        sparse_test = Dataset(X=sp.csr_matrix(X))
        sparse_labels, _ = engine.execute(model, KernelType.RBF, train, sparse_test)

        assert np.array_equal(dense_labels, sparse_labels)
        assert not sparse_test.is_sparse
        mock_logger.warning.assert_called_once()

    def test_narrow_test_matrix_padded(self, base_config, mock_logger):
        train = Dataset(X=np.array([[0.0, 0.0, 1.0], [1.0, 0.0, 0.0], [0.0, 0.0, 2.0], [2.0, 0.0, 0.0]]),
                        y=np.array([1, 2, 1, 2]))
        model = SVC(kernel='linear').fit(train.X, train.y)
        engine = PredictionEngine(base_config, mock_logger)

        dense = engine.kernel_postprocess(model, train, Dataset(X=np.array([[1.0, 0.0]])))
        sparse = engine.kernel_postprocess(model, train, Dataset(X=sp.csr_matrix([[1.0, 0.0]])))

        assert dense.shape == (1, 3)
        assert sparse.shape == (1, 3)
        assert not sp.issparse(sparse)

    def test_sparse_kept_for_sparse_linear_model(self, base_config, mock_logger):
        train = Dataset(X=sp.csr_matrix(np.eye(4)), y=np.array([1, 2, 1, 2]))
        model = SVC(kernel='linear').fit(train.X, train.y)

        X = PredictionEngine(base_config, mock_logger).kernel_postprocess(
            model, train, Dataset(X=sp.csr_matrix(np.eye(4)[:2, :3]))
        )
        assert sp.issparse(X)
        assert X.shape == (2, 4)

    def test_wide_test_matrix_rejected(self, base_config, mock_logger, blobs):
        X, y = blobs
        model = SVC(kernel='linear').fit(X, y)

        with pytest.raises(DataValidationError, match="features"):
            PredictionEngine(base_config, mock_logger).execute(
                model, KernelType.LINEAR, Dataset(X=X, y=y), Dataset(X=np.zeros((2, 5)))
            )

    def test_predict_failure(self, base_config, mock_logger):
        model = MagicMock()
        model.n_features_in_ = 2
        model.predict.side_effect = ValueError("not fitted")

        with pytest.raises(PredictionError, match="not fitted"):
            PredictionEngine(base_config, mock_logger).execute(
                model, KernelType.LINEAR, Dataset(X=np.zeros((1, 2))), Dataset(X=np.zeros((1, 2)))
            )

    def test_summary_written(self, mock_logger, blobs, tmp_path):
        X, y = blobs
        model = SVC(kernel='linear').fit(X, y)
        config = {'outputs': {'results_dir': str(tmp_path)}}

        PredictionEngine(config, mock_logger).execute(model, KernelType.LINEAR, Dataset(X=X, y=y), Dataset(X=X, y=y))

        with open(tmp_path / "04_Predictions" / "prediction_summary.json") as f:
            summary = json.load(f)
        assert summary['n_samples'] == 40
        assert sum(summary['label_counts'].values()) == 40
