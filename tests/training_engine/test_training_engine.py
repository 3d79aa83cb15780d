import pytest
import numpy as np
import logging
import json
import joblib
from pathlib import Path
from unittest.mock import MagicMock
from sklearn.datasets import make_blobs
from sklearn.svm import SVC

from modules.data_manager import Dataset
from modules.grid_spec import GridSpec
from modules.task_expander import TaskExpander
from modules.training_engine import TrainingEngine
from utils.exceptions import ModelTrainingError

# --- Fixtures ---

@pytest.fixture
def mock_logger():
    """Provides a mock logger."""
    return MagicMock(spec=logging.Logger)

@pytest.fixture
def base_config(tmp_path):
    """Provides a base configuration pointing to a temp dir."""
    return {
        "outputs": {
            "results_dir": str(tmp_path),
            "save_models": True
        }
    }

@pytest.fixture
def train_data():
    X, y = make_blobs(n_samples=30, centers=2, n_features=2, cluster_std=0.5, random_state=1)
    return Dataset(X=X, y=y + 1)

@pytest.fixture
def task(mock_logger, train_data):
    grid = GridSpec(train_data_file="t", lambdas=[1e-2]).validate(mock_logger)
    return TaskExpander(mock_logger).fill_queue(grid, train_data)[0]

# --- Tests ---

class TestTrainingEngine:

    def test_model_trained_and_saved(self, base_config, mock_logger, train_data, task, tmp_path):
        model = TrainingEngine(base_config, mock_logger).execute(task, train_data)

        assert isinstance(model, SVC)
        out_dir = tmp_path / "03_FinalModel"
        saved = joblib.load(out_dir / "final_model.pkl")
        assert np.array_equal(saved.predict(train_data.X), model.predict(train_data.X))

        with open(out_dir / "training_metadata.json") as f:
            metadata = json.load(f)
        assert metadata['task_id'] == task.ID
        assert metadata['input_shape'] == [30, 2]
        assert metadata['n_classes'] == 2

    def test_nothing_saved_without_flag(self, base_config, mock_logger, train_data, task, tmp_path):
        base_config['outputs']['save_models'] = False
        TrainingEngine(base_config, mock_logger).execute(task, train_data)

        assert not (tmp_path / "03_FinalModel" / "final_model.pkl").exists()

    def test_no_results_dir(self, mock_logger, train_data, task):
        engine = TrainingEngine({'outputs': {'results_dir': None, 'save_models': True}}, mock_logger)
        assert engine.execute(task, train_data) is not None

    def test_empty_training_set(self, base_config, mock_logger, task):
        empty = Dataset(X=np.zeros((0, 2)), y=np.zeros(0, dtype=np.int64))
        with pytest.raises(ModelTrainingError, match="No training samples"):
            TrainingEngine(base_config, mock_logger).execute(task, empty)
