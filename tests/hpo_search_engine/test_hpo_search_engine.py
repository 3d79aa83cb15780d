import pytest
import pandas as pd
import numpy as np
import logging
from pathlib import Path
from unittest.mock import MagicMock, patch
from sklearn.datasets import make_blobs

from modules.data_manager import Dataset
from modules.grid_spec import GridSpec
from modules.hpo_search_engine import HPOSearchEngine
from modules.task_expander import TaskExpander
from modules.trainer import Trainer
from utils.exceptions import GridSearchException, ModelTrainingError

# --- Fixtures ---

@pytest.fixture
def mock_logger():
    return MagicMock(spec=logging.Logger)

@pytest.fixture
def hpo_config():
    return {
        'execution': {'n_jobs': 1, 'on_task_failure': 'fail_fast', 'failure_penalty': -1.0},
        'outputs': {'results_dir': None},
        '_internal_seeds': {'search': 42, 'repeat_base': 1042},
    }

@pytest.fixture
def train_data():
    X, y = make_blobs(n_samples=40, centers=2, n_features=3, cluster_std=0.5, random_state=0)
    return Dataset(X=X, y=y + 1)

@pytest.fixture
def grid():
    return GridSpec(train_data_file="train.dat", lambdas=[1e-3, 1e-1], folds=5)

# --- Tests ---

class TestHPOSearchEngine:

    def test_cross_validation_dispatch(self, hpo_config, mock_logger, train_data, grid):
        grid.lambdas = [1e-3]
        grid.validate(mock_logger)
        queue = TaskExpander(mock_logger).fill_queue(grid, train_data)
        trainer = MagicMock(spec=Trainer)
        trainer.cross_validate.return_value = 87.5

        HPOSearchEngine(hpo_config, mock_logger).execute(queue, trainer, train_data)

        trainer.cross_validate.assert_called_once_with(queue[0], train_data, 5)
        trainer.train.assert_not_called()
        assert queue[0].performance == 87.5

    def test_train_test_dispatch(self, hpo_config, mock_logger, train_data, grid):
        grid.validate(mock_logger)
        test_data = Dataset(X=train_data.X[:10], y=train_data.y[:10])
        queue = TaskExpander(mock_logger).fill_queue(grid, train_data, test_data)
        trainer = MagicMock(spec=Trainer)
        trainer.train.return_value = ("model", 60.0)

        HPOSearchEngine(hpo_config, mock_logger).execute(queue, trainer, train_data, test_data)

        assert trainer.train.call_count == 2
        trainer.cross_validate.assert_not_called()
        assert queue.performances() == [60.0, 60.0]
        assert queue[0].result.model == "model"

    def test_every_task_evaluated_once(self, hpo_config, mock_logger, train_data, grid):
        grid.validate(mock_logger)
        queue = TaskExpander(mock_logger).fill_queue(grid, train_data)
        trainer = MagicMock(spec=Trainer)
        trainer.cross_validate.return_value = 50.0
        engine = HPOSearchEngine(hpo_config, mock_logger)

        engine.execute(queue, trainer, train_data)
        engine.execute(queue, trainer, train_data)

        assert trainer.cross_validate.call_count == len(queue)
        assert all(task.is_evaluated for task in queue)

    def test_fail_fast_propagates(self, hpo_config, mock_logger, train_data, grid):
        grid.validate(mock_logger)
        queue = TaskExpander(mock_logger).fill_queue(grid, train_data)
        trainer = MagicMock(spec=Trainer)
        trainer.cross_validate.side_effect = ModelTrainingError("boom")

        with pytest.raises(ModelTrainingError, match="boom"):
            HPOSearchEngine(hpo_config, mock_logger).execute(queue, trainer, train_data)

    def test_penalize_continues(self, hpo_config, mock_logger, train_data, grid):
        hpo_config['execution']['on_task_failure'] = 'penalize'
        grid.validate(mock_logger)
        queue = TaskExpander(mock_logger).fill_queue(grid, train_data)
        trainer = MagicMock(spec=Trainer)
        trainer.cross_validate.side_effect = [ModelTrainingError("boom"), 75.0]

        HPOSearchEngine(hpo_config, mock_logger).execute(queue, trainer, train_data)

        assert queue.performances() == [-1.0, 75.0]
        assert queue[0].result.status == "failed"
        assert queue[1].result.status == "success"
        mock_logger.error.assert_called_once()

    def test_unexpected_error_wrapped(self, hpo_config, mock_logger, train_data, grid):
        grid.validate(mock_logger)
        queue = TaskExpander(mock_logger).fill_queue(grid, train_data)
        trainer = MagicMock(spec=Trainer)
        trainer.cross_validate.side_effect = RuntimeError("unexpected")

        with pytest.raises(GridSearchException, match="Grid Search failed"):
            HPOSearchEngine(hpo_config, mock_logger).execute(queue, trainer, train_data)

    def test_run_search_end_to_end(self, hpo_config, mock_logger, train_data, grid):
        grid.validate(mock_logger)
        queue = HPOSearchEngine(hpo_config, mock_logger).run_search(grid, train_data)

        assert len(queue) == 2
        assert all(0.0 <= perf <= 100.0 for perf in queue.performances())

    def test_repeat_uses_own_seed(self, hpo_config, mock_logger, train_data, grid):
        grid.validate(mock_logger)
        engine = HPOSearchEngine(hpo_config, mock_logger)
        with patch('modules.hpo_search_engine.hpo_search_engine.Trainer') as mock_trainer:
            mock_trainer.return_value.cross_validate.return_value = 50.0
            engine.run_search(grid, train_data, repeat_idx=0)
            engine.run_search(grid, train_data, repeat_idx=2)

        seeds = [call.kwargs['random_state'] for call in mock_trainer.call_args_list]
        assert seeds == [42, 1242]

    def test_results_parquet_written(self, hpo_config, mock_logger, train_data, grid, tmp_path):
        hpo_config['outputs']['results_dir'] = str(tmp_path)
        grid.validate(mock_logger)
        queue = TaskExpander(mock_logger).fill_queue(grid, train_data)
        trainer = MagicMock(spec=Trainer)
        trainer.cross_validate.return_value = 55.0

        HPOSearchEngine(hpo_config, mock_logger).execute(queue, trainer, train_data, run_idx=3)

        path = Path(tmp_path) / "01_GridSearch" / "task_results_run_003.parquet"
        assert path.exists()
        df = pd.read_parquet(path)
        assert len(df) == 2
        assert df['performance'].tolist() == [55.0, 55.0]

    def test_memory_cleanup_called(self, hpo_config, mock_logger, train_data, grid):
        grid.validate(mock_logger)
        queue = TaskExpander(mock_logger).fill_queue(grid, train_data)
        trainer = MagicMock(spec=Trainer)
        trainer.cross_validate.return_value = 50.0
        with patch('gc.collect') as mock_gc:
            HPOSearchEngine(hpo_config, mock_logger).execute(queue, trainer, train_data)
            assert mock_gc.call_count >= len(queue)
