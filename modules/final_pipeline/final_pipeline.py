import logging
import numpy as np
from pathlib import Path
from typing import Optional, Tuple

from modules.data_manager import Dataset
from modules.prediction_engine import PredictionEngine
from modules.task_expander.task import Task
from modules.training_engine import TrainingEngine
from utils.file_io import write_predictions


class FinalPipeline:
    """
    Retrain-and-predict for the selected Task.

    The only side effect is emitting the predictions, to ``output_path`` when
    given and to ``stream`` (stdout by default) otherwise.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        self.config = config
        self.logger = logger

    def run(self, task: Task, train_data: Dataset, test_data: Dataset,
            output_path: Optional[Path] = None, stream=None) -> Tuple[np.ndarray, Optional[float]]:
        model = TrainingEngine(self.config, self.logger).execute(task, train_data)

        labels, performance = PredictionEngine(self.config, self.logger).execute(
            model, task.kernel, train_data, test_data
        )

        write_predictions(labels, path=output_path, stream=stream)
        if output_path is not None:
            self.logger.info(f"Prediction written to: {output_path}")

        return labels, performance
