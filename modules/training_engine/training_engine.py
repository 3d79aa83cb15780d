import gc
import time
import joblib
import logging
from typing import Any

from modules.base.base_engine import BaseEngine
from modules.data_manager import Dataset
from modules.task_expander.task import Task
from modules.trainer import Trainer
from utils.error_handling import handle_engine_errors
from utils.exceptions import ModelTrainingError
from utils.file_io import save_json
from utils import constants


class TrainingEngine(BaseEngine):
    """
    Retrains the winning Task on the full training set.

    When ``outputs.save_models`` is on and an output directory is set, the
    fitted model is dumped with joblib next to a JSON metadata file.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)

    def _get_engine_directory_name(self) -> str:
        return constants.FINAL_MODEL_DIR

    @handle_engine_errors("Training")
    def execute(self, task: Task, train_data: Dataset) -> Any:
        """
        Train the model on the full training dataset.

        Args:
            task: Winning Task; only its hyperparameters are used.
            train_data: Training Dataset.

        Returns:
            Trained model object.
        """
        self.logger.info(
            f"Training final model ({task.describe()}) on {train_data.n_samples} samples "
            f"with {train_data.n_features} features."
        )
        if train_data.n_samples == 0:
            raise ModelTrainingError("No training samples available for the final model.")

        trainer = Trainer(self.logger)
        start_time = time.time()
        model, train_score = trainer.train(task, train_data)
        duration = time.time() - start_time
        self.logger.info(f"Training completed in {duration:.2f} seconds (training accuracy {train_score:3.2f}%).")

        if self.output_dir is not None and self.config.get('outputs', {}).get('save_models', False):
            try:
                model_path = self.output_dir / constants.FINAL_MODEL_FILE
                joblib.dump(model, model_path)
                self.logger.info(f"Model saved to {model_path}")

                metadata = {
                    'task_id': task.ID,
                    'params': task.params(),
                    'input_shape': [train_data.n_samples, train_data.n_features],
                    'n_classes': train_data.n_classes,
                    'training_accuracy': train_score,
                    'training_time_sec': duration,
                    'timestamp': time.strftime("%Y-%m-%d %H:%M:%S")
                }
                save_json(metadata, self.output_dir / constants.TRAINING_METADATA_FILE)
            except OSError as e:
                self.logger.warning(f"Failed to save model artifacts. Error: {e}")

        gc.collect()
        return model
