import abc
import logging
from pathlib import Path
from typing import Dict, Any, Optional

class BaseEngine(abc.ABC):
    """
    Abstract base class for all processing engines.

    Provides common functionality for:
    - Configuration and logger attachment.
    - Optional, sequentially numbered output directory under ``outputs.results_dir``.
      When no results directory is configured the engine writes no artifacts and
      ``output_dir`` is None.
    """

    def __init__(self, config: Dict[str, Any], logger: logging.Logger):
        self.config = config
        self.logger = logger
        results_dir = self.config.get('outputs', {}).get('results_dir')
        self.base_dir: Optional[Path] = Path(results_dir) if results_dir else None
        self.engine_dir_name = self._get_engine_directory_name()
        self.output_dir: Optional[Path] = (
            self.base_dir / self.engine_dir_name if self.base_dir is not None else None
        )

        self._setup_directories()

    @abc.abstractmethod
    def _get_engine_directory_name(self) -> str:
        """
        Determines the directory name for the engine's output.
        e.g., '01_GridSearch', '02_ModelSelection'
        This should be implemented by subclasses.
        """
        raise NotImplementedError("Subclasses must implement _get_engine_directory_name.")

    def _setup_directories(self):
        """
        Creates the main output directory for the engine, if artifacts are enabled.
        """
        if self.output_dir is None:
            return

        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.logger.debug(f"Output directory for {self.__class__.__name__}: {self.output_dir}")

    @property
    def excel_copy(self) -> bool:
        return self.config.get('outputs', {}).get('save_excel_copy', False)

    @abc.abstractmethod
    def execute(self, *args, **kwargs) -> Any:
        """
        Main execution method for the engine.
        This must be implemented by all subclasses.
        """
        pass
