import copy
import json
import os
import time
import logging
import jsonschema
import psutil  # Required for memory awareness
from pathlib import Path
from typing import Dict, Any, Optional

from utils.exceptions import ConfigurationError
from utils import constants

SCHEMA_PATH = Path(__file__).with_name("schema.json")

DEFAULT_CONFIG: Dict[str, Any] = {
    'logging': {
        'level': 'INFO',
        'log_to_console': True,
        'colorful_console': True,
        'log_to_file': False,
        'log_dir': 'logs',
    },
    'execution': {
        'seed': None,
        'n_jobs': 1,
        'on_task_failure': constants.FAIL_FAST,
        'failure_penalty': -1.0,
    },
    'selection': {
        'inclusive_boundary': True,
        'percentile_method': 'linear',
    },
    'resources': {
        'max_tasks': 100000,
    },
    'outputs': {
        'results_dir': None,
        'save_excel_copy': False,
        'save_models': False,
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigurationManager:
    """
    Manages runtime settings loading, validation, and access.

    The grid file says *what* to search; these settings say *how* to run it
    (logging, failure policy, percentile boundary, artifact output). Without a
    settings file the built-in defaults are used, and they go through the same
    validation as user-supplied settings.
    """

    # Default Resource Limits (Safety Guardrails)
    DEFAULT_MAX_TASKS = 100000  # Prevent accidental combinatoric explosions
    REPEAT_SEED_OFFSET = 1000
    REPEAT_SEED_STRIDE = 100

    def __init__(self, config_path: Optional[str] = None,
                 schema_path: str = str(SCHEMA_PATH)):
        """
        Initialize the ConfigurationManager.

        Args:
            config_path (str): Path to the user settings JSON, or None for defaults.
            schema_path (str): Path to the JSON schema definition.
        """
        self.config_path = config_path
        self.schema_path = schema_path
        self.config: Dict[str, Any] = {}
        self.schema: Dict[str, Any] = {}
        self.logger = logging.getLogger("config_manager")

    def load_and_validate(self) -> Dict[str, Any]:
        """
        Main entry point. Loads settings, validates schema/logic/resources and
        applies defaults.

        Returns:
            Dict[str, Any]: The fully validated and hydrated configuration.

        Raises:
            ConfigurationError: If any validation step fails.
        """
        user_config = self._load_json(self.config_path) if self.config_path else {}
        self.schema = self._load_json(self.schema_path)

        # Validate what the user wrote, before defaults can mask mistakes
        self._validate_schema(user_config)
        self.config = _deep_merge(DEFAULT_CONFIG, user_config)

        self._validate_logic()
        self._validate_resources()

        return self.config

    def propagate_seeds(self, seed: Optional[int] = None) -> int:
        """
        Fix the master seed and derive the repeat-local seeds from it.

        The CLI seed wins over ``execution.seed``; with neither, wall-clock time is
        used. Each consistency repeat gets its own seed so repeats never share a
        random stream.
        """
        if seed is None:
            seed = self.config['execution'].get('seed')
        if seed is None:
            seed = int(time.time())
        if seed < 0:
            raise ConfigurationError(f"Seed must be non-negative, got {seed}.")

        self.config['execution']['seed'] = seed
        self.config['_internal_seeds'] = {
            'search': seed,
            'repeat_base': seed + self.REPEAT_SEED_OFFSET,
        }
        self.logger.debug(f"Seeds propagated from master ({seed}): {self.config['_internal_seeds']}")
        return seed

    @classmethod
    def repeat_seed(cls, config: Dict[str, Any], repeat_idx: int) -> int:
        """Seed for a search run; run 0 is the original search."""
        seeds = config['_internal_seeds']
        if repeat_idx == 0:
            return seeds['search']
        return seeds['repeat_base'] + repeat_idx * cls.REPEAT_SEED_STRIDE

    def validate_task_count(self, n_tasks: int) -> None:
        """Grid explosion guard, checked once the grid file has been read."""
        max_tasks = self.config['resources'].get('max_tasks', self.DEFAULT_MAX_TASKS)
        if n_tasks > max_tasks:
            raise ConfigurationError(
                f"Grid Explosion Detected! Total tasks ({n_tasks}) exceeds "
                f"safety limit ({max_tasks}). Reduce the grid or increase 'resources.max_tasks'."
            )
        self.logger.info(f"Grid size validated: {n_tasks} tasks (Limit: {max_tasks})")

    def _load_json(self, path: str) -> Dict[str, Any]:
        """Safely load a JSON file."""
        if not os.path.exists(path):
            raise ConfigurationError(f"File not found: {path}")
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {str(e)}")

    def _validate_schema(self, instance: Dict[str, Any]) -> None:
        """Validate settings structure against JSON schema."""
        try:
            jsonschema.validate(instance=instance, schema=self.schema)
        except jsonschema.ValidationError as e:
            raise ConfigurationError(f"Schema validation failed: {e.message}")

    def _validate_logic(self) -> None:
        """Logical validation beyond what the schema expresses."""
        execution = self.config['execution']
        n_jobs = execution.get('n_jobs', 1)
        if n_jobs == 0 or n_jobs < -1:
            raise ConfigurationError(f"execution.n_jobs must be -1 (all cores) or a positive integer, got {n_jobs}")

        seed = execution.get('seed')
        if seed is not None and seed < 0:
            raise ConfigurationError(f"execution.seed must be non-negative, got {seed}")

        max_tasks = self.config['resources'].get('max_tasks', self.DEFAULT_MAX_TASKS)
        if max_tasks <= 0:
            raise ConfigurationError(f"resources.max_tasks must be > 0, got {max_tasks}")

        if self.config['outputs'].get('save_models') and not self.config['outputs'].get('results_dir'):
            self.logger.warning("outputs.save_models is set but outputs.results_dir is not; no model will be saved.")

    def _validate_resources(self) -> None:
        """
        Resolve the memory budget used to guard sparse-to-dense conversions.
        """
        resources = self.config['resources']

        system_ram_mb = int(psutil.virtual_memory().total / (1024 * 1024))
        # Default safety buffer: 80% of system RAM
        safe_ram_limit = int(system_ram_mb * 0.8)

        config_max_ram = resources.get('max_memory_mb', safe_ram_limit)
        if config_max_ram <= 0:
            raise ConfigurationError(f"resources.max_memory_mb must be > 0, got {config_max_ram}")

        if config_max_ram > system_ram_mb:
            self.logger.warning(
                f"Configured max_memory_mb ({config_max_ram}MB) exceeds physical system RAM ({system_ram_mb}MB). "
                "This may lead to instability."
            )

        resources['max_memory_mb'] = config_max_ram
