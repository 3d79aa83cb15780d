"""
Reader for the line-oriented grid file.

A grid file holds one ``key: values`` entry per line, for example::

    train: data/iris.train
    test: data/iris.test
    p: 1.0 1.5 2.0
    lambda: 1e-8 1e-4 1
    kappa: -0.9 0.0 1.0
    epsilon: 1e-6
    weight: 1 2
    folds: 10
    repeats: 5
    percentile: 90
    kernel: RBF
    gamma: 1e-3 1e-1

``kernel`` has to come before ``gamma``, ``coef`` and ``degree``: those lines
are checked against the kernel known at the time they are read.
"""
import logging
from pathlib import Path
from typing import Callable, List, Union

from modules.grid_spec.grid_spec import GridSpec, KernelType
from utils.exceptions import ConfigurationError
from utils import constants


class GridSpecParser:
    """Parses a grid file into a GridSpec, reporting problems through ``logger``."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def parse_file(self, path: Union[str, Path]) -> GridSpec:
        path = Path(path)
        try:
            with open(path, 'r') as f:
                lines = f.readlines()
        except OSError as e:
            raise ConfigurationError(f"Error opening grid file {path}: {e}")
        return self.parse_lines(lines)

    def parse_lines(self, lines: List[str]) -> GridSpec:
        grid = GridSpec()
        for line in lines:
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            self._parse_line(grid, line)
        return grid

    def _parse_line(self, grid: GridSpec, line: str) -> None:
        if line.startswith(constants.KEY_TRAIN):
            grid.train_data_file = self._parse_path(line, constants.KEY_TRAIN, grid.train_data_file)
        elif line.startswith(constants.KEY_TEST):
            grid.test_data_file = self._parse_path(line, constants.KEY_TEST, grid.test_data_file)
        elif line.startswith(constants.KEY_P):
            grid.ps = self._parse_numbers(line, constants.KEY_P, float)
        elif line.startswith(constants.KEY_LAMBDA):
            grid.lambdas = self._parse_numbers(line, constants.KEY_LAMBDA, float)
        elif line.startswith(constants.KEY_KAPPA):
            grid.kappas = self._parse_numbers(line, constants.KEY_KAPPA, float)
        elif line.startswith(constants.KEY_EPSILON):
            grid.epsilons = self._parse_numbers(line, constants.KEY_EPSILON, float)
        elif line.startswith(constants.KEY_WEIGHT):
            grid.weight_idxs = self._parse_numbers(line, constants.KEY_WEIGHT, int)
        elif line.startswith(constants.KEY_FOLDS):
            grid.folds = self._parse_single(line, constants.KEY_FOLDS, int, grid.folds)
        elif line.startswith(constants.KEY_REPEATS):
            grid.repeats = self._parse_single(line, constants.KEY_REPEATS, int, grid.repeats)
        elif line.startswith(constants.KEY_PERCENTILE):
            grid.percentile = self._parse_single(line, constants.KEY_PERCENTILE, float, grid.percentile)
        elif line.startswith(constants.KEY_KERNEL):
            token = line[len(constants.KEY_KERNEL):].strip()
            grid.kernel = KernelType.from_token(token)
        elif line.startswith(constants.KEY_GAMMA):
            values = self._parse_numbers(line, constants.KEY_GAMMA, float)
            if not grid.kernel.uses_gamma:
                self.logger.warning("Field \"gamma\" ignored, linear kernel is used.")
                values = []
            grid.gammas = values
        elif line.startswith(constants.KEY_COEF):
            values = self._parse_numbers(line, constants.KEY_COEF, float)
            if not grid.kernel.uses_coef:
                self.logger.warning("Field \"coef\" ignored with specified kernel.")
                values = []
            grid.coefs = values
        elif line.startswith(constants.KEY_DEGREE):
            values = self._parse_numbers(line, constants.KEY_DEGREE, float)
            if not grid.kernel.uses_degree:
                self.logger.warning("Field \"degree\" ignored with specified kernel.")
                values = []
            grid.degrees = values
        else:
            self.logger.warning(f"Cannot find any parameters on line: {line}")

    def _parse_path(self, line: str, key: str, current):
        tokens = line[len(key):].split()
        if not tokens:
            raise ConfigurationError(f"No file name given on line: {line}")
        if current is not None:
            self.logger.warning(f"Field \"{key.rstrip(':')}\" given more than once, using {tokens[0]}.")
        return tokens[0]

    def _parse_numbers(self, line: str, key: str, cast: Callable) -> list:
        values = []
        for token in line[len(key):].split():
            try:
                values.append(cast(token))
            except ValueError:
                raise ConfigurationError(
                    f"Invalid value '{token}' for field \"{key.rstrip(':')}\" on line: {line}"
                )
        return values

    def _parse_single(self, line: str, key: str, cast: Callable, current):
        name = key.rstrip(':')
        values = self._parse_numbers(line, key, cast)
        if not values:
            self.logger.warning(f"Field \"{name}\" has no value, keeping {current}.")
            return current
        if len(values) > 1:
            self.logger.warning(
                f"Field \"{name}\" only takes one value. Additional fields are ignored."
            )
        return values[0]
