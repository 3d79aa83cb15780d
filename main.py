#!/usr/bin/env python
"""
SVM Grid Search - Main Entry Point
Runs a hyperparameter grid search described by a grid file, optionally with
consistency repeats, and predicts the test data with the winning configuration.
"""
import sys
import logging
import argparse
import traceback
from pathlib import Path
from typing import List, Optional

from modules.config_manager import ConfigurationManager, DEFAULT_CONFIG
from modules.data_manager import DataManager
from modules.final_pipeline import FinalPipeline
from modules.grid_spec import GridSpecParser, KernelType
from modules.hpo_search_engine import HPOSearchEngine
from modules.logging_config import LoggingConfigurator
from modules.selection_engine import SelectionEngine
from utils.exceptions import GridSearchException

# Program name plus grid file
MIN_ARGS = 2

HELP_EPILOG = """\
Options:
  -h | -help           print this help.
  -o prediction_output write predictions of test data to file (uses stdout if not provided)
  -q                   quiet mode (no output, not even errors!)
  -x                   data files are in LibSVM/SVMlight format
  -z seed              seed for the random number generator
  --config settings    runtime settings JSON (logging, failure policy, outputs)
"""


class GridArgumentParser(argparse.ArgumentParser):
    """Shows the help screen instead of exiting with status 2 on bad arguments."""

    def error(self, message):
        sys.stderr.write(f"{message}\n")
        raise HelpRequested()


class HelpRequested(Exception):
    pass


def build_parser() -> argparse.ArgumentParser:
    parser = GridArgumentParser(
        prog="svm-grid-search",
        usage="%(prog)s [options] grid_file",
        description="Hyperparameter grid search for a multiclass SVM classifier.",
        epilog=HELP_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )
    parser.add_argument("-h", "-help", dest="help", action="store_true")
    parser.add_argument("-o", dest="prediction_output", type=str, default=None)
    parser.add_argument("-q", dest="quiet", action="store_true")
    parser.add_argument("-x", dest="libsvm_format", action="store_true")
    parser.add_argument("-z", dest="seed", type=int, default=None)
    parser.add_argument("--config", type=str, default=None)
    parser.add_argument("grid_file", nargs="?")
    return parser


def parse_arguments(argv: List[str]) -> Optional[argparse.Namespace]:
    """
    Parse command-line arguments.

    Returns:
        argparse.Namespace, or None when help has to be shown.
    """
    if len(argv) < MIN_ARGS:
        return None
    try:
        args = build_parser().parse_args(argv[1:])
    except HelpRequested:
        return None
    if args.help or not args.grid_file:
        return None
    return args


def exit_with_help() -> int:
    build_parser().print_help(sys.stdout)
    return 1


def run(args: argparse.Namespace, logger: logging.Logger, config_manager: ConfigurationManager) -> int:
    """Grid search proper, once settings and logging are in place."""
    config = config_manager.config
    data_manager = DataManager(config, logger)

    # ---------------------------------------------------------------
    # PHASE 1: GRID FILE & DATA
    # ---------------------------------------------------------------
    logger.info("Reading grid file")
    grid = GridSpecParser(logger).parse_file(args.grid_file)
    grid.validate(logger)
    config_manager.validate_task_count(grid.n_tasks)

    train_data = data_manager.execute(grid.train_data_file, libsvm_format=args.libsvm_format)
    test_data = None
    if grid.test_data_file is not None:
        test_data = data_manager.execute(
            grid.test_data_file,
            libsvm_format=args.libsvm_format,
            n_features=train_data.n_features if args.libsvm_format else None,
        )

    data_manager.validate_training_labels(train_data)

    if train_data.is_sparse and grid.kernel is not KernelType.LINEAR:
        logger.warning(
            "Sparse matrices with nonlinear kernels are not yet supported. "
            "Dense matrices will be used."
        )
        data_manager.to_dense(train_data)
        # Held-out scoring during the search predicts on the test matrix too
        if test_data is not None:
            data_manager.to_dense(test_data)

    # ---------------------------------------------------------------
    # PHASE 2: GRID SEARCH
    # ---------------------------------------------------------------
    logger.info(f"Starting training (seed {config['execution']['seed']})")
    search_engine = HPOSearchEngine(config, logger)
    queue = search_engine.run_search(grid, train_data, test_data, repeat_idx=0)

    # ---------------------------------------------------------------
    # PHASE 3: SELECTION
    # ---------------------------------------------------------------
    selection_engine = SelectionEngine(config, logger)
    best_id = selection_engine.execute(
        queue,
        repeats=grid.repeats,
        percentile=grid.percentile,
        search_runner=lambda r: search_engine.run_search(grid, train_data, test_data, repeat_idx=r),
    )

    # ---------------------------------------------------------------
    # PHASE 4: FINAL MODEL & PREDICTION
    # ---------------------------------------------------------------
    if test_data is not None:
        output_path = Path(args.prediction_output) if args.prediction_output else None
        FinalPipeline(config, logger).run(queue.get_task(best_id), train_data, test_data,
                                          output_path=output_path)

    logger.info("Done.")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main orchestration function.

    Returns:
        int: Exit code (0 for success, 1 for errors or help)
    """
    argv = sys.argv if argv is None else argv
    logger = None

    args = parse_arguments(argv)
    if args is None:
        return exit_with_help()

    try:
        # Settings validation logs too, and quiet mode covers it
        LoggingConfigurator(DEFAULT_CONFIG, quiet=args.quiet).setup()

        config_manager = ConfigurationManager(config_path=args.config)
        config = config_manager.load_and_validate()

        logging_configurator = LoggingConfigurator(config, quiet=args.quiet)
        logging_configurator.setup()
        logger = logging_configurator.get_logger('grid_search')

        config_manager.propagate_seeds(args.seed)
        return run(args, logger, config_manager)

    except GridSearchException as e:
        msg = f"Error: {str(e)}"
        if logger:
            logger.critical(msg)
            logger.debug("Traceback:", exc_info=True)
        elif not args.quiet:
            print(msg, file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        if logger:
            logger.warning("Grid search interrupted by user (Ctrl+C)")
        return 130

    except Exception as e:
        msg = f"Unexpected Error: {str(e)}"
        if logger:
            logger.critical(msg, exc_info=True)
        elif not args.quiet:
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
