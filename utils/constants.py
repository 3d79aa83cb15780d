# utils/constants.py

# --- Grid File Keys ---
# Line prefixes recognised in a grid file, in documentation order.
KEY_TRAIN = "train:"
KEY_TEST = "test:"
KEY_P = "p:"
KEY_LAMBDA = "lambda:"
KEY_KAPPA = "kappa:"
KEY_EPSILON = "epsilon:"
KEY_WEIGHT = "weight:"
KEY_FOLDS = "folds:"
KEY_REPEATS = "repeats:"
KEY_PERCENTILE = "percentile:"
KEY_KERNEL = "kernel:"
KEY_GAMMA = "gamma:"
KEY_COEF = "coef:"
KEY_DEGREE = "degree:"

# --- Grid Defaults ---
# Used when a grid file leaves a sequence or search option unset.
DEFAULT_PS = [1.0]
DEFAULT_LAMBDAS = [1e-8]
DEFAULT_KAPPAS = [0.0]
DEFAULT_EPSILONS = [1e-6]
DEFAULT_WEIGHT_IDXS = [1]
DEFAULT_GAMMAS = [1.0]
DEFAULT_COEFS = [0.0]
DEFAULT_DEGREES = [2.0]
DEFAULT_FOLDS = 10
DEFAULT_REPEATS = 0
DEFAULT_PERCENTILE = -1.0

# Class weighting schemes: 1 = unit weights, 2 = group size correction
WEIGHT_UNIT = 1
WEIGHT_GROUP_SIZE = 2
VALID_WEIGHT_IDXS = (WEIGHT_UNIT, WEIGHT_GROUP_SIZE)

# --- Failure Policies ---
FAIL_FAST = "fail_fast"
PENALIZE = "penalize"

# --- Task Status ---
STATUS_PENDING = "pending"
STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"

# --- Result Directories (only created when outputs.results_dir is set) ---
GRID_SEARCH_DIR = "01_GridSearch"
SELECTION_DIR = "02_ModelSelection"
FINAL_MODEL_DIR = "03_FinalModel"
PREDICTIONS_DIR = "04_Predictions"

# --- File Names ---
TASK_RESULTS_FILE = "task_results_run_{run:03d}.parquet"
CONSISTENCY_HISTORY_FILE = "consistency_history.parquet"
CONSISTENCY_RANKS_FILE = "consistency_ranks.parquet"
BEST_CONFIGURATION_FILE = "best_configuration.json"
FINAL_MODEL_FILE = "final_model.pkl"
TRAINING_METADATA_FILE = "training_metadata.json"
PREDICTION_SUMMARY_FILE = "prediction_summary.json"
