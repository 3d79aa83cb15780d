import inspect
from typing import Dict, Any, List

from sklearn.svm import SVC

from modules.task_expander.task import Task
from utils import constants


class ModelFactory:
    """
    Factory for creating multiclass SVM estimators from Tasks.

    The Task carries the full hyperparameter set. Each estimator only receives
    the arguments its constructor accepts, so parameters a backend has no use
    for (``p``, ``kappa``) are dropped silently.
    """

    MODELS = {
        'SVC': SVC,
    }
    DEFAULT_MODEL = 'SVC'

    @classmethod
    def create(cls, task: Task, n_samples: int, model_name: str = DEFAULT_MODEL) -> Any:
        """
        Create and return an instantiated, unfitted model for ``task``.

        Args:
            task: Hyperparameter combination.
            n_samples: Size of the training set; the regularisation strength is
                per-sample, the estimator's C is not.
            model_name: Key in ``MODELS``.
        """
        if model_name not in cls.MODELS:
            raise ValueError(f"Unknown model name: {model_name}. Available: {cls.get_available_models()}")

        model_class = cls.MODELS[model_name]
        valid_params = cls._filter_params(model_class, cls.task_to_params(task, n_samples))
        return model_class(**valid_params)

    @staticmethod
    def task_to_params(task: Task, n_samples: int) -> Dict[str, Any]:
        """Map Task hyperparameters onto estimator constructor arguments."""
        params: Dict[str, Any] = {
            'C': 1.0 / (2.0 * n_samples * task.lambda_),
            'tol': task.epsilon,
            'kernel': task.kernel.sklearn_name,
            'class_weight': 'balanced' if task.weight_idx == constants.WEIGHT_GROUP_SIZE else None,
            'p': task.p,
            'kappa': task.kappa,
            'decision_function_shape': 'ovr',
        }
        if task.kernel.uses_gamma:
            params['gamma'] = task.gamma
        if task.kernel.uses_coef:
            params['coef0'] = task.coef
        if task.kernel.uses_degree:
            params['degree'] = int(task.degree)
        return params

    @classmethod
    def get_available_models(cls) -> List[str]:
        """Return list of all supported model names."""
        return list(cls.MODELS.keys())

    @staticmethod
    def _filter_params(model_class, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Remove parameters from `params` that are not accepted by `model_class` constructor.
        """
        sig = inspect.signature(model_class.__init__)

        valid_keys = [
            p.name for p in sig.parameters.values()
            if p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY)
        ]

        # Always allow **kwargs if the model supports it
        has_kwargs = any(p.kind == p.VAR_KEYWORD for p in sig.parameters.values())

        if has_kwargs:
            return params

        return {k: v for k, v in params.items() if k in valid_keys}
