import logging
from typing import Any, Callable

import numpy as np
import optuna
import pandas as pd
from sklearn.metrics import roc_auc_score
from sklearn.model_selection import StratifiedKFold

from .errors import UnsupportedOption
from .models import ModelAdapter
from .utils.logger import get_logger


def _random_forest_space(trial: optuna.Trial) -> dict[str, Any]:
    return {
        "n_estimators": trial.suggest_int("n_estimators", 100, 800, step=100),
        "max_depth": trial.suggest_int("max_depth", 3, 20),
        "min_samples_leaf": trial.suggest_int("min_samples_leaf", 1, 50),
        "max_features": trial.suggest_float("max_features", 0.1, 1.0),
    }


def _lightgbm_space(trial: optuna.Trial) -> dict[str, Any]:
    return {
        "n_estimators": trial.suggest_int("n_estimators", 100, 1200, step=100),
        "learning_rate": trial.suggest_float("learning_rate", 0.005, 0.1, log=True),
        "num_leaves": trial.suggest_int("num_leaves", 8, 128),
        "max_depth": trial.suggest_int("max_depth", 3, 12),
        "min_child_samples": trial.suggest_int("min_child_samples", 5, 200),
        "subsample": trial.suggest_float("subsample", 0.6, 1.0),
        "colsample_bytree": trial.suggest_float("colsample_bytree", 0.6, 1.0),
        "reg_alpha": trial.suggest_float("reg_alpha", 1e-8, 10.0, log=True),
        "reg_lambda": trial.suggest_float("reg_lambda", 1e-8, 10.0, log=True),
    }


def _logistic_space(trial: optuna.Trial) -> dict[str, Any]:
    return {
        "C": trial.suggest_float("C", 1e-3, 100.0, log=True),
        "l1_ratio": trial.suggest_float("l1_ratio", 0.0, 1.0),
    }


SEARCH_SPACES: dict[str, Callable[[optuna.Trial], dict[str, Any]]] = {
    "random_forest": _random_forest_space,
    "lightgbm": _lightgbm_space,
    "logistic": _logistic_space,
}


class HyperTuner:
    """Optuna tuning of one adapter with stratified CV on the training partition only."""

    def __init__(
        self,
        n_trials: int = 30,
        n_splits: int = 5,
        random_state: int = 42,
    ):
        self.n_trials = n_trials
        self.n_splits = n_splits
        self.random_state = random_state
        self.logger = get_logger(self.__class__.__name__)
        self.best_params_: dict[str, Any] | None = None
        self.best_value_: float | None = None

    def cross_validate(
        self,
        adapter: ModelAdapter,
        X_df: pd.DataFrame,
        y: np.ndarray,
        options: dict[str, Any],
    ) -> float:
        """Mean ROC-AUC over stratified folds of (X_df, y)."""
        y = np.asarray(y).astype(int)
        skf = StratifiedKFold(n_splits=self.n_splits, shuffle=True, random_state=self.random_state)

        fold_aucs: list[float] = []
        for train_idx, val_idx in skf.split(X_df, y):
            model = adapter.train(X_df.iloc[train_idx], y[train_idx], options)
            val_proba = adapter.predict_proba(model, X_df.iloc[val_idx])
            fold_aucs.append(float(roc_auc_score(y[val_idx], val_proba)))
        return float(np.mean(fold_aucs))

    def tune(
        self,
        adapter: ModelAdapter,
        X_df: pd.DataFrame,
        y: np.ndarray,
        base_params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Run Optuna optimization and return ``base_params`` updated with the best trial.
        """
        if adapter.name not in SEARCH_SPACES:
            raise UnsupportedOption(f"No search space defined for learner '{adapter.name}'")
        space = SEARCH_SPACES[adapter.name]

        self.logger.info(
            f"Tuning {adapter.name} ({self.n_trials} trials, {self.n_splits}-fold CV)"
        )

        sampler = optuna.samplers.TPESampler(seed=self.random_state)
        study = optuna.create_study(direction="maximize", sampler=sampler)
        # reduce log noise during tuning
        optuna.logging.set_verbosity(logging.WARNING)

        def objective(trial: optuna.Trial) -> float:
            params = dict(base_params or {})
            params.update(space(trial))
            return self.cross_validate(adapter, X_df, y, params)

        study.optimize(objective, n_trials=self.n_trials)

        self.best_params_ = study.best_params
        self.best_value_ = float(study.best_value)

        self.logger.info(f"Best CV ROC-AUC: {self.best_value_:.4f}")
        self.logger.info(f"Best parameters: {self.best_params_}")

        params = dict(base_params or {})
        params.update(self.best_params_)
        return params
