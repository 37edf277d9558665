"""
Model adapters: one uniform train / predict_proba surface per learner family.

Includes:
- Random forest (tree ensemble)
- LightGBM (gradient boosting)
- Elastic-net logistic regression (penalized regression)
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import numpy as np
import pandas as pd
from lightgbm import LGBMClassifier
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler

from .errors import EmptyDataset, InvalidArgument, LengthMismatch, UnsupportedOption


@dataclass
class TrainedModel:
    """Fitted estimator plus the metadata needed to score new partitions."""
    name: str
    learner: str
    params: dict[str, Any]
    estimator: Any = field(repr=False)
    feature_names: list[str] = field(default_factory=list)


@runtime_checkable
class ModelAdapter(Protocol):
    name: str
    allowed_options: frozenset[str]

    def train(self, features: pd.DataFrame, labels: np.ndarray, options: dict[str, Any]) -> TrainedModel:
        ...

    def predict_proba(self, model: TrainedModel, features: pd.DataFrame) -> np.ndarray:
        ...


def check_options(learner: str, options: dict[str, Any], allowed: frozenset[str]) -> dict[str, Any]:
    """Reject option keys the learner does not recognize."""
    options = dict(options or {})
    unknown = sorted(set(options) - allowed)
    if unknown:
        raise UnsupportedOption(
            f"Unsupported option(s) for '{learner}': {unknown}. "
            f"Accepted: {sorted(allowed)}"
        )
    return options


def _check_training_data(features: pd.DataFrame, labels: np.ndarray) -> np.ndarray:
    labels = np.asarray(labels).astype(int)
    if len(features) == 0:
        raise EmptyDataset("Cannot train on an empty partition")
    if len(labels) != len(features):
        raise LengthMismatch(f"{len(features)} feature rows but {len(labels)} labels")
    if len(np.unique(labels)) < 2:
        raise InvalidArgument("Training labels must contain both classes")
    return labels


def _positive_proba(model: TrainedModel, features: pd.DataFrame) -> np.ndarray:
    X = features[model.feature_names]
    proba = model.estimator.predict_proba(X)
    return np.clip(proba[:, list(model.estimator.classes_).index(1)], 0.0, 1.0)


class RandomForestAdapter:
    name = "random_forest"
    allowed_options = frozenset(
        {"n_estimators", "max_depth", "min_samples_leaf", "max_features", "class_weight", "random_state"}
    )

    def train(self, features, labels, options=None) -> TrainedModel:
        params = check_options(self.name, options, self.allowed_options)
        y = _check_training_data(features, labels)

        params.setdefault("n_estimators", 500)
        params.setdefault("random_state", 42)
        estimator = RandomForestClassifier(n_jobs=1, **params)
        estimator.fit(features, y)
        return TrainedModel(self.name, self.name, params, estimator, features.columns.tolist())

    def predict_proba(self, model, features) -> np.ndarray:
        return _positive_proba(model, features)


class LightGBMAdapter:
    name = "lightgbm"
    allowed_options = frozenset(
        {
            "n_estimators",
            "learning_rate",
            "num_leaves",
            "max_depth",
            "min_child_samples",
            "subsample",
            "colsample_bytree",
            "reg_alpha",
            "reg_lambda",
            "random_state",
        }
    )

    @staticmethod
    def _compute_scale_pos_weight(y: np.ndarray) -> float:
        n_neg = np.sum(y == 0)
        n_pos = np.sum(y == 1)
        return float(max(1.0, n_neg / max(n_pos, 1)))

    def train(self, features, labels, options=None) -> TrainedModel:
        params = check_options(self.name, options, self.allowed_options)
        y = _check_training_data(features, labels)

        params.setdefault("random_state", 42)
        fit_params = dict(params)
        fit_params["scale_pos_weight"] = self._compute_scale_pos_weight(y)
        fit_params["verbosity"] = -1
        fit_params["n_jobs"] = 1
        if "subsample" in fit_params:
            fit_params.setdefault("subsample_freq", 1)

        estimator = LGBMClassifier(**fit_params)
        with warnings.catch_warnings():
            warnings.filterwarnings("ignore", category=UserWarning, module="lightgbm")
            estimator.fit(features, y)
        return TrainedModel(self.name, self.name, params, estimator, features.columns.tolist())

    def predict_proba(self, model, features) -> np.ndarray:
        with warnings.catch_warnings():
            warnings.filterwarnings("ignore", category=UserWarning, module="lightgbm")
            return _positive_proba(model, features)


class PenalizedLogisticAdapter:
    name = "logistic"
    allowed_options = frozenset({"C", "l1_ratio", "class_weight", "max_iter", "random_state"})

    def train(self, features, labels, options=None) -> TrainedModel:
        params = check_options(self.name, options, self.allowed_options)
        y = _check_training_data(features, labels)

        params.setdefault("C", 1.0)
        params.setdefault("l1_ratio", 0.5)
        params.setdefault("max_iter", 5000)
        params.setdefault("random_state", 42)
        estimator = Pipeline(
            steps=[
                ("scaler", StandardScaler()),
                ("clf", LogisticRegression(penalty="elasticnet", solver="saga", **params)),
            ]
        )
        estimator.fit(features, y)
        return TrainedModel(self.name, self.name, params, estimator, features.columns.tolist())

    def predict_proba(self, model, features) -> np.ndarray:
        return _positive_proba(model, features)


LEARNERS: dict[str, type] = {
    RandomForestAdapter.name: RandomForestAdapter,
    LightGBMAdapter.name: LightGBMAdapter,
    PenalizedLogisticAdapter.name: PenalizedLogisticAdapter,
}


def build_adapter(learner: str) -> ModelAdapter:
    """Create the adapter registered under ``learner``."""
    try:
        return LEARNERS[learner]()
    except KeyError:
        raise UnsupportedOption(
            f"Unknown learner type '{learner}'. Available: {sorted(LEARNERS)}"
        ) from None


def train_model(
    adapter: ModelAdapter,
    name: str,
    features: pd.DataFrame,
    labels: np.ndarray,
    options: dict[str, Any],
) -> TrainedModel:
    """Train one model and tag it with its registered name (one worker-pool job)."""
    model = adapter.train(features, labels, options)
    model.name = name
    return model
