import pandas as pd
import pytest
from sklearn.datasets import make_classification

from model_compare.errors import UnsupportedOption
from model_compare.hyper_tuner import HyperTuner
from model_compare.models import PenalizedLogisticAdapter


def _make_data():
    X, y = make_classification(n_samples=150, n_features=4, n_informative=3, n_redundant=0, random_state=3)
    return pd.DataFrame(X, columns=["a", "b", "c", "d"]), y


def test_cross_validate_returns_auc_in_unit_interval():
    X, y = _make_data()
    auc = HyperTuner(n_trials=1, n_splits=3).cross_validate(PenalizedLogisticAdapter(), X, y, {"C": 1.0})
    assert 0.5 < auc <= 1.0


def test_tune_merges_best_params_over_base():
    X, y = _make_data()
    tuner = HyperTuner(n_trials=2, n_splits=3, random_state=0)
    params = tuner.tune(PenalizedLogisticAdapter(), X, y, {"max_iter": 2000})

    assert params["max_iter"] == 2000
    assert {"C", "l1_ratio"} <= set(params)
    assert tuner.best_value_ is not None


def test_tune_rejects_learner_without_search_space():
    class Custom:
        name = "custom"
        allowed_options = frozenset()

    X, y = _make_data()
    with pytest.raises(UnsupportedOption):
        HyperTuner(n_trials=1).tune(Custom(), X, y)
