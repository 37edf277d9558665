import json
import math

import numpy as np
import pytest

from model_compare.errors import InvalidArgument
from model_compare.evaluator import Evaluator, discrimination, pick_best_model


def test_discrimination_perfect_ranking():
    metrics = discrimination([0, 0, 1, 1], [0.1, 0.4, 0.6, 0.9])
    assert metrics["roc_auc"] == pytest.approx(1.0)
    assert metrics["pr_auc"] == pytest.approx(1.0)
    assert metrics["log_loss"] > 0
    assert 0 <= metrics["brier"] <= 1


def test_discrimination_single_class_is_nan_not_error():
    metrics = discrimination([0, 0, 0], [0.1, 0.2, 0.3])
    assert math.isnan(metrics["roc_auc"])
    assert math.isnan(metrics["pr_auc"])
    assert not math.isnan(metrics["log_loss"])


def test_pick_best_model_maximizes_auc():
    candidates = {"a": {"roc_auc": 0.7}, "b": {"roc_auc": 0.9}, "c": {"roc_auc": 0.8}}
    assert pick_best_model(candidates, "roc_auc") == "b"


def test_pick_best_model_minimizes_log_loss():
    candidates = {"a": {"log_loss": 0.5}, "b": {"log_loss": 0.3}, "c": {"log_loss": 0.4}}
    assert pick_best_model(candidates, "log_loss") == "b"


def test_pick_best_model_skips_nan_and_breaks_ties_by_order():
    candidates = {"a": {"roc_auc": float("nan")}, "b": {"roc_auc": 0.8}, "c": {"roc_auc": 0.8}}
    assert pick_best_model(candidates) == "b"


def test_pick_best_model_all_undefined():
    with pytest.raises(InvalidArgument):
        pick_best_model({"a": {"roc_auc": float("nan")}})


def test_pick_best_model_unknown_criterion():
    with pytest.raises(InvalidArgument):
        pick_best_model({"a": {"roc_auc": 0.5}}, "accuracy_by_eye")


def test_evaluate_at_threshold():
    metrics = Evaluator(verbose=False).evaluate_at(
        [False, False, True, True], [0.1, 0.4, 0.6, 0.9], threshold=0.8
    )
    assert (metrics["tp"], metrics["fp"], metrics["tn"], metrics["fn"]) == (1, 0, 2, 1)
    assert metrics["sensitivity"] == pytest.approx(0.5)
    assert metrics["specificity"] == pytest.approx(1.0)
    assert metrics["threshold"] == pytest.approx(0.8)
    assert metrics["roc_auc"] == pytest.approx(1.0)


def test_save_writes_json_with_nan_as_null(tmp_path):
    path = tmp_path / "reports" / "metrics.json"
    report = {"roc_auc": float("nan"), "tp": np.int64(3), "nested": {"x": np.float64(0.25)}}

    Evaluator(str(path), verbose=False).save(report)

    with open(path) as f:
        loaded = json.load(f)
    assert loaded == {"roc_auc": None, "tp": 3, "nested": {"x": 0.25}}


def test_save_without_path_raises():
    with pytest.raises(RuntimeError):
        Evaluator().save({})
