import json

import numpy as np
import pandas as pd
import pytest
from sklearn.datasets import make_classification

from model_compare.config import Config
from model_compare.errors import (
    NoNonMissingValues,
    PipelineStageError,
    TrainingTimeout,
    UnreachableTarget,
    UnsupportedOption,
)
from model_compare.pipeline import PipelineRunner
from model_compare.splitter import StratifiedSplitter


def _make_df(n: int = 400, seed: int = 0) -> pd.DataFrame:
    X, y = make_classification(
        n_samples=n, n_features=5, n_informative=3, n_redundant=0, weights=[0.75], random_state=seed
    )
    df = pd.DataFrame(X, columns=[f"f{i}" for i in range(5)])
    rng = np.random.default_rng(seed)
    df.loc[rng.random(n) < 0.1, "f0"] = np.nan
    df["label"] = np.where(y == 1, "yes", "no")
    return df


def _make_config(tmp_path, **overrides) -> Config:
    sections = {
        "data": {"target_col": "label", "positive_label": "yes"},
        "models": {
            "lr": {"type": "logistic", "params": {"C": 1.0}},
            "rf": {"type": "random_forest", "params": {"n_estimators": 25, "max_depth": 5}},
        },
        "split": {"test_fraction": 0.2, "validation_fraction": 0.25, "seed": 7},
        "selection": {"target_sensitivity": 0.8, "n_thresholds": 60},
        "output": {"dir": str(tmp_path), "metrics_path": str(tmp_path / "metrics.json")},
    }
    sections.update(overrides)
    return Config(**sections)


def test_pipeline_end_to_end(tmp_path):
    df = _make_df()
    result = PipelineRunner(_make_config(tmp_path)).run(df)

    assert sum(result.partition_sizes.values()) == len(df)
    assert result.partition_sizes["test"] == 80
    assert set(result.sweeps) == {"lr", "rf"}
    assert result.best_model in {"lr", "rf"}
    assert result.threshold_row["sensitivity"] >= 0.8
    assert 0.0 < result.threshold < 1.0
    assert set(result.test_metrics) >= {"tp", "fp", "tn", "fn", "sensitivity", "specificity", "roc_auc"}
    assert result.test_metrics["threshold"] == pytest.approx(result.threshold)

    for table in result.sweeps.values():
        assert len(table) == 60
        assert np.all(np.diff(table.sensitivity) <= 0)
        assert np.all(np.diff(table.specificity) >= 0)


def test_pipeline_selects_highest_threshold_meeting_target(tmp_path):
    result = PipelineRunner(_make_config(tmp_path)).run(_make_df())
    table = result.sweeps[result.best_model]

    qualifying = table.thresholds[table.sensitivity >= 0.8]
    assert result.threshold == pytest.approx(qualifying.max())


def test_pipeline_imputation_statistics_come_from_train_only(tmp_path):
    df = _make_df()
    cfg = _make_config(tmp_path)
    result = PipelineRunner(cfg).run(df)

    y = (df["label"] == "yes").to_numpy()
    X = df.drop(columns=["label"])
    parts = StratifiedSplitter(0.2, 0.25, seed=7, verbose=False).split(X, y)

    expected = parts["train"].frame["f0"].mean()
    assert result.imputation["f0"] == pytest.approx(expected)
    assert result.imputation["f0"] != pytest.approx(X["f0"].mean())


def test_pipeline_writes_report_and_sweeps(tmp_path):
    PipelineRunner(_make_config(tmp_path)).run(_make_df())

    with open(tmp_path / "metrics.json") as f:
        report = json.load(f)
    assert report["best_model"] in {"lr", "rf"}
    assert "selected_threshold" in report and "test" in report

    sweep = pd.read_csv(tmp_path / "sweep_lr.csv")
    assert list(sweep.columns[:5]) == ["threshold", "tp", "fp", "tn", "fn"]


def test_pipeline_log_loss_criterion_and_youden_policy(tmp_path):
    cfg = _make_config(tmp_path, selection={"criterion": "log_loss", "policy": "youden_j", "n_thresholds": 40})
    result = PipelineRunner(cfg).run(_make_df())

    best = min(result.validation_metrics, key=lambda name: result.validation_metrics[name]["log_loss"])
    assert result.best_model == best


def test_pipeline_trains_in_parallel_worker_pool(tmp_path):
    cfg = _make_config(tmp_path, execution={"n_jobs": 2, "backend": "threading"})
    result = PipelineRunner(cfg).run(_make_df())
    assert set(result.models) == {"lr", "rf"}


def test_pipeline_from_yaml_and_csv(tmp_path):
    csv_path = tmp_path / "data.csv"
    _make_df().to_csv(csv_path, index=False)
    yaml_path = tmp_path / "cfg.yaml"
    yaml_path.write_text(
        "data:\n"
        f"  path: {csv_path}\n"
        "  target_col: label\n"
        "  positive_label: 'yes'\n"
        "models:\n"
        "  lr:\n"
        "    type: logistic\n"
        "selection:\n"
        "  target_sensitivity: 0.7\n"
        "  n_thresholds: 30\n"
    )

    result = PipelineRunner(str(yaml_path)).run()
    assert result.best_model == "lr"


def test_pipeline_aborts_on_unsupported_option(tmp_path):
    cfg = _make_config(tmp_path, models={"rf": {"type": "random_forest", "params": {"trees": 10}}})

    with pytest.raises(PipelineStageError) as excinfo:
        PipelineRunner(cfg).run(_make_df())
    assert excinfo.value.stage == "configure"
    assert isinstance(excinfo.value.cause, UnsupportedOption)
    assert not (tmp_path / "metrics.json").exists()


def test_pipeline_aborts_on_unreachable_target(tmp_path):
    cfg = _make_config(tmp_path, selection={"target_sensitivity": 1.01, "n_thresholds": 20})

    with pytest.raises(PipelineStageError) as excinfo:
        PipelineRunner(cfg).run(_make_df())
    assert excinfo.value.stage == "select_threshold"
    assert isinstance(excinfo.value.cause, UnreachableTarget)
    assert not (tmp_path / "metrics.json").exists()


def test_pipeline_aborts_on_unimputable_field(tmp_path):
    df = _make_df()
    df["f4"] = np.nan

    with pytest.raises(PipelineStageError) as excinfo:
        PipelineRunner(_make_config(tmp_path)).run(df)
    assert excinfo.value.stage == "impute"
    assert isinstance(excinfo.value.cause, NoNonMissingValues)


def test_pipeline_rejects_unknown_learner(tmp_path):
    cfg = _make_config(tmp_path, models={"svm": {"type": "svm"}})

    with pytest.raises(PipelineStageError) as excinfo:
        PipelineRunner(cfg).run(_make_df())
    assert excinfo.value.stage == "configure"


def test_pipeline_training_timeout_aborts_train_stage(tmp_path):
    cfg = _make_config(
        tmp_path,
        models={"rf": {"type": "random_forest", "params": {"n_estimators": 3000}}},
        execution={"n_jobs": 2, "timeout": 0.05},
    )

    with pytest.raises(PipelineStageError) as excinfo:
        PipelineRunner(cfg).run(_make_df())
    assert excinfo.value.stage == "train"
    assert isinstance(excinfo.value.cause, TrainingTimeout)
    assert not (tmp_path / "metrics.json").exists()
