import multiprocessing
import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from textwrap import indent
from typing import Any, Dict, Optional, Union

import pandas as pd
from joblib import Parallel, delayed

from .config import Config
from .data_loader import DataLoader, labels_to_bool
from .errors import InvalidArgument, PipelineStageError, TrainingTimeout
from .evaluator import Evaluator, discrimination, pick_best_model
from .hyper_tuner import HyperTuner
from .imputer import MeanImputer
from .models import ModelAdapter, TrainedModel, build_adapter, check_options, train_model
from .selector import ThresholdSelector, policy_params
from .splitter import Partition, StratifiedSplitter
from .threshold_analyzer import SweepTable, ThresholdAnalyzer, row_to_dict
from .utils.logger import get_logger


@dataclass
class PipelineResult:
    """Everything a reporting layer needs, produced once by PipelineRunner.run()."""
    partition_sizes: Dict[str, int]
    imputation: Dict[str, float]
    models: Dict[str, TrainedModel] = field(repr=False)
    sweeps: Dict[str, SweepTable] = field(repr=False)
    validation_metrics: Dict[str, Dict[str, float]]
    best_model: str
    threshold_row: Dict[str, float]
    test_metrics: Dict[str, float]

    @property
    def threshold(self) -> float:
        return float(self.threshold_row["threshold"])

    def report(self) -> Dict[str, Any]:
        return {
            "partitions": self.partition_sizes,
            "imputation": self.imputation,
            "models": {name: {"learner": m.learner, "params": m.params} for name, m in self.models.items()},
            "validation": self.validation_metrics,
            "best_model": self.best_model,
            "selected_threshold": self.threshold_row,
            "test": self.test_metrics,
        }


class PipelineRunner:
    """End-to-end model comparison pipeline.

    Steps:
      1. Load data and map the label column to positive/negative
      2. Stratified split: Test off the full data, Validation off the rest
      3. Fit mean imputation on Train, apply to Train, Validation and Test
      4. Optionally tune hyperparameters with Optuna (Train only)
      5. Train every configured model on Train in a scoped worker pool
      6. Sweep each model's validation probabilities on a shared threshold grid
      7. Pick the model with the best discrimination
      8. Pick its operating threshold with the configured policy
      9. Report the chosen model's Test metrics at that threshold

    Any stage failure raises PipelineStageError naming the stage; nothing
    after it runs."""

    def __init__(self, config: Union[Config, str]):
        self.config = config if isinstance(config, Config) else Config.from_yaml(config)
        self.logger = get_logger(self.__class__.__name__)
        self.adapters: Dict[str, ModelAdapter] = {}

    @contextmanager
    def _stage(self, name: str):
        self.logger.info(f"Stage: {name}")
        try:
            yield
        except PipelineStageError:
            raise
        except Exception as exc:
            self.logger.error(f"Stage '{name}' failed with {type(exc).__name__}: {exc}")
            raise PipelineStageError(name, exc) from exc

    def _select_features(self, df: pd.DataFrame, target_col: str) -> pd.DataFrame:
        feature_cols = self.config.data.get("feature_cols")
        if feature_cols:
            absent = [c for c in feature_cols if c not in df.columns]
            if absent:
                raise InvalidArgument(f"Feature columns not in dataset: {absent}")
            return df[list(feature_cols)]

        X_df = df.drop(columns=[target_col])
        non_numeric = X_df.select_dtypes(exclude=["number", "bool"]).columns.tolist()
        if non_numeric:
            self.logger.warning(f"Dropping non-numeric columns: {non_numeric}")
            X_df = X_df.drop(columns=non_numeric)
        return X_df

    def _tune(self, train: Partition) -> Dict[str, Dict[str, Any]]:
        options: Dict[str, Dict[str, Any]] = {}
        seed = self.config.split.get("seed", 42)
        for name, spec in self.config.models.items():
            params = dict(spec.get("params") or {})
            if spec.get("tune", False):
                tuner = HyperTuner(
                    n_trials=spec.get("n_trials", 30),
                    n_splits=spec.get("n_splits", 5),
                    random_state=seed,
                )
                params = tuner.tune(self.adapters[name], train.frame, train.labels, params)
            options[name] = params
        return options

    def _train(self, train: Partition, options: Dict[str, Dict[str, Any]]) -> Dict[str, TrainedModel]:
        exe = self.config.execution
        n_jobs = exe.get("n_jobs", 1)
        timeout = exe.get("timeout")

        jobs = [
            delayed(train_model)(self.adapters[name], name, train.frame, train.labels, options[name])
            for name in self.adapters
        ]
        self.logger.info(f"Training {len(jobs)} model(s) on {len(train):,} rows (n_jobs={n_jobs})")

        try:
            with Parallel(n_jobs=n_jobs, backend=exe.get("backend", "loky"), timeout=timeout) as parallel:
                trained = parallel(jobs)
        except (TimeoutError, multiprocessing.TimeoutError) as exc:
            raise TrainingTimeout(f"Model training did not finish within {timeout}s") from exc

        return {model.name: model for model in trained}

    def run(self, df: Optional[pd.DataFrame] = None) -> PipelineResult:
        cfg = self.config
        self.logger.info("Starting model comparison pipeline")

        with self._stage("load"):
            if df is None:
                df = DataLoader(
                    cfg.data["path"],
                    cfg.data.get("sample_size"),
                    na_values=cfg.data.get("na_values"),
                ).load()
            target_col = cfg.data["target_col"]
            y_full = labels_to_bool(df[target_col], cfg.data.get("positive_label", 1))
            X_df = self._select_features(df, target_col)
            self.logger.info(f"Loaded dataset: {X_df.shape[0]:,} rows x {X_df.shape[1]} features")

        with self._stage("split"):
            splitter = StratifiedSplitter(
                test_fraction=cfg.split.get("test_fraction", 0.2),
                validation_fraction=cfg.split.get("validation_fraction", 0.25),
                seed=cfg.split.get("seed", 42),
            )
            parts = splitter.split(X_df, y_full)

        with self._stage("impute"):
            imputer = MeanImputer(fields=X_df.columns.tolist())
            stats = imputer.fit(parts["train"].frame)
            parts = {
                name: Partition(name, imputer.apply(part.frame, stats), part.labels)
                for name, part in parts.items()
            }

        with self._stage("configure"):
            if not cfg.models:
                raise InvalidArgument("No models configured")
            self.adapters = {}
            for name, spec in cfg.models.items():
                adapter = build_adapter(spec.get("type", name))
                check_options(adapter.name, spec.get("params") or {}, adapter.allowed_options)
                self.adapters[name] = adapter

        with self._stage("tune"):
            options = self._tune(parts["train"])

        with self._stage("train"):
            models = self._train(parts["train"], options)

        sel = cfg.selection
        with self._stage("validate"):
            analyzer = ThresholdAnalyzer(
                n_thresholds=sel.get("n_thresholds", 200),
                epsilon=sel.get("epsilon", 1e-4),
            )
            val = parts["validation"]
            sweeps: Dict[str, SweepTable] = {}
            val_metrics: Dict[str, Dict[str, float]] = {}
            for name, model in models.items():
                scores = self.adapters[name].predict_proba(model, val.frame)
                sweeps[name] = analyzer.run(val.labels, scores, name=name)
                val_metrics[name] = discrimination(val.labels, scores)
                val_metrics[name]["sweep_auc"] = sweeps[name].auc()

            metrics_str = indent(
                "\n".join(
                    f"{name}: " + ", ".join(f"{k}={v:.4f}" for k, v in m.items())
                    for name, m in val_metrics.items()
                ),
                " " * 4,
            )
            self.logger.info(f"Validation metrics:\n{metrics_str}")

        with self._stage("select_model"):
            best = pick_best_model(val_metrics, sel.get("criterion", "roc_auc"))
            self.logger.info(f"Best model: {best}")

        with self._stage("select_threshold"):
            policy = sel.get("policy", "sensitivity_floor")
            selector = ThresholdSelector(policy, **policy_params(policy, sel))
            row = selector.select(sweeps[best])
            threshold_row = row_to_dict(row)

        with self._stage("test"):
            test = parts["test"]
            test_scores = self.adapters[best].predict_proba(models[best], test.frame)
            test_metrics = Evaluator().evaluate_at(test.labels, test_scores, threshold_row["threshold"])

        result = PipelineResult(
            partition_sizes={name: len(part) for name, part in parts.items()},
            imputation=stats,
            models=models,
            sweeps=sweeps,
            validation_metrics=val_metrics,
            best_model=best,
            threshold_row=threshold_row,
            test_metrics=test_metrics,
        )

        with self._stage("report"):
            self._write_outputs(result)

        self.logger.info("Pipeline finished")
        return result

    def _write_outputs(self, result: PipelineResult) -> None:
        out = self.config.output
        if not out:
            self.logger.info("No output section configured; skipping artifacts")
            return

        out_dir = out.get("dir", "artifacts")
        os.makedirs(out_dir, exist_ok=True)
        for name, table in result.sweeps.items():
            path = os.path.join(out_dir, f"sweep_{name}.csv")
            table.frame.to_csv(path, index=False)
            self.logger.info(f"Saved sweep table: {path}")

        Evaluator(out.get("metrics_path", os.path.join(out_dir, "metrics.json"))).save(result.report())
