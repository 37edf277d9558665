"""
Binary Classifier Comparison — Threshold-Sweep Model Selection Pipeline

This package partitions a labeled dataset, trains several candidate
classifiers behind one adapter interface, sweeps decision thresholds on
validation data, selects a model and an operating threshold, and reports
held-out test performance.

Modules:
    config              — Load YAML configuration safely.
    errors              — Error taxonomy raised by every component.
    data_loader         — Read and optionally sample CSV data.
    splitter            — Stratified train/validation/test partitioning.
    imputer             — Mean imputation fit on the training partition.
    models              — Model adapters (random forest, LightGBM, logistic).
    hyper_tuner         — Tune adapter options with Optuna.
    threshold_analyzer  — Threshold grid and confusion-matrix sweep.
    selector            — Operating-threshold selection policies.
    evaluator           — Discrimination metrics, model choice, JSON report.
    pipeline            — Orchestrates all components.
    api                 — FastAPI surface over the sweep and selectors.
    utils.logger        — Unified timestamped console logger.
"""

from .config import Config
from .data_loader import DataLoader, labels_to_bool
from .splitter import Partition, StratifiedSplitter, stratified_split
from .imputer import MeanImputer
from .models import ModelAdapter, TrainedModel, build_adapter
from .hyper_tuner import HyperTuner
from .threshold_analyzer import SweepTable, ThresholdAnalyzer, evaluate, log_odds_grid
from .selector import ThresholdSelector, select_by_sensitivity_floor
from .evaluator import Evaluator, pick_best_model
from .pipeline import PipelineResult, PipelineRunner

__all__ = [
    "Config",
    "DataLoader",
    "labels_to_bool",
    "Partition",
    "StratifiedSplitter",
    "stratified_split",
    "MeanImputer",
    "ModelAdapter",
    "TrainedModel",
    "build_adapter",
    "HyperTuner",
    "SweepTable",
    "ThresholdAnalyzer",
    "evaluate",
    "log_odds_grid",
    "ThresholdSelector",
    "select_by_sensitivity_floor",
    "Evaluator",
    "pick_best_model",
    "PipelineResult",
    "PipelineRunner",
]
