import json
import os
from typing import Any, Dict, Optional

import numpy as np
from sklearn.metrics import (
    average_precision_score,
    brier_score_loss,
    log_loss,
    roc_auc_score,
)

from .errors import InvalidArgument
from .threshold_analyzer import evaluate, row_to_dict
from .utils.logger import get_logger

logger = get_logger(__name__)

# criterion -> True when larger is better
CRITERIA = {
    "roc_auc": True,
    "sweep_auc": True,
    "pr_auc": True,
    "log_loss": False,
    "brier": False,
}


def discrimination(y_true, y_proba) -> Dict[str, float]:
    """Threshold-free metrics of a probability vector."""
    y_true = np.asarray(y_true).astype(int)
    y_proba = np.asarray(y_proba).astype(float)

    metrics: Dict[str, float] = {}
    if len(np.unique(y_true)) < 2:
        logger.warning("Only one class present; ROC-AUC and PR-AUC are undefined")
        metrics["roc_auc"] = float("nan")
        metrics["pr_auc"] = float("nan")
    else:
        metrics["roc_auc"] = float(roc_auc_score(y_true, y_proba))
        metrics["pr_auc"] = float(average_precision_score(y_true, y_proba))

    metrics["log_loss"] = float(log_loss(y_true, y_proba, labels=[0, 1]))
    metrics["brier"] = float(brier_score_loss(y_true, y_proba))
    return metrics


def pick_best_model(candidates: Dict[str, Dict[str, float]], criterion: str = "roc_auc") -> str:
    """
    Name of the best candidate under ``criterion``.

    NaN scores never win; ties go to the first candidate in insertion order.
    """
    if criterion not in CRITERIA:
        raise InvalidArgument(f"Unknown selection criterion '{criterion}'. Available: {sorted(CRITERIA)}")
    higher_is_better = CRITERIA[criterion]

    best_name: Optional[str] = None
    best_value = None
    for name, metrics in candidates.items():
        value = metrics.get(criterion, float("nan"))
        if value is None or np.isnan(value):
            continue
        if best_value is None or (value > best_value if higher_is_better else value < best_value):
            best_name, best_value = name, value

    if best_name is None:
        raise InvalidArgument(f"No candidate has a defined '{criterion}'")
    return best_name


def _to_builtin(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _to_builtin(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_builtin(v) for v in value]
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return None if np.isnan(value) else float(value)
    if isinstance(value, float) and np.isnan(value):
        return None
    return value


class Evaluator:
    """Evaluate binary classifier probabilities at a fixed threshold and save metrics."""

    def __init__(self, metrics_path: Optional[str] = None, verbose: bool = True):
        self.metrics_path = metrics_path
        self.verbose = verbose
        self.logger = get_logger(self.__class__.__name__)

    def evaluate_at(self, y_true, y_proba, threshold: float) -> Dict[str, float]:
        """Confusion counts and rates at ``threshold`` plus threshold-free metrics."""
        metrics: Dict[str, float] = row_to_dict(evaluate(y_proba, y_true, threshold).row(0))
        metrics.update(discrimination(y_true, y_proba))

        if self.verbose:
            self.logger.info(
                f"At threshold {threshold:.6f}: sensitivity={metrics['sensitivity']:.4f}, "
                f"specificity={metrics['specificity']:.4f}, precision={metrics['precision']:.4f}"
            )
        return metrics

    def save(self, report: Dict[str, Any], path: Optional[str] = None) -> str:
        path = path or self.metrics_path
        if path is None:
            raise RuntimeError("No metrics_path configured for Evaluator.save().")

        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w") as f:
            json.dump(_to_builtin(report), f, indent=4)

        if self.verbose:
            self.logger.info(f"Saved metrics: {path}")
        return path
