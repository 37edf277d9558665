"""
Threshold sweep over predicted probabilities.

A record is predicted positive iff ``score >= threshold``. The sweep sorts
the scores once and locates every threshold's boundary with a single
vectorized ``searchsorted``; confusion counts then follow from prefix sums
of the sorted labels, so each record is counted exactly once for the whole
sweep. Cost is O(n log n + k log n) for n records and k thresholds.
"""

from __future__ import annotations

from typing import Iterable, Union

import numpy as np
import pandas as pd

from .errors import EmptyInput, InvalidArgument, InvalidThreshold, LengthMismatch
from .utils.logger import get_logger

logger = get_logger(__name__)

COLUMNS = [
    "threshold",
    "tp",
    "fp",
    "tn",
    "fn",
    "sensitivity",
    "specificity",
    "precision",
    "npv",
    "accuracy",
    "f1",
    "youden_j",
]


class SweepTable:
    """Confusion-matrix metrics per threshold, in strictly increasing threshold order."""

    def __init__(self, frame: pd.DataFrame):
        self.frame = frame.reset_index(drop=True)

    def __len__(self) -> int:
        return len(self.frame)

    def __repr__(self) -> str:
        return f"SweepTable(n_thresholds={len(self)})"

    @property
    def thresholds(self) -> np.ndarray:
        return self.frame["threshold"].to_numpy()

    @property
    def sensitivity(self) -> np.ndarray:
        return self.frame["sensitivity"].to_numpy()

    @property
    def specificity(self) -> np.ndarray:
        return self.frame["specificity"].to_numpy()

    def row(self, i: int) -> pd.Series:
        return self.frame.iloc[i]

    def rows(self) -> list[dict]:
        return [row_to_dict(r) for _, r in self.frame.iterrows()]

    def auc(self) -> float:
        """Trapezoidal area under the ROC traced by the sweep, anchored at (0,0) and (1,1)."""
        fpr = 1.0 - self.specificity[::-1]
        tpr = self.sensitivity[::-1]
        x = np.concatenate([[0.0], fpr, [1.0]])
        y = np.concatenate([[0.0], tpr, [1.0]])
        return float(np.sum(np.diff(x) * (y[1:] + y[:-1]) / 2.0))


def log_odds_grid(n: int = 200, epsilon: float = 1e-4) -> np.ndarray:
    """
    Thresholds spaced uniformly in log-odds between ``epsilon`` and ``1 - epsilon``.

    The grid is dense near 0 and 1, where scores of skewed classes concentrate.
    """
    if n < 1:
        raise InvalidArgument(f"n must be >= 1, got {n}")
    if not (0.0 < epsilon < 0.5):
        raise InvalidArgument(f"epsilon must be in (0, 0.5), got {epsilon}")
    if n == 1:
        return np.array([0.5])

    hi = np.log((1.0 - epsilon) / epsilon)
    z = np.linspace(-hi, hi, n)
    return 1.0 / (1.0 + np.exp(-z))


def _as_thresholds(thresholds: Union[float, Iterable[float]]) -> np.ndarray:
    t = np.atleast_1d(np.asarray(thresholds, dtype=float))
    if t.ndim != 1:
        raise InvalidThreshold("thresholds must be a scalar or a 1-D sequence")
    if t.size == 0:
        raise EmptyInput("No thresholds given")
    if not np.all(np.isfinite(t)) or np.any(t <= 0.0) or np.any(t >= 1.0):
        raise InvalidThreshold("thresholds must lie in the open interval (0, 1)")
    if np.any(np.diff(t) <= 0.0):
        raise InvalidThreshold("thresholds must be strictly increasing")
    return t


def _as_labels(labels) -> np.ndarray:
    y = np.asarray(labels)
    if y.dtype == bool:
        return y
    if y.size and not np.isin(y, [0, 1]).all():
        raise InvalidArgument("labels must be boolean or 0/1")
    return y.astype(bool)


def _safe_ratio(num: np.ndarray, den: np.ndarray) -> np.ndarray:
    num = num.astype(float)
    den = den.astype(float)
    out = np.zeros_like(num)
    np.divide(num, den, out=out, where=den > 0)
    return out


def evaluate(scores, labels, thresholds: Union[float, Iterable[float]]) -> SweepTable:
    """
    Confusion counts and derived rates for every threshold.

    Precision (and NPV, F1) is 0 when its denominator is 0. Output rows follow
    the input threshold order.
    """
    s = np.asarray(scores, dtype=float).ravel()
    y = np.asarray(labels).ravel()
    if s.size != y.size:
        raise LengthMismatch(f"{s.size} scores but {y.size} labels")
    if s.size == 0:
        raise EmptyInput("No scores to evaluate")
    if np.isnan(s).any() or np.any(s < 0.0) or np.any(s > 1.0):
        raise InvalidArgument("scores must be probabilities in [0, 1]")
    y = _as_labels(y)
    t = _as_thresholds(thresholds)

    order = np.argsort(s, kind="mergesort")
    s_sorted = s[order]
    cum_pos = np.concatenate([[0], np.cumsum(y[order])])

    n_pos = int(cum_pos[-1])
    n_neg = s.size - n_pos
    if n_pos == 0 or n_neg == 0:
        logger.warning(
            f"Only one class present (positives={n_pos}, negatives={n_neg}); "
            "the missing class's rate is reported as 0"
        )

    # records with score < t are predicted negative
    below = np.searchsorted(s_sorted, t, side="left")
    fn = cum_pos[below]
    tn = below - fn
    tp = n_pos - fn
    fp = n_neg - tn

    sensitivity = _safe_ratio(tp, tp + fn)
    specificity = _safe_ratio(tn, tn + fp)
    precision = _safe_ratio(tp, tp + fp)
    f1 = _safe_ratio(2.0 * precision * sensitivity, precision + sensitivity)

    frame = pd.DataFrame(
        {
            "threshold": t,
            "tp": tp.astype(int),
            "fp": fp.astype(int),
            "tn": tn.astype(int),
            "fn": fn.astype(int),
            "sensitivity": sensitivity,
            "specificity": specificity,
            "precision": precision,
            "npv": _safe_ratio(tn, tn + fn),
            "accuracy": (tp + tn) / s.size,
            "f1": f1,
            "youden_j": sensitivity + specificity - 1.0,
        },
        columns=COLUMNS,
    )
    return SweepTable(frame)


class ThresholdAnalyzer:
    """Sweep probability thresholds on a shared log-odds grid."""

    def __init__(
        self,
        n_thresholds: int = 200,
        epsilon: float = 1e-4,
        verbose: bool = True,
    ):
        self.n_thresholds = n_thresholds
        self.epsilon = epsilon
        self.verbose = verbose
        self.logger = get_logger(self.__class__.__name__)
        self.thresholds = log_odds_grid(n_thresholds, epsilon)

    def run(self, y_true, y_proba, name: str = "model") -> SweepTable:
        table = evaluate(y_proba, y_true, self.thresholds)
        if self.verbose:
            self.logger.info(
                f"{name}: swept {len(table)} thresholds "
                f"[{self.thresholds[0]:.2e}, {self.thresholds[-1]:.6f}], AUC={table.auc():.4f}"
            )
        return table


def row_to_dict(row: pd.Series) -> dict:
    """Sweep row as plain Python numbers (counts as int, rates as float)."""
    return {
        key: (int(val) if key in ("tp", "fp", "tn", "fn") else float(val))
        for key, val in row.items()
    }
