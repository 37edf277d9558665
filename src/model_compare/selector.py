"""
Operating-threshold selection policies.

Every policy maps a SweepTable to one of its rows. Ties resolve to the
highest threshold, i.e. the most conservative operating point.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

import numpy as np
import pandas as pd

from .errors import EmptyInput, InvalidArgument, UnreachableTarget
from .threshold_analyzer import SweepTable
from .utils.logger import get_logger


def _last_argmax(values: np.ndarray) -> int:
    return int(len(values) - 1 - np.argmax(values[::-1]))


def _check_table(table: SweepTable) -> None:
    if len(table) == 0:
        raise EmptyInput("Sweep table has no rows")


def select_by_sensitivity_floor(table: SweepTable, target_sensitivity: float) -> pd.Series:
    """
    Highest threshold whose sensitivity is still >= ``target_sensitivity``.

    Sensitivity is non-increasing in the threshold, so this is the row just
    before sensitivity first drops below the target.
    """
    _check_table(table)
    if target_sensitivity is None or np.isnan(target_sensitivity) or target_sensitivity < 0:
        raise InvalidArgument(f"target_sensitivity must be >= 0, got {target_sensitivity}")

    meets = np.flatnonzero(table.sensitivity >= target_sensitivity)
    if meets.size == 0:
        raise UnreachableTarget(
            f"No threshold reaches sensitivity {target_sensitivity}; "
            f"maximum in sweep is {table.sensitivity.max():.4f}"
        )
    return table.row(int(meets[-1]))


def select_max_f1(table: SweepTable) -> pd.Series:
    _check_table(table)
    return table.row(_last_argmax(table.frame["f1"].to_numpy()))


def select_youden_j(table: SweepTable) -> pd.Series:
    _check_table(table)
    return table.row(_last_argmax(table.frame["youden_j"].to_numpy()))


def select_min_cost(table: SweepTable, fn_cost: float = 1.0, fp_cost: float = 1.0) -> pd.Series:
    """Row minimizing ``fn_cost * FN + fp_cost * FP``."""
    _check_table(table)
    if fn_cost < 0 or fp_cost < 0:
        raise InvalidArgument("Misclassification costs must be non-negative")
    cost = fn_cost * table.frame["fn"].to_numpy() + fp_cost * table.frame["fp"].to_numpy()
    return table.row(_last_argmax(-cost))


POLICIES: dict[str, Callable[..., pd.Series]] = {
    "sensitivity_floor": select_by_sensitivity_floor,
    "max_f1": select_max_f1,
    "youden_j": select_youden_j,
    "min_cost": select_min_cost,
}


def policy_params(policy: str, settings: Mapping[str, Any]) -> dict[str, Any]:
    """Keyword arguments ``policy`` takes, read from ``settings`` with their defaults."""
    if policy == "sensitivity_floor":
        return {"target_sensitivity": settings.get("target_sensitivity", 0.9)}
    if policy == "min_cost":
        return {"fn_cost": settings.get("fn_cost", 1.0), "fp_cost": settings.get("fp_cost", 1.0)}
    return {}


class ThresholdSelector:
    """Configured threshold policy: ``ThresholdSelector("sensitivity_floor", target_sensitivity=0.9)``."""

    def __init__(self, policy: str = "sensitivity_floor", **params: Any):
        if policy not in POLICIES:
            raise InvalidArgument(f"Unknown threshold policy '{policy}'. Available: {sorted(POLICIES)}")
        self.policy = policy
        self.params = params
        self.logger = get_logger(self.__class__.__name__)

    def select(self, table: SweepTable) -> pd.Series:
        row = POLICIES[self.policy](table, **self.params)
        self.logger.info(
            f"Policy {self.policy}: threshold={row['threshold']:.6f} "
            f"(sensitivity={row['sensitivity']:.4f}, specificity={row['specificity']:.4f})"
        )
        return row
