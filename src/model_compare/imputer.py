from __future__ import annotations

from typing import Iterable, Optional

import pandas as pd

from .errors import EmptyDataset, InvalidArgument, NoNonMissingValues
from .utils.logger import get_logger


class MeanImputer:
    """
    Mean imputation with statistics fit on one reference partition.

    The statistics are computed once (from the training partition) and then
    applied verbatim to every other partition; ``apply`` never refits.
    """

    def __init__(self, fields: Optional[Iterable[str]] = None, verbose: bool = False):
        """
        Parameters
        ----------
        fields:
            Columns to impute. Defaults to every numeric column of the frame
            passed to ``fit``.
        verbose:
            If True, logs the fitted fill values.
        """
        self.fields = list(fields) if fields is not None else None
        self.verbose = verbose
        self.logger = get_logger(self.__class__.__name__)
        self.statistics_: Optional[dict[str, float]] = None

    def fit(self, frame: pd.DataFrame, fields: Optional[Iterable[str]] = None) -> dict[str, float]:
        """Compute the mean of non-missing values for each field."""
        if frame.empty:
            raise EmptyDataset("Cannot fit imputation statistics on an empty partition")

        if fields is not None:
            fields = list(fields)
        elif self.fields is not None:
            fields = self.fields
        else:
            fields = frame.select_dtypes(include=["number", "bool"]).columns.tolist()

        absent = [col for col in fields if col not in frame.columns]
        if absent:
            raise InvalidArgument(f"Fields not in partition: {absent}")

        stats: dict[str, float] = {}
        for col in fields:
            series = frame[col]
            if not pd.api.types.is_numeric_dtype(series):
                raise InvalidArgument(f"Field '{col}' is not numeric")
            if series.notna().sum() == 0:
                raise NoNonMissingValues(col)
            stats[col] = float(series.mean(skipna=True))

        self.statistics_ = stats
        if self.verbose:
            self.logger.info(f"Fitted fill values for {len(stats)} fields")
        return dict(stats)

    def apply(self, frame: pd.DataFrame, stats: Optional[dict[str, float]] = None) -> pd.DataFrame:
        """Return a copy of ``frame`` with missing values of known fields filled."""
        if stats is None:
            if self.statistics_ is None:
                raise RuntimeError("Call fit() before apply().")
            stats = self.statistics_

        out = frame.copy()
        for col, value in stats.items():
            if col in out.columns and out[col].isna().any():
                out[col] = out[col].fillna(value)
        return out

    def fit_apply(self, frame: pd.DataFrame) -> pd.DataFrame:
        self.fit(frame)
        return self.apply(frame)
