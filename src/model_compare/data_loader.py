from typing import Any, Optional, Sequence

import numpy as np
import pandas as pd

from .errors import EmptyDataset, InvalidArgument


class DataLoader:
    """Loads CSV dataset and optionally samples rows."""

    def __init__(
        self,
        path: str,
        sample_size: Optional[int] = None,
        na_values: Optional[Sequence[str]] = None,
        random_state: int = 42,
    ):
        self.path = path
        self.sample_size = sample_size
        self.na_values = list(na_values) if na_values else None
        self.random_state = random_state

    def load(self) -> pd.DataFrame:
        df = pd.read_csv(self.path, na_values=self.na_values)
        if df.empty:
            raise EmptyDataset(f"No rows in {self.path}")
        if self.sample_size and self.sample_size < len(df):
            df = df.sample(self.sample_size, random_state=self.random_state)
        return df


def labels_to_bool(labels: Any, positive_label: Any = 1) -> np.ndarray:
    """Map a two-valued label column to a boolean vector (True = positive class)."""
    series = pd.Series(labels)
    if series.isna().any():
        raise InvalidArgument("Label column contains missing values")

    values = set(series.unique().tolist())
    if len(values) > 2:
        raise InvalidArgument(f"Label column must be two-valued, found {sorted(map(str, values))}")
    if positive_label not in values and len(values) == 2:
        raise InvalidArgument(
            f"Positive label {positive_label!r} not among label values {sorted(map(str, values))}"
        )
    return (series == positive_label).to_numpy(dtype=bool)
