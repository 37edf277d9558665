"""Stratified partitioning of a labeled dataset.

Positive and negative records are sampled independently, so every output
keeps the input's class ratio up to rounding regardless of class skew.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd

from .errors import EmptyDataset, InvalidArgument, LengthMismatch
from .utils.logger import get_logger


@dataclass(frozen=True)
class Partition:
    """Named subset of the dataset: feature rows plus aligned boolean labels."""
    name: str
    frame: pd.DataFrame
    labels: np.ndarray

    def __len__(self) -> int:
        return len(self.labels)

    @property
    def n_positive(self) -> int:
        return int(np.sum(self.labels))

    @property
    def positive_rate(self) -> float:
        return self.n_positive / len(self) if len(self) else float("nan")


def _round_half_up(x: float) -> int:
    return int(np.floor(x + 0.5))


def stratified_split_indices(
    labels: np.ndarray,
    fraction: float,
    seed: int,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Return sorted positional indices (part_a, part_b).

    Within each label group round(fraction * group_size) rows are drawn
    uniformly without replacement for part_a; the rest go to part_b.
    """
    if not (0.0 < fraction < 1.0):
        raise InvalidArgument(f"fraction must be in (0, 1), got {fraction}")

    labels = np.asarray(labels, dtype=bool)
    if labels.size == 0:
        raise EmptyDataset("Cannot split an empty dataset")

    rng = np.random.default_rng(seed)
    in_a = np.zeros(labels.size, dtype=bool)

    for group in (True, False):
        group_idx = np.flatnonzero(labels == group)
        n_take = _round_half_up(fraction * group_idx.size)
        if n_take > 0:
            chosen = rng.choice(group_idx, size=n_take, replace=False)
            in_a[chosen] = True

    return np.flatnonzero(in_a), np.flatnonzero(~in_a)


def stratified_split(
    frame: pd.DataFrame,
    labels,
    fraction: float,
    seed: int,
    names: tuple[str, str] = ("a", "b"),
) -> tuple[Partition, Partition]:
    """Split ``frame`` into two disjoint, exhaustive, class-balanced partitions."""
    labels = np.asarray(labels, dtype=bool)
    if len(frame) == 0:
        raise EmptyDataset("Cannot split an empty dataset")
    if len(labels) != len(frame):
        raise LengthMismatch(f"{len(frame)} rows but {len(labels)} labels")

    idx_a, idx_b = stratified_split_indices(labels, fraction, seed)
    return (
        Partition(names[0], frame.iloc[idx_a], labels[idx_a]),
        Partition(names[1], frame.iloc[idx_b], labels[idx_b]),
    )


class StratifiedSplitter:
    """Carves Test off the full dataset, then Validation off the remainder."""

    def __init__(
        self,
        test_fraction: float = 0.2,
        validation_fraction: float = 0.25,
        seed: int = 42,
        verbose: bool = True,
    ):
        self.test_fraction = test_fraction
        self.validation_fraction = validation_fraction
        self.seed = seed
        self.verbose = verbose
        self.logger = get_logger(self.__class__.__name__)

    def split(self, frame: pd.DataFrame, labels) -> dict[str, Partition]:
        labels = np.asarray(labels, dtype=bool)
        if len(frame) == 0:
            raise EmptyDataset("Cannot split an empty dataset")
        if len(labels) != len(frame):
            raise LengthMismatch(f"{len(frame)} rows but {len(labels)} labels")

        test_idx, rest_idx = stratified_split_indices(labels, self.test_fraction, self.seed)
        val_rel, train_rel = stratified_split_indices(
            labels[rest_idx], self.validation_fraction, self.seed + 1
        )
        positions = {
            "train": rest_idx[train_rel],
            "validation": rest_idx[val_rel],
            "test": test_idx,
        }

        partitions = {
            name: Partition(name, frame.iloc[idx], labels[idx])
            for name, idx in positions.items()
        }

        if self.verbose:
            overall = float(np.mean(labels))
            for part in partitions.values():
                self.logger.info(
                    f"{part.name}: {len(part):,} rows, positive rate "
                    f"{part.positive_rate:.4f} (overall {overall:.4f})"
                )
        return partitions
