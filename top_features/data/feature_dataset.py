"""In-memory feature dataset consumed by the ranking pipeline.

Loading a dataset from its store is the caller's job; this module only
holds the three pieces the analysis needs (the object-by-feature data
matrix, the object table with its ``Group`` column and the feature table
with identifiers, names and keyword tags) and validates that they line up.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np
import pandas as pd

from top_features.errors import EmptyGroup

logger = logging.getLogger(__name__)

OBJECT_COLUMNS = ("Group", "Name")
FEATURE_COLUMNS = ("ID", "Name", "Keywords")


def validate_group_labels(labels: Sequence[int] | np.ndarray) -> tuple[int, np.ndarray]:
    """Check a grouping and return its class count and class sizes.

    Parameters
    ----------
    labels
        One label per object, positive integers ``1..K``.

    Returns
    -------
    tuple[int, np.ndarray]
        ``(num_classes, class_counts)`` where ``num_classes = max(labels)``
        and ``class_counts[k - 1]`` is the size of class ``k``.

    Raises
    ------
    ValueError
        If labels are empty, non-integer or not positive.
    EmptyGroup
        If a class in ``1..K`` has no members.
    """
    arr = np.asarray(labels)
    if arr.ndim != 1 or arr.size == 0:
        raise ValueError("Group labels must be a non-empty 1-D sequence.")
    if not np.issubdtype(arr.dtype, np.integer):
        as_float = arr.astype(float)
        if not np.all(np.isfinite(as_float)) or np.any(as_float != np.round(as_float)):
            raise ValueError("Group labels must be integers 1..K.")
        arr = as_float.astype(int)
    if arr.min() < 1:
        raise ValueError(f"Group labels must be positive integers; found {arr.min()}.")

    num_classes = int(arr.max())
    class_counts = np.bincount(arr, minlength=num_classes + 1)[1:]
    empty = [k + 1 for k in np.flatnonzero(class_counts == 0)]
    if empty:
        raise EmptyGroup(empty)
    return num_classes, class_counts


def _split_keywords(keywords: object) -> list[str]:
    if not isinstance(keywords, str):
        return []
    return [kw.strip() for kw in keywords.split(",") if kw.strip()]


@dataclass
class FeatureDataset:
    """Feature matrix together with its object and feature metadata.

    Attributes
    ----------
    data_matrix
        ``(N, M)`` float array; rows are objects, columns are features.
        Missing entries are NaN.
    objects
        Object table with ``N`` rows, in matrix row order; must carry an
        integer ``Group`` column (``1..K``) and a ``Name`` column.
    features
        Feature table with ``M`` rows, in matrix column order; must carry
        ``ID``, ``Name`` and ``Keywords`` columns.
    group_names
        Optional display names of the classes, ``group_names[k - 1]`` for
        class ``k``.
    """

    data_matrix: np.ndarray
    objects: pd.DataFrame
    features: pd.DataFrame
    group_names: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.data_matrix = np.asarray(self.data_matrix, dtype=float)
        if self.data_matrix.ndim != 2:
            raise ValueError(
                f"data_matrix must be 2-D, got shape {self.data_matrix.shape}."
            )
        n_objects, n_features = self.data_matrix.shape

        missing = [c for c in OBJECT_COLUMNS if c not in self.objects.columns]
        if missing:
            raise KeyError(f"Missing required column(s) {missing} in objects table.")
        missing = [c for c in FEATURE_COLUMNS if c not in self.features.columns]
        if missing:
            raise KeyError(f"Missing required column(s) {missing} in features table.")

        if len(self.objects) != n_objects:
            raise ValueError(
                f"objects table has {len(self.objects)} rows but data_matrix "
                f"has {n_objects} objects."
            )
        if len(self.features) != n_features:
            raise ValueError(
                f"features table has {len(self.features)} rows but data_matrix "
                f"has {n_features} features."
            )

        self.objects = self.objects.reset_index(drop=True)
        self.features = self.features.reset_index(drop=True)

    @classmethod
    def from_frames(
        cls,
        data: pd.DataFrame | np.ndarray,
        objects: pd.DataFrame,
        features: pd.DataFrame | None = None,
        group_names: list[str] | None = None,
    ) -> "FeatureDataset":
        """Build a dataset from in-memory tables.

        When ``data`` is a DataFrame and ``features`` is omitted, a feature
        table is derived from its column names (IDs are column positions,
        keywords are empty).
        """
        if features is None:
            if not isinstance(data, pd.DataFrame):
                raise ValueError("features table is required when data is an array.")
            features = pd.DataFrame(
                {
                    "ID": np.arange(data.shape[1]),
                    "Name": [str(c) for c in data.columns],
                    "Keywords": [""] * data.shape[1],
                }
            )
        matrix = data.to_numpy(dtype=float) if isinstance(data, pd.DataFrame) else data
        return cls(
            data_matrix=matrix,
            objects=objects,
            features=features,
            group_names=list(group_names or []),
        )

    @property
    def n_objects(self) -> int:
        return self.data_matrix.shape[0]

    @property
    def n_features(self) -> int:
        return self.data_matrix.shape[1]

    @property
    def group_labels(self) -> np.ndarray:
        """Integer class label (``1..K``) of every object."""
        return self.objects["Group"].to_numpy().astype(int)

    @property
    def feature_ids(self) -> np.ndarray:
        return self.features["ID"].to_numpy()

    def class_summary(self) -> tuple[int, np.ndarray]:
        """``(num_classes, class_counts)`` of the stored grouping."""
        return validate_group_labels(self.objects["Group"].to_numpy())

    def class_names(self) -> list[str]:
        num_classes, _ = self.class_summary()
        if len(self.group_names) >= num_classes:
            return list(self.group_names[:num_classes])
        return [f"Group {k}" for k in range(1, num_classes + 1)]

    def feature_ids_by_keyword(self, keyword: str) -> tuple[np.ndarray, np.ndarray]:
        """Return IDs of features tagged with ``keyword`` and of all others.

        Keywords are stored as comma-separated tags; matching is exact on
        individual tags.
        """
        tagged = self.features["Keywords"].map(lambda kws: keyword in _split_keywords(kws))
        ids = self.features.loc[tagged, "ID"].to_numpy()
        other_ids = self.features.loc[~tagged, "ID"].to_numpy()
        if ids.size == 0:
            logger.warning("No features tagged with keyword %r.", keyword)
        return ids, other_ids

    def feature_label(self, index: int, score: float | None = None, unit: str = "") -> str:
        """Format ``[ID] Name`` (with the score appended when given)."""
        row = self.features.iloc[index]
        label = f"[{row['ID']}] {row['Name']}"
        if score is not None:
            label += f" ({score:4.2f}{unit})"
        return label


__all__ = ["FeatureDataset", "validate_group_labels"]
