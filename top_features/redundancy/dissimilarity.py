"""Pairwise dissimilarity between feature vectors.

Besides computing dissimilarities on demand, this module defines
:class:`PrecomputedDistances`, a read-only feature-by-feature distance
artifact computed once for a whole feature set and restricted to the
requested subset when needed. The artifact is only valid for the feature
set it was computed on: callers must regenerate it whenever the features
change, and :meth:`PrecomputedDistances.check_fresh` refuses a mismatch.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
import pandas as pd
from scipy.spatial.distance import pdist, squareform

from top_features import config
from top_features.errors import StaleDistanceCache

# Small well-conditioned 0/1 sample used to check that scipy knows a metric name.
_METRIC_CHECK_SAMPLE = np.array(
    [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0], [1.0, 1.0, 0.0], [0.0, 1.0, 1.0]]
)

# metric -> (pandas correlation method, use absolute correlation)
CORRELATION_METRICS: dict[str, tuple[str, bool]] = {
    "abscorr": ("pearson", True),
    "corr": ("pearson", False),
    "spearman": ("spearman", False),
    "absspearman": ("spearman", True),
}


def validate_metric(metric: str) -> str:
    """Return ``metric`` if it is a correlation metric or a known pdist metric.

    Raises
    ------
    ValueError
        If scipy does not recognise the metric name.
    """
    if metric in CORRELATION_METRICS:
        return metric
    try:
        pdist(_METRIC_CHECK_SAMPLE, metric=metric)
    except (ValueError, TypeError) as exc:
        raise ValueError(
            f"Unknown distance metric {metric!r}. Use one of "
            f"{', '.join(repr(m) for m in CORRELATION_METRICS)} or a "
            "scipy.spatial.distance.pdist metric name."
        ) from exc
    return metric


def _correlation_dissimilarity(X: np.ndarray, method: str, absolute: bool) -> np.ndarray:
    # Pairwise-complete correlations: each pair uses objects where both are finite.
    r = pd.DataFrame(X).corr(method=method, min_periods=2).to_numpy(dtype=float)
    if absolute:
        D = 1.0 - np.abs(r)
        worst = 1.0
    else:
        D = 1.0 - r
        worst = 2.0
    # Undefined correlation (constant or too-sparse vectors) carries no similarity.
    D[np.isnan(D)] = worst
    D = np.clip(D, 0.0, worst)
    D = (D + D.T) / 2.0
    np.fill_diagonal(D, 0.0)
    return D


def pairwise_dissimilarity(
    feature_vectors: np.ndarray, metric: str = config.DISTANCE_METRIC
) -> np.ndarray:
    """Square ``(K, K)`` dissimilarity between the columns of ``feature_vectors``.

    Parameters
    ----------
    feature_vectors
        ``(N, K)`` array, one column per feature.
    metric
        ``'abscorr'`` (``1 - |r|``), ``'corr'`` (``1 - r``), ``'spearman'``,
        ``'absspearman'``, or any :func:`scipy.spatial.distance.pdist` metric.

    Returns
    -------
    np.ndarray
        Symmetric matrix with a zero diagonal.
    """
    X = np.asarray(feature_vectors, dtype=float)
    if X.ndim == 1:
        X = X.reshape(-1, 1)
    if X.ndim != 2:
        raise ValueError(f"feature_vectors must be 2-D, got shape {X.shape}.")

    if metric in CORRELATION_METRICS:
        method, absolute = CORRELATION_METRICS[metric]
        return _correlation_dissimilarity(X, method, absolute)

    validate_metric(metric)
    if not np.all(np.isfinite(X)):
        raise ValueError(
            f"Metric {metric!r} cannot handle missing values; use a correlation metric."
        )
    return squareform(pdist(X.T, metric=metric))


@dataclass(frozen=True)
class PrecomputedDistances:
    """Stored feature-by-feature distances for a whole feature set.

    Attributes
    ----------
    matrix
        Square ``(M, M)`` distance matrix over all features.
    metric
        Name of the metric the distances were computed with.
    feature_ids
        Identifiers of the ``M`` features, in matrix order, used to detect
        a stale artifact.
    """

    matrix: np.ndarray
    metric: str
    feature_ids: tuple | None = None

    def __post_init__(self) -> None:
        matrix = np.asarray(self.matrix)
        if not np.issubdtype(matrix.dtype, np.floating):
            matrix = matrix.astype(float)
        if matrix.ndim == 1:
            matrix = squareform(matrix, checks=False)
        if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
            raise ValueError(f"Distance matrix must be square, got shape {matrix.shape}.")
        object.__setattr__(self, "matrix", matrix)
        if self.feature_ids is not None:
            ids = tuple(self.feature_ids)
            if len(ids) != matrix.shape[0]:
                raise ValueError(
                    f"{len(ids)} feature ids given for a {matrix.shape[0]}-feature "
                    "distance matrix."
                )
            object.__setattr__(self, "feature_ids", ids)

    @property
    def n_features(self) -> int:
        return self.matrix.shape[0]

    def check_fresh(self, feature_ids: Sequence | np.ndarray) -> None:
        """Raise :class:`StaleDistanceCache` if the stored features differ."""
        current = tuple(np.asarray(feature_ids).tolist())
        if len(current) != self.n_features:
            raise StaleDistanceCache(
                f"Precomputed distances cover {self.n_features} features but the "
                f"dataset has {len(current)}; regenerate the distances."
            )
        if self.feature_ids is not None and tuple(
            np.asarray(self.feature_ids).tolist()
        ) != current:
            raise StaleDistanceCache(
                "Precomputed distances were computed for a different feature set; "
                "regenerate the distances."
            )

    def restrict(self, indices: Sequence[int] | np.ndarray) -> np.ndarray:
        """Square sub-matrix for the given feature indices, in the given order."""
        idx = np.asarray(indices, dtype=int)
        if idx.size and (idx.min() < 0 or idx.max() >= self.n_features):
            raise IndexError(
                f"Feature indices out of range for {self.n_features} stored features."
            )
        return self.matrix[np.ix_(idx, idx)]


def precompute_distances(
    feature_matrix: np.ndarray,
    metric: str = config.DISTANCE_METRIC,
    feature_ids: Sequence | np.ndarray | None = None,
    *,
    dtype: np.dtype | str = np.float64,
) -> PrecomputedDistances:
    """Compute the full feature-by-feature distance matrix once.

    Args:
        feature_matrix: ``(N, M)`` matrix, objects by features.
        metric: dissimilarity metric, see :func:`pairwise_dissimilarity`.
        feature_ids: identifiers stored for staleness checks.
        dtype: dtype of the stored matrix (float32 halves the memory).
    """
    full = pairwise_dissimilarity(feature_matrix, metric=metric).astype(dtype, copy=False)
    ids = None if feature_ids is None else tuple(np.asarray(feature_ids).tolist())
    return PrecomputedDistances(matrix=full, metric=metric, feature_ids=ids)


__all__ = [
    "CORRELATION_METRICS",
    "PrecomputedDistances",
    "pairwise_dissimilarity",
    "precompute_distances",
    "validate_metric",
]
