"""Group top-ranked features into redundancy clusters.

Features whose values are strongly related (low pairwise dissimilarity)
likely carry overlapping discriminative information. The features are
clustered with average-linkage hierarchical clustering and the dendrogram
is cut at a fixed dissimilarity, so the number of clusters is whatever the
data produce at that cut.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from scipy.cluster.hierarchy import fcluster, leaves_list, linkage
from scipy.spatial.distance import squareform

from top_features import config
from .dissimilarity import PrecomputedDistances, pairwise_dissimilarity

logger = logging.getLogger(__name__)


@dataclass
class ClusterAssignment:
    """Partition of feature indices into redundancy clusters.

    Attributes
    ----------
    feature_indices
        The clustered feature indices, in input order.
    groups
        Disjoint, non-empty lists of feature indices whose union is
        ``feature_indices``. Ordered by flat cluster label; the order carries
        no meaning.
    labels
        Flat cluster label (1-based) of each entry of ``feature_indices``.
    threshold
        Dissimilarity at which the dendrogram was cut.
    metric
        Name of the dissimilarity used.
    linkage_matrix
        SciPy linkage matrix, or None when fewer than two features were given.
    leaf_order
        Feature indices in dendrogram leaf order (similar features adjacent).
    """

    feature_indices: np.ndarray
    groups: list[list[int]]
    labels: np.ndarray
    threshold: float
    metric: str
    linkage_matrix: np.ndarray | None = None
    leaf_order: np.ndarray | None = None

    @property
    def n_clusters(self) -> int:
        return len(self.groups)

    def cluster_of(self, feature_index: int) -> int:
        """Position in :attr:`groups` of the cluster holding ``feature_index``."""
        for position, group in enumerate(self.groups):
            if feature_index in group:
                return position
        raise KeyError(f"Feature {feature_index} was not clustered.")


def _resolve_dissimilarity(
    X: np.ndarray,
    indices: np.ndarray,
    dissimilarity: np.ndarray | PrecomputedDistances | None,
    metric: str,
) -> tuple[np.ndarray, str]:
    if dissimilarity is None:
        return pairwise_dissimilarity(X, metric=metric), metric
    if isinstance(dissimilarity, PrecomputedDistances):
        return dissimilarity.restrict(indices), dissimilarity.metric

    D = np.asarray(dissimilarity, dtype=float)
    if D.shape != (indices.size, indices.size):
        raise ValueError(
            f"Dissimilarity matrix has shape {D.shape}; expected "
            f"({indices.size}, {indices.size})."
        )
    return D, metric


def cluster_redundant_features(
    feature_vectors: np.ndarray,
    feature_indices: Sequence[int] | np.ndarray | None = None,
    *,
    dissimilarity: np.ndarray | PrecomputedDistances | None = None,
    threshold: float = config.CLUSTER_THRESHOLD,
    metric: str = config.DISTANCE_METRIC,
    linkage_method: str = config.LINKAGE_METHOD,
) -> ClusterAssignment:
    """Cluster feature vectors by pairwise dissimilarity.

    Parameters
    ----------
    feature_vectors
        ``(N, K)`` array, one column per feature to cluster.
    feature_indices
        Index of each column in the full feature set (defaults to
        ``0..K-1``). Used to label the groups and to look up
        precomputed distances.
    dissimilarity
        None to compute with ``metric``, a ``(K, K)`` matrix, or a
        :class:`PrecomputedDistances` artifact over the full feature set.
    threshold
        Dissimilarity cut of the dendrogram.
    metric
        Metric used when ``dissimilarity`` is None.
    linkage_method
        SciPy linkage method (average linkage by default).

    Returns
    -------
    ClusterAssignment
    """
    X = np.asarray(feature_vectors, dtype=float)
    if X.ndim == 1:
        X = X.reshape(-1, 1)
    n_features = X.shape[1]
    indices = (
        np.arange(n_features)
        if feature_indices is None
        else np.asarray(feature_indices, dtype=int)
    )
    if indices.size != n_features:
        raise ValueError(
            f"{indices.size} feature indices given for {n_features} feature vectors."
        )

    if n_features < 2:
        groups = [indices.tolist()] if n_features else []
        return ClusterAssignment(
            feature_indices=indices,
            groups=groups,
            labels=np.ones(n_features, dtype=int),
            threshold=float(threshold),
            metric=dissimilarity.metric
            if isinstance(dissimilarity, PrecomputedDistances)
            else metric,
            leaf_order=indices.copy(),
        )

    D, metric_used = _resolve_dissimilarity(X, indices, dissimilarity, metric)
    D = (D + D.T) / 2.0
    np.fill_diagonal(D, 0.0)

    Z = linkage(squareform(D, checks=False), method=linkage_method)
    labels = fcluster(Z, t=threshold, criterion="distance")
    groups = [indices[labels == label].tolist() for label in np.unique(labels)]

    logger.debug(
        "Clustered %d features into %d groups at %s threshold %.3f.",
        n_features,
        len(groups),
        metric_used,
        threshold,
    )
    return ClusterAssignment(
        feature_indices=indices,
        groups=groups,
        labels=labels.astype(int),
        threshold=float(threshold),
        metric=metric_used,
        linkage_matrix=Z,
        leaf_order=indices[leaves_list(Z)],
    )


__all__ = ["ClusterAssignment", "cluster_redundant_features"]
