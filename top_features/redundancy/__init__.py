"""Redundancy clustering of top-ranked features."""

from .dissimilarity import (
    CORRELATION_METRICS,
    PrecomputedDistances,
    pairwise_dissimilarity,
    precompute_distances,
    validate_metric,
)
from .clusterer import ClusterAssignment, cluster_redundant_features

__all__ = [
    "CORRELATION_METRICS",
    "PrecomputedDistances",
    "pairwise_dissimilarity",
    "precompute_distances",
    "validate_metric",
    "ClusterAssignment",
    "cluster_redundant_features",
]
