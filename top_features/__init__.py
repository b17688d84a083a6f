"""
Rank individual features by how well they discriminate labelled groups.

This package provides:
- Test statistics (classifier accuracy, Welch t, Mann-Whitney U) resolved
  into per-feature scoring functions
- In-sample ranking of every feature, tolerant to per-feature failures
- A pooled label-permutation null with Benjamini-Hochberg q-values
- Redundancy clustering of the top-ranked features
"""

from top_features.errors import (
    AllFeaturesFailed,
    EmptyGroup,
    EmptyNullDistribution,
    InvalidClassCount,
    PerFeatureComputeFailure,
    StaleDistanceCache,
    TopFeaturesError,
    UnsupportedStatistic,
)
from top_features.data import FeatureDataset, validate_group_labels
from top_features.statistics import (
    SUPPORTED_STATISTICS,
    StatisticSpec,
    benjamini_hochberg_correction,
    build_statistic,
)
from top_features.ranking import (
    NullPool,
    RankResult,
    SignificanceResult,
    compute_significance,
    estimate_null,
    project_cost,
    rank_all,
)
from top_features.redundancy import (
    ClusterAssignment,
    PrecomputedDistances,
    cluster_redundant_features,
    pairwise_dissimilarity,
    precompute_distances,
)
from top_features.pipeline import TopFeaturesConfig, TopFeaturesResult, run_top_features

__all__ = [
    # Errors
    "AllFeaturesFailed",
    "EmptyGroup",
    "EmptyNullDistribution",
    "InvalidClassCount",
    "PerFeatureComputeFailure",
    "StaleDistanceCache",
    "TopFeaturesError",
    "UnsupportedStatistic",
    # Data
    "FeatureDataset",
    "validate_group_labels",
    # Statistics
    "SUPPORTED_STATISTICS",
    "StatisticSpec",
    "benjamini_hochberg_correction",
    "build_statistic",
    # Ranking and significance
    "NullPool",
    "RankResult",
    "SignificanceResult",
    "compute_significance",
    "estimate_null",
    "project_cost",
    "rank_all",
    # Redundancy
    "ClusterAssignment",
    "PrecomputedDistances",
    "cluster_redundant_features",
    "pairwise_dissimilarity",
    "precompute_distances",
    # Pipeline
    "TopFeaturesConfig",
    "TopFeaturesResult",
    "run_top_features",
]
