"""End-to-end top-features analysis.

Runs the stages in order: validate the grouping and resolve the statistic
(fail fast, before any scoring), rank all features on the real labels,
optionally estimate the pooled permutation null and its FDR-corrected
significance, and cluster the top features by redundancy. The result is
addressed by the same feature indices as the input dataset so plotting
code can join it back to the feature table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

import numpy as np
import pandas as pd

from top_features import config
from top_features.data import FeatureDataset
from top_features.ranking import (
    NullPool,
    RankResult,
    SignificanceResult,
    estimate_null,
    project_cost,
    rank_all,
)
from top_features.redundancy import (
    ClusterAssignment,
    PrecomputedDistances,
    cluster_redundant_features,
    validate_metric,
)
from top_features.reporting import (
    log_cluster_summary,
    log_null_start,
    log_ranking_start,
    log_ranking_summary,
    log_significance_summary,
    log_top_features,
)
from top_features.statistics import StatisticSpec, build_statistic

logger = logging.getLogger(__name__)


@dataclass
class TopFeaturesConfig:
    """Options of a top-features analysis."""

    statistic: str = config.DEFAULT_STATISTIC
    num_top_features: int = config.NUM_TOP_FEATURES
    num_nulls: int = config.NUM_NULLS
    cluster_threshold: float = config.CLUSTER_THRESHOLD
    distance_metric: str = config.DISTANCE_METRIC
    significance_alpha: float = config.SIGNIFICANCE_ALPHA
    random_state: int | None = None
    n_jobs: int | None = None
    calibration_window: int | None = config.CALIBRATION_WINDOW

    def __post_init__(self) -> None:
        if self.num_top_features < 1:
            raise ValueError(
                f"num_top_features must be at least 1, got {self.num_top_features}."
            )
        if self.num_nulls < 0:
            raise ValueError(f"num_nulls must be non-negative, got {self.num_nulls}.")
        if self.cluster_threshold < 0:
            raise ValueError(
                f"cluster_threshold must be non-negative, got {self.cluster_threshold}."
            )
        validate_metric(self.distance_metric)
        if not 0.0 < self.significance_alpha < 1.0:
            raise ValueError(
                f"significance_alpha must lie in (0, 1), got {self.significance_alpha}."
            )
        if self.calibration_window is not None and self.calibration_window < 1:
            raise ValueError(
                "calibration_window must be a positive integer or None, "
                f"got {self.calibration_window}."
            )


@dataclass
class TopFeaturesResult:
    """Outputs of :func:`run_top_features`, indexed by feature position."""

    statistic: StatisticSpec
    ranking: RankResult
    top_indices: np.ndarray
    clusters: ClusterAssignment
    config: TopFeaturesConfig
    null_pool: NullPool | None = None
    significance: SignificanceResult | None = None
    n_classes: int = field(default=2)

    @property
    def order(self) -> np.ndarray:
        return self.ranking.order

    @property
    def scores(self) -> np.ndarray:
        return self.ranking.scores

    @property
    def null_mean(self) -> float:
        if self.null_pool is None or self.null_pool.size == 0:
            return float("nan")
        return self.null_pool.mean()

    def to_frame(self, dataset: FeatureDataset) -> pd.DataFrame:
        """One row per feature, best first, failed features last.

        Columns: ``ID``, ``Name``, ``Keywords``, ``score``, ``rank``
        (1-based, NaN for failed features), ``p_value``, ``q_value``,
        ``significant`` and ``cluster`` (position in
        :attr:`ClusterAssignment.groups`, NaN outside the top features).
        """
        n_features = self.ranking.n_features
        frame = dataset.features[["ID", "Name", "Keywords"]].copy()
        frame["score"] = self.ranking.scores

        rank = np.full(n_features, np.nan)
        rank[self.ranking.order] = np.arange(1, self.ranking.order.size + 1)
        frame["rank"] = rank

        if self.significance is not None:
            frame["p_value"] = self.significance.p_values
            frame["q_value"] = self.significance.q_values
            frame["significant"] = self.significance.significant(
                self.config.significance_alpha
            )
        else:
            frame["p_value"] = np.nan
            frame["q_value"] = np.nan
            frame["significant"] = False

        cluster = np.full(n_features, np.nan)
        for position, group in enumerate(self.clusters.groups):
            cluster[group] = position
        frame["cluster"] = cluster

        row_order = np.concatenate([self.ranking.order, self.ranking.failed_indices])
        return frame.iloc[row_order]


def run_top_features(
    dataset: FeatureDataset,
    config: TopFeaturesConfig | None = None,
    *,
    distances: PrecomputedDistances | None = None,
    should_stop: Callable[[], bool] | None = None,
) -> TopFeaturesResult:
    """Rank features of ``dataset`` by how well each separates its groups.

    Parameters
    ----------
    dataset
        Feature matrix with object grouping and feature metadata.
    config
        Analysis options; defaults to :class:`TopFeaturesConfig()`.
    distances
        Precomputed feature-by-feature distances over the whole feature
        set, used for the redundancy clustering. When omitted, distances
        between the top features are computed with
        ``config.distance_metric``.
    should_stop
        Polled between null rounds to stop the null estimation early.

    Returns
    -------
    TopFeaturesResult

    Raises
    ------
    UnsupportedStatistic, InvalidClassCount, EmptyGroup
        Before any scoring, when the statistic cannot be formed.
    StaleDistanceCache
        Before any scoring, when ``distances`` was computed for a different
        feature set.
    AllFeaturesFailed
        When no feature could be scored on the real labels.
    """
    config = config or TopFeaturesConfig()

    num_classes, class_counts = dataset.class_summary()
    statistic = build_statistic(config.statistic, num_classes, class_counts)
    if distances is not None:
        distances.check_fresh(dataset.feature_ids)
    labels = dataset.group_labels

    log_ranking_start(dataset.n_features, num_classes, statistic.display_name, logger)
    ranking = rank_all(
        dataset.data_matrix,
        labels,
        statistic.score_fn,
        n_jobs=config.n_jobs,
        calibration_window=config.calibration_window,
        statistic_name=statistic.display_name,
    )
    log_ranking_summary(ranking, statistic, num_classes, logger)

    num_top = min(config.num_top_features, ranking.order.size)
    top_indices = ranking.top(num_top)
    log_top_features(dataset, ranking, top_indices, statistic, logger)

    null_pool = None
    significance = None
    if config.num_nulls > 0:
        cost = project_cost(
            dataset.n_features, config.num_nulls, ranking.seconds_per_feature
        )
        log_null_start(config.num_nulls, cost, logger)
        null_pool, significance = estimate_null(
            dataset.data_matrix,
            labels,
            statistic.score_fn,
            config.num_nulls,
            true_scores=ranking.scores,
            random_state=config.random_state,
            n_jobs=config.n_jobs,
            should_stop=should_stop,
            alpha=config.significance_alpha,
        )
        if significance is not None:
            log_significance_summary(
                significance,
                null_pool.n_rounds,
                statistic.display_name,
                config.significance_alpha,
                logger,
            )

    clusters = _cluster_top_features(dataset, top_indices, config, distances)
    log_cluster_summary(clusters, logger)

    return TopFeaturesResult(
        statistic=statistic,
        ranking=ranking,
        top_indices=top_indices,
        clusters=clusters,
        config=config,
        null_pool=null_pool,
        significance=significance,
        n_classes=num_classes,
    )


def _cluster_top_features(
    dataset: FeatureDataset,
    top_indices: np.ndarray,
    config: TopFeaturesConfig,
    distances: PrecomputedDistances | None,
) -> ClusterAssignment:
    dissimilarity = None
    if distances is not None:
        logger.info("Using precomputed %s distances.", distances.metric)
        dissimilarity = distances

    return cluster_redundant_features(
        dataset.data_matrix[:, top_indices],
        top_indices,
        dissimilarity=dissimilarity,
        threshold=config.cluster_threshold,
        metric=config.distance_metric,
    )


__all__ = ["TopFeaturesConfig", "TopFeaturesResult", "run_top_features"]
