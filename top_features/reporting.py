"""Logging helpers for user-facing ranking messages.

Functions are kept separate so they can be imported and reused elsewhere
without pulling in the entire ``pipeline`` module.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

import numpy as np

if TYPE_CHECKING:
    from top_features.data import FeatureDataset
    from top_features.ranking import CostEstimate, RankResult, SignificanceResult
    from top_features.redundancy import ClusterAssignment
    from top_features.statistics import StatisticSpec


def _default_pipeline_logger() -> logging.Logger:
    return logging.getLogger("top_features.pipeline")


def format_duration(seconds: float) -> str:
    """Render a duration as a short human-readable string."""
    if not np.isfinite(seconds):
        return "an unknown time"
    if seconds < 1:
        return f"{seconds * 1000:.0f} ms"
    if seconds < 60:
        return f"{seconds:.1f} s"
    if seconds < 3600:
        return f"{seconds / 60:.1f} min"
    if seconds < 86400:
        return f"{seconds / 3600:.1f} h"
    return f"{seconds / 86400:.1f} days"


def log_ranking_start(
    n_features: int,
    n_classes: int,
    display_name: str,
    logger: logging.Logger | None = None,
) -> None:
    """Log the start of an in-sample ranking pass."""
    logger = logger or _default_pipeline_logger()
    logger.info(
        "Comparing the (in-sample) performance of %d features for %d classes "
        "using a %s.",
        n_features,
        n_classes,
        display_name,
    )


def log_calibration_projection(
    n_scored: int,
    elapsed_seconds: float,
    n_total: int,
    logger: logging.Logger | None = None,
) -> None:
    """Log the projected duration of a pass after timing its first features."""
    logger = logger or _default_pipeline_logger()
    projected = elapsed_seconds / max(n_scored, 1) * n_total
    logger.info(
        "Scored %d features in %s; should take approx %s for all %d features.",
        n_scored,
        format_duration(elapsed_seconds),
        format_duration(projected),
        n_total,
    )


def log_ranking_summary(
    ranking: "RankResult",
    statistic: "StatisticSpec",
    n_classes: int,
    logger: logging.Logger | None = None,
) -> None:
    """Log mean performance across features against the chance line."""
    logger = logger or _default_pipeline_logger()
    logger.info(
        "Mean %s performance across %d features = %4.2f%s",
        statistic.display_name,
        ranking.n_features,
        ranking.mean_score(),
        statistic.unit,
    )
    if statistic.has_chance_line:
        logger.info(
            "(Random guessing for %d equiprobable classes = %4.2f%s)",
            n_classes,
            statistic.chance_line,
            statistic.unit,
        )
    if ranking.n_failed:
        logger.warning(
            "%d/%d features could not be scored and are excluded from the ranking.",
            ranking.n_failed,
            ranking.n_features,
        )
        for index, reason in sorted(ranking.failures.items()):
            logger.debug("Feature %d failed: %s", index, reason)


def log_top_features(
    dataset: "FeatureDataset",
    ranking: "RankResult",
    top_indices: Sequence[int],
    statistic: "StatisticSpec",
    logger: logging.Logger | None = None,
) -> None:
    """List the top features as ``[ID] Name (Keywords) -- score``."""
    logger = logger or _default_pipeline_logger()
    for index in top_indices:
        row = dataset.features.iloc[index]
        logger.info(
            "[%s] %s (%s) -- %4.2f%s",
            row["ID"],
            row["Name"],
            row["Keywords"],
            ranking.scores[index],
            statistic.unit,
        )


def log_null_start(
    n_rounds: int,
    cost: "CostEstimate",
    logger: logging.Logger | None = None,
) -> None:
    """Log the size and projected duration of the null estimation."""
    logger = logger or _default_pipeline_logger()
    logger.info(
        "Now for %d nulls: %d statistic evaluations in total, projected %s.",
        n_rounds,
        cost.n_evaluations,
        format_duration(cost.projected_null_seconds),
    )


def log_null_round(
    round_index: int, n_rounds: int, logger: logging.Logger | None = None
) -> None:
    logger = logger or _default_pipeline_logger()
    logger.debug("Null round %d/%d complete.", round_index + 1, n_rounds)


def log_significance_summary(
    significance: "SignificanceResult",
    n_rounds: int,
    display_name: str,
    alpha: float,
    logger: logging.Logger | None = None,
) -> None:
    """Report how many features beat the pooled null at the FDR level."""
    logger = logger or _default_pipeline_logger()
    n_tested = int(np.isfinite(significance.p_values).sum())
    logger.info(
        "Estimating FDR-corrected p-values across all features by pooling "
        "across %d nulls.",
        n_rounds,
    )
    logger.info(
        "(Given strong dependences across %d features, will produce "
        "conservative p-values)",
        n_tested,
    )
    n_significant = significance.n_significant(alpha)
    if n_significant:
        logger.info(
            "%d/%d features show better performance using %s than the null "
            "distribution at the %.2g threshold (FDR corrected).",
            n_significant,
            n_tested,
            display_name,
            alpha,
        )
    else:
        logger.info(
            "No features show statistically better performance than the null "
            "distribution at a FDR of %.2g.",
            alpha,
        )


def log_cluster_summary(
    assignment: "ClusterAssignment", logger: logging.Logger | None = None
) -> None:
    logger = logger or _default_pipeline_logger()
    logger.info(
        "Dependencies between %d top features (organized into %d clusters at "
        "%s threshold %.2f).",
        len(assignment.feature_indices),
        assignment.n_clusters,
        assignment.metric,
        assignment.threshold,
    )
