"""Score every feature independently against a grouping.

Each feature column is scored in-sample: the same column and labels are
used as both training and test data. Per-feature failures become NaN
scores and never abort a pass; only a pass in which every feature fails
raises :class:`~top_features.errors.AllFeaturesFailed`.

Columns are scored in contiguous batches, optionally in parallel through
:mod:`joblib`. Batches are reassembled by column index, so the scores do
not depend on ``n_jobs``. With ``n_jobs`` other than ``None``/``1`` the
scoring function must be picklable (the scorers built by
:func:`~top_features.statistics.build_statistic` are).
"""

from __future__ import annotations

import logging
import time
import warnings
from dataclasses import dataclass, field

import numpy as np
from joblib import Parallel, delayed

from top_features import config
from top_features.errors import AllFeaturesFailed, PerFeatureComputeFailure
from top_features.reporting import log_calibration_projection
from top_features.statistics import ScoreFn

logger = logging.getLogger(__name__)


@dataclass
class RankResult:
    """Scores of all features for one label assignment.

    Attributes
    ----------
    scores
        Shape ``(M,)``; NaN where scoring failed.
    order
        Indices of successfully scored features, best first. Ties keep
        ascending feature index.
    failures
        ``{feature_index: reason}`` for every NaN score.
    elapsed_seconds
        Wall time of the pass.
    """

    scores: np.ndarray
    order: np.ndarray
    failures: dict[int, str] = field(default_factory=dict)
    elapsed_seconds: float = 0.0

    @property
    def n_features(self) -> int:
        return int(self.scores.size)

    @property
    def n_failed(self) -> int:
        return int(np.isnan(self.scores).sum())

    @property
    def failed_indices(self) -> np.ndarray:
        return np.flatnonzero(np.isnan(self.scores))

    @property
    def seconds_per_feature(self) -> float:
        return self.elapsed_seconds / max(self.n_features, 1)

    def top(self, k: int) -> np.ndarray:
        """Indices of the ``k`` best features (fewer if fewer were scored)."""
        return self.order[: max(int(k), 0)]

    def mean_score(self) -> float:
        if self.n_failed == self.n_features:
            return float("nan")
        return float(np.nanmean(self.scores))


@dataclass(frozen=True)
class CostEstimate:
    """Projected cost of ranking ``M`` features on real and permuted labels."""

    n_features: int
    n_rounds: int
    seconds_per_evaluation: float

    @property
    def n_evaluations(self) -> int:
        return self.n_features * (1 + self.n_rounds)

    @property
    def projected_seconds(self) -> float:
        return self.n_evaluations * self.seconds_per_evaluation

    @property
    def projected_null_seconds(self) -> float:
        return self.n_features * self.n_rounds * self.seconds_per_evaluation


def project_cost(
    n_features: int, n_rounds: int, seconds_per_evaluation: float
) -> CostEstimate:
    """Total evaluations ``M * (1 + n_rounds)`` and their projected duration."""
    if n_features < 0 or n_rounds < 0:
        raise ValueError("n_features and n_rounds must be non-negative.")
    return CostEstimate(
        n_features=int(n_features),
        n_rounds=int(n_rounds),
        seconds_per_evaluation=float(seconds_per_evaluation),
    )


def sort_scores(scores: np.ndarray) -> np.ndarray:
    """Indices of non-NaN scores in descending order, ties by ascending index."""
    scores = np.asarray(scores, dtype=float)
    valid = np.flatnonzero(~np.isnan(scores))
    return valid[np.argsort(-scores[valid], kind="stable")]


def _score_column(column: np.ndarray, labels: np.ndarray, score_fn: ScoreFn) -> float:
    """In-sample score of one feature, excluding objects with missing values."""
    finite = np.isfinite(column)
    x = column[finite]
    y = labels[finite]
    if x.size == 0:
        raise PerFeatureComputeFailure("no finite values")

    if not finite.all():
        lost = np.setdiff1d(np.unique(labels), np.unique(y))
        if lost.size:
            raise PerFeatureComputeFailure(
                f"group(s) {lost.tolist()} empty after excluding missing values"
            )
    if np.unique(y).size < 2:
        raise PerFeatureComputeFailure("fewer than two groups present")

    return float(score_fn(x, y, x, y))


def _score_batch(
    block: np.ndarray, labels: np.ndarray, score_fn: ScoreFn, offset: int
) -> tuple[np.ndarray, dict[int, str]]:
    """Score a contiguous block of columns; failures are recorded, not raised."""
    scores = np.full(block.shape[1], np.nan, dtype=float)
    failures: dict[int, str] = {}
    with warnings.catch_warnings():
        # Degenerate fits surface as NaN scores or exceptions below.
        warnings.simplefilter("ignore")
        for j in range(block.shape[1]):
            try:
                value = _score_column(block[:, j], labels, score_fn)
            except Exception as exc:  # noqa: BLE001 - recovered as NaN per feature
                failures[offset + j] = f"{type(exc).__name__}: {exc}"
                continue
            if np.isnan(value):
                failures[offset + j] = "statistic evaluated to NaN"
            scores[j] = value
    return scores, failures


def rank_all(
    feature_matrix: np.ndarray,
    labels: np.ndarray,
    score_fn: ScoreFn,
    *,
    n_jobs: int | None = None,
    calibration_window: int | None = None,
    batch_size: int = config.SCORING_BATCH_SIZE,
    statistic_name: str | None = None,
) -> RankResult:
    """Score every feature column in-sample against ``labels``.

    Parameters
    ----------
    feature_matrix
        ``(N, M)`` matrix, objects by features; NaN marks missing values.
    labels
        ``N`` class labels.
    score_fn
        ``score_fn(train_x, train_y, test_x, test_y) -> float``.
    n_jobs
        Number of joblib workers. None means 1. -1 means all processors.
    calibration_window
        If set and smaller than ``M``, the first ``calibration_window``
        features are scored first and timed, and the projected duration of
        the full pass is logged.
    batch_size
        Number of columns per parallel job.
    statistic_name
        Display name used in the error message when every feature fails.

    Returns
    -------
    RankResult

    Raises
    ------
    ValueError
        If the matrix and labels do not line up.
    AllFeaturesFailed
        If no feature could be scored.
    """
    X = np.asarray(feature_matrix, dtype=float)
    y = np.asarray(labels).ravel()
    if X.ndim != 2:
        raise ValueError(f"feature_matrix must be 2-D, got shape {X.shape}.")
    if X.shape[0] != y.size:
        raise ValueError(
            f"feature_matrix has {X.shape[0]} objects but {y.size} labels were given."
        )
    n_features = X.shape[1]
    if n_features == 0:
        raise ValueError("feature_matrix has no features.")

    scores = np.full(n_features, np.nan, dtype=float)
    failures: dict[int, str] = {}
    start_time = time.perf_counter()

    first = 0
    if calibration_window is not None and 0 < calibration_window < n_features:
        block_scores, block_failures = _score_batch(
            X[:, :calibration_window], y, score_fn, 0
        )
        scores[:calibration_window] = block_scores
        failures.update(block_failures)
        log_calibration_projection(
            calibration_window, time.perf_counter() - start_time, n_features, logger
        )
        first = calibration_window

    step = max(1, int(batch_size))
    bounds = [(lo, min(lo + step, n_features)) for lo in range(first, n_features, step)]
    results = Parallel(n_jobs=n_jobs)(
        delayed(_score_batch)(X[:, lo:hi], y, score_fn, lo) for lo, hi in bounds
    )
    for (lo, hi), (block_scores, block_failures) in zip(bounds, results):
        scores[lo:hi] = block_scores
        failures.update(block_failures)

    elapsed = time.perf_counter() - start_time
    if np.all(np.isnan(scores)):
        raise AllFeaturesFailed(n_features, statistic_name)

    return RankResult(
        scores=scores,
        order=sort_scores(scores),
        failures=dict(sorted(failures.items())),
        elapsed_seconds=elapsed,
    )


__all__ = [
    "CostEstimate",
    "RankResult",
    "project_cost",
    "rank_all",
    "sort_scores",
]
