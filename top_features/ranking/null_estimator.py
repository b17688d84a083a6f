"""Label-permutation null distribution and FDR-corrected significance.

The null is built by shuffling the group labels and re-scoring every
feature. Scores from all features and all rounds are pooled into one
empirical distribution, and each feature's true score is compared against
that pool.

Pooling across features
-----------------------
A per-feature null would need many more rounds to be stable. Pooling
across features gives ``M * num_rounds`` null values from few rounds, at
the price of lower power when features are strongly correlated (the pool
then behaves like fewer independent draws). The pooled p-values are
therefore conservative; whether they remain valid under strong
cross-feature dependence is a known limitation, not a proven property.

Reproducibility
---------------
A :class:`numpy.random.SeedSequence` built from ``random_state`` is
spawned into one child per round, so the permutation of round ``r`` only
depends on ``(random_state, r)``. The pool is bit-identical across runs
with the same ``random_state``, whatever ``n_jobs`` is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

import numpy as np

from top_features.errors import AllFeaturesFailed, EmptyNullDistribution
from top_features.reporting import log_null_round
from top_features.statistics import ScoreFn, benjamini_hochberg_correction
from .ranking_engine import rank_all

logger = logging.getLogger(__name__)


@dataclass
class NullPool:
    """Pooled scores on permuted labels, round-major (round 0 first)."""

    values: np.ndarray
    n_features: int
    n_rounds: int

    @classmethod
    def empty(cls, n_features: int) -> "NullPool":
        return cls(values=np.zeros(0, dtype=float), n_features=n_features, n_rounds=0)

    @property
    def size(self) -> int:
        return int(self.values.size)

    def by_round(self) -> np.ndarray:
        """The pool as an ``(n_rounds, n_features)`` matrix."""
        return self.values.reshape(self.n_rounds, self.n_features)

    def mean(self) -> float:
        finite = self.values[~np.isnan(self.values)]
        return float(np.mean(finite)) if finite.size else float("nan")


@dataclass
class SignificanceResult:
    """Per-feature empirical p-values and Benjamini-Hochberg q-values."""

    p_values: np.ndarray
    q_values: np.ndarray
    n_null: int

    def significant(self, alpha: float = 0.05) -> np.ndarray:
        """Boolean mask of features with ``q <= alpha``; NaN is never significant.

        Uses the same rule as the Benjamini-Hochberg rejection mask.
        """
        return np.nan_to_num(self.q_values, nan=np.inf) <= alpha

    def n_significant(self, alpha: float = 0.05) -> int:
        return int(self.significant(alpha).sum())


def empirical_p_values(true_scores: np.ndarray, null_values: np.ndarray) -> np.ndarray:
    """Fraction of null values meeting or exceeding each true score.

    NaN null values are dropped from the pool; NaN true scores give NaN.
    """
    true_scores = np.asarray(true_scores, dtype=float)
    null_values = np.asarray(null_values, dtype=float)
    null_sorted = np.sort(null_values[~np.isnan(null_values)])
    if null_sorted.size == 0:
        raise EmptyNullDistribution()

    below = np.searchsorted(null_sorted, true_scores, side="left")
    p_values = (null_sorted.size - below) / null_sorted.size
    p_values = p_values.astype(float)
    p_values[np.isnan(true_scores)] = np.nan
    return p_values


def compute_significance(
    true_scores: np.ndarray, null_pool: NullPool, alpha: float = 0.05
) -> SignificanceResult:
    """Convert true scores into pooled-null p-values and BH q-values.

    Raises
    ------
    EmptyNullDistribution
        If the pool holds no usable null scores (e.g. ``num_rounds == 0``).
    """
    if null_pool.size == 0:
        raise EmptyNullDistribution()
    p_values = empirical_p_values(true_scores, null_pool.values)
    _, q_values = benjamini_hochberg_correction(p_values, alpha=alpha)
    return SignificanceResult(
        p_values=p_values,
        q_values=q_values,
        n_null=int((~np.isnan(null_pool.values)).sum()),
    )


def _permuted_round(
    feature_matrix: np.ndarray,
    labels: np.ndarray,
    score_fn: ScoreFn,
    seed: np.random.SeedSequence,
    n_jobs: int | None,
) -> np.ndarray:
    rng = np.random.default_rng(seed)
    shuffled = rng.permutation(labels)
    try:
        return rank_all(feature_matrix, shuffled, score_fn, n_jobs=n_jobs).scores
    except AllFeaturesFailed:
        logger.warning("All features failed on a permuted labelling; round kept as NaN.")
        return np.full(feature_matrix.shape[1], np.nan, dtype=float)


def estimate_null(
    feature_matrix: np.ndarray,
    labels: np.ndarray,
    score_fn: ScoreFn,
    num_rounds: int,
    *,
    true_scores: np.ndarray | None = None,
    random_state: int | None = None,
    n_jobs: int | None = None,
    should_stop: Callable[[], bool] | None = None,
    alpha: float = 0.05,
) -> tuple[NullPool, SignificanceResult | None]:
    """Build the pooled permutation null and the significance of true scores.

    Parameters
    ----------
    feature_matrix
        ``(N, M)`` matrix, objects by features.
    labels
        ``N`` true class labels; left untouched.
    score_fn
        Per-feature scoring function, as passed to :func:`rank_all`.
    num_rounds
        Number of label permutations. 0 returns an empty pool and no
        significance.
    true_scores
        Scores on the real labels. Computed with :func:`rank_all` if omitted.
    random_state
        Seed of the :class:`numpy.random.SeedSequence` spawning one
        generator per round.
    n_jobs
        Workers used to score features within each round.
    should_stop
        Polled between rounds; returning True stops after the rounds
        completed so far.
    alpha
        FDR level passed to the BH correction.

    Returns
    -------
    tuple[NullPool, SignificanceResult | None]
    """
    X = np.asarray(feature_matrix, dtype=float)
    y = np.asarray(labels).ravel()
    if num_rounds < 0:
        raise ValueError(f"num_rounds must be non-negative, got {num_rounds}.")
    if num_rounds == 0:
        return NullPool.empty(X.shape[1]), None

    if true_scores is None:
        true_scores = rank_all(X, y, score_fn, n_jobs=n_jobs).scores

    seeds = np.random.SeedSequence(random_state).spawn(num_rounds)
    rounds: list[np.ndarray] = []
    for round_index, seed in enumerate(seeds):
        if should_stop is not None and should_stop():
            logger.warning(
                "Null estimation stopped after %d/%d rounds.", round_index, num_rounds
            )
            break
        rounds.append(_permuted_round(X, y, score_fn, seed, n_jobs))
        log_null_round(round_index, num_rounds, logger)

    if not rounds:
        return NullPool.empty(X.shape[1]), None

    pool = NullPool(
        values=np.concatenate(rounds),
        n_features=X.shape[1],
        n_rounds=len(rounds),
    )
    if not np.any(~np.isnan(pool.values)):
        logger.warning("Every permuted score failed; no significance can be computed.")
        return pool, None
    return pool, compute_significance(true_scores, pool, alpha=alpha)


__all__ = [
    "NullPool",
    "SignificanceResult",
    "compute_significance",
    "empirical_p_values",
    "estimate_null",
]
