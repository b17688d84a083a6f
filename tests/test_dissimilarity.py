"""Tests for pairwise feature dissimilarity and the precomputed distance artifact."""

from __future__ import annotations

import numpy as np
import pytest
from scipy.spatial.distance import pdist, squareform

from top_features.errors import StaleDistanceCache
from top_features.redundancy import (
    PrecomputedDistances,
    pairwise_dissimilarity,
    precompute_distances,
    validate_metric,
)

# =============================================================================
# On-demand dissimilarity
# =============================================================================


def _anti_correlated_pair() -> np.ndarray:
    a = np.array([1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
    return np.column_stack([a, -a, np.full_like(a, 7.0)])


def test_abscorr_treats_anti_correlation_as_identical() -> None:
    D = pairwise_dissimilarity(_anti_correlated_pair(), metric="abscorr")

    assert D[0, 1] == pytest.approx(0.0)
    assert D.shape == (3, 3)
    np.testing.assert_allclose(np.diag(D), 0.0)


def test_signed_correlation_separates_anti_correlated_features() -> None:
    D = pairwise_dissimilarity(_anti_correlated_pair(), metric="corr")

    assert D[0, 1] == pytest.approx(2.0)


def test_constant_feature_is_maximally_dissimilar() -> None:
    D = pairwise_dissimilarity(_anti_correlated_pair(), metric="abscorr")

    assert D[0, 2] == pytest.approx(1.0)
    assert D[2, 1] == pytest.approx(1.0)


def test_missing_values_use_pairwise_complete_objects() -> None:
    rng = np.random.default_rng(4)
    X = rng.standard_normal((12, 3))
    X[3, 1] = np.nan

    D = pairwise_dissimilarity(X, metric="abscorr")

    complete = np.delete(np.arange(12), 3)
    r = np.corrcoef(X[complete, 0], X[complete, 1])[0, 1]
    assert D[0, 1] == pytest.approx(1.0 - abs(r))
    assert D[0, 2] == pytest.approx(1.0 - abs(np.corrcoef(X[:, 0], X[:, 2])[0, 1]))
    np.testing.assert_allclose(D, D.T)


def test_scipy_metric_matches_pdist() -> None:
    rng = np.random.default_rng(9)
    X = rng.standard_normal((8, 4))

    D = pairwise_dissimilarity(X, metric="euclidean")

    np.testing.assert_allclose(D, squareform(pdist(X.T, metric="euclidean")))


def test_scipy_metric_rejects_missing_values() -> None:
    X = np.ones((4, 2))
    X[0, 0] = np.nan

    with pytest.raises(ValueError, match="missing values"):
        pairwise_dissimilarity(X, metric="euclidean")


# =============================================================================
# Precomputed distances
# =============================================================================


def test_restrict_returns_sub_matrix_in_requested_order() -> None:
    rng = np.random.default_rng(2)
    X = rng.standard_normal((10, 5))
    distances = precompute_distances(X, metric="abscorr")

    sub = distances.restrict([3, 0, 4])

    full = pairwise_dissimilarity(X, metric="abscorr")
    np.testing.assert_allclose(sub, full[np.ix_([3, 0, 4], [3, 0, 4])])


def test_restrict_rejects_out_of_range_indices() -> None:
    distances = PrecomputedDistances(matrix=np.zeros((3, 3)), metric="abscorr")

    with pytest.raises(IndexError):
        distances.restrict([0, 3])


def test_condensed_matrix_is_expanded() -> None:
    distances = PrecomputedDistances(matrix=np.array([0.1, 0.2, 0.3]), metric="corr")

    assert distances.n_features == 3
    assert distances.matrix[0, 1] == pytest.approx(0.1)
    assert distances.matrix[2, 1] == pytest.approx(0.3)


def test_non_square_matrix_is_rejected() -> None:
    with pytest.raises(ValueError, match="square"):
        PrecomputedDistances(matrix=np.zeros((2, 3)), metric="corr")


def test_stored_dtype_is_kept() -> None:
    X = np.random.default_rng(0).standard_normal((6, 3))

    distances = precompute_distances(X, dtype=np.float32)

    assert distances.matrix.dtype == np.float32


def test_check_fresh_accepts_matching_ids() -> None:
    X = np.random.default_rng(0).standard_normal((6, 3))
    distances = precompute_distances(X, feature_ids=[11, 12, 13])

    distances.check_fresh(np.array([11, 12, 13]))


def test_check_fresh_rejects_changed_feature_set() -> None:
    X = np.random.default_rng(0).standard_normal((6, 3))
    distances = precompute_distances(X, feature_ids=[11, 12, 13])

    with pytest.raises(StaleDistanceCache):
        distances.check_fresh([11, 12, 14])
    with pytest.raises(StaleDistanceCache):
        distances.check_fresh([11, 12, 13, 14])


# =============================================================================
# Metric names
# =============================================================================


@pytest.mark.parametrize("metric", ["abscorr", "spearman", "euclidean", "cityblock"])
def test_known_metrics_are_accepted(metric: str) -> None:
    assert validate_metric(metric) == metric


def test_unknown_metric_is_reported_clearly() -> None:
    with pytest.raises(ValueError, match="Unknown distance metric 'bogus'"):
        validate_metric("bogus")

    with pytest.raises(ValueError, match="Unknown distance metric"):
        pairwise_dissimilarity(np.ones((4, 2)), metric="bogus")
