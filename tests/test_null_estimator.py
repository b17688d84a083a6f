"""Tests for the pooled permutation null in :mod:`top_features.ranking.null_estimator`."""

from __future__ import annotations

import numpy as np
import pytest

from top_features.errors import EmptyNullDistribution
from top_features.ranking import (
    NullPool,
    SignificanceResult,
    compute_significance,
    empirical_p_values,
    estimate_null,
    rank_all,
)
from top_features.statistics import build_statistic
from tests.feature_fixtures import make_signal_matrix

# =============================================================================
# Empirical p-values
# =============================================================================


def test_p_value_counts_null_values_at_or_above_true_score() -> None:
    p_values = empirical_p_values(
        np.array([3.0, 1.0, np.nan]), np.array([0.0, 1.0, 2.0, 3.0])
    )

    assert p_values[0] == pytest.approx(0.25)
    assert p_values[1] == pytest.approx(0.75)
    assert np.isnan(p_values[2])


def test_nan_null_values_are_dropped_from_the_pool() -> None:
    p_values = empirical_p_values(np.array([2.5]), np.array([np.nan, 1.0, 3.0]))

    assert p_values[0] == pytest.approx(0.5)


def test_score_above_every_null_value_gets_zero_p_value() -> None:
    p_values = empirical_p_values(np.array([10.0, -10.0]), np.array([0.0, 1.0]))

    assert p_values.tolist() == [0.0, 1.0]


def test_empty_pool_raises() -> None:
    with pytest.raises(EmptyNullDistribution):
        empirical_p_values(np.array([1.0]), np.array([np.nan]))

    with pytest.raises(EmptyNullDistribution):
        compute_significance(np.array([1.0]), NullPool.empty(1))


def test_q_values_are_bounded_and_follow_p_value_order() -> None:
    pool = NullPool(values=np.linspace(0.0, 1.0, 101), n_features=101, n_rounds=1)
    true_scores = np.array([0.995, 0.9, 0.5, 0.2, np.nan])

    result = compute_significance(true_scores, pool)

    finite = ~np.isnan(result.q_values)
    assert finite.tolist() == [True, True, True, True, False]
    assert np.all((result.q_values[finite] >= 0.0) & (result.q_values[finite] <= 1.0))
    order = np.argsort(result.p_values[finite])
    assert np.all(np.diff(result.q_values[finite][order]) >= 0.0)
    assert not result.significant()[4]
    assert result.n_null == 101


# =============================================================================
# Null estimation
# =============================================================================


def test_zero_rounds_returns_empty_pool_and_no_significance() -> None:
    X, y = make_signal_matrix(n_per_group=5, n_signal=1, n_noise=4)
    statistic = build_statistic("ttest", 2)

    pool, significance = estimate_null(X, y, statistic.score_fn, 0)

    assert pool.size == 0
    assert significance is None


def test_negative_rounds_are_rejected() -> None:
    X, y = make_signal_matrix(n_per_group=5, n_signal=1, n_noise=4)
    statistic = build_statistic("ttest", 2)

    with pytest.raises(ValueError):
        estimate_null(X, y, statistic.score_fn, -1)


def test_pool_holds_one_score_per_feature_and_round() -> None:
    X, y = make_signal_matrix(n_per_group=6, n_signal=1, n_noise=4)
    statistic = build_statistic("ttest", 2)

    pool, significance = estimate_null(X, y, statistic.score_fn, 3, random_state=0)

    assert pool.size == 3 * X.shape[1]
    assert pool.by_round().shape == (3, X.shape[1])
    assert significance is not None
    assert significance.p_values.shape == (X.shape[1],)


def test_true_labels_are_left_untouched() -> None:
    X, y = make_signal_matrix(n_per_group=6, n_signal=1, n_noise=4)
    original = y.copy()
    statistic = build_statistic("ttest", 2)

    estimate_null(X, y, statistic.score_fn, 2, random_state=0)

    np.testing.assert_array_equal(y, original)


def test_same_random_state_gives_identical_pool() -> None:
    X, y = make_signal_matrix(n_per_group=8, n_signal=1, n_noise=6)
    statistic = build_statistic("ttest", 2)

    first, _ = estimate_null(X, y, statistic.score_fn, 4, random_state=11)
    second, _ = estimate_null(X, y, statistic.score_fn, 4, random_state=11)

    np.testing.assert_array_equal(first.values, second.values)


def test_pool_does_not_depend_on_worker_count() -> None:
    X, y = make_signal_matrix(n_per_group=8, n_signal=1, n_noise=6)
    statistic = build_statistic("ttest", 2)

    serial, _ = estimate_null(X, y, statistic.score_fn, 3, random_state=5, n_jobs=1)
    parallel, _ = estimate_null(X, y, statistic.score_fn, 3, random_state=5, n_jobs=2)

    np.testing.assert_array_equal(serial.values, parallel.values)


def test_classifier_null_centres_on_chance() -> None:
    X, y = make_signal_matrix(n_per_group=30, n_signal=0, n_noise=20, seed=3)
    statistic = build_statistic("fast_linear", 2, [30, 30])

    pool, _ = estimate_null(X, y, statistic.score_fn, 20, random_state=1)

    assert abs(pool.mean() - statistic.chance_line) < 10.0


def test_should_stop_ends_estimation_between_rounds() -> None:
    X, y = make_signal_matrix(n_per_group=6, n_signal=1, n_noise=4)
    statistic = build_statistic("ttest", 2)
    calls = []

    def _stop_after_two() -> bool:
        calls.append(None)
        return len(calls) > 2

    pool, significance = estimate_null(
        X, y, statistic.score_fn, 10, random_state=0, should_stop=_stop_after_two
    )

    assert pool.n_rounds == 2
    assert pool.size == 2 * X.shape[1]
    assert significance is not None


def test_stop_before_first_round_gives_no_significance() -> None:
    X, y = make_signal_matrix(n_per_group=6, n_signal=1, n_noise=4)
    statistic = build_statistic("ttest", 2)

    pool, significance = estimate_null(
        X, y, statistic.score_fn, 5, random_state=0, should_stop=lambda: True
    )

    assert pool.size == 0
    assert significance is None


def test_given_true_scores_match_computed_ones() -> None:
    X, y = make_signal_matrix(n_per_group=8, n_signal=2, n_noise=6)
    statistic = build_statistic("ttest", 2)
    true_scores = rank_all(X, y, statistic.score_fn).scores

    _, computed = estimate_null(X, y, statistic.score_fn, 3, random_state=2)
    _, given = estimate_null(
        X, y, statistic.score_fn, 3, random_state=2, true_scores=true_scores
    )

    np.testing.assert_array_equal(computed.p_values, given.p_values)


def test_strong_signal_features_are_significant() -> None:
    X, y = make_signal_matrix(n_per_group=20, n_signal=3, n_noise=27)
    statistic = build_statistic("ttest", 2)

    _, significance = estimate_null(X, y, statistic.score_fn, 10, random_state=0)

    assert significance.significant(0.05)[:3].all()
    assert significance.p_values[:3].tolist() == [0.0, 0.0, 0.0]


def test_plain_sequences_are_accepted() -> None:
    p_values = empirical_p_values([3.0, 1.0], [0.0, 1.0, 2.0, 3.0])

    assert p_values.tolist() == [0.25, 0.75]


def test_q_value_equal_to_alpha_is_significant() -> None:
    result = SignificanceResult(
        p_values=np.array([0.01, 0.02, np.nan]),
        q_values=np.array([0.05, 0.0501, np.nan]),
        n_null=100,
    )

    assert result.significant(0.05).tolist() == [True, False, False]
    assert result.n_significant(0.05) == 1
