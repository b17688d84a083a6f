"""Tests for :mod:`top_features.statistics.statistic_provider` and its scorers."""

from __future__ import annotations

import logging

import numpy as np
import pytest
from scipy.stats import mannwhitneyu, ttest_ind

from top_features.errors import EmptyGroup, InvalidClassCount, UnsupportedStatistic
from top_features.statistics import SUPPORTED_STATISTICS, build_statistic
from top_features.statistics.classifiers import ClassifierScorer
from tests.feature_fixtures import make_three_feature_matrix

# =============================================================================
# Validation
# =============================================================================


def test_unknown_statistic_is_rejected() -> None:
    with pytest.raises(UnsupportedStatistic) as excinfo:
        build_statistic("random_forest", 2)

    assert "random_forest" in str(excinfo.value)
    assert isinstance(excinfo.value, ValueError)


@pytest.mark.parametrize("name", ["fast_linear", "ttest", "ranksum"])
def test_single_class_is_rejected(name: str) -> None:
    with pytest.raises(InvalidClassCount):
        build_statistic(name, 1)


def test_t_statistic_requires_exactly_two_classes() -> None:
    with pytest.raises(InvalidClassCount, match="exactly 2"):
        build_statistic("tstat", 3)


def test_every_supported_statistic_builds_for_two_classes() -> None:
    for name in SUPPORTED_STATISTICS:
        statistic = build_statistic(name, 2, [5, 5])
        assert statistic.name == name
        assert callable(statistic.score_fn)


# =============================================================================
# Metadata
# =============================================================================


def test_chance_lines_follow_statistic_family() -> None:
    assert build_statistic("linear", 2).chance_line == pytest.approx(50.0)
    assert build_statistic("svm", 4).chance_line == pytest.approx(25.0)
    assert build_statistic("ttest", 2).chance_line == 0.0
    assert np.isnan(build_statistic("ustat", 2).chance_line)
    assert not build_statistic("ranksum_exact", 2).has_chance_line


def test_classifier_bounds_and_unit() -> None:
    statistic = build_statistic("diaglinear", 2)
    assert statistic.unit == "%"
    assert (statistic.lower_bound, statistic.upper_bound) == (0.0, 100.0)
    assert statistic.display_name == "Naive Bayes classifier"


def test_as_tuple_matches_fields() -> None:
    statistic = build_statistic("ttest", 2)
    score_fn, chance_line, display_name, unit = statistic.as_tuple()

    X, y = make_three_feature_matrix()
    assert score_fn(X[:, 0], y, X[:, 0], y) == statistic.score(X[:, 0], y, X[:, 0], y)
    assert chance_line == 0.0
    assert display_name == "Welch's t-stat"
    assert unit == ""


# =============================================================================
# Class balance
# =============================================================================


def test_imbalanced_classes_switch_to_balanced_accuracy(caplog) -> None:
    caplog.set_level(logging.INFO, logger="top_features")

    statistic = build_statistic("fast_linear", 2, [8, 2])

    assert statistic.balanced is True
    assert statistic.scorer.balanced is True
    assert "balanced classification accuracy" in caplog.text


def test_balanced_classes_keep_raw_accuracy(caplog) -> None:
    caplog.set_level(logging.INFO, logger="top_features")

    statistic = build_statistic("fast_linear", 2, [5, 5])

    assert statistic.balanced is False
    assert "overall classification accuracy" in caplog.text


def test_balanced_accuracy_ignores_majority_class_guessing() -> None:
    # Identical class-conditional distributions: the prior decides, so every
    # object is assigned to the majority group.
    x = np.array([0.0, 1.0, 0.0, 1.0, 0.0, 1.0, 0.0, 1.0, 0.0, 1.0])
    y = np.array([1, 1, 1, 1, 1, 1, 1, 1, 2, 2])

    raw = ClassifierScorer(kind="diaglinear", balanced=False).score(x, y, x, y)
    balanced = build_statistic("diaglinear", 2, [8, 2]).score(x, y, x, y)

    assert raw == pytest.approx(80.0)
    assert balanced == pytest.approx(50.0)


# =============================================================================
# Scorers
# =============================================================================


@pytest.mark.parametrize("name", ["linear", "fast_linear", "diaglinear"])
def test_classifiers_score_perfect_separation_as_100(name: str) -> None:
    X, y = make_three_feature_matrix()
    statistic = build_statistic(name, 2, [5, 5])

    assert statistic.score(X[:, 0], y, X[:, 0], y) == pytest.approx(100.0)
    assert statistic.score(X[:, 2], y, X[:, 2], y) == pytest.approx(100.0)


def test_welch_t_matches_scipy_and_ignores_test_split() -> None:
    X, y = make_three_feature_matrix()
    statistic = build_statistic("ttest", 2)
    expected = ttest_ind(X[y == 1, 0], X[y == 2, 0], equal_var=False).statistic

    value = statistic.score(X[:, 0], y, np.zeros(3), np.array([1, 2, 1]))

    assert value == pytest.approx(expected)
    assert value < 0


def test_mann_whitney_returns_negative_log10_p() -> None:
    X, y = make_three_feature_matrix()
    exact = build_statistic("ustat_exact", 2).score(X[:, 0], y, X[:, 0], y)
    approx = build_statistic("ustat", 2).score(X[:, 0], y, X[:, 0], y)

    p_exact = mannwhitneyu(X[y == 1, 0], X[y == 2, 0], method="exact").pvalue
    assert exact == pytest.approx(-np.log10(p_exact))
    assert exact > 0
    assert approx > 0
    assert exact != pytest.approx(approx)


def test_mann_whitney_is_symmetric_in_direction() -> None:
    X, y = make_three_feature_matrix()
    statistic = build_statistic("ranksum_exact", 2)

    assert statistic.score(X[:, 0], y, X[:, 0], y) == pytest.approx(
        statistic.score(X[:, 2], y, X[:, 2], y)
    )


def test_zero_class_count_is_rejected() -> None:
    with pytest.raises(EmptyGroup) as excinfo:
        build_statistic("fast_linear", 2, [5, 0])

    assert excinfo.value.empty_groups == [2]


@pytest.mark.parametrize(
    ("alias", "name"),
    [("ustatExact", "ustat_exact"), ("ranksumExact", "ranksum_exact")],
)
def test_camel_case_exact_rank_sum_names_are_accepted(alias: str, name: str) -> None:
    X, y = make_three_feature_matrix()

    aliased = build_statistic(alias, 2)
    canonical = build_statistic(name, 2)

    assert aliased.display_name == canonical.display_name
    assert aliased.score(X[:, 0], y, X[:, 0], y) == pytest.approx(
        canonical.score(X[:, 0], y, X[:, 0], y)
    )
