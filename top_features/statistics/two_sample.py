"""Two-sample test statistics comparing group 1 with group 2.

Both scorers ignore the test split: the statistic is computed directly on
the training feature values, split by class label.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.stats import mannwhitneyu, ttest_ind

from top_features.errors import PerFeatureComputeFailure


def _split_two_groups(x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    x = np.asarray(x, dtype=float).ravel()
    y = np.asarray(y).ravel()
    first, second = x[y == 1], x[y == 2]
    if first.size == 0 or second.size == 0:
        raise PerFeatureComputeFailure(
            f"Two-sample statistic needs members in groups 1 and 2 "
            f"(got {first.size} and {second.size})."
        )
    return first, second


@dataclass(frozen=True)
class WelchTScorer:
    """Welch's unequal-variance two-sample t statistic (group 1 minus group 2)."""

    def score(
        self,
        train_x: np.ndarray,
        train_y: np.ndarray,
        test_x: np.ndarray,
        test_y: np.ndarray,
    ) -> float:
        first, second = _split_two_groups(train_x, train_y)
        result = ttest_ind(first, second, equal_var=False)
        return float(result.statistic)


@dataclass(frozen=True)
class MannWhitneyScorer:
    """``-log10`` of the two-sided Mann-Whitney U test p-value.

    Larger values are more significant, matching the higher-is-better
    convention of the other statistics.
    """

    exact: bool = False

    def score(
        self,
        train_x: np.ndarray,
        train_y: np.ndarray,
        test_x: np.ndarray,
        test_y: np.ndarray,
    ) -> float:
        first, second = _split_two_groups(train_x, train_y)
        result = mannwhitneyu(
            first,
            second,
            alternative="two-sided",
            method="exact" if self.exact else "asymptotic",
        )
        p_value = float(result.pvalue)
        if not np.isfinite(p_value):
            return float("nan")
        with np.errstate(divide="ignore"):
            return float(-np.log10(p_value))


__all__ = ["WelchTScorer", "MannWhitneyScorer"]
