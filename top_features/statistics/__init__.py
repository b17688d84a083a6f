"""Test statistics used to score individual features.

Modules
-------
statistic_provider
    Named statistic families resolved into a scorer plus display metadata
classifiers
    Classifier-accuracy scorers (scikit-learn)
two_sample
    Welch t and Mann-Whitney U scorers (scipy)
multiple_testing
    Benjamini-Hochberg FDR correction
"""

from .statistic_provider import (
    SUPPORTED_STATISTICS,
    ScoreFn,
    StatisticSpec,
    build_statistic,
)
from .multiple_testing import benjamini_hochberg_correction

__all__ = [
    "SUPPORTED_STATISTICS",
    "ScoreFn",
    "StatisticSpec",
    "build_statistic",
    "benjamini_hochberg_correction",
]
