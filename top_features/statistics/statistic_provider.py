"""Resolve a named test statistic into a per-feature scoring function.

The statistic family is resolved once, in :func:`build_statistic`; the
returned :class:`StatisticSpec` carries a small scorer object whose
``score(train_x, train_y, test_x, test_y)`` method is the only thing the
ranking loop calls.

Conventions
-----------
All statistics are oriented so that larger values indicate a more
discriminative feature:

- classifier families report accuracy in percent, ``[0, 100]``;
- the t statistic is signed (group 1 minus group 2), chance level 0;
- the rank-sum statistics report ``-log10(p)``, which has no chance level.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Protocol, Sequence

import numpy as np

from top_features.errors import EmptyGroup, InvalidClassCount, UnsupportedStatistic
from .classifiers import CLASSIFIER_FAMILIES, ClassifierScorer
from .two_sample import MannWhitneyScorer, WelchTScorer

logger = logging.getLogger(__name__)

ScoreFn = Callable[[np.ndarray, np.ndarray, np.ndarray, np.ndarray], float]

T_STATISTICS = ("ttest", "tstat")
RANKSUM_APPROX = ("ustat", "ranksum")
RANKSUM_EXACT = ("ustat_exact", "ranksum_exact", "ustatExact", "ranksumExact")

SUPPORTED_STATISTICS: tuple[str, ...] = (
    tuple(CLASSIFIER_FAMILIES) + T_STATISTICS + RANKSUM_APPROX + RANKSUM_EXACT
)


class Scorer(Protocol):
    def score(
        self,
        train_x: np.ndarray,
        train_y: np.ndarray,
        test_x: np.ndarray,
        test_y: np.ndarray,
    ) -> float: ...


@dataclass(frozen=True)
class StatisticSpec:
    """A resolved test statistic and its display metadata."""

    name: str
    display_name: str
    unit: str
    chance_line: float
    scorer: Scorer
    balanced: bool = False
    lower_bound: float = -np.inf
    upper_bound: float = np.inf

    @property
    def score_fn(self) -> ScoreFn:
        return self.scorer.score

    def score(
        self,
        train_x: np.ndarray,
        train_y: np.ndarray,
        test_x: np.ndarray,
        test_y: np.ndarray,
    ) -> float:
        return self.scorer.score(train_x, train_y, test_x, test_y)

    @property
    def has_chance_line(self) -> bool:
        return bool(np.isfinite(self.chance_line))

    def as_tuple(self) -> tuple[ScoreFn, float, str, str]:
        """``(score_fn, chance_line, display_name, unit)``."""
        return self.score_fn, self.chance_line, self.display_name, self.unit


def _is_balanced(class_counts: Sequence[int] | np.ndarray | None) -> bool:
    if class_counts is None:
        return True
    counts = np.asarray(class_counts)
    return bool(np.all(counts == counts[0]))


def build_statistic(
    name: str,
    num_classes: int,
    class_counts: Sequence[int] | np.ndarray | None = None,
) -> StatisticSpec:
    """Build the scorer and metadata for a named test statistic.

    Parameters
    ----------
    name
        One of :data:`SUPPORTED_STATISTICS`.
    num_classes
        Number of classes ``K`` in the grouping.
    class_counts
        Size of each class. When the sizes differ, classifier statistics
        switch to balanced accuracy so the majority class cannot dominate.

    Returns
    -------
    StatisticSpec

    Raises
    ------
    UnsupportedStatistic
        If ``name`` is not a supported statistic.
    InvalidClassCount
        If ``num_classes < 2``, or the t statistic is requested for a
        grouping with more than two classes.
    EmptyGroup
        If ``class_counts`` has a zero entry.
    """
    if name not in SUPPORTED_STATISTICS:
        raise UnsupportedStatistic(name, SUPPORTED_STATISTICS)
    if num_classes < 2:
        raise InvalidClassCount(name, num_classes, "at least 2")
    if class_counts is not None:
        counts = np.asarray(class_counts)
        if np.any(counts == 0):
            raise EmptyGroup([int(k) + 1 for k in np.flatnonzero(counts == 0)])

    if name in CLASSIFIER_FAMILIES:
        balanced = not _is_balanced(class_counts)
        if balanced:
            logger.info(
                "Due to class imbalance, using balanced classification accuracy "
                "as output measure."
            )
        else:
            logger.info("Using overall classification accuracy as output measure.")
        display_name, _ = CLASSIFIER_FAMILIES[name]
        return StatisticSpec(
            name=name,
            display_name=display_name,
            unit="%",
            chance_line=100.0 / num_classes,
            scorer=ClassifierScorer(kind=name, balanced=balanced),
            balanced=balanced,
            lower_bound=0.0,
            upper_bound=100.0,
        )

    if name in T_STATISTICS:
        if num_classes != 2:
            raise InvalidClassCount(name, num_classes, "exactly 2")
        return StatisticSpec(
            name=name,
            display_name="Welch's t-stat",
            unit="",
            chance_line=0.0,
            scorer=WelchTScorer(),
        )

    exact = name in RANKSUM_EXACT
    if num_classes > 2:
        logger.warning(
            "Mann-Whitney statistic compares groups 1 and 2 only; "
            "the remaining %d group(s) are ignored.",
            num_classes - 2,
        )
    return StatisticSpec(
        name=name,
        display_name=f"Mann-Whitney {'exact' if exact else 'approx'} p-value",
        unit=" (-log10(p))",
        chance_line=float("nan"),
        scorer=MannWhitneyScorer(exact=exact),
        lower_bound=0.0,
    )


__all__ = [
    "ScoreFn",
    "StatisticSpec",
    "SUPPORTED_STATISTICS",
    "build_statistic",
]
