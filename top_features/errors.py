"""Exception taxonomy for feature ranking and significance estimation.

Validation errors (statistic name, class count, empty groups) are raised
before any feature is scored. Per-feature numerical failures are recovered
locally as NaN scores; only the failure of a whole ranking pass escalates.
"""

from __future__ import annotations


class TopFeaturesError(Exception):
    """Base class for all errors raised by :mod:`top_features`."""


class UnsupportedStatistic(TopFeaturesError, ValueError):
    """The requested test statistic is not one of the supported families."""

    def __init__(self, name: str, supported: list[str] | tuple[str, ...]) -> None:
        self.name = name
        self.supported = tuple(supported)
        super().__init__(
            f"Unknown test statistic {name!r}. "
            f"Supported statistics: {', '.join(repr(s) for s in self.supported)}"
        )


class InvalidClassCount(TopFeaturesError, ValueError):
    """The statistic cannot be formed for the observed number of classes."""

    def __init__(self, name: str, num_classes: int, required: str) -> None:
        self.name = name
        self.num_classes = num_classes
        super().__init__(
            f"Test statistic {name!r} requires {required} classes, "
            f"but the grouping has {num_classes}."
        )


class EmptyGroup(TopFeaturesError, ValueError):
    """A class in ``1..K`` has no member objects."""

    def __init__(self, empty_groups: list[int]) -> None:
        self.empty_groups = list(empty_groups)
        super().__init__(
            "Group labels must assign at least one object to every class; "
            f"no members for group(s) {self.empty_groups}."
        )


class PerFeatureComputeFailure(TopFeaturesError):
    """Scoring a single feature failed.

    Raised inside the ranking engine and always recovered as a NaN score;
    callers see it only through :attr:`RankResult.failures`.
    """


class AllFeaturesFailed(TopFeaturesError):
    """Every feature failed to score in a ranking pass."""

    def __init__(self, n_features: int, statistic: str | None = None) -> None:
        self.n_features = n_features
        what = f" for {statistic}" if statistic else ""
        super().__init__(
            f"Error computing statistics{what}: all {n_features} features failed "
            "(may be due to missing data for this grouping)."
        )


class EmptyNullDistribution(TopFeaturesError):
    """Significance was requested without any pooled null scores."""

    def __init__(self) -> None:
        super().__init__(
            "No null scores are available: run the null estimation with "
            "num_rounds > 0 before computing p-values and q-values."
        )


class StaleDistanceCache(TopFeaturesError, ValueError):
    """A precomputed pairwise-distance artifact no longer matches the features."""
