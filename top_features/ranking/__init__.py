"""Feature ranking on real labels and the pooled permutation null."""

from .ranking_engine import (
    CostEstimate,
    RankResult,
    project_cost,
    rank_all,
    sort_scores,
)
from .null_estimator import (
    NullPool,
    SignificanceResult,
    compute_significance,
    empirical_p_values,
    estimate_null,
)

__all__ = [
    "CostEstimate",
    "RankResult",
    "project_cost",
    "rank_all",
    "sort_scores",
    "NullPool",
    "SignificanceResult",
    "compute_significance",
    "empirical_p_values",
    "estimate_null",
]
