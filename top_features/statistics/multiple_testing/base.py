"""Benjamini-Hochberg FDR correction.

References
----------
Benjamini, Y., and Hochberg, Y. (1995). Controlling the false discovery
rate: a practical and powerful approach to multiple testing. Journal of
the Royal Statistical Society Series B, 57, 289-300.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np
from statsmodels.stats.multitest import multipletests


def benjamini_hochberg_correction(
    p_values: np.ndarray, alpha: float = 0.05
) -> Tuple[np.ndarray, np.ndarray]:
    """Apply Benjamini-Hochberg FDR correction to p-values.

    NaN p-values (features that failed to score) are left out of the
    correction: they do not count towards the number of tests, keep a NaN
    q-value and are never rejected.

    Parameters
    ----------
    p_values : np.ndarray
        Array of p-values to correct
    alpha : float, default=0.05
        FDR level used for the rejection mask

    Returns
    -------
    rejected_hypotheses : np.ndarray (bool)
        Boolean array indicating which null hypotheses are rejected
    q_values : np.ndarray (float)
        FDR-adjusted p-values in ``[0, 1]``, aligned to the input

    Examples
    --------
    >>> import numpy as np
    >>> p_values = np.array([0.001, 0.01, 0.03, 0.05, 0.1])
    >>> rejected, q_values = benjamini_hochberg_correction(p_values)
    >>> rejected
    array([ True,  True,  True, False, False])
    """
    p_values_array = np.asarray(p_values, dtype=float)
    rejected_hypotheses = np.zeros(p_values_array.shape, dtype=bool)
    q_values = np.full(p_values_array.shape, np.nan, dtype=float)

    finite = np.isfinite(p_values_array)
    if not finite.any():
        return rejected_hypotheses, q_values

    rejected, adjusted, _, _ = multipletests(
        p_values_array[finite],
        alpha=alpha,
        method="fdr_bh",
        is_sorted=False,
        returnsorted=False,
    )

    rejected_hypotheses[finite] = rejected.astype(bool)
    q_values[finite] = np.clip(adjusted.astype(float), 0.0, 1.0)
    return rejected_hypotheses, q_values


__all__ = ["benjamini_hochberg_correction"]
