"""Classifier-based feature scores.

Each scorer fits a scikit-learn model of one kind on the training split of a
single feature and reports the (balanced) classification accuracy on the
test split, in percent.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import numpy as np
from sklearn.base import ClassifierMixin
from sklearn.discriminant_analysis import LinearDiscriminantAnalysis
from sklearn.metrics import accuracy_score, balanced_accuracy_score
from sklearn.naive_bayes import GaussianNB
from sklearn.svm import SVC


def _linear_discriminant() -> ClassifierMixin:
    return LinearDiscriminantAnalysis(solver="svd")


def _fast_linear_discriminant() -> ClassifierMixin:
    # Closed-form least-squares solve; no SVD per fit.
    return LinearDiscriminantAnalysis(solver="lsqr")


def _naive_bayes() -> ClassifierMixin:
    return GaussianNB()


def _linear_svm() -> ClassifierMixin:
    return SVC(kernel="linear", C=1.0)


# name -> (display name, model factory)
CLASSIFIER_FAMILIES: dict[str, tuple[str, Callable[[], ClassifierMixin]]] = {
    "linear": ("linear classifier", _linear_discriminant),
    "linclass": ("linear classifier", _linear_discriminant),
    "fast_linear": ("linear classifier", _fast_linear_discriminant),
    "diaglinear": ("Naive Bayes classifier", _naive_bayes),
    "svm": ("linear SVM classifier", _linear_svm),
    "svm_linear": ("linear SVM classifier", _linear_svm),
}


def _as_design_matrix(x: np.ndarray) -> np.ndarray:
    x = np.asarray(x, dtype=float)
    return x.reshape(-1, 1) if x.ndim == 1 else x


@dataclass(frozen=True)
class ClassifierScorer:
    """Accuracy (or balanced accuracy) of a freshly fitted classifier.

    Parameters
    ----------
    kind
        Key of :data:`CLASSIFIER_FAMILIES`.
    balanced
        Score the unweighted mean of per-class recall instead of the raw
        accuracy. Used when class sizes differ.
    """

    kind: str
    balanced: bool = False

    def score(
        self,
        train_x: np.ndarray,
        train_y: np.ndarray,
        test_x: np.ndarray,
        test_y: np.ndarray,
    ) -> float:
        _, factory = CLASSIFIER_FAMILIES[self.kind]
        model = factory()
        model.fit(_as_design_matrix(train_x), np.asarray(train_y))
        predicted = model.predict(_as_design_matrix(test_x))
        metric = balanced_accuracy_score if self.balanced else accuracy_score
        return 100.0 * float(metric(np.asarray(test_y), predicted))


__all__ = ["CLASSIFIER_FAMILIES", "ClassifierScorer"]
