"""
completion_report/evaluation.py

Scores records with a fitted model and measures discrimination:
  - predicted probability = inverse-logit of the linear predictor
  - confusion matrix at a threshold (score >= threshold is "completed")
  - ROC curve over every distinct score, and AUC two ways

The trapezoidal AUC and the rank-based concordance AUC (Mann-Whitney, ties
counted as half) are the same number; both are reported so the report can
show they agree.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.special import expit
from scipy.stats import rankdata
from sklearn.metrics import auc, confusion_matrix, roc_curve

from completion_report.errors import DegenerateLabelsError
from completion_report.modeling import FittedModel, complete_rows, linear_predictor


DEFAULT_THRESHOLD = 0.5


@dataclass(frozen=True)
class ROCPoint:
    threshold: float
    fpr: float
    tpr: float


@dataclass(frozen=True)
class ConfusionMatrix:
    threshold: float
    tp: int
    fp: int
    tn: int
    fn: int

    @property
    def total(self) -> int:
        return self.tp + self.fp + self.tn + self.fn

    @property
    def accuracy(self) -> float:
        return (self.tp + self.tn) / self.total if self.total else float("nan")

    @property
    def precision(self) -> float:
        return self.tp / (self.tp + self.fp) if (self.tp + self.fp) else float("nan")

    @property
    def recall(self) -> float:
        return self.tp / (self.tp + self.fn) if (self.tp + self.fn) else float("nan")

    @property
    def specificity(self) -> float:
        return self.tn / (self.tn + self.fp) if (self.tn + self.fp) else float("nan")

    def as_dict(self) -> dict:
        return {
            "threshold": float(self.threshold),
            "tp": self.tp,
            "fp": self.fp,
            "tn": self.tn,
            "fn": self.fn,
            "accuracy": self.accuracy,
            "precision": self.precision,
            "recall": self.recall,
            "specificity": self.specificity,
        }


@dataclass(frozen=True)
class Evaluation:
    probabilities: pd.Series
    labels: pd.Series
    confusion: ConfusionMatrix
    roc: Tuple[ROCPoint, ...]
    auc_trapezoid: float
    auc_concordance: float


def _as_arrays(labels, scores) -> Tuple[np.ndarray, np.ndarray]:
    y = np.asarray(labels, dtype=int)
    s = np.asarray(scores, dtype=float)
    if y.shape != s.shape:
        raise ValueError(f"labels and scores differ in shape: {y.shape} vs {s.shape}")
    return y, s


def _require_both_classes(y: np.ndarray) -> None:
    classes = np.unique(y)
    if classes.size < 2:
        raise DegenerateLabelsError(
            f"Labels contain a single class {classes.tolist()}; ROC and AUC are undefined."
        )


def predict_proba(model: FittedModel, df: pd.DataFrame) -> pd.Series:
    """P(target = 1) for each row of df."""
    eta = linear_predictor(model, df)
    return pd.Series(expit(eta.to_numpy()), index=df.index, name="probability")


def confusion_counts(labels, scores, threshold: float = DEFAULT_THRESHOLD) -> ConfusionMatrix:
    """Confusion matrix with "score >= threshold" as the positive prediction."""
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold must be within [0, 1], got {threshold}")
    y, s = _as_arrays(labels, scores)
    y_pred = (s >= threshold).astype(int)
    cm = confusion_matrix(y, y_pred, labels=[0, 1])
    return ConfusionMatrix(
        threshold=float(threshold),
        tn=int(cm[0, 0]),
        fp=int(cm[0, 1]),
        fn=int(cm[1, 0]),
        tp=int(cm[1, 1]),
    )


def roc_points(labels, scores) -> Tuple[ROCPoint, ...]:
    """
    ROC curve over every distinct score, ordered by increasing threshold.

    The first point is the lowest threshold (everything predicted positive,
    FPR = TPR = 1); the last is above the highest score (FPR = TPR = 0).
    """
    y, s = _as_arrays(labels, scores)
    _require_both_classes(y)
    fpr, tpr, thresholds = roc_curve(y, s, drop_intermediate=False)
    return tuple(
        ROCPoint(threshold=float(t), fpr=float(f), tpr=float(r))
        for t, f, r in zip(thresholds[::-1], fpr[::-1], tpr[::-1])
    )


def auc_trapezoid(points: Sequence[ROCPoint]) -> float:
    """Area under the ROC curve by the trapezoidal rule."""
    # integrate left to right so the segment widths telescope to exactly 1
    ordered = sorted(points, key=lambda p: (p.fpr, p.tpr))
    fpr = np.array([p.fpr for p in ordered])
    tpr = np.array([p.tpr for p in ordered])
    return float(auc(fpr, tpr))


def auc_concordance(labels, scores) -> float:
    """P(score of a random positive > score of a random negative), ties counted half."""
    y, s = _as_arrays(labels, scores)
    _require_both_classes(y)
    ranks = rankdata(s)
    n_pos = int(y.sum())
    n_neg = int(y.size - n_pos)
    u = ranks[y == 1].sum() - n_pos * (n_pos + 1) / 2.0
    return float(u / (n_pos * n_neg))


def evaluate(model: FittedModel, df: pd.DataFrame, threshold: float = DEFAULT_THRESHOLD) -> Evaluation:
    """
    Score df with model and compute every discrimination measure.

    Only rows complete in the model's target and predictors are scored.

    Raises
    ------
    DegenerateLabelsError
        If the scored rows contain a single class.
    """
    data = complete_rows(model, df)
    labels = data[model.target].astype(int)
    _require_both_classes(labels.to_numpy())

    proba = predict_proba(model, data)
    points = roc_points(labels, proba)

    return Evaluation(
        probabilities=proba,
        labels=labels,
        confusion=confusion_counts(labels, proba, threshold),
        roc=points,
        auc_trapezoid=auc_trapezoid(points),
        auc_concordance=auc_concordance(labels, proba),
    )
