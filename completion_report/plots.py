"""
completion_report/plots.py

Figures for the report: histograms of the engagement metrics, bar charts of
course category and completion counts, and the ROC curve. Every function
writes one PNG and returns its path.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd

from completion_report.data_dictionary import CATEGORY_COL, ENGAGEMENT_METRICS, TARGET
from completion_report.evaluation import ROCPoint


COLOR_NO = "#3B5BA5"   # did not complete (0)
COLOR_YES = "#E45756"  # completed (1)


def _save(fig: plt.Figure, out_dir: Path, filename: str) -> Path:
    out_dir.mkdir(parents=True, exist_ok=True)
    out = out_dir / filename
    fig.savefig(out, dpi=120, bbox_inches="tight")
    plt.close(fig)
    return out


def plot_histograms(
    df: pd.DataFrame,
    out_dir: Path,
    columns: Sequence[str] = ENGAGEMENT_METRICS,
    bins: int = 30,
) -> List[Path]:
    paths = []
    for c in columns:
        fig, ax = plt.subplots(figsize=(7, 4), constrained_layout=True)
        ax.hist(pd.to_numeric(df[c], errors="coerce").dropna(), bins=bins, color=COLOR_NO, edgecolor="white")
        ax.set_title(f"Distribution of {c}")
        ax.set_xlabel(c)
        ax.set_ylabel("count")
        paths.append(_save(fig, out_dir, f"hist_{c}.png"))
    return paths


def plot_bar_counts(df: pd.DataFrame, column: str, out_dir: Path) -> Path:
    counts = df[column].value_counts(dropna=True).sort_index()
    fig, ax = plt.subplots(figsize=(7, 4), constrained_layout=True)
    colors = [COLOR_NO, COLOR_YES] if column == TARGET and len(counts) == 2 else COLOR_NO
    ax.bar([str(i) for i in counts.index], counts.values, color=colors)
    ax.set_title(f"{column} counts")
    ax.set_xlabel(column)
    ax.set_ylabel("count")
    return _save(fig, out_dir, f"bar_{column}.png")


def plot_roc(points: Sequence[ROCPoint], auc_value: float, out_dir: Path, label: str = "model") -> Path:
    fig, ax = plt.subplots(figsize=(5, 5), constrained_layout=True)
    ax.plot([p.fpr for p in points], [p.tpr for p in points], color=COLOR_YES, label=f"{label} (AUC = {auc_value:.3f})")
    ax.plot([0, 1], [0, 1], linestyle="--", color="#6B7280", label="chance")
    ax.set_xlim(0, 1)
    ax.set_ylim(0, 1)
    ax.set_xlabel("False positive rate")
    ax.set_ylabel("True positive rate")
    ax.set_title("ROC curve")
    ax.legend(loc="lower right")
    return _save(fig, out_dir, "roc_curve.png")


def plot_exploration(df: pd.DataFrame, out_dir: Path) -> List[Path]:
    """Histograms of the engagement metrics plus category and completion bar charts."""
    paths = plot_histograms(df, out_dir)
    for c in [CATEGORY_COL, TARGET]:
        if c in df.columns:
            paths.append(plot_bar_counts(df, c, out_dir))
    return paths
