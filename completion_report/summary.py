"""
completion_report/summary.py

Descriptive statistics for the loaded records: five-number summary plus mean
for numeric columns, level counts for categorical columns, and missing-value
counts. Nothing here raises on empty or partially missing data; counts are
reported and statistics fall back to NaN.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np
import pandas as pd

from completion_report.data_dictionary import CATEGORY_COL, TARGET
from completion_report.loader import infer_column_types


NUMERIC_STATS = ["count", "min", "q1", "median", "mean", "q3", "max"]


@dataclass(frozen=True)
class DatasetSummary:
    n_rows: int
    n_columns: int
    numeric: pd.DataFrame
    categorical: Dict[str, pd.Series]
    missing_by_column: pd.Series
    missing_total: int


def describe_numeric(df: pd.DataFrame, columns) -> pd.DataFrame:
    """One row per numeric column with count/min/q1/median/mean/q3/max."""
    rows = {}
    for c in columns:
        s = pd.to_numeric(df[c], errors="coerce").dropna()
        if s.empty:
            rows[c] = {"count": 0, **{k: np.nan for k in NUMERIC_STATS[1:]}}
            continue
        rows[c] = {
            "count": int(s.size),
            "min": float(s.min()),
            "q1": float(s.quantile(0.25)),
            "median": float(s.median()),
            "mean": float(s.mean()),
            "q3": float(s.quantile(0.75)),
            "max": float(s.max()),
        }
    return pd.DataFrame.from_dict(rows, orient="index", columns=NUMERIC_STATS)


def summarize(df: pd.DataFrame, column_types: Optional[Dict[str, str]] = None) -> DatasetSummary:
    """Summarize every column of df, using column_types when the loader already inferred them."""
    if column_types is None:
        column_types = infer_column_types(df)

    numeric_cols = [c for c in df.columns if column_types.get(c) == "numeric"]
    categorical_cols = [c for c in df.columns if column_types.get(c) == "categorical"]

    categorical = {c: df[c].value_counts(dropna=True) for c in categorical_cols}
    missing_by_column = df.isna().sum().astype(int)

    return DatasetSummary(
        n_rows=int(df.shape[0]),
        n_columns=int(df.shape[1]),
        numeric=describe_numeric(df, numeric_cols),
        categorical=categorical,
        missing_by_column=missing_by_column,
        missing_total=int(missing_by_column.sum()),
    )


def completion_rate_by_category(
    df: pd.DataFrame,
    category_col: str = CATEGORY_COL,
    target: str = TARGET,
) -> pd.DataFrame:
    """Users and completion rate per course category, highest rate first."""
    g = df.dropna(subset=[category_col, target]).groupby(category_col, observed=True)
    out = g.agg(users=(target, "size"), completion_rate=(target, "mean"))
    return out.sort_values("completion_rate", ascending=False)
