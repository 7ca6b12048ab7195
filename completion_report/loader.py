"""
completion_report/loader.py

Reads the engagement export into a DataFrame and checks it against the data
dictionary before any statistics are computed.

The loader fails fast: a short row or a missing column would otherwise be
padded with NaN by pandas and silently bias every downstream number.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Union

import pandas as pd
from pandas.api.types import is_numeric_dtype

from completion_report.data_dictionary import BINARY_COLUMNS, COLUMNS, ID_COL
from completion_report.errors import LoadError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadedDataset:
    """The loaded records plus what we learned about their columns."""
    frame: pd.DataFrame
    column_types: Dict[str, str]
    source: Path

    @property
    def n_rows(self) -> int:
        return int(self.frame.shape[0])

    @property
    def n_columns(self) -> int:
        return int(self.frame.shape[1])


def infer_column_types(df: pd.DataFrame) -> Dict[str, str]:
    """Map each column to "numeric" or "categorical" from its pandas dtype."""
    return {
        c: "numeric" if is_numeric_dtype(df[c]) and df[c].dtype != bool else "categorical"
        for c in df.columns
    }


def _check_row_widths(path: Path, sep: str, encoding: str) -> None:
    """Raise LoadError on the first data row whose field count differs from the header."""
    with path.open("r", encoding=encoding, newline="") as f:
        reader = csv.reader(f, delimiter=sep)
        header = next(reader, None)
        if not header:
            raise LoadError(f"{path} is empty (no header row).")

        width = len(header)
        for row in reader:
            if not row:
                continue
            if len(row) != width:
                raise LoadError(
                    f"{path}: line {reader.line_num} has {len(row)} fields, "
                    f"header has {width}."
                )


def _check_binary(df: pd.DataFrame, columns: Iterable[str]) -> None:
    for c in columns:
        values = pd.to_numeric(df[c], errors="coerce")
        bad = df[c].notna() & values.isna()
        unique = set(values.dropna().unique().tolist())
        if bad.any() or not unique.issubset({0, 1}):
            found = sorted(map(str, set(df.loc[df[c].notna(), c].unique().tolist())))
            raise LoadError(f"Column '{c}' must be binary 0/1. Found values: {found}")


def load_dataset(
    path: Union[str, Path],
    sep: str = ",",
    encoding: str = "utf-8",
    required_columns: List[str] = COLUMNS,
) -> LoadedDataset:
    """
    Load a delimited text file with a header row.

    Parameters
    ----------
    path : str | Path
        Location of the export.
    sep : str
        Field delimiter.
    encoding : str
        Text encoding of the file (UTF-8 by default).
    required_columns : list of str
        Header names that must be present.

    Returns
    -------
    LoadedDataset

    Raises
    ------
    LoadError
        If the file is missing or unreadable, if any data row has a different
        number of fields than the header, if a required column is absent, or
        if a binary column holds anything other than 0/1.
    """
    path = Path(path)
    if not path.exists():
        raise LoadError(f"Input file not found: {path}")
    if not path.is_file():
        raise LoadError(f"Input path is not a regular file: {path}")

    try:
        _check_row_widths(path, sep, encoding)
        df = pd.read_csv(path, sep=sep, encoding=encoding, skip_blank_lines=True)
    except LoadError:
        raise
    except (OSError, UnicodeDecodeError, csv.Error,
            pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise LoadError(f"Could not read {path}: {e}") from e

    df.columns = [str(c).strip() for c in df.columns]

    missing = [c for c in required_columns if c not in df.columns]
    if missing:
        raise LoadError(f"Missing required columns: {missing}")

    _check_binary(df, [c for c in BINARY_COLUMNS if c in df.columns])
    if ID_COL in df.columns and df[ID_COL].duplicated().any():
        dupes = df.loc[df[ID_COL].duplicated(), ID_COL].unique().tolist()
        logger.warning("%d duplicate %s values in %s (e.g. %s); every row is kept as a record",
                       len(dupes), ID_COL, path, dupes[:5])

    column_types = infer_column_types(df)
    logger.info("Loaded %d rows x %d columns from %s", df.shape[0], df.shape[1], path)
    for c, kind in column_types.items():
        logger.info("  %-24s %-12s (%s)", c, kind, df[c].dtype)

    return LoadedDataset(frame=df, column_types=column_types, source=path)
