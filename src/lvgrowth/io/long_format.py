# src/lvgrowth/io/long_format.py
from __future__ import annotations

from pathlib import Path
from typing import Sequence, Union

import pandas as pd


def read_long_table(path: Union[str, Path]) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(str(path))
    suffix = path.suffix.lower()
    if suffix == ".xlsx":
        return pd.read_excel(path, engine="openpyxl")
    if suffix == ".xls":
        raise ValueError(f"Legacy .xls workbooks are not supported, save {path.name} as .xlsx or .csv")
    return pd.read_csv(path)


def standardize_long(
    df_long: pd.DataFrame,
    time_col: str = "Time",
    x_col: str = "X",
    group_cols: Sequence[str] = (),
) -> pd.DataFrame:
    """
    Required columns: group_cols..., time_col, x_col.
    Coerces Time and X to numbers, drops rows where either is missing and
    sorts by group then Time.
    """
    group_cols = list(group_cols)
    needed = group_cols + [time_col, x_col]
    missing = [c for c in needed if c not in df_long.columns]
    if missing:
        raise ValueError(f"Long DF missing required columns {missing}. Got: {df_long.columns.tolist()}")

    out = df_long[needed].copy()
    out[time_col] = pd.to_numeric(out[time_col], errors="coerce")
    out[x_col] = pd.to_numeric(out[x_col], errors="coerce")
    out = out.dropna(subset=[time_col, x_col]).copy()

    return out.sort_values(group_cols + [time_col], kind="stable").reset_index(drop=True)
