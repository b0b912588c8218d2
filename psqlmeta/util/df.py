"""Utilities to work with Pandas data frames"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Sequence
from typing import Any, Optional

import pandas as pd


def _df_from_rows(rows: Collection[Sequence[Any]], column_names: Sequence[str]) -> pd.DataFrame:
    df_container: dict[str, list[Any]] = {col: [] for col in column_names}
    for row in rows:
        if len(row) != len(column_names):
            raise ValueError(f"Row {row} does not match columns {list(column_names)}")
        for col, value in zip(column_names, row):
            df_container[col].append(value)
    return pd.DataFrame(df_container)


def _df_from_list(data: Collection[dict[Any, Any]]) -> pd.DataFrame:
    data_template = next(iter(data))
    df_container: dict[str, list[Any]] = {col: [] for col in data_template.keys()}
    for row in data:
        for key in df_container.keys():
            df_container[key].append(row[key])
    return pd.DataFrame(df_container)


def as_df(
    data: Collection[Sequence[Any]] | Collection[dict[Any, Any]],
    *,
    column_names: Optional[Iterable[str]] = None,
) -> pd.DataFrame:
    """Generates a new Pandas `DataFrame`.

    The contents of the dataframe can be supplied in one of two forms: a collection of dictionaries will be transformed
    into a dataframe such that each dictionary corresponds to one row of the dataframe. All dictionaries have to
    consist of exactly the same key-value pairs. Each key becomes a column in the dataframe. The precise columns are
    inferred from the first dictionary in the collection.

    The other form consists of plain rows (e.g. tuples fetched from a cursor). In this case, `column_names` is required and
    every row has to provide exactly one value per column. Column names are preserved even if there are no rows at all,
    which is the common case for empty catalog listings.
    """
    column_names = list(column_names) if column_names is not None else None
    if not data:
        return pd.DataFrame({col: [] for col in column_names}) if column_names else pd.DataFrame()
    first_row = next(iter(data))
    if isinstance(first_row, dict):
        return _df_from_list(data)
    elif column_names is None:
        raise ValueError("Column names are required to build a data frame from plain rows")
    return _df_from_rows(data, column_names)
