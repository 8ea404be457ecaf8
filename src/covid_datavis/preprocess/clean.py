from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

import pandas as pd

from covid_datavis.io.schema import TableSchema, require_columns

LOGGER = logging.getLogger(__name__)


def parse_dates(series: pd.Series, fmt: str) -> pd.Series:
    parsed = pd.to_datetime(series, format=fmt, errors="coerce")
    n_invalid = int((parsed.isna() & series.notna() & (series.astype(str).str.strip() != "")).sum())
    if n_invalid:
        LOGGER.warning("%d value(s) in %r do not match date format %s", n_invalid, series.name, fmt)
    return parsed


def apply_filters(df: pd.DataFrame, filters: Mapping[str, Sequence[str]]) -> pd.DataFrame:
    """Keep rows whose value in every filtered column is one of the allowed values."""
    require_columns(df, filters.keys())
    mask = pd.Series(True, index=df.index)
    for column, allowed in filters.items():
        mask &= df[column].isin(list(allowed))
    return df.loc[mask].copy()


def mask_negative_counts(df: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
    """Replace negative counts (corrections published as negative deltas) with NaN."""
    working = df.copy()
    for column in columns:
        values = pd.to_numeric(working[column], errors="coerce")
        negative = values < 0
        if negative.any():
            LOGGER.warning("Masking %d negative value(s) in %r", int(negative.sum()), column)
        working[column] = values.mask(negative)
    return working


def clean_records(
    df: pd.DataFrame,
    schema: TableSchema,
    *,
    filters: Mapping[str, Sequence[str]] | None = None,
    negative_columns: Iterable[str] = (),
) -> pd.DataFrame:
    require_columns(df, schema.columns)
    working = df.copy()
    for column, fmt in schema.dates.items():
        working[column] = parse_dates(working[column], fmt)
    if filters:
        working = apply_filters(working, filters)
    negative_columns = list(negative_columns)
    if negative_columns:
        working = mask_negative_counts(working, negative_columns)
    return working.reset_index(drop=True)
