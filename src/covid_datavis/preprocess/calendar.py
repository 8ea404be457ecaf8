from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import date

import numpy as np
import pandas as pd

LOGGER = logging.getLogger(__name__)

# ONS week 1 of 2020 ended on Friday 3 January.
DEFAULT_WEEK_ORIGIN = date(2020, 1, 3)
DAYS_PER_WEEK = 7


def week_index(dates: pd.Series, origin: date = DEFAULT_WEEK_ORIGIN) -> pd.Series:
    """1-based week of each date in intervals ``[origin + 7(k-1), origin + 7k)``."""
    offsets = (pd.to_datetime(dates) - pd.Timestamp(origin)).dt.days
    weeks = (offsets // DAYS_PER_WEEK + 1).astype("Int64")
    return weeks.where(offsets >= 0)


def week_number_to_date(weeks: pd.Series, origin: date = DEFAULT_WEEK_ORIGIN) -> pd.Series:
    """Map a week number onto the calendar date that week ends on."""
    numbers = pd.to_numeric(weeks, errors="coerce")
    return pd.Timestamp(origin) + pd.to_timedelta((numbers - 1) * DAYS_PER_WEEK, unit="D")


def weekly_to_daily(
    df: pd.DataFrame, value_columns: Iterable[str], days: int = DAYS_PER_WEEK
) -> pd.DataFrame:
    working = df.copy()
    for column in value_columns:
        working[column] = working[column] / days
    return working


def smooth_complete_weeks(
    df: pd.DataFrame,
    *,
    date_column: str,
    group_column: str,
    value_column: str,
    origin: date = DEFAULT_WEEK_ORIGIN,
    n_groups: int | None = None,
) -> pd.DataFrame:
    """Keep fully covered weeks and replace daily values with each group's weekly mean.

    A week is complete when it holds one row per day for every group. Rows stay
    daily so the result shares a calendar axis with genuinely daily series.
    """
    working = df.copy()
    working["week_no"] = week_index(working[date_column], origin=origin)
    working = working.dropna(subset=["week_no"])
    if n_groups is None:
        n_groups = int(working[group_column].nunique())

    rows_per_week = working.groupby("week_no")[date_column].transform("size")
    complete = rows_per_week == DAYS_PER_WEEK * n_groups
    dropped_weeks = working.loc[~complete, "week_no"].nunique()
    if dropped_weeks:
        LOGGER.warning("Dropping %d incomplete week(s) from %r", dropped_weeks, value_column)
    working = working.loc[complete].copy()

    working[value_column] = working.groupby(["week_no", group_column])[value_column].transform(
        "mean"
    )
    return working.sort_values([date_column, group_column]).reset_index(drop=True)


def pad_dates(
    df: pd.DataFrame,
    *,
    date_column: str,
    group_column: str,
    value_column: str,
    groups: Sequence[object],
    start: date,
    end: date,
    fill: float = 0.0,
) -> pd.DataFrame:
    """Append a constant value for every group on every day in ``[start, end]``."""
    days = pd.date_range(start=start, end=end, freq="D")
    buffer = pd.MultiIndex.from_product(
        [list(groups), days], names=[group_column, date_column]
    ).to_frame(index=False)
    buffer[value_column] = np.float64(fill)
    columns = [date_column, group_column, value_column]
    return pd.concat([df[columns], buffer[columns]], ignore_index=True)
