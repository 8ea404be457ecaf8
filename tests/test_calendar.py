from __future__ import annotations

from datetime import date

import pandas as pd

from covid_datavis.preprocess.calendar import (
    pad_dates,
    smooth_complete_weeks,
    week_index,
    week_number_to_date,
    weekly_to_daily,
)


def test_week_index_counts_from_origin() -> None:
    dates = pd.Series(pd.to_datetime(["2020-01-02", "2020-01-03", "2020-01-09", "2020-01-10"]))

    weeks = week_index(dates, origin=date(2020, 1, 3))

    assert pd.isna(weeks.iloc[0])
    assert weeks.iloc[1:].tolist() == [1, 1, 2]


def test_week_number_to_date_returns_week_end() -> None:
    ends = week_number_to_date(pd.Series([1, 2, 30]))
    assert ends.tolist() == [
        pd.Timestamp("2020-01-03"),
        pd.Timestamp("2020-01-10"),
        pd.Timestamp("2020-07-24"),
    ]


def test_weekly_to_daily_divides_by_seven() -> None:
    weekly = pd.DataFrame({"age": ["00_04"], "deaths": [14.0]})
    daily = weekly_to_daily(weekly, ["deaths"])
    assert daily.loc[0, "deaths"] == 2.0
    assert weekly.loc[0, "deaths"] == 14.0


def test_smooth_complete_weeks_drops_partial_weeks_and_averages(caplog) -> None:
    days = pd.date_range("2020-01-03", "2020-01-17", freq="D")
    frame = pd.DataFrame(
        {
            "date": list(days) * 2,
            "age": ["00_04"] * len(days) + ["05_09"] * len(days),
            "cases": list(range(1, len(days) + 1)) + [10.0] * len(days),
        }
    )

    with caplog.at_level("WARNING"):
        smoothed = smooth_complete_weeks(
            frame,
            date_column="date",
            group_column="age",
            value_column="cases",
            origin=date(2020, 1, 3),
            n_groups=2,
        )

    # Two complete weeks survive; the single day of week three is dropped.
    assert len(smoothed) == 28
    assert smoothed["date"].max() == pd.Timestamp("2020-01-16")
    assert "Dropping 1 incomplete week(s) from 'cases'" in caplog.text
    young = smoothed.loc[smoothed["age"] == "00_04"]
    assert young.loc[young["week_no"] == 1, "cases"].unique().tolist() == [4.0]
    assert young.loc[young["week_no"] == 2, "cases"].unique().tolist() == [11.0]
    assert smoothed.loc[smoothed["age"] == "05_09", "cases"].unique().tolist() == [10.0]


def test_smooth_complete_weeks_treats_missing_group_rows_as_incomplete() -> None:
    days = pd.date_range("2020-01-03", "2020-01-09", freq="D")
    frame = pd.DataFrame(
        {
            "date": list(days) + list(days[:6]),
            "age": ["00_04"] * 7 + ["05_09"] * 6,
            "cases": [1.0] * 13,
        }
    )

    smoothed = smooth_complete_weeks(
        frame, date_column="date", group_column="age", value_column="cases", n_groups=2
    )

    assert smoothed.empty


def test_pad_dates_appends_constant_rows() -> None:
    coverage = pd.DataFrame(
        {
            "date": pd.to_datetime(["2021-01-01"]),
            "age": ["18_24"],
            "cov": [12.5],
        }
    )

    padded = pad_dates(
        coverage,
        date_column="date",
        group_column="age",
        value_column="cov",
        groups=["18_24", "90+"],
        start=date(2020, 1, 3),
        end=date(2020, 1, 5),
    )

    assert len(padded) == 1 + 2 * 3
    assert list(padded.columns) == ["date", "age", "cov"]
    padding = padded.iloc[1:]
    assert set(padding["cov"]) == {0.0}
    assert sorted(padding["age"].unique()) == ["18_24", "90+"]
    assert padding["date"].min() == pd.Timestamp("2020-01-03")
