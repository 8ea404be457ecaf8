from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from covid_datavis.features.population import PopulationLookup
from covid_datavis.features.rates import PER_100K, RateMode, normalise_rates


def test_per_population_rates_scale_per_100k() -> None:
    observations = pd.DataFrame({"region": ["A", "A", "B"], "deaths": [10.0, 20.0, 5.0]})
    lookup = PopulationLookup.from_mapping({"A": 1000, "B": 200000})

    rated = normalise_rates(
        observations,
        value_column="deaths",
        group_column="region",
        mode=RateMode.per_population,
        lookup=lookup,
        rate_column="deaths_per_100k",
    )

    assert rated["deaths_per_100k"].tolist() == [1000.0, 2000.0, 2.5]
    assert "deaths_per_100k" not in observations.columns


def test_per_population_rates_are_linear_in_counts() -> None:
    observations = pd.DataFrame({"region": ["A", "B"], "deaths": [3.0, 7.0]})
    lookup = PopulationLookup.from_mapping({"A": 12345, "B": 678})

    base = normalise_rates(
        observations, value_column="deaths", group_column="region",
        mode="per_population", lookup=lookup,
    )
    doubled = normalise_rates(
        observations.assign(deaths=observations["deaths"] * 2),
        value_column="deaths", group_column="region",
        mode="per_population", lookup=lookup,
    )

    np.testing.assert_allclose(doubled["rate"], base["rate"] * 2)
    np.testing.assert_allclose(base["rate"], observations["deaths"] / [12345, 678] * PER_100K)


def test_per_population_rate_is_missing_without_a_positive_population() -> None:
    observations = pd.DataFrame({"region": ["A", "Z", "B"], "deaths": [1.0, 1.0, np.nan]})
    lookup = PopulationLookup.from_mapping({"A": 100, "Z": 0, "B": 100})

    rated = normalise_rates(
        observations, value_column="deaths", group_column="region",
        mode=RateMode.per_population, lookup=lookup,
    )

    assert rated["rate"].iloc[0] == 1000.0
    assert rated["rate"].iloc[1:].isna().all()


def test_per_population_requires_lookup() -> None:
    observations = pd.DataFrame({"region": ["A"], "deaths": [1.0]})
    with pytest.raises(ValueError, match="population lookup"):
        normalise_rates(
            observations, value_column="deaths", group_column="region",
            mode=RateMode.per_population,
        )


def test_percent_of_total_sums_to_100_per_window() -> None:
    observations = pd.DataFrame(
        {
            "age": ["0-44", "45-64", "65+", "0-44", "45-64", "65+"],
            "conditions": ["None"] * 3 + ["Any"] * 3,
            "deaths": [1.0, 3.0, 6.0, 10.0, 30.0, 160.0],
        }
    )

    shares = normalise_rates(
        observations,
        value_column="deaths",
        group_column="age",
        mode=RateMode.percent_of_total,
        window_columns=["conditions"],
        rate_column="deaths_pct",
    )

    totals = shares.groupby("conditions")["deaths_pct"].sum()
    np.testing.assert_allclose(totals.to_numpy(), [100.0, 100.0])
    assert shares["deaths_pct"].iloc[:3].tolist() == pytest.approx([10.0, 30.0, 60.0])
    assert shares["deaths_pct"].iloc[3:].tolist() == pytest.approx([5.0, 15.0, 80.0])


def test_percent_of_total_excludes_groups_without_population() -> None:
    observations = pd.DataFrame(
        {"region": ["A", "B", "C"], "week": [1, 1, 1], "deaths": [1.0, 3.0, 100.0]}
    )
    lookup = PopulationLookup.from_mapping({"A": 10, "B": 10, "C": 0})

    shares = normalise_rates(
        observations,
        value_column="deaths",
        group_column="region",
        mode=RateMode.percent_of_total,
        lookup=lookup,
        window_columns=["week"],
    )

    assert shares["rate"].iloc[:2].tolist() == pytest.approx([25.0, 75.0])
    assert np.isnan(shares["rate"].iloc[2])


def test_percent_of_total_with_zero_total_is_missing() -> None:
    observations = pd.DataFrame({"age": ["a", "b"], "deaths": [0.0, 0.0]})
    shares = normalise_rates(
        observations, value_column="deaths", group_column="age",
        mode=RateMode.percent_of_total,
    )
    assert shares["rate"].isna().all()
