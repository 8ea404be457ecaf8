from __future__ import annotations

from collections.abc import Sequence
from enum import Enum

import pandas as pd

from covid_datavis.features.population import PopulationLookup
from covid_datavis.io.schema import require_columns

PER_100K = 100_000.0


class RateMode(str, Enum):
    per_population = "per_population"
    percent_of_total = "percent_of_total"


def normalise_rates(
    observations: pd.DataFrame,
    *,
    value_column: str,
    group_column: str,
    mode: RateMode,
    lookup: PopulationLookup | None = None,
    window_columns: Sequence[str] = (),
    scale: float = PER_100K,
    rate_column: str = "rate",
) -> pd.DataFrame:
    """Add ``rate_column`` to a copy of ``observations``.

    ``per_population`` divides by the group's population and multiplies by
    ``scale``. ``percent_of_total`` expresses each value as a share of the sum
    over every group in the same window (rows with equal ``window_columns``).
    Rows whose population is absent or zero get a missing rate and, in
    percentage mode, do not count towards the window total.
    """
    mode = RateMode(mode)
    require_columns(observations, [value_column, group_column, *window_columns])
    working = observations.copy()
    values = pd.to_numeric(working[value_column], errors="coerce").astype(float)

    if mode is RateMode.per_population:
        if lookup is None:
            raise ValueError("A population lookup is required for per-population rates")
        population = lookup.population_for(working[group_column])
        working[rate_column] = values / population * scale
        return working

    if lookup is not None:
        values = values.where(lookup.population_for(working[group_column]).notna())
    if window_columns:
        totals = values.groupby(
            [working[column] for column in window_columns], dropna=False
        ).transform(lambda s: s.sum(min_count=1))
    else:
        totals = pd.Series(values.sum(min_count=1), index=working.index, dtype=float)
    working[rate_column] = 100.0 * values / totals.where(totals > 0)
    return working
