from __future__ import annotations

from datetime import date
from typing import Any

import numpy as np
import pandas as pd

from covid_datavis.io.schema import require_columns


def rank_first_wave(
    observations: pd.DataFrame,
    *,
    group_column: str,
    time_column: str,
    rate_column: str,
    cutoff: Any,
) -> pd.DataFrame:
    """Rank groups by their mean rate over the rows strictly before ``cutoff``.

    Missing rates are ignored; a group with no usable rate before the cutoff
    has a missing mean and sorts after every group with a mean. Ties keep the
    order in which groups first appear in ``observations``. Returns one row per
    group with ``mean_early_rate`` and a dense ``rank`` starting at 1.
    """
    require_columns(observations, [group_column, time_column, rate_column])
    if isinstance(cutoff, date):
        cutoff = pd.Timestamp(cutoff)
    groups = pd.Index(observations[group_column].drop_duplicates(), name=group_column)

    early = observations.loc[observations[time_column] < cutoff]
    means = (
        pd.to_numeric(early[rate_column], errors="coerce")
        .groupby(early[group_column], sort=False)
        .mean()
        .reindex(groups)
    )

    ranking = (
        means.rename("mean_early_rate")
        .reset_index()
        .sort_values("mean_early_rate", kind="mergesort", na_position="last")
        .reset_index(drop=True)
    )
    ranking["rank"] = np.arange(1, len(ranking) + 1, dtype=int)
    return ranking


def category_order(ranking: pd.DataFrame, group_column: str | None = None) -> list[Any]:
    """Groups in rank order, lowest first-wave impact first."""
    column = group_column or ranking.columns[0]
    return ranking.sort_values("rank")[column].tolist()
