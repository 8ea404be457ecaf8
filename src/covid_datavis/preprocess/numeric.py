from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np
import pandas as pd

THOUSANDS_SEPARATOR = ","
INFINITY_TOKENS = {"inf": np.inf, "+inf": np.inf, "infinity": np.inf, "-inf": -np.inf}
# Written by R exports for missing values.
MISSING_TOKENS = ("NA",)


class CellStatus(str, Enum):
    ok = "ok"
    empty = "empty"
    invalid = "invalid"


@dataclass(frozen=True)
class NumericParse:
    """Parsed float values alongside the outcome of parsing each cell."""

    values: pd.Series
    status: pd.Series

    @property
    def invalid_count(self) -> int:
        return int((self.status == CellStatus.invalid.value).sum())

    @property
    def empty_count(self) -> int:
        return int((self.status == CellStatus.empty.value).sum())


def parse_numeric(series: pd.Series) -> NumericParse:
    text = series.astype("string").str.strip().str.replace(THOUSANDS_SEPARATOR, "", regex=False)
    blank = text.fillna("")
    empty = text.isna().to_numpy() | blank.eq("").to_numpy() | blank.isin(MISSING_TOKENS).to_numpy()

    tokens = pd.Series(text.fillna("").to_numpy(dtype=object), index=series.index)
    infinities = tokens.str.lower().map(INFINITY_TOKENS)
    values = pd.to_numeric(tokens, errors="coerce").astype(float)
    values = values.where(infinities.isna(), infinities.astype(float))

    invalid = ~empty & values.isna().to_numpy()
    status = pd.Series(
        np.select(
            [empty, invalid],
            [CellStatus.empty.value, CellStatus.invalid.value],
            default=CellStatus.ok.value,
        ),
        index=series.index,
        dtype=object,
    )
    return NumericParse(values=values.rename(series.name), status=status)
