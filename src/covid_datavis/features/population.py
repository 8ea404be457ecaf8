from __future__ import annotations

import math
from collections.abc import Hashable, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType

import numpy as np
import pandas as pd

from covid_datavis.io.schema import require_columns


@dataclass(frozen=True)
class PopulationLookup:
    """Read-only mapping from a group key to its population denominator."""

    populations: Mapping[Hashable, float]

    @classmethod
    def from_mapping(cls, mapping: Mapping[Hashable, float]) -> PopulationLookup:
        frozen = {key: float(value) for key, value in mapping.items()}
        return cls(populations=MappingProxyType(frozen))

    @classmethod
    def from_frame(cls, df: pd.DataFrame, *, key: str, value: str) -> PopulationLookup:
        require_columns(df, [key, value], source="population table")
        duplicated = df[key].duplicated(keep=False)
        if duplicated.any():
            keys = ", ".join(sorted({str(item) for item in df.loc[duplicated, key]}))
            raise ValueError(f"Population table has more than one entry for: {keys}")
        values = pd.to_numeric(df[value], errors="coerce")
        return cls.from_mapping(dict(zip(df[key], values)))

    def __len__(self) -> int:
        return len(self.populations)

    def population_for(self, groups: pd.Series) -> pd.Series:
        """Population per row; absent, zero or negative denominators come back as NaN."""
        values = groups.map(dict(self.populations)).astype(float)
        return values.where(values > 0)


def band_label(lower: float, upper: float) -> str:
    if math.isinf(upper):
        return f"{int(lower)}+"
    return f"{int(lower)} to {int(upper)}"


def aggregate_bands(
    pyramid: pd.DataFrame,
    breaks: Sequence[float],
    *,
    right: bool = False,
    include_lowest: bool = False,
    value_column: str = "all",
) -> pd.DataFrame:
    """Collapse single-year population rows into the age bands delimited by ``breaks``."""
    require_columns(pyramid, ["age_lower", "age_upper", value_column], source="population pyramid")
    working = pyramid.copy()
    working["age_band"] = pd.cut(
        working["age_lower"],
        bins=list(breaks),
        right=right,
        include_lowest=include_lowest,
    )
    working = working.dropna(subset=["age_band"])
    bands = (
        working.groupby("age_band", observed=True)
        .agg(
            age_lower=("age_lower", "min"),
            age_upper=("age_upper", "max"),
            pop=(value_column, "sum"),
        )
        .reset_index(drop=True)
    )
    bands["age_nice"] = [
        band_label(lower, upper) for lower, upper in zip(bands["age_lower"], bands["age_upper"])
    ]
    bands["age_nice"] = pd.Categorical(bands["age_nice"], categories=list(bands["age_nice"]))
    return bands.astype({"age_lower": np.float64, "age_upper": np.float64, "pop": np.float64})
