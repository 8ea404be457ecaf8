from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

import pandas as pd


class SchemaError(ValueError):
    """Raised when a table lacks columns a pipeline step depends on."""

    def __init__(self, missing: Iterable[str], *, source: str | None = None) -> None:
        self.missing = list(missing)
        self.source = source
        missing_str = ", ".join(self.missing)
        location = f" in {source}" if source else ""
        super().__init__(f"Missing required columns{location}: {missing_str}")


@dataclass(frozen=True)
class TableSchema:
    """Columns a source must provide, and how to type them after loading."""

    columns: tuple[str, ...]
    numeric: tuple[str, ...] = ()
    dates: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        undeclared = [
            column
            for column in (*self.numeric, *self.dates)
            if column not in self.columns
        ]
        if undeclared:
            raise ValueError(f"Typed columns not declared in schema: {', '.join(undeclared)}")


def require_columns(
    df: pd.DataFrame, columns: Iterable[str], *, source: str | None = None
) -> pd.DataFrame:
    missing = [column for column in columns if column not in df.columns]
    if missing:
        raise SchemaError(missing, source=source)
    return df


def normalize_columns(
    df: pd.DataFrame, rename_map: Mapping[str, str], *, source: str | None = None
) -> pd.DataFrame:
    """Rename source columns to the canonical names used by the analyses."""
    require_columns(df, rename_map.keys(), source=source)
    return df.rename(columns=dict(rename_map))
