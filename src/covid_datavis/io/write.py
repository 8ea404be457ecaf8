from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

import pandas as pd

LOGGER = logging.getLogger(__name__)

TABLE_SUFFIXES = {"parquet": ".parquet", "csv": ".csv"}


def table_path(directory: Path, name: str, fmt: str = "parquet") -> Path:
    if fmt not in TABLE_SUFFIXES:
        raise ValueError(f"Unsupported table format: {fmt}")
    return directory / f"{name}{TABLE_SUFFIXES[fmt]}"


def write_table(df: pd.DataFrame, path: Path, fmt: str = "parquet") -> Path:
    """Persist an intermediate table so a later analysis can reuse it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "parquet":
        df.to_parquet(path, index=False)
    elif fmt == "csv":
        df.to_csv(path, index=False)
    else:
        raise ValueError(f"Unsupported table format: {fmt}")
    LOGGER.info("Wrote %d rows to %s", len(df), path)
    return path


def write_tables(
    tables: Mapping[str, pd.DataFrame], directory: Path, fmt: str = "parquet"
) -> list[Path]:
    return [
        write_table(table, table_path(directory, name, fmt), fmt=fmt)
        for name, table in tables.items()
    ]
