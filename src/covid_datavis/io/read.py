from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from pathlib import Path

import pandas as pd

from covid_datavis.io.schema import TableSchema, require_columns
from covid_datavis.preprocess.numeric import parse_numeric

LOGGER = logging.getLogger(__name__)


def read_delimited(path: Path, schema: TableSchema, *, sep: str = ",") -> pd.DataFrame:
    """Load a delimited file, check its columns and parse declared numeric columns.

    Cells that still fail to parse after stripping thousands separators become
    NaN; the load itself only fails when a declared column is absent.
    """
    # utf-8-sig strips BOM-prefixed headers commonly found in exported CSV files.
    df = pd.read_csv(path, sep=sep, encoding="utf-8-sig", dtype=str, keep_default_na=False)
    df.columns = [str(column).strip() for column in df.columns]
    require_columns(df, schema.columns, source=path.name)

    for column in schema.numeric:
        parsed = parse_numeric(df[column])
        if parsed.invalid_count:
            LOGGER.warning(
                "%s: %d non-numeric value(s) in %r treated as missing",
                path.name,
                parsed.invalid_count,
                column,
            )
        df[column] = parsed.values
    return df


def read_nested_json(
    path: Path,
    *,
    record_path: str,
    meta: Sequence[str],
    root_key: str = "data",
) -> pd.DataFrame:
    """Flatten ``{root_key: [{meta..., record_path: [...]}, ...]}`` into long records."""
    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)

    if root_key not in payload:
        raise ValueError(f"{path.name}: JSON payload has no '{root_key}' key")
    entries = payload[root_key]
    if not isinstance(entries, list):
        raise ValueError(f"{path.name}: '{root_key}' must be a list of entries")

    # Entries without the nested list contribute no records.
    entries = [entry for entry in entries if entry.get(record_path)]
    if not entries:
        return pd.DataFrame(columns=list(meta))
    return pd.json_normalize(entries, record_path=record_path, meta=list(meta))


def load_table(path: Path) -> pd.DataFrame:
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    if path.suffix == ".csv":
        return pd.read_csv(path)
    raise ValueError(f"Unsupported table file type: {path.suffix}")
