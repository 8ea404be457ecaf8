from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Literal

import pandas as pd

from covid_datavis.io.schema import require_columns

LOGGER = logging.getLogger(__name__)

UnmatchedPolicy = Literal["keep", "drop"]


def key_join(
    left: pd.DataFrame,
    right: pd.DataFrame,
    *,
    on: str | Sequence[str],
    unmatched: UnmatchedPolicy,
    name: str = "join",
) -> pd.DataFrame:
    """Many-to-one join on a declared key.

    ``unmatched="keep"`` keeps left rows without a partner (right-hand columns
    become missing); ``unmatched="drop"`` removes them. The right side must be
    unique on the key.
    """
    if unmatched not in ("keep", "drop"):
        raise ValueError(f"Unknown unmatched policy: {unmatched}")
    keys = [on] if isinstance(on, str) else list(on)
    require_columns(left, keys, source=f"{name} (left)")
    require_columns(right, keys, source=f"{name} (right)")

    duplicated = right.duplicated(subset=keys, keep=False)
    if duplicated.any():
        raise ValueError(
            f"{name}: right-hand table is not unique on {', '.join(keys)} "
            f"({int(duplicated.sum())} duplicated rows)"
        )

    merged = left.merge(right, on=keys, how="left", validate="many_to_one", indicator=True)
    is_unmatched = merged["_merge"] == "left_only"
    n_unmatched = int(is_unmatched.sum())
    if n_unmatched:
        LOGGER.warning(
            "%s: %d of %d row(s) have no match on %s (%s)",
            name,
            n_unmatched,
            len(merged),
            ", ".join(keys),
            "kept as missing" if unmatched == "keep" else "dropped",
        )
    if unmatched == "drop":
        merged = merged.loc[~is_unmatched]
    return merged.drop(columns="_merge").reset_index(drop=True)
