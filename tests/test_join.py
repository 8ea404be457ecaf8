from __future__ import annotations

import pandas as pd
import pytest

from covid_datavis.features.join import key_join


def _left() -> pd.DataFrame:
    return pd.DataFrame({"area": ["A", "B", "C"], "deaths": [1, 2, 3]})


def _right() -> pd.DataFrame:
    return pd.DataFrame({"area": ["A", "B"], "population": [100.0, 200.0]})


def test_key_join_keep_retains_unmatched_rows(caplog) -> None:
    with caplog.at_level("WARNING"):
        joined = key_join(_left(), _right(), on="area", unmatched="keep", name="areas")

    assert joined["area"].tolist() == ["A", "B", "C"]
    assert joined["population"].iloc[:2].tolist() == [100.0, 200.0]
    assert pd.isna(joined["population"].iloc[2])
    assert "_merge" not in joined.columns
    assert "areas: 1 of 3 row(s) have no match on area (kept as missing)" in caplog.text


def test_key_join_drop_removes_unmatched_rows() -> None:
    joined = key_join(_left(), _right(), on="area", unmatched="drop")

    assert joined["area"].tolist() == ["A", "B"]
    assert joined.index.tolist() == [0, 1]


def test_key_join_supports_composite_keys() -> None:
    left = pd.DataFrame(
        {"area": ["A", "A"], "week": [1, 2], "place": ["Home", "Home"], "covid": [1, 4]}
    )
    right = pd.DataFrame({"area": ["A"], "week": [2], "place": ["Home"], "all": [8]})

    joined = key_join(left, right, on=["area", "week", "place"], unmatched="drop")

    assert joined.to_dict(orient="records") == [
        {"area": "A", "week": 2, "place": "Home", "covid": 4, "all": 8}
    ]


def test_key_join_rejects_duplicate_right_keys() -> None:
    right = pd.DataFrame({"area": ["A", "A"], "population": [1.0, 2.0]})
    with pytest.raises(ValueError, match="not unique on area"):
        key_join(_left(), right, on="area", unmatched="keep")


def test_key_join_rejects_unknown_policy() -> None:
    with pytest.raises(ValueError, match="Unknown unmatched policy"):
        key_join(_left(), _right(), on="area", unmatched="inner")  # type: ignore[arg-type]
