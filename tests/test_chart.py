from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest
from matplotlib.colors import LogNorm

from covid_datavis.viz.chart import (
    Annotation,
    BarLayer,
    ChartGrid,
    ChartSpec,
    RasterLayer,
    TileLayer,
)
from covid_datavis.viz.heatmaps import _tile_rows, raster_matrix, tile_norm
from covid_datavis.viz.render import render_chart, render_grid


def _raster_frame() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "area": ["A", "A", "B", "B", "A", "B"],
            "week": [1.0, 2.0, 1.0, 2.0, 4.0, 4.0],
            "place": ["Home", "Home", "Home", "Home", "Hospital", "Hospital"],
            "prop_covid": [0.1, 0.2, np.nan, 0.4, 0.5, 0.6],
        }
    )


def test_builder_returns_new_values() -> None:
    base = ChartSpec()
    titled = base.with_title("Title")
    labelled = titled.with_labels(x="Week")
    annotated = labelled.with_annotation(Annotation("note", xy=(0.5, 0.5)))

    assert base.title == ""
    assert titled.title == "Title"
    assert titled.xlabel == ""
    assert labelled.xlabel == "Week"
    assert labelled.ylabel == ""
    assert labelled.annotations == ()
    assert len(annotated.annotations) == 1

    grid = ChartGrid()
    extended = grid.with_panel(base).with_panel(titled, height=2.0)
    assert grid.panels == ()
    assert extended.rel_heights == (1.0, 2.0)


def test_raster_matrix_orders_rows_and_fills_missing_columns() -> None:
    layer = RasterLayer(
        data=_raster_frame(), x="week", y="area", fill="prop_covid", y_order=("B", "A")
    )

    matrix = raster_matrix(layer)

    assert matrix.index.tolist() == ["B", "A"]
    assert matrix.columns.tolist() == [1.0, 2.0, 3.0, 4.0]
    assert np.isnan(matrix.loc["B", 1.0])
    assert matrix[3.0].isna().all()
    assert matrix.loc["A", 4.0] == 0.5


def test_tile_norm_uses_log_scale_for_positive_values() -> None:
    layer = TileLayer(
        data=pd.DataFrame(), x="date", y_lower="lo", y_upper="hi", fill="v", log_scale=True
    )
    norm = tile_norm(layer, np.array([0.0, 0.5, 20.0, np.nan]))

    assert isinstance(norm, LogNorm)
    assert norm.vmin == 0.5
    assert norm.vmax == 20.0


def test_render_chart_with_facets_writes_file(tmp_path: Path) -> None:
    chart = (
        ChartSpec()
        .with_layer(
            RasterLayer(data=_raster_frame(), x="week", y="area", fill="prop_covid")
        )
        .with_facet("place", ("Hospital", "Home"))
        .with_title("Raster")
        .with_caption("caption line 1\ncaption line 2")
        .with_annotation(Annotation("Top", xy=(-0.3, 0.9)))
        .with_annotation(Annotation("", xy=(-0.3, 0.8), xytext=(-0.3, 0.5)))
        .without_y_ticks()
    )
    output_path = tmp_path / "raster.png"

    result = render_chart(chart, output_path, dpi=60)

    assert result == output_path
    assert output_path.exists()


def test_render_chart_with_bars_writes_file(tmp_path: Path) -> None:
    shares = pd.DataFrame(
        {
            "age": pd.Categorical(["0-44", "45-64", "0-44", "45-64"], categories=["0-44", "45-64"]),
            "conditions": ["Any", "Any", "None", "None"],
            "deaths_pct": [20.0, 80.0, 40.0, 60.0],
        }
    )
    chart = (
        ChartSpec()
        .with_layer(
            BarLayer(
                data=shares,
                x="age",
                y="deaths_pct",
                hue="conditions",
                hue_order=("Any", "None"),
                colors=("#E41A1C", "#377EB8"),
            )
        )
        .with_limits(y=(0.0, 100.0))
    )
    output_path = tmp_path / "bars.png"

    assert render_chart(chart, output_path, dpi=60) == output_path
    assert output_path.exists()


def test_render_grid_writes_file(tmp_path: Path) -> None:
    dates = pd.date_range("2021-01-01", periods=4, freq="D")
    tiles = pd.DataFrame(
        {
            "date": list(dates) * 2,
            "age_lower": [0.0] * 4 + [90.0] * 4,
            "age_upper": [4.0] * 4 + [np.inf] * 4,
            "rate": [1.0, 2.0, 0.0, 4.0, 5.0, 6.0, 7.0, 8.0],
        }
    )
    linear = TileLayer(
        data=tiles, x="date", y_lower="age_lower", y_upper="age_upper", fill="rate", y_ceiling=95
    )
    logged = TileLayer(
        data=tiles,
        x="date",
        y_lower="age_lower",
        y_upper="age_upper",
        fill="rate",
        log_scale=True,
        y_ceiling=95,
    )
    grid = (
        ChartGrid(title="Grid", caption="caption")
        .with_panel(ChartSpec(title="Linear").with_layer(linear).with_limits(y=(0.0, 95.0)))
        .with_panel(ChartSpec(title="Log").with_layer(logged))
    )
    output_path = tmp_path / "grid.png"

    assert render_grid(grid, output_path, dpi=60) == output_path
    assert output_path.exists()


def _open_top_tiles() -> pd.DataFrame:
    dates = pd.date_range("2021-01-01", periods=3, freq="D")
    return pd.DataFrame(
        {
            "date": list(dates) * 2,
            "age_lower": [85.0] * 3 + [90.0] * 3,
            "age_upper": [89.0] * 3 + [np.inf] * 3,
            "rate": [1.0, 2.0, 3.0, 4.0, 5.0, 6.0],
        }
    )


def test_open_top_band_without_ceiling_gets_finite_edge() -> None:
    layer = TileLayer(
        data=_open_top_tiles(), x="date", y_lower="age_lower", y_upper="age_upper", fill="rate"
    )

    matrix, edges = _tile_rows(layer)

    assert matrix.shape == (2, 3)
    assert edges.tolist() == [85.0, 90.0, 95.0]


def test_render_grid_with_open_top_band_and_no_ceiling(tmp_path: Path) -> None:
    layer = TileLayer(
        data=_open_top_tiles(),
        x="date",
        y_lower="age_lower",
        y_upper="age_upper",
        fill="rate",
        log_scale=True,
    )
    output_path = tmp_path / "open_top.png"

    assert render_grid(ChartGrid().with_panel(ChartSpec().with_layer(layer)), output_path, dpi=60)
    assert output_path.exists()


def test_render_chart_closes_figure_when_drawing_fails(tmp_path: Path) -> None:
    open_before = plt.get_fignums()
    broken = BarLayer(
        data=pd.DataFrame({"age": ["0-44"], "conditions": ["Any"]}),
        x="age",
        y="deaths_pct",
        hue="conditions",
    )

    with pytest.raises(KeyError):
        render_chart(ChartSpec().with_layer(broken), tmp_path / "broken.png", dpi=60)

    assert plt.get_fignums() == open_before
    assert not (tmp_path / "broken.png").exists()
