from __future__ import annotations

from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any

import matplotlib.dates as mdates
import matplotlib.pyplot as plt
import pandas as pd
from matplotlib.axes import Axes
from matplotlib.cm import ScalarMappable
from matplotlib.colors import Normalize
from matplotlib.figure import Figure

from covid_datavis.viz.bars import draw_bars
from covid_datavis.viz.chart import BarLayer, ChartGrid, ChartSpec, Layer, RasterLayer, TileLayer
from covid_datavis.viz.common import DEFAULT_DPI, save_figure
from covid_datavis.viz.heatmaps import draw_raster, draw_tiles, raster_norm

CAPTION_LINE_HEIGHT = 0.025


def _draw_layer(ax: Axes, layer: Layer, norm: Normalize | None = None) -> ScalarMappable | None:
    if isinstance(layer, RasterLayer):
        return draw_raster(ax, layer, norm=norm)
    if isinstance(layer, TileLayer):
        return draw_tiles(ax, layer)
    if isinstance(layer, BarLayer):
        draw_bars(ax, layer)
        return None
    raise TypeError(f"Unsupported chart layer: {type(layer).__name__}")


def _axis_value(value: Any) -> Any:
    if isinstance(value, (date, pd.Timestamp)):
        return mdates.date2num(pd.Timestamp(value).to_pydatetime())
    return value


def _apply_limits(ax: Axes, chart: ChartSpec) -> None:
    if chart.xlim is not None:
        ax.set_xlim(_axis_value(chart.xlim[0]), _axis_value(chart.xlim[1]))
    if chart.ylim is not None:
        ax.set_ylim(*chart.ylim)
    if chart.hide_y_ticks:
        ax.set_yticks([])


def _add_caption(fig: Figure, caption: str) -> float:
    if not caption:
        return 0.0
    fig.text(0.01, 0.01, caption, ha="left", va="bottom", fontsize=8)
    return CAPTION_LINE_HEIGHT * (caption.count("\n") + 1.5)


def _facet_values(chart: ChartSpec) -> list[Any]:
    if chart.facet is None:
        return [None]
    if chart.facet_order:
        return list(chart.facet_order)
    for layer in chart.layers:
        if chart.facet in layer.data.columns:
            return list(layer.data[chart.facet].drop_duplicates())
    raise ValueError(f"No chart layer has the facet column {chart.facet!r}")


def _draw_chart(fig: Figure, panel_axes: list[Axes], chart: ChartSpec, facets: list[Any]) -> float:
    # Facets share one colour scale so their colours are comparable.
    norms = {
        id(layer): raster_norm(layer) for layer in chart.layers if isinstance(layer, RasterLayer)
    }
    mappable: ScalarMappable | None = None
    colorbar_label = ""
    for ax, facet_value in zip(panel_axes, facets):
        for layer in chart.layers:
            norm = norms.get(id(layer))
            if facet_value is not None:
                layer = replace(layer, data=layer.data[layer.data[chart.facet] == facet_value])
            drawn = _draw_layer(ax, layer, norm=norm)
            if drawn is not None:
                mappable = drawn
                colorbar_label = getattr(layer, "colorbar_label", "")
        if facet_value is not None:
            ax.set_title(str(facet_value), fontsize=10, fontweight="bold")
        ax.set_xlabel(chart.xlabel)
        _apply_limits(ax, chart)
    panel_axes[0].set_ylabel(chart.ylabel)

    for annotation in chart.annotations:
        panel_axes[annotation.facet_index].annotate(
            annotation.text,
            xy=annotation.xy,
            xytext=annotation.xytext,
            xycoords="axes fraction",
            textcoords="axes fraction",
            ha="center",
            va="center",
            fontsize=annotation.fontsize,
            annotation_clip=False,
            arrowprops={"arrowstyle": "->"} if annotation.xytext is not None else None,
        )

    if mappable is not None:
        fig.colorbar(mappable, ax=panel_axes, label=colorbar_label)
    if chart.title:
        fig.suptitle(chart.title)
    return _add_caption(fig, chart.caption)


def _draw_grid(fig: Figure, panel_axes: list[Axes], grid: ChartGrid) -> float:
    for ax, panel in zip(panel_axes, grid.panels):
        mappable: ScalarMappable | None = None
        colorbar_label = ""
        for layer in panel.layers:
            drawn = _draw_layer(ax, layer)
            if drawn is not None:
                mappable = drawn
                colorbar_label = getattr(layer, "colorbar_label", "")
        ax.set_title(panel.title, loc="left")
        ax.set_xlabel(panel.xlabel)
        ax.set_ylabel(panel.ylabel)
        _apply_limits(ax, panel)
        if mappable is not None:
            fig.colorbar(mappable, ax=ax, label=colorbar_label)

    if grid.title:
        fig.suptitle(grid.title, fontsize=grid.title_size)
    return _add_caption(fig, grid.caption)


def render_chart(chart: ChartSpec, output_path: Path, *, dpi: int = DEFAULT_DPI) -> Path:
    facets = _facet_values(chart)
    fig, axes = plt.subplots(1, len(facets), figsize=chart.figsize, sharey=True, squeeze=False)
    try:
        bottom_margin = _draw_chart(fig, list(axes[0]), chart, facets)
        return save_figure(output_path, dpi=dpi, bottom_margin=bottom_margin)
    finally:
        plt.close(fig)


def render_grid(grid: ChartGrid, output_path: Path, *, dpi: int = DEFAULT_DPI) -> Path:
    if not grid.panels:
        raise ValueError("Chart grid has no panels to render")
    heights = list(grid.rel_heights) or [1.0] * len(grid.panels)
    fig, axes = plt.subplots(
        len(grid.panels),
        1,
        figsize=grid.figsize,
        squeeze=False,
        gridspec_kw={"height_ratios": heights},
    )
    try:
        bottom_margin = _draw_grid(fig, list(axes[:, 0]), grid)
        return save_figure(output_path, dpi=dpi, bottom_margin=bottom_margin)
    finally:
        plt.close(fig)
