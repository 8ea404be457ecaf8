"""Immutable chart descriptions.

Building a chart never touches matplotlib: every ``with_*`` call returns a new
value, and :mod:`covid_datavis.viz.render` turns the finished description into
an image in one go.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Union

import pandas as pd


@dataclass(frozen=True, eq=False)
class RasterLayer:
    """Heatmap of ``fill`` with one row per category of ``y`` and one column per ``x``."""

    data: pd.DataFrame
    x: str
    y: str
    fill: str
    y_order: tuple[Any, ...] = ()
    cmap: str = "magma"
    na_color: str = "black"
    colorbar_label: str = ""


@dataclass(frozen=True, eq=False)
class TileLayer:
    """Tiles spanning ``[y_lower, y_upper + 1)`` at each ``x`` date, coloured by ``fill``."""

    data: pd.DataFrame
    x: str
    y_lower: str
    y_upper: str
    fill: str
    cmap: str = "viridis"
    log_scale: bool = False
    vmin: float | None = None
    vmax: float | None = None
    y_ceiling: float | None = None
    colorbar_label: str = ""


@dataclass(frozen=True, eq=False)
class BarLayer:
    """Bars of ``y`` per ``x`` category, dodged side by side for each ``hue`` level."""

    data: pd.DataFrame
    x: str
    y: str
    hue: str
    hue_order: tuple[Any, ...] = ()
    hue_labels: tuple[str, ...] = ()
    colors: tuple[str, ...] = ()
    legend_title: str = ""


Layer = Union[RasterLayer, TileLayer, BarLayer]


@dataclass(frozen=True)
class Annotation:
    """Text (and optional arrow) placed in axes-fraction coordinates of one facet."""

    text: str
    xy: tuple[float, float]
    xytext: tuple[float, float] | None = None
    facet_index: int = 0
    fontsize: float = 9.0


@dataclass(frozen=True, eq=False)
class ChartSpec:
    title: str = ""
    xlabel: str = ""
    ylabel: str = ""
    caption: str = ""
    layers: tuple[Layer, ...] = ()
    annotations: tuple[Annotation, ...] = ()
    facet: str | None = None
    facet_order: tuple[Any, ...] = ()
    figsize: tuple[float, float] = (7.0, 6.0)
    xlim: tuple[Any, Any] | None = None
    ylim: tuple[float, float] | None = None
    hide_y_ticks: bool = False

    def with_layer(self, layer: Layer) -> ChartSpec:
        return replace(self, layers=(*self.layers, layer))

    def with_title(self, title: str) -> ChartSpec:
        return replace(self, title=title)

    def with_labels(self, *, x: str | None = None, y: str | None = None) -> ChartSpec:
        return replace(
            self,
            xlabel=self.xlabel if x is None else x,
            ylabel=self.ylabel if y is None else y,
        )

    def with_caption(self, caption: str) -> ChartSpec:
        return replace(self, caption=caption)

    def with_annotation(self, annotation: Annotation) -> ChartSpec:
        return replace(self, annotations=(*self.annotations, annotation))

    def with_facet(self, column: str, order: tuple[Any, ...] = ()) -> ChartSpec:
        return replace(self, facet=column, facet_order=tuple(order))

    def with_size(self, width: float, height: float) -> ChartSpec:
        return replace(self, figsize=(float(width), float(height)))

    def with_limits(
        self,
        *,
        x: tuple[Any, Any] | None = None,
        y: tuple[float, float] | None = None,
    ) -> ChartSpec:
        return replace(
            self,
            xlim=self.xlim if x is None else x,
            ylim=self.ylim if y is None else y,
        )

    def without_y_ticks(self) -> ChartSpec:
        return replace(self, hide_y_ticks=True)


@dataclass(frozen=True, eq=False)
class ChartGrid:
    """Panels stacked in a single column under a shared title and caption."""

    title: str = ""
    caption: str = ""
    panels: tuple[ChartSpec, ...] = ()
    figsize: tuple[float, float] = (9.0, 10.0)
    title_size: float = 18.0
    rel_heights: tuple[float, ...] = field(default_factory=tuple)

    def with_panel(self, panel: ChartSpec, height: float = 1.0) -> ChartGrid:
        heights = self.rel_heights or tuple(1.0 for _ in self.panels)
        return replace(self, panels=(*self.panels, panel), rel_heights=(*heights, float(height)))

    def with_title(self, title: str) -> ChartGrid:
        return replace(self, title=title)

    def with_caption(self, caption: str) -> ChartGrid:
        return replace(self, caption=caption)

    def with_size(self, width: float, height: float) -> ChartGrid:
        return replace(self, figsize=(float(width), float(height)))
