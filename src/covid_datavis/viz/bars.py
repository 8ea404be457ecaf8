from __future__ import annotations

import numpy as np
import pandas as pd
from matplotlib.axes import Axes

from covid_datavis.viz.chart import BarLayer

DODGE_WIDTH = 0.8


def _categories(series: pd.Series) -> list[object]:
    if isinstance(series.dtype, pd.CategoricalDtype):
        return list(series.cat.categories)
    return list(series.drop_duplicates())


def draw_bars(ax: Axes, layer: BarLayer) -> None:
    data = layer.data
    categories = [str(category) for category in _categories(data[layer.x])]
    hues = list(layer.hue_order) or list(data[layer.hue].drop_duplicates())
    width = DODGE_WIDTH / max(1, len(hues))
    positions = np.arange(len(categories), dtype=float)
    keys = data[layer.x].astype(str)
    values = pd.to_numeric(data[layer.y], errors="coerce")

    for index, level in enumerate(hues):
        selected = data[layer.hue] == level
        heights = values[selected].groupby(keys[selected]).sum(min_count=1).reindex(categories)
        offset = (index - (len(hues) - 1) / 2.0) * width
        ax.bar(
            positions + offset,
            heights.to_numpy(dtype=float),
            width=width,
            label=layer.hue_labels[index] if index < len(layer.hue_labels) else str(level),
            color=layer.colors[index] if index < len(layer.colors) else None,
        )

    ax.set_xticks(positions)
    ax.set_xticklabels(categories, rotation=45, ha="right")
    ax.legend(title=layer.legend_title or None, frameon=False)
