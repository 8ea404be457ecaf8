from __future__ import annotations

import matplotlib.dates as mdates
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.axes import Axes
from matplotlib.cm import ScalarMappable
from matplotlib.colors import LogNorm, Normalize

from covid_datavis.viz.chart import RasterLayer, TileLayer

OPEN_BAND_WIDTH = 5.0


def _masked(matrix: np.ndarray, cmap_name: str, na_color: str) -> tuple[np.ma.MaskedArray, object]:
    cmap = plt.get_cmap(cmap_name).copy()
    cmap.set_bad(na_color)
    return np.ma.masked_invalid(matrix), cmap


def _is_datetime(values: pd.Index) -> bool:
    return pd.api.types.is_datetime64_any_dtype(values)


def _axis_positions(values: pd.Index) -> np.ndarray:
    if _is_datetime(values):
        return mdates.date2num(pd.DatetimeIndex(values).to_pydatetime())
    return np.asarray(values, dtype=float)


def _cell_edges(centres: np.ndarray) -> np.ndarray:
    if len(centres) == 1:
        return np.array([centres[0] - 0.5, centres[0] + 0.5])
    midpoints = (centres[:-1] + centres[1:]) / 2.0
    first = centres[0] - (midpoints[0] - centres[0])
    last = centres[-1] + (centres[-1] - midpoints[-1])
    return np.concatenate([[first], midpoints, [last]])


def _complete_axis(columns: pd.Index) -> pd.Index:
    """Fill gaps in a daily or whole-number axis so missing cells show as missing."""
    if columns.empty:
        return columns
    if _is_datetime(columns):
        return pd.date_range(columns.min(), columns.max(), freq="D")
    numbers = np.asarray(columns, dtype=float)
    if np.all(np.isfinite(numbers)) and np.all(numbers == np.round(numbers)):
        return pd.Index(np.arange(numbers.min(), numbers.max() + 1.0), dtype=columns.dtype)
    return columns


def raster_matrix(layer: RasterLayer) -> pd.DataFrame:
    data = layer.data
    categories = data[layer.y].astype(object)
    values = pd.to_numeric(data[layer.fill], errors="coerce")
    pivot = values.groupby([categories, data[layer.x]]).mean().unstack(layer.x)
    rows = list(layer.y_order) if layer.y_order else list(pivot.index)
    pivot = pivot.reindex(index=rows)
    return pivot.reindex(columns=_complete_axis(pivot.columns.sort_values()))


def raster_norm(layer: RasterLayer) -> Normalize:
    values = pd.to_numeric(layer.data[layer.fill], errors="coerce").to_numpy(dtype=float)
    finite = values[np.isfinite(values)]
    if finite.size == 0:
        return Normalize(vmin=0.0, vmax=1.0)
    return Normalize(vmin=float(finite.min()), vmax=float(finite.max()))


def draw_raster(
    ax: Axes, layer: RasterLayer, norm: Normalize | None = None
) -> ScalarMappable | None:
    if layer.data.empty:
        return None
    pivot = raster_matrix(layer)
    if pivot.empty or pivot.columns.empty:
        return None
    matrix, cmap = _masked(pivot.to_numpy(dtype=float), layer.cmap, layer.na_color)
    xs = _axis_positions(pivot.columns)
    step = float(xs[1] - xs[0]) if len(xs) > 1 else 1.0
    image = ax.imshow(
        matrix,
        aspect="auto",
        origin="lower",
        interpolation="nearest",
        cmap=cmap,
        norm=norm or raster_norm(layer),
        extent=(xs[0] - step / 2.0, xs[-1] + step / 2.0, -0.5, len(pivot.index) - 0.5),
    )
    ax.set_yticks(np.arange(len(pivot.index)))
    ax.set_yticklabels([str(label) for label in pivot.index], fontsize=7)
    if _is_datetime(pivot.columns):
        ax.xaxis_date()
    return image


def _tile_rows(layer: TileLayer) -> tuple[pd.DataFrame, np.ndarray]:
    data = layer.data.dropna(subset=[layer.x, layer.y_lower])
    values = pd.to_numeric(data[layer.fill], errors="coerce")
    pivot = (
        values.groupby([data[layer.y_lower], data[layer.y_upper], data[layer.x]])
        .mean()
        .unstack(layer.x)
        .sort_index()
    )
    pivot = pivot.reindex(columns=pivot.columns.sort_values())

    ceiling = np.inf if layer.y_ceiling is None else float(layer.y_ceiling)
    edges = [float(pivot.index[0][0])]
    rows: list[np.ndarray] = []
    band_width = OPEN_BAND_WIDTH
    blank = np.full(len(pivot.columns), np.nan)
    for (lower, upper), row in pivot.iterrows():
        lower = float(lower)
        if lower >= ceiling:
            break
        if lower > edges[-1]:
            rows.append(blank)
            edges.append(lower)
        rows.append(row.to_numpy(dtype=float))
        top = min(float(upper) + 1.0, ceiling)
        if np.isinf(top):
            # An open top band without a ceiling is drawn as wide as the band below it.
            top = lower + band_width
        band_width = top - lower
        edges.append(top)
    matrix = pd.DataFrame(np.vstack(rows), columns=pivot.columns)
    return matrix, np.asarray(edges, dtype=float)


def tile_norm(layer: TileLayer, values: np.ndarray) -> Normalize:
    finite = values[np.isfinite(values)]
    if layer.log_scale:
        positive = finite[finite > 0]
        if positive.size:
            return LogNorm(
                vmin=layer.vmin if layer.vmin is not None else float(positive.min()),
                vmax=layer.vmax if layer.vmax is not None else float(positive.max()),
            )
    vmin = layer.vmin if layer.vmin is not None else (float(finite.min()) if finite.size else 0.0)
    vmax = layer.vmax if layer.vmax is not None else (float(finite.max()) if finite.size else 1.0)
    return Normalize(vmin=vmin, vmax=vmax)


def draw_tiles(ax: Axes, layer: TileLayer) -> ScalarMappable | None:
    if layer.data.dropna(subset=[layer.x, layer.y_lower]).empty:
        return None
    matrix, y_edges = _tile_rows(layer)
    values = matrix.to_numpy(dtype=float)
    if layer.log_scale:
        # Zero counts have no place on a log scale; leave those tiles blank.
        values = np.where(values > 0, values, np.nan)
    masked, cmap = _masked(values, layer.cmap, "#d9d9d9")
    x_edges = _cell_edges(_axis_positions(matrix.columns))
    mesh = ax.pcolormesh(
        x_edges,
        y_edges,
        masked,
        cmap=cmap,
        norm=tile_norm(layer, values),
        shading="flat",
    )
    if _is_datetime(matrix.columns):
        ax.xaxis_date()
    return mesh
