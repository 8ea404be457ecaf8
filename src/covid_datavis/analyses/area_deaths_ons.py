"""Have the same or different parts of England and Wales been hit in each wave?

Weekly ONS death registrations by local authority, place and cause are turned
into the proportion of deaths due to COVID-19, and areas are ordered by how
badly they were affected in the first wave.
"""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from covid_datavis.config import AppConfig, AreaDeathsOnsConfig
from covid_datavis.features.join import key_join
from covid_datavis.features.ranking import category_order, rank_first_wave
from covid_datavis.io.read import read_delimited
from covid_datavis.io.schema import TableSchema, normalize_columns
from covid_datavis.io.write import write_tables
from covid_datavis.paths import OutputPaths
from covid_datavis.pipeline.stages import pipeline_stage
from covid_datavis.preprocess.calendar import week_number_to_date
from covid_datavis.preprocess.clean import apply_filters
from covid_datavis.viz.chart import Annotation, ChartSpec, RasterLayer
from covid_datavis.viz.render import render_chart

ANALYSIS = "area_deaths_ons"
OBSERVATION_KEYS = ["area", "week", "place"]
TITLE = "Has the second wave affected the same or different\nparts of the UK?"
CAPTION = (
    "Data from ONS (https://tinyurl.com/y7vefxce). England and Wales only\n"
    "code available at www.github.com/bobverity/COVID_datavis"
)


def load_ons_deaths(cfg: AreaDeathsOnsConfig) -> pd.DataFrame:
    columns = cfg.columns
    schema = TableSchema(
        columns=(columns.area, columns.cause, columns.week, columns.place, columns.deaths),
        numeric=(columns.week, columns.deaths),
    )
    path = Path(cfg.input_path)
    raw = read_delimited(path, schema)
    renamed = normalize_columns(
        raw,
        {
            columns.area: "area",
            columns.cause: "cause",
            columns.week: "week",
            columns.place: "place",
            columns.deaths: "deaths",
        },
        source=path.name,
    )
    return renamed[["area", "cause", "week", "place", "deaths"]]


def covid_proportions(deaths: pd.DataFrame, cfg: AreaDeathsOnsConfig) -> pd.DataFrame:
    """Pair COVID-19 and all-cause deaths per area/week/place and take their ratio."""
    covid = (
        deaths.loc[deaths["cause"] == cfg.covid_cause]
        .drop(columns="cause")
        .rename(columns={"deaths": "deaths_covid"})
    )
    all_causes = (
        deaths.loc[deaths["cause"] == cfg.all_cause]
        .drop(columns="cause")
        .rename(columns={"deaths": "deaths_all"})
    )
    paired = key_join(
        covid,
        all_causes,
        on=OBSERVATION_KEYS,
        unmatched="drop",
        name="COVID-19 vs all-cause deaths",
    )
    paired = apply_filters(paired, {"place": cfg.places})
    paired["place"] = pd.Categorical(paired["place"], categories=cfg.places)
    paired["prop_covid"] = paired["deaths_covid"] / paired["deaths_all"].where(
        paired["deaths_all"] > 0
    )
    paired["week_ending"] = week_number_to_date(paired["week"])
    return paired.reset_index(drop=True)


def build_chart(
    observations: pd.DataFrame, area_order: list[object], places: list[str]
) -> ChartSpec:
    return (
        ChartSpec()
        .with_layer(
            RasterLayer(
                data=observations,
                x="week",
                y="area",
                fill="prop_covid",
                y_order=tuple(area_order),
                cmap="magma",
                na_color="black",
                colorbar_label="Proportion\ndeaths due to\nCOVID-19",
            )
        )
        .with_facet("place", tuple(places))
        .with_labels(x="Week (year 2020)", y="")
        .without_y_ticks()
        .with_title(TITLE)
        .with_annotation(Annotation("Areas spared\nin first wave", xy=(-0.3, 0.04)))
        .with_annotation(Annotation("Areas hit hard\nin first wave", xy=(-0.3, 0.96)))
        .with_annotation(Annotation("", xy=(-0.3, 0.88), xytext=(-0.3, 0.5)))
        .with_annotation(Annotation("", xy=(-0.3, 0.12), xytext=(-0.3, 0.5)))
        .with_caption(CAPTION)
        .with_size(7, 6)
    )


def run(config: AppConfig, paths: OutputPaths) -> Path:
    cfg = config.area_deaths_ons
    with pipeline_stage(ANALYSIS, "load"):
        deaths = load_ons_deaths(cfg)
    with pipeline_stage(ANALYSIS, "normalise"):
        observations = covid_proportions(deaths, cfg)
    with pipeline_stage(ANALYSIS, "rank"):
        # Weeks up to and including the last first-wave week.
        ranking = rank_first_wave(
            observations,
            group_column="area",
            time_column="week",
            rate_column="prop_covid",
            cutoff=cfg.first_wave_last_week + 1,
        )
        observations = key_join(
            observations, ranking, on="area", unmatched="keep", name="first-wave ranking"
        )
        area_order = category_order(ranking, "area")
        observations["area"] = pd.Categorical(observations["area"], categories=area_order)
    if config.outputs.write_tables:
        with pipeline_stage(ANALYSIS, "write tables"):
            write_tables(
                {f"{ANALYSIS}_observations": observations, f"{ANALYSIS}_ranking": ranking},
                paths.tables,
                fmt=config.outputs.tables_format,
            )
    with pipeline_stage(ANALYSIS, "render"):
        chart = build_chart(observations, area_order, cfg.places)
        return render_chart(
            chart,
            paths.figures / f"{cfg.output_name}.{config.outputs.figures_format}",
            dpi=config.outputs.dpi,
        )
