"""Have the same or different Swedish counties been hit in each wave?"""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from covid_datavis.config import AppConfig, AreaDeathsSwedenConfig
from covid_datavis.features.join import key_join
from covid_datavis.features.population import PopulationLookup
from covid_datavis.features.ranking import category_order, rank_first_wave
from covid_datavis.features.rates import RateMode, normalise_rates
from covid_datavis.io.read import read_delimited
from covid_datavis.io.schema import TableSchema, normalize_columns
from covid_datavis.io.write import write_tables
from covid_datavis.paths import OutputPaths
from covid_datavis.pipeline.stages import pipeline_stage
from covid_datavis.preprocess.clean import clean_records
from covid_datavis.viz.chart import Annotation, ChartSpec, RasterLayer
from covid_datavis.viz.render import render_chart

ANALYSIS = "area_deaths_sweden"
TITLE = "Has the second wave affected the same or different\nparts of Sweden?"
CAPTION = (
    "Death data from (https://c19.se/en/Sweden).\n"
    "Population sizes from (http://lacey.se/c19/).\n"
    "Code available at https://github.com/bobverity/COVID_datavis"
)


def load_sweden_deaths(cfg: AreaDeathsSwedenConfig) -> pd.DataFrame:
    columns = cfg.columns
    schema = TableSchema(
        columns=(columns.date, columns.region, columns.deaths),
        numeric=(columns.deaths,),
    )
    path = Path(cfg.input_path)
    raw = read_delimited(path, schema)
    renamed = normalize_columns(
        raw,
        {columns.date: "date", columns.region: "region", columns.deaths: "deaths"},
        source=path.name,
    )
    return renamed[["date", "region", "deaths"]]


def clean_sweden_deaths(deaths: pd.DataFrame, cfg: AreaDeathsSwedenConfig) -> pd.DataFrame:
    cleaned = clean_records(
        deaths,
        TableSchema(columns=("date", "region", "deaths"), dates={"date": cfg.date_format}),
        negative_columns=["deaths"],
    )
    return cleaned.loc[cleaned["date"] >= pd.Timestamp(cfg.start_date)].reset_index(drop=True)


def build_chart(observations: pd.DataFrame, region_order: list[object]) -> ChartSpec:
    return (
        ChartSpec()
        .with_layer(
            RasterLayer(
                data=observations,
                x="date",
                y="region",
                fill="deaths_per_100k",
                y_order=tuple(region_order),
                cmap="magma",
                na_color="black",
                colorbar_label="Daily deaths\nper 100,000\npopulation",
            )
        )
        .with_labels(x="Date (year 2020)", y="")
        .with_title(TITLE)
        .with_annotation(Annotation("Areas spared\nin first wave", xy=(-0.4, 0.05)))
        .with_annotation(Annotation("Areas hit hard\nin first wave", xy=(-0.4, 0.95)))
        .with_annotation(Annotation("", xy=(-0.4, 0.85), xytext=(-0.4, 0.45)))
        .with_annotation(Annotation("", xy=(-0.4, 0.15), xytext=(-0.4, 0.45)))
        .with_caption(CAPTION)
        .with_size(7, 6)
    )


def run(config: AppConfig, paths: OutputPaths) -> Path:
    cfg = config.area_deaths_sweden
    with pipeline_stage(ANALYSIS, "load"):
        deaths = load_sweden_deaths(cfg)
    with pipeline_stage(ANALYSIS, "clean"):
        deaths = clean_sweden_deaths(deaths, cfg)
    with pipeline_stage(ANALYSIS, "normalise"):
        lookup = PopulationLookup.from_mapping(cfg.populations)
        observations = normalise_rates(
            deaths,
            value_column="deaths",
            group_column="region",
            mode=RateMode.per_population,
            lookup=lookup,
            rate_column="deaths_per_100k",
        )
    with pipeline_stage(ANALYSIS, "rank"):
        ranking = rank_first_wave(
            observations,
            group_column="region",
            time_column="date",
            rate_column="deaths_per_100k",
            cutoff=cfg.first_wave_end,
        )
        observations = key_join(
            observations, ranking, on="region", unmatched="keep", name="first-wave ranking"
        )
        region_order = category_order(ranking, "region")
        observations["region"] = pd.Categorical(observations["region"], categories=region_order)
    if config.outputs.write_tables:
        with pipeline_stage(ANALYSIS, "write tables"):
            write_tables(
                {f"{ANALYSIS}_observations": observations, f"{ANALYSIS}_ranking": ranking},
                paths.tables,
                fmt=config.outputs.tables_format,
            )
    with pipeline_stage(ANALYSIS, "render"):
        return render_chart(
            build_chart(observations, region_order),
            paths.figures / f"{cfg.output_name}.{config.outputs.figures_format}",
            dpi=config.outputs.dpi,
        )
