"""Age profile of COVID-19 deaths with and without pre-existing conditions."""

from __future__ import annotations

import math
from pathlib import Path

import pandas as pd

from covid_datavis.config import AgeConditionsConfig, AppConfig
from covid_datavis.features.rates import RateMode, normalise_rates
from covid_datavis.io.read import read_delimited
from covid_datavis.io.schema import TableSchema, normalize_columns
from covid_datavis.io.write import write_tables
from covid_datavis.paths import OutputPaths
from covid_datavis.pipeline.stages import pipeline_stage
from covid_datavis.preprocess.clean import clean_records
from covid_datavis.viz.chart import BarLayer, ChartSpec
from covid_datavis.viz.render import render_chart

ANALYSIS = "age_conditions"
ANY_CONDITION = "Any_preexisting"
NO_CONDITION = "No_preexisting"
# First two colours of the ColorBrewer "Set1" palette.
SET1_COLORS = ("#E41A1C", "#377EB8")
TITLE = "Do pre-existing conditions explain the strong\nage-gradient in COVID-19 deaths?"
CAPTION = (
    "Data from ONS (https://tinyurl.com/y7zduhya) Table 6b (England only)\n"
    "code available at https://github.com/bobverity/COVID_datavis"
)


def load_condition_deaths(cfg: AgeConditionsConfig) -> pd.DataFrame:
    columns = cfg.columns
    schema = TableSchema(
        columns=(columns.age, columns.sex, columns.condition, columns.deaths),
        numeric=(columns.deaths,),
    )
    path = Path(cfg.input_path)
    raw = read_delimited(path, schema)
    renamed = normalize_columns(
        raw,
        {
            columns.age: "age",
            columns.sex: "sex",
            columns.condition: "condition",
            columns.deaths: "deaths",
        },
        source=path.name,
    )
    return renamed[["age", "sex", "condition", "deaths"]]


def condition_shares(deaths: pd.DataFrame, cfg: AgeConditionsConfig) -> pd.DataFrame:
    """Percentage of deaths falling in each age group, with and without conditions.

    Deaths with at least one condition are all deaths minus those with none.
    Each condition sums to 100% across ages.
    """
    age_order = list(deaths["age"].drop_duplicates())
    selected = clean_records(
        deaths,
        TableSchema(columns=("age", "sex", "condition", "deaths")),
        filters={
            "sex": [cfg.sex],
            "condition": [cfg.all_deaths_label, cfg.no_condition_label],
        },
    )
    wide = selected.pivot(index="age", columns="condition", values="deaths")
    wide = wide.reindex([age for age in age_order if age in wide.index])
    wide[ANY_CONDITION] = wide[cfg.all_deaths_label] - wide[cfg.no_condition_label]
    wide[NO_CONDITION] = wide[cfg.no_condition_label]

    long = (
        wide[[NO_CONDITION, ANY_CONDITION]]
        .reset_index()
        .melt(id_vars="age", var_name="conditions", value_name="deaths")
    )
    shares = normalise_rates(
        long,
        value_column="deaths",
        group_column="age",
        mode=RateMode.percent_of_total,
        window_columns=["conditions"],
        rate_column="deaths_pct",
    )
    shares["age"] = pd.Categorical(shares["age"], categories=list(wide.index))
    return shares


def build_chart(shares: pd.DataFrame) -> ChartSpec:
    peak = pd.to_numeric(shares["deaths_pct"], errors="coerce").max()
    upper = 25.0 if pd.isna(peak) else max(25.0, math.ceil(peak))
    return (
        ChartSpec()
        .with_layer(
            BarLayer(
                data=shares,
                x="age",
                y="deaths_pct",
                hue="conditions",
                hue_order=(ANY_CONDITION, NO_CONDITION),
                hue_labels=("At least one", "None"),
                colors=SET1_COLORS,
                legend_title="Pre-existing conditions",
            )
        )
        .with_labels(x="Age", y="COVID-19 Deaths (%)")
        .with_limits(y=(0.0, upper))
        .with_title(TITLE)
        .with_caption(CAPTION)
        .with_size(7, 5)
    )


def run(config: AppConfig, paths: OutputPaths) -> Path:
    cfg = config.age_conditions
    with pipeline_stage(ANALYSIS, "load"):
        deaths = load_condition_deaths(cfg)
    with pipeline_stage(ANALYSIS, "normalise"):
        shares = condition_shares(deaths, cfg)
    if config.outputs.write_tables:
        with pipeline_stage(ANALYSIS, "write tables"):
            write_tables({ANALYSIS: shares}, paths.tables, fmt=config.outputs.tables_format)
    with pipeline_stage(ANALYSIS, "render"):
        return render_chart(
            build_chart(shares),
            paths.figures / f"{cfg.output_name}.{config.outputs.figures_format}",
            dpi=config.outputs.dpi,
        )
