"""How does age interact with vaccination to explain current trends?

Cases, hospitalisations and deaths for England are aligned on a daily calendar
axis, normalised per 100,000 people in each age band, and shown against the
proportion of each band that is fully vaccinated.
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

import numpy as np
import pandas as pd

from covid_datavis.config import AgeVaccinationConfig, AppConfig
from covid_datavis.features.join import key_join
from covid_datavis.features.population import PopulationLookup, aggregate_bands
from covid_datavis.features.rates import RateMode, normalise_rates
from covid_datavis.io.read import read_delimited, read_nested_json
from covid_datavis.io.schema import TableSchema, require_columns
from covid_datavis.io.write import write_tables
from covid_datavis.paths import OutputPaths
from covid_datavis.pipeline.stages import pipeline_stage
from covid_datavis.preprocess.calendar import pad_dates, smooth_complete_weeks, weekly_to_daily
from covid_datavis.preprocess.clean import clean_records, parse_dates
from covid_datavis.preprocess.numeric import parse_numeric
from covid_datavis.viz.chart import ChartGrid, ChartSpec, TileLayer
from covid_datavis.viz.render import render_grid

LOGGER = logging.getLogger(__name__)

ANALYSIS = "age_vaccination"
VACCINATION_RECORDS = "vaccinationsAgeDemographics"
FIVE_YEAR_BREAKS = list(range(0, 105, 5))
HOSPITALISATION_BREAKS = [0, 5, 17, 64, 84, np.inf]
TITLE = "How does age interact with vaccination to explain\ncurrent trends?"
CAPTION = "Code and full data description available at https://github.com/bobverity/COVID_datavis"


def _bands(labels: list[str], lowers: list[float], uppers: list[float]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "age": labels,
            "age_lower": np.asarray(lowers, dtype=float),
            "age_upper": np.asarray(uppers, dtype=float),
        }
    )


CASE_BANDS = _bands(
    [f"{lower:02d}_{lower + 4:02d}" for lower in range(0, 90, 5)] + ["90+"],
    list(range(0, 95, 5)),
    list(range(4, 90, 5)) + [np.inf],
)
HOSPITALISATION_BANDS = _bands(
    ["0_5", "6_17", "18_64", "65_84", "85_999"],
    [0, 6, 18, 65, 85],
    [5, 17, 64, 84, np.inf],
)
VACCINATION_BANDS = _bands(
    ["18_24"] + [f"{lower}_{lower + 4}" for lower in range(25, 90, 5)] + ["90+"],
    [18] + list(range(25, 95, 5)),
    list(range(24, 90, 5)) + [np.inf],
)


def _read_age_series(path: Path, value: str, date_format: str) -> pd.DataFrame:
    schema = TableSchema(columns=("date", "age", value), numeric=(value,))
    raw = read_delimited(path, schema)
    cleaned = clean_records(
        raw[["date", "age", value]],
        TableSchema(columns=("date", "age", value), dates={"date": date_format}),
    )
    return cleaned.dropna(subset=["date"])


def _attach_bands(df: pd.DataFrame, bands: pd.DataFrame, name: str) -> pd.DataFrame:
    # Aggregate rows such as "00_59" or "unassigned" have no band and are dropped.
    return key_join(df, bands, on="age", unmatched="drop", name=name)


def load_cases(cfg: AgeVaccinationConfig) -> pd.DataFrame:
    cases = _read_age_series(Path(cfg.cases_path), "cases", cfg.cases_date_format)
    cases = _attach_bands(cases, CASE_BANDS, "cases age bands")
    return smooth_complete_weeks(
        cases,
        date_column="date",
        group_column="age",
        value_column="cases",
        origin=cfg.week_origin,
        n_groups=len(CASE_BANDS),
    ).drop(columns="week_no")


def load_deaths(cfg: AgeVaccinationConfig) -> pd.DataFrame:
    deaths = _read_age_series(Path(cfg.deaths_path), "deaths", cfg.deaths_date_format)
    deaths = _attach_bands(deaths, CASE_BANDS, "deaths age bands")
    # Weekly registrations become average daily deaths.
    return weekly_to_daily(deaths, ["deaths"])


def load_hospitalisations(cfg: AgeVaccinationConfig) -> pd.DataFrame:
    labels = tuple(HOSPITALISATION_BANDS["age"])
    schema = TableSchema(columns=("date", *labels), numeric=labels)
    raw = read_delimited(Path(cfg.hospitalisations_path), schema)
    cleaned = clean_records(
        raw[["date", *labels]],
        TableSchema(columns=("date", *labels), dates={"date": cfg.hospitalisations_date_format}),
    ).dropna(subset=["date"])
    long = cleaned.melt(id_vars="date", var_name="age", value_name="hospitalisations")
    return _attach_bands(long, HOSPITALISATION_BANDS, "hospitalisation age bands")


def load_vaccination(cfg: AgeVaccinationConfig) -> pd.DataFrame:
    records = read_nested_json(
        Path(cfg.vaccination_path), record_path=VACCINATION_RECORDS, meta=["date"]
    )
    require_columns(records, ["date", "age", cfg.coverage_field], source="vaccination payload")
    coverage = pd.DataFrame(
        {
            "date": parse_dates(records["date"], cfg.vaccination_date_format),
            "age": records["age"],
            "cov": parse_numeric(records[cfg.coverage_field]).values,
        }
    ).dropna(subset=["date"])
    # Nobody was vaccinated before roll-out began.
    padded = pad_dates(
        coverage,
        date_column="date",
        group_column="age",
        value_column="cov",
        groups=list(coverage["age"].drop_duplicates()),
        start=cfg.vaccination_pad_start,
        end=cfg.vaccination_pad_end,
        fill=0.0,
    )
    return _attach_bands(padded, VACCINATION_BANDS, "vaccination age bands")


def load_population(cfg: AgeVaccinationConfig) -> pd.DataFrame:
    schema = TableSchema(
        columns=("age_lower", "age_upper", "all"),
        numeric=("age_lower", "age_upper", "all"),
    )
    return read_delimited(Path(cfg.population_path), schema)


def per_100k(
    observations: pd.DataFrame, bands: pd.DataFrame, value_column: str, rate_column: str
) -> pd.DataFrame:
    lookup = PopulationLookup.from_frame(bands, key="age_lower", value="pop")
    return normalise_rates(
        observations,
        value_column=value_column,
        group_column="age_lower",
        mode=RateMode.per_population,
        lookup=lookup,
        rate_column=rate_column,
    )


def _latest(*frames: pd.DataFrame) -> date:
    latest = max(frame["date"].max() for frame in frames if not frame.empty)
    return pd.Timestamp(latest).date()


def _panel(
    title: str,
    layer: TileLayer,
    xlim: tuple[date, date],
    age_ceiling: int,
) -> ChartSpec:
    return (
        ChartSpec(title=title)
        .with_layer(layer)
        .with_labels(x="Date", y="Age")
        .with_limits(x=xlim, y=(0.0, float(age_ceiling)))
    )


def build_grid(tables: dict[str, pd.DataFrame], cfg: AgeVaccinationConfig) -> ChartGrid:
    xlim = (
        cfg.plot_start,
        _latest(tables["cases"], tables["deaths"], tables["vaccination"]),
    )
    ceiling = cfg.age_ceiling
    panels = [
        _panel(
            "Vaccination",
            TileLayer(
                data=tables["vaccination"],
                x="date",
                y_lower="age_lower",
                y_upper="age_upper",
                fill="cov",
                cmap="magma",
                vmin=0.0,
                vmax=100.0,
                y_ceiling=ceiling,
                colorbar_label="Proportion fully\nvaccinated (%)",
            ),
            xlim,
            ceiling,
        ),
        _panel(
            "Cases",
            TileLayer(
                data=tables["cases"],
                x="date",
                y_lower="age_lower",
                y_upper="age_upper",
                fill="cases_per_100k",
                cmap="coolwarm",
                y_ceiling=ceiling,
                colorbar_label="Daily cases\nper 100 thousand\n(linear scale)",
            ),
            xlim,
            ceiling,
        ),
        _panel(
            "Hospitalisations",
            TileLayer(
                data=tables["hospitalisations"],
                x="date",
                y_lower="age_lower",
                y_upper="age_upper",
                fill="hosps_per_100k",
                cmap="coolwarm",
                log_scale=True,
                y_ceiling=ceiling,
                colorbar_label="Daily hospitalisations\nper 100 thousand\n(log scale)",
            ),
            xlim,
            ceiling,
        ),
        _panel(
            "Deaths",
            TileLayer(
                data=tables["deaths"],
                x="date",
                y_lower="age_lower",
                y_upper="age_upper",
                fill="deaths_per_100k",
                cmap="coolwarm",
                log_scale=True,
                y_ceiling=ceiling,
                colorbar_label="Daily deaths\nper 100 thousand\n(log scale)",
            ),
            xlim,
            ceiling,
        ),
    ]
    grid = ChartGrid(title=TITLE, caption=CAPTION, figsize=(9.0, 10.0))
    for panel in panels:
        grid = grid.with_panel(panel)
    return grid


def run(config: AppConfig, paths: OutputPaths) -> Path:
    cfg = config.age_vaccination
    with pipeline_stage(ANALYSIS, "load"):
        cases = load_cases(cfg)
        deaths = load_deaths(cfg)
        hospitalisations = load_hospitalisations(cfg)
        vaccination = load_vaccination(cfg)
        pyramid = load_population(cfg)
    with pipeline_stage(ANALYSIS, "normalise"):
        five_year = aggregate_bands(pyramid, FIVE_YEAR_BREAKS, right=False)
        hospital_bands = aggregate_bands(
            pyramid, HOSPITALISATION_BREAKS, right=True, include_lowest=True
        )
        tables = {
            "cases": per_100k(cases, five_year, "cases", "cases_per_100k"),
            "deaths": per_100k(deaths, five_year, "deaths", "deaths_per_100k"),
            "hospitalisations": per_100k(
                hospitalisations, hospital_bands, "hospitalisations", "hosps_per_100k"
            ),
            "vaccination": vaccination,
        }
    if config.outputs.write_tables:
        with pipeline_stage(ANALYSIS, "write tables"):
            write_tables(
                {f"{ANALYSIS}_{name}": table for name, table in tables.items()},
                paths.tables,
                fmt=config.outputs.tables_format,
            )
    with pipeline_stage(ANALYSIS, "render"):
        return render_grid(
            build_grid(tables, cfg),
            paths.figures / f"{cfg.output_name}.{config.outputs.figures_format}",
            dpi=config.outputs.dpi,
        )
