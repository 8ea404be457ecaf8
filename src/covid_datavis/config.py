from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Regional population sizes credited to http://lacey.se/c19/
SWEDEN_COUNTY_POPULATIONS = {
    "Stockholm": 2344124,
    "Västmanland": 273929,
    "Värmland": 281482,
    "Örebro": 302252,
    "Jämtland": 130280,
    "Blekinge": 159684,
    "Uppsala": 376354,
    "Sörmland": 294695,
    "Östergötland": 461583,
    "Gotland": 59249,
    "Jönköping": 360825,
    "Kronoberg": 199886,
    "Västernorrland": 245453,
    "Kalmar": 244670,
    "Skåne": 1362164,
    "Halland": 329352,
    "Gävleborg": 286547,
    "Västra Götaland": 1709814,
    "Dalarna": 287191,
    "Västerbotten": 270154,
    "Norrbotten": 250497,
}


class OnsColumnsConfig(BaseModel):
    area: str = "Area name"
    cause: str = "Cause of death"
    week: str = "Week number"
    place: str = "Place of death"
    deaths: str = "Number of deaths"


class AreaDeathsOnsConfig(BaseModel):
    input_path: str = "data/ons_week47.csv"
    columns: OnsColumnsConfig = Field(default_factory=OnsColumnsConfig)
    covid_cause: str = "COVID 19"
    all_cause: str = "All causes"
    places: list[str] = Field(default_factory=lambda: ["Hospital", "Care home", "Home"])
    first_wave_last_week: int = Field(default=30, ge=1, le=53)
    output_name: str = "prop_covid_deaths_by_area"

    @field_validator("places")
    @classmethod
    def _validate_places(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("places must list at least one place of death")
        duplicated = sorted({place for place in value if value.count(place) > 1})
        if duplicated:
            raise ValueError(f"places must be unique; repeated: {', '.join(duplicated)}")
        return value


class SwedenColumnsConfig(BaseModel):
    date: str = "Date"
    region: str = "Region"
    deaths: str = "Deaths_today"


class AreaDeathsSwedenConfig(BaseModel):
    input_path: str = "data/Sweden.csv"
    columns: SwedenColumnsConfig = Field(default_factory=SwedenColumnsConfig)
    date_format: str = "%d/%m/%y"
    start_date: date = date(2020, 3, 13)
    first_wave_end: date = date(2020, 9, 1)
    populations: dict[str, int] = Field(default_factory=lambda: dict(SWEDEN_COUNTY_POPULATIONS))
    output_name: str = "Sweden_deaths_by_area"


class ConditionsColumnsConfig(BaseModel):
    age: str = "Age"
    sex: str = "Sex"
    condition: str = "Main pre-existing condition"
    deaths: str = "Number of deaths"


class AgeConditionsConfig(BaseModel):
    input_path: str = "data/referencetables_6b.csv"
    columns: ConditionsColumnsConfig = Field(default_factory=ConditionsColumnsConfig)
    sex: str = "Persons"
    all_deaths_label: str = "All deaths involving COVID-19"
    no_condition_label: str = "No pre-existing condition"
    output_name: str = "age_conditions"


class AgeVaccinationConfig(BaseModel):
    cases_path: str = "data/nation_E92000001_2021-07-21.csv"
    deaths_path: str = "data/age_deaths.csv"
    hospitalisations_path: str = "data/England_age_hospitalisation.csv"
    vaccination_path: str = "data/vaccination.json"
    population_path: str = "data/population_pyramid.csv"
    cases_date_format: str = "%Y-%m-%d"
    deaths_date_format: str = "%d/%m/%Y"
    hospitalisations_date_format: str = "%d/%m/%Y"
    vaccination_date_format: str = "%Y-%m-%d"
    coverage_field: str = "cumVaccinationCompleteCoverageByVaccinationDatePercentage"
    week_origin: date = date(2020, 1, 3)
    vaccination_pad_start: date = date(2020, 1, 3)
    vaccination_pad_end: date = date(2020, 12, 7)
    plot_start: date = date(2020, 2, 1)
    age_ceiling: int = Field(default=95, ge=1)
    output_name: str = "age_vaccination"


class OutputsConfig(BaseModel):
    tables_format: Literal["parquet", "csv"] = "parquet"
    figures_format: str = "png"
    write_tables: bool = True
    dpi: int = Field(default=150, ge=50)


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    area_deaths_ons: AreaDeathsOnsConfig = Field(default_factory=AreaDeathsOnsConfig)
    area_deaths_sweden: AreaDeathsSwedenConfig = Field(default_factory=AreaDeathsSwedenConfig)
    age_conditions: AgeConditionsConfig = Field(default_factory=AgeConditionsConfig)
    age_vaccination: AgeVaccinationConfig = Field(default_factory=AgeVaccinationConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _resolve_path(path_value: str, base_dir: Path) -> str:
    candidate = Path(path_value)
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    base_dir = path.resolve().parent

    config.area_deaths_ons.input_path = _resolve_path(config.area_deaths_ons.input_path, base_dir)
    config.area_deaths_sweden.input_path = _resolve_path(
        config.area_deaths_sweden.input_path, base_dir
    )
    config.age_conditions.input_path = _resolve_path(config.age_conditions.input_path, base_dir)

    vaccination = config.age_vaccination
    vaccination.cases_path = _resolve_path(vaccination.cases_path, base_dir)
    vaccination.deaths_path = _resolve_path(vaccination.deaths_path, base_dir)
    vaccination.hospitalisations_path = _resolve_path(vaccination.hospitalisations_path, base_dir)
    vaccination.vaccination_path = _resolve_path(vaccination.vaccination_path, base_dir)
    vaccination.population_path = _resolve_path(vaccination.population_path, base_dir)
    return config
