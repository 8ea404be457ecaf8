from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from covid_datavis.analyses import (
    age_conditions,
    age_vaccination,
    area_deaths_ons,
    area_deaths_sweden,
)
from covid_datavis.config import AppConfig
from covid_datavis.paths import OutputPaths

AnalysisRunner = Callable[[AppConfig, OutputPaths], Path]

ANALYSES: dict[str, AnalysisRunner] = {
    area_deaths_ons.ANALYSIS: area_deaths_ons.run,
    area_deaths_sweden.ANALYSIS: area_deaths_sweden.run,
    age_conditions.ANALYSIS: age_conditions.run,
    age_vaccination.ANALYSIS: age_vaccination.run,
}


def analysis_names() -> list[str]:
    return list(ANALYSES)


def get_analysis(name: str) -> AnalysisRunner:
    try:
        return ANALYSES[name]
    except KeyError:
        known = ", ".join(analysis_names())
        raise ValueError(f"Unknown analysis '{name}'. Available: {known}") from None
