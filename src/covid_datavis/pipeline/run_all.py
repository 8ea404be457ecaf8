from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from covid_datavis.analyses.registry import analysis_names, get_analysis
from covid_datavis.config import AppConfig
from covid_datavis.paths import build_output_paths

LOGGER = logging.getLogger(__name__)


def run_analysis(name: str, config: AppConfig, out_dir: Path) -> Path:
    runner = get_analysis(name)
    paths = build_output_paths(out_dir)
    figure_path = runner(config, paths)
    LOGGER.info("%s: figure written to %s", name, figure_path)
    return figure_path


def run_all(
    config: AppConfig,
    out_dir: Path,
    names: Sequence[str] | None = None,
) -> dict[str, Path]:
    """Run each analysis independently; the first failure stops the batch."""
    selected = list(names) if names else analysis_names()
    return {name: run_analysis(name, config, out_dir) for name in selected}
