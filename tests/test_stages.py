from __future__ import annotations

import pytest

from covid_datavis.pipeline.stages import PipelineStageError, pipeline_stage


def test_pipeline_stage_names_the_failing_stage(caplog) -> None:
    with pytest.raises(PipelineStageError) as excinfo:
        with pipeline_stage("area_deaths_sweden", "normalise"):
            raise KeyError("region")

    error = excinfo.value
    assert error.analysis == "area_deaths_sweden"
    assert error.stage == "normalise"
    assert str(error).startswith("area_deaths_sweden: normalise stage failed")
    assert isinstance(error.__cause__, KeyError)
    assert "normalise stage failed" in caplog.text


def test_pipeline_stage_does_not_rewrap_inner_stage_errors() -> None:
    with pytest.raises(PipelineStageError) as excinfo:
        with pipeline_stage("age_vaccination", "outer"):
            with pipeline_stage("age_vaccination", "inner"):
                raise ValueError("boom")

    assert excinfo.value.stage == "inner"


def test_pipeline_stage_passes_through_on_success() -> None:
    with pipeline_stage("age_conditions", "load"):
        value = 1 + 1
    assert value == 2
