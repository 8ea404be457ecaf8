from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

LOGGER = logging.getLogger(__name__)


class PipelineStageError(RuntimeError):
    def __init__(self, analysis: str, stage: str, cause: BaseException) -> None:
        self.analysis = analysis
        self.stage = stage
        super().__init__(f"{analysis}: {stage} stage failed: {cause}")


@contextmanager
def pipeline_stage(analysis: str, stage: str) -> Iterator[None]:
    """Log a stage and re-raise any failure as a PipelineStageError naming it."""
    LOGGER.info("%s: %s", analysis, stage)
    try:
        yield
    except PipelineStageError:
        raise
    except Exception as exc:
        LOGGER.exception("%s: %s stage failed", analysis, stage)
        raise PipelineStageError(analysis, stage, exc) from exc
