"""Job registry for scoring worker jobs."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from jobs.envelope import JobEnvelope
from jobs.sketch_score import SketchScorePayload, run_sketch_score_job
from jobs.types import JobType

PayloadT = TypeVar("PayloadT", bound=BaseModel)


@dataclass(frozen=True)
class JobSpec(Generic[PayloadT]):
    job_type: str
    payload_model: type[PayloadT]
    handler: Callable[[PayloadT, JobEnvelope], dict[str, Any]]
    log_context: Callable[[PayloadT], dict[str, str | None]] | None = None


JOB_SPECS: dict[str, JobSpec[Any]] = {
    JobType.SKETCH_SCORE: JobSpec(
        job_type=JobType.SKETCH_SCORE,
        payload_model=SketchScorePayload,
        handler=run_sketch_score_job,
        log_context=lambda payload: {
            "room_id": payload.room_id,
            "submission_id": payload.submission_id,
        },
    ),
}
