"""Sketch scoring job handler.

Accepts a drawn submission (base64 PNG or data URI) and a reference given
either inline or as a locator, scores it and returns the client response.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, model_validator

from config import config
from jobs.envelope import JobEnvelope
from scoring.engine import score_submission
from scoring.image_io import decode_data_uri
from scoring.models import Difficulty

logger = logging.getLogger(__name__)


class SketchScorePayload(BaseModel):
    """Input payload for sketch scoring job messages."""

    model_config = {"extra": "forbid"}

    submission_image: str = Field(..., description="Submission PNG as data URI or base64")
    reference_image: str | None = Field(
        default=None, description="Reference PNG as data URI or base64"
    )
    reference_url: str | None = Field(
        default=None, description="Reference locator resolved under the reference root"
    )
    difficulty: Difficulty = Field(default=Difficulty.MEDIUM)
    submission_id: str | None = Field(default=None, description="Caller's submission ID")
    room_id: str | None = Field(default=None, description="Caller's room ID")
    include_artifacts: bool = Field(default=True, description="Inline diagnostic images")

    @model_validator(mode="after")
    def check_reference(self) -> "SketchScorePayload":
        if not self.reference_image and not self.reference_url:
            raise ValueError("Either reference_image or reference_url is required")
        return self


def run_sketch_score_job(payload: SketchScorePayload, envelope: JobEnvelope) -> dict[str, Any]:
    """Score one submission and return the camelCase response dict.

    Raises:
        DecodeError: If an inline image is not valid base64 or not a raster image
    """
    submission = decode_data_uri(payload.submission_image, role="submission")
    reference = (
        decode_data_uri(payload.reference_image, role="reference")
        if payload.reference_image
        else None
    )
    logger.debug(
        "[job.reference] %s, difficulty %s (job-%s)",
        "inline" if reference is not None else payload.reference_url,
        payload.difficulty.value,
        envelope.job_id,
    )

    result = score_submission(
        submission,
        payload.difficulty,
        reference=reference,
        reference_locator=payload.reference_url,
        reference_root=config.reference_root,
        room_id=payload.room_id,
        submission_id=payload.submission_id,
        job_id=envelope.job_id,
    )
    return result.to_response(include_artifacts=payload.include_artifacts)
