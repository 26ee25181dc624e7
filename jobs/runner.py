"""Job runner for handling scoring job envelopes."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any

from config import config
from jobs.envelope import JobEnvelope
from jobs.registry import JOB_SPECS
from utils.job_errors import is_permanent_job_error
from utils.log_utils import log_job_received, log_score_failed


def failure_response(error: BaseException) -> dict[str, Any]:
    """Zero-score response returned for a submission that could not be scored."""
    return {
        "score": 0.0,
        "breakdown": {
            "contourScore": 0.0,
            "keypointScore": 0.0,
            "localSimilarityScore": 0.0,
            "compositeScore": 0.0,
        },
        "error": f"{type(error).__name__}: {error}",
        "permanent": is_permanent_job_error(error),
    }


class JobRunner:
    def __init__(self, *, logger) -> None:
        self.logger = logger

    def run_message(
        self,
        data: dict[str, Any],
        *,
        message_id: str,
        job_type_hint: str | None = None,
    ) -> dict[str, Any]:
        envelope = JobEnvelope.from_message(data, job_type_hint=job_type_hint)
        if job_type_hint and envelope.job_type != job_type_hint:
            raise ValueError(
                f"Job type mismatch: expected {job_type_hint}, got {envelope.job_type}"
            )

        spec = JOB_SPECS.get(envelope.job_type)
        if not spec:
            raise ValueError(f"Unsupported job type: {envelope.job_type}")

        payload = spec.payload_model(**envelope.handler_payload())
        log_fields = spec.log_context(payload) if spec.log_context else {}
        log_job_received(self.logger, envelope.job_type, message_id, job_id=envelope.job_id, **log_fields)

        try:
            return spec.handler(payload, envelope)
        except Exception as e:
            log_score_failed(
                self.logger, envelope.job_type, message_id, e, permanent=is_permanent_job_error(e)
            )
            raise

    def run_batch(
        self,
        messages: list[tuple[str, dict[str, Any]]],
        *,
        max_workers: int | None = None,
    ) -> list[dict[str, Any]]:
        """Run several (message_id, data) jobs in parallel, results in input order.

        A job that raises yields failure_response() instead of aborting the batch.
        """
        max_workers = max_workers or config.worker_max_concurrency

        def run_one(item: tuple[str, dict[str, Any]]) -> dict[str, Any]:
            message_id, data = item
            try:
                return self.run_message(data, message_id=message_id)
            except Exception as e:
                return failure_response(e)

        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(run_one, messages))
