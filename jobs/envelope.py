"""Envelope around a scoring request.

Callers send camelCase JSON of the form::

    {
        "type": "scoring.sketch.score",
        "id": "<job id>",
        "context": {"roomId": "...", "submissionId": "..."},
        "payload": {"submissionImage": "data:image/png;base64,...", ...}
    }

Keys are normalized to snake_case once, here, so handlers and payload models
only ever see snake_case.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from utils.case_utils import to_snake_case

# Context keys a handler payload may inherit when it does not set them itself
INHERITED_CONTEXT_KEYS = ("room_id", "submission_id")

_REQUIRED_FIELDS = ("type", "id", "payload")


class JobEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    version: str = Field(default="v1")
    job_type: str = Field(alias="type")
    job_id: str = Field(alias="id")
    context: dict[str, Any] | None = None
    payload: dict[str, Any]
    metadata: dict[str, Any] | None = None

    @classmethod
    def from_message(
        cls,
        data: dict[str, Any],
        *,
        job_type_hint: str | None = None,
    ) -> "JobEnvelope":
        """Validate a raw message, filling ``type`` from the hint when absent.

        Raises:
            ValueError: If the message is not an object or lacks type, id or payload
        """
        if not isinstance(data, dict):
            raise ValueError(f"Job message must be an object, got {type(data).__name__}")

        message = to_snake_case(data)
        if job_type_hint and "type" not in message:
            message["type"] = job_type_hint

        missing = [name for name in _REQUIRED_FIELDS if name not in message]
        if missing:
            raise ValueError(f"Job message missing envelope fields: {', '.join(missing)}")
        return cls.model_validate(message)

    def handler_payload(self) -> dict[str, Any]:
        """Payload with room and submission IDs inherited from the context."""
        payload = dict(self.payload)
        for key in INHERITED_CONTEXT_KEYS:
            if payload.get(key) is None and self.context and self.context.get(key) is not None:
                payload[key] = self.context[key]
        return payload


def build_job_envelope(
    *,
    job_type: str,
    job_id: str,
    payload: dict[str, Any],
    context: dict[str, Any] | None = None,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a wire-format message (aliased keys, ``None`` fields dropped)."""
    envelope = JobEnvelope(
        job_type=job_type,
        job_id=job_id,
        payload=payload,
        context=context,
        metadata=metadata,
    )
    return envelope.model_dump(by_alias=True, exclude_none=True)
