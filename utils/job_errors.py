"""Classify scoring failures as permanent or transient."""

from __future__ import annotations

from pydantic import ValidationError

from scoring.errors import DecodeError, DimensionMismatch

# Scoring is a pure function of its inputs, so these fail the same way on
# every retry. I/O errors (including an unreadable reference) may not.
PERMANENT_JOB_ERRORS = (ValidationError, DecodeError, DimensionMismatch, ValueError)


def is_permanent_job_error(error: BaseException) -> bool:
    """True if retrying the same request cannot succeed."""
    return isinstance(error, PERMANENT_JOB_ERRORS)
