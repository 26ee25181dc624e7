"""Logging for the scoring worker.

Every message starts with a bracketed event name followed by the request
context and a short human summary::

    [score.completed] medium | room-1a2b3c4d > sub-9f8e7d6c | score 72.41% | ...

configure_logging() picks the output format: JSON lines for log collectors,
or colored single lines when SCORING_LOCAL_DEV is set.
"""

import contextlib
import json
import logging
import os
import re
import sys
import time
from collections.abc import Generator

import psutil

_EVENT_RE = re.compile(r"^\[([\w.]+)\]")

# Libraries that log chunk-level detail at DEBUG
_QUIET_LOGGERS = ("PIL", "PIL.PngImagePlugin", "PIL.Image")


class JsonFormatter(logging.Formatter):
    """One JSON object per line; ``event`` is lifted from the bracket prefix."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        entry = {
            "severity": record.levelname,
            "message": message,
            "logger": record.name,
            "timestamp": self.formatTime(record, self.datefmt),
        }
        match = _EVENT_RE.match(message)
        if match:
            entry["event"] = match.group(1)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


class LocalDevFormatter(logging.Formatter):
    """Colored ``HH:MM:SS LEVL message`` lines for a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        line = (
            f"{color}{self.formatTime(record, '%H:%M:%S')} "
            f"{record.levelname[:4]}{self.RESET} {record.getMessage()}"
        )
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def parse_log_level(level_str: str) -> int:
    """Level name (any case) to its logging constant; unknown names mean INFO."""
    level = logging.getLevelNamesMapping().get(level_str.strip().upper())
    return level if level is not None else logging.INFO


def configure_logging(level: str | int = logging.INFO) -> None:
    """Install a single stdout handler on the root logger.

    Args:
        level: Level name ("DEBUG", "info", ...) or logging constant
    """
    if isinstance(level, str):
        level = parse_log_level(level)

    local_dev = os.environ.get("SCORING_LOCAL_DEV") is not None
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(LocalDevFormatter() if local_dev else JsonFormatter())
    logging.basicConfig(level=level, handlers=[handler], force=True)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def format_size(size_bytes: int) -> str:
    """Byte count as "512b", "3.4kb" or "1.2mb"."""
    for unit, scale in (("mb", 1024 * 1024), ("kb", 1024)):
        if size_bytes >= scale:
            return f"{size_bytes / scale:.1f}{unit}"
    return f"{size_bytes}b"


def format_duration(duration_ms: int) -> str:
    """Milliseconds as "250ms" below one second, "1.5s" above."""
    if duration_ms < 1000:
        return f"{duration_ms}ms"
    return f"{duration_ms / 1000:.1f}s"


def _short(value) -> str:
    return str(value)[:8]


def format_context(
    room_id: str | None = None,
    submission_id: str | None = None,
    job_id: str | None = None,
) -> str:
    """Request context as "room-1234abcd > sub-5678efgh > job-9abcdef0".

    IDs are cut to eight characters; missing IDs are skipped.
    """
    labeled = (("room", room_id), ("sub", submission_id), ("job", job_id))
    return " > ".join(f"{label}-{_short(value)}" for label, value in labeled if value)


def get_memory_mb() -> float | None:
    """Resident memory of this process in MB, or None if it cannot be read."""
    try:
        return psutil.Process().memory_info().rss / (1024 * 1024)
    except psutil.Error:
        return None


def _elapsed_ms(start_time: float) -> int:
    return int((time.perf_counter() - start_time) * 1000)


def _with_context(text: str, **ids: str | None) -> str:
    """Append " | <context>" to ``text`` when any ID is set."""
    context = format_context(**ids)
    return f"{text} | {context}" if context else text


@contextlib.contextmanager
def log_phase(
    logger: logging.Logger,
    phase_name: str,
    **context_kwargs,
) -> Generator[None, None, None]:
    """Time one pipeline stage, logging at DEBUG on entry and exit.

    Usage:
        with log_phase(logger, "Extracting edges", submission_id=submission_id):
            edges = extract_edges(gray)

    Output:
        Extracting edges... (sub-12345678)
        Extracting edges done (45ms)
    """
    context = format_context(**context_kwargs)
    logger.debug(f"{phase_name}..." + (f" ({context})" if context else ""))
    start_time = time.perf_counter()
    try:
        yield
    finally:
        logger.debug(f"{phase_name} done ({format_duration(_elapsed_ms(start_time))})")


def log_score_started(
    logger: logging.Logger,
    difficulty: str,
    room_id: str | None = None,
    submission_id: str | None = None,
    job_id: str | None = None,
) -> float:
    """Log ``[score.started]`` and return the start time for log_score_completed()."""
    logger.info(
        _with_context(
            f"[score.started] {difficulty}",
            room_id=room_id,
            submission_id=submission_id,
            job_id=job_id,
        )
    )
    return time.perf_counter()


def log_score_completed(
    logger: logging.Logger,
    difficulty: str,
    score: float,
    start_time: float,
    room_id: str | None = None,
    submission_id: str | None = None,
    job_id: str | None = None,
    **metrics: float,
) -> None:
    """Log ``[score.completed]`` with the component scores and penalty factors.

    Args:
        logger: Logger instance
        difficulty: Difficulty tier used for weighting
        score: Composite percentage
        start_time: Value returned by log_score_started()
        **metrics: Unit scores ``contour``, ``keypoints``, ``local`` and the
            factors ``ink_penalty``, ``spatial_penalty`` (any subset)
    """
    sections = [f"score {score:.2f}%"]

    components = [f"{key}={metrics[key]:.3f}" for key in ("contour", "keypoints", "local") if key in metrics]
    if components:
        sections.append(" ".join(components))

    factors = [f"{key}={metrics[key]:.2f}" for key in ("ink_penalty", "spatial_penalty") if key in metrics]
    if factors:
        sections.append(" ".join(factors))

    timing = format_duration(_elapsed_ms(start_time))
    memory_mb = get_memory_mb()
    sections.append(f"{timing}, {memory_mb:.0f}mb" if memory_mb is not None else timing)

    header = _with_context(
        f"[score.completed] {difficulty}",
        room_id=room_id,
        submission_id=submission_id,
        job_id=job_id,
    )
    logger.info(f"{header} | {' | '.join(sections)}")


def log_reference_substituted(
    logger: logging.Logger,
    locator: str,
    submission_id: str | None = None,
) -> None:
    """WARNING: the reference could not be found, the submission stands in for it."""
    logger.warning(_with_context(f"[reference.missing] {locator}", submission_id=submission_id))
    logger.warning("  → scoring submission against itself")


def log_image_decoded(
    logger: logging.Logger,
    role: str,
    width: int,
    height: int,
    size_bytes: int | None = None,
) -> None:
    size = f", {format_size(size_bytes)}" if size_bytes is not None else ""
    logger.debug(f"[image.decoded] {role} {width}x{height}{size}")


def log_score_failed(
    logger: logging.Logger,
    job_type: str,
    message_id: str,
    error: Exception,
    permanent: bool,
) -> None:
    """ERROR line tagged permanent or transient, then the exception summary."""
    kind = "permanent" if permanent else "transient"
    logger.error(f"[score.failed.{kind}] {job_type} msg-{_short(message_id)}")
    logger.error(f"  → {type(error).__name__}: {error}")


def log_job_received(
    logger: logging.Logger,
    job_type: str,
    message_id: str,
    room_id: str | None = None,
    submission_id: str | None = None,
    job_id: str | None = None,
) -> None:
    logger.info(
        _with_context(
            f"[job.received] {job_type} msg-{_short(message_id)}",
            room_id=room_id,
            submission_id=submission_id,
            job_id=job_id,
        )
    )
