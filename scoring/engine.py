"""Sketch scoring pipeline.

Pure function of (reference, submission, difficulty):

    normalize -> edges -> contour F1 / keypoints / local similarity
              -> penalties -> composite -> diagnostics

No state is shared between calls apart from read-only configuration, so calls
may run in parallel threads or processes without coordination.
"""

import logging
from pathlib import Path

from config import config
from scoring.composite import build_breakdown, composite_score
from scoring.contour_matching import match_contours
from scoring.diagnostic_render import render_diagnostics
from scoring.edge_detection import extract_edges
from scoring.errors import MissingReferenceError, ensure_same_shape
from scoring.image_io import decode_image, normalize_pair, read_image_file, resolve_reference
from scoring.keypoints import detect_keypoints, match_keypoints
from scoring.local_similarity import local_similarity
from scoring.models import Difficulty, NormalizedPair, ScoringResult
from scoring.penalties import compute_penalties
from utils.log_utils import (
    log_phase,
    log_reference_substituted,
    log_score_completed,
    log_score_started,
)

logger = logging.getLogger(__name__)


def score_pair(
    pair: NormalizedPair,
    difficulty: Difficulty | str,
    *,
    room_id: str | None = None,
    submission_id: str | None = None,
    job_id: str | None = None,
) -> ScoringResult:
    """Score an already-normalized reference/submission pair.

    Raises:
        DimensionMismatch: If the pair's buffers do not share one shape
        ValueError: If ``difficulty`` is not a known tier
    """
    difficulty = Difficulty(difficulty)
    context = {"room_id": room_id, "submission_id": submission_id, "job_id": job_id}
    start_time = log_score_started(logger, difficulty.value, **context)

    ensure_same_shape("score", pair.reference_gray, pair.submission_gray)
    ensure_same_shape("score", pair.reference_rgba, pair.submission_rgba)

    with log_phase(logger, "Extracting edges", **context):
        reference_edges = extract_edges(pair.reference_gray, config.edge_threshold)
        submission_edges = extract_edges(pair.submission_gray, config.edge_threshold)

    with log_phase(logger, "Matching contours", **context):
        contour = match_contours(
            reference_edges, submission_edges, tolerance=config.contour_tolerance
        )

    with log_phase(logger, "Matching keypoints", **context):
        detect_options = {
            "stride": config.keypoint_stride,
            "k": config.keypoint_harris_k,
            "response_threshold": config.keypoint_response_threshold,
            "max_count": config.keypoint_max_count,
        }
        reference_keypoints = detect_keypoints(pair.reference_gray, **detect_options)
        submission_keypoints = detect_keypoints(pair.submission_gray, **detect_options)
        keypoint_score = match_keypoints(
            reference_keypoints,
            submission_keypoints,
            max_distance=pair.size * config.keypoint_tolerance_ratio,
            empty_reference_score=config.keypoint_empty_reference_score,
        )

    with log_phase(logger, "Computing local similarity", **context):
        local_score = local_similarity(
            pair.reference_gray, pair.submission_gray, patch_size=config.local_patch_size
        )

    with log_phase(logger, "Computing penalties", **context):
        penalties = compute_penalties(
            pair.reference_gray,
            pair.submission_gray,
            ink_threshold=config.ink_threshold,
            spatial_patch_size=config.spatial_patch_size,
        )

    composite = composite_score(
        contour.f1, keypoint_score, local_score, difficulty=difficulty, penalties=penalties
    )
    breakdown = build_breakdown(contour.f1, keypoint_score, local_score, composite)

    with log_phase(logger, "Rendering diagnostics", **context):
        artifacts = render_diagnostics(
            pair,
            reference_edges,
            submission_edges,
            gutter=config.side_by_side_gutter,
            overlay_opacity=config.overlay_opacity,
        )

    log_score_completed(
        logger,
        difficulty.value,
        breakdown.composite_score,
        start_time,
        contour=contour.f1,
        keypoints=keypoint_score,
        local=local_score,
        ink_penalty=penalties.ink_density,
        spatial_penalty=penalties.spatial_extra,
        **context,
    )

    return ScoringResult(
        score=breakdown.composite_score,
        difficulty=difficulty,
        breakdown=breakdown,
        contour=contour,
        penalties=penalties,
        artifacts=artifacts,
        reference_substituted=pair.reference_substituted,
    )


def load_reference_bytes(locator: str, reference_root: Path | None = None) -> bytes:
    """Read the reference image a locator points at.

    Raises:
        MissingReferenceError: If the locator does not resolve to a file
        DecodeError: If the file exists but cannot be read
    """
    path = resolve_reference(locator, reference_root)
    try:
        return read_image_file(path, role="reference", max_bytes=config.max_image_bytes)
    except FileNotFoundError as e:
        raise MissingReferenceError(locator) from e


def score_submission(
    submission: bytes,
    difficulty: Difficulty | str,
    *,
    reference: bytes | None = None,
    reference_locator: str | None = None,
    reference_root: Path | None = None,
    room_id: str | None = None,
    submission_id: str | None = None,
    job_id: str | None = None,
) -> ScoringResult:
    """Decode, normalize and score a submission against its reference.

    The reference is taken from ``reference`` bytes when given, otherwise it is
    loaded through ``reference_locator``. An unresolvable locator does not fail
    the request: the submission is compared with itself and the result is
    flagged ``reference_substituted``.

    Raises:
        DecodeError: If either image cannot be decoded
    """
    difficulty = Difficulty(difficulty)
    max_bytes = config.max_image_bytes
    max_pixels = config.max_image_pixels

    with log_phase(logger, "Decoding images", submission_id=submission_id, job_id=job_id):
        submission_rgba = decode_image(
            submission, role="submission", max_bytes=max_bytes, max_pixels=max_pixels
        )

        substituted = False
        if reference is None:
            try:
                reference = load_reference_bytes(reference_locator or "", reference_root)
            except MissingReferenceError as e:
                log_reference_substituted(logger, e.locator, submission_id=submission_id)
                substituted = True

        if substituted:
            reference_rgba = submission_rgba
        else:
            reference_rgba = decode_image(
                reference, role="reference", max_bytes=max_bytes, max_pixels=max_pixels
            )

    pair = normalize_pair(
        reference_rgba,
        submission_rgba,
        size=config.canonical_size,
        reference_substituted=substituted,
    )
    return score_pair(
        pair, difficulty, room_id=room_id, submission_id=submission_id, job_id=job_id
    )


def score_files(
    submission_path: str | Path,
    reference_path: str | Path,
    difficulty: Difficulty | str = Difficulty.MEDIUM,
) -> ScoringResult:
    """Score two image files on disk (reference may be missing)."""
    submission = read_image_file(
        submission_path, role="submission", max_bytes=config.max_image_bytes
    )
    return score_submission(
        submission,
        difficulty,
        reference_locator=str(reference_path),
        submission_id=Path(submission_path).stem,
    )
