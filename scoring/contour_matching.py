"""Tolerance-window precision/recall/F1 between two edge maps.

Hand-drawn strokes never land exactly on the reference pixels, so a pixel
counts as matched when the other map has an edge anywhere inside a
``(2 * tolerance + 1)`` square window around it. Both directions are scored:

- Precision: fraction of submission edge pixels near some reference edge
  (extra strokes lower it)
- Recall: fraction of reference edge pixels near some submission edge
  (missing strokes lower it)

F1 is their harmonic mean. Intersection-over-union is deliberately not used:
it rewards covering the canvas with ink.
"""

import cv2
import numpy as np

from scoring.errors import ensure_same_shape
from scoring.models import ContourMatch


def dilate_edges(edges: np.ndarray, tolerance: int) -> np.ndarray:
    """Grow an edge map by ``tolerance`` pixels in every direction (square window)."""
    if tolerance <= 0:
        return edges.astype(bool)
    kernel = np.ones((2 * tolerance + 1, 2 * tolerance + 1), dtype=np.uint8)
    return cv2.dilate(edges.astype(np.uint8), kernel) > 0


def match_contours(
    reference_edges: np.ndarray,
    submission_edges: np.ndarray,
    *,
    tolerance: int = 3,
) -> ContourMatch:
    """Score how well submission edges trace the reference edges.

    Args:
        reference_edges: Boolean edge map of the reference (H, W)
        submission_edges: Boolean edge map of the submission (H, W)
        tolerance: Window radius in pixels

    Returns:
        ContourMatch. Precision is 0 with no submission edges, recall is 1
        with no reference edges, F1 is 0 when both are 0.
    """
    ensure_same_shape("contour_matching", reference_edges, submission_edges)
    reference_edges = np.asarray(reference_edges, dtype=bool)
    submission_edges = np.asarray(submission_edges, dtype=bool)

    reference_count = int(np.count_nonzero(reference_edges))
    submission_count = int(np.count_nonzero(submission_edges))

    near_reference = dilate_edges(reference_edges, tolerance)
    near_submission = dilate_edges(submission_edges, tolerance)

    matched_submission = int(np.count_nonzero(submission_edges & near_reference))
    matched_reference = int(np.count_nonzero(reference_edges & near_submission))

    precision = matched_submission / submission_count if submission_count else 0.0
    recall = matched_reference / reference_count if reference_count else 1.0
    denominator = precision + recall
    f1 = 2 * precision * recall / denominator if denominator > 0 else 0.0

    return ContourMatch(
        precision=precision,
        recall=recall,
        f1=f1,
        reference_edge_count=reference_count,
        submission_edge_count=submission_count,
        matched_submission_count=matched_submission,
        matched_reference_count=matched_reference,
    )
