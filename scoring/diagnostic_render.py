"""Diagnostic image rendering for scored submissions.

This module renders the images the client shows next to a score:
- Heatmap: per-pixel edge classification (match / miss / extra)
- Side-by-side: reference and submission next to each other
- Overlay: submission at partial opacity over the reference

Key functions:
- render_heatmap(), render_side_by_side(), render_overlay(): RGBA arrays
- render_diagnostics(): all artifacts PNG-encoded in memory
"""

import numpy as np
from PIL import Image

from scoring.errors import ensure_same_shape
from scoring.image_io import encode_png
from scoring.models import DiagnosticArtifacts, NormalizedPair

# RGBA colors for heatmap classes
MATCH_COLOR = (0, 200, 80, 200)  # Green: edge in both
MISS_COLOR = (220, 40, 40, 180)  # Red: reference only
EXTRA_COLOR = (240, 200, 40, 120)  # Yellow: submission only
EMPTY_COLOR = (255, 255, 255, 0)  # Transparent: neither


def render_heatmap(reference_edges: np.ndarray, submission_edges: np.ndarray) -> np.ndarray:
    """Classify every pixel of two edge maps into match/miss/extra colors.

    Args:
        reference_edges: Boolean edge map of the reference (H, W)
        submission_edges: Boolean edge map of the submission (H, W)

    Returns:
        RGBA image (H, W, 4) with dtype uint8
    """
    ensure_same_shape("heatmap", reference_edges, submission_edges)
    ref = np.asarray(reference_edges, dtype=bool)
    sub = np.asarray(submission_edges, dtype=bool)

    heatmap = np.empty(ref.shape + (4,), dtype=np.uint8)
    heatmap[:] = EMPTY_COLOR
    heatmap[ref & sub] = MATCH_COLOR
    heatmap[ref & ~sub] = MISS_COLOR
    heatmap[~ref & sub] = EXTRA_COLOR
    return heatmap


def render_side_by_side(reference: np.ndarray, submission: np.ndarray, *, gutter: int = 20) -> np.ndarray:
    """Reference on the left, submission on the right, transparent gutter between."""
    ensure_same_shape("side_by_side", reference, submission)
    height, width = reference.shape[:2]

    canvas = np.zeros((height, width * 2 + gutter, 4), dtype=np.uint8)
    canvas[:, :width] = reference
    canvas[:, width + gutter :] = submission
    return canvas


def render_overlay(reference: np.ndarray, submission: np.ndarray, *, opacity: float = 0.5) -> np.ndarray:
    """Alpha-composite the submission at ``opacity`` over the reference."""
    ensure_same_shape("overlay", reference, submission)

    faded = np.array(submission, dtype=np.uint8)
    faded[:, :, 3] = np.rint(faded[:, :, 3].astype(np.float64) * opacity).astype(np.uint8)

    base = Image.fromarray(np.ascontiguousarray(reference, dtype=np.uint8))
    top = Image.fromarray(faded)
    return np.array(Image.alpha_composite(base, top), dtype=np.uint8)


def render_diagnostics(
    pair: NormalizedPair,
    reference_edges: np.ndarray,
    submission_edges: np.ndarray,
    *,
    gutter: int = 20,
    overlay_opacity: float = 0.5,
) -> DiagnosticArtifacts:
    """Render and PNG-encode every diagnostic image for one scoring request.

    Encoding happens in memory; nothing is written to disk.
    """
    return DiagnosticArtifacts(
        heatmap=encode_png(render_heatmap(reference_edges, submission_edges)),
        side_by_side=encode_png(
            render_side_by_side(pair.reference_rgba, pair.submission_rgba, gutter=gutter)
        ),
        overlay=encode_png(
            render_overlay(pair.reference_rgba, pair.submission_rgba, opacity=overlay_opacity)
        ),
        normalized_reference=encode_png(pair.reference_rgba),
        normalized_submission=encode_png(pair.submission_rgba),
    )
