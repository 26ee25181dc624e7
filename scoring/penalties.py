"""Anti-cheating penalty factors derived from ink coverage.

Both factors multiply the raw composite score:
- ink_density_factor(): the submission uses far more ink than the reference
  (defeats "scribble the whole canvas" on recall)
- spatial_extra_penalty(): the submission draws in regions where the
  reference is empty
"""

import numpy as np

from scoring.errors import ensure_same_shape
from scoring.models import PenaltyFactors

# Ink ratio allowed above the reference before any penalty applies
INK_ALLOWANCE = 1.2

# Absolute coverage breakpoints: (coverage above, factor)
COVERAGE_BREAKPOINTS = ((0.6, 0.05), (0.4, 0.15), (0.3, 0.3))

# Excess ratio breakpoints: (submission/reference ratio above, factor)
EXCESS_BREAKPOINTS = ((5.0, 0.15), (3.0, 0.35), (2.0, 0.55))

# Reference ink ratio floor used in the excess ratio
MIN_REFERENCE_INK = 0.01

# A patch is "empty" below this ink ratio in the reference and "inked" above
# this one in the submission.
EMPTY_PATCH_INK = 0.02
INKED_PATCH_INK = 0.05

SPATIAL_MIN_FACTOR = 0.7
SPATIAL_SLOPE = 1.5


def ink_ratio(gray: np.ndarray, ink_threshold: int = 200) -> float:
    """Fraction of pixels darker than ``ink_threshold``."""
    if gray.size == 0:
        return 0.0
    return float(np.count_nonzero(gray < ink_threshold)) / gray.size


def ink_density_factor(reference_ratio: float, submission_ratio: float) -> float:
    """Map reference/submission ink ratios to a penalty factor in (0, 1]."""
    if submission_ratio <= reference_ratio * INK_ALLOWANCE:
        return 1.0

    for coverage, factor in COVERAGE_BREAKPOINTS:
        if submission_ratio > coverage:
            return factor

    excess = submission_ratio / max(reference_ratio, MIN_REFERENCE_INK)
    for limit, factor in EXCESS_BREAKPOINTS:
        if excess > limit:
            return factor
    # Flooring an empty reference can put the excess below the allowance.
    return min(1.0, max(0.4, 1 - (excess - INK_ALLOWANCE) * 0.4))


def _patch_ink_ratios(gray: np.ndarray, patch_size: int, ink_threshold: int) -> np.ndarray:
    rows = gray.shape[0] // patch_size
    cols = gray.shape[1] // patch_size
    ink = (gray[: rows * patch_size, : cols * patch_size] < ink_threshold).astype(np.float64)
    return ink.reshape(rows, patch_size, cols, patch_size).mean(axis=(1, 3))


def count_extra_patches(
    reference: np.ndarray,
    submission: np.ndarray,
    *,
    patch_size: int = 32,
    ink_threshold: int = 200,
) -> tuple[int, int]:
    """Return (extra_patches, total_patches) over complete patches."""
    ensure_same_shape("spatial_extra_penalty", reference, submission)
    reference_ink = _patch_ink_ratios(reference, patch_size, ink_threshold)
    submission_ink = _patch_ink_ratios(submission, patch_size, ink_threshold)
    extra = (reference_ink < EMPTY_PATCH_INK) & (submission_ink > INKED_PATCH_INK)
    return int(np.count_nonzero(extra)), int(reference_ink.size)


def spatial_extra_factor(extra_patches: int, total_patches: int) -> float:
    if total_patches == 0:
        return 1.0
    return max(SPATIAL_MIN_FACTOR, 1 - (extra_patches / total_patches) * SPATIAL_SLOPE)


def spatial_extra_penalty(
    reference: np.ndarray,
    submission: np.ndarray,
    *,
    patch_size: int = 32,
    ink_threshold: int = 200,
) -> float:
    extra, total = count_extra_patches(
        reference, submission, patch_size=patch_size, ink_threshold=ink_threshold
    )
    return spatial_extra_factor(extra, total)


def compute_penalties(
    reference: np.ndarray,
    submission: np.ndarray,
    *,
    ink_threshold: int = 200,
    spatial_patch_size: int = 32,
) -> PenaltyFactors:
    """Both penalty factors plus the ink statistics behind them."""
    ensure_same_shape("penalties", reference, submission)
    reference_ratio = ink_ratio(reference, ink_threshold)
    submission_ratio = ink_ratio(submission, ink_threshold)
    extra, total = count_extra_patches(
        reference, submission, patch_size=spatial_patch_size, ink_threshold=ink_threshold
    )
    return PenaltyFactors(
        ink_density=ink_density_factor(reference_ratio, submission_ratio),
        spatial_extra=spatial_extra_factor(extra, total),
        reference_ink_ratio=reference_ratio,
        submission_ink_ratio=submission_ratio,
        extra_patches=extra,
        total_patches=total,
    )
