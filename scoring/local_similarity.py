"""Patch-wise structural similarity (SSIM-like) between grayscale buffers."""

import numpy as np

from scoring.errors import ensure_same_shape

# Standard SSIM stabilizers for an 8-bit range: (0.01 * 255)^2 and (0.03 * 255)^2
SSIM_C1 = (0.01 * 255) ** 2
SSIM_C2 = (0.03 * 255) ** 2


def _patches(gray: np.ndarray, patch_size: int) -> np.ndarray:
    """Split into complete non-overlapping patches, shape (rows, cols, p * p).

    Trailing rows and columns that do not fill a whole patch are dropped.
    """
    rows = gray.shape[0] // patch_size
    cols = gray.shape[1] // patch_size
    cropped = np.asarray(gray, dtype=np.float64)[: rows * patch_size, : cols * patch_size]
    return (
        cropped.reshape(rows, patch_size, cols, patch_size)
        .transpose(0, 2, 1, 3)
        .reshape(rows, cols, patch_size * patch_size)
    )


def patch_ssim(reference: np.ndarray, submission: np.ndarray, *, patch_size: int = 16) -> np.ndarray:
    """Per-patch SSIM, clamped to be non-negative. Shape (rows, cols)."""
    ensure_same_shape("local_similarity", reference, submission)

    ref = _patches(reference, patch_size)
    sub = _patches(submission, patch_size)

    mean_r = ref.mean(axis=2)
    mean_s = sub.mean(axis=2)
    dr = ref - mean_r[..., None]
    ds = sub - mean_s[..., None]
    var_r = (dr * dr).mean(axis=2)
    var_s = (ds * ds).mean(axis=2)
    cov = (dr * ds).mean(axis=2)

    numerator = (2 * mean_r * mean_s + SSIM_C1) * (2 * cov + SSIM_C2)
    denominator = (mean_r * mean_r + mean_s * mean_s + SSIM_C1) * (var_r + var_s + SSIM_C2)
    return np.maximum(0.0, numerator / denominator)


def local_similarity(reference: np.ndarray, submission: np.ndarray, *, patch_size: int = 16) -> float:
    """Mean patch SSIM over all complete patches; 0.0 when there are none."""
    scores = patch_ssim(reference, submission, patch_size=patch_size)
    if scores.size == 0:
        return 0.0
    return float(scores.mean())
