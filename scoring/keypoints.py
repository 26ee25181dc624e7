"""Harris-style corner detection and nearest-neighbor keypoint matching.

Key functions:
- detect_keypoints(): strongest corner responses on a coarse sampling grid
- match_keypoints(): fraction of reference corners with a submission corner nearby
"""

import cv2
import numpy as np
from scipy.spatial import cKDTree

from scoring.models import Keypoint

# Candidates need a full 3x3 window of central differences around them.
_MARGIN = 2


def corner_response(gray: np.ndarray, *, k: float = 0.04) -> np.ndarray:
    """Harris response ``det(M) - k * trace(M)^2`` for every pixel.

    M is the second-moment matrix of central-difference gradients summed over a
    3x3 window. Values within two pixels of the border are not meaningful;
    detect_keypoints() never samples them.
    """
    if gray.ndim != 2:
        raise ValueError(f"Expected grayscale image with shape (H, W), got {gray.shape}")

    g = np.asarray(gray, dtype=np.float64)
    ix = np.zeros_like(g)
    iy = np.zeros_like(g)
    ix[:, 1:-1] = g[:, 2:] - g[:, :-2]
    iy[1:-1, :] = g[2:, :] - g[:-2, :]

    def window_sum(values: np.ndarray) -> np.ndarray:
        return cv2.boxFilter(values, cv2.CV_64F, (3, 3), normalize=False)

    sxx = window_sum(ix * ix)
    syy = window_sum(iy * iy)
    sxy = window_sum(ix * iy)

    det = sxx * syy - sxy * sxy
    trace = sxx + syy
    return det - k * trace * trace


def detect_keypoints(
    gray: np.ndarray,
    *,
    stride: int = 3,
    k: float = 0.04,
    response_threshold: float = 1_000.0,
    max_count: int = 200,
) -> list[Keypoint]:
    """Detect the strongest corners on a ``stride``-spaced grid.

    Args:
        gray: Grayscale buffer (H, W)
        stride: Sampling step in pixels
        k: Harris trace weight
        response_threshold: Responses at or below this are discarded
        max_count: Number of keypoints kept

    Returns:
        Keypoints sorted by descending strength; ties keep row-major order.
    """
    height, width = gray.shape
    if height <= 2 * _MARGIN or width <= 2 * _MARGIN:
        return []

    response = corner_response(gray, k=k)
    ys = np.arange(_MARGIN, height - _MARGIN, stride)
    xs = np.arange(_MARGIN, width - _MARGIN, stride)
    grid_y, grid_x = np.meshgrid(ys, xs, indexing="ij")
    sampled = response[grid_y, grid_x].ravel()
    grid_y = grid_y.ravel()
    grid_x = grid_x.ravel()

    keep = sampled > response_threshold
    sampled, grid_y, grid_x = sampled[keep], grid_y[keep], grid_x[keep]

    order = np.argsort(-sampled, kind="stable")[:max_count]
    return [
        Keypoint(x=int(grid_x[i]), y=int(grid_y[i]), strength=float(sampled[i]))
        for i in order
    ]


def match_keypoints(
    reference: list[Keypoint],
    submission: list[Keypoint],
    *,
    max_distance: float,
    empty_reference_score: float = 0.5,
) -> float:
    """Fraction of reference keypoints whose nearest submission keypoint is within reach.

    Args:
        reference: Reference keypoints
        submission: Submission keypoints
        max_distance: Euclidean match radius in pixels (inclusive)
        empty_reference_score: Returned when the reference has no keypoints

    Returns:
        Score in [0, 1]
    """
    if not reference:
        return empty_reference_score
    if not submission:
        return 0.0

    reference_xy = np.array([(kp.x, kp.y) for kp in reference], dtype=np.float64)
    submission_xy = np.array([(kp.x, kp.y) for kp in submission], dtype=np.float64)

    distances, _ = cKDTree(submission_xy).query(reference_xy, k=1)
    matched = int(np.count_nonzero(distances <= max_distance))
    return matched / len(reference)
