"""Sobel gradient-magnitude edge extraction."""

import cv2
import numpy as np


def edge_strength(gray: np.ndarray) -> np.ndarray:
    """Compute the Sobel gradient magnitude of a grayscale buffer.

    Uses the 3x3 Sobel operator in x and y. Magnitude is clamped to [0, 255].
    Border pixels lack a full 3x3 neighborhood and are set to zero.

    Args:
        gray: Grayscale buffer (H, W), float64 intensities in [0, 255]

    Returns:
        Edge strength map (H, W), float64 in [0, 255]
    """
    if gray.ndim != 2:
        raise ValueError(f"Expected grayscale image with shape (H, W), got {gray.shape}")

    gray_f = np.array(gray, dtype=np.float64)
    gx = cv2.Sobel(gray_f, cv2.CV_64F, 1, 0, ksize=3)
    gy = cv2.Sobel(gray_f, cv2.CV_64F, 0, 1, ksize=3)
    strength = np.minimum(np.hypot(gx, gy), 255.0)

    strength[0, :] = 0.0
    strength[-1, :] = 0.0
    strength[:, 0] = 0.0
    strength[:, -1] = 0.0
    return strength


def binarize(strength: np.ndarray, threshold: float = 30.0) -> np.ndarray:
    """Edge map: True where strength is strictly above ``threshold``."""
    return strength > threshold


def extract_edges(gray: np.ndarray, threshold: float = 30.0) -> np.ndarray:
    """Grayscale buffer to boolean edge map (read-only)."""
    edges = binarize(edge_strength(gray), threshold)
    edges.flags.writeable = False
    return edges
