"""Error taxonomy for the scoring engine."""

from __future__ import annotations


class ScoringError(Exception):
    """Base class for all scoring engine errors."""


class DecodeError(ScoringError, ValueError):
    """Input bytes could not be parsed as raster image data."""


class MissingReferenceError(ScoringError, FileNotFoundError):
    """The reference image locator could not be resolved.

    Recovered by the engine: the submission is scored against itself.
    """

    def __init__(self, locator: str) -> None:
        super().__init__(f"Reference image not found: {locator}")
        self.locator = locator


class DimensionMismatch(ScoringError):
    """Two buffers handed to the same stage have different shapes.

    Normalization guarantees matching shapes, so this always indicates a bug.
    """

    def __init__(self, stage: str, shape_a: tuple, shape_b: tuple) -> None:
        super().__init__(f"{stage}: buffer shapes differ: {shape_a} != {shape_b}")
        self.stage = stage
        self.shape_a = shape_a
        self.shape_b = shape_b


def ensure_same_shape(stage: str, a, b) -> None:
    """Raise DimensionMismatch unless arrays ``a`` and ``b`` share a shape."""
    if a.shape != b.shape:
        raise DimensionMismatch(stage, tuple(a.shape), tuple(b.shape))


__all__ = [
    "DecodeError",
    "DimensionMismatch",
    "MissingReferenceError",
    "ScoringError",
    "ensure_same_shape",
]
