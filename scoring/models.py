"""Data models shared by the scoring pipeline stages."""

from __future__ import annotations

import base64
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, model_validator

from utils.case_utils import to_camel_case


class Difficulty(str, Enum):
    """Difficulty tier of a round; selects the composite weight table."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ScoringWeights(BaseModel):
    """Weights of the three similarity terms for one difficulty tier."""

    model_config = ConfigDict(frozen=True)

    contour: float = Field(ge=0.0, le=1.0)
    keypoints: float = Field(ge=0.0, le=1.0)
    local: float = Field(ge=0.0, le=1.0)

    @model_validator(mode="after")
    def check_sum(self) -> "ScoringWeights":
        total = self.contour + self.keypoints + self.local
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"Scoring weights must sum to 1.0, got {total}")
        return self


@dataclass(frozen=True)
class NormalizedPair:
    """Reference and submission resampled to the canonical resolution.

    ``*_rgba`` arrays are (H, W, 4) uint8, ``*_gray`` arrays are (H, W) float64.
    """

    reference_rgba: np.ndarray
    submission_rgba: np.ndarray
    reference_gray: np.ndarray
    submission_gray: np.ndarray
    reference_substituted: bool = False

    @property
    def size(self) -> int:
        return int(self.reference_gray.shape[1])


class ContourMatch(BaseModel):
    """Tolerance-based precision/recall/F1 between two edge maps."""

    model_config = ConfigDict(frozen=True)

    precision: float
    recall: float
    f1: float
    reference_edge_count: int
    submission_edge_count: int
    matched_submission_count: int
    matched_reference_count: int


class Keypoint(BaseModel):
    """A corner-like feature point and its response strength."""

    model_config = ConfigDict(frozen=True)

    x: int
    y: int
    strength: float


class PenaltyFactors(BaseModel):
    """Multiplicative anti-cheating factors applied to the raw composite."""

    model_config = ConfigDict(frozen=True)

    ink_density: float = Field(ge=0.0, le=1.0)
    spatial_extra: float = Field(ge=0.0, le=1.0)
    reference_ink_ratio: float
    submission_ink_ratio: float
    extra_patches: int = 0
    total_patches: int = 0

    @property
    def combined(self) -> float:
        return self.ink_density * self.spatial_extra


class ScoreBreakdown(BaseModel):
    """Component scores as percentages in [0, 100], two decimals."""

    model_config = ConfigDict(frozen=True)

    contour_score: float = Field(ge=0.0, le=100.0)
    keypoint_score: float = Field(ge=0.0, le=100.0)
    local_similarity_score: float = Field(ge=0.0, le=100.0)
    composite_score: float = Field(ge=0.0, le=100.0)


def to_data_uri(png_bytes: bytes) -> str:
    """Encode PNG bytes as a ``data:image/png;base64,`` URI."""
    return f"data:image/png;base64,{base64.b64encode(png_bytes).decode('ascii')}"


class DiagnosticArtifacts(BaseModel):
    """PNG-encoded diagnostic images produced for one scoring request."""

    model_config = ConfigDict(frozen=True)

    heatmap: bytes
    side_by_side: bytes
    overlay: bytes
    normalized_reference: bytes
    normalized_submission: bytes

    def to_data_uris(self) -> dict[str, str]:
        return {name: to_data_uri(data) for name, data in self.model_dump().items()}


class ScoringResult(BaseModel):
    """Everything the engine returns for one (reference, submission) pair."""

    model_config = ConfigDict(frozen=True)

    score: float = Field(ge=0.0, le=100.0)
    difficulty: Difficulty
    breakdown: ScoreBreakdown
    contour: ContourMatch
    penalties: PenaltyFactors
    artifacts: DiagnosticArtifacts
    reference_substituted: bool = False

    def to_response(self, include_artifacts: bool = True) -> dict[str, Any]:
        """Return the client-facing response with camelCase keys.

        Artifacts are inlined as data URIs at the top level of the response.
        """
        response: dict[str, Any] = {
            "score": self.score,
            "difficulty": self.difficulty.value,
            "breakdown": self.breakdown.model_dump(),
            "precision": round(self.contour.precision * 100, 2),
            "recall": round(self.contour.recall * 100, 2),
            "penalties": {
                "ink_density": self.penalties.ink_density,
                "spatial_extra": self.penalties.spatial_extra,
            },
            "reference_substituted": self.reference_substituted,
        }
        if include_artifacts:
            response.update(self.artifacts.to_data_uris())
        return to_camel_case(response)
