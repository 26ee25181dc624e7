"""Difficulty-weighted composite score."""

from scoring.models import Difficulty, PenaltyFactors, ScoreBreakdown, ScoringWeights

# Easy rounds reward gross shape, hard rounds shift weight to fine detail.
DIFFICULTY_WEIGHTS: dict[Difficulty, ScoringWeights] = {
    Difficulty.EASY: ScoringWeights(contour=0.65, keypoints=0.30, local=0.05),
    Difficulty.MEDIUM: ScoringWeights(contour=0.60, keypoints=0.33, local=0.07),
    Difficulty.HARD: ScoringWeights(contour=0.55, keypoints=0.35, local=0.10),
}


def get_weights(difficulty: Difficulty | str) -> ScoringWeights:
    """Weight table for a difficulty tier.

    Raises:
        ValueError: If ``difficulty`` is not a known tier
    """
    return DIFFICULTY_WEIGHTS[Difficulty(difficulty)]


def clamp_unit(value: float) -> float:
    return min(1.0, max(0.0, value))


def to_percentage(value: float) -> float:
    """Unit score to a percentage in [0, 100] rounded to two decimals."""
    return round(clamp_unit(value) * 100, 2)


def raw_composite(contour: float, keypoints: float, local: float, weights: ScoringWeights) -> float:
    return weights.contour * contour + weights.keypoints * keypoints + weights.local * local


def composite_score(
    contour: float,
    keypoints: float,
    local: float,
    *,
    difficulty: Difficulty | str,
    penalties: PenaltyFactors,
) -> float:
    """Weighted sum scaled by both penalty factors, clamped to [0, 1]."""
    weights = get_weights(difficulty)
    raw = raw_composite(contour, keypoints, local, weights)
    return clamp_unit(raw * penalties.ink_density * penalties.spatial_extra)


def build_breakdown(contour: float, keypoints: float, local: float, composite: float) -> ScoreBreakdown:
    return ScoreBreakdown(
        contour_score=to_percentage(contour),
        keypoint_score=to_percentage(keypoints),
        local_similarity_score=to_percentage(local),
        composite_score=to_percentage(composite),
    )
