"""Configuration management for the scoring worker."""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Scoring worker configuration from environment variables.

    Every threshold, tolerance, patch size and weight used by the engine lives
    here so all worker instances score identically. Nothing in this class is a
    per-request parameter.
    """

    model_config = SettingsConfigDict(
        env_prefix="SCORING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Normalization
    canonical_size: int = Field(
        default=512, description="Width and height every image is resampled to"
    )
    max_image_bytes: int = Field(
        default=10 * 1024 * 1024,  # 10MB
        description="Largest encoded image accepted for scoring",
    )
    max_image_pixels: int = Field(
        default=25_000_000,  # 5000 x 5000
        description="Largest decoded image (width x height) accepted for scoring",
    )

    # Edge extraction and contour matching
    edge_threshold: float = Field(
        default=30.0, description="Gradient magnitude (0-255) above which a pixel is an edge"
    )
    contour_tolerance: int = Field(
        default=3, description="Tolerance window radius in pixels for contour matching"
    )

    # Keypoints (Harris-style corner response)
    keypoint_stride: int = Field(default=3, description="Sampling stride for corner candidates")
    keypoint_harris_k: float = Field(default=0.04, description="Harris trace weight k")
    keypoint_response_threshold: float = Field(
        default=1_000.0, description="Minimum corner response kept as a keypoint"
    )
    keypoint_max_count: int = Field(default=200, description="Keypoints kept per image")
    keypoint_tolerance_ratio: float = Field(
        default=0.05,
        description="Match distance as a fraction of the canonical edge length (0.05 = 5%)",
    )
    keypoint_empty_reference_score: float = Field(
        default=0.5,
        description="Keypoint score reported when the reference has no keypoints (tunable)",
    )

    # Local similarity and penalties
    local_patch_size: int = Field(default=16, description="Patch size for local similarity")
    ink_threshold: int = Field(
        default=200, description="Pixels darker than this are 'ink' (0-255)"
    )
    spatial_patch_size: int = Field(default=32, description="Patch size for extra-ink penalty")

    # Diagnostic rendering
    side_by_side_gutter: int = Field(
        default=20, description="Transparent gap between side-by-side panels in pixels"
    )
    overlay_opacity: float = Field(
        default=0.5, description="Opacity of the submission drawn over the reference"
    )

    # Reference lookup
    reference_root: Path | None = Field(
        default=None, description="Directory reference locators are resolved against"
    )

    # Worker Configuration
    worker_max_concurrency: int = Field(
        default=4, description="Thread pool size for batch scoring"
    )
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("canonical_size")
    @classmethod
    def validate_canonical_size(cls, v: int) -> int:
        """Canonical size must leave room for at least a couple of spatial patches."""
        if v < 32:
            raise ValueError("canonical_size must be at least 32")
        return v

    @field_validator("overlay_opacity")
    @classmethod
    def validate_overlay_opacity(cls, v: float) -> float:
        if not (0.0 <= v <= 1.0):
            raise ValueError("overlay_opacity must be in [0.0, 1.0]")
        return v

    @field_validator(
        "local_patch_size",
        "spatial_patch_size",
        "keypoint_stride",
        "keypoint_max_count",
        "worker_max_concurrency",
        "max_image_pixels",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("value must be positive")
        return v

    @field_validator("contour_tolerance", "side_by_side_gutter")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("value must not be negative")
        return v


_config: Config | None = None


class _LazyConfig:
    """Proxy that lazily loads config on first attribute access."""

    def __getattr__(self, name: str):
        global _config
        if _config is None:
            _config = Config()
        return getattr(_config, name)


def reset_config() -> None:
    """Drop the cached config so the next access re-reads the environment."""
    global _config
    _config = None


config = _LazyConfig()
