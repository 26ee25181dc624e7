"""Unit tests for environment-driven configuration."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from config import Config, config, reset_config


class TestConfig:
    def test_defaults(self, monkeypatch):
        """Defaults match the documented scoring constants."""
        monkeypatch.delenv("SCORING_CANONICAL_SIZE", raising=False)

        settings = Config(_env_file=None)

        assert settings.canonical_size == 512
        assert settings.edge_threshold == 30.0
        assert settings.contour_tolerance == 3
        assert settings.keypoint_max_count == 200
        assert settings.keypoint_tolerance_ratio == 0.05
        assert settings.keypoint_empty_reference_score == 0.5
        assert settings.local_patch_size == 16
        assert settings.ink_threshold == 200
        assert settings.spatial_patch_size == 32
        assert settings.side_by_side_gutter == 20
        assert settings.overlay_opacity == 0.5
        assert settings.max_image_pixels == 25_000_000
        assert settings.reference_root is None

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("SCORING_CONTOUR_TOLERANCE", "5")
        monkeypatch.setenv("SCORING_REFERENCE_ROOT", "/srv/references")

        settings = Config(_env_file=None)

        assert settings.contour_tolerance == 5
        assert settings.reference_root == Path("/srv/references")

    @pytest.mark.parametrize(
        "name, value",
        [
            ("SCORING_CANONICAL_SIZE", "16"),
            ("SCORING_OVERLAY_OPACITY", "1.5"),
            ("SCORING_LOCAL_PATCH_SIZE", "0"),
            ("SCORING_CONTOUR_TOLERANCE", "-1"),
            ("SCORING_MAX_IMAGE_PIXELS", "0"),
        ],
    )
    def test_invalid_values_rejected(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)

        with pytest.raises(ValidationError):
            Config(_env_file=None)

    def test_lazy_proxy_rereads_after_reset(self, monkeypatch):
        """reset_config() makes the proxy pick up new env values."""
        monkeypatch.setenv("SCORING_INK_THRESHOLD", "180")
        reset_config()
        assert config.ink_threshold == 180

        monkeypatch.setenv("SCORING_INK_THRESHOLD", "220")
        assert config.ink_threshold == 180

        reset_config()
        assert config.ink_threshold == 220
