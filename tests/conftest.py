"""Shared fixtures for scoring worker tests."""

from __future__ import annotations

import io
import os

import numpy as np
import pytest
from PIL import Image, ImageDraw

from config import reset_config

CANVAS_SIZE = 512


@pytest.fixture(autouse=True, scope="session")
def test_env_vars():
    """Pin config env vars so a developer's .env cannot change scores."""
    env_vars = {
        "SCORING_CANONICAL_SIZE": "512",
        "SCORING_LOG_LEVEL": "DEBUG",
    }
    original = {k: os.environ.get(k) for k in env_vars}
    os.environ.update(env_vars)
    yield
    # Restore original values
    for k, v in original.items():
        if v is None:
            os.environ.pop(k, None)
        else:
            os.environ[k] = v


@pytest.fixture(autouse=True)
def fresh_config():
    """Re-read config for every test so monkeypatched env vars take effect."""
    reset_config()
    yield
    reset_config()


def png_bytes(img: Image.Image) -> bytes:
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def blank_canvas(size: int = CANVAS_SIZE) -> Image.Image:
    return Image.new("RGB", (size, size), color=(255, 255, 255))


def horizontal_line(row: int = 256, size: int = CANVAS_SIZE) -> Image.Image:
    img = blank_canvas(size)
    ImageDraw.Draw(img).line((0, row, size - 1, row), fill=(0, 0, 0), width=1)
    return img


def house_drawing(offset: int = 0, size: int = CANVAS_SIZE) -> Image.Image:
    """Box, roof and window: plenty of corners for the keypoint detector."""
    img = blank_canvas(size)
    draw = ImageDraw.Draw(img)
    draw.rectangle((140 + offset, 220, 370 + offset, 420), outline=(0, 0, 0), width=4)
    draw.polygon(
        [(130 + offset, 220), (255 + offset, 100), (380 + offset, 220)],
        outline=(0, 0, 0),
        width=4,
    )
    draw.rectangle((180 + offset, 260, 240 + offset, 320), outline=(0, 0, 0), width=3)
    draw.rectangle((280 + offset, 330, 330 + offset, 420), outline=(0, 0, 0), width=3)
    return img


def scribble_over(img: Image.Image, strokes: int, seed: int = 7) -> Image.Image:
    """Copy of ``img`` with ``strokes`` random thick lines added."""
    rng = np.random.default_rng(seed)
    scribbled = img.copy()
    draw = ImageDraw.Draw(scribbled)
    size = img.size[0]
    for _ in range(strokes):
        x0, y0, x1, y1 = (int(v) for v in rng.integers(0, size, size=4))
        draw.line((x0, y0, x1, y1), fill=(0, 0, 0), width=6)
    return scribbled


@pytest.fixture
def blank_png() -> bytes:
    return png_bytes(blank_canvas())


@pytest.fixture
def black_png() -> bytes:
    return png_bytes(Image.new("RGB", (CANVAS_SIZE, CANVAS_SIZE), color=(0, 0, 0)))


@pytest.fixture
def line_png() -> bytes:
    return png_bytes(horizontal_line(256))


@pytest.fixture
def shifted_line_png() -> bytes:
    return png_bytes(horizontal_line(266))


@pytest.fixture
def house_png() -> bytes:
    return png_bytes(house_drawing())


@pytest.fixture
def house_image() -> Image.Image:
    return house_drawing()


@pytest.fixture
def house_gray() -> np.ndarray:
    """House drawing as a float64 grayscale buffer."""
    return np.array(house_drawing().convert("L"), dtype=np.float64)
