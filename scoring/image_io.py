"""Image decoding, reference lookup and normalization to the canonical resolution.

Key functions:
- decode_image(): PNG/JPEG/... bytes to an RGBA array
- decode_data_uri(): strip a ``data:image/...;base64,`` prefix and decode
- resolve_reference(): map a reference locator to a file on disk
- normalize_pair(): resample both images and derive their grayscale buffers
"""

import base64
import binascii
import io
import logging
import re
from pathlib import Path

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from scoring.errors import DecodeError, MissingReferenceError, ensure_same_shape
from scoring.models import NormalizedPair
from utils.log_utils import log_image_decoded

logger = logging.getLogger(__name__)

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)

_DATA_URI_RE = re.compile(r"^data:image/[\w.+-]+;base64,", re.IGNORECASE)


def decode_image(
    data: bytes,
    *,
    role: str = "image",
    max_bytes: int | None = None,
    max_pixels: int | None = None,
) -> np.ndarray:
    """Decode encoded image bytes to an RGBA array.

    Args:
        data: Encoded image (any format Pillow reads)
        role: Name used in log and error messages ("reference", "submission")
        max_bytes: Reject payloads larger than this
        max_pixels: Reject images whose width x height exceeds this

    Returns:
        NumPy array with shape (H, W, 4), dtype uint8

    Raises:
        DecodeError: If the bytes are empty, too large or not a raster image
    """
    if not data:
        raise DecodeError(f"{role}: image data is empty")
    if max_bytes is not None and len(data) > max_bytes:
        raise DecodeError(f"{role}: image is {len(data)} bytes, limit is {max_bytes}")

    try:
        with Image.open(io.BytesIO(data)) as img:
            # Header dimensions only; pixel data is not decoded yet.
            width, height = img.size
            if max_pixels is None or width * height <= max_pixels:
                rgba = np.array(img.convert("RGBA"), dtype=np.uint8)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"{role}: failed to decode image: {e}") from e

    if max_pixels is not None and width * height > max_pixels:
        raise DecodeError(f"{role}: image is {width}x{height} pixels, limit is {max_pixels}")

    if rgba.ndim != 3 or rgba.shape[0] == 0 or rgba.shape[1] == 0:
        raise DecodeError(f"{role}: decoded image has no pixels")

    log_image_decoded(logger, role, rgba.shape[1], rgba.shape[0], size_bytes=len(data))
    return rgba


def decode_data_uri(value: str, *, role: str = "image") -> bytes:
    """Return the raw bytes of a base64 image, with or without a data URI prefix."""
    payload = _DATA_URI_RE.sub("", value.strip(), count=1)
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"{role}: invalid base64 image data: {e}") from e


def resolve_reference(locator: str, reference_root: Path | None = None) -> Path:
    """Resolve a reference locator to an existing file.

    Locators starting with ``/`` are served paths and always resolve under
    ``reference_root``; other locators resolve under it when it is set. With a
    root set, a locator whose resolved path leaves the root is treated as
    missing.

    Raises:
        MissingReferenceError: If no file exists at the resolved location or
            the locator points outside ``reference_root``
    """
    if not locator:
        raise MissingReferenceError(locator)

    if reference_root is not None:
        root = Path(reference_root)
        path = root / locator.lstrip("/")
        if not path.resolve().is_relative_to(root.resolve()):
            raise MissingReferenceError(locator)
    else:
        path = Path(locator)

    if not path.is_file():
        raise MissingReferenceError(locator)
    return path


def read_image_file(path: str | Path, *, role: str = "image", max_bytes: int | None = None) -> bytes:
    """Read an image file into memory, mapping I/O failures to DecodeError."""
    try:
        data = Path(path).read_bytes()
    except FileNotFoundError:
        raise
    except OSError as e:
        raise DecodeError(f"{role}: cannot read {path}: {e}") from e
    if max_bytes is not None and len(data) > max_bytes:
        raise DecodeError(f"{role}: image is {len(data)} bytes, limit is {max_bytes}")
    return data


def resize_to_canonical(rgba: np.ndarray, size: int) -> np.ndarray:
    """Bilinear resample of an RGBA array to ``size`` x ``size``."""
    if rgba.shape[0] == size and rgba.shape[1] == size:
        return rgba.copy()
    return cv2.resize(rgba, (size, size), interpolation=cv2.INTER_LINEAR)


def to_grayscale(rgba: np.ndarray) -> np.ndarray:
    """Luminance of the RGB channels as float64; alpha is ignored."""
    if rgba.ndim != 3 or rgba.shape[2] < 3:
        raise ValueError(f"Expected image with shape (H, W, 3|4), got {rgba.shape}")
    return rgba[:, :, :3].astype(np.float64) @ LUMA_WEIGHTS


def normalize_pair(
    reference: np.ndarray,
    submission: np.ndarray,
    *,
    size: int = 512,
    reference_substituted: bool = False,
) -> NormalizedPair:
    """Resample both decoded images to the canonical size and derive grayscale buffers."""
    reference_rgba = resize_to_canonical(reference, size)
    submission_rgba = resize_to_canonical(submission, size)
    reference_gray = to_grayscale(reference_rgba)
    submission_gray = to_grayscale(submission_rgba)
    ensure_same_shape("normalize", reference_gray, submission_gray)

    for array in (reference_rgba, submission_rgba, reference_gray, submission_gray):
        array.flags.writeable = False

    return NormalizedPair(
        reference_rgba=reference_rgba,
        submission_rgba=submission_rgba,
        reference_gray=reference_gray,
        submission_gray=submission_gray,
        reference_substituted=reference_substituted,
    )


def encode_png(image_array: np.ndarray) -> bytes:
    """Encode an RGB, RGBA or grayscale uint8 array to PNG bytes.

    Raises:
        ValueError: If the array shape is not a supported image layout
    """
    if not (image_array.ndim == 2 or (image_array.ndim == 3 and image_array.shape[2] in (3, 4))):
        raise ValueError(f"Expected image with shape (H, W), (H, W, 3) or (H, W, 4), got {image_array.shape}")

    img = Image.fromarray(np.ascontiguousarray(image_array, dtype=np.uint8))
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()
