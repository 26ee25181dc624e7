"""camelCase <-> snake_case conversion for request payloads and responses.

Clients speak camelCase JSON; Python code works in snake_case. Conversion
only touches dict keys, never values (data URIs pass through untouched).
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

_UPPER_BOUNDARY_RE = re.compile(r"(?<!^)(?=[A-Z])")


def convert_keys(value: Any, convert: Callable[[str], str]) -> Any:
    """Apply ``convert`` to every dict key, recursing through dicts and lists."""
    if isinstance(value, dict):
        return {convert(str(key)): convert_keys(val, convert) for key, val in value.items()}
    if isinstance(value, list):
        return [convert_keys(item, convert) for item in value]
    return value


def to_snake_key(key: str) -> str:
    """``submissionImage`` / ``submission-image`` -> ``submission_image``."""
    return _UPPER_BOUNDARY_RE.sub("_", str(key).replace("-", "_")).lower()


def to_camel_key(key: str) -> str:
    """``local_similarity_score`` -> ``localSimilarityScore``."""
    head, *rest = str(key).split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def to_snake_case(value: Any) -> Any:
    return convert_keys(value, to_snake_key)


def to_camel_case(value: Any) -> Any:
    return convert_keys(value, to_camel_key)
